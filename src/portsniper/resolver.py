"""Process name resolution for portsniper."""

import logging
from collections.abc import Mapping
from pathlib import PurePath

import psutil

from portsniper.models import InterpreterHost, ProcessEntry

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"


def clean_process_name(name: str) -> str:
    """
    Normalize a process name for display.

    lsof and the process table both escape characters in names; ``\\x20``
    becomes a space, any other backslash is dropped.
    """
    return name.replace("\\x20", " ").replace("\\", "").strip()


class ProcessTable:
    """
    Snapshot of process names and launch arguments keyed by pid.

    A table is captured once per port listing and is independent of the
    long-lived stats gauge.
    """

    def __init__(self, entries: Mapping[int, ProcessEntry] | None = None) -> None:
        self._entries: dict[int, ProcessEntry] = dict(entries or {})

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, pid: object) -> bool:
        return pid in self._entries

    def get(self, pid: int) -> ProcessEntry | None:
        return self._entries.get(pid)

    @classmethod
    def capture(cls) -> "ProcessTable":
        """
        Capture the live process table with psutil.

        Processes that exit or deny access mid-scan are skipped. A process
        whose command line cannot be read is kept with empty arguments.
        """
        entries: dict[int, ProcessEntry] = {}

        for proc in psutil.process_iter(attrs=["pid", "name", "cmdline"]):
            try:
                info = proc.info
                entries[info["pid"]] = ProcessEntry(
                    name=info.get("name") or "",
                    cmdline=tuple(info.get("cmdline") or ()),
                )
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue

        logger.debug("Captured %d processes", len(entries))
        return cls(entries)


def _script_name(cmdline: tuple[str, ...]) -> str | None:
    """Return the file name of the script passed to an interpreter host."""
    if len(cmdline) < 2:
        return None

    arg = cmdline[1]
    if not arg or arg.startswith("-"):
        return None
    name = PurePath(arg).name
    if name in ("", ".", ".."):
        return None
    return name


def resolve_display_name(pid: int, name_hint: str, table: ProcessTable) -> str:
    """
    Resolve the display name for the process owning a socket.

    Uses the process table name when available and, for interpreter hosts
    such as node or python, the script named by the second launch argument.
    Falls back to the listener's own name hint when the pid is not in the
    table.
    """
    entry = table.get(pid)
    if entry is None:
        name = clean_process_name(name_hint)
    else:
        name = clean_process_name(entry.name)
        if InterpreterHost.matches(name):
            name = _script_name(entry.cmdline) or name

    return name or UNKNOWN_NAME
