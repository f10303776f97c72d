"""Data models for portsniper."""

from dataclasses import dataclass
from enum import Enum


class Protocol(Enum):
    """Transport protocol tags reported for a listening socket."""

    TCP = "TCP"
    UDP = "UDP"


class InterpreterHost(Enum):
    """Runtime binaries whose process name hides the script they run."""

    NODE = "node"
    ELECTRON = "electron"
    PYTHON = "python"
    PYTHON_MACOS = "Python"

    @classmethod
    def matches(cls, name: str) -> bool:
        """Return True if name is exactly one of the known host names."""
        return any(host.value == name for host in cls)


@dataclass(slots=True, frozen=True)
class ListenerRecord:
    """One parsed line of the listener table."""

    name_hint: str
    pid: int
    protocol: Protocol
    port: int  # 0 - 65535


@dataclass(slots=True, frozen=True)
class ProcessEntry:
    """Name and launch arguments of a live process."""

    name: str
    cmdline: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class PortInfo:
    """A listening port and the process that owns it."""

    pid: int
    name: str
    port: int
    protocol: str

    def to_dict(self) -> dict[str, int | str]:
        return {
            "pid": self.pid,
            "name": self.name,
            "port": self.port,
            "protocol": self.protocol,
        }


@dataclass(slots=True, frozen=True)
class GlobalStats:
    """Point-in-time CPU and memory utilization."""

    cpu_usage: float  # 0.0 - 100.0
    memory_total: int  # Bytes
    memory_used: int  # Bytes

    @property
    def memory_percent(self) -> float:
        if self.memory_total <= 0:
            return 0.0
        return self.memory_used / self.memory_total * 100

    def to_dict(self) -> dict[str, float | int]:
        return {
            "cpu_usage": self.cpu_usage,
            "memory_total": self.memory_total,
            "memory_used": self.memory_used,
        }


@dataclass(slots=True, frozen=True)
class KillResult:
    """Outcome of a termination request."""

    pid: int
    ok: bool
    message: str | None = None

    @classmethod
    def success(cls, pid: int) -> "KillResult":
        return cls(pid=pid, ok=True)

    @classmethod
    def failure(cls, pid: int, message: str) -> "KillResult":
        return cls(pid=pid, ok=False, message=message)
