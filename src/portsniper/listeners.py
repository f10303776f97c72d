"""Listener table parsing for portsniper.

Turns the text printed by ``lsof -iTCP -sTCP:LISTEN -P -n`` into
:class:`ListenerRecord` values. The column layout of ``lsof`` is::

    COMMAND PID USER FD TYPE DEVICE SIZE/OFF NODE NAME
    node    1234 me  23u IPv4 0x...  0t0     TCP  *:3000 (LISTEN)

Parsing is best-effort: lines that do not fit the layout are dropped and
the scan continues.
"""

import logging
import subprocess
from collections.abc import Iterator

from portsniper.errors import ListingError
from portsniper.models import ListenerRecord, Protocol

logger = logging.getLogger(__name__)

LISTING_COMMAND = ("lsof", "-iTCP", "-sTCP:LISTEN", "-P", "-n")

MIN_COLUMNS = 9
PID_COLUMN = 1
ADDRESS_COLUMN = 8
MAX_PORT = 65535
MAX_PID = 2**32 - 1


def _parse_port(address: str) -> int | None:
    """Extract the port from an address such as ``*:3000`` or ``[::1]:8080``."""
    if ":" not in address:
        return None

    tail = address.rsplit(":", 1)[1]
    digits = ""
    for char in tail:
        if not ("0" <= char <= "9"):
            break
        digits += char

    if not digits:
        return None
    port = int(digits)
    if port > MAX_PORT:
        return None
    return port


def parse_listener_line(line: str) -> ListenerRecord | None:
    """
    Parse one line of listener output.

    Returns None for any line that does not have the expected layout.
    """
    columns = line.split()
    if len(columns) < MIN_COLUMNS:
        return None

    pid_text = columns[PID_COLUMN]
    if not (pid_text.isascii() and pid_text.isdigit()):
        return None
    pid = int(pid_text)
    if pid > MAX_PID:
        return None

    port = _parse_port(columns[ADDRESS_COLUMN])
    if port is None:
        return None

    return ListenerRecord(
        name_hint=columns[0],
        pid=pid,
        protocol=Protocol.TCP,
        port=port,
    )


def parse_listener_table(text: str) -> Iterator[ListenerRecord]:
    """Yield a record for every well-formed line, skipping the header."""
    for line in text.splitlines()[1:]:
        logger.debug("Found raw line: %s", line)
        record = parse_listener_line(line)
        if record is not None:
            yield record


def run_listing_command(timeout: float | None = 10.0) -> str:
    """
    Run the socket-listing utility and return its standard output.

    A non-zero exit status is not an error: lsof exits with 1 when no
    socket matches, and prints nothing.

    Raises:
        ListingError: The utility could not be launched or did not finish
            within ``timeout`` seconds.
    """
    try:
        result = subprocess.run(
            LISTING_COMMAND,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise ListingError(
            f"{LISTING_COMMAND[0]} did not finish within {timeout} seconds",
            LISTING_COMMAND,
        ) from exc
    except OSError as exc:
        raise ListingError(
            f"Failed to run {LISTING_COMMAND[0]}: {exc}", LISTING_COMMAND
        ) from exc

    if result.returncode != 0 and result.stderr.strip():
        logger.debug("%s exited with %d: %s", LISTING_COMMAND[0], result.returncode, result.stderr.strip())

    return result.stdout
