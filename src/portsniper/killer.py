"""Forced process termination for portsniper."""

import logging
import subprocess

from portsniper.models import KillResult

logger = logging.getLogger(__name__)

KILL_COMMAND = ("kill", "-9")
DEFAULT_FAILURE = "Failed to kill process"


def kill_process(pid: int, timeout: float | None = 10.0) -> KillResult:
    """
    Send SIGKILL to pid with the kill utility.

    Never raises; every failure is returned as a failed KillResult. The
    call does not wait for the process to exit.
    """
    if pid <= 0:
        return KillResult.failure(pid, f"Invalid pid: {pid}")

    command = [*KILL_COMMAND, str(pid)]
    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        logger.warning("kill %d did not finish within %s seconds", pid, timeout)
        return KillResult.failure(pid, f"kill did not finish within {timeout} seconds")
    except OSError as exc:
        logger.warning("Failed to run kill for %d: %s", pid, exc)
        return KillResult.failure(pid, str(exc))

    if result.returncode != 0:
        message = result.stderr.strip() or DEFAULT_FAILURE
        logger.warning("kill %d exited with %d: %s", pid, result.returncode, message)
        return KillResult.failure(pid, message)

    logger.info("Killed process %d", pid)
    return KillResult.success(pid)
