"""Exceptions raised by portsniper."""

from collections.abc import Sequence


class PortSniperError(Exception):
    """Base class for portsniper errors."""


class CommandError(PortSniperError):
    """An external command could not be run to completion."""

    def __init__(self, message: str, command: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.command = tuple(command)


class ListingError(CommandError):
    """The socket-listing utility could not be launched or timed out."""
