"""Exception types raised by uhd_slideshow."""
from __future__ import annotations


class UhdError(Exception):
    """Base class for all errors raised by this package."""


class DecodeError(UhdError):
    """The input bytes are not an image Pillow can decode."""


class MetadataReadError(UhdError):
    """Embedded metadata is absent or unreadable."""


class TimestampParseError(UhdError, ValueError):
    """A date-time field matched none of the accepted layouts."""


class WriteError(UhdError):
    """An output file or directory could not be created or written."""


class AssemblyError(UhdError):
    """The slideshow could not be assembled.

    ``stderr`` holds the encoder's diagnostic output, unmodified, when the
    failure came from the encoder itself.
    """

    def __init__(self, message: str, stderr: str | None = None) -> None:
        super().__init__(message)
        self.stderr = stderr
