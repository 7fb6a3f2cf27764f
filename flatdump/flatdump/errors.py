# flatdump/flatdump/errors.py
from __future__ import annotations

from typing import Optional


class FlatdumpError(Exception):
    """Base class for all errors in the flatdump application."""

    code = "FLATDUMP_ERROR"

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message} [{self.detail}]"
        return self.message


class ConfigError(FlatdumpError):
    """Malformed environment or command-line configuration."""
    code = "FLATDUMP_CONFIG"


class SpecError(FlatdumpError):
    """An export specification failed validation."""
    code = "FLATDUMP_SPEC"


class QuerySyntaxError(FlatdumpError):
    """The query text could not be parsed. Nothing has been opened yet."""
    code = "FLATDUMP_QUERY_SYNTAX"


class DescribeError(FlatdumpError):
    """The query parsed but its result columns could not be derived."""
    code = "FLATDUMP_DESCRIBE"


# -----------------------------------------------------------------------------
# File I/O taxonomy
# -----------------------------------------------------------------------------

class FileIOError(FlatdumpError):
    """Base for file operation failures.

    Every subclass has a fixed one-line ``summary`` which is what gets logged
    when the error passes through a handler. ``message``/``detail`` carry the
    specifics for the caller.
    """

    code = "FLATDUMP_IO"
    summary = "Error - file operation failed."

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        super().__init__(message or self.summary, detail)


class PathError(FileIOError):
    code = "FLATDUMP_IO_PATH"
    summary = "Error - invalid path."


class ModeError(FileIOError):
    code = "FLATDUMP_IO_MODE"
    summary = "Error - invalid mode."


class OperationError(FileIOError):
    code = "FLATDUMP_IO_OPERATION"
    summary = "Error - invalid operation."


class HandleError(FileIOError):
    code = "FLATDUMP_IO_HANDLE"
    summary = "Error - invalid filehandle."


class WriteError(FileIOError):
    code = "FLATDUMP_IO_WRITE"
    summary = "Error - write error."


class ReadError(FileIOError):
    code = "FLATDUMP_IO_READ"
    summary = "Error - read error."


class InternalError(FileIOError):
    code = "FLATDUMP_IO_INTERNAL"
    summary = "Error - internal error."


# Handler emission order.
IO_ERRORS: tuple[type[FileIOError], ...] = (
    PathError,
    ModeError,
    OperationError,
    HandleError,
    WriteError,
    ReadError,
    InternalError,
)
