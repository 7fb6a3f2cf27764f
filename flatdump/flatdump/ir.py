from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Tuple

from .types import Kind

if TYPE_CHECKING:
    from .config import ExportSpec


@dataclass(frozen=True)
class ColumnDescriptor:
    """One result column: 1-based position, alias, abstract kind."""
    position: int
    name: str
    kind: Kind
    native_type: str = ""


# -----------------------------------------------------------------------------
# Pipeline steps
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class Step:
    # Base class for pipeline steps. Not intended to be instantiated directly.
    kind: str = field(default="step", init=False)


@dataclass(frozen=True)
class DeclareBuffer(Step):
    kind: str = field(default="declare", init=False)
    column: ColumnDescriptor


@dataclass(frozen=True)
class ResolveLineEnd(Step):
    kind: str = field(default="line_end", init=False)


@dataclass(frozen=True)
class SetDateFormat(Step):
    kind: str = field(default="date_format", init=False)
    date_format: str


@dataclass(frozen=True)
class OpenOutput(Step):
    kind: str = field(default="open_output", init=False)
    directory: str
    file_name: str
    write_mode: str


@dataclass(frozen=True)
class OpenCursor(Step):
    kind: str = field(default="open_cursor", init=False)
    query: str


@dataclass(frozen=True)
class FetchBatch(Step):
    kind: str = field(default="fetch", init=False)
    columns: Tuple[str, ...]
    limit: int


@dataclass(frozen=True)
class WriteField(Step):
    kind: str = field(default="write_field", init=False)
    column: ColumnDescriptor
    prefix: str  # delimiter, empty for the first column


@dataclass(frozen=True)
class WriteLineEnd(Step):
    kind: str = field(default="write_line_end", init=False)


@dataclass(frozen=True)
class FetchLoop(Step):
    """Fetch a batch; write every row with ``body``; stop when a fetch returns no rows."""
    kind: str = field(default="loop", init=False)
    fetch: FetchBatch
    body: Tuple[Step, ...]


@dataclass(frozen=True)
class CloseCursor(Step):
    kind: str = field(default="close_cursor", init=False)


@dataclass(frozen=True)
class CloseOutput(Step):
    kind: str = field(default="close_output", init=False)


@dataclass(frozen=True)
class ErrorHandler(Step):
    kind: str = field(default="handler", init=False)
    error: str  # FileIOError subclass name
    message: str


@dataclass(frozen=True)
class SynthesizedProgram:
    spec: "ExportSpec"
    columns: Tuple[ColumnDescriptor, ...]
    steps: Tuple[Step, ...]
    handlers: Tuple[ErrorHandler, ...]
    text: str

    def handler_for(self, error_name: str) -> ErrorHandler | None:
        for handler in self.handlers:
            if handler.error == error_name:
                return handler
        return None

