from __future__ import annotations

from dataclasses import asdict, dataclass, field
import logging
from pathlib import Path
import platform
from time import perf_counter
from typing import Any, Callable, Dict, List, Optional, Sequence

import duckdb

from .datefmt import DateFormat, compile_date_format
from .errors import FileIOError, InternalError, ReadError
from .hash_utils import sha256_text
from .host import line_terminator
from .ir import (
    CloseCursor,
    CloseOutput,
    DeclareBuffer,
    FetchLoop,
    OpenCursor,
    OpenOutput,
    ResolveLineEnd,
    SetDateFormat,
    Step,
    SynthesizedProgram,
    WriteField,
    WriteLineEnd,
)
from .types import render_value
from .writer import DirectoryRegistry, OutputWriter

logger = logging.getLogger(__name__)


@dataclass
class ExportResult:
    status: str  # "ok" | "failed"
    error: Optional[str] = None
    message: Optional[str] = None
    output_path: Optional[str] = None
    debug_path: Optional[str] = None
    columns: List[str] = field(default_factory=list)
    rows_written: int = 0
    batches: int = 0
    line_terminator: Optional[str] = None
    program_sha256: Optional[str] = None
    execute_ms: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @classmethod
    def failure(cls, err: BaseException) -> "ExportResult":
        return cls(status="failed", error=type(err).__name__, message=str(err))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class BatchBuffer:
    """Per-column values of the current batch. All columns always hold the same number of rows."""

    def __init__(self, names: Sequence[str]) -> None:
        self.names = tuple(names)
        self.columns: Dict[str, List[Any]] = {name: [] for name in self.names}
        self.size = 0

    def load(self, rows: Sequence[Sequence[Any]]) -> None:
        for values in self.columns.values():
            values.clear()
        for row in rows:
            if len(row) != len(self.names):
                raise InternalError(
                    detail=f"fetched row has {len(row)} values, expected {len(self.names)}"
                )
            for name, value in zip(self.names, row):
                self.columns[name].append(value)
        sizes = {len(values) for values in self.columns.values()}
        if len(sizes) > 1:
            raise InternalError(detail=f"batch buffers out of step: {sorted(sizes)}")
        self.size = len(rows)

    def value(self, name: str, index: int) -> Any:
        return self.columns[name][index]


class _ExecutionState:
    def __init__(
        self,
        connection: duckdb.DuckDBPyConnection,
        directories: DirectoryRegistry,
        host_system: Callable[[], str],
        encoding: str,
    ) -> None:
        self.connection = connection
        self.directories = directories
        self.host_system = host_system
        self.encoding = encoding
        self.declared: List[str] = []
        self.eol: Optional[str] = None
        self.date_format: Optional[DateFormat] = None
        self.writer: Optional[OutputWriter] = None
        # Pending result of the export query on the caller's connection.
        self.cursor: Optional[duckdb.DuckDBPyConnection] = None
        self.rows_written = 0
        self.batches = 0

    def release(self) -> None:
        # The connection belongs to the caller; only the pending result is dropped.
        self.cursor = None
        if self.writer is not None:
            self.writer.abort()


def _require_writer(state: _ExecutionState) -> OutputWriter:
    if state.writer is None:
        raise InternalError(detail="output written before it was opened")
    return state.writer


def _run_fetch_loop(step: FetchLoop, state: _ExecutionState) -> None:
    if state.cursor is None:
        raise InternalError(detail="fetch before cursor was opened")
    missing = [name for name in step.fetch.columns if name not in state.declared]
    if missing:
        raise InternalError(detail=f"fetch into undeclared buffers: {missing}")
    buffer = BatchBuffer(step.fetch.columns)
    while True:
        try:
            rows = state.cursor.fetchmany(step.fetch.limit)
        except duckdb.Error as exc:
            raise ReadError(detail=str(exc)) from exc
        if not rows:
            break
        buffer.load(rows)
        state.batches += 1
        for index in range(buffer.size):
            for inner in step.body:
                _run_row_step(inner, state, buffer, index)
            state.rows_written += 1
        logger.debug("batch %d: %d row(s), %d total", state.batches, buffer.size, state.rows_written)


def _run_row_step(step: Step, state: _ExecutionState, buffer: BatchBuffer, index: int) -> None:
    writer = _require_writer(state)
    if isinstance(step, WriteField):
        col = step.column
        text = render_value(col.kind, buffer.value(col.name, index), state.date_format)
        writer.write_field(step.prefix + text)
    elif isinstance(step, WriteLineEnd):
        if state.eol is None:
            raise InternalError(detail="line terminator was never resolved")
        writer.write_line_end(state.eol)
    else:
        raise InternalError(detail=f"unsupported step '{step.kind}' in row body")


def _run_step(step: Step, state: _ExecutionState) -> None:
    if isinstance(step, DeclareBuffer):
        state.declared.append(step.column.name)
    elif isinstance(step, ResolveLineEnd):
        state.eol = line_terminator(state.host_system())
    elif isinstance(step, SetDateFormat):
        try:
            state.date_format = compile_date_format(step.date_format)
        except ValueError as exc:
            raise InternalError(detail=str(exc)) from exc
    elif isinstance(step, OpenOutput):
        state.writer = OutputWriter.open(
            state.directories,
            step.directory,
            step.file_name,
            step.write_mode,
            encoding=state.encoding,
        )
    elif isinstance(step, OpenCursor):
        try:
            # Same session that described the query: temp tables, open
            # transactions and SET options all apply.
            state.cursor = state.connection.execute(step.query)
        except duckdb.Error as exc:
            raise ReadError(detail=str(exc)) from exc
    elif isinstance(step, FetchLoop):
        _run_fetch_loop(step, state)
    elif isinstance(step, CloseCursor):
        state.cursor = None
    elif isinstance(step, CloseOutput):
        _require_writer(state).close()
    else:
        raise InternalError(detail=f"unsupported step '{step.kind}'")


def _classify(exc: Exception) -> FileIOError:
    if isinstance(exc, FileIOError):
        return exc
    if isinstance(exc, duckdb.Error):
        return ReadError(detail=str(exc))
    return InternalError(detail=f"{type(exc).__name__}: {exc}")


def _report(program: SynthesizedProgram, err: FileIOError) -> None:
    handler = program.handler_for(type(err).__name__)
    logger.error(handler.message if handler is not None else err.summary)


def execute(
    program: SynthesizedProgram,
    connection: duckdb.DuckDBPyConnection,
    directories: DirectoryRegistry,
    host_system: Callable[[], str] = platform.system,
    encoding: str = "utf-8",
) -> ExportResult:
    """
    Run ``program`` to completion.

    All matched rows are written or an error is raised; there is no partial
    result. On any failure the pending result is dropped and the output
    handle is closed. The handler's message for the error kind is logged and
    the error propagates. The query runs on ``connection`` itself, never on
    a duplicate, so it sees the same session state ``describe`` did.
    """
    start = perf_counter()
    state = _ExecutionState(connection, directories, host_system, encoding)
    try:
        for step in program.steps:
            _run_step(step, state)
    except Exception as exc:
        err = _classify(exc)
        _report(program, err)
        if err is exc:
            raise
        raise err from exc
    finally:
        state.release()

    output_path: Optional[Path] = state.writer.path if state.writer is not None else None
    execute_ms = int((perf_counter() - start) * 1000)
    logger.info(
        "exported %d row(s) in %d batch(es) to %s (%d ms)",
        state.rows_written,
        state.batches,
        output_path,
        execute_ms,
    )
    return ExportResult(
        status="ok",
        output_path=str(output_path) if output_path is not None else None,
        columns=[col.name for col in program.columns],
        rows_written=state.rows_written,
        batches=state.batches,
        line_terminator=state.eol,
        program_sha256=sha256_text(program.text),
        execute_ms=execute_ms,
    )
