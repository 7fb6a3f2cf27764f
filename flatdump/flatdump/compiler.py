from __future__ import annotations

from typing import List, Sequence, Tuple

from .config import ExportSpec
from .errors import IO_ERRORS, DescribeError
from .ir import (
    CloseCursor,
    CloseOutput,
    ColumnDescriptor,
    DeclareBuffer,
    ErrorHandler,
    FetchBatch,
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
from .printer import render_program


def normalize_query(query: str) -> str:
    """Strip surrounding whitespace and trailing statement terminators."""
    text = query.strip()
    while text.endswith(";"):
        text = text[:-1].rstrip()
    return text


def _row_body(columns: Sequence[ColumnDescriptor], delimiter: str) -> Tuple[Step, ...]:
    body: List[Step] = []
    prefix = ""
    for col in columns:
        body.append(WriteField(column=col, prefix=prefix))
        prefix = delimiter
    body.append(WriteLineEnd())
    return tuple(body)


def build_handlers() -> Tuple[ErrorHandler, ...]:
    return tuple(ErrorHandler(error=cls.__name__, message=cls.summary) for cls in IO_ERRORS)


def synthesize(spec: ExportSpec, columns: Sequence[ColumnDescriptor]) -> SynthesizedProgram:
    """
    Build the export pipeline for ``spec`` over ``columns``.

    Pure: the same spec and column list always give an equal program with a
    byte-identical ``text``. The line terminator is not decided here; the
    pipeline carries a ResolveLineEnd step that the executor runs on the
    exporting host.
    """
    cols = tuple(sorted(columns, key=lambda c: c.position))
    if not cols:
        raise DescribeError("query has no result columns")

    steps: List[Step] = [DeclareBuffer(column=col) for col in cols]
    steps.append(ResolveLineEnd())
    steps.append(SetDateFormat(date_format=spec.date_format))
    steps.append(
        OpenOutput(
            directory=spec.directory,
            file_name=spec.output_file,
            write_mode=spec.write_mode,
        )
    )
    steps.append(OpenCursor(query=normalize_query(spec.query)))
    steps.append(
        FetchLoop(
            fetch=FetchBatch(columns=tuple(col.name for col in cols), limit=spec.batch_size),
            body=_row_body(cols, spec.delimiter),
        )
    )
    steps.append(CloseCursor())
    steps.append(CloseOutput())

    handlers = build_handlers()
    return SynthesizedProgram(
        spec=spec,
        columns=cols,
        steps=tuple(steps),
        handlers=handlers,
        text=render_program(steps, handlers),
    )
