"""
Pipeline -> text printer.
Deterministic, byte-stable output; one statement per line; independent of host and data.
"""
from __future__ import annotations

from typing import List, Sequence

from .ir import (
    CloseCursor,
    CloseOutput,
    DeclareBuffer,
    ErrorHandler,
    FetchLoop,
    OpenCursor,
    OpenOutput,
    ResolveLineEnd,
    SetDateFormat,
    Step,
    WriteField,
    WriteLineEnd,
)
from .types import Kind

INDENT = "  "


def quote_literal(text: str) -> str:
    """Single-quoted literal; non-printable characters become chr(N) and are concatenated."""
    pieces: List[str] = []
    run: List[str] = []
    for ch in text:
        if ch.isprintable():
            run.append(ch)
            continue
        if run:
            pieces.append("'" + "".join(run).replace("'", "''") + "'")
            run = []
        pieces.append(f"chr({ord(ch)})")
    if run or not pieces:
        pieces.append("'" + "".join(run).replace("'", "''") + "'")
    return " || ".join(pieces)


def quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _value_expr(step: WriteField) -> str:
    ref = f"{quote_ident(step.column.name)}[i]"
    if step.column.kind == Kind.DATE:
        return f"to_text({ref}, date_format)"
    return f"to_text({ref})"


def _render_step(step: Step, depth: int, lines: List[str]) -> None:
    pad = INDENT * depth
    if isinstance(step, ResolveLineEnd):
        lines.append(f"{pad}eol := host_line_terminator()")
    elif isinstance(step, SetDateFormat):
        lines.append(f"{pad}set date_format = {quote_literal(step.date_format)}")
    elif isinstance(step, OpenOutput):
        lines.append(
            f"{pad}out := open_output(directory => {quote_literal(step.directory)}, "
            f"file => {quote_literal(step.file_name)}, mode => {quote_literal(step.write_mode)})"
        )
    elif isinstance(step, OpenCursor):
        lines.append(f"{pad}cursor := open_cursor(")
        for query_line in step.query.splitlines():
            lines.append(f"{pad}{INDENT}{query_line}".rstrip())
        lines.append(f"{pad})")
    elif isinstance(step, FetchLoop):
        fetch = step.fetch
        targets = ", ".join(quote_ident(name) for name in fetch.columns)
        lines.append(f"{pad}loop")
        lines.append(f"{pad}{INDENT}fetch cursor into {targets} limit {fetch.limit}")
        lines.append(f"{pad}{INDENT}exit when no_data")
        lines.append(f"{pad}{INDENT}for i in 1 .. batch_rows loop")
        for inner in step.body:
            _render_step(inner, depth + 2, lines)
        lines.append(f"{pad}{INDENT}end loop")
        lines.append(f"{pad}end loop")
    elif isinstance(step, WriteField):
        lines.append(f"{pad}put(out, {quote_literal(step.prefix)} || {_value_expr(step)})")
    elif isinstance(step, WriteLineEnd):
        lines.append(f"{pad}new_line(out, eol)")
    elif isinstance(step, CloseCursor):
        lines.append(f"{pad}close(cursor)")
    elif isinstance(step, CloseOutput):
        lines.append(f"{pad}close(out)")
    else:
        raise ValueError(f"cannot render step kind '{step.kind}'")


def render_program(steps: Sequence[Step], handlers: Sequence[ErrorHandler]) -> str:
    lines: List[str] = ["declare"]
    body = []
    for step in steps:
        if isinstance(step, DeclareBuffer):
            col = step.column
            lines.append(f"{INDENT}{quote_ident(col.name)} {col.kind.value}[]")
        else:
            body.append(step)
    lines.append("begin")
    for step in body:
        _render_step(step, 1, lines)
    if handlers:
        lines.append("exception")
        for handler in handlers:
            lines.append(f"{INDENT}when {handler.error} then")
            lines.append(f"{INDENT}{INDENT}log({quote_literal(handler.message)})")
            lines.append(f"{INDENT}{INDENT}raise")
    lines.append("end")
    return "\n".join(lines) + "\n"
