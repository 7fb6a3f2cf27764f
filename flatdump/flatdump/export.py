from __future__ import annotations

import logging
import platform
from typing import Callable, Optional

import duckdb

from .compiler import synthesize
from .config import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_DELIMITER,
    DEFAULT_WRITE_MODE,
    ExportSpec,
    load_config,
)
from .datefmt import DEFAULT_DATE_FORMAT
from .debug import materialize_debug
from .introspect import describe
from .runtime import ExportResult, execute
from .writer import DirectoryRegistry

logger = logging.getLogger(__name__)


def run_export(
    connection: duckdb.DuckDBPyConnection,
    spec: ExportSpec,
    directories: Optional[DirectoryRegistry] = None,
    host_system: Optional[Callable[[], str]] = None,
    encoding: Optional[str] = None,
) -> ExportResult:
    """Describe, synthesize, optionally materialize the debug text, then execute."""
    if directories is None or encoding is None:
        config = load_config()
        directories = config.directories if directories is None else directories
        encoding = config.encoding if encoding is None else encoding

    logger.info("export to %s:%s (%s)", spec.directory, spec.output_file, spec.write_mode)
    columns = describe(connection, spec.query)
    program = synthesize(spec, columns)
    logger.debug("program:\n%s", program.text)

    debug_path = None
    if spec.debug:
        debug_path = materialize_debug(program, directories, encoding=encoding)

    result = execute(
        program,
        connection,
        directories,
        host_system=host_system or platform.system,
        encoding=encoding,
    )
    if debug_path is not None:
        result.debug_path = str(debug_path)
    return result


def export(
    connection: duckdb.DuckDBPyConnection,
    query: str,
    output_file: str,
    directory: str,
    date_format: str = DEFAULT_DATE_FORMAT,
    write_mode: str = DEFAULT_WRITE_MODE,
    batch_size: int = DEFAULT_BATCH_SIZE,
    delimiter: Optional[str] = DEFAULT_DELIMITER,
    debug: bool = False,
    *,
    directories: Optional[DirectoryRegistry] = None,
    host_system: Optional[Callable[[], str]] = None,
    encoding: Optional[str] = None,
) -> ExportResult:
    """
    Export the result of ``query`` to ``directory``/``output_file``.

    One line per row, columns joined by ``delimiter``, values written
    verbatim (no quoting or escaping). Either every row is written or an
    error is raised:

        SpecError         invalid arguments
        QuerySyntaxError  the query does not parse
        DescribeError     the result columns cannot be derived
        PathError, ModeError, OperationError, HandleError,
        WriteError, ReadError, InternalError
                          file or fetch failures
    """
    spec = ExportSpec.build(
        query=query,
        output_file=output_file,
        directory=directory,
        date_format=date_format,
        write_mode=write_mode,
        batch_size=batch_size,
        delimiter=delimiter,
        debug=debug,
    )
    return run_export(
        connection,
        spec,
        directories=directories,
        host_system=host_system,
        encoding=encoding,
    )
