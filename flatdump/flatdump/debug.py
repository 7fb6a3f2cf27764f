"""Side artifact holding the rendered program, written before any row is fetched."""
from __future__ import annotations

import logging
from pathlib import Path

from .errors import FileIOError
from .ir import SynthesizedProgram
from .writer import DirectoryRegistry, OutputWriter, WriteMode

logger = logging.getLogger(__name__)

DEBUG_SUFFIX = ".sql"


def debug_file_name(output_file: str) -> str:
    return f"{output_file}{DEBUG_SUFFIX}"


def materialize_debug(
    program: SynthesizedProgram,
    directories: DirectoryRegistry,
    encoding: str = "utf-8",
) -> Path:
    """
    Write ``program.text`` next to the export's output file.

    Always overwrites, whatever the export's own write mode is. The text is
    written verbatim, so the artifact is byte-identical to ``program.text``
    on every host.
    """
    spec = program.spec
    try:
        with OutputWriter.open(
            directories,
            spec.directory,
            debug_file_name(spec.output_file),
            WriteMode.OVERWRITE,
            encoding=encoding,
        ) as writer:
            writer.write_field(program.text)
    except FileIOError as err:
        handler = program.handler_for(type(err).__name__)
        logger.error(handler.message if handler is not None else err.summary)
        raise
    logger.debug("wrote program text to %s", writer.path)
    return writer.path
