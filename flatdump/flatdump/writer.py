"""
Output files addressed through directory aliases.

An alias is a named reference to a directory (``DATA_DIR`` -> ``/srv/exports``).
Callers never pass raw paths to an export; they name an alias and a bare
file name, and the writer refuses anything that would step outside the
aliased directory.
"""
from __future__ import annotations

from enum import Enum
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional, TextIO

from .errors import (
    FileIOError,
    HandleError,
    InternalError,
    ModeError,
    OperationError,
    PathError,
    WriteError,
)

logger = logging.getLogger(__name__)


class WriteMode(Enum):
    OVERWRITE = "overwrite"
    APPEND = "append"

    @property
    def open_flag(self) -> str:
        return "w" if self is WriteMode.OVERWRITE else "a"

    @classmethod
    def parse(cls, value: "WriteMode | str | None") -> "WriteMode":
        if isinstance(value, WriteMode):
            return value
        key = (value or "").strip().lower()
        if key in ("overwrite", "w"):
            return cls.OVERWRITE
        if key in ("append", "a"):
            return cls.APPEND
        raise ModeError(detail=f"unsupported write mode {value!r}")


class DirectoryRegistry:
    """Alias -> directory mapping. Aliases are case-insensitive (stored upper-case)."""

    def __init__(self, bindings: Optional[Mapping[str, "str | Path"]] = None) -> None:
        self._dirs: Dict[str, Path] = {}
        for alias, path in (bindings or {}).items():
            self.register(alias, path)

    def register(self, alias: str, path: "str | Path") -> None:
        self._dirs[alias.strip().upper()] = Path(path).expanduser()

    def aliases(self) -> list[str]:
        return sorted(self._dirs)

    def __contains__(self, alias: object) -> bool:
        return isinstance(alias, str) and alias.strip().upper() in self._dirs

    def resolve(self, alias: str) -> Path:
        key = (alias or "").strip().upper()
        if key not in self._dirs:
            raise PathError(detail=f"unknown directory alias {alias!r}")
        path = self._dirs[key]
        if not path.is_dir():
            raise PathError(detail=f"directory for alias {key} does not exist: {path}")
        return path


def _check_file_name(file_name: str) -> None:
    if not file_name or file_name in (".", ".."):
        raise PathError(detail=f"invalid file name {file_name!r}")
    if "/" in file_name or "\\" in file_name or "\x00" in file_name:
        raise PathError(detail=f"file name must not contain a path: {file_name!r}")


class OutputWriter:
    """
    Exclusively-owned handle on one output file.

    Use ``OutputWriter.open`` to acquire it. The handle is closed by ``close``
    on the success path and by ``abort`` on error paths; both are safe to
    call more than once.
    """

    def __init__(self, path: Path, mode: WriteMode, fh: TextIO) -> None:
        self.path = path
        self.mode = mode
        self._fh: Optional[TextIO] = fh
        self.lines_written = 0

    @classmethod
    def open(
        cls,
        directories: DirectoryRegistry,
        alias: str,
        file_name: str,
        mode: "WriteMode | str",
        encoding: str = "utf-8",
    ) -> "OutputWriter":
        write_mode = WriteMode.parse(mode)
        directory = directories.resolve(alias)
        _check_file_name(file_name)
        path = directory / file_name
        try:
            # newline="" so that the caller's line terminator is written untranslated.
            fh = path.open(write_mode.open_flag, encoding=encoding, newline="")
        except (FileNotFoundError, NotADirectoryError) as exc:
            raise PathError(detail=f"{path}: {exc}") from exc
        except (PermissionError, IsADirectoryError) as exc:
            raise OperationError(detail=f"{path}: {exc}") from exc
        except LookupError as exc:
            # Unknown encoding.
            raise InternalError(detail=str(exc)) from exc
        except OSError as exc:
            raise InternalError(detail=f"{path}: {exc}") from exc
        logger.debug("opened %s (%s)", path, write_mode.value)
        return cls(path, write_mode, fh)

    @property
    def closed(self) -> bool:
        return self._fh is None

    def _handle(self) -> TextIO:
        if self._fh is None:
            raise HandleError(detail=f"{self.path} is not open")
        return self._fh

    def write_field(self, text: str) -> None:
        fh = self._handle()
        try:
            fh.write(text)
        except (OSError, UnicodeError) as exc:
            raise WriteError(detail=f"{self.path}: {exc}") from exc

    def write_line_end(self, terminator: str) -> None:
        fh = self._handle()
        try:
            fh.write(terminator)
        except OSError as exc:
            raise WriteError(detail=f"{self.path}: {exc}") from exc
        self.lines_written += 1

    def close(self) -> None:
        if self._fh is None:
            return
        fh, self._fh = self._fh, None
        try:
            fh.close()
        except OSError as exc:
            raise WriteError(detail=f"{self.path}: {exc}") from exc

    def abort(self) -> None:
        """Close on an error path. A failure here must not mask the original error."""
        try:
            self.close()
        except FileIOError as exc:
            logger.debug("ignoring close failure on %s: %s", self.path, exc)

    def __enter__(self) -> "OutputWriter":
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self.abort()
        else:
            self.close()
        return False
