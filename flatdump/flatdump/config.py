"""
Configuration for flatdump.

Two layers live here:

    ExportSpec      - one export call, validated with pydantic and frozen
    FlatdumpConfig  - process-level settings (directory aliases, encoding,
                      log level) loaded from the environment
"""
from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .datefmt import DEFAULT_DATE_FORMAT, compile_date_format
from .errors import ConfigError, SpecError
from .writer import DirectoryRegistry

DEFAULT_BATCH_SIZE = 1000
DEFAULT_DELIMITER = ","
DEFAULT_WRITE_MODE = "overwrite"
DEFAULT_ENCODING = "utf-8"
DEFAULT_LOG_LEVEL = "WARNING"


class ExportSpec(BaseModel):
    """Everything one export call needs. Supplied by the caller, never mutated."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    query: str
    output_file: str
    directory: str
    # Caller-trusted: compiled into a renderer, copied verbatim into the debug text.
    date_format: str = DEFAULT_DATE_FORMAT
    # Parsed by the writer so that a bad mode is reported as ModeError.
    write_mode: str = DEFAULT_WRITE_MODE
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, gt=0)
    delimiter: str = DEFAULT_DELIMITER
    debug: bool = False

    @field_validator("query")
    @classmethod
    def validate_query(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("query must be non-empty")
        return value

    @field_validator("output_file", "directory")
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must be non-empty")
        return value

    @field_validator("date_format")
    @classmethod
    def validate_date_format(cls, value: str) -> str:
        compile_date_format(value)
        return value

    @field_validator("delimiter", mode="before")
    @classmethod
    def validate_delimiter(cls, value: Any) -> Any:
        if value is None:
            return DEFAULT_DELIMITER
        if isinstance(value, str) and len(value) != 1:
            raise ValueError("delimiter must be exactly one character")
        return value

    @classmethod
    def build(cls, **kwargs: Any) -> "ExportSpec":
        try:
            return cls(**kwargs)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'spec'}: {err['msg']}"
                for err in exc.errors()
            )
            raise SpecError("invalid export specification", problems) from exc


# -----------------------------------------------------------------------------
# Process configuration
# -----------------------------------------------------------------------------

def parse_directory_bindings(text: Optional[str]) -> Dict[str, str]:
    """Parse ``ALIAS=PATH,ALIAS2=PATH2`` into a dict keyed by upper-cased alias."""
    bindings: Dict[str, str] = {}
    if not text:
        return bindings
    for item in text.split(","):
        if not item.strip():
            continue
        if "=" not in item:
            raise ConfigError(f"Invalid directory binding '{item.strip()}'")
        name, path = item.split("=", 1)
        name = name.strip().upper()
        path = path.strip()
        if not name or not path:
            raise ConfigError(f"Invalid directory binding '{item.strip()}'")
        if name in bindings:
            raise ConfigError(f"Duplicate directory binding for '{name}'")
        bindings[name] = path
    return bindings


@dataclass
class FlatdumpConfig:
    """
    Process-level settings.

    Attributes
    ----------
    directories:
        Alias -> directory registry used to resolve output locations.
    encoding:
        Text encoding of written files.
    log_level:
        Level name the command-line front end configures logging with.
    """

    directories: DirectoryRegistry = field(default_factory=DirectoryRegistry)
    encoding: str = DEFAULT_ENCODING
    log_level: str = DEFAULT_LOG_LEVEL


def load_config(environ: Optional[Mapping[str, str]] = None) -> FlatdumpConfig:
    """
    Load FlatdumpConfig from environment variables, falling back to defaults.

    Recognized variables:
        FLATDUMP_DIRECTORIES   (ALIAS=PATH[,ALIAS=PATH...])
        FLATDUMP_ENCODING      (default utf-8)
        FLATDUMP_LOG_LEVEL     (default WARNING)
    """
    env = os.environ if environ is None else environ
    bindings = parse_directory_bindings(env.get("FLATDUMP_DIRECTORIES"))
    return FlatdumpConfig(
        directories=DirectoryRegistry(bindings),
        encoding=env.get("FLATDUMP_ENCODING", DEFAULT_ENCODING),
        log_level=env.get("FLATDUMP_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
    )
