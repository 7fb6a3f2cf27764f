__version__ = "0.1.0"

from .config import ExportSpec, FlatdumpConfig, load_config
from .errors import (
    DescribeError,
    FileIOError,
    FlatdumpError,
    HandleError,
    InternalError,
    ModeError,
    OperationError,
    PathError,
    QuerySyntaxError,
    ReadError,
    SpecError,
    WriteError,
)
from .export import export, run_export
from .runtime import ExportResult
from .writer import DirectoryRegistry, WriteMode

__all__ = [
    "__version__",
    "export",
    "run_export",
    "ExportSpec",
    "ExportResult",
    "FlatdumpConfig",
    "load_config",
    "DirectoryRegistry",
    "WriteMode",
    "FlatdumpError",
    "SpecError",
    "QuerySyntaxError",
    "DescribeError",
    "FileIOError",
    "PathError",
    "ModeError",
    "OperationError",
    "HandleError",
    "WriteError",
    "ReadError",
    "InternalError",
]
