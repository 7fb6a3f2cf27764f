from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import duckdb

from . import __version__ as _engine_version
from .config import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_DELIMITER,
    DEFAULT_WRITE_MODE,
    ExportSpec,
    load_config,
    parse_directory_bindings,
)
from .datefmt import DEFAULT_DATE_FORMAT
from .errors import (
    ConfigError,
    DescribeError,
    FileIOError,
    FlatdumpError,
    InternalError,
    QuerySyntaxError,
    SpecError,
)
from .export import run_export
from .runtime import ExportResult

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_QUERY = 30
EXIT_SPEC = 31
EXIT_IO = 40
EXIT_INTERNAL = 50


def _exit_code_for(err: BaseException) -> int:
    if isinstance(err, ConfigError):
        return EXIT_USAGE
    if isinstance(err, (QuerySyntaxError, DescribeError)):
        return EXIT_QUERY
    if isinstance(err, SpecError):
        return EXIT_SPEC
    if isinstance(err, InternalError):
        return EXIT_INTERNAL
    if isinstance(err, FileIOError):
        return EXIT_IO
    return EXIT_INTERNAL


def _read_query(args: argparse.Namespace) -> str:
    if args.query and args.query_file:
        raise ConfigError("choose one: --query or --query-file")
    if args.query_file:
        path = Path(args.query_file)
        if not path.is_file():
            raise ConfigError(f"Query file not found: {path}")
        return path.read_text(encoding="utf-8")
    if args.query:
        return args.query
    raise ConfigError("a query is required: --query or --query-file")


def _connect(database: str) -> duckdb.DuckDBPyConnection:
    if database == ":memory:":
        return duckdb.connect(database)
    if not Path(database).exists():
        raise ConfigError(f"Database not found: {database}")
    return duckdb.connect(database, read_only=True)


def _print_result(result: ExportResult, as_json: bool) -> None:
    if as_json:
        print(json.dumps(result.to_dict(), indent=2, sort_keys=True))
    elif result.ok:
        print(f"ok: wrote {result.rows_written} rows to {result.output_path}")
    else:
        print(f"failed: {result.error}: {result.message}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flatdump",
        description="Export the result of a query to a delimited flat file",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {_engine_version}")
    parser.add_argument("--database", default=":memory:", help="DuckDB database file (opened read-only)")
    parser.add_argument("--query", default=None, help="Query text; every expression needs an alias")
    parser.add_argument("--query-file", default=None, help="Read the query text from this file")
    parser.add_argument("--file", required=True, dest="output_file", help="Output file name")
    parser.add_argument("--directory", required=True, help="Directory alias to write into")
    parser.add_argument(
        "--map",
        action="append",
        default=[],
        metavar="ALIAS=PATH",
        help="Directory alias binding (repeatable; overrides FLATDUMP_DIRECTORIES)",
    )
    parser.add_argument("--date-format", default=DEFAULT_DATE_FORMAT)
    parser.add_argument("--mode", default=DEFAULT_WRITE_MODE, help="overwrite or append")
    parser.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE)
    parser.add_argument("--delimiter", default=DEFAULT_DELIMITER)
    parser.add_argument("--debug", action="store_true", default=False, help="Also write <file>.sql with the export program")
    parser.add_argument("--json", action="store_true", default=False, help="Print the result as JSON")
    parser.add_argument("--log-level", default=None, help="Logging level (default: FLATDUMP_LOG_LEVEL or WARNING)")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config()
    except ConfigError as exc:
        print(f"failed: {exc}")
        return EXIT_USAGE

    logging.basicConfig(
        level=(args.log_level or config.log_level).upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    connection = None
    try:
        for item in args.map:
            for alias, path in parse_directory_bindings(item).items():
                config.directories.register(alias, path)
        query = _read_query(args)
        spec = ExportSpec.build(
            query=query,
            output_file=args.output_file,
            directory=args.directory,
            date_format=args.date_format,
            write_mode=args.mode,
            batch_size=args.batch_size,
            delimiter=args.delimiter,
            debug=args.debug,
        )
        connection = _connect(args.database)
        result = run_export(
            connection,
            spec,
            directories=config.directories,
            encoding=config.encoding,
        )
    except FlatdumpError as err:
        _print_result(ExportResult.failure(err), args.json)
        return _exit_code_for(err)
    except duckdb.Error as err:
        _print_result(ExportResult.failure(err), args.json)
        return EXIT_USAGE
    finally:
        if connection is not None:
            connection.close()

    _print_result(result, args.json)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
