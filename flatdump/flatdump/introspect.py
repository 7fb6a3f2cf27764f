"""
Result-shape introspection for an arbitrary query.

The query is parsed, checked to be a single query statement and bound
against the catalog; its columns and native types are read off the bound
relation. No rows are fetched and nothing is executed, so describing a
query is side-effect free.
"""
from __future__ import annotations

import logging
from typing import List

import duckdb

from .compiler import normalize_query
from .errors import DescribeError, QuerySyntaxError
from .ir import ColumnDescriptor
from .types import map_type

logger = logging.getLogger(__name__)


def _parse_single_query(connection: duckdb.DuckDBPyConnection, query: str) -> None:
    try:
        statements = connection.extract_statements(query)
    except duckdb.ParserException as exc:
        raise QuerySyntaxError("query could not be parsed", str(exc)) from exc
    if not statements:
        raise QuerySyntaxError("query could not be parsed", "no statement found")
    if len(statements) > 1:
        raise DescribeError(
            "query must be a single statement", f"found {len(statements)} statements"
        )
    if statements[0].type != duckdb.StatementType.SELECT:
        raise DescribeError(
            "query does not return a result set", f"statement type {statements[0].type}"
        )


def describe(connection: duckdb.DuckDBPyConnection, query: str) -> List[ColumnDescriptor]:
    text = normalize_query(query)
    _parse_single_query(connection, text)

    try:
        relation = connection.sql(text)
    except duckdb.ParserException as exc:
        raise QuerySyntaxError("query could not be parsed", str(exc)) from exc
    except duckdb.Error as exc:
        raise DescribeError("column metadata could not be derived", str(exc)) from exc
    if relation is None:
        raise DescribeError("query does not return a result set")

    names = list(relation.columns)
    native_types = [str(t) for t in relation.types]

    columns: List[ColumnDescriptor] = []
    seen: dict[str, int] = {}
    for position, (name, native) in enumerate(zip(names, native_types), start=1):
        if not name or not name.strip():
            raise DescribeError(
                "every select-list expression needs an alias",
                f"column {position} has no name",
            )
        key = name.casefold()
        if key in seen:
            raise DescribeError(
                "column names must be unique",
                f"'{name}' appears at positions {seen[key]} and {position}",
            )
        seen[key] = position
        columns.append(
            ColumnDescriptor(position=position, name=name, kind=map_type(native), native_type=native)
        )

    if not columns:
        raise DescribeError("query has no result columns")
    logger.debug(
        "described %d column(s): %s",
        len(columns),
        ", ".join(f"{c.name}:{c.native_type}" for c in columns),
    )
    return columns
