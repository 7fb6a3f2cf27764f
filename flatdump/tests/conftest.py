from __future__ import annotations

import duckdb
import pytest

from flatdump.writer import DirectoryRegistry


EMP_ROWS = [
    (1, "Ann", "1200.50", "2024-01-05", "2024-01-05 13:45:10"),
    (2, "Bob", "980.00", "2023-11-30", "2023-12-01 08:00:00"),
    (3, "Cy", None, None, None),
]


@pytest.fixture
def con():
    conn = duckdb.connect()
    conn.execute(
        "CREATE TABLE emp (id INTEGER, name VARCHAR, salary DECIMAL(10,2), hired DATE, updated TIMESTAMP)"
    )
    conn.executemany(
        "INSERT INTO emp VALUES (?, ?, CAST(? AS DECIMAL(10,2)), CAST(? AS DATE), CAST(? AS TIMESTAMP))",
        EMP_ROWS,
    )
    conn.execute("CREATE TABLE nums AS SELECT range AS n FROM range(25)")
    conn.execute("CREATE TABLE empty_t (id INTEGER, label VARCHAR)")
    yield conn
    conn.close()


@pytest.fixture
def out_dir(tmp_path):
    path = tmp_path / "out"
    path.mkdir()
    return path


@pytest.fixture
def directories(out_dir):
    return DirectoryRegistry({"DATA_DIR": out_dir})
