import hashlib
from datetime import date, timedelta

import duckdb
import pytest

from flatdump import DirectoryRegistry, export


ROWS = 37


@pytest.fixture
def conn():
    con = duckdb.connect()
    con.execute(
        "CREATE TABLE orders AS "
        "SELECT range AS id, "
        "'cust' || CAST(range % 5 AS VARCHAR) AS customer, "
        "CAST(range * 1.25 AS DECIMAL(12,2)) AS amount, "
        "DATE '2024-01-01' + CAST(range AS INTEGER) AS placed "
        f"FROM range({ROWS})"
    )
    yield con
    con.close()


@pytest.fixture
def registry(tmp_path):
    return DirectoryRegistry({"EXPORT_DIR": tmp_path})


QUERY = "SELECT id AS ID, customer AS CUSTOMER, amount AS AMOUNT, placed AS PLACED FROM orders ORDER BY id"


def _sha256_file(path):
    return hashlib.sha256(path.read_bytes()).hexdigest()


def _export(conn, registry, **kwargs):
    params = {
        "query": QUERY,
        "output_file": "orders.csv",
        "directory": "EXPORT_DIR",
        "directories": registry,
        "host_system": lambda: "Linux",
    }
    params.update(kwargs)
    return export(conn, **params)


def test_one_line_per_row_with_fixed_field_count(conn, registry, tmp_path):
    result = _export(conn, registry, delimiter=";")
    lines = (tmp_path / "orders.csv").read_text().split("\n")

    assert lines[-1] == ""
    lines = lines[:-1]
    assert len(lines) == ROWS == result.rows_written
    assert all(line.count(";") == 3 for line in lines)


def test_date_column_follows_format(conn, registry, tmp_path):
    _export(conn, registry, date_format="YYYY-MM-DD")
    lines = (tmp_path / "orders.csv").read_text().splitlines()

    for i, line in enumerate(lines):
        assert line.split(",")[3] == (date(2024, 1, 1) + timedelta(days=i)).isoformat()
    assert lines[4] == "4,cust4,5,2024-01-05"


def test_overwrite_is_idempotent(conn, registry, tmp_path):
    _export(conn, registry)
    first = _sha256_file(tmp_path / "orders.csv")
    _export(conn, registry)
    assert _sha256_file(tmp_path / "orders.csv") == first


def test_append_extends_existing_file(conn, registry, tmp_path):
    _export(conn, registry)
    original = (tmp_path / "orders.csv").read_bytes()
    _export(conn, registry, write_mode="append")
    combined = (tmp_path / "orders.csv").read_bytes()

    assert len(combined) == 2 * len(original)
    assert combined.startswith(original)


def test_debug_text_does_not_depend_on_data(conn, registry, tmp_path):
    _export(conn, registry, debug=True)
    first = (tmp_path / "orders.csv.sql").read_bytes()

    conn.execute("DELETE FROM orders WHERE id % 2 = 0")
    _export(conn, registry, debug=True)
    assert (tmp_path / "orders.csv.sql").read_bytes() == first


def test_zero_matching_rows(conn, registry, tmp_path):
    result = _export(conn, registry, query=QUERY.replace("ORDER BY", "WHERE id < 0 ORDER BY"))
    assert result.rows_written == 0
    assert (tmp_path / "orders.csv").read_bytes() == b""


@pytest.mark.parametrize("batch_size", [ROWS, ROWS + 1, 10_000])
def test_large_batch_completes_in_one_fetch(conn, registry, batch_size):
    result = _export(conn, registry, batch_size=batch_size)
    assert result.batches == 1
    assert result.rows_written == ROWS


def test_batch_size_does_not_change_output(conn, registry, tmp_path):
    _export(conn, registry, batch_size=1)
    small = _sha256_file(tmp_path / "orders.csv")
    _export(conn, registry, batch_size=1000)
    assert _sha256_file(tmp_path / "orders.csv") == small


def test_windows_host_writes_crlf(conn, registry, tmp_path):
    _export(conn, registry, host_system=lambda: "Windows")
    data = (tmp_path / "orders.csv").read_bytes()
    assert data.count(b"\r\n") == ROWS
    assert data.count(b"\n") == ROWS
