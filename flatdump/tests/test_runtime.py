import logging

import pytest

from flatdump.compiler import synthesize
from flatdump.config import ExportSpec
from flatdump.errors import InternalError, PathError, ReadError
from flatdump.introspect import describe
from flatdump.runtime import BatchBuffer, ExportResult, execute
from flatdump.types import Kind
from flatdump.writer import DirectoryRegistry


LINUX = lambda: "Linux"  # noqa: E731
WINDOWS = lambda: "Windows"  # noqa: E731


def _program(con, query, **overrides):
    params = {"query": query, "output_file": "out.txt", "directory": "DATA_DIR"}
    params.update(overrides)
    spec = ExportSpec.build(**params)
    return synthesize(spec, describe(con, spec.query))


def test_exports_rows_in_query_order(con, directories, out_dir):
    program = _program(
        con,
        "SELECT id AS ID, name AS NAME, salary AS SALARY, hired AS HIRED FROM emp ORDER BY id",
        date_format="YYYY-MM-DD",
    )
    result = execute(program, con, directories, host_system=LINUX)

    assert result.ok
    assert result.rows_written == 3
    assert result.columns == ["ID", "NAME", "SALARY", "HIRED"]
    assert result.output_path == str(out_dir / "out.txt")
    assert (out_dir / "out.txt").read_text() == (
        "1,Ann,1200.5,2024-01-05\n"
        "2,Bob,980,2023-11-30\n"
        "3,Cy,,\n"
    )


def test_default_date_format_includes_time(con, directories, out_dir):
    program = _program(con, "SELECT updated AS UPDATED FROM emp WHERE id = 1")
    execute(program, con, directories, host_system=LINUX)
    assert (out_dir / "out.txt").read_text() == "05-JAN-2024 13:45:10\n"


def test_custom_delimiter(con, directories, out_dir):
    program = _program(con, "SELECT id AS ID, name AS NAME FROM emp ORDER BY id", delimiter="|")
    execute(program, con, directories, host_system=LINUX)
    assert (out_dir / "out.txt").read_text().splitlines() == ["1|Ann", "2|Bob", "3|Cy"]


@pytest.mark.parametrize("batch_size,batches", [(1, 25), (10, 3), (24, 2), (25, 1), (1000, 1)])
def test_batches(con, directories, out_dir, batch_size, batches):
    program = _program(con, "SELECT n AS N FROM nums ORDER BY n", batch_size=batch_size)
    result = execute(program, con, directories, host_system=LINUX)

    assert result.batches == batches
    assert result.rows_written == 25
    assert (out_dir / "out.txt").read_text().splitlines() == [str(i) for i in range(25)]


def test_zero_rows_leaves_empty_file(con, directories, out_dir):
    program = _program(con, "SELECT id AS ID, label AS LABEL FROM empty_t")
    result = execute(program, con, directories, host_system=LINUX)

    assert result.rows_written == 0
    assert result.batches == 0
    assert (out_dir / "out.txt").exists()
    assert (out_dir / "out.txt").read_bytes() == b""


def test_line_terminator_is_probed_at_execution(con, directories, out_dir):
    program = _program(con, "SELECT n AS N FROM nums WHERE n < 3 ORDER BY n")

    result = execute(program, con, directories, host_system=WINDOWS)
    assert result.line_terminator == "\r\n"
    assert (out_dir / "out.txt").read_bytes() == b"0\r\n1\r\n2\r\n"

    result = execute(program, con, directories, host_system=LINUX)
    assert result.line_terminator == "\n"
    assert (out_dir / "out.txt").read_bytes() == b"0\n1\n2\n"


def test_append_mode(con, directories, out_dir):
    (out_dir / "out.txt").write_bytes(b"header\n")
    program = _program(con, "SELECT n AS N FROM nums WHERE n < 2 ORDER BY n", write_mode="append")
    execute(program, con, directories, host_system=LINUX)
    assert (out_dir / "out.txt").read_bytes() == b"header\n0\n1\n"


def test_program_hash_is_reported(con, directories):
    program = _program(con, "SELECT n AS N FROM nums")
    result = execute(program, con, directories, host_system=LINUX)
    assert result.program_sha256 is not None
    assert len(result.program_sha256) == 64
    assert result.execute_ms is not None and result.execute_ms >= 0


def test_reads_temp_tables_of_the_calling_session(con, directories, out_dir):
    con.execute("CREATE TEMP TABLE scratch AS SELECT 1 AS id UNION ALL SELECT 2")
    program = _program(con, "SELECT id AS ID FROM scratch ORDER BY id")
    result = execute(program, con, directories, host_system=LINUX)

    assert result.rows_written == 2
    assert (out_dir / "out.txt").read_text() == "1\n2\n"


def test_sees_uncommitted_rows_of_an_open_transaction(con, directories, out_dir):
    con.execute("CREATE TABLE pending (id INTEGER)")
    con.execute("BEGIN TRANSACTION")
    con.execute("INSERT INTO pending VALUES (7)")
    try:
        program = _program(con, "SELECT id AS ID FROM pending")
        result = execute(program, con, directories, host_system=LINUX)
    finally:
        con.execute("ROLLBACK")

    assert result.rows_written == 1
    assert (out_dir / "out.txt").read_text() == "7\n"


def test_session_settings_apply_to_the_export(con, directories, out_dir):
    con.execute("SET TimeZone = 'UTC'")
    program = _program(
        con,
        "SELECT TIMESTAMPTZ '2024-01-05 10:00:00+00' AS T",
        date_format="YYYY-MM-DD HH24:MI:SS",
    )
    execute(program, con, directories, host_system=LINUX)

    assert program.columns[0].kind == Kind.DATE
    assert (out_dir / "out.txt").read_text() == "2024-01-05 10:00:00\n"


def test_connection_stays_open_after_export(con, directories):
    program = _program(con, "SELECT n AS N FROM nums")
    execute(program, con, directories, host_system=LINUX)
    assert con.execute("SELECT count(*) FROM nums").fetchone()[0] == 25


def test_unknown_alias_is_path_error(con, tmp_path, caplog):
    program = _program(con, "SELECT n AS N FROM nums", directory="NOWHERE")
    registry = DirectoryRegistry({"DATA_DIR": tmp_path})

    with caplog.at_level(logging.ERROR, logger="flatdump.runtime"):
        with pytest.raises(PathError):
            execute(program, con, registry, host_system=LINUX)

    assert "Error - invalid path." in caplog.messages
    assert list(tmp_path.iterdir()) == []


def test_fetch_failure_is_read_error(con, directories, out_dir, caplog):
    con.execute("CREATE TABLE bad AS SELECT 'abc' AS s")
    program = _program(con, "SELECT CAST(s AS INTEGER) AS N FROM bad")

    with caplog.at_level(logging.ERROR, logger="flatdump.runtime"):
        with pytest.raises(ReadError):
            execute(program, con, directories, host_system=LINUX)

    assert "Error - read error." in caplog.messages
    # The output was opened before the cursor; it is closed, not left dangling.
    assert (out_dir / "out.txt").exists()


def test_unexpected_failure_is_internal_error(con, directories, caplog):
    program = _program(con, "SELECT n AS N FROM nums")

    def broken_host():
        raise RuntimeError("probe failed")

    with caplog.at_level(logging.ERROR, logger="flatdump.runtime"):
        with pytest.raises(InternalError) as exc_info:
            execute(program, con, directories, host_system=broken_host)

    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert "Error - internal error." in caplog.messages


def test_batch_buffer_keeps_columns_in_step():
    buffer = BatchBuffer(["A", "B"])
    buffer.load([(1, "x"), (2, "y")])
    assert buffer.size == 2
    assert buffer.value("A", 1) == 2
    assert buffer.value("B", 0) == "x"

    buffer.load([(3, "z")])
    assert buffer.size == 1
    assert buffer.columns == {"A": [3], "B": ["z"]}


def test_batch_buffer_rejects_ragged_rows():
    buffer = BatchBuffer(["A", "B"])
    with pytest.raises(InternalError):
        buffer.load([(1,)])


def test_export_result_failure():
    result = ExportResult.failure(PathError(detail="unknown directory alias 'X'"))
    assert not result.ok
    assert result.error == "PathError"
    assert result.to_dict()["status"] == "failed"
