"""Unit tests for table handle mutation and lookup."""

from __future__ import annotations

from dataclasses import replace
import threading

import pytest

from core.config import ClusterConfig
from core.errors import DeadlineExceededError, MutationError, ReadError, UseAfterCloseError
from core.types import Column, NotFound, RowMutation, RowResult, TableDescriptor
from store.connection import Connection, open_connection
from store.memory_backend import InMemoryStoreBackend
from store.table_admin import ensure_table
from store.table_handle import get, put


def _connection(backend: InMemoryStoreBackend | None = None) -> Connection:
    config = replace(ClusterConfig.from_env(), backend="memory", quorum=("localhost",))
    connection = open_connection(config, backend=backend or InMemoryStoreBackend())
    ensure_table(connection, TableDescriptor.with_families("T", ["F", "G"], max_versions=3))
    return connection


def test_put_then_get_returns_written_bytes() -> None:
    """A written cell should read back byte for byte."""
    with _connection().table("T") as table:
        table.put(RowMutation(b"r1").add("F", b"q", b"\x00\xffpayload"))

        result = table.get(b"r1", ["F:q"])

    assert isinstance(result, RowResult) and result.value("F", b"q") == b"\x00\xffpayload"


def test_second_put_overwrites_value() -> None:
    """Writing the same cell twice should return the newer value."""
    with _connection().table("T") as table:
        put(table, RowMutation("r1").add("F", "q", "v1"))
        first = get(table, "r1", ["F:q"]).text("F", "q")
        put(table, RowMutation("r1").add("F", "q", "v2"))
        second = get(table, "r1", ["F:q"]).text("F", "q")

    assert (first, second) == ("v1", "v2")


def test_put_applies_every_cell_of_the_row() -> None:
    """All cells in one mutation should land together."""
    mutation = RowMutation("r1").add("F", "a", "1").add("G", "b", "2")

    with _connection().table("T") as table:
        table.put(mutation)
        result = table.get("r1")

    assert result.cells == {("F", b"a"): b"1", ("G", b"b"): b"2"}


def test_get_unknown_row_returns_not_found() -> None:
    """A never-written row should produce NotFound, not an error."""
    with _connection().table("T") as table:
        result = table.get("missing")

    assert result == NotFound(row_key=b"missing")


def test_get_unwritten_column_of_existing_row_returns_no_value() -> None:
    """A missing column of an existing row should read as no value."""
    with _connection().table("T") as table:
        table.put(RowMutation("r1").add("F", "q", "v1"))
        result = table.get("r1", [Column("G", b"other")])

    assert isinstance(result, RowResult) and result.value("G", "other") is None


def test_put_unknown_family_raises_mutation_error() -> None:
    """Writes to an undeclared family should raise MutationError."""
    with _connection().table("T") as table:
        with pytest.raises(MutationError):
            table.put(RowMutation("r1").add("Missing", "q", "v"))

    assert True


def test_put_without_cells_raises_mutation_error() -> None:
    """A mutation with no cells should be rejected."""
    with _connection().table("T") as table:
        with pytest.raises(MutationError):
            table.put(RowMutation("r1"))

    assert True


def test_get_unknown_family_raises_read_error() -> None:
    """Lookups naming an undeclared family should raise ReadError."""
    with _connection().table("T") as table:
        with pytest.raises(ReadError):
            table.get("r1", ["Missing:q"])

    assert True


def test_get_versions_returns_newest_first() -> None:
    """Version lookup should list retained versions newest first."""
    with _connection().table("T") as table:
        for timestamp, value in ((1, "a"), (2, "b")):
            table.put(RowMutation("r1", timestamp=timestamp).add("F", "q", value))
        versions = table.get_versions("r1", "F:q")

    assert [(version.timestamp, version.value) for version in versions] == [(2, b"b"), (1, b"a")]


def test_get_with_timestamp_reads_older_value() -> None:
    """A timestamp-bounded get should skip newer versions."""
    with _connection().table("T") as table:
        table.put(RowMutation("r1", timestamp=10).add("F", "q", "old"))
        table.put(RowMutation("r1", timestamp=20).add("F", "q", "new"))
        result = table.get("r1", ["F:q"], timestamp=15)

    assert result.text("F", "q") == "old"


def test_delete_row_removes_cells() -> None:
    """Deleted rows should read as NotFound."""
    with _connection().table("T") as table:
        table.put(RowMutation("r1").add("F", "q", "v1"))
        table.delete_row("r1")
        result = table.get("r1")

    assert isinstance(result, NotFound)


def test_closed_handle_raises_use_after_close() -> None:
    """A closed handle should refuse further operations."""
    table = _connection().table("T")
    table.close()

    with pytest.raises(UseAfterCloseError):
        table.put(RowMutation("r1").add("F", "q", "v1"))

    assert True


class _BlockingBackend(InMemoryStoreBackend):
    """Backend whose row reads wait until released."""

    def __init__(self) -> None:
        super().__init__()
        self.release = threading.Event()

    def get_row(self, table, row_key, columns, timestamp):  # type: ignore[override]
        self.release.wait(5)
        return super().get_row(table, row_key, columns, timestamp)


def test_get_past_deadline_raises_and_closes_handle() -> None:
    """A timed-out lookup should raise and leave the handle closed."""
    backend = _BlockingBackend()
    table = _connection(backend).table("T")

    with pytest.raises(DeadlineExceededError):
        table.get("r1", timeout=0.05)
    backend.release.set()

    assert table.closed


def test_open_handle_sees_families_of_recreated_table() -> None:
    """A handle should accept families added by a later recreate."""
    connection = _connection()
    table = connection.table("T")
    table.put(RowMutation("r1").add("F", "q", "v1"))

    ensure_table(connection, TableDescriptor.with_families("T", ["F", "G", "H"]))
    table.put(RowMutation("r1").add("H", "q", "v2"))

    assert table.get("r1", ["H:q"]).text("H", "q") == "v2"
