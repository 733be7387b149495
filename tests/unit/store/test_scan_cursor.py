"""Unit tests for scan cursor behavior."""

from __future__ import annotations

from dataclasses import replace
import threading
from typing import Iterator

import pytest

from core.config import ClusterConfig
from core.errors import DeadlineExceededError, ReadError, UseAfterCloseError
from core.types import END_OF_SCAN, Column, RowMutation, ScanSpec, TableDescriptor
from store.connection import open_connection
from store.hbase_backend import _HappyBaseScanner
from store.memory_backend import InMemoryStoreBackend
from store.scan_cursor import ScanCursor
from store.table_admin import ensure_table
from store.table_handle import TableHandle


def _seeded_table(backend: InMemoryStoreBackend) -> TableHandle:
    config = replace(ClusterConfig.from_env(), backend="memory", quorum=("localhost",))
    connection = open_connection(config, backend=backend)
    ensure_table(connection, TableDescriptor.with_families("T", ["F", "G"]))
    table = connection.table("T")
    table.put(RowMutation("a").add("F", "q", "1"))
    table.put(RowMutation("b").add("G", "other", "2"))
    table.put(RowMutation("c").add("F", "q", "3").add("G", "other", "4"))
    table.put(RowMutation("d").add("F", "q", "5"))
    return table


def test_filtered_scan_yields_only_rows_with_column() -> None:
    """Rows lacking the filtered column should be skipped server-side."""
    table = _seeded_table(InMemoryStoreBackend())

    with table.open_scan(ScanSpec(columns=(Column("F", b"q"),))) as cursor:
        rows = list(cursor)

    assert [row.row_key for row in rows] == [b"a", b"c", b"d"] and all(
        set(row.cells) == {("F", b"q")} for row in rows
    )


def test_next_after_end_keeps_returning_end_of_scan() -> None:
    """The terminal state should be idempotent."""
    table = _seeded_table(InMemoryStoreBackend())

    with table.open_scan() as cursor:
        while cursor.next() is not END_OF_SCAN:
            pass
        repeated = [cursor.next(), cursor.next()]

    assert repeated == [END_OF_SCAN, END_OF_SCAN]


def test_cursor_is_single_pass() -> None:
    """A second iteration over a consumed cursor should yield nothing."""
    table = _seeded_table(InMemoryStoreBackend())

    with table.open_scan() as cursor:
        first_pass = list(cursor)
        second_pass = list(cursor)

    assert len(first_pass) == 4 and second_pass == []


def test_scan_range_and_small_batches() -> None:
    """Ranges should hold across batch boundaries."""
    table = _seeded_table(InMemoryStoreBackend())
    spec = ScanSpec(start_row="b", stop_row="d", batch_size=1)

    with table.open_scan(spec) as cursor:
        row_keys = [row.row_key for row in cursor]

    assert row_keys == [b"b", b"c"]


def test_scan_limit_caps_rows() -> None:
    """A limit should stop the scan early."""
    table = _seeded_table(InMemoryStoreBackend())

    with table.open_scan(ScanSpec(limit=2, batch_size=1)) as cursor:
        row_keys = [row.row_key for row in cursor]

    assert row_keys == [b"a", b"b"]


def test_close_releases_scanner_and_is_idempotent() -> None:
    """Closing should release the server context, twice without error."""
    backend = InMemoryStoreBackend()
    table = _seeded_table(backend)
    cursor = table.open_scan()
    cursor.next()

    cursor.close()
    cursor.close()

    assert backend.open_scanner_count == 0


def test_exhaustion_releases_scanner_before_close() -> None:
    """Reaching the end should free the server context early."""
    backend = InMemoryStoreBackend()
    table = _seeded_table(backend)
    cursor = table.open_scan()

    list(cursor)

    assert backend.open_scanner_count == 0 and not cursor.closed


def test_next_on_closed_cursor_raises_use_after_close() -> None:
    """A closed cursor should refuse to advance."""
    table = _seeded_table(InMemoryStoreBackend())
    cursor = table.open_scan()
    cursor.close()

    with pytest.raises(UseAfterCloseError):
        cursor.next()

    assert True


def test_closing_handle_closes_open_cursors() -> None:
    """Closing the table handle should close its cursors."""
    backend = InMemoryStoreBackend()
    table = _seeded_table(backend)
    cursor = table.open_scan()

    table.close()

    assert cursor.closed and backend.open_scanner_count == 0


def test_scan_with_unknown_family_raises_read_error() -> None:
    """Filters naming undeclared families should be rejected."""
    table = _seeded_table(InMemoryStoreBackend())

    with pytest.raises(ReadError):
        table.open_scan(ScanSpec(columns=(Column("Missing"),)))

    assert True


def test_fetch_past_deadline_raises_and_releases_scanner_later() -> None:
    """A timed-out fetch should raise and free the scanner once the fetch returns."""
    gate = threading.Event()
    released = threading.Event()

    def slow_rows() -> Iterator[tuple[bytes, dict[bytes, bytes]]]:
        try:
            gate.wait(5)
            yield b"a", {b"F:q": b"1"}
            yield b"b", {b"F:q": b"2"}
        finally:
            released.set()

    cursor = ScanCursor(
        "T",
        _HappyBaseScanner(slow_rows()),
        ScanSpec(batch_size=1),
        timeout_seconds=0.05,
    )

    with pytest.raises(DeadlineExceededError):
        cursor.next()
    closed_after_deadline = cursor.closed
    gate.set()

    assert closed_after_deadline and released.wait(5)
