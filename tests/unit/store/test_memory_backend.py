"""Unit tests for the in-memory store backend."""

from __future__ import annotations

import pytest

from core.errors import AdminError, MutationError, ReadError, TableStateError
from core.types import Cell, Column, ColumnFamilyDescriptor, ScanSpec, TableDescriptor
from store.memory_backend import InMemoryStoreBackend


def _backend_with_table(max_versions: int = 3) -> InMemoryStoreBackend:
    backend = InMemoryStoreBackend()
    backend.create_table(
        TableDescriptor(
            name="T",
            families=(ColumnFamilyDescriptor(name="F", max_versions=max_versions),),
        )
    )
    return backend


def _cell(value: str) -> Cell:
    return Cell(family="F", qualifier=b"q", value=value.encode("utf-8"))


def test_delete_enabled_table_raises_state_error() -> None:
    """Deleting an enabled table should be an invalid transition."""
    backend = _backend_with_table()

    with pytest.raises(TableStateError):
        backend.delete_table("T")

    assert backend.is_table_available("T")


def test_disable_then_delete_removes_table() -> None:
    """A disabled table can be deleted."""
    backend = _backend_with_table()

    backend.disable_table("T")
    backend.delete_table("T")

    assert backend.list_tables() == ()


def test_create_existing_table_raises_admin_error() -> None:
    """Creating a table twice should fail."""
    backend = _backend_with_table()

    with pytest.raises(AdminError):
        backend.create_table(TableDescriptor.with_families("T", ["F"]))

    assert True


def test_put_rejects_unknown_family() -> None:
    """Writes naming an undeclared family should fail."""
    backend = _backend_with_table()

    with pytest.raises(MutationError):
        backend.put_row("T", b"r1", [Cell(family="G", qualifier=b"q", value=b"v")], None)

    assert not backend.row_exists("T", b"r1")


def test_versions_are_trimmed_to_family_retention() -> None:
    """Only max_versions newest versions should be kept."""
    backend = _backend_with_table(max_versions=2)
    for timestamp, value in ((1, "a"), (2, "b"), (3, "c")):
        backend.put_row("T", b"r1", [_cell(value)], timestamp)

    versions = backend.get_cell_versions("T", b"r1", Column("F", b"q"), 10)

    assert [(version.timestamp, version.value) for version in versions] == [(3, b"c"), (2, b"b")]


def test_equal_timestamp_replaces_value() -> None:
    """A put with an existing timestamp should overwrite that version."""
    backend = _backend_with_table()
    backend.put_row("T", b"r1", [_cell("v1")], 5)
    backend.put_row("T", b"r1", [_cell("v2")], 5)

    versions = backend.get_cell_versions("T", b"r1", Column("F", b"q"), 10)

    assert [version.value for version in versions] == [b"v2"]


def test_get_row_honors_timestamp_bound() -> None:
    """Reads bounded by timestamp should see the latest value at or before it."""
    backend = _backend_with_table()
    backend.put_row("T", b"r1", [_cell("old")], 10)
    backend.put_row("T", b"r1", [_cell("new")], 20)

    cells = backend.get_row("T", b"r1", [], 10)

    assert cells == {("F", b"q"): b"old"}


def test_data_access_on_disabled_table_raises_state_error() -> None:
    """Disabled tables should reject reads."""
    backend = _backend_with_table()
    backend.disable_table("T")

    with pytest.raises(TableStateError):
        backend.get_row("T", b"r1", [], None)

    assert True


def test_closing_scanner_releases_context() -> None:
    """Scanner contexts should be tracked until closed."""
    backend = _backend_with_table()
    scanner = backend.open_scanner("T", ScanSpec())
    opened_count = backend.open_scanner_count

    scanner.close()

    assert (opened_count, backend.open_scanner_count) == (1, 0)


def test_scanner_resumes_after_last_returned_row() -> None:
    """Consecutive fetches should continue where the previous stopped."""
    backend = _backend_with_table()
    for row_key in (b"a", b"b", b"c"):
        backend.put_row("T", row_key, [_cell("v")], None)
    scanner = backend.open_scanner("T", ScanSpec())

    batches = [scanner.fetch(2), scanner.fetch(2), scanner.fetch(2)]

    assert [[row_key for row_key, _ in batch] for batch in batches] == [[b"a", b"b"], [b"c"], []]


def test_backend_close_invalidates_open_scanners() -> None:
    """Scanners should refuse to fetch once the backend closes."""
    backend = _backend_with_table()
    backend.put_row("T", b"a", [_cell("v")], None)
    scanner = backend.open_scanner("T", ScanSpec())

    backend.close()

    with pytest.raises(ReadError):
        scanner.fetch(1)

    assert backend.open_scanner_count == 0
