"""In-memory column-family store backend.

This module keeps tables as sorted maps of row key to versioned cells.
It honors the same contract as a real cluster: enable/disable state,
per-family version retention, per-row atomic puts, server-side column
filtering, and tracked scanner contexts. It backs tests, local demos,
and the ``memory`` backend setting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import itertools
import threading
import time
from typing import Sequence

from core.errors import AdminError, MutationError, ReadError, TableStateError
from core.types import Cell, CellKey, CellVersion, Column, ScanSpec, TableDescriptor
from store.backend import StoredRow

VersionedCells = dict[CellKey, list[CellVersion]]


@dataclass
class _MemoryTable:
    descriptor: TableDescriptor
    enabled: bool = True
    rows: dict[bytes, VersionedCells] = field(default_factory=dict)


class InMemoryStoreBackend:
    """Thread-safe in-process column-family store."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._tables: dict[str, _MemoryTable] = {}
        self._scanners: dict[int, _MemoryScanner] = {}
        self._scanner_ids = itertools.count(1)

    @property
    def open_scanner_count(self) -> int:
        """Number of scanner contexts not yet released."""
        with self._lock:
            return len(self._scanners)

    def list_tables(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(sorted(self._tables))

    def is_table_available(self, name: str) -> bool:
        with self._lock:
            return name in self._tables

    def is_table_enabled(self, name: str) -> bool:
        with self._lock:
            return self._require_table(name).enabled

    def enable_table(self, name: str) -> None:
        with self._lock:
            table = self._require_table(name)
            if table.enabled:
                raise TableStateError(f"Table '{name}' is already enabled.")
            table.enabled = True

    def disable_table(self, name: str) -> None:
        with self._lock:
            table = self._require_table(name)
            if not table.enabled:
                raise TableStateError(f"Table '{name}' is already disabled.")
            table.enabled = False

    def delete_table(self, name: str) -> None:
        with self._lock:
            table = self._require_table(name)
            if table.enabled:
                raise TableStateError(
                    f"Table '{name}' is enabled; disable it before deleting."
                )
            del self._tables[name]

    def create_table(self, descriptor: TableDescriptor) -> None:
        with self._lock:
            if descriptor.name in self._tables:
                raise AdminError(f"Table '{descriptor.name}' already exists.")
            self._tables[descriptor.name] = _MemoryTable(descriptor=descriptor)

    def describe_table(self, name: str) -> TableDescriptor:
        with self._lock:
            return self._require_table(name).descriptor

    def put_row(
        self,
        table: str,
        row_key: bytes,
        cells: Sequence[Cell],
        timestamp: int | None,
    ) -> None:
        with self._lock:
            memory_table = self._require_enabled_table(table)
            descriptor = memory_table.descriptor
            unknown = sorted({cell.family for cell in cells} - set(descriptor.family_names()))
            if unknown:
                raise MutationError(
                    f"Table '{table}' has no column family {', '.join(unknown)}."
                )
            cell_timestamp = _current_millis() if timestamp is None else timestamp
            row = memory_table.rows.setdefault(row_key, {})
            for cell in cells:
                family = descriptor.family(cell.family)
                max_versions = family.max_versions if family is not None else 1
                row[cell.key] = _insert_version(
                    row.get(cell.key, []),
                    CellVersion(timestamp=cell_timestamp, value=cell.value),
                    max_versions,
                )

    def get_row(
        self,
        table: str,
        row_key: bytes,
        columns: Sequence[Column],
        timestamp: int | None,
    ) -> dict[CellKey, bytes]:
        with self._lock:
            memory_table = self._require_enabled_table(table)
            _check_column_families(memory_table.descriptor, columns)
            row = memory_table.rows.get(row_key, {})
            return _visible_cells(row, columns, timestamp)

    def get_cell_versions(
        self,
        table: str,
        row_key: bytes,
        column: Column,
        max_versions: int,
    ) -> list[CellVersion]:
        with self._lock:
            memory_table = self._require_enabled_table(table)
            _check_column_families(memory_table.descriptor, (column,))
            row = memory_table.rows.get(row_key, {})
            versions = row.get((column.family, column.qualifier or b""), [])
            return list(versions[:max_versions])

    def row_exists(self, table: str, row_key: bytes) -> bool:
        with self._lock:
            return bool(self._require_enabled_table(table).rows.get(row_key))

    def delete_row(self, table: str, row_key: bytes) -> None:
        with self._lock:
            self._require_enabled_table(table).rows.pop(row_key, None)

    def open_scanner(self, table: str, spec: ScanSpec) -> "_MemoryScanner":
        with self._lock:
            memory_table = self._require_enabled_table(table)
            _check_column_families(memory_table.descriptor, spec.columns)
            scanner_id = next(self._scanner_ids)
            scanner = _MemoryScanner(self, scanner_id, table, spec)
            self._scanners[scanner_id] = scanner
            return scanner

    def close(self) -> None:
        """Close open scanner contexts; stored tables outlive client sessions."""
        with self._lock:
            for scanner in list(self._scanners.values()):
                scanner.close()

    def _scan_batch(
        self,
        table: str,
        spec: ScanSpec,
        after_row: bytes | None,
        count: int,
    ) -> list[StoredRow]:
        with self._lock:
            memory_table = self._require_enabled_table(table)
            batch: list[StoredRow] = []
            for row_key in sorted(memory_table.rows):
                if after_row is not None and row_key <= after_row:
                    continue
                if not spec.includes_row(row_key):
                    if spec.stop_row is not None and row_key >= spec.stop_row:
                        break
                    continue
                cells = _visible_cells(memory_table.rows[row_key], spec.columns, spec.timestamp)
                if not cells:
                    continue
                batch.append((row_key, cells))
                if len(batch) >= count:
                    break
            return batch

    def _release_scanner(self, scanner_id: int) -> None:
        with self._lock:
            self._scanners.pop(scanner_id, None)

    def _require_table(self, name: str) -> _MemoryTable:
        table = self._tables.get(name)
        if table is None:
            raise AdminError(f"Table '{name}' does not exist. Create it with ensure_table first.")
        return table

    def _require_enabled_table(self, name: str) -> _MemoryTable:
        table = self._require_table(name)
        if not table.enabled:
            raise TableStateError(f"Table '{name}' is disabled; enable it before data access.")
        return table


class _MemoryScanner:
    """Scanner context resuming after the last returned row."""

    def __init__(
        self,
        backend: InMemoryStoreBackend,
        scanner_id: int,
        table: str,
        spec: ScanSpec,
    ) -> None:
        self._backend = backend
        self._scanner_id = scanner_id
        self._table = table
        self._spec = spec
        self._last_row: bytes | None = None
        self._returned = 0
        self._closed = False

    def fetch(self, count: int) -> list[StoredRow]:
        if self._closed:
            raise ReadError(f"Scanner {self._scanner_id} on '{self._table}' is closed.")
        if self._spec.limit is not None:
            count = min(count, self._spec.limit - self._returned)
        if count <= 0:
            return []
        batch = self._backend._scan_batch(self._table, self._spec, self._last_row, count)
        if batch:
            self._last_row = batch[-1][0]
            self._returned += len(batch)
        return batch

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._backend._release_scanner(self._scanner_id)


def _current_millis() -> int:
    return int(time.time() * 1000)


def _insert_version(
    versions: list[CellVersion],
    version: CellVersion,
    max_versions: int,
) -> list[CellVersion]:
    """Insert a version newest-first; an equal timestamp replaces the old value."""
    kept = [item for item in versions if item.timestamp != version.timestamp]
    kept.append(version)
    kept.sort(key=lambda item: item.timestamp, reverse=True)
    return kept[:max_versions]


def _visible_cells(
    row: VersionedCells,
    columns: Sequence[Column],
    timestamp: int | None,
) -> dict[CellKey, bytes]:
    visible: dict[CellKey, bytes] = {}
    for key, versions in row.items():
        if columns and not any(column.matches(key) for column in columns):
            continue
        for version in versions:
            if timestamp is None or version.timestamp <= timestamp:
                visible[key] = version.value
                break
    return visible


def _check_column_families(descriptor: TableDescriptor, columns: Sequence[Column]) -> None:
    unknown = sorted({column.family for column in columns} - set(descriptor.family_names()))
    if unknown:
        raise ReadError(
            f"Table '{descriptor.name}' has no column family {', '.join(unknown)}."
        )
