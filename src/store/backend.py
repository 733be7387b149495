"""Store backend protocol.

This module defines the seam between the client surfaces (connection,
admin, table handle, scan cursor) and a concrete column-family store.
Backends perform one round-trip per method and raise library errors
unchanged; the client layer maps them onto the Colbridge hierarchy.
"""

from __future__ import annotations

from typing import Protocol, Sequence

from core.types import Cell, CellKey, CellVersion, Column, ScanSpec, TableDescriptor

StoredRow = tuple[bytes, dict[CellKey, bytes]]


class BackendScanner(Protocol):
    """Server-side scan context consumed in batches."""

    def fetch(self, count: int) -> list[StoredRow]:
        """Return up to ``count`` rows; an empty list means exhausted."""

    def close(self) -> None:
        """Release the server-side scan context."""


class StoreBackend(Protocol):
    """Column-family store operations used by the client surfaces."""

    def list_tables(self) -> tuple[str, ...]:
        ...

    def is_table_available(self, name: str) -> bool:
        ...

    def is_table_enabled(self, name: str) -> bool:
        ...

    def enable_table(self, name: str) -> None:
        ...

    def disable_table(self, name: str) -> None:
        ...

    def delete_table(self, name: str) -> None:
        ...

    def create_table(self, descriptor: TableDescriptor) -> None:
        ...

    def describe_table(self, name: str) -> TableDescriptor:
        ...

    def put_row(
        self,
        table: str,
        row_key: bytes,
        cells: Sequence[Cell],
        timestamp: int | None,
    ) -> None:
        ...

    def get_row(
        self,
        table: str,
        row_key: bytes,
        columns: Sequence[Column],
        timestamp: int | None,
    ) -> dict[CellKey, bytes]:
        """Return visible cells of a row; an empty dict means no row."""

    def get_cell_versions(
        self,
        table: str,
        row_key: bytes,
        column: Column,
        max_versions: int,
    ) -> list[CellVersion]:
        """Return retained versions of one cell, newest first."""

    def row_exists(self, table: str, row_key: bytes) -> bool:
        """Return whether the row holds any cell at all."""

    def delete_row(self, table: str, row_key: bytes) -> None:
        ...

    def open_scanner(self, table: str, spec: ScanSpec) -> BackendScanner:
        ...

    def close(self) -> None:
        ...
