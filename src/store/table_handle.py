"""Per-table mutation, lookup, and scan handle.

This module holds the lightweight handle derived from a connection for
one unit of work against one table. Every call is one blocking
round-trip with no caching and no retries; a deadline can bound it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Sequence, TypeVar

from core.deadline import call_with_deadline
from core.errors import (
    AdminError,
    ColbridgeError,
    DeadlineExceededError,
    MutationError,
    ReadError,
    UseAfterCloseError,
)
from core.logging_config import get_logger
from core.types import (
    BytesInput,
    CellVersion,
    Column,
    NotFound,
    RowMutation,
    RowResult,
    ScanSpec,
    TableDescriptor,
    to_bytes,
)
from store.backend import StoreBackend
from store.scan_cursor import ScanCursor

if TYPE_CHECKING:
    from store.connection import Connection

_LOGGER = get_logger(__name__)

ResultT = TypeVar("ResultT")
ColumnInput = Column | str


class TableHandle:
    """Handle for reads and writes against one table.

    Confine a handle to one thread at a time and close it after use.
    Closing the handle closes every cursor it opened.
    """

    def __init__(
        self,
        connection: "Connection",
        name: str,
        timeout_seconds: float | None = None,
        on_close: Callable[["TableHandle"], None] | None = None,
    ) -> None:
        self._connection = connection
        self._name = name
        self._timeout_seconds = timeout_seconds
        self._on_close = on_close
        self._descriptor: TableDescriptor | None = None
        self._cursors: list[ScanCursor] = []
        self._closed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def closed(self) -> bool:
        return self._closed

    def descriptor(self) -> TableDescriptor:
        """Return the table schema, cached until a family check misses.

        Raises:
            AdminError: If the table does not exist or cannot be described.
        """
        if self._descriptor is None:
            backend = self._require_backend("describe")
            try:
                self._descriptor = backend.describe_table(self._name)
            except ColbridgeError:
                raise
            except Exception as error:
                raise AdminError(f"Failed to describe table '{self._name}': {error}.") from error
        return self._descriptor

    def put(self, mutation: RowMutation, timeout: float | None = None) -> None:
        """Apply every cell of a mutation atomically within its row.

        Args:
            mutation: Row mutation to apply.
            timeout: Optional deadline in seconds.

        Raises:
            MutationError: If the mutation is empty, names an unknown
                column family, or the store rejects it.
        """
        if not mutation.cells:
            raise MutationError(
                f"Mutation for row {mutation.row_key!r} has no cells. Add at least one column."
            )
        self._check_families(mutation.family_names(), MutationError)
        backend = self._require_backend("put")
        self._run(
            lambda: backend.put_row(
                self._name, mutation.row_key, mutation.cells, mutation.timestamp
            ),
            f"put into table '{self._name}'",
            timeout,
            MutationError,
        )

    def get(
        self,
        row_key: BytesInput,
        columns: Sequence[ColumnInput] | None = None,
        timestamp: int | None = None,
        timeout: float | None = None,
    ) -> RowResult | NotFound:
        """Look up the latest values of one row.

        Args:
            row_key: Row key.
            columns: Optional column filters (``Column`` or ``family[:qualifier]``).
            timestamp: Only values written at or before this timestamp.
            timeout: Optional deadline in seconds.

        Returns:
            ``RowResult`` when the row exists, with requested columns that
            hold no value missing from its cells; ``NotFound`` otherwise.

        Raises:
            ReadError: If a column names an unknown family or the lookup fails.
        """
        key = to_bytes(row_key)
        requested = _parse_columns(columns)
        self._check_families(tuple(column.family for column in requested), ReadError)
        backend = self._require_backend("get")

        def lookup() -> RowResult | NotFound:
            cells = backend.get_row(self._name, key, requested, timestamp)
            if cells:
                return RowResult(row_key=key, cells=cells)
            if (requested or timestamp is not None) and backend.row_exists(self._name, key):
                return RowResult(row_key=key, cells={})
            return NotFound(row_key=key)

        return self._run(lookup, f"get from table '{self._name}'", timeout, ReadError)

    def get_versions(
        self,
        row_key: BytesInput,
        column: ColumnInput,
        max_versions: int | None = None,
        timeout: float | None = None,
    ) -> list[CellVersion]:
        """Return retained versions of one cell, newest first.

        Raises:
            ReadError: If the column lacks a qualifier, names an unknown
                family, or the lookup fails.
        """
        parsed = _parse_column(column)
        if parsed.qualifier is None:
            raise ReadError(
                f"Version lookup needs family:qualifier, got family '{parsed.family}' only."
            )
        self._check_families((parsed.family,), ReadError)
        family = self.descriptor().family(parsed.family)
        if max_versions is not None:
            limit = max_versions
        else:
            limit = family.max_versions if family is not None else 1
        backend = self._require_backend("get versions")
        return self._run(
            lambda: backend.get_cell_versions(self._name, to_bytes(row_key), parsed, limit),
            f"version lookup in table '{self._name}'",
            timeout,
            ReadError,
        )

    def delete_row(self, row_key: BytesInput, timeout: float | None = None) -> None:
        """Remove every cell of a row."""
        backend = self._require_backend("delete row")
        self._run(
            lambda: backend.delete_row(self._name, to_bytes(row_key)),
            f"row delete in table '{self._name}'",
            timeout,
            MutationError,
        )

    def open_scan(self, spec: ScanSpec | None = None) -> ScanCursor:
        """Open a forward-only cursor over the table.

        Column filtering happens server-side: rows without any filtered
        column are never returned.

        Raises:
            ReadError: If a filter names an unknown family or the
                scanner cannot be opened.
        """
        scan_spec = spec or ScanSpec()
        self._check_families(tuple(column.family for column in scan_spec.columns), ReadError)
        backend = self._require_backend("open scan")
        scanner = self._run(
            lambda: backend.open_scanner(self._name, scan_spec),
            f"scan open on table '{self._name}'",
            None,
            ReadError,
        )
        cursor = ScanCursor(
            self._name,
            scanner,
            scan_spec,
            timeout_seconds=self._timeout_seconds,
            on_close=self._forget_cursor,
        )
        self._cursors.append(cursor)
        _LOGGER.debug(
            "scan_opened",
            table=self._name,
            columns=[column.encoded().decode("utf-8", "replace") for column in scan_spec.columns],
        )
        return cursor

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._descriptor = None
        try:
            for cursor in list(self._cursors):
                cursor.close()
        finally:
            if self._on_close is not None:
                self._on_close(self)

    def __enter__(self) -> "TableHandle":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _require_backend(self, operation: str) -> StoreBackend:
        if self._closed:
            raise UseAfterCloseError(
                f"Cannot {operation} on table '{self._name}': handle was closed."
            )
        return self._connection.require_backend(f"{operation} on table '{self._name}'")

    def _check_families(
        self,
        family_names: Sequence[str],
        error_type: type[ColbridgeError],
    ) -> None:
        if not family_names:
            return
        known = set(self.descriptor().family_names())
        unknown = sorted(set(family_names) - known)
        if unknown:
            # The table may have been recreated since the schema was cached.
            self._descriptor = None
            known = set(self.descriptor().family_names())
            unknown = sorted(set(family_names) - known)
        if unknown:
            raise error_type(
                f"Table '{self._name}' has no column family {', '.join(unknown)}. "
                f"Declared families: {', '.join(sorted(known))}."
            )

    def _run(
        self,
        operation: Callable[[], ResultT],
        description: str,
        timeout: float | None,
        error_type: type[ColbridgeError],
    ) -> ResultT:
        deadline = timeout if timeout is not None else self._timeout_seconds
        try:
            return call_with_deadline(operation, deadline, description)
        except DeadlineExceededError:
            self.close()
            raise
        except ColbridgeError:
            raise
        except Exception as error:
            raise error_type(f"Failed {description}: {error}.") from error

    def _forget_cursor(self, cursor: ScanCursor) -> None:
        if cursor in self._cursors:
            self._cursors.remove(cursor)


def put(handle: TableHandle, mutation: RowMutation) -> None:
    """Apply a row mutation through ``handle``."""
    handle.put(mutation)


def get(
    handle: TableHandle,
    row_key: BytesInput,
    columns: Sequence[ColumnInput] | None = None,
) -> RowResult | NotFound:
    """Look up a row through ``handle``."""
    return handle.get(row_key, columns)


def open_scan(handle: TableHandle, spec: ScanSpec | None = None) -> ScanCursor:
    """Open a scan cursor through ``handle``."""
    return handle.open_scan(spec)


def _parse_columns(columns: Sequence[ColumnInput] | None) -> tuple[Column, ...]:
    if not columns:
        return ()
    return tuple(_parse_column(column) for column in columns)


def _parse_column(column: ColumnInput) -> Column:
    return column if isinstance(column, Column) else Column.parse(column)
