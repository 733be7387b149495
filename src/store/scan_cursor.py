"""Forward-only scan cursor.

This module wraps a backend scanner into a lazy, single-pass cursor.
Rows arrive in batches; ``next`` hands them out one at a time and
returns ``END_OF_SCAN`` once, and every time after, the scan is done.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Callable, Iterator

from core.deadline import call_with_deadline
from core.errors import ColbridgeError, DeadlineExceededError, ReadError, UseAfterCloseError
from core.logging_config import get_logger
from core.types import END_OF_SCAN, EndOfScan, RowResult, ScanSpec
from store.backend import BackendScanner, StoredRow

_LOGGER = get_logger(__name__)


class ScanCursor:
    """Single-pass cursor over scan results.

    Not safe for concurrent ``next`` calls. Close it when done; closing
    releases the server-side scanner and is a no-op when repeated.
    """

    def __init__(
        self,
        table_name: str,
        scanner: BackendScanner,
        spec: ScanSpec,
        timeout_seconds: float | None = None,
        on_close: Callable[["ScanCursor"], None] | None = None,
    ) -> None:
        self._table_name = table_name
        self._scanner: BackendScanner | None = scanner
        self._spec = spec
        self._timeout_seconds = timeout_seconds
        self._on_close = on_close
        self._buffer: deque[RowResult] = deque()
        self._rows_returned = 0
        self._exhausted = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def exhausted(self) -> bool:
        return self._exhausted and not self._buffer

    def next(self) -> RowResult | EndOfScan:
        """Return the next row, or ``END_OF_SCAN`` when none remain.

        Raises:
            UseAfterCloseError: If the cursor was closed.
            ReadError: If the backend fails while fetching.
            DeadlineExceededError: If a fetch exceeds the deadline; the
                cursor is closed.
        """
        if self._closed:
            raise UseAfterCloseError(
                f"Cannot advance scan on '{self._table_name}': cursor was closed."
            )
        if not self._buffer and not self._exhausted:
            self._fill_buffer()
        if not self._buffer:
            return END_OF_SCAN
        self._rows_returned += 1
        return self._buffer.popleft()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._buffer.clear()
        try:
            self._release_scanner()
        finally:
            if self._on_close is not None:
                self._on_close(self)
            _LOGGER.debug(
                "scan_closed",
                table=self._table_name,
                rows_returned=self._rows_returned,
            )

    def __iter__(self) -> Iterator[RowResult]:
        while True:
            row = self.next()
            if isinstance(row, EndOfScan):
                return
            yield row

    def __enter__(self) -> "ScanCursor":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _fill_buffer(self) -> None:
        scanner = self._scanner
        if scanner is None:
            self._exhausted = True
            return
        try:
            batch = call_with_deadline(
                lambda: scanner.fetch(self._spec.batch_size),
                self._timeout_seconds,
                f"scan of table '{self._table_name}'",
                on_abandon=lambda: _release_abandoned(scanner, self._table_name),
            )
        except DeadlineExceededError:
            # The worker still owns the scanner; it releases it when the fetch returns.
            self._scanner = None
            self.close()
            raise
        except ColbridgeError:
            raise
        except Exception as error:
            raise ReadError(
                f"Failed to fetch scan rows from table '{self._table_name}': {error}."
            ) from error
        if not batch:
            self._exhausted = True
            self._release_scanner()
            return
        self._buffer.extend(_row_result(row) for row in batch)

    def _release_scanner(self) -> None:
        scanner, self._scanner = self._scanner, None
        if scanner is None:
            return
        try:
            scanner.close()
        except Exception as error:
            raise ReadError(
                f"Failed to release scanner on table '{self._table_name}': {error}."
            ) from error


def _row_result(row: StoredRow) -> RowResult:
    row_key, cells = row
    return RowResult(row_key=row_key, cells=cells)


def _release_abandoned(scanner: BackendScanner, table_name: str) -> None:
    """Close a scanner left behind by a timed-out fetch."""
    try:
        scanner.close()
    except Exception as error:
        _LOGGER.warning("scan_release_failed", table=table_name, error=str(error))
        return
    _LOGGER.debug("abandoned_scan_released", table=table_name)
