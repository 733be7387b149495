"""Shared typed models.

This module defines immutable data models used by the store, admin,
scan, and file transfer layers to keep client interfaces explicit.
Row keys, qualifiers, and values are bytes; text inputs are encoded
as UTF-8 at construction time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping

from core.constants import COLUMN_SEPARATOR, DEFAULT_MAX_VERSIONS, DEFAULT_SCAN_BATCH_SIZE
from core.errors import ColbridgeConfigError

BytesInput = str | bytes
CellKey = tuple[str, bytes]


def to_bytes(value: BytesInput) -> bytes:
    """Encode a text or bytes value into bytes.

    Args:
        value: Text (encoded as UTF-8) or raw bytes.

    Returns:
        Byte representation.
    """
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    raise TypeError(f"Expected str or bytes, got {type(value).__name__}.")


def to_text(value: bytes) -> str:
    """Decode UTF-8 bytes into text."""
    return value.decode("utf-8")


class RecreatePolicy(str, Enum):
    """Table reconciliation policy used by ``ensure_table``."""

    ALWAYS_RECREATE = "always-recreate"
    CREATE_IF_ABSENT = "create-if-absent"
    FAIL_IF_MISMATCH = "fail-if-mismatch"


@dataclass(frozen=True)
class ColumnFamilyDescriptor:
    """Column family schema declared at table creation.

    Attributes:
        name: Family name, unique within its table.
        max_versions: Number of cell versions retained per column.
        in_memory: Residency hint asking the store to favor caching.
    """

    name: str
    max_versions: int = DEFAULT_MAX_VERSIONS
    in_memory: bool = False

    def __post_init__(self) -> None:
        if not self.name or COLUMN_SEPARATOR in self.name:
            raise ColbridgeConfigError(
                f"Invalid column family name '{self.name}': "
                f"use a non-empty name without '{COLUMN_SEPARATOR}'."
            )
        if self.max_versions < 1:
            raise ColbridgeConfigError(
                f"Invalid max_versions {self.max_versions} for family '{self.name}': "
                "retain at least one version."
            )


@dataclass(frozen=True)
class TableDescriptor:
    """Table schema with its ordered column families.

    Attributes:
        name: Table name, unique within the cluster.
        families: Ordered column family descriptors with unique names.
    """

    name: str
    families: tuple[ColumnFamilyDescriptor, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "families", tuple(self.families))
        if not self.name:
            raise ColbridgeConfigError("Table descriptor requires a non-empty table name.")
        if not self.families:
            raise ColbridgeConfigError(
                f"Table descriptor '{self.name}' requires at least one column family."
            )
        names = [family.name for family in self.families]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ColbridgeConfigError(
                f"Table descriptor '{self.name}' repeats column families: {', '.join(duplicates)}."
            )

    @classmethod
    def with_families(
        cls,
        name: str,
        family_names: Iterable[str],
        max_versions: int = DEFAULT_MAX_VERSIONS,
        in_memory: bool = False,
    ) -> "TableDescriptor":
        """Build a descriptor whose families share retention settings."""
        families = tuple(
            ColumnFamilyDescriptor(name=family, max_versions=max_versions, in_memory=in_memory)
            for family in family_names
        )
        return cls(name=name, families=families)

    def family_names(self) -> tuple[str, ...]:
        """Return family names in declaration order."""
        return tuple(family.name for family in self.families)

    def family(self, name: str) -> ColumnFamilyDescriptor | None:
        """Return the named family descriptor, if declared."""
        for family in self.families:
            if family.name == name:
                return family
        return None


@dataclass(frozen=True)
class Column:
    """Column reference used by lookups and scan filters.

    A ``None`` qualifier selects the whole family.
    """

    family: str
    qualifier: bytes | None = None

    def __post_init__(self) -> None:
        if self.qualifier is not None:
            object.__setattr__(self, "qualifier", to_bytes(self.qualifier))

    @classmethod
    def parse(cls, text: str) -> "Column":
        """Parse ``family`` or ``family:qualifier`` text.

        Raises:
            ColbridgeConfigError: If the family part is empty.
        """
        family, separator, qualifier = text.partition(COLUMN_SEPARATOR)
        if not family:
            raise ColbridgeConfigError(
                f"Invalid column '{text}': expected family or family:qualifier."
            )
        return cls(family=family, qualifier=qualifier if separator else None)

    def matches(self, key: CellKey) -> bool:
        """Return whether a stored cell key falls under this column."""
        family, qualifier = key
        if family != self.family:
            return False
        return self.qualifier is None or self.qualifier == qualifier

    def encoded(self) -> bytes:
        """Return the ``family:qualifier`` wire form."""
        if self.qualifier is None:
            return self.family.encode("utf-8")
        return self.family.encode("utf-8") + COLUMN_SEPARATOR.encode("utf-8") + self.qualifier


@dataclass(frozen=True)
class Cell:
    """One column value written by a mutation."""

    family: str
    qualifier: bytes
    value: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "qualifier", to_bytes(self.qualifier))
        object.__setattr__(self, "value", to_bytes(self.value))

    @property
    def key(self) -> CellKey:
        return (self.family, self.qualifier)


@dataclass(frozen=True)
class RowMutation:
    """Single-row write applied atomically by the store.

    Attributes:
        row_key: Target row key.
        cells: Column values to write.
        timestamp: Optional cell timestamp in milliseconds; the store
            assigns the current time when omitted.
    """

    row_key: bytes
    cells: tuple[Cell, ...] = ()
    timestamp: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "row_key", to_bytes(self.row_key))
        object.__setattr__(self, "cells", tuple(self.cells))

    def add(self, family: str, qualifier: BytesInput, value: BytesInput) -> "RowMutation":
        """Return a copy of this mutation with one more cell."""
        cell = Cell(family=family, qualifier=to_bytes(qualifier), value=to_bytes(value))
        return RowMutation(
            row_key=self.row_key,
            cells=self.cells + (cell,),
            timestamp=self.timestamp,
        )

    def family_names(self) -> tuple[str, ...]:
        """Return distinct families referenced by the cells."""
        return tuple(dict.fromkeys(cell.family for cell in self.cells))


@dataclass(frozen=True)
class RowResult:
    """Latest visible values of one row.

    Attributes:
        row_key: Row key.
        cells: Mapping of ``(family, qualifier)`` to the latest value.
    """

    row_key: bytes
    cells: Mapping[CellKey, bytes] = field(default_factory=dict)

    def value(self, family: str, qualifier: BytesInput) -> bytes | None:
        """Return the cell value, or ``None`` when the column has no value."""
        return self.cells.get((family, to_bytes(qualifier)))

    def text(self, family: str, qualifier: BytesInput) -> str | None:
        """Return the cell value decoded as UTF-8, or ``None``."""
        raw_value = self.value(family, qualifier)
        return None if raw_value is None else to_text(raw_value)

    def columns(self) -> tuple[Column, ...]:
        """Return populated columns sorted by family then qualifier."""
        return tuple(Column(family, qualifier) for family, qualifier in sorted(self.cells))


@dataclass(frozen=True)
class NotFound:
    """Absence result of a point lookup on a row with no cells."""

    row_key: bytes

    def __bool__(self) -> bool:
        return False


class EndOfScan:
    """Terminal marker returned by an exhausted scan cursor."""

    _instance: "EndOfScan | None" = None

    def __new__(cls) -> "EndOfScan":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "END_OF_SCAN"


END_OF_SCAN = EndOfScan()


@dataclass(frozen=True)
class ScanSpec:
    """Scan request parameters.

    Attributes:
        columns: Column filters; empty means every column.
        start_row: Inclusive start row key.
        stop_row: Exclusive stop row key.
        timestamp: Only values with a timestamp at or below this are visible.
        batch_size: Rows fetched per round-trip.
        limit: Optional maximum number of rows returned.
    """

    columns: tuple[Column, ...] = ()
    start_row: bytes | None = None
    stop_row: bytes | None = None
    timestamp: int | None = None
    batch_size: int = DEFAULT_SCAN_BATCH_SIZE
    limit: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", tuple(self.columns))
        if self.start_row is not None:
            object.__setattr__(self, "start_row", to_bytes(self.start_row))
        if self.stop_row is not None:
            object.__setattr__(self, "stop_row", to_bytes(self.stop_row))
        if self.batch_size < 1:
            raise ColbridgeConfigError(f"Scan batch_size must be positive, got {self.batch_size}.")
        if self.limit is not None and self.limit < 1:
            raise ColbridgeConfigError(f"Scan limit must be positive, got {self.limit}.")

    def includes_row(self, row_key: bytes) -> bool:
        """Return whether a row key falls inside the scan range."""
        if self.start_row is not None and row_key < self.start_row:
            return False
        return self.stop_row is None or row_key < self.stop_row


@dataclass(frozen=True)
class CellVersion:
    """One retained version of a cell."""

    timestamp: int
    value: bytes


@dataclass(frozen=True)
class FileTransferRequest:
    """Local-to-remote file copy request.

    Attributes:
        source_path: Local source file path.
        destination_path: Destination path in the remote namespace.
        atomic: Stage into a temporary sibling and move into place.
    """

    source_path: str
    destination_path: str
    atomic: bool = True


@dataclass(frozen=True)
class TransferResult:
    """Outcome of a completed file transfer."""

    destination_path: str
    bytes_copied: int
    replaced_existing: bool
