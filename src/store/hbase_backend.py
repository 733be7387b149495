"""HBase Thrift backend built on happybase.

This module adapts a happybase connection to the store backend protocol.
Connections are tried against each quorum host in order on the Thrift
gateway port; the first host that accepts wins.
"""

from __future__ import annotations

from itertools import islice
from typing import Any, Callable, Iterator, Sequence

from core.config import ClusterConfig
from core.constants import COLUMN_SEPARATOR
from core.errors import ColbridgeDependencyError, ConnectivityError
from core.logging_config import get_logger
from core.types import (
    Cell,
    CellKey,
    CellVersion,
    Column,
    ColumnFamilyDescriptor,
    ScanSpec,
    TableDescriptor,
)
from store.backend import StoredRow

_LOGGER = get_logger(__name__)

ConnectionFactory = Callable[..., Any]
_KEY_PROBE_FILTER = b"FirstKeyOnlyFilter() AND KeyOnlyFilter()"


class HappyBaseStoreBackend:
    """Store backend delegating to a happybase ``Connection``."""

    def __init__(self, connection: Any) -> None:
        self._connection = connection

    @classmethod
    def connect(
        cls,
        config: ClusterConfig,
        connection_factory: ConnectionFactory | None = None,
    ) -> "HappyBaseStoreBackend":
        """Open a Thrift connection to the first reachable quorum host.

        Args:
            config: Cluster configuration.
            connection_factory: Optional replacement for ``happybase.Connection``.

        Returns:
            Connected backend.

        Raises:
            ColbridgeDependencyError: If happybase is missing.
            ConnectivityError: If no quorum host accepts the connection.
        """
        factory = connection_factory or _load_happybase().Connection
        timeout_millis = (
            None if config.timeout_seconds is None else int(config.timeout_seconds * 1000)
        )
        failures: list[str] = []
        for host in config.quorum:
            try:
                connection = factory(
                    host=host,
                    port=config.thrift_port,
                    timeout=timeout_millis,
                    autoconnect=False,
                )
                connection.open()
            except Exception as error:
                failures.append(f"{host}:{config.thrift_port} ({error})")
                _LOGGER.warning("quorum_host_unreachable", host=host, port=config.thrift_port)
                continue
            return cls(connection)
        raise ConnectivityError(
            "Could not reach any HBase Thrift gateway: "
            f"{'; '.join(failures) or 'empty quorum'}. "
            "Check COLBRIDGE_ZOOKEEPER_QUORUM and COLBRIDGE_THRIFT_PORT."
        )

    def list_tables(self) -> tuple[str, ...]:
        return tuple(sorted(_decode(name) for name in self._connection.tables()))

    def is_table_available(self, name: str) -> bool:
        return name in self.list_tables()

    def is_table_enabled(self, name: str) -> bool:
        return bool(self._connection.is_table_enabled(name))

    def enable_table(self, name: str) -> None:
        self._connection.enable_table(name)

    def disable_table(self, name: str) -> None:
        self._connection.disable_table(name)

    def delete_table(self, name: str) -> None:
        self._connection.delete_table(name, disable=False)

    def create_table(self, descriptor: TableDescriptor) -> None:
        families = {
            family.name: {"max_versions": family.max_versions, "in_memory": family.in_memory}
            for family in descriptor.families
        }
        self._connection.create_table(descriptor.name, families)

    def describe_table(self, name: str) -> TableDescriptor:
        raw_families = self._connection.table(name).families()
        families = tuple(
            ColumnFamilyDescriptor(
                name=_decode(family_name),
                max_versions=int(options.get("max_versions", 1)),
                in_memory=bool(options.get("in_memory", False)),
            )
            for family_name, options in sorted(raw_families.items())
        )
        return TableDescriptor(name=name, families=families)

    def put_row(
        self,
        table: str,
        row_key: bytes,
        cells: Sequence[Cell],
        timestamp: int | None,
    ) -> None:
        data = {Column(cell.family, cell.qualifier).encoded(): cell.value for cell in cells}
        self._connection.table(table).put(row_key, data, timestamp=timestamp)

    def get_row(
        self,
        table: str,
        row_key: bytes,
        columns: Sequence[Column],
        timestamp: int | None,
    ) -> dict[CellKey, bytes]:
        data = self._connection.table(table).row(
            row_key,
            columns=_encode_columns(columns),
            timestamp=_exclusive_timestamp(timestamp),
        )
        return _decode_cells(data)

    def get_cell_versions(
        self,
        table: str,
        row_key: bytes,
        column: Column,
        max_versions: int,
    ) -> list[CellVersion]:
        cells = self._connection.table(table).cells(
            row_key,
            column.encoded(),
            versions=max_versions,
            include_timestamp=True,
        )
        return [CellVersion(timestamp=int(timestamp), value=value) for value, timestamp in cells]

    def row_exists(self, table: str, row_key: bytes) -> bool:
        rows = self._connection.table(table).scan(
            row_start=row_key,
            row_stop=row_key + b"\x00",
            filter=_KEY_PROBE_FILTER,
            limit=1,
        )
        try:
            return next(rows, None) is not None
        finally:
            rows.close()

    def delete_row(self, table: str, row_key: bytes) -> None:
        self._connection.table(table).delete(row_key)

    def open_scanner(self, table: str, spec: ScanSpec) -> "_HappyBaseScanner":
        rows = self._connection.table(table).scan(
            row_start=spec.start_row,
            row_stop=spec.stop_row,
            columns=_encode_columns(spec.columns),
            timestamp=_exclusive_timestamp(spec.timestamp),
            batch_size=spec.batch_size,
            limit=spec.limit,
        )
        return _HappyBaseScanner(rows)

    def close(self) -> None:
        self._connection.close()


class _HappyBaseScanner:
    """Batch view over a happybase scan generator.

    The generator holds the Thrift scanner id and releases it when the
    generator finishes or is closed.
    """

    def __init__(self, rows: Iterator[tuple[bytes, dict[bytes, bytes]]]) -> None:
        self._rows = rows

    def fetch(self, count: int) -> list[StoredRow]:
        return [(row_key, _decode_cells(data)) for row_key, data in islice(self._rows, count)]

    def close(self) -> None:
        close = getattr(self._rows, "close", None)
        if close is not None:
            close()


def _load_happybase() -> Any:
    try:
        import happybase
    except ImportError as error:
        raise ColbridgeDependencyError(
            "The hbase backend requires happybase, but it is not installed. "
            "Install happybase or set COLBRIDGE_BACKEND=memory."
        ) from error
    return happybase


def _encode_columns(columns: Sequence[Column]) -> list[bytes] | None:
    return [column.encoded() for column in columns] or None


def _exclusive_timestamp(timestamp: int | None) -> int | None:
    """Thrift reads return cells strictly older than the bound."""
    return None if timestamp is None else timestamp + 1


def _decode_cells(data: dict[bytes, bytes]) -> dict[CellKey, bytes]:
    cells: dict[CellKey, bytes] = {}
    for column_name, value in data.items():
        family, _, qualifier = column_name.partition(COLUMN_SEPARATOR.encode("utf-8"))
        cells[(_decode(family), qualifier)] = value
    return cells


def _decode(value: bytes | str) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value
