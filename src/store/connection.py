"""Long-lived store connection.

This module opens the process-wide connection to the column-family
store. Connections are expensive and meant to be held for the life of
a process; lightweight table handles and admins are derived from them
per unit of work and closed afterwards.
"""

from __future__ import annotations

import threading
from typing import Any

from core.config import ClusterConfig
from core.errors import ColbridgeError, ConnectivityError, UseAfterCloseError
from core.logging_config import get_logger
from store.backend import StoreBackend
from store.hbase_backend import HappyBaseStoreBackend
from store.memory_backend import InMemoryStoreBackend
from store.table_admin import TableAdmin
from store.table_handle import TableHandle

_LOGGER = get_logger(__name__)


class Connection:
    """Open connection to a column-family store cluster.

    Deriving handles is safe from several threads; the handles
    themselves must stay confined to one thread at a time.
    """

    def __init__(self, config: ClusterConfig, backend: StoreBackend) -> None:
        self._config = config
        self._backend = backend
        self._lock = threading.Lock()
        self._handles: list[TableHandle] = []
        self._closed = False

    @property
    def config(self) -> ClusterConfig:
        return self._config

    @property
    def closed(self) -> bool:
        return self._closed

    def require_backend(self, operation: str) -> StoreBackend:
        """Return the backend of an open connection.

        Args:
            operation: Operation name used in error messages.

        Raises:
            UseAfterCloseError: If the connection was closed.
        """
        if self._closed:
            raise UseAfterCloseError(
                f"Cannot {operation}: connection was closed. Open a new connection."
            )
        return self._backend

    def table(self, name: str, timeout_seconds: float | None = None) -> TableHandle:
        """Derive a table handle.

        Args:
            name: Table name.
            timeout_seconds: Default deadline for handle operations;
                falls back to the configured timeout.

        Returns:
            New table handle; close it when the unit of work ends.
        """
        with self._lock:
            self.require_backend(f"open table '{name}'")
            timeout = timeout_seconds
            if timeout is None:
                timeout = self._config.timeout_seconds
            handle = TableHandle(self, name, timeout, on_close=self._forget_handle)
            self._handles.append(handle)
            return handle

    def admin(self) -> TableAdmin:
        """Derive a table administrator."""
        with self._lock:
            self.require_backend("open table admin")
            return TableAdmin(self)

    def list_tables(self) -> tuple[str, ...]:
        """Return table names known to the cluster."""
        with self.admin() as admin:
            return admin.list_tables()

    def close(self) -> None:
        """Close derived table handles and release the backend.

        Later calls are no-ops.

        Raises:
            ConnectivityError: If the backend fails while closing.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            handles = list(self._handles)
        for handle in handles:
            handle.close()
        try:
            self._backend.close()
        except Exception as error:
            raise ConnectivityError(
                f"Failed to close store connection cleanly: {error}."
            ) from error
        _LOGGER.info("connection_closed", backend=self._config.backend)

    def _forget_handle(self, handle: TableHandle) -> None:
        with self._lock:
            if handle in self._handles:
                self._handles.remove(handle)

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def open_connection(config: ClusterConfig, backend: StoreBackend | None = None) -> Connection:
    """Open a store connection.

    Args:
        config: Cluster configuration.
        backend: Optional pre-built backend; built from ``config.backend``
            when omitted.

    Returns:
        Open connection.

    Raises:
        ConnectivityError: If configuration is unusable or the cluster
            cannot be reached.
    """
    _validate_address(config)
    store_backend = backend if backend is not None else _build_backend(config)
    _LOGGER.info(
        "connection_opened",
        backend=config.backend,
        quorum=",".join(config.quorum),
        client_port=config.client_port,
        thrift_port=config.thrift_port,
    )
    return Connection(config, store_backend)


def close_connection(connection: Connection) -> None:
    """Close a store connection."""
    connection.close()


def _validate_address(config: ClusterConfig) -> None:
    if not config.quorum:
        raise ConnectivityError(
            "Cluster quorum is empty. Set COLBRIDGE_ZOOKEEPER_QUORUM to at least one host."
        )
    if config.client_port <= 0 or config.thrift_port <= 0:
        raise ConnectivityError(
            f"Cluster ports must be positive, got client_port={config.client_port} "
            f"and thrift_port={config.thrift_port}."
        )


def _build_backend(config: ClusterConfig) -> StoreBackend:
    if config.backend == "memory":
        return InMemoryStoreBackend()
    try:
        return HappyBaseStoreBackend.connect(config)
    except ColbridgeError:
        raise
    except Exception as error:
        raise ConnectivityError(
            f"Failed to connect to HBase cluster at {','.join(config.quorum)}: {error}."
        ) from error
