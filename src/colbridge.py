"""Public SDK surface for Colbridge.

This module provides a stable import path for client users.
It re-exports the connection, admin, table, scan, and file transfer
entry points together with the typed models they exchange.
"""

from __future__ import annotations

from core.config import ClusterConfig
from core.config_file import load_cluster_config
from core.deadline import call_with_deadline
from core.errors import (
    AdminError,
    ColbridgeError,
    ConnectivityError,
    DeadlineExceededError,
    MutationError,
    ReadError,
    TableStateError,
    TransferError,
    UseAfterCloseError,
)
from core.types import (
    END_OF_SCAN,
    Cell,
    CellVersion,
    Column,
    ColumnFamilyDescriptor,
    EndOfScan,
    FileTransferRequest,
    NotFound,
    RecreatePolicy,
    RowMutation,
    RowResult,
    ScanSpec,
    TableDescriptor,
    TransferResult,
)
from dfs.filesystem import FileSystemConnection, open_filesystem
from dfs.transfer import copy_if_absent_or_replace
from store.connection import Connection, close_connection, open_connection
from store.memory_backend import InMemoryStoreBackend
from store.scan_cursor import ScanCursor
from store.table_admin import TableAdmin, ensure_table
from store.table_handle import TableHandle, get, open_scan, put

__all__ = [
    "END_OF_SCAN",
    "AdminError",
    "Cell",
    "CellVersion",
    "ClusterConfig",
    "ColbridgeError",
    "Column",
    "ColumnFamilyDescriptor",
    "Connection",
    "ConnectivityError",
    "DeadlineExceededError",
    "EndOfScan",
    "FileSystemConnection",
    "FileTransferRequest",
    "InMemoryStoreBackend",
    "MutationError",
    "NotFound",
    "ReadError",
    "RecreatePolicy",
    "RowMutation",
    "RowResult",
    "ScanCursor",
    "ScanSpec",
    "TableAdmin",
    "TableDescriptor",
    "TableHandle",
    "TableStateError",
    "TransferError",
    "TransferResult",
    "UseAfterCloseError",
    "call_with_deadline",
    "close_connection",
    "copy_if_absent_or_replace",
    "ensure_table",
    "get",
    "load_cluster_config",
    "open_connection",
    "open_filesystem",
    "open_scan",
    "put",
]
