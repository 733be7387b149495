"""Colbridge exception hierarchy.

This module defines traceable client errors with clear boundaries.
Each client surface raises a specific error type for debuggability.
"""

from __future__ import annotations


class ColbridgeError(Exception):
    """Base exception for all Colbridge failures."""


class ColbridgeConfigError(ColbridgeError):
    """Raised for invalid runtime configuration or descriptors."""


class ColbridgeDependencyError(ColbridgeError):
    """Raised when an optional runtime dependency is missing."""


class ConnectivityError(ColbridgeError):
    """Raised when the cluster cannot be reached or addressed."""


class UseAfterCloseError(ColbridgeError):
    """Raised when a connection, handle, or cursor is used after release."""


class DeadlineExceededError(ColbridgeError):
    """Raised when a deadline-bounded call does not finish in time."""


class AdminError(ColbridgeError):
    """Raised for table create, delete, disable, or describe failures."""


class TableStateError(AdminError):
    """Raised for invalid table state transitions."""


class MutationError(ColbridgeError):
    """Raised for rejected row mutations."""


class ReadError(ColbridgeError):
    """Raised for point lookup and scan failures."""


class TransferError(ColbridgeError):
    """Raised for file transfer I/O failures."""
