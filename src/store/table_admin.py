"""Table administration.

This module creates, disables, deletes, and reconciles tables. The
reconciliation entry point, ``ensure_table``, makes its recreate policy
explicit: the default destroys and recreates a present table, which
drops every row it held.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, TypeVar

from core.errors import AdminError, ColbridgeError, TableStateError, UseAfterCloseError
from core.logging_config import get_logger
from core.types import RecreatePolicy, TableDescriptor

if TYPE_CHECKING:
    from store.connection import Connection

_LOGGER = get_logger(__name__)

ResultT = TypeVar("ResultT")


class TableAdmin:
    """Lightweight administrator derived from a connection."""

    def __init__(self, connection: "Connection") -> None:
        self._connection = connection
        self._closed = False

    def list_tables(self) -> tuple[str, ...]:
        return self._call("list tables", lambda backend: backend.list_tables())

    def is_table_available(self, name: str) -> bool:
        """Return whether the table is present in the cluster, enabled or not."""
        return self._call(
            f"check table '{name}'",
            lambda backend: backend.is_table_available(name),
        )

    def is_table_enabled(self, name: str) -> bool:
        return self._call(
            f"check state of table '{name}'",
            lambda backend: backend.is_table_enabled(name),
        )

    def enable_table(self, name: str) -> None:
        self._call(f"enable table '{name}'", lambda backend: backend.enable_table(name))
        _LOGGER.info("table_enabled", table=name)

    def disable_table(self, name: str) -> None:
        self._call(f"disable table '{name}'", lambda backend: backend.disable_table(name))
        _LOGGER.info("table_disabled", table=name)

    def delete_table(self, name: str) -> None:
        """Delete a disabled table.

        Raises:
            TableStateError: If the table is still enabled.
            AdminError: If the backend rejects the deletion.
        """
        if self.is_table_enabled(name):
            raise TableStateError(
                f"Cannot delete table '{name}' while it is enabled. Disable it first."
            )
        self._call(f"delete table '{name}'", lambda backend: backend.delete_table(name))
        _LOGGER.info("table_deleted", table=name)

    def create_table(self, descriptor: TableDescriptor) -> None:
        """Create a table with every column family in one call.

        Raises:
            AdminError: If the table already exists or creation fails.
        """
        if self.is_table_available(descriptor.name):
            raise AdminError(
                f"Cannot create table '{descriptor.name}': it already exists."
            )
        self._call(
            f"create table '{descriptor.name}'",
            lambda backend: backend.create_table(descriptor),
        )
        _LOGGER.info(
            "table_created",
            table=descriptor.name,
            families=list(descriptor.family_names()),
        )

    def describe_table(self, name: str) -> TableDescriptor:
        return self._call(
            f"describe table '{name}'",
            lambda backend: backend.describe_table(name),
        )

    def ensure_table(
        self,
        descriptor: TableDescriptor,
        policy: RecreatePolicy = RecreatePolicy.ALWAYS_RECREATE,
    ) -> None:
        """Make sure a table with this descriptor exists.

        ``ALWAYS_RECREATE`` disables and deletes a present table before
        creating it again, so rows written earlier do not survive.
        ``CREATE_IF_ABSENT`` leaves a present table untouched.
        ``FAIL_IF_MISMATCH`` keeps a present table only when its stored
        schema equals the descriptor.

        Args:
            descriptor: Requested table schema.
            policy: Reconciliation policy for a present table.

        Raises:
            AdminError: If any step fails or the schema mismatches.
        """
        name = descriptor.name
        if self.is_table_available(name):
            if policy is RecreatePolicy.CREATE_IF_ABSENT:
                _LOGGER.info("table_kept", table=name, policy=policy.value)
                return
            if policy is RecreatePolicy.FAIL_IF_MISMATCH:
                existing = self.describe_table(name)
                if not same_schema(existing, descriptor):
                    raise AdminError(
                        f"Table '{name}' exists with families {existing.family_names()} "
                        f"but {descriptor.family_names()} were requested. "
                        "Use the always-recreate policy to replace it."
                    )
                _LOGGER.info("table_kept", table=name, policy=policy.value)
                return
            if self.is_table_enabled(name):
                self.disable_table(name)
            self.delete_table(name)
        if self.is_table_available(name):
            _LOGGER.warning("table_present_after_delete", table=name)
            return
        self.create_table(descriptor)

    def close(self) -> None:
        self._closed = True

    def __enter__(self) -> "TableAdmin":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _call(self, description: str, operation: Callable[[Any], ResultT]) -> ResultT:
        if self._closed:
            raise UseAfterCloseError(f"Cannot {description}: table admin was closed.")
        backend = self._connection.require_backend(description)
        try:
            return operation(backend)
        except ColbridgeError:
            raise
        except Exception as error:
            raise AdminError(f"Failed to {description}: {error}.") from error


def ensure_table(
    connection: "Connection",
    descriptor: TableDescriptor,
    policy: RecreatePolicy = RecreatePolicy.ALWAYS_RECREATE,
) -> None:
    """Ensure a table through a short-lived admin of ``connection``."""
    with connection.admin() as admin:
        admin.ensure_table(descriptor, policy)


def same_schema(left: TableDescriptor, right: TableDescriptor) -> bool:
    """Compare descriptors ignoring family declaration order."""
    return left.name == right.name and sorted(
        left.families, key=lambda family: family.name
    ) == sorted(right.families, key=lambda family: family.name)
