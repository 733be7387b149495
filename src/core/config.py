"""Runtime configuration model for Colbridge.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os

from core.constants import (
    DEFAULT_BACKEND,
    DEFAULT_FS_URI,
    DEFAULT_THRIFT_PORT,
    DEFAULT_ZOOKEEPER_PORT,
    DEFAULT_ZOOKEEPER_QUORUM,
    SUPPORTED_BACKENDS,
)
from core.errors import ColbridgeConfigError


@dataclass(frozen=True)
class ClusterConfig:
    """Validated cluster configuration.

    Attributes:
        backend: Store backend name, ``hbase`` or ``memory``.
        quorum: Ordered quorum host names tried at connection time.
        client_port: Coordination service client port of the quorum. The
            Thrift backend never dials it; it is validated, logged at
            connection time, and kept so cluster files carry the full
            quorum address.
        thrift_port: Store gateway port served on each quorum host.
        default_fs: Distributed filesystem URI, e.g. ``hdfs://host:8020``.
        user: Optional remote user identity for filesystem access.
        timeout_seconds: Optional default deadline for table operations.
    """

    backend: str
    quorum: tuple[str, ...]
    client_port: int
    thrift_port: int
    default_fs: str
    user: str | None
    timeout_seconds: float | None

    @classmethod
    def from_env(cls) -> "ClusterConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            ColbridgeConfigError: If environment values are invalid.
        """
        backend = parse_backend(os.getenv("COLBRIDGE_BACKEND", DEFAULT_BACKEND))
        quorum = parse_quorum(os.getenv("COLBRIDGE_ZOOKEEPER_QUORUM", DEFAULT_ZOOKEEPER_QUORUM))
        client_port = parse_port(
            os.getenv("COLBRIDGE_ZOOKEEPER_PORT", str(DEFAULT_ZOOKEEPER_PORT)),
            "COLBRIDGE_ZOOKEEPER_PORT",
        )
        thrift_port = parse_port(
            os.getenv("COLBRIDGE_THRIFT_PORT", str(DEFAULT_THRIFT_PORT)),
            "COLBRIDGE_THRIFT_PORT",
        )
        timeout_value = os.getenv("COLBRIDGE_TIMEOUT_SECONDS")
        return cls(
            backend=backend,
            quorum=quorum,
            client_port=client_port,
            thrift_port=thrift_port,
            default_fs=os.getenv("COLBRIDGE_DEFAULT_FS", DEFAULT_FS_URI),
            user=os.getenv("HADOOP_USER_NAME") or None,
            timeout_seconds=parse_timeout(timeout_value) if timeout_value else None,
        )


def parse_backend(raw_value: str) -> str:
    """Validate a backend name.

    Args:
        raw_value: Raw backend string.

    Returns:
        Normalized backend name.

    Raises:
        ColbridgeConfigError: If backend is unsupported.
    """
    backend = raw_value.strip().lower()
    if backend not in SUPPORTED_BACKENDS:
        raise ColbridgeConfigError(
            f"Unsupported backend '{raw_value}'. "
            f"Set COLBRIDGE_BACKEND to one of: {', '.join(SUPPORTED_BACKENDS)}."
        )
    return backend


def parse_quorum(raw_value: str) -> tuple[str, ...]:
    """Split a comma-separated quorum host list.

    Args:
        raw_value: Raw host list, e.g. ``zk1,zk2,zk3``.

    Returns:
        Ordered tuple of non-empty host names.
    """
    return tuple(host.strip() for host in raw_value.split(",") if host.strip())


def parse_port(raw_value: str, field_name: str) -> int:
    """Parse a TCP port value.

    Args:
        raw_value: Raw string from environment or config file.
        field_name: Setting name used in error messages.

    Returns:
        Parsed port number.

    Raises:
        ColbridgeConfigError: If value is not an integer in [1, 65535].
    """
    try:
        port = int(raw_value)
    except ValueError as error:
        raise ColbridgeConfigError(
            f"Invalid {field_name} value: expected integer, got '{raw_value}'. "
            f"Set {field_name} to a numeric port."
        ) from error
    if not 0 < port < 65536:
        raise ColbridgeConfigError(
            f"Invalid {field_name} value: port {port} is outside 1-65535."
        )
    return port


def parse_timeout(raw_value: str) -> float:
    """Parse a positive timeout in seconds.

    Args:
        raw_value: Raw string value.

    Returns:
        Timeout in seconds.

    Raises:
        ColbridgeConfigError: If value is not a positive number.
    """
    try:
        timeout = float(raw_value)
    except ValueError as error:
        raise ColbridgeConfigError(
            "Invalid COLBRIDGE_TIMEOUT_SECONDS value: "
            f"expected number, got '{raw_value}'. "
            "Set COLBRIDGE_TIMEOUT_SECONDS to a positive number of seconds."
        ) from error
    if timeout <= 0:
        raise ColbridgeConfigError(
            f"Invalid COLBRIDGE_TIMEOUT_SECONDS value: {timeout} must be positive."
        )
    return timeout
