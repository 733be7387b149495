"""Filesystem connection over pyarrow.fs.

This module turns ``config.default_fs`` into a pyarrow filesystem and
wraps it with the same close discipline as store connections. Remote
paths are resolved against the root component of the URI, so a
``file:///srv/namespace`` default maps ``/user/a`` to
``/srv/namespace/user/a``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from core.config import ClusterConfig
from core.constants import DEFAULT_HDFS_PORT
from core.errors import (
    ColbridgeDependencyError,
    ColbridgeError,
    ConnectivityError,
    UseAfterCloseError,
)
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)


class FileSystemConnection:
    """Open handle to a filesystem namespace."""

    def __init__(self, filesystem: Any, root: str = "", uri: str = "") -> None:
        self._filesystem = filesystem
        self._root = "" if root in ("", "/") else root.rstrip("/")
        self._uri = uri
        self._closed = False

    @property
    def uri(self) -> str:
        return self._uri

    @property
    def closed(self) -> bool:
        return self._closed

    def require_filesystem(self, operation: str) -> Any:
        """Return the pyarrow filesystem of an open connection.

        Raises:
            UseAfterCloseError: If the connection was closed.
        """
        if self._closed:
            raise UseAfterCloseError(
                f"Cannot {operation}: filesystem connection was closed. Open a new one."
            )
        return self._filesystem

    def resolve(self, path: str) -> str:
        """Map a namespace path onto the filesystem root."""
        if not self._root:
            return path
        return f"{self._root}/{path.lstrip('/')}"

    def exists(self, path: str) -> bool:
        """Return whether a namespace path exists.

        Raises:
            ConnectivityError: If the filesystem cannot be queried.
        """
        filesystem = self.require_filesystem(f"check {path}")
        return path_exists(filesystem, self.resolve(path))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        _LOGGER.info("filesystem_closed", uri=self._uri)

    def __enter__(self) -> "FileSystemConnection":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def open_filesystem(config: ClusterConfig) -> FileSystemConnection:
    """Open the filesystem named by ``config.default_fs``.

    Args:
        config: Cluster configuration.

    Returns:
        Open filesystem connection.

    Raises:
        ColbridgeDependencyError: If pyarrow is missing.
        ConnectivityError: If the filesystem cannot be reached.
    """
    pafs = load_pyarrow_fs()
    uri = config.default_fs.strip()
    try:
        filesystem, root = _resolve_filesystem(pafs, uri, config.user)
    except ColbridgeError:
        raise
    except Exception as error:
        raise ConnectivityError(
            f"Failed to open filesystem '{uri}': {error}. "
            "Check COLBRIDGE_DEFAULT_FS and the Hadoop client libraries."
        ) from error
    _LOGGER.info("filesystem_opened", uri=uri, user=config.user)
    return FileSystemConnection(filesystem, root=root, uri=uri)


def path_exists(filesystem: Any, path: str) -> bool:
    """Return whether ``path`` exists on a pyarrow filesystem."""
    pafs = load_pyarrow_fs()
    try:
        info = filesystem.get_file_info(path)
    except Exception as error:
        raise ConnectivityError(f"Failed to stat {path}: {error}.") from error
    return info.type != pafs.FileType.NotFound


def load_pyarrow_fs() -> Any:
    """Import ``pyarrow.fs``.

    Raises:
        ColbridgeDependencyError: If pyarrow is missing.
    """
    try:
        import pyarrow.fs as pafs
    except ImportError as error:
        raise ColbridgeDependencyError(
            "File transfer requires pyarrow, but it is not installed. "
            "Install pyarrow to copy files into the distributed filesystem."
        ) from error
    return pafs


def _resolve_filesystem(pafs: Any, uri: str, user: str | None) -> tuple[Any, str]:
    if not uri or uri.startswith("file://") or "://" not in uri:
        local_root = uri.removeprefix("file://")
        root = str(Path(local_root).expanduser().resolve()) if local_root else ""
        return pafs.LocalFileSystem(), root
    if uri.startswith("hdfs://"):
        parsed = urlparse(uri)
        filesystem = pafs.HadoopFileSystem(
            parsed.hostname or "default",
            parsed.port or DEFAULT_HDFS_PORT,
            user=user,
        )
        return filesystem, parsed.path
    filesystem, root = pafs.FileSystem.from_uri(uri)
    return filesystem, root
