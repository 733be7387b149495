"""Local-to-remote file copy with overwrite check.

This module copies one local file into the filesystem namespace. A
pre-existing destination is always replaced. The atomic mode stages the
bytes in a ``._COPYING_`` sibling and moves it into place; the direct
mode deletes the destination first and streams into it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from core.constants import COPYING_SUFFIX, DEFAULT_COPY_CHUNK_SIZE
from core.errors import ColbridgeError, TransferError
from core.logging_config import get_logger
from core.types import FileTransferRequest, TransferResult
from dfs.filesystem import FileSystemConnection, load_pyarrow_fs, path_exists

_LOGGER = get_logger(__name__)


def copy_if_absent_or_replace(
    connection: FileSystemConnection,
    request: FileTransferRequest,
    chunk_size: int = DEFAULT_COPY_CHUNK_SIZE,
) -> TransferResult:
    """Copy a local file to the destination, replacing what is there.

    Args:
        connection: Open filesystem connection.
        request: Source and destination paths plus copy mode.
        chunk_size: Bytes read per chunk while streaming.

    Returns:
        Transfer summary.

    Raises:
        UseAfterCloseError: If the connection was closed.
        TransferError: If the source is missing or any I/O step fails.
            Partial output is left in place and named in the message.
    """
    filesystem = connection.require_filesystem(f"copy to {request.destination_path}")
    source_path = _resolve_source(request.source_path)
    destination = connection.resolve(request.destination_path)
    try:
        replaced_existing = path_exists(filesystem, destination)
    except ColbridgeError as error:
        raise TransferError(f"Failed to check destination {destination}: {error}") from error
    _ensure_parent_dir(filesystem, destination)
    if request.atomic:
        staging_path = destination + COPYING_SUFFIX
        bytes_copied = _stream_copy(source_path, filesystem, staging_path, chunk_size)
        _move(filesystem, staging_path, destination)
    else:
        if replaced_existing:
            _delete(filesystem, destination)
        bytes_copied = _stream_copy(source_path, filesystem, destination, chunk_size)
    _LOGGER.info(
        "transfer_completed",
        source=str(source_path),
        destination=destination,
        bytes_copied=bytes_copied,
        replaced_existing=replaced_existing,
        atomic=request.atomic,
    )
    return TransferResult(
        destination_path=request.destination_path,
        bytes_copied=bytes_copied,
        replaced_existing=replaced_existing,
    )


def _resolve_source(source_path: str) -> Path:
    resolved = Path(source_path).expanduser().resolve()
    if not resolved.is_file():
        raise TransferError(
            f"Source file not found at {resolved}. Provide an existing local file."
        )
    return resolved


def _ensure_parent_dir(filesystem: Any, destination: str) -> None:
    parent = destination.rsplit("/", 1)[0] if "/" in destination else ""
    if not parent:
        return
    try:
        filesystem.create_dir(parent, recursive=True)
    except Exception as error:
        raise TransferError(
            f"Failed to create destination directory {parent}: {error}. "
            "Check namespace permissions for the configured user."
        ) from error


def _delete(filesystem: Any, destination: str) -> None:
    try:
        filesystem.delete_file(destination)
    except Exception as error:
        raise TransferError(
            f"Failed to delete existing destination {destination}: {error}."
        ) from error
    _LOGGER.info("transfer_target_deleted", destination=destination)


def _move(filesystem: Any, staging_path: str, destination: str) -> None:
    try:
        filesystem.move(staging_path, destination)
    except Exception as error:
        raise TransferError(
            f"Failed to move staged copy {staging_path} to {destination}: {error}. "
            f"The staged file is left at {staging_path}."
        ) from error


def _stream_copy(source_path: Path, filesystem: Any, target: str, chunk_size: int) -> int:
    """Stream local bytes into ``target`` and return the byte count."""
    local_filesystem = load_pyarrow_fs().LocalFileSystem()
    bytes_copied = 0
    try:
        with local_filesystem.open_input_stream(
            str(source_path), compression=None
        ) as source_stream:
            with filesystem.open_output_stream(target, compression=None) as target_stream:
                while True:
                    chunk = source_stream.read(chunk_size)
                    if not chunk:
                        break
                    target_stream.write(chunk)
                    bytes_copied += len(chunk)
    except Exception as error:
        raise TransferError(
            f"Failed to copy {source_path} to {target} after {bytes_copied} bytes: {error}. "
            f"Partial output may remain at {target}."
        ) from error
    return bytes_copied
