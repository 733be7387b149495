"""Unit tests for local-to-remote file transfer."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from core.config import ClusterConfig
from core.constants import COPYING_SUFFIX
from core.errors import TransferError, UseAfterCloseError
from core.types import FileTransferRequest
from dfs.filesystem import FileSystemConnection, open_filesystem
from dfs.transfer import copy_if_absent_or_replace
from tests.fixture_paths import fixture_path


def _open(root: Path) -> FileSystemConnection:
    config = replace(ClusterConfig.from_env(), default_fs=f"file://{root}")
    return open_filesystem(config)


def _sample_bytes() -> bytes:
    return fixture_path("files/sample.txt").read_bytes()


@pytest.mark.parametrize("atomic", [True, False])
def test_copy_to_absent_destination(tmp_path: Path, atomic: bool) -> None:
    """A fresh destination should receive the source bytes."""
    request = FileTransferRequest(
        source_path=str(fixture_path("files/sample.txt")),
        destination_path="/user/demo/out.txt",
        atomic=atomic,
    )

    with _open(tmp_path) as connection:
        result = copy_if_absent_or_replace(connection, request)

    target = tmp_path / "user" / "demo" / "out.txt"
    assert target.read_bytes() == _sample_bytes() and (
        result.bytes_copied == len(_sample_bytes()) and not result.replaced_existing
    )


@pytest.mark.parametrize("atomic", [True, False])
def test_copy_replaces_existing_destination(tmp_path: Path, atomic: bool) -> None:
    """An existing destination should be replaced, never appended to."""
    target = tmp_path / "out.txt"
    target.write_bytes(b"stale content that is longer than nothing at all " * 4)
    request = FileTransferRequest(
        source_path=str(fixture_path("files/sample.txt")),
        destination_path="/out.txt",
        atomic=atomic,
    )

    with _open(tmp_path) as connection:
        result = copy_if_absent_or_replace(connection, request)

    assert target.read_bytes() == _sample_bytes() and result.replaced_existing


def test_atomic_copy_leaves_no_staging_file(tmp_path: Path) -> None:
    """The staging sibling should be gone after a completed copy."""
    request = FileTransferRequest(
        source_path=str(fixture_path("files/sample.txt")),
        destination_path="/out.txt",
    )

    with _open(tmp_path) as connection:
        copy_if_absent_or_replace(connection, request)

    assert sorted(path.name for path in tmp_path.iterdir()) == ["out.txt"] and not (
        tmp_path / f"out.txt{COPYING_SUFFIX}"
    ).exists()


def test_copy_in_small_chunks_counts_every_byte(tmp_path: Path) -> None:
    """Chunked streaming should copy the whole file."""
    request = FileTransferRequest(
        source_path=str(fixture_path("files/sample.txt")),
        destination_path="/out.txt",
    )

    with _open(tmp_path) as connection:
        result = copy_if_absent_or_replace(connection, request, chunk_size=7)

    assert result.bytes_copied == len(_sample_bytes())


def test_missing_source_raises_transfer_error(tmp_path: Path) -> None:
    """A missing local source should fail before touching the destination."""
    target = tmp_path / "out.txt"
    target.write_bytes(b"keep")
    request = FileTransferRequest(
        source_path=str(tmp_path / "absent.txt"),
        destination_path="/out.txt",
        atomic=False,
    )

    with _open(tmp_path) as connection:
        with pytest.raises(TransferError):
            copy_if_absent_or_replace(connection, request)

    assert target.read_bytes() == b"keep"


def test_copy_on_closed_connection_raises_use_after_close(tmp_path: Path) -> None:
    """A closed filesystem connection should reject transfers."""
    connection = _open(tmp_path)
    connection.close()
    request = FileTransferRequest(
        source_path=str(fixture_path("files/sample.txt")),
        destination_path="/out.txt",
    )

    with pytest.raises(UseAfterCloseError):
        copy_if_absent_or_replace(connection, request)

    assert True
