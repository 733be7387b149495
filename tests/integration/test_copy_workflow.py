"""Integration tests for file copy through the SDK facade."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import colbridge
from colbridge import ClusterConfig, FileTransferRequest


def test_copy_twice_replaces_destination(tmp_path: Path) -> None:
    """A second copy should replace the first one's output."""
    config = replace(ClusterConfig.from_env(), default_fs=f"file://{tmp_path / 'namespace'}")
    (tmp_path / "namespace").mkdir()
    first_source = tmp_path / "first.txt"
    first_source.write_bytes(b"first version")
    second_source = tmp_path / "second.txt"
    second_source.write_bytes(b"second")

    with colbridge.open_filesystem(config) as connection:
        first = colbridge.copy_if_absent_or_replace(
            connection, FileTransferRequest(str(first_source), "/data/file.txt")
        )
        second = colbridge.copy_if_absent_or_replace(
            connection, FileTransferRequest(str(second_source), "/data/file.txt")
        )

    stored = (tmp_path / "namespace" / "data" / "file.txt").read_bytes()
    assert (first.replaced_existing, second.replaced_existing, stored) == (
        False,
        True,
        b"second",
    )
