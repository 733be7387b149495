"""File copy command wiring for Colbridge CLI."""

from __future__ import annotations

import argparse
from typing import Any

from core.config import ClusterConfig
from core.types import FileTransferRequest
from dfs.filesystem import open_filesystem
from dfs.transfer import copy_if_absent_or_replace


def add_copy_file_command(subparsers: Any) -> None:
    """Register copy-file subcommand."""
    parser = subparsers.add_parser(
        "copy-file",
        help="Copy a local file into the distributed filesystem, replacing any existing file",
    )
    parser.add_argument("source", help="Local source file")
    parser.add_argument("destination", help="Destination path in the filesystem namespace")
    parser.add_argument(
        "--non-atomic",
        action="store_true",
        help="Delete the destination first and stream into it directly",
    )


def run_copy_file_command(config: ClusterConfig, args: argparse.Namespace) -> int:
    """Execute the copy and print a summary."""
    request = FileTransferRequest(
        source_path=args.source,
        destination_path=args.destination,
        atomic=not args.non_atomic,
    )
    with open_filesystem(config) as connection:
        if connection.exists(request.destination_path):
            print("Output already exists")
        result = copy_if_absent_or_replace(connection, request)
    print(f"copied={result.bytes_copied}")
    return 0
