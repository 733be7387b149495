"""Colbridge CLI entry points.
This module exposes the table demo and file copy commands.
It maps argparse commands onto client SDK calls.
"""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from cli.copy_file_command import add_copy_file_command, run_copy_file_command
from cli.table_demo_command import add_table_demo_command, run_table_demo_command
from core.config import ClusterConfig
from core.config_file import load_cluster_config
from core.errors import ColbridgeError


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="colbridge",
        description="Column-family store and distributed filesystem client",
    )
    parser.add_argument("--config", help="YAML cluster file overriding environment settings")
    subparsers = parser.add_subparsers(dest="command", required=True)
    add_table_demo_command(subparsers)
    add_copy_file_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Colbridge CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = _build_config(args.config)
        if args.command == "table-demo":
            return run_table_demo_command(config, args)
        if args.command == "copy-file":
            return run_copy_file_command(config, args)
    except ColbridgeError as error:
        print(f"error={error}", file=sys.stderr)
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_config(config_path: str | None) -> ClusterConfig:
    """Build cluster config with optional YAML overrides.

    Args:
        config_path: Optional cluster file path.

    Returns:
        Validated cluster config.
    """
    config = ClusterConfig.from_env()
    if config_path:
        config = load_cluster_config(config_path, base=config)
    return config
