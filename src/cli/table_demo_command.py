"""Table demo command wiring for Colbridge CLI."""

from __future__ import annotations

import argparse
from typing import Any

from core.config import ClusterConfig
from core.constants import (
    DEMO_FAMILY_NAMES,
    DEMO_MAX_VERSIONS,
    DEMO_QUALIFIER,
    DEMO_ROW_KEY,
    DEMO_TABLE_NAME,
    DEMO_VALUE,
)
from core.types import (
    Column,
    RecreatePolicy,
    RowMutation,
    RowResult,
    ScanSpec,
    TableDescriptor,
    to_text,
)
from store.connection import open_connection
from store.table_admin import ensure_table


def add_table_demo_command(subparsers: Any) -> None:
    """Register table-demo subcommand."""
    parser = subparsers.add_parser(
        "table-demo",
        help="Recreate a table, write one cell, read it back, and scan it",
    )
    parser.add_argument("--table", default=DEMO_TABLE_NAME, help="Table name")
    parser.add_argument(
        "--family",
        action="append",
        dest="families",
        help="Column family name; repeat for several (first one receives the write)",
    )
    parser.add_argument(
        "--max-versions",
        type=int,
        default=DEMO_MAX_VERSIONS,
        help="Versions retained per column",
    )
    parser.add_argument(
        "--in-memory",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Ask the store to favor keeping families in memory",
    )
    parser.add_argument("--row", default=DEMO_ROW_KEY, help="Row key to write")
    parser.add_argument("--qualifier", default=DEMO_QUALIFIER, help="Column qualifier to write")
    parser.add_argument("--value", default=DEMO_VALUE, help="Cell value to write")
    parser.add_argument(
        "--policy",
        default=RecreatePolicy.ALWAYS_RECREATE.value,
        choices=[policy.value for policy in RecreatePolicy],
        help="What to do when the table already exists",
    )


def run_table_demo_command(config: ClusterConfig, args: argparse.Namespace) -> int:
    """Execute the table demo and print lookup and scan output."""
    descriptor = TableDescriptor.with_families(
        args.table,
        args.families or DEMO_FAMILY_NAMES,
        max_versions=args.max_versions,
        in_memory=args.in_memory,
    )
    family = descriptor.families[0].name
    column = Column(family, args.qualifier)
    with open_connection(config) as connection:
        ensure_table(connection, descriptor, RecreatePolicy(args.policy))
        with connection.table(args.table) as table:
            table.put(RowMutation(args.row).add(family, args.qualifier, args.value))
            result = table.get(args.row, [column])
            value = result.text(family, args.qualifier) if isinstance(result, RowResult) else None
            print(f"GET: {value}")
            with table.open_scan(ScanSpec(columns=(column,))) as cursor:
                for row in cursor:
                    print(f"Found row: {format_row(row)}")
    return 0


def format_row(row: RowResult) -> str:
    """Render a row as ``keyvalues={row/family:qualifier/vlen=N, ...}``."""
    row_text = to_text(row.row_key)
    entries = [
        f"{row_text}/{family}:{to_text(qualifier)}/vlen={len(row.cells[(family, qualifier)])}"
        for family, qualifier in sorted(row.cells)
    ]
    return "keyvalues={" + ", ".join(entries) + "}"
