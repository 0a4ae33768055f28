"""CLI entry point: tables, query."""

from __future__ import annotations

import argparse
import importlib
import json
import logging
import os
import sys
from typing import Any, Iterable, Mapping

from okta_tables.base_table import BaseTable
from okta_tables.client import OktaClient
from okta_tables.config import ConnectorConfig, load_config
from okta_tables.errors import FatalQueryError, UnknownTableError
from okta_tables.logging_config import configure_logging
from okta_tables.pagination import ResourceClient
from okta_tables.query import Qualifier, QueryContext

logger = logging.getLogger("okta_tables.cli")


TABLE_REGISTRY: dict[str, tuple[str, str]] = {
    # name -> (module_path, class_name)
    "okta_user": ("okta_tables.tables.user", "UserTable"),
    "okta_application": ("okta_tables.tables.application", "ApplicationTable"),
    "okta_app_assigned_user": ("okta_tables.tables.app_assigned_user", "AppAssignedUserTable"),
    "okta_factor": ("okta_tables.tables.factor", "FactorTable"),
    "okta_password_policy": ("okta_tables.tables.password_policy", "PasswordPolicyTable"),
    "okta_mfa_policy": ("okta_tables.tables.mfa_policy", "MfaPolicyTable"),
    "okta_signon_policy": ("okta_tables.tables.signon_policy", "SignonPolicyTable"),
}


def _table_class(name: str) -> type[BaseTable]:
    entry = TABLE_REGISTRY.get(name)
    if not entry:
        raise UnknownTableError(f"unknown table {name!r}")
    module_path, class_name = entry
    module = importlib.import_module(module_path)
    return getattr(module, class_name)


def _get_table(name: str, config: ConnectorConfig, client: ResourceClient) -> BaseTable:
    """Instantiate a table by name."""
    return _table_class(name)(config, client)


def build_context(
    columns: Iterable[str] = (),
    quals: Mapping[str, Any] | None = None,
    limit: int | None = None,
) -> QueryContext:
    """QueryContext from plain values: a list value means set membership."""
    qualifiers = []
    for column, value in (quals or {}).items():
        if isinstance(value, (list, tuple)):
            qualifiers.append(Qualifier.one_of(column, value))
        else:
            qualifiers.append(Qualifier.exact(column, value))
    return QueryContext.build(columns=columns, quals=qualifiers, limit=limit)


def _parse_where(exact: list[str], members: list[str]) -> list[Qualifier]:
    """Qualifiers from --where / --where-in; repeating a column ANDs them."""
    quals: list[Qualifier] = []
    for raw in exact:
        column, sep, value = raw.partition("=")
        if not sep or not column.strip():
            raise argparse.ArgumentTypeError(f"expected COLUMN=VALUE, got {raw!r}")
        quals.append(Qualifier.exact(column.strip(), value))
    for raw in members:
        column, sep, values = raw.partition("=")
        if not sep or not column.strip():
            raise argparse.ArgumentTypeError(f"expected COLUMN=V1,V2,..., got {raw!r}")
        quals.append(Qualifier.one_of(column.strip(), [v.strip() for v in values.split(",") if v.strip()]))
    return quals


def cmd_tables(args: argparse.Namespace) -> None:
    """List the available tables."""
    for name in sorted(TABLE_REGISTRY):
        print(f"{name:<26}  {_table_class(name).DESCRIPTION}")


def cmd_query(args: argparse.Namespace) -> None:
    """Run one query and stream rows as JSON lines."""
    client = None
    try:
        config = load_config()
        client = OktaClient(config.okta)
        table = _get_table(args.table, config, client)
        ctx = QueryContext.build(
            columns=args.column or (),
            quals=_parse_where(args.where or [], args.where_in or []),
            limit=args.limit,
        )

        def emit(row: Mapping[str, Any]) -> None:
            print(json.dumps(dict(row), default=str), flush=True)

        table.query_with_tracking(ctx, emit)
    except (UnknownTableError, ValueError, argparse.ArgumentTypeError) as exc:
        logger.error("Invalid query: %s", exc)
        sys.exit(2)
    except FatalQueryError:
        sys.exit(1)
    finally:
        if client is not None:
            client.close()


def main() -> None:
    """Main CLI entry point."""
    configure_logging(os.environ.get("LOG_LEVEL", "INFO"))

    parser = argparse.ArgumentParser(
        prog="okta-tables",
        description="Query Okta resources as tables",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    tables_parser = subparsers.add_parser("tables", help="List available tables")
    tables_parser.set_defaults(func=cmd_tables)

    query_parser = subparsers.add_parser("query", help="Query a table")
    query_parser.add_argument("table", choices=sorted(TABLE_REGISTRY))
    query_parser.add_argument(
        "--column", "-c",
        action="append",
        help="Column to return; repeat for several (default: all)",
    )
    query_parser.add_argument(
        "--where", "-w",
        action="append",
        metavar="COLUMN=VALUE",
        help="Exact-match qualifier; repeat for several",
    )
    query_parser.add_argument(
        "--where-in",
        action="append",
        metavar="COLUMN=V1,V2",
        help="Set-membership qualifier; repeat for several",
    )
    query_parser.add_argument(
        "--limit", "-l",
        type=int,
        default=None,
        help="Maximum number of rows to return",
    )
    query_parser.set_defaults(func=cmd_query)

    args = parser.parse_args()
    args.func(args)
