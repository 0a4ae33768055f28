"""AWS Lambda handler for table queries.

Event format:
  {"table": "okta_factor", "columns": ["id", "factor_type"],
   "quals": {"user_id": "00u1"}, "limit": 100}

A list value in "quals" is a set-membership qualifier.
"""

from __future__ import annotations

import json
import logging
import os

from okta_tables.client import OktaClient
from okta_tables.config import load_config
from okta_tables.errors import FatalQueryError, UnknownTableError
from okta_tables.logging_config import configure_logging

logger = logging.getLogger("okta_tables.lambda")


def handler(event: dict, context) -> dict:
    """Lambda entry point."""
    configure_logging(os.environ.get("LOG_LEVEL", "INFO"))

    table_name = event.get("table", "")
    if not table_name:
        return {"statusCode": 400, "body": "Missing 'table' in event"}

    logger.info("Lambda invoked for table=%s", table_name, extra={"table": table_name})

    from okta_tables.cli import _get_table, build_context

    try:
        config = load_config()
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc, extra={"table": table_name})
        return {
            "statusCode": 500,
            "body": json.dumps({"table": table_name, "error": str(exc)}),
        }
    client = OktaClient(config.okta)
    rows: list[dict] = []

    try:
        table = _get_table(table_name, config, client)
        ctx = build_context(
            columns=event.get("columns") or (),
            quals=event.get("quals") or {},
            limit=event.get("limit"),
        )
        stats = table.query_with_tracking(ctx, lambda row: rows.append(dict(row)))
        return {
            "statusCode": 200,
            "body": json.dumps(
                {"table": table_name, "rows": rows, "row_count": stats.rows_emitted},
                default=str,
            ),
        }
    except (UnknownTableError, ValueError) as exc:
        return {
            "statusCode": 400,
            "body": json.dumps({"table": table_name, "error": str(exc)}),
        }
    except FatalQueryError as exc:
        logger.error("Query failed for %s: %s", table_name, exc, exc_info=True)
        return {
            "statusCode": 500,
            "body": json.dumps({"table": table_name, "error": str(exc)}),
        }
    finally:
        client.close()
