"""Abstract base class for all Okta tables."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Optional

from okta_tables.budget import RowEmitter
from okta_tables.config import ConnectorConfig
from okta_tables.hydrate import (
    Column,
    GetConfig,
    HydrateGraph,
    ListConfig,
    ParentConfig,
    TableDefinition,
)
from okta_tables.logging_config import query_scope
from okta_tables.pagination import QueryStats, ResourceClient
from okta_tables.query import QueryContext

logger = logging.getLogger("okta_tables.table")

TITLE_DESCRIPTION = "Title of the resource."
DOMAIN_DESCRIPTION = "The Okta domain of the connection."


class BaseTable(ABC):
    """Each table declares TABLE_NAME, LIST and/or GET, and its columns()."""

    TABLE_NAME: str = ""
    DESCRIPTION: str = ""
    LIST: Optional[ListConfig] = None
    GET: Optional[GetConfig] = None
    PARENT: Optional[ParentConfig] = None

    def __init__(self, config: ConnectorConfig, client: ResourceClient) -> None:
        self.config = config
        self.client = client

    @abstractmethod
    def columns(self) -> list[Column]:
        """Table-specific columns; domain and title are appended for every table."""

    def definition(self) -> TableDefinition:
        return TableDefinition(
            name=self.TABLE_NAME,
            columns=tuple(self.columns()) + (
                Column("title", TITLE_DESCRIPTION),
                Column("domain", DOMAIN_DESCRIPTION),
            ),
            list=self.LIST,
            get=self.GET,
            parent=self.PARENT,
        )

    def query(self, ctx: QueryContext, emit: RowEmitter) -> QueryStats:
        graph = HydrateGraph(
            self.definition(),
            self.client,
            ctx,
            emit,
            max_concurrency=self.config.engine.max_concurrency,
            max_page_size=self.config.engine.max_page_size,
            static_columns={"domain": self.config.okta.domain},
        )
        with query_scope(self.TABLE_NAME, ctx.query_id):
            return graph.run()

    def query_with_tracking(self, ctx: QueryContext, emit: RowEmitter) -> QueryStats:
        """Wrap query() with timing and outcome logging."""
        started = time.monotonic()
        extra = {"table": self.TABLE_NAME, "query_id": ctx.query_id}
        try:
            stats = self.query(ctx, emit)
        except Exception as exc:
            logger.error(
                "Query failed: %s",
                exc,
                extra={**extra, "duration_s": round(time.monotonic() - started, 3)},
            )
            raise
        logger.info(
            "Query complete (%d pages, %d unknown variants, hydrates %s)",
            stats.pages_fetched,
            stats.unknown_variants,
            stats.hydrate_calls,
            extra={
                **extra,
                "rows": stats.rows_emitted,
                "duration_s": round(time.monotonic() - started, 3),
            },
        )
        return stats
