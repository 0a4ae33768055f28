"""Cursor-driven list retrieval and keyed lookups."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Mapping, Optional, Protocol

from okta_tables.errors import ErrorTable, FatalQueryError, NOT_FOUND

logger = logging.getLogger("okta_tables.pagination")


class ResourceClient(Protocol):
    def list(
        self,
        endpoint: str,
        server_filter: Optional[Mapping[str, Any]] = None,
        cursor: Optional[str] = None,
    ) -> tuple[list[dict], Optional[str]]:
        ...

    def get(self, endpoint: str, item_id: str) -> dict:
        ...


@dataclass
class QueryStats:
    """Counters for one query; also surfaced in the query log line."""

    rows_emitted: int = 0
    pages_fetched: int = 0
    gets: int = 0
    parents_listed: int = 0
    parents_pruned: int = 0
    unknown_variants: int = 0
    ignored_errors: int = 0
    hydrate_calls: dict[str, int] = field(default_factory=dict)

    def count_hydrate(self, name: str) -> None:
        self.hydrate_calls[name] = self.hydrate_calls.get(name, 0) + 1

    def merge(self, other: "QueryStats") -> None:
        self.pages_fetched += other.pages_fetched
        self.gets += other.gets
        self.unknown_variants += other.unknown_variants
        self.ignored_errors += other.ignored_errors


class PaginatedFetcher:
    def __init__(
        self,
        client: ResourceClient,
        should_stop: Callable[[], bool] = lambda: False,
        stats: Optional[QueryStats] = None,
    ) -> None:
        self.client = client
        self.should_stop = should_stop
        self.stats = stats if stats is not None else QueryStats()

    def fetch(
        self,
        endpoint: str,
        server_filter: Optional[Mapping[str, Any]] = None,
        errors: ErrorTable = NOT_FOUND,
    ) -> Iterator[dict]:
        """Yield every item of every page, in cursor order.

        A page is only yielded once it has been fetched whole. An ignorable
        failure ends the sequence without error; any other failure raises
        FatalQueryError. Stops early, without error, once should_stop() is true.
        """
        cursor: Optional[str] = None
        first = True
        while first or cursor:
            if self.should_stop():
                logger.debug("Stopping pagination of %s: budget exhausted or cancelled", endpoint)
                return
            try:
                items, cursor = self.client.list(endpoint, server_filter, cursor)
            except Exception as exc:
                self._handle_failure("list", endpoint, exc, errors)
                return
            first = False
            self.stats.pages_fetched += 1
            yield from items

    def get(
        self,
        endpoint: str,
        item_id: str,
        errors: ErrorTable = NOT_FOUND,
    ) -> Optional[dict]:
        """Single keyed lookup. None when the failure is ignorable."""
        if self.should_stop():
            return None
        self.stats.gets += 1
        try:
            return self.client.get(endpoint, item_id)
        except Exception as exc:
            self._handle_failure("get", f"{endpoint}/{item_id}", exc, errors)
            return None

    def _handle_failure(
        self, operation: str, endpoint: str, exc: Exception, errors: ErrorTable
    ) -> None:
        """Swallow an ignorable failure, or re-raise it as FatalQueryError."""
        if isinstance(exc, FatalQueryError):
            raise exc
        if errors.is_ignorable(exc):
            self.stats.ignored_errors += 1
            logger.info(
                "Ignoring %s error on %s: %s", operation, endpoint, exc,
                extra={"endpoint": endpoint},
            )
            return
        logger.error(
            "%s %s failed: %s", operation.capitalize(), endpoint, exc,
            extra={"endpoint": endpoint},
        )
        raise FatalQueryError(f"{operation} {endpoint} failed: {exc}", endpoint) from exc
