"""Per-query execution: parent iteration, primary fetch, secondary enrichment.

A query walks three states:

  ParentIteration     list parents (e.g. applications) and prune every parent
                      whose key fails a qualifier on the join column
  PrimaryFetch        list (or get) the table's own items for each surviving
                      parent, resolve their variant and post-filter them
  SecondaryEnrichment run per-row hydrate tasks, only for the columns the
                      caller asked for, on a bounded thread pool

Rows then reach the RowSink in source order. Budget exhaustion and
cancellation are observed before each page, after each parent and after
each emitted row.
"""

from __future__ import annotations

import contextvars
import logging
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Mapping, Optional

from okta_tables.budget import RowBudget, RowEmitter, RowSink
from okta_tables.errors import ErrorTable, NOT_FOUND
from okta_tables.pagination import PaginatedFetcher, QueryStats, ResourceClient
from okta_tables.query import Qualifier, QueryContext
from okta_tables.unions import ResolvedItem, UnionFamily, dig

logger = logging.getLogger("okta_tables.hydrate")


@dataclass(frozen=True)
class ServerFilter:
    """Push an exact qualifier on `column` down as query parameter `param`.

    A template that quotes its value (`status eq "{value}"`) is an Okta filter
    expression; backslashes and double quotes in the value are escaped so the
    expression stays well formed.
    """

    column: str
    param: str
    template: str = "{value}"

    def render(self, value: Any) -> str:
        text = str(value)
        if '"{value}"' in self.template:
            text = text.replace("\\", "\\\\").replace('"', '\\"')
        return self.template.format(value=text)


@dataclass(frozen=True)
class Hydrate:
    """Secondary per-row fetch.

    `endpoint` is formatted with the row's fields. With `key` set the hydrate
    is a single get of row[key] under `endpoint`; otherwise every page of
    `endpoint` is listed.
    """

    name: str
    endpoint: str
    family: Optional[UnionFamily] = None
    errors: ErrorTable = NOT_FOUND
    key: Optional[str] = None


@dataclass(frozen=True)
class Column:
    name: str
    description: str = ""
    hydrate: Optional[Hydrate] = None
    # dotted path into the hydrate result; None takes the whole value
    path: Optional[str] = None


@dataclass(frozen=True)
class ParentConfig:
    endpoint: str
    family: UnionFamily
    join_column: str
    # child column -> parent field
    carry: Mapping[str, str] = field(default_factory=dict)
    server_filter: Mapping[str, Any] = field(default_factory=dict)
    get_when_keyed: bool = False
    errors: ErrorTable = NOT_FOUND


@dataclass(frozen=True)
class ListConfig:
    # formatted with the parent join column, e.g. "/users/{user_id}/factors"
    endpoint: str
    family: UnionFamily
    params: Mapping[str, Any] = field(default_factory=dict)
    server_filters: tuple[ServerFilter, ...] = ()
    required_quals: tuple[str, ...] = ()
    page_size_param: Optional[str] = "limit"
    max_page_size: Optional[int] = None
    errors: ErrorTable = NOT_FOUND


@dataclass(frozen=True)
class GetConfig:
    # formatted with the key qualifiers, e.g. "/users/{user_id}/factors"
    endpoint: str
    key_columns: tuple[str, ...]
    id_column: str = "id"
    family: Optional[UnionFamily] = None
    errors: ErrorTable = NOT_FOUND


@dataclass(frozen=True)
class TableDefinition:
    name: str
    columns: tuple[Column, ...]
    list: Optional[ListConfig] = None
    get: Optional[GetConfig] = None
    parent: Optional[ParentConfig] = None

    def column_names(self) -> tuple[str, ...]:
        return tuple(c.name for c in self.columns)


@dataclass
class HydrateOutcome:
    name: str
    value: Any = None
    executed: bool = False
    stats: QueryStats = field(default_factory=QueryStats)


@dataclass
class HydrateTask:
    """A hydrate bound to one row."""

    hydrate: Hydrate
    row: Mapping[str, Any]

    def run(self, client: ResourceClient, should_stop: Callable[[], bool]) -> HydrateOutcome:
        outcome = HydrateOutcome(self.hydrate.name)
        if should_stop():
            return outcome
        outcome.executed = True
        fetcher = PaginatedFetcher(client, should_stop, outcome.stats)
        endpoint = self.hydrate.endpoint.format(**self.row)

        if self.hydrate.key is not None:
            item = fetcher.get(endpoint, self.row[self.hydrate.key], self.hydrate.errors)
            outcome.value = None if item is None else self._shape(item, outcome.stats)
            return outcome

        items = list(fetcher.fetch(endpoint, None, self.hydrate.errors))
        if outcome.stats.ignored_errors:
            return outcome
        values = []
        for item in items:
            shaped = self._shape(item, outcome.stats)
            if shaped is not None:
                values.append(shaped)
        outcome.value = values
        return outcome

    def _shape(self, item: Any, stats: QueryStats) -> Any:
        family = self.hydrate.family
        if family is None:
            return item
        resolved = family.resolve(item)
        if not resolved.known:
            stats.unknown_variants += 1
            return None
        return dict(resolved.fields)


class HydrateGraph:
    def __init__(
        self,
        table: TableDefinition,
        client: ResourceClient,
        ctx: QueryContext,
        emitter: RowEmitter,
        max_concurrency: int = 8,
        max_page_size: int = 200,
        static_columns: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.table = table
        self.client = client
        self.ctx = ctx
        self.max_concurrency = max(1, max_concurrency)
        self.max_page_size = max_page_size
        self.static_columns = dict(static_columns or {})

        known = set(table.column_names())
        unknown = (set(ctx.columns) | set(ctx.quals)) - known
        if unknown:
            raise ValueError(f"{table.name} has no column(s): {', '.join(sorted(unknown))}")

        self.budget = RowBudget(ctx.remaining_rows())
        self.sink = RowSink(self.budget, emitter, ctx.cancel_event)
        self.stats = QueryStats()
        self.fetcher = PaginatedFetcher(client, self._stopped, self.stats)

        enrichment = {c.name for c in table.columns if c.hydrate is not None}
        self._early_quals = [q for q in ctx.qualifiers() if q.column not in enrichment]
        self._late_quals = [q for q in ctx.qualifiers() if q.column in enrichment]
        self._hydrates = self._needed_hydrates()

        self._pool: Optional[ThreadPoolExecutor] = None
        self._pending: deque[tuple[dict, dict[str, Future]]] = deque()

    def _needed_hydrates(self) -> list[Hydrate]:
        """Distinct hydrates backing at least one requested (or qualified) column."""
        needed: dict[str, Hydrate] = {}
        for column in self.table.columns:
            if column.hydrate is not None and self.ctx.needs(column.name):
                needed.setdefault(column.hydrate.name, column.hydrate)
        return list(needed.values())

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def run(self) -> QueryStats:
        if self._hydrates:
            self._pool = ThreadPoolExecutor(
                max_workers=self.max_concurrency,
                thread_name_prefix=f"hydrate-{self.table.name}",
            )
        try:
            for row in self._candidates():
                if not self._enqueue(row):
                    break
            else:
                self._drain()
        finally:
            if self._pool is not None:
                # Running tasks finish; their results are dropped with _pending.
                self._pool.shutdown(wait=True, cancel_futures=True)
            self._pending.clear()
        self.stats.rows_emitted = self.sink.emitted
        return self.stats

    # ------------------------------------------------------------------
    # ParentIteration / PrimaryFetch
    # ------------------------------------------------------------------

    def _candidates(self) -> Iterator[dict]:
        if self.sink.stopped:
            return

        keys = self._get_keys()
        if keys is not None:
            yield from self._get_rows(keys)
            return

        listing = self.table.list
        if listing is None:
            logger.debug("%s needs all of its get key columns qualified", self.table.name)
            return
        missing = [c for c in listing.required_quals if self.ctx.equals_qual(c) is None]
        if missing:
            logger.debug("%s requires qualifier(s) %s", self.table.name, missing)
            return

        if self.table.parent is None:
            yield from self._list_rows({})
            return

        for parent in self._parents():
            yield from self._list_rows(self._bindings(parent))
            if self.sink.stopped:
                return

    def _parents(self) -> Iterator[ResolvedItem]:
        parent = self.table.parent
        key = self.ctx.equals_qual(parent.join_column)

        if parent.get_when_keyed and key not in (None, ""):
            item = self.fetcher.get(parent.endpoint, key, parent.errors)
            items: Any = [] if item is None else [item]
        else:
            items = self.fetcher.fetch(parent.endpoint, parent.server_filter or None, parent.errors)

        for raw in items:
            resolved = self._resolve(parent.family, raw)
            if resolved is None:
                continue
            self.stats.parents_listed += 1
            if not self.ctx.matches(parent.join_column, resolved.identity):
                self.stats.parents_pruned += 1
                continue
            yield resolved

    def _list_rows(self, bindings: Mapping[str, Any]) -> Iterator[dict]:
        listing = self.table.list
        endpoint = listing.endpoint.format(**bindings)
        for raw in self.fetcher.fetch(endpoint, self._server_filter(), listing.errors):
            row = self._normalize(listing.family, raw, bindings)
            if row is not None and _matches(row, self._early_quals):
                yield row

    def _get_keys(self) -> Optional[dict[str, Any]]:
        get = self.table.get
        if get is None:
            return None
        keys = {}
        for column in get.key_columns:
            value = self.ctx.equals_qual(column)
            if value in (None, ""):
                return None
            keys[column] = value
        return keys

    def _get_rows(self, keys: Mapping[str, Any]) -> Iterator[dict]:
        get = self.table.get
        parent = self.table.parent
        bindings: dict[str, Any] = {}
        if parent is not None and parent.join_column in keys:
            bindings[parent.join_column] = keys[parent.join_column]
            if parent.carry:
                raw_parent = self.fetcher.get(parent.endpoint, keys[parent.join_column], parent.errors)
                if raw_parent is None:
                    return
                resolved = self._resolve(parent.family, raw_parent)
                if resolved is None:
                    return
                bindings = self._bindings(resolved)

        raw = self.fetcher.get(get.endpoint.format(**keys), keys[get.id_column], get.errors)
        if raw is None:
            return
        family = get.family or self.table.list.family
        row = self._normalize(family, raw, bindings)
        if row is not None and _matches(row, self._early_quals):
            yield row

    def _server_filter(self) -> dict[str, Any]:
        listing = self.table.list
        params = dict(listing.params)
        pushed: set[str] = set()
        for sf in listing.server_filters:
            if sf.param in pushed:
                continue
            value = self.ctx.equals_qual(sf.column)
            if value is None:
                continue
            params[sf.param] = sf.render(value)
            pushed.add(sf.param)

        if listing.page_size_param:
            size = listing.max_page_size or self.max_page_size
            if self.ctx.limit:
                size = min(size, self.ctx.limit)
            params[listing.page_size_param] = size
        return params

    def _bindings(self, parent: ResolvedItem) -> dict[str, Any]:
        parent_config = self.table.parent
        bindings = {parent_config.join_column: parent.identity}
        for column, parent_field in parent_config.carry.items():
            bindings[column] = parent.fields.get(parent_field)
        return bindings

    def _resolve(self, family: UnionFamily, raw: Any) -> Optional[ResolvedItem]:
        resolved = family.resolve(raw)
        if resolved.known:
            return resolved
        self.stats.unknown_variants += 1
        tag = dig(raw, family.discriminant) if family.discriminant else None
        logger.warning(
            "Skipping %s item with unknown variant %r", family.name, tag,
            extra={"table": self.table.name, "query_id": self.ctx.query_id},
        )
        return None

    def _normalize(
        self, family: UnionFamily, raw: Any, bindings: Mapping[str, Any]
    ) -> Optional[dict]:
        resolved = self._resolve(family, raw)
        if resolved is None:
            return None
        row: dict[str, Any] = dict.fromkeys(self.table.column_names())
        row.update(self.static_columns)
        row.update(resolved.fields)
        row.update(bindings)
        return row

    # ------------------------------------------------------------------
    # SecondaryEnrichment / emission
    # ------------------------------------------------------------------

    def _enqueue(self, row: dict) -> bool:
        """Hand a row to enrichment. False means production must stop."""
        if self.sink.stopped:
            return False
        if not self._hydrates:
            return self._finish(row, {})

        futures = {
            h.name: self._pool.submit(
                contextvars.copy_context().run,
                HydrateTask(h, dict(row)).run, self.client, self._stopped,
            )
            for h in self._hydrates
        }
        self._pending.append((row, futures))

        # Settle before the next candidate is pulled, so no page is fetched
        # while the whole remaining budget is already in flight.
        while self._pending and len(self._pending) >= self._window():
            if not self._complete_oldest():
                return False
        return not self.sink.stopped

    def _stopped(self) -> bool:
        return self.sink.stopped

    def _window(self) -> int:
        """Rows allowed in enrichment at once; never more than the budget left."""
        remaining = self.budget.remaining
        if remaining is None:
            return self.max_concurrency
        return max(1, min(self.max_concurrency, remaining))

    def _complete_oldest(self) -> bool:
        row, futures = self._pending.popleft()
        values: dict[str, Any] = {}
        for name, future in futures.items():
            outcome = future.result()
            self.stats.merge(outcome.stats)
            if outcome.executed:
                self.stats.count_hydrate(name)
            values[name] = outcome.value
        return self._finish(row, values)

    def _drain(self) -> None:
        while self._pending:
            if not self._complete_oldest():
                return

    def _finish(self, row: dict, values: Mapping[str, Any]) -> bool:
        for column in self.table.columns:
            if column.hydrate is None or column.hydrate.name not in values:
                continue
            value = values[column.hydrate.name]
            row[column.name] = value if column.path is None else dig(value, column.path)

        if not _matches(row, self._late_quals):
            return True
        if not self.sink.emit(self._project(row)):
            return False
        return not self.sink.stopped

    def _project(self, row: Mapping[str, Any]) -> dict[str, Any]:
        names = self.table.column_names()
        if self.ctx.columns:
            names = tuple(n for n in names if n in self.ctx.columns)
        return {name: row.get(name) for name in names}


def _matches(row: Mapping[str, Any], quals: list[Qualifier]) -> bool:
    return all(q.matches(row.get(q.column)) for q in quals)
