"""Tests for HydrateGraph: budget, pruning, pushdown, enrichment, cancellation."""

import math
import threading

import pytest

from conftest import not_found
from okta_tables.errors import FatalQueryError, OktaApiError
from okta_tables.hydrate import (
    Column,
    GetConfig,
    Hydrate,
    HydrateGraph,
    ListConfig,
    ServerFilter,
    TableDefinition,
)
from okta_tables.query import Qualifier, QueryContext
from okta_tables.unions import UnionFamily, Variant

ITEMS = UnionFamily(
    name="item",
    discriminant="kind",
    variants=(Variant("plain"), Variant("fancy", {"extra": "fancy.extra"})),
    common_fields={"name": "name", "group": "group"},
)

INFO = Hydrate(name="info", endpoint="/info", key="id")
HISTORY = Hydrate(name="history", endpoint="/items/{id}/history")


def _table(**list_overrides):
    listing = dict(
        endpoint="/items",
        family=ITEMS,
        server_filters=(ServerFilter("group", "filter", 'group eq "{value}"'),),
    )
    listing.update(list_overrides)
    return TableDefinition(
        name="test_item",
        columns=(
            Column("id"),
            Column("name"),
            Column("group"),
            Column("extra"),
            Column("info", hydrate=INFO),
            Column("info_size", hydrate=INFO, path="size"),
            Column("history", hydrate=HISTORY),
        ),
        list=ListConfig(**listing),
        get=GetConfig(endpoint="/items", key_columns=("id",)),
    )


def _items(start, count=10, kind="plain", group="a"):
    return [
        {"id": f"i{n}", "kind": kind, "name": f"item {n}", "group": group}
        for n in range(start, start + count)
    ]


def _run(client, rows, table=None, columns=(), quals=(), limit=None, **kwargs):
    ctx = QueryContext.build(columns=columns, quals=quals, limit=limit)
    graph = HydrateGraph(table or _table(), client, ctx, rows, max_concurrency=4, **kwargs)
    return graph.run()


@pytest.fixture
def three_pages(client):
    client.add_pages("/items", _items(0), _items(10), _items(20))
    return client


class TestRowBudget:
    @pytest.mark.parametrize("limit", [0, 1, 5, 10, 11, 25, 30, 45])
    def test_emits_at_most_limit_rows_and_no_extra_pages(self, three_pages, rows, limit):
        stats = _run(three_pages, rows, columns=("id", "name"), limit=limit)

        assert len(rows) == min(limit, 30)
        assert stats.rows_emitted == len(rows)
        expected_pages = 0 if limit == 0 else min(3, math.ceil(limit / 10))
        assert len(three_pages.list_calls("/items")) == expected_pages

    @pytest.mark.parametrize("limit", [0, 1, 3, 7, 12])
    def test_no_enrichment_dispatched_beyond_limit(self, three_pages, rows, limit):
        stats = _run(three_pages, rows, columns=("id", "history"), limit=limit)

        history_calls = [c for c in three_pages.list_calls() if c[1].endswith("/history")]
        assert len(rows) == limit
        assert len(history_calls) == limit
        assert stats.hydrate_calls.get("history", 0) == limit

    def test_unbounded_query_reads_every_page_in_order(self, three_pages, rows):
        _run(three_pages, rows, columns=("id",))

        assert [r["id"] for r in rows] == [f"i{n}" for n in range(30)]
        assert [c[3] for c in three_pages.list_calls("/items")] == [None, "1", "2"]

    def test_page_size_follows_limit(self, three_pages, rows):
        _run(three_pages, rows, limit=5)
        assert three_pages.list_calls("/items")[0][2]["limit"] == 5

    def test_page_size_defaults_to_max(self, three_pages, rows):
        _run(three_pages, rows, max_page_size=150)
        assert three_pages.list_calls("/items")[0][2]["limit"] == 150


class TestQualifiers:
    def test_exact_qualifier_is_pushed_down_and_rechecked(self, client, rows):
        client.add_pages("/items", _items(0, 3, group="a") + _items(3, 2, group="b"))

        _run(client, rows, quals=[Qualifier.exact("group", "b")])

        assert client.list_calls("/items")[0][2]["filter"] == 'group eq "b"'
        assert [r["id"] for r in rows] == ["i3", "i4"]

    def test_in_qualifier_is_never_pushed_down(self, client, rows):
        client.add_pages("/items", _items(0, 3, group="a") + _items(3, 2, group="b") + _items(5, 1, group="c"))

        _run(client, rows, quals=[Qualifier.one_of("group", ["a", "c"])])

        assert "filter" not in client.list_calls("/items")[0][2]
        assert [r["id"] for r in rows] == ["i0", "i1", "i2", "i5"]

    def test_qualifier_on_unpushable_column_is_post_filtered(self, client, rows):
        client.add_pages("/items", _items(0, 5))

        _run(client, rows, quals=[Qualifier.exact("name", "item 2")])

        assert [r["id"] for r in rows] == ["i2"]
        assert client.list_calls("/items")[0][2] == {"limit": 200}

    def test_missing_required_qualifier_fetches_nothing(self, client, rows):
        client.add_pages("/items", _items(0, 5))
        stats = _run(client, rows, table=_table(required_quals=("group",)))

        assert rows == []
        assert client.calls == []
        assert stats.pages_fetched == 0

    def test_unknown_column_is_rejected(self, client, rows):
        with pytest.raises(ValueError):
            _run(client, rows, columns=("nope",))


class TestGet:
    def test_all_keys_qualified_uses_get(self, client, rows):
        client.add_item("/items", "i7", {"id": "i7", "kind": "plain", "name": "seven"})

        _run(client, rows, quals=[Qualifier.exact("id", "i7")], columns=("id", "name"))

        assert rows == [{"id": "i7", "name": "seven"}]
        assert client.list_calls() == []

    def test_get_not_found_is_no_row_no_error(self, client, rows):
        stats = _run(client, rows, quals=[Qualifier.exact("id", "missing")])

        assert rows == []
        assert stats.ignored_errors == 1

    def test_get_other_error_is_fatal(self, client, rows):
        client.fail_get("/items", "i1", OktaApiError(500, "Internal Server Error"))
        with pytest.raises(FatalQueryError):
            _run(client, rows, quals=[Qualifier.exact("id", "i1")])

    def test_in_qualifier_on_key_falls_back_to_list(self, client, rows):
        client.add_pages("/items", _items(0, 5))

        _run(client, rows, quals=[Qualifier.one_of("id", ["i1", "i3"])], columns=("id",))

        assert client.get_calls() == []
        assert [r["id"] for r in rows] == ["i1", "i3"]


class TestUnions:
    def test_unknown_variants_are_skipped_and_counted(self, client, rows):
        page = _items(0, 2) + [{"id": "x1", "kind": "mystery"}] + _items(2, 1, kind="fancy")
        page[-1]["fancy"] = {"extra": 42}
        client.add_pages("/items", page)

        stats = _run(client, rows, columns=("id", "extra"))

        assert [r["id"] for r in rows] == ["i0", "i1", "i2"]
        assert rows[2]["extra"] == 42
        assert rows[0]["extra"] is None
        assert stats.unknown_variants == 1


class TestEnrichment:
    def test_unrequested_enrichment_is_never_invoked(self, three_pages, rows):
        stats = _run(three_pages, rows, columns=("id", "name"))

        assert len(rows) == 30
        assert three_pages.get_calls() == []
        assert [c for c in three_pages.list_calls() if c[1] != "/items"] == []
        assert stats.hydrate_calls == {}

    def test_shared_hydrate_runs_once_per_row(self, client, rows):
        client.add_pages("/items", _items(0, 3))
        for n in range(3):
            client.add_item("/info", f"i{n}", {"size": n * 10})

        stats = _run(client, rows, columns=("id", "info", "info_size"))

        assert len(client.get_calls("/info")) == 3
        assert stats.hydrate_calls == {"info": 3}
        assert [r["info_size"] for r in rows] == [0, 10, 20]
        assert rows[1]["info"] == {"size": 10}

    def test_ignorable_enrichment_error_yields_none(self, client, rows):
        client.add_pages("/items", _items(0, 2))
        client.add_item("/info", "i0", {"size": 1})
        client.add_pages("/items/i0/history", [{"at": "t1"}])
        client.fail_list("/items/i1/history", not_found())

        _run(client, rows, columns=("id", "info", "history"))

        assert rows[0] == {"id": "i0", "info": {"size": 1}, "history": [{"at": "t1"}]}
        assert rows[1] == {"id": "i1", "info": None, "history": None}

    def test_fatal_enrichment_error_aborts_query(self, client, rows):
        client.add_pages("/items", _items(0, 10))
        client.fail_list("/items/i4/history", OktaApiError(500, "Internal Server Error"))

        with pytest.raises(FatalQueryError):
            _run(client, rows, columns=("id", "history"))

        assert len(rows) <= 4

    def test_rows_keep_source_order_with_concurrent_enrichment(self, client, rows):
        client.add_pages("/items", _items(0, 25))

        _run(client, rows, columns=("id", "history"))

        assert [r["id"] for r in rows] == [f"i{n}" for n in range(25)]
        assert all(r["history"] == [] for r in rows)

    def test_qualifier_on_enrichment_column_filters_after_hydrate(self, client, rows):
        client.add_pages("/items", _items(0, 3))
        for n in range(3):
            client.add_item("/info", f"i{n}", {"size": n})

        _run(client, rows, columns=("id",), quals=[Qualifier.exact("info_size", 2)])

        assert rows == [{"id": "i2"}]
        assert len(client.get_calls("/info")) == 3


class TestCancellation:
    def test_cancel_stops_at_next_emission(self, three_pages):
        ctx = QueryContext.build(columns=("id",))
        received = []

        def emit(row):
            received.append(row["id"])
            if len(received) == 3:
                ctx.cancel()

        stats = HydrateGraph(_table(), three_pages, ctx, emit).run()

        assert received == ["i0", "i1", "i2"]
        assert stats.rows_emitted == 3
        assert len(three_pages.list_calls("/items")) == 1

    def test_cancelled_before_start_fetches_nothing(self, three_pages, rows):
        ctx = QueryContext.build()
        ctx.cancel()

        HydrateGraph(_table(), three_pages, ctx, rows).run()

        assert rows == []
        assert three_pages.calls == []

    def test_concurrent_queries_are_independent(self, three_pages):
        results = {}

        def query(limit):
            collected = []
            ctx = QueryContext.build(columns=("id", "history"), limit=limit)
            HydrateGraph(_table(), three_pages, ctx, collected.append, max_concurrency=3).run()
            results[limit] = len(collected)

        threads = [threading.Thread(target=query, args=(n,)) for n in (4, 17, 30)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results == {4: 4, 17: 17, 30: 30}


class TestIdempotence:
    def test_repeated_unfiltered_query_returns_same_rows(self, three_pages):
        runs = []
        for _ in range(3):
            collected = []
            _run(three_pages, collected.append, columns=("id",))
            runs.append(collected)

        ids = [{r["id"] for r in run} for run in runs]
        assert ids[0] == ids[1] == ids[2]
        assert len(runs[0]) == len(runs[1]) == len(runs[2]) == 30
