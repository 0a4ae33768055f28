"""Tests for PaginatedFetcher."""

import pytest
import requests

from conftest import not_found
from okta_tables.errors import FACTOR_NOT_FOUND, STRICT, FatalQueryError, OktaApiError
from okta_tables.pagination import PaginatedFetcher, QueryStats


def _page(start, count=10):
    return [{"id": f"i{n}"} for n in range(start, start + count)]


class TestFetch:
    def test_follows_cursor_in_order(self, client):
        client.add_pages("/things", _page(0), _page(10), _page(20))
        fetcher = PaginatedFetcher(client)

        ids = [item["id"] for item in fetcher.fetch("/things")]

        assert ids == [f"i{n}" for n in range(30)]
        assert [c[3] for c in client.list_calls("/things")] == [None, "1", "2"]
        assert fetcher.stats.pages_fetched == 3

    def test_server_filter_is_passed_to_client(self, client):
        client.add_pages("/things", _page(0, 2))
        list(PaginatedFetcher(client).fetch("/things", {"type": "PASSWORD"}))
        assert client.list_calls()[0][2] == {"type": "PASSWORD"}

    def test_fatal_error_midstream_emits_nothing_from_failing_page(self, client):
        client.add_pages("/things", _page(0), _page(10), _page(20))
        client.fail_list("/things", OktaApiError(500, "Internal Server Error"), page=1)
        seen = []

        with pytest.raises(FatalQueryError) as excinfo:
            for item in PaginatedFetcher(client).fetch("/things"):
                seen.append(item["id"])

        assert seen == [f"i{n}" for n in range(10)]
        assert isinstance(excinfo.value.__cause__, OktaApiError)

    def test_transport_error_is_fatal(self, client):
        client.fail_list("/things", requests.ConnectionError("connection reset"))
        with pytest.raises(FatalQueryError):
            list(PaginatedFetcher(client).fetch("/things"))

    def test_ignorable_error_ends_sequence_empty(self, client):
        client.fail_list("/users/u1/factors", not_found())
        stats = QueryStats()

        items = list(PaginatedFetcher(client, stats=stats).fetch("/users/u1/factors", errors=FACTOR_NOT_FOUND))

        assert items == []
        assert stats.ignored_errors == 1

    def test_strict_table_makes_not_found_fatal(self, client):
        client.fail_list("/things", not_found())
        with pytest.raises(FatalQueryError):
            list(PaginatedFetcher(client).fetch("/things", errors=STRICT))

    def test_stops_between_pages_when_told(self, client):
        client.add_pages("/things", _page(0), _page(10), _page(20))
        seen = []
        fetcher = PaginatedFetcher(client, should_stop=lambda: len(seen) >= 10)

        for item in fetcher.fetch("/things"):
            seen.append(item)

        assert len(seen) == 10
        assert len(client.list_calls("/things")) == 1

    def test_nothing_fetched_when_already_stopped(self, client):
        client.add_pages("/things", _page(0))
        assert list(PaginatedFetcher(client, should_stop=lambda: True).fetch("/things")) == []
        assert client.calls == []


class TestGet:
    def test_returns_item(self, client):
        client.add_item("/users", "u1", {"id": "u1"})
        assert PaginatedFetcher(client).get("/users", "u1") == {"id": "u1"}

    def test_not_found_yields_none(self, client):
        fetcher = PaginatedFetcher(client)
        assert fetcher.get("/users", "missing") is None
        assert fetcher.stats.ignored_errors == 1

    def test_other_errors_are_fatal(self, client):
        client.fail_get("/users", "u1", OktaApiError(403, "Forbidden"))
        with pytest.raises(FatalQueryError):
            PaginatedFetcher(client).get("/users", "u1")
