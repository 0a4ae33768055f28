"""
Shared fixtures: an in-memory ResourceClient and a connector config.
"""

import threading

import pytest

from okta_tables.config import ConnectorConfig, EngineConfig, OktaConfig
from okta_tables.errors import OktaApiError


def not_found(endpoint="/x"):
    return OktaApiError(404, "Not found: Resource not found: x (User)", "E0000007", endpoint)


class FakeClient:
    """In-memory ResourceClient.

    Pages are registered per endpoint; the cursor is the index of the next
    page as a string. Unregistered list endpoints return one empty page,
    unregistered get ids raise a 404 OktaApiError.
    """

    def __init__(self):
        self.pages = {}
        self.items = {}
        self.list_errors = {}
        self.get_errors = {}
        self.calls = []
        self.closed = False
        self._lock = threading.Lock()

    def close(self):
        self.closed = True

    def add_pages(self, endpoint, *pages):
        self.pages[endpoint] = [list(p) for p in pages]

    def add_item(self, endpoint, item_id, item):
        self.items[(endpoint, item_id)] = item

    def fail_list(self, endpoint, error, page=0):
        self.list_errors[(endpoint, page)] = error

    def fail_get(self, endpoint, item_id, error):
        self.get_errors[(endpoint, item_id)] = error

    def list(self, endpoint, server_filter=None, cursor=None):
        index = int(cursor) if cursor else 0
        with self._lock:
            self.calls.append(("list", endpoint, dict(server_filter or {}), cursor))
        if (endpoint, index) in self.list_errors:
            raise self.list_errors[(endpoint, index)]
        pages = self.pages.get(endpoint) or [[]]
        next_cursor = str(index + 1) if index + 1 < len(pages) else None
        return [dict(item) for item in pages[index]], next_cursor

    def get(self, endpoint, item_id):
        with self._lock:
            self.calls.append(("get", endpoint, item_id))
        if (endpoint, item_id) in self.get_errors:
            raise self.get_errors[(endpoint, item_id)]
        if (endpoint, item_id) not in self.items:
            raise not_found(f"{endpoint}/{item_id}")
        return dict(self.items[(endpoint, item_id)])

    def list_calls(self, endpoint=None):
        return [c for c in self.calls if c[0] == "list" and (endpoint is None or c[1] == endpoint)]

    def get_calls(self, endpoint=None):
        return [c for c in self.calls if c[0] == "get" and (endpoint is None or c[1] == endpoint)]


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def config():
    return ConnectorConfig(
        okta=OktaConfig(domain="example.okta.com", token="test-token"),
        engine=EngineConfig(max_concurrency=4, max_page_size=200),
    )


@pytest.fixture
def rows():
    """Emitter that collects every row into itself."""

    class Collector(list):
        def __call__(self, row):
            self.append(dict(row))

    return Collector()
