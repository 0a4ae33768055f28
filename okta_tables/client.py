"""Okta REST client implementing the ResourceClient protocol."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import requests

from okta_tables import __version__
from okta_tables.config import OktaConfig
from okta_tables.errors import OktaApiError

logger = logging.getLogger("okta_tables.client")


def _log_response(resp: requests.Response, *args: Any, **kwargs: Any) -> None:
    """requests response hook: one log line per API call."""
    req = resp.request
    logger.info(
        "okta_api_response %s %s -> %d",
        req.method, req.path_url, resp.status_code,
        extra={"method": req.method, "endpoint": req.path_url, "status": resp.status_code},
    )


class OktaClient:
    """Thread-safe for the list/get calls made by concurrent hydrate tasks."""

    def __init__(self, config: OktaConfig, session: Optional[requests.Session] = None) -> None:
        self._base = f"https://{config.domain.rstrip('/')}/api/v1"
        self._timeout = config.request_timeout
        self._session = session or requests.Session()
        self._session.headers.update({
            "Authorization": f"SSWS {config.token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": f"okta-tables/{__version__}",
        })
        self._session.hooks["response"].append(_log_response)

    def close(self) -> None:
        self._session.close()

    def list(
        self,
        endpoint: str,
        server_filter: Optional[Mapping[str, Any]] = None,
        cursor: Optional[str] = None,
    ) -> tuple[list[dict], Optional[str]]:
        """Fetch one page. The cursor is the absolute `next` URL of the Link
        header and already carries the original query parameters."""
        if cursor:
            resp = self._request(cursor, endpoint)
        else:
            resp = self._request(self._url(endpoint), endpoint, params=dict(server_filter or {}))
        data = resp.json()
        if not isinstance(data, list):
            raise ValueError(f"expected a JSON array from {endpoint}, got {type(data).__name__}")
        next_url = resp.links.get("next", {}).get("url")
        return data, next_url or None

    def get(self, endpoint: str, item_id: str) -> dict:
        path = f"{endpoint.rstrip('/')}/{item_id}"
        data = self._request(self._url(path), path).json()
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object from {path}, got {type(data).__name__}")
        return data

    def _url(self, endpoint: str) -> str:
        return f"{self._base}/{endpoint.lstrip('/')}"

    def _request(
        self, url: str, endpoint: str, params: Optional[dict] = None
    ) -> requests.Response:
        logger.debug("okta_api_call GET %s", url, extra={"method": "GET", "endpoint": endpoint})
        try:
            resp = self._session.get(url, params=params, timeout=self._timeout)
        except requests.RequestException as exc:
            logger.error(
                "okta_api_call_error %s: %s", endpoint, exc,
                extra={"method": "GET", "endpoint": endpoint},
            )
            raise
        if resp.status_code >= 400:
            raise _api_error(resp, endpoint)
        return resp


def _api_error(resp: requests.Response, endpoint: str) -> OktaApiError:
    summary = resp.reason or "HTTP error"
    code = None
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        summary = body.get("errorSummary") or summary
        code = body.get("errorCode")
    return OktaApiError(resp.status_code, summary, code, endpoint)
