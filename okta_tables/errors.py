"""Error taxonomy and per-family not-found classification tables."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional

import requests


class Classification(enum.Enum):
    IGNORABLE = "ignorable"
    FATAL = "fatal"


class OktaApiError(Exception):
    """An error response returned by the Okta API."""

    def __init__(
        self,
        status_code: int,
        summary: str,
        error_code: Optional[str] = None,
        endpoint: Optional[str] = None,
    ) -> None:
        self.status_code = status_code
        self.summary = summary
        self.error_code = error_code
        self.endpoint = endpoint
        super().__init__(f"{summary} (status {status_code}, code {error_code or 'n/a'})")


class FatalQueryError(Exception):
    """Aborts the whole query. The original failure is kept as __cause__."""

    def __init__(self, message: str, endpoint: Optional[str] = None) -> None:
        self.endpoint = endpoint
        super().__init__(message)


class UnknownTableError(LookupError):
    pass


@dataclass(frozen=True)
class ErrorTable:
    """Declarative {status/substring -> IGNORABLE} table; everything else is FATAL.

    Only API errors are eligible: a transport failure or an undecodable body
    never matches, even if its text happens to contain a listed substring.
    """

    statuses: frozenset[int] = field(default_factory=lambda: frozenset({404}))
    substrings: tuple[str, ...] = ()

    def classify(self, error: BaseException) -> Classification:
        if isinstance(error, FatalQueryError):
            return Classification.FATAL

        status = _status_of(error)
        if status is None:
            return Classification.FATAL
        if status in self.statuses:
            return Classification.IGNORABLE

        message = str(error).lower()
        if any(s.lower() in message for s in self.substrings):
            return Classification.IGNORABLE
        return Classification.FATAL

    def is_ignorable(self, error: BaseException) -> bool:
        return self.classify(error) is Classification.IGNORABLE


def _status_of(error: BaseException) -> Optional[int]:
    if isinstance(error, OktaApiError):
        return error.status_code
    if isinstance(error, requests.HTTPError) and error.response is not None:
        return error.response.status_code
    return None


# Nothing is ignorable; used for endpoints whose failures always abort.
STRICT = ErrorTable(statuses=frozenset())

NOT_FOUND = ErrorTable(substrings=("not found",))

FACTOR_NOT_FOUND = ErrorTable(substrings=("not found", "invalid factor"))

POLICY_MAPPING_NOT_FOUND = ErrorTable(substrings=("not found", "404"))
