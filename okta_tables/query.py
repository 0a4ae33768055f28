"""Qualifiers and the per-query context handed in by the host engine."""

from __future__ import annotations

import json
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping, Optional


def _as_candidate_type(candidate: Any, value: Any) -> Any:
    """Read a text qualifier value as the JSON type of the column value.

    CLI and event qualifiers arrive as strings; "1" must match priority 1 and
    "true" must match system True. Anything that doesn't parse to the same
    kind of value is compared as given.
    """
    if not isinstance(value, str) or isinstance(candidate, str) or candidate is None:
        return value
    try:
        parsed = json.loads(value)
    except ValueError:
        return value
    if isinstance(candidate, bool) != isinstance(parsed, bool):
        return value
    return parsed


@dataclass(frozen=True)
class Qualifier:
    """Predicate on one column: an exact value, or membership in `values`."""

    column: str
    value: Any = None
    values: Optional[tuple] = None

    @classmethod
    def exact(cls, column: str, value: Any) -> "Qualifier":
        return cls(column=column, value=value)

    @classmethod
    def one_of(cls, column: str, values: Iterable[Any]) -> "Qualifier":
        return cls(column=column, values=tuple(values))

    @property
    def is_exact(self) -> bool:
        return self.values is None

    def matches(self, candidate: Any) -> bool:
        if self.is_exact:
            return candidate == _as_candidate_type(candidate, self.value)
        return any(candidate == _as_candidate_type(candidate, v) for v in self.values)


@dataclass
class QueryContext:
    """What the host engine asks for.

    `quals` maps a column to every qualifier on it; all of them must hold.
    """

    columns: frozenset[str] = frozenset()
    quals: Mapping[str, tuple[Qualifier, ...]] = field(default_factory=dict)
    limit: Optional[int] = None
    cancel_event: threading.Event = field(default_factory=threading.Event)
    query_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit < 0:
            raise ValueError(f"row limit must be >= 0, got {self.limit}")
        self.columns = frozenset(self.columns)
        self.quals = {column: tuple(quals) for column, quals in self.quals.items()}

    @classmethod
    def build(
        cls,
        columns: Iterable[str] = (),
        quals: Iterable[Qualifier] = (),
        limit: Optional[int] = None,
    ) -> "QueryContext":
        grouped: dict[str, list[Qualifier]] = {}
        for qual in quals:
            grouped.setdefault(qual.column, []).append(qual)
        return cls(columns=frozenset(columns), quals=grouped, limit=limit)

    def qualifiers(self) -> Iterator[Qualifier]:
        for quals in self.quals.values():
            yield from quals

    def remaining_rows(self) -> Optional[int]:
        """Row limit for budget initialisation; None means unbounded."""
        return self.limit

    def equals_qual(self, column: str) -> Optional[Any]:
        """The value every exact qualifier on `column` agrees on, or None.

        Conflicting exact values return None: nothing can match them, and the
        post-filter drops every row without a pushed-down guess.
        """
        values = [q.value for q in self.quals.get(column, ()) if q.is_exact]
        if not values or any(v != values[0] for v in values[1:]):
            return None
        return values[0]

    def matches(self, column: str, candidate: Any) -> bool:
        return all(q.matches(candidate) for q in self.quals.get(column, ()))

    def needs(self, column: str) -> bool:
        """True if `column` must be populated: requested, qualified, or all requested."""
        return not self.columns or column in self.columns or column in self.quals

    def cancel(self) -> None:
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()
