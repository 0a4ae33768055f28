"""Row budget and the emission boundary toward the host engine."""

from __future__ import annotations

import threading
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

Row = Mapping[str, Any]
RowEmitter = Callable[[Row], None]


class RowBudget:
    """Remaining rows a query may emit. None means unbounded."""

    def __init__(self, limit: Optional[int] = None) -> None:
        if limit is not None and limit < 0:
            raise ValueError(f"row limit must be >= 0, got {limit}")
        self._remaining = limit
        self._lock = threading.Lock()

    def try_consume(self) -> bool:
        """Take one row from the budget. Once False, always False."""
        if self._remaining is None:
            return True
        with self._lock:
            if self._remaining <= 0:
                return False
            self._remaining -= 1
            return True

    @property
    def remaining(self) -> Optional[int]:
        return self._remaining

    @property
    def exhausted(self) -> bool:
        return self._remaining is not None and self._remaining <= 0


class RowSink:
    """Accepts normalized rows, charges the budget and forwards them."""

    def __init__(
        self,
        budget: RowBudget,
        emitter: RowEmitter,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.budget = budget
        self._emitter = emitter
        self._cancel_event = cancel_event or threading.Event()
        self.emitted = 0

    @property
    def stopped(self) -> bool:
        return self.budget.exhausted or self._cancel_event.is_set()

    def emit(self, row: Row) -> bool:
        """Stream one row. False means the caller must stop producing."""
        if self._cancel_event.is_set():
            return False
        if not self.budget.try_consume():
            return False
        self._emitter(MappingProxyType(dict(row)))
        self.emitted += 1
        return True
