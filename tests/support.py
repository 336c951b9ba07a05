"""Test doubles and builders shared by the unit and integration suites."""

import asyncio
from collections.abc import Callable
from datetime import date, datetime
from typing import Any

from tripdesk.db.inmemory import InMemoryDocumentStore
from tripdesk.errors import StoreError
from tripdesk.itinerary.document import new_itinerary, update_day
from tripdesk.models import (
    Accommodation,
    Activity,
    CentralItinerary,
    Location,
    MarkupRule,
    MarkupType,
    Preferences,
    TransportSegment,
    Travelers,
)

FIXED_NOW = datetime(2026, 3, 1, 9, 0, 0)

BANGKOK = Location(name="Bangkok", country="Thailand", city="Bangkok")
PATTAYA = Location(name="Pattaya", country="Thailand", city="Pattaya")


class _VirtualHandle:
    def __init__(self, due: float, seq: int, callback: Callable[[], None]) -> None:
        self.due = due
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualTimer:
    """Timer whose clock only moves when a test calls advance()."""

    def __init__(self) -> None:
        self.now = 0.0
        self._seq = 0
        self._handles: list[_VirtualHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> _VirtualHandle:
        self._seq += 1
        handle = _VirtualHandle(self.now + delay, self._seq, callback)
        self._handles.append(handle)
        return handle

    @property
    def armed(self) -> int:
        return sum(1 for handle in self._handles if not handle.cancelled)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due callbacks in order."""
        target = self.now + seconds
        while True:
            due = [h for h in self._handles if not h.cancelled and h.due <= target]
            if not due:
                break
            handle = min(due, key=lambda h: (h.due, h.seq))
            self._handles.remove(handle)
            self.now = handle.due
            handle.callback()
        self.now = target


class RecordingDocumentStore(InMemoryDocumentStore):
    """In-memory store that records every put and can be told to fail."""

    def __init__(self, documents: dict[str, dict[str, Any]] | None = None) -> None:
        super().__init__(documents)
        self.puts: list[tuple[str, dict[str, Any]]] = []
        self.fail_puts = False
        self.fail_gets = False

    async def get(self, context_id: str) -> dict[str, Any] | None:
        if self.fail_gets:
            raise StoreError("connection refused")
        return await super().get(context_id)

    async def put(self, context_id: str, document: dict[str, Any]) -> None:
        self.puts.append((context_id, document))
        if self.fail_puts:
            raise StoreError("connection refused")
        await super().put(context_id, document)


class GatedDocumentStore(RecordingDocumentStore):
    """Store whose writes (and optionally reads) block until the gate opens."""

    def __init__(self, documents: dict[str, dict[str, Any]] | None = None) -> None:
        super().__init__(documents)
        self.gate = asyncio.Event()
        self.entered = asyncio.Event()
        self.gate_gets = False

    async def get(self, context_id: str) -> dict[str, Any] | None:
        if self.gate_gets:
            self.entered.set()
            await self.gate.wait()
        return await super().get(context_id)

    async def put(self, context_id: str, document: dict[str, Any]) -> None:
        self.entered.set()
        await self.gate.wait()
        await super().put(context_id, document)


class FakeRedis:
    """Dict-backed stand-in for the subset of redis.Redis the fallback store uses."""

    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}

    def get(self, key: str) -> bytes | None:
        return self.data.get(key)

    def set(self, key: str, value: str | bytes) -> bool:
        self.data[key] = value.encode() if isinstance(value, str) else value
        return True

    def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed


def build_scenario_itinerary(context_id: str = "query-1") -> CentralItinerary:
    """3-day trip: activity 100 on day 1, transport 50 on day 2, option-1 stay of 200.

    Two adults, no children, 15% percentage markup.
    """
    itinerary = new_itinerary(
        context_id,
        title="Thailand Escape",
        start_date=date(2026, 4, 10),
        days=3,
        destinations=[BANGKOK, PATTAYA],
        preferences=Preferences(travelers=Travelers(adults=2, children=0)),
        markup_rule=MarkupRule(type=MarkupType.percentage, percentage=15),
        now=FIXED_NOW,
    )
    itinerary = update_day(
        itinerary,
        0,
        {
            "activities": [Activity(name="Grand Palace", price=100)],
            "accommodation_options": [
                Accommodation(
                    name="Riverside Hotel",
                    option=1,
                    nights=2,
                    price_per_night=100,
                    rooms=1,
                    check_in=date(2026, 4, 10),
                )
            ],
        },
        now=FIXED_NOW,
    )
    return update_day(
        itinerary,
        1,
        {"transport": [TransportSegment(from_location=BANGKOK, to_location=PATTAYA, price=50)]},
        now=FIXED_NOW,
    )
