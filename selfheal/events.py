"""In-process fan-out bus for healing events."""

from __future__ import annotations

import asyncio
import contextlib
import time
from dataclasses import asdict, dataclass
from typing import Any

from selfheal.constants import MAX_LATEST_EVENTS
from selfheal.storage.base import normalize_url_pattern
from selfheal.types import HealingEventKind, HealingStrategyName

ALL_URLS = "*"


@dataclass
class HealingEvent:
    """A single healing outcome, published when ``emit_events`` is on."""

    kind: HealingEventKind
    original_selector: str
    url: str
    new_selector: str | None = None
    strategy: HealingStrategyName | None = None
    confidence: float = 0.0
    timestamp: float = 0.0

    def __post_init__(self) -> None:
        if self.timestamp == 0.0:
            self.timestamp = time.time()

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        data["strategy"] = self.strategy.value if self.strategy else None
        return data


class HealingEventBus:
    """Publishes events to per-URL subscriber queues.

    Designed for a single asyncio event loop; ``notify`` never awaits.
    Subscribing to ``ALL_URLS`` receives every event.
    """

    def __init__(self, max_latest: int = MAX_LATEST_EVENTS) -> None:
        self._max_latest = max_latest
        self._latest: dict[str, HealingEvent] = {}
        self._queues: dict[str, list[asyncio.Queue[HealingEvent]]] = {}

    def notify(self, event: HealingEvent) -> None:
        key = normalize_url_pattern(event.url)
        self._latest.pop(key, None)
        self._latest[key] = event
        while len(self._latest) > self._max_latest:
            del self._latest[next(iter(self._latest))]
        for q in (*self._queues.get(key, []), *self._queues.get(ALL_URLS, [])):
            q.put_nowait(event)

    def subscribe(self, url: str = ALL_URLS) -> asyncio.Queue[HealingEvent]:
        key = url if url == ALL_URLS else normalize_url_pattern(url)
        q: asyncio.Queue[HealingEvent] = asyncio.Queue()
        self._queues.setdefault(key, []).append(q)
        return q

    def unsubscribe(self, q: asyncio.Queue[HealingEvent], url: str = ALL_URLS) -> None:
        key = url if url == ALL_URLS else normalize_url_pattern(url)
        queues = self._queues.get(key, [])
        with contextlib.suppress(ValueError):
            queues.remove(q)
        if not queues:
            self._queues.pop(key, None)

    def latest(self, url: str) -> HealingEvent | None:
        """Most recent event for a page, or None."""
        return self._latest.get(normalize_url_pattern(url))

    def clear(self, url: str | None = None) -> None:
        """Forget the latest event for one page, or for every page."""
        if url is None:
            self._latest.clear()
        else:
            self._latest.pop(normalize_url_pattern(url), None)
