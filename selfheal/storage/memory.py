"""Process-lifetime mapping store."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from selfheal.constants import MAX_HISTORY_RECORDS, RECENT_HEALINGS_LIMIT
from selfheal.models.domain import HealingRecord, HealingStats, SelectorMapping, StrategyStats
from selfheal.storage.base import SelectorStorage, normalize_url_pattern

if TYPE_CHECKING:
    from selfheal.types import HealingStrategyName

logger = structlog.get_logger(__name__)


class InMemorySelectorStorage(SelectorStorage):
    """Dict-backed store. History is capped at the most recent records."""

    def __init__(self, max_history: int = MAX_HISTORY_RECORDS) -> None:
        self._mappings: dict[tuple[str, str], SelectorMapping] = {}
        self._history: list[HealingRecord] = []
        self._max_history = max_history

    @staticmethod
    def _key(original_selector: str, url: str) -> tuple[str, str]:
        return normalize_url_pattern(url), original_selector

    async def get_mapping(self, original_selector: str, url: str) -> SelectorMapping | None:
        mapping = self._mappings.get(self._key(original_selector, url))
        if mapping is None or not mapping.is_valid:
            return None
        mapping.use_count += 1
        mapping.last_used_at = datetime.now(UTC)
        return mapping.model_copy(deep=True)

    async def save_mapping(self, mapping: SelectorMapping) -> None:
        key = self._key(mapping.original_selector, mapping.url_pattern)
        existing = self._mappings.get(key)
        stored = mapping.model_copy(
            deep=True,
            update={
                "url_pattern": key[0],
                "is_valid": True,
                "use_count": (existing.use_count if existing else 0) + 1,
                "last_used_at": datetime.now(UTC),
            },
        )
        if existing:
            stored.id = existing.id
            stored.created_at = existing.created_at
        self._mappings[key] = stored
        logger.debug("mapping_saved", selector=mapping.original_selector, url=key[0])

    async def invalidate_mapping(self, original_selector: str, url: str) -> None:
        mapping = self._mappings.get(self._key(original_selector, url))
        if mapping is not None:
            mapping.is_valid = False

    async def record_healing(
        self,
        original_selector: str,
        healed_selector: str | None,
        strategy: HealingStrategyName | None,
        confidence: float,
        url: str,
        success: bool,
        healing_time_ms: int | None = None,
    ) -> None:
        self._history.append(
            HealingRecord(
                original_selector=original_selector,
                healed_selector=healed_selector,
                strategy=strategy,
                confidence=confidence,
                url=url,
                success=success,
                healing_time_ms=healing_time_ms,
            )
        )
        if len(self._history) > self._max_history:
            del self._history[: len(self._history) - self._max_history]

    async def get_stats(self) -> HealingStats:
        stats = HealingStats(total_attempts=len(self._history))
        successes = [h for h in self._history if h.success]
        stats.success_count = len(successes)
        stats.failure_count = stats.total_attempts - stats.success_count
        if stats.total_attempts:
            stats.success_rate = stats.success_count / stats.total_attempts * 100
        if successes:
            stats.avg_confidence = sum(h.confidence for h in successes) / len(successes)
        timings = [h.healing_time_ms for h in self._history if h.healing_time_ms is not None]
        if timings:
            stats.avg_healing_time_ms = sum(timings) / len(timings)

        for record in self._history:
            if record.strategy is None:
                continue
            entry = stats.by_strategy.setdefault(record.strategy, StrategyStats())
            entry.attempts += 1
            if record.success:
                entry.successes += 1
                entry.avg_confidence += (record.confidence - entry.avg_confidence) / entry.successes

        stats.recent_healings = [
            h.model_copy() for h in reversed(successes[-RECENT_HEALINGS_LIMIT:])
        ]
        return stats

    async def clear_all(self) -> None:
        self._mappings.clear()
        self._history.clear()
