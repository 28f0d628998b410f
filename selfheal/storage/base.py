"""Abstract mapping store interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from selfheal.models.domain import HealingStats, SelectorMapping
    from selfheal.types import HealingStrategyName


def normalize_url_pattern(url: str) -> str:
    """Drop query string, fragment and one trailing slash."""
    pattern = url.split("#", 1)[0].split("?", 1)[0]
    if pattern.endswith("/"):
        pattern = pattern[:-1]
    return pattern


class SelectorStorage(ABC):
    """Persists healed selector mappings and the healing-attempt history.

    Mappings are keyed by ``(original_selector, normalized url)``. They are
    soft-invalidated and only hard-deleted by ``clear_all``.
    """

    async def initialize(self) -> None:
        """Prepare the backend. Safe to call more than once."""

    @abstractmethod
    async def get_mapping(self, original_selector: str, url: str) -> SelectorMapping | None:
        """Return the valid mapping for this key and bump its use count."""

    @abstractmethod
    async def save_mapping(self, mapping: SelectorMapping) -> None:
        """Insert or overwrite (last write wins) and mark valid."""

    @abstractmethod
    async def invalidate_mapping(self, original_selector: str, url: str) -> None: ...

    @abstractmethod
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
        """Append one healing attempt to the history."""

    @abstractmethod
    async def get_stats(self) -> HealingStats: ...

    @abstractmethod
    async def clear_all(self) -> None: ...

    async def close(self) -> None:
        """Release backend resources."""
