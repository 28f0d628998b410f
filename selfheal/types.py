"""Enums and type aliases for selfheal."""

from enum import StrEnum


class HealingStrategyName(StrEnum):
    ID = "id"
    DATA_TESTID = "data-testid"
    ARIA_LABEL = "aria-label"
    TEXT = "text"
    CSS_PATH = "css-path"
    XPATH = "xpath"
    PROXIMITY = "proximity"


class HealingEventKind(StrEnum):
    HEALED = "healed"
    CACHE_HIT = "cache_hit"
    FAILED = "failed"


# Priority order: most stable first. Placeholder names share css-path's slot.
STRATEGY_PRIORITY: dict[HealingStrategyName, int] = {
    HealingStrategyName.ID: 1,
    HealingStrategyName.DATA_TESTID: 2,
    HealingStrategyName.ARIA_LABEL: 3,
    HealingStrategyName.TEXT: 4,
    HealingStrategyName.CSS_PATH: 5,
    HealingStrategyName.XPATH: 5,
    HealingStrategyName.PROXIMITY: 5,
}

DEFAULT_STRATEGIES: list[HealingStrategyName] = [
    HealingStrategyName.ID,
    HealingStrategyName.DATA_TESTID,
    HealingStrategyName.ARIA_LABEL,
    HealingStrategyName.TEXT,
    HealingStrategyName.CSS_PATH,
]
