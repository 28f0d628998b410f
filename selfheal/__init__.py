"""Self-healing selectors for browser automation."""

from selfheal.config.settings import SelfHealSettings
from selfheal.events import HealingEvent, HealingEventBus
from selfheal.manager import SelfHealingManager, capture_element, heal_selector
from selfheal.models.domain import (
    ElementInfo,
    HealingRequest,
    HealingResult,
    HealingStats,
    SelectorMapping,
    StrategyResult,
)
from selfheal.resolver import ResolveResult, SelectorResolver
from selfheal.types import HealingStrategyName

__all__ = [
    "ElementInfo",
    "HealingEvent",
    "HealingEventBus",
    "HealingRequest",
    "HealingResult",
    "HealingStats",
    "HealingStrategyName",
    "ResolveResult",
    "SelectorMapping",
    "SelectorResolver",
    "SelfHealSettings",
    "SelfHealingManager",
    "StrategyResult",
    "capture_element",
    "heal_selector",
]
