"""Name-to-strategy resolution in priority order."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from selfheal.strategies.aria import AriaStrategy
from selfheal.strategies.css_path import CssPathStrategy
from selfheal.strategies.data_testid import DataTestIdStrategy
from selfheal.strategies.id import IdStrategy
from selfheal.strategies.text import TextStrategy
from selfheal.types import HealingStrategyName

if TYPE_CHECKING:
    from collections.abc import Iterable

    from selfheal.strategies.base import HealingStrategy

logger = structlog.get_logger(__name__)

# No distinct logic yet; these names resolve to the css-path strategy
PLACEHOLDER_ALIASES = (HealingStrategyName.XPATH, HealingStrategyName.PROXIMITY)


class StrategyRegistry:
    """Resolves configured strategy names into instances."""

    def __init__(self, strategies: Iterable[HealingStrategy] | None = None) -> None:
        self._by_name: dict[str, HealingStrategy] = {}
        if strategies is None:
            strategies = (
                IdStrategy(),
                DataTestIdStrategy(),
                AriaStrategy(),
                TextStrategy(),
                CssPathStrategy(),
            )
        for strategy in strategies:
            self.register(strategy)
        css_path = self._by_name.get(HealingStrategyName.CSS_PATH.value)
        if css_path is not None:
            for alias in PLACEHOLDER_ALIASES:
                self._by_name.setdefault(alias.value, css_path)

    def register(self, strategy: HealingStrategy, aliases: Iterable[str] = ()) -> None:
        """Add or replace a strategy under its own name and any aliases."""
        for key in (strategy.name.value, *aliases):
            self._by_name[str(key)] = strategy

    def get(self, name: str) -> HealingStrategy | None:
        return self._by_name.get(str(name))

    def resolve(self, names: Iterable[str]) -> list[HealingStrategy]:
        """Instances for ``names``, sorted by priority, each at most once."""
        resolved: list[HealingStrategy] = []
        for name in names:
            strategy = self.get(name)
            if strategy is None:
                logger.warning("unknown_strategy", name=str(name))
                continue
            if strategy not in resolved:
                resolved.append(strategy)
        # sort() is stable, so equal priorities keep their configured order
        resolved.sort(key=lambda s: s.priority)
        return resolved

    def names(self) -> list[HealingStrategyName]:
        """Registered strategy names in priority order, aliases excluded."""
        unique = {id(s): s for s in self._by_name.values()}.values()
        return [s.name for s in sorted(unique, key=lambda s: s.priority)]
