"""Strategy contract shared by every heuristic."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

import structlog

from selfheal.dom import DomReader
from selfheal.exceptions import StrategyError
from selfheal.models.domain import ElementInfo, StrategyResult

if TYPE_CHECKING:
    from selfheal.driver import PageDriver
    from selfheal.types import HealingStrategyName

logger = structlog.get_logger(__name__)


class HealingStrategy(ABC):
    """One heuristic that proposes a replacement selector.

    Subclasses implement ``_heal``; ``heal`` turns any error raised there into
    a zero-confidence ``found=False`` result so one broken heuristic never
    stops the others.
    """

    name: ClassVar[HealingStrategyName]
    priority: ClassVar[int]

    async def heal(
        self,
        original_selector: str,
        stored_info: ElementInfo | None,
        driver: PageDriver,
    ) -> StrategyResult:
        try:
            return await self._heal(original_selector, stored_info, DomReader(driver))
        except StrategyError as e:
            logger.debug("strategy_error", strategy=self.name.value, error=str(e))
            return self.not_found(str(e))
        except Exception as e:
            logger.debug(
                "strategy_error",
                strategy=self.name.value,
                selector=original_selector,
                error=str(e),
            )
            return self.not_found(f"Error during {self.name.value} healing: {e}")

    @abstractmethod
    async def _heal(
        self,
        original_selector: str,
        stored_info: ElementInfo | None,
        dom: DomReader,
    ) -> StrategyResult: ...

    def found(
        self,
        selector: str,
        confidence: float,
        details: str,
        element_info: ElementInfo | None = None,
    ) -> StrategyResult:
        return StrategyResult(
            found=True,
            selector=selector,
            confidence=confidence,
            strategy=self.name,
            details=details,
            element_info=element_info,
        )

    def not_found(self, details: str) -> StrategyResult:
        return StrategyResult(found=False, confidence=0.0, strategy=self.name, details=details)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name.value!r}, priority={self.priority})"
