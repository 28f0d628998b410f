"""Query-then-heal element lookup for action handlers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from selfheal.models.domain import HealingRequest

if TYPE_CHECKING:
    from selfheal.driver import PageDriver
    from selfheal.manager import SelfHealingManager
    from selfheal.models.domain import ElementInfo, HealingResult

logger = structlog.get_logger(__name__)


@dataclass
class ResolveResult:
    """Result of resolving a selector, healing it if needed."""

    found: bool
    healed: bool
    element: Any = None
    selector: str | None = None
    original_selector: str | None = None
    healing: HealingResult | None = None

    def warning_message(self) -> str | None:
        """Describe the substitution when a heal happened."""
        if not self.healed or not self.healing or not self.selector:
            return None
        strategy = self.healing.strategy.value if self.healing.strategy else "unknown"
        source = "cached mapping" if self.healing.from_cache else strategy
        return (
            f"Selector healed: {self.original_selector} failed, "
            f"fell back to {self.selector} via {source} "
            f"(confidence {self.healing.confidence:.0%})"
        )


class SelectorResolver:
    """Finds elements, healing broken selectors through the manager."""

    def __init__(self, manager: SelfHealingManager) -> None:
        self._manager = manager

    async def find_element(
        self,
        driver: PageDriver,
        selector: str,
        url: str,
        stored_info: ElementInfo | None = None,
    ) -> ResolveResult:
        element = await self._query(driver, selector)
        if element is not None:
            return ResolveResult(found=True, healed=False, element=element, selector=selector)

        healing = await self._manager.heal(
            HealingRequest(original_selector=selector, url=url, stored_info=stored_info),
            driver,
        )
        if not healing.healed or not healing.new_selector:
            logger.error(
                "selector_unresolved", selector=selector, url=url, details=healing.details
            )
            return ResolveResult(
                found=False, healed=False, original_selector=selector, healing=healing
            )

        element = await self._query(driver, healing.new_selector)
        if element is None:
            logger.error(
                "healed_selector_missing", selector=selector, healed_to=healing.new_selector
            )
            return ResolveResult(
                found=False, healed=False, original_selector=selector, healing=healing
            )

        logger.warning(
            "selector_healed",
            original=selector,
            healed_to=healing.new_selector,
            strategy=healing.strategy.value if healing.strategy else None,
        )
        return ResolveResult(
            found=True,
            healed=True,
            element=element,
            selector=healing.new_selector,
            original_selector=selector,
            healing=healing,
        )

    async def _query(self, driver: PageDriver, selector: str) -> Any | None:
        try:
            return await driver.query_selector(selector)
        except Exception:
            logger.debug("selector_error", selector=selector)
            return None
