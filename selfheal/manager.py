"""Self-healing orchestrator: cache, strategies, ranking, persistence."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING, Any

import structlog

from selfheal.config.settings import SelfHealSettings, get_settings
from selfheal.constants import EARLY_EXIT_CONFIDENCE
from selfheal.dom import DomReader
from selfheal.events import HealingEvent, HealingEventBus
from selfheal.exceptions import ConfigError
from selfheal.models.domain import (
    ElementInfo,
    HealingRequest,
    HealingResult,
    HealingStats,
    SelectorMapping,
    StrategyResult,
)
from selfheal.scoring import meets_threshold, rank_candidates
from selfheal.storage.factory import create_storage
from selfheal.storage.memory import InMemorySelectorStorage
from selfheal.strategies.registry import StrategyRegistry
from selfheal.types import HealingEventKind
from selfheal.utils.timing import Deadline

if TYPE_CHECKING:
    from selfheal.driver import PageDriver
    from selfheal.storage.base import SelectorStorage
    from selfheal.strategies.base import HealingStrategy

logger = structlog.get_logger(__name__)


class SelfHealingManager:
    """Heals broken selectors and remembers the substitutes.

    Build one instance at the composition root and pass it to every action
    handler that needs it; sharing the instance shares the mapping cache.
    No public method raises: failures are reported through the returned
    ``HealingResult`` (or ``None``/empty stats).
    """

    def __init__(
        self,
        settings: SelfHealSettings | None = None,
        *,
        storage: SelectorStorage | None = None,
        registry: StrategyRegistry | None = None,
        events: HealingEventBus | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._storage = storage
        self._registry = registry or StrategyRegistry()
        self.events = events or HealingEventBus()
        self._initialized = False
        self._init_lock = asyncio.Lock()

    # -- lifecycle / configuration ------------------------------------------

    async def initialize(self) -> None:
        """Create or prepare storage. Idempotent."""
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            if self._storage is not None or self._settings.persist_healings:
                self._storage = await self._open_storage()
            self._initialized = True

    async def _open_storage(self) -> SelectorStorage:
        """Prepare the injected or configured store, degrading to memory."""
        try:
            if self._storage is not None:
                await self._storage.initialize()
                return self._storage
            return await create_storage(self._settings)
        except Exception as e:
            logger.warning(
                "storage_unavailable",
                backend=type(self._storage).__name__ if self._storage is not None else "factory",
                error=str(e),
            )
        fallback = InMemorySelectorStorage()
        await fallback.initialize()
        return fallback

    async def close(self) -> None:
        if self._storage is not None:
            await self._guarded("close", self._storage.close())
        self.events.clear()

    def configure(self, **changes: Any) -> None:
        """Merge ``changes`` into the current settings.

        Invalid values are logged and the previous settings stay in effect.
        """
        try:
            self._settings = self._settings.merged(**changes)
        except ConfigError as e:
            logger.warning("invalid_configuration", options=sorted(changes), error=str(e))

    @property
    def config(self) -> SelfHealSettings:
        return self._settings.model_copy(deep=True)

    @property
    def registry(self) -> StrategyRegistry:
        return self._registry

    def is_enabled(self) -> bool:
        return self._settings.enabled

    def set_enabled(self, enabled: bool) -> None:
        self.configure(enabled=enabled)

    @property
    def _active_storage(self) -> SelectorStorage | None:
        return self._storage if self._settings.persist_healings else None

    # -- healing -------------------------------------------------------------

    async def heal(self, request: HealingRequest, driver: PageDriver) -> HealingResult:
        """Find a replacement for ``request.original_selector``."""
        if not self._settings.enabled:
            return HealingResult(healed=False, details="Self-healing is disabled")

        deadline = Deadline(self._settings.timeout_ms)
        try:
            return await self._heal(request, driver, deadline)
        except Exception as e:
            logger.exception(
                "heal_failed", selector=request.original_selector, url=request.url
            )
            return HealingResult(
                healed=False,
                healing_time_ms=deadline.elapsed_ms,
                details=f"Healing failed: {e}",
            )

    async def _heal(
        self, request: HealingRequest, driver: PageDriver, deadline: Deadline
    ) -> HealingResult:
        await self.initialize()
        settings = self._settings
        storage = self._active_storage
        log = logger.bind(selector=request.original_selector, url=request.url)

        if storage is not None:
            cached = await self._from_cache(storage, request, driver, deadline)
            if cached is not None:
                return cached

        names = request.strategies if request.strategies is not None else settings.strategies
        strategies = self._registry.resolve(names)
        min_confidence = (
            request.min_confidence
            if request.min_confidence is not None
            else settings.min_confidence
        )

        candidates = await self._evaluate(strategies, request, driver, deadline)
        ranked = rank_candidates(candidates, request.stored_info, settings.scoring_weights)
        healing_time_ms = deadline.elapsed_ms
        shown = [c.result for c in ranked][: request.max_candidates]

        if not ranked:
            log.info("healing_no_candidates", strategies=[s.name.value for s in strategies])
            await self._record(storage, request, None, 0.0, False, healing_time_ms)
            self._emit(HealingEventKind.FAILED, request)
            return HealingResult(
                healed=False,
                candidates=shown,
                healing_time_ms=healing_time_ms,
                details="No valid candidates found",
            )

        best = ranked[0]
        if not meets_threshold(best.score, min_confidence):
            log.info(
                "healing_below_threshold",
                strategy=best.result.strategy.value,
                confidence=round(best.score, 3),
                min_confidence=min_confidence,
            )
            await self._record(storage, request, best.result, best.score, False, healing_time_ms)
            self._emit(HealingEventKind.FAILED, request, best.result, best.score)
            return HealingResult(
                healed=False,
                confidence=best.score,
                strategy=best.result.strategy,
                candidates=shown,
                healing_time_ms=healing_time_ms,
                details=(
                    f"Best candidate ({best.score:.0%}) below threshold ({min_confidence:.0%})"
                ),
            )

        if storage is not None and best.result.selector and best.result.element_info:
            await self._guarded(
                "save_mapping",
                storage.save_mapping(
                    SelectorMapping(
                        original_selector=request.original_selector,
                        healed_selector=best.result.selector,
                        url_pattern=request.url,
                        strategy=best.result.strategy,
                        confidence=best.score,
                        element_info=best.result.element_info,
                    )
                ),
            )
        await self._record(storage, request, best.result, best.score, True, healing_time_ms)
        self._emit(HealingEventKind.HEALED, request, best.result, best.score)
        log.info(
            "selector_healed",
            healed_to=best.result.selector,
            strategy=best.result.strategy.value,
            confidence=round(best.score, 3),
            healing_time_ms=healing_time_ms,
        )
        return HealingResult(
            healed=True,
            new_selector=best.result.selector,
            confidence=best.score,
            strategy=best.result.strategy,
            candidates=shown,
            healing_time_ms=healing_time_ms,
            details=f"Healed via {best.result.strategy.value}: {best.breakdown.explanation}",
        )

    async def _from_cache(
        self,
        storage: SelectorStorage,
        request: HealingRequest,
        driver: PageDriver,
        deadline: Deadline,
    ) -> HealingResult | None:
        cached = await self._guarded(
            "get_mapping", storage.get_mapping(request.original_selector, request.url)
        )
        if cached is None:
            return None

        try:
            still_resolves = await DomReader(driver).exists(cached.healed_selector)
        except Exception as e:
            logger.debug("cached_selector_error", selector=cached.healed_selector, error=str(e))
            still_resolves = False

        if not still_resolves:
            await self._guarded(
                "invalidate_mapping",
                storage.invalidate_mapping(request.original_selector, request.url),
            )
            logger.info(
                "mapping_invalidated",
                selector=request.original_selector,
                stale=cached.healed_selector,
                url=request.url,
            )
            return None

        self._emit(
            HealingEventKind.CACHE_HIT,
            request,
            confidence=cached.confidence,
            new_selector=cached.healed_selector,
            strategy=cached.strategy,
        )
        return HealingResult(
            healed=True,
            new_selector=cached.healed_selector,
            confidence=cached.confidence,
            strategy=cached.strategy,
            healing_time_ms=deadline.elapsed_ms,
            details=f"Used cached mapping (used {cached.use_count} times)",
            from_cache=True,
        )

    async def _evaluate(
        self,
        strategies: list[HealingStrategy],
        request: HealingRequest,
        driver: PageDriver,
        deadline: Deadline,
    ) -> list[StrategyResult]:
        """Run strategies in priority order until early exit or the deadline."""
        candidates: list[StrategyResult] = []
        if not strategies:
            return candidates
        stop = asyncio.Event()

        async def run() -> None:
            for strategy in strategies:
                if stop.is_set() or deadline.expired:
                    return
                try:
                    result = await strategy.heal(
                        request.original_selector, request.stored_info, driver
                    )
                except Exception as e:
                    logger.warning("strategy_failed", strategy=strategy.name.value, error=str(e))
                    continue
                # Results arriving after the deadline are discarded.
                if stop.is_set():
                    return
                if not result.found:
                    logger.debug(
                        "strategy_no_match", strategy=strategy.name.value, details=result.details
                    )
                    continue
                candidates.append(result)
                if result.confidence >= EARLY_EXIT_CONFIDENCE:
                    return

        task = asyncio.create_task(run())
        done, _ = await asyncio.wait({task}, timeout=deadline.remaining)
        if not done:
            stop.set()
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            logger.info(
                "healing_deadline_reached",
                selector=request.original_selector,
                timeout_ms=self._settings.timeout_ms,
                candidates=len(candidates),
            )
        return list(candidates)

    # -- capture / stats -----------------------------------------------------

    async def capture_element_info(self, selector: str, driver: PageDriver) -> ElementInfo | None:
        """Snapshot an element's attributes for future healing."""
        try:
            dom = DomReader(driver)
            handle = await dom.query(selector)
            if handle is None:
                return None
            return await dom.capture(handle)
        except Exception as e:
            logger.warning("capture_failed", selector=selector, error=str(e))
            return None

    async def get_stats(self) -> HealingStats:
        try:
            await self.initialize()
            storage = self._active_storage
            if storage is None:
                return HealingStats()
            return await storage.get_stats()
        except Exception as e:
            logger.warning("stats_unavailable", error=str(e))
            return HealingStats()

    async def clear_storage(self) -> None:
        await self.initialize()
        if self._storage is not None:
            await self._guarded("clear_all", self._storage.clear_all())

    # -- helpers -------------------------------------------------------------

    async def _guarded(self, operation: str, awaitable: Any) -> Any:
        """Await a storage call; a failing store must not fail the heal."""
        try:
            return await awaitable
        except Exception as e:
            logger.warning("storage_operation_failed", operation=operation, error=str(e))
            return None

    async def _record(
        self,
        storage: SelectorStorage | None,
        request: HealingRequest,
        result: StrategyResult | None,
        confidence: float,
        success: bool,
        healing_time_ms: int,
    ) -> None:
        if storage is None:
            return
        await self._guarded(
            "record_healing",
            storage.record_healing(
                request.original_selector,
                result.selector if result else None,
                result.strategy if result else None,
                confidence,
                request.url,
                success,
                healing_time_ms,
            ),
        )

    def _emit(
        self,
        kind: HealingEventKind,
        request: HealingRequest,
        result: StrategyResult | None = None,
        confidence: float = 0.0,
        **overrides: Any,
    ) -> None:
        if not self._settings.emit_events:
            return
        fields: dict[str, Any] = {
            "new_selector": result.selector if result else None,
            "strategy": result.strategy if result else None,
            "confidence": confidence,
        }
        fields.update(overrides)
        self.events.notify(
            HealingEvent(
                kind=kind,
                original_selector=request.original_selector,
                url=request.url,
                **fields,
            )
        )


async def heal_selector(
    original_selector: str,
    url: str,
    driver: PageDriver,
    stored_info: ElementInfo | None = None,
    *,
    manager: SelfHealingManager,
) -> HealingResult:
    """Heal with the manager's configured defaults.

    Action handlers retry their action against ``result.new_selector``.
    """
    return await manager.heal(
        HealingRequest(original_selector=original_selector, url=url, stored_info=stored_info),
        driver,
    )


async def capture_element(
    selector: str, driver: PageDriver, *, manager: SelfHealingManager
) -> ElementInfo | None:
    return await manager.capture_element_info(selector, driver)
