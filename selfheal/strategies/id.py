"""Heal by element id, with a partial-id fallback."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from selfheal.strategies.base import HealingStrategy
from selfheal.types import HealingStrategyName
from selfheal.utils.selectors import extract_id, id_selector

if TYPE_CHECKING:
    from selfheal.dom import DomReader
    from selfheal.models.domain import ElementInfo, StrategyResult

_MAX_PARTIAL_CONFIDENCE = 0.95
_TAG_MISMATCH_PENALTY = 0.7


class IdStrategy(HealingStrategy):
    name = HealingStrategyName.ID
    priority = 1

    async def _heal(
        self,
        original_selector: str,
        stored_info: ElementInfo | None,
        dom: DomReader,
    ) -> StrategyResult:
        ids: list[str] = []
        for candidate in (extract_id(original_selector), stored_info.id if stored_info else None):
            if candidate and candidate not in ids:
                ids.append(candidate)
        if not ids:
            return self.not_found("No ID found in original selector or stored info")

        for element_id in ids:
            selector = id_selector(element_id)
            info = await dom.describe(selector)
            if info is not None:
                return self.found(selector, 1.0, "Exact ID match found", info)

        return await self._partial_match(ids[0], stored_info, dom)

    async def _partial_match(
        self,
        original_id: str,
        stored_info: ElementInfo | None,
        dom: DomReader,
    ) -> StrategyResult:
        # "submit-btn" -> ["submit", "btn"]
        components = [c for c in re.split(r"[-_]", original_id) if c]
        joined_length = len("-".join(components))
        best_id: str | None = None
        best_score = 0.0

        for element in await dom.collect("[id]"):
            if not element.id:
                continue
            lowered = element.id.lower()
            score = float(sum(1 for c in components if c.lower() in lowered))
            if abs(len(element.id) - joined_length) < 5:
                score += 0.5
            if score > best_score:
                best_id, best_score = element.id, score

        if best_id is None:
            return self.not_found("No matching ID found")

        max_score = len(components) + 0.5
        confidence = min(best_score / max_score, _MAX_PARTIAL_CONFIDENCE)
        selector = id_selector(best_id)
        info = await dom.describe(selector)
        if info is None:
            return self.not_found(f"Partial ID candidate #{best_id} vanished")

        if stored_info and info.tag_name != stored_info.tag_name:
            return self.found(
                selector,
                confidence * _TAG_MISMATCH_PENALTY,
                f"Partial ID match found but tag differs "
                f"(expected {stored_info.tag_name}, got {info.tag_name})",
                info,
            )
        return self.found(
            selector,
            confidence,
            f'Partial ID match: "{original_id}" -> "{best_id}" '
            f"(score: {best_score:g}/{max_score:g})",
            info,
        )
