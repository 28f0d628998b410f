"""Heal from stored attributes and DOM structure.

Catch-all strategy: rebuilds selectors from the snapshot, then searches by
class combinations, then by position under the stored parent.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations
from typing import TYPE_CHECKING

import structlog

from selfheal.constants import MAX_CLASS_COMBINATION_SIZE, TEXT_PREFIX_LENGTH
from selfheal.strategies.base import HealingStrategy
from selfheal.types import HealingStrategyName
from selfheal.utils.selectors import attr_selector, class_selector, id_selector
from selfheal.utils.text import class_overlap

if TYPE_CHECKING:
    from selfheal.dom import DomReader
    from selfheal.models.domain import ElementInfo, StrategyResult

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CandidateSelector:
    selector: str
    confidence: float
    description: str


@dataclass(frozen=True)
class MatchValidation:
    score: float
    details: str


def build_candidate_selectors(info: ElementInfo) -> list[CandidateSelector]:
    """Selectors derived from stored attributes, most reliable first."""
    tag = info.tag_name
    candidates: list[CandidateSelector] = []
    if info.id:
        candidates.append(CandidateSelector(id_selector(info.id), 1.0, "ID selector"))
    if info.test_id:
        candidates.append(
            CandidateSelector(
                attr_selector("data-testid", info.test_id), 0.98, "data-testid selector"
            )
        )
    if info.name:
        candidates.append(
            CandidateSelector(attr_selector("name", info.name, tag), 0.9, "name attribute selector")
        )
    if info.aria_label:
        candidates.append(
            CandidateSelector(
                attr_selector("aria-label", info.aria_label), 0.88, "aria-label selector"
            )
        )
    if info.placeholder:
        candidates.append(
            CandidateSelector(
                attr_selector("placeholder", info.placeholder, tag), 0.85, "placeholder selector"
            )
        )
    if info.type and info.classes:
        candidates.append(
            CandidateSelector(
                attr_selector("type", info.type, tag) + f".{info.classes[0]}",
                0.75,
                "type + class selector",
            )
        )
    if info.type:
        candidates.append(
            CandidateSelector(attr_selector("type", info.type, tag), 0.5, "type-only selector")
        )
    return candidates


def validate_match(found: ElementInfo, stored: ElementInfo) -> MatchValidation:
    """Score how well a found element agrees with the stored snapshot.

    A tag mismatch is disqualifying: the score is exactly 0 whatever else
    overlaps.
    """
    if found.tag_name != stored.tag_name:
        return MatchValidation(0.0, f"Tag mismatch: {found.tag_name} vs {stored.tag_name}")

    score = 0.3
    matches = ["tag"]
    mismatches: list[str] = []

    if stored.type:
        if found.type == stored.type:
            score += 0.2
            matches.append("type")
        else:
            score -= 0.1
            mismatches.append("type")

    if stored.text_content and found.text_content:
        stored_norm = stored.text_content.lower().strip()
        found_norm = found.text_content.lower().strip()
        if stored_norm in found_norm or found_norm in stored_norm:
            score += 0.2
            matches.append("text")

    if stored.classes and found.classes:
        overlap = class_overlap(stored.classes, found.classes)
        score += overlap / len(stored.classes) * 0.2
        if overlap:
            matches.append(f"classes({overlap})")

    if stored.aria_label and found.aria_label == stored.aria_label:
        score += 0.1
        matches.append("aria-label")

    details = f"Matched: [{', '.join(matches)}]"
    if mismatches:
        details += f" Mismatched: [{', '.join(mismatches)}]"
    return MatchValidation(min(max(score, 0.0), 1.0), details)


class CssPathStrategy(HealingStrategy):
    name = HealingStrategyName.CSS_PATH
    priority = 5

    async def _heal(
        self,
        original_selector: str,
        stored_info: ElementInfo | None,
        dom: DomReader,
    ) -> StrategyResult:
        if stored_info is None:
            return self.not_found("CSS path strategy requires stored element info")

        result = await self._from_attributes(stored_info, dom)
        if result is None and stored_info.classes:
            result = await self._from_classes(stored_info, dom)
        if result is None and stored_info.parent:
            result = await self._from_parent(stored_info, dom)
        return result or self.not_found("No matching element found via CSS path")

    async def _from_attributes(
        self, stored_info: ElementInfo, dom: DomReader
    ) -> StrategyResult | None:
        for candidate in build_candidate_selectors(stored_info):
            try:
                info = await dom.describe(candidate.selector)
            except Exception as e:
                logger.debug("css_candidate_rejected", selector=candidate.selector, error=str(e))
                continue
            if info is None:
                continue
            validation = validate_match(info, stored_info)
            if validation.score > 0.5:
                return self.found(
                    candidate.selector,
                    min(candidate.confidence * validation.score, 0.95),
                    f"{candidate.description} (validation: {validation.details})",
                    info,
                )
        return None

    async def _from_classes(
        self, stored_info: ElementInfo, dom: DomReader
    ) -> StrategyResult | None:
        classes = (stored_info.classes or [])[:MAX_CLASS_COMBINATION_SIZE]
        total = len(classes)
        selectors: list[tuple[str, int]] = []
        for size in range(total, 0, -1):
            for combo in combinations(classes, size):
                selectors.append((class_selector(stored_info.tag_name, combo), size))

        counts = await dom.count([s for s, _ in selectors])
        scored: list[tuple[str, float]] = []
        for (selector, size), count in zip(selectors, counts, strict=True):
            if count == 1:
                scored.append((selector, size / total + 0.5))
            elif 1 < count <= 3:
                scored.append((f"{selector}:first-of-type", size / total + 0.3))

        scored.sort(key=lambda item: item[1], reverse=True)
        for selector, score in scored[:3]:
            info = await dom.describe(selector)
            if info is not None:
                return self.found(
                    selector,
                    min(score, 0.85),
                    f"Found by class combination: {selector}",
                    info,
                )
        return None

    async def _from_parent(
        self, stored_info: ElementInfo, dom: DomReader
    ) -> StrategyResult | None:
        parent = stored_info.parent
        if parent is None:
            return None
        if parent.id:
            parent_selector = id_selector(parent.id)
        elif parent.classes:
            parent_selector = class_selector(parent.tag_name, parent.classes[:1])
        else:
            parent_selector = parent.tag_name

        tag = stored_info.tag_name
        prefix = (stored_info.text_content or "")[:TEXT_PREFIX_LENGTH]
        scored: list[tuple[str, float]] = []
        for child in await dom.children(parent_selector, tag):
            score = 0.0
            if prefix and prefix in child.text:
                score += 1
            score += class_overlap(stored_info.classes, child.classes) * 0.3
            if score > 0.5:
                scored.append((f"{parent_selector} > {tag}:nth-child({child.position})", score))

        scored.sort(key=lambda item: item[1], reverse=True)
        for selector, score in scored[:3]:
            info = await dom.describe(selector)
            if info is not None:
                return self.found(
                    selector,
                    min(score * 0.7, 0.8),
                    f"Found by parent-child relationship: {selector}",
                    info,
                )
        return None
