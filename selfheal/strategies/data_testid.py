"""Heal by ``data-testid``, the attribute most likely to survive a redesign."""

from __future__ import annotations

from typing import TYPE_CHECKING

from selfheal.constants import TEXT_PREFIX_LENGTH
from selfheal.strategies.base import HealingStrategy
from selfheal.types import HealingStrategyName
from selfheal.utils.selectors import attr_selector, extract_attribute
from selfheal.utils.text import char_overlap_ratio, class_overlap, normalize_identifier

if TYPE_CHECKING:
    from selfheal.dom import DomReader
    from selfheal.models.domain import ElementInfo, ElementSummary, StrategyResult

TEST_ID_ATTRIBUTE = "data-testid"
_MIN_SIMILARITY = 0.4
_TAG_MISMATCH_PENALTY = 0.8
_ATTRIBUTE_MAX_SCORE = 7.5
_ATTRIBUTE_CONFIDENCE_CAP = 0.85


def score_test_id_similarity(original: str, candidate: str) -> float:
    """Similarity of two test ids after separator/case normalization."""
    norm_original = normalize_identifier(original)
    norm_candidate = normalize_identifier(candidate)
    if norm_candidate == norm_original:
        return 0.95
    if norm_original and norm_original in norm_candidate:
        return 0.8
    if norm_candidate and norm_candidate in norm_original:
        return 0.7
    return char_overlap_ratio(norm_original, norm_candidate)


def attribute_score(element: ElementSummary, info: ElementInfo) -> float:
    """How much a test-id-bearing element resembles the stored snapshot."""
    score = 0.0
    if element.tag_name == info.tag_name:
        score += 2
    if info.text_content and info.text_content[:TEXT_PREFIX_LENGTH] in element.text:
        score += 1.5
    if info.aria_label and element.aria_label == info.aria_label:
        score += 2
    score += class_overlap(info.classes, element.classes) * 0.5
    if info.type and element.type == info.type:
        score += 1
    return score


class DataTestIdStrategy(HealingStrategy):
    name = HealingStrategyName.DATA_TESTID
    priority = 2

    async def _heal(
        self,
        original_selector: str,
        stored_info: ElementInfo | None,
        dom: DomReader,
    ) -> StrategyResult:
        original_test_id = extract_attribute(original_selector, TEST_ID_ATTRIBUTE) or (
            stored_info.test_id if stored_info else None
        )
        elements: list[ElementSummary] | None = None

        if original_test_id:
            selector = attr_selector(TEST_ID_ATTRIBUTE, original_test_id)
            info = await dom.describe(selector)
            if info is not None:
                return self.found(selector, 1.0, "Exact data-testid match found", info)

            elements = await dom.collect(f"[{TEST_ID_ATTRIBUTE}]")
            result = await self._similar_test_id(original_test_id, elements, stored_info, dom)
            if result is not None:
                return result

        if stored_info:
            if elements is None:
                elements = await dom.collect(f"[{TEST_ID_ATTRIBUTE}]")
            result = await self._by_attributes(elements, stored_info, dom)
            if result is not None:
                return result

        return self.not_found("No matching data-testid found")

    async def _similar_test_id(
        self,
        original_test_id: str,
        elements: list[ElementSummary],
        stored_info: ElementInfo | None,
        dom: DomReader,
    ) -> StrategyResult | None:
        best: tuple[str, float] | None = None
        for element in elements:
            if not element.test_id:
                continue
            similarity = score_test_id_similarity(original_test_id, element.test_id)
            if similarity > _MIN_SIMILARITY and (best is None or similarity > best[1]):
                best = (element.test_id, similarity)
        if best is None:
            return None

        test_id, similarity = best
        selector = attr_selector(TEST_ID_ATTRIBUTE, test_id)
        info = await dom.describe(selector)
        if info is None:
            return None

        confidence = similarity
        if stored_info and info.tag_name != stored_info.tag_name:
            confidence *= _TAG_MISMATCH_PENALTY
        return self.found(
            selector,
            confidence,
            f'Similar data-testid found: "{original_test_id}" -> "{test_id}" '
            f"(similarity: {similarity:.0%})",
            info,
        )

    async def _by_attributes(
        self,
        elements: list[ElementSummary],
        stored_info: ElementInfo,
        dom: DomReader,
    ) -> StrategyResult | None:
        best: tuple[str, float] | None = None
        for element in elements:
            if not element.test_id:
                continue
            score = attribute_score(element, stored_info)
            if score > 0 and (best is None or score > best[1]):
                best = (element.test_id, score)
        if best is None:
            return None

        test_id, score = best
        selector = attr_selector(TEST_ID_ATTRIBUTE, test_id)
        info = await dom.describe(selector)
        if info is None:
            return None
        return self.found(
            selector,
            min(score / _ATTRIBUTE_MAX_SCORE, _ATTRIBUTE_CONFIDENCE_CAP),
            f"Found data-testid by attribute matching (score: {score:.1f})",
            info,
        )
