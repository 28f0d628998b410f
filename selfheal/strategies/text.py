"""Heal by visible text, from exact match down to fuzzy similarity."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import structlog

from selfheal.strategies.base import HealingStrategy
from selfheal.types import HealingStrategyName
from selfheal.utils.selectors import css_string, extract_text
from selfheal.utils.text import normalize_text, split_words

if TYPE_CHECKING:
    from selfheal.dom import DomReader
    from selfheal.models.domain import ElementInfo, ElementSummary, StrategyResult

logger = structlog.get_logger(__name__)

_MIN_SIMILARITY = 0.4
_MAX_SCAN_CONFIDENCE = 0.95
_REGEX_CONFIDENCE = 0.7


def text_similarity(normalized: str, element: ElementSummary) -> float:
    """Score one scanned element against the normalized search text."""
    element_text = element.direct_text or element.text
    if not element_text:
        return 0.0
    normalized_el = normalize_text(element_text)

    if normalized_el == normalized:
        return 1.0
    if element.direct_text and normalize_text(element.direct_text) == normalized:
        return 0.98
    if normalized in normalized_el:
        # Shorter matches carry less unrelated content
        return 0.7 + (len(normalized) / len(normalized_el)) * 0.25
    if normalized_el in normalized and len(normalized_el) > 5:
        return 0.6 + (len(normalized_el) / len(normalized)) * 0.2

    search_words = split_words(normalized)
    element_words = split_words(normalized_el)
    overlap = sum(1 for w in search_words if any(ew in w or w in ew for ew in element_words))
    if overlap and search_words:
        return 0.3 + (overlap / len(search_words)) * 0.3
    return 0.0


class TextStrategy(HealingStrategy):
    name = HealingStrategyName.TEXT
    priority = 4

    async def _heal(
        self,
        original_selector: str,
        stored_info: ElementInfo | None,
        dom: DomReader,
    ) -> StrategyResult:
        original_text = extract_text(original_selector) or (
            stored_info.text_content if stored_info else None
        )
        if not original_text:
            return self.not_found("No text content found in selector or stored info")

        quoted = css_string(original_text)

        selector = f"text={quoted}"
        info = await dom.describe(selector)
        if info is not None:
            confidence = 1.0
            if stored_info and info.tag_name != stored_info.tag_name:
                confidence = 0.85
            return self.found(selector, confidence, "Exact text match found", info)

        selector = f"text={quoted}i"
        info = await dom.describe(selector)
        if info is not None:
            return self.found(selector, 0.95, "Case-insensitive text match found", info)

        result = await self._scan(original_text, stored_info, dom)
        if result is not None:
            return result

        result = await self._regex(original_text, dom)
        if result is not None:
            return result

        return self.not_found("No matching text element found")

    async def _scan(
        self, original_text: str, stored_info: ElementInfo | None, dom: DomReader
    ) -> StrategyResult | None:
        normalized = normalize_text(original_text)
        tag = stored_info.tag_name if stored_info else "*"

        best: tuple[ElementSummary, float] | None = None
        for element in await dom.collect(tag):
            similarity = text_similarity(normalized, element)
            if similarity > _MIN_SIMILARITY and (best is None or similarity > best[1]):
                best = (element, similarity)
        if best is None:
            return None

        element, similarity = best
        matched_text = (element.direct_text or element.text)[:50]
        if similarity > 0.9:
            selector = f"{element.tag_name}:has-text({css_string(matched_text)})"
        else:
            selector = f"text={css_string(matched_text)}"

        info = await dom.describe(selector)
        if info is None:
            return None

        confidence = similarity
        if stored_info:
            if info.tag_name != stored_info.tag_name:
                confidence *= 0.85
            if info.id and info.id == stored_info.id:
                confidence = min(confidence + 0.1, 1.0)
        return self.found(
            selector,
            min(confidence, _MAX_SCAN_CONFIDENCE),
            f'Text similarity match: "{original_text[:30]}" -> "{matched_text[:30]}" '
            f"({similarity:.0%})",
            info,
        )

    async def _regex(self, original_text: str, dom: DomReader) -> StrategyResult | None:
        if len(original_text) <= 3:
            return None
        words = [w for w in split_words(normalize_text(original_text)) if len(w) > 2]
        if not words:
            return None

        pattern = ".*".join(re.escape(w) for w in words[:3])
        selector = f"text=/{pattern}/i"
        try:
            info = await dom.describe(selector)
        except Exception as e:
            logger.debug("text_regex_rejected", pattern=pattern, error=str(e))
            return None
        if info is None:
            return None
        return self.found(
            selector,
            _REGEX_CONFIDENCE,
            f"Regex text match using pattern: /{pattern}/i",
            info,
        )
