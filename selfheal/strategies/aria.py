"""Heal by aria-label and role, which track accessibility requirements."""

from __future__ import annotations

from typing import TYPE_CHECKING

from selfheal.constants import TEXT_PREFIX_LENGTH
from selfheal.strategies.base import HealingStrategy
from selfheal.types import HealingStrategyName
from selfheal.utils.selectors import attr_selector, extract_attribute, id_selector
from selfheal.utils.text import char_overlap_ratio, word_overlap_ratio

if TYPE_CHECKING:
    from selfheal.dom import DomReader
    from selfheal.models.domain import ElementInfo, ElementSummary, StrategyResult


def label_similarity(original: str, candidate: str, *, contained: float, fuzzy: str) -> float:
    """Compare two aria labels; ``fuzzy`` picks the word or character fallback."""
    norm_original = original.lower().strip()
    norm_candidate = candidate.lower().strip()
    if norm_candidate == norm_original:
        return 1.0
    if norm_original in norm_candidate:
        return 0.85
    if norm_candidate and norm_candidate in norm_original:
        return contained
    if fuzzy == "words":
        return word_overlap_ratio(norm_original, norm_candidate)
    return char_overlap_ratio(norm_original, norm_candidate)


class AriaStrategy(HealingStrategy):
    name = HealingStrategyName.ARIA_LABEL
    priority = 3

    async def _heal(
        self,
        original_selector: str,
        stored_info: ElementInfo | None,
        dom: DomReader,
    ) -> StrategyResult:
        label = extract_attribute(original_selector, "aria-label") or (
            stored_info.aria_label if stored_info else None
        )
        role = extract_attribute(original_selector, "role") or (
            stored_info.aria_role if stored_info else None
        )
        if not label and not role:
            return self.not_found("No aria-label or role in selector or stored info")

        if label:
            selector = attr_selector("aria-label", label)
            info = await dom.describe(selector)
            if info is not None:
                return self.found(selector, 1.0, "Exact aria-label match found", info)

        if role and label:
            result = await self._by_role_and_label(role, label, dom)
            if result is not None:
                return result

        if label:
            result = await self._by_fuzzy_label(label, stored_info, dom)
            if result is not None:
                return result

        if role and stored_info:
            result = await self._by_role(role, stored_info, dom)
            if result is not None:
                return result

        return self.not_found("No matching ARIA element found")

    async def _by_role_and_label(
        self, role: str, label: str, dom: DomReader
    ) -> StrategyResult | None:
        role_selector = attr_selector("role", role)
        best: tuple[str, float] | None = None
        for element in await dom.collect(role_selector):
            if not element.aria_label:
                continue
            similarity = label_similarity(label, element.aria_label, contained=0.8, fuzzy="words")
            if similarity > 0.4 and (best is None or similarity > best[1]):
                best = (element.aria_label, similarity)
        if best is None:
            return None

        found_label, similarity = best
        selector = role_selector + attr_selector("aria-label", found_label)
        info = await dom.describe(selector)
        if info is None:
            return None
        return self.found(
            selector,
            similarity * 0.95,
            f'Found by role + similar aria-label: "{label}" -> "{found_label}"',
            info,
        )

    async def _by_fuzzy_label(
        self, label: str, stored_info: ElementInfo | None, dom: DomReader
    ) -> StrategyResult | None:
        best: tuple[ElementSummary, float] | None = None
        for element in await dom.collect("[aria-label]"):
            if element.aria_label is None:
                continue
            similarity = label_similarity(label, element.aria_label, contained=0.75, fuzzy="chars")
            if similarity > 0.5 and (best is None or similarity > best[1]):
                best = (element, similarity)
        if best is None:
            return None

        element, similarity = best
        confidence = similarity * 0.9
        if stored_info and element.tag_name != stored_info.tag_name:
            confidence *= 0.8
        selector = attr_selector("aria-label", element.aria_label or "")
        info = await dom.describe(selector)
        if info is None:
            return None
        return self.found(
            selector,
            confidence,
            f'Fuzzy aria-label match: "{label}" -> "{element.aria_label}" ({similarity:.0%})',
            info,
        )

    async def _by_role(
        self, role: str, stored_info: ElementInfo, dom: DomReader
    ) -> StrategyResult | None:
        role_selector = attr_selector("role", role)
        best: tuple[str, float] | None = None
        for element in await dom.collect(role_selector):
            score = 0.0
            if element.tag_name == stored_info.tag_name:
                score += 2
            text = stored_info.text_content
            if text and text[:TEXT_PREFIX_LENGTH] in element.text:
                score += 1.5
            if element.aria_label:
                score += 0.5
            if score <= 1:
                continue
            if element.aria_label:
                selector = role_selector + attr_selector("aria-label", element.aria_label)
            elif element.id:
                selector = id_selector(element.id)
            else:
                selector = f"{role_selector} >> nth={element.index}"
            if best is None or score > best[1]:
                best = (selector, score)
        if best is None:
            return None

        selector, score = best
        info = await dom.describe(selector)
        if info is None:
            return None
        return self.found(
            selector,
            min(score / 4, 0.75),
            f"Found by role with attribute validation (score: {score:.1f})",
            info,
        )
