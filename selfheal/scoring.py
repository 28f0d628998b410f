"""Candidate ranking and threshold checks.

Each strategy already folds validation into its own confidence, so ranking
sorts on that confidence. The breakdown computed here is advisory: it feeds
the human-readable explanation and never reorders candidates.
"""

from __future__ import annotations

from dataclasses import dataclass

from selfheal.config.settings import ScoringWeights
from selfheal.constants import DEFAULT_MIN_CONFIDENCE
from selfheal.models.domain import ElementInfo, StrategyResult
from selfheal.types import STRATEGY_PRIORITY
from selfheal.utils.text import class_overlap

_UNKNOWN_PRIORITY = max(STRATEGY_PRIORITY.values()) + 1


@dataclass(frozen=True)
class ScoreBreakdown:
    strategy_confidence: float
    attribute_match: float = 0.0
    text_similarity: float = 0.0
    structural_match: float = 0.0
    support: float = 0.0  # weighted sum of the three factors
    explanation: str = ""


@dataclass(frozen=True)
class RankedCandidate:
    result: StrategyResult
    score: float
    breakdown: ScoreBreakdown


def attribute_match(found: ElementInfo, stored: ElementInfo) -> float:
    """Weighted share of stored attributes the found element reproduces."""
    matches = 0.0
    total = 0.0

    total += 1
    if found.tag_name == stored.tag_name:
        matches += 1

    for stored_value, found_value, weight in (
        (stored.id, found.id, 2.0),
        (stored.test_id, found.test_id, 2.0),
        (stored.aria_label, found.aria_label, 1.5),
    ):
        if not stored_value:
            continue
        total += weight
        if found_value == stored_value:
            matches += weight
        elif found_value and stored_value in found_value:
            matches += weight / 2

    for stored_value, found_value, weight in (
        (stored.type, found.type, 1.0),
        (stored.name, found.name, 1.0),
        (stored.placeholder, found.placeholder, 0.5),
    ):
        if not stored_value:
            continue
        total += weight
        if found_value == stored_value:
            matches += weight

    if stored.classes:
        total += 1
        matches += class_overlap(stored.classes, found.classes) / len(stored.classes)

    return matches / total if total else 0.0


def text_similarity(found: ElementInfo, stored: ElementInfo) -> float:
    if not stored.text_content or not found.text_content:
        return 0.0
    stored_text = stored.text_content.lower().strip()
    found_text = found.text_content.lower().strip()
    if not stored_text or not found_text:
        return 0.0
    if stored_text == found_text:
        return 1.0
    if stored_text in found_text:
        return 0.8 + len(stored_text) / len(found_text) * 0.15
    if found_text in stored_text:
        return 0.7 + len(found_text) / len(stored_text) * 0.15

    stored_words = set(stored_text.split())
    found_words = set(found_text.split())
    shared = stored_words & found_words
    if shared:
        return len(shared) / max(len(stored_words), len(found_words)) * 0.6

    stored_chars = set(stored_text.replace(" ", ""))
    found_chars = set(found_text.replace(" ", ""))
    union = stored_chars | found_chars
    return len(stored_chars & found_chars) / len(union) * 0.4 if union else 0.0


def structural_match(found: ElementInfo, stored: ElementInfo) -> float:
    score = 0.0
    factors = 0.0

    if stored.parent and found.parent:
        factors += 1
        if stored.parent.tag_name == found.parent.tag_name:
            score += 0.5
            if stored.parent.id and found.parent.id == stored.parent.id:
                score += 0.3
            if stored.parent.classes and found.parent.classes:
                overlap = class_overlap(stored.parent.classes, found.parent.classes)
                score += 0.2 * overlap / len(stored.parent.classes)

    if stored.css_path and found.css_path:
        factors += 0.5
        depth_gap = abs(stored.css_path.count(">") - found.css_path.count(">"))
        if depth_gap == 0:
            score += 0.5
        elif depth_gap == 1:
            score += 0.25

    return score / factors if factors else 0.0


def score_breakdown(
    result: StrategyResult,
    stored_info: ElementInfo | None = None,
    weights: ScoringWeights | None = None,
) -> ScoreBreakdown:
    weights = weights or ScoringWeights()
    attr = text = structure = 0.0
    if stored_info and result.element_info:
        attr = attribute_match(result.element_info, stored_info)
        text = text_similarity(result.element_info, stored_info)
        structure = structural_match(result.element_info, stored_info)

    support = attr * weights.exact_match + text * weights.semantic + structure * weights.structure

    parts = [f"Strategy: {result.strategy.value} (confidence: {result.confidence:.0%})"]
    if attr > 0:
        parts.append(f"Attributes: {attr:.0%} match")
    if text > 0:
        parts.append(f"Text: {text:.0%} similar")
    if structure > 0:
        parts.append(f"Structure: {structure:.0%} match")

    return ScoreBreakdown(
        strategy_confidence=result.confidence,
        attribute_match=attr,
        text_similarity=text,
        structural_match=structure,
        support=support,
        explanation=" | ".join(parts),
    )


def strategy_priority(result: StrategyResult) -> int:
    return STRATEGY_PRIORITY.get(result.strategy, _UNKNOWN_PRIORITY)


def rank_candidates(
    candidates: list[StrategyResult],
    stored_info: ElementInfo | None = None,
    weights: ScoringWeights | None = None,
) -> list[RankedCandidate]:
    """Found candidates, highest confidence first, ties by strategy priority."""
    ranked = [
        RankedCandidate(
            result=result,
            score=result.confidence,
            breakdown=score_breakdown(result, stored_info, weights),
        )
        for result in candidates
        if result.found
    ]
    ranked.sort(key=lambda c: (-c.score, strategy_priority(c.result)))
    return ranked


def meets_threshold(score: float, minimum: float = DEFAULT_MIN_CONFIDENCE) -> bool:
    return score >= minimum
