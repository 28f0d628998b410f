"""Inter-module data contracts."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from selfheal.types import HealingStrategyName


def _now() -> datetime:
    return datetime.now(UTC)


class _CamelModel(BaseModel):
    """Accepts both snake_case and the camelCase keys produced by page scripts."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ParentInfo(_CamelModel):
    tag_name: str
    id: str | None = None
    classes: list[str] | None = None


class SiblingInfo(_CamelModel):
    before: list[str] = []
    after: list[str] = []


class ElementInfo(_CamelModel):
    """Snapshot of an element's identifying attributes."""

    tag_name: str
    id: str | None = None
    classes: list[str] | None = None
    test_id: str | None = None
    aria_label: str | None = None
    aria_role: str | None = None
    text_content: str | None = None
    placeholder: str | None = None
    name: str | None = None
    href: str | None = None
    type: str | None = None
    css_path: str | None = None
    xpath: str | None = None
    parent: ParentInfo | None = None
    siblings: SiblingInfo | None = None


class ElementSummary(_CamelModel):
    """Lightweight element description returned by DOM scans."""

    tag_name: str
    id: str | None = None
    classes: list[str] = []
    test_id: str | None = None
    aria_label: str | None = None
    aria_role: str | None = None
    text: str = ""
    direct_text: str = ""
    type: str | None = None
    index: int = 0  # position in the scanned NodeList


class StrategyResult(BaseModel):
    """Output of one strategy invocation."""

    found: bool
    selector: str | None = None
    confidence: float = 0.0
    strategy: HealingStrategyName
    details: str = ""
    element_info: ElementInfo | None = None

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, value: float) -> float:
        return min(max(value, 0.0), 1.0)

    @model_validator(mode="after")
    def _found_requires_selector(self) -> StrategyResult:
        if self.found and not self.selector:
            msg = "a found StrategyResult must carry a selector"
            raise ValueError(msg)
        return self


class HealingRequest(BaseModel):
    original_selector: str
    url: str
    stored_info: ElementInfo | None = None
    strategies: list[HealingStrategyName] | None = None  # None: configured default
    min_confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    max_candidates: int | None = Field(default=None, ge=1)


class HealingResult(BaseModel):
    healed: bool
    new_selector: str | None = None
    confidence: float = 0.0
    strategy: HealingStrategyName | None = None
    candidates: list[StrategyResult] = []
    healing_time_ms: int = 0
    details: str = ""
    from_cache: bool = False


class SelectorMapping(BaseModel):
    """Persisted (original -> healed) selector pairing."""

    original_selector: str
    healed_selector: str
    url_pattern: str
    strategy: HealingStrategyName
    confidence: float
    element_info: ElementInfo
    is_valid: bool = True
    use_count: int = 1
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = Field(default_factory=_now)
    last_used_at: datetime = Field(default_factory=_now)


class HealingRecord(BaseModel):
    """One append-only healing attempt."""

    original_selector: str
    healed_selector: str | None = None
    strategy: HealingStrategyName | None = None
    confidence: float = 0.0
    url: str
    success: bool
    healing_time_ms: int | None = None
    timestamp: datetime = Field(default_factory=_now)


class StrategyStats(BaseModel):
    attempts: int = 0
    successes: int = 0
    avg_confidence: float = 0.0


def empty_strategy_breakdown() -> dict[HealingStrategyName, StrategyStats]:
    return {name: StrategyStats() for name in HealingStrategyName}


class HealingStats(BaseModel):
    total_attempts: int = 0
    success_count: int = 0
    failure_count: int = 0
    success_rate: float = 0.0  # percent
    avg_confidence: float = 0.0
    avg_healing_time_ms: float = 0.0
    by_strategy: dict[HealingStrategyName, StrategyStats] = Field(
        default_factory=empty_strategy_breakdown
    )
    recent_healings: list[HealingRecord] = []
