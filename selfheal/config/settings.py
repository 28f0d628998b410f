"""Engine settings via Pydantic BaseSettings."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

from selfheal.constants import DEFAULT_MIN_CONFIDENCE, DEFAULT_TIMEOUT_MS
from selfheal.exceptions import ConfigError
from selfheal.types import DEFAULT_STRATEGIES, HealingStrategyName


class ScoringWeights(BaseModel):
    """Advisory weights for the score breakdown factors."""

    exact_match: float = 1.0
    partial_match: float = 0.6
    structure: float = 0.4
    proximity: float = 0.3
    semantic: float = 0.5


class SelfHealSettings(BaseSettings):
    model_config = {
        "env_prefix": "SELFHEAL_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
        "extra": "ignore",
    }

    enabled: bool = True
    strategies: list[HealingStrategyName] = Field(
        default_factory=lambda: list(DEFAULT_STRATEGIES)
    )
    min_confidence: float = Field(default=DEFAULT_MIN_CONFIDENCE, ge=0.0, le=1.0)
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, ge=0)
    persist_healings: bool = True
    emit_events: bool = True
    scoring_weights: ScoringWeights = Field(default_factory=ScoringWeights)
    db_path: str | None = None  # selects the SQLite backend when set

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    def merged(self, **changes: Any) -> SelfHealSettings:
        """Return a validated copy with ``changes`` applied."""
        data = self.model_dump()
        data.update(changes)
        try:
            return SelfHealSettings.model_validate(data)
        except ValidationError as e:
            msg = f"Invalid self-heal configuration: {e}"
            raise ConfigError(msg) from e


@lru_cache
def get_settings() -> SelfHealSettings:
    """Return cached settings instance."""
    return SelfHealSettings()
