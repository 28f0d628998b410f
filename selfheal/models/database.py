"""SQLModel table models for the durable mapping store."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _timestamp_field() -> Any:
    # SQLite drops the offset on storage; values are read back as naive UTC
    return Field(default_factory=_utc_now, sa_type=DateTime(timezone=True))


def _new_uuid() -> str:
    return str(uuid.uuid4())


class SelectorMappingRow(SQLModel, table=True):
    __tablename__ = "selector_mappings"
    __table_args__ = (
        UniqueConstraint("original_selector", "url_pattern", name="uq_mapping_selector_url"),
    )

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    original_selector: str = Field(index=True)
    healed_selector: str
    url_pattern: str = Field(index=True)
    strategy: str
    confidence: float
    element_info_json: str
    use_count: int = Field(default=1)
    is_valid: bool = Field(default=True)
    last_used_at: datetime = _timestamp_field()
    created_at: datetime = _timestamp_field()


class HealingHistoryRow(SQLModel, table=True):
    __tablename__ = "healing_history"

    id: int | None = Field(default=None, primary_key=True)
    original_selector: str
    healed_selector: str | None = None
    strategy: str | None = None
    confidence: float
    url: str
    success: bool
    healing_time_ms: int | None = None
    timestamp: datetime = Field(
        default_factory=_utc_now, sa_type=DateTime(timezone=True), index=True
    )
