"""SQLite-backed mapping store (SQLModel over an async engine)."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import case, delete, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel import SQLModel, col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from selfheal.constants import RECENT_HEALINGS_LIMIT
from selfheal.exceptions import StorageUnavailableError
from selfheal.models.database import HealingHistoryRow, SelectorMappingRow, _utc_now
from selfheal.models.domain import (
    ElementInfo,
    HealingRecord,
    HealingStats,
    SelectorMapping,
    StrategyStats,
)
from selfheal.storage.base import SelectorStorage, normalize_url_pattern
from selfheal.types import HealingStrategyName

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)


def _aware(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


def _utc(value: datetime) -> datetime:
    return _aware(value).astimezone(UTC)


def _to_mapping(row: SelectorMappingRow) -> SelectorMapping:
    return SelectorMapping(
        id=row.id,
        original_selector=row.original_selector,
        healed_selector=row.healed_selector,
        url_pattern=row.url_pattern,
        strategy=HealingStrategyName(row.strategy),
        confidence=row.confidence,
        element_info=ElementInfo.model_validate(json.loads(row.element_info_json)),
        is_valid=row.is_valid,
        use_count=row.use_count,
        created_at=_aware(row.created_at),
        last_used_at=_aware(row.last_used_at),
    )


class SqlSelectorStorage(SelectorStorage):
    """Stores mappings and history in two tables on an async SQLAlchemy engine."""

    def __init__(self, engine: AsyncEngine, *, owns_engine: bool = False) -> None:
        self._engine = engine
        self._owns_engine = owns_engine
        self._initialized = False

    @classmethod
    def from_path(cls, db_path: str | Path) -> SqlSelectorStorage:
        """Open (or create) a SQLite database file."""
        path = Path(db_path).expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except (OSError, ValueError) as e:
            msg = f"Cannot create database directory for {path}: {e}"
            raise StorageUnavailableError(msg) from e
        engine = create_async_engine(f"sqlite+aiosqlite:///{path}")
        return cls(engine, owns_engine=True)

    async def initialize(self) -> None:
        if self._initialized:
            return
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            if self._owns_engine:
                await self._engine.dispose()
            msg = f"Selector storage could not be initialized: {e}"
            raise StorageUnavailableError(msg) from e
        self._initialized = True
        logger.debug("sql_storage_initialized", url=str(self._engine.url))

    async def _find(
        self, session: AsyncSession, original_selector: str, url_pattern: str
    ) -> SelectorMappingRow | None:
        stmt = select(SelectorMappingRow).where(
            col(SelectorMappingRow.original_selector) == original_selector,
            col(SelectorMappingRow.url_pattern) == url_pattern,
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    async def get_mapping(self, original_selector: str, url: str) -> SelectorMapping | None:
        async with AsyncSession(self._engine, expire_on_commit=False) as session:
            row = await self._find(session, original_selector, normalize_url_pattern(url))
            if row is None or not row.is_valid:
                return None
            row.use_count += 1
            row.last_used_at = _utc_now()
            session.add(row)
            await session.commit()
            return _to_mapping(row)

    async def save_mapping(self, mapping: SelectorMapping) -> None:
        url_pattern = normalize_url_pattern(mapping.url_pattern)
        try:
            await self._upsert(mapping, url_pattern)
        except IntegrityError:
            # A concurrent heal inserted the same key first; overwrite it.
            await self._upsert(mapping, url_pattern)
        logger.debug("mapping_saved", selector=mapping.original_selector, url=url_pattern)

    async def _upsert(self, mapping: SelectorMapping, url_pattern: str) -> None:
        async with AsyncSession(self._engine) as session:
            row = await self._find(session, mapping.original_selector, url_pattern)
            if row is None:
                row = SelectorMappingRow(
                    id=mapping.id,
                    original_selector=mapping.original_selector,
                    url_pattern=url_pattern,
                    healed_selector=mapping.healed_selector,
                    strategy=mapping.strategy.value,
                    confidence=mapping.confidence,
                    element_info_json=mapping.element_info.model_dump_json(exclude_none=True),
                    use_count=1,
                    created_at=_utc(mapping.created_at),
                )
            else:
                row.healed_selector = mapping.healed_selector
                row.strategy = mapping.strategy.value
                row.confidence = mapping.confidence
                row.element_info_json = mapping.element_info.model_dump_json(exclude_none=True)
                row.use_count += 1
            row.is_valid = True
            row.last_used_at = _utc_now()
            session.add(row)
            await session.commit()

    async def invalidate_mapping(self, original_selector: str, url: str) -> None:
        async with AsyncSession(self._engine) as session:
            row = await self._find(session, original_selector, normalize_url_pattern(url))
            if row is None:
                return
            row.is_valid = False
            session.add(row)
            await session.commit()

    async def record_healing(
        self,
        original_selector: str,
        healed_selector: str | None,
        strategy: HealingStrategyName | None,
        confidence: float,
        url: str,
        success: bool,
        healing_time_ms: int | None = None,
    ) -> None:
        async with AsyncSession(self._engine) as session:
            session.add(
                HealingHistoryRow(
                    original_selector=original_selector,
                    healed_selector=healed_selector,
                    strategy=strategy.value if strategy else None,
                    confidence=confidence,
                    url=url,
                    success=success,
                    healing_time_ms=healing_time_ms,
                )
            )
            await session.commit()

    async def get_stats(self) -> HealingStats:
        succeeded = col(HealingHistoryRow.success) == True  # noqa: E712
        success_count = func.sum(case((succeeded, 1), else_=0))
        success_confidence = func.avg(
            case((succeeded, col(HealingHistoryRow.confidence)), else_=None)
        )

        async with AsyncSession(self._engine) as session:
            totals = (
                await session.execute(
                    select(
                        func.count(col(HealingHistoryRow.id)),
                        success_count,
                        success_confidence,
                        func.avg(col(HealingHistoryRow.healing_time_ms)),
                    )
                )
            ).one()
            per_strategy = (
                await session.execute(
                    select(
                        col(HealingHistoryRow.strategy),
                        func.count(col(HealingHistoryRow.id)),
                        success_count,
                        success_confidence,
                    )
                    .where(col(HealingHistoryRow.strategy).is_not(None))
                    .group_by(col(HealingHistoryRow.strategy))
                )
            ).all()
            recent = (
                (
                    await session.execute(
                        select(HealingHistoryRow)
                        .where(succeeded)
                        .order_by(
                            col(HealingHistoryRow.timestamp).desc(),
                            col(HealingHistoryRow.id).desc(),
                        )
                        .limit(RECENT_HEALINGS_LIMIT)
                    )
                )
                .scalars()
                .all()
            )

        total, successes, avg_confidence, avg_time = totals
        total = total or 0
        successes = successes or 0
        stats = HealingStats(
            total_attempts=total,
            success_count=successes,
            failure_count=total - successes,
            success_rate=successes / total * 100 if total else 0.0,
            avg_confidence=avg_confidence or 0.0,
            avg_healing_time_ms=avg_time or 0.0,
        )
        for strategy, attempts, strategy_successes, strategy_confidence in per_strategy:
            stats.by_strategy[HealingStrategyName(strategy)] = StrategyStats(
                attempts=attempts,
                successes=strategy_successes or 0,
                avg_confidence=strategy_confidence or 0.0,
            )
        stats.recent_healings = [
            HealingRecord(
                original_selector=row.original_selector,
                healed_selector=row.healed_selector,
                strategy=HealingStrategyName(row.strategy) if row.strategy else None,
                confidence=row.confidence,
                url=row.url,
                success=row.success,
                healing_time_ms=row.healing_time_ms,
                timestamp=_aware(row.timestamp),
            )
            for row in recent
        ]
        return stats

    async def clear_all(self) -> None:
        async with AsyncSession(self._engine) as session:
            await session.execute(delete(SelectorMappingRow))
            await session.execute(delete(HealingHistoryRow))
            await session.commit()

    async def close(self) -> None:
        if self._owns_engine:
            await self._engine.dispose()
