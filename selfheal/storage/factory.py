"""Storage backend selection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from selfheal.exceptions import StorageUnavailableError
from selfheal.storage.memory import InMemorySelectorStorage
from selfheal.storage.sql import SqlSelectorStorage

if TYPE_CHECKING:
    from selfheal.config.settings import SelfHealSettings
    from selfheal.storage.base import SelectorStorage

logger = structlog.get_logger(__name__)


async def create_storage(settings: SelfHealSettings) -> SelectorStorage:
    """SQLite store when ``db_path`` is set, in-memory otherwise.

    A durable backend that fails to initialize degrades to in-memory storage
    so healing keeps working.
    """
    if settings.db_path:
        try:
            storage = SqlSelectorStorage.from_path(settings.db_path)
            await storage.initialize()
        except StorageUnavailableError as e:
            logger.warning("storage_unavailable", db_path=settings.db_path, error=str(e))
        else:
            logger.info("storage_ready", backend="sqlite", db_path=settings.db_path)
            return storage

    storage = InMemorySelectorStorage()
    await storage.initialize()
    logger.info("storage_ready", backend="memory")
    return storage
