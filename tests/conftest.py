"""Shared test fixtures."""

from __future__ import annotations

from typing import Any

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel import SQLModel

import selfheal.models.database  # noqa: F401  registers tables on SQLModel.metadata
from selfheal.dom import CAPTURE_JS, CHILDREN_JS, COLLECT_JS, COUNT_JS, ELEMENT_INFO_JS


class FakeElement:
    """Stand-in for an element handle returned by ``query_selector``."""

    def __init__(self, selector: str, info: dict[str, Any]) -> None:
        self.selector = selector
        self.info = info


class FakePage:
    """Scriptable page driver.

    ``elements`` maps a selector to the attributes its first match reports;
    ``collections``, ``counts`` and ``children`` answer the DOM scans.
    """

    def __init__(self) -> None:
        self.elements: dict[str, dict[str, Any]] = {}
        self.collections: dict[str, list[dict[str, Any]]] = {}
        self.counts: dict[str, int] = {}
        self.children: dict[tuple[str, str], list[dict[str, Any]]] = {}
        self.broken: set[str] = set()
        self.queries: list[str] = []

    def add(self, selector: str, **info: Any) -> FakePage:
        self.elements[selector] = info
        return self

    async def query_selector(self, selector: str) -> FakeElement | None:
        self.queries.append(selector)
        if selector in self.broken:
            msg = f"Invalid selector: {selector}"
            raise RuntimeError(msg)
        info = self.elements.get(selector)
        return FakeElement(selector, info) if info is not None else None

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        if expression in (ELEMENT_INFO_JS, CAPTURE_JS):
            return dict(arg.info)
        if expression == COLLECT_JS:
            return self.collections.get(arg, [])
        if expression == COUNT_JS:
            return [self.counts.get(selector, 0) for selector in arg]
        if expression == CHILDREN_JS:
            return self.children.get((arg["parentSelector"], arg["tagName"]), [])
        msg = f"Unexpected script: {expression[:40]!r}"
        raise AssertionError(msg)


@pytest.fixture()
def fake_page() -> FakePage:
    return FakePage()


@pytest.fixture()
async def async_engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()
