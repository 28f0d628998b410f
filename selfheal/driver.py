"""Page driver protocol consumed by the engine."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class PageDriver(Protocol):
    """Read-only page access: query one element and evaluate a script.

    A Playwright async ``Page`` satisfies this protocol as-is.
    """

    async def query_selector(self, selector: str) -> Any | None: ...

    async def evaluate(self, expression: str, arg: Any = None) -> Any: ...
