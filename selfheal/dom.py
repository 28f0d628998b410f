"""Read-only DOM access used by strategies and element capture.

Each script only gathers raw attributes; every heuristic runs in Python.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import ValidationError

from selfheal.exceptions import StrategyError
from selfheal.models.domain import ElementInfo, ElementSummary

if TYPE_CHECKING:
    from selfheal.driver import PageDriver

ELEMENT_INFO_JS = r"""
(el) => {
    const classesOf = (node) => (typeof node.className === 'string' && node.className.trim())
        ? node.className.split(/\s+/).filter(Boolean) : null;
    const parent = el.parentElement;
    return {
        tagName: el.tagName.toLowerCase(),
        id: el.id || null,
        classes: classesOf(el),
        testId: el.getAttribute('data-testid'),
        ariaLabel: el.getAttribute('aria-label'),
        ariaRole: el.getAttribute('role'),
        textContent: (el.textContent || '').trim().slice(0, 100) || null,
        placeholder: el.getAttribute('placeholder'),
        name: el.getAttribute('name'),
        href: el.getAttribute('href'),
        type: el.getAttribute('type'),
        parent: parent ? {
            tagName: parent.tagName.toLowerCase(),
            id: parent.id || null,
            classes: classesOf(parent),
        } : null,
    };
}
"""

CAPTURE_JS = r"""
(el) => {
    const classesOf = (node) => (typeof node.className === 'string' && node.className.trim())
        ? node.className.split(/\s+/).filter(Boolean) : null;
    const cssPath = (start) => {
        const parts = [];
        let node = start;
        while (node && node !== document.body && node !== document.documentElement) {
            if (node.id) {
                parts.unshift('#' + node.id);
                break;
            }
            let seg = node.tagName.toLowerCase();
            const parentNode = node.parentElement;
            if (parentNode) {
                const same = Array.from(parentNode.children)
                    .filter((c) => c.tagName === node.tagName);
                if (same.length > 1) {
                    seg += ':nth-of-type(' + (same.indexOf(node) + 1) + ')';
                }
            }
            parts.unshift(seg);
            node = parentNode;
        }
        return parts.join(' > ');
    };
    const xpath = (start) => {
        const parts = [];
        let node = start;
        while (node && node.nodeType === Node.ELEMENT_NODE) {
            if (node.id) {
                parts.unshift('//*[@id="' + node.id + '"]');
                return parts.join('/');
            }
            let seg = node.tagName.toLowerCase();
            const parentNode = node.parentElement;
            if (parentNode) {
                const same = Array.from(parentNode.children)
                    .filter((c) => c.tagName === node.tagName);
                if (same.length > 1) {
                    seg += '[' + (same.indexOf(node) + 1) + ']';
                }
            }
            parts.unshift(seg);
            node = parentNode;
        }
        return '/' + parts.join('/');
    };
    const snippet = (node) => (node.textContent || '').trim().slice(0, 50);
    const before = [];
    const after = [];
    let sib = el.previousElementSibling;
    while (sib && before.length < 2) {
        before.unshift(snippet(sib));
        sib = sib.previousElementSibling;
    }
    sib = el.nextElementSibling;
    while (sib && after.length < 2) {
        after.push(snippet(sib));
        sib = sib.nextElementSibling;
    }
    const parent = el.parentElement;
    return {
        tagName: el.tagName.toLowerCase(),
        id: el.id || null,
        classes: classesOf(el),
        testId: el.getAttribute('data-testid'),
        ariaLabel: el.getAttribute('aria-label'),
        ariaRole: el.getAttribute('role'),
        textContent: (el.textContent || '').trim().slice(0, 100) || null,
        placeholder: el.getAttribute('placeholder'),
        name: el.getAttribute('name'),
        href: el.getAttribute('href'),
        type: el.getAttribute('type'),
        cssPath: cssPath(el),
        xpath: xpath(el),
        parent: parent ? {
            tagName: parent.tagName.toLowerCase(),
            id: parent.id || null,
            classes: classesOf(parent),
        } : null,
        siblings: { before, after },
    };
}
"""

COLLECT_JS = r"""
(selector) => Array.from(document.querySelectorAll(selector)).map((el, index) => ({
    tagName: el.tagName.toLowerCase(),
    id: el.id || null,
    classes: (typeof el.className === 'string') ? el.className.split(/\s+/).filter(Boolean) : [],
    testId: el.getAttribute('data-testid'),
    ariaLabel: el.getAttribute('aria-label'),
    ariaRole: el.getAttribute('role'),
    text: (el.textContent || '').trim().slice(0, 200),
    directText: Array.from(el.childNodes)
        .filter((n) => n.nodeType === Node.TEXT_NODE)
        .map((n) => n.textContent || '')
        .join('')
        .trim(),
    type: el.getAttribute('type'),
    index,
}))
"""

COUNT_JS = r"""
(selectors) => selectors.map((s) => {
    try {
        return document.querySelectorAll(s).length;
    } catch (e) {
        return -1;
    }
})
"""

CHILDREN_JS = r"""
({ parentSelector, tagName }) => {
    const out = [];
    document.querySelectorAll(parentSelector).forEach((parent, parentIndex) => {
        Array.from(parent.children).forEach((child, i) => {
            if (child.tagName.toLowerCase() !== tagName) return;
            out.push({
                parentIndex,
                position: i + 1,
                text: (child.textContent || '').trim().slice(0, 200),
                classes: (typeof child.className === 'string')
                    ? child.className.split(/\s+/).filter(Boolean) : [],
            });
        });
    });
    return out;
}
"""


_M = TypeVar("_M", ElementInfo, ElementSummary)


def _parse(model: type[_M], raw: Any) -> _M:
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        msg = f"Unexpected {model.__name__} payload from page: {e.error_count()} error(s)"
        raise StrategyError(msg) from e


@dataclass
class ChildSummary:
    """A same-tag direct child of a candidate parent element."""

    parent_index: int
    position: int  # 1-based, for :nth-child()
    text: str = ""
    classes: list[str] = field(default_factory=list)


class DomReader:
    """Typed wrapper around the page driver's query/evaluate calls."""

    def __init__(self, driver: PageDriver) -> None:
        self._driver = driver

    async def query(self, selector: str) -> Any | None:
        return await self._driver.query_selector(selector)

    async def exists(self, selector: str) -> bool:
        return await self.query(selector) is not None

    async def element_info(self, handle: Any) -> ElementInfo:
        raw = await self._driver.evaluate(ELEMENT_INFO_JS, handle)
        return _parse(ElementInfo, raw)

    async def describe(self, selector: str) -> ElementInfo | None:
        """Query ``selector`` and read the first match's attributes."""
        handle = await self.query(selector)
        if handle is None:
            return None
        return await self.element_info(handle)

    async def capture(self, handle: Any) -> ElementInfo:
        raw = await self._driver.evaluate(CAPTURE_JS, handle)
        return _parse(ElementInfo, raw)

    async def collect(self, selector: str) -> list[ElementSummary]:
        raw = await self._driver.evaluate(COLLECT_JS, selector) or []
        return [_parse(ElementSummary, item) for item in raw]

    async def count(self, selectors: list[str]) -> list[int]:
        """Match counts per selector; -1 marks a selector the page rejected."""
        if not selectors:
            return []
        return list(await self._driver.evaluate(COUNT_JS, selectors))

    async def children(self, parent_selector: str, tag_name: str) -> list[ChildSummary]:
        raw = await self._driver.evaluate(
            CHILDREN_JS, {"parentSelector": parent_selector, "tagName": tag_name}
        ) or []
        return [
            ChildSummary(
                parent_index=item["parentIndex"],
                position=item["position"],
                text=item.get("text") or "",
                classes=list(item.get("classes") or []),
            )
            for item in raw
        ]
