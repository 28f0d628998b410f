"""Selector parsing and construction helpers."""

from __future__ import annotations

import re

_ID_RE = re.compile(r"#([a-zA-Z0-9_-]+)")
_CSS_IDENT_RE = re.compile(r"-?[A-Za-z_][A-Za-z0-9_-]*")
_TEXT_ENGINE_RE = re.compile(r"""^text=["']?(.+?)["']?$""")
_HAS_TEXT_RE = re.compile(r""":has-text\(["']?(.+?)["']?\)""")


def css_string(value: str) -> str:
    """Quote ``value`` for use inside a CSS attribute selector."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def attr_selector(attribute: str, value: str, tag: str = "") -> str:
    return f"{tag}[{attribute}={css_string(value)}]"


def id_selector(element_id: str) -> str:
    """``#id`` for plain identifiers, an attribute selector otherwise."""
    if _CSS_IDENT_RE.fullmatch(element_id):
        return f"#{element_id}"
    return attr_selector("id", element_id)


def class_selector(tag: str, classes: list[str] | tuple[str, ...]) -> str:
    return tag + "".join(f".{c}" for c in classes)


def extract_id(selector: str) -> str | None:
    match = _ID_RE.search(selector)
    return match.group(1) if match else None


def extract_attribute(selector: str, attribute: str) -> str | None:
    """Value of ``[attribute=...]`` in ``selector``, quoted or bare."""
    pattern = rf"""\[{re.escape(attribute)}=["']?([^"'\]]+)["']?\]"""
    match = re.search(pattern, selector)
    return match.group(1) if match else None


def extract_text(selector: str) -> str | None:
    """Text from a ``text=`` engine selector or a ``:has-text()`` pseudo-class."""
    match = _HAS_TEXT_RE.search(selector)
    if match:
        return match.group(1)
    match = _TEXT_ENGINE_RE.match(selector)
    if match:
        return match.group(1)
    return None
