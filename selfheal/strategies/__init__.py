"""Healing strategies, one heuristic per module."""

from selfheal.strategies.aria import AriaStrategy
from selfheal.strategies.base import HealingStrategy
from selfheal.strategies.css_path import CssPathStrategy
from selfheal.strategies.data_testid import DataTestIdStrategy
from selfheal.strategies.id import IdStrategy
from selfheal.strategies.registry import StrategyRegistry
from selfheal.strategies.text import TextStrategy

__all__ = [
    "AriaStrategy",
    "CssPathStrategy",
    "DataTestIdStrategy",
    "HealingStrategy",
    "IdStrategy",
    "StrategyRegistry",
    "TextStrategy",
]
