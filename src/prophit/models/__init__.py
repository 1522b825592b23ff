"""Canonical schema (Pydantic) - Market, PriceHistoryEntry, Movement."""

from prophit.models.market import Market, Outcome, PriceHistoryEntry
from prophit.models.movement import Movement

__all__ = [
    "Market",
    "Outcome",
    "PriceHistoryEntry",
    "Movement",
]
