"""Market, Outcome, PriceHistoryEntry - canonical entities."""

from __future__ import annotations

from pydantic import BaseModel, Field


class Outcome(BaseModel):
    """Single named outcome of a market with its implied probability."""

    name: str
    price: float = Field(..., ge=0, le=1, description="Probability/price in [0, 1]")


class Market(BaseModel):
    """Canonical market - source-agnostic."""

    market_id: str
    question: str
    slug: str = ""
    category: str = "Other"
    outcomes: list[Outcome] = Field(default_factory=list)
    volume: float = Field(0.0, ge=0)
    active: bool = True
    end_date: int | None = None  # ms epoch
    created_at: int | None = None  # ms epoch
    updated_at: int | None = None  # ms epoch
    source: str = "gamma"  # clob | gamma | mock


class PriceHistoryEntry(BaseModel):
    """One price sample for a (market, outcome) pair. Append-only."""

    market_id: str
    outcome: str
    price: float = Field(..., ge=0, le=1)
    timestamp: int  # ms epoch
