"""Movement - derived price-change alert."""

from __future__ import annotations

from pydantic import BaseModel


class Movement(BaseModel):
    """Price change of one outcome over the detection window. Never mutated once stored."""

    id: int | None = None
    market_id: str
    outcome: str
    change_percent: float
    old_price: float
    new_price: float
    detected_at: int  # ms epoch
