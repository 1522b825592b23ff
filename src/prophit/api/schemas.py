"""Pydantic schemas for API request/response consistency and OpenAPI docs."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from prophit.models import Market, PriceHistoryEntry


# --- Service ---
class ServiceInfoResponse(BaseModel):
    success: bool = True
    service: str
    version: str
    endpoints: dict[str, str]


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: int
    uptime_sec: float


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    success: bool = False
    error: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code, e.g. not_found")


# --- Markets ---
class MarketsListResponse(BaseModel):
    success: bool = True
    data: list[Market]
    source: str = Field(..., description="storage, or api when fetched live")
    total: int


class MarketDetailResponse(BaseModel):
    success: bool = True
    data: Market


class CategoriesResponse(BaseModel):
    success: bool = True
    data: list[str]


# --- Movements ---
class MovementItem(BaseModel):
    id: int | None = None
    market_id: str
    market_question: str
    category: str
    outcome: str
    change_percent: float
    old_price: float
    new_price: float
    detected_at: int


class MovementsResponse(BaseModel):
    success: bool = True
    data: list[MovementItem]
    total: int
    timeframe: str


# --- History ---
class HistoryResponse(BaseModel):
    success: bool = True
    data: list[PriceHistoryEntry]
    market_id: str
    timeframe: str


# --- Stats ---
class StatsResponse(BaseModel):
    success: bool = True
    data: dict[str, Any]
