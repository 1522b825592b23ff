"""API errors carrying a machine-readable code for the failure envelope."""

from __future__ import annotations

from fastapi import HTTPException


class ApiError(HTTPException):
    def __init__(self, status_code: int, detail: str, error_code: str | None = None):
        super().__init__(status_code=status_code, detail=detail)
        self.error_code = error_code


class MarketNotFoundError(ApiError):
    def __init__(self, market_id: str):
        super().__init__(status_code=404, detail=f"Market not found: {market_id}", error_code="not_found")
