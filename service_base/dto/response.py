"""
Standard API Response DTOs
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ErrorResponse(BaseModel):
    """Standard error body"""
    success: bool = False
    error_code: str
    message: str
    details: Optional[dict] = None
    timestamp: datetime = Field(default_factory=_utcnow)


class HealthResponse(BaseModel):
    """Liveness probe body"""
    status: str
    state: str
    timestamp: datetime = Field(default_factory=_utcnow)


def error_response(error_code: str, message: str, details: dict = None) -> dict:
    """Build an error body"""
    return ErrorResponse(
        error_code=error_code,
        message=message,
        details=details
    ).model_dump(mode='json')


def health_response(status: str, state: str) -> dict:
    """Build a liveness body"""
    return HealthResponse(status=status, state=state).model_dump(mode='json')
