"""
Common schemas used across multiple endpoints.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from coaching_api.models.columns import as_naive_utc


class MessageResponse(BaseModel):
    """Simple message response."""
    message: str

    class Config:
        json_schema_extra = {"example": {"message": "Operation successful"}}


class ErrorResponse(BaseModel):
    """Error response."""
    detail: str

    class Config:
        json_schema_extra = {"example": {"detail": "An error occurred"}}


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    version: str = "1.0.0"


def normalize_datetime(value: Optional[datetime]) -> Optional[datetime]:
    """Validator body shared by request schemas: store naive UTC."""
    return as_naive_utc(value)
