"""
Payment schemas.
"""
import uuid
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from coaching_api.schemas.common import normalize_datetime

PaymentStatusName = Literal["pending", "paid", "failed", "refunded", "void"]


class GeneratePaymentRequest(BaseModel):
    """Invoice a coach for completed sessions."""
    coach_id: uuid.UUID
    session_ids: List[uuid.UUID] = Field(..., min_length=1)
    notes: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "coach_id": "2b6c1f0e-3a5b-4b8e-9a49-8b7f4f1c2d3e",
                "session_ids": ["7a1c8f0e-3a5b-4b8e-9a49-8b7f4f1c2d3e"],
                "notes": "October sessions"
            }
        }


class PaymentCreate(GeneratePaymentRequest):
    """Manually priced payment; amounts default to the session-derived ones."""
    amount: Optional[float] = Field(None, ge=0)
    tax_amount: float = Field(0.0, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    due_date: Optional[datetime] = None
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None

    @field_validator("due_date", "period_start", "period_end")
    @classmethod
    def normalize_dates(cls, value):
        return normalize_datetime(value)


class ReminderEntry(BaseModel):
    sent_at: datetime
    type: Literal["email", "sms", "in_app"]


class PaymentUpdate(BaseModel):
    status: Optional[PaymentStatusName] = None
    invoice_url: Optional[str] = None
    paid_at: Optional[datetime] = None
    reminders_sent: Optional[List[ReminderEntry]] = None
    notes: Optional[str] = None

    @field_validator("paid_at")
    @classmethod
    def normalize_dates(cls, value):
        return normalize_datetime(value)


class PaymentResponse(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    coach_id: uuid.UUID
    session_ids: List[str] = []
    line_items: List[Dict[str, Any]] = []
    amount: float
    tax_amount: float
    total_amount: float
    currency: str
    status: str
    invoice_number: str
    invoice_url: Optional[str] = None
    due_date: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    notes: Optional[str] = None
    reminders_sent: List[Dict[str, Any]] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
