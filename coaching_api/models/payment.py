"""
Payment (invoice) model and billing arithmetic.
"""
import uuid
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, List, Dict, Any

from sqlmodel import SQLModel, Field

from coaching_api.models.columns import json_column


class PaymentStatuses:
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    VOID = "void"

    ALL = (PENDING, PAID, FAILED, REFUNDED, VOID)


class Payment(SQLModel, table=True):
    """
    Invoice for a coach, built from completed sessions.
    ``amount`` is the subtotal; ``total_amount`` = amount + tax_amount.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    organization_id: uuid.UUID = Field(foreign_key="organization.id", index=True)
    coach_id: uuid.UUID = Field(foreign_key="user.id", index=True)

    session_ids: List[str] = Field(default_factory=list, sa_column=json_column())
    line_items: List[Dict[str, Any]] = Field(default_factory=list, sa_column=json_column())
    # Example: [{"session_id": "...", "description": "...", "duration": 60,
    #            "rate": 100.0, "amount": 100.0}]

    amount: float = Field(default=0.0)
    tax_amount: float = Field(default=0.0)
    total_amount: float = Field(default=0.0)
    currency: str = Field(default="USD")

    status: str = Field(default=PaymentStatuses.PENDING, index=True)
    invoice_number: str = Field(unique=True, index=True)
    invoice_url: Optional[str] = None

    due_date: Optional[datetime] = None
    paid_at: Optional[datetime] = Field(default=None, index=True)
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    notes: Optional[str] = None
    reminders_sent: List[Dict[str, Any]] = Field(default_factory=list, sa_column=json_column())

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


CENT = Decimal("0.01")


def round_money(value) -> float:
    """Round half-up to cents."""
    return float(Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP))


def session_line_amount(duration_minutes: int, hourly_rate: float) -> float:
    """duration / 60 * hourly rate, rounded to cents."""
    amount = Decimal(duration_minutes) / Decimal(60) * Decimal(str(hourly_rate))
    return round_money(amount)


def compute_totals(line_amounts: List[float], tax_rate: float) -> Dict[str, float]:
    """Subtotal, tax and total for a list of line amounts."""
    subtotal = round_money(sum(Decimal(str(a)) for a in line_amounts))
    tax = round_money(Decimal(str(subtotal)) * Decimal(str(tax_rate)))
    return {
        "amount": subtotal,
        "tax_amount": tax,
        "total_amount": round_money(Decimal(str(subtotal)) + Decimal(str(tax))),
    }


def format_invoice_number(year: int, sequence: int) -> str:
    return f"INV-{year}-{sequence:05d}"


def parse_invoice_sequence(invoice_number: str) -> int:
    """Sequence part of ``INV-YYYY-NNNNN``; 0 for anything else."""
    try:
        return int(invoice_number.rsplit("-", 1)[1])
    except (IndexError, ValueError, AttributeError):
        return 0
