"""
Payment repository.
"""
import uuid
from typing import Optional, List, Dict
from datetime import datetime

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import func

from coaching_api.models.payment import (
    Payment,
    PaymentStatuses,
    format_invoice_number,
    parse_invoice_sequence,
)
from coaching_api.repositories.base import BaseRepository


class PaymentRepository(BaseRepository[Payment]):
    """Repository for Payment operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Payment, session)

    async def next_invoice_number(self, now: Optional[datetime] = None) -> str:
        """
        Next ``INV-YYYY-NNNNN`` for the current year.
        Invoice numbers are unique across all organizations; concurrent
        callers may compute the same value, which the unique index rejects.
        """
        year = (now or datetime.utcnow()).year
        prefix = f"INV-{year}-"
        query = select(Payment.invoice_number).where(Payment.invoice_number.like(f"{prefix}%"))
        result = await self.session.exec(query)
        highest = max((parse_invoice_sequence(n) for n in result.all()), default=0)
        return format_invoice_number(year, highest + 1)

    def _stats_filters(
        self,
        query,
        org_id: uuid.UUID,
        coach_id: Optional[uuid.UUID],
        start_date: Optional[datetime],
        end_date: Optional[datetime]
    ):
        query = query.where(Payment.organization_id == org_id)
        if coach_id:
            query = query.where(Payment.coach_id == coach_id)
        if start_date:
            query = query.where(Payment.created_at >= start_date)
        if end_date:
            query = query.where(Payment.created_at < end_date)
        return query

    async def stats_by_status(
        self,
        org_id: uuid.UUID,
        coach_id: Optional[uuid.UUID] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> Dict[str, dict]:
        """Count and total amount per status."""
        query = self._stats_filters(
            select(Payment.status, func.count(Payment.id), func.coalesce(func.sum(Payment.total_amount), 0.0)),
            org_id, coach_id, start_date, end_date
        ).group_by(Payment.status)
        result = await self.session.exec(query)
        return {
            status: {"count": count, "total": float(total or 0)}
            for status, count, total in result.all()
        }

    async def revenue_totals(
        self,
        org_id: uuid.UUID,
        coach_id: Optional[uuid.UUID] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> dict:
        """Sums over paid payments."""
        query = self._stats_filters(
            select(
                func.count(Payment.id),
                func.coalesce(func.sum(Payment.total_amount), 0.0),
                func.coalesce(func.sum(Payment.amount), 0.0),
                func.coalesce(func.sum(Payment.tax_amount), 0.0),
            ),
            org_id, coach_id, start_date, end_date
        ).where(Payment.status == PaymentStatuses.PAID)
        count, total, amount, tax = (await self.session.exec(query)).one()
        return {
            "count": count,
            "total_revenue": float(total or 0),
            "total_amount": float(amount or 0),
            "total_tax": float(tax or 0),
        }

    async def sum_total(self, org_id: uuid.UUID, status: Optional[str] = None, coach_id: Optional[uuid.UUID] = None) -> float:
        query = select(func.coalesce(func.sum(Payment.total_amount), 0.0)).where(
            Payment.organization_id == org_id
        )
        if status:
            query = query.where(Payment.status == status)
        if coach_id:
            query = query.where(Payment.coach_id == coach_id)
        result = await self.session.exec(query)
        return float(result.one() or 0)

    async def list_paid_between(
        self,
        org_id: uuid.UUID,
        start: datetime,
        coach_id: Optional[uuid.UUID] = None
    ) -> List[Payment]:
        query = select(Payment).where(
            Payment.organization_id == org_id,
            Payment.status == PaymentStatuses.PAID,
            Payment.paid_at >= start
        )
        if coach_id:
            query = query.where(Payment.coach_id == coach_id)
        result = await self.session.exec(query.order_by(Payment.paid_at))
        return list(result.all())
