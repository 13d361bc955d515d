"""
Payment service - invoice generation from completed sessions.

A session can be billed once: generation claims sessions with a
conditional UPDATE (``payment_id IS NULL``) in the same transaction as the
payment insert, so two concurrent requests cannot bill the same session.
"""
import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional, List

from sqlalchemy.exc import IntegrityError
from sqlmodel.ext.asyncio.session import AsyncSession

from coaching_api.config import settings
from coaching_api.core.exceptions import (
    raise_not_found,
    raise_forbidden,
    raise_conflict,
    raise_bad_request,
    raise_validation_error
)
from coaching_api.repositories.payment_repo import PaymentRepository
from coaching_api.repositories.session_repo import SessionRepository
from coaching_api.repositories.user_repo import UserRepository, OrganizationRepository
from coaching_api.models.payment import (
    Payment,
    PaymentStatuses,
    compute_totals,
    round_money,
    session_line_amount
)
from coaching_api.models.session import CoachingSession, SessionStatuses
from coaching_api.models.user import User, Roles
from coaching_api.models.activity import ActivityTypes
from coaching_api.services.activity_service import ActivityService, parse_date_param, parse_end_date_param
from coaching_api.services.email_service import get_email_service
from coaching_api.services.invoice_pdf import InvoicePDFGenerator, format_money

logger = logging.getLogger(__name__)

INVOICE_NUMBER_ATTEMPTS = 5


def build_line_items(sessions: List[CoachingSession], hourly_rate: float) -> List[dict]:
    """One line per session: duration / 60 * hourly rate."""
    items = []
    for s in sorted(sessions, key=lambda s: s.scheduled_at):
        items.append({
            "session_id": str(s.id),
            "description": f"Coaching session on {s.scheduled_at.strftime('%Y-%m-%d %H:%M')} UTC",
            "duration": s.duration,
            "rate": round_money(hourly_rate),
            "amount": session_line_amount(s.duration, hourly_rate),
        })
    return items


class PaymentService:
    """Service for payment operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.payment_repo = PaymentRepository(session)
        self.session_repo = SessionRepository(session)
        self.user_repo = UserRepository(session)
        self.org_repo = OrganizationRepository(session)
        self.activity_service = ActivityService(session)

    async def get_payment(self, payment_id: uuid.UUID, current_user: User) -> Payment:
        payment = await self.payment_repo.get_in_org(payment_id, current_user.organization_id)
        if not payment:
            raise_not_found("Payment", str(payment_id))
        if current_user.role == Roles.COACH and payment.coach_id != current_user.id:
            raise_forbidden("You can only view your own payments")
        if current_user.role == Roles.ENTREPRENEUR:
            raise_forbidden()
        return payment

    async def list_payments(
        self,
        current_user: User,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
        sort: Optional[str] = None
    ) -> dict:
        filters = {"status": status}
        if current_user.role == Roles.COACH:
            filters["coach_id"] = current_user.id
        return await self.payment_repo.list_paginated(
            org_id=current_user.organization_id,
            filters=filters,
            page=page,
            limit=limit,
            sort=sort
        )

    async def _billable_sessions(
        self,
        org_id: uuid.UUID,
        coach: User,
        session_ids: List[uuid.UUID]
    ) -> List[CoachingSession]:
        """Load and validate the sessions to be billed."""
        unique_ids = list(dict.fromkeys(session_ids))
        sessions = await self.session_repo.get_many_in_org(unique_ids, org_id)
        found = {s.id for s in sessions}
        missing = [str(i) for i in unique_ids if i not in found]
        if missing:
            raise_not_found("Session", ", ".join(missing))

        for s in sessions:
            if s.coach_id != coach.id:
                raise_bad_request(f"Session {s.id} does not belong to this coach")
            if s.status != SessionStatuses.COMPLETED:
                raise_bad_request(f"Session {s.id} is not completed")
            if s.is_billed:
                raise_conflict(f"Session {s.id} has already been billed")
        return sessions

    async def _insert_and_claim(self, values: dict, session_ids: List[uuid.UUID]) -> uuid.UUID:
        """
        Insert the payment under a fresh invoice number and claim the
        sessions, committing both together.
        """
        for attempt in range(1, INVOICE_NUMBER_ATTEMPTS + 1):
            invoice_number = await self.payment_repo.next_invoice_number()
            try:
                payment = await self.payment_repo.create(
                    {**values, "invoice_number": invoice_number}, commit=False
                )
            except IntegrityError:
                await self.session.rollback()
                logger.warning(f"Invoice number {invoice_number} taken, retrying ({attempt})")
                continue

            payment_id = payment.id
            claimed = await self.session_repo.mark_billed(session_ids, payment_id)
            if claimed != len(session_ids):
                await self.session.rollback()
                raise_conflict("One or more sessions have already been billed")
            await self.session.commit()
            return payment_id

        raise_conflict("Could not allocate an invoice number, please retry")

    async def _create(self, current_user: User, data: dict, manual: bool) -> Payment:
        org_id = current_user.organization_id
        actor_id = current_user.id
        coach = await self.user_repo.get_member(data["coach_id"], org_id, role=Roles.COACH, active_only=False)
        if not coach:
            raise_validation_error("Must reference a coach of this organization", "coach_id")
        if coach.hourly_rate is None:
            raise_bad_request("Coach has no hourly rate set")

        sessions = await self._billable_sessions(org_id, coach, data["session_ids"])
        line_items = build_line_items(sessions, coach.hourly_rate)
        session_ids = [s.id for s in sessions]

        if manual:
            amount = data.get("amount")
            if amount is None:
                amount = compute_totals([i["amount"] for i in line_items], 0)["amount"]
            amount = round_money(amount)
            tax = round_money(data.get("tax_amount") or 0)
            totals = {"amount": amount, "tax_amount": tax, "total_amount": round_money(amount + tax)}
        else:
            totals = compute_totals([i["amount"] for i in line_items], settings.PAYMENT_TAX_RATE)

        starts = [s.scheduled_at for s in sessions]
        values = {
            "organization_id": org_id,
            "coach_id": coach.id,
            "session_ids": [str(i) for i in session_ids],
            "line_items": line_items,
            **totals,
            "currency": (data.get("currency") or settings.DEFAULT_CURRENCY).upper(),
            "status": PaymentStatuses.PENDING,
            "due_date": data.get("due_date") or datetime.utcnow() + timedelta(days=settings.PAYMENT_DUE_DAYS),
            "period_start": data.get("period_start") or min(starts),
            "period_end": data.get("period_end") or max(starts),
            "notes": data.get("notes"),
        }

        payment_id = await self._insert_and_claim(values, session_ids)
        payment = await self.payment_repo.get(payment_id)
        await self.session.refresh(payment)

        actor = await self.user_repo.get(actor_id)
        await self.session.refresh(actor)
        await self.activity_service.log(
            ActivityTypes.PAYMENT_GENERATED,
            f"Invoice {payment.invoice_number} generated for {len(session_ids)} session(s)",
            user=actor,
            payment_id=payment.id,
            amount=payment.total_amount,
            meta_data={"coach_id": str(payment.coach_id), "manual": manual}
        )
        return payment

    async def generate_payment(self, current_user: User, data: dict) -> Payment:
        """Invoice completed sessions at the coach's hourly rate plus tax."""
        return await self._create(current_user, data, manual=False)

    async def create_payment(self, current_user: User, data: dict) -> Payment:
        """Manually priced payment for completed sessions."""
        return await self._create(current_user, data, manual=True)

    async def update_payment(self, payment_id: uuid.UUID, current_user: User, data: dict) -> Payment:
        payment = await self.get_payment(payment_id, current_user)
        changes = {k: v for k, v in data.items() if v is not None}
        if payment.status == PaymentStatuses.VOID and changes.get("status", PaymentStatuses.VOID) != PaymentStatuses.VOID:
            raise_conflict("Void payments cannot be reopened")

        if "reminders_sent" in changes:
            changes["reminders_sent"] = [
                {"sent_at": r["sent_at"].isoformat(), "type": r["type"]} for r in changes["reminders_sent"]
            ]

        new_status = changes.get("status", payment.status)
        previous_status = payment.status
        if new_status == PaymentStatuses.PAID and previous_status != PaymentStatuses.PAID:
            changes.setdefault("paid_at", datetime.utcnow())

        if new_status == PaymentStatuses.VOID and previous_status != PaymentStatuses.VOID:
            released = await self.session_repo.release_billed(payment.id)
            logger.info(f"Payment {payment.id} voided, released {released} session(s)")

        payment = await self.payment_repo.save(payment, changes)

        if new_status == PaymentStatuses.PAID and previous_status != PaymentStatuses.PAID:
            await self.activity_service.log(
                ActivityTypes.PAYMENT_COMPLETED,
                f"Invoice {payment.invoice_number} marked as paid",
                user=current_user,
                payment_id=payment.id,
                amount=payment.total_amount
            )
        return payment

    async def mark_paid(self, payment_id: uuid.UUID, current_user: User) -> Payment:
        return await self.update_payment(payment_id, current_user, {"status": PaymentStatuses.PAID})

    async def render_invoice(self, payment_id: uuid.UUID, current_user: User) -> tuple[Payment, bytes]:
        payment = await self.get_payment(payment_id, current_user)
        coach = await self.user_repo.get(payment.coach_id)
        organization = await self.org_repo.get(payment.organization_id)
        return payment, InvoicePDFGenerator(payment, coach, organization).generate()

    async def send_invoice(self, payment_id: uuid.UUID, current_user: User) -> Payment:
        """Email the invoice PDF to the coach and record the reminder."""
        payment, pdf_bytes = await self.render_invoice(payment_id, current_user)
        coach = await self.user_repo.get(payment.coach_id)

        sent = await get_email_service().send_invoice_email(
            to=coach.email,
            coach_name=coach.full_name,
            invoice_number=payment.invoice_number,
            total=format_money(payment.total_amount, payment.currency),
            pdf_bytes=pdf_bytes
        )
        if not sent:
            raise_bad_request("Invoice email could not be delivered")

        reminder = {"sent_at": datetime.utcnow().isoformat(), "type": "email"}
        return await self.payment_repo.save(payment, {"reminders_sent": payment.reminders_sent + [reminder]})

    async def get_stats(
        self,
        current_user: User,
        coach_id: Optional[uuid.UUID] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> dict:
        if current_user.role == Roles.COACH:
            coach_id = current_user.id
        start = parse_date_param(start_date)
        end = parse_end_date_param(end_date)

        by_status = await self.payment_repo.stats_by_status(current_user.organization_id, coach_id, start, end)
        revenue = await self.payment_repo.revenue_totals(current_user.organization_id, coach_id, start, end)
        paid_count = revenue.pop("count")
        revenue["average_payment"] = round_money(revenue["total_revenue"] / paid_count) if paid_count else 0.0

        return {
            "total": sum(s["count"] for s in by_status.values()),
            "by_status": by_status,
            "revenue": revenue
        }
