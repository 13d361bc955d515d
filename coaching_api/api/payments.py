"""
Payment API routes.
"""
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlmodel.ext.asyncio.session import AsyncSession

from coaching_api.config import settings
from coaching_api.database import get_session
from coaching_api.services.payment_service import PaymentService
from coaching_api.schemas.payment import (
    GeneratePaymentRequest,
    PaymentCreate,
    PaymentUpdate,
    PaymentResponse,
    PaymentStatusName
)
from coaching_api.core.pagination import PaginatedResponse
from coaching_api.api.deps import get_org_user, require_staff, require_staff_or_coach
from coaching_api.models.user import User

router = APIRouter(prefix=f"{settings.API_PREFIX}/payments", tags=["payments"])


@router.post("/generate", response_model=PaymentResponse, status_code=201)
async def generate_payment(
    request: GeneratePaymentRequest,
    current_user: User = Depends(require_staff),
    session: AsyncSession = Depends(get_session)
):
    """Invoice a coach's completed sessions at their hourly rate plus tax."""
    payment_service = PaymentService(session)
    return await payment_service.generate_payment(current_user, request.model_dump())


@router.post("", response_model=PaymentResponse, status_code=201)
async def create_payment(
    payment_data: PaymentCreate,
    current_user: User = Depends(require_staff),
    session: AsyncSession = Depends(get_session)
):
    payment_service = PaymentService(session)
    return await payment_service.create_payment(current_user, payment_data.model_dump())


@router.get("", response_model=PaginatedResponse[PaymentResponse])
async def list_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[PaymentStatusName] = None,
    sort: Optional[str] = None,
    current_user: User = Depends(require_staff_or_coach),
    session: AsyncSession = Depends(get_session)
):
    payment_service = PaymentService(session)
    return await payment_service.list_payments(current_user, status, page, limit, sort)


@router.get("/stats")
async def get_payment_stats(
    coach_id: Optional[uuid.UUID] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    current_user: User = Depends(require_staff_or_coach),
    session: AsyncSession = Depends(get_session)
):
    """Counts and totals per status plus paid revenue."""
    payment_service = PaymentService(session)
    return await payment_service.get_stats(current_user, coach_id, start_date, end_date)


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: uuid.UUID,
    current_user: User = Depends(get_org_user),
    session: AsyncSession = Depends(get_session)
):
    payment_service = PaymentService(session)
    return await payment_service.get_payment(payment_id, current_user)


@router.patch("/{payment_id}", response_model=PaymentResponse)
async def update_payment(
    payment_id: uuid.UUID,
    update_data: PaymentUpdate,
    current_user: User = Depends(require_staff),
    session: AsyncSession = Depends(get_session)
):
    payment_service = PaymentService(session)
    return await payment_service.update_payment(
        payment_id,
        current_user,
        update_data.model_dump(exclude_unset=True)
    )


@router.patch("/{payment_id}/mark-paid", response_model=PaymentResponse)
async def mark_paid(
    payment_id: uuid.UUID,
    current_user: User = Depends(require_staff),
    session: AsyncSession = Depends(get_session)
):
    payment_service = PaymentService(session)
    return await payment_service.mark_paid(payment_id, current_user)


@router.get("/{payment_id}/invoice")
async def download_invoice(
    payment_id: uuid.UUID,
    current_user: User = Depends(get_org_user),
    session: AsyncSession = Depends(get_session)
):
    """Invoice as a PDF attachment."""
    payment_service = PaymentService(session)
    payment, pdf_bytes = await payment_service.render_invoice(payment_id, current_user)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="invoice-{payment.invoice_number}.pdf"'}
    )


@router.post("/{payment_id}/send-invoice", response_model=PaymentResponse)
async def send_invoice(
    payment_id: uuid.UUID,
    current_user: User = Depends(require_staff),
    session: AsyncSession = Depends(get_session)
):
    """Email the invoice PDF to the coach."""
    payment_service = PaymentService(session)
    return await payment_service.send_invoice(payment_id, current_user)
