"""
Organization API routes.

Tenant-facing routes operate on the caller's organization; the
``/admin`` routes are for platform admins and address any organization.
"""
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, UploadFile, File
from sqlmodel.ext.asyncio.session import AsyncSession

from coaching_api.config import settings
from coaching_api.database import get_session
from coaching_api.services.org_service import OrganizationService
from coaching_api.schemas.organization import (
    CreateOrganizationRequest,
    UpdateOrganizationRequest,
    ManagerSettingsRequest,
    OrganizationResponse,
    OrganizationStatsResponse,
    PlanName,
    SubscriptionStatusName
)
from coaching_api.core.pagination import PaginatedResponse
from coaching_api.api.deps import require_staff, require_admin, get_platform_admin
from coaching_api.models.user import User

router = APIRouter(prefix=f"{settings.API_PREFIX}/organization", tags=["organization"])


@router.get("", response_model=OrganizationResponse)
async def get_organization(
    current_user: User = Depends(require_staff),
    session: AsyncSession = Depends(get_session)
):
    """Get current user's organization."""
    org_service = OrganizationService(session)
    return await org_service.get_organization(current_user.organization_id)


@router.get("/stats", response_model=OrganizationStatsResponse)
async def get_organization_stats(
    current_user: User = Depends(require_staff),
    session: AsyncSession = Depends(get_session)
):
    """Usage counts, revenue and quota consumption."""
    org_service = OrganizationService(session)
    return await org_service.get_stats(current_user.organization_id)


@router.patch("", response_model=OrganizationResponse)
async def update_organization(
    update_data: UpdateOrganizationRequest,
    current_user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session)
):
    org_service = OrganizationService(session)
    return await org_service.update_organization(
        current_user.organization_id,
        current_user,
        update_data.model_dump(exclude_unset=True)
    )


@router.patch("/settings/manager", response_model=OrganizationResponse)
async def update_manager_settings(
    update_data: ManagerSettingsRequest,
    current_user: User = Depends(require_staff),
    session: AsyncSession = Depends(get_session)
):
    org_service = OrganizationService(session)
    return await org_service.update_manager_settings(
        current_user.organization_id,
        update_data.model_dump(exclude_unset=True)
    )


@router.post("/logo", response_model=OrganizationResponse)
async def upload_logo(
    logo: UploadFile = File(...),
    current_user: User = Depends(require_staff),
    session: AsyncSession = Depends(get_session)
):
    """Upload the organization logo (PNG, JPEG, WebP or SVG)."""
    content = await logo.read()
    org_service = OrganizationService(session)
    return await org_service.upload_logo(current_user.organization_id, logo.content_type, content)


# Platform admin routes

@router.get("/admin/list", response_model=PaginatedResponse[OrganizationResponse])
async def list_organizations(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
    is_active: Optional[bool] = None,
    subscription_plan: Optional[PlanName] = None,
    subscription_status: Optional[SubscriptionStatusName] = None,
    search: Optional[str] = None,
    current_user: User = Depends(get_platform_admin),
    session: AsyncSession = Depends(get_session)
):
    org_service = OrganizationService(session)
    return await org_service.list_organizations(
        page=page,
        limit=limit,
        is_active=is_active,
        subscription_plan=subscription_plan,
        subscription_status=subscription_status,
        search=search
    )


@router.post("/admin/create", response_model=OrganizationResponse, status_code=201)
async def create_organization(
    org_data: CreateOrganizationRequest,
    current_user: User = Depends(get_platform_admin),
    session: AsyncSession = Depends(get_session)
):
    org_service = OrganizationService(session)
    return await org_service.create_organization(current_user, org_data.model_dump())


@router.get("/admin/{org_id}", response_model=OrganizationResponse)
async def admin_get_organization(
    org_id: uuid.UUID,
    current_user: User = Depends(get_platform_admin),
    session: AsyncSession = Depends(get_session)
):
    org_service = OrganizationService(session)
    return await org_service.get_organization(org_id)


@router.patch("/admin/{org_id}", response_model=OrganizationResponse)
async def admin_update_organization(
    org_id: uuid.UUID,
    update_data: UpdateOrganizationRequest,
    current_user: User = Depends(get_platform_admin),
    session: AsyncSession = Depends(get_session)
):
    org_service = OrganizationService(session)
    return await org_service.update_organization(
        org_id,
        current_user,
        update_data.model_dump(exclude_unset=True)
    )


@router.delete("/admin/{org_id}", response_model=OrganizationResponse)
async def admin_delete_organization(
    org_id: uuid.UUID,
    current_user: User = Depends(get_platform_admin),
    session: AsyncSession = Depends(get_session)
):
    """Soft delete: the organization is deactivated, not removed."""
    org_service = OrganizationService(session)
    return await org_service.deactivate_organization(org_id, current_user)


@router.get("/admin/{org_id}/quota")
async def admin_get_quota(
    org_id: uuid.UUID,
    current_user: User = Depends(get_platform_admin),
    session: AsyncSession = Depends(get_session)
):
    org_service = OrganizationService(session)
    return await org_service.get_quota(org_id)
