"""
Organization service - tenant profile, quotas, stats and platform-admin management.
"""
import logging
import os
import re
import uuid
from typing import Optional
from datetime import datetime

from sqlmodel.ext.asyncio.session import AsyncSession

from coaching_api.config import settings
from coaching_api.core.exceptions import (
    raise_not_found,
    raise_already_exists,
    raise_conflict,
    raise_validation_error,
    raise_bad_request
)
from coaching_api.repositories.user_repo import UserRepository, OrganizationRepository
from coaching_api.repositories.payment_repo import PaymentRepository
from coaching_api.repositories.session_repo import SessionRepository
from coaching_api.models.user import User, Organization, Roles, SubscriptionPlans, SubscriptionStatuses
from coaching_api.models.activity import ActivityTypes
from coaching_api.services.activity_service import ActivityService

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$")

LOGO_CONTENT_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
}

MANAGER_SETTINGS_KEYS = ("notification_preferences", "dashboard_layout", "approval_thresholds")


def slugify(value: str) -> str:
    """Lowercase, hyphen-separated slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", value.strip().lower())
    return slug.strip("-")


def quota_field_for_role(role: str) -> str:
    if role == Roles.COACH:
        return "max_coaches"
    if role == Roles.ENTREPRENEUR:
        return "max_entrepreneurs"
    return "max_users"


def quota_usage(used: int, limit: Optional[int]) -> dict:
    percentage = None
    if limit:
        percentage = round(used / limit * 100, 2)
    elif limit == 0:
        percentage = 100.0
    return {"used": used, "limit": limit, "percentage": percentage}


class OrganizationService:
    """Service for organization management."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repo = UserRepository(session)
        self.org_repo = OrganizationRepository(session)
        self.payment_repo = PaymentRepository(session)
        self.session_repo = SessionRepository(session)
        self.activity_service = ActivityService(session)

    async def get_organization(self, org_id: Optional[uuid.UUID]) -> Organization:
        """Get organization details."""
        org = await self.org_repo.get(org_id) if org_id else None
        if not org:
            raise_not_found("Organization", str(org_id) if org_id else None)
        return org

    async def get_active_organization(self, org_id: uuid.UUID) -> Organization:
        org = await self.get_organization(org_id)
        if not org.is_active:
            raise_bad_request("Organization is not active")
        return org

    async def check_quota(self, org: Organization, role: str) -> None:
        """
        Reject a new user of ``role`` when the organization is at its limit.
        Only users holding that role are counted: admins and managers
        each against ``max_users``, coaches and entrepreneurs against
        their own limits.
        """
        field = quota_field_for_role(role)
        limit = getattr(org, field)
        if limit is None:
            return
        used = await self.user_repo.count_by_role(org.id, role)
        if used >= limit:
            raise_conflict(f"Organization has reached its {field.replace('max_', '')} limit ({limit})")

    async def _ensure_slug_available(self, slug: str, org_id: Optional[uuid.UUID] = None) -> str:
        slug = slug.strip().lower()
        if not slug or not SLUG_PATTERN.match(slug):
            raise_validation_error("Slug may only contain lowercase letters, digits and hyphens", "slug")
        existing = await self.org_repo.get_by_slug(slug)
        if existing and existing.id != org_id:
            raise_already_exists("Organization", "slug", slug)
        return slug

    def _prepare_changes(self, data: dict) -> dict:
        if data.get("contact") is not None:
            data["contact"] = {k: v for k, v in data["contact"].items() if v is not None}
        return data

    async def get_stats(self, org_id: uuid.UUID) -> dict:
        """Usage statistics and quota consumption for an organization."""
        org = await self.get_organization(org_id)

        total_users = await self.user_repo.count_non_admins(org.id)
        total_coaches = await self.user_repo.count_by_role(org.id, Roles.COACH)
        total_entrepreneurs = await self.user_repo.count_by_role(org.id, Roles.ENTREPRENEUR)
        total_sessions = await self.session_repo.count(org_id=org.id)
        total_revenue = await self.payment_repo.sum_total(org.id)

        return {
            "total_users": total_users,
            "total_coaches": total_coaches,
            "total_entrepreneurs": total_entrepreneurs,
            "total_sessions": total_sessions,
            "total_revenue": total_revenue,
            "subscription_plan": org.subscription_plan,
            "subscription_status": org.subscription_status,
            "quota_usage": {
                "users": quota_usage(total_users, org.max_users),
                "coaches": quota_usage(total_coaches, org.max_coaches),
                "entrepreneurs": quota_usage(total_entrepreneurs, org.max_entrepreneurs),
            }
        }

    async def update_organization(self, org_id: uuid.UUID, actor: User, update_data: dict) -> Organization:
        """Update organization profile."""
        org = await self.get_organization(org_id)
        changes = self._prepare_changes(update_data)
        if "slug" in changes and changes["slug"] is not None:
            changes["slug"] = await self._ensure_slug_available(changes["slug"], org.id)
        changes = {k: v for k, v in changes.items() if v is not None}

        org = await self.org_repo.save(org, changes)
        await self.activity_service.log(
            ActivityTypes.ORGANIZATION_UPDATED,
            f"Organization {org.name} updated",
            user=actor,
            org_id=org.id,
            meta_data={"fields": sorted(changes.keys())}
        )
        return org

    async def update_manager_settings(self, org_id: uuid.UUID, update_data: dict) -> Organization:
        """Shallow-merge manager-editable sections into ``settings``."""
        org = await self.get_organization(org_id)
        merged = dict(org.settings or {})
        for key in MANAGER_SETTINGS_KEYS:
            value = update_data.get(key)
            if value is None:
                continue
            section = dict(merged.get(key) or {})
            section.update(value)
            merged[key] = section
        return await self.org_repo.save(org, {"settings": merged})

    async def upload_logo(self, org_id: uuid.UUID, content_type: Optional[str], content: bytes) -> Organization:
        """Store a logo file under UPLOAD_DIR and remember its path."""
        org = await self.get_organization(org_id)
        extension = LOGO_CONTENT_TYPES.get((content_type or "").lower())
        if not extension:
            raise_bad_request("Logo must be a PNG, JPEG, WebP or SVG image")
        max_bytes = settings.MAX_LOGO_SIZE_MB * 1024 * 1024
        if len(content) > max_bytes:
            raise_bad_request(f"Logo exceeds the {settings.MAX_LOGO_SIZE_MB} MB limit")
        if not content:
            raise_bad_request("Logo file is empty")

        directory = os.path.join(settings.UPLOAD_DIR, "organization")
        os.makedirs(directory, exist_ok=True)
        filename = f"{org.id}-{uuid.uuid4().hex[:8]}{extension}"
        path = os.path.join(directory, filename)
        with open(path, "wb") as fh:
            fh.write(content)

        previous = org.logo_path
        org = await self.org_repo.save(org, {"logo_path": path})
        if previous and previous != path and os.path.isfile(previous):
            os.remove(previous)
        logger.info(f"Stored logo for organization {org.id} at {path}")
        return org

    # Platform admin operations

    async def list_organizations(self, **filters) -> dict:
        return await self.org_repo.search(**filters)

    async def create_organization(self, actor: User, data: dict) -> Organization:
        data = self._prepare_changes(data)
        data["slug"] = await self._ensure_slug_available(data.get("slug") or slugify(data["name"]))
        plan = data.get("subscription_plan") or SubscriptionPlans.FREE
        if not data.get("subscription_status"):
            data["subscription_status"] = (
                SubscriptionStatuses.ACTIVE if plan == SubscriptionPlans.FREE else SubscriptionStatuses.TRIALING
            )
        data = {k: v for k, v in data.items() if v is not None}

        org = await self.org_repo.create(data)
        await self.activity_service.log(
            ActivityTypes.ORGANIZATION_CREATED,
            f"Organization {org.name} created",
            user=actor,
            org_id=org.id,
            meta_data={"slug": org.slug, "plan": org.subscription_plan}
        )
        return org

    async def deactivate_organization(self, org_id: uuid.UUID, actor: User) -> Organization:
        """Soft delete."""
        org = await self.get_organization(org_id)
        org = await self.org_repo.save(org, {"is_active": False})
        await self.activity_service.log(
            ActivityTypes.ORGANIZATION_UPDATED,
            f"Organization {org.name} deactivated",
            user=actor,
            org_id=org.id,
            meta_data={"is_active": False, "deactivated_at": datetime.utcnow().isoformat()}
        )
        return org

    async def get_quota(self, org_id: uuid.UUID) -> dict:
        stats = await self.get_stats(org_id)
        return {"organization_id": org_id, **stats["quota_usage"]}
