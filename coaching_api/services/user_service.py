"""
User service - user management inside an organization.
"""
import uuid
from typing import Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from coaching_api.core.exceptions import (
    raise_not_found,
    raise_forbidden,
    raise_already_exists,
    raise_bad_request
)
from coaching_api.core.security import get_password_hash
from coaching_api.repositories.user_repo import UserRepository
from coaching_api.models.user import User, Roles
from coaching_api.models.activity import ActivityTypes
from coaching_api.services.activity_service import ActivityService
from coaching_api.services.auth_service import validate_role_fields
from coaching_api.services.org_service import OrganizationService

# Fields a non-staff user may change on their own profile
SELF_EDITABLE_FIELDS = {"email", "password", "first_name", "last_name", "phone", "timezone", "startup_name"}


class UserService:
    """Service for user operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repo = UserRepository(session)
        self.org_service = OrganizationService(session)
        self.activity_service = ActivityService(session)

    async def get_user(self, user_id: uuid.UUID, current_user: User) -> User:
        """Get a user of the caller's organization. Non-staff may only read themselves."""
        if current_user.role not in Roles.STAFF and user_id != current_user.id:
            raise_forbidden()
        user = await self.user_repo.get_in_org(user_id, current_user.organization_id)
        if not user:
            raise_not_found("User", str(user_id))
        return user

    async def list_users(
        self,
        current_user: User,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
        limit: int = 20,
        sort: Optional[str] = None
    ) -> dict:
        return await self.user_repo.list_paginated(
            org_id=current_user.organization_id,
            filters={"role": role, "is_active": is_active},
            page=page,
            limit=limit,
            sort=sort
        )

    async def create_user(self, current_user: User, data: dict) -> User:
        """Create a user inside the caller's organization."""
        role = data["role"]
        if current_user.role == Roles.MANAGER and role == Roles.ADMIN:
            raise_forbidden("Managers cannot create admin accounts")
        if current_user.organization_id is None:
            raise_bad_request("Platform admins must create users through an organization")

        email = data["email"].lower()
        if await self.user_repo.get_by_email(email):
            raise_already_exists("User", "email", email)
        validate_role_fields(role, data.get("hourly_rate"), data.get("startup_name"))

        org = await self.org_service.get_active_organization(current_user.organization_id)
        await self.org_service.check_quota(org, role)

        password = data.pop("password")
        user = await self.user_repo.create({
            **data,
            "email": email,
            "password_hash": get_password_hash(password),
            "organization_id": org.id
        })
        await self.activity_service.log(
            ActivityTypes.USER_REGISTERED,
            f"{user.full_name} added as {role} by {current_user.full_name}",
            user=current_user,
            meta_data={"created_user_id": str(user.id), "role": role}
        )
        return user

    async def update_user(self, user_id: uuid.UUID, current_user: User, data: dict) -> User:
        """Update a user. Non-staff callers may only edit their own profile fields."""
        is_staff = current_user.role in Roles.STAFF
        if not is_staff:
            if user_id != current_user.id:
                raise_forbidden()
            forbidden = set(data) - SELF_EDITABLE_FIELDS
            if forbidden:
                raise_forbidden(f"You cannot change: {', '.join(sorted(forbidden))}")

        user = await self.get_user(user_id, current_user)
        if current_user.role == Roles.MANAGER and (user.role == Roles.ADMIN or data.get("role") == Roles.ADMIN):
            raise_forbidden("Managers cannot modify admin accounts")

        changes = {k: v for k, v in data.items() if v is not None}

        if "email" in changes:
            changes["email"] = changes["email"].lower()
            existing = await self.user_repo.get_by_email(changes["email"])
            if existing and existing.id != user.id:
                raise_already_exists("User", "email", changes["email"])

        if "password" in changes:
            changes["password_hash"] = get_password_hash(changes.pop("password"))
            changes["token_version"] = user.token_version + 1
            changes["refresh_token_hash"] = None

        new_role = changes.get("role", user.role)
        validate_role_fields(
            new_role,
            changes.get("hourly_rate", user.hourly_rate),
            changes.get("startup_name", user.startup_name)
        )
        if new_role != user.role:
            org = await self.org_service.get_organization(user.organization_id)
            await self.org_service.check_quota(org, new_role)

        was_active = user.is_active
        user = await self.user_repo.save(user, changes)

        if "is_active" in changes and changes["is_active"] != was_active:
            await self._log_activation(user, current_user)
        return user

    async def deactivate_user(self, user_id: uuid.UUID, current_user: User) -> None:
        """Soft delete."""
        if user_id == current_user.id:
            raise_bad_request("You cannot delete your own account")
        user = await self.get_user(user_id, current_user)
        if current_user.role == Roles.MANAGER and user.role == Roles.ADMIN:
            raise_forbidden("Managers cannot modify admin accounts")
        if not user.is_active:
            return
        user = await self.user_repo.save(user, {
            "is_active": False,
            "token_version": user.token_version + 1,
            "refresh_token_hash": None
        })
        await self._log_activation(user, current_user)

    async def _log_activation(self, user: User, actor: User) -> None:
        activity_type = ActivityTypes.USER_ACTIVATED if user.is_active else ActivityTypes.USER_DEACTIVATED
        verb = "activated" if user.is_active else "deactivated"
        await self.activity_service.log(
            activity_type,
            f"{user.full_name} {verb} by {actor.full_name}",
            user=actor,
            meta_data={"target_user_id": str(user.id)}
        )
