"""
API dependencies - shared across all routes.
"""
import uuid

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlmodel.ext.asyncio.session import AsyncSession

from coaching_api.database import get_session
from coaching_api.config import settings
from coaching_api.core.security import verify_token
from coaching_api.core.exceptions import raise_unauthorized, raise_forbidden
from coaching_api.models.user import User, Roles
from coaching_api.repositories.user_repo import UserRepository


oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/token")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session)
) -> User:
    """Get current authenticated user from JWT token."""
    payload = verify_token(token, "access")
    if not payload:
        raise_unauthorized("Could not validate credentials")

    try:
        user_id = uuid.UUID(payload.get("sub") or "")
    except ValueError:
        raise_unauthorized("Could not validate credentials")

    user_repo = UserRepository(session)
    user = await user_repo.get(user_id)

    if not user:
        raise_unauthorized("User not found")

    if not user.is_active:
        raise_unauthorized("User account is deactivated")

    # Logout and password changes bump the version
    if payload.get("tv") != user.token_version:
        raise_unauthorized("Token has been revoked")

    return user


def require_roles(*roles: str, allow_platform_admin: bool = False):
    """
    Dependency factory: the current user must belong to an organization and
    hold one of ``roles``. Platform admins pass only when allowed.
    """
    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.is_platform_admin and allow_platform_admin:
            return current_user
        if current_user.organization_id is None:
            raise_forbidden("This endpoint is only available to organization members")
        if current_user.role not in roles:
            raise_forbidden(f"This action requires one of the roles: {', '.join(roles)}")
        return current_user
    return checker


async def get_platform_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_platform_admin:
        raise_forbidden("Platform admin access required")
    return current_user


get_org_user = require_roles(*Roles.ALL)
require_staff = require_roles(*Roles.STAFF)
require_admin = require_roles(Roles.ADMIN)
require_staff_or_coach = require_roles(Roles.ADMIN, Roles.MANAGER, Roles.COACH)
