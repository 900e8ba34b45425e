"""FastAPI dependencies for authentication and role checks.

Usage in routers::

    @router.get("/tasks")
    async def list_tasks(principal: Principal = Depends(get_current_principal)):
        ...

    @router.get("/users", dependencies=[Depends(require_role(Role.ADMIN))])
    async def list_users():
        ...
"""

from fastapi import Depends, Request

from core.config import Settings, get_settings
from core.errors import ForbiddenError
from patterns.access_policy import Principal, Role, check_role
from verticals.accounts.repository import UserRepository, get_user_repository
from verticals.accounts.service import IdentityService, UserAdminService


def get_identity_service(
    users: UserRepository = Depends(get_user_repository),
    settings: Settings = Depends(get_settings),
) -> IdentityService:
    """FastAPI dependency for IdentityService."""
    return IdentityService(users, settings.auth)


def get_user_admin_service(
    users: UserRepository = Depends(get_user_repository),
) -> UserAdminService:
    """FastAPI dependency for UserAdminService."""
    return UserAdminService(users)


def bearer_token(authorization: str | None) -> str | None:
    """Extract the credential from an "Authorization: Bearer ..." header."""
    if not authorization:
        return None
    scheme, _, credential = authorization.partition(" ")
    if scheme.lower() != "bearer" or not credential.strip():
        return None
    return credential.strip()


async def get_current_principal(
    request: Request,
    identity: IdentityService = Depends(get_identity_service),
) -> Principal:
    """Verify the bearer token on the request."""
    token = bearer_token(request.headers.get("Authorization"))
    return await identity.verify(token)


def require_role(role: Role):
    """Build a dependency that admits only principals holding role."""

    async def _check(principal: Principal = Depends(get_current_principal)) -> Principal:
        decision = check_role(principal, role)
        if not decision.allowed:
            raise ForbiddenError(decision.message)
        return principal

    return _check
