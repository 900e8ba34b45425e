"""Accounts API routers: auth flow + admin user management.

- auth_router: register, login, profile (mounted at /api/auth)
- users_router: admin-only CRUD (mounted at /api/users)
"""

from fastapi import APIRouter, Depends

from patterns.access_policy import Principal, Role
from verticals.accounts.dependencies import (
    get_current_principal,
    get_identity_service,
    get_user_admin_service,
    require_role,
)
from verticals.accounts.models.schemas import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    UserCreate,
    UserUpdate,
)
from verticals.accounts.service import IdentityService, UserAdminService

auth_router = APIRouter()
users_router = APIRouter(dependencies=[Depends(require_role(Role.ADMIN))])


# ============================================================================
# Auth Endpoints
# ============================================================================

@auth_router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    request: RegisterRequest,
    identity: IdentityService = Depends(get_identity_service),
):
    """Create an account and return it with a bearer token."""
    return await identity.register(request.name, request.email, request.password)


@auth_router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    identity: IdentityService = Depends(get_identity_service),
):
    """Exchange email + password for a bearer token."""
    return await identity.login(request.email, request.password)


@auth_router.get("/profile")
async def profile(
    principal: Principal = Depends(get_current_principal),
    identity: IdentityService = Depends(get_identity_service),
):
    """The caller's own account, without the password hash."""
    return await identity.get_profile(principal)


# ============================================================================
# Admin User Endpoints
# ============================================================================

@users_router.get("")
async def list_users(admin: UserAdminService = Depends(get_user_admin_service)):
    users = await admin.list_users()
    return {"items": users, "count": len(users)}


@users_router.post("", status_code=201)
async def create_user(
    request: UserCreate,
    admin: UserAdminService = Depends(get_user_admin_service),
):
    return await admin.create_user(request)


@users_router.get("/{user_id}")
async def get_user(
    user_id: str,
    admin: UserAdminService = Depends(get_user_admin_service),
):
    return await admin.get_user(user_id)


@users_router.put("/{user_id}")
async def update_user(
    user_id: str,
    request: UserUpdate,
    admin: UserAdminService = Depends(get_user_admin_service),
):
    return await admin.update_user(user_id, request)


@users_router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    admin: UserAdminService = Depends(get_user_admin_service),
):
    await admin.delete_user(user_id)
    return {"message": "User deleted successfully"}
