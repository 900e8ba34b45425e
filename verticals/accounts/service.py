"""Identity & access services.

IdentityService covers the public auth flow (register, login, token
verification, profile). UserAdminService backs the admin-only user
management endpoints.

Login failures are uniform: an unknown email and a wrong
password produce the same "Invalid credentials" error.
"""

import logging

from sqlalchemy.exc import IntegrityError

from core.config import AuthConfig
from core.errors import ConflictError, NotFoundError, UnauthorizedError
from core.security import (
    TokenError,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from patterns.access_policy import Principal, Role
from patterns.repository import parse_uuid
from verticals.accounts.models.db_models import User
from verticals.accounts.models.schemas import UserCreate, UserUpdate
from verticals.accounts.repository import UserRepository

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_TOKEN = "Invalid token"
MISSING_TOKEN = "Not authorized to access this route"
USER_EXISTS = "User already exists"


class IdentityService:
    """Registration, login and bearer token verification."""

    def __init__(self, users: UserRepository, auth: AuthConfig):
        self.users = users
        self.auth = auth

    def issue_token(self, user: User) -> str:
        return create_access_token(
            subject=str(user.id),
            role=user.role,
            secret=self.auth.token_secret,
            ttl_seconds=self.auth.token_ttl_seconds,
        )

    def _auth_payload(self, user: User) -> dict:
        return {
            "id": str(user.id),
            "name": user.name,
            "email": user.email,
            "role": user.role,
            "token": self.issue_token(user),
        }

    async def register(self, name: str, email: str, password: str) -> dict:
        """Create a regular user and return it with a fresh token."""
        if await self.users.get_by_email(email):
            raise ConflictError(USER_EXISTS)

        try:
            user = await self.users.create(
                {
                    "name": name,
                    "email": email.strip().lower(),
                    "password_hash": hash_password(password),
                    "role": Role.USER.value,
                }
            )
        except IntegrityError as exc:
            raise ConflictError(USER_EXISTS) from exc

        await self.users.commit()
        logger.info("Registered user %s", user.id)
        return self._auth_payload(user)

    async def login(self, email: str, password: str) -> dict:
        user = await self.users.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise UnauthorizedError(INVALID_CREDENTIALS)
        return self._auth_payload(user)

    async def verify(self, token: str | None) -> Principal:
        """Resolve a bearer token to the caller.

        The role is read from the stored user, so role changes take
        effect without re-issuing tokens.
        """
        if not token:
            raise UnauthorizedError(MISSING_TOKEN)
        try:
            claims = decode_access_token(token, self.auth.token_secret)
        except TokenError as exc:
            logger.debug("Rejected token: %s", exc)
            raise UnauthorizedError(INVALID_TOKEN) from exc

        user = await self.users.get(claims.subject)
        if user is None:
            raise UnauthorizedError(INVALID_TOKEN)
        return Principal(user_id=user.id, role=Role(user.role))

    async def get_profile(self, principal: Principal) -> dict:
        user = await self.users.get(principal.user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user.to_dict()


class UserAdminService:
    """Admin-only user management."""

    def __init__(self, users: UserRepository):
        self.users = users

    async def _get_or_404(self, user_id: str) -> User:
        if parse_uuid(user_id) is None:
            raise NotFoundError("User not found")
        user = await self.users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def list_users(self) -> list[dict]:
        return [u.to_dict() for u in await self.users.list_all()]

    async def get_user(self, user_id: str) -> dict:
        return (await self._get_or_404(user_id)).to_dict()

    async def create_user(self, data: UserCreate) -> dict:
        if await self.users.get_by_email(data.email):
            raise ConflictError(USER_EXISTS)
        try:
            user = await self.users.create(
                {
                    "name": data.name,
                    "email": data.email,
                    "password_hash": hash_password(data.password),
                    "role": data.role.value,
                }
            )
        except IntegrityError as exc:
            raise ConflictError(USER_EXISTS) from exc
        await self.users.commit()
        logger.info("Admin created user %s with role %s", user.id, user.role)
        return user.to_dict()

    async def update_user(self, user_id: str, data: UserUpdate) -> dict:
        user = await self._get_or_404(user_id)
        changes = data.model_dump(exclude_none=True)
        if "role" in changes:
            changes["role"] = Role(changes["role"]).value

        if "email" in changes and changes["email"] != user.email:
            existing = await self.users.get_by_email(changes["email"])
            if existing is not None and existing.id != user.id:
                raise ConflictError("Email already in use")

        await self.users.update(user, changes)
        await self.users.commit()
        logger.info("Updated user %s (%s)", user.id, ", ".join(sorted(changes)) or "no changes")
        return user.to_dict()

    async def delete_user(self, user_id: str) -> None:
        user = await self._get_or_404(user_id)
        if await self.users.count_task_references(user):
            raise ConflictError("User is still referenced by tasks")
        await self.users.delete(user)
        await self.users.commit()
        logger.info("Deleted user %s", user.id)
