"""Create the initial admin account.

Usage::

    python -m scripts.create_admin

Credentials come from ADMIN_NAME / ADMIN_EMAIL / ADMIN_PASSWORD. Running
it again is harmless: an existing account with that email is left as is.
"""

import asyncio
import logging
import os

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from core.database import session_scope, init_db
from core.logging_setup import setup_logging
from core.security import hash_password
from patterns.access_policy import Role
from verticals.accounts.models.db_models import User
from verticals.accounts.repository import UserRepository

logger = logging.getLogger(__name__)

DEFAULT_ADMIN = {
    "name": "Admin User",
    "email": "admin@example.com",
    "password": "admin123",
}


async def ensure_admin(session: AsyncSession, name: str, email: str, password: str) -> tuple[User, bool]:
    """Return (admin, created)."""
    users = UserRepository(session)
    existing = await users.get_by_email(email)
    if existing is not None:
        return existing, False

    admin = await users.create(
        {
            "name": name,
            "email": email.strip().lower(),
            "password_hash": hash_password(password),
            "role": Role.ADMIN.value,
        }
    )
    return admin, True


async def main() -> None:
    settings = get_settings()
    setup_logging(level=settings.log_level)
    await init_db()

    async with session_scope() as session:
        admin, created = await ensure_admin(
            session,
            name=os.getenv("ADMIN_NAME", DEFAULT_ADMIN["name"]),
            email=os.getenv("ADMIN_EMAIL", DEFAULT_ADMIN["email"]),
            password=os.getenv("ADMIN_PASSWORD", DEFAULT_ADMIN["password"]),
        )

    if created:
        logger.info("Admin user created: %s <%s> id=%s", admin.name, admin.email, admin.id)
    else:
        logger.info("Admin user already exists: %s", admin.email)


if __name__ == "__main__":
    asyncio.run(main())
