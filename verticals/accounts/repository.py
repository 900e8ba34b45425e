"""User repository: async database access for accounts."""

from fastapi import Depends
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_session
from patterns.repository import BaseRepository
from verticals.accounts.models.db_models import User


class UserRepository(BaseRepository[User]):
    """Repository for user CRUD and lookups."""

    model = User

    async def get_by_email(self, email: str) -> User | None:
        stmt = select(User).where(User.email == email.strip().lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_all(self) -> list[User]:
        stmt = select(User).order_by(User.created_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_task_references(self, user: User) -> int:
        """Tasks that point at this user as assignee or creator."""
        from verticals.tasks.models.db_models import Task

        stmt = select(func.count()).select_from(Task).where(
            or_(Task.assigned_to_id == user.id, Task.created_by_id == user.id)
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0


# ---------------------------------------------------------------------------
# FastAPI dependency factories
# ---------------------------------------------------------------------------

def get_user_repository(
    session: AsyncSession = Depends(get_session),
) -> UserRepository:
    """FastAPI dependency for UserRepository."""
    return UserRepository(session)
