"""Async repository pattern for database access.

Provides a generic base repository with CRUD operations, condition-based
filtering, ordering and pagination. Verticals subclass this to add
domain-specific queries.

Example: TaskRepository extending BaseRepository.
"""

import math
import uuid
from dataclasses import dataclass
from typing import Any, Generic, Sequence, TypeVar

from sqlalchemy import ColumnElement, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import UnaryExpression

from core.models.base import Base

# ---------------------------------------------------------------------------
# Type variable for model classes
# ---------------------------------------------------------------------------

ModelT = TypeVar("ModelT", bound=Base)


def parse_uuid(value: str | uuid.UUID) -> uuid.UUID | None:
    """Return the UUID for value, or None if it is not one."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, AttributeError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Page container
# ---------------------------------------------------------------------------

@dataclass
class Page(Generic[ModelT]):
    """One page of results plus the numbers a client needs to page."""

    items: list[ModelT]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def pagination(self) -> dict[str, int]:
        return {
            "total": self.total,
            "pages": self.pages,
            "page": self.page,
            "limit": self.limit,
        }


# ---------------------------------------------------------------------------
# Base repository
# ---------------------------------------------------------------------------

class BaseRepository(Generic[ModelT]):
    """Generic async repository with CRUD + pagination.

    Subclass and set `model` to your SQLAlchemy model::

        class UserRepository(BaseRepository[User]):
            model = User

            async def get_by_email(self, email: str):
                stmt = select(User).where(User.email == email)
                result = await self.session.execute(stmt)
                return result.scalar_one_or_none()

    Methods return ORM instances; serialisation is left to the caller.
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession):
        self.session = session

    # -- List with pagination --

    async def find(
        self,
        conditions: Sequence[ColumnElement[bool]] = (),
        order_by: Sequence[UnaryExpression] = (),
        page: int = 1,
        limit: int = 10,
    ) -> Page[ModelT]:
        """Filter, sort and paginate. The same conditions drive the count."""
        stmt = select(self.model).where(*conditions)
        count_stmt = select(func.count()).select_from(self.model).where(*conditions)

        if order_by:
            stmt = stmt.order_by(*order_by)

        # Pagination
        offset = (page - 1) * limit
        stmt = stmt.offset(offset).limit(limit)

        # Execute
        result = await self.session.execute(stmt)
        items = list(result.scalars().all())

        count_result = await self.session.execute(count_stmt)
        total = count_result.scalar() or 0

        return Page(items=items, total=total, page=page, limit=limit)

    async def count(self, conditions: Sequence[ColumnElement[bool]] = ()) -> int:
        stmt = select(func.count()).select_from(self.model).where(*conditions)
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    # -- Get by ID --

    async def get(self, item_id: str | uuid.UUID) -> ModelT | None:
        """Get a single item by ID. Malformed ids behave like missing ones."""
        parsed = parse_uuid(item_id)
        if parsed is None:
            return None
        return await self.session.get(self.model, parsed)

    # -- Create --

    async def create(self, data: dict[str, Any]) -> ModelT:
        """Create a new item."""
        return await self.add(self.model(**data))

    async def add(self, item: ModelT) -> ModelT:
        """Persist an item built by the caller."""
        self.session.add(item)
        await self.session.flush()
        return item

    # -- Update --

    async def update(self, item: ModelT, data: dict[str, Any]) -> ModelT:
        """Apply changes to an already loaded item."""
        for key, value in data.items():
            if hasattr(item, key) and key not in ("id", "created_at"):
                setattr(item, key, value)

        await self.session.flush()
        return item

    # -- Delete --

    async def delete(self, item: ModelT) -> None:
        await self.session.delete(item)
        await self.session.flush()

    # -- Transaction control --

    async def commit(self) -> None:
        """Commit now so that side effects (events) follow persistence."""
        await self.session.commit()

    async def reload(self, item: ModelT) -> ModelT:
        """Re-read an item and its eager relationships from the database."""
        stmt = (
            select(self.model)
            .where(self.model.id == item.id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()
