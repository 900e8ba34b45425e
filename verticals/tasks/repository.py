"""Task repository: filtered, sorted, paginated access to tasks.

The listing query is assembled from three independent pieces:
- visibility: non-admins only see tasks they created or are assigned to
- filters: status / priority / assignee equality and an inclusive
  dueDate range
- ordering: a "field:direction" token, createdAt descending by default
"""

from fastapi import Depends
from sqlalchemy import ColumnElement, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import UnaryExpression

from core.database import get_session
from core.models.base import to_utc
from patterns.access_policy import Principal
from patterns.repository import BaseRepository, Page
from verticals.tasks.models.db_models import Task
from verticals.tasks.models.schemas import TaskListParams

SORTABLE_FIELDS = {
    "title": Task.title,
    "description": Task.description,
    "status": Task.status,
    "priority": Task.priority,
    "dueDate": Task.due_date,
    "due_date": Task.due_date,
    "createdAt": Task.created_at,
    "created_at": Task.created_at,
    "updatedAt": Task.updated_at,
    "updated_at": Task.updated_at,
}

DEFAULT_ORDER = (Task.created_at.desc(), Task.id.desc())


def visibility_conditions(principal: Principal) -> list[ColumnElement[bool]]:
    """Restrict non-admins to their own tasks. Admins see everything."""
    if principal.is_admin:
        return []
    return [
        or_(
            Task.assigned_to_id == principal.user_id,
            Task.created_by_id == principal.user_id,
        )
    ]


def filter_conditions(params: TaskListParams) -> list[ColumnElement[bool]]:
    """AND-ed equality filters plus the inclusive dueDate range."""
    conditions: list[ColumnElement[bool]] = []
    if params.status is not None:
        conditions.append(Task.status == params.status.value)
    if params.priority is not None:
        conditions.append(Task.priority == params.priority.value)
    if params.assigned_to is not None:
        conditions.append(Task.assigned_to_id == params.assigned_to)
    if params.from_date is not None:
        conditions.append(Task.due_date >= to_utc(params.from_date))
    if params.to_date is not None:
        conditions.append(Task.due_date <= to_utc(params.to_date))
    return conditions


def parse_sort(sort_by: str | None) -> tuple[UnaryExpression, ...]:
    """Turn "field:direction" into ORDER BY clauses.

    "desc" sorts descending, any other direction ascending. A missing or
    unknown field falls back to newest first.
    """
    if not sort_by:
        return DEFAULT_ORDER
    field_name, _, direction = sort_by.partition(":")
    column = SORTABLE_FIELDS.get(field_name.strip())
    if column is None:
        return DEFAULT_ORDER
    primary = column.desc() if direction.strip().lower() == "desc" else column.asc()
    return (primary, Task.id.asc())


class TaskRepository(BaseRepository[Task]):
    """Repository for task CRUD and listing."""

    model = Task

    async def list_visible(self, principal: Principal, params: TaskListParams) -> Page[Task]:
        conditions = visibility_conditions(principal) + filter_conditions(params)
        return await self.find(
            conditions=conditions,
            order_by=parse_sort(params.sort_by),
            page=params.page,
            limit=params.limit,
        )


# ---------------------------------------------------------------------------
# FastAPI dependency factories
# ---------------------------------------------------------------------------

def get_task_repository(
    session: AsyncSession = Depends(get_session),
) -> TaskRepository:
    """FastAPI dependency for TaskRepository."""
    return TaskRepository(session)
