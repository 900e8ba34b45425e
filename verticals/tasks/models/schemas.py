"""Pydantic schemas for task request validation."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class TaskCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1, max_length=500)
    description: str = Field(..., min_length=1)
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime = Field(..., alias="dueDate")
    assigned_to: uuid.UUID = Field(..., alias="assignedTo")

    @model_validator(mode="before")
    @classmethod
    def default_blank_choices(cls, data: Any) -> Any:
        # A blank status/priority means "use the default".
        if isinstance(data, dict):
            data = {k: v for k, v in data.items() if not (k in ("status", "priority") and not v)}
        return data


class TaskUpdate(BaseModel):
    """Partial update.

    Any falsy value (None, "") counts as "not provided" and is dropped
    before validation, so an empty title leaves the stored title alone.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = Field(None, alias="dueDate")
    assigned_to: Optional[uuid.UUID] = Field(None, alias="assignedTo")

    @model_validator(mode="before")
    @classmethod
    def drop_falsy(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = {k: v for k, v in data.items() if v}
        return data

    def changes(self) -> dict[str, Any]:
        """Column name -> new value for the fields actually supplied."""
        return {
            key: value.value if isinstance(value, Enum) else value
            for key, value in self.model_dump(exclude_none=True).items()
        }


class TaskListParams(BaseModel):
    """Parsed query string of GET /tasks."""

    model_config = ConfigDict(populate_by_name=True)

    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1)
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    assigned_to: Optional[uuid.UUID] = Field(None, alias="assignedTo")
    from_date: Optional[datetime] = Field(None, alias="fromDate")
    to_date: Optional[datetime] = Field(None, alias="toDate")
    sort_by: Optional[str] = Field(None, alias="sortBy")
