"""Reset the database and fill it with sample users and tasks.

Usage::

    python -m scripts.seed_data

Drops every table, then creates one admin, two regular users and fifteen
tasks created by the admin with random assignee, status, priority and a
due date within the next fifteen days.
"""

import asyncio
import logging
import random
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from core.database import drop_db, session_scope, init_db
from core.logging_setup import setup_logging
from core.models.base import utcnow
from core.security import hash_password
from verticals.accounts.models.db_models import User
from verticals.tasks.models.db_models import Task
from verticals.tasks.models.schemas import TaskPriority, TaskStatus

logger = logging.getLogger(__name__)

SAMPLE_USERS = [
    {"name": "Admin User", "email": "admin@example.com", "password": "admin123", "role": "admin"},
    {"name": "John Doe", "email": "john@example.com", "password": "password123", "role": "user"},
    {"name": "Jane Smith", "email": "jane@example.com", "password": "password123", "role": "user"},
]

TASK_COUNT = 15
DUE_WITHIN_DAYS = 15


async def seed(session: AsyncSession, rng: random.Random | None = None) -> tuple[list[User], list[Task]]:
    rng = rng or random.Random()

    users = [
        User(
            name=u["name"],
            email=u["email"],
            password_hash=hash_password(u["password"]),
            role=u["role"],
        )
        for u in SAMPLE_USERS
    ]
    session.add_all(users)
    await session.flush()

    admin = users[0]
    now = utcnow()
    tasks = [
        Task(
            title=f"Task {i}",
            description=(
                f"This is a description for task {i}. "
                "This is a sample task created by the seed script."
            ),
            status=rng.choice(list(TaskStatus)).value,
            priority=rng.choice(list(TaskPriority)).value,
            due_date=now + timedelta(days=rng.randrange(DUE_WITHIN_DAYS)),
            assigned_to_id=rng.choice(users).id,
            created_by_id=admin.id,
        )
        for i in range(1, TASK_COUNT + 1)
    ]
    session.add_all(tasks)
    await session.flush()
    return users, tasks


async def main() -> None:
    settings = get_settings()
    setup_logging(level=settings.log_level)

    await drop_db()
    await init_db()
    logger.info("Cleared existing data")

    async with session_scope() as session:
        users, tasks = await seed(session)

    logger.info("Created %d users and %d tasks", len(users), len(tasks))


if __name__ == "__main__":
    asyncio.run(main())
