"""Task service: the operations behind the /tasks endpoints.

Every operation follows the same order: load the task (NotFound), ask
the access policy (Forbidden), validate, mutate, commit, and only then
broadcast. Broadcasting never fails the operation.

Read access (admin, creator, assignee) is broader than write access
(admin, creator); both come from patterns.access_policy.
"""

import logging
from typing import Any, Sequence

from fastapi import UploadFile

from core.errors import FieldError, ForbiddenError, NotFoundError, ValidationFailed
from core.models.base import to_utc, utcnow
from patterns.access_policy import Action, Principal, evaluate_task_access
from patterns.repository import parse_uuid
from verticals.accounts.repository import UserRepository
from verticals.tasks.attachments import AttachmentManager
from verticals.tasks.events import TaskBroadcaster
from verticals.tasks.models.db_models import AttachedDocument, Task
from verticals.tasks.models.schemas import TaskCreate, TaskListParams, TaskUpdate
from verticals.tasks.repository import TaskRepository

logger = logging.getLogger(__name__)

TASK_NOT_FOUND = "Task not found"

# Update field -> column. created_by_id is never updatable.
UPDATABLE_COLUMNS = {
    "title": "title",
    "description": "description",
    "status": "status",
    "priority": "priority",
    "due_date": "due_date",
    "assigned_to": "assigned_to_id",
}


class TaskService:
    """List, read, create, update and delete tasks and their documents."""

    def __init__(
        self,
        tasks: TaskRepository,
        users: UserRepository,
        attachments: AttachmentManager,
        broadcaster: TaskBroadcaster,
        public_prefix: str = "/uploads",
    ):
        self.tasks = tasks
        self.users = users
        self.attachments = attachments
        self.broadcaster = broadcaster
        self.public_prefix = public_prefix

    # -- Helpers --

    def serialize(self, task: Task) -> dict[str, Any]:
        return task.to_dict(self.public_prefix)

    async def _load(self, task_id: str) -> Task:
        if parse_uuid(task_id) is None:
            raise NotFoundError(TASK_NOT_FOUND)
        task = await self.tasks.get(task_id)
        if task is None:
            raise NotFoundError(TASK_NOT_FOUND)
        return task

    def _authorize(self, principal: Principal, task: Task, action: Action) -> None:
        decision = evaluate_task_access(principal, task, action)
        if not decision.allowed:
            logger.info(
                "Denied %s on task %s to user %s (%s)",
                action.value, task.id, principal.user_id, decision.relationship.value,
            )
            raise ForbiddenError(decision.message)

    async def _check_assignee(self, user_id) -> None:
        if await self.users.get(user_id) is None:
            raise ValidationFailed([FieldError("assignedTo", "Assigned user does not exist")])

    # -- Queries --

    async def list_tasks(self, principal: Principal, params: TaskListParams) -> dict[str, Any]:
        page = await self.tasks.list_visible(principal, params)
        return {
            "items": [self.serialize(t) for t in page.items],
            "pagination": page.pagination(),
        }

    async def get_task(self, principal: Principal, task_id: str) -> dict[str, Any]:
        task = await self._load(task_id)
        self._authorize(principal, task, Action.READ)
        return self.serialize(task)

    # -- Commands --

    async def create_task(
        self,
        principal: Principal,
        data: TaskCreate,
        files: Sequence[UploadFile] = (),
    ) -> dict[str, Any]:
        """Create a task owned by the caller, with up to N attachments."""
        await self._check_assignee(data.assigned_to)
        stored = await self.attachments.store(files)

        try:
            task = Task(
                title=data.title,
                description=data.description,
                status=data.status.value,
                priority=data.priority.value,
                due_date=to_utc(data.due_date),
                assigned_to_id=data.assigned_to,
                created_by_id=principal.user_id,
            )
            self.attachments.add(task, stored)
            await self.tasks.add(task)
            await self.tasks.commit()
        except Exception:
            self.attachments.discard(stored)
            raise

        task = await self.tasks.reload(task)
        payload = self.serialize(task)
        logger.info("Task %s created by %s with %d document(s)", task.id, principal.user_id, len(stored))
        await self.broadcaster.task_created(payload)
        return payload

    async def update_task(
        self,
        principal: Principal,
        task_id: str,
        data: TaskUpdate,
        files: Sequence[UploadFile] = (),
    ) -> dict[str, Any]:
        """Apply the supplied fields and append any new attachments."""
        task = await self._load(task_id)
        self._authorize(principal, task, Action.WRITE)

        changes = {UPDATABLE_COLUMNS[k]: v for k, v in data.changes().items() if k in UPDATABLE_COLUMNS}
        if "assigned_to_id" in changes:
            await self._check_assignee(changes["assigned_to_id"])
        if "due_date" in changes:
            changes["due_date"] = to_utc(changes["due_date"])
        touched = ", ".join(sorted(changes)) or "documents only"

        stored = await self.attachments.store(files)
        if stored:
            changes["updated_at"] = utcnow()
        try:
            self.attachments.add(task, stored)
            await self.tasks.update(task, changes)
            await self.tasks.commit()
        except Exception:
            self.attachments.discard(stored)
            raise

        task = await self.tasks.reload(task)
        payload = self.serialize(task)
        logger.info("Task %s updated (%s)", task.id, touched)
        await self.broadcaster.task_updated(payload)
        return payload

    async def delete_task(self, principal: Principal, task_id: str) -> None:
        """Remove stored files (best effort), then the task itself."""
        task = await self._load(task_id)
        self._authorize(principal, task, Action.WRITE)

        total = len(task.documents)
        removed = self.attachments.delete_all(task)
        deleted_id = str(task.id)
        await self.tasks.delete(task)
        await self.tasks.commit()

        logger.info("Task %s deleted (%d/%d files removed)", deleted_id, removed, total)
        await self.broadcaster.task_deleted(deleted_id)

    async def remove_document(
        self, principal: Principal, task_id: str, doc_id: str
    ) -> dict[str, Any]:
        task = await self._load(task_id)
        self._authorize(principal, task, Action.WRITE)

        doc = self.attachments.remove(task, doc_id)
        task.updated_at = utcnow()
        await self.tasks.commit()

        task = await self.tasks.reload(task)
        payload = self.serialize(task)
        logger.info("Document %s removed from task %s", doc.id, task.id)
        await self.broadcaster.task_updated(payload)
        return payload

    async def get_document(
        self, principal: Principal, task_id: str, doc_id: str
    ) -> AttachedDocument:
        """Resolve a downloadable document; the stored file must still exist."""
        task = await self._load(task_id)
        self._authorize(principal, task, Action.READ)

        doc = self.attachments.get(task, doc_id)
        if not self.attachments.storage.exists(doc.file_path):
            raise NotFoundError("File not found")
        return doc
