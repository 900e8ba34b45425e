"""Tasks API router: listing, CRUD and attachment endpoints.

Create and update take multipart forms so that up to three files can be
sent under the "documents" field alongside the task fields. Every route
requires a bearer token; per-task permissions are enforced by the
service through the access policy.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import FileResponse

from core.config import Settings, get_settings
from core.realtime import Channel, get_channel
from core.storage import FileStorage
from patterns.access_policy import Principal
from verticals.accounts.dependencies import get_current_principal
from verticals.accounts.repository import UserRepository, get_user_repository
from verticals.tasks.attachments import AttachmentManager
from verticals.tasks.events import TaskBroadcaster
from verticals.tasks.models.schemas import (
    TaskCreate,
    TaskListParams,
    TaskUpdate,
)
from verticals.tasks.repository import TaskRepository, get_task_repository
from verticals.tasks.service import TaskService

router = APIRouter(dependencies=[Depends(get_current_principal)])


# ---------------------------------------------------------------------------
# Dependency factories
# ---------------------------------------------------------------------------

def get_file_storage(settings: Settings = Depends(get_settings)) -> FileStorage:
    """FastAPI dependency for FileStorage."""
    return FileStorage(
        settings.uploads.upload_dir,
        public_prefix=settings.uploads.public_prefix,
        max_file_size=settings.uploads.max_file_size,
    )


def get_task_service(
    tasks: TaskRepository = Depends(get_task_repository),
    users: UserRepository = Depends(get_user_repository),
    storage: FileStorage = Depends(get_file_storage),
    channel: Channel = Depends(get_channel),
    settings: Settings = Depends(get_settings),
) -> TaskService:
    """FastAPI dependency for TaskService."""
    return TaskService(
        tasks=tasks,
        users=users,
        attachments=AttachmentManager(storage, max_files=settings.uploads.max_files_per_request),
        broadcaster=TaskBroadcaster(channel),
        public_prefix=settings.uploads.public_prefix,
    )


def _uploads(documents: Optional[list[UploadFile]]) -> list[UploadFile]:
    # Browsers send an empty part for an untouched file input.
    return [f for f in documents or [] if f.filename]


def _form_fields(**fields: Optional[str]) -> dict[str, str]:
    return {k: v for k, v in fields.items() if v is not None}


# ============================================================================
# Task Endpoints
# ============================================================================

@router.get("")
async def list_tasks(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    status: Optional[str] = None,
    priority: Optional[str] = None,
    assigned_to: Optional[str] = Query(None, alias="assignedTo"),
    from_date: Optional[str] = Query(None, alias="fromDate"),
    to_date: Optional[str] = Query(None, alias="toDate"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
    settings: Settings = Depends(get_settings),
):
    """List visible tasks with filtering, sorting and pagination."""
    limit = min(limit or settings.listing.default_page_size, settings.listing.max_page_size)
    params = TaskListParams.model_validate(
        {
            "page": page,
            "limit": limit,
            "status": status or None,
            "priority": priority or None,
            "assignedTo": assigned_to or None,
            "fromDate": from_date or None,
            "toDate": to_date or None,
            "sortBy": sort_by or None,
        }
    )
    return await service.list_tasks(principal, params)


@router.get("/{task_id}")
async def get_task(
    task_id: str,
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    """Get a single task with its people and documents."""
    return await service.get_task(principal, task_id)


@router.post("", status_code=201)
async def create_task(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    status: Optional[str] = Form(None),
    priority: Optional[str] = Form(None),
    due_date: Optional[str] = Form(None, alias="dueDate"),
    assigned_to: Optional[str] = Form(None, alias="assignedTo"),
    documents: Optional[list[UploadFile]] = File(None),
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    """Create a task; the caller becomes its creator."""
    data = TaskCreate.model_validate(
        _form_fields(
            title=title,
            description=description,
            status=status,
            priority=priority,
            dueDate=due_date,
            assignedTo=assigned_to,
        )
    )
    return await service.create_task(principal, data, _uploads(documents))


@router.put("/{task_id}")
async def update_task(
    task_id: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    status: Optional[str] = Form(None),
    priority: Optional[str] = Form(None),
    due_date: Optional[str] = Form(None, alias="dueDate"),
    assigned_to: Optional[str] = Form(None, alias="assignedTo"),
    documents: Optional[list[UploadFile]] = File(None),
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    """Partially update a task and append new documents."""
    data = TaskUpdate.model_validate(
        _form_fields(
            title=title,
            description=description,
            status=status,
            priority=priority,
            dueDate=due_date,
            assignedTo=assigned_to,
        )
    )
    return await service.update_task(principal, task_id, data, _uploads(documents))


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    """Delete a task and its stored files."""
    await service.delete_task(principal, task_id)
    return {"message": "Task deleted successfully"}


# ============================================================================
# Document Endpoints
# ============================================================================

@router.delete("/{task_id}/documents/{doc_id}")
async def remove_document(
    task_id: str,
    doc_id: str,
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    """Detach a document and delete its file."""
    task = await service.remove_document(principal, task_id, doc_id)
    return {"message": "Document removed successfully", "task": task}


@router.get("/{task_id}/documents/{doc_id}/download")
async def download_document(
    task_id: str,
    doc_id: str,
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    """Stream a document back under its original name."""
    doc = await service.get_document(principal, task_id, doc_id)
    return FileResponse(doc.file_path, media_type=doc.file_type, filename=doc.file_name)
