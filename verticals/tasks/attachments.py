"""Attachment manager: keeps task documents and stored files in step.

Adding writes the uploads to storage and appends AttachedDocument rows
after the existing ones. Removing deletes the stored file first (best
effort) and then detaches the row; a file that cannot be deleted is
logged and the record change still goes ahead.
"""

import logging
from typing import Sequence

from fastapi import UploadFile

from core.errors import FieldError, NotFoundError, ValidationFailed
from core.storage import FileStorage, FileTooLargeError, StoredFile
from patterns.repository import parse_uuid
from verticals.tasks.models.db_models import AttachedDocument, Task

logger = logging.getLogger(__name__)

UPLOAD_FIELD = "documents"


class AttachmentManager:
    """Maps uploads onto AttachedDocuments and manages their files."""

    def __init__(self, storage: FileStorage, max_files: int = 3):
        self.storage = storage
        self.max_files = max_files

    # -- Upload handling --

    def check_count(self, files: Sequence[UploadFile]) -> None:
        if len(files) > self.max_files:
            raise ValidationFailed(
                [FieldError(UPLOAD_FIELD, f"At most {self.max_files} documents per request")]
            )

    async def store(self, files: Sequence[UploadFile]) -> list[StoredFile]:
        """Write uploads to storage; on failure nothing is left behind."""
        self.check_count(files)
        stored: list[StoredFile] = []
        try:
            for upload in files:
                stored.append(await self.storage.save(upload))
        except FileTooLargeError as exc:
            self.discard(stored)
            raise ValidationFailed([FieldError(UPLOAD_FIELD, str(exc))]) from exc
        except Exception:
            self.discard(stored)
            raise
        return stored

    def discard(self, stored: Sequence[StoredFile]) -> None:
        """Best-effort removal of files whose record was never saved."""
        for item in stored:
            self.storage.delete(item.file_path)

    # -- Record mutation --

    def add(self, task: Task, stored: Sequence[StoredFile]) -> list[AttachedDocument]:
        """Append documents after any existing ones."""
        if len(stored) > self.max_files:
            raise ValidationFailed(
                [FieldError(UPLOAD_FIELD, f"At most {self.max_files} documents per request")]
            )
        position = task.next_document_position()
        added = []
        for offset, item in enumerate(stored):
            doc = AttachedDocument(
                position=position + offset,
                file_name=item.file_name,
                file_path=item.file_path,
                file_type=item.file_type,
                file_size=item.file_size,
            )
            task.documents.append(doc)
            added.append(doc)
        return added

    def get(self, task: Task, doc_id: str) -> AttachedDocument:
        parsed = parse_uuid(doc_id)
        doc = task.find_document(parsed) if parsed is not None else None
        if doc is None:
            raise NotFoundError("Document not found")
        return doc

    def remove(self, task: Task, doc_id: str) -> AttachedDocument:
        """Delete the stored file, then detach the record."""
        doc = self.get(task, doc_id)
        if not self.storage.delete(doc.file_path):
            logger.warning("File for document %s was not removed from storage", doc.id)
        task.documents.remove(doc)
        return doc

    def delete_all(self, task: Task) -> int:
        """Delete every stored file of a task. Returns how many were removed."""
        removed = 0
        for doc in task.documents:
            if self.storage.delete(doc.file_path):
                removed += 1
            else:
                logger.warning("File for document %s was not removed from storage", doc.id)
        return removed
