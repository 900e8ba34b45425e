"""SQLAlchemy models for the tasks vertical.

Attachments live in their own table keyed by a generated id, owned by
the task (cascade delete) and kept in upload order via `position`.
Relationships load eagerly (selectin) so serialising a task never
triggers lazy IO on the async session.
"""

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.models.base import Base, IdentityMixin, TimestampMixin, isoformat
from core.storage import readable_file_size
from verticals.accounts.models.db_models import User


class Task(IdentityMixin, TimestampMixin, Base):
    """A unit of work assigned to a user."""

    __tablename__ = "tasks"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="todo", index=True)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="medium", index=True)
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    assigned_to_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    created_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )

    assignee: Mapped[User] = relationship(foreign_keys=[assigned_to_id], lazy="selectin")
    creator: Mapped[User] = relationship(foreign_keys=[created_by_id], lazy="selectin")
    documents: Mapped[list["AttachedDocument"]] = relationship(
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="AttachedDocument.position",
        lazy="selectin",
    )

    def next_document_position(self) -> int:
        return max((d.position for d in self.documents), default=-1) + 1

    def find_document(self, doc_id: uuid.UUID) -> "AttachedDocument | None":
        return next((d for d in self.documents if d.id == doc_id), None)

    def to_dict(self, public_prefix: str = "/uploads") -> dict:
        return {
            "id": str(self.id),
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "dueDate": isoformat(self.due_date),
            "assignedTo": self.assignee.to_reference() if self.assignee else None,
            "createdBy": self.creator.to_reference() if self.creator else None,
            "attachedDocuments": [d.to_dict(public_prefix) for d in self.documents],
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }


class AttachedDocument(IdentityMixin, Base):
    """A file uploaded against a task."""

    __tablename__ = "task_documents"

    task_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    file_name: Mapped[str] = mapped_column(String(500), nullable=False)
    file_path: Mapped[str] = mapped_column(String(1000), nullable=False)
    file_type: Mapped[str] = mapped_column(String(200), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    task: Mapped[Task] = relationship(back_populates="documents")

    def to_dict(self, public_prefix: str = "/uploads") -> dict:
        stored_name = self.file_path.replace("\\", "/").rsplit("/", 1)[-1]
        return {
            "id": str(self.id),
            "fileName": self.file_name,
            "filePath": self.file_path,
            "fileUrl": f"{public_prefix.rstrip('/')}/{stored_name}",
            "fileType": self.file_type,
            "fileSize": self.file_size,
            "fileSizeLabel": readable_file_size(self.file_size),
        }
