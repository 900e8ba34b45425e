"""SQLAlchemy models for the accounts vertical.

The to_dict() method is the public projection of a user: it never
includes the password hash.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from core.models.base import Base, IdentityMixin, TimestampMixin, isoformat


class User(IdentityMixin, TimestampMixin, Base):
    """An account that can create, own and be assigned tasks."""

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="user")

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }

    def to_reference(self) -> dict:
        """Short projection embedded in task payloads."""
        return {"id": str(self.id), "name": self.name, "email": self.email}
