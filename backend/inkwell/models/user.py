"""
Inkwell Backend — User SQLAlchemy Model
=========================================

What:  ORM model representing the `users` table.
Why:   The credential store persists one row per registered account.
Who:   Used by UserStore (find_by_username, save) and by Alembic.

Table Design Rationale:
    - UUID primary key: Non-sequential; it is also the token subject
    - username: Stored trimmed and lower-cased, so the unique index is
      effectively case-insensitive without a functional index
    - password_hash: bcrypt output ($2b$...), never the plaintext
"""

import uuid
from datetime import datetime, timezone
from typing import List, TYPE_CHECKING

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inkwell.database import Base

if TYPE_CHECKING:
    from inkwell.models.post import Post


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    A registered account.

    Lifecycle:
        1. Created by POST /api/users/register after the uniqueness check
        2. Read by POST /api/users/login and when a post is created
        3. Never mutated or deleted by the API
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier, also used as the identity token subject",
    )

    # Uniqueness is enforced here; a concurrent duplicate insert surfaces as
    # IntegrityError, which UserStore.save translates into ConflictError.
    username: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        unique=True,
        index=True,
        comment="Trimmed, lower-cased username",
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="bcrypt hash of the password",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    posts: Mapped[List["Post"]] = relationship(back_populates="author", lazy="raise")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
