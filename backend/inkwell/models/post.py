"""
Inkwell Backend — Post SQLAlchemy Model
=========================================

What:  ORM model representing the `posts` table.
Who:   Used by PostStore for CRUD operations and by Alembic for schema management.

Table Design Rationale:
    - author_id: Back-reference to the creating user. It is the only input
      to the ownership guard; posts never own their author.
    - created_at DESC index: the public feed lists newest first
    - author_id index: supports "posts by user" lookups and FK checks
"""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inkwell.database import Base

if TYPE_CHECKING:
    from inkwell.models.user import User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Post(Base):
    """
    A blog post.

    Lifecycle:
        1. Created by an authenticated user (author_id = token subject)
        2. Updated/deleted only by the identity equal to author_id
    """

    __tablename__ = "posts"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)

    # TEXT: content may be up to 10,000 characters, longer once entity-escaped
    content: Mapped[str] = mapped_column(Text, nullable=False)

    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    # Python-side onupdate: the value is known after flush without a reload
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    author: Mapped["User"] = relationship(back_populates="posts", lazy="raise")

    __table_args__ = (
        Index("idx_posts_created_at", created_at.desc()),
        Index("idx_posts_author_id", author_id),
    )

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, author_id={self.author_id}, title='{self.title[:30]}')>"
