"""Content store: persistence for posts."""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from inkwell.exceptions import DatabaseError
from inkwell.models.post import Post

logger = logging.getLogger(__name__)


class PostStore:
    """Thin wrapper around database access for posts."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, post_id: uuid.UUID, for_update: bool = False) -> Optional[Post]:
        """
        Return a post with its author loaded, or None.

        for_update: take a row lock (SELECT ... FOR UPDATE) held until the
        transaction ends. selectinload keeps the author out of the locked
        query; FOR UPDATE cannot apply to an outer join.
        """
        stmt = select(Post).options(selectinload(Post.author)).where(Post.id == post_id)
        if for_update:
            stmt = stmt.with_for_update()
        try:
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching post %s: %s", post_id, str(e))
            raise DatabaseError(context={"operation": "get_post", "post_id": str(post_id)})

    async def list_page(self, offset: int, limit: int) -> List[Post]:
        """Newest first. Uses idx_posts_created_at."""
        stmt = (
            select(Post)
            .options(selectinload(Post.author))
            .order_by(desc(Post.created_at))
            .offset(offset)
            .limit(limit)
        )
        try:
            result = await self.session.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing posts: %s", str(e), exc_info=True)
            raise DatabaseError(context={"operation": "list_posts"})

    async def count(self) -> int:
        try:
            result = await self.session.execute(select(func.count(Post.id)))
            return result.scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Database error counting posts: %s", str(e))
            raise DatabaseError(context={"operation": "count_posts"})

    async def save(self, post: Post) -> Post:
        self.session.add(post)
        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            logger.error("Database error saving post: %s", str(e), exc_info=True)
            raise DatabaseError(context={"operation": "save_post"})
        return post

    async def delete(self, post: Post) -> None:
        try:
            await self.session.delete(post)
            await self.session.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting post %s: %s", post.id, str(e))
            raise DatabaseError(context={"operation": "delete_post", "post_id": str(post.id)})

    async def commit(self) -> None:
        """Commit now; used to end a row lock inside a per-post critical section."""
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            logger.error("Database error committing post change: %s", str(e))
            raise DatabaseError(context={"operation": "commit"})
