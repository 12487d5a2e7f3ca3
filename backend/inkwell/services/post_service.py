"""
Inkwell Backend — Post Service (Business Logic Orchestrator)
==============================================================

What:  Create, read, list, update and delete posts.
Why:   Ownership, sanitization and pagination rules stay out of the routes.
How:   Composes PostStore/UserStore, the ownership guard and the sanitizer.
Who:   Called by the /api/posts route handlers.

Mutation Flow (PUT/DELETE /api/posts/{id}):
    ┌──────────┐    ┌──────────────┐    ┌───────────────┐    ┌──────────┐
    │ per-post │───▶│ load row     │───▶│ ownership     │───▶│ write +  │
    │ lock     │    │ FOR UPDATE   │    │ guard         │    │ commit   │
    └──────────┘    └──────────────┘    └───────────────┘    └──────────┘

    Missing post → NotFoundError (404) before the guard runs.
    Guard fails  → ForbiddenError (403), nothing is written.

    The commit happens before the per-post lock is released, so a second
    mutation of the same post always sees the first one's result. The row
    lock covers other worker processes.
"""

import logging
import math
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.exceptions import InvalidCredentialError, NotFoundError, ValidationError
from inkwell.models.post import Post
from inkwell.repositories import PostStore, UserStore
from inkwell.schemas.post import (
    DeletedPost,
    DeletePostResponse,
    PaginationInfo,
    PostListResponse,
    PostResponse,
)
from inkwell.services.locks import KeyedLock
from inkwell.services.ownership import ensure_owner
from inkwell.services.sanitizer import Sanitizer, default_sanitizer

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 50
# Largest row offset a page may start at; bigger values overflow the driver
MAX_OFFSET = 2**31


def parse_post_id(raw: str) -> uuid.UUID:
    """Path parameter → UUID. Malformed ids are a client error, not a 404."""
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        raise ValidationError(message="Invalid post ID", field="id")


def _identity_uuid(user_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(user_id))
    except ValueError:
        raise InvalidCredentialError(context={"reason": "subject_not_uuid"})


class PostService:
    """
    Business logic layer for posts.

    Error Handling Strategy:
        Storage errors arrive as DatabaseError from the stores and propagate
        unchanged. Client faults are raised here: ValidationError for bad
        ids or pagination, NotFoundError, ForbiddenError (via ensure_owner).
    """

    def __init__(self) -> None:
        self._post_locks = KeyedLock()

    async def create_post(
        self,
        db: AsyncSession,
        author_id: str,
        title: str,
        content: str,
        sanitizer: Sanitizer = default_sanitizer,
    ) -> PostResponse:
        """
        Persist a new post owned by `author_id`.

        `title` and `content` arrive validated and trimmed; content is passed
        through the rich-text filter before storage.
        """
        author = await UserStore(db).get(_identity_uuid(author_id))
        if author is None:
            raise NotFoundError(resource="user", resource_id=str(author_id))

        post = Post(
            title=title,
            content=sanitizer.sanitize_rich_text(content),
            author_id=author.id,
        )
        post.author = author
        await PostStore(db).save(post)

        logger.info("Post created: %s by %s", post.id, author.id)
        return PostResponse.model_validate(post)

    async def get_post(self, db: AsyncSession, post_id: str) -> PostResponse:
        post = await PostStore(db).get(parse_post_id(post_id))
        if post is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))
        return PostResponse.model_validate(post)

    async def list_posts(self, db: AsyncSession, page: int = 1, limit: int = 10) -> PostListResponse:
        """
        One page of posts, newest first.

        Args:
            page:  1-based page number
            limit: page size, 1..50

        Raises:
            ValidationError: page below 1, limit out of range, or a page
                             so far out that its offset exceeds MAX_OFFSET
        """
        out_of_range = page < 1 or limit < 1 or limit > MAX_PAGE_SIZE
        if out_of_range or (page - 1) * limit > MAX_OFFSET:
            raise ValidationError(
                message="Invalid pagination parameters",
                context={"page": page, "limit": limit},
            )

        store = PostStore(db)
        total = await store.count()
        posts = await store.list_page(offset=(page - 1) * limit, limit=limit)
        total_pages = math.ceil(total / limit)

        return PostListResponse(
            posts=[PostResponse.model_validate(p) for p in posts],
            pagination=PaginationInfo(
                current_page=page,
                total_pages=total_pages,
                total_posts=total,
                has_next=page < total_pages,
                has_prev=page > 1,
            ),
        )

    async def update_post(
        self,
        db: AsyncSession,
        post_id: str,
        acting_user_id: str,
        title: str,
        content: str,
        sanitizer: Sanitizer = default_sanitizer,
    ) -> PostResponse:
        """
        Replace title and content of a post the caller owns.

        Raises:
            ValidationError: malformed post id
            NotFoundError:   no such post
            ForbiddenError:  caller is not the author
        """
        key = parse_post_id(post_id)
        store = PostStore(db)

        async with self._post_locks.hold(key):
            post = await store.get(key, for_update=True)
            if post is None:
                raise NotFoundError(resource="post", resource_id=str(key))
            ensure_owner(post, acting_user_id, action="edit")

            post.title = title
            post.content = sanitizer.sanitize_rich_text(content)
            await store.save(post)
            await store.commit()

        logger.info("Post updated: %s by %s", post.id, acting_user_id)
        return PostResponse.model_validate(post)

    async def delete_post(
        self,
        db: AsyncSession,
        post_id: str,
        acting_user_id: str,
    ) -> DeletePostResponse:
        key = parse_post_id(post_id)
        store = PostStore(db)

        async with self._post_locks.hold(key):
            post = await store.get(key, for_update=True)
            if post is None:
                raise NotFoundError(resource="post", resource_id=str(key))
            ensure_owner(post, acting_user_id, action="delete")

            deleted = DeletedPost(id=post.id, title=post.title)
            await store.delete(post)
            await store.commit()

        logger.info("Post deleted: %s by %s", deleted.id, acting_user_id)
        return DeletePostResponse(deleted_post=deleted)


post_service = PostService()
