"""
Inkwell Backend — Post Route Handlers
=======================================

What:  CRUD for posts plus AI draft generation.
Who:   Public: list and read. Authenticated: create, generate.
       Authenticated author only: update, delete.

Route Inventory:
    POST   /api/posts            create (201)
    GET    /api/posts            list, ?page=1&limit=10 (limit 1-50)
    POST   /api/posts/generate   draft a post with AI (per-user rate limit)
    GET    /api/posts/{id}       read
    PUT    /api/posts/{id}       update (owner)
    DELETE /api/posts/{id}       delete (owner)
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.database import get_db_session
from inkwell.dependencies import get_current_user_id, get_generation_rate_limiter, get_sanitizer
from inkwell.schemas.common import ErrorResponse
from inkwell.schemas.post import (
    DeletePostResponse,
    GenerateOptions,
    GenerateRequest,
    GenerateResponse,
    PostCreate,
    PostListResponse,
    PostResponse,
    PostUpdate,
)
from inkwell.services.gemini_service import get_content_generator
from inkwell.services.llm_base import ContentGenerator, GenerationOptions
from inkwell.services.post_service import post_service
from inkwell.services.rate_limiter import RateLimiter
from inkwell.services.sanitizer import Sanitizer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["Posts"])

_AUTH_ERRORS = {
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
}
_OWNER_ERRORS = {
    **_AUTH_ERRORS,
    400: {"description": "Invalid post ID or body", "model": ErrorResponse},
    403: {"description": "Not the author", "model": ErrorResponse},
    404: {"description": "Post not found", "model": ErrorResponse},
}


@router.post(
    "",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_AUTH_ERRORS,
    summary="Create a post",
)
async def create_post(
    payload: PostCreate,
    user_id: str = Depends(get_current_user_id),
    sanitizer: Sanitizer = Depends(get_sanitizer),
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    return await post_service.create_post(db, user_id, payload.title, payload.content, sanitizer)


@router.get(
    "",
    response_model=PostListResponse,
    responses={400: {"description": "Invalid pagination parameters", "model": ErrorResponse}},
    summary="List posts, newest first",
)
async def list_posts(
    page: int = Query(default=1, description="1-based page number"),
    limit: int = Query(default=10, description="Posts per page (1-50)"),
    db: AsyncSession = Depends(get_db_session),
) -> PostListResponse:
    # Range checks live in the service so the client gets one message for both
    return await post_service.list_posts(db, page=page, limit=limit)


# Declared before /{post_id} so "generate" is never read as an id
@router.post(
    "/generate",
    response_model=GenerateResponse,
    responses={
        **_AUTH_ERRORS,
        429: {"description": "Generation limit reached", "model": ErrorResponse},
        503: {"description": "AI service unavailable", "model": ErrorResponse},
    },
    summary="Draft a post with AI",
)
async def generate_post(
    payload: GenerateRequest,
    user_id: str = Depends(get_current_user_id),
    limiter: RateLimiter = Depends(get_generation_rate_limiter),
    generator: ContentGenerator = Depends(get_content_generator),
) -> GenerateResponse:
    """
    Attempts are counted before calling the AI service, so failed
    generations also use up the hourly allowance.
    """
    await limiter.check(
        user_id,
        "generate",
        message=(
            f"Rate limit exceeded. You can generate up to {limiter.max_attempts} "
            "blog posts per hour."
        ),
    )

    options = GenerateOptions(
        tone=payload.tone or "professional",
        length=payload.length or "medium",
    )
    generated = await generator.generate(
        payload.topic,
        GenerationOptions(tone=options.tone, length=options.length),
    )
    logger.info("Generated draft for %s (%d chars)", user_id, len(generated.content))

    return GenerateResponse(
        title=generated.title,
        content=generated.content,
        topic=payload.topic,
        options=options,
    )


@router.get(
    "/{post_id}",
    response_model=PostResponse,
    responses={
        400: {"description": "Invalid post ID", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
    },
    summary="Get a single post",
)
async def get_post(
    post_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    return await post_service.get_post(db, post_id)


@router.put(
    "/{post_id}",
    response_model=PostResponse,
    responses=_OWNER_ERRORS,
    summary="Update your post",
)
async def update_post(
    post_id: str,
    payload: PostUpdate,
    user_id: str = Depends(get_current_user_id),
    sanitizer: Sanitizer = Depends(get_sanitizer),
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    return await post_service.update_post(
        db, post_id, user_id, payload.title, payload.content, sanitizer
    )


@router.delete(
    "/{post_id}",
    response_model=DeletePostResponse,
    responses=_OWNER_ERRORS,
    summary="Delete your post",
)
async def delete_post(
    post_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> DeletePostResponse:
    return await post_service.delete_post(db, post_id, user_id)
