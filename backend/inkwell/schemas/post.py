"""
Inkwell Backend — Post Schemas
================================

What:  Pydantic models for post CRUD and AI content generation.
Why:   Strict input validation and OpenAPI docs for the posts router.

Validation happens after request sanitization: lengths are measured on
the entity-escaped text, trimmed.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

TITLE_MAX_LENGTH = 200
CONTENT_MAX_LENGTH = 10_000
TOPIC_MIN_LENGTH = 5
TOPIC_MAX_LENGTH = 200

VALID_TONES = ("casual", "professional", "academic")
VALID_LENGTHS = ("short", "medium", "long")


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class PostWrite(BaseModel):
    """Body of POST /api/posts and PUT /api/posts/{id}."""
    title: str = Field(description="1-200 characters")
    content: str = Field(description="1-10,000 characters")

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str) -> str:
        trimmed = v.strip()
        if not trimmed:
            raise ValueError("Title cannot be empty")
        if len(trimmed) > TITLE_MAX_LENGTH:
            raise ValueError("Title must be less than 200 characters")
        return trimmed

    @field_validator("content")
    @classmethod
    def check_content(cls, v: str) -> str:
        trimmed = v.strip()
        if not trimmed:
            raise ValueError("Content cannot be empty")
        if len(trimmed) > CONTENT_MAX_LENGTH:
            raise ValueError("Content must be less than 10,000 characters")
        return trimmed


class PostCreate(PostWrite):
    pass


class PostUpdate(PostWrite):
    pass


class GenerateRequest(BaseModel):
    """
    Body of POST /api/posts/generate.

    tone and length are optional; defaults are applied by the route so the
    response can echo the options actually used.
    """
    topic: str = Field(description="5-200 characters")
    tone: Optional[str] = Field(default=None, description="casual, professional or academic")
    length: Optional[str] = Field(default=None, description="short, medium or long")

    @field_validator("topic")
    @classmethod
    def check_topic(cls, v: str) -> str:
        trimmed = v.strip()
        if not TOPIC_MIN_LENGTH <= len(trimmed) <= TOPIC_MAX_LENGTH:
            raise ValueError("Topic must be between 5 and 200 characters")
        return trimmed

    @field_validator("tone")
    @classmethod
    def check_tone(cls, v: Optional[str]) -> Optional[str]:
        if v and v not in VALID_TONES:
            raise ValueError("Invalid tone. Must be one of: casual, professional, academic")
        return v or None

    @field_validator("length")
    @classmethod
    def check_length(cls, v: Optional[str]) -> Optional[str]:
        if v and v not in VALID_LENGTHS:
            raise ValueError("Invalid length. Must be one of: short, medium, long")
        return v or None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class AuthorSummary(BaseModel):
    id: uuid.UUID
    username: str

    model_config = {"from_attributes": True}


class PostResponse(BaseModel):
    """Full post with its author's public fields."""
    id: uuid.UUID = Field(description="Unique post identifier (UUID)")
    title: str
    content: str
    author: AuthorSummary
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PaginationInfo(BaseModel):
    current_page: int
    total_pages: int
    total_posts: int
    has_next: bool
    has_prev: bool


class PostListResponse(BaseModel):
    """
    What:  Page of posts for GET /api/posts.

    Offset pagination: the feed is browsed page by page with numbered
    pages in the UI, so page/limit maps directly to what users see.
    """
    posts: List[PostResponse]
    pagination: PaginationInfo


class DeletedPost(BaseModel):
    id: uuid.UUID
    title: str


class DeletePostResponse(BaseModel):
    message: str = "Post deleted successfully"
    deleted_post: DeletedPost


class GenerateOptions(BaseModel):
    tone: str = "professional"
    length: str = "medium"


class GenerateResponse(BaseModel):
    success: bool = True
    title: str
    content: str
    topic: str
    options: GenerateOptions
