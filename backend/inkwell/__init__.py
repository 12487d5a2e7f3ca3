"""
Inkwell Backend — Application Package Initializer
==================================================

What: Marks the `inkwell` directory as a Python package.
Why:  Enables module imports like `from inkwell.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend is a blogging API whose interesting part is the layer that
    decides whether a request may touch state at all:

    ┌─────────────────────────────────────┐
    │   Middleware (headers, size, XSS)   │  ← Every request, before routing
    ├─────────────────────────────────────┤
    │   Routes + Dependencies (API Layer) │  ← Auth gate, rate limits, HTTP
    ├─────────────────────────────────────┤
    │   Services (Business Logic)         │  ← Tokens, ownership, posts, AI
    ├─────────────────────────────────────┤
    │   Stores + Models (Persistence)     │  ← Async SQLAlchemy
    └─────────────────────────────────────┘

    Routes never talk to the database directly; services never know about
    HTTP status codes. Exceptions from `inkwell.exceptions` carry the mapping.
"""

__version__ = "1.0.0"
