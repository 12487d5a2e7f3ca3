# Repositories package init
"""
Inkwell Backend — Stores
=========================

What:  Thin data-access classes over an AsyncSession.
Why:   Services depend on find/save/delete calls, not on SQL. Storage
       failures are translated here into the application taxonomy
       (ConflictError, DatabaseError) so no driver detail leaks upward.

    - UserStore: credential store (find_by_username, get, save)
    - PostStore: content store (get, list_page, count, save, delete)
"""

from inkwell.repositories.post_repo import PostStore
from inkwell.repositories.user_repo import UserStore

__all__ = ["PostStore", "UserStore"]
