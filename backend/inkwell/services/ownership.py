"""
Inkwell Backend — Ownership Guard
===================================

What:  Decides whether the authenticated identity may mutate a resource.
Why:   Authentication says who you are; this says whether the post is yours.
How:   Pure comparison of the resource's recorded owner with the acting
       identity. Identifiers are compared as strings because the owner is a
       UUID column while the identity comes from a token claim.

Ordering:
    The caller checks that the resource exists first (NotFoundError) and
    calls the guard before issuing any write to storage.
"""

from typing import Any

from inkwell.exceptions import ForbiddenError


def authorize(resource: Any, acting_identity: Any) -> bool:
    """True when `acting_identity` is the recorded author of `resource`."""
    owner = getattr(resource, "author_id", None)
    if owner is None or acting_identity is None:
        return False
    return str(owner) == str(acting_identity)


def ensure_owner(resource: Any, acting_identity: Any, action: str = "modify") -> None:
    """
    Raise ForbiddenError unless authorize() passes.

    Args:
        action: Verb used in the client message ("edit", "delete").
    """
    if not authorize(resource, acting_identity):
        raise ForbiddenError(
            message=f"Access denied: You can only {action} your own posts",
            context={
                "resource_id": str(getattr(resource, "id", "")),
                "acting_identity": str(acting_identity),
            },
        )
