# Models package init: importing both registers them with Base.metadata
from inkwell.models.post import Post
from inkwell.models.user import User

__all__ = ["Post", "User"]
