"""
Sociality Backend — ORM Models
===============================

Importing this package registers every table with `Base.metadata`, which is
what Alembic's env.py and the test suite's create_all() rely on.
"""

from sociality.models.user import Role, User
from sociality.models.post import Post
from sociality.models.comment import Comment
from sociality.models.engagement import Like, Save
from sociality.models.follow import Follow

__all__ = ["Role", "User", "Post", "Comment", "Like", "Save", "Follow"]
