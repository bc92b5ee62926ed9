"""Exceptions raised by the blog post store and handlers."""

from __future__ import annotations


class PostdeskError(Exception):
    """Base class for service errors."""


class NotFoundError(PostdeskError):
    """Raised when an update or delete targets an id that does not exist."""

    def __init__(self, post_id: int) -> None:
        self.post_id = post_id
        super().__init__(f"Blog post with id {post_id} not found")


class StoreError(PostdeskError):
    """Raised when the persistence layer fails."""
