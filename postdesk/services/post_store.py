"""Session-bound persistence for blog posts."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy import asc, desc, select
from sqlalchemy.exc import SQLAlchemyError

from postdesk.errors import NotFoundError, StoreError
from postdesk.models.post import BlogPost

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

# Columns a caller may write; id and audit timestamps belong to the store
WRITABLE_FIELDS = frozenset({"title", "body", "author", "publication_date", "tags"})

# SQLite INTEGER is a signed 64-bit value; ids outside it can never be stored
MIN_POST_ID = -(2**63)
MAX_POST_ID = 2**63 - 1


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching what SQLite hands back."""
    return datetime.now(UTC).replace(tzinfo=None)


class PostStore:
    """Keyed storage of :class:`BlogPost` rows over one SQLAlchemy session."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow) -> None:
        self.db = db
        self.clock = clock

    @contextmanager
    def _guard(self, action: str) -> Iterator[None]:
        """Roll back and wrap engine failures; never retry."""
        try:
            yield
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreError(f"Failed to {action}: {exc}") from exc

    @staticmethod
    def _writable(fields: Mapping[str, Any]) -> dict[str, Any]:
        return {key: value for key, value in fields.items() if key in WRITABLE_FIELDS}

    def insert(self, fields: Mapping[str, Any]) -> BlogPost:
        """Persist a new post and return the stored row."""
        values = self._writable(fields)
        values.setdefault("tags", [])
        now = self.clock()
        post = BlogPost(**values, created_at=now, updated_at=now)
        with self._guard("insert blog post"):
            self.db.add(post)
            self.db.commit()
            self.db.refresh(post)
        logger.info("Inserted blog post", extra={"post_id": post.id})
        return post

    def find_by_id(self, post_id: int) -> BlogPost | None:
        if not MIN_POST_ID <= post_id <= MAX_POST_ID:
            return None
        with self._guard(f"load blog post {post_id}"):
            return self.db.get(BlogPost, post_id)

    def find_all(self) -> list[BlogPost]:
        """Every post, most recent publication first, ties in insertion order."""
        query = select(BlogPost).order_by(
            desc(BlogPost.publication_date), asc(BlogPost.id)
        )
        with self._guard("list blog posts"):
            return list(self.db.scalars(query).all())

    def update_partial(self, post_id: int, fields: Mapping[str, Any]) -> BlogPost:
        """Merge the supplied fields into an existing post.

        Raises:
            NotFoundError: If no post has ``post_id``.
        """
        post = self.find_by_id(post_id)
        if post is None:
            raise NotFoundError(post_id)

        for key, value in self._writable(fields).items():
            setattr(post, key, value)
        # Keep updated_at strictly increasing even on a coarse clock
        now = self.clock()
        if now <= post.updated_at:
            now = post.updated_at + timedelta(microseconds=1)
        post.updated_at = now

        with self._guard(f"update blog post {post_id}"):
            self.db.commit()
            self.db.refresh(post)
        logger.info("Updated blog post", extra={"post_id": post_id})
        return post

    def delete_by_id(self, post_id: int) -> bool:
        """Hard-delete a post.

        Raises:
            NotFoundError: If no post has ``post_id``, including a second delete.
        """
        post = self.find_by_id(post_id)
        if post is None:
            raise NotFoundError(post_id)

        with self._guard(f"delete blog post {post_id}"):
            self.db.delete(post)
            self.db.commit()
        logger.info("Deleted blog post", extra={"post_id": post_id})
        return True
