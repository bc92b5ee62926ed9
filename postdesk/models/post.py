"""Blog post model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from postdesk.database import Base


class BlogPost(Base):
    """A single blog post row.

    ``tags`` is an embedded JSON list rather than a join table. ``created_at``
    and ``updated_at`` are assigned by the store, never by callers.
    """

    __tablename__ = "blog_posts"
    # Ids must never be reused after a delete
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)  # Markdown content
    author: Mapped[str] = mapped_column(Text, nullable=False)
    publication_date: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, index=True
    )
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self) -> str:
        return f"<BlogPost id={self.id} title={self.title!r}>"
