"""Pydantic schemas for blog posts."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Annotated, Any

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StrictInt,
    field_validator,
)


def _date_to_datetime(value: Any) -> Any:
    """Promote bare dates to midnight so they compare with stored datetimes."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    return value


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


NonEmptyStr = Annotated[str, Field(min_length=1)]
PublicationDate = Annotated[
    datetime, BeforeValidator(_date_to_datetime), AfterValidator(_to_naive_utc)
]


class BlogPostOut(BaseModel):
    """Wire shape of a stored blog post."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    body: str
    author: str
    publication_date: datetime
    tags: list[str]
    created_at: datetime
    updated_at: datetime

    @field_validator("tags", mode="before")
    @classmethod
    def tags_never_null(cls, value: Any) -> Any:
        return [] if value is None else value


class CreateBlogPostInput(BaseModel):
    """Input for ``createBlogPost``."""

    title: NonEmptyStr
    body: NonEmptyStr
    author: NonEmptyStr
    publication_date: PublicationDate
    tags: list[NonEmptyStr] = Field(default_factory=list)


class UpdateBlogPostInput(BaseModel):
    """Input for ``updateBlogPost``.

    Every field except ``id`` may be omitted. A supplied field must satisfy the
    same constraint as on create, so text fields can be replaced but never
    cleared, while ``tags`` may be replaced with an empty list.
    """

    id: StrictInt
    title: NonEmptyStr | None = None
    body: NonEmptyStr | None = None
    author: NonEmptyStr | None = None
    publication_date: PublicationDate | None = None
    tags: list[NonEmptyStr] | None = None

    # Defaults are not validated, so this only fires for an explicit null
    @field_validator(
        "title", "body", "author", "publication_date", "tags", mode="before"
    )
    @classmethod
    def reject_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("Field may be omitted but not null")
        return value

    def changes(self) -> dict[str, Any]:
        """Return only the fields the caller actually supplied."""
        return self.model_dump(exclude_unset=True, exclude={"id"})


class GetBlogPostInput(BaseModel):
    """Input for ``getBlogPost``."""

    id: StrictInt


class DeleteBlogPostInput(BaseModel):
    """Input for ``deleteBlogPost``."""

    id: StrictInt


class DeleteResult(BaseModel):
    success: bool
