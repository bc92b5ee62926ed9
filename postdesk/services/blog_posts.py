"""Blog post operation handlers.

Each handler validates its input, makes a single store call and shapes the
result. Nothing is recovered here: validation, not-found and store errors are
logged and re-raised for the caller to map.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from postdesk.errors import NotFoundError, StoreError
from postdesk.schemas.post import (
    BlogPostOut,
    CreateBlogPostInput,
    DeleteBlogPostInput,
    DeleteResult,
    GetBlogPostInput,
    UpdateBlogPostInput,
)
from postdesk.services.post_store import PostStore

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT", bound=BaseModel)


def _validate(schema: type[InputT], payload: InputT | Mapping[str, Any]) -> InputT:
    if isinstance(payload, schema):
        return payload
    try:
        return schema.model_validate(payload)
    except ValidationError:
        logger.warning("Rejected %s input", schema.__name__)
        raise


def create_blog_post(
    store: PostStore, payload: CreateBlogPostInput | Mapping[str, Any]
) -> BlogPostOut:
    data = _validate(CreateBlogPostInput, payload)
    try:
        post = store.insert(data.model_dump())
    except StoreError:
        logger.exception("Blog post creation failed")
        raise
    return BlogPostOut.model_validate(post)


def get_blog_post(
    store: PostStore, payload: GetBlogPostInput | Mapping[str, Any]
) -> BlogPostOut | None:
    """Return the post, or ``None`` when the id is unknown."""
    data = _validate(GetBlogPostInput, payload)
    try:
        post = store.find_by_id(data.id)
    except StoreError:
        logger.exception("Blog post retrieval failed")
        raise
    if post is None:
        return None
    return BlogPostOut.model_validate(post)


def get_blog_posts(store: PostStore) -> list[BlogPostOut]:
    try:
        posts = store.find_all()
    except StoreError:
        logger.exception("Failed to fetch blog posts")
        raise
    return [BlogPostOut.model_validate(post) for post in posts]


def update_blog_post(
    store: PostStore, payload: UpdateBlogPostInput | Mapping[str, Any]
) -> BlogPostOut:
    data = _validate(UpdateBlogPostInput, payload)
    try:
        post = store.update_partial(data.id, data.changes())
    except NotFoundError:
        logger.warning("Blog post %s not found for update", data.id)
        raise
    except StoreError:
        logger.exception("Blog post update failed")
        raise
    return BlogPostOut.model_validate(post)


def delete_blog_post(
    store: PostStore, payload: DeleteBlogPostInput | Mapping[str, Any]
) -> DeleteResult:
    data = _validate(DeleteBlogPostInput, payload)
    try:
        store.delete_by_id(data.id)
    except NotFoundError:
        logger.warning("Blog post %s not found for delete", data.id)
        raise
    except StoreError:
        logger.exception("Blog post deletion failed")
        raise
    return DeleteResult(success=True)
