"""Remote procedure façade for blog posts.

Procedures follow the tRPC HTTP conventions the browser client speaks:
queries answer ``GET /rpc/<name>?input=<json>``, mutations answer
``POST /rpc/<name>`` with a JSON body, and every response is wrapped in a
``result`` or ``error`` envelope.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

from fastapi import APIRouter, Depends, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from postdesk.database import get_db
from postdesk.errors import NotFoundError, StoreError
from postdesk.services.blog_posts import (
    create_blog_post,
    delete_blog_post,
    get_blog_post,
    get_blog_posts,
    update_blog_post,
)
from postdesk.services.post_store import PostStore, utcnow

router = APIRouter(prefix="/rpc", tags=["rpc"])


class RPCError(Exception):
    """A façade-level failure that maps directly onto an error envelope."""

    def __init__(self, code: str, message: str, status_code: int) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code


@dataclass(frozen=True)
class Procedure:
    name: str
    kind: Literal["query", "mutation"]
    handler: Callable[..., Any]
    takes_input: bool = True

    def invoke(self, store: PostStore, payload: Any) -> Any:
        if self.takes_input:
            return self.handler(store, payload)
        return self.handler(store)


def healthcheck(store: PostStore) -> dict[str, str]:
    return {"status": "ok", "timestamp": utcnow().isoformat()}


PROCEDURES: dict[str, Procedure] = {
    procedure.name: procedure
    for procedure in (
        Procedure("healthcheck", "query", healthcheck, takes_input=False),
        Procedure("createBlogPost", "mutation", create_blog_post),
        Procedure("getBlogPost", "query", get_blog_post),
        Procedure("getBlogPosts", "query", get_blog_posts, takes_input=False),
        Procedure("updateBlogPost", "mutation", update_blog_post),
        Procedure("deleteBlogPost", "mutation", delete_blog_post),
    )
}


def get_store(db: Session = Depends(get_db)) -> PostStore:
    return PostStore(db)


def _lookup(name: str, method: str) -> Procedure:
    procedure = PROCEDURES.get(name)
    if procedure is None:
        raise RPCError(
            "NOT_FOUND",
            f'No procedure found on path "{name}"',
            status.HTTP_404_NOT_FOUND,
        )
    if method == "GET" and procedure.kind == "mutation":
        raise RPCError(
            "METHOD_NOT_SUPPORTED",
            f'Unsupported GET-request to mutation procedure at path "{name}"',
            status.HTTP_405_METHOD_NOT_ALLOWED,
        )
    return procedure


def _decode(raw: str | bytes | None) -> Any:
    if raw is None or not raw.strip():
        return None
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise RPCError(
                "BAD_REQUEST",
                f"Input is not valid UTF-8: {exc.reason}",
                status.HTTP_400_BAD_REQUEST,
            ) from exc
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise RPCError(
            "BAD_REQUEST",
            f"Input is not valid JSON: {exc.msg}",
            status.HTTP_400_BAD_REQUEST,
        ) from exc


async def _dispatch(procedure: Procedure, store: PostStore, payload: Any) -> JSONResponse:
    result = await run_in_threadpool(procedure.invoke, store, payload)
    return JSONResponse({"result": {"data": jsonable_encoder(result)}})


@router.get("/{name}", summary="Call a query procedure")
async def call_query(
    name: str, request: Request, store: PostStore = Depends(get_store)
) -> JSONResponse:
    procedure = _lookup(name, "GET")
    payload = _decode(request.query_params.get("input"))
    return await _dispatch(procedure, store, payload)


@router.post("/{name}", summary="Call a mutation or query procedure")
async def call_procedure(
    name: str, request: Request, store: PostStore = Depends(get_store)
) -> JSONResponse:
    procedure = _lookup(name, "POST")
    payload = _decode(await request.body())
    return await _dispatch(procedure, store, payload)


# ==========================================
# Exception handlers (registered by the app factory)
# ==========================================
def error_envelope(
    code: str, message: str, status_code: int, issues: list[dict] | None = None
) -> JSONResponse:
    error: dict[str, Any] = {"code": code, "message": message}
    if issues is not None:
        error["issues"] = issues
    return JSONResponse({"error": error}, status_code=status_code)


async def rpc_error_handler(request: Request, exc: RPCError) -> JSONResponse:
    return error_envelope(exc.code, exc.message, exc.status_code)


async def validation_error_handler(
    request: Request, exc: ValidationError
) -> JSONResponse:
    issues = [
        {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
        for error in exc.errors()
    ]
    return error_envelope(
        "BAD_REQUEST",
        f"Invalid input for {exc.title}",
        status.HTTP_400_BAD_REQUEST,
        issues,
    )


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return error_envelope("NOT_FOUND", str(exc), status.HTTP_404_NOT_FOUND)


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    # Engine details stay in the logs
    return error_envelope(
        "INTERNAL_SERVER_ERROR",
        "The blog post store is unavailable",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


EXCEPTION_HANDLERS = {
    RPCError: rpc_error_handler,
    ValidationError: validation_error_handler,
    NotFoundError: not_found_handler,
    StoreError: store_error_handler,
}
