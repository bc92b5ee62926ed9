"""Tests for the remote procedure façade."""

from __future__ import annotations

import json
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from postdesk.errors import StoreError
from postdesk.routers.rpc import PROCEDURES, get_store


def _data(response) -> object:
    assert response.status_code == 200, response.text
    return response.json()["result"]["data"]


def _query(client: TestClient, name: str, payload: object | None = None):
    params = {"input": json.dumps(payload)} if payload is not None else None
    return client.get(f"/rpc/{name}", params=params)


@pytest.fixture
def created_post(client: TestClient, post_payload: dict) -> dict:
    return _data(client.post("/rpc/createBlogPost", json=post_payload))


# createBlogPost
def test_create_returns_wire_shape(created_post: dict, post_payload: dict):
    assert set(created_post) == {
        "id",
        "title",
        "body",
        "author",
        "publication_date",
        "tags",
        "created_at",
        "updated_at",
    }
    assert isinstance(created_post["id"], int)
    assert created_post["title"] == post_payload["title"]
    assert created_post["publication_date"].startswith("2024-01-15T00:00:00")
    assert created_post["created_at"] == created_post["updated_at"]


def test_create_without_tags_returns_empty_list(client: TestClient, post_payload: dict):
    del post_payload["tags"]
    post = _data(client.post("/rpc/createBlogPost", json=post_payload))
    assert post["tags"] == []


def test_create_validation_error_envelope(client: TestClient, post_payload: dict):
    response = client.post("/rpc/createBlogPost", json={**post_payload, "author": ""})
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "BAD_REQUEST"
    assert error["issues"][0]["loc"] == ["author"]
    assert error["issues"][0]["type"] == "string_too_short"


def test_create_malformed_json(client: TestClient):
    response = client.post(
        "/rpc/createBlogPost",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "BAD_REQUEST"


def test_create_body_not_utf8(client: TestClient):
    response = client.post(
        "/rpc/createBlogPost",
        content=b'{"title": "\xff\xfe"}',
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "BAD_REQUEST"
    assert "UTF-8" in error["message"]


def test_create_without_body_is_validation_error(client: TestClient):
    response = client.post("/rpc/createBlogPost")
    assert response.status_code == 400
    assert response.json()["error"]["issues"]


def test_mutation_over_get_not_supported(client: TestClient, post_payload: dict):
    response = _query(client, "createBlogPost", post_payload)
    assert response.status_code == 405
    assert response.json()["error"]["code"] == "METHOD_NOT_SUPPORTED"


# getBlogPost
def test_get_by_id(client: TestClient, created_post: dict):
    fetched = _data(_query(client, "getBlogPost", {"id": created_post["id"]}))
    assert fetched == created_post


def test_get_via_post_also_works(client: TestClient, created_post: dict):
    fetched = _data(client.post("/rpc/getBlogPost", json={"id": created_post["id"]}))
    assert fetched["id"] == created_post["id"]


def test_get_missing_returns_null(client: TestClient):
    assert _data(_query(client, "getBlogPost", {"id": 123456})) is None


def test_get_id_beyond_integer_range_returns_null(client: TestClient):
    assert _data(_query(client, "getBlogPost", {"id": 2**63})) is None


def test_get_with_string_id_rejected(client: TestClient):
    response = _query(client, "getBlogPost", {"id": "1"})
    assert response.status_code == 400


# getBlogPosts
def test_list_empty(client: TestClient):
    assert _data(_query(client, "getBlogPosts")) == []


def test_list_sorted_newest_publication_first(client: TestClient, post_payload: dict):
    for day in ("2024-01-01", "2024-01-03", "2024-01-02"):
        client.post("/rpc/createBlogPost", json={**post_payload, "publication_date": day})

    posts = _data(_query(client, "getBlogPosts"))
    assert [post["publication_date"][:10] for post in posts] == [
        "2024-01-03",
        "2024-01-02",
        "2024-01-01",
    ]


# updateBlogPost
def test_partial_update(client: TestClient, created_post: dict):
    updated = _data(
        client.post("/rpc/updateBlogPost", json={"id": created_post["id"], "tags": []})
    )
    assert updated["tags"] == []
    for field in ("title", "body", "author", "publication_date", "created_at"):
        assert updated[field] == created_post[field]
    assert datetime.fromisoformat(updated["updated_at"]) > datetime.fromisoformat(
        created_post["updated_at"]
    )


def test_update_null_title_rejected(client: TestClient, created_post: dict):
    response = client.post(
        "/rpc/updateBlogPost", json={"id": created_post["id"], "title": None}
    )
    assert response.status_code == 400
    assert response.json()["error"]["issues"][0]["loc"] == ["title"]


def test_update_missing_is_not_found(client: TestClient):
    response = client.post("/rpc/updateBlogPost", json={"id": 999999, "title": "x"})
    assert response.status_code == 404
    error = response.json()["error"]
    assert error["code"] == "NOT_FOUND"
    assert "999999" in error["message"]


# deleteBlogPost
def test_delete_then_delete_again(client: TestClient, created_post: dict):
    first = client.post("/rpc/deleteBlogPost", json={"id": created_post["id"]})
    assert _data(first) == {"success": True}

    second = client.post("/rpc/deleteBlogPost", json={"id": created_post["id"]})
    assert second.status_code == 404
    assert second.json()["error"]["code"] == "NOT_FOUND"


def test_deleted_post_reads_as_null(client: TestClient, created_post: dict):
    client.post("/rpc/deleteBlogPost", json={"id": created_post["id"]})
    assert _data(_query(client, "getBlogPost", {"id": created_post["id"]})) is None


def test_delete_id_beyond_integer_range_is_not_found(client: TestClient):
    response = client.post("/rpc/deleteBlogPost", json={"id": 2**64})
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_update_id_beyond_integer_range_is_not_found(client: TestClient):
    response = client.post("/rpc/updateBlogPost", json={"id": 2**63, "title": "x"})
    assert response.status_code == 404


# Procedure table and system behaviour
def test_unknown_procedure(client: TestClient):
    response = client.post("/rpc/dropTables", json={})
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_healthcheck_procedure(client: TestClient):
    assert _data(_query(client, "healthcheck"))["status"] == "ok"


def test_procedure_names_match_client_contract():
    assert set(PROCEDURES) == {
        "healthcheck",
        "createBlogPost",
        "getBlogPost",
        "getBlogPosts",
        "updateBlogPost",
        "deleteBlogPost",
    }


def test_store_error_is_internal_error(client: TestClient):
    class BrokenStore:
        def find_all(self):
            raise StoreError("connection refused")

    client.app.dependency_overrides[get_store] = lambda: BrokenStore()
    try:
        response = _query(client, "getBlogPosts")
    finally:
        client.app.dependency_overrides.pop(get_store, None)

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "INTERNAL_SERVER_ERROR"
    assert "connection refused" not in error["message"]


def test_correlation_id_echoed(client: TestClient):
    response = _query(client, "getBlogPosts")
    assert response.headers.get("X-Request-ID")
