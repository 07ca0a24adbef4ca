"""
Content and search endpoint tests.

Tests for:
- POST/GET/DELETE /content, POST /content/{id}/reindex
- POST /search
- Error envelopes (400 / 404 / 500) and owner isolation over HTTP
- Health endpoints
"""

import re
from unittest.mock import patch

import pytest
from httpx import AsyncClient


# ================================
# Create
# ================================

@pytest.mark.asyncio
class TestCreateContent:

    async def test_create_success(self, client: AsyncClient, user_one, sample_content):
        response = await client.post("/content", json=sample_content, headers=user_one["headers"])

        assert response.status_code == 201
        data = response.json()
        assert data["id"]
        assert data["ownerId"] == user_one["uid"]
        assert data["type"] == "document"
        assert data["title"] == "Deep Work"
        assert data["content"] == "Focus techniques for knowledge workers"
        assert data["tags"] == ["focus"]
        assert data["link"] is None
        assert data["indexStatus"] == "indexed"
        assert data["createdAt"].endswith("Z") or "+00:00" in data["createdAt"]

    async def test_create_validation_error(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/content",
            json={"type": "podcast", "title": ""},
            headers=auth_headers,
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "validation_error"
        assert set(error["fields"]) == {"type", "title", "content"}

    async def test_create_non_object_body(self, client: AsyncClient, auth_headers):
        response = await client.post("/content", json=["not", "an", "object"], headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"

    async def test_create_malformed_json(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/content",
            content=b"{not json",
            headers={**auth_headers, "Content-Type": "application/json"},
        )

        assert response.status_code == 400

    async def test_create_embedding_failure(self, client: AsyncClient, auth_headers, embedder, sample_content):
        embedder.error = TimeoutError("slow upstream")

        response = await client.post("/content", json=sample_content, headers=auth_headers)

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "embedding_failed"
        assert "slow upstream" not in error["message"]
        assert "id" not in error

    async def test_create_index_failure_returns_item_id(
        self, client: AsyncClient, auth_headers, vector_index, sample_content
    ):
        vector_index.fail_upsert = True

        response = await client.post("/content", json=sample_content, headers=auth_headers)

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "index_write_failed"
        item_id = error["id"]

        listing = await client.get("/content", headers=auth_headers)
        assert [item["id"] for item in listing.json()["contents"]] == [item_id]
        assert listing.json()["contents"][0]["indexStatus"] == "failed"

        vector_index.fail_upsert = False
        reindexed = await client.post(f"/content/{item_id}/reindex", headers=auth_headers)
        assert reindexed.status_code == 200
        assert reindexed.json()["indexStatus"] == "indexed"

        search = await client.post("/search", json={"q": "Deep Work"}, headers=auth_headers)
        assert [match["id"] for match in search.json()["results"]] == [item_id]

    async def test_create_index_failure_queues_reindex(
        self, client: AsyncClient, user_one, vector_index, sample_content
    ):
        vector_index.fail_upsert = True

        with patch("recall.api.routes.content.reindex_content_item") as task:
            response = await client.post("/content", json=sample_content, headers=user_one["headers"])

        item_id = response.json()["error"]["id"]
        task.delay.assert_called_once_with(item_id, user_one["uid"])

    async def test_create_index_failure_broker_down(
        self, client: AsyncClient, auth_headers, vector_index, sample_content
    ):
        vector_index.fail_upsert = True

        with patch("recall.api.routes.content.reindex_content_item") as task:
            task.delay.side_effect = ConnectionError("broker down")
            response = await client.post("/content", json=sample_content, headers=auth_headers)

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "index_write_failed"
        assert error["id"]

    async def test_create_success_queues_nothing(self, client: AsyncClient, auth_headers, sample_content):
        with patch("recall.api.routes.content.reindex_content_item") as task:
            response = await client.post("/content", json=sample_content, headers=auth_headers)

        assert response.status_code == 201
        task.delay.assert_not_called()


# ================================
# Read
# ================================

@pytest.mark.asyncio
class TestReadContent:

    async def test_list_newest_first(self, client: AsyncClient, auth_headers, sample_content):
        ids = []
        for title in ("first", "second", "third"):
            response = await client.post("/content", json={**sample_content, "title": title}, headers=auth_headers)
            ids.append(response.json()["id"])

        response = await client.get("/content", headers=auth_headers)

        assert response.status_code == 200
        assert [item["id"] for item in response.json()["contents"]] == list(reversed(ids))

    async def test_list_empty(self, client: AsyncClient, auth_headers):
        response = await client.get("/content", headers=auth_headers)

        assert response.json() == {"contents": []}

    async def test_list_filter_by_type(self, client: AsyncClient, auth_headers, sample_content):
        await client.post("/content", json=sample_content, headers=auth_headers)
        await client.post(
            "/content",
            json={**sample_content, "type": "tweet", "title": "A tweet"},
            headers=auth_headers,
        )

        response = await client.get("/content", params={"type": "tweet"}, headers=auth_headers)

        assert [item["title"] for item in response.json()["contents"]] == ["A tweet"]

    async def test_list_invalid_type_filter(self, client: AsyncClient, auth_headers):
        response = await client.get("/content", params={"type": "podcast"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"]["fields"] == ["type"]

    async def test_list_only_own_items(self, client: AsyncClient, user_one, user_two, sample_content):
        await client.post("/content", json=sample_content, headers=user_one["headers"])

        response = await client.get("/content", headers=user_two["headers"])

        assert response.json()["contents"] == []

    async def test_get_one(self, client: AsyncClient, auth_headers, sample_content):
        created = await client.post("/content", json=sample_content, headers=auth_headers)
        item_id = created.json()["id"]

        response = await client.get(f"/content/{item_id}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["id"] == item_id

    async def test_get_other_users_item_is_not_found(self, client: AsyncClient, user_one, user_two, sample_content):
        created = await client.post("/content", json=sample_content, headers=user_one["headers"])

        response = await client.get(f"/content/{created.json()['id']}", headers=user_two["headers"])

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not_found"


# ================================
# Delete
# ================================

@pytest.mark.asyncio
class TestDeleteContent:

    async def test_delete(self, client: AsyncClient, auth_headers, sample_content):
        created = await client.post("/content", json=sample_content, headers=auth_headers)
        item_id = created.json()["id"]

        response = await client.delete(f"/content/{item_id}", headers=auth_headers)

        assert response.status_code == 204
        assert response.content == b""
        assert (await client.get(f"/content/{item_id}", headers=auth_headers)).status_code == 404
        search = await client.post("/search", json={"q": "Deep Work"}, headers=auth_headers)
        assert search.json()["results"] == []

    async def test_delete_other_users_item(self, client: AsyncClient, user_one, user_two, sample_content):
        created = await client.post("/content", json=sample_content, headers=user_one["headers"])
        item_id = created.json()["id"]

        response = await client.delete(f"/content/{item_id}", headers=user_two["headers"])

        assert response.status_code == 404
        assert (await client.get(f"/content/{item_id}", headers=user_one["headers"])).status_code == 200

    async def test_delete_index_failure_keeps_item(
        self, client: AsyncClient, auth_headers, vector_index, sample_content
    ):
        created = await client.post("/content", json=sample_content, headers=auth_headers)
        item_id = created.json()["id"]
        vector_index.fail_delete = True

        response = await client.delete(f"/content/{item_id}", headers=auth_headers)

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "index_write_failed"
        assert (await client.get(f"/content/{item_id}", headers=auth_headers)).status_code == 200

    async def test_reindex_unknown(self, client: AsyncClient, auth_headers):
        response = await client.post("/content/unknown/reindex", headers=auth_headers)

        assert response.status_code == 404


# ================================
# Search
# ================================

@pytest.mark.asyncio
class TestSearchEndpoint:

    async def test_search(self, client: AsyncClient, auth_headers, sample_content):
        created = await client.post("/content", json=sample_content, headers=auth_headers)

        response = await client.post("/search", json={"q": "focus techniques"}, headers=auth_headers)

        assert response.status_code == 200
        results = response.json()["results"]
        assert results[0]["id"] == created.json()["id"]
        assert isinstance(results[0]["score"], float)
        assert results[0]["metadata"] == {
            "ownerId": created.json()["ownerId"],
            "type": "document",
            "title": "Deep Work",
            "tags": ["focus"],
        }

    async def test_search_isolated_per_user(self, client: AsyncClient, user_one, user_two, sample_content):
        await client.post("/content", json=sample_content, headers=user_one["headers"])

        response = await client.post("/search", json={"q": "Deep Work"}, headers=user_two["headers"])

        assert response.json() == {"results": []}

    async def test_search_blank_query(self, client: AsyncClient, auth_headers):
        response = await client.post("/search", json={"q": "  "}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"]["fields"] == ["q"]

    async def test_search_missing_query(self, client: AsyncClient, auth_headers):
        response = await client.post("/search", json={}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"]["fields"] == ["q"]

    async def test_search_index_failure(self, client: AsyncClient, auth_headers, vector_index):
        vector_index.fail_query = True

        response = await client.post("/search", json={"q": "anything"}, headers=auth_headers)

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "index_query_failed"


# ================================
# Health
# ================================

@pytest.mark.asyncio
class TestHealth:

    async def test_liveness(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "OK"
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", data["ts"])

    async def test_readiness(self, client: AsyncClient):
        response = await client.get("/health/ready")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ready",
            "database": "connected",
            "vectorIndex": "connected",
        }

    async def test_readiness_index_down(self, client: AsyncClient, vector_index, monkeypatch):
        async def unhealthy():
            return False

        monkeypatch.setattr(vector_index, "check_health", unhealthy)

        response = await client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["vectorIndex"] == "disconnected"

    async def test_unknown_route(self, client: AsyncClient):
        response = await client.get("/nope")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not_found"
