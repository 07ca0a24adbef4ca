"""
Pinecone vector index client.

Wraps the Pinecone data-plane REST API via httpx. Every query sends an
ownerId filter; every upsert carries ownerId in its metadata.

Endpoints used:
---------------
- POST /vectors/upsert   {"vectors": [{id, values, metadata}], "namespace"}
- POST /query            {"vector", "topK", "filter", "includeMetadata", "namespace"}
- POST /vectors/delete   {"ids": [...], "namespace"}
- POST /describe_index_stats (health check)

References:
-----------
- https://docs.pinecone.io/reference/api/data-plane
"""

from typing import Any, Optional

import httpx

from recall.core.errors import IndexQueryError, IndexWriteError
from recall.core.logging import get_logger
from recall.services.vector_index.base import IndexEntry, IndexMatch, VectorIndex


logger = get_logger(__name__)


class PineconeIndex(VectorIndex):

    name = "pinecone"

    def __init__(
        self,
        api_key: str,
        index_host: str,
        namespace: str = "recall",
        api_version: str = "2025-01",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.namespace = namespace
        base_url = index_host if index_host.startswith("http") else f"https://{index_host}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Api-Key": api_key,
                "X-Pinecone-API-Version": api_version,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_upsert_payload(self, entry: IndexEntry) -> dict[str, Any]:
        return {
            "vectors": [
                {"id": entry.id, "values": list(entry.vector), "metadata": entry.metadata}
            ],
            "namespace": self.namespace,
        }

    def get_query_payload(self, vector: list[float], owner_id: str, top_k: int) -> dict[str, Any]:
        return {
            "vector": list(vector),
            "topK": top_k,
            "filter": {"ownerId": {"$eq": owner_id}},
            "includeMetadata": True,
            "includeValues": False,
            "namespace": self.namespace,
        }

    def get_delete_payload(self, ids: list[str]) -> dict[str, Any]:
        return {"ids": list(ids), "namespace": self.namespace}

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _post(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._client.post(endpoint, json=payload)
        response.raise_for_status()
        if not response.content:
            return {}
        return response.json()

    async def upsert(self, entry: IndexEntry) -> None:
        if "ownerId" not in entry.metadata:
            raise IndexWriteError("Index entry metadata has no ownerId", item_id=entry.id)
        try:
            await self._post("/vectors/upsert", self.get_upsert_payload(entry))
        except (httpx.HTTPError, ValueError) as e:
            logger.error("pinecone_upsert_failed", item_id=entry.id, error=str(e))
            raise IndexWriteError(f"Pinecone upsert failed: {e}", item_id=entry.id) from e

    async def query(self, vector: list[float], owner_id: str, top_k: int) -> list[IndexMatch]:
        if not owner_id:
            raise IndexQueryError("Query without owner filter")
        try:
            data = await self._post("/query", self.get_query_payload(vector, owner_id, top_k))
        except (httpx.HTTPError, ValueError) as e:
            logger.error("pinecone_query_failed", error=str(e))
            raise IndexQueryError(f"Pinecone query failed: {e}") from e

        try:
            return [
                IndexMatch(
                    id=match["id"],
                    score=float(match.get("score", 0.0)),
                    metadata=match.get("metadata") or {},
                )
                for match in data.get("matches", [])
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise IndexQueryError(f"Malformed Pinecone query response: {e}") from e

    async def delete(self, ids: list[str]) -> None:
        if not ids:
            return
        try:
            await self._post("/vectors/delete", self.get_delete_payload(ids))
        except (httpx.HTTPError, ValueError) as e:
            logger.error("pinecone_delete_failed", ids=ids, error=str(e))
            raise IndexWriteError(f"Pinecone delete failed: {e}", item_id=ids[0]) from e

    async def check_health(self) -> bool:
        try:
            await self._post("/describe_index_stats", {})
            return True
        except (httpx.HTTPError, ValueError) as e:
            logger.error("pinecone_health_check_failed", error=str(e))
            return False

    async def close(self) -> None:
        await self._client.aclose()
