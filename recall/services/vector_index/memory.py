"""
In-process vector index.

Keeps vectors in a dict and scores with numpy cosine similarity. Used for
local development (VECTOR_DB_TYPE=memory) and the test suite; contents are
lost on restart and are not shared between processes.
"""

import numpy as np

from recall.core.errors import IndexQueryError, IndexWriteError
from recall.services.vector_index.base import IndexEntry, IndexMatch, VectorIndex


class InMemoryVectorIndex(VectorIndex):

    name = "memory"

    def __init__(self, namespace: str = "recall"):
        self.namespace = namespace
        self._entries: dict[tuple[str, str], tuple[np.ndarray, dict]] = {}

    def __len__(self) -> int:
        return sum(1 for ns, _ in self._entries if ns == self.namespace)

    def get(self, entry_id: str) -> IndexEntry | None:
        stored = self._entries.get((self.namespace, entry_id))
        if stored is None:
            return None
        vector, metadata = stored
        return IndexEntry(id=entry_id, vector=vector.tolist(), metadata=dict(metadata))

    async def upsert(self, entry: IndexEntry) -> None:
        if "ownerId" not in entry.metadata:
            raise IndexWriteError("Index entry metadata has no ownerId", item_id=entry.id)
        vector = np.asarray(entry.vector, dtype=np.float64)
        self._entries[(self.namespace, entry.id)] = (vector, dict(entry.metadata))

    async def query(self, vector: list[float], owner_id: str, top_k: int) -> list[IndexMatch]:
        if not owner_id:
            raise IndexQueryError("Query without owner filter")

        query_vector = np.asarray(vector, dtype=np.float64)
        query_norm = np.linalg.norm(query_vector)

        scored = []
        for (namespace, entry_id), (stored, metadata) in self._entries.items():
            if namespace != self.namespace or metadata.get("ownerId") != owner_id:
                continue
            if stored.shape != query_vector.shape:
                raise IndexQueryError(
                    f"Dimension mismatch: index has {stored.shape[0]}, query has {query_vector.shape[0]}"
                )
            denominator = query_norm * np.linalg.norm(stored)
            score = float(np.dot(query_vector, stored) / denominator) if denominator else 0.0
            scored.append(IndexMatch(id=entry_id, score=score, metadata=dict(metadata)))

        scored.sort(key=lambda match: match.score, reverse=True)
        return scored[:top_k]

    async def delete(self, ids: list[str]) -> None:
        for entry_id in ids:
            self._entries.pop((self.namespace, entry_id), None)
