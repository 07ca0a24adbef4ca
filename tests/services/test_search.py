"""
Tests for the search pipeline.

This module tests:
- Owner isolation (a user never sees another user's items)
- Ranking by similarity, top-K truncation
- Query validation and dependency failures
"""

import pytest

from recall.core.context import RequestContext
from recall.core.errors import ErrorKind
from recall.services.ingestion import build_embedding_text
from recall.services.search import SearchPipeline


OWNER = RequestContext(owner_id="owner-1")
OTHER = RequestContext(owner_id="owner-2")


def unit(i: int, dimension: int = 8) -> list[float]:
    vector = [0.0] * dimension
    vector[i] = 1.0
    return vector


def document(title: str, content: str, tags=None) -> dict:
    return {"type": "document", "title": title, "content": content, "tags": tags or []}


@pytest.mark.asyncio
class TestSearch:

    async def test_deep_work_scenario(self, services, embedder, sample_content):
        """Save "Deep Work", search for "focus techniques", get it back first."""
        embedder.vectors[build_embedding_text("Deep Work", "Focus techniques for knowledge workers")] = unit(0)
        embedder.vectors[build_embedding_text("Sourdough", "Bread recipe")] = unit(1)
        embedder.vectors["focus techniques"] = [0.9, 0.1, 0, 0, 0, 0, 0, 0]

        created = await services.ingestion.ingest(OWNER, sample_content)
        await services.ingestion.ingest(OWNER, document("Sourdough", "Bread recipe"))

        result = await services.search.search(OWNER, "focus techniques")

        assert result.ok
        assert [match.id for match in result.value][0] == created.value.id
        top = result.value[0]
        assert top.metadata["title"] == "Deep Work"
        assert top.metadata["tags"] == ["focus"]
        assert top.metadata["ownerId"] == "owner-1"
        assert top.score > result.value[1].score

    async def test_exact_vector_scores_highest(self, services, embedder):
        embedder.vectors[build_embedding_text("A", "alpha")] = unit(2)
        embedder.vectors["alpha query"] = unit(2)

        created = await services.ingestion.ingest(OWNER, document("A", "alpha"))
        await services.ingestion.ingest(OWNER, document("B", "beta"))

        result = await services.search.search(OWNER, "alpha query")

        assert result.value[0].id == created.value.id
        assert result.value[0].score == pytest.approx(1.0)

    async def test_owner_isolation(self, services, sample_content):
        await services.ingestion.ingest(OWNER, sample_content)

        result = await services.search.search(OTHER, "Deep Work")

        assert result.ok
        assert result.value == []

    async def test_results_only_contain_callers_items(self, services, sample_content):
        await services.ingestion.ingest(OWNER, sample_content)
        theirs = await services.ingestion.ingest(OTHER, sample_content)

        result = await services.search.search(OTHER, "Deep Work")

        assert [match.id for match in result.value] == [theirs.value.id]

    async def test_top_k(self, services, embedder, vector_index):
        for i in range(12):
            await services.ingestion.ingest(OWNER, document(f"Note {i}", "text"))

        default = await services.search.search(OWNER, "note")
        assert len(default.value) == 10

        narrow = await SearchPipeline(embedder, vector_index, top_k=3).search(OWNER, "note")
        assert len(narrow.value) == 3

    async def test_scores_are_descending(self, services):
        for i in range(5):
            await services.ingestion.ingest(OWNER, document(f"Note {i}", f"body {i}"))

        result = await services.search.search(OWNER, "note")

        scores = [match.score for match in result.value]
        assert scores == sorted(scores, reverse=True)

    @pytest.mark.parametrize("query", ["", "   ", "\n\t"])
    async def test_blank_query(self, services, embedder, query):
        result = await services.search.search(OWNER, query)

        assert result.failure.kind == ErrorKind.VALIDATION
        assert result.failure.fields == ["q"]
        assert embedder.calls == []

    async def test_embedding_failure(self, services, embedder):
        embedder.error = TimeoutError("slow")

        result = await services.search.search(OWNER, "anything")

        assert result.failure.kind == ErrorKind.EMBEDDING

    async def test_index_query_failure(self, services, vector_index):
        vector_index.fail_query = True

        result = await services.search.search(OWNER, "anything")

        assert result.failure.kind == ErrorKind.INDEX_QUERY
