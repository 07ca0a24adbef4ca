"""
Search Pipeline

Semantic search over the caller's own items.

Steps:
------
1. Reject an empty / whitespace-only query (ValidationError on `q`)
2. Embed the query text                     (EmbeddingError)
3. Top-K query filtered to ownerId          (IndexQueryError)
4. Return the matches as the index ranked them

Matches are returned unmodified: no re-ranking, no deduplication and no
cross-check against the content store. Items whose index write failed are
simply not in the index, so they never show up here.
"""

from recall.core.context import RequestContext
from recall.core.errors import EmbeddingError, IndexQueryError, PipelineResult, ValidationError
from recall.core.logging import get_logger
from recall.services.embeddings import EmbeddingClient
from recall.services.vector_index.base import IndexMatch, VectorIndex


logger = get_logger(__name__)


class SearchPipeline:

    def __init__(self, embedder: EmbeddingClient, index: VectorIndex, top_k: int = 10):
        self.embedder = embedder
        self.index = index
        self.top_k = top_k

    async def search(self, ctx: RequestContext, query_text: str) -> PipelineResult[list[IndexMatch]]:
        """
        Args:
            ctx: Verified caller; only their items are searched
            query_text: Natural-language query

        Returns:
            PipelineResult with up to top_k IndexMatch, best first
        """
        if not query_text or not query_text.strip():
            return PipelineResult.fail(ValidationError("Query must not be empty", fields=["q"]))

        try:
            vector = await self.embedder.embed(query_text)
        except EmbeddingError as e:
            logger.error(
                "search_embedding_failed",
                owner_id=ctx.owner_id,
                request_id=ctx.request_id,
                error=e.message,
            )
            return PipelineResult.fail(e)

        try:
            matches = await self.index.query(vector, ctx.owner_id, self.top_k)
        except IndexQueryError as e:
            logger.error(
                "search_query_failed",
                owner_id=ctx.owner_id,
                request_id=ctx.request_id,
                error=e.message,
            )
            return PipelineResult.fail(e)

        logger.info(
            "search_completed",
            owner_id=ctx.owner_id,
            request_id=ctx.request_id,
            results=len(matches),
        )
        return PipelineResult.success(matches)
