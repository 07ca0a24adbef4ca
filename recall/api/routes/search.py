"""
Search endpoint.

POST /search {"q": "..."} → {"results": [{id, score, metadata}]}

Results come straight from the vector index, filtered to the caller's
items and ranked by similarity.
"""

from fastapi import APIRouter, Depends

from recall.api.errors import failure_response
from recall.core.auth import get_request_context, get_services
from recall.core.context import RequestContext
from recall.schemas.auth import ErrorResponse
from recall.schemas.content import SearchMatch, SearchRequest, SearchResponse
from recall.services.container import ServiceContainer

router = APIRouter(tags=["search"])


@router.post(
    "/search",
    response_model=SearchResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def search(
    body: SearchRequest,
    ctx: RequestContext = Depends(get_request_context),
    services: ServiceContainer = Depends(get_services),
):
    """Semantic search over the caller's saved content (top 10 by default)."""
    result = await services.search.search(ctx, body.q)
    if not result.ok:
        return failure_response(result.failure)

    return SearchResponse(
        results=[
            SearchMatch(id=match.id, score=match.score, metadata=match.metadata)
            for match in result.value
        ]
    )
