"""
Content endpoints.

Endpoints:
----------
POST   /content                 Save a content item (201)
GET    /content                 List the caller's items (optional ?type=)
GET    /content/{id}            Fetch one item
DELETE /content/{id}            Delete an item and its index entry (204)
POST   /content/{id}/reindex    Recompute and rewrite the item's index entry

Every route requires `Authorization: Bearer <idToken>` and only ever sees
the caller's own items.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Response, status

from recall.api.errors import failure_response
from recall.core.auth import get_request_context, get_services
from recall.core.context import RequestContext
from recall.core.errors import ErrorKind
from recall.core.logging import get_logger
from recall.models.content import ContentType
from recall.schemas.auth import ErrorResponse
from recall.schemas.content import ContentListResponse, ContentResponse
from recall.services.container import ServiceContainer
from recall.tasks.indexing_tasks import reindex_content_item

logger = get_logger(__name__)

router = APIRouter(
    prefix="/content",
    tags=["content"],
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)

CONTENT_EXAMPLE = {
    "type": "document",
    "title": "Deep Work",
    "content": "Focus techniques for knowledge workers",
    "tags": ["focus"],
}


@router.post(
    "",
    response_model=ContentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_content(
    payload: Dict[str, Any] = Body(..., examples=[CONTENT_EXAMPLE]),
    ctx: RequestContext = Depends(get_request_context),
    services: ServiceContainer = Depends(get_services),
):
    """
    Save a content item.

    Body: {type, title, content, tags?, link?}

    Failure responses:
    ------------------
    - 400 validation_error: names every offending field
    - 500 embedding_failed / store_write_failed: nothing was saved
    - 500 index_write_failed: the item WAS saved (its id is in the error)
      and a background reindex is queued for it
    """
    result = await services.ingestion.ingest(ctx, payload)
    if not result.ok:
        failure = result.failure
        if failure.kind == ErrorKind.INDEX_WRITE and failure.item_id:
            _queue_reindex(failure.item_id, ctx.owner_id)
        return failure_response(failure)
    return ContentResponse.from_item(result.value)


def _queue_reindex(item_id: str, owner_id: str) -> None:
    try:
        task = reindex_content_item.delay(item_id, owner_id)
    except Exception as e:
        # The reconciler still picks the item up
        logger.warning("reindex_enqueue_failed", item_id=item_id, error=str(e))
        return
    logger.info("reindex_queued", item_id=item_id, task_id=task.id)


@router.get("", response_model=ContentListResponse)
async def list_content(
    content_type: Optional[ContentType] = Query(None, alias="type", description="Only return items of this type"),
    ctx: RequestContext = Depends(get_request_context),
    services: ServiceContainer = Depends(get_services),
):
    """List the caller's items, newest first."""
    items = await services.store.list_items(ctx.owner_id, content_type=content_type)
    return ContentListResponse(contents=[ContentResponse.from_item(item) for item in items])


@router.get(
    "/{item_id}",
    response_model=ContentResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_content(
    item_id: str,
    ctx: RequestContext = Depends(get_request_context),
    services: ServiceContainer = Depends(get_services),
):
    item = await services.store.get_item(ctx.owner_id, item_id)
    return ContentResponse.from_item(item)


@router.delete(
    "/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={404: {"model": ErrorResponse}},
)
async def delete_content(
    item_id: str,
    ctx: RequestContext = Depends(get_request_context),
    services: ServiceContainer = Depends(get_services),
):
    """
    Delete an item and its index entry.

    If the index entry cannot be deleted, nothing is deleted (500).
    """
    result = await services.ingestion.delete(ctx, item_id)
    if not result.ok:
        return failure_response(result.failure)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{item_id}/reindex",
    response_model=ContentResponse,
    responses={404: {"model": ErrorResponse}},
)
async def reindex_content(
    item_id: str,
    ctx: RequestContext = Depends(get_request_context),
    services: ServiceContainer = Depends(get_services),
):
    """
    Recompute the item's embedding and rewrite its index entry.

    Used to retry after an index_write_failed response. Idempotent.
    """
    result = await services.ingestion.reindex(ctx, item_id)
    if not result.ok:
        return failure_response(result.failure)
    return ContentResponse.from_item(result.value)
