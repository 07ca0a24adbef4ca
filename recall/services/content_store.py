"""
Content Store

Persistence for ContentItems and User profiles on async SQLAlchemy.

Every item query is scoped by owner_id: an item that exists but belongs
to someone else is reported exactly like an item that does not exist.

Error mapping:
--------------
- SQLAlchemyError on reads  → StoreReadError
- SQLAlchemyError on writes → StoreWriteError
- Missing / foreign item    → NotFoundError
"""

from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from recall.core.errors import NotFoundError, StoreReadError, StoreWriteError
from recall.core.logging import get_logger
from recall.db.base import utcnow
from recall.models.content import ContentItem, ContentType, IndexStatus
from recall.models.user import User
from recall.schemas.content import ContentSubmission


logger = get_logger(__name__)


class ContentStore:
    """
    Document store for content items.

    Usage:
    ------
    store = ContentStore(session_factory)
    item = await store.create_item(owner_id, submission)
    items = await store.list_items(owner_id)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    # ========================================
    # Writes
    # ========================================

    async def create_item(self, owner_id: str, submission: ContentSubmission) -> ContentItem:
        """
        Persist a new item with index_status=pending.

        Raises:
            StoreWriteError: If the insert fails
        """
        item = ContentItem(
            owner_id=owner_id,
            type=submission.type,
            title=submission.title,
            body=submission.content,
            link=submission.link,
            tags=list(submission.tags),
            index_status=IndexStatus.PENDING,
        )

        try:
            async with self.session_factory() as session:
                session.add(item)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("content_store_write_failed", owner_id=owner_id, error=str(e))
            raise StoreWriteError(f"Insert failed: {e}") from e

        return item

    async def mark_index_status(
        self,
        item_id: str,
        status: IndexStatus,
        error: Optional[str] = None,
    ) -> Optional[ContentItem]:
        """
        Record the outcome of an index write.

        Returns:
            The updated item, or None if it was deleted in the meantime

        Raises:
            StoreWriteError: If the update fails
        """
        try:
            async with self.session_factory() as session:
                item = await session.get(ContentItem, item_id)
                if item is None:
                    return None
                item.index_status = status
                item.index_error = error if status != IndexStatus.INDEXED else None
                await session.commit()
                return item
        except SQLAlchemyError as e:
            logger.error(
                "content_store_status_update_failed",
                item_id=item_id,
                status=status.value,
                error=str(e),
            )
            raise StoreWriteError(f"Status update failed: {e}", item_id=item_id) from e

    @asynccontextmanager
    async def delete_transaction(self, owner_id: str, item_id: str) -> AsyncIterator[ContentItem]:
        """
        Delete an owned item inside one transaction.

        The row is deleted and flushed before the body of the `async with`
        runs, and committed only if the body finishes without raising.
        Any exception in the body rolls the delete back.

        Example:
            async with store.delete_transaction(owner_id, item_id) as item:
                await index.delete([item.id])

        Raises:
            NotFoundError: If the owner has no such item
            StoreReadError / StoreWriteError: On database failure
        """
        async with self.session_factory() as session:
            item = await self._get_owned(session, owner_id, item_id)

            try:
                await session.delete(item)
                await session.flush()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("content_store_delete_failed", item_id=item_id, error=str(e))
                raise StoreWriteError(f"Delete failed: {e}", item_id=item_id) from e

            try:
                yield item
            except BaseException:
                await session.rollback()
                raise

            try:
                await session.commit()
            except SQLAlchemyError as e:
                logger.error("content_store_delete_commit_failed", item_id=item_id, error=str(e))
                raise StoreWriteError(f"Delete commit failed: {e}", item_id=item_id) from e

    async def create_user_profile(self, uid: str, email: str, display_name: str) -> User:
        """
        Write the User profile for a freshly created identity.

        Raises:
            StoreWriteError: If the insert fails (including a duplicate uid)
        """
        user = User(uid=uid, email=email, display_name=display_name)
        try:
            async with self.session_factory() as session:
                session.add(user)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("user_profile_write_failed", uid=uid, error=str(e))
            raise StoreWriteError(f"Profile insert failed: {e}") from e
        return user

    # ========================================
    # Reads
    # ========================================

    async def _get_owned(self, session: AsyncSession, owner_id: str, item_id: str) -> ContentItem:
        try:
            result = await session.execute(
                select(ContentItem).where(
                    ContentItem.id == item_id,
                    ContentItem.owner_id == owner_id,
                )
            )
            item = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("content_store_read_failed", item_id=item_id, error=str(e))
            raise StoreReadError(f"Read failed: {e}") from e

        if item is None:
            raise NotFoundError(f"Content {item_id} not found")
        return item

    async def get_item(self, owner_id: str, item_id: str) -> ContentItem:
        """
        Fetch one item owned by owner_id.

        Raises:
            NotFoundError: If the owner has no such item
            StoreReadError: On database failure
        """
        async with self.session_factory() as session:
            return await self._get_owned(session, owner_id, item_id)

    async def list_items(
        self,
        owner_id: str,
        content_type: Optional[ContentType] = None,
    ) -> list[ContentItem]:
        """
        All items owned by owner_id, newest first.

        Args:
            owner_id: Owner uid
            content_type: Only return items of this type

        Raises:
            StoreReadError: On database failure
        """
        query = select(ContentItem).where(ContentItem.owner_id == owner_id)
        if content_type is not None:
            query = query.where(ContentItem.type == content_type)
        query = query.order_by(ContentItem.created_at.desc(), ContentItem.id.desc())

        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("content_store_list_failed", owner_id=owner_id, error=str(e))
            raise StoreReadError(f"List failed: {e}") from e

    async def list_needing_index(self, limit: int, grace_seconds: int) -> list[ContentItem]:
        """
        Items the reconciler should (re)index, oldest first.

        Picks every `failed` item, and `pending` items older than the grace
        period (younger ones may still be mid-ingestion).

        Raises:
            StoreReadError: On database failure
        """
        cutoff = utcnow() - timedelta(seconds=grace_seconds)
        query = (
            select(ContentItem)
            .where(
                or_(
                    ContentItem.index_status == IndexStatus.FAILED,
                    and_(
                        ContentItem.index_status == IndexStatus.PENDING,
                        ContentItem.created_at < cutoff,
                    ),
                )
            )
            .order_by(ContentItem.updated_at.asc())
            .limit(limit)
        )

        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("content_store_scan_failed", error=str(e))
            raise StoreReadError(f"Pending scan failed: {e}") from e
