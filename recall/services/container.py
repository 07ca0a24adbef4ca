"""
Service container.

All long-lived clients (database engine, embedding client, vector index,
identity provider, rate limiter) are built once by `build_services()` and
held in a ServiceContainer. The API stores it on `app.state.services`;
Celery tasks build their own per task run. Tests assemble one from stubs
with `ServiceContainer.assemble()`.
"""

from dataclasses import dataclass
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from recall.core.config import Settings
from recall.core.logging import get_logger
from recall.core.rate_limit import InMemoryRateLimiter, RateLimiter
from recall.db.redis import RedisRateLimiter, close_redis, create_redis
from recall.db.session import (
    check_db_health,
    close_engine,
    create_engine,
    create_session_factory,
    init_db,
)
from recall.services.content_store import ContentStore
from recall.services.embeddings import EmbeddingClient, create_embedding_client
from recall.services.identity import IdentityProvider, LocalIdentityProvider
from recall.services.ingestion import IngestionPipeline
from recall.services.search import SearchPipeline
from recall.services.vector_index import PgVectorIndex, VectorIndex, create_vector_index


logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    store: ContentStore
    identity: IdentityProvider
    embedder: EmbeddingClient
    index: VectorIndex
    ingestion: IngestionPipeline
    search: SearchPipeline
    rate_limiter: Optional[RateLimiter] = None
    redis: Optional[Redis] = None

    @classmethod
    def assemble(
        cls,
        settings: Settings,
        engine: AsyncEngine,
        embedder: EmbeddingClient,
        index: VectorIndex,
        identity: Optional[IdentityProvider] = None,
        rate_limiter: Optional[RateLimiter] = None,
        redis: Optional[Redis] = None,
    ) -> "ServiceContainer":
        """Wire the store and pipelines around already-built clients."""
        session_factory = create_session_factory(engine)
        store = ContentStore(session_factory)
        return cls(
            settings=settings,
            engine=engine,
            session_factory=session_factory,
            store=store,
            identity=identity or LocalIdentityProvider(session_factory),
            embedder=embedder,
            index=index,
            ingestion=IngestionPipeline(store, embedder, index),
            search=SearchPipeline(embedder, index, top_k=settings.SEARCH_TOP_K),
            rate_limiter=rate_limiter,
            redis=redis,
        )

    async def check_health(self) -> dict[str, bool]:
        return {
            "database": await check_db_health(self.engine),
            "vector_index": await self.index.check_health(),
        }

    async def close(self) -> None:
        await self.embedder.close()
        await self.index.close()
        if self.redis is not None:
            await close_redis(self.redis)
        await close_engine(self.engine)


async def _build_rate_limiter(settings: Settings) -> tuple[Optional[RateLimiter], Optional[Redis]]:
    if not settings.RATE_LIMIT_ENABLED:
        return None, None

    if settings.RATE_LIMIT_BACKEND == "memory":
        return InMemoryRateLimiter(), None

    try:
        redis = await create_redis(settings.REDIS_URL)
    except (RedisError, OSError) as e:
        logger.error("rate_limiter_unavailable", backend="redis", error=str(e))
        return None, None

    return RedisRateLimiter(redis), redis


async def build_services(
    settings: Settings,
    create_tables: Optional[bool] = None,
    rate_limiting: bool = True,
) -> ServiceContainer:
    """
    Build every client from settings.

    Args:
        settings: Application settings
        create_tables: Create tables directly instead of relying on Alembic
            (default: only in development)
        rate_limiting: Build the request rate limiter (workers skip it)
    """
    if create_tables is None:
        create_tables = settings.is_development

    engine = create_engine(settings)
    await init_db(engine, create_tables=create_tables)

    index = create_vector_index(settings, engine)
    if create_tables and isinstance(index, PgVectorIndex):
        await index.ensure_schema()

    rate_limiter, redis = (None, None)
    if rate_limiting:
        rate_limiter, redis = await _build_rate_limiter(settings)

    container = ServiceContainer.assemble(
        settings=settings,
        engine=engine,
        embedder=create_embedding_client(settings),
        index=index,
        rate_limiter=rate_limiter,
        redis=redis,
    )

    logger.info(
        "services_ready",
        embedding=settings.EMBEDDING_PROVIDER,
        vector_index=index.name,
        rate_limiter=type(rate_limiter).__name__ if rate_limiter else None,
    )
    return container
