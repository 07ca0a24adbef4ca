"""
Vector index backends.

Selected by VECTOR_DB_TYPE:
- pinecone: hosted Pinecone index (REST over httpx)
- pgvector: index_entries table in the application database
- memory: in-process dict, for development and tests
"""

from sqlalchemy.ext.asyncio import AsyncEngine

from recall.core.config import Settings
from recall.services.vector_index.base import IndexEntry, IndexMatch, VectorIndex
from recall.services.vector_index.memory import InMemoryVectorIndex
from recall.services.vector_index.pgvector import PgVectorIndex
from recall.services.vector_index.pinecone import PineconeIndex


def create_vector_index(settings: Settings, engine: AsyncEngine | None = None) -> VectorIndex:
    """Build the vector index backend selected by VECTOR_DB_TYPE."""
    if settings.VECTOR_DB_TYPE == "pinecone":
        return PineconeIndex(
            api_key=settings.PINECONE_API_KEY or "",
            index_host=settings.PINECONE_INDEX_HOST or "",
            namespace=settings.PINECONE_NAMESPACE,
            api_version=settings.PINECONE_API_VERSION,
            timeout=settings.VECTOR_INDEX_TIMEOUT_SECONDS,
        )

    if settings.VECTOR_DB_TYPE == "pgvector":
        if engine is None:
            raise ValueError("pgvector index needs the database engine")
        return PgVectorIndex(
            engine,
            dimension=settings.EMBEDDING_DIMENSION,
            namespace=settings.PINECONE_NAMESPACE,
        )

    return InMemoryVectorIndex(namespace=settings.PINECONE_NAMESPACE)


__all__ = [
    "IndexEntry",
    "IndexMatch",
    "VectorIndex",
    "InMemoryVectorIndex",
    "PgVectorIndex",
    "PineconeIndex",
    "create_vector_index",
]
