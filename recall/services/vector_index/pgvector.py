"""
pgvector-backed vector index.

Stores entries in a PostgreSQL table next to the content store:

    index_entries(namespace, id, owner_id, embedding vector(dim), metadata jsonb)

owner_id is copied out of the metadata into its own indexed column so the
owner filter is a plain WHERE clause.

Similarity:
-----------
Ordering uses pgvector's cosine distance operator (<=>).
score = 1 - distance, so identical directions score 1.0.
"""

from typing import Any

from pgvector.sqlalchemy import Vector
from sqlalchemy import Column, MetaData, PrimaryKeyConstraint, String, Table, delete, select, text
from sqlalchemy.dialects.postgresql import JSONB, insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from recall.core.errors import IndexQueryError, IndexWriteError
from recall.core.logging import get_logger
from recall.services.vector_index.base import IndexEntry, IndexMatch, VectorIndex


logger = get_logger(__name__)

INDEX_TABLE_NAME = "index_entries"


def build_index_table(dimension: int, metadata: MetaData | None = None) -> Table:
    """Table definition for a given embedding dimension."""
    return Table(
        INDEX_TABLE_NAME,
        metadata if metadata is not None else MetaData(),
        Column("namespace", String(100), nullable=False),
        Column("id", String(32), nullable=False),
        Column("owner_id", String(32), nullable=False, index=True),
        Column("embedding", Vector(dimension), nullable=False),
        Column("metadata", JSONB, nullable=False, server_default=text("'{}'::jsonb")),
        PrimaryKeyConstraint("namespace", "id", name="pk_index_entries"),
    )


class PgVectorIndex(VectorIndex):

    name = "pgvector"

    def __init__(self, engine: AsyncEngine, dimension: int, namespace: str = "recall"):
        self.engine = engine
        self.dimension = dimension
        self.namespace = namespace
        self.table = build_index_table(dimension)

    async def ensure_schema(self) -> None:
        """Create the vector extension and table if they are missing (development)."""
        async with self.engine.begin() as conn:
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
            await conn.run_sync(self.table.metadata.create_all)

    def upsert_statement(self, entry: IndexEntry):
        values: dict[str, Any] = {
            "namespace": self.namespace,
            "id": entry.id,
            "owner_id": entry.owner_id,
            "embedding": list(entry.vector),
            "metadata": entry.metadata,
        }
        stmt = pg_insert(self.table).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=[self.table.c.namespace, self.table.c.id],
            set_={
                "owner_id": stmt.excluded.owner_id,
                "embedding": stmt.excluded.embedding,
                "metadata": stmt.excluded["metadata"],
            },
        )

    def query_statement(self, vector: list[float], owner_id: str, top_k: int):
        distance = self.table.c.embedding.cosine_distance(list(vector)).label("distance")
        return (
            select(self.table.c.id, self.table.c["metadata"], distance)
            .where(self.table.c.namespace == self.namespace)
            .where(self.table.c.owner_id == owner_id)
            .order_by(distance)
            .limit(top_k)
        )

    async def upsert(self, entry: IndexEntry) -> None:
        if "ownerId" not in entry.metadata:
            raise IndexWriteError("Index entry metadata has no ownerId", item_id=entry.id)
        try:
            async with self.engine.begin() as conn:
                await conn.execute(self.upsert_statement(entry))
        except SQLAlchemyError as e:
            logger.error("pgvector_upsert_failed", item_id=entry.id, error=str(e))
            raise IndexWriteError(f"pgvector upsert failed: {e}", item_id=entry.id) from e

    async def query(self, vector: list[float], owner_id: str, top_k: int) -> list[IndexMatch]:
        if not owner_id:
            raise IndexQueryError("Query without owner filter")
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(self.query_statement(vector, owner_id, top_k))
                rows = result.all()
        except SQLAlchemyError as e:
            logger.error("pgvector_query_failed", error=str(e))
            raise IndexQueryError(f"pgvector query failed: {e}") from e

        # Convert distance to similarity: similarity = 1 - distance
        return [
            IndexMatch(id=row.id, score=1.0 - float(row.distance), metadata=row._mapping["metadata"] or {})
            for row in rows
        ]

    async def delete(self, ids: list[str]) -> None:
        if not ids:
            return
        stmt = (
            delete(self.table)
            .where(self.table.c.namespace == self.namespace)
            .where(self.table.c.id.in_(ids))
        )
        try:
            async with self.engine.begin() as conn:
                await conn.execute(stmt)
        except SQLAlchemyError as e:
            logger.error("pgvector_delete_failed", ids=ids, error=str(e))
            raise IndexWriteError(f"pgvector delete failed: {e}", item_id=ids[0]) from e

    async def check_health(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(select(self.table.c.id).limit(1))
            return True
        except SQLAlchemyError as e:
            logger.error("pgvector_health_check_failed", error=str(e))
            return False
