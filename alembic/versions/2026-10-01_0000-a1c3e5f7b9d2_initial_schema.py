"""initial_schema_identities_users_content_items_index_entries

Revision ID: a1c3e5f7b9d2
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from pgvector.sqlalchemy import Vector
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'a1c3e5f7b9d2'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Must match EMBEDDING_DIMENSION (text-embedding-3-small)
EMBEDDING_DIMENSION = 1536

content_type_enum = postgresql.ENUM('document', 'tweet', 'youtube', 'link', name='content_type', create_type=False)
index_status_enum = postgresql.ENUM('pending', 'indexed', 'failed', name='index_status', create_type=False)


def upgrade() -> None:
    """
    Create the initial schema.

    Tables:
    1. identities - credentials of the local identity provider
    2. users - user profiles written on signup
    3. content_items - saved content, scoped to its owner
    4. index_entries - pgvector index (only used when VECTOR_DB_TYPE=pgvector)
    """

    # ================================
    # Enums
    # ================================
    content_type_enum.create(op.get_bind(), checkfirst=True)
    index_status_enum.create(op.get_bind(), checkfirst=True)

    # ================================
    # identities
    # ================================
    op.create_table(
        'identities',
        sa.Column('uid', sa.String(length=32), nullable=False, comment='Opaque user identifier issued by the identity provider'),
        sa.Column('email', sa.String(length=255), nullable=False, comment='Login email (stored lower-cased)'),
        sa.Column('hashed_password', sa.String(length=255), nullable=False, comment='bcrypt hash of the password'),
        sa.Column('display_name', sa.String(length=100), nullable=False, comment='Name shown in the UI'),
        sa.Column('is_active', sa.Boolean(), nullable=False, comment='Disabled identities cannot sign in or use existing tokens'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was created (UTC)'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was last updated (UTC)'),
        sa.PrimaryKeyConstraint('uid', name=op.f('pk_identities')),
    )
    op.create_index(op.f('ix_identities_email'), 'identities', ['email'], unique=True)

    # ================================
    # users
    # ================================
    op.create_table(
        'users',
        sa.Column('uid', sa.String(length=32), nullable=False, comment='Same uid as the identity provider record'),
        sa.Column('email', sa.String(length=255), nullable=False, comment="User's email address"),
        sa.Column('display_name', sa.String(length=100), nullable=False, comment='Name shown in the UI'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when the profile was created (UTC)'),
        sa.PrimaryKeyConstraint('uid', name=op.f('pk_users')),
    )

    # ================================
    # content_items
    # ================================
    op.create_table(
        'content_items',
        sa.Column('id', sa.String(length=32), nullable=False, comment='Opaque id, shared with the vector index entry'),
        sa.Column('owner_id', sa.String(length=32), nullable=False, comment='uid of the owning user (immutable)'),
        sa.Column('type', content_type_enum, nullable=False, comment='document | tweet | youtube | link'),
        sa.Column('title', sa.String(length=500), nullable=False, comment='Content title'),
        sa.Column('body', sa.Text(), nullable=False, comment='The content itself (wire name: content)'),
        sa.Column('link', sa.String(length=2048), nullable=True, comment='Optional source URL'),
        sa.Column('tags', postgresql.JSONB(astext_type=sa.Text()), nullable=False, comment='Ordered free-form tags (duplicates allowed)'),
        sa.Column('index_status', index_status_enum, nullable=False, comment='Vector index write status'),
        sa.Column('index_error', sa.Text(), nullable=True, comment='Error kind of the last failed index write'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was created (UTC)'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was last updated (UTC)'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_content_items')),
    )
    op.create_index(op.f('ix_content_items_owner_id'), 'content_items', ['owner_id'], unique=False)
    op.create_index(op.f('ix_content_items_index_status'), 'content_items', ['index_status'], unique=False)
    op.create_index('ix_content_items_owner_created', 'content_items', ['owner_id', 'created_at'], unique=False)

    # ================================
    # index_entries (pgvector)
    # ================================
    op.execute('CREATE EXTENSION IF NOT EXISTS vector')
    op.create_table(
        'index_entries',
        sa.Column('namespace', sa.String(length=100), nullable=False),
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('owner_id', sa.String(length=32), nullable=False),
        sa.Column('embedding', Vector(EMBEDDING_DIMENSION), nullable=False),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.PrimaryKeyConstraint('namespace', 'id', name='pk_index_entries'),
    )
    op.create_index('ix_index_entries_owner_id', 'index_entries', ['owner_id'], unique=False)

    # HNSW index for cosine similarity search
    op.execute(
        'CREATE INDEX ix_index_entries_embedding_hnsw ON index_entries '
        'USING hnsw (embedding vector_cosine_ops)'
    )


def downgrade() -> None:
    """Drop everything created by upgrade()."""
    op.execute('DROP INDEX IF EXISTS ix_index_entries_embedding_hnsw')
    op.drop_index('ix_index_entries_owner_id', table_name='index_entries')
    op.drop_table('index_entries')

    op.drop_index('ix_content_items_owner_created', table_name='content_items')
    op.drop_index(op.f('ix_content_items_index_status'), table_name='content_items')
    op.drop_index(op.f('ix_content_items_owner_id'), table_name='content_items')
    op.drop_table('content_items')

    op.drop_table('users')

    op.drop_index(op.f('ix_identities_email'), table_name='identities')
    op.drop_table('identities')

    index_status_enum.drop(op.get_bind(), checkfirst=True)
    content_type_enum.drop(op.get_bind(), checkfirst=True)
