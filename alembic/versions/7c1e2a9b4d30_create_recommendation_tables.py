"""create recommendations, show_embeddings and watched_shows tables

Revision ID: 7c1e2a9b4d30
Revises:
Create Date: 2026-10-18 10:12:41.208311
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '7c1e2a9b4d30'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        'recommendations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('genre', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('match_reason', sa.Text(), nullable=False),
        sa.Column('rating', sa.String(10), nullable=False),
        sa.Column('user_rating', sa.Integer(), nullable=True),
        sa.Column('watched', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.CheckConstraint(
            'user_rating IS NULL OR (user_rating >= 1 AND user_rating <= 5)',
            name='ck_recommendation_user_rating',
        ),
    )
    op.create_index('ix_recommendations_user_id', 'recommendations', ['user_id'])
    op.create_index('ix_recommendation_user_created', 'recommendations', ['user_id', 'created_at'])

    # Embeddings are JSON float arrays; similarity is computed by the application
    op.create_table(
        'show_embeddings',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('embedding', sa.JSON(), nullable=False),
        sa.Column('user_rating', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'title', name='uq_show_embedding_user_title'),
        sa.CheckConstraint('user_rating >= 4 AND user_rating <= 5', name='ck_show_embedding_user_rating'),
    )
    op.create_index('ix_show_embeddings_user_id', 'show_embeddings', ['user_id'])

    op.create_table(
        'watched_shows',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'title', name='uq_watched_show_user_title'),
    )
    op.create_index('ix_watched_shows_user_id', 'watched_shows', ['user_id'])


def downgrade() -> None:
    op.drop_index('ix_watched_shows_user_id', table_name='watched_shows')
    op.drop_table('watched_shows')
    op.drop_index('ix_show_embeddings_user_id', table_name='show_embeddings')
    op.drop_table('show_embeddings')
    op.drop_index('ix_recommendation_user_created', table_name='recommendations')
    op.drop_index('ix_recommendations_user_id', table_name='recommendations')
    op.drop_table('recommendations')
