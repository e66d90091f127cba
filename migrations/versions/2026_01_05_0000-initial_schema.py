"""Initial schema

Revision ID: 001_initial
Revises: 
Create Date: 2026-01-05 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create initial database schema:
    - users: accounts and running point totals
    - houses: creator groups
    - posts: shared links with canonical form and soft-delete flag
    - post_collaborators: credited collaborators, unique per (post, user)
    - clips: clips made from posts
    - engagement_events: append-only point ledger
    """
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('display_name', sa.String(length=100), nullable=False),
        sa.Column('total_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    op.create_table(
        'houses',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('owner_user_id', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_houses_owner_user_id', 'houses', ['owner_user_id'])

    op.create_table(
        'posts',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('owner_user_id', sa.String(length=36), nullable=False),
        sa.Column('house_id', sa.String(length=36), nullable=False),
        sa.Column('original_url', sa.Text(), nullable=False),
        sa.Column('canonical_url', sa.Text(), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('thumbnail_url', sa.Text(), nullable=True),
        sa.Column('provider', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_posts_canonical_url', 'posts', ['canonical_url'])
    op.create_index('ix_posts_house_created', 'posts', ['house_id', 'created_at'])
    op.create_index('ix_posts_owner_created', 'posts', ['owner_user_id', 'created_at'])

    op.create_table(
        'post_collaborators',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('post_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('post_id', 'user_id', name='uq_post_collaborators_post_user')
    )
    op.create_index('ix_post_collaborators_post_id', 'post_collaborators', ['post_id'])
    op.create_index('ix_post_collaborators_user_id', 'post_collaborators', ['user_id'])

    op.create_table(
        'clips',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('post_id', sa.String(length=36), nullable=False),
        sa.Column('creator_user_id', sa.String(length=36), nullable=False),
        sa.Column('clip_url', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_clips_post_id', 'clips', ['post_id'])
    op.create_index('ix_clips_creator_user_id', 'clips', ['creator_user_id'])
    op.create_index('ix_clips_created_at', 'clips', ['created_at'])

    op.create_table(
        'engagement_events',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('post_id', sa.String(length=36), nullable=False),
        sa.Column('canonical_url', sa.Text(), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_engagement_events_user_post',
        'engagement_events',
        ['user_id', 'post_id', 'type', 'created_at']
    )
    op.create_index(
        'ix_engagement_events_user_canonical',
        'engagement_events',
        ['user_id', 'canonical_url', 'type', 'created_at']
    )


def downgrade() -> None:
    """Drop all tables; indexes go with them."""
    op.drop_table('engagement_events')
    op.drop_table('clips')
    op.drop_table('post_collaborators')
    op.drop_table('posts')
    op.drop_table('houses')
    op.drop_table('users')
