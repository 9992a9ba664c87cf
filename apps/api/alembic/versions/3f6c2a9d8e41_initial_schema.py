"""initial schema

Revision ID: 3f6c2a9d8e41
Revises: 
Create Date: 2026-10-19 09:12:40.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f6c2a9d8e41'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                     server_default=sa.text('now()'))


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('username', sa.String(), nullable=False, server_default=''),
        sa.Column('password_hash', sa.String(), nullable=True),
        sa.Column('avatar', sa.String(), nullable=True),
        sa.Column('cover', sa.String(), nullable=True),
        sa.Column('about', sa.Text(), nullable=True),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('now()')),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
        sa.UniqueConstraint('email', name=op.f('uq_users_email')),
    )
    op.create_index('ix_users_username', 'users', ['username'])

    op.create_table(
        'videos',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('url', sa.String(), nullable=False),
        sa.Column('thumbnail', sa.String(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_videos')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'],
                                name=op.f('fk_videos_user_id_users')),
    )
    op.create_index('ix_videos_user_id_created_at', 'videos', ['user_id', 'created_at'])

    op.create_table(
        'comments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('video_id', sa.Uuid(), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_comments')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'],
                                name=op.f('fk_comments_user_id_users')),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id'],
                                name=op.f('fk_comments_video_id_videos')),
    )
    op.create_index('ix_comments_video_id_created_at', 'comments', ['video_id', 'created_at'])

    op.create_table(
        'views',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('video_id', sa.Uuid(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_views')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'],
                                name=op.f('fk_views_user_id_users')),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id'],
                                name=op.f('fk_views_video_id_videos')),
    )
    op.create_index('ix_views_video_id', 'views', ['video_id'])
    op.create_index('ix_views_user_id_created_at', 'views', ['user_id', 'created_at'])

    op.create_table(
        'video_likes',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('video_id', sa.Uuid(), nullable=False),
        sa.Column('direction', sa.SmallInteger(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_video_likes')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'],
                                name=op.f('fk_video_likes_user_id_users')),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id'],
                                name=op.f('fk_video_likes_video_id_videos')),
        sa.UniqueConstraint('user_id', 'video_id', name=op.f('uq_video_likes_user_id')),
        sa.CheckConstraint('direction IN (1, -1)', name=op.f('ck_video_likes_direction')),
    )
    op.create_index('ix_video_likes_video_id_direction', 'video_likes', ['video_id', 'direction'])

    op.create_table(
        'subscriptions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('subscriber_id', sa.Uuid(), nullable=False),
        sa.Column('subscribed_to_id', sa.Uuid(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_subscriptions')),
        sa.ForeignKeyConstraint(['subscriber_id'], ['users.id'],
                                name=op.f('fk_subscriptions_subscriber_id_users')),
        sa.ForeignKeyConstraint(['subscribed_to_id'], ['users.id'],
                                name=op.f('fk_subscriptions_subscribed_to_id_users')),
        sa.UniqueConstraint('subscriber_id', 'subscribed_to_id',
                            name=op.f('uq_subscriptions_subscriber_id')),
    )
    op.create_index('ix_subscriptions_subscribed_to_id', 'subscriptions', ['subscribed_to_id'])


def downgrade() -> None:
    op.drop_index('ix_subscriptions_subscribed_to_id', table_name='subscriptions')
    op.drop_table('subscriptions')
    op.drop_index('ix_video_likes_video_id_direction', table_name='video_likes')
    op.drop_table('video_likes')
    op.drop_index('ix_views_user_id_created_at', table_name='views')
    op.drop_index('ix_views_video_id', table_name='views')
    op.drop_table('views')
    op.drop_index('ix_comments_video_id_created_at', table_name='comments')
    op.drop_table('comments')
    op.drop_index('ix_videos_user_id_created_at', table_name='videos')
    op.drop_table('videos')
    op.drop_index('ix_users_username', table_name='users')
    op.drop_table('users')
