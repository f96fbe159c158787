"""create_vidtube_schema

Revision ID: 4b1d7c9e2a10
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '4b1d7c9e2a10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('id', sa.Uuid(), nullable=False, comment='Opaque primary key'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was created (UTC)'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was last updated (UTC)'),
    ]


def upgrade() -> None:
    """
    Create the six tables: users, videos, comments, likes, subscriptions,
    playlists.

    Foreign keys cascade on delete as a backstop; the application deletes
    children explicitly before parents.
    """

    # ================================
    # users
    # ================================
    op.create_table(
        'users',
        *_timestamps(),
        sa.Column('username', sa.String(length=50), nullable=False, comment='Case-folded handle, used in channel URLs'),
        sa.Column('email', sa.String(length=255), nullable=False, comment='Case-folded email address'),
        sa.Column('password_hash', sa.String(length=255), nullable=False, comment='bcrypt digest of the password'),
        sa.Column('display_name', sa.String(length=100), nullable=False, comment='Full name, shown as the channel name'),
        sa.Column('avatar_url', sa.String(length=1000), nullable=False, comment='Avatar image URL in blob storage'),
        sa.Column('cover_url', sa.String(length=1000), nullable=True, comment='Optional cover image URL in blob storage'),
        sa.Column('watch_history', postgresql.JSONB(astext_type=sa.Text()), nullable=False, comment='Video ids, most recent first'),
        sa.Column('refresh_token', sa.Text(), nullable=True, comment='Currently valid refresh token (null = logged out)'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
    )
    op.create_index(op.f('ix_users_created_at'), 'users', ['created_at'], unique=False)
    op.create_index(op.f('ix_users_username'), 'users', ['username'], unique=True)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_display_name'), 'users', ['display_name'], unique=False)

    # ================================
    # videos
    # ================================
    publish_status = postgresql.ENUM('public', 'private', name='publish_status', create_type=False)
    publish_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        'videos',
        *_timestamps(),
        sa.Column('title', sa.String(length=255), nullable=False, comment='Video title (searchable)'),
        sa.Column('description', sa.Text(), nullable=False, comment='Video description'),
        sa.Column('media_url', sa.String(length=1000), nullable=False, comment='Video file URL in blob storage'),
        sa.Column('thumbnail_url', sa.String(length=1000), nullable=False, comment='Thumbnail image URL in blob storage'),
        sa.Column('duration_seconds', sa.Integer(), nullable=False, comment='Duration reported by the blob store, whole seconds'),
        sa.Column('view_count', sa.Integer(), nullable=False, comment='Total plays, no per-viewer dedup'),
        sa.Column('publish_status', publish_status, nullable=False, comment='public | private'),
        sa.Column('owner_id', sa.Uuid(), nullable=False, comment='Uploader; never reassigned'),
        sa.Column('owner_username', sa.String(length=50), nullable=False),
        sa.Column('owner_channel_name', sa.String(length=100), nullable=False),
        sa.Column('owner_avatar_url', sa.String(length=1000), nullable=False),
        sa.CheckConstraint('view_count >= 0', name=op.f('ck_videos_view_count_non_negative')),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], name=op.f('fk_videos_owner_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_videos')),
    )
    op.create_index(op.f('ix_videos_created_at'), 'videos', ['created_at'], unique=False)
    op.create_index(op.f('ix_videos_publish_status'), 'videos', ['publish_status'], unique=False)
    op.create_index(op.f('ix_videos_owner_id'), 'videos', ['owner_id'], unique=False)
    op.create_index(op.f('ix_videos_owner_channel_name'), 'videos', ['owner_channel_name'], unique=False)
    op.create_index('ix_videos_owner_status_created', 'videos', ['owner_id', 'publish_status', 'created_at'], unique=False)

    # ================================
    # comments
    # ================================
    op.create_table(
        'comments',
        *_timestamps(),
        sa.Column('content', sa.Text(), nullable=False, comment='Comment body'),
        sa.Column('video_id', sa.Uuid(), nullable=False, comment='Video this comment belongs to'),
        sa.Column('owner_id', sa.Uuid(), nullable=False, comment='Author'),
        sa.Column('owner_username', sa.String(length=50), nullable=False),
        sa.Column('owner_avatar_url', sa.String(length=1000), nullable=False),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id'], name=op.f('fk_comments_video_id_videos'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], name=op.f('fk_comments_owner_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_comments')),
    )
    op.create_index(op.f('ix_comments_created_at'), 'comments', ['created_at'], unique=False)
    op.create_index(op.f('ix_comments_owner_id'), 'comments', ['owner_id'], unique=False)
    op.create_index('ix_comments_video_created', 'comments', ['video_id', 'created_at'], unique=False)

    # ================================
    # likes
    # ================================
    op.create_table(
        'likes',
        *_timestamps(),
        sa.Column('liked_by_id', sa.Uuid(), nullable=False, comment='User who liked'),
        sa.Column('video_id', sa.Uuid(), nullable=True, comment='Liked video (exclusive with comment_id)'),
        sa.Column('comment_id', sa.Uuid(), nullable=True, comment='Liked comment (exclusive with video_id)'),
        sa.CheckConstraint('(video_id IS NULL) <> (comment_id IS NULL)', name=op.f('ck_likes_exactly_one_target')),
        sa.ForeignKeyConstraint(['liked_by_id'], ['users.id'], name=op.f('fk_likes_liked_by_id_users'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id'], name=op.f('fk_likes_video_id_videos'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['comment_id'], ['comments.id'], name=op.f('fk_likes_comment_id_comments'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_likes')),
    )
    op.create_index(op.f('ix_likes_created_at'), 'likes', ['created_at'], unique=False)
    op.create_index(op.f('ix_likes_liked_by_id'), 'likes', ['liked_by_id'], unique=False)
    op.create_index(op.f('ix_likes_video_id'), 'likes', ['video_id'], unique=False)
    op.create_index(op.f('ix_likes_comment_id'), 'likes', ['comment_id'], unique=False)

    # ================================
    # subscriptions
    # ================================
    op.create_table(
        'subscriptions',
        *_timestamps(),
        sa.Column('subscriber_id', sa.Uuid(), nullable=False, comment='User who subscribes'),
        sa.Column('channel_id', sa.Uuid(), nullable=False, comment='Channel (user) being subscribed to'),
        sa.ForeignKeyConstraint(['subscriber_id'], ['users.id'], name=op.f('fk_subscriptions_subscriber_id_users'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['channel_id'], ['users.id'], name=op.f('fk_subscriptions_channel_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_subscriptions')),
    )
    op.create_index(op.f('ix_subscriptions_created_at'), 'subscriptions', ['created_at'], unique=False)
    op.create_index(op.f('ix_subscriptions_subscriber_id'), 'subscriptions', ['subscriber_id'], unique=False)
    op.create_index(op.f('ix_subscriptions_channel_id'), 'subscriptions', ['channel_id'], unique=False)

    # ================================
    # playlists
    # ================================
    op.create_table(
        'playlists',
        *_timestamps(),
        sa.Column('name', sa.String(length=255), nullable=False, comment='Playlist name (unique across all users)'),
        sa.Column('description', sa.String(length=1000), nullable=False, comment='Playlist description'),
        sa.Column('video_ids', postgresql.JSONB(astext_type=sa.Text()), nullable=False, comment='Ordered video ids, no duplicates'),
        sa.Column('cover_url', sa.String(length=1000), nullable=True, comment="Copied from the first video's thumbnail at creation"),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('owner_channel_name', sa.String(length=100), nullable=False),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], name=op.f('fk_playlists_owner_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_playlists')),
    )
    op.create_index(op.f('ix_playlists_created_at'), 'playlists', ['created_at'], unique=False)
    op.create_index(op.f('ix_playlists_name'), 'playlists', ['name'], unique=False)
    op.create_index(op.f('ix_playlists_owner_id'), 'playlists', ['owner_id'], unique=False)


def downgrade() -> None:
    """Drop every table in reverse dependency order."""
    op.drop_table('playlists')
    op.drop_table('subscriptions')
    op.drop_table('likes')
    op.drop_table('comments')
    op.drop_table('videos')
    op.drop_table('users')
    postgresql.ENUM(name='publish_status').drop(op.get_bind(), checkfirst=True)
