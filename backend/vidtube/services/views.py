"""
View Composer

Read models built per request by joining users, videos, comments, likes,
subscriptions and playlists. Nothing is cached: every view is recomputed
from the store.

Consistency:
------------
Each count is exact for the query that produced it, but the queries of one
view are separate reads. Under concurrent writes a channel page can show a
subscriber_count and a subscribed_by_viewer that were observed a moment
apart. That staleness is accepted.

Views:
------
- channel_view            channel page by username
- video_play_view         player page (increments views, updates history)
- video_detail            plain video record, no side effects
- feed                    home / search feed
- comments                comments of a video
- watch_history           the viewer's history, most recent first
- dashboard_stats         totals for the owner's dashboard
- channel_videos          owner's public videos with engagement counts
- playlist_view           playlist with resolved videos
- user_playlists          a user's playlists
- subscribed_channels     channels a user subscribes to
"""

import uuid
from typing import Optional

from sqlalchemy import Select, exists, false, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.core.config import settings
from vidtube.core.errors import InvalidInputError, NotFoundError
from vidtube.core.logging import get_logger
from vidtube.models import (
    Comment,
    Like,
    LikeTarget,
    Playlist,
    PublishStatus,
    Subscription,
    User,
    Video,
    normalize_identifier,
)
from vidtube.schemas.comment import CommentOut, CommentWithLikes
from vidtube.schemas.common import Page
from vidtube.schemas.playlist import PlaylistDetail, PlaylistOut
from vidtube.schemas.user import ChannelProfile, SubscribedChannel, SubscribedChannels
from vidtube.schemas.video import (
    ChannelVideo,
    DashboardStats,
    FeedVideo,
    OwnerChannel,
    VideoCard,
    VideoOut,
    VideoPlayView,
    WatchHistoryEntry,
)
from vidtube.services.pagination import page_window
from vidtube.services.text_search import FeedSearch

logger = get_logger(__name__)

# Public sort keys → columns. Anything else is rejected.
CHANNEL_VIDEO_SORT_FIELDS = {
    "createdAt": Video.created_at,
    "views": Video.view_count,
    "title": Video.title,
    "duration": Video.duration_seconds,
}
SORT_ORDERS = ("asc", "desc")


def parse_ids(raw_ids: list[str]) -> list[uuid.UUID]:
    """Parse stored id strings, silently dropping malformed entries."""
    parsed = []
    for raw in raw_ids:
        try:
            parsed.append(uuid.UUID(str(raw)))
        except ValueError:
            continue
    return parsed


class ViewComposer:
    """Builds every read model. One instance per request session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ========================================
    # Shared building blocks
    # ========================================

    async def _count(self, stmt: Select) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(stmt.subquery())
        )
        return int(result.scalar_one())

    async def subscriber_count(self, channel_id: uuid.UUID) -> int:
        return await self._count(
            select(Subscription.id).where(Subscription.channel_id == channel_id)
        )

    async def is_subscribed(self, viewer: Optional[User], channel_id: uuid.UUID) -> bool:
        if viewer is None:
            return False
        result = await self.db.execute(
            select(
                exists().where(
                    Subscription.subscriber_id == viewer.id,
                    Subscription.channel_id == channel_id,
                )
            )
        )
        return bool(result.scalar())

    async def likes_count(self, target: LikeTarget) -> int:
        return await self._count(select(Like.id).where(Like.matches(target)))

    async def is_liked_by(self, viewer: Optional[User], target: LikeTarget) -> bool:
        if viewer is None:
            return False
        result = await self.db.execute(
            select(exists().where(Like.liked_by_id == viewer.id, Like.matches(target)))
        )
        return bool(result.scalar())

    @staticmethod
    def _public_videos() -> Select:
        return select(Video).where(Video.publish_status == PublishStatus.PUBLIC)

    @staticmethod
    def _is_visible(video: Video, viewer: Optional[User], self_view: bool) -> bool:
        if video.is_public:
            return True
        return self_view and viewer is not None and str(video.owner_id) == str(viewer.id)

    async def _get_user_by_username(self, username: str) -> User:
        normalized = normalize_identifier(username or "")
        if not normalized:
            raise InvalidInputError("username is required", field="username")

        result = await self.db.execute(select(User).where(User.username == normalized))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("Channel does not exist")
        return user

    async def _visible_video(
        self,
        video_id: uuid.UUID,
        viewer: Optional[User],
        self_view: bool,
    ) -> Video:
        video = await self.db.get(Video, video_id)
        # Private videos are indistinguishable from missing ones
        if video is None or not self._is_visible(video, viewer, self_view):
            raise NotFoundError("Video not found")
        return video

    # ========================================
    # Channel View
    # ========================================

    async def channel_view(self, username: str, viewer: Optional[User]) -> ChannelProfile:
        """
        Channel page for ``username``.

        The viewer's own channel is not served through this view; they get
        their own profile from /users/me and their dashboard.

        Raises:
            NotFoundError: unknown username, or the channel is the viewer
        """
        channel = await self._get_user_by_username(username)
        if viewer is not None and channel.id == viewer.id:
            raise NotFoundError("Channel does not exist")

        public = self._public_videos().where(Video.owner_id == channel.id)
        top_n = settings.CHANNEL_TOP_VIDEOS

        popular = await self.db.execute(
            public.order_by(Video.view_count.desc(), Video.created_at.desc()).limit(top_n)
        )
        latest = await self.db.execute(
            public.order_by(Video.created_at.desc()).limit(top_n)
        )

        return ChannelProfile(
            id=channel.id,
            username=channel.username,
            display_name=channel.display_name,
            avatar_url=channel.avatar_url,
            cover_url=channel.cover_url,
            created_at=channel.created_at,
            subscriber_count=await self.subscriber_count(channel.id),
            subscribed_by_viewer=await self.is_subscribed(viewer, channel.id),
            total_videos=await self._count(public),
            popular_videos=[VideoCard.model_validate(v) for v in popular.scalars()],
            latest_videos=[VideoCard.model_validate(v) for v in latest.scalars()],
        )

    # ========================================
    # Video Views
    # ========================================

    async def video_detail(
        self,
        video_id: uuid.UUID,
        viewer: Optional[User],
        self_view: bool = False,
    ) -> VideoOut:
        """Video record under the play-view visibility rule, without side effects."""
        video = await self._visible_video(video_id, viewer, self_view)
        return VideoOut.model_validate(video)

    async def video_play_view(
        self,
        video_id: uuid.UUID,
        viewer: Optional[User],
        self_view: bool = False,
    ) -> VideoPlayView:
        """
        Player page.

        Visibility:
        -----------
        Public videos are visible to everyone. A private video is visible only
        when ``self_view`` is set and the viewer owns it. Anything else is
        NotFoundError.

        Side effects (committed before the page is composed):
        ------------------------------------------------------
        1. view_count += 1 as a single UPDATE, so concurrent plays never lose
           an increment. Every successful fetch counts, repeats included.
        2. For a signed-in viewer, the id is removed from watch_history and
           put back at the front.
        """
        video = await self._visible_video(video_id, viewer, self_view)

        await self.db.execute(
            update(Video)
            .where(Video.id == video.id)
            .values(view_count=Video.view_count + 1)
            .execution_options(synchronize_session=False)
        )

        if viewer is not None:
            key = str(video.id)
            viewer.watch_history = [key] + [
                entry for entry in (viewer.watch_history or []) if entry != key
            ]

        await self.db.commit()
        await self.db.refresh(video)

        logger.info(
            "video_played",
            video_id=str(video.id),
            viewer_id=str(viewer.id) if viewer else None,
            view_count=video.view_count,
        )

        target = LikeTarget.video(video.id)
        owner = await self.db.get(User, video.owner_id)

        up_next_stmt = self._public_videos().where(Video.id != video.id)
        if viewer is not None:
            up_next_stmt = up_next_stmt.where(Video.owner_id != viewer.id)
        up_next = await self.db.execute(
            up_next_stmt.order_by(func.random()).limit(settings.UP_NEXT_SAMPLE_SIZE)
        )

        return VideoPlayView(
            video=VideoOut.model_validate(video),
            likes_count=await self.likes_count(target),
            liked_by_viewer=await self.is_liked_by(viewer, target),
            owner=OwnerChannel(
                id=owner.id,
                username=owner.username,
                display_name=owner.display_name,
                avatar_url=owner.avatar_url,
                subscriber_count=await self.subscriber_count(owner.id),
                subscribed_by_viewer=await self.is_subscribed(viewer, owner.id),
            ),
            up_next=[VideoCard.model_validate(v) for v in up_next.scalars()],
        )

    # ========================================
    # Feed View
    # ========================================

    async def feed(
        self,
        viewer: Optional[User],
        query: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Page[FeedVideo]:
        """
        Home / search feed of public videos, never including the viewer's own.

        - With ``query``: ranked text search over title and channel name.
        - Without: a random sample, so repeat visits see different videos.
        """
        window = page_window(page, limit, settings.FEED_PAGE_SIZE)
        base = self._public_videos()
        if viewer is not None:
            base = base.where(Video.owner_id != viewer.id)

        query = (query or "").strip()
        if query:
            search = FeedSearch(self.db.bind.dialect.name)
            score = search.score(query).label("score")
            matched = base.where(search.matches(query))
            total = await self._count(matched)
            result = await self.db.execute(
                matched.add_columns(score)
                .order_by(score.desc(), Video.created_at.desc())
                .offset(window.offset)
                .limit(window.limit)
            )
            items = [
                FeedVideo.model_validate(video).model_copy(update={"score": float(rank or 0)})
                for video, rank in result.all()
            ]
        else:
            total = await self._count(base)
            result = await self.db.execute(
                base.order_by(func.random()).offset(window.offset).limit(window.limit)
            )
            items = [FeedVideo.model_validate(v) for v in result.scalars()]

        return Page(items=items, page=window.page, limit=window.limit, total=total)

    # ========================================
    # Comments View
    # ========================================

    async def comments(
        self,
        video_id: uuid.UUID,
        viewer: Optional[User],
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Page[CommentWithLikes]:
        """Comments newest first, each with likes_count and liked_by_viewer."""
        window = page_window(page, limit, settings.COMMENTS_PAGE_SIZE)

        if await self.db.get(Video, video_id) is None:
            raise NotFoundError("Video not found")

        likes_count = (
            select(func.count(Like.id))
            .where(Like.comment_id == Comment.id)
            .correlate(Comment)
            .scalar_subquery()
        )
        if viewer is not None:
            liked = exists().where(
                Like.comment_id == Comment.id,
                Like.liked_by_id == viewer.id,
            )
        else:
            liked = false()

        scoped = select(Comment).where(Comment.video_id == video_id)
        result = await self.db.execute(
            scoped.add_columns(likes_count.label("likes_count"), liked.label("liked"))
            .order_by(Comment.created_at.desc(), Comment.id.desc())
            .offset(window.offset)
            .limit(window.limit)
        )

        items = [
            CommentWithLikes(
                **CommentOut.model_validate(comment).model_dump(),
                likes_count=int(count or 0),
                liked_by_viewer=bool(is_liked),
            )
            for comment, count, is_liked in result.all()
        ]
        return Page(
            items=items,
            page=window.page,
            limit=window.limit,
            total=await self._count(scoped),
        )

    # ========================================
    # Watch-History View
    # ========================================

    async def watch_history(self, user: User) -> list[WatchHistoryEntry]:
        """
        Resolve the user's history ids, most recent first.

        Ids whose video was deleted, or has since gone private (unless the
        user owns it), are skipped. An empty list is a normal result; the
        router reports it with its own status.
        """
        ids = parse_ids(user.watch_history or [])
        if not ids:
            return []

        result = await self.db.execute(select(Video).where(Video.id.in_(ids)))
        by_id = {video.id: video for video in result.scalars()}

        entries = []
        for video_id in ids:
            video = by_id.get(video_id)
            if video is None or not self._is_visible(video, user, self_view=True):
                continue
            entries.append(WatchHistoryEntry.model_validate(video))
        return entries

    # ========================================
    # Dashboard Stats View
    # ========================================

    async def dashboard_stats(self, owner: User) -> DashboardStats:
        """Totals across everything the owner has uploaded (public and private)."""
        owned = select(Video.id).where(Video.owner_id == owner.id)

        likes_on_owned = (
            select(Like.id)
            .join(Video, Like.video_id == Video.id)
            .where(Video.owner_id == owner.id)
        )
        comments_on_owned = (
            select(Comment.id)
            .join(Video, Comment.video_id == Video.id)
            .where(Video.owner_id == owner.id)
        )
        views = await self.db.execute(
            select(func.coalesce(func.sum(Video.view_count), 0)).where(Video.owner_id == owner.id)
        )

        return DashboardStats(
            total_videos=await self._count(owned),
            total_playlists=await self._count(
                select(Playlist.id).where(Playlist.owner_id == owner.id)
            ),
            total_likes=await self._count(likes_on_owned),
            total_comments=await self._count(comments_on_owned),
            total_subscribers=await self.subscriber_count(owner.id),
            total_views=int(views.scalar_one()),
        )

    # ========================================
    # Channel Videos View
    # ========================================

    async def channel_videos(
        self,
        owner_id: uuid.UUID,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        sort_by: str = "createdAt",
        order: str = "desc",
    ) -> Page[ChannelVideo]:
        """
        Owner's public videos with per-video like and comment counts.

        Raises:
            InvalidInputError: ``sort_by`` outside the whitelist, or ``order``
            not asc/desc
        """
        window = page_window(page, limit, settings.CHANNEL_VIDEOS_PAGE_SIZE)

        sort_column = CHANNEL_VIDEO_SORT_FIELDS.get(sort_by)
        if sort_column is None:
            raise InvalidInputError(
                f"sortBy must be one of: {', '.join(CHANNEL_VIDEO_SORT_FIELDS)}",
                field="sortBy",
            )
        if order not in SORT_ORDERS:
            raise InvalidInputError("order must be 'asc' or 'desc'", field="order")

        likes_count = (
            select(func.count(Like.id))
            .where(Like.video_id == Video.id)
            .correlate(Video)
            .scalar_subquery()
        )
        comments_count = (
            select(func.count(Comment.id))
            .where(Comment.video_id == Video.id)
            .correlate(Video)
            .scalar_subquery()
        )

        scoped = self._public_videos().where(Video.owner_id == owner_id)
        ordering = sort_column.asc() if order == "asc" else sort_column.desc()
        result = await self.db.execute(
            scoped.add_columns(likes_count.label("likes_count"), comments_count.label("comments_count"))
            .order_by(ordering, Video.id)
            .offset(window.offset)
            .limit(window.limit)
        )

        items = [
            ChannelVideo(
                **VideoCard.model_validate(video).model_dump(),
                description=video.description,
                likes_count=int(likes or 0),
                comments_count=int(comments or 0),
            )
            for video, likes, comments in result.all()
        ]
        return Page(
            items=items,
            page=window.page,
            limit=window.limit,
            total=await self._count(scoped),
        )

    async def channel_videos_by_username(
        self,
        username: str,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        sort_by: str = "createdAt",
        order: str = "desc",
    ) -> Page[ChannelVideo]:
        channel = await self._get_user_by_username(username)
        return await self.channel_videos(channel.id, page, limit, sort_by, order)

    # ========================================
    # Playlist Views
    # ========================================

    async def playlist_view(self, playlist_id: uuid.UUID, viewer: Optional[User]) -> PlaylistDetail:
        """
        Playlist with its videos in playlist order.

        Deleted videos are skipped, as are private ones the viewer does not
        own. total_views sums the view counts of the videos shown.
        """
        playlist = await self.db.get(Playlist, playlist_id)
        if playlist is None:
            raise NotFoundError("Playlist not found")

        ids = parse_ids(playlist.video_ids or [])
        videos: list[Video] = []
        if ids:
            result = await self.db.execute(select(Video).where(Video.id.in_(ids)))
            by_id = {video.id: video for video in result.scalars()}
            videos = [
                by_id[video_id]
                for video_id in ids
                if video_id in by_id and self._is_visible(by_id[video_id], viewer, self_view=True)
            ]

        return PlaylistDetail(
            **PlaylistOut.model_validate(playlist).model_dump(),
            videos=[VideoCard.model_validate(v) for v in videos],
            total_videos=len(videos),
            total_views=sum(v.view_count for v in videos),
        )

    async def user_playlists(
        self,
        user_id: uuid.UUID,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Page[PlaylistOut]:
        """A user's playlists, newest first."""
        window = page_window(page, limit, settings.PLAYLISTS_PAGE_SIZE)

        if await self.db.get(User, user_id) is None:
            raise NotFoundError("User not found")

        scoped = select(Playlist).where(Playlist.owner_id == user_id)
        result = await self.db.execute(
            scoped.order_by(Playlist.created_at.desc(), Playlist.id.desc())
            .offset(window.offset)
            .limit(window.limit)
        )
        return Page(
            items=[PlaylistOut.model_validate(p) for p in result.scalars()],
            page=window.page,
            limit=window.limit,
            total=await self._count(scoped),
        )

    # ========================================
    # Subscribed Channels View
    # ========================================

    async def subscribed_channels(
        self,
        user: User,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> SubscribedChannels:
        """Channels ``user`` subscribes to, most recent subscription first."""
        window = page_window(page, limit, settings.SUBSCRIPTIONS_PAGE_SIZE)

        scoped = (
            select(User, Subscription.created_at)
            .join(Subscription, Subscription.channel_id == User.id)
            .where(Subscription.subscriber_id == user.id)
        )
        result = await self.db.execute(
            scoped.order_by(Subscription.created_at.desc(), User.id)
            .offset(window.offset)
            .limit(window.limit)
        )

        channels = [
            SubscribedChannel(
                id=channel.id,
                username=channel.username,
                display_name=channel.display_name,
                avatar_url=channel.avatar_url,
                subscribed_at=subscribed_at,
            )
            for channel, subscribed_at in result.all()
        ]
        return SubscribedChannels(
            channels=channels,
            total=await self._count(select(Subscription.id).where(Subscription.subscriber_id == user.id)),
            page=window.page,
            limit=window.limit,
        )
