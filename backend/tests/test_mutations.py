"""
Mutation Engine tests: toggles, comments, playlists and video writes.
"""

import uuid
from pathlib import Path

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.core.errors import (
    ConflictError,
    ForbiddenError,
    InternalError,
    InvalidInputError,
    NotFoundError,
)
from vidtube.models import Comment, Like, LikeTarget, Playlist, PublishStatus, Subscription, Video
from vidtube.services.comments import CommentService
from vidtube.services.likes import LikeService
from vidtube.services.media import StagedFile
from vidtube.services.playlists import PlaylistService, canonical_video_ids, merge_unique
from vidtube.services.subscriptions import SubscriptionService
from vidtube.services.videos import VideoService
from vidtube.services.views import ViewComposer


async def _count(db: AsyncSession, stmt) -> int:
    result = await db.execute(select(func.count()).select_from(stmt.subquery()))
    return result.scalar_one()


def _staged(tmp_path: Path, name: str) -> StagedFile:
    path = tmp_path / name
    path.write_bytes(b"fake")
    return StagedFile(path=path, filename=name, content_type=None)


# ================================
# Likes
# ================================

@pytest.mark.asyncio
class TestToggleLike:
    async def test_toggle_twice_restores_state(self, db_session, alice, bob, make_video):
        video = await make_video(alice)
        service = LikeService(db_session)
        target = LikeTarget.video(video.id)

        first = await service.toggle_like(bob, target)
        assert (first.status, first.active) == ("added", True)
        assert await ViewComposer(db_session).likes_count(target) == 1

        second = await service.toggle_like(bob, target)
        assert (second.status, second.active) == ("removed", False)
        assert await ViewComposer(db_session).likes_count(target) == 0

    async def test_comment_like(self, db_session, alice, bob, make_video):
        video = await make_video(alice)
        comment = await CommentService(db_session).add_comment(alice, video.id, "hi")

        result = await LikeService(db_session).toggle_like(bob, LikeTarget.comment(comment.id))

        assert result.active
        like = (await db_session.execute(select(Like))).scalar_one()
        assert like.comment_id == comment.id
        assert like.video_id is None
        assert like.target == LikeTarget.comment(comment.id)

    async def test_missing_target(self, db_session, bob):
        with pytest.raises(NotFoundError):
            await LikeService(db_session).toggle_like(bob, LikeTarget.video(uuid.uuid4()))
        with pytest.raises(NotFoundError):
            await LikeService(db_session).toggle_like(bob, LikeTarget.comment(uuid.uuid4()))

    async def test_race_can_leave_duplicate_likes(self, db_session, alice, bob, make_video):
        """
        Two toggles that both check before either inserts leave two rows.

        Nothing in the store prevents it; each later toggle removes one.
        """
        video = await make_video(alice)
        target = LikeTarget.video(video.id)
        db_session.add(Like.for_target(bob.id, target))
        db_session.add(Like.for_target(bob.id, target))
        await db_session.commit()
        service = LikeService(db_session)

        result = await service.toggle_like(bob, target)

        assert result.status == "removed"
        assert await ViewComposer(db_session).is_liked_by(bob, target) is True

        await service.toggle_like(bob, target)
        assert await ViewComposer(db_session).likes_count(target) == 0


# ================================
# Subscriptions
# ================================

@pytest.mark.asyncio
class TestToggleSubscription:
    async def test_subscribe_then_unsubscribe(self, db_session, alice, bob):
        service = SubscriptionService(db_session)
        composer = ViewComposer(db_session)

        await service.toggle_subscription(bob, alice.id)
        assert await composer.subscriber_count(alice.id) == 1

        result = await service.toggle_subscription(bob, alice.id)
        assert result.status == "removed"
        assert await composer.subscriber_count(alice.id) == 0

    async def test_self_subscription_rejected(self, db_session, alice):
        with pytest.raises(InvalidInputError):
            await SubscriptionService(db_session).toggle_subscription(alice, alice.id)

    async def test_unknown_channel(self, db_session, alice):
        with pytest.raises(NotFoundError):
            await SubscriptionService(db_session).toggle_subscription(alice, uuid.uuid4())


# ================================
# Comments
# ================================

@pytest.mark.asyncio
class TestComments:
    async def test_add_comment_snapshots_author(self, db_session, alice, bob, make_video):
        video = await make_video(alice)

        comment = await CommentService(db_session).add_comment(bob, video.id, "  great video  ")

        assert comment.content == "great video"
        assert comment.owner_username == "bob"
        assert comment.owner_avatar_url == bob.avatar_url

    async def test_blank_content(self, db_session, alice, make_video):
        video = await make_video(alice)
        with pytest.raises(InvalidInputError):
            await CommentService(db_session).add_comment(alice, video.id, "   ")

    async def test_comment_on_missing_video(self, db_session, alice):
        with pytest.raises(NotFoundError):
            await CommentService(db_session).add_comment(alice, uuid.uuid4(), "hello")

    async def test_edit_own_comment(self, db_session, alice, bob, make_video):
        video = await make_video(alice)
        service = CommentService(db_session)
        comment = await service.add_comment(bob, video.id, "frist")

        outcome = await service.edit_comment(bob, comment.id, "first")

        assert outcome.changed
        assert outcome.comment.content == "first"

    async def test_edit_with_same_content_is_no_change(self, db_session, alice, bob, make_video):
        video = await make_video(alice)
        service = CommentService(db_session)
        comment = await service.add_comment(bob, video.id, "same")

        outcome = await service.edit_comment(bob, comment.id, "same")

        assert outcome.changed is False

    async def test_edit_someone_elses_comment(self, db_session, alice, bob, make_video):
        video = await make_video(alice)
        service = CommentService(db_session)
        comment = await service.add_comment(bob, video.id, "mine")

        with pytest.raises(ForbiddenError):
            await service.edit_comment(alice, comment.id, "hijacked")

    async def test_edit_to_blank(self, db_session, alice, make_video):
        video = await make_video(alice)
        service = CommentService(db_session)
        comment = await service.add_comment(alice, video.id, "text")

        with pytest.raises(InvalidInputError):
            await service.edit_comment(alice, comment.id, " ")

    async def test_delete_comment_removes_its_likes(self, db_session, alice, bob, make_video):
        video = await make_video(alice)
        service = CommentService(db_session)
        comment = await service.add_comment(bob, video.id, "bye")
        await LikeService(db_session).toggle_like(alice, LikeTarget.comment(comment.id))

        await service.delete_comment(bob, comment.id)

        assert await _count(db_session, select(Comment.id)) == 0
        assert await _count(db_session, select(Like.id)) == 0

    async def test_delete_requires_ownership(self, db_session, alice, bob, make_video):
        video = await make_video(alice)
        service = CommentService(db_session)
        comment = await service.add_comment(bob, video.id, "keep")

        with pytest.raises(ForbiddenError):
            await service.delete_comment(alice, comment.id)
        with pytest.raises(NotFoundError):
            await service.delete_comment(alice, uuid.uuid4())


# ================================
# Playlists
# ================================

class TestPlaylistHelpers:
    def test_canonical_ids(self):
        raw = "8C7B7A0E-1D5C-4F6E-9A39-3B2E1C0D9F11"
        assert canonical_video_ids([raw]) == [raw.lower()]

    def test_malformed_id(self):
        with pytest.raises(InvalidInputError) as exc_info:
            canonical_video_ids(["not-a-uuid"])
        assert exc_info.value.field == "videoIds"

    def test_merge_unique_keeps_order(self):
        assert merge_unique(["a", "b"], ["b", "c", "a", "d"]) == ["a", "b", "c", "d"]


@pytest.mark.asyncio
class TestPlaylists:
    async def test_create_copies_cover_and_dedupes(self, db_session, alice, make_video):
        first = await make_video(alice, "First")
        second = await make_video(alice, "Second")
        ids = [str(first.id), str(second.id), str(first.id)]

        playlist = await PlaylistService(db_session).create_playlist(alice, "Faves", "My faves", ids)

        assert playlist.video_ids == [str(first.id), str(second.id)]
        assert playlist.cover_url == first.thumbnail_url
        assert playlist.owner_channel_name == "Alice Anders"

    async def test_create_without_videos(self, db_session, alice):
        playlist = await PlaylistService(db_session).create_playlist(alice, "Empty", "Nothing yet")

        assert playlist.video_ids == []
        assert playlist.cover_url is None

    async def test_name_is_globally_unique(self, db_session, alice, bob):
        await PlaylistService(db_session).create_playlist(alice, "Chill", "desc")

        with pytest.raises(ConflictError):
            await PlaylistService(db_session).create_playlist(bob, "Chill", "other desc")

    async def test_blank_fields(self, db_session, alice):
        service = PlaylistService(db_session)
        with pytest.raises(InvalidInputError):
            await service.create_playlist(alice, " ", "desc")
        with pytest.raises(InvalidInputError):
            await service.create_playlist(alice, "Name", None)

    async def test_add_and_remove_videos(self, db_session, alice, make_video):
        v1 = await make_video(alice)
        v2 = await make_video(alice)
        v3 = await make_video(alice)
        service = PlaylistService(db_session)
        playlist = await service.create_playlist(alice, "Queue", "desc", [str(v1.id)])

        await service.add_videos(alice, playlist.id, [str(v2.id), str(v1.id), str(v3.id)])
        assert playlist.video_ids == [str(v1.id), str(v2.id), str(v3.id)]

        await service.remove_videos(alice, playlist.id, [str(v1.id), str(uuid.uuid4())])
        assert playlist.video_ids == [str(v2.id), str(v3.id)]

    async def test_add_rejects_malformed_ids(self, db_session, alice):
        service = PlaylistService(db_session)
        playlist = await service.create_playlist(alice, "Strict", "desc")

        with pytest.raises(InvalidInputError):
            await service.add_videos(alice, playlist.id, ["12345"])

    async def test_changes_require_ownership(self, db_session, alice, bob):
        service = PlaylistService(db_session)
        playlist = await service.create_playlist(alice, "Private mix", "desc")

        with pytest.raises(ForbiddenError):
            await service.add_videos(bob, playlist.id, [])
        with pytest.raises(ForbiddenError):
            await service.update_details(bob, playlist.id, name="Stolen")
        with pytest.raises(ForbiddenError):
            await service.delete_playlist(bob, playlist.id)

    async def test_update_details(self, db_session, alice):
        service = PlaylistService(db_session)
        playlist = await service.create_playlist(alice, "Draft", "desc")

        updated = await service.update_details(alice, playlist.id, name="Final")

        assert updated.name == "Final"
        assert updated.description == "desc"

    async def test_update_with_nothing(self, db_session, alice):
        service = PlaylistService(db_session)
        playlist = await service.create_playlist(alice, "Draft", "desc")

        with pytest.raises(InvalidInputError):
            await service.update_details(alice, playlist.id)

    async def test_rename_to_taken_name(self, db_session, alice, bob):
        service = PlaylistService(db_session)
        await service.create_playlist(bob, "Taken", "desc")
        playlist = await service.create_playlist(alice, "Mine", "desc")

        with pytest.raises(ConflictError):
            await service.update_details(alice, playlist.id, name="Taken")

    async def test_delete(self, db_session, alice):
        service = PlaylistService(db_session)
        playlist = await service.create_playlist(alice, "Gone soon", "desc")

        await service.delete_playlist(alice, playlist.id)

        assert await _count(db_session, select(Playlist.id)) == 0


# ================================
# Videos
# ================================

@pytest.mark.asyncio
class TestVideoWrites:
    async def test_upload(self, db_session, alice, media_store, released, tmp_path):
        service = VideoService(db_session, media_store, released)

        video = await service.upload_video(
            alice,
            "My trip",
            "Holiday footage",
            _staged(tmp_path, "trip.mp4"),
            _staged(tmp_path, "thumb.png"),
        )

        assert video.media_url in media_store.objects
        assert video.thumbnail_url in media_store.objects
        assert video.duration_seconds == 13
        assert video.view_count == 0
        assert video.publish_status == PublishStatus.PUBLIC
        assert video.owner_channel_name == "Alice Anders"

    async def test_title_longer_than_column(self, db_session, alice, make_video, media_store, released, tmp_path):
        service = VideoService(db_session, media_store, released)

        with pytest.raises(InvalidInputError) as exc_info:
            await service.upload_video(
                alice, "T" * 256, "Description", _staged(tmp_path, "v.mp4"), _staged(tmp_path, "t.png")
            )
        assert exc_info.value.field == "title"
        assert media_store.objects == {}

        video = await make_video(alice, "Short")
        with pytest.raises(InvalidInputError):
            await service.update_details(alice, video.id, title="T" * 256)

    @pytest.mark.parametrize("missing", ["title", "description", "media", "thumbnail"])
    async def test_upload_missing_part(self, db_session, alice, media_store, released, tmp_path, missing):
        args = {
            "title": "Title",
            "description": "Description",
            "media": _staged(tmp_path, "v.mp4"),
            "thumbnail": _staged(tmp_path, "t.png"),
        }
        args[missing] = None

        with pytest.raises(InvalidInputError):
            await VideoService(db_session, media_store, released).upload_video(alice, **args)
        assert media_store.objects == {}

    async def test_thumbnail_failure_releases_uploaded_media(self, db_session, alice, media_store, released, tmp_path):
        media_store.fail_folders.add("thumbnails")

        with pytest.raises(InternalError):
            await VideoService(db_session, media_store, released).upload_video(
                alice, "T", "D", _staged(tmp_path, "v.mp4"), _staged(tmp_path, "t.png")
            )

        assert len(released.released) == 1
        assert released.released[0].startswith("https://media.test/videos/")
        assert await _count(db_session, select(Video.id)) == 0

    async def test_update_replaces_thumbnail(self, db_session, alice, media_store, released, make_video, tmp_path):
        video = await make_video(alice, "Old title")
        old_thumbnail = video.thumbnail_url

        updated = await VideoService(db_session, media_store, released).update_details(
            alice, video.id, title="New title", thumbnail=_staged(tmp_path, "new.png")
        )

        assert updated.title == "New title"
        assert updated.thumbnail_url != old_thumbnail
        assert released.released == [old_thumbnail]

    async def test_update_with_nothing(self, db_session, alice, media_store, released, make_video):
        video = await make_video(alice)
        with pytest.raises(InvalidInputError):
            await VideoService(db_session, media_store, released).update_details(alice, video.id)

    async def test_update_requires_ownership(self, db_session, alice, bob, media_store, released, make_video):
        video = await make_video(alice)
        with pytest.raises(ForbiddenError):
            await VideoService(db_session, media_store, released).update_details(bob, video.id, title="Mine now")

    async def test_delete_removes_comments_and_likes(self, db_session, alice, bob, media_store, released, make_video):
        video = await make_video(alice)
        keep = await make_video(alice, "Keep")
        comment = await CommentService(db_session).add_comment(bob, video.id, "nice")
        likes = LikeService(db_session)
        await likes.toggle_like(bob, LikeTarget.video(video.id))
        await likes.toggle_like(alice, LikeTarget.comment(comment.id))
        await likes.toggle_like(bob, LikeTarget.video(keep.id))
        assets = [video.media_url, video.thumbnail_url]

        await VideoService(db_session, media_store, released).delete_video(alice, video.id)

        assert await _count(db_session, select(Video.id)) == 1
        assert await _count(db_session, select(Comment.id)) == 0
        assert await _count(db_session, select(Like.id)) == 1
        assert released.released == assets

    async def test_toggle_publish_status(self, db_session, alice, bob, media_store, released, make_video):
        video = await make_video(alice)
        service = VideoService(db_session, media_store, released)

        assert (await service.toggle_publish_status(alice, video.id)).publish_status == PublishStatus.PRIVATE
        assert (await service.toggle_publish_status(alice, video.id)).publish_status == PublishStatus.PUBLIC
        with pytest.raises(ForbiddenError):
            await service.toggle_publish_status(bob, video.id)
        with pytest.raises(NotFoundError):
            await service.toggle_publish_status(alice, uuid.uuid4())


@pytest.mark.asyncio
async def test_subscription_rows_are_plain_pairs(db_session, alice, bob):
    await SubscriptionService(db_session).toggle_subscription(alice, bob.id)

    row = (await db_session.execute(select(Subscription))).scalar_one()
    assert (row.subscriber_id, row.channel_id) == (alice.id, bob.id)
