"""
Account Lifecycle tests: registration, login, profile changes and the
cascading account delete.
"""

import uuid
from pathlib import Path

import pytest
from sqlalchemy import func, select

from vidtube.core.errors import ConflictError, InternalError, InvalidInputError, UnauthenticatedError
from vidtube.core.security import verify_password
from vidtube.models import Comment, Like, LikeTarget, Playlist, Subscription, User, Video
from vidtube.services.accounts import AccountService
from vidtube.services.comments import CommentService
from vidtube.services.likes import LikeService
from vidtube.services.media import StagedFile
from vidtube.services.playlists import PlaylistService
from vidtube.services.subscriptions import SubscriptionService

# Password make_user sets for every fixture user
TEST_PASSWORD = "password123"


def _staged(tmp_path: Path, name: str) -> StagedFile:
    path = tmp_path / name
    path.write_bytes(b"image")
    return StagedFile(path=path, filename=name, content_type="image/png")


async def _count(db, column) -> int:
    result = await db.execute(select(func.count(column)))
    return result.scalar_one()


@pytest.fixture
def accounts(db_session, media_store, released) -> AccountService:
    return AccountService(db_session, media_store, released)


# ================================
# Registration
# ================================

@pytest.mark.asyncio
class TestRegister:
    async def test_register_normalizes_and_logs_in(self, accounts, db_session, media_store, tmp_path):
        user, tokens = await accounts.register(
            "Carol Clark",
            "Carol@Example.com",
            "  CAROL ",
            "s3cret-pass",
            _staged(tmp_path, "avatar.png"),
            _staged(tmp_path, "cover.png"),
        )

        assert user.username == "carol"
        assert user.email == "carol@example.com"
        assert user.display_name == "Carol Clark"
        assert user.avatar_url in media_store.objects
        assert user.cover_url in media_store.objects
        assert verify_password("s3cret-pass", user.password_hash)
        assert user.refresh_token == tokens.refresh_token

    async def test_cover_is_optional(self, accounts, tmp_path):
        user, _ = await accounts.register(
            "Dan", "dan@example.com", "dan", "pw", _staged(tmp_path, "a.png")
        )
        assert user.cover_url is None

    async def test_avatar_required(self, accounts):
        with pytest.raises(InvalidInputError) as exc_info:
            await accounts.register("Dan", "dan@example.com", "dan", "pw", None)
        assert exc_info.value.field == "avatar"

    @pytest.mark.parametrize(
        ("full_name", "email", "username", "password", "field"),
        [
            ("", "e@example.com", "u", "pw", "fullName"),
            ("Name", "  ", "u", "pw", "email"),
            ("Name", "no-at-sign", "u", "pw", "email"),
            ("Name", "e@example.com", None, "pw", "username"),
            ("Name", "e@example.com", "u", "", "password"),
        ],
    )
    async def test_field_validation(self, accounts, tmp_path, full_name, email, username, password, field):
        with pytest.raises(InvalidInputError) as exc_info:
            await accounts.register(full_name, email, username, password, _staged(tmp_path, "a.png"))
        assert exc_info.value.field == field

    @pytest.mark.parametrize(
        ("full_name", "email", "username", "field"),
        [
            ("N" * 101, "e@example.com", "u", "fullName"),
            ("Name", "e" * 250 + "@example.com", "u", "email"),
            ("Name", "e@example.com", "u" * 51, "username"),
        ],
    )
    async def test_fields_longer_than_their_columns(
        self, accounts, db_session, tmp_path, full_name, email, username, field
    ):
        with pytest.raises(InvalidInputError) as exc_info:
            await accounts.register(full_name, email, username, "pw", _staged(tmp_path, "a.png"))
        assert exc_info.value.field == field
        assert await _count(db_session, User.id) == 0

    async def test_longest_allowed_username(self, accounts, tmp_path):
        user, _ = await accounts.register("Name", "e@example.com", "u" * 50, "pw", _staged(tmp_path, "a.png"))
        assert len(user.username) == 50

    async def test_password_is_not_trimmed(self, accounts, tmp_path):
        await accounts.register("Dan", "dan@example.com", "dan", "  secret123  ", _staged(tmp_path, "a.png"))

        with pytest.raises(UnauthenticatedError):
            await accounts.login("dan", None, "secret123")
        user, _ = await accounts.login("dan", None, "  secret123  ")
        assert user.username == "dan"

    async def test_taken_username_or_email(self, accounts, alice, media_store, tmp_path):
        with pytest.raises(ConflictError):
            await accounts.register("Other", "other@example.com", "ALICE", "pw", _staged(tmp_path, "a.png"))
        with pytest.raises(ConflictError):
            await accounts.register("Other", "alice@example.com", "other", "pw", _staged(tmp_path, "a.png"))
        assert media_store.objects == {}

    async def test_avatar_upload_failure(self, accounts, db_session, media_store, tmp_path):
        media_store.fail_folders.add("avatars")

        with pytest.raises(InternalError):
            await accounts.register("Eve", "eve@example.com", "eve", "pw", _staged(tmp_path, "a.png"))
        assert await _count(db_session, User.id) == 0

    async def test_cover_failure_releases_avatar(self, accounts, media_store, released, tmp_path):
        media_store.fail_folders.add("covers")

        with pytest.raises(InternalError):
            await accounts.register(
                "Eve", "eve@example.com", "eve", "pw", _staged(tmp_path, "a.png"), _staged(tmp_path, "c.png")
            )
        assert len(released.released) == 1
        assert released.released[0].startswith("https://media.test/avatars/")


# ================================
# Login & Credentials
# ================================

@pytest.mark.asyncio
class TestLogin:
    async def test_login_by_username_or_email(self, accounts, alice):
        by_username, _ = await accounts.login("Alice", None, TEST_PASSWORD)
        by_email, _ = await accounts.login(None, "ALICE@example.com", TEST_PASSWORD)

        assert by_username.id == alice.id
        assert by_email.id == alice.id

    async def test_wrong_password(self, accounts, alice):
        with pytest.raises(UnauthenticatedError):
            await accounts.login("alice", None, "wrong")

    async def test_unknown_user(self, accounts):
        with pytest.raises(UnauthenticatedError):
            await accounts.login("nobody", None, TEST_PASSWORD)

    async def test_needs_an_identifier(self, accounts):
        with pytest.raises(InvalidInputError):
            await accounts.login(None, "", TEST_PASSWORD)

    async def test_logout_revokes_session(self, accounts, alice):
        await accounts.login("alice", None, TEST_PASSWORD)
        await accounts.logout(alice)
        assert alice.refresh_token is None


@pytest.mark.asyncio
class TestProfileChanges:
    async def test_change_password(self, accounts, alice):
        await accounts.change_password(alice, TEST_PASSWORD, "new-password")

        assert verify_password("new-password", alice.password_hash)
        _, tokens = await accounts.login("alice", None, "new-password")
        assert tokens.access_token

    async def test_change_password_wrong_current(self, accounts, alice):
        with pytest.raises(UnauthenticatedError) as exc_info:
            await accounts.change_password(alice, "not-it", "new-password")
        assert exc_info.value.field == "oldPassword"

    async def test_update_details(self, accounts, alice, make_video):
        video = await make_video(alice)

        user = await accounts.update_account_details(alice, full_name="Alice A.", email="NEW@example.com")

        assert user.display_name == "Alice A."
        assert user.email == "new@example.com"
        # Denormalized copies keep the old name
        assert video.owner_channel_name == "Alice Anders"

    async def test_update_details_too_long_name(self, accounts, alice):
        with pytest.raises(InvalidInputError) as exc_info:
            await accounts.update_account_details(alice, full_name="A" * 101)
        assert exc_info.value.field == "fullName"

    async def test_change_password_keeps_surrounding_spaces(self, accounts, alice):
        await accounts.change_password(alice, TEST_PASSWORD, " padded ")

        assert verify_password(" padded ", alice.password_hash)
        assert not verify_password("padded", alice.password_hash)

    async def test_update_details_needs_a_field(self, accounts, alice):
        with pytest.raises(InvalidInputError):
            await accounts.update_account_details(alice, full_name="  ", email=None)

    async def test_update_to_taken_email(self, accounts, alice, bob):
        with pytest.raises(ConflictError):
            await accounts.update_account_details(alice, email="bob@example.com")

    async def test_replace_avatar_releases_old(self, accounts, alice, released, tmp_path):
        old = alice.avatar_url

        user = await accounts.update_avatar(alice, _staged(tmp_path, "new.png"))

        assert user.avatar_url != old
        assert released.released == [old]

    async def test_set_cover_for_the_first_time(self, accounts, alice, released, tmp_path):
        user = await accounts.update_cover(alice, _staged(tmp_path, "cover.png"))

        assert user.cover_url.startswith("https://media.test/covers/")
        assert released.released == []

    async def test_image_required(self, accounts, alice):
        with pytest.raises(InvalidInputError) as exc_info:
            await accounts.update_cover(alice, None)
        assert exc_info.value.field == "coverImage"


# ================================
# Account Deletion
# ================================

@pytest.fixture
def populated(db_session, alice, bob, make_video):
    """
    Alice and Bob interact with each other's content.

    Returns the ids of the rows that must survive Alice's deletion.
    """

    async def _populate():
        alice_video = await make_video(alice, "Alice's video")
        bob_video = await make_video(bob, "Bob's video")
        comments = CommentService(db_session)
        likes = LikeService(db_session)
        subs = SubscriptionService(db_session)

        bob_on_alice = await comments.add_comment(bob, alice_video.id, "bob was here")
        alice_on_bob = await comments.add_comment(alice, bob_video.id, "alice was here")
        bob_on_bob = await comments.add_comment(bob, bob_video.id, "my own video")

        await likes.toggle_like(bob, LikeTarget.video(alice_video.id))
        await likes.toggle_like(bob, LikeTarget.comment(bob_on_alice.id))
        await likes.toggle_like(bob, LikeTarget.comment(alice_on_bob.id))
        await likes.toggle_like(alice, LikeTarget.video(bob_video.id))
        await likes.toggle_like(alice, LikeTarget.comment(bob_on_bob.id))
        await likes.toggle_like(bob, LikeTarget.video(bob_video.id))

        await subs.toggle_subscription(alice, bob.id)
        await subs.toggle_subscription(bob, alice.id)

        await PlaylistService(db_session).create_playlist(alice, "Alice mix", "desc", [str(bob_video.id)])
        await PlaylistService(db_session).create_playlist(bob, "Bob mix", "desc", [str(alice_video.id)])

        return {
            "alice_id": alice.id,
            "bob_id": bob.id,
            "bob_video_id": bob_video.id,
            "bob_on_bob_id": bob_on_bob.id,
            "assets": [alice.avatar_url, alice_video.media_url, alice_video.thumbnail_url],
        }

    return _populate


@pytest.mark.asyncio
class TestDeleteAccount:
    async def test_cascade(self, accounts, db_session, alice, populated, released):
        ids = await populated()

        await accounts.delete_account(alice)

        users = (await db_session.execute(select(User.id))).scalars().all()
        assert users == [ids["bob_id"]]
        videos = (await db_session.execute(select(Video.id))).scalars().all()
        assert videos == [ids["bob_video_id"]]
        comments = (await db_session.execute(select(Comment.id))).scalars().all()
        assert comments == [ids["bob_on_bob_id"]]
        # Only Bob's like on his own video survives
        likes = (await db_session.execute(select(Like.liked_by_id, Like.video_id))).all()
        assert likes == [(ids["bob_id"], ids["bob_video_id"])]
        assert await _count(db_session, Subscription.id) == 0
        playlists = (await db_session.execute(select(Playlist.name))).scalars().all()
        assert playlists == ["Bob mix"]

        assert set(released.released) == set(ids["assets"])

    async def test_failed_step_rolls_back_everything(self, accounts, db_session, alice, populated, released, monkeypatch):
        ids = await populated()
        counts_before = {
            model.__name__: await _count(db_session, model.id)
            for model in (User, Video, Comment, Like, Subscription, Playlist)
        }
        original_run_step = AccountService._run_step

        async def failing_run_step(self, name, statement):
            if name == "playlists":
                raise RuntimeError("connection lost")
            await original_run_step(self, name, statement)

        monkeypatch.setattr(AccountService, "_run_step", failing_run_step)

        with pytest.raises(InternalError):
            await accounts.delete_account(alice)

        counts_after = {
            model.__name__: await _count(db_session, model.id)
            for model in (User, Video, Comment, Like, Subscription, Playlist)
        }
        assert counts_after == counts_before
        still_there = await db_session.execute(select(User.id).where(User.id == ids["alice_id"]))
        assert still_there.scalar_one_or_none() == ids["alice_id"]
        assert released.released == []


def test_cascade_order_ends_with_user():
    names = [name for name, _ in AccountService.cascade_steps(uuid.uuid4())]

    assert names[-1] == "user"
    assert names.index("likes_on_comments_of_own_videos") < names.index("comments_on_own_videos")
    assert names.index("comments_on_own_videos") < names.index("own_videos")
    assert names.index("likes_on_own_comments") < names.index("own_comments")
