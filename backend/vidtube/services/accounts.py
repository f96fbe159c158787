"""
Account Lifecycle

Registration, login/logout, credential and profile changes, and account
deletion.

Account deletion:
-----------------
The one multi-table write in the application. Everything the user owns or
touched goes in a single transaction, children before parents:

    1. likes on comments under the user's videos
    2. comments under the user's videos
    3. likes on the user's videos
    4. the user's videos
    5. likes on comments the user wrote elsewhere
    6. comments the user wrote
    7. likes the user gave
    8. the user's playlists
    9. subscriptions where the user is subscriber or channel
   10. the user

Either all of it commits or none of it does; a failure surfaces as a single
InternalError. The user's blobs (avatar, cover, each video's file and
thumbnail) are released after the commit, best-effort, outside the
transaction.
"""

from typing import Optional

from sqlalchemy import Delete, delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.core.errors import (
    ConflictError,
    InternalError,
    InvalidInputError,
    UnauthenticatedError,
)
from vidtube.core.logging import get_logger
from vidtube.core.security import get_password_hash, verify_password
from vidtube.db.deps import DBTransaction
from vidtube.models import (
    Comment,
    Like,
    Playlist,
    Subscription,
    User,
    Video,
    normalize_identifier,
)
from vidtube.services.media import AssetReleaser, MediaStore, StagedFile, upload_staged
from vidtube.services.sessions import SessionManager, TokenPair

logger = get_logger(__name__)

AVATAR_FOLDER = "avatars"
COVER_FOLDER = "covers"

# Column sizes on the users table
USERNAME_MAX_LENGTH = 50
DISPLAY_NAME_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 255


def _check_length(value: str, field: str, label: str, max_length: Optional[int]) -> None:
    if max_length is not None and len(value) > max_length:
        raise InvalidInputError(f"{label} must be at most {max_length} characters", field=field)


def _require(value: Optional[str], field: str, label: str, max_length: Optional[int] = None) -> str:
    if value is None or not value.strip():
        raise InvalidInputError(f"{label} is required", field=field)
    value = value.strip()
    _check_length(value, field, label, max_length)
    return value


def _require_password(value: Optional[str], field: str, label: str) -> str:
    """Presence only; the password reaches bcrypt exactly as typed."""
    if value is None or not value.strip():
        raise InvalidInputError(f"{label} is required", field=field)
    return value


def _validate_email(email: str) -> str:
    email = normalize_identifier(email)
    _check_length(email, "email", "Email", EMAIL_MAX_LENGTH)
    if "@" not in email:
        raise InvalidInputError("Email must contain '@'", field="email")
    return email


class AccountService:
    def __init__(
        self,
        db: AsyncSession,
        store: Optional[MediaStore] = None,
        release_assets: Optional[AssetReleaser] = None,
    ):
        self.db = db
        self.store = store
        self.release_assets = release_assets or (lambda urls: None)
        self.sessions = SessionManager(db)

    # ========================================
    # Registration & Login
    # ========================================

    async def register(
        self,
        full_name: Optional[str],
        email: Optional[str],
        username: Optional[str],
        password: Optional[str],
        avatar: Optional[StagedFile],
        cover: Optional[StagedFile] = None,
    ) -> tuple[User, TokenPair]:
        """
        Create an account and log it in.

        Raises:
            InvalidInputError: missing field, email without '@', no avatar
            ConflictError: email or username already taken
            InternalError: avatar / cover upload failed
        """
        full_name = _require(full_name, "fullName", "Full name", DISPLAY_NAME_MAX_LENGTH)
        email = _validate_email(_require(email, "email", "Email"))
        username = normalize_identifier(_require(username, "username", "Username", USERNAME_MAX_LENGTH))
        password = _require_password(password, "password", "Password")
        if avatar is None:
            raise InvalidInputError("Avatar file is required", field="avatar")

        existing = await self.db.execute(
            select(User.id).where(or_(User.username == username, User.email == email)).limit(1)
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("User with email or username already exists")

        avatar_url = (await upload_staged(self.store, avatar, folder=AVATAR_FOLDER)).url
        cover_url = None
        if cover is not None:
            try:
                cover_url = (await upload_staged(self.store, cover, folder=COVER_FOLDER)).url
            except Exception:
                self.release_assets([avatar_url])
                raise

        user = User(
            username=username,
            email=email,
            password_hash=get_password_hash(password),
            display_name=full_name,
            avatar_url=avatar_url,
            cover_url=cover_url,
            watch_history=[],
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration; the unique index caught it
            await self.db.rollback()
            self.release_assets([avatar_url, cover_url])
            logger.warning("registration_conflict", username=username)
            raise ConflictError("User with email or username already exists") from None

        logger.info("user_registered", user_id=str(user.id), username=username)
        return user, await self.sessions.issue(user)

    async def login(
        self,
        username: Optional[str],
        email: Optional[str],
        password: Optional[str],
    ) -> tuple[User, TokenPair]:
        """
        Raises:
            InvalidInputError: neither username nor email, or no password
            UnauthenticatedError: unknown user or wrong password
        """
        username = normalize_identifier(username or "")
        email = normalize_identifier(email or "")
        if not username and not email:
            raise InvalidInputError("Username or email is required")
        password = _require_password(password, "password", "Password")

        conditions = []
        if username:
            conditions.append(User.username == username)
        if email:
            conditions.append(User.email == email)
        result = await self.db.execute(select(User).where(or_(*conditions)).limit(1))
        user = result.scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            logger.warning("login_failed", username=username or None, email=email or None)
            raise UnauthenticatedError("Invalid user credentials")

        logger.info("user_logged_in", user_id=str(user.id))
        return user, await self.sessions.issue(user)

    async def logout(self, user: User) -> None:
        await self.sessions.revoke(user)

    # ========================================
    # Credentials & Profile
    # ========================================

    async def change_password(
        self,
        user: User,
        current_password: Optional[str],
        new_password: Optional[str],
    ) -> None:
        """
        Raises:
            InvalidInputError: either password missing
            UnauthenticatedError: current password does not verify
        """
        current_password = _require_password(current_password, "oldPassword", "Current password")
        new_password = _require_password(new_password, "newPassword", "New password")

        if not verify_password(current_password, user.password_hash):
            raise UnauthenticatedError("Invalid old password", field="oldPassword")

        user.password_hash = get_password_hash(new_password)
        await self.db.commit()
        logger.info("password_changed", user_id=str(user.id))

    async def update_account_details(
        self,
        user: User,
        full_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> User:
        """
        Change display name and/or email.

        Videos and comments keep the channel name they were created with.

        Raises:
            InvalidInputError: neither field given, or email without '@'
            ConflictError: email belongs to another account
        """
        full_name = full_name.strip() if full_name and full_name.strip() else None
        email = _validate_email(email) if email and email.strip() else None
        if full_name is None and email is None:
            raise InvalidInputError("Provide a full name or an email to update")
        if full_name is not None:
            _check_length(full_name, "fullName", "Full name", DISPLAY_NAME_MAX_LENGTH)

        if email is not None and email != user.email:
            taken = await self.db.execute(
                select(User.id).where(User.email == email, User.id != user.id).limit(1)
            )
            if taken.scalar_one_or_none() is not None:
                raise ConflictError("Email is already in use", field="email")
            user.email = email
        if full_name is not None:
            user.display_name = full_name

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Email is already in use", field="email") from None

        logger.info("account_updated", user_id=str(user.id))
        return user

    async def _replace_image(self, user: User, staged: Optional[StagedFile], attr: str, folder: str, field: str) -> User:
        if staged is None:
            raise InvalidInputError(f"{field} file is required", field=field)

        uploaded = await upload_staged(self.store, staged, folder=folder)
        previous = getattr(user, attr)
        setattr(user, attr, uploaded.url)
        await self.db.commit()
        logger.info("profile_image_updated", user_id=str(user.id), image=attr)

        # Old image removal never fails the update
        if previous:
            self.release_assets([previous])
        return user

    async def update_avatar(self, user: User, avatar: Optional[StagedFile]) -> User:
        return await self._replace_image(user, avatar, "avatar_url", AVATAR_FOLDER, "avatar")

    async def update_cover(self, user: User, cover: Optional[StagedFile]) -> User:
        return await self._replace_image(user, cover, "cover_url", COVER_FOLDER, "coverImage")

    # ========================================
    # Account Deletion
    # ========================================

    @staticmethod
    def cascade_steps(user_id) -> list[tuple[str, Delete]]:
        """Ordered (name, DELETE) pairs removing everything tied to ``user_id``."""
        own_videos = select(Video.id).where(Video.owner_id == user_id)
        comments_on_own_videos = select(Comment.id).where(Comment.video_id.in_(own_videos))
        own_comments = select(Comment.id).where(Comment.owner_id == user_id)

        return [
            ("likes_on_comments_of_own_videos", delete(Like).where(Like.comment_id.in_(comments_on_own_videos))),
            ("comments_on_own_videos", delete(Comment).where(Comment.video_id.in_(own_videos))),
            ("likes_on_own_videos", delete(Like).where(Like.video_id.in_(own_videos))),
            ("own_videos", delete(Video).where(Video.owner_id == user_id)),
            ("likes_on_own_comments", delete(Like).where(Like.comment_id.in_(own_comments))),
            ("own_comments", delete(Comment).where(Comment.owner_id == user_id)),
            ("likes_given", delete(Like).where(Like.liked_by_id == user_id)),
            ("playlists", delete(Playlist).where(Playlist.owner_id == user_id)),
            (
                "subscriptions",
                delete(Subscription).where(
                    or_(Subscription.subscriber_id == user_id, Subscription.channel_id == user_id)
                ),
            ),
            ("user", delete(User).where(User.id == user_id)),
        ]

    async def _run_step(self, name: str, statement: Delete) -> None:
        result = await self.db.execute(statement.execution_options(synchronize_session="fetch"))
        logger.debug("account_delete_step", step=name, rows=result.rowcount)

    async def delete_account(self, user: User) -> None:
        """
        Delete the user and everything they own in one transaction.

        Raises:
            InternalError: any step failed; nothing was deleted
        """
        user_id = user.id
        video_assets = await self.db.execute(
            select(Video.media_url, Video.thumbnail_url).where(Video.owner_id == user_id)
        )
        assets = [user.avatar_url, user.cover_url]
        for media_url, thumbnail_url in video_assets.all():
            assets.extend([media_url, thumbnail_url])

        try:
            async with DBTransaction(self.db):
                for name, statement in self.cascade_steps(user_id):
                    await self._run_step(name, statement)
        except Exception as e:
            logger.error(
                "account_delete_failed",
                user_id=str(user_id),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise InternalError("Failed to delete account") from e

        logger.info("account_deleted", user_id=str(user_id), released_assets=len([a for a in assets if a]))
        self.release_assets(assets)
