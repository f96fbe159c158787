"""
Account and session endpoints.

This module provides:
- Registration (multipart, avatar required) and login
- Logout and refresh-token rotation
- Password, profile and image changes
- Account deletion
- Channel page and watch history

Session Cookies:
----------------
Register, login and refresh set ``accessToken`` and ``refreshToken`` as
httponly cookies and also return both tokens in the body. Protected
endpoints accept either the cookie or ``Authorization: Bearer <token>``.

References:
-----------
- FastAPI Security: https://fastapi.tiangolo.com/tutorial/security/oauth2-jwt/
- FastAPI Forms and Files: https://fastapi.tiangolo.com/tutorial/request-forms-and-files/
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status

from vidtube.api.cookies import clear_session_cookies, set_session_cookies
from vidtube.api.deps import MediaStoreDep, ReleaserDep
from vidtube.api.uploads import staged_uploads
from vidtube.core.auth import REFRESH_COOKIE, CurrentUser, OptionalUser, oauth2_scheme
from vidtube.core.logging import get_logger
from vidtube.core.rate_limit import auth_rate_limit
from vidtube.db.deps import DBSession
from vidtube.schemas import (
    ApiResponse,
    AuthPayload,
    ChangePasswordRequest,
    ChannelProfile,
    LoginRequest,
    RefreshRequest,
    UpdateAccountRequest,
    UserPublic,
    WatchHistoryEntry,
)
from vidtube.services.accounts import AccountService
from vidtube.services.sessions import SessionManager, TokenPair
from vidtube.services.views import ViewComposer

logger = get_logger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _auth_payload(user, tokens: TokenPair) -> AuthPayload:
    return AuthPayload(
        user=UserPublic.model_validate(user),
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )


# ================================
# Registration & Login
# ================================

@router.post(
    "/register",
    response_model=ApiResponse[AuthPayload],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth_rate_limit)],
)
async def register(
    response: Response,
    db: DBSession,
    store: MediaStoreDep,
    release_assets: ReleaserDep,
    full_name: Annotated[Optional[str], Form(alias="fullName")] = None,
    email: Annotated[Optional[str], Form()] = None,
    username: Annotated[Optional[str], Form()] = None,
    password: Annotated[Optional[str], Form()] = None,
    avatar: Annotated[Optional[UploadFile], File()] = None,
    cover_image: Annotated[Optional[UploadFile], File(alias="coverImage")] = None,
):
    """
    Register a new account and start a session.

    Request Format:
    ---------------
    Content-Type: multipart/form-data

    fullName, email, username, password, avatar (file), coverImage (file, optional)

    Errors:
    -------
    - 400: missing field, email without '@', no avatar
    - 409: email or username already registered
    - 500: the media store rejected an upload
    """
    service = AccountService(db, store, release_assets)
    async with staged_uploads(avatar=avatar, cover=cover_image) as files:
        user, tokens = await service.register(
            full_name=full_name,
            email=email,
            username=username,
            password=password,
            avatar=files["avatar"],
            cover=files["cover"],
        )

    set_session_cookies(response, tokens)
    return ApiResponse.ok(
        _auth_payload(user, tokens),
        "User registered successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.post(
    "/login",
    response_model=ApiResponse[AuthPayload],
    dependencies=[Depends(auth_rate_limit)],
)
async def login(payload: LoginRequest, response: Response, db: DBSession):
    """
    Log in with username or email plus password.

    Failed logins do not reveal whether the account exists.
    """
    user, tokens = await AccountService(db).login(
        username=payload.username,
        email=payload.email,
        password=payload.password,
    )
    set_session_cookies(response, tokens)
    return ApiResponse.ok(_auth_payload(user, tokens), "User logged in successfully")


@router.post("/logout", response_model=ApiResponse[dict])
async def logout(response: Response, current_user: CurrentUser, db: DBSession):
    await AccountService(db).logout(current_user)
    clear_session_cookies(response)
    return ApiResponse.ok({}, "User logged out successfully")


@router.post(
    "/refresh-token",
    response_model=ApiResponse[AuthPayload],
    dependencies=[Depends(auth_rate_limit)],
)
async def refresh_token(
    request: Request,
    response: Response,
    db: DBSession,
    bearer_token: Annotated[Optional[str], Depends(oauth2_scheme)],
    payload: Optional[RefreshRequest] = None,
):
    """
    Rotate the session.

    The refresh token is read from the ``refreshToken`` cookie, then the
    ``refreshToken`` body field, then the Bearer header. Only the most
    recently issued refresh token is accepted; using an older one fails with
    401 even if it has not expired.
    """
    token = (
        request.cookies.get(REFRESH_COOKIE)
        or (payload.refresh_token if payload else None)
        or bearer_token
    )
    user, tokens = await SessionManager(db).refresh(token)
    set_session_cookies(response, tokens)
    return ApiResponse.ok(_auth_payload(user, tokens), "Access token refreshed")


# ================================
# Current User
# ================================

@router.get("/me", response_model=ApiResponse[UserPublic])
async def get_me(current_user: CurrentUser):
    return ApiResponse.ok(UserPublic.model_validate(current_user), "Current user fetched successfully")


@router.post("/change-password", response_model=ApiResponse[dict])
async def change_password(payload: ChangePasswordRequest, current_user: CurrentUser, db: DBSession):
    await AccountService(db).change_password(
        current_user,
        current_password=payload.old_password,
        new_password=payload.new_password,
    )
    return ApiResponse.ok({}, "Password changed successfully")


@router.patch("/me", response_model=ApiResponse[UserPublic])
async def update_account(payload: UpdateAccountRequest, current_user: CurrentUser, db: DBSession):
    """
    Update display name and/or email.

    Existing videos and comments keep the channel name they were posted with.
    """
    user = await AccountService(db).update_account_details(
        current_user,
        full_name=payload.full_name,
        email=payload.email,
    )
    return ApiResponse.ok(UserPublic.model_validate(user), "Account details updated successfully")


@router.patch("/me/avatar", response_model=ApiResponse[UserPublic])
async def update_avatar(
    current_user: CurrentUser,
    db: DBSession,
    store: MediaStoreDep,
    release_assets: ReleaserDep,
    avatar: Annotated[Optional[UploadFile], File()] = None,
):
    service = AccountService(db, store, release_assets)
    async with staged_uploads(avatar=avatar) as files:
        user = await service.update_avatar(current_user, files["avatar"])
    return ApiResponse.ok(UserPublic.model_validate(user), "Avatar updated successfully")


@router.patch("/me/cover", response_model=ApiResponse[UserPublic])
async def update_cover(
    current_user: CurrentUser,
    db: DBSession,
    store: MediaStoreDep,
    release_assets: ReleaserDep,
    cover_image: Annotated[Optional[UploadFile], File(alias="coverImage")] = None,
):
    service = AccountService(db, store, release_assets)
    async with staged_uploads(cover=cover_image) as files:
        user = await service.update_cover(current_user, files["cover"])
    return ApiResponse.ok(UserPublic.model_validate(user), "Cover image updated successfully")


@router.delete("/me", response_model=ApiResponse[dict])
async def delete_account(
    response: Response,
    current_user: CurrentUser,
    db: DBSession,
    release_assets: ReleaserDep,
):
    """
    Delete the account and everything it owns.

    All rows go in one transaction; on any failure nothing is deleted and the
    response is a 500. Media files are removed in the background afterwards.
    """
    await AccountService(db, release_assets=release_assets).delete_account(current_user)
    clear_session_cookies(response)
    return ApiResponse.ok({}, "Account deleted successfully")


# ================================
# Channel & History
# ================================

@router.get("/channel/{username}", response_model=ApiResponse[ChannelProfile])
async def get_channel(username: str, viewer: OptionalUser, db: DBSession):
    profile = await ViewComposer(db).channel_view(username, viewer)
    return ApiResponse.ok(profile, "Channel fetched successfully")


@router.get("/history", response_model=ApiResponse[list[WatchHistoryEntry]])
async def get_watch_history(current_user: CurrentUser, db: DBSession):
    """
    Watch history, most recent first.

    An empty history is HTTP 200 with envelope ``statusCode`` 204.
    """
    entries = await ViewComposer(db).watch_history(current_user)
    if not entries:
        return ApiResponse.ok([], "Watch history is empty", status_code=status.HTTP_204_NO_CONTENT)
    return ApiResponse.ok(entries, "Watch history fetched successfully")
