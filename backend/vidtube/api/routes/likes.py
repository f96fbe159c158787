"""Like toggles for videos and comments."""

import uuid

from fastapi import APIRouter

from vidtube.core.auth import CurrentUser
from vidtube.db.deps import DBSession
from vidtube.models import LikeTarget
from vidtube.schemas import ApiResponse, ToggleResult
from vidtube.services.likes import LikeService

router = APIRouter(prefix="/likes", tags=["likes"])


def _message(result: ToggleResult, noun: str) -> str:
    return f"{noun} liked" if result.active else f"{noun} unliked"


@router.post("/toggle/v/{video_id}", response_model=ApiResponse[ToggleResult])
async def toggle_video_like(video_id: uuid.UUID, current_user: CurrentUser, db: DBSession):
    result = await LikeService(db).toggle_like(current_user, LikeTarget.video(video_id))
    return ApiResponse.ok(result, _message(result, "Video"))


@router.post("/toggle/c/{comment_id}", response_model=ApiResponse[ToggleResult])
async def toggle_comment_like(comment_id: uuid.UUID, current_user: CurrentUser, db: DBSession):
    result = await LikeService(db).toggle_like(current_user, LikeTarget.comment(comment_id))
    return ApiResponse.ok(result, _message(result, "Comment"))
