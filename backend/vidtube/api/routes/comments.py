"""Comment endpoints: list and add under a video, edit and delete by id."""

import uuid
from typing import Optional

from fastapi import APIRouter, Query, status

from vidtube.core.auth import CurrentUser, OptionalUser
from vidtube.db.deps import DBSession
from vidtube.schemas import ApiResponse, CommentBody, CommentOut, CommentWithLikes, Page
from vidtube.services.comments import CommentService
from vidtube.services.views import ViewComposer

router = APIRouter(prefix="/comments", tags=["comments"])


@router.get("/{video_id}", response_model=ApiResponse[Page[CommentWithLikes]])
async def get_video_comments(
    video_id: uuid.UUID,
    viewer: OptionalUser,
    db: DBSession,
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
):
    """Newest first, each with its like count and whether the viewer liked it."""
    comments = await ViewComposer(db).comments(video_id, viewer, page=page, limit=limit)
    return ApiResponse.ok(comments, "Comments fetched successfully")


@router.post("/{video_id}", response_model=ApiResponse[CommentOut], status_code=status.HTTP_201_CREATED)
async def add_comment(video_id: uuid.UUID, payload: CommentBody, current_user: CurrentUser, db: DBSession):
    comment = await CommentService(db).add_comment(current_user, video_id, payload.content)
    return ApiResponse.ok(
        CommentOut.model_validate(comment),
        "Comment added successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.patch("/c/{comment_id}", response_model=ApiResponse[CommentOut])
async def edit_comment(comment_id: uuid.UUID, payload: CommentBody, current_user: CurrentUser, db: DBSession):
    """
    Replace a comment's content.

    Sending the content already stored succeeds with "No changes made".
    """
    outcome = await CommentService(db).edit_comment(current_user, comment_id, payload.content)
    message = "Comment updated successfully" if outcome.changed else "No changes made"
    return ApiResponse.ok(CommentOut.model_validate(outcome.comment), message)


@router.delete("/c/{comment_id}", response_model=ApiResponse[dict])
async def delete_comment(comment_id: uuid.UUID, current_user: CurrentUser, db: DBSession):
    await CommentService(db).delete_comment(current_user, comment_id)
    return ApiResponse.ok({}, "Comment deleted successfully")
