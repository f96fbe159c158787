"""Creator dashboard for the signed-in user's own channel."""

from typing import Optional

from fastapi import APIRouter, Query

from vidtube.core.auth import CurrentUser
from vidtube.db.deps import DBSession
from vidtube.schemas import ApiResponse, ChannelVideo, DashboardStats, Page
from vidtube.services.views import ViewComposer

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=ApiResponse[DashboardStats])
async def get_channel_stats(current_user: CurrentUser, db: DBSession):
    """Totals over every video the user uploaded, public and private."""
    stats = await ViewComposer(db).dashboard_stats(current_user)
    return ApiResponse.ok(stats, "Channel stats fetched successfully")


@router.get("/videos", response_model=ApiResponse[Page[ChannelVideo]])
async def get_channel_videos(
    current_user: CurrentUser,
    db: DBSession,
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    sort_by: str = Query("createdAt", alias="sortBy"),
    order: str = Query("desc"),
):
    videos = await ViewComposer(db).channel_videos(
        current_user.id, page=page, limit=limit, sort_by=sort_by, order=order
    )
    return ApiResponse.ok(videos, "Channel videos fetched successfully")
