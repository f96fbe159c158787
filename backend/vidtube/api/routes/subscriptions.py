"""Subscription toggle and the caller's subscribed channels."""

import uuid
from typing import Optional

from fastapi import APIRouter, Query

from vidtube.core.auth import CurrentUser
from vidtube.db.deps import DBSession
from vidtube.schemas import ApiResponse, SubscribedChannels, ToggleResult
from vidtube.services.subscriptions import SubscriptionService
from vidtube.services.views import ViewComposer

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@router.post("/c/{channel_id}", response_model=ApiResponse[ToggleResult])
async def toggle_subscription(channel_id: uuid.UUID, current_user: CurrentUser, db: DBSession):
    """Subscribe if not subscribed, unsubscribe otherwise. Subscribing to yourself is a 400."""
    result = await SubscriptionService(db).toggle_subscription(current_user, channel_id)
    message = "Subscribed successfully" if result.active else "Unsubscribed successfully"
    return ApiResponse.ok(result, message)


@router.get("/channels", response_model=ApiResponse[SubscribedChannels])
async def get_subscribed_channels(
    current_user: CurrentUser,
    db: DBSession,
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
):
    channels = await ViewComposer(db).subscribed_channels(current_user, page=page, limit=limit)
    return ApiResponse.ok(channels, "Subscribed channels fetched successfully")
