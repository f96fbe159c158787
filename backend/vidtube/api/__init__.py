"""
API routes initialization.

This module aggregates all API routers and provides a single router
to include in the main application.
"""

from fastapi import APIRouter

from vidtube.api.routes import comments, dashboard, likes, playlists, subscriptions, users, videos

api_router = APIRouter()

api_router.include_router(users.router)
api_router.include_router(videos.router)
api_router.include_router(comments.router)
api_router.include_router(likes.router)
api_router.include_router(subscriptions.router)
api_router.include_router(playlists.router)
api_router.include_router(dashboard.router)
