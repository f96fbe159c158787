"""
API route modules.

Import all route modules here for easy access.
"""

from vidtube.api.routes import comments, dashboard, likes, playlists, subscriptions, users, videos

__all__ = ["comments", "dashboard", "likes", "playlists", "subscriptions", "users", "videos"]
