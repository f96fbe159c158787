"""Application services: sessions, read views and mutations."""
