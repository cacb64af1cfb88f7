"""API routes package."""

from app.api.routes import chat, kids

__all__ = [
    "chat",
    "kids",
]
