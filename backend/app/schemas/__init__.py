"""Pydantic schemas for API request/response validation."""

from app.schemas.chat import (
    ChatAnswerResponse,
    ChatMessageRequest,
    ChatMessageResponse,
    ConversationResponse,
    ConversationStartResponse,
    ConversationWithMessages,
)
from app.schemas.stats import (
    EngagementStats,
    StatsRequest,
    StatsResponse,
    TargetsRead,
    TargetsUpdate,
)

__all__ = [
    # Chat
    "ChatAnswerResponse",
    "ChatMessageRequest",
    "ChatMessageResponse",
    "ConversationResponse",
    "ConversationStartResponse",
    "ConversationWithMessages",
    # Stats
    "EngagementStats",
    "StatsRequest",
    "StatsResponse",
    "TargetsRead",
    "TargetsUpdate",
]
