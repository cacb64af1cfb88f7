"""Pydantic schemas for chat operations."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.base import BaseSchema, IDMixin, OwnerMixin, TimestampMixin


# Request schemas
class ChatMessageRequest(BaseModel):
    """Request to send a chat message. Length is checked by the chat service."""

    message: str


# Response schemas
class ConversationStartResponse(BaseModel):
    """Id of a newly started conversation."""

    conversation_id: UUID


class ChatAnswerResponse(BaseModel):
    """Lexi's reply to one turn."""

    conversation_id: UUID
    answer: str


class ContentBlockResponse(BaseModel):
    """One content block of a message."""

    type: str
    text: str


class ChatMessageResponse(BaseSchema, IDMixin):
    """Chat message response."""

    conversation_id: UUID
    role: str
    content: list[ContentBlockResponse] = Field(min_length=1)
    created_at: datetime


class ConversationResponse(BaseSchema, IDMixin, OwnerMixin, TimestampMixin):
    """Conversation response."""


class ConversationWithMessages(ConversationResponse):
    """Conversation with message history in chronological order."""

    messages: list[ChatMessageResponse]
