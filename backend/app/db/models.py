"""
SQLAlchemy 2.0 Models for Lexi.

Uses modern declarative syntax with Mapped[] type annotations.
All models use UUID primary keys and proper relationship definitions.
Column types are dialect-neutral (Uuid, JSON, UTCDateTime) so the same
metadata runs on Postgres in production and SQLite in tests.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, UTCDateTime, utcnow


# =============================================================================
# ENUMS
# =============================================================================


class UserRole(str, PyEnum):
    """Account type."""

    PARENT = "parent"
    KID = "kid"


class ChatRole(str, PyEnum):
    """Role in chat conversation. Only these two are ever persisted."""

    USER = "user"
    ASSISTANT = "assistant"


# =============================================================================
# MODELS
# =============================================================================


class User(Base):
    """
    Account referenced by the chat core.

    Registration, login and profile editing live in the account service; this
    table carries only what the chat core reads: the owner id, the prompt
    personalisation fields, the parent link and the engagement targets.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('parent', 'kid')", name="valid_user_role"),
        Index("idx_users_parent_id", "parent_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid(), primary_key=True, default=uuid4)
    full_name: Mapped[str] = mapped_column(String(50), nullable=False)
    role: Mapped[str] = mapped_column(String(10), nullable=False, default=UserRole.PARENT.value)
    parent_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid(), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    grade: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # school class, e.g. "3"
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    daily_target: Mapped[int] = mapped_column(nullable=False, default=2)
    weekly_target: Mapped[int] = mapped_column(nullable=False, default=10)
    # Last offset reported by the client (JS getTimezoneOffset convention)
    timezone_offset_minutes: Mapped[int] = mapped_column(nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False
    )

    # Relationships
    chat_conversations: Mapped[list["ChatConversation"]] = relationship(
        "ChatConversation", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def first_name(self) -> str:
        return self.full_name.split(" ")[0]


class ChatConversation(Base):
    """
    Chat session between a kid and Lexi.

    Message references are kept in conversation_messages; the resolved
    order is always chronological (created_at, id), never link order.
    """

    __tablename__ = "chat_conversations"
    __table_args__ = (Index("idx_chat_conversations_user_created", "user_id", "created_at"),)

    id: Mapped[UUID] = mapped_column(Uuid(), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="chat_conversations")
    owned_messages: Mapped[list["ChatMessage"]] = relationship(
        "ChatMessage", back_populates="conversation", cascade="all, delete-orphan", passive_deletes=True
    )


class ChatMessage(Base):
    """
    Individual message in a chat conversation.

    Append-only: content is a non-empty list of {"type", "text"} blocks and
    is never edited after creation.
    """

    __tablename__ = "chat_messages"
    __table_args__ = (
        Index("idx_chat_messages_conversation_created", "conversation_id", "created_at"),
        CheckConstraint("role IN ('user', 'assistant')", name="valid_message_role"),
    )

    id: Mapped[UUID] = mapped_column(Uuid(), primary_key=True, default=uuid4)
    conversation_id: Mapped[UUID] = mapped_column(
        Uuid(),
        ForeignKey("chat_conversations.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(String(10), nullable=False)  # 'user' or 'assistant'
    content: Mapped[list[dict]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), nullable=False
    )

    # Timestamps (application-side so one transaction still yields ordered values)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    # Relationships
    conversation: Mapped["ChatConversation"] = relationship(
        "ChatConversation", back_populates="owned_messages"
    )

    @property
    def text(self) -> str:
        """Text of the first content block."""
        return self.content[0]["text"]


class ConversationMessage(Base):
    """
    Link from a conversation to one of its messages.

    The composite primary key gives set semantics; the unique message_id
    means a message is referenced by at most one conversation.
    """

    __tablename__ = "conversation_messages"

    conversation_id: Mapped[UUID] = mapped_column(
        Uuid(), ForeignKey("chat_conversations.id", ondelete="CASCADE"), primary_key=True
    )
    message_id: Mapped[UUID] = mapped_column(
        Uuid(), ForeignKey("chat_messages.id", ondelete="CASCADE"), primary_key=True, unique=True
    )
    appended_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
