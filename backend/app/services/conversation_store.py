"""Conversation persistence: sessions and their ordered message references."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import utcnow
from app.db.models import ChatConversation, ChatMessage, ConversationMessage
from app.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ResolvedConversation:
    """A conversation together with its messages in chronological order."""

    conversation: ChatConversation
    messages: list[ChatMessage] = field(default_factory=list)

    @property
    def id(self) -> UUID:
        return self.conversation.id

    @property
    def user_id(self) -> UUID:
        return self.conversation.user_id

    @property
    def message_count(self) -> int:
        return len(self.messages)


class ConversationStore:
    """Owns conversations and the set of message references each one holds."""

    async def create_conversation(self, db: AsyncSession, owner_id: UUID) -> ChatConversation:
        """Create an empty conversation owned by owner_id."""
        conversation = ChatConversation(user_id=owner_id)
        db.add(conversation)
        await db.commit()
        await db.refresh(conversation)

        logger.info("Started conversation %s for user %s", conversation.id, owner_id)
        return conversation

    async def get_conversation(
        self,
        db: AsyncSession,
        conversation_id: UUID,
        owner_id: UUID | None = None,
    ) -> ResolvedConversation:
        """
        Load a conversation with its messages sorted by creation time.

        When owner_id is given, a conversation owned by someone else is
        reported as missing so its existence is not revealed.
        """
        stmt = (
            select(ChatConversation)
            .where(ChatConversation.id == conversation_id)
            .execution_options(populate_existing=True)
        )
        if owner_id is not None:
            stmt = stmt.where(ChatConversation.user_id == owner_id)
        result = await db.execute(stmt)
        conversation = result.scalar_one_or_none()

        if conversation is None:
            raise NotFoundError("Conversation not found.", details=f"No conversation with id {conversation_id}.")

        return ResolvedConversation(conversation, await self._resolve_messages(db, conversation_id))

    async def append_message(
        self,
        db: AsyncSession,
        conversation_id: UUID,
        message_id: UUID,
    ) -> ResolvedConversation:
        """
        Add a message reference to a conversation.

        Appending the same message twice is a no-op. The returned messages are
        sorted by created_at, not by append order, so interleaved concurrent
        turns still read back chronologically.

        Raises:
            NotFoundError: Conversation or message does not exist
            ValidationError: Message is owned by a different conversation
        """
        conversation = await db.get(ChatConversation, conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation not found.", details=f"No conversation with id {conversation_id}.")

        message = await db.get(ChatMessage, message_id)
        if message is None:
            raise NotFoundError("Message not found.", details=f"No message with id {message_id}.")
        if message.conversation_id != conversation_id:
            raise ValidationError(
                "Message belongs to another conversation.",
                details=f"Message {message_id} is owned by conversation {message.conversation_id}.",
            )

        existing = await db.execute(
            select(ConversationMessage.message_id).where(
                ConversationMessage.conversation_id == conversation_id,
                ConversationMessage.message_id == message_id,
            )
        )
        if existing.scalar_one_or_none() is None:
            db.add(ConversationMessage(conversation_id=conversation_id, message_id=message_id))
            conversation.updated_at = utcnow()
            try:
                await db.commit()
            except IntegrityError:
                # Lost a race with an identical append; the link is there either way
                await db.rollback()
                logger.info("Message %s already linked to conversation %s", message_id, conversation_id)

        return await self.get_conversation(db, conversation_id)

    async def find_by_owner_in_range(
        self,
        db: AsyncSession,
        owner_id: UUID,
        start: datetime,
        end: datetime,
        min_message_count: int,
    ) -> list[ChatConversation]:
        """Conversations of owner_id created in [start, end) with more than min_message_count messages."""
        message_count = func.count(ConversationMessage.message_id)
        stmt = (
            select(ChatConversation)
            .outerjoin(ConversationMessage, ConversationMessage.conversation_id == ChatConversation.id)
            .where(
                ChatConversation.user_id == owner_id,
                ChatConversation.created_at >= start,
                ChatConversation.created_at < end,
            )
            .group_by(ChatConversation.id)
            .having(message_count > min_message_count)
            .order_by(ChatConversation.created_at.asc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def delete_older_than(self, db: AsyncSession, owner_id: UUID, cutoff: datetime) -> int:
        """
        Permanently delete owner_id's conversations created before cutoff.

        Messages and links go with them through ON DELETE CASCADE. There is no
        soft delete: stale conversations are interaction logs, not records.

        Returns:
            Number of conversations deleted
        """
        result = await db.execute(
            delete(ChatConversation).where(
                ChatConversation.user_id == owner_id,
                ChatConversation.created_at < cutoff,
            )
        )
        await db.commit()

        deleted = result.rowcount or 0
        if deleted:
            logger.info("Deleted %d conversations of user %s older than %s", deleted, owner_id, cutoff.isoformat())
        return deleted

    async def _resolve_messages(self, db: AsyncSession, conversation_id: UUID) -> list[ChatMessage]:
        stmt = (
            select(ChatMessage)
            .join(ConversationMessage, ConversationMessage.message_id == ChatMessage.id)
            .where(ConversationMessage.conversation_id == conversation_id)
            .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())


# Singleton instance
conversation_store = ConversationStore()
