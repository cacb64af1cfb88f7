"""Persistence of individual chat turns."""

import logging
from collections.abc import Sequence
from typing import TypedDict
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import ChatMessage, ChatRole
from app.errors import ValidationError

logger = logging.getLogger(__name__)

_VALID_ROLES = {role.value for role in ChatRole}


class ContentBlock(TypedDict):
    """One piece of message content. Only "text" blocks exist today."""

    type: str
    text: str


def text_block(text: str) -> ContentBlock:
    return {"type": "text", "text": text}


def _normalize_blocks(text_blocks: Sequence[str | ContentBlock]) -> list[ContentBlock]:
    if isinstance(text_blocks, str) or not text_blocks:
        raise ValidationError(
            "Message content is required.",
            details="At least one content block must be provided.",
        )

    blocks: list[ContentBlock] = []
    for index, block in enumerate(text_blocks):
        if isinstance(block, str):
            block = text_block(block)
        elif not isinstance(block, dict):
            raise ValidationError(
                "Invalid message content.",
                details=f"Block {index} must be a string or a {{type, text}} mapping.",
            )

        kind = block.get("type")
        text = block.get("text")
        if not isinstance(kind, str) or not kind:
            raise ValidationError("Invalid message content.", details=f"'Type' is required (block {index}).")
        if not isinstance(text, str) or not text:
            raise ValidationError("Invalid message content.", details=f"'Text' is required (block {index}).")
        blocks.append({"type": kind, "text": text})
    return blocks


class MessageStore:
    """Creates append-only messages. Linking into a conversation is the conversation store's job."""

    async def create_message(
        self,
        db: AsyncSession,
        role: str,
        text_blocks: Sequence[str | ContentBlock],
        conversation_id: UUID,
    ) -> ChatMessage:
        """
        Persist one new message.

        Args:
            db: Database session
            role: 'user' or 'assistant'
            text_blocks: Content as plain strings or {"type", "text"} blocks
            conversation_id: Owning conversation

        Returns:
            The committed ChatMessage

        Raises:
            ValidationError: Unknown role, empty content or a block without text
        """
        role_value = role.value if isinstance(role, ChatRole) else role
        if role_value not in _VALID_ROLES:
            raise ValidationError(
                "Invalid message role.",
                details=f"Role must be one of: {', '.join(sorted(_VALID_ROLES))}.",
            )

        message = ChatMessage(
            role=role_value,
            content=_normalize_blocks(text_blocks),
            conversation_id=conversation_id,
        )
        db.add(message)
        await db.commit()
        await db.refresh(message)

        logger.debug("Created %s message %s in conversation %s", role_value, message.id, conversation_id)
        return message


# Singleton instance
message_store = MessageStore()
