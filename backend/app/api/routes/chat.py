"""API routes for chatting with Lexi."""

import logging
from uuid import UUID

from fastapi import APIRouter, status

from app.api.deps import DbSession, KidUser
from app.schemas.chat import (
    ChatAnswerResponse,
    ChatMessageRequest,
    ChatMessageResponse,
    ConversationResponse,
    ConversationStartResponse,
    ConversationWithMessages,
)
from app.services import chat_service, conversation_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


# =============================================================================
# CONVERSATION MANAGEMENT
# =============================================================================


@router.post(
    "/conversations",
    response_model=ConversationStartResponse,
    status_code=status.HTTP_201_CREATED,
)
async def start_conversation(
    db: DbSession,
    user: KidUser,
):
    """
    Start a new conversation.

    The returned id is passed with every following message so Lexi keeps
    the context of the session.
    """
    conversation_id = await chat_service.start_session(db, user.id)
    return ConversationStartResponse(conversation_id=conversation_id)


@router.get("/conversations/{conversation_id}", response_model=ConversationWithMessages)
async def get_conversation(
    conversation_id: UUID,
    db: DbSession,
    user: KidUser,
):
    """Get conversation with full message history, oldest first."""
    resolved = await conversation_store.get_conversation(db, conversation_id, owner_id=user.id)

    return ConversationWithMessages(
        **ConversationResponse.model_validate(resolved.conversation).model_dump(),
        messages=[ChatMessageResponse.model_validate(m) for m in resolved.messages],
    )


# =============================================================================
# CHAT
# =============================================================================


@router.post("/conversations/{conversation_id}/messages", response_model=ChatAnswerResponse)
async def send_chat_message(
    conversation_id: UUID,
    request: ChatMessageRequest,
    db: DbSession,
    user: KidUser,
):
    """
    Send a text message to Lexi and get the reply.

    The question is stored even when the model call fails, so the
    conversation may end with an unanswered question.
    """
    answer = await chat_service.submit_turn(
        db,
        conversation_id=conversation_id,
        user_text=request.message,
        owner_id=user.id,
    )
    return ChatAnswerResponse(conversation_id=conversation_id, answer=answer)
