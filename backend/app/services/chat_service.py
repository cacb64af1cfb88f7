"""Turn orchestration: record the question, ask the model, record the answer."""

import logging
from enum import Enum
from pathlib import Path
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.db.models import ChatRole
from app.errors import ProviderError, ServiceError, ValidationError
from app.services.context_window import build_context_window
from app.services.conversation_store import conversation_store
from app.services.language_model import LanguageModel, get_language_model
from app.services.message_store import message_store
from app.services.profile_service import ChildProfile, profile_service

logger = logging.getLogger(__name__)
settings = get_settings()

TURN_FAILED_MESSAGE = "Error during AI response generation."


def _load_persona() -> str:
    """Load the LEXI.md persona file for the system prompt."""
    persona_path = Path(__file__).parent.parent.parent / "LEXI.md"
    try:
        return persona_path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        logger.warning("LEXI.md not found at %s, using fallback persona", persona_path)
        return (
            "You are a little fairy called Lexi, a helpful assistant to children 7-12 years old "
            "for their school tasks. Be short and precise and keep to educational topics."
        )


# Load once at module import
_PERSONA_PROMPT = _load_persona()


class TurnState(str, Enum):
    """Progress of a single submit_turn call."""

    IDLE = "idle"
    USER_TURN_RECORDED = "user_turn_recorded"
    CONTEXT_BUILT = "context_built"
    MODEL_INVOKED = "model_invoked"
    ASSISTANT_TURN_RECORDED = "assistant_turn_recorded"


class ChatService:
    """Runs the append-query-append protocol for one conversation turn."""

    def __init__(self, language_model: LanguageModel | None = None):
        self._language_model = language_model

    @property
    def language_model(self) -> LanguageModel:
        if self._language_model is None:
            self._language_model = get_language_model()
        return self._language_model

    def validate_user_text(self, user_text: object) -> str:
        if not isinstance(user_text, str) or user_text == "":
            raise ValidationError("Bad Request", details="Invalid user input")
        if len(user_text) > settings.chat_max_input_chars:
            raise ValidationError(
                "User input is too long.",
                details=f"The maximum length is {settings.chat_max_input_chars} characters.",
            )
        return user_text

    def build_system_prompt(self, profile: ChildProfile) -> str:
        """Persona plus how to address this particular child."""
        parts = [
            _PERSONA_PROMPT,
            f"Детето, на което помагаш се казва {profile.first_name}. "
            "Наричай го по име понякога, но не прекалено често.",
        ]
        if settings.prompt_include_profile_details:
            if profile.grade:
                parts.append(f"{profile.first_name} е в {profile.grade} клас.")
            if profile.city:
                parts.append(f"{profile.first_name} живее в {profile.city}.")
        return "\n\n".join(parts)

    async def start_session(self, db: AsyncSession, owner_id: UUID) -> UUID:
        conversation = await conversation_store.create_conversation(db, owner_id)
        return conversation.id

    async def submit_turn(
        self,
        db: AsyncSession,
        conversation_id: UUID,
        user_text: str,
        owner_id: UUID,
    ) -> str:
        """
        Add the user's turn, ask the model with bounded context, add the reply.

        Args:
            db: Database session
            conversation_id: Conversation to continue
            user_text: The child's question (already transcribed for voice)
            owner_id: Authenticated kid; the conversation must belong to them

        Returns:
            Lexi's reply text

        Raises:
            ValidationError: user_text empty or too long (nothing recorded)
            NotFoundError: conversation missing or not owned by owner_id
            ProviderError: anything failing after that point. The user's turn
                stays recorded; there is no rollback and no retry.
        """
        text = self.validate_user_text(user_text)
        await conversation_store.get_conversation(db, conversation_id, owner_id)
        profile = await profile_service.get_child_profile(db, owner_id)
        system_prompt = self.build_system_prompt(profile)

        state = TurnState.IDLE
        try:
            # Message first, then the reference: a failure in between leaves an
            # orphaned message, never a dangling reference.
            user_message = await message_store.create_message(db, ChatRole.USER, [text], conversation_id)
            conversation = await conversation_store.append_message(db, conversation_id, user_message.id)
            state = TurnState.USER_TURN_RECORDED

            turns = build_context_window(conversation.messages)
            state = TurnState.CONTEXT_BUILT
            logger.debug("Conversation %s: sending %d turns to the model", conversation_id, len(turns))

            reply = await self.language_model.complete(
                system_prompt,
                turns,
                settings.llm_max_tokens,
                settings.llm_temperature,
            )
            state = TurnState.MODEL_INVOKED

            assistant_message = await message_store.create_message(db, ChatRole.ASSISTANT, [reply], conversation_id)
            await conversation_store.append_message(db, conversation_id, assistant_message.id)
            state = TurnState.ASSISTANT_TURN_RECORDED

        except Exception as e:
            logger.exception("Turn failed in conversation %s after state %s", conversation_id, state.value)
            if isinstance(e, SQLAlchemyError):
                await db.rollback()
            details = e.details if isinstance(e, ServiceError) else (str(e) or type(e).__name__)
            raise ProviderError(TURN_FAILED_MESSAGE, details=details) from e

        return reply


# Singleton instance
chat_service = ChatService()
