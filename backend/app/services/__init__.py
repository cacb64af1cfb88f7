"""Chat core services."""

from app.services.message_store import message_store
from app.services.conversation_store import conversation_store
from app.services.profile_service import profile_service
from app.services.chat_service import chat_service
from app.services.stats_service import stats_service

__all__ = ["message_store", "conversation_store", "profile_service", "chat_service", "stats_service"]
