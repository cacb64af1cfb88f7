"""Pytest configuration and fixtures."""

import os

# Settings are read once and cached, so the environment must be ready before app imports
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key")
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "development")

from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from datetime import datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.deps import create_access_token
from app.db.base import Base
from app.db.models import ChatConversation, ChatMessage, ConversationMessage, User, UserRole
from app.db.session import get_db
from app.errors import ProviderError
from app.main import app
from app.services import chat_service


@dataclass
class ModelCall:
    system_prompt: str
    turns: list[dict]
    max_output_tokens: int
    temperature: float


@dataclass
class FakeLanguageModel:
    """In-memory LanguageModel double that records every call."""

    reply: str = "Two plus two is four."
    error: Exception | None = None
    calls: list[ModelCall] = field(default_factory=list)
    on_call: object = None

    async def complete(self, system_prompt, turns, max_output_tokens, temperature):
        self.calls.append(ModelCall(system_prompt, turns, max_output_tokens, temperature))
        if self.on_call is not None:
            await self.on_call()
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
async def engine():
    """Fresh in-memory database per test, with foreign keys enforced."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints against the test database."""

    async def _get_test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_test_db
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def fake_model(monkeypatch) -> FakeLanguageModel:
    model = FakeLanguageModel()
    monkeypatch.setattr(chat_service, "_language_model", model)
    return model


@pytest.fixture
def failing_model(fake_model) -> FakeLanguageModel:
    fake_model.error = ProviderError("Language model request failed.", details="Rate limit exceeded")
    return fake_model


# =============================================================================
# USERS
# =============================================================================


async def _make_user(db: AsyncSession, **kwargs) -> User:
    user = User(**kwargs)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def parent(db) -> User:
    return await _make_user(db, full_name="Elena Ivanova", role=UserRole.PARENT.value)


@pytest.fixture
async def kid(db, parent) -> User:
    return await _make_user(
        db,
        full_name="Maria Ivanova",
        role=UserRole.KID.value,
        parent_id=parent.id,
        grade="3",
        city="Plovdiv",
        daily_target=3,
        weekly_target=12,
    )


@pytest.fixture
async def other_parent(db) -> User:
    return await _make_user(db, full_name="Georgi Petrov", role=UserRole.PARENT.value)


@pytest.fixture
async def other_kid(db, other_parent) -> User:
    return await _make_user(db, full_name="Ivan Petrov", role=UserRole.KID.value, parent_id=other_parent.id)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


# =============================================================================
# CONVERSATION BUILDERS
# =============================================================================


async def make_conversation(
    db: AsyncSession,
    owner: User,
    message_count: int,
    created_at: datetime,
) -> ChatConversation:
    """Conversation created at a fixed instant with alternating user/assistant messages."""
    conversation = ChatConversation(user_id=owner.id, created_at=created_at, updated_at=created_at)
    db.add(conversation)
    await db.flush()

    for i in range(message_count):
        message = ChatMessage(
            conversation_id=conversation.id,
            role="user" if i % 2 == 0 else "assistant",
            content=[{"type": "text", "text": f"message {i}"}],
            created_at=created_at + timedelta(seconds=i),
            updated_at=created_at + timedelta(seconds=i),
        )
        db.add(message)
        await db.flush()
        db.add(ConversationMessage(conversation_id=conversation.id, message_id=message.id))

    await db.commit()
    await db.refresh(conversation)
    return conversation
