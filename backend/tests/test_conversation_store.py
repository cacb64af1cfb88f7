"""Tests for conversation persistence and ordering."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from app.db.models import ChatConversation, ChatMessage, ConversationMessage
from app.errors import NotFoundError, ValidationError
from app.services.conversation_store import conversation_store

from conftest import make_conversation

T0 = datetime(2024, 6, 12, 8, 0, tzinfo=timezone.utc)


async def _message(db, conversation_id, text, created_at, role="user") -> ChatMessage:
    message = ChatMessage(
        conversation_id=conversation_id,
        role=role,
        content=[{"type": "text", "text": text}],
        created_at=created_at,
        updated_at=created_at,
    )
    db.add(message)
    await db.commit()
    return message


async def test_create_conversation_is_empty(db, kid):
    conversation = await conversation_store.create_conversation(db, kid.id)

    resolved = await conversation_store.get_conversation(db, conversation.id)
    assert resolved.user_id == kid.id
    assert resolved.messages == []
    assert resolved.message_count == 0


async def test_get_conversation_unknown_id(db):
    with pytest.raises(NotFoundError):
        await conversation_store.get_conversation(db, uuid4())


async def test_get_conversation_hides_other_owners(db, kid, other_kid):
    conversation = await conversation_store.create_conversation(db, kid.id)

    with pytest.raises(NotFoundError):
        await conversation_store.get_conversation(db, conversation.id, owner_id=other_kid.id)


async def test_messages_resolve_in_creation_order_not_append_order(db, kid):
    conversation = await conversation_store.create_conversation(db, kid.id)
    first = await _message(db, conversation.id, "first", T0)
    second = await _message(db, conversation.id, "second", T0 + timedelta(milliseconds=1))
    third = await _message(db, conversation.id, "third", T0 + timedelta(milliseconds=2))

    # Interleaved turns can link their messages out of order
    await conversation_store.append_message(db, conversation.id, third.id)
    await conversation_store.append_message(db, conversation.id, first.id)
    resolved = await conversation_store.append_message(db, conversation.id, second.id)

    assert [m.text for m in resolved.messages] == ["first", "second", "third"]


async def test_append_message_is_idempotent(db, kid):
    conversation = await conversation_store.create_conversation(db, kid.id)
    message = await _message(db, conversation.id, "hello", T0)

    await conversation_store.append_message(db, conversation.id, message.id)
    resolved = await conversation_store.append_message(db, conversation.id, message.id)

    assert resolved.message_count == 1
    links = await db.execute(select(func.count()).select_from(ConversationMessage))
    assert links.scalar_one() == 1


async def test_append_message_rejects_foreign_message(db, kid):
    mine = await conversation_store.create_conversation(db, kid.id)
    other = await conversation_store.create_conversation(db, kid.id)
    message = await _message(db, other.id, "not yours", T0)

    with pytest.raises(ValidationError):
        await conversation_store.append_message(db, mine.id, message.id)

    resolved = await conversation_store.get_conversation(db, mine.id)
    assert resolved.messages == []


async def test_append_message_unknown_ids(db, kid):
    conversation = await conversation_store.create_conversation(db, kid.id)
    message = await _message(db, conversation.id, "hello", T0)

    with pytest.raises(NotFoundError):
        await conversation_store.append_message(db, uuid4(), message.id)
    with pytest.raises(NotFoundError):
        await conversation_store.append_message(db, conversation.id, uuid4())


async def test_find_by_owner_in_range_counts_strictly_more_than_minimum(db, kid, other_kid):
    await make_conversation(db, kid, 5, T0)
    six = await make_conversation(db, kid, 6, T0 + timedelta(minutes=1))
    await make_conversation(db, kid, 9, T0 - timedelta(days=1))  # before the range
    await make_conversation(db, other_kid, 8, T0)

    found = await conversation_store.find_by_owner_in_range(
        db, kid.id, T0, T0 + timedelta(days=1), min_message_count=5
    )

    assert [c.id for c in found] == [six.id]


async def test_find_by_owner_in_range_is_half_open(db, kid):
    at_start = await make_conversation(db, kid, 6, T0)
    await make_conversation(db, kid, 6, T0 + timedelta(days=1))

    found = await conversation_store.find_by_owner_in_range(
        db, kid.id, T0, T0 + timedelta(days=1), min_message_count=5
    )

    assert [c.id for c in found] == [at_start.id]


async def test_delete_older_than_removes_messages_and_links(db, kid, other_kid):
    old = await make_conversation(db, kid, 4, T0 - timedelta(days=20))
    recent = await make_conversation(db, kid, 2, T0)
    others_old = await make_conversation(db, other_kid, 2, T0 - timedelta(days=20))

    deleted = await conversation_store.delete_older_than(db, kid.id, T0 - timedelta(days=15))

    assert deleted == 1
    remaining = (await db.execute(select(ChatConversation.id))).scalars().all()
    assert set(remaining) == {recent.id, others_old.id}

    orphans = await db.execute(
        select(func.count()).select_from(ChatMessage).where(ChatMessage.conversation_id == old.id)
    )
    assert orphans.scalar_one() == 0
    links = await db.execute(
        select(func.count()).select_from(ConversationMessage).where(ConversationMessage.conversation_id == old.id)
    )
    assert links.scalar_one() == 0


async def test_delete_older_than_nothing_to_do(db, kid):
    await make_conversation(db, kid, 2, T0)

    assert await conversation_store.delete_older_than(db, kid.id, T0) == 0
