"""Tests for the chat endpoints."""

from uuid import uuid4

from conftest import auth_headers


async def _start(client, kid) -> str:
    response = await client.post("/chat/conversations", headers=auth_headers(kid))
    assert response.status_code == 201
    return response.json()["conversation_id"]


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_requires_authentication(client):
    response = await client.post("/chat/conversations")

    assert response.status_code == 401


async def test_parents_cannot_chat(client, parent):
    response = await client.post("/chat/conversations", headers=auth_headers(parent))

    assert response.status_code == 403


async def test_send_message_and_read_history(client, kid, fake_model):
    conversation_id = await _start(client, kid)

    response = await client.post(
        f"/chat/conversations/{conversation_id}/messages",
        json={"message": "What is 2 + 2?"},
        headers=auth_headers(kid),
    )

    assert response.status_code == 200
    assert response.json() == {"conversation_id": conversation_id, "answer": fake_model.reply}

    history = await client.get(f"/chat/conversations/{conversation_id}", headers=auth_headers(kid))
    assert history.status_code == 200
    body = history.json()
    assert body["user_id"] == str(kid.id)
    assert [(m["role"], m["content"][0]["text"]) for m in body["messages"]] == [
        ("user", "What is 2 + 2?"),
        ("assistant", fake_model.reply),
    ]


async def test_empty_message_is_a_bad_request(client, kid, fake_model):
    conversation_id = await _start(client, kid)

    response = await client.post(
        f"/chat/conversations/{conversation_id}/messages",
        json={"message": ""},
        headers=auth_headers(kid),
    )

    assert response.status_code == 400
    body = response.json()
    assert body["type"] == "error"
    assert body["error_type"] == "ValidationError"
    assert body["status"] == 400
    assert body["message"] == "Bad Request"
    assert body["details"] == "Invalid user input"


async def test_too_long_message(client, kid, fake_model):
    conversation_id = await _start(client, kid)

    response = await client.post(
        f"/chat/conversations/{conversation_id}/messages",
        json={"message": "a" * 4097},
        headers=auth_headers(kid),
    )

    assert response.status_code == 400
    assert response.json()["message"] == "User input is too long."
    assert fake_model.calls == []


async def test_unknown_conversation(client, kid, fake_model):
    response = await client.post(
        f"/chat/conversations/{uuid4()}/messages",
        json={"message": "hello"},
        headers=auth_headers(kid),
    )

    assert response.status_code == 404
    assert response.json()["error_type"] == "NotFoundError"


async def test_other_kids_conversation_is_not_found(client, kid, other_kid, fake_model):
    conversation_id = await _start(client, kid)

    read = await client.get(f"/chat/conversations/{conversation_id}", headers=auth_headers(other_kid))
    send = await client.post(
        f"/chat/conversations/{conversation_id}/messages",
        json={"message": "hello"},
        headers=auth_headers(other_kid),
    )

    assert read.status_code == 404
    assert send.status_code == 404


async def test_model_failure_is_reported_and_question_kept(client, kid, failing_model):
    conversation_id = await _start(client, kid)

    response = await client.post(
        f"/chat/conversations/{conversation_id}/messages",
        json={"message": "What is 2 + 2?"},
        headers=auth_headers(kid),
    )

    assert response.status_code == 502
    body = response.json()
    assert body["error_type"] == "ProviderError"
    assert body["message"] == "Error during AI response generation."

    history = await client.get(f"/chat/conversations/{conversation_id}", headers=auth_headers(kid))
    assert [m["role"] for m in history.json()["messages"]] == ["user"]
