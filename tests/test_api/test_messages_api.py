import uuid

import pytest
from httpx import AsyncClient

from tests.test_helpers import register_and_login

pytestmark = pytest.mark.asyncio


async def create_conversation(
    client: AsyncClient, headers: dict[str, str], participant_ids: list[uuid.UUID]
) -> str:
    response = await client.post(
        "/messages/conversations",
        json={"participant_ids": [str(pid) for pid in participant_ids]},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


@pytest.mark.parametrize(
    "method, path",
    [
        ("GET", "/messages/conversations"),
        ("GET", f"/messages/conversations/{uuid.uuid4()}"),
        ("GET", f"/messages/conversations/{uuid.uuid4()}/messages"),
        ("POST", "/messages"),
        ("PUT", "/messages/read"),
        ("POST", "/messages/conversations"),
        ("GET", "/messages/unread"),
    ],
)
async def test_messaging_routes_require_authentication(
    test_client: AsyncClient, method: str, path: str
):
    response = await test_client.request(method, path, json={})
    assert response.status_code == 401


async def test_create_conversation_and_send_message(test_client: AsyncClient):
    alice_id, alice = await register_and_login(test_client)
    bob_id, bob = await register_and_login(test_client)
    conversation_id = await create_conversation(test_client, alice, [bob_id])

    response = await test_client.post(
        "/messages",
        json={"conversation_id": conversation_id, "content": "hello"},
        headers=alice,
    )

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["content"] == "hello"
    assert data["sender_id"] == str(alice_id)
    assert data["conversation_id"] == conversation_id
    assert data["is_read"] is False
    assert isinstance(data["id"], int)

    response = await test_client.get(
        f"/messages/conversations/{conversation_id}", headers=bob
    )
    assert response.status_code == 200
    detail = response.json()
    assert sorted(detail["participants"]) == sorted([str(alice_id), str(bob_id)])
    assert detail["unread_count"] == 1
    assert detail["last_message"]["id"] == data["id"]


async def test_list_conversations_most_recent_first(test_client: AsyncClient):
    alice_id, alice = await register_and_login(test_client)
    bob_id, bob = await register_and_login(test_client)
    carol_id, carol = await register_and_login(test_client)
    with_bob = await create_conversation(test_client, alice, [bob_id])
    with_carol = await create_conversation(test_client, alice, [carol_id])

    await test_client.post(
        "/messages",
        json={"conversation_id": with_bob, "content": "still here?"},
        headers=bob,
    )

    response = await test_client.get("/messages/conversations", headers=alice)

    assert response.status_code == 200
    assert [c["id"] for c in response.json()] == [with_bob, with_carol]

    response = await test_client.get("/messages/conversations", headers=carol)
    assert [c["id"] for c in response.json()] == [with_carol]


async def test_list_messages_oldest_first(test_client: AsyncClient):
    alice_id, alice = await register_and_login(test_client)
    bob_id, bob = await register_and_login(test_client)
    conversation_id = await create_conversation(test_client, alice, [bob_id])
    for sender, content in ((alice, "first"), (bob, "second"), (alice, "third")):
        response = await test_client.post(
            "/messages",
            json={"conversation_id": conversation_id, "content": content},
            headers=sender,
        )
        assert response.status_code == 201

    response = await test_client.get(
        f"/messages/conversations/{conversation_id}/messages", headers=bob
    )

    assert response.status_code == 200
    assert [m["content"] for m in response.json()] == ["first", "second", "third"]


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"content": "no conversation"},
        {"conversation_id": "CONVERSATION", "content": ""},
        {"conversation_id": "CONVERSATION", "content": "   "},
    ],
)
async def test_send_message_bad_input(test_client: AsyncClient, payload: dict):
    _, alice = await register_and_login(test_client)
    bob_id, _ = await register_and_login(test_client)
    conversation_id = await create_conversation(test_client, alice, [bob_id])
    if payload.get("conversation_id") == "CONVERSATION":
        payload = {**payload, "conversation_id": conversation_id}

    response = await test_client.post("/messages", json=payload, headers=alice)

    assert response.status_code == 400


async def test_malformed_conversation_id_is_bad_request(test_client: AsyncClient):
    _, alice = await register_and_login(test_client)

    response = await test_client.post(
        "/messages",
        json={"conversation_id": "not-a-uuid", "content": "hi"},
        headers=alice,
    )

    assert response.status_code == 400


async def test_outsider_gets_not_found_everywhere(test_client: AsyncClient):
    _, alice = await register_and_login(test_client)
    bob_id, _ = await register_and_login(test_client)
    _, mallory = await register_and_login(test_client)
    conversation_id = await create_conversation(test_client, alice, [bob_id])

    response = await test_client.get(
        f"/messages/conversations/{conversation_id}", headers=mallory
    )
    assert response.status_code == 404
    hidden_detail = response.json()["detail"]

    response = await test_client.get(
        f"/messages/conversations/{uuid.uuid4()}", headers=mallory
    )
    assert response.status_code == 404
    assert response.json()["detail"] == hidden_detail

    response = await test_client.post(
        "/messages",
        json={"conversation_id": conversation_id, "content": "hi"},
        headers=mallory,
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Conversation not found or you are not a participant."

    response = await test_client.put(
        "/messages/read", json={"conversation_id": conversation_id}, headers=mallory
    )
    assert response.status_code == 404

    response = await test_client.get(
        f"/messages/conversations/{conversation_id}/messages", headers=mallory
    )
    assert response.status_code == 200
    assert response.json() == []


async def test_mark_read_and_unread_total(test_client: AsyncClient):
    alice_id, alice = await register_and_login(test_client)
    bob_id, bob = await register_and_login(test_client)
    first = await create_conversation(test_client, alice, [bob_id])
    second = await create_conversation(test_client, alice, [bob_id])
    for conversation_id in (first, first, second):
        await test_client.post(
            "/messages",
            json={"conversation_id": conversation_id, "content": "ping"},
            headers=alice,
        )

    response = await test_client.get("/messages/unread", headers=bob)
    assert response.status_code == 200
    assert response.json() == {"unread_count": 3}

    response = await test_client.put(
        "/messages/read", json={"conversation_id": first}, headers=bob
    )
    assert response.status_code == 200
    assert response.json() == {"success": True}

    response = await test_client.get("/messages/unread", headers=bob)
    assert response.json() == {"unread_count": 1}

    response = await test_client.get(
        f"/messages/conversations/{first}/messages", headers=alice
    )
    assert all(m["is_read"] for m in response.json())


async def test_mark_read_requires_conversation_id(test_client: AsyncClient):
    _, alice = await register_and_login(test_client)

    response = await test_client.put("/messages/read", json={}, headers=alice)

    assert response.status_code == 400


async def test_create_conversation_requires_participants(test_client: AsyncClient):
    _, alice = await register_and_login(test_client)

    for payload in ({}, {"participant_ids": []}):
        response = await test_client.post(
            "/messages/conversations", json=payload, headers=alice
        )
        assert response.status_code == 400

    response = await test_client.get("/messages/conversations", headers=alice)
    assert response.json() == []


async def test_create_conversation_includes_creator_once(test_client: AsyncClient):
    alice_id, alice = await register_and_login(test_client)
    bob_id, _ = await register_and_login(test_client)

    conversation_id = await create_conversation(
        test_client, alice, [bob_id, alice_id, bob_id]
    )

    response = await test_client.get(
        f"/messages/conversations/{conversation_id}", headers=alice
    )
    participants = response.json()["participants"]
    assert sorted(participants) == sorted([str(alice_id), str(bob_id)])
