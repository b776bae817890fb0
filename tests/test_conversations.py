"""Conversations API integration tests."""

import pytest

from src.api.dependencies import default_rate_limit
from src.domain.ports.llm import LLMMessage


@pytest.mark.asyncio
async def test_list_and_load(client, container):
    """Saved conversations are listed with titles and load their messages."""
    container.conversation_memory.save("c1", [LLMMessage(role="user", content="hi")], summary="Greeting")
    resp = await client.get("/conversations")
    assert resp.status_code == 200
    assert resp.json() == [{"id": "c1", "title": "Greeting"}]

    messages = (await client.get("/conversations/c1")).json()
    assert messages == [{"role": "user", "content": "hi"}]


@pytest.mark.asyncio
async def test_snapshot_after_turn(client, container):
    """A finished turn leaves its last text readable as a snapshot."""
    await client.post("/chat/stream", json={"message": "hi", "chat_id": "c1"})
    resp = await client.get("/conversations/c1/snapshot")
    assert resp.status_code == 200
    assert resp.json()["text"].startswith("Done.")


@pytest.mark.asyncio
async def test_missing_snapshot_is_404(client):
    """No snapshot, no content."""
    resp = await client.get("/conversations/nope/snapshot")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_delete_removes_conversation_and_snapshot(client, container):
    """Delete drops the conversation file and its snapshot."""
    container.conversation_memory.save("c1", [LLMMessage(role="user", content="hi")])
    container.snapshot_store.save_snapshot("c1", "partial")

    resp = await client.delete("/conversations/c1")
    assert resp.status_code == 200
    assert container.conversation_memory.list_ids() == []
    assert container.snapshot_store.load_snapshot("c1") is None

    assert (await client.delete("/conversations/c1")).status_code == 404


def test_rate_limit_comes_from_config(container):
    """The shared per-client limit follows security config."""
    container.config.security.rate_limit_requests_per_minute = 7
    assert default_rate_limit() == "7/minute"


@pytest.mark.asyncio
async def test_rate_limit_enforced(client, container):
    """Requests past the configured limit are rejected."""
    container.config.security.rate_limit_requests_per_minute = 2
    statuses = [(await client.get("/conversations")).status_code for _ in range(3)]
    assert statuses == [200, 200, 429]
