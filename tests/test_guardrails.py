"""Guardrails API integration tests."""

from datetime import datetime, timezone

import pytest

from src.domain.ports.persistence import ViolationLogEntry

FENCE = "```"


@pytest.mark.asyncio
async def test_validate_clean_response(client):
    """A clean response is valid."""
    resp = await client.post(
        "/guardrails/validate",
        json={"response": '<write path="a.ts">x</write><chat-summary>s</chat-summary>'},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["is_valid"] is True
    assert data["report"] == ""


@pytest.mark.asyncio
async def test_validate_reports_violations(client):
    """Critical violations and the report text come back."""
    resp = await client.post(
        "/guardrails/validate",
        json={"response": f"{FENCE}\nx\n{FENCE}<chat-summary>s</chat-summary>"},
    )
    data = resp.json()
    assert data["is_valid"] is False
    assert data["violations"][0]["kind"] == "prohibited-markup-block"
    assert "Markdown code blocks" in data["report"]


@pytest.mark.asyncio
async def test_validate_ask_mode(client):
    """Mode restrictions apply."""
    resp = await client.post(
        "/guardrails/validate",
        json={"response": '<write path="a.ts">x</write><chat-summary>s</chat-summary>', "mode": "ask"},
    )
    assert resp.json()["is_valid"] is False


@pytest.mark.asyncio
async def test_stats_and_report(client, container):
    """Logged violations show up in stats and the report."""
    container.guardrail_log.log_violation(
        ViolationLogEntry(
            timestamp=datetime.now(timezone.utc),
            chat_id="c1",
            violation_type="prohibited-markup-block",
            mode="build",
            model="coder",
        )
    )
    stats = (await client.get("/guardrails/stats")).json()
    assert stats["total"] == 1
    assert stats["top"][0]["type"] == "prohibited-markup-block"

    report = await client.get("/guardrails/report")
    assert report.status_code == 200
    assert "Total Violations: 1" in report.text


@pytest.mark.asyncio
async def test_validate_lists_directives_in_order(client):
    """Directives come back in the order they were written."""
    resp = await client.post(
        "/guardrails/validate",
        json={"response": '<write path="a.ts" description="d">const a=1;</write><delete path="b.ts" />'},
    )
    assert resp.json()["directives"] == [
        {"tag": "write", "path": "a.ts", "content": "const a=1;", "description": "d"},
        {"tag": "delete", "path": "b.ts"},
    ]
