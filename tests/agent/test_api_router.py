"""
Tests for the agent API.

Tests cover:
- API key authentication (fail-closed)
- Inbound message handling and rendered payloads
- Human-control endpoints and the gate short-circuit
- Completion failures surfaced as 503
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from src.merchdesk.agent.api import SessionLocks
from src.merchdesk.agent.app import create_app
from src.merchdesk.agent.domain.entities import Attachment, ToolOutput, TurnRole
from src.merchdesk.agent.exceptions import CompletionServiceError
from src.merchdesk.agent.tools.catalog import GET_QUOTE_INFO

from .fakes import RecordingHandler, ScriptedCompletionService, build_orchestrator, text_reply, tool_reply

QUOTE_PDF = Attachment(url="https://files.example.com/quotes/Q553.pdf", caption="Quote Q553-HFKTH", id="Q553-HFKTH")


@pytest.fixture
def no_auth(monkeypatch):
    monkeypatch.setenv("DISABLE_AUTH", "true")
    monkeypatch.delenv("API_KEY", raising=False)


def make_client(orchestrator):
    return TestClient(create_app(orchestrator=orchestrator))


# ============================================
# Authentication
# ============================================


class TestAuthentication:
    """Test API key enforcement."""

    def test_missing_key_rejected(self, monkeypatch):
        monkeypatch.delenv("DISABLE_AUTH", raising=False)
        monkeypatch.setenv("API_KEY", "secret-key")
        orchestrator = build_orchestrator(ScriptedCompletionService(), {})

        with make_client(orchestrator) as client:
            response = client.get("/api/agent/sessions/ML-1/human-control")

        assert response.status_code == 401

    def test_wrong_key_rejected(self, monkeypatch):
        monkeypatch.delenv("DISABLE_AUTH", raising=False)
        monkeypatch.setenv("API_KEY", "secret-key")
        orchestrator = build_orchestrator(ScriptedCompletionService(), {})

        with make_client(orchestrator) as client:
            response = client.get(
                "/api/agent/sessions/ML-1/human-control", headers={"X-API-Key": "wrong"}
            )

        assert response.status_code == 401

    def test_valid_key_accepted(self, monkeypatch):
        monkeypatch.delenv("DISABLE_AUTH", raising=False)
        monkeypatch.setenv("API_KEY", "secret-key")
        orchestrator = build_orchestrator(ScriptedCompletionService(), {})

        with make_client(orchestrator) as client:
            response = client.get(
                "/api/agent/sessions/ML-1/human-control", headers={"X-API-Key": "secret-key"}
            )

        assert response.status_code == 200

    def test_unconfigured_key_fails_closed(self, monkeypatch):
        monkeypatch.delenv("DISABLE_AUTH", raising=False)
        monkeypatch.delenv("API_KEY", raising=False)
        orchestrator = build_orchestrator(ScriptedCompletionService(), {})

        with make_client(orchestrator) as client:
            response = client.get(
                "/api/agent/sessions/ML-1/human-control", headers={"X-API-Key": "anything"}
            )

        assert response.status_code == 500

    def test_health_is_public(self, monkeypatch):
        monkeypatch.delenv("DISABLE_AUTH", raising=False)
        monkeypatch.delenv("API_KEY", raising=False)
        orchestrator = build_orchestrator(ScriptedCompletionService(), {})

        with make_client(orchestrator) as client:
            response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


# ============================================
# Inbound messages
# ============================================


class TestInboundMessages:
    """Test POST /api/agent/messages."""

    def test_chat_reply_with_document(self, no_auth, turn_store):
        llm = ScriptedCompletionService([tool_reply(GET_QUOTE_INFO), text_reply("Here is your **quote**.")])
        handler = RecordingHandler(result=ToolOutput(data={"total": 1150.0}, attachment=QUOTE_PDF))
        orchestrator = build_orchestrator(llm, {GET_QUOTE_INFO: handler}, turn_store=turn_store)

        with make_client(orchestrator) as client:
            response = client.post(
                "/api/agent/messages",
                json={
                    "text": "Please resend my quote",
                    "channel": "chat",
                    "channel_identity": "+27 82 123 4567",
                    "customer_name": "Jane",
                },
            )

        assert response.status_code == 200
        body = response.json()
        assert body["session_id"] == "ML-27821234567"
        assert body["status"] == "replied"
        assert body["attachments"] == [{"id": QUOTE_PDF.id, "url": QUOTE_PDF.url, "caption": QUOTE_PDF.caption}]
        assert body["tools_used"] == [GET_QUOTE_INFO]
        messages = body["payload"]["messages"]
        assert [m["kind"] for m in messages] == ["text", "document"]
        assert messages[0]["text"] == "Here is your *quote*."
        assert len(turn_store.all_turns("ML-27821234567")) == 2

    def test_email_reply_envelope(self, no_auth):
        llm = ScriptedCompletionService([text_reply("Your order ships tomorrow.")])
        orchestrator = build_orchestrator(llm, {})

        with make_client(orchestrator) as client:
            response = client.post(
                "/api/agent/messages",
                json={
                    "text": "When will my order ship?",
                    "channel": "email",
                    "channel_identity": "Jane@Example.com",
                    "subject": "Order INV-Q100-ABCDE",
                },
            )

        body = response.json()
        assert body["session_id"] == "ML-EMAIL-jane@example.com"
        assert body["payload"]["subject"] == "Re: Order INV-Q100-ABCDE"
        assert "Your order ships tomorrow." in body["payload"]["plain_text_body"]
        assert body["payload"]["messages"] == []

    def test_explicit_session_id_used(self, no_auth, turn_store):
        llm = ScriptedCompletionService([text_reply("Hi!")])
        orchestrator = build_orchestrator(llm, {}, turn_store=turn_store)

        with make_client(orchestrator) as client:
            response = client.post(
                "/api/agent/messages",
                json={"text": "Hi", "channel": "chat", "channel_identity": "27821234567", "session_id": "S1"},
            )

        assert response.json()["session_id"] == "S1"
        assert len(turn_store.all_turns("S1")) == 2

    def test_completion_failure_returns_503(self, no_auth, turn_store):
        llm = ScriptedCompletionService([CompletionServiceError("upstream down")])
        orchestrator = build_orchestrator(llm, {}, turn_store=turn_store)

        with make_client(orchestrator) as client:
            response = client.post(
                "/api/agent/messages",
                json={"text": "Hi", "channel": "chat", "channel_identity": "27821234567"},
            )

        assert response.status_code == 503
        assert turn_store.all_turns("ML-27821234567") == []

    def test_invalid_request_rejected(self, no_auth):
        orchestrator = build_orchestrator(ScriptedCompletionService(), {})

        with make_client(orchestrator) as client:
            response = client.post(
                "/api/agent/messages",
                json={"text": "", "channel": "sms", "channel_identity": "x"},
            )

        assert response.status_code == 422


# ============================================
# Operator endpoints
# ============================================


class TestOperatorEndpoints:
    """Test human takeover and operator replies."""

    def test_takeover_silences_agent(self, no_auth, turn_store):
        llm = ScriptedCompletionService([])
        orchestrator = build_orchestrator(llm, {}, turn_store=turn_store)

        with make_client(orchestrator) as client:
            put = client.put(
                "/api/agent/sessions/ML-27821234567/human-control",
                json={"is_human_controlled": True},
            )
            assert put.status_code == 200
            assert put.json()["is_human_controlled"] is True

            response = client.post(
                "/api/agent/messages",
                json={"text": "Hello?", "channel": "chat", "channel_identity": "27821234567"},
            )
            reply = client.post(
                "/api/agent/sessions/ML-27821234567/operator-replies",
                json={"text": "Hi, this is Sam from the team."},
            )

        assert response.status_code == 200
        assert response.json()["status"] == "human_controlled"
        assert response.json()["payload"] is None
        assert llm.calls == []
        assert reply.json() == {"session_id": "ML-27821234567", "recorded": True}
        turns = turn_store.all_turns("ML-27821234567")
        assert [(t.role, t.content) for t in turns] == [
            (TurnRole.CUSTOMER, "Hello?"),
            (TurnRole.AGENT, "Hi, this is Sam from the team."),
        ]

    def test_get_state_defaults_to_agent(self, no_auth):
        orchestrator = build_orchestrator(ScriptedCompletionService(), {})

        with make_client(orchestrator) as client:
            response = client.get("/api/agent/sessions/ML-9/human-control")

        assert response.json()["is_human_controlled"] is False


# ============================================
# Session locks
# ============================================


class TestSessionLocks:
    """Test per-session serialisation."""

    @pytest.mark.asyncio
    async def test_same_session_serialised(self):
        locks = SessionLocks()
        order = []

        async def worker(name):
            async with locks.hold("ML-1"):
                order.append(f"{name}-start")
                await asyncio.sleep(0.01)
                order.append(f"{name}-end")

        await asyncio.gather(worker("a"), worker("b"))

        assert order == ["a-start", "a-end", "b-start", "b-end"]
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_different_sessions_independent(self):
        locks = SessionLocks()
        async with locks.hold("ML-1"):
            async with locks.hold("ML-2"):
                assert len(locks) == 2
        assert len(locks) == 0
