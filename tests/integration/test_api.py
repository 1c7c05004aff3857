"""
Integration tests for the HTTP endpoint (FastAPI TestClient).
"""

from __future__ import annotations

import asyncio
import threading
from unittest.mock import MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient

from api.server import SESSION_HEADER, create_app
from core.conversational_orchestrator import TurnResult
from models.schemas import Message, MessageRole
from models.session_state import SessionStore


@pytest.fixture
def sessions():
    return SessionStore()


@pytest.fixture
def client(orchestrator, sessions):
    return TestClient(create_app(orchestrator=orchestrator, sessions=sessions))


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_messages_not_a_list_is_400(client):
    response = client.post("/api/chat", json={"messages": "hello"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid input format."}


def test_missing_messages_is_400(client):
    assert client.post("/api/chat", json={"record": {}}).status_code == 400


def test_bad_json_is_400(client):
    response = client.post("/api/chat", content=b"{not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid input format."}


def test_invalid_role_is_400(client):
    response = client.post("/api/chat", json={"messages": [{"role": "system", "content": "x"}]})
    assert response.status_code == 400


def test_chat_returns_history_logs_and_session(client, llm):
    llm.intents = ["general_query"]
    llm.replies = ["Welcome to Wonderland!"]
    response = client.post("/api/chat", json={"messages": [{"role": "user", "content": "hi"}]})

    assert response.status_code == 200
    body = response.json()
    assert body["messages"] == [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "Welcome to Wonderland!"},
    ]
    assert body["logs"]
    assert body["session_id"]
    assert response.headers[SESSION_HEADER] == body["session_id"]


def test_session_survives_between_requests(client, llm, store, sessions):
    llm.intents = ["account_creation", "account_creation"]
    llm.extractions = [{"Name": "acme"}, {}]

    first = client.post("/api/chat", json={"messages": [{"role": "user", "content": "create acme"}]}).json()
    session_id = first["session_id"]
    assert sessions.get(session_id).creation_progress == 0

    history = first["messages"] + [{"role": "user", "content": "https://acme.com"}]
    second = client.post("/api/chat", json={"messages": history}, headers={SESSION_HEADER: session_id})
    assert second.json()["session_id"] == session_id
    assert sessions.get(session_id).creation_progress == 1
    record_id = sessions.get(session_id).active_record_id
    assert store.fields_of(record_id)["Client URL"] == "https://acme.com"


def test_session_id_in_body(client, llm, sessions):
    llm.intents = ["general_query"]
    response = client.post(
        "/api/chat",
        json={"messages": [{"role": "user", "content": "hi"}], "session_id": "from-body"},
    )
    assert response.json()["session_id"] == "from-body"
    assert len(sessions) == 1


def test_unhandled_failure_is_500(sessions):
    broken = MagicMock()
    broken.process_turn.side_effect = RuntimeError("kaboom")
    client = TestClient(create_app(orchestrator=broken, sessions=sessions))

    response = client.post("/api/chat", json={"messages": [{"role": "user", "content": "hi"}]})
    assert response.status_code == 500
    assert response.json() == {"error": "kaboom"}


def test_cors_is_open(client, llm):
    response = client.post(
        "/api/chat",
        json={"messages": [{"role": "user", "content": "hi"}]},
        headers={"Origin": "https://example.com"},
    )
    assert response.headers["access-control-allow-origin"] == "*"


class _RendezvousOrchestrator:
    """Each turn blocks until `parties` turns are running at the same time."""

    def __init__(self, parties: int):
        self.barrier = threading.Barrier(parties, timeout=5)

    def process_turn(self, messages, session, record=None):
        self.barrier.wait()
        reply = Message(role=MessageRole.ASSISTANT, content="done")
        return TurnResult(messages=list(messages) + [reply], session=session)


def test_concurrent_sessions_are_served_in_parallel(sessions):
    app = create_app(orchestrator=_RendezvousOrchestrator(3), sessions=sessions)

    async def send_all():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            return await asyncio.gather(*[
                http.post("/api/chat", json={
                    "messages": [{"role": "user", "content": "hi"}],
                    "session_id": f"s{i}",
                })
                for i in range(3)
            ])

    responses = asyncio.run(send_all())
    assert [r.status_code for r in responses] == [200, 200, 200]
    assert len(sessions) == 3
