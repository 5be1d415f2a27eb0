"""Tests for the agent service FastAPI endpoints."""

from __future__ import annotations

import time

from fastapi.testclient import TestClient

from schnapsenai.app.decision import DecisionEngine
from schnapsenai.app.dispatcher import TaskDispatcher
from schnapsenai.domain.task import MatchAddress, Task
from schnapsenai.ops.spec import default_agent_spec
from schnapsenai.players.random_predictor import RandomPredictor
from schnapsenai.server.agent_api import create_app
from schnapsenai.server.memory import InMemoryBroker, InMemoryMatchConnection

TASK = {
    "ai_id": "Franz Kartler",
    "game": "Schnapsen",
    "mode": "bummerl",
    "address": "match-server:3000",
    "read": "api-read",
    "write": "api-write",
    "players": ["agent", "opponent"],
}


def _make_client() -> tuple[TestClient, list[InMemoryMatchConnection], InMemoryBroker]:
    connections: list[InMemoryMatchConnection] = []

    def connection_factory(address: MatchAddress) -> InMemoryMatchConnection:
        connection = InMemoryMatchConnection(address)
        connections.append(connection)
        return connection

    def engine_factory(task: Task) -> DecisionEngine:
        return DecisionEngine(RandomPredictor(seed=0))

    dispatcher = TaskDispatcher(default_agent_spec(), connection_factory, engine_factory)
    broker = InMemoryBroker()
    return TestClient(create_app(dispatcher, broker=broker)), connections, broker


def test_health() -> None:
    """Health endpoint reports ok."""
    client, _, _ = _make_client()
    with client:
        response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_registrations_published_on_startup() -> None:
    """Starting the app publishes one registration per identity and mode."""
    client, _, broker = _make_client()
    with client:
        assert broker.connected
        profiles = client.get("/api/profiles").json()
    assert len(broker.registrations.messages) == 6
    assert profiles == broker.registrations.messages
    assert not broker.connected


def test_accepted_task_appears_in_sessions() -> None:
    """An accepted task starts a session visible through the API."""
    client, connections, _ = _make_client()
    with client:
        response = client.post("/api/tasks", json=TASK)
        assert response.status_code == 202
        assert response.json() == {"outcome": "accepted", "match_id": "api-read"}
        sessions = client.get("/api/sessions").json()
        assert [session["match_id"] for session in sessions] == ["api-read"]
        assert sessions[0]["skill_level"] == 2
        detail = client.get("/api/sessions/api-read")
        assert detail.json()["mode"] == "bummerl"
    assert connections[0].address.url == "http://match-server:3000"
    assert connections[0].closed


def test_mismatched_task_returns_conflict() -> None:
    """Tasks for unserved modes are refused with 409."""
    client, connections, _ = _make_client()
    with client:
        response = client.post("/api/tasks", json={**TASK, "mode": "blitz"})
    assert response.status_code == 409
    assert connections == []


def test_malformed_task_returns_bad_request() -> None:
    """Bodies that are not tasks are refused with 400."""
    client, _, _ = _make_client()
    with client:
        missing = client.post("/api/tasks", json={"ai_id": "Franz Kartler"})
        garbage = client.post(
            "/api/tasks", content=b"not json", headers={"Content-Type": "application/json"}
        )
    assert missing.status_code == 400
    assert garbage.status_code == 400


def test_unknown_session_returns_not_found() -> None:
    """Looking up an unknown match id yields 404."""
    client, _, _ = _make_client()
    with client:
        response = client.get("/api/sessions/nope")
    assert response.status_code == 404


def test_broker_tasks_are_consumed_in_background() -> None:
    """Tasks waiting on the broker queue start sessions once the app is up."""
    client, connections, broker = _make_client()
    broker.tasks.publish(TASK)
    with client:
        for _ in range(50):
            if client.get("/api/sessions").json():
                break
            time.sleep(0.01)
        sessions = client.get("/api/sessions").json()
    assert [session["match_id"] for session in sessions] == ["api-read"]
    assert len(connections) == 1
    assert connections[0].closed
