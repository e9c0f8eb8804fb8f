"""
API tests through FastAPI's TestClient.

The app is built with a scripted generator, so every turn is fully
deterministic and no network is touched.
"""

import pytest
from fastapi.testclient import TestClient

from elicit.api.app import create_app
from elicit.api.session import SessionRegistry
from elicit.api.storage import InMemoryStore
from elicit.core.errors import GenerationError

from fakes import FakeGenerator, analysis_payload, question_payload


@pytest.fixture
def gen():
    return FakeGenerator()


@pytest.fixture
def client(gen):
    app = create_app(generator=gen, registry=SessionRegistry(sweep_interval=3600), store=InMemoryStore())
    with TestClient(app) as c:
        yield c


def start(client, **body):
    body.setdefault("domain", "fintech")
    r = client.post("/api/session/start", json=body)
    assert r.status_code == 200
    return r.json()["session_id"]


def expertise_payload():
    payload = analysis_payload()
    payload["escape_signals"]["expertise"] = {"detected": True, "confidence": 0.75, "suggested_skip_level": "basics"}
    return payload


class TestStatusAndStart:
    def test_root(self, client):
        assert client.get("/").json()["docs"] == "/docs"

    def test_status(self, client):
        data = client.get("/api/status").json()
        assert data["active_sessions"] == 0
        assert data["sweeper_running"] is True

    def test_start_session(self, client):
        r = client.post("/api/session/start", json={"domain": "fintech", "user_id": "u1", "role": "cto"})
        data = r.json()
        assert data["stage"] == "idea_clarity"
        assert data["overall_progress"] == 0
        assert data["question"]["question"]
        assert client.get("/api/status").json()["active_sessions"] == 1

    def test_client_chosen_id(self, client):
        assert start(client, session_id="abc") == "abc"

    def test_duplicate_id(self, client):
        start(client, session_id="abc")
        r = client.post("/api/session/start", json={"session_id": "abc"})
        assert r.status_code == 400
        assert r.json()["error"]["kind"] == "validation_error"


class TestTurn:
    def test_question_turn(self, client, gen):
        sid = start(client)
        gen.queue(analysis_payload(), question_payload())
        r = client.post(f"/api/session/{sid}/turn", json={"user_message": "Banks need audit trails"})
        assert r.status_code == 200
        data = r.json()
        assert data["pivot"]["should_pivot"] is False
        assert data["pivot"]["user_options"] is None
        assert data["question"]["question"] == question_payload()["question"]
        assert data["style"]
        assert data["overall_progress"] == 3

        state = client.get(f"/api/session/{sid}/state").json()
        assert state["exchanges"] == 1
        assert state["current_question"]["question"] == question_payload()["question"]

    def test_pivot_turn(self, client, gen):
        sid = start(client)
        gen.queue(expertise_payload(), RuntimeError("provider down"))
        r = client.post(
            f"/api/session/{sid}/turn",
            json={"user_message": "Look, I know all this compliance stuff. Can we just skip to the technical architecture?"},
        )
        data = r.json()
        assert data["pivot"]["should_pivot"] is True
        assert "expertise" in data["pivot"]["pivot_reason"]
        assert data["pivot"]["assumption_set"]["confidence"] == 0.6
        assert len(data["pivot"]["assumption_set"]["assumptions"]) == 2
        assert set(data["pivot"]["user_options"]) == {
            "proceed_with_assumptions", "modify_assumptions", "continue_questioning",
        }
        assert data["question"] is None

        state = client.get(f"/api/session/{sid}/state").json()
        assert state["state"]["escape_triggered"] is True
        assert state["assumption_set"] is not None

    def test_generation_failure_is_502(self, client, gen):
        sid = start(client)
        gen.queue(GenerationError("LLM API error 503: unavailable"))
        r = client.post(f"/api/session/{sid}/turn", json={"user_message": "hello"})
        assert r.status_code == 502
        assert r.json()["error"]["kind"] == "generation_error"
        # the failed turn left nothing behind
        assert client.get(f"/api/session/{sid}/state").json()["exchanges"] == 0

    def test_empty_message_is_400(self, client):
        sid = start(client)
        r = client.post(f"/api/session/{sid}/turn", json={"user_message": "  "})
        assert r.status_code == 400
        assert r.json()["error"]["kind"] == "validation_error"

    def test_missing_body_field_is_400(self, client):
        sid = start(client)
        r = client.post(f"/api/session/{sid}/turn", json={})
        assert r.status_code == 400
        assert r.json()["error"]["kind"] == "validation_error"

    def test_unknown_session_is_404(self, client):
        r = client.post("/api/session/missing/turn", json={"user_message": "hi"})
        assert r.status_code == 404
        assert r.json()["error"] == {"kind": "state_error", "message": "Session not found: missing"}


class TestStageAndRefine:
    def test_advance_then_backward(self, client):
        sid = start(client)
        r = client.post(f"/api/session/{sid}/stage", json={"stage": "wireframes"})
        assert r.status_code == 200
        assert r.json()["overall_progress"] == 75

        r = client.post(f"/api/session/{sid}/stage", json={"stage": "idea_clarity"})
        assert r.status_code == 409
        assert r.json()["error"]["kind"] == "state_error"
        state = client.get(f"/api/session/{sid}/state").json()["state"]
        assert state["current_stage"] == "wireframes"

    def test_stage_change_drops_pending_question(self, client, gen):
        sid = start(client)
        assert client.get(f"/api/session/{sid}/state").json()["current_question"] is not None
        client.post(f"/api/session/{sid}/stage", json={"stage": "technical_specs"})
        assert client.get(f"/api/session/{sid}/state").json()["current_question"] is None

        gen.queue(analysis_payload(), question_payload())
        client.post(f"/api/session/{sid}/turn", json={"user_message": "We run on Postgres"})
        state = client.get(f"/api/session/{sid}/state").json()["state"]
        recorded = state["stage_progresses"]["technical_specs"]["responses"]
        assert recorded[0]["question"] == ""
        assert recorded[0]["answer"] == "We run on Postgres"

    def test_unknown_stage_name(self, client):
        sid = start(client)
        r = client.post(f"/api/session/{sid}/stage", json={"stage": "launch"})
        assert r.status_code == 400

    def test_refine_without_set_is_409(self, client):
        sid = start(client)
        r = client.post(f"/api/session/{sid}/assumptions/refine", json={"feedback": "users are banks"})
        assert r.status_code == 409

    def test_refine_after_pivot(self, client, gen):
        sid = start(client)
        gen.queue(expertise_payload(), RuntimeError("down"))
        client.post(f"/api/session/{sid}/turn", json={"user_message": "I know this, skip it"})

        gen.queue({
            "assumptions": [{"title": "Regional banks", "category": "user_target", "confidence": 0.9}],
            "confidence": 0.85,
            "reasoning": "User named the segment",
        })
        r = client.post(f"/api/session/{sid}/assumptions/refine", json={"feedback": "Only regional banks"})
        assert r.status_code == 200
        data = r.json()
        assert [a["title"] for a in data["assumptions"]] == ["Regional banks"]
        assert data["confidence"] == 0.85


class TestMetricsAndDelete:
    def test_session_metrics(self, client):
        sid = start(client)
        client.post(f"/api/session/{sid}/stage", json={"stage": "user_workflow"})
        data = client.get(f"/api/session/{sid}/metrics").json()
        assert data["completion_rate"] == 0.25
        assert data["stage_completion_rates"]["idea_clarity"] == 1.0

    def test_aggregate_metrics(self, client):
        a = start(client)
        start(client)
        client.post(f"/api/session/{a}/stage", json={"stage": "user_workflow"})
        data = client.get("/api/metrics").json()
        assert data["completion_rate"] == 0.125
        assert data["escape_rate"] == 0.0

    def test_aggregate_metrics_window(self, client):
        start(client)
        data = client.get("/api/metrics", params={"end": "2000-01-01T00:00:00"}).json()
        assert data["completion_rate"] == 0.0

    def test_delete(self, client):
        sid = start(client)
        assert client.delete(f"/api/session/{sid}").status_code == 200
        assert client.get(f"/api/session/{sid}/state").status_code == 404
        assert client.delete(f"/api/session/{sid}").status_code == 404
