"""
Tests for API layer.

Tests:
- Match lifecycle over HTTP
- camelCase wire format
- Error handling (404/400/409 vs ok=false results)
"""

import pytest
from fastapi.testclient import TestClient

from ..api.app import create_app
from ..api.service import MatchService
from ..engine_core.dice import FixedDice
from ..session import MatchManager, ManualScheduler


def stats(attack, defense, agility):
    return {"attack": attack, "defense": defense, "agility": agility, "luck": 1}


def roster(match_id="duel"):
    return {
        "matchId": match_id,
        "sides": [
            {"id": "alpha", "name": "Alpha", "members": [
                {"id": "a1", "name": "A1", "stats": stats(5, 2, 3)},
            ]},
            {"id": "beta", "members": [
                {"id": "b1", "stats": stats(3, 4, 2), "maxHp": 80},
            ]},
        ],
    }


@pytest.fixture
def client():
    # Initiative [20, 1] puts alpha first; a1's attack then hits for 11.
    manager = MatchManager(
        scheduler=ManualScheduler(),
        dice_factory=lambda seed, draws: FixedDice([20, 1, 15, 10, 1]),
    )
    app = create_app(MatchService(manager=manager))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def started(client):
    assert client.post("/api/v1/matches", json=roster()).status_code == 200
    assert client.post("/api/v1/matches/duel/start").json()["ok"]
    return client


class TestSystem:
    def test_health(self, client):
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_rulesets(self, client):
        body = client.get("/api/v1/rulesets").json()
        names = [r["name"] for r in body["rulesets"]]
        assert names == ["standard", "quick", "hardcore"]
        assert body["rulesets"][0]["turnTimeout"] == 300.0

    def test_root(self, client):
        assert client.get("/").json()["docs"] == "/api/docs"


class TestMatchEndpoints:
    def test_create_match(self, client):
        response = client.post("/api/v1/matches", json=roster())

        assert response.status_code == 200
        body = response.json()
        assert body["matchId"] == "duel"
        assert body["status"] == "waiting"
        assert body["ruleset"] == "standard"
        b1 = body["members"][1]
        assert b1["maxHp"] == 80
        assert b1["hp"] == 80
        assert b1["items"] == {"dittany": 1, "attack_boost": 1, "defense_boost": 1}

    def test_create_with_auto_start_and_overrides(self, client):
        payload = roster()
        payload.update(autoStart=True, ruleset="quick", maxRounds=5)

        body = client.post("/api/v1/matches", json=payload).json()

        assert body["status"] == "active"
        assert body["activeSide"] == "alpha"
        assert body["pendingMembers"] == ["a1"]
        assert body["ruleset"] == "quick"

    def test_invalid_roster(self, client):
        payload = roster()
        payload["sides"] = payload["sides"][:1]

        response = client.post("/api/v1/matches", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "SETUP_INVALID"
        assert body["details"]["errors"]

    def test_duplicate_match(self, client):
        client.post("/api/v1/matches", json=roster())
        response = client.post("/api/v1/matches", json=roster())
        assert response.status_code == 409
        assert response.json()["error_code"] == "MATCH_EXISTS"

    def test_unknown_ruleset(self, client):
        payload = roster()
        payload["ruleset"] = "chaos"
        response = client.post("/api/v1/matches", json=payload)
        assert response.status_code == 400
        assert response.json()["error_code"] == "UNKNOWN_RULESET"

    def test_malformed_request(self, client):
        response = client.post("/api/v1/matches", json={"sides": [{"id": "x"}]})
        assert response.status_code == 422

    def test_unknown_match(self, client):
        for method, path in (
            ("get", "/api/v1/matches/nope"),
            ("post", "/api/v1/matches/nope/start"),
            ("post", "/api/v1/matches/nope/end"),
            ("get", "/api/v1/matches/nope/legal-actions/a1"),
        ):
            response = getattr(client, method)(path)
            assert response.status_code == 404
            assert response.json()["error_code"] == "MATCH_NOT_FOUND"

    def test_list_and_delete(self, client):
        client.post("/api/v1/matches", json=roster("one"))
        client.post("/api/v1/matches", json=roster("two"))

        assert client.get("/api/v1/matches").json()["count"] == 2
        deleted = client.delete("/api/v1/matches/one").json()
        assert deleted == {"success": True, "matchId": "one"}
        listed = client.get("/api/v1/matches").json()
        assert [m["matchId"] for m in listed["matches"]] == ["two"]


class TestActionEndpoints:
    def test_attack(self, started):
        response = started.post(
            "/api/v1/matches/duel/actions",
            json={"actingMemberId": "a1", "action": {"kind": "attack", "targetId": "b1"}},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["matchEnded"] is False
        entry = body["logEntries"][0]
        assert entry["actorId"] == "a1"
        assert entry["rolls"] == {"hit": 15, "damage": 10, "crit": 1}
        assert entry["outcome"]["damage"] == 11

        state = started.get("/api/v1/matches/duel").json()
        assert state["members"][1]["hp"] == 69
        assert state["activeSide"] == "beta"
        assert state["pendingMembers"] == ["b1"]

    def test_snake_case_request_accepted(self, started):
        response = started.post(
            "/api/v1/matches/duel/actions",
            json={"acting_member_id": "a1", "action": {"kind": "defend"}},
        )
        assert response.json()["ok"] is True

    def test_rejection_is_not_an_http_error(self, started):
        response = started.post(
            "/api/v1/matches/duel/actions",
            json={"actingMemberId": "b1", "action": {"kind": "pass"}},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is False
        assert body["errorCode"] == "not_your_turn"

    def test_unknown_action_kind(self, started):
        response = started.post(
            "/api/v1/matches/duel/actions",
            json={"actingMemberId": "a1", "action": {"kind": "fireball"}},
        )
        assert response.status_code == 200
        assert response.json()["errorCode"] == "unknown_action"

    def test_legal_actions(self, started):
        body = started.get("/api/v1/matches/duel/legal-actions/a1").json()
        kinds = [a["kind"] for a in body["actions"]]
        assert kinds[0] == "attack"
        assert body["actions"][0]["targetId"] == "b1"
        assert kinds[-1] == "pass"
        assert "item" in kinds

        other = started.get("/api/v1/matches/duel/legal-actions/b1").json()
        assert other["actions"] == []

    def test_pause_resume_end(self, started):
        assert started.post("/api/v1/matches/duel/pause").json()["ok"]
        assert started.get("/api/v1/matches/duel").json()["status"] == "paused"

        paused_action = started.post(
            "/api/v1/matches/duel/actions",
            json={"actingMemberId": "a1", "action": {"kind": "pass"}},
        ).json()
        assert paused_action["errorCode"] == "match_inactive"

        assert started.post("/api/v1/matches/duel/resume").json()["ok"]
        ended = started.post("/api/v1/matches/duel/end").json()
        assert ended["ok"]
        assert ended["matchEnded"] is True
        assert ended["winner"] == "alpha"

        state = started.get("/api/v1/matches/duel").json()
        assert state["status"] == "ended"
        assert state["endReason"] == "external_termination"
        assert state["activeSide"] is None
