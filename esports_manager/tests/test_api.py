"""
API integration tests.
Uses TestClient to avoid starting a server.
Requires: pip install httpx (for TestClient)
"""
from __future__ import annotations

from pathlib import Path

import pytest

try:
    from fastapi.testclient import TestClient
    HAS_HTTPX = True
except (ImportError, RuntimeError):
    HAS_HTTPX = False

# Ensure project root on path
import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

pytestmark = pytest.mark.skipif(not HAS_HTTPX, reason="httpx required for TestClient")

from esports_manager.api import app, set_session


@pytest.fixture(autouse=True)
def game(session):
    """Serve the small seeded game for each test."""
    set_session(session)
    yield session
    set_session(None)


@pytest.fixture
def client():
    return TestClient(app)


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_get_season(client):
    resp = client.get("/season")
    assert resp.status_code == 200
    data = resp.json()
    assert data["season_number"] == 1
    assert data["days_passed"] == 0
    assert data["phase"] == "preseason"
    assert len(data["tournament_ids"]) == 2


def test_list_teams(client):
    resp = client.get("/teams")
    assert resp.status_code == 200
    teams = resp.json()["teams"]
    assert len(teams) == 4
    assert all(len(t["active_roster"]) == 5 for t in teams)


def test_player_stats_and_contract(client, game):
    player_id = game.store.get_team("t001").active_roster[0]
    resp = client.get(f"/players/{player_id}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["player_id"] == player_id
    assert data["team_id"] == "t001"
    assert data["career_kda"] == 0.0

    resp = client.get(f"/players/{player_id}/contract")
    assert resp.status_code == 200
    assert resp.json()["team_id"] == "t001"


def test_unknown_player_404(client):
    assert client.get("/players/nobody").status_code == 404
    assert client.get("/players/nobody/contract").status_code == 404


def test_team_budget_and_contracts(client, game):
    resp = client.get("/teams/t001/budget")
    assert resp.status_code == 200
    assert resp.json()["available"] == pytest.approx(game.settings.starting_budget)

    resp = client.get("/teams/t001/contracts")
    assert resp.status_code == 200
    assert len(resp.json()) == len(game.store.get_team("t001").all_player_ids)

    assert client.get("/teams/nope/budget").status_code == 404
    assert client.get("/teams/nope/contracts").status_code == 404


def test_listings(client, game):
    assert client.get("/transfers/listings").json() == []
    player_id = game.store.get_team("t001").bench[0]
    game.transfers.list_player(player_id, "t001", 50_000, day=0)
    data = client.get("/transfers/listings").json()
    assert [x["player_id"] for x in data] == [player_id]


def test_tournament_and_rankings(client, game):
    tournament_id = game.store.season.tournament_ids[0]
    resp = client.get(f"/tournaments/{tournament_id}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["stage"] == "group_stage"
    assert len(data["standings"]) == 4
    assert client.get("/tournaments/nope").status_code == 404

    rankings = client.get("/rankings").json()
    assert [r["position"] for r in rankings] == [1, 2, 3, 4]


def test_advance(client):
    resp = client.post("/advance/day")
    assert resp.status_code == 200
    assert resp.json()["days_advanced"] == 1

    resp = client.post("/advance/week")
    assert resp.json()["days_advanced"] == 7
    assert resp.json()["season"]["days_passed"] == 8

    assert client.post("/advance/year").status_code == 400


def test_next_season_conflict(client):
    assert client.post("/season/next").status_code == 409


def test_full_season_then_next(client):
    for _ in range(2):
        client.post("/advance/month")
    assert client.get("/season").json()["completed"] is True
    assert client.post("/advance/day").status_code == 409
    resp = client.post("/season/next")
    assert resp.status_code == 200
    assert resp.json()["season_number"] == 2


def test_save_and_load(client, game):
    resp = client.post("/save")
    assert resp.status_code == 200
    assert Path(resp.json()["path"]).exists()
    client.post("/advance/week")
    resp = client.post("/load")
    assert resp.status_code == 200
    assert resp.json()["days_passed"] == 0


def test_load_missing_save_404(client, game, tmp_path):
    game.settings.save_path = tmp_path / "missing.json"
    assert client.post("/load").status_code == 404
