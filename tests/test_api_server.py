"""Tests for the HTTP API."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from conquest import api_server
from conquest.game.phases import GamePhase
from conquest.utils.game_manager import GameManager

from .helpers import enter_attack, make_game, set_board


@pytest.fixture
def client(tmp_persistence, monkeypatch):
    monkeypatch.setattr(api_server, "game_manager", GameManager(tmp_persistence))
    return TestClient(api_server.app)


def create_game(client, **overrides):
    payload = {"player_names": ["Ann", "Bob"], "human_player_count": 2, "seed": "api"}
    payload.update(overrides)
    response = client.post("/api/games", json=payload)
    assert response.status_code == 200, response.text
    return response.json()["game_id"]


def owned_territory(client, game_id, player_id):
    board = client.get(f"/api/games/{game_id}/board").json()
    return sorted(t for t, data in board["territories"].items() if data["owner"] == player_id)[0]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "battles_fought" in response.json()["stats"]


def test_maps(client):
    maps = client.get("/api/maps").json()["maps"]
    assert {m["id"] for m in maps} == {"world", "europe", "turkey"}


def test_create_and_status(client):
    game_id = create_game(client)
    status = client.get(f"/api/games/{game_id}").json()
    assert status["phase"] == "draft"
    assert status["turn"] == 1
    assert status["draft_armies"] == 6
    assert [g["game_id"] for g in client.get("/api/games").json()["games"]] == [game_id]


def test_create_sequential_on_europe(client):
    game_id = create_game(client, placement_mode="sequential", map_id="europe")
    status = client.get(f"/api/games/{game_id}").json()
    assert status["phase"] == "placement"
    assert status["placement_stage"] == "claim"
    assert status["map"] == "europe"


def test_create_validation(client):
    assert client.post("/api/games", json={"player_names": ["Solo"]}).status_code == 422
    response = client.post("/api/games", json={"player_names": ["Ann", "Bob"], "map_id": "atlantis"})
    assert response.status_code == 400


def test_unknown_game(client):
    assert client.get("/api/games/missing").status_code == 404
    assert client.post("/api/games/missing/place", json={"territory": "alaska"}).status_code == 404


def test_place_army(client):
    game_id = create_game(client)
    territory = owned_territory(client, game_id, 0)
    response = client.post(f"/api/games/{game_id}/place", json={"territory": territory})
    assert response.status_code == 200
    assert response.json()["status"]["draft_armies"] == 5


def test_illegal_place_is_400(client):
    game_id = create_game(client)
    territory = owned_territory(client, game_id, 1)
    response = client.post(f"/api/games/{game_id}/place", json={"territory": territory})
    assert response.status_code == 400
    assert client.get(f"/api/games/{game_id}").json()["draft_armies"] == 6


def test_ai_turn_runs_in_background(client, monkeypatch):
    monkeypatch.setenv("CONQUEST_AI_STEP_DELAY", "0")
    game_id = create_game(client, human_player_count=1)
    territory = owned_territory(client, game_id, 0)
    for _ in range(6):
        assert client.post(f"/api/games/{game_id}/place", json={"territory": territory}).status_code == 200

    # Bob drafted in the background and the opening round handed the turn back
    status = client.get(f"/api/games/{game_id}").json()
    assert status["current_player"] == "Ann"
    assert status["turn"] == 2
    assert status["phase"] == "draft"
    history = client.get(f"/api/games/{game_id}/history", params={"limit": 500}).json()["history"]
    assert any(entry["action"] == "draft" and entry["player_id"] == 1 for entry in history)
    assert api_server._draining == set()


def test_drain_skipped_while_one_is_running(monkeypatch):
    game = make_game(humans=0, seed="drain")
    assert game.scheduler.pending == 1
    monkeypatch.setattr(api_server, "_draining", {game.game_id})

    asyncio.run(api_server.run_deferred_steps(game))
    assert game.scheduler.pending == 1
    assert game.phase == GamePhase.DRAFT
    assert game.draft_armies == 6


def test_failed_attack_selection_changes_nothing(client):
    game_id = create_game(client)
    game = api_server.game_manager.get_game(game_id)
    set_board(game, {"kamchatka": 1, "argentina": 1}, armies={"alaska": 5})
    enter_attack(game)

    payload = {"from_territory": "alaska", "to_territory": "argentina"}
    assert client.post(f"/api/games/{game_id}/attack/select", json=payload).status_code == 400
    assert game.attack_from is None and game.attack_to is None

    payload["to_territory"] = "kamchatka"
    assert client.post(f"/api/games/{game_id}/attack/select", json=payload).status_code == 200
    assert (game.attack_from, game.attack_to) == ("alaska", "kamchatka")


def test_failed_fortify_changes_nothing(client):
    game_id = create_game(client)
    game = api_server.game_manager.get_game(game_id)
    set_board(game, {"argentina": 1}, armies={"alaska": 5})
    enter_attack(game)
    assert game.end_attack_phase()

    payload = {"from_territory": "alaska", "to_territory": "alberta", "armies": 5}
    assert client.post(f"/api/games/{game_id}/fortify", json=payload).status_code == 400
    assert game.fortify_from is None and game.fortify_to is None
    assert game.phase == GamePhase.FORTIFY
    assert game.get_territory_state("alaska").army_count == 5


def test_attack_outside_attack_phase(client):
    game_id = create_game(client)
    assert client.post(f"/api/games/{game_id}/attack", json={}).status_code == 400
    assert client.post(f"/api/games/{game_id}/attack/end").status_code == 400
    assert client.post(f"/api/games/{game_id}/conquest-move", json={"armies": 1}).status_code == 400


def test_redeem_without_cards(client):
    game_id = create_game(client)
    assert client.post(f"/api/games/{game_id}/redeem").status_code == 400


def test_fortify_requires_route_when_moving(client):
    game_id = create_game(client)
    response = client.post(f"/api/games/{game_id}/fortify", json={"armies": 2})
    assert response.status_code == 422


def test_ai_step_for_human_is_rejected(client):
    game_id = create_game(client)
    assert client.post(f"/api/games/{game_id}/ai-step").status_code == 400


def test_save_and_load(client):
    game_id = create_game(client)
    assert client.post(f"/api/games/{game_id}/save").status_code == 200
    assert client.get("/api/saves").json()["saved_games"] == [game_id]

    territory = owned_territory(client, game_id, 0)
    client.post(f"/api/games/{game_id}/place", json={"territory": territory})

    response = client.post(f"/api/games/{game_id}/load")
    assert response.status_code == 200
    assert response.json()["status"]["draft_armies"] == 6


def test_delete_save(client):
    game_id = create_game(client)
    client.post(f"/api/games/{game_id}/save")
    assert client.delete(f"/api/saves/{game_id}").status_code == 200
    assert client.get("/api/saves").json()["saved_games"] == []
    assert client.delete(f"/api/saves/{game_id}").status_code == 404


def test_load_without_save(client):
    assert client.post("/api/games/nothing/load").status_code == 404


def test_history_and_delete(client):
    game_id = create_game(client)
    history = client.get(f"/api/games/{game_id}/history").json()["history"]
    assert history[0]["action"] == "init_game"

    assert client.delete(f"/api/games/{game_id}").status_code == 200
    assert client.get(f"/api/games/{game_id}").status_code == 404
