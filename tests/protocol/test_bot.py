from __future__ import annotations

from fastapi.testclient import TestClient

from src.protocol.http.app import create_app


def _bot_game(client: TestClient, bot_color: str = "black") -> str:
    r = client.post(
        "/api/games", json={"mode": "bot", "bot_color": bot_color, "difficulty": "easy"}
    )
    assert r.status_code == 200
    return r.json()["game_id"]


def test_bot_move_out_of_turn_is_conflict() -> None:
    client = TestClient(create_app())
    game_id = _bot_game(client)
    r = client.post(f"/api/games/{game_id}/bot")
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "conflict"


def test_human_cannot_move_for_bot() -> None:
    client = TestClient(create_app())
    game_id = _bot_game(client)
    assert client.post(f"/api/games/{game_id}/move", json={"move": "e2e4"}).status_code == 200
    r = client.post(f"/api/games/{game_id}/move", json={"move": "e7e5"})
    assert r.status_code == 409


def test_bot_replies_after_human_move() -> None:
    client = TestClient(create_app())
    game_id = _bot_game(client)
    client.post(f"/api/games/{game_id}/move", json={"move": "e2e4"})

    r = client.post(f"/api/games/{game_id}/bot")
    assert r.status_code == 200
    state = r.json()
    assert state["current_player"] == "white"
    assert len(state["move_history"]) == 2
    assert state["bot_thinking"] is False


def test_bot_playing_white_moves_first() -> None:
    client = TestClient(create_app())
    game_id = _bot_game(client, bot_color="white")
    state = client.get(f"/api/games/{game_id}/state").json()
    assert state["bot_color"] == "white"
    r = client.post(f"/api/games/{game_id}/bot")
    assert r.status_code == 200
    assert r.json()["current_player"] == "black"
