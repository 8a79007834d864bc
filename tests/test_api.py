"""Tests for the FastAPI tic-tac-toe interface."""

from __future__ import annotations

from fastapi.testclient import TestClient

from tictactoe import ui
from tictactoe.ui import app


client = TestClient(app)
ui.AI_THINK_DELAY = 0.0


def _new_game(**payload):
    response = client.post("/api/game", json=payload)
    assert response.status_code == 200
    return response.json()


def _play(game_id, *cells):
    state = None
    for cell in cells:
        response = client.post(f"/api/game/{game_id}/move", json={"cellIndex": cell})
        assert response.status_code == 200, response.json()
        state = response.json()
    return state


def test_create_game_defaults():
    payload = _new_game()
    assert payload["mode"] == "ai"
    assert payload["difficulty"] == "hard"
    assert payload["board"] == [""] * 9
    assert payload["currentPlayer"] == "X"
    assert payload["status"] == "in_progress"
    assert payload["players"] == {"X": "Player X", "O": "AI"}
    assert payload["scores"] == {"X": 0, "O": 0, "draws": 0}
    assert payload["message"] == "Player X's turn (X)"
    assert payload["moveLog"] == []
    assert payload["aiPending"] is False


def test_first_move_schedules_ai_reply():
    game_id = _new_game(difficulty="hard")["id"]

    state = _play(game_id, 4)
    assert state["board"][4] == "X"
    assert state["currentPlayer"] == "O"
    assert state["aiPending"] is True

    follow_up = client.get(f"/api/game/{game_id}")
    assert follow_up.status_code == 200
    final_state = follow_up.json()
    assert final_state["aiPending"] is False
    assert final_state["currentPlayer"] == "X"
    assert final_state["moveLog"][-1]["player"] == "O"
    assert final_state["board"].count("O") == 1
    # minimax answers a centre opening with the first corner
    assert final_state["board"][0] == "O"


def test_easy_ai_replies_with_a_legal_move():
    game_id = _new_game(difficulty="easy")["id"]
    _play(game_id, 0)
    final_state = client.get(f"/api/game/{game_id}").json()
    assert final_state["board"][0] == "X"
    assert final_state["board"].count("O") == 1


def test_invalid_move_rejected():
    game_id = _new_game()["id"]
    _play(game_id, 0)

    duplicate_move = client.post(f"/api/game/{game_id}/move", json={"cellIndex": 0})
    assert duplicate_move.status_code == 400
    assert duplicate_move.json()["detail"] == "Cell already occupied"


def test_move_refused_while_ai_pending():
    game_id = _new_game()["id"]
    session = ui.SESSIONS[game_id]
    session.ai_pending = True
    response = client.post(f"/api/game/{game_id}/move", json={"cellIndex": 0})
    assert response.status_code == 409
    assert session.game.board == [""] * 9


def test_two_player_win_updates_scores():
    payload = _new_game(mode="2p", playerX="Ada", playerO="Grace")
    assert payload["players"] == {"X": "Ada", "O": "Grace"}
    game_id = payload["id"]

    state = _play(game_id, 0, 3, 1, 4, 2)
    assert state["status"] == "won"
    assert state["winner"] == "X"
    assert state["winningLine"] == [0, 1, 2]
    assert state["scores"] == {"X": 1, "O": 0, "draws": 0}
    assert state["message"] == "🏆 Ada wins!"
    assert state["aiPending"] is False

    after_end = client.post(f"/api/game/{game_id}/move", json={"cellIndex": 8})
    assert after_end.status_code == 400


def test_two_player_draw():
    game_id = _new_game(mode="2p")["id"]
    state = _play(game_id, 0, 4, 8, 2, 6, 3, 5, 7, 1)
    assert state["status"] == "draw"
    assert state["drawn"] is True
    assert state["winner"] is None
    assert state["winningLine"] is None
    assert state["scores"] == {"X": 0, "O": 0, "draws": 1}
    assert state["message"] == "🤝 It's a draw!"


def test_reset_keeps_scores_and_names():
    game_id = _new_game(mode="2p")["id"]
    _play(game_id, 3, 0, 4, 1, 8, 2)

    response = client.post(f"/api/game/{game_id}/reset")
    assert response.status_code == 200
    state = response.json()
    assert state["board"] == [""] * 9
    assert state["currentPlayer"] == "X"
    assert state["status"] == "in_progress"
    assert state["scores"] == {"X": 0, "O": 1, "draws": 0}
    assert state["players"] == {"X": "Player X", "O": "Player O"}
    assert state["moveLog"] == []
    assert state["round"] == 2


def test_clear_scores_starts_fresh_round():
    game_id = _new_game(mode="2p")["id"]
    _play(game_id, 0, 3, 1, 4, 2)

    response = client.delete(f"/api/game/{game_id}/scores")
    assert response.status_code == 200
    state = response.json()
    assert state["scores"] == {"X": 0, "O": 0, "draws": 0}
    assert state["board"] == [""] * 9


def test_rename_players_falls_back_to_defaults():
    game_id = _new_game()["id"]
    response = client.put(
        f"/api/game/{game_id}/names", json={"playerX": "  Linus  ", "playerO": " "}
    )
    assert response.status_code == 200
    state = response.json()
    assert state["players"] == {"X": "Linus", "O": "AI"}
    assert state["message"] == "Linus's turn (X)"


def test_stale_ai_turn_is_ignored_after_reset():
    game_id = _new_game()["id"]
    session = ui.SESSIONS[game_id]
    session.game.apply_move(4)
    session.round = 2

    ui._run_ai_turn(game_id, 1)
    assert session.game.board.count("O") == 0

    ui._run_ai_turn(game_id, 2)
    assert session.game.board.count("O") == 1
    assert session.move_log[-1]["player"] == "O"


def test_rejects_unsupported_settings():
    assert client.post("/api/game", json={"mode": "online"}).status_code == 422
    assert client.post("/api/game", json={"difficulty": "medium"}).status_code == 422


def test_rejects_off_board_cell():
    game_id = _new_game()["id"]
    response = client.post(f"/api/game/{game_id}/move", json={"cellIndex": 9})
    assert response.status_code == 422


def test_missing_game_returns_404():
    missing = client.get("/api/game/INVALID")
    assert missing.status_code == 404


def test_index_serves_page():
    response = client.get("/")
    assert response.status_code == 200
    assert "Tic-Tac-Toe" in response.text
