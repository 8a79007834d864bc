"""FastAPI-powered web UI for playing tic-tac-toe in the browser."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import threading

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .ai import DIFFICULTIES, HARD, MinimaxAI, NoLegalMoves
from .game import GameState, IllegalMove

logger = logging.getLogger(__name__)

AI_MODE = "ai"
TWO_PLAYER_MODE = "2p"
GAME_MODES: Tuple[str, ...] = (AI_MODE, TWO_PLAYER_MODE)
ALLOWED_DIFFICULTIES: Tuple[str, ...] = DIFFICULTIES
AI_THINK_DELAY = 0.5  # seconds before the computer answers
MAX_NAME_LENGTH = 24

DEFAULT_X_NAME = "Player X"
DEFAULT_O_NAMES = {AI_MODE: "AI", TWO_PLAYER_MODE: "Player O"}


@dataclass
class Scoreboard:
    """Running tally of finished rounds for one session."""

    x_wins: int = 0
    o_wins: int = 0
    draws: int = 0

    def record(self, game: GameState) -> None:
        if game.winner == "X":
            self.x_wins += 1
        elif game.winner == "O":
            self.o_wins += 1
        elif game.drawn:
            self.draws += 1

    def clear(self) -> None:
        self.x_wins = self.o_wins = self.draws = 0


@dataclass
class GameSession:
    """Container for an active match, its names, scores and AI opponent."""

    game: GameState
    mode: str
    difficulty: str
    ai: Optional[MinimaxAI]
    players: Dict[str, str]
    scores: Scoreboard = field(default_factory=Scoreboard)
    move_log: List[Dict[str, int | str]] = field(default_factory=list)
    ai_pending: bool = False
    round: int = 1
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


SESSIONS: Dict[str, GameSession] = {}
app = FastAPI(title="Tic-Tac-Toe", description="Tic-tac-toe played in the browser")


def _clean_name(value: Optional[str], default: str) -> str:
    if value is None:
        return default
    value = value.strip()
    return value[:MAX_NAME_LENGTH] if value else default


class NewGameRequest(BaseModel):
    """Request payload for starting a new match."""

    model_config = ConfigDict(populate_by_name=True)

    mode: str = Field(default=AI_MODE, description="'ai' or '2p'")
    difficulty: str = Field(
        default=HARD, description="'easy' plays randomly, 'hard' never loses"
    )
    player_x: Optional[str] = Field(default=None, alias="playerX")
    player_o: Optional[str] = Field(default=None, alias="playerO")

    @field_validator("mode")
    @classmethod
    def ensure_supported_mode(cls, value: str) -> str:
        if value not in GAME_MODES:
            raise ValueError(
                f"Unsupported mode {value!r}. Choose one of {', '.join(GAME_MODES)}."
            )
        return value

    @field_validator("difficulty")
    @classmethod
    def ensure_supported_difficulty(cls, value: str) -> str:
        if value not in ALLOWED_DIFFICULTIES:
            raise ValueError(
                f"Unsupported difficulty {value!r}. "
                f"Choose one of {', '.join(ALLOWED_DIFFICULTIES)}."
            )
        return value


class MoveRequest(BaseModel):
    """Request payload for submitting a move on an existing game."""

    model_config = ConfigDict(populate_by_name=True)

    cell_index: int = Field(alias="cellIndex", ge=0, le=8)


class NamesRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    player_x: Optional[str] = Field(default=None, alias="playerX")
    player_o: Optional[str] = Field(default=None, alias="playerO")


def _create_session(request: NewGameRequest) -> Tuple[str, GameSession]:
    """Create a new game session and register it for later access."""

    ai: Optional[MinimaxAI] = None
    if request.mode == AI_MODE:
        ai = MinimaxAI(player="O", difficulty=request.difficulty)
    players = {
        "X": _clean_name(request.player_x, DEFAULT_X_NAME),
        "O": _clean_name(request.player_o, DEFAULT_O_NAMES[request.mode]),
    }
    session = GameSession(
        game=GameState(),
        mode=request.mode,
        difficulty=request.difficulty,
        ai=ai,
        players=players,
    )
    session_id = uuid.uuid4().hex
    SESSIONS[session_id] = session
    logger.info(
        "Created %s session %s (difficulty %s)",
        request.mode,
        session_id,
        request.difficulty,
    )
    return session_id, session


def _get_session(game_id: str) -> GameSession:
    try:
        return SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc


def _record_move(session: GameSession, player: str, cell_index: int) -> None:
    """Log a move and, if it ended the round, tally the result."""

    session.move_log.append({"player": player, "cellIndex": cell_index})
    game = session.game
    if game.is_over:
        session.scores.record(game)
        logger.info(
            "Round %d finished: %s",
            session.round,
            f"{game.winner} wins" if game.winner else "draw",
        )


def _status_message(session: GameSession) -> str:
    game = session.game
    names = session.players
    if game.winner == "X":
        return f"🏆 {names['X']} wins!"
    if game.winner == "O":
        return f"🤖 {names['O']} wins!"
    if game.drawn:
        return "🤝 It's a draw!"
    player = game.current_player
    return f"{names[player]}'s turn ({player})"


def _run_ai_turn(game_id: str, round_number: int) -> None:
    session = SESSIONS.get(game_id)
    if not session:
        return

    time.sleep(max(0.0, AI_THINK_DELAY))

    with session.lock:
        # A reset during the delay starts a new round; this turn is stale.
        if session.round != round_number:
            return
        try:
            if not session.ai:
                return
            game = session.game
            if game.is_over or game.current_player != session.ai.player:
                return
            cell_index = session.ai.choose(game)
            game.apply_move(cell_index)
            _record_move(session, session.ai.player, cell_index)
        except (IllegalMove, NoLegalMoves):
            logger.error("AI turn failed for session %s", game_id, exc_info=True)
        finally:
            session.ai_pending = False


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    with session.lock:
        game = session.game
        winning_line = game.winning_line(game.winner) if game.winner else None
        state: Dict[str, object] = {
            "id": game_id,
            "mode": session.mode,
            "difficulty": session.difficulty,
            "board": list(game.board),
            "currentPlayer": game.current_player,
            "status": game.status,
            "winner": game.winner,
            "drawn": game.drawn,
            "winningLine": list(winning_line) if winning_line else None,
            "availableMoves": game.available_moves(),
            "players": dict(session.players),
            "scores": {
                "X": session.scores.x_wins,
                "O": session.scores.o_wins,
                "draws": session.scores.draws,
            },
            "message": _status_message(session),
            "moveLog": list(session.move_log),
            "aiPending": session.ai_pending,
            "round": session.round,
        }
        if session.move_log:
            state["lastMove"] = session.move_log[-1]
        return state


def _apply_player_move(
    game_id: str,
    session: GameSession,
    cell_index: int,
    background_tasks: Optional[BackgroundTasks] = None,
) -> None:
    should_schedule_ai = False
    with session.lock:
        if session.ai_pending:
            raise HTTPException(status_code=409, detail="AI is completing its move")

        game = session.game
        player = game.current_player
        try:
            game.apply_move(cell_index)
        except IllegalMove as exc:
            logger.warning(
                "Rejected move %d in session %s: %s", cell_index, game_id, exc
            )
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        _record_move(session, player, cell_index)

        should_schedule_ai = bool(
            session.ai
            and not game.is_over
            and game.current_player == session.ai.player
        )
        if should_schedule_ai:
            session.ai_pending = True
        round_number = session.round

    if should_schedule_ai and background_tasks is not None:
        background_tasks.add_task(_run_ai_turn, game_id, round_number)


def _start_new_round(session: GameSession) -> None:
    with session.lock:
        session.game.reset()
        session.move_log.clear()
        session.ai_pending = False
        session.round += 1


@app.post("/api/game")
def create_game(request: NewGameRequest) -> Dict[str, object]:
    game_id, session = _create_session(request)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}")
def get_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/move")
def make_move(
    game_id: str, request: MoveRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    session = _get_session(game_id)
    _apply_player_move(game_id, session, request.cell_index, background_tasks)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/reset")
def reset_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    _start_new_round(session)
    return _serialize_session(game_id, session)


@app.put("/api/game/{game_id}/names")
def rename_players(game_id: str, request: NamesRequest) -> Dict[str, object]:
    session = _get_session(game_id)
    with session.lock:
        session.players["X"] = _clean_name(request.player_x, DEFAULT_X_NAME)
        session.players["O"] = _clean_name(
            request.player_o, DEFAULT_O_NAMES[session.mode]
        )
    return _serialize_session(game_id, session)


@app.delete("/api/game/{game_id}/scores")
def clear_scores(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    with session.lock:
        session.scores.clear()
    _start_new_round(session)
    return _serialize_session(game_id, session)


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>Tic-Tac-Toe</title>
    <link rel=\"preconnect\" href=\"https://fonts.googleapis.com\" />
    <link rel=\"preconnect\" href=\"https://fonts.gstatic.com\" crossorigin />
    <link
      href=\"https://fonts.googleapis.com/css2?family=Poppins:wght@400;500;600;700&display=swap\"
      rel=\"stylesheet\"
    />
    <style>
      :root {
        color-scheme: light;
        font-family: 'Poppins', system-ui, -apple-system, BlinkMacSystemFont, \"Segoe UI\", sans-serif;
        font-weight: 400;
        --page-bg: radial-gradient(circle at top, #f2f5ff, #dbe0ff 40%, #cfd8ff 70%);
        --card-bg: rgba(255, 255, 255, 0.92);
        --text: #13203a;
        --muted: rgba(19, 32, 58, 0.75);
        --cell-bg: #f5f7ff;
        --cell-border: rgba(58, 102, 255, 0.25);
        --x-color: #ff4d6d;
        --o-color: #3a7bff;
      }
      body.dark {
        color-scheme: dark;
        --page-bg: radial-gradient(circle at top, #1d2540, #121829 50%, #0b0f1c 80%);
        --card-bg: rgba(22, 28, 48, 0.94);
        --text: #e6ebff;
        --muted: rgba(220, 228, 255, 0.7);
        --cell-bg: #1f2843;
        --cell-border: rgba(120, 150, 255, 0.3);
      }
      * {
        box-sizing: border-box;
      }
      body {
        margin: 0;
        background: var(--page-bg);
        min-height: 100vh;
        display: flex;
        justify-content: center;
        padding: 2rem 1rem 3rem;
        color: var(--text);
        transition: background 0.4s ease;
      }
      main {
        background: var(--card-bg);
        border-radius: 18px;
        box-shadow: 0 20px 40px rgba(34, 47, 79, 0.16);
        padding: clamp(1.5rem, 4vw, 2.5rem);
        width: min(560px, 100%);
      }
      h1 {
        margin: 0 0 0.5rem;
        font-size: clamp(1.8rem, 2.4vw + 1.2rem, 2.6rem);
        text-align: center;
        letter-spacing: 0.06em;
      }
      .tagline {
        text-align: center;
        margin: 0 0 1.75rem;
        color: var(--muted);
        font-weight: 500;
      }
      .hidden {
        display: none !important;
      }
      .panel {
        margin-bottom: 1.75rem;
      }
      .mode-picker,
      .controls {
        display: flex;
        flex-wrap: wrap;
        gap: 1rem;
        justify-content: center;
        align-items: center;
      }
      .name-entry {
        display: grid;
        gap: 0.85rem;
        max-width: 22rem;
        margin: 0 auto;
      }
      .name-entry label {
        font-weight: 600;
        font-size: 0.9rem;
      }
      button,
      select,
      input[type='text'] {
        font-size: 1rem;
        padding: 0.55rem 0.95rem;
        border-radius: 999px;
        border: 1px solid rgba(60, 70, 120, 0.25);
        background: white;
        color: #13203a;
        cursor: pointer;
        transition: transform 0.1s ease, box-shadow 0.1s ease;
        font-family: inherit;
      }
      button:hover,
      select:hover,
      input[type='text']:focus {
        transform: translateY(-1px);
        box-shadow: 0 8px 18px rgba(0, 64, 128, 0.12);
        outline: none;
      }
      button:disabled {
        cursor: default;
        opacity: 0.6;
        transform: none;
        box-shadow: none;
      }
      .secondary {
        background: rgba(226, 232, 255, 0.9);
      }
      #status {
        text-align: center;
        font-weight: 600;
        font-size: 1.15rem;
        margin-bottom: 0.5rem;
        min-height: 1.6rem;
      }
      #message {
        text-align: center;
        color: #c0392b;
        min-height: 1.3rem;
        margin-bottom: 0.75rem;
      }
      .board {
        display: grid;
        grid-template-columns: repeat(3, 1fr);
        gap: 0.6rem;
        width: min(340px, 100%);
        margin: 0 auto 1.5rem;
        position: relative;
      }
      .cell {
        aspect-ratio: 1;
        border-radius: 14px;
        background: var(--cell-bg);
        border: 2px solid var(--cell-border);
        display: flex;
        align-items: center;
        justify-content: center;
        font-size: clamp(2.4rem, 8vw, 3.4rem);
        font-weight: 700;
        cursor: pointer;
        transition: background 0.2s ease, box-shadow 0.3s ease;
      }
      .cell.x {
        color: var(--x-color);
      }
      .cell.o {
        color: var(--o-color);
      }
      .cell.winning-glow {
        box-shadow: 0 0 18px 4px rgba(255, 214, 10, 0.85);
        background: rgba(255, 214, 10, 0.25);
      }
      .board.thinking::after {
        content: '';
        position: absolute;
        inset: 0;
        background: rgba(255, 255, 255, 0.35);
        border-radius: 16px;
        pointer-events: none;
      }
      .scores {
        display: flex;
        justify-content: space-around;
        gap: 0.5rem;
        margin-bottom: 1.25rem;
        font-weight: 500;
        color: var(--muted);
      }
      .theme-toggle {
        position: fixed;
        top: 1rem;
        right: 1rem;
      }
    </style>
  </head>
  <body>
    <button id=\"theme-toggle\" class=\"theme-toggle secondary\" type=\"button\" aria-label=\"Toggle dark theme\">&#9789;</button>
    <main>
      <h1>Tic-Tac-Toe</h1>
      <p class=\"tagline\">Challenge the computer or play a friend on the same screen.</p>
      <section id=\"start-screen\" class=\"panel mode-picker\">
        <button id=\"play-ai\">Play vs AI</button>
        <button id=\"play-friend\">Play with a friend</button>
      </section>
      <section id=\"name-entry-screen\" class=\"panel hidden\">
        <div class=\"name-entry\">
          <label for=\"mode\">Mode</label>
          <select id=\"mode\">
            <option value=\"ai\">Versus AI</option>
            <option value=\"2p\">Two players</option>
          </select>
          <label for=\"difficulty\">AI difficulty</label>
          <select id=\"difficulty\">
            <option value=\"easy\">Easy</option>
            <option value=\"hard\" selected>Hard</option>
          </select>
          <label for=\"player-x\">Player X</label>
          <input id=\"player-x\" type=\"text\" maxlength=\"24\" placeholder=\"Player X Name\" />
          <label for=\"player-o\">Player O</label>
          <input id=\"player-o\" type=\"text\" maxlength=\"24\" placeholder=\"AI Name\" />
          <button id=\"start-game\">Start game</button>
        </div>
      </section>
      <section id=\"game-screen\" class=\"panel hidden\">
        <div id=\"status\"></div>
        <div id=\"message\" role=\"status\"></div>
        <div id=\"board\" class=\"board\"></div>
        <div class=\"scores\">
          <span id=\"score-x\"></span>
          <span id=\"score-o\"></span>
          <span id=\"score-draws\"></span>
        </div>
        <div class=\"controls\">
          <button id=\"restart\">Restart</button>
          <button id=\"clear-scores\" class=\"secondary\">Clear scores</button>
          <button id=\"go-back\" class=\"secondary\">Back</button>
        </div>
      </section>
    </main>
    <script>
      const startScreen = document.getElementById('start-screen');
      const nameEntryScreen = document.getElementById('name-entry-screen');
      const gameScreen = document.getElementById('game-screen');
      const modeEl = document.getElementById('mode');
      const difficultyEl = document.getElementById('difficulty');
      const playerXInput = document.getElementById('player-x');
      const playerOInput = document.getElementById('player-o');
      const boardEl = document.getElementById('board');
      const statusEl = document.getElementById('status');
      const messageEl = document.getElementById('message');
      const scoreXEl = document.getElementById('score-x');
      const scoreOEl = document.getElementById('score-o');
      const scoreDrawsEl = document.getElementById('score-draws');

      let gameId = null;
      let gameState = null;
      let aiPollHandle = null;
      let isRequestPending = false;
      let lastGlowRound = null;

      function showScreen(screen) {
        [startScreen, nameEntryScreen, gameScreen].forEach((section) => {
          section.classList.toggle('hidden', section !== screen);
        });
      }

      function loadNames() {
        playerXInput.value = localStorage.getItem('playerXName') || 'Player X';
        playerOInput.value =
          localStorage.getItem('playerOName') || (modeEl.value === 'ai' ? 'AI' : 'Player O');
      }

      function saveNames() {
        localStorage.setItem('playerXName', playerXInput.value);
        localStorage.setItem('playerOName', playerOInput.value);
      }

      function checkModeSettings() {
        const isAiMode = modeEl.value === 'ai';
        difficultyEl.disabled = !isAiMode;
        difficultyEl.style.display = isAiMode ? 'block' : 'none';
        playerOInput.placeholder = isAiMode ? 'AI Name' : 'Player O Name';
        const current = playerOInput.value.trim();
        if ((isAiMode && (current === 'Player O' || current === '')) ||
            (!isAiMode && (current === 'AI' || current === ''))) {
          playerOInput.value = isAiMode ? 'AI' : 'Player O';
        }
      }

      function showNameEntry(mode) {
        modeEl.value = mode;
        loadNames();
        checkModeSettings();
        showScreen(nameEntryScreen);
      }

      function stopAiPolling() {
        if (aiPollHandle !== null) {
          clearTimeout(aiPollHandle);
          aiPollHandle = null;
        }
      }

      function ensureAiPolling() {
        if (aiPollHandle !== null) return;
        aiPollHandle = window.setTimeout(pollAiState, 250);
      }

      async function request(url, options = {}) {
        const response = await fetch(url, {
          headers: { 'Content-Type': 'application/json' },
          ...options,
        });
        if (!response.ok) {
          const payload = await response.json().catch(() => ({}));
          const detail = typeof payload?.detail === 'string' ? payload.detail : 'Request failed';
          throw new Error(detail);
        }
        return response.json();
      }

      async function startGame() {
        if (isRequestPending) return;
        isRequestPending = true;
        saveNames();
        stopAiPolling();
        messageEl.textContent = '';
        try {
          const data = await request('/api/game', {
            method: 'POST',
            body: JSON.stringify({
              mode: modeEl.value,
              difficulty: difficultyEl.value,
              playerX: playerXInput.value,
              playerO: playerOInput.value,
            }),
          });
          showScreen(gameScreen);
          setState(data);
        } catch (error) {
          messageEl.textContent = error.message || 'Network error. Please try again.';
        } finally {
          isRequestPending = false;
        }
      }

      async function pollAiState() {
        aiPollHandle = null;
        if (!gameId) return;
        try {
          setState(await request(`/api/game/${gameId}`));
        } catch (error) {
          console.error('Polling failed', error);
        } finally {
          if (gameState?.aiPending) {
            ensureAiPolling();
          }
        }
      }

      async function sendMove(cellIndex) {
        if (!gameState || gameState.status !== 'in_progress' || gameState.aiPending) return;
        if (isRequestPending || !gameId) return;
        isRequestPending = true;
        messageEl.textContent = '';
        try {
          const data = await request(`/api/game/${gameId}/move`, {
            method: 'POST',
            body: JSON.stringify({ cellIndex }),
          });
          setState(data);
        } catch (error) {
          messageEl.textContent = error.message;
        } finally {
          isRequestPending = false;
        }
      }

      async function sendCommand(path, method) {
        if (!gameId || isRequestPending) return;
        isRequestPending = true;
        stopAiPolling();
        messageEl.textContent = '';
        try {
          setState(await request(`/api/game/${gameId}/${path}`, { method }));
        } catch (error) {
          messageEl.textContent = error.message;
        } finally {
          isRequestPending = false;
        }
      }

      function setState(data) {
        gameId = data.id;
        gameState = data;
        renderBoard();
        updateStatus();
        if (gameState.aiPending) {
          ensureAiPolling();
        } else {
          stopAiPolling();
        }
      }

      function renderBoard() {
        boardEl.innerHTML = '';
        const cells = gameState ? gameState.board : Array(9).fill('');
        cells.forEach((value, index) => {
          const cell = document.createElement('div');
          cell.className = 'cell';
          if (value) {
            cell.textContent = value;
            cell.classList.add(value.toLowerCase());
          }
          cell.addEventListener('click', () => sendMove(index));
          boardEl.appendChild(cell);
        });
        boardEl.classList.toggle('thinking', Boolean(gameState?.aiPending));
        const line = gameState?.winningLine;
        if (line && lastGlowRound !== gameState.round) {
          lastGlowRound = gameState.round;
          line.forEach((index) => boardEl.children[index]?.classList.add('winning-glow'));
          window.setTimeout(() => {
            line.forEach((index) => boardEl.children[index]?.classList.remove('winning-glow'));
          }, 2000);
        }
      }

      function updateStatus() {
        if (!gameState) {
          statusEl.textContent = '';
          return;
        }
        statusEl.textContent = gameState.message;
        const { players, scores } = gameState;
        scoreXEl.textContent = `${players.X}: ${scores.X}`;
        scoreOEl.textContent = `${players.O}: ${scores.O}`;
        scoreDrawsEl.textContent = `Draws: ${scores.draws}`;
      }

      function returnToStart() {
        stopAiPolling();
        gameId = null;
        gameState = null;
        lastGlowRound = null;
        statusEl.textContent = '';
        messageEl.textContent = '';
        showScreen(startScreen);
      }

      document.getElementById('play-ai').addEventListener('click', () => showNameEntry('ai'));
      document.getElementById('play-friend').addEventListener('click', () => showNameEntry('2p'));
      document.getElementById('start-game').addEventListener('click', startGame);
      document.getElementById('restart').addEventListener('click', () => sendCommand('reset', 'POST'));
      document.getElementById('clear-scores').addEventListener('click', () => {
        localStorage.removeItem('playerXName');
        localStorage.removeItem('playerOName');
        sendCommand('scores', 'DELETE');
      });
      document.getElementById('go-back').addEventListener('click', returnToStart);
      document.getElementById('theme-toggle').addEventListener('click', () => {
        document.body.classList.toggle('dark');
      });
      modeEl.addEventListener('change', checkModeSettings);

      showScreen(startScreen);
      loadNames();
    </script>
  </body>
</html>
"""
