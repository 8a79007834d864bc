"""Full-depth minimax opponent for tic-tac-toe."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence
import logging
import math
import random

from .game import EMPTY, GameState, Player, empty_cells, is_full, opponent, winner_of

logger = logging.getLogger(__name__)

EASY = "easy"
HARD = "hard"
DIFFICULTIES = (EASY, HARD)

WIN_SCORE = 10


class NoLegalMoves(RuntimeError):
    """Raised when a move is requested on a finished or full board."""


def _legal_cells(board: Sequence[str]) -> List[int]:
    if winner_of(board) is not None or is_full(board):
        raise NoLegalMoves("No valid moves available")
    return empty_cells(board)


def evaluate(
    board: List[str],
    depth: int,
    maximizing: bool,
    computer: Player = "O",
    human: Player = "X",
) -> int:
    """Score ``board`` by exhaustive minimax, from the computer's side.

    Wins are worth ``10 - depth`` and losses ``depth - 10`` so quicker wins
    and slower losses are preferred. ``board`` is mutated while searching and
    restored before returning.
    """
    winner = winner_of(board)
    if winner == computer:
        return WIN_SCORE - depth
    if winner == human:
        return depth - WIN_SCORE
    if is_full(board):
        return 0

    mover = computer if maximizing else human
    best = -math.inf if maximizing else math.inf
    for i, cell in enumerate(board):
        if cell != EMPTY:
            continue
        board[i] = mover
        score = evaluate(board, depth + 1, not maximizing, computer, human)
        board[i] = EMPTY
        best = max(best, score) if maximizing else min(best, score)
    return int(best)


def move_scores(
    board: Sequence[str], computer: Player = "O", human: Player = "X"
) -> Dict[int, int]:
    """Minimax score of every legal move for ``computer``, keyed by cell."""
    work = list(board)
    scores: Dict[int, int] = {}
    for i in _legal_cells(work):
        work[i] = computer
        scores[i] = evaluate(work, 0, False, computer, human)
        work[i] = EMPTY
    return scores


def best_move(
    board: Sequence[str], computer: Player = "O", human: Player = "X"
) -> int:
    """Return the optimal cell for ``computer``; ties go to the lowest index."""
    best_score = -math.inf
    move: Optional[int] = None
    for i, score in move_scores(board, computer, human).items():
        if score > best_score:
            best_score, move = score, i
    assert move is not None
    logger.debug("best move for %s is %d (score %d)", computer, move, best_score)
    return move


def random_move(board: Sequence[str], rng: Optional[random.Random] = None) -> int:
    cells = _legal_cells(board)
    return (rng or random).choice(cells)


@dataclass
class MinimaxAI:
    """Computer player applying a difficulty policy.

    ``easy`` picks uniformly among free cells, ``hard`` plays the minimax
    optimum and never loses.
    """

    player: Player = "O"
    difficulty: str = HARD
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def __post_init__(self) -> None:
        if self.difficulty not in DIFFICULTIES:
            raise ValueError(f"Unsupported difficulty {self.difficulty!r}")

    @property
    def opponent(self) -> Player:
        return opponent(self.player)

    def choose(self, game: GameState) -> int:
        if game.current_player != self.player:
            raise ValueError("It is not this AI player's turn")
        if self.difficulty == EASY:
            return random_move(game.board, self.rng)
        return best_move(game.board, self.player, self.opponent)
