"""Core rules for classic 3x3 tic-tac-toe."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple
import logging

logger = logging.getLogger(__name__)

Player = str  # "X" or "O"
Line = Tuple[int, int, int]

EMPTY = ""
PLAYERS: Tuple[Player, Player] = ("X", "O")

IN_PROGRESS = "in_progress"
WON = "won"
DRAW = "draw"

# Rows, then columns, then diagonals. Order matters for winning_line().
WINNING_LINES: Tuple[Line, ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)


class IllegalMove(ValueError):
    """Raised when a move targets an occupied cell or a finished game."""


def opponent(player: Player) -> Player:
    return "O" if player == "X" else "X"


def is_full(board: Sequence[str]) -> bool:
    return all(c != EMPTY for c in board)


def empty_cells(board: Sequence[str]) -> List[int]:
    return [i for i, c in enumerate(board) if c == EMPTY]


def line_for(board: Sequence[str], player: Player) -> Optional[Line]:
    for line in WINNING_LINES:
        a, b, c = line
        if board[a] == board[b] == board[c] == player:
            return line
    return None


def winner_of(board: Sequence[str]) -> Optional[Player]:
    """Return the player holding a complete line, or None."""
    for a, b, c in WINNING_LINES:
        v = board[a]
        if v != EMPTY and v == board[b] == board[c]:
            return v
    return None


@dataclass
class GameState:
    board: List[str] = field(default_factory=lambda: [EMPTY] * 9)
    current_player: Player = "X"
    winner: Optional[Player] = None
    drawn: bool = False

    @classmethod
    def from_board(
        cls, cells: Iterable[str], current_player: Optional[Player] = None
    ) -> "GameState":
        """Build a state from an existing board, deriving its status.

        When ``current_player`` is omitted it is inferred from the mark
        counts: X moves when both sides have played equally often.
        """
        board = list(cells)
        if len(board) != 9:
            raise ValueError(f"Board must have 9 cells, got {len(board)}")
        for cell in board:
            if cell not in (EMPTY, "X", "O"):
                raise ValueError(f"Unknown cell value {cell!r}")
        if current_player is None:
            current_player = "X" if board.count("X") <= board.count("O") else "O"
        elif current_player not in PLAYERS:
            raise ValueError(f"Unknown player {current_player!r}")

        game = cls(board=board, current_player=current_player)
        game._update_state()
        return game

    @property
    def status(self) -> str:
        if self.winner:
            return WON
        if self.drawn:
            return DRAW
        return IN_PROGRESS

    @property
    def is_over(self) -> bool:
        return self.status != IN_PROGRESS

    def available_moves(self) -> List[int]:
        if self.is_over:
            return []
        return empty_cells(self.board)

    def apply_move(self, index: int) -> "GameState":
        """Place the current player's mark at ``index`` and advance the game.

        Raises :class:`IllegalMove` without touching any state when the game
        is over, the index is off the board, or the cell is taken.
        """
        if self.is_over:
            raise IllegalMove("Game already finished")
        if not 0 <= index < 9:
            raise IllegalMove(f"Cell index {index} is off the board")
        if self.board[index] != EMPTY:
            raise IllegalMove("Cell already occupied")

        player = self.current_player
        self.board[index] = player
        logger.debug("%s played cell %d", player, index)

        if line_for(self.board, player):
            self.winner = player
        elif is_full(self.board):
            self.drawn = True
        else:
            self.current_player = opponent(player)
        return self

    def winning_line(self, player: Player) -> Optional[Line]:
        return line_for(self.board, player)

    def reset(self) -> None:
        self.board = [EMPTY] * 9
        self.current_player = "X"
        self.winner = None
        self.drawn = False

    def clone(self) -> "GameState":
        return GameState(
            board=self.board.copy(),
            current_player=self.current_player,
            winner=self.winner,
            drawn=self.drawn,
        )

    # ---- helpers ----

    def _update_state(self) -> None:
        self.winner = winner_of(self.board)
        self.drawn = self.winner is None and is_full(self.board)
