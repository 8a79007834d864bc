"""Tic-tac-toe package exposing game rules, the minimax opponent, and the web application."""

from .ai import MinimaxAI, NoLegalMoves, best_move, evaluate, random_move
from .game import WINNING_LINES, GameState, IllegalMove
from .ui import app

__all__ = [
    "GameState",
    "IllegalMove",
    "MinimaxAI",
    "NoLegalMoves",
    "WINNING_LINES",
    "app",
    "best_move",
    "evaluate",
    "random_move",
]
