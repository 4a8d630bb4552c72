from __future__ import annotations

import logging
import math
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from src.engine.board import Board, Color
from src.engine.executor import make_move
from src.engine.move import Position
from src.engine.rules import all_valid_moves, is_king_in_check
from src.eval import evaluate_board


logger = logging.getLogger(__name__)

MATE_SCORE = 10_000
EASY_RANDOM_MOVE_PROBABILITY = 0.4

BotMove = Tuple[Position, Position]


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @property
    def depth(self) -> int:
        return {Difficulty.EASY: 1, Difficulty.MEDIUM: 2, Difficulty.HARD: 3}[self]


@dataclass
class SearchStats:
    nodes: int = 0


@dataclass
class SearchResult:
    best_move: Optional[BotMove]
    score: Optional[float]
    depth: int
    nodes: int
    time_ms: int
    random_pick: bool


def minimax(
    board: Board,
    depth: int,
    alpha: float,
    beta: float,
    maximizing: bool,
    bot_color: Color,
    en_passant_target: Optional[Position],
    stats: Optional[SearchStats] = None,
) -> float:
    """Fixed-depth minimax with alpha-beta pruning, scored for ``bot_color``.

    Mate scores are +/- ``MATE_SCORE`` regardless of distance; stalemate is 0.
    Hypothetical promotions always take the default queen.
    """
    if stats is not None:
        stats.nodes += 1
    if depth == 0:
        return evaluate_board(board, bot_color)

    side = bot_color if maximizing else bot_color.opponent
    moves = all_valid_moves(board, side, en_passant_target)
    if not moves:
        if is_king_in_check(board, side):
            return -MATE_SCORE if maximizing else MATE_SCORE
        return 0

    if maximizing:
        best = -math.inf
        for from_pos, to_pos in moves:
            child, _, child_ep = make_move(board, from_pos, to_pos, en_passant_target)
            value = minimax(child, depth - 1, alpha, beta, False, bot_color, child_ep, stats)
            best = max(best, value)
            alpha = max(alpha, value)
            if beta <= alpha:
                break
        return best

    best = math.inf
    for from_pos, to_pos in moves:
        child, _, child_ep = make_move(board, from_pos, to_pos, en_passant_target)
        value = minimax(child, depth - 1, alpha, beta, True, bot_color, child_ep, stats)
        best = min(best, value)
        beta = min(beta, value)
        if beta <= alpha:
            break
    return best


def _choose(
    board: Board,
    bot_color: Color,
    en_passant_target: Optional[Position],
    difficulty: Difficulty,
    rng: random.Random,
    stats: Optional[SearchStats] = None,
) -> Tuple[Optional[BotMove], Optional[float], bool]:
    moves: List[BotMove] = all_valid_moves(board, bot_color, en_passant_target)
    if not moves:
        return None, None, False

    if difficulty is Difficulty.EASY and rng.random() < EASY_RANDOM_MOVE_PROBABILITY:
        return moves[rng.randrange(len(moves))], None, True

    best_move = moves[0]
    best_value = -math.inf
    for from_pos, to_pos in moves:
        child, _, child_ep = make_move(board, from_pos, to_pos, en_passant_target)
        value = minimax(
            child, difficulty.depth - 1, -math.inf, math.inf, False, bot_color, child_ep, stats
        )
        # Strict comparison keeps the first of equally scored moves
        if value > best_value:
            best_value = value
            best_move = (from_pos, to_pos)
    return best_move, best_value, False


def get_bot_move(
    board: Board,
    bot_color: Color,
    en_passant_target: Optional[Position],
    difficulty: Difficulty = Difficulty.MEDIUM,
    rng: Optional[random.Random] = None,
) -> Optional[BotMove]:
    """Pick a move for ``bot_color``, or ``None`` if it has no legal move.

    Easy plays a uniformly random legal move 40% of the time. Otherwise every
    root move is scored by ``minimax`` from the opponent's reply onward and
    the highest score wins.
    """
    move, _, _ = _choose(
        board, bot_color, en_passant_target, Difficulty(difficulty), rng or random.Random()
    )
    return move


class SearchService:
    """Bot search with timing and node accounting for the protocol layers."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def search(
        self,
        board: Board,
        bot_color: Color,
        en_passant_target: Optional[Position],
        difficulty: Difficulty = Difficulty.MEDIUM,
    ) -> SearchResult:
        difficulty = Difficulty(difficulty)
        stats = SearchStats()
        start = time.perf_counter()
        move, score, random_pick = _choose(
            board, bot_color, en_passant_target, difficulty, self._rng, stats
        )
        time_ms = int((time.perf_counter() - start) * 1000)
        logger.debug(
            "bot search",
            extra={
                "difficulty": difficulty.value,
                "best_move": move,
                "score": score,
                "nodes": stats.nodes,
                "time_ms": time_ms,
                "random_pick": random_pick,
            },
        )
        return SearchResult(
            best_move=move,
            score=score,
            depth=difficulty.depth,
            nodes=stats.nodes,
            time_ms=time_ms,
            random_pick=random_pick,
        )
