from __future__ import annotations

import math
from typing import Optional

import pytest

from src.engine.board import Board, Color, parse_fen
from src.engine.executor import make_move
from src.engine.move import Position
from src.engine.rules import all_valid_moves, is_king_in_check
from src.eval import evaluate_board
from src.search.service import MATE_SCORE, minimax


def full_minimax(
    board: Board,
    depth: int,
    maximizing: bool,
    bot_color: Color,
    en_passant_target: Optional[Position],
) -> float:
    # Plain minimax over the whole tree, no cutoffs
    if depth == 0:
        return evaluate_board(board, bot_color)
    side = bot_color if maximizing else bot_color.opponent
    moves = all_valid_moves(board, side, en_passant_target)
    if not moves:
        if is_king_in_check(board, side):
            return -MATE_SCORE if maximizing else MATE_SCORE
        return 0
    values = []
    for from_pos, to_pos in moves:
        child, _, child_ep = make_move(board, from_pos, to_pos, en_passant_target)
        values.append(full_minimax(child, depth - 1, not maximizing, bot_color, child_ep))
    return max(values) if maximizing else min(values)


MIDDLEGAMES = [
    "r1bqkb1r/pppp1ppp/2n2n2/4p2Q/2B1P3/8/PPPP1PPP/RNB1K1NR w KQkq - 4 4",
    "r3k2r/p1ppqpb1/bn2pnp1/3PN3/1p2P3/2N2Q1p/PPPBBPPP/R3K2R w KQkq - 0 1",
    "r1bq1rk1/ppp2ppp/2np1n2/2b1p3/2B1P3/2NP1N2/PPP2PPP/R1BQ1RK1 b - - 0 6",
]

ENDGAMES = [
    "8/2p5/3p4/KP5r/1R3p1k/8/4P1P1/8 w - - 0 1",
    "6k1/5ppp/8/8/8/8/5PPP/R5K1 w - - 0 1",
    "4k3/1P6/8/3n4/8/8/8/4K2R w K - 0 1",
]


@pytest.mark.parametrize("fen", MIDDLEGAMES)
@pytest.mark.parametrize("maximizing", [True, False])
def test_pruning_keeps_depth_two_value(fen: str, maximizing: bool) -> None:
    state = parse_fen(fen)
    bot = state.side_to_move if maximizing else state.side_to_move.opponent
    ep = state.en_passant_target
    expected = full_minimax(state.board, 2, maximizing, bot, ep)
    assert minimax(state.board, 2, -math.inf, math.inf, maximizing, bot, ep) == expected


@pytest.mark.parametrize("fen", ENDGAMES)
def test_pruning_keeps_depth_three_value(fen: str) -> None:
    state = parse_fen(fen)
    bot = state.side_to_move
    ep = state.en_passant_target
    expected = full_minimax(state.board, 3, True, bot, ep)
    assert minimax(state.board, 3, -math.inf, math.inf, True, bot, ep) == expected
