from __future__ import annotations

from typing import Dict, Optional

from .board import Board, Color, PieceType
from .executor import make_move
from .move import Position
from .rules import all_valid_moves


PROMOTION_TYPES = (PieceType.QUEEN, PieceType.ROOK, PieceType.BISHOP, PieceType.KNIGHT)


def perft(
    board: Board,
    depth: int,
    side: Color = Color.WHITE,
    en_passant_target: Optional[Position] = None,
) -> int:
    """Compute perft node count for ``board`` at ``depth``.

    Definition:
    - depth == 0 returns 1 (the current node).
    - depth > 0 returns the sum over all legal child positions' perft(depth-1).

    Each promotion choice counts as a separate move, matching published
    perft tables.
    """
    if depth < 0:
        raise ValueError("depth must be >= 0")
    if depth == 0:
        return 1

    nodes = 0
    for from_pos, to_pos in all_valid_moves(board, side, en_passant_target):
        piece = board.piece_at(from_pos)
        promotes = piece is not None and piece.type is PieceType.PAWN and to_pos.row in (0, 7)
        if depth == 1:
            nodes += len(PROMOTION_TYPES) if promotes else 1
            continue
        for promo in PROMOTION_TYPES if promotes else (None,):
            child, _, child_ep = make_move(board, from_pos, to_pos, en_passant_target, promo)
            nodes += perft(child, depth - 1, side.opponent, child_ep)
    return nodes


def perft_divide(
    board: Board,
    depth: int,
    side: Color = Color.WHITE,
    en_passant_target: Optional[Position] = None,
) -> Dict[str, int]:
    """Per-root-move perft counts keyed by coordinate move (``"e2e4"``, ``"e7e8q"``)."""
    if depth < 1:
        raise ValueError("depth must be >= 1")
    out: Dict[str, int] = {}
    for from_pos, to_pos in all_valid_moves(board, side, en_passant_target):
        piece = board.piece_at(from_pos)
        promotes = piece is not None and piece.type is PieceType.PAWN and to_pos.row in (0, 7)
        for promo in PROMOTION_TYPES if promotes else (None,):
            child, move, child_ep = make_move(board, from_pos, to_pos, en_passant_target, promo)
            out[move.to_uci()] = perft(child, depth - 1, side.opponent, child_ep)
    return out
