"""Static evaluation used by the bot.

Pure, deterministic, and side-effect free.
"""

from __future__ import annotations

from typing import Dict, Final

from src.engine.board import Board, Color, PieceType


# Material values in pawns
PIECE_VALUES: Final[Dict[PieceType, int]] = {
    PieceType.PAWN: 1,
    PieceType.KNIGHT: 3,
    PieceType.BISHOP: 3,
    PieceType.ROOK: 5,
    PieceType.QUEEN: 9,
    PieceType.KING: 0,
}

CENTER_BONUS: Final = 0.3
CENTER_ROWS: Final = (3, 4)
CENTER_COLS: Final = (3, 4)


def evaluate_board(board: Board, perspective: Color) -> float:
    """Score ``board`` from ``perspective``'s point of view.

    Material plus a flat bonus for every piece standing on d4, e4, d5 or e5.
    Opponent pieces count negatively.
    """
    score = 0.0
    for r in range(8):
        for c in range(8):
            piece = board.grid[r][c]
            if piece is None:
                continue
            sign = 1 if piece.color is perspective else -1
            score += PIECE_VALUES[piece.type] * sign
            if r in CENTER_ROWS and c in CENTER_COLS:
                score += CENTER_BONUS * sign
    return score


def material_value(piece_type: PieceType) -> int:
    return PIECE_VALUES[piece_type]
