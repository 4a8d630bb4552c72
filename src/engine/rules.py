"""Check detection, legal-move filtering and terminal-state checks."""

from __future__ import annotations

from typing import List, Optional, Tuple

from .board import Board, Color, PieceType
from .executor import make_move
from .move import Position
from .movegen import is_square_attacked, raw_moves


__all__ = [
    "all_valid_moves",
    "find_king",
    "get_valid_moves",
    "has_any_valid_move",
    "is_checkmate",
    "is_insufficient_material",
    "is_king_in_check",
    "is_square_attacked",
    "is_stalemate",
]


def find_king(board: Board, color: Color) -> Optional[Position]:
    for r in range(8):
        for c in range(8):
            p = board.grid[r][c]
            if p is not None and p.type is PieceType.KING and p.color is color:
                return Position(r, c)
    return None


def is_king_in_check(board: Board, color: Color) -> bool:
    """Return True if ``color``'s king is attacked; False when it has no king."""
    king = find_king(board, color)
    if king is None:
        return False
    return is_square_attacked(board, king, color.opponent)


def would_be_in_check(
    board: Board, from_pos: Position, to_pos: Position, en_passant_target: Optional[Position]
) -> bool:
    """Play the move on a copy and report whether the mover is left in check."""
    piece = board.piece_at(from_pos)
    if piece is None:
        return False
    new_board, _, _ = make_move(board, from_pos, to_pos, en_passant_target)
    return is_king_in_check(new_board, piece.color)


def get_valid_moves(
    board: Board, pos: Position, en_passant_target: Optional[Position]
) -> List[Position]:
    """Return the legal destinations for the piece on ``pos``.

    Each pseudo-legal candidate is simulated (en-passant removal and castling
    rook relocation included), so pins and discovered checks are respected.
    """
    if board.piece_at(pos) is None:
        return []
    return [
        to
        for to in raw_moves(board, pos, en_passant_target)
        if not would_be_in_check(board, pos, to, en_passant_target)
    ]


def all_valid_moves(
    board: Board, color: Color, en_passant_target: Optional[Position]
) -> List[Tuple[Position, Position]]:
    """Every legal ``(from, to)`` pair for ``color`` in row-major board order."""
    moves: List[Tuple[Position, Position]] = []
    for pos, piece in board.pieces():
        if piece.color is not color:
            continue
        for to in get_valid_moves(board, pos, en_passant_target):
            moves.append((pos, to))
    return moves


def has_any_valid_move(board: Board, color: Color, en_passant_target: Optional[Position]) -> bool:
    for pos, piece in board.pieces():
        if piece.color is color and get_valid_moves(board, pos, en_passant_target):
            return True
    return False


def is_checkmate(board: Board, color: Color, en_passant_target: Optional[Position]) -> bool:
    return is_king_in_check(board, color) and not has_any_valid_move(
        board, color, en_passant_target
    )


def is_stalemate(board: Board, color: Color, en_passant_target: Optional[Position]) -> bool:
    return not is_king_in_check(board, color) and not has_any_valid_move(
        board, color, en_passant_target
    )


def is_insufficient_material(board: Board) -> bool:
    """King vs king, or king and a single bishop or knight vs king.

    No other material draw is recognised.
    """
    pieces = [p for _, p in board.pieces()]
    if len(pieces) == 2:
        return True
    if len(pieces) == 3:
        minor = next((p for p in pieces if p.type is not PieceType.KING), None)
        return minor is not None and minor.type in (PieceType.BISHOP, PieceType.KNIGHT)
    return False
