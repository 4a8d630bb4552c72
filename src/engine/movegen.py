"""Pseudo-legal move generation and attack maps.

Nothing here checks whether the mover's own king is left in check; that
filter lives in ``rules.get_valid_moves``.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

from .board import Board, Color, Piece, PieceType, is_in_bounds
from .move import Position


KNIGHT_OFFSETS = ((-2, -1), (-2, 1), (-1, -2), (-1, 2), (1, -2), (1, 2), (2, -1), (2, 1))
DIAGONALS = ((-1, -1), (-1, 1), (1, -1), (1, 1))
ORTHOGONALS = ((-1, 0), (1, 0), (0, -1), (0, 1))
KING_STEPS = DIAGONALS + ORTHOGONALS

# Castling geometry per side: (rook col, king destination col, squares that
# must be empty, squares the king stands on or crosses)
KING_SIDE = (7, 6, (5, 6), (4, 5, 6))
QUEEN_SIDE = (0, 2, (1, 2, 3), (4, 3, 2))


def _pawn_moves(
    board: Board, pos: Position, piece: Piece, en_passant_target: Optional[Position]
) -> List[Position]:
    moves: List[Position] = []
    row, col = pos
    direction = piece.color.forward
    start_row = 6 if piece.color is Color.WHITE else 1

    one = Position(row + direction, col)
    if is_in_bounds(*one) and board.piece_at(one) is None:
        moves.append(one)
        two = Position(row + 2 * direction, col)
        if row == start_row and board.piece_at(two) is None:
            moves.append(two)

    for dc in (-1, 1):
        diag = Position(row + direction, col + dc)
        if not is_in_bounds(*diag):
            continue
        target = board.piece_at(diag)
        if target is not None and target.color is not piece.color:
            moves.append(diag)
        elif en_passant_target is not None and diag == en_passant_target:
            moves.append(diag)
    return moves


def _knight_moves(
    board: Board, pos: Position, piece: Piece, en_passant_target: Optional[Position]
) -> List[Position]:
    moves: List[Position] = []
    for dr, dc in KNIGHT_OFFSETS:
        r, c = pos.row + dr, pos.col + dc
        if not is_in_bounds(r, c):
            continue
        target = board.grid[r][c]
        if target is None or target.color is not piece.color:
            moves.append(Position(r, c))
    return moves


def _slide(
    board: Board, pos: Position, piece: Piece, directions: Tuple[Tuple[int, int], ...]
) -> List[Position]:
    moves: List[Position] = []
    for dr, dc in directions:
        r, c = pos.row + dr, pos.col + dc
        while is_in_bounds(r, c):
            target = board.grid[r][c]
            if target is None:
                moves.append(Position(r, c))
            else:
                if target.color is not piece.color:
                    moves.append(Position(r, c))
                break
            r += dr
            c += dc
    return moves


def _bishop_moves(
    board: Board, pos: Position, piece: Piece, en_passant_target: Optional[Position]
) -> List[Position]:
    return _slide(board, pos, piece, DIAGONALS)


def _rook_moves(
    board: Board, pos: Position, piece: Piece, en_passant_target: Optional[Position]
) -> List[Position]:
    return _slide(board, pos, piece, ORTHOGONALS)


def _queen_moves(
    board: Board, pos: Position, piece: Piece, en_passant_target: Optional[Position]
) -> List[Position]:
    return _slide(board, pos, piece, KING_STEPS)


def _king_steps(board: Board, pos: Position, piece: Piece) -> List[Position]:
    moves: List[Position] = []
    for dr, dc in KING_STEPS:
        r, c = pos.row + dr, pos.col + dc
        if not is_in_bounds(r, c):
            continue
        target = board.grid[r][c]
        if target is None or target.color is not piece.color:
            moves.append(Position(r, c))
    return moves


def _king_moves(
    board: Board, pos: Position, piece: Piece, en_passant_target: Optional[Position]
) -> List[Position]:
    moves = _king_steps(board, pos, piece)
    if piece.has_moved:
        return moves

    row = pos.row
    enemy = piece.color.opponent
    for rook_col, dest_col, between, king_path in (KING_SIDE, QUEEN_SIDE):
        rook = board.grid[row][rook_col]
        if (
            rook is None
            or rook.type is not PieceType.ROOK
            or rook.color is not piece.color
            or rook.has_moved
        ):
            continue
        if any(board.grid[row][c] is not None for c in between):
            continue
        if any(is_square_attacked(board, Position(row, c), enemy) for c in king_path):
            continue
        moves.append(Position(row, dest_col))
    return moves


Generator = Callable[[Board, Position, Piece, Optional[Position]], List[Position]]

GENERATORS: Dict[PieceType, Generator] = {
    PieceType.PAWN: _pawn_moves,
    PieceType.KNIGHT: _knight_moves,
    PieceType.BISHOP: _bishop_moves,
    PieceType.ROOK: _rook_moves,
    PieceType.QUEEN: _queen_moves,
    PieceType.KING: _king_moves,
}


def raw_moves(board: Board, pos: Position, en_passant_target: Optional[Position]) -> List[Position]:
    """Return pseudo-legal destinations for the piece on ``pos``.

    Empty squares (and off-board positions) yield an empty list.
    """
    piece = board.piece_at(pos)
    if piece is None:
        return []
    return GENERATORS[piece.type](board, pos, piece, en_passant_target)


def attack_moves(board: Board, pos: Position) -> List[Position]:
    """Return the squares the piece on ``pos`` threatens.

    Pawns threaten both forward diagonals whether or not they are occupied and
    never the en-passant square; kings threaten all neighbours and never
    castle. Every other piece threatens exactly its pseudo-legal destinations.
    """
    piece = board.piece_at(pos)
    if piece is None:
        return []
    if piece.type is PieceType.PAWN:
        row = pos.row + piece.color.forward
        return [Position(row, pos.col + dc) for dc in (-1, 1) if is_in_bounds(row, pos.col + dc)]
    if piece.type is PieceType.KING:
        return [
            Position(pos.row + dr, pos.col + dc)
            for dr, dc in KING_STEPS
            if is_in_bounds(pos.row + dr, pos.col + dc)
        ]
    return GENERATORS[piece.type](board, pos, piece, None)


def is_square_attacked(board: Board, pos: Position, by_color: Color) -> bool:
    """Return True if any ``by_color`` piece has ``pos`` among its attack moves.

    Scans outward from ``pos`` instead of generating every attacker's map;
    the answer is the same as checking ``attack_moves`` of each piece.
    """
    grid = board.grid
    row, col = pos

    # Pawn attacks come from one row behind the target, seen from the attacker
    pawn_row = row - by_color.forward
    for dc in (-1, 1):
        if is_in_bounds(pawn_row, col + dc):
            p = grid[pawn_row][col + dc]
            if p is not None and p.color is by_color and p.type is PieceType.PAWN:
                return True

    for dr, dc in KING_STEPS:
        r, c = row + dr, col + dc
        if is_in_bounds(r, c):
            p = grid[r][c]
            if p is not None and p.color is by_color and p.type is PieceType.KING:
                return True

    # Knights and sliders never attack a square held by their own side
    occupant = grid[row][col] if is_in_bounds(row, col) else None
    if occupant is not None and occupant.color is by_color:
        return False

    for dr, dc in KNIGHT_OFFSETS:
        r, c = row + dr, col + dc
        if is_in_bounds(r, c):
            p = grid[r][c]
            if p is not None and p.color is by_color and p.type is PieceType.KNIGHT:
                return True

    for directions, sliders in (
        (DIAGONALS, (PieceType.BISHOP, PieceType.QUEEN)),
        (ORTHOGONALS, (PieceType.ROOK, PieceType.QUEEN)),
    ):
        for dr, dc in directions:
            r, c = row + dr, col + dc
            while is_in_bounds(r, c):
                p = grid[r][c]
                if p is not None:
                    if p.color is by_color and p.type in sliders:
                        return True
                    break
                r += dr
                c += dc
    return False
