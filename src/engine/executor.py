from __future__ import annotations

from typing import Optional, Tuple

from .board import Board, PIECE_LETTERS, Piece, PieceType
from .move import Move, Position, square_to_str


def make_move(
    board: Board,
    from_pos: Position,
    to_pos: Position,
    en_passant_target: Optional[Position],
    promotion_type: Optional[PieceType] = None,
) -> Tuple[Board, Move, Optional[Position]]:
    """Apply a move and return ``(new_board, move, new_en_passant_target)``.

    The input board is left untouched.

    Precondition: ``from_pos -> to_pos`` is legal for the piece on
    ``from_pos`` (as reported by ``rules.get_valid_moves``). Legality is not
    re-checked; an illegal request produces an unspecified board. Only an
    empty origin square is rejected.

    Raises:
        ValueError: If there is no piece on ``from_pos``.
    """
    original = board.piece_at(from_pos)
    if original is None:
        raise ValueError(f"no piece on {square_to_str(from_pos)}")

    new_board = board.copy()
    grid = new_board.grid
    piece = original
    captured = grid[to_pos.row][to_pos.col]
    is_en_passant = False
    is_castling = False
    new_en_passant: Optional[Position] = None

    if piece.type is PieceType.PAWN and en_passant_target is not None and to_pos == en_passant_target:
        is_en_passant = True
        grid[to_pos.row - piece.color.forward][to_pos.col] = None

    if piece.type is PieceType.PAWN and abs(to_pos.row - from_pos.row) == 2:
        new_en_passant = Position((from_pos.row + to_pos.row) // 2, from_pos.col)

    if piece.type is PieceType.KING and abs(to_pos.col - from_pos.col) == 2:
        is_castling = True
        row = from_pos.row
        rook_from, rook_to = (7, 5) if to_pos.col == 6 else (0, 3)
        rook = grid[row][rook_from]
        if rook is not None:
            grid[row][rook_to] = rook.moved()
        grid[row][rook_from] = None

    promoted_to: Optional[PieceType] = None
    if piece.type is PieceType.PAWN and to_pos.row in (0, 7):
        promoted_to = promotion_type or PieceType.QUEEN
        piece = piece.promoted(promoted_to)

    piece = piece.moved()
    grid[to_pos.row][to_pos.col] = piece
    grid[from_pos.row][from_pos.col] = None

    if is_en_passant:
        recorded: Optional[Piece] = Piece(PieceType.PAWN, piece.color.opponent, True)
    else:
        recorded = captured

    move = Move(
        from_pos=from_pos,
        to_pos=to_pos,
        piece=piece,
        captured=recorded,
        is_en_passant=is_en_passant,
        is_castling=is_castling,
        promotion_to=promoted_to,
        notation=move_notation(
            original.type, from_pos, to_pos, captured, is_en_passant, is_castling, promoted_to
        ),
    )
    return new_board, move, new_en_passant


def move_notation(
    piece_type: PieceType,
    from_pos: Position,
    to_pos: Position,
    captured: Optional[Piece],
    is_en_passant: bool,
    is_castling: bool,
    promoted_to: Optional[PieceType] = None,
) -> str:
    """SAN-like notation without disambiguation or check suffixes.

    ``piece_type`` is the type of the moving piece before any promotion.
    """
    if is_castling:
        return "O-O" if to_pos.col == 6 else "O-O-O"

    dest = square_to_str(to_pos)
    if piece_type is PieceType.PAWN:
        out = ""
        if captured is not None or is_en_passant:
            out += "abcdefgh"[from_pos.col] + "x"
        out += dest
        if promoted_to is not None:
            out += "=" + PIECE_LETTERS[promoted_to]
        if is_en_passant:
            out += " e.p."
        return out

    out = PIECE_LETTERS[piece_type]
    if captured is not None:
        out += "x"
    return out + dest
