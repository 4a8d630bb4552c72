from __future__ import annotations

from src.engine.board import Board, Color, PieceType
from src.engine.executor import make_move
from src.engine.move import str_to_square


def test_promotion_defaults_to_queen() -> None:
    b = Board.from_fen("k7/4P3/8/8/8/8/8/4K3 w - - 0 1")
    b2, move, _ = make_move(b, str_to_square("e7"), str_to_square("e8"), None)
    piece = b2.piece_at(str_to_square("e8"))
    assert piece is not None
    assert piece.type is PieceType.QUEEN and piece.color is Color.WHITE and piece.has_moved
    assert move.piece == piece
    assert move.promotion_to is PieceType.QUEEN
    assert move.notation == "e8=Q"
    assert move.to_uci() == "e7e8q"


def test_promotion_to_requested_type() -> None:
    b = Board.from_fen("k7/4P3/8/8/8/8/8/4K3 w - - 0 1")
    b2, move, _ = make_move(b, str_to_square("e7"), str_to_square("e8"), None, PieceType.KNIGHT)
    assert b2.piece_at(str_to_square("e8")).type is PieceType.KNIGHT
    assert move.notation == "e8=N"
    assert move.to_uci() == "e7e8n"


def test_capture_promotion_notation() -> None:
    b = Board.from_fen("3rk3/4P3/8/8/8/8/8/4K3 w - - 0 1")
    b2, move, _ = make_move(b, str_to_square("e7"), str_to_square("d8"), None, PieceType.ROOK)
    assert move.captured is not None and move.captured.type is PieceType.ROOK
    assert move.notation == "exd8=R"
    assert b2.piece_at(str_to_square("d8")).type is PieceType.ROOK


def test_black_pawn_promotes_on_first_rank() -> None:
    b = Board.from_fen("4k3/8/8/8/8/8/3p4/K7 b - - 0 1")
    b2, move, _ = make_move(b, str_to_square("d2"), str_to_square("d1"), None)
    piece = b2.piece_at(str_to_square("d1"))
    assert piece is not None and piece.type is PieceType.QUEEN and piece.color is Color.BLACK
    assert move.notation == "d1=Q"
