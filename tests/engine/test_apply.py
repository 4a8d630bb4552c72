from __future__ import annotations

import pytest

from src.engine.board import STARTPOS_FEN, Board, Color, PieceType, create_initial_board
from src.engine.executor import make_move
from src.engine.move import str_to_square


def test_make_move_returns_new_board_and_does_not_mutate() -> None:
    b = create_initial_board()
    b2, move, ep = make_move(b, str_to_square("e2"), str_to_square("e4"), None)

    assert b.to_fen() == STARTPOS_FEN
    assert b2.to_fen(Color.BLACK, ep) == "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq e3 0 1"
    assert move.piece.has_moved
    assert move.captured is None
    assert not move.is_en_passant and not move.is_castling


def test_single_step_clears_en_passant_target() -> None:
    b = create_initial_board()
    b, _, ep = make_move(b, str_to_square("e2"), str_to_square("e4"), None)
    assert ep == str_to_square("e3")
    b, _, ep = make_move(b, str_to_square("e7"), str_to_square("e6"), ep)
    assert ep is None


def test_piece_notation() -> None:
    b = create_initial_board()
    _, move, _ = make_move(b, str_to_square("g1"), str_to_square("f3"), None)
    assert move.notation == "Nf3"

    b = Board.from_fen("4k3/8/8/3p4/8/8/8/3QK3 w - - 0 1")
    _, move, _ = make_move(b, str_to_square("d1"), str_to_square("d5"), None)
    assert move.notation == "Qxd5"
    assert move.captured is not None and move.captured.type is PieceType.PAWN


def test_pawn_capture_notation_uses_source_file() -> None:
    b = Board.from_fen("4k3/8/8/3p4/4P3/8/8/4K3 w - - 0 1")
    _, move, _ = make_move(b, str_to_square("e4"), str_to_square("d5"), None)
    assert move.notation == "exd5"


def test_king_rook_flags_become_moved() -> None:
    b = Board.from_fen("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
    b2, _, _ = make_move(b, str_to_square("h1"), str_to_square("h5"), None)
    assert b2.piece_at(str_to_square("h5")).has_moved
    assert b2.castling_rights() == "Qkq"


def test_make_move_from_empty_square_raises() -> None:
    b = create_initial_board()
    with pytest.raises(ValueError):
        make_move(b, str_to_square("e4"), str_to_square("e5"), None)
