from __future__ import annotations

import threading

import pytest

from src.engine.board import STARTPOS_FEN, Color, PieceType
from src.engine.move import square_to_str, str_to_square
from src.game.service import BotBusyError, Game, GameMode, GameOverError, GameStateError
from src.search.service import Difficulty, SearchService


def play(game: Game, *moves: str) -> None:
    for uci in moves:
        game.apply_uci(uci)


def test_new_game_starts_from_initial_position() -> None:
    g = Game.new()
    assert g.to_fen() == STARTPOS_FEN
    assert g.current_player is Color.WHITE
    assert len(g.legal_moves()) == 20
    assert not g.in_check() and not g.is_over()


def test_apply_move_alternates_turns_and_counts() -> None:
    g = Game.new()
    play(g, "e2e4", "e7e5", "g1f3")
    assert g.current_player is Color.BLACK
    assert g.move_history() == ["e4", "e5", "Nf3"]
    assert g.move_history_uci() == ["e2e4", "e7e5", "g1f3"]
    assert g.halfmove_clock == 1
    assert g.fullmove_number == 2
    assert g.en_passant_target is None


def test_illegal_moves_are_rejected() -> None:
    g = Game.new()
    with pytest.raises(ValueError):
        g.apply_uci("e2e5")
    # Moving the opponent's piece
    with pytest.raises(ValueError):
        g.apply_uci("e7e5")
    with pytest.raises(ValueError):
        g.apply_uci("e3e4")
    assert g.move_history() == []


def test_valid_moves_only_for_side_to_move() -> None:
    g = Game.new()
    assert {square_to_str(p) for p in g.valid_moves(str_to_square("e2"))} == {"e3", "e4"}
    assert g.valid_moves(str_to_square("e7")) == []
    assert g.valid_moves(str_to_square("e4")) == []


def test_fools_mate() -> None:
    g = Game.new()
    play(g, "f2f3", "e7e5", "g2g4", "d8h4")
    assert g.move_history()[-1] == "Qh4#"
    assert g.checkmate()
    assert g.in_check()
    assert g.is_over()
    assert not g.stalemate()
    assert g.legal_moves() == []
    with pytest.raises(GameOverError):
        g.apply_uci("a2a3")


def test_capture_with_check_and_material() -> None:
    g = Game.new()
    play(g, "e2e4", "e7e5", "f1c4", "b8c6", "c4f7")
    assert g.move_history()[-1] == "Bxf7+"
    assert g.in_check()
    assert [p.type for p in g.captured_black] == [PieceType.PAWN]
    assert g.captured_white == []
    assert g.material_diff() == 1
    assert g.halfmove_clock == 0


def test_undo_restores_previous_state() -> None:
    g = Game.new()
    play(g, "e2e4", "e7e5", "f1c4", "b8c6")
    before = g.to_fen()
    play(g, "c4f7")
    g.undo_move()
    assert g.to_fen() == before
    assert g.captured_black == []
    assert g.move_history() == ["e4", "e5", "Bc4", "Nc6"]
    assert not g.in_check()


def test_undo_with_empty_history_raises() -> None:
    with pytest.raises(ValueError):
        Game.new().undo_move()


def test_stalemate_position_from_fen() -> None:
    g = Game.from_fen("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1")
    assert g.stalemate()
    assert g.is_over()
    assert not g.checkmate()


def test_insufficient_material_ends_game() -> None:
    g = Game.from_fen("4k3/8/8/8/8/8/3q4/4K3 w - - 0 1")
    g.apply_uci("e1d2")
    assert g.is_draw()
    assert g.is_over()
    assert g.move_history() == ["Kxd2"]


def test_promotion_letters_in_legal_moves() -> None:
    g = Game.from_fen("4k3/1P6/8/8/8/8/8/4K3 w - - 0 1")
    ms = g.legal_moves_uci()
    assert {"b7b8q", "b7b8r", "b7b8b", "b7b8n"} <= set(ms)
    assert "b7b8" not in ms


def test_underpromotion_via_uci() -> None:
    g = Game.from_fen("4k3/1P6/8/8/8/8/8/4K3 w - - 0 1")
    move = g.apply_uci("b7b8n")
    assert g.board.piece_at(str_to_square("b8")).type is PieceType.KNIGHT
    assert move.notation == "b8=N"


def test_promotion_defaults_to_queen_with_check_suffix() -> None:
    g = Game.from_fen("4k3/1P6/8/8/8/8/8/4K3 w - - 0 1")
    move = g.apply_uci("b7b8")
    assert g.board.piece_at(str_to_square("b8")).type is PieceType.QUEEN
    assert move.notation == "b8=Q+"


def test_bot_mode_rejects_human_move_on_bot_turn() -> None:
    g = Game.new(mode=GameMode.BOT, bot_color=Color.BLACK)
    g.apply_uci("e2e4")
    assert g.is_bot_turn()
    with pytest.raises(GameStateError):
        g.apply_uci("e7e5")


def test_bot_move_plays_for_bot_side(fixed_random) -> None:
    g = Game.new(
        mode=GameMode.BOT,
        bot_color=Color.BLACK,
        difficulty=Difficulty.EASY,
        search=SearchService(rng=fixed_random(0.9)),
    )
    with pytest.raises(GameStateError):
        g.bot_move()
    g.apply_uci("e2e4")
    move = g.bot_move()
    assert move is not None
    assert move.piece.color is Color.BLACK
    assert g.current_player is Color.WHITE
    assert len(g.move_history()) == 2


class BlockingSearch(SearchService):
    """Search that holds until released, so a bot move can be caught mid-flight."""

    def __init__(self) -> None:
        super().__init__()
        self.started = threading.Event()
        self.release = threading.Event()

    def search(self, *args, **kwargs):  # type: ignore[override]
        result = super().search(*args, **kwargs)
        self.started.set()
        assert self.release.wait(timeout=5)
        return result


def _thinking_bot_game() -> tuple[Game, BlockingSearch, threading.Thread]:
    search = BlockingSearch()
    g = Game.new(mode=GameMode.BOT, bot_color=Color.BLACK, difficulty=Difficulty.EASY, search=search)
    g.apply_uci("e2e4")
    worker = threading.Thread(target=g.bot_move)
    worker.start()
    assert search.started.wait(timeout=5)
    return g, search, worker


def test_state_changes_are_refused_while_bot_thinks() -> None:
    g, search, worker = _thinking_bot_game()
    try:
        assert g.bot_thinking
        with pytest.raises(BotBusyError):
            g.bot_move()
        with pytest.raises(BotBusyError):
            g.undo_move()
        with pytest.raises(BotBusyError):
            g.apply_uci("d2d4")
    finally:
        search.release.set()
        worker.join(timeout=5)

    assert not g.bot_thinking
    assert g.move_history_uci()[0] == "e2e4"
    assert len(g.move_history()) == 2
    assert g.current_player is Color.WHITE


def test_undo_after_bot_finishes_rewinds_bot_move() -> None:
    g, search, worker = _thinking_bot_game()
    search.release.set()
    worker.join(timeout=5)

    g.undo_move()
    assert g.move_history_uci() == ["e2e4"]
    assert g.current_player is Color.BLACK


def test_bot_move_after_game_over_raises() -> None:
    g = Game.from_fen("k7/Q7/1K6/8/8/8/8/8 b - - 0 1", mode=GameMode.BOT, bot_color=Color.BLACK)
    with pytest.raises(GameOverError):
        g.bot_move()
