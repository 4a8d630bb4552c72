from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from src.engine.board import Board, Color, Piece, PieceType, parse_fen
from src.engine.executor import make_move
from src.engine.move import Move, Position, parse_uci, square_to_str
from src.engine.rules import (
    all_valid_moves,
    get_valid_moves,
    has_any_valid_move,
    is_insufficient_material,
    is_king_in_check,
)
from src.eval import material_value
from src.search.service import Difficulty, SearchService


logger = logging.getLogger(__name__)

PROMOTION_BY_LETTER = {
    "q": PieceType.QUEEN,
    "r": PieceType.ROOK,
    "b": PieceType.BISHOP,
    "n": PieceType.KNIGHT,
}


class GameMode(str, Enum):
    PVP = "pvp"
    BOT = "bot"


class GameStateError(ValueError):
    """The request is well formed but the game is not in a state to serve it."""


class GameOverError(GameStateError):
    pass


class BotBusyError(GameStateError):
    pass


@dataclass(frozen=True)
class _Snapshot:
    board: Board
    current_player: Color
    en_passant_target: Optional[Position]
    captured_white: Tuple[Piece, ...]
    captured_black: Tuple[Piece, ...]
    halfmove_clock: int
    fullmove_number: int


@dataclass
class Game:
    """Game wrapper around a board with helper operations.

    Responsibility: own the live position, validate and apply moves, keep the
    history and captures, classify the result, and drive the bot in bot mode.
    """

    board: Board
    current_player: Color = Color.WHITE
    en_passant_target: Optional[Position] = None
    mode: GameMode = GameMode.PVP
    bot_color: Color = Color.BLACK
    difficulty: Difficulty = Difficulty.MEDIUM
    halfmove_clock: int = 0
    fullmove_number: int = 1
    move_stack: List[Move] = field(default_factory=list)
    captured_white: List[Piece] = field(default_factory=list)
    captured_black: List[Piece] = field(default_factory=list)
    search: SearchService = field(default_factory=SearchService, repr=False, compare=False)
    _history: List[_Snapshot] = field(default_factory=list, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)
    _thinking: bool = field(default=False, init=False, repr=False)
    _check: bool = field(default=False, init=False)
    _has_move: bool = field(default=True, init=False)
    _draw: bool = field(default=False, init=False)

    @classmethod
    def new(
        cls,
        mode: GameMode = GameMode.PVP,
        bot_color: Color = Color.BLACK,
        difficulty: Difficulty = Difficulty.MEDIUM,
        search: Optional[SearchService] = None,
    ) -> "Game":
        return cls(
            board=Board.startpos(),
            mode=GameMode(mode),
            bot_color=Color(bot_color),
            difficulty=Difficulty(difficulty),
            search=search or SearchService(),
        )

    @classmethod
    def from_fen(
        cls,
        fen: str,
        mode: GameMode = GameMode.PVP,
        bot_color: Color = Color.BLACK,
        difficulty: Difficulty = Difficulty.MEDIUM,
        search: Optional[SearchService] = None,
    ) -> "Game":
        state = parse_fen(fen)
        return cls(
            board=state.board,
            current_player=state.side_to_move,
            en_passant_target=state.en_passant_target,
            mode=GameMode(mode),
            bot_color=Color(bot_color),
            difficulty=Difficulty(difficulty),
            halfmove_clock=state.halfmove_clock,
            fullmove_number=state.fullmove_number,
            search=search or SearchService(),
        )

    def __post_init__(self) -> None:
        self._refresh_status()

    def to_fen(self) -> str:
        return self.board.to_fen(
            self.current_player, self.en_passant_target, self.halfmove_clock, self.fullmove_number
        )

    # --- Queries ---
    def valid_moves(self, pos: Position) -> List[Position]:
        """Legal destinations for the side to move's piece on ``pos``."""
        piece = self.board.piece_at(pos)
        if piece is None or piece.color is not self.current_player or self.is_over():
            return []
        return get_valid_moves(self.board, pos, self.en_passant_target)

    def legal_moves(self) -> List[Tuple[Position, Position]]:
        if self.is_over():
            return []
        return all_valid_moves(self.board, self.current_player, self.en_passant_target)

    def legal_moves_uci(self) -> List[str]:
        """Legal moves in coordinate form, one entry per promotion choice."""
        out: List[str] = []
        for from_pos, to_pos in self.legal_moves():
            base = square_to_str(from_pos) + square_to_str(to_pos)
            if self._is_promotion(from_pos, to_pos):
                out.extend(base + letter for letter in PROMOTION_BY_LETTER)
            else:
                out.append(base)
        return out

    def in_check(self) -> bool:
        return self._check

    def checkmate(self) -> bool:
        return self._check and not self._has_move

    def stalemate(self) -> bool:
        return not self._check and not self._has_move

    def is_draw(self) -> bool:
        # Insufficient material is the only draw rule recognised
        return self._draw

    def is_over(self) -> bool:
        return not self._has_move or self._draw

    def is_bot_turn(self) -> bool:
        return self.mode is GameMode.BOT and self.current_player is self.bot_color

    @property
    def bot_thinking(self) -> bool:
        return self._thinking

    def material_diff(self) -> int:
        """White's captured material minus black's captured material."""
        white = sum(material_value(p.type) for p in self.captured_black)
        black = sum(material_value(p.type) for p in self.captured_white)
        return white - black

    def last_move(self) -> Optional[Move]:
        return self.move_stack[-1] if self.move_stack else None

    def move_history(self) -> List[str]:
        return [m.notation for m in self.move_stack]

    def move_history_uci(self) -> List[str]:
        return [m.to_uci() for m in self.move_stack]

    # --- Commands ---
    def apply_move(
        self, from_pos: Position, to_pos: Position, promotion: Optional[PieceType] = None
    ) -> Move:
        """Validate and play a move for the side to move.

        Raises:
            BotBusyError: If a bot move for this game is in progress.
            GameOverError: If the game has already ended.
            GameStateError: If it is the bot's turn in bot mode.
            ValueError: If the move is not legal.
        """
        with self._exclusive():
            if self.is_over():
                raise GameOverError("game is over")
            if self.is_bot_turn():
                raise GameStateError("it is the bot's turn")
            piece = self.board.piece_at(from_pos)
            if piece is None or piece.color is not self.current_player:
                raise ValueError("illegal move")
            if to_pos not in get_valid_moves(self.board, from_pos, self.en_passant_target):
                raise ValueError("illegal move")
            return self._play(from_pos, to_pos, promotion)

    def apply_uci(self, uci: str) -> Move:
        from_pos, to_pos, letter = parse_uci(uci)
        promotion = PROMOTION_BY_LETTER[letter] if letter else None
        return self.apply_move(from_pos, to_pos, promotion)

    def bot_move(self) -> Optional[Move]:
        """Let the bot play one move; ``None`` if it has no legal move.

        Raises:
            BotBusyError: If a bot move for this game is already in progress.
            GameOverError: If the game has already ended.
            GameStateError: If it is not the bot's turn.
        """
        with self._exclusive():
            if self.is_over():
                raise GameOverError("game is over")
            if not self.is_bot_turn():
                raise GameStateError("it is not the bot's turn")
            self._thinking = True
            try:
                result = self.search.search(
                    self.board, self.bot_color, self.en_passant_target, self.difficulty
                )
            finally:
                self._thinking = False
            if result.best_move is None:
                return None
            from_pos, to_pos = result.best_move
            move = self._play(from_pos, to_pos, None)
            logger.info(
                "bot move",
                extra={
                    "move": move.notation,
                    "difficulty": self.difficulty.value,
                    "nodes": result.nodes,
                    "time_ms": result.time_ms,
                },
            )
            return move

    def undo_move(self) -> None:
        """Restore the position before the last move.

        Raises:
            BotBusyError: If a bot move for this game is in progress.
            ValueError: If there is no move to undo.
        """
        with self._exclusive():
            if not self._history:
                raise ValueError("no moves to undo")
            snap = self._history.pop()
            self.move_stack.pop()
            self.board = snap.board
            self.current_player = snap.current_player
            self.en_passant_target = snap.en_passant_target
            self.captured_white = list(snap.captured_white)
            self.captured_black = list(snap.captured_black)
            self.halfmove_clock = snap.halfmove_clock
            self.fullmove_number = snap.fullmove_number
            self._refresh_status()

    # --- Internals ---
    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        # State changes never wait on a running bot search; they are refused
        if not self._lock.acquire(blocking=False):
            raise BotBusyError("bot is thinking")
        try:
            yield
        finally:
            self._lock.release()

    def _is_promotion(self, from_pos: Position, to_pos: Position) -> bool:
        piece = self.board.piece_at(from_pos)
        return piece is not None and piece.type is PieceType.PAWN and to_pos.row in (0, 7)

    def _play(
        self, from_pos: Position, to_pos: Position, promotion: Optional[PieceType]
    ) -> Move:
        if promotion is None and self._is_promotion(from_pos, to_pos):
            promotion = PieceType.QUEEN
        self._history.append(
            _Snapshot(
                board=self.board,
                current_player=self.current_player,
                en_passant_target=self.en_passant_target,
                captured_white=tuple(self.captured_white),
                captured_black=tuple(self.captured_black),
                halfmove_clock=self.halfmove_clock,
                fullmove_number=self.fullmove_number,
            )
        )
        moving = self.board.piece_at(from_pos)
        new_board, move, new_ep = make_move(
            self.board, from_pos, to_pos, self.en_passant_target, promotion
        )
        if move.captured is not None:
            if move.captured.color is Color.WHITE:
                self.captured_white.append(move.captured)
            else:
                self.captured_black.append(move.captured)

        if move.captured is not None or (moving is not None and moving.type is PieceType.PAWN):
            self.halfmove_clock = 0
        else:
            self.halfmove_clock += 1
        if self.current_player is Color.BLACK:
            self.fullmove_number += 1

        self.board = new_board
        self.en_passant_target = new_ep
        self.current_player = self.current_player.opponent
        self._refresh_status()

        if self.checkmate():
            move = move.with_suffix("#")
            logger.info("checkmate", extra={"winner": self.current_player.opponent.value})
        elif self._check:
            move = move.with_suffix("+")
        elif self.stalemate() or self._draw:
            logger.info("draw", extra={"stalemate": self.stalemate()})
        self.move_stack.append(move)
        return move

    def _refresh_status(self) -> None:
        self._check = is_king_in_check(self.board, self.current_player)
        self._has_move = has_any_valid_move(
            self.board, self.current_player, self.en_passant_target
        )
        self._draw = is_insufficient_material(self.board)
