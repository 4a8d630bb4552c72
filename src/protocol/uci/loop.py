from __future__ import annotations

import logging
import sys
from typing import Callable, List, Optional

from ...engine.board import PIECE_SYMBOLS, Color, PieceType
from ...game.service import Game
from ...engine.move import square_to_str
from ...search.service import MATE_SCORE, Difficulty, SearchResult, SearchService


logger = logging.getLogger(__name__)

Writer = Callable[[str], None]


class UCIEngine:
    """UCI protocol adapter around the core engine.

    Notes:
    - Core remains pure; I/O is isolated here.
    - ``go`` runs the bot search synchronously. The search has no cancellation,
      so ``stop`` is a no-op and every ``go`` answers with one ``bestmove``.
    - Strength is chosen with ``setoption name Difficulty value easy|medium|hard``.
    """

    def __init__(self, search: Optional[SearchService] = None) -> None:
        self.game: Game = Game.new()
        self.search = search or SearchService()
        self.difficulty: Difficulty = Difficulty.MEDIUM

    # ---- Command handlers ----
    def cmd_uci(self, write: Writer) -> None:
        write("id name chess_bot")
        write("id author chess_bot developers")
        write("option name Difficulty type combo default medium var easy var medium var hard")
        write("uciok")

    def cmd_isready(self, write: Writer) -> None:
        write("readyok")

    def cmd_ucinewgame(self) -> None:
        self.game = Game.new()

    def cmd_position(self, args: List[str]) -> None:
        # position [startpos | fen <FEN> ] [moves m1 m2 ...]
        if not args:
            return
        idx = 0
        if args[idx] == "startpos":
            self.game = Game.new()
            idx += 1
        elif args[idx] == "fen":
            idx += 1
            fen_tokens: List[str] = []
            while idx < len(args) and args[idx] != "moves":
                fen_tokens.append(args[idx])
                idx += 1
            try:
                self.game = Game.from_fen(" ".join(fen_tokens))
            except ValueError:
                logger.warning("ignoring invalid FEN", extra={"fen": " ".join(fen_tokens)})
                return
        if idx < len(args) and args[idx] == "moves":
            for u in args[idx + 1 :]:
                try:
                    self.game.apply_uci(u)
                except ValueError:
                    # Stop at the first bad move per typical UCI robustness
                    logger.warning("ignoring illegal move", extra={"move": u})
                    break

    def cmd_setoption(self, args: List[str]) -> None:
        # setoption name <name> [value <value>]
        if "name" not in args:
            return
        i = args.index("name") + 1
        name_tokens: List[str] = []
        while i < len(args) and args[i] != "value":
            name_tokens.append(args[i])
            i += 1
        value = " ".join(args[i + 1 :]).strip().lower()
        if " ".join(name_tokens).strip().lower() == "difficulty":
            try:
                self.difficulty = Difficulty(value)
            except ValueError:
                logger.warning("ignoring unknown difficulty", extra={"value": value})

    def cmd_go(self, args: List[str], write: Writer) -> None:
        # Depth comes from the difficulty; time controls are accepted and ignored
        res = self.search.search(
            self.game.board,
            self.game.current_player,
            self.game.en_passant_target,
            self.difficulty,
        )
        self._emit_info(res, write)
        write(f"bestmove {self._format_best(res)}")

    def cmd_display(self, write: Writer) -> None:
        board = self.game.board
        for row in range(8):
            cells = []
            for col in range(8):
                p = board.grid[row][col]
                cells.append(PIECE_SYMBOLS[(p.color, p.type)] if p else ".")
            write(f"{8 - row} " + " ".join(cells))
        write("  a b c d e f g h")
        write(f"Fen: {self.game.to_fen()}")
        side = "white" if self.game.current_player is Color.WHITE else "black"
        write(f"Side to move: {side}")

    # ---- Utilities ----
    def _format_best(self, res: SearchResult) -> str:
        if res.best_move is None:
            return "(none)"
        from_pos, to_pos = res.best_move
        uci = square_to_str(from_pos) + square_to_str(to_pos)
        piece = self.game.board.piece_at(from_pos)
        if piece is not None and piece.type is PieceType.PAWN and to_pos.row in (0, 7):
            uci += "q"
        return uci

    def _emit_info(self, res: SearchResult, write: Writer) -> None:
        nps = int(res.nodes * 1000 / max(1, res.time_ms))
        write(
            f"info depth {res.depth} time {res.time_ms} nodes {res.nodes} nps {nps} "
            f"score {self._format_score(res)} pv {self._format_best(res)}"
        )

    @staticmethod
    def _format_score(res: SearchResult) -> str:
        if res.score is None:
            return "cp 0"
        if abs(res.score) >= MATE_SCORE:
            # Mate scores carry no distance; report the bound the search depth gives
            moves = max(1, (res.depth + 1) // 2)
            return f"mate {moves if res.score > 0 else -moves}"
        # Scores are in pawns; UCI wants centipawns
        return f"cp {int(round(res.score * 100))}"


def _default_writer(line: str) -> None:
    # Ensure newline termination and immediate flush
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


def run_uci() -> None:
    eng = UCIEngine()
    for raw in sys.stdin:
        line = raw.strip()
        if not line:
            continue
        parts = line.split()
        cmd, args = parts[0], parts[1:]

        if cmd == "uci":
            eng.cmd_uci(_default_writer)
        elif cmd == "isready":
            eng.cmd_isready(_default_writer)
        elif cmd == "setoption":
            eng.cmd_setoption(args)
        elif cmd == "ucinewgame":
            eng.cmd_ucinewgame()
        elif cmd == "position":
            eng.cmd_position(args)
        elif cmd == "go":
            eng.cmd_go(args, _default_writer)
        elif cmd == "d":
            eng.cmd_display(_default_writer)
        elif cmd == "quit":
            break
        # Ignore unknown commands per UCI convention
