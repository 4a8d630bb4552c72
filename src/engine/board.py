from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .move import Position, square_to_str, str_to_square


STARTPOS_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"


class Color(str, Enum):
    WHITE = "white"
    BLACK = "black"

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self is Color.WHITE else Color.WHITE

    @property
    def forward(self) -> int:
        """Row delta of a pawn advance (white moves towards row 0)."""
        return -1 if self is Color.WHITE else 1


class PieceType(str, Enum):
    KING = "king"
    QUEEN = "queen"
    ROOK = "rook"
    BISHOP = "bishop"
    KNIGHT = "knight"
    PAWN = "pawn"


@dataclass(frozen=True)
class Piece:
    """Immutable piece value; a moved piece is a new ``Piece``."""

    type: PieceType
    color: Color
    has_moved: bool = False

    def moved(self) -> "Piece":
        return Piece(self.type, self.color, True)

    def promoted(self, piece_type: PieceType) -> "Piece":
        return Piece(piece_type, self.color, self.has_moved)


PIECE_LETTERS: Dict[PieceType, str] = {
    PieceType.KING: "K",
    PieceType.QUEEN: "Q",
    PieceType.ROOK: "R",
    PieceType.BISHOP: "B",
    PieceType.KNIGHT: "N",
    PieceType.PAWN: "P",
}
LETTER_TO_TYPE = {v: k for k, v in PIECE_LETTERS.items()}

PIECE_SYMBOLS: Dict[Tuple[Color, PieceType], str] = {
    (Color.WHITE, PieceType.KING): "♔",
    (Color.WHITE, PieceType.QUEEN): "♕",
    (Color.WHITE, PieceType.ROOK): "♖",
    (Color.WHITE, PieceType.BISHOP): "♗",
    (Color.WHITE, PieceType.KNIGHT): "♘",
    (Color.WHITE, PieceType.PAWN): "♙",
    (Color.BLACK, PieceType.KING): "♚",
    (Color.BLACK, PieceType.QUEEN): "♛",
    (Color.BLACK, PieceType.ROOK): "♜",
    (Color.BLACK, PieceType.BISHOP): "♝",
    (Color.BLACK, PieceType.KNIGHT): "♞",
    (Color.BLACK, PieceType.PAWN): "♟",
}

BACK_RANK = (
    PieceType.ROOK,
    PieceType.KNIGHT,
    PieceType.BISHOP,
    PieceType.QUEEN,
    PieceType.KING,
    PieceType.BISHOP,
    PieceType.KNIGHT,
    PieceType.ROOK,
)

Grid = List[List[Optional[Piece]]]


def _empty_grid() -> Grid:
    return [[None] * 8 for _ in range(8)]


def is_in_bounds(row: int, col: int) -> bool:
    return 0 <= row <= 7 and 0 <= col <= 7


@dataclass
class Board:
    """8x8 grid of optional pieces, indexed ``[row][col]``.

    Notes:
    - Row 0 is black's back rank (rank 8), row 7 is white's (rank 1).
    - Treated as copy-on-write: engine functions never mutate a board they
      were given, they return a fresh one instead.
    """

    grid: Grid = field(default_factory=_empty_grid)

    @classmethod
    def startpos(cls) -> "Board":
        """Create a board set up in the standard chess starting position."""
        board = cls()
        for col, piece_type in enumerate(BACK_RANK):
            board.grid[0][col] = Piece(piece_type, Color.BLACK)
            board.grid[1][col] = Piece(PieceType.PAWN, Color.BLACK)
            board.grid[6][col] = Piece(PieceType.PAWN, Color.WHITE)
            board.grid[7][col] = Piece(piece_type, Color.WHITE)
        return board

    @classmethod
    def from_fen(cls, fen: str) -> "Board":
        return parse_fen(fen).board

    def copy(self) -> "Board":
        """Return an independent copy; pieces are immutable so rows are enough."""
        return Board(grid=[list(row) for row in self.grid])

    def piece_at(self, pos: Position) -> Optional[Piece]:
        if not is_in_bounds(pos.row, pos.col):
            return None
        return self.grid[pos.row][pos.col]

    def pieces(self) -> List[Tuple[Position, Piece]]:
        """All occupied squares in row-major order."""
        out: List[Tuple[Position, Piece]] = []
        for r in range(8):
            for c in range(8):
                p = self.grid[r][c]
                if p is not None:
                    out.append((Position(r, c), p))
        return out

    def castling_rights(self) -> str:
        """Castling field derived from unmoved kings and corner rooks."""
        rights = ""
        for color, row, letters in ((Color.WHITE, 7, "KQ"), (Color.BLACK, 0, "kq")):
            king = self.grid[row][4]
            if king is None or king.type is not PieceType.KING or king.color is not color:
                continue
            if king.has_moved:
                continue
            for rook_col, letter in ((7, letters[0]), (0, letters[1])):
                rook = self.grid[row][rook_col]
                if (
                    rook is not None
                    and rook.type is PieceType.ROOK
                    and rook.color is color
                    and not rook.has_moved
                ):
                    rights += letter
        return rights

    def to_fen(
        self,
        side_to_move: Color = Color.WHITE,
        en_passant_target: Optional[Position] = None,
        halfmove_clock: int = 0,
        fullmove_number: int = 1,
    ) -> str:
        """Serialize the position into FEN.

        Castling rights are derived from ``has_moved`` flags since the grid
        carries no separate rights field.
        """
        ranks: List[str] = []
        for row in self.grid:
            run = 0
            out = []
            for p in row:
                if p is None:
                    run += 1
                    continue
                if run:
                    out.append(str(run))
                    run = 0
                ch = PIECE_LETTERS[p.type]
                out.append(ch if p.color is Color.WHITE else ch.lower())
            if run:
                out.append(str(run))
            ranks.append("".join(out))
        stm = "w" if side_to_move is Color.WHITE else "b"
        castling = self.castling_rights() or "-"
        ep = square_to_str(en_passant_target) if en_passant_target is not None else "-"
        return f"{'/'.join(ranks)} {stm} {castling} {ep} {halfmove_clock} {fullmove_number}"


@dataclass(frozen=True)
class FenState:
    board: Board
    side_to_move: Color
    en_passant_target: Optional[Position]
    halfmove_clock: int
    fullmove_number: int


def parse_fen(fen: str) -> FenState:
    """Parse a Forsyth-Edwards Notation string.

    Args:
        fen (str): FEN string describing the position to load.

    Returns:
        FenState: Board plus side to move, en-passant target and counters.

    Raises:
        ValueError: If ``fen`` is empty, has the wrong number of fields, or
            contains invalid placement, castling, en passant or counters.

    Notes:
        ``has_moved`` is reconstructed: kings and rooks count as unmoved only
        on their home squares when the castling field covers them, pawns
        only on their start rank. Every other piece loads as unmoved.
    """
    if not fen or not isinstance(fen, str):
        raise ValueError("FEN must be a non-empty string")
    parts = fen.strip().split()
    if len(parts) != 6:
        raise ValueError("FEN must have 6 fields")
    placement, stm, castling, ep, halfmove, fullmove = parts

    ranks = placement.split("/")
    if len(ranks) != 8:
        raise ValueError("FEN board must have 8 ranks")
    if castling != "-" and any(ch not in "KQkq" for ch in castling):
        raise ValueError("invalid castling rights")
    rights = "" if castling == "-" else castling

    board = Board()
    for row, rank in enumerate(ranks):
        col = 0
        for ch in rank:
            if ch.isdigit():
                n = int(ch)
                if n < 1 or n > 8:
                    raise ValueError("invalid empty count in FEN rank")
                col += n
                continue
            piece_type = LETTER_TO_TYPE.get(ch.upper())
            if piece_type is None:
                raise ValueError(f"invalid piece in FEN: {ch!r}")
            if col >= 8:
                raise ValueError("too many squares in FEN rank")
            color = Color.WHITE if ch.isupper() else Color.BLACK
            board.grid[row][col] = Piece(
                piece_type, color, _loaded_has_moved(piece_type, color, row, col, rights)
            )
            col += 1
        if col != 8:
            raise ValueError("rank does not sum to 8 squares in FEN")

    if stm not in ("w", "b"):
        raise ValueError("side to move must be 'w' or 'b'")
    side = Color.WHITE if stm == "w" else Color.BLACK

    en_passant_target: Optional[Position]
    if ep == "-":
        en_passant_target = None
    else:
        try:
            en_passant_target = str_to_square(ep)
        except ValueError as e:
            raise ValueError("invalid en passant square") from e
        if en_passant_target.row not in (2, 5):
            raise ValueError("invalid en passant square rank")

    try:
        halfmove_clock = int(halfmove)
        fullmove_number = int(fullmove)
    except ValueError as e:
        raise ValueError("invalid move counters in FEN") from e
    if halfmove_clock < 0 or fullmove_number <= 0:
        raise ValueError("invalid move counters in FEN")

    return FenState(board, side, en_passant_target, halfmove_clock, fullmove_number)


def _loaded_has_moved(piece_type: PieceType, color: Color, row: int, col: int, rights: str) -> bool:
    home_row = 7 if color is Color.WHITE else 0
    king_side, queen_side = ("K", "Q") if color is Color.WHITE else ("k", "q")
    if piece_type is PieceType.KING:
        return not (row == home_row and col == 4 and (king_side in rights or queen_side in rights))
    if piece_type is PieceType.ROOK:
        if row == home_row and col == 7 and king_side in rights:
            return False
        if row == home_row and col == 0 and queen_side in rights:
            return False
        return True
    if piece_type is PieceType.PAWN:
        return row != (6 if color is Color.WHITE else 1)
    return False


# Functional API used by the rules, search and service layers


def create_initial_board() -> Board:
    return Board.startpos()


def clone_board(board: Board) -> Board:
    return board.copy()


def get_piece_at(board: Board, pos: Position) -> Optional[Piece]:
    """Return the piece on ``pos``, or ``None`` when empty or off the board."""
    return board.piece_at(pos)
