from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, NamedTuple, Optional, Tuple

if TYPE_CHECKING:
    from .board import Piece, PieceType


PROMOTION_PIECES = {"q", "r", "b", "n"}
PROMOTION_LETTERS = {"queen": "q", "rook": "r", "bishop": "b", "knight": "n"}


class Position(NamedTuple):
    """Board coordinate; row 0 is rank 8, col 0 is file a."""

    row: int
    col: int


@dataclass(frozen=True)
class Move:
    """Record of a completed transition, produced only by ``make_move``.

    Attributes:
        from_pos (Position): Origin square.
        to_pos (Position): Destination square.
        piece (Piece): The piece as it stands after the move (promoted type,
            ``has_moved`` set).
        captured (Optional[Piece]): Captured piece; a synthesized pawn for en
            passant.
        is_en_passant (bool): Whether the move captured en passant.
        is_castling (bool): Whether the move was a castle.
        promotion_to (Optional[PieceType]): Type a pawn promoted to, if any.
        notation (str): SAN-like notation without check suffixes.
    """

    from_pos: Position
    to_pos: Position
    piece: "Piece"
    captured: Optional["Piece"] = None
    is_en_passant: bool = False
    is_castling: bool = False
    promotion_to: Optional["PieceType"] = None
    notation: str = ""

    def to_uci(self) -> str:
        """Serialize the move in coordinate form (``"e2e4"``, ``"e7e8q"``)."""
        promo = ""
        if self.promotion_to is not None:
            promo = PROMOTION_LETTERS[self.promotion_to.value]
        return square_to_str(self.from_pos) + square_to_str(self.to_pos) + promo

    def with_suffix(self, suffix: str) -> "Move":
        """Return a copy whose notation carries a check or mate suffix."""
        return Move(
            self.from_pos,
            self.to_pos,
            self.piece,
            self.captured,
            self.is_en_passant,
            self.is_castling,
            self.promotion_to,
            self.notation + suffix,
        )


def parse_uci(uci: str) -> Tuple[Position, Position, Optional[str]]:
    """Parse a coordinate move string.

    Args:
        uci (str): Move encoded like ``"e2e4"`` or ``"e7e8q"``.

    Returns:
        Tuple[Position, Position, Optional[str]]: Origin, destination and the
            lowercase promotion letter, if any.

    Raises:
        ValueError: If the string has an invalid length, squares, or promotion
            piece.
    """
    if len(uci) not in (4, 5):
        raise ValueError(f"invalid UCI move length: {uci!r}")
    from_pos = str_to_square(uci[0:2])
    to_pos = str_to_square(uci[2:4])
    promo: Optional[str] = None
    if len(uci) == 5:
        promo = uci[4].lower()
        if promo not in PROMOTION_PIECES:
            raise ValueError(f"invalid promotion piece: {promo!r}")
    return from_pos, to_pos, promo


def str_to_square(s: str) -> Position:
    """Convert algebraic notation such as ``"e4"`` into a ``Position``.

    Raises:
        ValueError: If ``s`` is not a valid square.
    """
    if len(s) != 2 or s[0] < "a" or s[0] > "h" or s[1] < "1" or s[1] > "8":
        raise ValueError(f"invalid square: {s!r}")
    col = ord(s[0]) - ord("a")
    row = 8 - int(s[1])
    return Position(row, col)


def square_to_str(pos: Position) -> str:
    """Convert a ``Position`` into algebraic notation.

    Raises:
        ValueError: If ``pos`` lies outside the board.
    """
    if not (0 <= pos.row <= 7 and 0 <= pos.col <= 7):
        raise ValueError(f"invalid square: {pos}")
    return "abcdefgh"[pos.col] + "87654321"[pos.row]
