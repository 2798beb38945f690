"""
Board Model – enums, geometry and board state
=============================================

Conventions shared by every stage:
  • Pixel coordinates are top-left origin (row 0 = top of the screenshot).
  • ``BoardState.squares[rank][file]``: rank 0 is White's back rank
    (rank "1"), file 0 is the a-file.  Converting between the two is the
    slicer's job and happens in exactly one place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np


# ── Enums ──────────────────────────────────────────────────────────────

class PieceColor(str, Enum):
    WHITE = "white"
    BLACK = "black"
    NONE = "none"


class PieceKind(str, Enum):
    PAWN = "pawn"
    KNIGHT = "knight"
    BISHOP = "bishop"
    ROOK = "rook"
    QUEEN = "queen"
    KING = "king"
    EMPTY = "empty"


class BackgroundKind(str, Enum):
    """Rendered state of a square's background."""
    DARK = "dark"
    LIGHT = "light"
    HIGHLIGHTED = "highlighted"   # source / destination of the last move


# Piece kind → lowercase FEN letter
KIND_TO_FEN: dict[PieceKind, str] = {
    PieceKind.PAWN: "p",
    PieceKind.KNIGHT: "n",
    PieceKind.BISHOP: "b",
    PieceKind.ROOK: "r",
    PieceKind.QUEEN: "q",
    PieceKind.KING: "k",
}

FEN_TO_KIND: dict[str, PieceKind] = {v: k for k, v in KIND_TO_FEN.items()}


# ── Geometry ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in integer pixel coordinates."""
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_bounds(cls, x1: float, y1: float, x2: float, y2: float) -> "Rect":
        """Build a rect from edge coordinates, rounding to whole pixels."""
        left, top = int(round(x1)), int(round(y1))
        return cls(left, top, int(round(x2)) - left, int(round(y2)) - top)

    @classmethod
    def square_around(cls, cx: float, cy: float, side: float) -> "Rect":
        side_px = int(round(side))
        return cls(
            int(round(cx - side_px / 2.0)),
            int(round(cy - side_px / 2.0)),
            side_px,
            side_px,
        )

    @property
    def x2(self) -> int:
        return self.x + self.width

    @property
    def y2(self) -> int:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    @property
    def side(self) -> int:
        """Length of the shorter side."""
        return min(self.width, self.height)

    @property
    def is_square(self) -> bool:
        return self.width == self.height

    def inside(self, width: int, height: int) -> bool:
        """True if the rect lies fully within a ``width × height`` image."""
        return self.width > 0 and self.height > 0 and Rect(0, 0, width, height).contains(self)

    def contains(self, other: "Rect") -> bool:
        return (
            self.x <= other.x
            and self.y <= other.y
            and other.x2 <= self.x2
            and other.y2 <= self.y2
        )

    def clamp_to(self, width: int, height: int) -> "Rect":
        """Intersect with the image bounds (may shrink the rect)."""
        x1 = min(max(self.x, 0), width)
        y1 = min(max(self.y, 0), height)
        x2 = min(max(self.x2, 0), width)
        y2 = min(max(self.y2, 0), height)
        return Rect(x1, y1, x2 - x1, y2 - y1)

    def shift_inside(self, width: int, height: int) -> "Rect":
        """Move (without resizing) so the rect fits the image when it can."""
        x = max(0, min(self.x, width - self.width))
        y = max(0, min(self.y, height - self.height))
        return Rect(x, y, self.width, self.height)

    def dilate(self, fraction: float) -> "Rect":
        """Grow every edge outward by ``fraction`` of the rect's size."""
        dx = self.width * fraction
        dy = self.height * fraction
        return Rect.from_bounds(self.x - dx, self.y - dy, self.x2 + dx, self.y2 + dy)

    def as_slices(self) -> Tuple[slice, slice]:
        """``(rows, cols)`` slices for indexing a NumPy image."""
        return slice(self.y, self.y2), slice(self.x, self.x2)


# ── Templates & squares ────────────────────────────────────────────────

@dataclass(frozen=True, order=True)
class TemplateKey:
    """Identity of one reference template: (colour, kind, background)."""
    color: PieceColor
    kind: PieceKind
    background: BackgroundKind

    def __post_init__(self) -> None:
        if (self.kind is PieceKind.EMPTY) != (self.color is PieceColor.NONE):
            raise ValueError(
                f"Empty squares must have no colour and pieces must have one: "
                f"{self.color.value}/{self.kind.value}"
            )

    @property
    def is_empty(self) -> bool:
        return self.kind is PieceKind.EMPTY

    def __str__(self) -> str:
        if self.is_empty:
            return f"empty/{self.background.value}"
        return f"{self.color.value}_{self.kind.value}/{self.background.value}"


@dataclass(frozen=True)
class TemplateDescriptor:
    """Preprocessed template owned by the catalog.

    ``vector`` is a read-only float32 array of ``width * height`` values
    in [0, 1], produced by :func:`chess_screen.inference.features.extract_features`.
    """
    key: TemplateKey
    width: int
    height: int
    vector: np.ndarray = field(repr=False, compare=False)


@dataclass(frozen=True)
class SquareState:
    """Classification of a single board cell."""
    color: PieceColor = PieceColor.NONE
    kind: PieceKind = PieceKind.EMPTY
    background: BackgroundKind = BackgroundKind.DARK

    @classmethod
    def from_key(cls, key: TemplateKey) -> "SquareState":
        return cls(key.color, key.kind, key.background)

    @property
    def is_empty(self) -> bool:
        return self.kind is PieceKind.EMPTY or self.color is PieceColor.NONE

    @property
    def fen_char(self) -> Optional[str]:
        """FEN letter (upper-case for White) or ``None`` for an empty square."""
        if self.is_empty:
            return None
        letter = KIND_TO_FEN[self.kind]
        return letter.upper() if self.color is PieceColor.WHITE else letter


def _empty_squares() -> List[List[SquareState]]:
    return [[SquareState() for _ in range(8)] for _ in range(8)]


@dataclass
class BoardState:
    """8×8 board indexed ``[rank][file]`` plus the non-placement FEN fields.

    The extra fields are never inferred from the screenshot; they hold
    fixed defaults unless the caller supplies them.
    """
    squares: List[List[SquareState]] = field(default_factory=_empty_squares)
    side_to_move: str = "w"
    castling: str = "KQkq"
    en_passant: str = "-"
    halfmove_clock: int = 0
    fullmove_number: int = 1

    @classmethod
    def empty(cls) -> "BoardState":
        return cls()

    def __getitem__(self, rank: int) -> List[SquareState]:
        return self.squares[rank]
