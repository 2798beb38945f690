"""
Board Grid – 8×8 normalisation and slicing
==========================================

``normalize`` snaps a rough board region to a square whose side is an
exact multiple of 8, so ``slice_board`` can cut 64 equal cells with no
remainder pixels.

Orientation: images are stored top-row-first, while the board model
puts rank 0 (White's back rank) at the bottom.  ``slice_board`` is the
single place where that flip happens: ``image_row = 7 - rank``.
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional

import numpy as np

from chess_screen.config import BOARD_FILES, MIN_BOARD_SIDE
from chess_screen.errors import (
    BoardOutOfBoundsError,
    GeometryError,
    InvalidBoardGeometryError,
)
from chess_screen.models.types import Rect

log = logging.getLogger(__name__)


def _floor8(value: float) -> int:
    return int(math.floor(value / BOARD_FILES)) * BOARD_FILES


# ── Normalisation ──────────────────────────────────────────────────────

def normalize(
    rough: Rect,
    image_width: int,
    image_height: int,
    min_side: int = MIN_BOARD_SIDE,
) -> Rect:
    """Snap *rough* to an in-bounds square with an 8-divisible side.

    Parameters
    ----------
    rough : Rect
        Region from the locator (any aspect ratio).
    image_width, image_height : int
        Bounds of the source image.
    min_side : int
        Smallest usable board side.  A smaller snapped side is replaced by
        the largest multiple of 8 not exceeding
        ``min(min_side, shorter image side)``.

    Returns
    -------
    Rect
        Square, ``side % 8 == 0``, fully inside the image, centred on the
        rough rect's centre as far as the bounds allow.

    Raises
    ------
    GeometryError
        Only when the image itself is shorter than 8 pixels on a side.
    """
    short_side = min(image_width, image_height)
    max_side = _floor8(short_side)
    if max_side < BOARD_FILES:
        raise GeometryError(f"Image {image_width}x{image_height} cannot hold an 8x8 grid")

    cell = max(1, int(math.floor(min(rough.width, rough.height) / BOARD_FILES)))
    side = cell * BOARD_FILES

    if side < min_side:
        side = _floor8(min(min_side, short_side))
    side = max(BOARD_FILES, min(side, max_side))

    cx, cy = rough.center
    x = int(math.floor(cx - side / 2.0))
    y = int(math.floor(cy - side / 2.0))
    snapped = Rect(x, y, side, side).shift_inside(image_width, image_height)

    log.debug("normalize %s → %s", rough, snapped)
    return snapped


# ── Slicing ────────────────────────────────────────────────────────────

def validate_board_rect(rect: Rect, image_width: int, image_height: int) -> int:
    """Check *rect* can be sliced; return the cell size.

    Raises
    ------
    BoardOutOfBoundsError
        If the rect is not fully inside the image.
    InvalidBoardGeometryError
        If it is not a square with an 8-divisible side.
    """
    if not rect.inside(image_width, image_height):
        raise BoardOutOfBoundsError(rect, image_width, image_height)
    if not rect.is_square or rect.width % BOARD_FILES != 0:
        raise InvalidBoardGeometryError(rect.width, rect.height)
    return rect.width // BOARD_FILES


def slice_board(image: np.ndarray, board_rect: Optional[Rect] = None) -> List[List[np.ndarray]]:
    """Cut the board region into an 8×8 matrix of sub-images.

    Parameters
    ----------
    image : np.ndarray
        Full image (top-left origin).
    board_rect : Rect, optional
        Square, 8-divisible, in-bounds region.  ``None`` uses the whole
        image, which must then satisfy the same rules.

    Returns
    -------
    list[list[np.ndarray]]
        ``squares[rank][file]`` – rank 0 is the bottom row band of the
        board rect, file 0 the leftmost column.  Each cell is a copy of
        ``side/8 × side/8`` pixels.
    """
    h, w = image.shape[:2]
    rect = board_rect if board_rect is not None else Rect(0, 0, w, h)
    cell = validate_board_rect(rect, w, h)

    squares: List[List[np.ndarray]] = []
    for rank in range(BOARD_FILES):
        row_band = BOARD_FILES - 1 - rank       # rank 0 → bottom image row
        y1 = rect.y + row_band * cell
        row: List[np.ndarray] = []
        for file in range(BOARD_FILES):
            x1 = rect.x + file * cell
            row.append(image[y1:y1 + cell, x1:x1 + cell].copy())
        squares.append(row)
    return squares


def square_rect(board_rect: Rect, rank: int, file: int) -> Rect:
    """Pixel rect of ``[rank][file]`` inside *board_rect* (same flip as slicing)."""
    cell = board_rect.width // BOARD_FILES
    row_band = BOARD_FILES - 1 - rank
    return Rect(board_rect.x + file * cell, board_rect.y + row_band * cell, cell, cell)
