"""Synthetic chessboards, screenshots and template folders rendered with OpenCV."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

import cv2
import numpy as np

from chess_screen.config import LocatorConfig
from chess_screen.inference.fen_utils import parse_placement
from chess_screen.models.types import KIND_TO_FEN, PieceColor

CELL = 64
BOARD = CELL * 8
SCREEN_W, SCREEN_H = 1280, 800
BOARD_ORIGIN = ((SCREEN_W - BOARD) // 2, (SCREEN_H - BOARD) // 2)   # (384, 144)

LIGHT = (170, 190, 190)      # BGR, gray ≈ 0.74
DARK = (60, 100, 80)         # gray ≈ 0.35
HIGHLIGHT = (100, 230, 230)  # yellow last-move tint, gray ≈ 0.84
UI_BACKGROUND = (40, 40, 40)

START_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR"
TEST_FEN = "r3k2r/ppp2ppp/2n1bn2/3qp3/3PP3/2N1BN2/PPPQ1PPP/R3K2R"

# Snaps the cell cloud of a 512 px synthetic board back onto 512 px.
SYNTHETIC_LOCATOR = LocatorConfig(cloud_dilation=0.0, cloud_enlargement=1.012)


def render_cell(
    letter: Optional[str],
    dark: bool,
    size: int = CELL,
    background: Optional[Tuple[int, int, int]] = None,
) -> np.ndarray:
    """One square: flat background plus an outlined letter glyph for a piece.

    *background* overrides the dark/light colour, e.g. with ``HIGHLIGHT``.
    """
    cell = np.zeros((size, size, 3), dtype=np.uint8)
    cell[:] = background or (DARK if dark else LIGHT)
    if letter:
        fill = (255, 255, 255) if letter.isupper() else (0, 0, 0)
        outline = (0, 0, 0) if letter.isupper() else (255, 255, 255)
        org = (size // 4, size * 3 // 4)
        scale = size / CELL
        for color, thickness in ((outline, 5), (fill, 2)):
            cv2.putText(cell, letter.upper(), org, cv2.FONT_HERSHEY_SIMPLEX,
                        1.2 * scale, color, max(1, round(thickness * scale)))
    return cell


def render_board(fen: str, cell: int = CELL) -> np.ndarray:
    """Top-row-first board image; a1 is dark and sits bottom-left."""
    board = parse_placement(fen)
    image = np.zeros((cell * 8, cell * 8, 3), dtype=np.uint8)
    for rank in range(8):
        for file in range(8):
            square = board.squares[rank][file]
            dark = (rank + file) % 2 == 0
            y = (7 - rank) * cell
            x = file * cell
            image[y:y + cell, x:x + cell] = render_cell(square.fen_char, dark, cell)
    return image


def render_screenshot(fen: str) -> np.ndarray:
    """Board pasted in the middle of a flat UI-coloured screen."""
    screen = np.zeros((SCREEN_H, SCREEN_W, 3), dtype=np.uint8)
    screen[:] = UI_BACKGROUND
    x, y = BOARD_ORIGIN
    screen[y:y + BOARD, x:x + BOARD] = render_board(fen)
    return screen


def template_stem(letter: Optional[str], background: str) -> str:
    if letter is None:
        return f"empty_{background}"
    color = PieceColor.WHITE if letter.isupper() else PieceColor.BLACK
    kind = next(k for k, v in KIND_TO_FEN.items() if v == letter.lower())
    return f"{color.value}{kind.value.capitalize()}_{background}"


def write_templates(directory: Path, tag: Optional[str] = None, highlighted: bool = False) -> Path:
    """Write the 26 templates (12 pieces + empty, on dark and light).

    With *highlighted*, 13 more are written on the last-move tint under
    the ``previous`` alias.
    """
    directory.mkdir(parents=True, exist_ok=True)
    pieces = list(KIND_TO_FEN.values())
    letters = [None] + [p.upper() for p in pieces] + pieces
    variants = [("dark", DARK), ("light", LIGHT)]
    if highlighted:
        variants.append(("previous", HIGHLIGHT))
    for letter in letters:
        for background, color in variants:
            stem = template_stem(letter, background)
            if tag:
                stem = f"{stem}_{tag}"
            image = render_cell(letter, color is DARK, background=color)
            cv2.imwrite(str(directory / f"{stem}.png"), image)
    return directory


