"""
Error Taxonomy
==============

Every failure the recognition core can report derives from
``ChessScreenError`` so callers can catch the whole family at once:

  • **Geometry errors**       – bad board rects; fatal for the frame.
  • **Catalog errors**        – template loading; fatal at start-up.
  • **Classification errors** – a single square could not be scored.
  • **Board dimensions**      – a board / square matrix is not 8×8.
  • **Board not found**       – every location strategy failed.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class ChessScreenError(Exception):
    """Base class for all recognition errors."""


# ── Geometry ───────────────────────────────────────────────────────────

class GeometryError(ChessScreenError, ValueError):
    """A rect cannot be used as a board region."""


class BoardOutOfBoundsError(GeometryError):
    def __init__(self, rect, width: int, height: int) -> None:
        super().__init__(
            f"Board rect {rect} is not inside the {width}x{height} image"
        )
        self.rect = rect
        self.width = width
        self.height = height


class InvalidBoardGeometryError(GeometryError):
    def __init__(self, width: int, height: int) -> None:
        super().__init__(
            f"Board region {width}x{height} is not a square divisible by 8"
        )
        self.width = width
        self.height = height


# ── Template catalog ───────────────────────────────────────────────────

class CatalogError(ChessScreenError):
    """Template catalog could not be loaded."""


class TemplateDirectoryNotFoundError(CatalogError, FileNotFoundError):
    def __init__(self, directory: Path) -> None:
        super().__init__(f"Template directory not found: {directory}")
        self.directory = directory


class NoTemplatesFoundError(CatalogError):
    def __init__(self, directory: Path, filter_tag: Optional[str]) -> None:
        suffix = f" matching tag '{filter_tag}'" if filter_tag else ""
        super().__init__(f"No template PNGs{suffix} in {directory}")
        self.directory = directory
        self.filter_tag = filter_tag


class TemplateDecodeError(CatalogError):
    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Could not decode template {path}: {reason}")
        self.path = path


class TemplateNameError(CatalogError, ValueError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unparseable template filename: {name}")
        self.name = name


class DuplicateTemplateError(CatalogError):
    def __init__(self, key, path: Path) -> None:
        super().__init__(f"Duplicate template for {key}: {path}")
        self.key = key
        self.path = path


# ── Classification ─────────────────────────────────────────────────────

class ClassificationError(ChessScreenError):
    """A square could not be matched against the catalog."""


class EmptyCatalogError(ClassificationError):
    def __init__(self) -> None:
        super().__init__("Template catalog is empty; nothing to classify against")


class InvalidBoardDimensionsError(ChessScreenError, ValueError):
    def __init__(self, ranks: int, files: Optional[int] = None) -> None:
        shape = f"{ranks}x{files}" if files is not None else f"{ranks} ranks"
        super().__init__(f"Expected an 8x8 board, got {shape}")
        self.ranks = ranks
        self.files = files


class BoardNotFoundError(ChessScreenError):
    """No location strategy produced a usable board region."""
