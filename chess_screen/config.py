"""
Configuration – named constants for every tuned parameter
==========================================================

The numbers below were tuned by hand on chess.com / lichess screenshots
at 1920×1080 and 3840×2160.  They are kept in frozen dataclasses so a
caller can derive a variant with :func:`dataclasses.replace` instead of
forking the detection code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple


FEATURE_SIZE: int = 64      # Side of the canonical square fed to matching
MIN_BOARD_SIDE: int = 400   # Smallest usable board side in pixels
BOARD_FILES: int = 8


# ── Shape detection ────────────────────────────────────────────────────

@dataclass(frozen=True)
class ShapeDetectorConfig:
    """Knobs of the quadrilateral finder (see ``models.shapes``).

    Sizes are relative to the shorter side of the searched image.
    """
    min_aspect: float = 0.9
    max_aspect: float = 1.1
    min_size: float = 0.02
    max_size: float = 0.20
    max_observations: int = 256
    min_confidence: float = 0.25
    quadrature_tolerance: float = 20.0   # degrees away from 90° per corner


SMALL_SQUARES = ShapeDetectorConfig()

LARGE_SQUARE = ShapeDetectorConfig(
    min_aspect=0.8,
    max_aspect=1.2,
    min_size=0.1,
    max_size=1.0,
    max_observations=30,
    min_confidence=0.3,
)


# ── Board location ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class LocatorConfig:
    """Parameters of :class:`~chess_screen.models.board_locator.BoardLocator`.

    ``roi_inset`` is ``(left, top, right, bottom)`` as fractions of the
    image; the strip it removes usually holds side panels and toolbars.
    Central bands are ``(low, high)`` fractions a detection's centre must
    fall strictly between, on both axes.
    """
    roi_inset: Tuple[float, float, float, float] = (0.15, 0.05, 0.15, 0.05)
    min_board_side: int = MIN_BOARD_SIDE

    small_squares: ShapeDetectorConfig = field(default_factory=lambda: SMALL_SQUARES)
    small_center_band: Tuple[float, float] = (0.15, 0.85)
    cloud_dilation: float = 0.08
    cloud_enlargement: float = 1.15

    large_square: ShapeDetectorConfig = field(default_factory=lambda: LARGE_SQUARE)
    large_center_band: Tuple[float, float] = (0.2, 0.8)
    large_min_side: int = MIN_BOARD_SIDE
    center_distance_weight: float = 0.2

    fallback_fraction: float = 0.7
    fallback_upshift: float = 0.03


# ── Classification ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class ClassifierConfig:
    """Parameters of :class:`~chess_screen.inference.classifier.SquareClassifier`.

    The brightness thresholds are only used when the catalog has no
    ``empty`` templates to infer the square background from.  They apply
    to the mean of the [0, 1] feature vector.
    """
    dark_threshold: float = 0.45
    highlight_threshold: float = 0.80
    restrict_to_background: bool = True
