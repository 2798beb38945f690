"""
Board Location – find the chessboard inside a full screenshot
=============================================================

Strategy (first success wins):

    Strategy A – **Square cloud**
        Detect many small near-square shapes (the board cells) inside a
        central region of interest and take their bounding box.  The
        grid lines produce strong small-square edges even when the board
        border blends into the page, so this is tried first.

    Strategy B – **Large square**
        Detect one big near-square shape and keep the candidate that is
        both large and close to the image centre
        (``side − 0.2 × distance_to_centre``).

    Strategy C – **Centred heuristic crop**
        A square of ~70 % of the shorter image side, centred and nudged
        upward to skip the UI chrome usually found below the board.

Design notes:
  • The region of interest drops a strip on each side where site
    navigation and move lists live.
  • Detections whose centre falls outside a central band are ignored –
    that guards against matching toolbar icons near the edges.
  • The square cloud usually undershoots the real board (outer cells
    touching the border are often missed), so its result is enlarged by
    ``cloud_enlargement`` before grid normalisation.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from chess_screen.config import LocatorConfig
from chess_screen.models.shapes import ShapeDetection, detect_rectangles
from chess_screen.models.types import Rect

log = logging.getLogger(__name__)


# ── Data classes ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class LocatorResult:
    """Rough board region plus how it was found."""
    rect: Rect
    method: str                                   # "squares" | "large_square" | "fallback"
    candidates: List[Rect] = field(default_factory=list, compare=False)


# ── Public API ─────────────────────────────────────────────────────────

class BoardLocator:
    """Locate the square chessboard region inside a screenshot.

    Parameters
    ----------
    config : LocatorConfig, optional
        Region of interest, detector knobs and the empirical factors
        described in the module docstring.
    """

    def __init__(self, config: Optional[LocatorConfig] = None) -> None:
        self.config = config or LocatorConfig()

    def locate(self, image: np.ndarray) -> Optional[LocatorResult]:
        """Return the rough board region, or ``None`` if no 8×8 grid can fit.

        The returned rect is square and inside the image.  It is *not*
        yet aligned to an 8-divisible side; see
        :func:`chess_screen.inference.grid.normalize`.
        """
        h, w = image.shape[:2]
        if min(h, w) < 8:
            log.warning("Image %dx%d is too small to hold a board", w, h)
            return None

        roi = self.region_of_interest(w, h)

        result = self._locate_by_squares(image, roi)
        if result is not None:
            log.info("Board located via square cloud: %s", result.rect)
            return result

        result = self._locate_by_large_square(image, roi)
        if result is not None:
            log.info("Board located via large square: %s", result.rect)
            return result

        rect = self._fallback(w, h)
        log.info("Board location fallback: centred crop %s", rect)
        return LocatorResult(rect=rect, method="fallback")

    def region_of_interest(self, width: int, height: int) -> Rect:
        left, top, right, bottom = self.config.roi_inset
        roi = Rect.from_bounds(
            width * left,
            height * top,
            width * (1.0 - right),
            height * (1.0 - bottom),
        ).clamp_to(width, height)
        if roi.width < 3 or roi.height < 3:
            return Rect(0, 0, width, height)
        return roi

    # ── Strategy A: square cloud ───────────────────────────────────────

    def square_cloud(self, image: np.ndarray, roi: Optional[Rect] = None) -> Optional[Rect]:
        """Bounding box of the small-square detections (before enlargement)."""
        h, w = image.shape[:2]
        roi = roi or self.region_of_interest(w, h)
        cfg = self.config

        detections = self._detect_in_roi(image, roi, cfg.small_squares)
        survivors = [
            r for r in detections
            if _center_in_band(r, w, h, cfg.small_center_band)
        ]
        log.debug(
            "square cloud: %d detections, %d inside central band",
            len(detections), len(survivors),
        )
        if not survivors:
            return None

        box = Rect.from_bounds(
            min(r.x for r in survivors),
            min(r.y for r in survivors),
            max(r.x2 for r in survivors),
            max(r.y2 for r in survivors),
        )
        if cfg.cloud_dilation > 0:
            box = box.dilate(cfg.cloud_dilation)
        box = box.clamp_to(w, h)

        min_side = min(cfg.min_board_side, w, h)
        if box.side < min_side:
            cx, cy = box.center
            box = Rect.from_bounds(
                cx - max(box.width, min_side) / 2.0,
                cy - max(box.height, min_side) / 2.0,
                cx + max(box.width, min_side) / 2.0,
                cy + max(box.height, min_side) / 2.0,
            ).shift_inside(w, h).clamp_to(w, h)
        return box

    def _locate_by_squares(self, image: np.ndarray, roi: Rect) -> Optional[LocatorResult]:
        box = self.square_cloud(image, roi)
        if box is None:
            return None

        h, w = image.shape[:2]
        short_side = min(w, h)
        side = box.side * self.config.cloud_enlargement
        side = max(min(self.config.min_board_side, short_side), min(side, short_side))
        cx, cy = box.center
        rect = Rect.square_around(cx, cy, side).shift_inside(w, h)
        return LocatorResult(rect=rect, method="squares", candidates=[box])

    # ── Strategy B: one large square ───────────────────────────────────

    def _locate_by_large_square(self, image: np.ndarray, roi: Rect) -> Optional[LocatorResult]:
        h, w = image.shape[:2]
        cfg = self.config
        img_cx, img_cy = w / 2.0, h / 2.0

        detections = self._detect_in_roi(image, roi, cfg.large_square)
        best: Optional[Rect] = None
        best_score = -math.inf
        candidates: List[Rect] = []

        for rect in detections:
            if rect.side < cfg.large_min_side:
                continue
            if not _center_in_band(rect, w, h, cfg.large_center_band):
                continue
            candidates.append(rect)
            cx, cy = rect.center
            dist = math.hypot(cx - img_cx, cy - img_cy)
            score = rect.side - cfg.center_distance_weight * dist
            log.debug("large square candidate %s score=%.1f", rect, score)
            if score > best_score:
                best_score = score
                best = rect

        if best is None:
            return None

        cx, cy = best.center
        squared = Rect.square_around(cx, cy, best.side).shift_inside(w, h)
        return LocatorResult(rect=squared, method="large_square", candidates=candidates)

    # ── Strategy C: centred crop ───────────────────────────────────────

    def _fallback(self, w: int, h: int) -> Rect:
        cfg = self.config
        short_side = min(w, h)
        side = max(short_side * cfg.fallback_fraction, cfg.min_board_side)
        side = int(round(min(side, short_side)))
        x = (w - side) / 2.0
        y = (h - side) / 2.0 - h * cfg.fallback_upshift
        return Rect(int(round(x)), int(round(y)), side, side).shift_inside(w, h)

    # ── Shared ─────────────────────────────────────────────────────────

    def _detect_in_roi(self, image: np.ndarray, roi: Rect, shape_cfg) -> List[Rect]:
        """Run the rectangle finder on the ROI and map hits to full-image pixels."""
        rows, cols = roi.as_slices()
        detections: List[ShapeDetection] = detect_rectangles(image[rows, cols], shape_cfg)
        mapped: List[Rect] = []
        for det in detections:
            local = det.to_pixels(roi.width, roi.height)
            mapped.append(Rect(local.x + roi.x, local.y + roi.y, local.width, local.height))
        return mapped


def _center_in_band(rect: Rect, w: int, h: int, band: Tuple[float, float]) -> bool:
    low, high = band
    cx, cy = rect.center
    nx, ny = cx / w, cy / h
    return low < nx < high and low < ny < high
