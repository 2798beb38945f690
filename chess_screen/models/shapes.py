"""
Rectangle Finder – contour-based quadrilateral detection
========================================================

A small stand-in for a platform "detect rectangles" request: it returns
near-square quadrilaterals found in an image together with a confidence
score, filtered by aspect ratio and relative size.

Pipeline:
    grayscale → Gaussian blur → Canny → dilate → contours (all levels)
    → polygon approximation → 4 convex vertices with ~90° corners
    → aspect / size / confidence filters → de-duplication

Boxes are returned **normalised to [0, 1]** relative to the searched
image with a **top-left origin**, so callers searching a sub-region must
map them back themselves (``to_pixels`` + offset).

The grid lines of a rendered chessboard become a connected edge network
after dilation; every cell is then a hole in that network, which is why
retrieving the full contour list finds the individual squares as well as
the outer board outline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple

import cv2
import numpy as np

from chess_screen.config import ShapeDetectorConfig
from chess_screen.models.types import Rect

log = logging.getLogger(__name__)


# ── Data classes ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class ShapeDetection:
    """One detected quadrilateral, as a normalised bounding box."""
    x: float
    y: float
    width: float
    height: float
    confidence: float

    def to_pixels(self, image_width: int, image_height: int) -> Rect:
        return Rect.from_bounds(
            self.x * image_width,
            self.y * image_height,
            (self.x + self.width) * image_width,
            (self.y + self.height) * image_height,
        )


# ── Public API ─────────────────────────────────────────────────────────

def detect_rectangles(
    image: np.ndarray,
    config: ShapeDetectorConfig,
) -> List[ShapeDetection]:
    """Find near-square quadrilaterals in *image*.

    Parameters
    ----------
    image : np.ndarray
        BGR, BGRA or grayscale image.
    config : ShapeDetectorConfig
        Aspect-ratio range, relative size range (fractions of the image's
        shorter side), confidence floor and observation ceiling.

    Returns
    -------
    list[ShapeDetection]
        Sorted by descending confidence, at most
        ``config.max_observations`` entries.
    """
    h, w = image.shape[:2]
    if h < 3 or w < 3:
        return []

    gray = _to_gray(image)
    blurred = cv2.GaussianBlur(gray, (3, 3), 0)
    edges = cv2.Canny(blurred, 30, 120)
    kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (3, 3))
    edges = cv2.dilate(edges, kernel, iterations=1)

    contours, _ = cv2.findContours(edges, cv2.RETR_LIST, cv2.CHAIN_APPROX_SIMPLE)

    short_side = float(min(h, w))
    min_side = config.min_size * short_side
    max_side = config.max_size * short_side

    found: List[Tuple[Tuple[int, int, int, int], float]] = []
    for cnt in contours:
        peri = cv2.arcLength(cnt, True)
        if peri < 4 * max(min_side, 1.0):
            continue
        approx = cv2.approxPolyDP(cnt, 0.02 * peri, True)
        if len(approx) != 4 or not cv2.isContourConvex(approx):
            continue

        pts = approx.reshape(4, 2).astype(np.float32)
        if not _has_right_angles(pts, config.quadrature_tolerance):
            continue

        bx, by, bw, bh = cv2.boundingRect(approx)
        side = min(bw, bh)
        if side < min_side or side > max_side:
            continue
        aspect = bw / float(bh)
        if not (config.min_aspect <= aspect <= config.max_aspect):
            continue

        confidence = float(cv2.contourArea(approx)) / float(bw * bh)
        if confidence < config.min_confidence:
            continue

        found.append(((bx, by, bw, bh), min(confidence, 1.0)))

    found.sort(key=lambda item: item[1], reverse=True)
    kept = _deduplicate(found)[: config.max_observations]

    log.debug(
        "detect_rectangles: %d contours → %d quads kept (size %.0f–%.0f px)",
        len(contours), len(kept), min_side, max_side,
    )

    return [
        ShapeDetection(
            x=bx / w,
            y=by / h,
            width=bw / w,
            height=bh / h,
            confidence=conf,
        )
        for (bx, by, bw, bh), conf in kept
    ]


# ── Helpers ────────────────────────────────────────────────────────────

def _to_gray(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def _has_right_angles(pts: np.ndarray, tolerance_deg: float) -> bool:
    """Every interior angle within *tolerance_deg* of 90°."""
    for i in range(4):
        prev_pt = pts[i - 1]
        cur = pts[i]
        nxt = pts[(i + 1) % 4]
        v1 = prev_pt - cur
        v2 = nxt - cur
        n1 = np.linalg.norm(v1)
        n2 = np.linalg.norm(v2)
        if n1 < 1 or n2 < 1:
            return False
        cos = float(np.dot(v1, v2) / (n1 * n2))
        angle = np.degrees(np.arccos(np.clip(cos, -1.0, 1.0)))
        if abs(angle - 90.0) > tolerance_deg:
            return False
    return True


def _iou(a: Tuple[int, int, int, int], b: Tuple[int, int, int, int]) -> float:
    ax, ay, aw, ah = a
    bx, by, bw, bh = b
    ix = max(0, min(ax + aw, bx + bw) - max(ax, bx))
    iy = max(0, min(ay + ah, by + bh) - max(ay, by))
    inter = ix * iy
    union = aw * ah + bw * bh - inter
    return inter / union if union > 0 else 0.0


def _deduplicate(
    found: List[Tuple[Tuple[int, int, int, int], float]],
    iou_threshold: float = 0.8,
) -> List[Tuple[Tuple[int, int, int, int], float]]:
    """Drop boxes overlapping an already-kept, higher-confidence box.

    A dilated edge ring yields both an outer and an inner contour for the
    same square; only one of them is kept.
    """
    kept: List[Tuple[Tuple[int, int, int, int], float]] = []
    for box, conf in found:
        if any(_iou(box, other) > iou_threshold for other, _ in kept):
            continue
        kept.append((box, conf))
    return kept
