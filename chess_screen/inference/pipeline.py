"""
Recognition Pipeline – End-to-End Screenshot → FEN
==================================================

This is the single-call entry point for recognition.

Pipeline stages:
  1. Board location      – square cloud, large square or centred crop
  2. Grid normalisation  – square, 8-divisible, in-bounds rect
  3. Square extraction   – 8×8 matrix of sub-images, rank 0 at the bottom
  4. Classification      – nearest template per square (optionally threaded)
  5. FEN encoding        – placement + fixed default fields, sanity report

A frame either yields a complete ``RecognitionResult`` or raises the first
fatal error; no partial board is ever returned.

Optional extras:
  • Debug visualisation overlay
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import cv2
import numpy as np

from chess_screen.config import ClassifierConfig, LocatorConfig
from chess_screen.errors import BoardNotFoundError
from chess_screen.inference.catalog import TemplateCatalog
from chess_screen.inference.classifier import BoardClassification, SquareClassifier
from chess_screen.inference.fen_utils import (
    encode_full,
    encode_placement,
    validate_placement,
)
from chess_screen.inference.grid import normalize, slice_board, square_rect
from chess_screen.models.board_locator import BoardLocator, LocatorResult
from chess_screen.models.types import BoardState, PieceColor, Rect

log = logging.getLogger(__name__)


# ── Result dataclass ──────────────────────────────────────────────────

@dataclass
class RecognitionResult:
    """Full output of the recognition pipeline."""
    fen: str                                       # Placement field
    full_fen: str                                  # With side / castling / clocks
    board_state: BoardState
    board_rect: Rect                               # Normalised, 8-divisible
    rough_rect: Rect                               # As returned by the locator
    detection_method: str                          # "squares" | "large_square" | "fallback"
    mean_score: float                              # Average cosine similarity
    violations: List[str] = field(default_factory=list)
    failed_squares: List[Tuple[int, int]] = field(default_factory=list)
    board_image: Optional[np.ndarray] = field(default=None, repr=False)

    @property
    def low_confidence(self) -> bool:
        return bool(self.failed_squares)

    def to_dict(self) -> dict:
        """JSON-friendly summary (no image data)."""
        return {
            "fen": self.fen,
            "full_fen": self.full_fen,
            "board_rect": [self.board_rect.x, self.board_rect.y,
                           self.board_rect.width, self.board_rect.height],
            "detection_method": self.detection_method,
            "mean_score": round(self.mean_score, 4),
            "violations": list(self.violations),
            "failed_squares": [list(sq) for sq in self.failed_squares],
            "low_confidence": self.low_confidence,
        }


# ── Pipeline class ─────────────────────────────────────────────────────

class ScreenshotPipeline:
    """End-to-end screenshot → FEN pipeline.

    Parameters
    ----------
    catalog : TemplateCatalog
        Loaded template catalog; shared read-only across calls.
    locator_config : LocatorConfig, optional
        Board location parameters.
    classifier_config : ClassifierConfig, optional
        Background inference thresholds.
    workers : int, optional
        Thread pool size for classifying the 64 squares.
    on_error : {"placeholder", "raise"}
        Per-square failure policy, passed to ``classify_board``.
    """

    def __init__(
        self,
        catalog: TemplateCatalog,
        locator_config: Optional[LocatorConfig] = None,
        classifier_config: Optional[ClassifierConfig] = None,
        workers: Optional[int] = None,
        on_error: str = "placeholder",
    ) -> None:
        self.locator = BoardLocator(locator_config)
        self.classifier = SquareClassifier(catalog, classifier_config)
        self.workers = workers
        self.on_error = on_error

        log.info(
            "Pipeline ready  templates=%d  workers=%s  on_error=%s",
            len(catalog), workers or 1, on_error,
        )

    # ── Public API ─────────────────────────────────────────────────────

    def locate(self, image: np.ndarray) -> Tuple[LocatorResult, Rect]:
        """Locate and normalise the board; return ``(rough, board_rect)``.

        Raises
        ------
        BoardNotFoundError
            If the image cannot hold an 8×8 grid at all.
        """
        h, w = image.shape[:2]
        rough = self.locator.locate(image)
        if rough is None:
            raise BoardNotFoundError(f"No board region found in {w}x{h} image")
        board_rect = normalize(rough.rect, w, h, self.locator.config.min_board_side)
        log.info("Board rect %s (method=%s)", board_rect, rough.method)
        return rough, board_rect

    def recognize(
        self,
        image: np.ndarray,
        side_to_move: Optional[PieceColor | str] = None,
    ) -> RecognitionResult:
        """Run the full pipeline on a BGR screenshot.

        Parameters
        ----------
        image : np.ndarray
            BGR / BGRA / grayscale image (OpenCV convention).
        side_to_move : PieceColor | str, optional
            Written into the full FEN; defaults to ``"w"``.

        Returns
        -------
        RecognitionResult
        """
        # 1–2. Locate and normalise
        rough, board_rect = self.locate(image)

        # 3. Slice into [rank][file]
        squares = slice_board(image, board_rect)

        # 4. Classify
        outcome: BoardClassification = self.classifier.classify_board(
            squares, on_error=self.on_error, workers=self.workers,
        )

        # 5. Encode
        fen = encode_placement(outcome.board)
        full_fen = encode_full(outcome.board, side_to_move=side_to_move)
        violations = validate_placement(fen)
        if violations:
            log.info("Position sanity: %s", "; ".join(violations))
        if outcome.low_confidence:
            log.warning("%d squares fell back to empty", len(outcome.failed_squares))

        rows, cols = board_rect.as_slices()
        return RecognitionResult(
            fen=fen,
            full_fen=full_fen,
            board_state=outcome.board,
            board_rect=board_rect,
            rough_rect=rough.rect,
            detection_method=rough.method,
            mean_score=outcome.mean_score,
            violations=violations,
            failed_squares=list(outcome.failed_squares),
            board_image=image[rows, cols].copy(),
        )

    # ── Debug visualisation ────────────────────────────────────────────

    def visualize(
        self,
        result: RecognitionResult,
        image: Optional[np.ndarray] = None,
        show: bool = False,
        save_path: Optional[str] = None,
    ) -> np.ndarray:
        """Draw the board rect, grid and recognised letters.

        Parameters
        ----------
        result : RecognitionResult
            Output of ``recognize()``.
        image : np.ndarray, optional
            Full screenshot to draw on.  Without it the cropped board
            image stored on the result is used.
        show : bool
            Display with ``cv2.imshow`` (blocks until key press).
        save_path : str, optional
            Save the annotated image to disk.

        Returns
        -------
        np.ndarray
            Annotated BGR image.
        """
        if image is not None:
            vis = _to_bgr(image)
            board = result.board_rect
            rough = result.rough_rect
            cv2.rectangle(vis, (rough.x, rough.y), (rough.x2, rough.y2), (255, 128, 0), 2)
        elif result.board_image is not None:
            vis = _to_bgr(result.board_image)
            board = Rect(0, 0, result.board_rect.width, result.board_rect.height)
        else:
            raise ValueError("Result carries no board image; pass the screenshot")

        failed = set(result.failed_squares)
        for rank in range(8):
            for file in range(8):
                cell = square_rect(board, rank, file)
                cv2.rectangle(vis, (cell.x, cell.y), (cell.x2, cell.y2), (80, 80, 80), 1)

                square = result.board_state.squares[rank][file]
                if (rank, file) in failed:
                    label, color = "?", (0, 0, 255)
                elif square.fen_char is None:
                    continue
                else:
                    label, color = square.fen_char, (0, 200, 0)
                cv2.putText(
                    vis, label,
                    (cell.x + 4, cell.y + cell.height // 2 + 6),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 2,
                )

        cv2.rectangle(vis, (board.x, board.y), (board.x2, board.y2), (0, 200, 0), 2)

        # FEN annotation along the bottom edge
        h = vis.shape[0]
        cv2.putText(
            vis, f"FEN: {result.fen}",
            (10, h - 10),
            cv2.FONT_HERSHEY_SIMPLEX, 0.45, (255, 255, 255), 1,
        )

        if save_path:
            cv2.imwrite(str(save_path), vis)
            log.info("Saved debug image to %s", save_path)

        if show:
            cv2.imshow("Chess Screen", vis)
            cv2.waitKey(0)
            cv2.destroyAllWindows()

        return vis


def draw_locator_result(
    image: np.ndarray,
    rough: LocatorResult,
    board_rect: Rect,
) -> np.ndarray:
    """Overlay the locator candidates, rough rect and normalised grid."""
    vis = _to_bgr(image)
    for cand in rough.candidates:
        cv2.rectangle(vis, (cand.x, cand.y), (cand.x2, cand.y2), (0, 200, 255), 1)
    r = rough.rect
    cv2.rectangle(vis, (r.x, r.y), (r.x2, r.y2), (255, 128, 0), 2)
    for rank in range(8):
        for file in range(8):
            cell = square_rect(board_rect, rank, file)
            cv2.rectangle(vis, (cell.x, cell.y), (cell.x2, cell.y2), (0, 200, 0), 1)
    cv2.putText(
        vis, rough.method,
        (board_rect.x + 4, max(board_rect.y - 8, 14)),
        cv2.FONT_HERSHEY_SIMPLEX, 0.5, (0, 200, 0), 1,
    )
    return vis


def _to_bgr(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    return image.copy()
