"""
Square Classification – nearest-template matching
=================================================

For each board cell:
  1. Extract the grayscale feature vector (shared with the catalog).
  2. Infer the background variant from the nearest ``empty`` template
     (mean absolute difference); without empties, bucket the mean
     brightness.
  3. Restrict candidates to templates with that background (falling back
     to the full catalog when none exist).
  4. Pick the candidate with the highest cosine similarity.

The catalog is read-only, so the 64 cells of a board can be classified
concurrently; results are written back into their ``[rank][file]`` slot.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from chess_screen.config import BOARD_FILES, ClassifierConfig
from chess_screen.errors import ClassificationError, EmptyCatalogError
from chess_screen.inference.catalog import TemplateCatalog
from chess_screen.inference.features import cosine_similarity, extract_features
from chess_screen.inference.fen_utils import check_dimensions
from chess_screen.models.types import (
    BackgroundKind,
    BoardState,
    SquareState,
    TemplateDescriptor,
    TemplateKey,
)

log = logging.getLogger(__name__)


# ── Data structures ────────────────────────────────────────────────────

@dataclass(frozen=True)
class Classification:
    """Best match for a single square."""
    state: SquareState
    key: TemplateKey
    score: float                    # cosine similarity of the winner
    background: BackgroundKind      # inferred before candidate restriction


@dataclass
class BoardClassification:
    """Result of classifying a full 8×8 board."""
    board: BoardState
    scores: List[List[float]]
    failed_squares: List[Tuple[int, int]] = field(default_factory=list)

    @property
    def low_confidence(self) -> bool:
        return bool(self.failed_squares)

    @property
    def mean_score(self) -> float:
        values = [s for rank in self.scores for s in rank]
        return float(np.mean(values)) if values else 0.0


# ── Classifier ─────────────────────────────────────────────────────────

class SquareClassifier:
    """Match square images against a :class:`TemplateCatalog`.

    Parameters
    ----------
    catalog : TemplateCatalog
        Loaded templates; shared read-only.
    config : ClassifierConfig, optional
        Brightness thresholds for the background fallback.

    Raises
    ------
    EmptyCatalogError
        If the catalog holds no templates.
    """

    def __init__(self, catalog: TemplateCatalog, config: Optional[ClassifierConfig] = None) -> None:
        if len(catalog) == 0:
            raise EmptyCatalogError()
        self.catalog = catalog
        self.config = config or ClassifierConfig()

    # ── Single square ──────────────────────────────────────────────────

    def classify(self, square: np.ndarray) -> Classification:
        """Classify one square image.

        Raises
        ------
        ClassificationError
            If the image is empty or all black, or no template scores above
            the zero-norm sentinel of −1.
        """
        try:
            features = extract_features(square, self.catalog.size)
        except (TypeError, ValueError) as exc:
            raise ClassificationError(f"Cannot preprocess square: {exc}") from exc
        if not features.any():
            raise ClassificationError("Square has a zero feature vector")

        background = self.infer_background(features)

        candidates: List[TemplateDescriptor] = list(self.catalog)
        if self.config.restrict_to_background:
            same_bg = self.catalog.with_background(background)
            if same_bg:
                candidates = same_bg

        best, score = self._best_match(features, candidates)
        if best is None:
            raise ClassificationError("No template with a matching feature size")
        # −1 only comes from zero-norm vectors; it may win only unopposed
        if score <= -1.0 and len(candidates) > 1:
            raise ClassificationError(f"No usable template among {len(candidates)} candidates")

        return Classification(
            state=SquareState.from_key(best.key),
            key=best.key,
            score=score,
            background=background,
        )

    def classify_square(self, square: np.ndarray) -> SquareState:
        return self.classify(square).state

    def infer_background(self, features: np.ndarray) -> BackgroundKind:
        """Background of the square: nearest ``empty`` template, else brightness.

        Empty squares are close to flat, and cosine similarity cannot tell
        two flat vectors of different brightness apart, so the empties are
        ranked by mean absolute difference instead.
        """
        best: Optional[TemplateDescriptor] = None
        best_dist = np.inf
        for tmpl in self.catalog.empties():
            if tmpl.vector.shape != features.shape:
                continue
            dist = float(np.mean(np.abs(features - tmpl.vector)))
            if dist < best_dist:
                best, best_dist = tmpl, dist
        if best is not None:
            return best.key.background

        mean = float(features.mean())
        if mean < self.config.dark_threshold:
            return BackgroundKind.DARK
        if mean > self.config.highlight_threshold:
            return BackgroundKind.HIGHLIGHTED
        return BackgroundKind.LIGHT

    @staticmethod
    def _best_match(
        features: np.ndarray,
        candidates: Sequence[TemplateDescriptor],
    ) -> Tuple[Optional[TemplateDescriptor], float]:
        """Highest cosine similarity; the first candidate wins ties."""
        best: Optional[TemplateDescriptor] = None
        best_score = -np.inf
        for tmpl in candidates:
            if tmpl.vector.shape != features.shape:
                continue
            score = cosine_similarity(features, tmpl.vector)
            if score > best_score:
                best, best_score = tmpl, score
        return best, float(best_score)

    # ── Full board ─────────────────────────────────────────────────────

    def classify_board(
        self,
        squares: Sequence[Sequence[np.ndarray]],
        *,
        on_error: str = "placeholder",
        workers: Optional[int] = None,
    ) -> BoardClassification:
        """Classify an 8×8 matrix of square images.

        Parameters
        ----------
        squares : sequence of sequences of np.ndarray
            ``squares[rank][file]`` as produced by ``slice_board``.
        on_error : {"placeholder", "raise"}
            What to do when one square cannot be classified.
            ``"placeholder"`` stores an empty square, records
            ``(rank, file)`` in ``failed_squares`` and carries on;
            ``"raise"`` propagates the :class:`ClassificationError`.
        workers : int, optional
            Classify on a thread pool of this size; ``None`` or ``1`` runs
            sequentially.

        Raises
        ------
        InvalidBoardDimensionsError
            Before any square is classified, if the matrix is not 8×8.
        """
        if on_error not in ("placeholder", "raise"):
            raise ValueError(f"on_error must be 'placeholder' or 'raise', got {on_error!r}")
        check_dimensions(squares)

        board = BoardState.empty()
        scores = [[0.0] * BOARD_FILES for _ in range(BOARD_FILES)]
        failed: List[Tuple[int, int]] = []

        cells = [(r, f) for r in range(BOARD_FILES) for f in range(BOARD_FILES)]

        def _run(cell: Tuple[int, int]):
            rank, file = cell
            try:
                return cell, self.classify(squares[rank][file]), None
            except ClassificationError as exc:
                if on_error == "raise":
                    raise
                return cell, None, exc

        if workers and workers > 1:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                outcomes = list(pool.map(_run, cells))
        else:
            outcomes = [_run(cell) for cell in cells]

        for (rank, file), result, exc in outcomes:
            if result is None:
                log.warning("Square rank=%d file=%d unclassified: %s", rank, file, exc)
                failed.append((rank, file))
                continue
            board.squares[rank][file] = result.state
            scores[rank][file] = result.score

        return BoardClassification(board=board, scores=scores, failed_squares=failed)
