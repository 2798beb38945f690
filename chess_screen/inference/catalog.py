"""
Template Catalog – labelled reference squares
=============================================

Filename grammar (stem of each ``*.png``)::

    <colorPiece|empty>_<background>[_<filter tag parts...>]

    whiteQueen_dark_1920_1080.png
    blackPawn_highlighted.png
    empty_light_3840_2160.png

``colorPiece`` is ``white``/``black`` followed by a capitalised piece
name.  Background tokens accept the generic names and the legacy asset
names (``blue`` = dark, ``yellow`` = light, ``previous`` = highlighted).
Trailing tokens form a filter tag – usually the screen resolution – that
selects one template set per capture resolution.

Loading is all-or-nothing: a single unparseable name or undecodable
image aborts the whole load, because a partially loaded catalog would
silently degrade classification.
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from chess_screen.config import FEATURE_SIZE
from chess_screen.errors import (
    DuplicateTemplateError,
    NoTemplatesFoundError,
    TemplateDecodeError,
    TemplateDirectoryNotFoundError,
    TemplateNameError,
)
from chess_screen.inference.features import extract_features
from chess_screen.models.types import (
    BackgroundKind,
    PieceColor,
    PieceKind,
    TemplateDescriptor,
    TemplateKey,
)

log = logging.getLogger(__name__)


BACKGROUND_TOKENS: dict[str, BackgroundKind] = {
    "dark": BackgroundKind.DARK,
    "blue": BackgroundKind.DARK,
    "light": BackgroundKind.LIGHT,
    "yellow": BackgroundKind.LIGHT,
    "highlighted": BackgroundKind.HIGHLIGHTED,
    "previous": BackgroundKind.HIGHLIGHTED,
}

PIECE_TOKENS: dict[str, PieceKind] = {
    kind.value: kind for kind in PieceKind if kind is not PieceKind.EMPTY
}


# ── Filename parsing ───────────────────────────────────────────────────

def parse_template_name(stem: str) -> Tuple[TemplateKey, str]:
    """Parse a template filename stem into ``(key, filter_tag)``.

    The filter tag is the underscore-joined remainder after the background
    token (``""`` when absent).

    Raises
    ------
    TemplateNameError
        If the colour/piece or background token is not recognised.
    """
    parts = stem.split("_")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        raise TemplateNameError(stem)

    head = parts[0].lower()
    background = BACKGROUND_TOKENS.get(parts[1].lower())
    if background is None:
        raise TemplateNameError(stem)

    if head == "empty":
        color, kind = PieceColor.NONE, PieceKind.EMPTY
    else:
        for color in (PieceColor.WHITE, PieceColor.BLACK):
            if head.startswith(color.value):
                kind = PIECE_TOKENS.get(head[len(color.value):])
                if kind is not None:
                    break
        else:
            raise TemplateNameError(stem)

    return TemplateKey(color, kind, background), "_".join(parts[2:])


def matches_filter(stem: str, filter_tag: Optional[str]) -> bool:
    """Pure suffix match of the stem against ``_<filter_tag>``."""
    if not filter_tag:
        return True
    return stem.endswith("_" + filter_tag)


def resolution_tag(image) -> str:
    """``"<width>_<height>"`` of an image array – the usual filter tag."""
    h, w = image.shape[:2]
    return f"{w}_{h}"


# ── Catalog ────────────────────────────────────────────────────────────

class TemplateCatalog:
    """Immutable collection of template descriptors keyed by ``TemplateKey``.

    Iteration order is stable (sorted by key) so that tie-breaking during
    matching is reproducible across runs and platforms.
    """

    def __init__(self, descriptors: Mapping[TemplateKey, TemplateDescriptor], size: int) -> None:
        ordered = {key: descriptors[key] for key in sorted(descriptors)}
        self._descriptors: Mapping[TemplateKey, TemplateDescriptor] = MappingProxyType(ordered)
        self._ordered: Tuple[TemplateDescriptor, ...] = tuple(ordered.values())
        self.size = size

    # ── Construction ───────────────────────────────────────────────────

    @classmethod
    def load(
        cls,
        directory: str | Path,
        filter_tag: Optional[str] = None,
        *,
        strict: bool = False,
        size: int = FEATURE_SIZE,
    ) -> "TemplateCatalog":
        """Load every matching template PNG from *directory*.

        Parameters
        ----------
        directory : str | Path
            Folder containing the template images (not searched recursively).
        filter_tag : str, optional
            Only stems ending in ``_<filter_tag>`` are loaded.
        strict : bool
            Raise :class:`DuplicateTemplateError` when two files map to the
            same key.  Otherwise the last file (in sorted name order) wins.
        size : int
            Canonical feature size; must match the classifier's.

        Raises
        ------
        TemplateDirectoryNotFoundError, NoTemplatesFoundError,
        TemplateNameError, TemplateDecodeError, DuplicateTemplateError
        """
        root = Path(directory)
        if not root.is_dir():
            raise TemplateDirectoryNotFoundError(root)

        files = sorted(
            p for p in root.iterdir()
            if p.is_file()
            and not p.name.startswith(".")
            and p.suffix.lower() == ".png"
            and matches_filter(p.stem, filter_tag)
        )
        log.info(
            "Template catalog: %d PNG files in %s (filter=%s)",
            len(files), root, filter_tag or "-",
        )
        if not files:
            raise NoTemplatesFoundError(root, filter_tag)

        descriptors: Dict[TemplateKey, TemplateDescriptor] = {}
        for path in files:
            key, _tag = parse_template_name(path.stem)
            descriptor = _load_descriptor(path, key, size)
            if key in descriptors:
                if strict:
                    raise DuplicateTemplateError(key, path)
                log.warning("Duplicate template for %s; %s replaces earlier file", key, path.name)
            descriptors[key] = descriptor
            log.debug("Loaded template %s from %s", key, path.name)

        log.info("Template catalog ready: %d templates", len(descriptors))
        return cls(descriptors, size)

    @classmethod
    def from_descriptors(
        cls,
        descriptors: Iterable[TemplateDescriptor],
        size: int = FEATURE_SIZE,
    ) -> "TemplateCatalog":
        """Build a catalog from already-computed descriptors (last one wins)."""
        return cls({d.key: d for d in descriptors}, size)

    # ── Access ─────────────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._ordered)

    def __iter__(self) -> Iterator[TemplateDescriptor]:
        return iter(self._ordered)

    def __contains__(self, key: object) -> bool:
        return key in self._descriptors

    def __getitem__(self, key: TemplateKey) -> TemplateDescriptor:
        return self._descriptors[key]

    def keys(self) -> List[TemplateKey]:
        return list(self._descriptors)

    @property
    def backgrounds(self) -> List[BackgroundKind]:
        return sorted({d.key.background for d in self._ordered})

    def empties(self) -> List[TemplateDescriptor]:
        """The ``empty`` templates, one per background variant at most."""
        return [d for d in self._ordered if d.key.is_empty]

    def with_background(self, background: BackgroundKind) -> List[TemplateDescriptor]:
        return [d for d in self._ordered if d.key.background is background]


def _load_descriptor(path: Path, key: TemplateKey, size: int) -> TemplateDescriptor:
    try:
        with Image.open(path) as img:
            img.load()
            vector = extract_features(img, size)
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise TemplateDecodeError(path, str(exc)) from exc
    return TemplateDescriptor(key=key, width=size, height=size, vector=vector)
