"""
Square Features – the one preprocessing path shared by templates and squares
============================================================================

Templates and board squares must be reduced to pixel-for-pixel comparable
vectors.  A mismatch in interpolation or grayscale conversion does not
raise anywhere; it only makes every similarity score quietly worse.  Both
the catalog and the classifier therefore call :func:`extract_features`.

Steps:
  1. Convert to an RGB Pillow image (OpenCV arrays are BGR/BGRA).
  2. Resize to ``size × size`` with Lanczos resampling.
  3. Convert to single-channel luminance (``"L"``).
  4. Flatten row-major and scale to [0, 1] as float32.
"""

from __future__ import annotations

from typing import Union

import cv2
import numpy as np
from PIL import Image

from chess_screen.config import FEATURE_SIZE

ImageLike = Union[np.ndarray, Image.Image]


def to_pil(image: ImageLike) -> Image.Image:
    """Convert an OpenCV-style array (or a Pillow image) to an RGB Pillow image."""
    if isinstance(image, Image.Image):
        if image.mode == "RGB":
            return image
        if image.mode in ("RGBA", "LA", "P"):
            # Composite transparent pixels on black, matching an opaque draw
            rgba = image.convert("RGBA")
            background = Image.new("RGBA", rgba.size, (0, 0, 0, 255))
            return Image.alpha_composite(background, rgba).convert("RGB")
        return image.convert("RGB")

    if not isinstance(image, np.ndarray):
        raise TypeError(f"Expected np.ndarray or PIL.Image, got {type(image).__name__}")
    if image.size == 0:
        raise ValueError("Cannot extract features from an empty image")

    arr = image
    if arr.dtype != np.uint8:
        arr = np.clip(arr, 0, 255).astype(np.uint8)

    if arr.ndim == 2:
        rgb = cv2.cvtColor(arr, cv2.COLOR_GRAY2RGB)
    elif arr.shape[2] == 4:
        return to_pil(Image.fromarray(cv2.cvtColor(arr, cv2.COLOR_BGRA2RGBA), "RGBA"))
    elif arr.shape[2] == 3:
        rgb = cv2.cvtColor(arr, cv2.COLOR_BGR2RGB)
    else:
        raise ValueError(f"Unsupported channel count: {arr.shape[2]}")
    return Image.fromarray(np.ascontiguousarray(rgb), "RGB")


def extract_features(image: ImageLike, size: int = FEATURE_SIZE) -> np.ndarray:
    """Return the ``size * size`` grayscale feature vector of *image*.

    Parameters
    ----------
    image : np.ndarray | PIL.Image.Image
        BGR / BGRA / grayscale array in OpenCV convention, or a Pillow image.
    size : int
        Canonical side length (default 64).

    Returns
    -------
    np.ndarray
        Read-only float32 vector with values in [0, 1].
    """
    pil = to_pil(image)
    if pil.size != (size, size):
        pil = pil.resize((size, size), Image.LANCZOS)
    gray = pil.convert("L")
    vector = np.asarray(gray, dtype=np.float32).reshape(-1) / 255.0
    vector.setflags(write=False)
    return vector


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity of two vectors; −1 when either has zero norm."""
    na = float(np.linalg.norm(a))
    nb = float(np.linalg.norm(b))
    if na == 0.0 or nb == 0.0:
        return -1.0
    return float(np.dot(a, b) / (na * nb))
