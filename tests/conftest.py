from __future__ import annotations

from pathlib import Path

import cv2
import numpy as np
import pytest

from chess_screen.inference.catalog import TemplateCatalog
from synthetic import SCREEN_H, SCREEN_W, TEST_FEN, render_screenshot, write_templates


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    return write_templates(tmp_path / "templates")


@pytest.fixture
def tagged_template_dir(tmp_path: Path) -> Path:
    return write_templates(tmp_path / "tagged", tag=f"{SCREEN_W}_{SCREEN_H}")


@pytest.fixture
def catalog(template_dir: Path) -> TemplateCatalog:
    return TemplateCatalog.load(template_dir)


@pytest.fixture
def screenshot() -> np.ndarray:
    return render_screenshot(TEST_FEN)


@pytest.fixture
def screenshot_path(tmp_path: Path, screenshot: np.ndarray) -> Path:
    path = tmp_path / "screenshot.png"
    cv2.imwrite(str(path), screenshot)
    return path
