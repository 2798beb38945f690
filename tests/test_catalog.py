import cv2
import numpy as np
import pytest

from chess_screen.errors import (
    CatalogError,
    DuplicateTemplateError,
    NoTemplatesFoundError,
    TemplateDecodeError,
    TemplateDirectoryNotFoundError,
    TemplateNameError,
)
from chess_screen.inference.catalog import (
    TemplateCatalog,
    matches_filter,
    parse_template_name,
    resolution_tag,
)
from chess_screen.models.types import BackgroundKind, PieceColor, PieceKind, TemplateKey
from synthetic import render_cell


@pytest.mark.parametrize(
    "stem, key, tag",
    [
        ("whiteQueen_dark", TemplateKey(PieceColor.WHITE, PieceKind.QUEEN, BackgroundKind.DARK), ""),
        ("blackKnight_light_1920_1080",
         TemplateKey(PieceColor.BLACK, PieceKind.KNIGHT, BackgroundKind.LIGHT), "1920_1080"),
        ("empty_highlighted", TemplateKey(PieceColor.NONE, PieceKind.EMPTY, BackgroundKind.HIGHLIGHTED), ""),
        ("whitePawn_blue_3840_2160",
         TemplateKey(PieceColor.WHITE, PieceKind.PAWN, BackgroundKind.DARK), "3840_2160"),
        ("blackKing_yellow", TemplateKey(PieceColor.BLACK, PieceKind.KING, BackgroundKind.LIGHT), ""),
        ("empty_previous_hd", TemplateKey(PieceColor.NONE, PieceKind.EMPTY, BackgroundKind.HIGHLIGHTED), "hd"),
    ],
)
def test_parse_template_name(stem, key, tag):
    assert parse_template_name(stem) == (key, tag)


@pytest.mark.parametrize(
    "stem", ["whiteQueen", "purpleQueen_dark", "whiteEmperor_dark", "whiteQueen_green", "empty", "_dark", "white_dark"],
)
def test_parse_template_name_rejects(stem):
    with pytest.raises(TemplateNameError):
        parse_template_name(stem)


def test_matches_filter_is_pure_suffix():
    assert matches_filter("whiteQueen_dark_1920_1080", "1920_1080")
    assert matches_filter("whiteQueen_dark_1920_1080", "1080")
    assert not matches_filter("whiteQueen_dark_1920_1080", "920_1080")
    assert not matches_filter("whiteQueen_dark", "1920_1080")
    assert matches_filter("whiteQueen_dark", None)


def test_resolution_tag():
    assert resolution_tag(np.zeros((1080, 1920, 3), np.uint8)) == "1920_1080"


def test_load_full_catalog(template_dir):
    catalog = TemplateCatalog.load(template_dir)
    assert len(catalog) == 26
    assert set(catalog.backgrounds) == {BackgroundKind.DARK, BackgroundKind.LIGHT}
    assert len(catalog.empties()) == 2
    key = TemplateKey(PieceColor.WHITE, PieceKind.QUEEN, BackgroundKind.DARK)
    assert key in catalog
    descriptor = catalog[key]
    assert descriptor.vector.shape == (64 * 64,)
    assert descriptor.vector.dtype == np.float32
    assert 0.0 <= descriptor.vector.min() and descriptor.vector.max() <= 1.0
    assert not descriptor.vector.flags.writeable


def test_catalog_order_is_sorted(template_dir):
    keys = TemplateCatalog.load(template_dir).keys()
    assert keys == sorted(keys)


def test_filter_tag_selects_subset(tmp_path):
    directory = tmp_path / "mixed"
    directory.mkdir()
    cv2.imwrite(str(directory / "whiteQueen_dark_1920_1080.png"), render_cell("Q", True))
    cv2.imwrite(str(directory / "whiteQueen_dark_3840_2160.png"), render_cell("Q", True))
    cv2.imwrite(str(directory / "empty_dark_1920_1080.png"), render_cell(None, True))
    (directory / "notes_dark_1920_1080.txt").write_text("ignored")

    catalog = TemplateCatalog.load(directory, "1920_1080")
    assert len(catalog) == 2

    with pytest.raises(NoTemplatesFoundError):
        TemplateCatalog.load(directory, "1280_800")


def test_missing_directory(tmp_path):
    with pytest.raises(TemplateDirectoryNotFoundError) as excinfo:
        TemplateCatalog.load(tmp_path / "nope")
    assert isinstance(excinfo.value, FileNotFoundError)
    assert isinstance(excinfo.value, CatalogError)


def test_empty_directory(tmp_path):
    with pytest.raises(NoTemplatesFoundError):
        TemplateCatalog.load(tmp_path)


def test_bad_filename_aborts_load(template_dir):
    cv2.imwrite(str(template_dir / "whiteWizard_dark.png"), render_cell("W", True))
    with pytest.raises(TemplateNameError):
        TemplateCatalog.load(template_dir)


def test_corrupt_image_aborts_load(template_dir):
    (template_dir / "blackQueen_highlighted.png").write_bytes(b"not a png at all")
    with pytest.raises(TemplateDecodeError):
        TemplateCatalog.load(template_dir)


def test_duplicate_keys_last_file_wins(tmp_path):
    directory = tmp_path / "dupes"
    directory.mkdir()
    cv2.imwrite(str(directory / "whiteQueen_blue.png"), np.zeros((64, 64, 3), np.uint8))
    cv2.imwrite(str(directory / "whiteQueen_dark.png"), np.full((64, 64, 3), 255, np.uint8))

    catalog = TemplateCatalog.load(directory)
    assert len(catalog) == 1
    key = TemplateKey(PieceColor.WHITE, PieceKind.QUEEN, BackgroundKind.DARK)
    assert catalog[key].vector.min() == pytest.approx(1.0)

    with pytest.raises(DuplicateTemplateError):
        TemplateCatalog.load(directory, strict=True)


def test_templates_are_resized_to_feature_size(tmp_path):
    directory = tmp_path / "big"
    directory.mkdir()
    cv2.imwrite(str(directory / "empty_dark.png"), render_cell(None, True, size=128))
    catalog = TemplateCatalog.load(directory)
    assert catalog.empties()[0].vector.shape == (64 * 64,)


def test_catalog_is_read_only(catalog):
    with pytest.raises(TypeError):
        catalog._descriptors[next(iter(catalog.keys()))] = None
