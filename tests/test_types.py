import pytest

from chess_screen.models.types import (
    BackgroundKind,
    BoardState,
    PieceColor,
    PieceKind,
    Rect,
    SquareState,
    TemplateKey,
)


def test_rect_geometry_helpers():
    rect = Rect(10, 20, 30, 40)
    assert (rect.x2, rect.y2) == (40, 60)
    assert rect.center == (25.0, 40.0)
    assert rect.side == 30
    assert not rect.is_square
    assert rect.contains(Rect(10, 20, 30, 40))
    assert rect.contains(Rect(15, 25, 5, 5))
    assert not rect.contains(Rect(5, 25, 10, 10))


def test_rect_inside_and_clamp():
    rect = Rect(-10, 90, 50, 50)
    assert not rect.inside(100, 100)
    assert Rect(0, 0, 100, 100).inside(100, 100)
    assert not Rect(10, 10, 0, 5).inside(100, 100)
    assert not Rect(60, 0, 50, 50).inside(100, 100)
    assert rect.clamp_to(100, 100) == Rect(0, 90, 40, 10)
    assert rect.shift_inside(100, 100) == Rect(0, 50, 50, 50)


def test_rect_dilate_and_square_around():
    assert Rect(100, 100, 100, 100).dilate(0.1) == Rect(90, 90, 120, 120)
    assert Rect.square_around(50, 50, 20) == Rect(40, 40, 20, 20)


def test_template_key_empty_invariant():
    with pytest.raises(ValueError):
        TemplateKey(PieceColor.WHITE, PieceKind.EMPTY, BackgroundKind.DARK)
    with pytest.raises(ValueError):
        TemplateKey(PieceColor.NONE, PieceKind.PAWN, BackgroundKind.DARK)
    assert TemplateKey(PieceColor.NONE, PieceKind.EMPTY, BackgroundKind.LIGHT).is_empty


def test_square_fen_char():
    assert SquareState(PieceColor.WHITE, PieceKind.KNIGHT).fen_char == "N"
    assert SquareState(PieceColor.BLACK, PieceKind.KING).fen_char == "k"
    assert SquareState().fen_char is None


def test_empty_board_defaults():
    board = BoardState.empty()
    assert len(board.squares) == 8 and all(len(rank) == 8 for rank in board.squares)
    assert all(sq.is_empty for rank in board.squares for sq in rank)
    assert (board.side_to_move, board.castling, board.en_passant) == ("w", "KQkq", "-")
    assert (board.halfmove_clock, board.fullmove_number) == (0, 1)
