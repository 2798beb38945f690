import pytest

from chess_screen.errors import InvalidBoardDimensionsError
from chess_screen.inference.fen_utils import (
    encode_full,
    encode_placement,
    parse_placement,
    validate_placement,
)
from chess_screen.models.types import (
    BackgroundKind,
    BoardState,
    PieceColor,
    PieceKind,
    SquareState,
)

START_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR"

BACK_RANK = [
    PieceKind.ROOK, PieceKind.KNIGHT, PieceKind.BISHOP, PieceKind.QUEEN,
    PieceKind.KING, PieceKind.BISHOP, PieceKind.KNIGHT, PieceKind.ROOK,
]


def _start_board() -> BoardState:
    board = BoardState.empty()
    for file, kind in enumerate(BACK_RANK):
        board.squares[0][file] = SquareState(PieceColor.WHITE, kind)
        board.squares[1][file] = SquareState(PieceColor.WHITE, PieceKind.PAWN)
        board.squares[6][file] = SquareState(PieceColor.BLACK, PieceKind.PAWN)
        board.squares[7][file] = SquareState(PieceColor.BLACK, kind)
    return board


def test_start_position_placement():
    """White on rank 0 encodes to the standard start position."""
    assert encode_placement(_start_board()) == START_FEN


def test_empty_board_is_all_eights():
    assert encode_placement(BoardState.empty()) == "8/8/8/8/8/8/8/8"


def test_run_length_between_pieces():
    """Two black rooks at the ends of rank 8 give ``r6r``."""
    board = BoardState.empty()
    board.squares[7][0] = SquareState(PieceColor.BLACK, PieceKind.ROOK)
    board.squares[7][7] = SquareState(PieceColor.BLACK, PieceKind.ROOK)
    assert encode_placement(board) == "r6r/8/8/8/8/8/8/8"


def test_background_does_not_affect_placement():
    board = BoardState.empty()
    board.squares[3][4] = SquareState(PieceColor.WHITE, PieceKind.KNIGHT, BackgroundKind.HIGHLIGHTED)
    board.squares[3][5] = SquareState(background=BackgroundKind.HIGHLIGHTED)
    assert encode_placement(board) == "8/8/8/8/4N3/8/8/8"


def test_seven_rank_board_is_rejected():
    board = BoardState.empty()
    board.squares = board.squares[:7]
    with pytest.raises(InvalidBoardDimensionsError):
        encode_placement(board)


def test_short_rank_is_rejected():
    board = BoardState.empty()
    board.squares[2] = board.squares[2][:7]
    with pytest.raises(InvalidBoardDimensionsError) as excinfo:
        encode_placement(board)
    assert excinfo.value.files == 7


def test_full_fen_defaults():
    assert encode_full(_start_board()) == START_FEN + " w KQkq - 0 1"


def test_full_fen_overrides():
    fen = encode_full(
        BoardState.empty(),
        side_to_move=PieceColor.BLACK,
        castling="",
        en_passant="e3",
        halfmove_clock=4,
        fullmove_number=12,
    )
    assert fen == "8/8/8/8/8/8/8/8 b - e3 4 12"


def test_full_fen_accepts_letter_side():
    assert encode_full(BoardState.empty(), side_to_move="b").split()[1] == "b"


def test_full_fen_rejects_bad_side():
    with pytest.raises(ValueError):
        encode_full(BoardState.empty(), side_to_move=PieceColor.NONE)
    with pytest.raises(ValueError):
        encode_full(BoardState.empty(), side_to_move="white")


def test_parse_placement_inverts_encoder():
    board = parse_placement(START_FEN)
    assert board.squares[0][4] == SquareState(PieceColor.WHITE, PieceKind.KING)
    assert board.squares[7][3] == SquareState(PieceColor.BLACK, PieceKind.QUEEN)
    assert board.squares[4][4].is_empty
    assert encode_placement(board) == START_FEN


def test_parse_full_fen_copies_fields():
    board = parse_placement("8/8/8/8/8/8/8/8 b Kq - 3 40")
    assert board.side_to_move == "b"
    assert board.castling == "Kq"
    assert board.halfmove_clock == 3
    assert board.fullmove_number == 40


@pytest.mark.parametrize("fen", ["8/8/8/8/8/8/8/7", "8/8/8/8/8/8/8/9", "8/8/8/8/8/8/8/x7", "8/8/8/8/8/8/8/8p"])
def test_parse_rejects_malformed_ranks(fen):
    with pytest.raises(ValueError):
        parse_placement(fen)


def test_parse_rejects_wrong_rank_count():
    with pytest.raises(InvalidBoardDimensionsError):
        parse_placement("8/8/8")


def test_validate_start_position_is_clean():
    assert validate_placement(START_FEN) == []
    assert validate_placement(START_FEN + " w KQkq - 0 1") == []


def test_validate_reports_kings_and_pawns():
    violations = validate_placement("KK6/8/8/8/8/8/8/P7")
    assert any("White king count = 2" in v for v in violations)
    assert any("Black king count = 0" in v for v in violations)
    assert any("rank 1 or 8" in v for v in violations)


def test_validate_reports_too_many_pawns():
    violations = validate_placement("k7/pppppppp/p7/8/8/8/8/K7")
    assert violations == ["Black pawn count = 9 (max 8)"]
