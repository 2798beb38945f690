"""
FEN Utilities – Encoding, Parsing & Sanity Checks
==================================================

Responsibilities:
  1. Encode an 8×8 ``BoardState`` into the FEN piece-placement field.
  2. Append the five remaining FEN fields (never inferred from pixels).
  3. Parse a placement field back into a ``BoardState``.
  4. Report obvious impossibilities in a recognised position.

Sanity checks implemented:
  • Exactly 1 white king and 1 black king.
  • At most 8 pawns per side.
  • No pawns on rank 1 or rank 8.

The checks only *report*: a screenshot may legitimately show an edited or
puzzle position, so nothing is corrected.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Union

from chess_screen.config import BOARD_FILES
from chess_screen.errors import InvalidBoardDimensionsError
from chess_screen.models.types import (
    FEN_TO_KIND,
    BoardState,
    PieceColor,
    SquareState,
)

SideToMove = Union[PieceColor, str]


def check_dimensions(matrix: Sequence[Sequence[object]]) -> None:
    """Raise :class:`InvalidBoardDimensionsError` unless *matrix* is 8×8."""
    if len(matrix) != BOARD_FILES:
        files = len(matrix[0]) if len(matrix) else None
        raise InvalidBoardDimensionsError(len(matrix), files)
    for rank in matrix:
        if len(rank) != BOARD_FILES:
            raise InvalidBoardDimensionsError(len(matrix), len(rank))


# ── FEN construction ───────────────────────────────────────────────────

def encode_placement(board: BoardState) -> str:
    """Encode the piece placement of *board*.

    Ranks are emitted from 8 down to 1 (``squares[7]`` first), files a→h,
    with runs of empty squares collapsed to a digit.

    Raises
    ------
    InvalidBoardDimensionsError
        If the board is not 8×8.

    Examples
    --------
    The start position encodes to
    ``rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR``.
    """
    check_dimensions(board.squares)

    rows: List[str] = []
    for rank in range(BOARD_FILES - 1, -1, -1):
        row_chars: List[str] = []
        empty_count = 0

        for square in board.squares[rank]:
            fen_char = square.fen_char
            if fen_char is None:
                empty_count += 1
            else:
                if empty_count > 0:
                    row_chars.append(str(empty_count))
                    empty_count = 0
                row_chars.append(fen_char)

        if empty_count > 0:
            row_chars.append(str(empty_count))

        rows.append("".join(row_chars))

    return "/".join(rows)


def _side_letter(side: SideToMove) -> str:
    if isinstance(side, PieceColor):
        if side is PieceColor.WHITE:
            return "w"
        if side is PieceColor.BLACK:
            return "b"
        raise ValueError("Side to move must be white or black")
    if side in ("w", "b"):
        return side
    raise ValueError(f"Side to move must be 'w' or 'b', got {side!r}")


def encode_full(
    board: BoardState,
    side_to_move: Optional[SideToMove] = None,
    castling: Optional[str] = None,
    en_passant: Optional[str] = None,
    halfmove_clock: Optional[int] = None,
    fullmove_number: Optional[int] = None,
) -> str:
    """Full six-field FEN of *board*.

    Any field left as ``None`` is taken from the corresponding
    ``BoardState`` attribute (``w KQkq - 0 1`` for a fresh board).  An
    empty castling or en-passant string is written as ``-``.
    """
    placement = encode_placement(board)
    side = _side_letter(side_to_move if side_to_move is not None else board.side_to_move)
    castling = castling if castling is not None else board.castling
    en_passant = en_passant if en_passant is not None else board.en_passant
    halfmove = halfmove_clock if halfmove_clock is not None else board.halfmove_clock
    fullmove = fullmove_number if fullmove_number is not None else board.fullmove_number

    return f"{placement} {side} {castling or '-'} {en_passant or '-'} {halfmove} {fullmove}"


# ── Parsing ────────────────────────────────────────────────────────────

def parse_placement(fen: str) -> BoardState:
    """Inverse of :func:`encode_placement`.

    Accepts either the bare placement field or a full FEN (extra fields
    are copied onto the returned ``BoardState`` when present).

    Raises
    ------
    ValueError
        On an unknown piece letter or a rank that does not add up to 8.
    InvalidBoardDimensionsError
        If the placement does not have 8 ranks.
    """
    fields = fen.strip().split()
    if not fields:
        raise ValueError("Empty FEN string")
    rows = fields[0].split("/")
    if len(rows) != BOARD_FILES:
        raise InvalidBoardDimensionsError(len(rows))

    board = BoardState.empty()
    for row_idx, row in enumerate(rows):
        rank = BOARD_FILES - 1 - row_idx
        file = 0
        for ch in row:
            if ch.isdigit():
                file += int(ch)
                continue
            kind = FEN_TO_KIND.get(ch.lower())
            if kind is None:
                raise ValueError(f"Unknown piece letter {ch!r} in {fields[0]!r}")
            if file >= BOARD_FILES:
                raise ValueError(f"Rank {rank + 1} of {fields[0]!r} spans more than 8 files")
            color = PieceColor.WHITE if ch.isupper() else PieceColor.BLACK
            board.squares[rank][file] = SquareState(color, kind)
            file += 1
        if file != BOARD_FILES:
            raise ValueError(f"Rank {rank + 1} of {fields[0]!r} spans {file} files (expected 8)")

    if len(fields) > 1:
        board.side_to_move = fields[1]
    if len(fields) > 2:
        board.castling = fields[2]
    if len(fields) > 3:
        board.en_passant = fields[3]
    if len(fields) > 4:
        board.halfmove_clock = int(fields[4])
    if len(fields) > 5:
        board.fullmove_number = int(fields[5])
    return board


# ── Validation ─────────────────────────────────────────────────────────

def validate_placement(fen: str) -> List[str]:
    """Return human-readable violations of basic position sanity.

    An empty list means the placement passed every check.  Only the
    placement field of *fen* is inspected.
    """
    violations: List[str] = []
    rows = fen.split()[0].split("/") if fen.strip() else []

    if len(rows) != BOARD_FILES:
        violations.append(f"Expected 8 ranks, got {len(rows)}")
        return violations

    all_pieces: List[str] = []
    for rank_idx, row in enumerate(rows):
        width = 0
        for ch in row:
            if ch.isdigit():
                width += int(ch)
            else:
                width += 1
                all_pieces.append(ch)
        if width != BOARD_FILES:
            violations.append(f"Rank {8 - rank_idx} has {width} squares (expected 8)")

    # King counts
    wk = all_pieces.count("K")
    bk = all_pieces.count("k")
    if wk != 1:
        violations.append(f"White king count = {wk} (expected 1)")
    if bk != 1:
        violations.append(f"Black king count = {bk} (expected 1)")

    # Pawn counts
    wp = all_pieces.count("P")
    bp = all_pieces.count("p")
    if wp > 8:
        violations.append(f"White pawn count = {wp} (max 8)")
    if bp > 8:
        violations.append(f"Black pawn count = {bp} (max 8)")

    # rows[0] is rank 8, rows[7] is rank 1
    if any(ch in ("P", "p") for ch in rows[0] + rows[7]):
        violations.append("Pawn found on rank 1 or 8")

    return violations
