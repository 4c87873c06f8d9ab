"""
Threat, fork and pin detection.

All checks look at the position after the move. The move is applied with
Board.simulate and undone before returning, so callers hand in a scratch board.
"""

from __future__ import annotations
from collections import defaultdict
from typing import TYPE_CHECKING, Dict, List, Tuple

from roguechess.enums import Owner, PieceType
from roguechess.rules.coordinate import Coordinate
from roguechess.rules.movegen import ALL_DIRECTIONS, attacked_squares

if TYPE_CHECKING:
    from roguechess.rules.board import Board
    from roguechess.rules.move import Move
    from roguechess.rules.piece import Piece


def attack_map(board: Board, owner: Owner) -> Dict[Tuple[int, int], List[Piece]]:
    """Square -> pieces of owner attacking it, with basic patterns."""
    attacks: Dict[Tuple[int, int], List[Piece]] = defaultdict(list)
    for piece in board.pieces_of(owner):
        for square in attacked_squares(board, piece):
            attacks[(square.row, square.col)].append(piece)
    return attacks


def threatened_by(board: Board, piece: Piece) -> List[Piece]:
    """Opposing pieces attacked by piece where it currently stands."""
    threatened = []
    for square in attacked_squares(board, piece):
        target = board.piece_at_coord(square)
        if target is not None and target.owner != piece.owner:
            threatened.append(target)
    return threatened


def threatened_after(board: Board, move: Move) -> List[Piece]:
    with board.simulate(move):
        return threatened_by(board, move.piece)


def gives_check(board: Board, move: Move) -> bool:
    """True if the moved piece attacks the opposing king after the move."""
    with board.simulate(move):
        return any(p.type == PieceType.KING for p in threatened_by(board, move.piece))


def detect_fork(board: Board, move: Move) -> bool:
    """The moved piece attacks two or more non-pawn opposing pieces (a king counts)."""
    valuable = [p for p in threatened_after(board, move) if p.type != PieceType.PAWN]
    return len(valuable) >= 2


def _attacks_along(piece_type: PieceType, dr: int, dc: int) -> bool:
    diagonal = dr != 0 and dc != 0
    if piece_type == PieceType.QUEEN:
        return True
    if piece_type == PieceType.ROOK:
        return not diagonal
    if piece_type == PieceType.BISHOP:
        return diagonal
    return False


def detect_pin(board: Board, move: Move) -> bool:
    """
    From the destination, the nearest piece on some line is an opposing
    piece with the opposing king directly behind it, and the mover can
    attack along that line.
    """
    mover = move.piece
    with board.simulate(move):
        origin = mover.position
        for dr, dc in ALL_DIRECTIONS:
            if not _attacks_along(mover.type, dr, dc):
                continue
            first = second = None
            step = 1
            while True:
                square = Coordinate(origin.row + dr * step, origin.col + dc * step)
                if not square.in_bounds():
                    break
                occupant = board.piece_at_coord(square)
                if occupant is not None:
                    if first is None:
                        first = occupant
                    else:
                        second = occupant
                        break
                step += 1
            if (first is not None and second is not None
                    and first.owner != mover.owner and second.owner != mover.owner
                    and second.type == PieceType.KING):
                return True
    return False
