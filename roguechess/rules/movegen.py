"""
Move generation.

Pieces are plain records whose type can change mid-battle, so movement lives
in one pattern object per PieceType instead of per-piece subclasses. Every
pattern yields pseudo-legal moves; `moves_for` then applies status effects and
the turn modifiers granted by cards:

- extended range (Dash, Rally): stepping pieces reach further
- pass-through (Ghost Walk): slides continue past enemies
- knight grant (Knight's Tour): every piece also jumps like a knight
- piercing (Snipe): ranged pieces shoot over one non-king obstacle
- Army of One: the king moves as a queen instead of as a king
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Set, Tuple

from roguechess.enums import EffectType, Owner, PieceType
from roguechess.rules.coordinate import BOARD_SIZE, Coordinate
from roguechess.rules.move import Move

if TYPE_CHECKING:
    from roguechess.rules.board import Board
    from roguechess.rules.piece import Piece
    from roguechess.services.effect_tracker import EffectTracker

STRAIGHT = [(-1, 0), (1, 0), (0, -1), (0, 1)]
DIAGONAL = [(-1, -1), (-1, 1), (1, -1), (1, 1)]
ALL_DIRECTIONS = STRAIGHT + DIAGONAL
KNIGHT_OFFSETS = [(-2, -1), (-2, 1), (-1, -2), (-1, 2), (1, -2), (1, 2), (2, -1), (2, 1)]
RANGED_TYPES = (PieceType.QUEEN, PieceType.ROOK, PieceType.BISHOP)


@dataclass
class MoveModifiers:
    """Movement grants active for one side during the current turn"""
    range_bonus: int = 0                                    # Rally
    piece_range_bonus: Dict[str, int] = field(default_factory=dict)  # Dash
    ghost_walk: Set[str] = field(default_factory=set)       # piece ids
    knights_tour: bool = False
    piercing: bool = False                                  # Snipe

    def extra_range(self, piece: Piece) -> int:
        return self.range_bonus + self.piece_range_bonus.get(piece.id, 0)

    def clear(self) -> None:
        self.range_bonus = 0
        self.piece_range_bonus.clear()
        self.ghost_walk.clear()
        self.knights_tour = False
        self.piercing = False

    def to_dict(self) -> dict:
        return {
            "range_bonus": self.range_bonus,
            "piece_range_bonus": dict(self.piece_range_bonus),
            "ghost_walk": sorted(self.ghost_walk),
            "knights_tour": self.knights_tour,
            "piercing": self.piercing,
        }


# ================================================================
# Movement patterns
# ================================================================

class MovePattern(ABC):
    @abstractmethod
    def moves(self, board: Board, piece: Piece, reach: int = 0, ghost: bool = False) -> List[Move]:
        """Return pseudo-legal moves; reach is the extended-range bonus."""
        pass

    @abstractmethod
    def attacks(self, board: Board, piece: Piece) -> List[Coordinate]:
        """Return the squares this piece attacks with its unmodified pattern."""
        pass


def _slide(board: Board, piece: Piece, directions: Iterable[Tuple[int, int]],
           max_steps: int = BOARD_SIZE, ghost: bool = False) -> List[Move]:
    moves: List[Move] = []
    origin = piece.position
    for dr, dc in directions:
        for step in range(1, max_steps + 1):
            target = Coordinate(origin.row + dr * step, origin.col + dc * step)
            if not target.in_bounds():
                break
            occupant = board.piece_at_coord(target)
            if occupant is None:
                moves.append(Move(origin, target, piece))
                continue
            if occupant.owner == piece.owner:
                break
            moves.append(Move(origin, target, piece))
            if not ghost:
                break
    return moves


def _slide_attacks(board: Board, piece: Piece, directions, max_steps: int = BOARD_SIZE) -> List[Coordinate]:
    squares: List[Coordinate] = []
    for dr, dc in directions:
        for step in range(1, max_steps + 1):
            target = Coordinate(piece.row + dr * step, piece.col + dc * step)
            if not target.in_bounds():
                break
            squares.append(target)
            if board.piece_at_coord(target) is not None:
                break
    return squares


def _jumps(board: Board, piece: Piece, offsets) -> List[Move]:
    moves: List[Move] = []
    origin = piece.position
    for dr, dc in offsets:
        target = origin.offset(dr, dc)
        if target is None:
            continue
        occupant = board.piece_at_coord(target)
        if occupant is None or occupant.owner != piece.owner:
            moves.append(Move(origin, target, piece))
    return moves


class SlidingPattern(MovePattern):
    def __init__(self, directions):
        self.directions = directions

    def moves(self, board, piece, reach=0, ghost=False):
        return _slide(board, piece, self.directions, ghost=ghost)

    def attacks(self, board, piece):
        return _slide_attacks(board, piece, self.directions)


class KingPattern(MovePattern):
    def moves(self, board, piece, reach=0, ghost=False):
        return _slide(board, piece, ALL_DIRECTIONS, max_steps=1 + reach, ghost=ghost)

    def attacks(self, board, piece):
        return _slide_attacks(board, piece, ALL_DIRECTIONS, max_steps=1)


class KnightPattern(MovePattern):
    def moves(self, board, piece, reach=0, ghost=False):
        return _jumps(board, piece, KNIGHT_OFFSETS)

    def attacks(self, board, piece):
        return [sq for sq in (piece.position.offset(dr, dc) for dr, dc in KNIGHT_OFFSETS) if sq]


class PawnPattern(MovePattern):
    def moves(self, board, piece, reach=0, ghost=False):
        moves: List[Move] = []
        origin = piece.position
        direction = piece.forward

        # Forward pushes never capture
        pushes = (2 if piece.row == piece.start_row else 1) + reach
        for step in range(1, pushes + 1):
            target = origin.offset(direction * step, 0)
            if target is None or not board.is_empty(target):
                break
            moves.append(Move(origin, target, piece))

        # Diagonal captures only
        for dc in (-1, 1):
            target = origin.offset(direction, dc)
            if target is not None and board.is_enemy_of(target, piece.owner):
                moves.append(Move(origin, target, piece))
        return moves

    def attacks(self, board, piece):
        return [sq for sq in (piece.position.offset(piece.forward, dc) for dc in (-1, 1)) if sq]


PATTERNS: Dict[PieceType, MovePattern] = {
    PieceType.KING: KingPattern(),
    PieceType.QUEEN: SlidingPattern(ALL_DIRECTIONS),
    PieceType.ROOK: SlidingPattern(STRAIGHT),
    PieceType.BISHOP: SlidingPattern(DIAGONAL),
    PieceType.KNIGHT: KnightPattern(),
    PieceType.PAWN: PawnPattern(),
}


def piercing_moves(board: Board, piece: Piece) -> List[Move]:
    """Captures through exactly one non-king obstacle; kings are never a target."""
    if piece.type == PieceType.QUEEN:
        directions = ALL_DIRECTIONS
    elif piece.type == PieceType.ROOK:
        directions = STRAIGHT
    elif piece.type == PieceType.BISHOP:
        directions = DIAGONAL
    else:
        return []

    moves: List[Move] = []
    origin = piece.position
    for dr, dc in directions:
        obstacle: Optional[Piece] = None
        for step in range(1, BOARD_SIZE):
            target = Coordinate(origin.row + dr * step, origin.col + dc * step)
            if not target.in_bounds():
                break
            occupant = board.piece_at_coord(target)
            if occupant is None:
                continue
            if obstacle is None:
                if occupant.type == PieceType.KING:
                    break
                obstacle = occupant
                continue
            if occupant.owner != piece.owner and occupant.type != PieceType.KING:
                moves.append(Move(origin, target, piece, piercing=True))
            break
    return moves


# ================================================================
# Public entry points
# ================================================================

def moves_for(piece: Piece, board: Board, effects: Optional[EffectTracker] = None,
              modifiers: Optional[MoveModifiers] = None,
              for_opponent_simulation: bool = False) -> List[Move]:
    """
    Legal destinations for a piece under the current statuses and modifiers.

    Frozen or invulnerable pieces get no moves. Captures onto invulnerable
    pieces are dropped. When planning for the AI, quiet moves onto trap
    squares are dropped too.
    """
    if effects is not None and not effects.is_actionable(piece.id):
        return []

    reach = modifiers.extra_range(piece) if modifiers else 0
    ghost = bool(modifiers and piece.id in modifiers.ghost_walk)

    if (piece.type == PieceType.KING and effects is not None
            and effects.has_effect(EffectType.ARMY_OF_ONE, piece.id)):
        pattern = PATTERNS[PieceType.QUEEN]
    else:
        pattern = PATTERNS[piece.type]

    moves = pattern.moves(board, piece, reach, ghost)

    if modifiers and modifiers.knights_tour and piece.type != PieceType.KNIGHT:
        moves.extend(_jumps(board, piece, KNIGHT_OFFSETS))
    if modifiers and modifiers.piercing and piece.type in RANGED_TYPES:
        moves.extend(piercing_moves(board, piece))

    result: List[Move] = []
    seen = set()
    for move in moves:
        if move in seen:
            continue
        seen.add(move)
        target = board.piece_at_coord(move.to_sq)
        if target is not None:
            if effects is not None and effects.has_effect(EffectType.INVULNERABLE, target.id):
                continue
        elif for_opponent_simulation and effects is not None and effects.is_trap(move.to_sq):
            continue
        result.append(move)
    return result


def legal_moves_for_side(board: Board, owner: Owner, effects: Optional[EffectTracker] = None,
                         modifiers: Optional[MoveModifiers] = None,
                         for_opponent_simulation: bool = False) -> List[Move]:
    moves: List[Move] = []
    for piece in list(board.pieces_of(owner)):
        moves.extend(moves_for(piece, board, effects, modifiers, for_opponent_simulation))
    return moves


def attacked_squares(board: Board, piece: Piece) -> List[Coordinate]:
    return PATTERNS[piece.type].attacks(board, piece)


def is_square_attacked(board: Board, coord: Coordinate, by_owner: Owner) -> bool:
    """True if any piece of by_owner attacks coord with its basic pattern."""
    for piece in board.pieces_of(by_owner):
        if coord in attacked_squares(board, piece):
            return True
    return False


def is_in_check(board: Board, owner: Owner) -> bool:
    king = board.king_of(owner)
    if king is None:
        return False
    return is_square_attacked(board, king.position, owner.opponent)


def has_escape(board: Board, owner: Owner, effects: Optional[EffectTracker] = None,
               modifiers: Optional[MoveModifiers] = None) -> bool:
    """
    True if some legal move leaves owner's king unattacked.
    Captures of shielded or braced pieces are vetoed in play, so they never escape.
    Runs on a scratch copy; the given board is never touched.
    """
    scratch = board.clone()
    for piece in list(scratch.pieces_of(owner)):
        for move in moves_for(piece, scratch, effects, modifiers):
            target = scratch.piece_at_coord(move.to_sq)
            if target is not None and effects is not None and effects.is_capture_immune(target.id):
                continue
            with scratch.simulate(move):
                if not is_in_check(scratch, owner):
                    return True
    return False


def is_checkmate(board: Board, owner: Owner, effects: Optional[EffectTracker] = None,
                 modifiers: Optional[MoveModifiers] = None) -> bool:
    if not is_in_check(board, owner):
        return False
    return not has_escape(board, owner, effects, modifiers)
