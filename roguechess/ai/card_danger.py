"""
Card danger - how much the enemy fears the cards still in the player's hand.

Every card maps to a positional condition and a penalty. A candidate move
pays the penalty of each held card whose condition holds for it. Flat
conditions ("any position") pay 30% of the penalty on every move.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Callable, Dict, Iterable, NamedTuple

from roguechess.enums import Owner, PieceType
from roguechess.rules.coordinate import BOARD_SIZE, Coordinate
from roguechess.rules.movegen import ALL_DIRECTIONS, KNIGHT_OFFSETS, RANGED_TYPES, attacked_squares

if TYPE_CHECKING:
    from roguechess.rules.board import Board
    from roguechess.rules.move import Move

FLAT_FACTOR = 0.3
EMPTY_SQUARE_FACTOR = 0.5
WALL_BONUS = 20


class CardDanger(NamedTuple):
    condition: str
    penalty: int
    description: str


CARD_DANGERS: Dict[str, CardDanger] = {
    # Common
    "nudge": CardDanger("anyPosition", 10, "Piece can be nudged 1 square"),
    "stall": CardDanger("anyPiece", 15, "Enemy turn can be skipped"),
    "scout": CardDanger("none", 0, "No direct danger"),
    "shield": CardDanger("nearHighValueTarget", 20, "Target may become shielded"),
    "dash": CardDanger("inExtendedRange", 15, "Player pieces have extended range"),
    "backstep": CardDanger("none", 5, "Player can retreat"),
    "stumble": CardDanger("nearEdge", 20, "Can be randomly moved"),
    "feint": CardDanger("none", 5, "Friendly pieces can swap"),
    "brace": CardDanger("nearKing", 25, "King gets defensive bonus"),
    "sidestep": CardDanger("none", 5, "Can dodge sideways"),
    "iDidntSeeThat": CardDanger("none", 10, "Move can be undone"),
    # Uncommon
    "freeze": CardDanger("anyPiece", 30, "Can be frozen"),
    "teleport": CardDanger("anyPosition", 25, "Player can teleport anywhere"),
    "swap": CardDanger("anyPosition", 20, "Positions can be swapped"),
    "promote": CardDanger("none", 15, "Pawns can promote early"),
    "rally": CardDanger("inExtendedRange", 25, "All pieces have extended range"),
    "illegalCastle": CardDanger("nearKing", 30, "King can castle anywhere"),
    "ghostWalk": CardDanger("blocking", 35, "Can pass through pieces"),
    "knightsTour": CardDanger("inKnightRange", 40, "All pieces move like knights"),
    "decoy": CardDanger("nearEmptySquares", 15, "Fake pieces can appear"),
    "ricochet": CardDanger("inRangedLine", 30, "Captures can chain"),
    "loadedDice": CardDanger("anyMove", 20, "Move may fail"),
    "paparazzi": CardDanger("none", 0, "Moves revealed (no danger)"),
    "caltrops": CardDanger("nearEmptySquares", 25, "Traps can be placed"),
    # Rare
    "clone": CardDanger("nearHighValueTarget", 35, "Pieces can be duplicated"),
    "kidnap": CardDanger("anyPiece", 40, "Can be teleported away"),
    "resurrect": CardDanger("none", 30, "Captured pieces return"),
    "queensGambit": CardDanger("nearHighValueTarget", 35, "Sacrifice enables multi-move"),
    "sabotage": CardDanger("nearSamePiece", 45, "All same-type pieces freeze"),
    "zugzwang": CardDanger("kingExposed", 50, "King must move"),
    "phantomQueen": CardDanger("anyPosition", 40, "Temporary queen appears"),
    "doubleAgent": CardDanger("pawnNearby", 30, "Pawns can be converted"),
    "chainReaction": CardDanger("clustered", 45, "Captures explode"),
    "traitorsMark": CardDanger("anyPiece", 35, "Capturing causes betrayal"),
    "unionStrike": CardDanger("multipleThreats", 40, "Multi-piece attack"),
    "divineShield": CardDanger("nearHighValueTarget", 40, "Target becomes invulnerable"),
    "snipe": CardDanger("behindObstacle", 45, "Can shoot through pieces"),
    "shieldBash": CardDanger("adjacentToPlayer", 35, "Can be pushed into walls"),
    # Legendary
    "mindControl": CardDanger("anyPiece", 60, "Can be controlled by enemy"),
    "checkmateDenied": CardDanger("nearKing", 30, "King survives one hit"),
    "demotion": CardDanger("isQueen", 70, "Queen becomes pawn"),
    "armyOfOne": CardDanger("nearKing", 50, "King moves like queen"),
    "rewind": CardDanger("none", 40, "Turns can be undone"),
    "parallelPlay": CardDanger("anyPosition", 55, "Two moves in one turn"),
    "exile": CardDanger("anyPiece", 70, "Permanent removal"),
    "usurper": CardDanger("none", 30, "King role changes"),
    "pocketDimension": CardDanger("none", 25, "Pieces can be stored"),
    "theBluff": CardDanger("none", 20, "Intent is hidden"),
    "actuallyImTheKing": CardDanger("kingExposed", 80, "Kings can swap"),
}


# ================================================================
# Positional conditions (enemy's view: the player is the opponent)
# ================================================================

def _manhattan(a: Coordinate, row: int, col: int) -> int:
    return abs(a.row - row) + abs(a.col - col)


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def near_high_value_target(board: Board, move: Move) -> bool:
    return any(p.type in (PieceType.QUEEN, PieceType.ROOK, PieceType.KING)
               and _manhattan(move.to_sq, p.row, p.col) <= 2
               for p in board.player_pieces)


def in_knight_range(board: Board, move: Move) -> bool:
    return any((move.to_sq.row - p.row, move.to_sq.col - p.col) in KNIGHT_OFFSETS
               for p in board.player_pieces)


def _line_from(board: Board, piece, target: Coordinate):
    """Squares strictly between a ranged piece and target, or None if not on its line."""
    dr, dc = _sign(target.row - piece.row), _sign(target.col - piece.col)
    if (dr, dc) == (0, 0):
        return None
    if piece.type == PieceType.ROOK and dr != 0 and dc != 0:
        return None
    if piece.type == PieceType.BISHOP and (dr == 0 or dc == 0):
        return None
    if abs(target.row - piece.row) != abs(target.col - piece.col) and dr != 0 and dc != 0:
        return None
    if dr == 0 and target.row != piece.row or dc == 0 and target.col != piece.col:
        return None
    between = []
    row, col = piece.row + dr, piece.col + dc
    while (row, col) != (target.row, target.col):
        between.append(Coordinate(row, col))
        row, col = row + dr, col + dc
    return between


def behind_obstacle(board: Board, move: Move) -> bool:
    """Exactly one piece stands between a ranged player piece and the destination."""
    for piece in board.player_pieces:
        if piece.type not in RANGED_TYPES:
            continue
        between = _line_from(board, piece, move.to_sq)
        if between is not None:
            occupied = sum(1 for sq in between if sq != move.from_sq and board.piece_at_coord(sq))
            if occupied == 1:
                return True
    return False


def in_ranged_line(board: Board, move: Move) -> bool:
    """A ranged player piece has a clear line to the destination."""
    for piece in board.player_pieces:
        if piece.type not in RANGED_TYPES:
            continue
        between = _line_from(board, piece, move.to_sq)
        if between is not None and not any(sq != move.from_sq and board.piece_at_coord(sq) for sq in between):
            return True
    return False


def near_empty_squares(board: Board, move: Move) -> bool:
    for dr, dc in ALL_DIRECTIONS:
        square = move.to_sq.offset(dr, dc)
        if square is not None and (board.is_empty(square) or square == move.from_sq):
            return True
    return False


def adjacent_to_player(board: Board, move: Move) -> bool:
    return any(move.to_sq.chebyshev(p.position) == 1 for p in board.player_pieces)


def on_wall(square: Coordinate) -> bool:
    return square.row in (0, BOARD_SIZE - 1) or square.col in (0, BOARD_SIZE - 1)


def near_king(board: Board, move: Move) -> bool:
    king = board.king_of(Owner.PLAYER)
    return king is not None and _manhattan(move.to_sq, king.row, king.col) <= 3


def in_extended_range(board: Board, move: Move) -> bool:
    return any(_manhattan(move.to_sq, p.row, p.col) <= 3 for p in board.player_pieces)


def near_edge(board: Board, move: Move) -> bool:
    return move.to_sq.row <= 1 or move.to_sq.row >= 6 or move.to_sq.col <= 1 or move.to_sq.col >= 6


def blocking(board: Board, move: Move) -> bool:
    """The destination is the first square a player piece would hit along some line."""
    for piece in board.player_pieces:
        for dr, dc in ALL_DIRECTIONS:
            row, col = piece.row + dr, piece.col + dc
            while 0 <= row < BOARD_SIZE and 0 <= col < BOARD_SIZE:
                if (row, col) == (move.to_sq.row, move.to_sq.col):
                    return True
                occupant = board.piece_at(row, col)
                if occupant is not None and occupant is not move.piece:
                    break
                row, col = row + dr, col + dc
    return False


def near_same_piece(board: Board, move: Move) -> bool:
    allies = [p for p in board.enemy_pieces if p is not move.piece and p.type == move.piece.type
              and _manhattan(move.to_sq, p.row, p.col) <= 3]
    return len(allies) >= 2


def king_exposed(board: Board, move: Move) -> bool:
    king = board.king_of(Owner.ENEMY)
    if king is None:
        return False
    defenders = [p for p in board.enemy_pieces if p is not king and _manhattan(king.position, p.row, p.col) <= 2]
    return len(defenders) < 2


def pawn_nearby(board: Board, move: Move) -> bool:
    return move.piece.type == PieceType.PAWN


def clustered(board: Board, move: Move) -> bool:
    nearby = [p for p in board.enemy_pieces if p.position.chebyshev(move.to_sq) <= 1]
    return len(nearby) >= 3


def multiple_threats(board: Board, move: Move) -> bool:
    hits = [p for p in board.player_pieces if move.to_sq in attacked_squares(board, p)]
    return len(hits) >= 2


def is_queen(board: Board, move: Move) -> bool:
    return move.piece.type == PieceType.QUEEN


CONDITIONS: Dict[str, Callable[[Board, Move], bool]] = {
    "nearHighValueTarget": near_high_value_target,
    "inKnightRange": in_knight_range,
    "behindObstacle": behind_obstacle,
    "nearEmptySquares": near_empty_squares,
    "adjacentToPlayer": adjacent_to_player,
    "nearKing": near_king,
    "inExtendedRange": in_extended_range,
    "nearEdge": near_edge,
    "blocking": blocking,
    "inRangedLine": in_ranged_line,
    "nearSamePiece": near_same_piece,
    "kingExposed": king_exposed,
    "pawnNearby": pawn_nearby,
    "clustered": clustered,
    "multipleThreats": multiple_threats,
    "isQueen": is_queen,
}
FLAT_CONDITIONS = ("anyPosition", "anyPiece", "anyMove")


def card_danger(board: Board, move: Move, hand: Iterable[str]) -> float:
    """Sum the penalties of every held card whose condition holds for this move."""
    danger = 0.0
    for card_id in hand:
        entry = CARD_DANGERS.get(card_id)
        if entry is None or entry.condition == "none":
            continue
        if entry.condition in FLAT_CONDITIONS:
            danger += entry.penalty * FLAT_FACTOR
        elif entry.condition == "nearEmptySquares":
            if near_empty_squares(board, move):
                danger += entry.penalty * EMPTY_SQUARE_FACTOR
        elif entry.condition == "adjacentToPlayer":
            if adjacent_to_player(board, move):
                danger += entry.penalty
                if on_wall(move.to_sq):
                    danger += WALL_BONUS
        elif CONDITIONS[entry.condition](board, move):
            danger += entry.penalty
    return danger
