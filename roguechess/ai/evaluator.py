"""
Move scoring for the enemy AI.

    base_score      - what a move achieves (captures, checks, threats, escapes)
    safety_penalty  - what it risks (hanging the piece, exposing the king)
    apply_archetype - personality modifiers on top
    lookahead       - shallow alpha-beta over the static evaluation

Everything here runs on a scratch board owned by the caller.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, List, Optional, Tuple

from roguechess.ai import archetypes as weights
from roguechess.ai.archetypes import ArchetypeProfile, DifficultySettings
from roguechess.ai.tactics import attack_map, detect_fork, detect_pin, gives_check, threatened_after
from roguechess.enums import Owner, PieceType
from roguechess.rules.coordinate import Coordinate
from roguechess.rules.movegen import attacked_squares, is_in_check, is_square_attacked, legal_moves_for_side

if TYPE_CHECKING:
    from roguechess.rules.board import Board
    from roguechess.rules.move import Move
    from roguechess.services.effect_tracker import EffectTracker

PIECE_VALUES = {
    PieceType.KING: 10000,
    PieceType.QUEEN: 900,
    PieceType.ROOK: 500,
    PieceType.BISHOP: 330,
    PieceType.KNIGHT: 320,
    PieceType.PAWN: 100,
}
KING_LOST = 10000

KING_ATTACKED = 200
KING_DEFENDER = 30
ENEMY_KING_ATTACKED = 150
CENTER_WEIGHT = 5
PAWN_ADVANCE_WEIGHT = 10
HANGING_FACTOR = 0.8


def rank_of(owner: Owner, row: int) -> int:
    """How far a row is from owner's home edge (0 = back rank)."""
    return row if owner == Owner.ENEMY else 7 - row


def center_score(row: int, col: int) -> float:
    return (7 - (abs(col - 3.5) + abs(row - 3.5))) * CENTER_WEIGHT


def capture_value(board: Board, move: Move) -> int:
    target = board.piece_at_coord(move.to_sq)
    if target is None or target.owner == move.piece.owner:
        return 0
    if target.is_decoy:
        return weights.DECOY_LURE
    return weights.CAPTURE_VALUES[target.type]


# ================================================================
# Immediate scoring
# ================================================================

def base_score(board: Board, move: Move, settings: DifficultySettings,
               last_capture: Optional[Coordinate] = None) -> Tuple[float, List[str]]:
    """Score what the move achieves. Returns (score, reasons)."""
    mover = move.piece
    side = mover.owner
    opponent = side.opponent
    score = float(weights.ANY_LEGAL_MOVE)
    reasons: List[str] = []

    value = capture_value(board, move)
    if value:
        score += weights.CAPTURE_BASE + value
        reasons.append(f"capture {board.piece_at_coord(move.to_sq).type.value}")
        if last_capture is not None and move.to_sq == last_capture:
            score += weights.RECAPTURE_BONUS
            reasons.append("recapture")

    if gives_check(board, move):
        score += weights.CHECK_PLAYER_KING
        reasons.append("check")

    threatened = [p for p in threatened_after(board, move) if p.type != PieceType.KING]
    if threatened:
        score += weights.THREATEN_PIECE * len(threatened)
        reasons.append(f"threatens {len(threatened)}")

    from_rank, to_rank = rank_of(side, move.from_sq.row), rank_of(side, move.to_sq.row)
    if to_rank > from_rank:
        score += weights.ADVANCE_PIECE
    if from_rank <= 1 and to_rank > 1:
        score += weights.DEVELOP_PIECE

    # Escape: the piece is attacked now and safe after the move
    if mover.type != PieceType.KING and is_square_attacked(board, move.from_sq, opponent):
        with board.simulate(move):
            safe = move.piercing or not is_square_attacked(board, mover.position, opponent)
        if safe:
            score += weights.CAPTURE_VALUES[mover.type] + weights.ESCAPE_BONUS
            reasons.append("escape")

    defended = _defended_after(board, move)
    if defended is not None:
        score += weights.CAPTURE_VALUES[defended.type] * weights.DEFEND_VALUE_FACTOR + weights.DEFEND_BASE
        reasons.append(f"defends {defended.type.value}")

    if settings.fork_pin_bonus:
        if detect_fork(board, move) or detect_pin(board, move):
            score += settings.fork_pin_bonus
            reasons.append("tactic")

    return score, reasons


def _defended_after(board: Board, move: Move):
    """A friendly piece under attack that the mover newly protects after the move."""
    mover = move.piece
    opponent = mover.owner.opponent
    before = {(sq.row, sq.col) for sq in attacked_squares(board, mover)}
    with board.simulate(move):
        after = {(sq.row, sq.col) for sq in attacked_squares(board, mover)}
        for ally in board.pieces_of(mover.owner):
            if ally is mover or ally.type == PieceType.KING:
                continue
            square = (ally.row, ally.col)
            if square in after and square not in before and is_square_attacked(board, ally.position, opponent):
                return ally
    return None


def safety_penalty(board: Board, move: Move, profile: ArchetypeProfile) -> Tuple[float, List[str]]:
    """Positive penalty for what the move puts at risk."""
    mover = move.piece
    side = mover.owner
    opponent = side.opponent
    penalty = 0.0
    reasons: List[str] = []

    king = board.king_of(side)
    was_near_king = (king is not None and mover is not king
                     and mover.position.manhattan(king.position) <= weights.KING_DEFENDER_DISTANCE)

    with board.simulate(move):
        if not move.piercing and is_square_attacked(board, mover.position, opponent):
            defended = _is_defended(board, mover)
            penalty += weights.MOVE_TO_ATTACKED_SQUARE if defended else weights.MOVE_TO_UNDEFENDED_ATTACKED
            reasons.append("attacked square" if defended else "hangs piece")
        if is_in_check(board, side):
            penalty += weights.EXPOSE_KING_TO_CHECK
            reasons.append("exposes king")
        if was_near_king and mover.position.manhattan(king.position) > weights.KING_DEFENDER_DISTANCE:
            penalty += weights.REMOVE_KING_DEFENDER
            reasons.append("leaves king")

    return penalty * profile.safety_penalty_reduction, reasons


def _is_defended(board: Board, piece) -> bool:
    return any(piece.position in attacked_squares(board, ally)
               for ally in board.pieces_of(piece.owner) if ally is not piece)


def apply_archetype(board: Board, move: Move, score: float,
                    profile: ArchetypeProfile) -> float:
    """Add the personality modifiers for this move's features."""
    mover = move.piece
    side = mover.owner
    is_capture = capture_value(board, move) > 0
    from_rank, to_rank = rank_of(side, move.from_sq.row), rank_of(side, move.to_sq.row)
    advancing = to_rank > from_rank

    if is_capture:
        score += profile.capture_bonus
    if advancing:
        score += profile.advance_bonus
        if mover.type == PieceType.PAWN:
            score += profile.pawn_advance_bonus

    own_king = board.king_of(side)
    if profile.defend_king_bonus and own_king is not None and mover is not own_king:
        before = move.from_sq.manhattan(own_king.position)
        after = move.to_sq.manhattan(own_king.position)
        if after < before and after <= 2:
            score += profile.defend_king_bonus

    if mover.type == PieceType.KING and to_rank > 2:
        score += profile.king_aggression_penalty

    their_king = board.king_of(side.opponent)
    if mover.type == PieceType.QUEEN and their_king is not None:
        distance = move.to_sq.manhattan(their_king.position)
        if distance <= 3:
            score += profile.queen_aggression_penalty
        if distance < 4:
            score += profile.queen_aggression_bonus

    if not is_capture and to_rank <= from_rank:
        score += profile.defense_penalty

    if profile.fork_bonus and detect_fork(board, move):
        score += profile.fork_bonus
    if profile.pin_bonus and detect_pin(board, move):
        score += profile.pin_bonus
    if mover.type in (PieceType.KNIGHT, PieceType.BISHOP):
        score += profile.knight_bishop_bonus
    if profile.position_bonus:
        if center_score(move.to_sq.row, move.to_sq.col) > center_score(move.from_sq.row, move.from_sq.col):
            score += profile.position_bonus

    return score


# ================================================================
# Static evaluation and lookahead
# ================================================================

def evaluate_position(board: Board, side: Owner = Owner.ENEMY) -> float:
    """Static evaluation from side's point of view."""
    opponent = side.opponent
    own_king = board.king_of(side)
    their_king = board.king_of(opponent)
    if own_king is None:
        return -KING_LOST
    if their_king is None:
        return KING_LOST

    attacks = {side: attack_map(board, side), opponent: attack_map(board, opponent)}
    score = 0.0
    for owner, sign in ((side, 1), (opponent, -1)):
        enemy_of_owner = owner.opponent
        for piece in board.pieces_of(owner):
            value = PIECE_VALUES[piece.type]
            score += sign * value
            score += sign * center_score(piece.row, piece.col)
            if piece.type == PieceType.PAWN:
                score += sign * rank_of(owner, piece.row) * PAWN_ADVANCE_WEIGHT
            square = (piece.row, piece.col)
            if piece.type != PieceType.KING and attacks[enemy_of_owner].get(square):
                if not attacks[owner].get(square):
                    score -= sign * value * HANGING_FACTOR

    if attacks[opponent].get((own_king.row, own_king.col)):
        score -= KING_ATTACKED
    defenders = [p for p in board.pieces_of(side)
                 if p is not own_king and p.position.manhattan(own_king.position) <= 2]
    score += KING_DEFENDER * len(defenders)
    if attacks[side].get((their_king.row, their_king.col)):
        score += ENEMY_KING_ATTACKED
    return score


def _ordered_moves(board: Board, owner: Owner, effects: Optional[EffectTracker]) -> List[Move]:
    moves = legal_moves_for_side(board, owner, effects, for_opponent_simulation=owner == Owner.ENEMY)
    moves.sort(key=lambda m: capture_value(board, m), reverse=True)
    return moves[:weights.MAX_REPLIES]


def _search(board: Board, depth: int, alpha: float, beta: float, to_move: Owner,
            side: Owner, effects: Optional[EffectTracker]) -> float:
    if depth <= 0 or board.king_of(side) is None or board.king_of(side.opponent) is None:
        return evaluate_position(board, side)
    moves = _ordered_moves(board, to_move, effects)
    if not moves:
        return evaluate_position(board, side)

    if to_move == side:
        best = float("-inf")
        for move in moves:
            with board.simulate(move):
                best = max(best, _search(board, depth - 1, alpha, beta, to_move.opponent, side, effects))
            alpha = max(alpha, best)
            if alpha >= beta:
                break
        return best

    best = float("inf")
    for move in moves:
        with board.simulate(move):
            best = min(best, _search(board, depth - 1, alpha, beta, to_move.opponent, side, effects))
        beta = min(beta, best)
        if alpha >= beta:
            break
    return best


def lookahead(board: Board, move: Move, depth: int,
              effects: Optional[EffectTracker] = None) -> float:
    """
    Value of the position after move, searched depth - 1 further plies,
    relative to the position before it.
    """
    side = move.piece.owner
    baseline = evaluate_position(board, side)
    with board.simulate(move):
        value = _search(board, depth - 1, float("-inf"), float("inf"), side.opponent, side, effects)
    return value - baseline
