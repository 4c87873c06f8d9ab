"""
Enemy move selection.

Every legal enemy move is scored as

    archetype(base - safety - card_danger * multiplier)

optionally blended with a shallow lookahead, and one of the top-N moves is
picked by weighted random choice. With an oracle attached, its suggestion is
taken instead unless the player's hand makes it clearly dangerous.
"""

from __future__ import annotations
import logging
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, List, Optional

from roguechess.ai.archetypes import (
    ARCHETYPES,
    DIFFICULTY_SETTINGS,
    IMMEDIATE_WEIGHT,
    LOOKAHEAD_WEIGHT,
)
from roguechess.ai.card_danger import card_danger
from roguechess.ai.evaluator import apply_archetype, base_score, capture_value, lookahead, safety_penalty
from roguechess.ai.oracle import OracleClient, OracleError, decode_move
from roguechess.enums import Archetype, BoardOrientation, Difficulty, Owner
from roguechess.rules.movegen import legal_moves_for_side, moves_for

if TYPE_CHECKING:
    from roguechess.rules.board import Board
    from roguechess.rules.coordinate import Coordinate
    from roguechess.rules.move import Move
    from roguechess.services.effect_tracker import EffectTracker

logger = logging.getLogger(__name__)

DANGER_THRESHOLD = 50
SAFER_RATIO = 0.5
COMPARABLE_MARGIN = 30


@dataclass
class ScoredMove:
    move: Move
    score: float
    base: float
    danger: float
    reasons: List[str] = field(default_factory=list)


class EnemyAI:
    def __init__(self, difficulty: Difficulty = Difficulty.MEDIUM,
                 archetype: Archetype = Archetype.AGGRESSOR,
                 rng: Optional[random.Random] = None,
                 oracle: Optional[OracleClient] = None,
                 orientation: BoardOrientation = BoardOrientation.ENEMY_AS_BLACK):
        self.difficulty = difficulty
        self.archetype = archetype
        self.settings = DIFFICULTY_SETTINGS[difficulty]
        self.profile = ARCHETYPES[archetype]
        self.rng = rng or random.Random()
        self.oracle = oracle
        self.orientation = orientation

    # ================================================================
    # Candidates and scoring
    # ================================================================
    def candidate_moves(self, board: Board, effects: Optional[EffectTracker] = None) -> List[Move]:
        """Legal enemy moves, steering clear of known traps when anything else exists."""
        moves = legal_moves_for_side(board, Owner.ENEMY, effects, for_opponent_simulation=True)
        if not moves:
            moves = legal_moves_for_side(board, Owner.ENEMY, effects)
        return moves

    def score_move(self, board: Board, move: Move, effects: Optional[EffectTracker] = None,
                   hand: Iterable[str] = (), last_capture: Optional[Coordinate] = None) -> ScoredMove:
        """Score one move. board must be a scratch copy that move belongs to."""
        settings = self.settings
        base, reasons = base_score(board, move, settings, last_capture)
        danger = card_danger(board, move, hand) * settings.card_penalty_multiplier

        if settings.ignore_safety_chance and self.rng.random() < settings.ignore_safety_chance:
            score = apply_archetype(board, move, base - danger, self.profile)
            reasons.append("ignores safety")
        else:
            penalty, risks = safety_penalty(board, move, self.profile)
            reasons.extend(risks)
            score = apply_archetype(board, move, base - penalty - danger, self.profile)

        if settings.search_depth > 1:
            future = lookahead(board, move, settings.search_depth, effects)
            score = IMMEDIATE_WEIGHT * score + LOOKAHEAD_WEIGHT * future

        return ScoredMove(move, score, base, danger, reasons)

    def score_all(self, board: Board, effects: Optional[EffectTracker] = None,
                  hand: Iterable[str] = (), last_capture: Optional[Coordinate] = None) -> List[ScoredMove]:
        """Score every candidate on a scratch copy, best first. Moves refer to the scratch board."""
        scratch = board.clone()
        hand = list(hand)
        scored = [self.score_move(scratch, move, effects, hand, last_capture)
                  for move in self.candidate_moves(scratch, effects)]
        scored.sort(key=lambda s: s.score, reverse=True)
        return scored

    # ================================================================
    # Selection
    # ================================================================
    def select_move(self, board: Board, effects: Optional[EffectTracker] = None,
                    hand: Iterable[str] = (), last_capture: Optional[Coordinate] = None) -> Optional[Move]:
        """Pick the enemy's move with heuristics only. None means the enemy has nothing to play."""
        try:
            scored = self.score_all(board, effects, hand, last_capture)
        except Exception as e:
            logger.error(f"Move scoring failed, using fallback: {e}", exc_info=True)
            return self.fallback_move(board, effects)
        if not scored:
            return None
        return self._finalise(board, self._pick(scored))

    async def select_move_async(self, board: Board, effects: Optional[EffectTracker] = None,
                                hand: Iterable[str] = (),
                                last_capture: Optional[Coordinate] = None) -> Optional[Move]:
        """Like select_move, consulting the oracle first when one is attached."""
        if self.oracle is None:
            return self.select_move(board, effects, hand, last_capture)

        try:
            scored = self.score_all(board, effects, hand, last_capture)
        except Exception as e:
            logger.error(f"Move scoring failed, using fallback: {e}", exc_info=True)
            return self.fallback_move(board, effects)
        if not scored:
            return None

        response = await self.oracle.suggest(board, self.settings.oracle_depth, self.orientation)
        if response is None:
            return self._finalise(board, self._pick(scored))

        try:
            from_sq, to_sq = decode_move(response.move, self.orientation)
        except OracleError as e:
            logger.warning(f"Oracle returned an unusable move: {e}")
            return self._finalise(board, self._pick(scored))

        suggested = next((s for s in scored if s.move.from_sq == from_sq and s.move.to_sq == to_sq
                          and not s.move.piercing), None)
        if suggested is None:
            logger.warning(f"Oracle move {response.move} is not legal here, using heuristics")
            return self._finalise(board, self._pick(scored))

        oracle_score = response.score
        chosen = ScoredMove(suggested.move, oracle_score, suggested.base, suggested.danger,
                            ["oracle"] + suggested.reasons)
        if suggested.danger > DANGER_THRESHOLD:
            safer = [s for s in scored
                     if s.danger < suggested.danger * SAFER_RATIO
                     and s.base - s.danger > oracle_score - suggested.danger - COMPARABLE_MARGIN]
            if safer:
                best = max(safer, key=lambda s: s.base - s.danger)
                logger.info(f"Oracle move {response.move} too risky (danger {suggested.danger:.0f}), "
                            f"playing safer alternative")
                chosen = ScoredMove(best.move, best.base - best.danger, best.base, best.danger,
                                    ["avoids card danger"] + best.reasons)
        return self._finalise(board, chosen)

    def _pick(self, scored: List[ScoredMove]) -> ScoredMove:
        top = scored[:self.settings.top_moves]
        if len(top) == 1:
            return top[0]
        return self.rng.choices(top, weights=[max(s.score, 1) for s in top], k=1)[0]

    def _finalise(self, board: Board, scored: ScoredMove) -> Optional[Move]:
        move = board.translate_move(scored.move)
        if move is None:
            return None
        move.metadata["score"] = round(scored.score, 1)
        move.metadata["reasoning"] = ", ".join(scored.reasons) or "positional"
        return move

    def fallback_move(self, board: Board, effects: Optional[EffectTracker] = None) -> Optional[Move]:
        """Any capture, else any move, else None."""
        try:
            moves = self.candidate_moves(board, effects)
        except Exception as e:
            logger.error(f"Fallback move generation failed: {e}", exc_info=True)
            return None
        if not moves:
            return None
        captures = [m for m in moves if capture_value(board, m) > 0]
        move = captures[0] if captures else moves[0]
        move.metadata["reasoning"] = "fallback"
        return move

    @staticmethod
    def is_move_still_legal(board: Board, move: Move, effects: Optional[EffectTracker] = None) -> bool:
        """A cached intent is only played if the piece is still there and can still make it."""
        piece = board.piece_at_coord(move.from_sq)
        if piece is None or piece.id != move.piece.id or piece.owner != Owner.ENEMY:
            return False
        return any(m.to_sq == move.to_sq and m.piercing == move.piercing
                   for m in moves_for(piece, board, effects))

    def __repr__(self):
        return f"EnemyAI({self.difficulty.value}, {self.archetype.value})"
