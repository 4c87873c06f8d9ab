"""
Effect Tracker - Centralized registry for every timed status in a battle

One store keyed by (target, effect type) replaces the per-status maps:
- frozen, invulnerable, shielded, braced (piece ids, counts)
- phantom lifespan (summoned piece vanishes at zero)
- mind control (ownership reverts at zero)
- army of one (king moves as a queen)
- traitor's mark and traps (no countdown, removed when triggered)

Counting rule: an effect with remaining count n is active while n >= 1.
tick() runs once per completed enemy turn, decrements every counted effect
and removes those that reach zero. Expired effects are handed back to the
caller, which applies their consequences (removing phantoms, reverting
control) against the board.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from roguechess.enums import EffectType
from roguechess.rules.coordinate import Coordinate

logger = logging.getLogger(__name__)

# Effects that stop a piece from moving
_IMMOBILIZING = (EffectType.FROZEN, EffectType.INVULNERABLE)
# Effects that each veto an incoming capture
_PROTECTIVE = (EffectType.SHIELDED, EffectType.BRACED, EffectType.INVULNERABLE)
# Effects keyed by square rather than piece id
_SQUARE_EFFECTS = (EffectType.TRAP,)


@dataclass
class Effect:
    """Represents a single timed effect in the game"""

    effect_type: EffectType
    target: str  # piece id, or "row,col" for square effects
    remaining: Optional[int]  # None = lasts until removed explicitly
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> Tuple[str, EffectType]:
        return (self.target, self.effect_type)

    def is_active(self) -> bool:
        return self.remaining is None or self.remaining >= 1


class EffectTracker:
    """
    Usage:
        tracker = EffectTracker()
        tracker.add_effect(EffectType.FROZEN, piece.id, 1)
        tracker.is_actionable(piece.id)   # False until the next tick
        expired = tracker.tick()          # after the enemy move resolves
    """

    def __init__(self):
        self.effects: Dict[Tuple[str, EffectType], Effect] = {}

    # ================================================================
    # Mutation
    # ================================================================
    def add_effect(self, effect_type: EffectType, target: Any, duration: Optional[int] = None,
                   metadata: Optional[Dict[str, Any]] = None) -> Effect:
        """
        Set an effect on a target, replacing any existing entry of the same kind.

        Args:
            effect_type: Type of effect
            target: piece id, or a Coordinate for square effects
            duration: remaining count; None for effects without a countdown
            metadata: Optional extra data (e.g. original owner for mind control)
        """
        if duration is not None and duration < 1:
            raise ValueError(f"duration must be >= 1, got {duration}")
        effect = Effect(
            effect_type=effect_type,
            target=self._target_key(target),
            remaining=duration,
            metadata=metadata or {},
        )
        self.effects[effect.key] = effect
        logger.info(f"Effect set: {effect_type.value} on {effect.target} ({duration})")
        return effect

    def remove_effect(self, effect_type: EffectType, target: Any) -> bool:
        """Remove an effect. Returns True if found and removed."""
        return self.effects.pop((self._target_key(target), effect_type), None) is not None

    def remove_target(self, target: Any) -> List[Effect]:
        """Drop every effect on a target (piece captured, exiled, replaced)."""
        key = self._target_key(target)
        removed = [e for e in self.effects.values() if e.target == key]
        for effect in removed:
            del self.effects[effect.key]
        return removed

    def tick(self) -> List[Effect]:
        """
        Decrement every counted effect once and remove those reaching zero.
        Returns the effects that expired on this tick.
        """
        expired: List[Effect] = []
        for key, effect in list(self.effects.items()):
            if effect.remaining is None:
                continue
            effect.remaining -= 1
            if effect.remaining <= 0:
                expired.append(effect)
                del self.effects[key]
        for effect in expired:
            logger.info(f"Effect expired: {effect.effect_type.value} on {effect.target}")
        return expired

    def prune(self, live_targets: Iterable[str]) -> List[Effect]:
        """Drop piece effects whose target no longer exists on the board."""
        live = set(live_targets)
        orphans = [e for e in self.effects.values()
                   if e.effect_type not in _SQUARE_EFFECTS and e.target not in live]
        for effect in orphans:
            logger.warning(f"Dropping orphaned effect {effect.effect_type.value} on {effect.target}")
            del self.effects[effect.key]
        return orphans

    def clear_all(self):
        """Remove all effects (battle start/end)"""
        self.effects.clear()

    # ================================================================
    # Queries
    # ================================================================
    def get_effect(self, effect_type: EffectType, target: Any) -> Optional[Effect]:
        return self.effects.get((self._target_key(target), effect_type))

    def has_effect(self, effect_type: EffectType, target: Any) -> bool:
        effect = self.get_effect(effect_type, target)
        return effect is not None and effect.is_active()

    def remaining(self, effect_type: EffectType, target: Any) -> int:
        effect = self.get_effect(effect_type, target)
        if effect is None:
            return 0
        return effect.remaining if effect.remaining is not None else -1

    def get_effects_by_type(self, effect_type: EffectType) -> List[Effect]:
        return [e for e in self.effects.values() if e.effect_type == effect_type]

    def get_effects_by_target(self, target: Any) -> List[Effect]:
        key = self._target_key(target)
        return [e for e in self.effects.values() if e.target == key]

    def is_actionable(self, piece_id: str) -> bool:
        """False while the piece is frozen or invulnerable."""
        return not any(self.has_effect(t, piece_id) for t in _IMMOBILIZING)

    def is_capture_immune(self, piece_id: str) -> bool:
        """True if any protective effect vetoes a capture of this piece."""
        return any(self.has_effect(t, piece_id) for t in _PROTECTIVE)

    def is_trap(self, coord: Coordinate) -> bool:
        return self.has_effect(EffectType.TRAP, coord)

    def trap_squares(self) -> List[Coordinate]:
        squares = []
        for effect in self.get_effects_by_type(EffectType.TRAP):
            row, col = effect.target.split(",")
            squares.append(Coordinate(int(row), int(col)))
        return squares

    # ================================================================
    # Snapshots
    # ================================================================
    def copy(self) -> "EffectTracker":
        clone = EffectTracker()
        clone.effects = copy.deepcopy(self.effects)
        return clone

    def to_dict(self) -> Dict:
        """Serialize all effects for the UI, grouped by effect type"""
        grouped: Dict[str, Dict[str, Any]] = {}
        for effect in self.effects.values():
            grouped.setdefault(effect.effect_type.value, {})[effect.target] = (
                effect.remaining if effect.remaining is not None else True
            )
        return grouped

    def __len__(self):
        return len(self.effects)

    @staticmethod
    def _target_key(target: Any) -> str:
        if isinstance(target, Coordinate):
            return target.key()
        if isinstance(target, tuple):
            return f"{target[0]},{target[1]}"
        return str(target)
