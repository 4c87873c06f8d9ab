"""
Scoring tables for the enemy AI: personality archetypes, difficulty knobs
and the base/safety score constants.
"""

from dataclasses import dataclass
from typing import Dict

from roguechess.enums import Archetype, Difficulty, PieceType


@dataclass(frozen=True)
class ArchetypeProfile:
    name: str
    description: str
    capture_bonus: int = 0
    defend_king_bonus: int = 0
    advance_bonus: int = 0
    pawn_advance_bonus: int = 0
    king_aggression_penalty: int = 0
    queen_aggression_penalty: int = 0
    queen_aggression_bonus: int = 0
    defense_penalty: int = 0
    fork_bonus: int = 0
    pin_bonus: int = 0
    knight_bishop_bonus: int = 0
    position_bonus: int = 0
    safety_penalty_reduction: float = 1.0  # multiplier on the safety penalty


ARCHETYPES: Dict[Archetype, ArchetypeProfile] = {
    Archetype.PASSIVE: ArchetypeProfile(
        "Passive", "Defensive play, rarely initiates attacks",
        capture_bonus=-30, defend_king_bonus=50, advance_bonus=-40),
    Archetype.SWARM: ArchetypeProfile(
        "The Swarm", "Pawns push forward relentlessly",
        pawn_advance_bonus=50, king_aggression_penalty=-60, queen_aggression_penalty=-30),
    Archetype.HUNTER: ArchetypeProfile(
        "The Hunter", "Aggressively pursues captures",
        queen_aggression_bonus=50, capture_bonus=40, defense_penalty=-25),
    Archetype.WALL: ArchetypeProfile(
        "The Wall", "Impenetrable defense",
        advance_bonus=-50, defend_king_bonus=70, capture_bonus=-30),
    Archetype.TACTICIAN: ArchetypeProfile(
        "The Tactician", "Seeks forks, pins, and positional advantage",
        fork_bonus=80, pin_bonus=70, knight_bishop_bonus=30, position_bonus=40),
    Archetype.AGGRESSOR: ArchetypeProfile(
        "The Aggressor", "All-out attack, minimal regard for safety",
        advance_bonus=60, capture_bonus=60, safety_penalty_reduction=0.4),
}


@dataclass(frozen=True)
class DifficultySettings:
    top_moves: int               # pick among the N best candidates
    card_penalty_multiplier: float
    ignore_safety_chance: float  # chance of rescoring a move without its safety penalty
    fork_pin_bonus: int
    search_depth: int            # plies including the candidate move; 1 disables lookahead
    oracle_depth: int


DIFFICULTY_SETTINGS: Dict[Difficulty, DifficultySettings] = {
    Difficulty.EASY: DifficultySettings(5, 0.5, 0.2, 0, search_depth=1, oracle_depth=8),
    Difficulty.MEDIUM: DifficultySettings(3, 0.75, 0.1, 0, search_depth=2, oracle_depth=12),
    Difficulty.HARD: DifficultySettings(1, 1.0, 0.0, 30, search_depth=2, oracle_depth=16),
    Difficulty.BRUTAL: DifficultySettings(1, 1.0, 0.0, 40, search_depth=3, oracle_depth=20),
}

# Lookahead blend: immediate score vs. searched score
IMMEDIATE_WEIGHT = 0.4
LOOKAHEAD_WEIGHT = 0.6
MAX_REPLIES = 10

# ================================================================
# Base priority scores
# ================================================================
ANY_LEGAL_MOVE = 5
CAPTURE_BASE = 100
CAPTURE_VALUES = {
    PieceType.KING: 1000,
    PieceType.QUEEN: 90,
    PieceType.ROOK: 50,
    PieceType.KNIGHT: 30,
    PieceType.BISHOP: 30,
    PieceType.PAWN: 10,
}
CHECK_PLAYER_KING = 80
THREATEN_PIECE = 50
ADVANCE_PIECE = 20
DEVELOP_PIECE = 10
ESCAPE_BONUS = 80
DEFEND_BASE = 30
DEFEND_VALUE_FACTOR = 0.5
RECAPTURE_BONUS = 40
DECOY_LURE = 90  # decoys are scored as if they were queens

# ================================================================
# Safety penalties (subtracted)
# ================================================================
MOVE_TO_ATTACKED_SQUARE = 60
MOVE_TO_UNDEFENDED_ATTACKED = 100
EXPOSE_KING_TO_CHECK = 500
REMOVE_KING_DEFENDER = 80
KING_DEFENDER_DISTANCE = 2
