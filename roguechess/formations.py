"""
Enemy formations and the battle progression of a run.

Each formation is a fixed enemy layout with an AI archetype and a difficulty
tier. A battle draws a random formation from the pool its battle number maps to.
"""

from __future__ import annotations
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from roguechess.enums import Archetype, Difficulty, Owner, PieceType
from roguechess.rules.board import Board
from roguechess.rules.piece import Piece

K, Q, R, B, N, P = (PieceType.KING, PieceType.QUEEN, PieceType.ROOK,
                    PieceType.BISHOP, PieceType.KNIGHT, PieceType.PAWN)


@dataclass
class Formation:
    id: str
    name: str
    description: str
    difficulty: int  # 1-10
    archetype: Archetype
    pieces: List[Tuple[PieceType, int, int]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "difficulty": self.difficulty,
            "archetype": self.archetype.value,
            "pieces": [{"type": t.value, "row": r, "col": c} for t, r, c in self.pieces],
        }


def _formation(id, name, description, difficulty, archetype, pieces) -> Formation:
    return Formation(id, name, description, difficulty, archetype, list(pieces))


FORMATIONS: Dict[str, Formation] = {f.id: f for f in (
    # Tutorial
    _formation("pawnWall", "The Pawn Wall", "A simple line of pawns. Good for learning.", 1, Archetype.PASSIVE,
               [(K, 0, 4), (P, 2, 2), (P, 2, 3), (P, 2, 4), (P, 2, 5)]),
    _formation("lonePawns", "Scattered Pawns", "Disorganized pawns with their King.", 1, Archetype.PASSIVE,
               [(K, 0, 4), (P, 1, 1), (P, 2, 6), (P, 3, 3)]),
    # Easy
    _formation("knightIntro", "Knight Apprentice", "A single Knight guards the King.", 2, Archetype.PASSIVE,
               [(K, 0, 4), (N, 1, 2), (P, 2, 3), (P, 2, 4), (P, 2, 5)]),
    _formation("bishopIntro", "Bishop's Blessing", "A Bishop watches over the pawns.", 2, Archetype.PASSIVE,
               [(K, 0, 4), (B, 1, 2), (P, 2, 1), (P, 2, 3), (P, 2, 5)]),
    _formation("twinKnights", "Twin Knights", "Two Knights working in tandem.", 3, Archetype.HUNTER,
               [(K, 0, 4), (N, 1, 1), (N, 1, 6), (P, 2, 3), (P, 2, 4), (P, 2, 5)]),
    _formation("bishopPair", "Bishop Pair", "Two Bishops control the diagonals.", 3, Archetype.WALL,
               [(K, 0, 4), (B, 0, 2), (B, 0, 5), (P, 1, 3), (P, 1, 4), (P, 2, 2), (P, 2, 5)]),
    # Medium
    _formation("rookTower", "The Tower", "A Rook stands guard.", 4, Archetype.WALL,
               [(K, 0, 4), (R, 0, 0), (P, 1, 0), (P, 1, 3), (P, 1, 4), (P, 1, 5)]),
    _formation("pawnSwarm", "Pawn Swarm", "Many pawns push forward relentlessly.", 4, Archetype.SWARM,
               [(K, 0, 4), (P, 1, 0), (P, 1, 1), (P, 1, 2), (P, 1, 5), (P, 1, 6), (P, 1, 7),
                (P, 2, 3), (P, 2, 4)]),
    _formation("queensGuard", "Queen's Guard", "The Queen leads a small escort.", 5, Archetype.HUNTER,
               [(K, 0, 4), (Q, 1, 3), (P, 2, 2), (P, 2, 3), (P, 2, 4), (P, 2, 5)]),
    _formation("castleDefense", "Castle Defense", "Two Rooks protect their King.", 5, Archetype.WALL,
               [(K, 0, 4), (R, 0, 0), (R, 0, 7), (P, 1, 3), (P, 1, 4), (P, 1, 5)]),
    _formation("knightSquad", "Knight Squadron", "Three Knights hunt together.", 5, Archetype.HUNTER,
               [(K, 0, 4), (N, 1, 1), (N, 1, 4), (N, 1, 6), (P, 2, 3), (P, 2, 5)]),
    # Hard
    _formation("tacticalSetup", "Tactical Formation", "A balanced force of minor pieces.", 6, Archetype.TACTICIAN,
               [(K, 0, 4), (B, 0, 2), (N, 0, 6), (N, 1, 1), (B, 1, 5), (P, 2, 3), (P, 2, 4), (P, 2, 5)]),
    _formation("aggressiveStance", "Aggressive Stance", "Forward positioned pieces ready to attack.", 6,
               Archetype.AGGRESSOR,
               [(K, 0, 4), (Q, 2, 3), (N, 3, 2), (N, 3, 5), (P, 4, 3), (P, 4, 4)]),
    _formation("royalCourt", "The Royal Court", "Queen, Rooks, and Knights serve the King.", 7, Archetype.WALL,
               [(K, 0, 4), (Q, 0, 3), (R, 0, 0), (R, 0, 7), (N, 1, 1), (N, 1, 6), (P, 2, 3), (P, 2, 4),
                (P, 2, 5)]),
    _formation("huntingPack", "Hunting Pack", "Queen and Knights coordinate attacks.", 7, Archetype.HUNTER,
               [(K, 0, 4), (Q, 1, 3), (N, 2, 1), (N, 2, 6), (N, 3, 4), (P, 1, 5), (P, 1, 6)]),
    _formation("fortress", "The Fortress", "Heavy defensive position with Rooks.", 7, Archetype.WALL,
               [(K, 0, 4), (R, 0, 0), (R, 0, 7), (B, 0, 2), (B, 0, 5), (P, 1, 1), (P, 1, 3), (P, 1, 4),
                (P, 1, 5), (P, 1, 6)]),
    # Expert
    _formation("blitzkrieg", "Blitzkrieg", "Fast-moving pieces positioned for quick strikes.", 8, Archetype.AGGRESSOR,
               [(K, 0, 4), (Q, 2, 4), (R, 1, 0), (R, 1, 7), (N, 3, 2), (N, 3, 5), (B, 2, 1), (B, 2, 6)]),
    _formation("masterTactician", "Master Tactician", "Positioned for forks, pins, and skewers.", 8,
               Archetype.TACTICIAN,
               [(K, 0, 4), (Q, 1, 3), (B, 0, 2), (B, 0, 5), (N, 2, 1), (N, 2, 6), (R, 0, 0), (P, 1, 4),
                (P, 1, 5)]),
    _formation("fullArmy", "Full Chess Army", "The complete enemy army. Good luck.", 9, Archetype.TACTICIAN,
               [(K, 0, 4), (Q, 0, 3), (R, 0, 0), (R, 0, 7), (N, 0, 1), (N, 0, 6), (B, 0, 2), (B, 0, 5)]
               + [(P, 1, c) for c in range(8)]),
    _formation("queenArmada", "Queen Armada", "Multiple Queens dominate the board.", 9, Archetype.AGGRESSOR,
               [(K, 0, 4), (Q, 0, 3), (Q, 1, 1), (Q, 1, 6), (R, 0, 0), (R, 0, 7), (P, 2, 3), (P, 2, 4)]),
    # Boss
    _formation("knightmareSquad", "Knightmare Squad", "Five Knights will haunt your dreams.", 9, Archetype.HUNTER,
               [(K, 0, 4), (N, 1, 0), (N, 1, 2), (N, 1, 4), (N, 1, 5), (N, 1, 7), (Q, 0, 3), (P, 2, 3),
                (P, 2, 5)]),
    _formation("theWall", "The Great Wall", "An impenetrable defensive formation.", 10, Archetype.WALL,
               [(K, 0, 4), (Q, 0, 3), (R, 0, 0), (R, 0, 7), (B, 0, 2), (B, 0, 5), (N, 1, 1), (N, 1, 6)]
               + [(P, 2, c) for c in range(8)]),
    _formation("grandmaster", "The Grandmaster", "Perfect positioning. Maximum difficulty.", 10, Archetype.TACTICIAN,
               [(K, 0, 6), (Q, 1, 3), (R, 0, 0), (R, 0, 5), (B, 1, 1), (B, 2, 6), (N, 2, 2), (N, 3, 4),
                (P, 1, 5), (P, 1, 6), (P, 1, 7), (P, 2, 4), (P, 3, 1), (P, 3, 3)]),
    _formation("deathSquad", "Death Squad", "All heavy pieces. No mercy.", 10, Archetype.AGGRESSOR,
               [(K, 0, 4), (Q, 1, 3), (Q, 1, 5), (R, 0, 0), (R, 0, 7), (R, 2, 2), (R, 2, 5), (B, 0, 2),
                (B, 0, 5), (N, 3, 1), (N, 3, 6)]),
)}

FORMATION_POOLS: Dict[str, List[str]] = {
    "TUTORIAL": ["pawnWall", "lonePawns"],
    "EASY": ["knightIntro", "bishopIntro", "twinKnights", "bishopPair"],
    "MEDIUM": ["rookTower", "pawnSwarm", "queensGuard", "castleDefense", "knightSquad"],
    "HARD": ["tacticalSetup", "aggressiveStance", "royalCourt", "huntingPack", "fortress"],
    "EXPERT": ["blitzkrieg", "masterTactician", "fullArmy", "queenArmada"],
    "BOSS": ["knightmareSquad", "theWall", "grandmaster", "deathSquad"],
}

# battle number -> (pool, difficulty)
BATTLE_PROGRESSION: Dict[int, Tuple[str, Difficulty]] = {
    1: ("TUTORIAL", Difficulty.HARD),
    2: ("TUTORIAL", Difficulty.HARD),
    3: ("EASY", Difficulty.HARD),
    4: ("EASY", Difficulty.HARD),
    5: ("MEDIUM", Difficulty.HARD),
    6: ("MEDIUM", Difficulty.HARD),
    7: ("HARD", Difficulty.HARD),
    8: ("HARD", Difficulty.HARD),
    9: ("EXPERT", Difficulty.HARD),
    10: ("BOSS", Difficulty.BRUTAL),
}
FINAL_BATTLE = max(BATTLE_PROGRESSION)

PLAYER_ARMY: List[Tuple[PieceType, int, int]] = [(K, 7, 4), (P, 6, 2), (P, 6, 3), (P, 6, 4), (P, 6, 5)]


def get_formation_by_id(formation_id: str) -> Optional[Formation]:
    return FORMATIONS.get(formation_id)


def get_random_formation(pool: str = "MEDIUM", rng: Optional[random.Random] = None) -> Formation:
    formation_ids = FORMATION_POOLS.get(pool, FORMATION_POOLS["MEDIUM"])
    return FORMATIONS[(rng or random).choice(formation_ids)]


def get_formation_for_battle(battle_number: int,
                             rng: Optional[random.Random] = None) -> Tuple[Formation, Difficulty]:
    """Unknown battle numbers fall back to the final battle's pool."""
    pool, difficulty = BATTLE_PROGRESSION.get(battle_number, BATTLE_PROGRESSION[FINAL_BATTLE])
    return get_random_formation(pool, rng), difficulty


def get_formations_by_difficulty(min_difficulty: int, max_difficulty: int) -> List[Formation]:
    return [f for f in FORMATIONS.values() if min_difficulty <= f.difficulty <= max_difficulty]


def setup_formation(board: Board, formation: Formation) -> List[Piece]:
    """Clear the enemy side of the board and place the formation's pieces."""
    for piece in list(board.enemy_pieces):
        board.remove_piece(piece)
    placed = []
    for piece_type, row, col in formation.pieces:
        piece = Piece.create(piece_type, Owner.ENEMY, row, col)
        board.place_piece(piece)
        placed.append(piece)
    return placed


def setup_player_army(board: Board) -> List[Piece]:
    placed = []
    for piece_type, row, col in PLAYER_ARMY:
        piece = Piece.create(piece_type, Owner.PLAYER, row, col)
        board.place_piece(piece)
        placed.append(piece)
    return placed


def new_battle_board(formation: Formation) -> Board:
    board = Board()
    setup_player_army(board)
    setup_formation(board, formation)
    return board
