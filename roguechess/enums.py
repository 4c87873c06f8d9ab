from enum import Enum


class EffectType(Enum):
    """Kinds of timed effects held by the EffectTracker"""
    FROZEN = "frozen"
    INVULNERABLE = "invulnerable"
    SHIELDED = "shielded"
    BRACED = "braced"
    PHANTOM = "phantom"
    MIND_CONTROLLED = "mind_controlled"
    ARMY_OF_ONE = "army_of_one"
    TRAITOR_MARK = "traitor_mark"
    TRAP = "trap"


class PieceType(Enum):
    KING = "king"
    QUEEN = "queen"
    ROOK = "rook"
    BISHOP = "bishop"
    KNIGHT = "knight"
    PAWN = "pawn"


class Owner(Enum):
    PLAYER = "player"
    ENEMY = "enemy"

    @property
    def opponent(self) -> "Owner":
        return Owner.ENEMY if self is Owner.PLAYER else Owner.PLAYER


class Targeting(Enum):
    NONE = "none"
    OWN_PIECE = "own_piece"
    ENEMY_PIECE = "enemy_piece"
    ANY_PIECE = "any_piece"
    EMPTY_SQUARE = "empty_square"
    TWO_PIECES = "two_pieces"
    ADJACENT_ENEMY = "adjacent_enemy"


class CardRarity(Enum):
    COMMON = "COMMON"
    UNCOMMON = "UNCOMMON"
    RARE = "RARE"
    LEGENDARY = "LEGENDARY"

    @property
    def xp_cost(self) -> int:
        return {"COMMON": 25, "UNCOMMON": 40, "RARE": 60, "LEGENDARY": 100}[self.value]


class GameStatus(Enum):
    PLAYER_TURN = "PLAYER_TURN"
    ENEMY_TURN = "ENEMY_TURN"
    VICTORY = "VICTORY"
    DEFEAT = "DEFEAT"


class Difficulty(Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"
    BRUTAL = "BRUTAL"


class Archetype(Enum):
    PASSIVE = "PASSIVE"
    SWARM = "SWARM"
    HUNTER = "HUNTER"
    WALL = "WALL"
    TACTICIAN = "TACTICIAN"
    AGGRESSOR = "AGGRESSOR"


class BoardOrientation(Enum):
    """How internal rows/cols map onto the oracle's ranks/files"""
    ENEMY_AS_BLACK = "ENEMY_AS_BLACK"  # row 0 = rank 8, col 0 = file a
    ENEMY_AS_WHITE = "ENEMY_AS_WHITE"  # row 0 = rank 1, col 0 = file h
