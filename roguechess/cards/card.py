from __future__ import annotations
from abc import ABC, abstractmethod  # Abstract Base Class tools
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Type

from roguechess.cards.card_state import (
    Armed,
    AwaitingCapturedPieceChoice,
    AwaitingDirection,
    AwaitingEmptySquare,
    AwaitingPromotionChoice,
    CardState,
)
from roguechess.enums import CardRarity, EffectType, Owner, PieceType, Targeting
from roguechess.rules.coordinate import Coordinate
from roguechess.rules.movegen import ALL_DIRECTIONS
from roguechess.rules.piece import PIECE_RANK

if TYPE_CHECKING:
    from roguechess.rules.piece import Piece
    from roguechess.services.game_state import GameSession


class Card(ABC):
    """
    Abstract Base Class for a cheat card.

    A card declares how it is targeted and what it does. Multi-step cards
    return a follow-up state from `follow_up` until every target is known;
    `apply_effect` then mutates the session and reports (success, message).
    A failed apply is a rejection: nothing changes and the card stays in hand.
    """

    targeting: Targeting = Targeting.NONE
    is_burn: bool = False
    ends_turn: bool = True
    # Two-piece cards only
    requires_adjacent: bool = False
    requires_friendly: bool = False

    def __init__(self, id: str, name: str, description: str, rarity: CardRarity):
        self.id = id
        self.name = name
        self.description = description
        self.rarity = rarity

    # --- Targeting hooks ---
    def piece_filter(self, piece: Piece) -> bool:
        """Extra restriction on which pieces may be targeted."""
        return True

    def accepts(self, session: GameSession, piece: Piece, target: Dict[str, Any]) -> bool:
        return self.piece_filter(piece)

    def can_play(self, session: GameSession) -> Tuple[bool, str]:
        return True, ""

    def follow_up(self, session: GameSession, target: Dict[str, Any]) -> Optional[CardState]:
        """Return the next targeting state, or None when the card can resolve."""
        return None

    @abstractmethod
    def apply_effect(self, session: GameSession, target: Dict[str, Any]) -> Tuple[bool, str]:
        pass

    # --- Dictionary for frontend/UI ---
    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "rarity": self.rarity.value,
            "xpCost": self.rarity.xp_cost,
            "targeting": self.targeting.value,
            "isBurn": self.is_burn,
        }

    def __repr__(self):
        return f"{type(self).__name__}({self.id!r})"


class ArmingCard(Card):
    """A card that boosts one piece's next move, then finishes with that move."""

    targeting = Targeting.OWN_PIECE

    def follow_up(self, session, target):
        return Armed(piece=target["piece"])

    @abstractmethod
    def arm(self, session: GameSession, piece: Piece) -> None:
        pass

    @abstractmethod
    def disarm(self, session: GameSession, piece: Piece) -> None:
        pass

    def apply_effect(self, session, target):
        return True, ""


def _player_pawn_backward(piece: Piece) -> int:
    return -piece.forward


# ============================================================================
# COMMON
# ============================================================================

class Nudge(Card):
    targeting = Targeting.ANY_PIECE

    def __init__(self):
        super().__init__("nudge", "Nudge", "Move any piece 1 square in any direction.", CardRarity.COMMON)

    def follow_up(self, session, target):
        if "direction" not in target:
            return AwaitingDirection(piece=target["piece"], directions=list(ALL_DIRECTIONS))
        return None

    def apply_effect(self, session, target):
        piece = target["piece"]
        dr, dc = target["direction"]
        dest = Coordinate(piece.row + dr, piece.col + dc)
        if not session.board.is_empty(dest):
            return False, "Cannot move there!"
        session.board.relocate(piece, dest.row, dest.col)
        session.trigger_trap(piece)
        return True, f"{piece.type.value} nudged!"


class Stall(Card):
    def __init__(self):
        super().__init__("stall", "Stall", "The enemy skips their next turn.", CardRarity.COMMON)

    def apply_effect(self, session, target):
        session.flags.enemy_skips_turn = True
        return True, "The enemy will skip their next turn!"


class Scout(Card):
    def __init__(self):
        super().__init__("scout", "Scout", "Reveal enemy intent for the next 2 moves.", CardRarity.COMMON)

    def apply_effect(self, session, target):
        session.flags.scout_until_turn = session.turn_number + 2
        return True, "Enemy intent revealed for 2 turns!"


class Shield(Card):
    targeting = Targeting.OWN_PIECE

    def __init__(self):
        super().__init__("shield", "Shield", "Target piece cannot be captured this turn.", CardRarity.COMMON)

    def apply_effect(self, session, target):
        piece = target["piece"]
        session.effects.add_effect(EffectType.SHIELDED, piece.id, 1)
        return True, f"{piece.type.value} shielded for this turn!"


class Dash(ArmingCard):
    EXTRA_RANGE = 2

    def __init__(self):
        super().__init__("dash", "Dash", "Your piece moves 2 extra squares in its direction.", CardRarity.COMMON)

    def arm(self, session, piece):
        session.player_modifiers.piece_range_bonus[piece.id] = self.EXTRA_RANGE

    def disarm(self, session, piece):
        session.player_modifiers.piece_range_bonus.pop(piece.id, None)


class Backstep(Card):
    targeting = Targeting.OWN_PIECE

    def __init__(self):
        super().__init__("backstep", "Backstep", "Move one of your pieces 1 square backward.", CardRarity.COMMON)

    def apply_effect(self, session, target):
        piece = target["piece"]
        dest = Coordinate(piece.row + _player_pawn_backward(piece), piece.col)
        if not session.board.is_empty(dest):
            return False, "Cannot move there!"
        session.board.relocate(piece, dest.row, dest.col)
        session.trigger_trap(piece)
        return True, f"{piece.type.value} stepped back!"


class Stumble(Card):
    targeting = Targeting.ENEMY_PIECE

    def __init__(self):
        super().__init__("stumble", "Stumble", "Enemy piece moves 1 random square.", CardRarity.COMMON)

    def apply_effect(self, session, target):
        piece = target["piece"]
        options = [sq for sq in (piece.position.offset(dr, dc) for dr, dc in ALL_DIRECTIONS)
                   if sq is not None and session.board.is_empty(sq)]
        if not options:
            return False, "Enemy cannot stumble anywhere!"
        dest = session.rng.choice(options)
        session.board.relocate(piece, dest.row, dest.col)
        session.trigger_trap(piece)
        return True, f"{piece.type.value} stumbled!"


class Feint(Card):
    targeting = Targeting.TWO_PIECES
    requires_adjacent = True
    requires_friendly = True

    def __init__(self):
        super().__init__("feint", "Feint", "Swap positions of two adjacent friendly pieces.", CardRarity.COMMON)

    def apply_effect(self, session, target):
        first, second = target["pieces"]
        session.board.swap_positions(first, second)
        return True, "Pieces swapped positions!"


class Brace(Card):
    def __init__(self):
        super().__init__("brace", "Brace", "Your King cannot move but cannot be captured.", CardRarity.COMMON)

    def can_play(self, session):
        if session.board.king_of(Owner.PLAYER) is None:
            return False, "You have no King to brace!"
        return True, ""

    def apply_effect(self, session, target):
        king = session.board.king_of(Owner.PLAYER)
        session.effects.add_effect(EffectType.BRACED, king.id, 1)
        session.effects.add_effect(EffectType.FROZEN, king.id, 1)
        return True, "King is braced and cannot be easily attacked!"


class Sidestep(Card):
    targeting = Targeting.OWN_PIECE

    def __init__(self):
        super().__init__("sidestep", "Sidestep", "Move your piece 1 square left or right.", CardRarity.COMMON)

    def follow_up(self, session, target):
        if "direction" not in target:
            return AwaitingDirection(piece=target["piece"], directions=[(0, -1), (0, 1)])
        return None

    def apply_effect(self, session, target):
        piece = target["piece"]
        dr, dc = target["direction"]
        dest = Coordinate(piece.row + dr, piece.col + dc)
        if not session.board.is_empty(dest):
            return False, "Cannot move there!"
        session.board.relocate(piece, dest.row, dest.col)
        session.trigger_trap(piece)
        return True, f"{piece.type.value} sidestepped!"


class IDidntSeeThat(Card):
    def __init__(self):
        super().__init__("iDidntSeeThat", "I Didn't See That",
                         "Undo your last move (cannot undo captures).", CardRarity.COMMON)

    def apply_effect(self, session, target):
        return session.undo_last_player_move()


# ============================================================================
# UNCOMMON
# ============================================================================

class Freeze(Card):
    targeting = Targeting.ENEMY_PIECE

    def __init__(self):
        super().__init__("freeze", "Freeze", "Freeze an enemy piece for its next turn.", CardRarity.UNCOMMON)

    def apply_effect(self, session, target):
        piece = target["piece"]
        session.effects.add_effect(EffectType.FROZEN, piece.id, 1)
        return True, f"{piece.type.value} frozen!"


class Teleport(Card):
    targeting = Targeting.OWN_PIECE

    def __init__(self):
        super().__init__("teleport", "Teleport", "Move your piece to any empty square.", CardRarity.UNCOMMON)

    def follow_up(self, session, target):
        if "square" not in target:
            return AwaitingEmptySquare()
        return None

    def apply_effect(self, session, target):
        piece, dest = target["piece"], target["square"]
        session.board.relocate(piece, dest.row, dest.col)
        session.trigger_trap(piece)
        return True, f"{piece.type.value} teleported!"


class Swap(Card):
    targeting = Targeting.TWO_PIECES

    def __init__(self):
        super().__init__("swap", "Swap", "Swap positions of any two pieces on the board.", CardRarity.UNCOMMON)

    def apply_effect(self, session, target):
        first, second = target["pieces"]
        session.board.swap_positions(first, second)
        return True, "Pieces swapped!"


class Promote(Card):
    targeting = Targeting.OWN_PIECE
    OPTIONS = ["knight", "bishop"]

    def __init__(self):
        super().__init__("promote", "Promote", "Upgrade a Pawn to a Knight or Bishop.", CardRarity.UNCOMMON)

    def piece_filter(self, piece):
        return piece.type == PieceType.PAWN

    def follow_up(self, session, target):
        if "choice" not in target:
            return AwaitingPromotionChoice(piece=target["piece"], options=list(self.OPTIONS))
        return None

    def apply_effect(self, session, target):
        choice = target["choice"]
        if choice not in self.OPTIONS:
            return False, "Choose Knight or Bishop."
        target["piece"].type = PieceType(choice)
        return True, f"Pawn promoted to {choice}!"


class Rally(Card):
    def __init__(self):
        super().__init__("rally", "Rally", "All your pieces gain +1 movement range this turn.", CardRarity.UNCOMMON)

    def apply_effect(self, session, target):
        session.player_modifiers.range_bonus += 1
        return True, "All pieces have extended movement this turn!"


class IllegalCastle(Card):
    targeting = Targeting.OWN_PIECE

    def __init__(self):
        super().__init__("illegalCastle", "Illegal Castle",
                         "Swap King with any friendly piece regardless of position.", CardRarity.UNCOMMON)

    def piece_filter(self, piece):
        return piece.type != PieceType.KING

    def apply_effect(self, session, target):
        king = session.board.king_of(Owner.PLAYER)
        if king is None:
            return False, "You have no King!"
        session.board.swap_positions(king, target["piece"])
        return True, "Illegal castle performed!"


class GhostWalk(ArmingCard):
    def __init__(self):
        super().__init__("ghostWalk", "Ghost Walk", "Your piece can move through enemies this turn.",
                         CardRarity.UNCOMMON)

    def arm(self, session, piece):
        session.player_modifiers.ghost_walk.add(piece.id)

    def disarm(self, session, piece):
        session.player_modifiers.ghost_walk.discard(piece.id)


class KnightsTour(Card):
    ends_turn = False

    def __init__(self):
        super().__init__("knightsTour", "Knight's Tour", "All pieces can move like Knights this turn.",
                         CardRarity.UNCOMMON)

    def apply_effect(self, session, target):
        session.player_modifiers.knights_tour = True
        return True, "Knight's Tour active! All pieces can move like Knights."


class Decoy(Card):
    targeting = Targeting.EMPTY_SQUARE

    def __init__(self):
        super().__init__("decoy", "Decoy", "Place a fake piece that enemies will target.", CardRarity.UNCOMMON)

    def apply_effect(self, session, target):
        session.summon(PieceType.PAWN, Owner.PLAYER, target["square"], tag="decoy", is_decoy=True)
        return True, "Decoy placed! Enemies will be drawn to it."


class Ricochet(ArmingCard):
    def __init__(self):
        super().__init__("ricochet", "Ricochet", "Ranged piece captures, then can capture again if in range.",
                         CardRarity.UNCOMMON)

    def piece_filter(self, piece):
        return piece.type in (PieceType.QUEEN, PieceType.ROOK, PieceType.BISHOP)

    def arm(self, session, piece):
        session.flags.ricochet_piece = piece.id

    def disarm(self, session, piece):
        session.flags.ricochet_piece = None


class LoadedDice(Card):
    def __init__(self):
        super().__init__("loadedDice", "Loaded Dice", "Next enemy move has 50% chance to fail.",
                         CardRarity.UNCOMMON)

    def apply_effect(self, session, target):
        session.flags.loaded_dice = True
        return True, "Loaded Dice active! Next enemy move may fail."


class Paparazzi(Card):
    def __init__(self):
        super().__init__("paparazzi", "Paparazzi", "Reveal all enemy piece move ranges for 1 turn.",
                         CardRarity.UNCOMMON)

    def apply_effect(self, session, target):
        session.flags.paparazzi_until_turn = session.turn_number + 1
        return True, "All enemy moves revealed!"


class Caltrops(Card):
    targeting = Targeting.EMPTY_SQUARE

    def __init__(self):
        super().__init__("caltrops", "Caltrops", "Place a lethal trap on an empty square.", CardRarity.UNCOMMON)

    def apply_effect(self, session, target):
        square = target["square"]
        session.effects.add_effect(EffectType.TRAP, square)
        return True, f"Caltrops placed at {square.to_algebraic()}!"


# ============================================================================
# RARE
# ============================================================================

class Clone(Card):
    targeting = Targeting.OWN_PIECE

    def __init__(self):
        super().__init__("clone", "Clone", "Create a copy of one of your pieces (not King).", CardRarity.RARE)

    def piece_filter(self, piece):
        return piece.type != PieceType.KING

    def accepts(self, session, piece, target):
        return self.piece_filter(piece) and bool(self._adjacent_empty(session, piece))

    def follow_up(self, session, target):
        if "square" not in target:
            return AwaitingEmptySquare(allowed=self._adjacent_empty(session, target["piece"]))
        return None

    def apply_effect(self, session, target):
        original = target["piece"]
        session.summon(original.type, Owner.PLAYER, target["square"], tag="clone")
        return True, f"{original.type.value} cloned!"

    @staticmethod
    def _adjacent_empty(session, piece):
        return {sq for sq in (piece.position.offset(dr, dc) for dr, dc in ALL_DIRECTIONS)
                if sq is not None and session.board.is_empty(sq)}


class Kidnap(Card):
    targeting = Targeting.ENEMY_PIECE

    def __init__(self):
        super().__init__("kidnap", "Kidnap", "Move an enemy piece to any empty square.", CardRarity.RARE)

    def piece_filter(self, piece):
        return piece.type != PieceType.KING

    def follow_up(self, session, target):
        if "square" not in target:
            return AwaitingEmptySquare()
        return None

    def apply_effect(self, session, target):
        piece, dest = target["piece"], target["square"]
        session.board.relocate(piece, dest.row, dest.col)
        session.trigger_trap(piece)
        return True, f"{piece.type.value} kidnapped!"


class Resurrect(Card):
    def __init__(self):
        super().__init__("resurrect", "Resurrect", "Bring back a captured piece to an empty square.",
                         CardRarity.RARE)

    def can_play(self, session):
        if not session.captured_player_pieces:
            return False, "No pieces to resurrect!"
        return True, ""

    def follow_up(self, session, target):
        if "captured" not in target:
            return AwaitingCapturedPieceChoice(options=list(session.captured_player_pieces))
        if "square" not in target:
            return AwaitingEmptySquare()
        return None

    def apply_effect(self, session, target):
        fallen = target["captured"]
        if fallen not in session.captured_player_pieces:
            return False, "That piece cannot be resurrected."
        session.captured_player_pieces.remove(fallen)
        session.summon(fallen.type, Owner.PLAYER, target["square"], tag="risen")
        return True, f"{fallen.type.value} resurrected!"


class QueensGambit(Card):
    targeting = Targeting.TWO_PIECES
    requires_friendly = True
    EXTRA_MOVES = 2

    def __init__(self):
        super().__init__("queensGambit", "Queen's Gambit",
                         "Sacrifice a piece to give another piece 2 extra moves.", CardRarity.RARE)

    def accepts(self, session, piece, target):
        # The first pick is the sacrifice
        if "first" not in target:
            return piece.type != PieceType.KING
        return True

    def apply_effect(self, session, target):
        sacrifice, recipient = target["pieces"]
        if sacrifice.type == PieceType.KING:
            return False, "Cannot sacrifice the King!"
        session.remove_from_game(sacrifice)
        session.grant_extra_moves(recipient, self.EXTRA_MOVES)
        return True, f"{sacrifice.type.value} sacrificed! {recipient.type.value} has 2 extra moves!"


class Sabotage(Card):
    targeting = Targeting.ENEMY_PIECE

    def __init__(self):
        super().__init__("sabotage", "Sabotage",
                         "Disable an enemy piece type for 1 turn (all pieces of that type freeze).", CardRarity.RARE)

    def apply_effect(self, session, target):
        piece_type = target["piece"].type
        for enemy in session.board.enemy_pieces:
            if enemy.type == piece_type:
                session.effects.add_effect(EffectType.FROZEN, enemy.id, 1)
        return True, f"All enemy {piece_type.value}s frozen!"


class Zugzwang(Card):
    def __init__(self):
        super().__init__("zugzwang", "Zugzwang", "Enemy must move their King next turn.", CardRarity.RARE)

    def apply_effect(self, session, target):
        session.flags.zugzwang = True
        return True, "Zugzwang! Enemy King must move next turn."


class PhantomQueen(Card):
    targeting = Targeting.EMPTY_SQUARE
    LIFESPAN = 3

    def __init__(self):
        super().__init__("phantomQueen", "Phantom Queen", "Summon a Queen that lasts 3 turns then vanishes.",
                         CardRarity.RARE)

    def apply_effect(self, session, target):
        phantom = session.summon(PieceType.QUEEN, Owner.PLAYER, target["square"], tag="phantom")
        if phantom is None:
            return True, "The Phantom Queen stepped on caltrops and vanished."
        session.effects.add_effect(EffectType.PHANTOM, phantom.id, self.LIFESPAN)
        return True, "Phantom Queen summoned! She vanishes in 3 turns."


class DoubleAgent(Card):
    targeting = Targeting.ENEMY_PIECE

    def __init__(self):
        super().__init__("doubleAgent", "Double Agent", "Convert an enemy Pawn to your side.", CardRarity.RARE)

    def piece_filter(self, piece):
        return piece.type == PieceType.PAWN

    def apply_effect(self, session, target):
        piece = target["piece"]
        session.board.change_owner(piece, Owner.PLAYER)
        return True, "Enemy pawn converted to your side!"


class ChainReaction(Card):
    ends_turn = False

    def __init__(self):
        super().__init__("chainReaction", "Chain Reaction",
                         "Capture triggers explosion - adjacent enemies are destroyed.", CardRarity.RARE)

    def apply_effect(self, session, target):
        session.flags.chain_reaction = True
        return True, "Chain Reaction active! Your next capture explodes!"


class TraitorsMark(Card):
    targeting = Targeting.ENEMY_PIECE

    def __init__(self):
        super().__init__("traitorsMark", "Traitor's Mark", "Mark an enemy - if it captures, it joins your side.",
                         CardRarity.RARE)

    def apply_effect(self, session, target):
        piece = target["piece"]
        session.effects.add_effect(EffectType.TRAITOR_MARK, piece.id)
        return True, f"{piece.type.value} marked! If it captures, it betrays."


class UnionStrike(Card):
    targeting = Targeting.ENEMY_PIECE
    MIN_ATTACKERS = 2

    def __init__(self):
        super().__init__("unionStrike", "Union Strike", "All your pieces attack the same square simultaneously.",
                         CardRarity.RARE)

    def apply_effect(self, session, target):
        piece = target["piece"]
        attackers = [p for p in session.board.player_pieces
                     if any(m.to_sq == piece.position for m in session.player_moves_for(p))]
        if len(attackers) < self.MIN_ATTACKERS:
            return False, "Need 2+ pieces that can reach the target!"
        if not session.capture_piece(piece, attackers[0]):
            return True, f"Union Strike blocked! {piece.type.value} is protected."
        return True, f"Union Strike! {piece.type.value} captured by {len(attackers)} pieces!"


class DiamondForm(Card):
    targeting = Targeting.OWN_PIECE

    def __init__(self):
        super().__init__("divineShield", "Diamond Form",
                         "Target piece becomes Invulnerable but Cannot Move for 1 round.", CardRarity.RARE)

    def apply_effect(self, session, target):
        piece = target["piece"]
        session.effects.add_effect(EffectType.INVULNERABLE, piece.id, 1)
        return True, f"{piece.type.value} enters Diamond Form!"


class Snipe(Card):
    ends_turn = False

    def __init__(self):
        super().__init__("snipe", "Snipe", "Ranged pieces can capture through one obstacle (not King).",
                         CardRarity.RARE)

    def apply_effect(self, session, target):
        session.player_modifiers.piercing = True
        return True, "Snipe active! Ranged pieces can shoot through obstacles."


class ShieldBash(Card):
    targeting = Targeting.ADJACENT_ENEMY

    def __init__(self):
        super().__init__("shieldBash", "Shield Bash", "Push an adjacent enemy 1 tile back. Kills if they hit a wall.",
                         CardRarity.RARE)

    def apply_effect(self, session, target):
        victim = target["piece"]
        pusher = next((p for p in session.board.player_pieces
                       if p.position.chebyshev(victim.position) == 1), None)
        if pusher is None:
            return False, "No adjacent piece to push from!"

        dr = (victim.row > pusher.row) - (victim.row < pusher.row)
        dc = (victim.col > pusher.col) - (victim.col < pusher.col)
        dest = Coordinate(victim.row + dr, victim.col + dc)

        if not dest.in_bounds() or not session.board.is_empty(dest):
            if session.capture_piece(victim, pusher):
                return True, f"{victim.type.value} crushed!"
            return True, f"{victim.type.value} is protected and holds its ground."

        session.board.relocate(victim, dest.row, dest.col)
        if session.trigger_trap(victim):
            return True, f"{victim.type.value} pushed into trap!"
        return True, f"{victim.type.value} pushed back!"


# ============================================================================
# LEGENDARY
# ============================================================================

class MindControl(Card):
    targeting = Targeting.ENEMY_PIECE
    ends_turn = False
    DURATION = 1

    def __init__(self):
        super().__init__("mindControl", "Mind Control", "Take control of an enemy piece for 1 turn.",
                         CardRarity.LEGENDARY)

    def piece_filter(self, piece):
        return piece.type != PieceType.KING

    def apply_effect(self, session, target):
        piece = target["piece"]
        session.board.change_owner(piece, Owner.PLAYER)
        session.effects.add_effect(EffectType.MIND_CONTROLLED, piece.id, self.DURATION,
                                   metadata={"original_owner": Owner.ENEMY.value})
        return True, f"{piece.type.value} is under your control!"


class CheckmateDenied(Card):
    is_burn = True

    def __init__(self):
        super().__init__("checkmateDenied", "Checkmate Denied",
                         "If your King would be captured, it survives once.", CardRarity.LEGENDARY)

    def apply_effect(self, session, target):
        session.flags.checkmate_denied = True
        return True, "Checkmate Denied! Your King survives one lethal hit."


class Demotion(Card):
    targeting = Targeting.ENEMY_PIECE

    def __init__(self):
        super().__init__("demotion", "Demotion", "Demote an enemy Queen to a Pawn.", CardRarity.LEGENDARY)

    def piece_filter(self, piece):
        return piece.type == PieceType.QUEEN

    def apply_effect(self, session, target):
        target["piece"].type = PieceType.PAWN
        return True, "Enemy Queen demoted to Pawn!"


class ArmyOfOne(Card):
    DURATION = 3

    def __init__(self):
        super().__init__("armyOfOne", "Army of One", "Your King moves like a Queen for 3 turns.",
                         CardRarity.LEGENDARY)

    def can_play(self, session):
        if session.board.king_of(Owner.PLAYER) is None:
            return False, "You have no King!"
        return True, ""

    def apply_effect(self, session, target):
        king = session.board.king_of(Owner.PLAYER)
        session.effects.add_effect(EffectType.ARMY_OF_ONE, king.id, self.DURATION)
        return True, "Your King now moves like a Queen for 3 turns!"


class Rewind(Card):
    is_burn = True
    ends_turn = False
    TURNS = 2

    def __init__(self):
        super().__init__("rewind", "Rewind", "Undo the last 2 complete turns.", CardRarity.LEGENDARY)

    def can_play(self, session):
        if not session.can_rewind(self.TURNS):
            return False, "Not enough history to rewind!"
        return True, ""

    def apply_effect(self, session, target):
        if not session.rewind(self.TURNS):
            return False, "Not enough history to rewind!"
        return True, "Time rewound! 2 turns undone."


class ParallelPlay(Card):
    ends_turn = False

    def __init__(self):
        super().__init__("parallelPlay", "Parallel Play", "Move two pieces this turn.", CardRarity.LEGENDARY)

    def apply_effect(self, session, target):
        session.flags.moves_allowed = 2
        return True, "Parallel Play! Move two pieces this turn."


class Exile(Card):
    targeting = Targeting.ENEMY_PIECE
    is_burn = True

    def __init__(self):
        super().__init__("exile", "Exile", "Remove an enemy piece from the game permanently (not King).",
                         CardRarity.LEGENDARY)

    def piece_filter(self, piece):
        return piece.type != PieceType.KING

    def apply_effect(self, session, target):
        piece = target["piece"]
        session.remove_from_game(piece)
        return True, f"{piece.type.value} exiled from the game!"


class Usurper(Card):
    def __init__(self):
        super().__init__("usurper", "Usurper", "Your strongest piece becomes a King. Original King demotes.",
                         CardRarity.LEGENDARY)

    def can_play(self, session):
        if self._strongest(session) is None:
            return False, "No piece can take the crown!"
        return True, ""

    def apply_effect(self, session, target):
        strongest = self._strongest(session)
        if strongest is None:
            return False, "No piece can take the crown!"
        king = session.board.king_of(Owner.PLAYER)
        if king is not None:
            king.type = PieceType.PAWN
            session.effects.remove_effect(EffectType.ARMY_OF_ONE, king.id)
        old_type = strongest.type
        strongest.type = PieceType.KING
        return True, f"{old_type.value} is now the King! Old King demoted."

    @staticmethod
    def _strongest(session) -> Optional[Piece]:
        best, best_rank = None, 0
        for piece in session.board.player_pieces:
            rank = PIECE_RANK[piece.type]
            if piece.type != PieceType.KING and rank > best_rank:
                best, best_rank = piece, rank
        return best


class PocketDimension(Card):
    targeting = Targeting.OWN_PIECE

    def __init__(self):
        super().__init__("pocketDimension", "Pocket Dimension",
                         "Store a piece safely. Redeploy it anywhere next turn.", CardRarity.LEGENDARY)

    def piece_filter(self, piece):
        return piece.type != PieceType.KING

    def can_play(self, session):
        if session.pocketed_piece is not None:
            return False, "The pocket dimension is already occupied!"
        return True, ""

    def apply_effect(self, session, target):
        piece = target["piece"]
        session.pocket_piece(piece)
        return True, f"{piece.type.value} stored in pocket dimension!"


class TheBluff(Card):
    def __init__(self):
        super().__init__("theBluff", "The Bluff", "Enemy sees fake intent - real move is hidden.",
                         CardRarity.LEGENDARY)

    def apply_effect(self, session, target):
        session.flags.bluff_until_turn = session.turn_number + 1
        return True, "The Bluff active! Enemy sees false intent."


class ActuallyImTheKing(Card):
    is_burn = True

    def __init__(self):
        super().__init__("actuallyImTheKing", "Actually I'm the King Now", "Swap your King with enemy King positions.",
                         CardRarity.LEGENDARY)

    def can_play(self, session):
        if session.board.king_of(Owner.PLAYER) is None or session.board.king_of(Owner.ENEMY) is None:
            return False, "Both Kings must be on the board!"
        return True, ""

    def apply_effect(self, session, target):
        session.board.swap_positions(session.board.king_of(Owner.PLAYER), session.board.king_of(Owner.ENEMY))
        return True, "Kings swapped positions!"


# ============================================================================
# REGISTRY
# ============================================================================

CARD_REGISTRY: Dict[str, Type[Card]] = {
    cls().id: cls for cls in (
        Nudge, Stall, Scout, Shield, Dash, Backstep, Stumble, Feint, Brace, Sidestep, IDidntSeeThat,
        Freeze, Teleport, Swap, Promote, Rally, IllegalCastle, GhostWalk, KnightsTour, Decoy,
        Ricochet, LoadedDice, Paparazzi, Caltrops,
        Clone, Kidnap, Resurrect, QueensGambit, Sabotage, Zugzwang, PhantomQueen, DoubleAgent,
        ChainReaction, TraitorsMark, UnionStrike, DiamondForm, Snipe, ShieldBash,
        MindControl, CheckmateDenied, Demotion, ArmyOfOne, Rewind, ParallelPlay, Exile, Usurper,
        PocketDimension, TheBluff, ActuallyImTheKing,
    )
}

STARTER_DECK = ["shield", "nudge", "stall", "sidestep", "backstep"]


def create_card_by_id(card_id: str) -> Optional[Card]:
    """
    Factory function to create a card instance by its ID.
    Returns None if card_id is not found in registry.
    """
    card_class = CARD_REGISTRY.get(card_id)
    if card_class:
        return card_class()
    return None


def cards_by_rarity(rarity: CardRarity) -> List[str]:
    return [card_id for card_id, cls in CARD_REGISTRY.items() if cls().rarity == rarity]
