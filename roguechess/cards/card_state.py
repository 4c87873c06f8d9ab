"""
Targeting states of the card executor.

Each pending multi-step card flow is one of these variants; the executor
dispatches on the variant type. `Idle` means no card is mid-resolution.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set, Tuple

from roguechess.enums import Targeting
from roguechess.rules.coordinate import Coordinate

if TYPE_CHECKING:
    from roguechess.cards.card import Card
    from roguechess.rules.piece import Piece


@dataclass
class CardState:
    card: Optional[Card] = None
    payload: Dict[str, Any] = field(default_factory=dict)  # targets chosen so far

    @property
    def name(self) -> str:
        return "idle"

    @property
    def prompt(self) -> str:
        return ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.name,
            "card": self.card.id if self.card else None,
            "prompt": self.prompt,
        }


@dataclass
class Idle(CardState):
    pass


@dataclass
class AwaitingPiece(CardState):
    """Base for the single-piece targeting states"""
    targeting: Targeting = Targeting.ANY_PIECE

    @property
    def name(self) -> str:
        return {
            Targeting.OWN_PIECE: "awaitingOwnPiece",
            Targeting.ENEMY_PIECE: "awaitingEnemyPiece",
            Targeting.ANY_PIECE: "awaitingAnyPiece",
            Targeting.ADJACENT_ENEMY: "awaitingAdjacentEnemy",
        }[self.targeting]

    @property
    def prompt(self) -> str:
        return {
            Targeting.OWN_PIECE: "Select one of your pieces.",
            Targeting.ENEMY_PIECE: "Select an enemy piece.",
            Targeting.ANY_PIECE: "Select any piece.",
            Targeting.ADJACENT_ENEMY: "Select an enemy next to one of your pieces.",
        }[self.targeting]


@dataclass
class AwaitingOwnPiece(AwaitingPiece):
    targeting: Targeting = Targeting.OWN_PIECE


@dataclass
class AwaitingEnemyPiece(AwaitingPiece):
    targeting: Targeting = Targeting.ENEMY_PIECE


@dataclass
class AwaitingAnyPiece(AwaitingPiece):
    targeting: Targeting = Targeting.ANY_PIECE


@dataclass
class AwaitingAdjacentEnemy(AwaitingPiece):
    targeting: Targeting = Targeting.ADJACENT_ENEMY


@dataclass
class AwaitingEmptySquare(CardState):
    allowed: Optional[Set[Coordinate]] = None  # None = any empty square

    @property
    def name(self) -> str:
        return "awaitingEmptySquare"

    @property
    def prompt(self) -> str:
        return "Select an empty square."

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.allowed is not None:
            data["allowed"] = [c.to_dict() for c in self.allowed]
        return data


@dataclass
class AwaitingTwoPieces(CardState):
    first: Optional[Piece] = None

    @property
    def name(self) -> str:
        return "awaitingTwoPieces"

    @property
    def prompt(self) -> str:
        return "Select the second piece." if self.first else "Select the first piece."

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["first"] = self.first.id if self.first else None
        return data


@dataclass
class AwaitingDirection(CardState):
    piece: Optional[Piece] = None
    directions: List[Tuple[int, int]] = field(default_factory=list)

    @property
    def name(self) -> str:
        return "awaitingDirection"

    @property
    def prompt(self) -> str:
        return "Select a direction."

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["piece"] = self.piece.id if self.piece else None
        data["directions"] = [list(d) for d in self.directions]
        return data


@dataclass
class AwaitingPromotionChoice(CardState):
    piece: Optional[Piece] = None
    options: List[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return "awaitingPromotionChoice"

    @property
    def prompt(self) -> str:
        return "Choose: " + " or ".join(o.capitalize() for o in self.options) + "?"

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["options"] = list(self.options)
        return data


@dataclass
class AwaitingCapturedPieceChoice(CardState):
    options: List[Piece] = field(default_factory=list)

    @property
    def name(self) -> str:
        return "awaitingCapturedPieceChoice"

    @property
    def prompt(self) -> str:
        return "Select a captured piece."

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["options"] = [{"id": p.id, "type": p.type.value} for p in self.options]
        return data


@dataclass
class Armed(CardState):
    """The card has granted a one-move boost and waits for that move"""
    piece: Optional[Piece] = None

    @property
    def name(self) -> str:
        return "armed"

    @property
    def prompt(self) -> str:
        return "Make your move."

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["piece"] = self.piece.id if self.piece else None
        return data


PIECE_STATES = {
    Targeting.OWN_PIECE: AwaitingOwnPiece,
    Targeting.ENEMY_PIECE: AwaitingEnemyPiece,
    Targeting.ANY_PIECE: AwaitingAnyPiece,
    Targeting.ADJACENT_ENEMY: AwaitingAdjacentEnemy,
}
