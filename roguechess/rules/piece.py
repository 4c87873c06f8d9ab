from __future__ import annotations
import itertools
from typing import Optional

from roguechess.enums import Owner, PieceType
from roguechess.rules.coordinate import Coordinate

_id_counter = itertools.count(1)

# Values used by the Usurper card to find the strongest piece
PIECE_RANK = {
    PieceType.QUEEN: 9,
    PieceType.ROOK: 5,
    PieceType.BISHOP: 3,
    PieceType.KNIGHT: 3,
    PieceType.PAWN: 1,
    PieceType.KING: 0,
}


def new_piece_id(owner: Owner, piece_type: PieceType, tag: Optional[str] = None) -> str:
    """Return a fresh id, stable for the lifetime of the piece."""
    prefix = tag or owner.value
    return f"{prefix}-{piece_type.value}-{next(_id_counter)}"


class Piece:
    """
    A piece on the board. Type, owner and position are mutated in place
    (promotion, demotion, mind control); the id never changes.
    """

    def __init__(self, id: str, piece_type: PieceType, owner: Owner, row: int, col: int,
                 is_decoy: bool = False):
        self.id = id
        self.type = piece_type
        self.owner = owner
        self.row = row
        self.col = col
        self.is_decoy = is_decoy

    @classmethod
    def create(cls, piece_type: PieceType, owner: Owner, row: int, col: int,
               tag: Optional[str] = None, **kwargs) -> "Piece":
        return cls(new_piece_id(owner, piece_type, tag), piece_type, owner, row, col, **kwargs)

    @property
    def position(self) -> Coordinate:
        return Coordinate(self.row, self.col)

    @property
    def forward(self) -> int:
        """Row direction of travel: the player moves toward row 0, the enemy toward row 7"""
        return -1 if self.owner == Owner.PLAYER else 1

    @property
    def start_row(self) -> int:
        """Pawn double-step row"""
        return 6 if self.owner == Owner.PLAYER else 1

    @property
    def promotion_row(self) -> int:
        return 0 if self.owner == Owner.PLAYER else 7

    def is_king(self) -> bool:
        return self.type == PieceType.KING

    def __str__(self):
        """Return the owner, type, and id of the piece"""
        return f"{self.owner.value} {self.type.value} ({self.id})"

    def __repr__(self):
        return f"Piece({self.id!r}, {self.type.name}, {self.owner.name}, {self.row}, {self.col})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "owner": self.owner.value,
            "row": self.row,
            "col": self.col,
            "is_decoy": self.is_decoy,
        }
