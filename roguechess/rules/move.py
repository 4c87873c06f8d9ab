from __future__ import annotations
from typing import TYPE_CHECKING, Optional

from roguechess.rules.coordinate import Coordinate

# Only import Piece for type checking, not at runtime
if TYPE_CHECKING:
    from roguechess.rules.piece import Piece


class Move:
    def __init__(self, from_sq: Coordinate, to_sq: Coordinate, piece: Piece,
                 piercing: bool = False, metadata: Optional[dict] = None):
        self.from_sq = from_sq
        self.to_sq = to_sq
        self.piece = piece
        # A piercing capture removes the piece on to_sq while the shooter stays on from_sq
        self.piercing = piercing
        self.metadata = metadata or {}

    def __eq__(self, other):
        """Check if two moves are the same (ignoring piece object identity)"""
        if not isinstance(other, Move):
            return False
        return (self.from_sq == other.from_sq and
                self.to_sq == other.to_sq and
                self.piercing == other.piercing)

    def __hash__(self):
        """Allow Move to be used in sets"""
        return hash((self.from_sq, self.to_sq, self.piercing))

    def __str__(self):
        return f"{self.piece.type.value}:{self.from_sq}->{self.to_sq}" + ("*" if self.piercing else "")

    def __repr__(self):
        return f"Move({self.from_sq!r}, {self.to_sq!r}, piercing={self.piercing})"

    def to_dict(self):
        """Convert the move into a dictionary for the UI and logging"""
        return {
            "piece_id": self.piece.id if self.piece else None,
            "from": self.from_sq.to_dict(),
            "to": self.to_sq.to_dict(),
            "piercing": self.piercing,
            "metadata": self.metadata,
        }
