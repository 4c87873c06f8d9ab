from typing import Optional

BOARD_SIZE = 8


class Coordinate:
    row: int  # 0-7, row 0 is the enemy's back rank
    col: int  # 0-7

    def __init__(self, row: int, col: int):
        self.row = row
        self.col = col

    def __eq__(self, other):
        return isinstance(other, Coordinate) and self.row == other.row and self.col == other.col

    def in_bounds(self) -> bool:
        return 0 <= self.row < BOARD_SIZE and 0 <= self.col < BOARD_SIZE

    def to_algebraic(self) -> str:
        """Convert coordinate to algebraic notation as the player sees it (row 0 = rank 8)."""
        return f"{chr(self.col + ord('a'))}{BOARD_SIZE - self.row}"

    @staticmethod
    def from_algebraic(notation: str) -> "Coordinate":
        """Create a coordinate from algebraic notation (e.g., 'e4')."""
        col = ord(notation[0]) - ord('a')
        row = BOARD_SIZE - int(notation[1])
        return Coordinate(row, col)

    def offset(self, dr: int, dc: int) -> Optional["Coordinate"]:
        """
        Return a new coordinate offset by (dr, dc).
        If the result is off the board, return None.
        """
        target = Coordinate(self.row + dr, self.col + dc)
        return target if target.in_bounds() else None

    def manhattan(self, other: "Coordinate") -> int:
        return abs(self.row - other.row) + abs(self.col - other.col)

    def chebyshev(self, other: "Coordinate") -> int:
        return max(abs(self.row - other.row), abs(self.col - other.col))

    def key(self) -> str:
        """Square key used for per-square effects ("row,col")"""
        return f"{self.row},{self.col}"

    def to_dict(self) -> dict:
        return {"row": self.row, "col": self.col}

    def __iter__(self):
        yield self.row
        yield self.col

    def __str__(self):
        return self.to_algebraic()

    def __hash__(self):
        """Allow Coordinate to be used as dict key"""
        return hash((self.row, self.col))

    def __repr__(self):
        return f"Coordinate({self.row}, {self.col})"
