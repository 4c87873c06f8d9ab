from __future__ import annotations
import copy
import logging
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from roguechess.enums import Owner, PieceType
from roguechess.rules.coordinate import BOARD_SIZE, Coordinate
from roguechess.rules.move import Move
from roguechess.rules.piece import Piece

logger = logging.getLogger(__name__)


class InvariantViolation(Exception):
    """Board and piece lists disagree"""


class Board:
    def __init__(self):
        self.grid: List[List[Optional[Piece]]] = [[None] * BOARD_SIZE for _ in range(BOARD_SIZE)]
        self.pieces: Dict[Owner, List[Piece]] = {Owner.PLAYER: [], Owner.ENEMY: []}

    # ================================================================
    # Queries
    # ================================================================
    @property
    def player_pieces(self) -> List[Piece]:
        return self.pieces[Owner.PLAYER]

    @property
    def enemy_pieces(self) -> List[Piece]:
        return self.pieces[Owner.ENEMY]

    def piece_at(self, row: int, col: int) -> Optional[Piece]:
        if not (0 <= row < BOARD_SIZE and 0 <= col < BOARD_SIZE):
            return None
        return self.grid[row][col]

    def piece_at_coord(self, coord: Coordinate) -> Optional[Piece]:
        return self.piece_at(coord.row, coord.col)

    def is_empty(self, coord: Coordinate) -> bool:
        return coord.in_bounds() and self.grid[coord.row][coord.col] is None

    def is_enemy_of(self, coord: Coordinate, owner: Owner) -> bool:
        """True if the square holds a piece belonging to the other side."""
        piece = self.piece_at_coord(coord)
        return piece is not None and piece.owner != owner

    def pieces_of(self, owner: Owner) -> List[Piece]:
        return self.pieces[owner]

    def all_pieces(self) -> List[Piece]:
        return self.pieces[Owner.PLAYER] + self.pieces[Owner.ENEMY]

    def king_of(self, owner: Owner) -> Optional[Piece]:
        for piece in self.pieces[owner]:
            if piece.type == PieceType.KING:
                return piece
        return None

    def find_piece(self, piece_id: str) -> Optional[Piece]:
        for piece in self.all_pieces():
            if piece.id == piece_id:
                return piece
        return None

    def empty_squares(self) -> List[Coordinate]:
        return [Coordinate(r, c) for r in range(BOARD_SIZE) for c in range(BOARD_SIZE)
                if self.grid[r][c] is None]

    # ================================================================
    # Mutation
    # ================================================================
    def place_piece(self, piece: Piece) -> None:
        """Place a piece on its recorded square and register it with its owner."""
        coord = piece.position
        if not coord.in_bounds():
            raise ValueError(f"Cannot place piece outside the board: {coord!r}")
        if self.grid[piece.row][piece.col] is not None:
            raise ValueError(f"Square {coord} is occupied")
        self.grid[piece.row][piece.col] = piece
        self.pieces[piece.owner].append(piece)

    def remove_piece(self, piece: Piece) -> None:
        """Remove a piece from both its square and its owner's list."""
        if self.grid[piece.row][piece.col] is piece:
            self.grid[piece.row][piece.col] = None
        owner_list = self.pieces[piece.owner]
        if piece in owner_list:
            owner_list.remove(piece)

    def relocate(self, piece: Piece, row: int, col: int) -> None:
        """Move a piece to an empty square without any capture logic."""
        if self.grid[piece.row][piece.col] is piece:
            self.grid[piece.row][piece.col] = None
        piece.row, piece.col = row, col
        self.grid[row][col] = piece

    def swap_positions(self, first: Piece, second: Piece) -> None:
        first.row, second.row = second.row, first.row
        first.col, second.col = second.col, first.col
        self.grid[first.row][first.col] = first
        self.grid[second.row][second.col] = second

    def change_owner(self, piece: Piece, owner: Owner) -> None:
        """Flip ownership, moving the piece between the two piece lists."""
        if piece.owner == owner:
            return
        if piece in self.pieces[piece.owner]:
            self.pieces[piece.owner].remove(piece)
        piece.owner = owner
        self.pieces[owner].append(piece)

    def move_piece(self, move: Move) -> Optional[Piece]:
        """
        Apply a move without any rule checks.
        Returns the piece removed from the board, if any.
        """
        mover = move.piece
        target = self.piece_at_coord(move.to_sq)
        if target is mover:
            target = None
        if target is not None:
            self.remove_piece(target)
        if not move.piercing:
            self.relocate(mover, move.to_sq.row, move.to_sq.col)
        return target

    # ================================================================
    # Simulation
    # ================================================================
    def clone(self) -> "Board":
        """Return an independent deep copy (pieces included)."""
        return copy.deepcopy(self)

    @contextmanager
    def simulate(self, move: Move) -> Iterator[Optional[Piece]]:
        """
        Apply a move in place and undo it on exit.
        The move's piece must belong to this board.
        """
        mover = move.piece
        origin = (mover.row, mover.col)
        captured = self.move_piece(move)
        try:
            yield captured
        finally:
            if not move.piercing:
                self.grid[mover.row][mover.col] = None
                mover.row, mover.col = origin
                self.grid[origin[0]][origin[1]] = mover
            if captured is not None:
                self.grid[captured.row][captured.col] = captured
                self.pieces[captured.owner].append(captured)

    def translate_move(self, move: Move) -> Optional[Move]:
        """Rebind a move onto the equivalent piece of this board."""
        piece = self.piece_at_coord(move.from_sq)
        if piece is None or piece.id != move.piece.id:
            return None
        return Move(move.from_sq, move.to_sq, piece, move.piercing, dict(move.metadata))

    # ================================================================
    # Consistency
    # ================================================================
    def validate(self, strict: bool = False) -> List[str]:
        """
        Check that grid and piece lists agree. Returns the problems found;
        raises InvariantViolation instead when strict.
        """
        problems: List[str] = []
        listed = set()
        for owner, owned in self.pieces.items():
            for piece in owned:
                listed.add(id(piece))
                if piece.owner != owner:
                    problems.append(f"{piece.id} listed under {owner.value} but owned by {piece.owner.value}")
                if not (0 <= piece.row < BOARD_SIZE and 0 <= piece.col < BOARD_SIZE):
                    problems.append(f"{piece.id} off board at ({piece.row},{piece.col})")
                elif self.grid[piece.row][piece.col] is not piece:
                    problems.append(f"{piece.id} not on its recorded square ({piece.row},{piece.col})")
        for r in range(BOARD_SIZE):
            for c in range(BOARD_SIZE):
                piece = self.grid[r][c]
                if piece is None:
                    continue
                if id(piece) not in listed:
                    problems.append(f"{piece.id} on ({r},{c}) missing from piece lists")
                if (piece.row, piece.col) != (r, c):
                    problems.append(f"{piece.id} on ({r},{c}) records ({piece.row},{piece.col})")
        for owner in Owner:
            kings = [p for p in self.pieces[owner] if p.type == PieceType.KING]
            if len(kings) > 1:
                problems.append(f"{owner.value} has {len(kings)} kings")
        if problems and strict:
            raise InvariantViolation("; ".join(problems))
        return problems

    # ================================================================
    # Serialization
    # ================================================================
    def to_dict(self) -> dict:
        return {
            "pieces": [p.to_dict() for p in self.all_pieces()],
            "grid": [[self.grid[r][c].id if self.grid[r][c] else None for c in range(BOARD_SIZE)]
                     for r in range(BOARD_SIZE)],
        }

    @classmethod
    def from_pieces(cls, pieces: List[Piece]) -> "Board":
        board = cls()
        for piece in pieces:
            board.place_piece(piece)
        return board

    def __str__(self):
        letters = {
            PieceType.KING: "k", PieceType.QUEEN: "q", PieceType.ROOK: "r",
            PieceType.BISHOP: "b", PieceType.KNIGHT: "n", PieceType.PAWN: "p",
        }
        rows = []
        for r in range(BOARD_SIZE):
            line = ""
            for c in range(BOARD_SIZE):
                piece = self.grid[r][c]
                if piece is None:
                    line += "."
                else:
                    ch = letters[piece.type]
                    line += ch.upper() if piece.owner == Owner.PLAYER else ch
            rows.append(line)
        return "\n".join(rows)
