"""Shared test fixtures.

Usage:
    pytest                  # heuristics only, mocked engine
    pytest --e2e            # also run tests that need Stockfish or a live server

Fixtures:
    build_board   - Board from (type, owner, row, col) tuples.
    make_session  - GameSession on a prepared board with a chosen hand.
    fake_oracle   - Scriptable Oracle that never touches a real engine.
"""

from __future__ import annotations

import asyncio
import random
from typing import List, Optional, Tuple

import pytest

from roguechess.ai.oracle import Oracle, OracleRequest, OracleResponse
from roguechess.cards.card import create_card_by_id
from roguechess.cards.hand import Hand
from roguechess.enums import Difficulty, Owner, PieceType
from roguechess.player import Player
from roguechess.rules.board import Board
from roguechess.rules.piece import Piece
from roguechess.services.game_state import GameSession


# ---------------------------------------------------------------------------
# CLI option and marker registration
# ---------------------------------------------------------------------------


def pytest_addoption(parser):
    """Register --e2e CLI flag for tests needing Stockfish or a running server."""
    parser.addoption(
        "--e2e",
        action="store_true",
        default=False,
        help="Run end-to-end tests (real Stockfish, live WebSocket server).",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "e2e: end-to-end test (requires Stockfish or a running server)"
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--e2e"):
        return
    skip_e2e = pytest.mark.skip(reason="needs --e2e")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


# ---------------------------------------------------------------------------
# Boards and sessions
# ---------------------------------------------------------------------------

PieceSpec = Tuple[PieceType, Owner, int, int]


@pytest.fixture()
def build_board():
    """Return a factory: build_board((PieceType.KING, Owner.ENEMY, 0, 4), ...)."""
    def _build(*specs: PieceSpec) -> Board:
        board = Board()
        for piece_type, owner, row, col in specs:
            board.place_piece(Piece.create(piece_type, owner, row, col))
        return board
    return _build


@pytest.fixture()
def make_session():
    """
    Return a factory for sessions on a custom board.
    Kings default to (0,4) and (7,4) when the board has none.
    """
    def _make(board: Board, cards: Optional[List[str]] = None,
              difficulty: Difficulty = Difficulty.EASY, seed: int = 0,
              auto_enemy_turn: bool = True, strict: bool = True, **kwargs) -> GameSession:
        if board.king_of(Owner.ENEMY) is None and board.piece_at(0, 4) is None:
            board.place_piece(Piece.create(PieceType.KING, Owner.ENEMY, 0, 4))
        if board.king_of(Owner.PLAYER) is None and board.piece_at(7, 4) is None:
            board.place_piece(Piece.create(PieceType.KING, Owner.PLAYER, 7, 4))
        hand = Hand([create_card_by_id(card_id) for card_id in cards or []])
        return GameSession("test", Player("p1", "Tester"), board=board, hand=hand,
                           difficulty=difficulty, rng=random.Random(seed),
                           auto_enemy_turn=auto_enemy_turn, strict=strict, **kwargs)
    return _make


# ---------------------------------------------------------------------------
# Fake oracle
# ---------------------------------------------------------------------------


class FakeOracle(Oracle):
    """Answers every request with a fixed move, optionally slowly or with an error."""

    def __init__(self, move: str = "e7e6", score_cp: Optional[int] = 0, mate: Optional[int] = None,
                 delay: float = 0.0, error: Optional[Exception] = None,
                 start_error: Optional[Exception] = None):
        self.move = move
        self.score_cp = score_cp
        self.mate = mate
        self.delay = delay
        self.error = error
        self.start_error = start_error
        self.requests: List[OracleRequest] = []
        self.started = 0
        self.closed = 0

    async def start(self) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.started += 1

    async def analyse(self, request: OracleRequest) -> OracleResponse:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return OracleResponse(self.move, self.score_cp, self.mate)

    async def close(self) -> None:
        self.closed += 1


@pytest.fixture()
def fake_oracle():
    return FakeOracle
