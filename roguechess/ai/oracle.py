"""
External best-move oracle (Stockfish via python-chess).

Board rows run 0..7 from the enemy's back rank. The oracle sees a standard
position from one fixed orientation per session:

    ENEMY_AS_BLACK: enemy lowercase, row 0 = rank 8, col 0 = file a, black to move
    ENEMY_AS_WHITE: enemy uppercase, row 0 = rank 1, col 0 = file h, white to move

OracleClient bounds every request with a timeout, keeps at most one request
in flight and turns every failure into "no suggestion".
"""

from __future__ import annotations
import asyncio
import logging
import os
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Tuple

import chess
import chess.engine

from roguechess.enums import BoardOrientation, Owner, PieceType
from roguechess.rules.coordinate import BOARD_SIZE, Coordinate

if TYPE_CHECKING:
    from roguechess.rules.board import Board

logger = logging.getLogger(__name__)

# Stockfish search paths in priority order
_STOCKFISH_PATHS = [
    "/opt/homebrew/bin/stockfish",
    "/usr/local/bin/stockfish",
    "/usr/bin/stockfish",
]

MATE_SCORE = 1000

_FEN_LETTERS = {
    PieceType.KING: "k",
    PieceType.QUEEN: "q",
    PieceType.ROOK: "r",
    PieceType.BISHOP: "b",
    PieceType.KNIGHT: "n",
    PieceType.PAWN: "p",
}

# Statuses the engine cannot search from
_FATAL_STATUS = (chess.STATUS_NO_WHITE_KING | chess.STATUS_NO_BLACK_KING | chess.STATUS_TOO_MANY_KINGS
                 | chess.STATUS_PAWNS_ON_BACKRANK | chess.STATUS_OPPOSITE_CHECK)


class OracleError(Exception):
    """The oracle could not produce a usable answer"""


def _find_stockfish() -> str:
    """
    Locate the Stockfish binary: ROGUECHESS_STOCKFISH first, then known
    install paths, then PATH. Raises FileNotFoundError.
    """
    configured = os.environ.get("ROGUECHESS_STOCKFISH")
    if configured:
        if Path(configured).is_file():
            return configured
        raise FileNotFoundError(f"ROGUECHESS_STOCKFISH points to a missing file: {configured}")

    for path_str in _STOCKFISH_PATHS:
        if Path(path_str).is_file():
            return path_str

    which_result = shutil.which("stockfish")
    if which_result is not None:
        return which_result

    raise FileNotFoundError("Stockfish not found. Install it or set ROGUECHESS_STOCKFISH.")


# ================================================================
# Notation
# ================================================================

def square_name(coord: Coordinate, orientation: BoardOrientation) -> str:
    if orientation == BoardOrientation.ENEMY_AS_BLACK:
        return "abcdefgh"[coord.col] + str(BOARD_SIZE - coord.row)
    return "hgfedcba"[coord.col] + str(coord.row + 1)


def decode_square(name: str, orientation: BoardOrientation) -> Coordinate:
    if len(name) != 2 or name[0] not in "abcdefgh" or name[1] not in "12345678":
        raise OracleError(f"Bad square: {name!r}")
    file_index = "abcdefgh".index(name[0])
    rank = int(name[1])
    if orientation == BoardOrientation.ENEMY_AS_BLACK:
        return Coordinate(BOARD_SIZE - rank, file_index)
    return Coordinate(rank - 1, BOARD_SIZE - 1 - file_index)


def decode_move(uci: str, orientation: BoardOrientation) -> Tuple[Coordinate, Coordinate]:
    """Turn a four/five character move code into (from, to); promotion letters are ignored."""
    if not isinstance(uci, str) or len(uci) not in (4, 5):
        raise OracleError(f"Bad move code: {uci!r}")
    return decode_square(uci[:2], orientation), decode_square(uci[2:4], orientation)


def encode_position(board: Board, orientation: BoardOrientation) -> str:
    """FEN of the board with the enemy to move. No castling or en passant rights."""
    enemy_is_white = orientation == BoardOrientation.ENEMY_AS_WHITE
    ranks = []
    for rank in range(8, 0, -1):
        line = ""
        empty = 0
        for file_index in range(8):
            coord = decode_square("abcdefgh"[file_index] + str(rank), orientation)
            piece = board.piece_at_coord(coord)
            if piece is None:
                empty += 1
                continue
            if empty:
                line += str(empty)
                empty = 0
            letter = _FEN_LETTERS[piece.type]
            white = (piece.owner == Owner.ENEMY) == enemy_is_white
            line += letter.upper() if white else letter
        if empty:
            line += str(empty)
        ranks.append(line)
    side = "w" if enemy_is_white else "b"
    return "/".join(ranks) + f" {side} - - 0 1"


# ================================================================
# Request / response
# ================================================================

@dataclass
class OracleRequest:
    fen: str
    depth: int


@dataclass
class OracleResponse:
    move: str
    score_cp: Optional[int] = None
    mate: Optional[int] = None

    @property
    def score(self) -> float:
        """Oracle evaluation on the heuristic scale."""
        if self.mate is not None:
            return MATE_SCORE if self.mate > 0 else -MATE_SCORE
        return (self.score_cp or 0) / 10 + 100


class Oracle(ABC):
    @abstractmethod
    async def start(self) -> None:
        pass

    @abstractmethod
    async def analyse(self, request: OracleRequest) -> OracleResponse:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass


class StockfishOracle(Oracle):
    def __init__(self, stockfish_path: Optional[str] = None):
        self._stockfish_path = stockfish_path
        self._engine: Optional[chess.engine.Protocol] = None

    async def start(self) -> None:
        if self._engine is not None:
            return
        path = self._stockfish_path or _find_stockfish()
        _, self._engine = await chess.engine.popen_uci(path)
        logger.info(f"Stockfish started: {path}")

    async def analyse(self, request: OracleRequest) -> OracleResponse:
        if self._engine is None:
            raise OracleError("Engine not started")
        try:
            position = chess.Board(request.fen)
        except ValueError as e:
            raise OracleError(f"Invalid FEN {request.fen!r}: {e}") from e
        if position.status() & _FATAL_STATUS:
            raise OracleError(f"Position not searchable: {request.fen}")

        try:
            info = await self._engine.analyse(position, chess.engine.Limit(depth=request.depth))
        except chess.engine.EngineTerminatedError as e:
            self._engine = None
            raise OracleError("Engine terminated") from e
        except chess.engine.EngineError as e:
            raise OracleError(str(e)) from e

        pv = info.get("pv") or []
        if not pv:
            raise OracleError("No move returned")
        score = info["score"].relative if "score" in info else None
        return OracleResponse(
            move=pv[0].uci(),
            score_cp=score.score() if score is not None else None,
            mate=score.mate() if score is not None else None,
        )

    async def close(self) -> None:
        if self._engine is None:
            return
        engine, self._engine = self._engine, None
        try:
            await engine.quit()
        except chess.engine.EngineError:
            logger.warning("Stockfish did not quit cleanly", exc_info=True)


class OracleClient:
    ANALYSIS_TIMEOUT = 3.0
    INIT_TIMEOUT = 5.0

    def __init__(self, oracle: Oracle, analysis_timeout: Optional[float] = None,
                 init_timeout: Optional[float] = None):
        self.oracle = oracle
        self.analysis_timeout = analysis_timeout or self.ANALYSIS_TIMEOUT
        self.init_timeout = init_timeout or self.INIT_TIMEOUT
        self.available = True
        self._started = False
        self._pending: Optional[asyncio.Task] = None

    async def suggest(self, board: Board, depth: int,
                      orientation: BoardOrientation) -> Optional[OracleResponse]:
        """Best move for the enemy, or None if the oracle is unavailable, slow or wrong."""
        if not self.available:
            return None
        if not await self._ensure_started():
            return None

        if self._pending is not None and not self._pending.done():
            logger.info("Superseding in-flight oracle request")
            self._pending.cancel()

        request = OracleRequest(encode_position(board, orientation), depth)
        task = asyncio.ensure_future(asyncio.wait_for(self.oracle.analyse(request), self.analysis_timeout))
        self._pending = task
        try:
            return await task
        except asyncio.CancelledError:
            if self._pending is not task:
                return None
            raise
        except asyncio.TimeoutError:
            logger.warning(f"Oracle timed out after {self.analysis_timeout}s")
            return None
        except OracleError as e:
            logger.warning(f"Oracle failed: {e}")
            return None
        except Exception as e:
            logger.warning(f"Oracle raised {type(e).__name__}: {e}", exc_info=True)
            return None
        finally:
            if self._pending is task:
                self._pending = None

    async def _ensure_started(self) -> bool:
        if self._started:
            return True
        try:
            await asyncio.wait_for(self.oracle.start(), self.init_timeout)
        except (FileNotFoundError, OSError, OracleError, chess.engine.EngineError) as e:
            logger.warning(f"Oracle unavailable, using heuristics only: {e}")
            self.available = False
            return False
        except asyncio.TimeoutError:
            logger.warning(f"Oracle did not start within {self.init_timeout}s, using heuristics only")
            self.available = False
            return False
        except Exception as e:
            logger.warning(f"Oracle failed to start ({type(e).__name__}), using heuristics only: {e}",
                           exc_info=True)
            self.available = False
            return False
        self._started = True
        return True

    async def close(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None
        if self._started:
            await self.oracle.close()
            self._started = False
