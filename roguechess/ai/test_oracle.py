"""Tests for the oracle: notation, position encoding, engine wrapper and client."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import chess
import chess.engine
import pytest

from roguechess.ai import oracle as oracle_module
from roguechess.ai.oracle import (
    OracleClient,
    OracleError,
    OracleRequest,
    OracleResponse,
    StockfishOracle,
    _find_stockfish,
    decode_move,
    decode_square,
    encode_position,
    square_name,
)
from roguechess.enums import BoardOrientation, Owner, PieceType
from roguechess.rules.coordinate import Coordinate

BLACK = BoardOrientation.ENEMY_AS_BLACK
WHITE = BoardOrientation.ENEMY_AS_WHITE
K, Q, P = PieceType.KING, PieceType.QUEEN, PieceType.PAWN
ME, THEM = Owner.PLAYER, Owner.ENEMY


@pytest.fixture()
def queen_hanging(build_board):
    return build_board((K, THEM, 0, 4), (P, THEM, 3, 3), (Q, ME, 4, 4), (K, ME, 7, 4))


# ---------------------------------------------------------------------------
# Notation
# ---------------------------------------------------------------------------


class TestNotation:

    @pytest.mark.parametrize("orientation", list(BoardOrientation))
    @pytest.mark.parametrize("row", range(8))
    @pytest.mark.parametrize("col", range(8))
    def test_every_square_round_trips(self, orientation, row, col):
        coord = Coordinate(row, col)
        assert decode_square(square_name(coord, orientation), orientation) == coord

    @pytest.mark.parametrize("orientation,coord,name", [
        (BLACK, Coordinate(0, 0), "a8"),
        (BLACK, Coordinate(7, 7), "h1"),
        (BLACK, Coordinate(3, 3), "d5"),
        (WHITE, Coordinate(0, 0), "h1"),
        (WHITE, Coordinate(7, 7), "a8"),
        (WHITE, Coordinate(0, 7), "a1"),
    ])
    def test_square_names(self, orientation, coord, name):
        assert square_name(coord, orientation) == name
        assert decode_square(name, orientation) == coord

    @pytest.mark.parametrize("code", ["e9e1", "abc", "i1a1", None, "e2e4e5"])
    def test_bad_codes(self, code):
        with pytest.raises(OracleError):
            decode_move(code, BLACK)

    def test_promotion_letter_ignored(self):
        assert decode_move("a2a1q", BLACK) == (Coordinate(6, 0), Coordinate(7, 0))


# ---------------------------------------------------------------------------
# Position encoding
# ---------------------------------------------------------------------------


class TestEncoding:

    def test_enemy_as_black(self, queen_hanging):
        fen = encode_position(queen_hanging, BLACK)
        assert fen == "4k3/8/8/3p4/4Q3/8/8/4K3 b - - 0 1"
        assert chess.Move.from_uci("d5e4") in chess.Board(fen).legal_moves
        assert decode_move("d5e4", BLACK) == (Coordinate(3, 3), Coordinate(4, 4))

    def test_enemy_as_white(self, queen_hanging):
        fen = encode_position(queen_hanging, WHITE)
        assert fen == "3k4/8/8/3q4/4P3/8/8/3K4 w - - 0 1"
        assert chess.Move.from_uci("e4d5") in chess.Board(fen).legal_moves
        # Same capture seen from the other side of the table
        assert decode_move("e4d5", WHITE) == (Coordinate(3, 3), Coordinate(4, 4))


# ---------------------------------------------------------------------------
# Scores
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("response,expected", [
    (OracleResponse("e7e6", mate=3), 1000),
    (OracleResponse("e7e6", mate=-2), -1000),
    (OracleResponse("e7e6", score_cp=250), 125),
    (OracleResponse("e7e6", score_cp=-100), 90),
    (OracleResponse("e7e6"), 100),
])
def test_response_score(response, expected):
    assert response.score == expected


# ---------------------------------------------------------------------------
# Locating Stockfish
# ---------------------------------------------------------------------------


class TestFindStockfish:

    def test_env_var_wins(self, monkeypatch, tmp_path):
        binary = tmp_path / "stockfish"
        binary.write_text("")
        monkeypatch.setenv("ROGUECHESS_STOCKFISH", str(binary))
        assert _find_stockfish() == str(binary)

    def test_env_var_to_missing_file(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ROGUECHESS_STOCKFISH", str(tmp_path / "nope"))
        with pytest.raises(FileNotFoundError):
            _find_stockfish()

    def test_known_paths_then_path(self, monkeypatch, tmp_path):
        monkeypatch.delenv("ROGUECHESS_STOCKFISH", raising=False)
        binary = tmp_path / "stockfish"
        binary.write_text("")
        monkeypatch.setattr(oracle_module, "_STOCKFISH_PATHS", [str(tmp_path / "missing"), str(binary)])
        assert _find_stockfish() == str(binary)

        monkeypatch.setattr(oracle_module, "_STOCKFISH_PATHS", [])
        with patch("roguechess.ai.oracle.shutil.which", return_value="/somewhere/stockfish"):
            assert _find_stockfish() == "/somewhere/stockfish"

    def test_nothing_found(self, monkeypatch):
        monkeypatch.delenv("ROGUECHESS_STOCKFISH", raising=False)
        monkeypatch.setattr(oracle_module, "_STOCKFISH_PATHS", [])
        with patch("roguechess.ai.oracle.shutil.which", return_value=None):
            with pytest.raises(FileNotFoundError):
                _find_stockfish()


# ---------------------------------------------------------------------------
# StockfishOracle with a mocked engine
# ---------------------------------------------------------------------------

QUEEN_FEN = "4k3/8/8/3p4/4Q3/8/8/4K3 b - - 0 1"


def _mock_engine(**analyse_kwargs):
    engine = MagicMock()
    engine.analyse = AsyncMock(**analyse_kwargs)
    engine.quit = AsyncMock()
    return engine


class TestStockfishOracle:

    def test_analyse(self):
        oracle = StockfishOracle("/fake/stockfish")
        oracle._engine = _mock_engine(return_value={
            "pv": [chess.Move.from_uci("d5e4")],
            "score": chess.engine.PovScore(chess.engine.Cp(120), chess.BLACK),
        })
        response = asyncio.run(oracle.analyse(OracleRequest(QUEEN_FEN, 10)))
        assert response.move == "d5e4"
        assert response.score_cp == 120
        assert response.mate is None
        limit = oracle._engine.analyse.call_args.args[1]
        assert limit.depth == 10

    def test_not_started(self):
        with pytest.raises(OracleError):
            asyncio.run(StockfishOracle("/fake").analyse(OracleRequest(QUEEN_FEN, 10)))

    @pytest.mark.parametrize("fen", ["not a fen", "4k3/8/8/8/8/8/8/8 b - - 0 1"])
    def test_unusable_positions(self, fen):
        oracle = StockfishOracle("/fake")
        oracle._engine = _mock_engine()
        with pytest.raises(OracleError):
            asyncio.run(oracle.analyse(OracleRequest(fen, 10)))
        oracle._engine.analyse.assert_not_called()

    def test_empty_pv(self):
        oracle = StockfishOracle("/fake")
        oracle._engine = _mock_engine(return_value={"pv": []})
        with pytest.raises(OracleError):
            asyncio.run(oracle.analyse(OracleRequest(QUEEN_FEN, 10)))

    def test_engine_death_forgets_the_engine(self):
        oracle = StockfishOracle("/fake")
        oracle._engine = _mock_engine(side_effect=chess.engine.EngineTerminatedError("gone"))
        with pytest.raises(OracleError):
            asyncio.run(oracle.analyse(OracleRequest(QUEEN_FEN, 10)))
        assert oracle._engine is None

    def test_start_and_close(self):
        engine = _mock_engine()
        oracle = StockfishOracle("/fake/stockfish")
        with patch("chess.engine.popen_uci", new=AsyncMock(return_value=(MagicMock(), engine))) as popen:
            asyncio.run(oracle.start())
            asyncio.run(oracle.start())
        popen.assert_awaited_once_with("/fake/stockfish")
        assert oracle._engine is engine

        asyncio.run(oracle.close())
        engine.quit.assert_awaited_once()
        assert oracle._engine is None


# ---------------------------------------------------------------------------
# OracleClient
# ---------------------------------------------------------------------------


class TestOracleClient:

    def test_suggest(self, queen_hanging, fake_oracle):
        oracle = fake_oracle(move="d5e4", score_cp=300)
        client = OracleClient(oracle)
        response = asyncio.run(client.suggest(queen_hanging, 12, BLACK))
        assert response.move == "d5e4"
        assert oracle.requests[0] == OracleRequest(QUEEN_FEN, 12)
        assert oracle.started == 1

    def test_timeout_is_no_suggestion(self, queen_hanging, fake_oracle):
        client = OracleClient(fake_oracle(delay=1.0), analysis_timeout=0.05)
        assert asyncio.run(client.suggest(queen_hanging, 12, BLACK)) is None
        assert client.available

    @pytest.mark.parametrize("error", [OracleError("bad"), ConnectionError("unreachable"), ValueError("junk")])
    def test_error_is_no_suggestion(self, queen_hanging, fake_oracle, error):
        client = OracleClient(fake_oracle(error=error))
        assert asyncio.run(client.suggest(queen_hanging, 12, BLACK)) is None

    def test_start_failure_disables_the_client(self, queen_hanging, fake_oracle):
        oracle = fake_oracle(start_error=FileNotFoundError("no stockfish"))
        client = OracleClient(oracle)
        assert asyncio.run(client.suggest(queen_hanging, 12, BLACK)) is None
        assert not client.available
        assert asyncio.run(client.suggest(queen_hanging, 12, BLACK)) is None
        assert oracle.requests == []

    def test_newer_request_supersedes(self, queen_hanging, fake_oracle):
        oracle = fake_oracle(move="d5e4")
        client = OracleClient(oracle)

        async def scenario():
            await client.suggest(queen_hanging, 12, BLACK)
            oracle.delay = 0.05
            return await asyncio.gather(
                client.suggest(queen_hanging, 12, BLACK),
                client.suggest(queen_hanging, 12, BLACK),
            )

        first, second = asyncio.run(scenario())
        assert first is None
        assert second.move == "d5e4"

    def test_close(self, queen_hanging, fake_oracle):
        oracle = fake_oracle()
        client = OracleClient(oracle)
        asyncio.run(client.close())
        assert oracle.closed == 0

        asyncio.run(client.suggest(queen_hanging, 12, BLACK))
        asyncio.run(client.close())
        assert oracle.closed == 1


# ---------------------------------------------------------------------------
# Real engine
# ---------------------------------------------------------------------------


@pytest.mark.e2e
def test_real_stockfish_takes_the_queen(queen_hanging):
    async def scenario():
        client = OracleClient(StockfishOracle())
        try:
            return await client.suggest(queen_hanging, 10, BLACK)
        finally:
            await client.close()

    response = asyncio.run(scenario())
    assert response is not None
    assert response.move == "d5e4"
