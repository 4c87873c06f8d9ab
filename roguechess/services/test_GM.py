"""
Test the GameManager functionality
Battle creation, lookup and cleanup without a WebSocket in the way
"""

import asyncio

import pytest

from roguechess.ai.oracle import OracleClient
from roguechess.enums import BoardOrientation, Difficulty, GameStatus, Owner
from roguechess.formations import FORMATION_POOLS
from roguechess.services.game_manager import GameManager


@pytest.fixture()
def gm():
    return GameManager(auto_enemy_turn=False)


def test_new_battle(gm):
    ok, msg, session = gm.new_battle("client12345", seed=3)
    assert ok, msg
    assert session.id == "battle_1_client12"
    assert msg.startswith("Battle 1:")
    assert session.formation.id in FORMATION_POOLS["TUTORIAL"]
    assert session.difficulty == Difficulty.HARD
    assert session.board.king_of(Owner.PLAYER) is not None
    assert gm.get_client_session("client12345") is session
    assert gm.get_session(session.id) is session


def test_new_battle_replaces_the_previous_one(gm):
    _, _, first = gm.new_battle("alice")
    _, _, second = gm.new_battle("alice")
    assert gm.get_session(first.id) is None
    assert gm.get_client_session("alice") is second
    assert len(gm.sessions) == 1


def test_players_persist_across_battles(gm):
    gm.new_battle("alice")
    player = gm.players["alice"]
    player.record_victory()
    _, msg, session = gm.new_battle("alice")
    assert session.player is player
    assert session.battle_number == 2
    assert msg.startswith("Battle 2:")


def test_formation_override(gm):
    ok, _, session = gm.new_battle("alice", formation_id="deathSquad",
                                   orientation=BoardOrientation.ENEMY_AS_WHITE)
    assert ok
    assert session.formation.id == "deathSquad"
    assert session.orientation == BoardOrientation.ENEMY_AS_WHITE


@pytest.mark.parametrize("kwargs", [
    {"formation_id": "nope"},
    {"battle_number": 0},
    {"hand_ids": ["exile"]},
])
def test_rejected_battles(gm, kwargs):
    ok, msg, session = gm.new_battle("alice", **kwargs)
    assert not ok
    assert msg
    assert session is None
    assert gm.get_client_session("alice") is None


def test_boss_battle(gm):
    ok, _, session = gm.new_battle("alice", battle_number=10)
    assert ok
    assert session.difficulty == Difficulty.BRUTAL
    assert session.formation.id in FORMATION_POOLS["BOSS"]


def test_server_full(gm):
    gm.MAX_CONCURRENT_GAMES = 1
    assert gm.new_battle("alice")[0]
    ok, msg, _ = gm.new_battle("bob")
    assert not ok
    assert "full" in msg


def test_cleanup_finished_sessions(gm):
    _, _, won = gm.new_battle("alice")
    gm.new_battle("bob")
    won.status = GameStatus.VICTORY
    assert gm.cleanup_finished_sessions() == 1
    assert gm.get_client_session("alice") is None
    assert gm.get_client_session("bob") is not None


def test_stats(gm):
    _, _, lost = gm.new_battle("alice")
    gm.new_battle("bob")
    lost.status = GameStatus.DEFEAT
    assert gm.get_stats() == {
        "total_sessions": 2,
        "active_sessions": 1,
        "victories": 0,
        "defeats": 1,
        "players": 2,
    }
    assert "1 active" in repr(gm)


def test_close_session_closes_the_oracle(fake_oracle):
    oracle = fake_oracle(move="e8d8")
    gm = GameManager(oracle_factory=lambda: OracleClient(oracle), auto_enemy_turn=False)
    _, _, session = gm.new_battle("alice")
    assert session.ai.oracle.oracle is oracle

    # Start the client so close has something to shut down
    asyncio.run(session.ai.oracle._ensure_started())
    assert asyncio.run(gm.close_session(session.id))
    assert oracle.closed == 1
    assert gm.get_session(session.id) is None
    assert not asyncio.run(gm.close_session(session.id))


def test_shutdown_forgets_everything(gm):
    gm.new_battle("alice")
    gm.new_battle("bob")
    asyncio.run(gm.shutdown())
    assert gm.sessions == {}
    assert gm.client_sessions == {}
