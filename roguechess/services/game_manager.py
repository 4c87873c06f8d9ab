"""
GameManager - Handles the lifecycle of battles
- Run-level players (deck, battle number) per client
- Battle creation from the formation progression
- Session lookup and cleanup
"""

from __future__ import annotations
import logging
import random
from typing import Callable, Dict, List, Optional, Tuple

from roguechess.ai.oracle import OracleClient
from roguechess.enums import BoardOrientation, GameStatus
from roguechess.formations import get_formation_by_id, get_formation_for_battle
from roguechess.player import Player
from roguechess.services.game_state import GameSession

logger = logging.getLogger(__name__)


class GameManager:
    """Manages every live battle and the players they belong to"""
    MAX_CONCURRENT_GAMES = 20

    def __init__(self, oracle_factory: Optional[Callable[[], Optional[OracleClient]]] = None,
                 auto_enemy_turn: bool = True):
        self.sessions: Dict[str, GameSession] = {}
        self.players: Dict[str, Player] = {}
        self.client_sessions: Dict[str, str] = {}  # client id -> session id
        self.oracle_factory = oracle_factory
        self.auto_enemy_turn = auto_enemy_turn
        self._session_counter = 0

    # ============================================================================
    # PLAYERS
    # ============================================================================

    def get_or_create_player(self, client_id: str, name: Optional[str] = None) -> Player:
        player = self.players.get(client_id)
        if player is None:
            player = Player(client_id, name or client_id)
            self.players[client_id] = player
            logger.info(f"New run started for {client_id}")
        return player

    # ============================================================================
    # BATTLE CREATION
    # ============================================================================

    def new_battle(self, client_id: str, battle_number: Optional[int] = None,
                   formation_id: Optional[str] = None, seed: Optional[int] = None,
                   orientation: Optional[BoardOrientation] = None,
                   hand_ids: Optional[List[str]] = None) -> Tuple[bool, str, Optional[GameSession]]:
        """
        Start the player's next battle (or a specific one).
        Returns (success, message, session)
        """
        previous = self.client_sessions.get(client_id)
        if previous is not None:
            self.remove_session(previous)

        if len(self.get_all_active_sessions()) >= self.MAX_CONCURRENT_GAMES:
            return False, "Server is full, try again later", None

        player = self.get_or_create_player(client_id)
        if battle_number is not None:
            if battle_number < 1:
                return False, f"Invalid battle number: {battle_number}", None
            player.battle_number = battle_number

        rng = random.Random(seed)
        formation, difficulty = get_formation_for_battle(player.battle_number, rng)
        if formation_id is not None:
            formation = get_formation_by_id(formation_id)
            if formation is None:
                return False, f"Unknown formation: {formation_id}", None

        try:
            hand = player.build_hand(hand_ids)
        except (TypeError, ValueError) as e:
            return False, str(e), None

        self._session_counter += 1
        session_id = f"battle_{self._session_counter}_{client_id[:8]}"
        oracle = self.oracle_factory() if self.oracle_factory else None
        session = GameSession(
            session_id, player, formation,
            difficulty=difficulty,
            hand=hand,
            rng=rng,
            oracle=oracle,
            orientation=orientation or BoardOrientation.ENEMY_AS_BLACK,
            auto_enemy_turn=self.auto_enemy_turn,
        )
        self.sessions[session_id] = session
        self.client_sessions[client_id] = session_id
        return True, f"Battle {player.battle_number}: {formation.name}", session

    # ============================================================================
    # SESSION RETRIEVAL
    # ============================================================================

    def get_session(self, session_id: str) -> Optional[GameSession]:
        return self.sessions.get(session_id)

    def get_client_session(self, client_id: str) -> Optional[GameSession]:
        session_id = self.client_sessions.get(client_id)
        return self.sessions.get(session_id) if session_id else None

    def get_all_active_sessions(self) -> List[GameSession]:
        return [s for s in self.sessions.values() if not s.is_over]

    # ============================================================================
    # SESSION LIFECYCLE
    # ============================================================================

    def remove_session(self, session_id: str) -> bool:
        """
        Forget a session. Returns True if it existed.
        The caller closes the session's oracle (see close_session).
        """
        session = self.sessions.pop(session_id, None)
        if session is None:
            return False
        for client_id, sid in list(self.client_sessions.items()):
            if sid == session_id:
                del self.client_sessions[client_id]
        logger.info(f"Session {session_id} removed ({session.status.value})")
        return True

    async def close_session(self, session_id: str) -> bool:
        session = self.get_session(session_id)
        if session is None:
            return False
        if session.ai.oracle is not None:
            await session.ai.oracle.close()
        return self.remove_session(session_id)

    def cleanup_finished_sessions(self) -> int:
        """
        Remove all sessions whose battle has ended.
        Returns number of sessions removed.
        """
        finished = [sid for sid, s in self.sessions.items() if s.is_over]
        for session_id in finished:
            self.remove_session(session_id)
        return len(finished)

    async def shutdown(self) -> None:
        for session_id in list(self.sessions):
            await self.close_session(session_id)

    # ============================================================================
    # STATISTICS & INFO
    # ============================================================================

    def get_stats(self) -> dict:
        sessions = list(self.sessions.values())
        return {
            "total_sessions": len(sessions),
            "active_sessions": len(self.get_all_active_sessions()),
            "victories": sum(1 for s in sessions if s.status == GameStatus.VICTORY),
            "defeats": sum(1 for s in sessions if s.status == GameStatus.DEFEAT),
            "players": len(self.players),
        }

    def __repr__(self):
        stats = self.get_stats()
        return (f"<GameManager: {stats['active_sessions']} active, "
                f"{stats['total_sessions']} total, {stats['players']} players>")
