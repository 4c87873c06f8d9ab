from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from typing import Dict, Optional, Tuple
import json
import logging
import os
from pathlib import Path
from datetime import datetime

from roguechess.ai.oracle import OracleClient, StockfishOracle
from roguechess.cards.card import CARD_REGISTRY, create_card_by_id
from roguechess.enums import BoardOrientation, GameStatus
from roguechess.formations import FORMATIONS
from roguechess.services.game_manager import GameManager
from roguechess.services.game_state import GameSession

# ============================================================================
# LOGGING SETUP
# ============================================================================

# Create logs directory if it doesn't exist
log_dir = Path(os.environ.get("ROGUECHESS_LOG_DIR", "logs"))
log_dir.mkdir(exist_ok=True)

log_filename = log_dir / f"server_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(message)s',
    handlers=[
        logging.FileHandler(log_filename),
        logging.StreamHandler()  # Also print to console
    ]
)

logger = logging.getLogger(__name__)
logger.info("="*60)
logger.info("ROGUE CHESS SERVER STARTING")
logger.info("="*60)

# ============================================================================
# FASTAPI APP SETUP
# ============================================================================

app = FastAPI()


def make_oracle() -> Optional[OracleClient]:
    """One Stockfish client per battle; ROGUECHESS_ORACLE=0 plays on heuristics alone."""
    if os.environ.get("ROGUECHESS_ORACLE") == "0":
        return None
    return OracleClient(StockfishOracle())


# The server drives enemy turns itself so the oracle can be awaited
game_manager = GameManager(oracle_factory=make_oracle, auto_enemy_turn=False)

# ============================================================================
# CONNECTION MANAGER
# ============================================================================

class ConnectionManager:
    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}

    async def connect(self, websocket: WebSocket, client_id: str):
        await websocket.accept()
        self.active_connections[client_id] = websocket
        logger.info(f"Client connected: {client_id} | Total connections: {len(self.active_connections)}")

    def disconnect(self, client_id: str):
        if client_id in self.active_connections:
            del self.active_connections[client_id]
        logger.info(f"Client disconnected: {client_id} | Total connections: {len(self.active_connections)}")

    async def send_personal_message(self, message: dict, client_id: str):
        if client_id in self.active_connections:
            websocket = self.active_connections[client_id]
            try:
                await websocket.send_json(message)
                logger.info(f"Sent to {client_id}: {message['type']}")
            except Exception as e:
                logger.error(f"Error sending to {client_id}: {e}", exc_info=True)
        else:
            logger.warning(f"Cannot send to {client_id}: not in active connections")

manager = ConnectionManager()


async def settle(session: GameSession):
    """Run whatever the session left for the server: the enemy turn, then the next intent."""
    if session.status == GameStatus.ENEMY_TURN:
        await session.enemy_turn_async()
    if session.intent_stale:
        await session.refresh_intent_async()


async def send_result(client_id: str, session: Optional[GameSession], success: bool, message: str):
    if not success:
        await manager.send_personal_message({"type": "rejected", "message": message}, client_id)
        return
    await settle(session)
    await manager.send_personal_message({
        "type": "state_changed",
        "message": message,
        "state": session.to_dict()
    }, client_id)
    if session.is_over:
        logger.info(f"Battle finished: {session.id} | {session.status.value}")
        await manager.send_personal_message({
            "type": "battle_over",
            "result": session.status.value,
            "reason": session.result_reason,
            "player": session.player.to_dict()
        }, client_id)


def parse_square(message: dict) -> Tuple[Optional[int], Optional[int]]:
    try:
        return int(message["row"]), int(message["col"])
    except (KeyError, TypeError, ValueError):
        return None, None

# ============================================================================
# HTTP ENDPOINTS
# ============================================================================

@app.on_event("startup")
async def startup_event():
    logger.info(f"Log file: {log_filename}")

@app.on_event("shutdown")
async def shutdown_event():
    """Stop every oracle engine still running"""
    await game_manager.shutdown()
    logger.info("Server shutting down - closed all battles")

@app.get("/status")
async def status():
    """Get server status"""
    stats = game_manager.get_stats()
    return {
        "connections": len(manager.active_connections),
        "active_battles": stats["active_sessions"],
        "total_battles": stats["total_sessions"],
        "victories": stats["victories"],
        "defeats": stats["defeats"],
        "players": stats["players"]
    }

@app.get("/session/{session_id}")
async def get_session_state(session_id: str):
    """Get the state of a specific battle"""
    session = game_manager.get_session(session_id)
    if not session:
        logger.warning(f"State request for nonexistent battle: {session_id}")
        return {"error": "Battle not found"}
    return {
        "success": True,
        "state": session.to_dict()
    }

@app.get("/cards")
async def list_cards():
    """Every card the game knows about"""
    return {"cards": [create_card_by_id(card_id).to_dict() for card_id in CARD_REGISTRY]}

@app.get("/formations")
async def list_formations():
    return {"formations": [f.to_dict() for f in FORMATIONS.values()]}

# ============================================================================
# WEBSOCKET ENDPOINT
# ============================================================================

@app.websocket("/ws/{client_id}")
async def websocket_endpoint(websocket: WebSocket, client_id: str):
    await manager.connect(websocket, client_id)

    try:
        while True:
            # Receive message from client
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Malformed message from {client_id}: {data[:80]}")
                await manager.send_personal_message({"type": "error", "message": "Invalid JSON"}, client_id)
                continue

            message_type = message.get("type")
            logger.info(f"Message from {client_id}: {message_type}")

            if message_type == "new_battle":
                orientation = message.get("orientation")
                try:
                    orientation = BoardOrientation(orientation) if orientation else None
                except ValueError:
                    await manager.send_personal_message({
                        "type": "rejected",
                        "message": f"Unknown orientation: {orientation}"
                    }, client_id)
                    continue
                old = game_manager.get_client_session(client_id)
                if old is not None:
                    await game_manager.close_session(old.id)
                success, msg, session = game_manager.new_battle(
                    client_id,
                    battle_number=message.get("battle_number"),
                    formation_id=message.get("formation_id"),
                    seed=message.get("seed"),
                    orientation=orientation,
                    hand_ids=message.get("hand")
                )
                if success:
                    logger.info(f"BATTLE CREATED: {session.id} for {client_id}")
                await send_result(client_id, session, success, msg)
                continue

            if message_type == "ping":
                # Keep connection alive
                await manager.send_personal_message({"type": "pong"}, client_id)
                continue

            session = game_manager.get_client_session(client_id)
            if session is None:
                logger.warning(f"{message_type} from {client_id} without a battle")
                await manager.send_personal_message({
                    "type": "error",
                    "message": "No active battle. Start one with new_battle."
                }, client_id)
                continue

            if message_type == "get_state":
                await settle(session)
                await manager.send_personal_message({
                    "type": "state_changed",
                    "message": "",
                    "state": session.to_dict()
                }, client_id)

            elif message_type == "select_square":
                row, col = parse_square(message)
                if row is None:
                    await send_result(client_id, session, False, "row and col are required")
                else:
                    await send_result(client_id, session, *session.select_square(row, col))

            elif message_type == "select_card":
                await send_result(client_id, session, *session.select_card(str(message.get("card_id", ""))))

            elif message_type == "confirm_target":
                await send_result(client_id, session, *session.confirm_target(message.get("payload") or {}))

            elif message_type == "end_turn":
                await send_result(client_id, session, *session.end_turn())

            elif message_type == "deploy_pocket":
                row, col = parse_square(message)
                if row is None:
                    await send_result(client_id, session, False, "row and col are required")
                else:
                    await send_result(client_id, session, *session.deploy_pocket(row, col))

            else:
                logger.warning(f"Unknown message type from {client_id}: {message_type}")
                await manager.send_personal_message({
                    "type": "error",
                    "message": f"Unknown message type: {message_type}"
                }, client_id)

    except WebSocketDisconnect:
        manager.disconnect(client_id)
        logger.info(f"Client disconnected normally: {client_id}")
    except Exception as e:
        logger.error(f"Error with client {client_id}: {e}", exc_info=True)
        manager.disconnect(client_id)

if __name__ == "__main__":
    import uvicorn
    logger.info("Starting server on http://0.0.0.0:8000")
    uvicorn.run(app, host="0.0.0.0", port=8000)
