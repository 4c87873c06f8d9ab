"""
GameSession - one battle between the player's army and an enemy formation.

    PLAYER_TURN --(cards)*--> move committed --> ENEMY_TURN --> status decay --> PLAYER_TURN
                      \______________________________\________> VICTORY / DEFEAT

Player commands (select_square, select_card, confirm_target, end_turn,
deploy_pocket) return (success, message) and never raise for an illegal
action. Every successful command notifies subscribers with the session.

The enemy turn runs synchronously when auto_enemy_turn is set. The server
turns it off and awaits enemy_turn_async() so the oracle can be consulted.
"""

from __future__ import annotations
import copy
import logging
import os
import random
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from roguechess.ai.enemy_ai import EnemyAI
from roguechess.ai.oracle import OracleClient
from roguechess.cards.card_state import Idle
from roguechess.cards.executor import CardExecutor
from roguechess.cards.hand import Hand
from roguechess.enums import Archetype, BoardOrientation, Difficulty, EffectType, GameStatus, Owner, PieceType
from roguechess.formations import Formation, new_battle_board
from roguechess.player import Player
from roguechess.rules.board import Board, InvariantViolation
from roguechess.rules.coordinate import Coordinate
from roguechess.rules.move import Move
from roguechess.rules.movegen import MoveModifiers, is_checkmate, moves_for
from roguechess.rules.piece import Piece
from roguechess.services.effect_tracker import EffectTracker

logger = logging.getLogger(__name__)


@dataclass
class BattleFlags:
    """One-shot and turn-scoped switches set by cards"""
    enemy_skips_turn: bool = False           # Stall
    loaded_dice: bool = False                # 50% chance the enemy move fails
    zugzwang: bool = False                   # enemy king must move
    checkmate_denied: bool = False           # player king survives one capture
    chain_reaction: bool = False             # next player capture explodes
    moves_allowed: int = 1                   # Parallel Play raises it to 2
    ricochet_piece: Optional[str] = None
    scout_until_turn: int = 0
    paparazzi_until_turn: int = 0
    bluff_until_turn: int = 0
    extra_moves: Dict[str, int] = field(default_factory=dict)  # Queen's Gambit
    extra_moves_turn: int = 0
    restricted_to: Optional[str] = None      # only this piece may make the next move
    captures_only: bool = False

    def reset_turn(self) -> None:
        self.moves_allowed = 1
        self.ricochet_piece = None
        self.chain_reaction = False
        self.restricted_to = None
        self.captures_only = False

    def to_dict(self) -> dict:
        return {
            "enemy_skips_turn": self.enemy_skips_turn,
            "loaded_dice": self.loaded_dice,
            "zugzwang": self.zugzwang,
            "checkmate_denied": self.checkmate_denied,
            "chain_reaction": self.chain_reaction,
            "moves_allowed": self.moves_allowed,
            "ricochet_piece": self.ricochet_piece,
            "extra_moves": dict(self.extra_moves),
            "restricted_to": self.restricted_to,
            "captures_only": self.captures_only,
        }


class GameSession:
    HISTORY_LIMIT = 5
    LOADED_DICE_FAIL_CHANCE = 0.5

    def __init__(self, session_id: str, player: Player,
                 formation: Optional[Formation] = None,
                 difficulty: Difficulty = Difficulty.MEDIUM,
                 archetype: Optional[Archetype] = None,
                 board: Optional[Board] = None,
                 hand: Optional[Hand] = None,
                 rng: Optional[random.Random] = None,
                 oracle: Optional[OracleClient] = None,
                 orientation: BoardOrientation = BoardOrientation.ENEMY_AS_BLACK,
                 auto_enemy_turn: bool = True,
                 strict: Optional[bool] = None):
        # Identification
        self.id = session_id
        self.player = player
        self.formation = formation
        self.difficulty = difficulty
        self.archetype = archetype or (formation.archetype if formation else Archetype.AGGRESSOR)
        self.orientation = orientation
        self.battle_number = player.battle_number

        self.rng = rng or random.Random()
        self.strict = strict if strict is not None else os.environ.get("ROGUECHESS_STRICT") == "1"
        self.auto_enemy_turn = auto_enemy_turn

        # Board and statuses
        if board is None:
            if formation is None:
                raise ValueError("A formation or a prepared board is required")
            board = new_battle_board(formation)
        self.board: Board = board
        self.effects = EffectTracker()
        self.player_modifiers = MoveModifiers()
        self.flags = BattleFlags()

        # Cards
        self.hand: Hand = hand if hand is not None else player.build_hand()
        self.executor = CardExecutor(self)

        # AI
        self.ai = EnemyAI(difficulty, self.archetype, rng=self.rng, oracle=oracle, orientation=orientation)
        self.enemy_intent: Optional[Move] = None
        self.shown_intent: Optional[Move] = None
        self._intent_stale = False

        # Turn tracking
        self.status = GameStatus.PLAYER_TURN
        self.turn_number = 1
        self.moves_this_turn = 0
        self.selected_piece: Optional[Piece] = None
        self.valid_moves: List[Move] = []
        self.last_player_move: Optional[Tuple[str, Coordinate, Coordinate]] = None
        self.last_enemy_move: Optional[Move] = None
        self.last_capture_square: Optional[Coordinate] = None

        # Pieces out of play
        self.captured_player_pieces: List[Piece] = []
        self.captured_enemy_pieces: List[Piece] = []
        self.pocketed_piece: Optional[Piece] = None
        self.pocket_turn = 0

        self.history: Deque[Dict[str, Any]] = deque(maxlen=self.HISTORY_LIMIT)
        self.result_reason: Optional[str] = None
        self._subscribers: List[Callable[[GameSession], None]] = []

        # Timestamps
        self.created_at: datetime = datetime.now()
        self.last_update: datetime = datetime.now()

        self._validate()
        self._push_history()
        self.refresh_intent()
        logger.info(f"[{self.id}] Battle {self.battle_number} started: "
                    f"{formation.name if formation else 'custom board'} "
                    f"({self.difficulty.value}, {self.archetype.value})")

    # ================================================================
    # Subscribers
    # ================================================================
    def subscribe(self, callback: Callable[[GameSession], None]) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[GameSession], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def notify(self) -> None:
        self.last_update = datetime.now()
        for callback in list(self._subscribers):
            callback(self)

    @property
    def is_over(self) -> bool:
        return self.status in (GameStatus.VICTORY, GameStatus.DEFEAT)

    # ================================================================
    # Player commands
    # ================================================================
    def select_square(self, row: int, col: int) -> Tuple[bool, str]:
        """A board click: a card target, a piece selection or a move."""
        if self.status != GameStatus.PLAYER_TURN:
            return False, "It is not your turn."
        coord = Coordinate(row, col)
        if not coord.in_bounds():
            return False, "That square is off the board."

        if self.executor.is_targeting:
            return self._after_action(*self.executor.select_square(coord))

        if self.selected_piece is not None:
            move = self._move_to(coord)
            if move is not None:
                return self._after_action(*self.make_player_move(move))

        piece = self.board.piece_at_coord(coord)
        if piece is None or piece.owner != Owner.PLAYER:
            self.clear_selection()
            return False, "Select one of your pieces."
        if self.flags.restricted_to is not None and piece.id != self.flags.restricted_to:
            return False, "Only the piece with extra moves can move now."

        self.selected_piece = piece
        self.refresh_valid_moves()
        self.notify()
        if not self.valid_moves:
            return True, f"{piece.type.value} has no moves."
        return True, f"{piece.type.value} selected."

    def select_card(self, card_id: str) -> Tuple[bool, str]:
        return self._after_action(*self.executor.select_card(card_id))

    def confirm_target(self, payload: Dict[str, Any]) -> Tuple[bool, str]:
        if self.status != GameStatus.PLAYER_TURN:
            return False, "It is not your turn."
        return self._after_action(*self.executor.confirm_target(payload))

    def end_turn(self) -> Tuple[bool, str]:
        """Give up the rest of the turn (after a free card, or with nothing left to move)."""
        if self.status != GameStatus.PLAYER_TURN:
            return False, "It is not your turn."
        if self.executor.is_targeting:
            return False, f"Finish or cancel {self.executor.pending_card.name} first."
        self.end_player_turn()
        return self._after_action(True, "Turn ended.")

    def deploy_pocket(self, row: int, col: int) -> Tuple[bool, str]:
        """Bring the pocketed piece back onto any empty square. A free action."""
        if self.status != GameStatus.PLAYER_TURN:
            return False, "It is not your turn."
        piece = self.pocketed_piece
        if piece is None:
            return False, "The pocket dimension is empty."
        if self.turn_number <= self.pocket_turn:
            return False, "The piece can be redeployed next turn."
        if self.executor.is_targeting:
            return False, f"Finish or cancel {self.executor.pending_card.name} first."
        coord = Coordinate(row, col)
        if not self.board.is_empty(coord):
            return False, "That square is occupied!"

        piece.row, piece.col = coord.row, coord.col
        self.board.place_piece(piece)
        self.pocketed_piece = None
        message = f"{piece.type.value} returns from the pocket dimension!"
        if self.trigger_trap(piece):
            message += " It landed on caltrops!"
        self.refresh_intent()
        return self._after_action(True, message)

    def _after_action(self, success: bool, message: str) -> Tuple[bool, str]:
        if success:
            if self.status == GameStatus.PLAYER_TURN:
                self._check_game_over()
            self._validate()
            self.notify()
        return success, message

    # ================================================================
    # Selection
    # ================================================================
    def clear_selection(self) -> None:
        self.selected_piece = None
        self.valid_moves = []

    def refresh_valid_moves(self) -> None:
        piece = self.selected_piece
        if piece is None or self.board.find_piece(piece.id) is not piece or piece.owner != Owner.PLAYER:
            self.clear_selection()
            return
        self.valid_moves = self._selectable_moves(piece)

    def player_moves_for(self, piece: Piece) -> List[Move]:
        return moves_for(piece, self.board, self.effects, self.player_modifiers)

    def _selectable_moves(self, piece: Piece) -> List[Move]:
        moves = self.player_moves_for(piece)
        if self.flags.captures_only:
            moves = [m for m in moves if self.board.is_enemy_of(m.to_sq, Owner.PLAYER)]
        return moves

    def _move_to(self, coord: Coordinate) -> Optional[Move]:
        matches = [m for m in self.valid_moves if m.to_sq == coord]
        if not matches:
            return None
        # A plain move wins over a piercing shot at the same square
        return next((m for m in matches if not m.piercing), matches[0])

    # ================================================================
    # Player move
    # ================================================================
    def make_player_move(self, move: Move) -> Tuple[bool, str]:
        """
        Commit a move from the valid move set. An attack on a protected piece
        fails but still uses up the move.
        """
        mover = move.piece
        board = self.board
        target = board.piece_at_coord(move.to_sq)
        ricochet_armed = self.flags.ricochet_piece == mover.id
        captured = False
        self.moves_this_turn += 1

        if target is not None and target is not mover and target.owner != mover.owner:
            self.last_player_move = None
            if self.capture_piece(target, mover):
                captured = True
                if not move.piercing:
                    board.relocate(mover, move.to_sq.row, move.to_sq.col)
                self.last_capture_square = move.to_sq
                message = f"{mover.type.value} captured {target.type.value}!"
                if self.flags.chain_reaction:
                    self.flags.chain_reaction = False
                    destroyed = self._chain_reaction(move.to_sq, mover)
                    if destroyed:
                        message += f" Chain reaction destroyed {destroyed} more!"
            else:
                message = f"{target.type.value} is protected! The attack fails."
        else:
            self.last_player_move = (mover.id, move.from_sq, move.to_sq)
            board.relocate(mover, move.to_sq.row, move.to_sq.col)
            message = f"{mover.type.value} moved to {move.to_sq.to_algebraic()}."
            if self.trigger_trap(mover):
                message += " It stepped on caltrops!"

        if board.find_piece(mover.id) is mover:
            self._promote(mover)
        self.flags.ricochet_piece = None
        self.clear_selection()
        logger.info(f"[{self.id}] Player move {move}: {message}")
        self.executor.on_move_committed(move)

        if self._check_game_over():
            return True, message
        if self._continue_turn(mover, captured and ricochet_armed):
            self.refresh_intent()
            return True, message + " Move again!"
        self.end_player_turn()
        return True, message

    def _continue_turn(self, mover: Piece, ricochet: bool) -> bool:
        flags = self.flags
        flags.restricted_to = None
        flags.captures_only = False
        on_board = self.board.find_piece(mover.id) is mover

        if ricochet and on_board:
            flags.captures_only = True
            if self._selectable_moves(mover):
                flags.restricted_to = mover.id
                return True
            flags.captures_only = False

        if on_board and flags.extra_moves_turn == self.turn_number and flags.extra_moves.get(mover.id, 0) > 0:
            flags.extra_moves[mover.id] -= 1
            if self._selectable_moves(mover):
                flags.restricted_to = mover.id
                return True

        return self.moves_this_turn < flags.moves_allowed

    def _chain_reaction(self, square: Coordinate, attacker: Piece) -> int:
        destroyed = 0
        for piece in list(self.board.enemy_pieces):
            if piece.type != PieceType.KING and piece.position.chebyshev(square) == 1:
                if self.capture_piece(piece, attacker):
                    destroyed += 1
        return destroyed

    def _promote(self, piece: Piece) -> None:
        if piece.type == PieceType.PAWN and piece.row == piece.promotion_row:
            piece.type = PieceType.QUEEN
            logger.info(f"[{self.id}] {piece.id} promoted to queen")

    # ================================================================
    # Board services used by cards
    # ================================================================
    def capture_piece(self, target: Piece, attacker: Optional[Piece] = None) -> bool:
        """
        The single capture entry point. Protection is checked every time;
        returns False (nothing removed) if the capture is vetoed.
        """
        if self.effects.is_capture_immune(target.id):
            logger.info(f"[{self.id}] Capture of {target.id} blocked by protection")
            return False
        if target.owner == Owner.PLAYER and target.type == PieceType.KING and self.flags.checkmate_denied:
            self.flags.checkmate_denied = False
            logger.info(f"[{self.id}] Checkmate denied! {target.id} survives")
            return False

        # A controlled piece is recorded under the side it really belongs to
        control = self.effects.get_effect(EffectType.MIND_CONTROLLED, target.id)
        owner = Owner(control.metadata.get("original_owner", target.owner.value)) if control else target.owner

        self.board.remove_piece(target)
        self.effects.remove_target(target.id)
        if owner == Owner.PLAYER:
            if not target.is_decoy:
                self.captured_player_pieces.append(target)
        else:
            self.captured_enemy_pieces.append(target)
        if self.selected_piece is target:
            self.clear_selection()
        logger.info(f"[{self.id}] {target.id} captured by {attacker.id if attacker else 'effect'}")
        return True

    def remove_from_game(self, piece: Piece) -> None:
        """Remove a piece without counting it as captured (exile, sacrifice, traps)."""
        self.board.remove_piece(piece)
        self.effects.remove_target(piece.id)
        if self.selected_piece is piece:
            self.clear_selection()

    def trigger_trap(self, piece: Piece) -> bool:
        """Destroy a piece standing on caltrops. The trap is used up."""
        square = piece.position
        if not self.effects.is_trap(square):
            return False
        self.effects.remove_effect(EffectType.TRAP, square)
        self.remove_from_game(piece)
        logger.info(f"[{self.id}] {piece.id} destroyed by caltrops at {square.to_algebraic()}")
        return True

    def summon(self, piece_type: PieceType, owner: Owner, coord: Coordinate,
               tag: Optional[str] = None, is_decoy: bool = False) -> Optional[Piece]:
        """Place a new piece. Returns None if it landed on caltrops and was destroyed."""
        piece = Piece.create(piece_type, owner, coord.row, coord.col, tag=tag, is_decoy=is_decoy)
        self.board.place_piece(piece)
        if self.trigger_trap(piece):
            return None
        return piece

    def pocket_piece(self, piece: Piece) -> None:
        self.remove_from_game(piece)
        self.pocketed_piece = piece
        self.pocket_turn = self.turn_number

    def grant_extra_moves(self, piece: Piece, count: int) -> None:
        """Each move the piece makes next turn is followed by another, up to count times."""
        self.flags.extra_moves = {piece.id: count}
        self.flags.extra_moves_turn = self.turn_number + 1

    def undo_last_player_move(self) -> Tuple[bool, str]:
        if self.last_player_move is None:
            return False, "No move to undo!"
        piece_id, from_sq, to_sq = self.last_player_move
        piece = self.board.find_piece(piece_id)
        if piece is None or piece.position != to_sq:
            return False, "That move can no longer be undone!"
        if not self.board.is_empty(from_sq):
            return False, "The original square is occupied!"
        self.board.relocate(piece, from_sq.row, from_sq.col)
        self.last_player_move = None
        return True, f"{piece.type.value} move undone!"

    # ================================================================
    # History
    # ================================================================
    def _push_history(self) -> None:
        state = {
            "board": self.board,
            "effects": self.effects,
            "captured_player_pieces": self.captured_player_pieces,
            "pocketed_piece": self.pocketed_piece,
        }
        self.history.append(copy.deepcopy(state))

    def can_rewind(self, turns: int) -> bool:
        return len(self.history) > turns

    def rewind(self, turns: int) -> bool:
        """Restore the position from the start of the player turn `turns` turns ago."""
        if not self.can_rewind(turns):
            return False
        state = copy.deepcopy(self.history[-(turns + 1)])
        for _ in range(turns):
            self.history.pop()
        self.board = state["board"]
        self.effects = state["effects"]
        self.captured_player_pieces = state["captured_player_pieces"]
        self.pocketed_piece = state["pocketed_piece"]
        self.last_player_move = None
        self.enemy_intent = self.shown_intent = None
        self.clear_selection()
        logger.info(f"[{self.id}] Rewound {turns} turns")
        return True

    # ================================================================
    # Turn flow
    # ================================================================
    def end_player_turn(self) -> None:
        if self.status != GameStatus.PLAYER_TURN:
            return
        if self.executor.pending_card is not None:
            self.executor.cancel()
        if self._check_game_over():
            return
        self.player_modifiers.clear()
        self.flags.reset_turn()
        self.clear_selection()
        self.status = GameStatus.ENEMY_TURN
        self._validate()
        if self.auto_enemy_turn:
            self.enemy_turn()

    def enemy_turn(self) -> None:
        """Resolve the enemy turn with the heuristic AI."""
        if self.status != GameStatus.ENEMY_TURN:
            return
        decided, move = self._enemy_turn_preamble()
        if not decided:
            move = self.ai.select_move(self.board, self.effects, self.hand.ids(), self.last_capture_square)
        self._finish_enemy_turn(move)

    async def enemy_turn_async(self) -> None:
        """Resolve the enemy turn, consulting the oracle when one is attached."""
        if self.status != GameStatus.ENEMY_TURN:
            return
        decided, move = self._enemy_turn_preamble()
        if not decided:
            move = await self.ai.select_move_async(self.board, self.effects, self.hand.ids(),
                                                   self.last_capture_square)
        self._finish_enemy_turn(move)
        self.notify()

    def _enemy_turn_preamble(self) -> Tuple[bool, Optional[Move]]:
        """Card overrides and the cached intent. Returns (decided, move)."""
        flags = self.flags
        if flags.enemy_skips_turn:
            flags.enemy_skips_turn = False
            logger.info(f"[{self.id}] Enemy turn skipped")
            return True, None
        if flags.loaded_dice:
            flags.loaded_dice = False
            if self.rng.random() < self.LOADED_DICE_FAIL_CHANCE:
                logger.info(f"[{self.id}] Loaded dice: enemy move fails")
                return True, None
        if flags.zugzwang:
            flags.zugzwang = False
            king = self.board.king_of(Owner.ENEMY)
            king_moves = moves_for(king, self.board, self.effects) if king else []
            if king_moves:
                return True, self.rng.choice(king_moves)

        intent = self.enemy_intent
        if intent is not None:
            if EnemyAI.is_move_still_legal(self.board, intent, self.effects):
                return True, self.board.translate_move(intent)
            logger.warning(f"[{self.id}] Stale enemy intent discarded: {intent}")
        return False, None

    def _finish_enemy_turn(self, move: Optional[Move]) -> None:
        if move is None:
            logger.info(f"[{self.id}] Enemy passes")
        else:
            self._execute_enemy_move(move)
        self.enemy_intent = self.shown_intent = None
        if self._check_game_over():
            return
        self._status_decay()
        if self._check_game_over():
            return
        self._start_player_turn()

    def _execute_enemy_move(self, move: Move) -> None:
        mover = move.piece
        board = self.board
        target = board.piece_at_coord(move.to_sq)
        if target is not None and target is not mover and target.owner != mover.owner:
            if not self.capture_piece(target, mover):
                logger.info(f"[{self.id}] Enemy attack {move} blocked")
                self.last_enemy_move = move
                return
            board.relocate(mover, move.to_sq.row, move.to_sq.col)
            if self.effects.has_effect(EffectType.TRAITOR_MARK, mover.id):
                self.effects.remove_effect(EffectType.TRAITOR_MARK, mover.id)
                board.change_owner(mover, Owner.PLAYER)
                logger.info(f"[{self.id}] {mover.id} betrays the enemy!")
        else:
            board.relocate(mover, move.to_sq.row, move.to_sq.col)
            self.trigger_trap(mover)
        if board.find_piece(mover.id) is mover:
            self._promote(mover)
        self.last_enemy_move = move
        logger.info(f"[{self.id}] Enemy move {move} ({move.metadata.get('reasoning', '')})")

    def _status_decay(self) -> None:
        """Tick every status once; expired phantoms vanish and controlled pieces go home."""
        for effect in self.effects.tick():
            if effect.effect_type == EffectType.PHANTOM:
                piece = self.board.find_piece(effect.target)
                if piece is not None:
                    self.remove_from_game(piece)
                    logger.info(f"[{self.id}] Phantom {piece.id} vanished")
            elif effect.effect_type == EffectType.MIND_CONTROLLED:
                piece = self.board.find_piece(effect.target)
                if piece is not None:
                    owner = Owner(effect.metadata.get("original_owner", Owner.ENEMY.value))
                    self.board.change_owner(piece, owner)
                    logger.info(f"[{self.id}] {piece.id} returns to the {owner.value}")

    def _start_player_turn(self) -> None:
        self.turn_number += 1
        self.status = GameStatus.PLAYER_TURN
        self.moves_this_turn = 0
        self.flags.reset_turn()
        if self.flags.extra_moves_turn < self.turn_number:
            self.flags.extra_moves = {}
        self.last_capture_square = None
        self.clear_selection()
        self._validate()
        self._push_history()
        self.refresh_intent()

    def _check_game_over(self) -> bool:
        if self.is_over:
            return True
        board = self.board
        if board.king_of(Owner.PLAYER) is None:
            self.status, self.result_reason = GameStatus.DEFEAT, "Your king has fallen"
        elif board.king_of(Owner.ENEMY) is None:
            self.status, self.result_reason = GameStatus.VICTORY, "The enemy king was captured"
        elif not board.enemy_pieces:
            self.status, self.result_reason = GameStatus.VICTORY, "The enemy army is destroyed"
        elif is_checkmate(board, Owner.ENEMY, self.effects):
            self.status, self.result_reason = GameStatus.VICTORY, "Checkmate"
        else:
            return False

        self.executor.state = Idle()
        self.clear_selection()
        self.enemy_intent = self.shown_intent = None
        if self.status == GameStatus.VICTORY:
            self.player.record_victory()
        logger.info(f"[{self.id}] Battle over: {self.status.value} ({self.result_reason})")
        return True

    # ================================================================
    # Enemy intent
    # ================================================================
    def refresh_intent(self) -> None:
        """Recompute the enemy's planned move (heuristics only)."""
        if self.status != GameStatus.PLAYER_TURN:
            return
        if not self.auto_enemy_turn:
            self._intent_stale = True
            return
        self._set_intent(self.ai.select_move(self.board, self.effects, self.hand.ids(),
                                             self.last_capture_square))

    async def refresh_intent_async(self) -> None:
        if self.status != GameStatus.PLAYER_TURN:
            return
        move = await self.ai.select_move_async(self.board, self.effects, self.hand.ids(),
                                               self.last_capture_square)
        self._set_intent(move)

    @property
    def intent_stale(self) -> bool:
        return self._intent_stale

    def _set_intent(self, move: Optional[Move]) -> None:
        self._intent_stale = False
        self.enemy_intent = move
        self.shown_intent = move
        if move is not None and self.turn_number <= self.flags.bluff_until_turn:
            fakes = [m for m in self.ai.candidate_moves(self.board, self.effects) if m != move]
            if fakes:
                self.shown_intent = self.rng.choice(fakes)

    def intent_preview(self) -> Optional[dict]:
        """What the player gets to see of the enemy's plan."""
        move = self.shown_intent
        if move is None:
            return None
        preview = {
            "piece_id": move.piece.id,
            "piece_type": move.piece.type.value,
            "from": move.from_sq.to_dict(),
        }
        if self.turn_number <= self.flags.scout_until_turn:
            preview["to"] = move.to_sq.to_dict()
            preview["score"] = move.metadata.get("score")
        return preview

    def enemy_move_sets(self) -> Dict[str, List[dict]]:
        return {piece.id: [m.to_sq.to_dict() for m in moves_for(piece, self.board, self.effects)]
                for piece in self.board.enemy_pieces}

    # ================================================================
    # Consistency
    # ================================================================
    def _validate(self) -> List[str]:
        """
        Check board/list agreement and drop statuses on pieces that are gone.
        Strict sessions raise InvariantViolation instead.
        """
        problems = self.board.validate()
        live = {p.id for p in self.board.all_pieces()}
        orphans = [e for e in self.effects.effects.values()
                   if e.effect_type != EffectType.TRAP and e.target not in live]
        if self.strict and (problems or orphans):
            problems += [f"orphaned {e.effect_type.value} on {e.target}" for e in orphans]
            raise InvariantViolation("; ".join(problems))
        for problem in problems:
            logger.warning(f"[{self.id}] Board invariant: {problem}")
        if orphans:
            self.effects.prune(live)
        return problems

    # ================================================================
    # Serialization
    # ================================================================
    def to_dict(self) -> dict:
        data = {
            "session_id": self.id,
            "status": self.status.value,
            "result_reason": self.result_reason,
            "battle_number": self.battle_number,
            "turn_number": self.turn_number,
            "moves_this_turn": self.moves_this_turn,
            "formation": self.formation.to_dict() if self.formation else None,
            "difficulty": self.difficulty.value,
            "archetype": self.archetype.value,
            "board": self.board.to_dict(),
            "effects": self.effects.to_dict(),
            "modifiers": self.player_modifiers.to_dict(),
            "flags": self.flags.to_dict(),
            "hand": [card.to_dict() for card in self.hand.list()],
            "card_state": self.executor.to_dict(),
            "selected_piece": self.selected_piece.id if self.selected_piece else None,
            "valid_moves": [m.to_dict() for m in self.valid_moves],
            "enemy_intent": self.intent_preview(),
            "pocketed_piece": self.pocketed_piece.to_dict() if self.pocketed_piece else None,
            "captured_player_pieces": [p.to_dict() for p in self.captured_player_pieces],
            "captured_enemy_count": len(self.captured_enemy_pieces),
            "last_enemy_move": self.last_enemy_move.to_dict() if self.last_enemy_move else None,
            "can_rewind": self.can_rewind(2),
            "created_at": self.created_at.isoformat(),
            "last_update": self.last_update.isoformat(),
        }
        if self.turn_number <= self.flags.paparazzi_until_turn:
            data["enemy_moves"] = self.enemy_move_sets()
        return data

    def __repr__(self):
        return f"<GameSession {self.id} turn {self.turn_number} {self.status.value}>"
