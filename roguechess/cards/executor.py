"""
Card executor - drives a card from selection to finalisation.

    Idle --select_card--> (instant resolve) | Awaiting* --select_square/confirm_target--> ... --> Idle
                                            | Armed --player move--> Idle

Every entry point returns (success, message). A rejected step leaves the
state untouched. Reselecting the pending card cancels it.
"""

from __future__ import annotations
import logging
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

from roguechess.cards.card import ArmingCard, Card
from roguechess.cards.card_state import (
    PIECE_STATES,
    Armed,
    AwaitingCapturedPieceChoice,
    AwaitingDirection,
    AwaitingEmptySquare,
    AwaitingPiece,
    AwaitingPromotionChoice,
    AwaitingTwoPieces,
    CardState,
    Idle,
)
from roguechess.enums import GameStatus, Owner, Targeting
from roguechess.rules.coordinate import Coordinate

if TYPE_CHECKING:
    from roguechess.rules.move import Move
    from roguechess.rules.piece import Piece
    from roguechess.services.game_state import GameSession

logger = logging.getLogger(__name__)


class CardExecutor:
    MAX_CARDS_PER_BATTLE = 3

    def __init__(self, session: GameSession):
        self.session = session
        self.state: CardState = Idle()
        self.cards_played_this_battle = 0

    @property
    def pending_card(self) -> Optional[Card]:
        return self.state.card

    @property
    def is_targeting(self) -> bool:
        """True while the next board click belongs to the card rather than a move."""
        return not isinstance(self.state, (Idle, Armed))

    @property
    def cards_remaining(self) -> int:
        return max(0, self.MAX_CARDS_PER_BATTLE - self.cards_played_this_battle)

    def reset(self) -> None:
        self.state = Idle()
        self.cards_played_this_battle = 0

    # ================================================================
    # Commands
    # ================================================================
    def select_card(self, card_id: str) -> Tuple[bool, str]:
        session = self.session
        if session.status != GameStatus.PLAYER_TURN:
            return False, "You can only play cards on your turn."

        pending = self.pending_card
        if pending is not None:
            if pending.id == card_id:
                self.cancel()
                return True, f"{pending.name} cancelled."
            return False, f"Finish or cancel {pending.name} first."

        if self.cards_played_this_battle >= self.MAX_CARDS_PER_BATTLE:
            return False, f"You can only play {self.MAX_CARDS_PER_BATTLE} cards per battle!"

        card = session.hand.get(card_id)
        if card is None:
            return False, "That card is not in your hand."

        ok, message = card.can_play(session)
        if not ok:
            return False, message

        if card.targeting == Targeting.NONE:
            return self._advance(card, {})

        if card.targeting in PIECE_STATES:
            if not any(self._piece_allowed(card, p) for p in session.board.all_pieces()):
                return False, "No valid targets!"
            next_state: CardState = PIECE_STATES[card.targeting](card=card)
        elif card.targeting == Targeting.EMPTY_SQUARE:
            next_state = AwaitingEmptySquare(card=card)
        elif card.targeting == Targeting.TWO_PIECES:
            next_state = AwaitingTwoPieces(card=card)
        else:
            return False, f"Unsupported targeting: {card.targeting.value}"

        session.clear_selection()
        self.state = next_state
        logger.info(f"[{session.id}] Card selected: {card.id} -> {next_state.name}")
        return True, next_state.prompt

    def select_square(self, coord: Coordinate) -> Tuple[bool, str]:
        state = self.state
        card = state.card
        board = self.session.board
        if card is None or not self.is_targeting:
            return False, "No card is waiting for a target."
        if not coord.in_bounds():
            return False, "That square is off the board."

        target = dict(state.payload)
        piece = board.piece_at_coord(coord)

        if isinstance(state, AwaitingPiece):
            if piece is None or not self._piece_allowed(card, piece, target):
                return False, "Invalid target!"
            target["piece"] = piece
            return self._advance(card, target)

        if isinstance(state, AwaitingEmptySquare):
            if not board.is_empty(coord):
                return False, "That square is occupied!"
            if state.allowed is not None and coord not in state.allowed:
                return False, "You cannot place it there!"
            target["square"] = coord
            return self._advance(card, target)

        if isinstance(state, AwaitingTwoPieces):
            if piece is None:
                return False, "Select a piece."
            if state.first is None:
                if card.requires_friendly and piece.owner != Owner.PLAYER:
                    return False, "Select one of your pieces."
                if not card.accepts(self.session, piece, target):
                    return False, "Invalid target!"
                target["first"] = piece
                state.first = piece
                state.payload = target
                return True, state.prompt
            first = state.first
            if piece is first:
                return False, "Select a different piece."
            if card.requires_friendly and piece.owner != Owner.PLAYER:
                return False, "Select one of your pieces."
            if card.requires_adjacent and first.position.chebyshev(piece.position) != 1:
                return False, "The pieces must be adjacent!"
            if not card.accepts(self.session, piece, target):
                return False, "Invalid target!"
            target["pieces"] = (first, piece)
            return self._advance(card, target)

        if isinstance(state, AwaitingDirection):
            # Clicking the neighbouring square picks that direction
            direction = (coord.row - state.piece.row, coord.col - state.piece.col)
            return self._choose_direction(direction)

        return False, state.prompt

    def confirm_target(self, payload: Dict[str, Any]) -> Tuple[bool, str]:
        """Resolve a choice that is not a board click (direction, promotion, captured piece)."""
        state = self.state
        card = state.card
        if card is None:
            return False, "No card is waiting for a choice."

        if isinstance(state, AwaitingDirection):
            raw = payload.get("direction")
            if not isinstance(raw, (list, tuple)) or len(raw) != 2:
                return False, "Select a direction."
            return self._choose_direction((int(raw[0]), int(raw[1])))

        if isinstance(state, AwaitingPromotionChoice):
            choice = str(payload.get("choice", "")).lower()
            if choice not in state.options:
                return False, state.prompt
            target = dict(state.payload)
            target["choice"] = choice
            return self._advance(card, target)

        if isinstance(state, AwaitingCapturedPieceChoice):
            piece_id = payload.get("piece_id")
            chosen = next((p for p in state.options if p.id == piece_id), None)
            if chosen is None:
                return False, state.prompt
            target = dict(state.payload)
            target["captured"] = chosen
            return self._advance(card, target)

        return False, "Nothing to confirm."

    def cancel(self) -> None:
        """Abandon the pending card; only armed boosts need undoing."""
        state = self.state
        if isinstance(state, Armed) and isinstance(state.card, ArmingCard):
            state.card.disarm(self.session, state.piece)
        if state.card is not None:
            logger.info(f"[{self.session.id}] Card cancelled: {state.card.id}")
        self.state = Idle()
        self.session.clear_selection()

    def on_move_committed(self, move: Move) -> None:
        """An armed card is spent by the player's next move, whichever piece made it."""
        if isinstance(self.state, Armed):
            self.finish_card_play(self.state.card, end_turn=False)

    # ================================================================
    # Resolution
    # ================================================================
    def _choose_direction(self, direction: Tuple[int, int]) -> Tuple[bool, str]:
        state = self.state
        if direction not in state.directions:
            return False, "Invalid direction!"
        target = dict(state.payload)
        target["direction"] = direction
        return self._advance(state.card, target)

    def _advance(self, card: Card, target: Dict[str, Any]) -> Tuple[bool, str]:
        next_state = card.follow_up(self.session, target)
        if next_state is None:
            return self._resolve(card, target)

        next_state.card = card
        next_state.payload = target
        if isinstance(next_state, Armed):
            card.arm(self.session, next_state.piece)
            self.state = next_state
            self.session.refresh_valid_moves()
            logger.info(f"[{self.session.id}] Card armed: {card.id} on {next_state.piece.id}")
            return True, f"{card.name} ready! {next_state.prompt}"
        self.state = next_state
        return True, next_state.prompt

    def _resolve(self, card: Card, target: Dict[str, Any]) -> Tuple[bool, str]:
        if self.cards_played_this_battle >= self.MAX_CARDS_PER_BATTLE:
            return False, f"You can only play {self.MAX_CARDS_PER_BATTLE} cards per battle!"
        success, message = card.apply_effect(self.session, target)
        if not success:
            return False, message
        self.finish_card_play(card, end_turn=card.ends_turn)
        return True, message

    def finish_card_play(self, card: Card, end_turn: bool = True) -> None:
        session = self.session
        self.cards_played_this_battle += 1
        session.hand.remove(card)
        session.player.record_card_play(card)
        self.state = Idle()
        session.clear_selection()
        logger.info(f"[{session.id}] Card played: {card.id} "
                    f"({self.cards_played_this_battle}/{self.MAX_CARDS_PER_BATTLE})")
        if session.status == GameStatus.PLAYER_TURN:
            session.refresh_intent()
        if end_turn:
            session.end_player_turn()

    def _piece_allowed(self, card: Card, piece: Piece, target: Optional[Dict[str, Any]] = None) -> bool:
        targeting = card.targeting
        if targeting == Targeting.OWN_PIECE and piece.owner != Owner.PLAYER:
            return False
        if targeting in (Targeting.ENEMY_PIECE, Targeting.ADJACENT_ENEMY) and piece.owner != Owner.ENEMY:
            return False
        if targeting == Targeting.ADJACENT_ENEMY:
            if not any(p.position.chebyshev(piece.position) == 1 for p in self.session.board.player_pieces):
                return False
        return card.accepts(self.session, piece, target or {})

    def to_dict(self) -> dict:
        data = self.state.to_dict()
        data["cards_played_this_battle"] = self.cards_played_this_battle
        data["cards_remaining"] = self.cards_remaining
        return data
