from __future__ import annotations
from typing import List, Optional

from roguechess.cards.card import Card, create_card_by_id
from roguechess.cards.deck import Deck
from roguechess.cards.hand import Hand


class Player:
    """Run-level player: owns the deck and the counters that outlive a battle."""

    def __init__(self, id: str, name: str, deck: Optional[Deck] = None):
        self.id = id
        self.name = name
        self.deck = deck if deck is not None else Deck.starter()
        self.battle_number = 1
        self.cards_played_total = 0
        self.battles_won = 0

    def build_hand(self, card_ids: Optional[List[str]] = None) -> Hand:
        """
        Pick up to Hand.MAX_SIZE cards from the deck for the next battle.
        Without an explicit choice the first cards of the deck are used.
        """
        if card_ids is None:
            card_ids = self.deck.ids()[:Hand.MAX_SIZE]
        hand = Hand()
        remaining = self.deck.ids()
        for card_id in card_ids:
            if card_id not in remaining:
                raise ValueError(f"Card {card_id} is not in the deck")
            remaining.remove(card_id)
            hand.add(create_card_by_id(card_id))
        return hand

    def add_card(self, card: Card) -> None:
        self.deck.add_card(card)

    def record_card_play(self, card: Card) -> None:
        self.cards_played_total += 1
        if card.is_burn:
            self.deck.burn(card.id)

    def record_victory(self) -> None:
        self.battles_won += 1
        self.battle_number += 1

    def __repr__(self) -> str:
        return f"<Player {self.name} (battle {self.battle_number})>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "deck": self.deck.ids(),
            "battle_number": self.battle_number,
            "cards_played_total": self.cards_played_total,
            "battles_won": self.battles_won,
        }
