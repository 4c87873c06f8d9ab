from typing import List, Optional, Union

from roguechess.cards.card import Card


class Hand:
    """Cards chosen before a battle; fixed for that battle apart from plays."""

    MAX_SIZE = 5

    def __init__(self, cards: Optional[List[Card]] = None):
        self.cards: List[Card] = []
        for card in cards or []:
            self.add(card)

    def add(self, card: Card) -> None:
        """Add a card to the hand"""
        if not isinstance(card, Card):
            raise TypeError(f"Object {card} is not a Card or subclass of Card.")
        if len(self.cards) >= self.MAX_SIZE:
            raise ValueError(f"Hand cannot hold more than {self.MAX_SIZE} cards.")
        self.cards.append(card)

    def remove(self, card: Union[str, Card]) -> Optional[Card]:
        # Handle both string card_id and Card object
        card_id = card if isinstance(card, str) else card.id
        for i, c in enumerate(self.cards):
            if c.id == card_id:
                return self.cards.pop(i)
        return None

    def get(self, card_id: str) -> Optional[Card]:
        for card in self.cards:
            if card.id == card_id:
                return card
        return None

    def has_card(self, card: Union[str, Card]) -> bool:
        card_id = card if isinstance(card, str) else card.id
        return any(c.id == card_id for c in self.cards)

    def size(self) -> int:
        """Return the number of cards in hand"""
        return len(self.cards)

    def ids(self) -> List[str]:
        return [card.id for card in self.cards]

    def list(self) -> List[Card]:
        """Return all cards in hand"""
        return self.cards

    def __len__(self):
        return len(self.cards)
