import logging
from typing import List

from roguechess.cards.card import STARTER_DECK, Card, create_card_by_id

logger = logging.getLogger(__name__)


class Deck:
    """The run-level collection of cards the player owns."""

    MAX_SIZE = 16

    def __init__(self):
        self.cards: List[Card] = []

    @classmethod
    def starter(cls) -> "Deck":
        deck = cls()
        for card_id in STARTER_DECK:
            deck.add_card(create_card_by_id(card_id))
        return deck

    def add_card(self, card: Card) -> None:
        if not isinstance(card, Card):
            raise TypeError(f"Object {card} is not a Card or subclass of Card.")
        if len(self.cards) >= self.MAX_SIZE:
            raise ValueError(f"Deck cannot hold more than {self.MAX_SIZE} cards.")
        self.cards.append(card)

    def burn(self, card_id: str) -> bool:
        """Remove one copy of a card permanently. Returns True if found."""
        for i, card in enumerate(self.cards):
            if card.id == card_id:
                self.cards.pop(i)
                logger.info(f"Card burned from deck: {card_id}")
                return True
        return False

    def has_card(self, card_id: str) -> bool:
        return any(c.id == card_id for c in self.cards)

    def ids(self) -> List[str]:
        return [card.id for card in self.cards]

    def size(self) -> int:
        return len(self.cards)
