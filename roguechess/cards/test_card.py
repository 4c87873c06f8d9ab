import pytest

from roguechess.cards.card import CARD_REGISTRY, STARTER_DECK, Card, cards_by_rarity, create_card_by_id
from roguechess.cards.deck import Deck
from roguechess.cards.hand import Hand
from roguechess.enums import CardRarity, Targeting
from roguechess.player import Player


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def test_registry_holds_every_card_once():
    assert len(CARD_REGISTRY) == 49
    for card_id, cls in CARD_REGISTRY.items():
        card = cls()
        assert card.id == card_id
        assert isinstance(card, Card)


def test_unknown_card_is_none():
    assert create_card_by_id("notACard") is None


def test_starter_deck_cards_exist():
    for card_id in STARTER_DECK:
        assert create_card_by_id(card_id) is not None


def test_rarity_partition_covers_registry():
    total = sum(len(cards_by_rarity(r)) for r in CardRarity)
    assert total == len(CARD_REGISTRY)
    assert "actuallyImTheKing" in cards_by_rarity(CardRarity.LEGENDARY)


@pytest.mark.parametrize("card_id", ["knightsTour", "chainReaction", "snipe", "mindControl",
                                     "rewind", "parallelPlay"])
def test_free_cards_keep_the_turn(card_id):
    assert create_card_by_id(card_id).ends_turn is False


@pytest.mark.parametrize("card_id", ["checkmateDenied", "rewind", "exile", "actuallyImTheKing"])
def test_burn_cards(card_id):
    assert create_card_by_id(card_id).is_burn


def test_to_dict_for_the_ui():
    data = create_card_by_id("caltrops").to_dict()
    assert data == {
        "id": "caltrops",
        "name": "Caltrops",
        "description": "Place a lethal trap on an empty square.",
        "rarity": "UNCOMMON",
        "xpCost": 40,
        "targeting": Targeting.EMPTY_SQUARE.value,
        "isBurn": False,
    }


# ---------------------------------------------------------------------------
# Hand and deck
# ---------------------------------------------------------------------------


class TestHand:

    def test_size_limit(self):
        hand = Hand([create_card_by_id(c) for c in STARTER_DECK])
        assert len(hand) == Hand.MAX_SIZE
        with pytest.raises(ValueError):
            hand.add(create_card_by_id("scout"))

    def test_rejects_non_cards(self):
        with pytest.raises(TypeError):
            Hand().add("shield")

    def test_remove_by_id_or_card(self):
        shield = create_card_by_id("shield")
        hand = Hand([shield, create_card_by_id("nudge")])
        assert hand.remove("nudge").id == "nudge"
        assert hand.remove(shield) is shield
        assert hand.remove("nudge") is None
        assert hand.ids() == []


class TestDeck:

    def test_starter(self):
        assert Deck.starter().ids() == STARTER_DECK

    def test_limit(self):
        deck = Deck()
        for _ in range(Deck.MAX_SIZE):
            deck.add_card(create_card_by_id("scout"))
        with pytest.raises(ValueError):
            deck.add_card(create_card_by_id("scout"))

    def test_burn_removes_one_copy(self):
        deck = Deck()
        deck.add_card(create_card_by_id("exile"))
        deck.add_card(create_card_by_id("exile"))
        assert deck.burn("exile")
        assert deck.ids() == ["exile"]
        assert not deck.burn("rewind")


# ---------------------------------------------------------------------------
# Player
# ---------------------------------------------------------------------------


class TestPlayer:

    def test_default_hand_is_the_top_of_the_deck(self):
        player = Player("p1", "Tester")
        assert player.build_hand().ids() == STARTER_DECK[:Hand.MAX_SIZE]

    def test_hand_must_come_from_the_deck(self):
        player = Player("p1", "Tester")
        with pytest.raises(ValueError):
            player.build_hand(["exile"])

    def test_duplicates_need_duplicate_copies(self):
        player = Player("p1", "Tester")
        with pytest.raises(ValueError):
            player.build_hand(["shield", "shield"])

    def test_burn_card_leaves_the_deck(self):
        player = Player("p1", "Tester")
        player.add_card(create_card_by_id("exile"))
        player.record_card_play(create_card_by_id("exile"))
        player.record_card_play(create_card_by_id("shield"))
        assert not player.deck.has_card("exile")
        assert player.deck.has_card("shield")
        assert player.cards_played_total == 2

    def test_victory_advances_the_run(self):
        player = Player("p1", "Tester")
        player.record_victory()
        assert (player.battles_won, player.battle_number) == (1, 2)
        assert player.to_dict()["battle_number"] == 2
