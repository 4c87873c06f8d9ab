import pytest

from roguechess.ai.card_danger import CARD_DANGERS, CONDITIONS, FLAT_CONDITIONS, card_danger
from roguechess.cards.card import CARD_REGISTRY
from roguechess.enums import Owner, PieceType
from roguechess.rules.coordinate import Coordinate
from roguechess.rules.move import Move

K, Q, R, P = PieceType.KING, PieceType.QUEEN, PieceType.ROOK, PieceType.PAWN
ME, THEM = Owner.PLAYER, Owner.ENEMY


def _move(board, frm, to):
    return Move(Coordinate(*frm), Coordinate(*to), board.piece_at(*frm))


def test_every_card_has_a_danger_entry():
    assert set(CARD_DANGERS) == set(CARD_REGISTRY)


def test_every_condition_is_known():
    for entry in CARD_DANGERS.values():
        assert entry.condition == "none" or entry.condition in CONDITIONS or entry.condition in FLAT_CONDITIONS


@pytest.fixture()
def open_board(build_board):
    return build_board((K, THEM, 0, 4), (Q, THEM, 2, 2), (R, THEM, 3, 3), (K, ME, 7, 4))


def test_harmless_cards(open_board):
    move = _move(open_board, (2, 2), (3, 2))
    assert card_danger(open_board, move, ["scout", "paparazzi"]) == 0
    assert card_danger(open_board, move, ["notACard"]) == 0


def test_flat_cards_pay_a_fraction(open_board):
    move = _move(open_board, (3, 3), (3, 4))
    assert card_danger(open_board, move, ["nudge"]) == pytest.approx(3.0)


def test_demotion_only_fears_queen_moves(open_board):
    assert card_danger(open_board, _move(open_board, (2, 2), (3, 2)), ["demotion"]) == 70
    assert card_danger(open_board, _move(open_board, (3, 3), (3, 4)), ["demotion"]) == 0


def test_dangers_add_up(open_board):
    move = _move(open_board, (2, 2), (3, 2))
    assert card_danger(open_board, move, ["nudge", "scout", "demotion"]) == pytest.approx(73.0)


def test_empty_squares_pay_half(open_board):
    assert card_danger(open_board, _move(open_board, (3, 3), (3, 4)), ["caltrops"]) == pytest.approx(12.5)


class TestShieldBash:

    def test_adjacent(self, build_board):
        board = build_board((K, THEM, 0, 4), (R, THEM, 3, 3), (P, ME, 4, 5), (K, ME, 7, 4))
        assert card_danger(board, _move(board, (3, 3), (3, 4)), ["shieldBash"]) == 35

    def test_against_the_wall(self, build_board):
        board = build_board((K, THEM, 0, 4), (R, THEM, 0, 0), (P, ME, 1, 2), (K, ME, 7, 4))
        assert card_danger(board, _move(board, (0, 0), (0, 1)), ["shieldBash"]) == 55

    def test_not_adjacent(self, build_board):
        board = build_board((K, THEM, 0, 4), (R, THEM, 3, 3), (K, ME, 7, 4))
        assert card_danger(board, _move(board, (3, 3), (3, 4)), ["shieldBash"]) == 0
