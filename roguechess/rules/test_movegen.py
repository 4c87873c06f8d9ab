"""Move generation under statuses and card modifiers, plus check detection."""

from roguechess.enums import EffectType, Owner, PieceType
from roguechess.rules.coordinate import Coordinate
from roguechess.rules.movegen import (
    MoveModifiers,
    is_checkmate,
    is_in_check,
    legal_moves_for_side,
    moves_for,
)
from roguechess.services.effect_tracker import EffectTracker

K, Q, R, B, N, P = (PieceType.KING, PieceType.QUEEN, PieceType.ROOK,
                    PieceType.BISHOP, PieceType.KNIGHT, PieceType.PAWN)
ME, THEM = Owner.PLAYER, Owner.ENEMY


def _targets(moves):
    return {(m.to_sq.row, m.to_sq.col) for m in moves}


# ---------------------------------------------------------------------------
# Basic patterns
# ---------------------------------------------------------------------------


class TestPatterns:

    def test_rook_stops_at_own_piece_and_captures_enemy(self, build_board):
        board = build_board((R, ME, 4, 0), (P, ME, 4, 2), (P, THEM, 1, 0))
        targets = _targets(moves_for(board.piece_at(4, 0), board))
        assert (4, 1) in targets
        assert (4, 2) not in targets
        assert (1, 0) in targets
        assert (0, 0) not in targets

    def test_pawn_double_push_from_start_row_only(self, build_board):
        board = build_board((P, ME, 6, 0), (P, ME, 5, 3))
        assert _targets(moves_for(board.piece_at(6, 0), board)) == {(5, 0), (4, 0)}
        assert _targets(moves_for(board.piece_at(5, 3), board)) == {(4, 3)}

    def test_pawn_captures_diagonally_not_forward(self, build_board):
        board = build_board((P, THEM, 1, 3), (P, ME, 2, 3), (N, ME, 2, 4))
        assert _targets(moves_for(board.piece_at(1, 3), board)) == {(2, 4)}

    def test_knight_jumps(self, build_board):
        board = build_board((N, THEM, 0, 1))
        assert _targets(moves_for(board.piece_at(0, 1), board)) == {(2, 0), (2, 2), (1, 3)}

    def test_side_moves_cover_every_piece(self, build_board):
        board = build_board((K, THEM, 0, 0), (P, THEM, 1, 7))
        moves = legal_moves_for_side(board, THEM)
        assert {m.piece.type for m in moves} == {K, P}


# ---------------------------------------------------------------------------
# Statuses
# ---------------------------------------------------------------------------


class TestStatuses:

    def test_frozen_piece_has_no_moves(self, build_board):
        board = build_board((R, THEM, 0, 0))
        rook = board.piece_at(0, 0)
        effects = EffectTracker()
        effects.add_effect(EffectType.FROZEN, rook.id, 1)
        assert moves_for(rook, board, effects) == []

    def test_invulnerable_piece_cannot_move_or_be_captured(self, build_board):
        board = build_board((R, ME, 4, 0), (N, THEM, 4, 4))
        knight = board.piece_at(4, 4)
        effects = EffectTracker()
        effects.add_effect(EffectType.INVULNERABLE, knight.id, 1)
        assert moves_for(knight, board, effects) == []
        assert (4, 4) not in _targets(moves_for(board.piece_at(4, 0), board, effects))

    def test_shielded_target_still_offered(self, build_board):
        board = build_board((R, ME, 4, 0), (N, THEM, 4, 4))
        effects = EffectTracker()
        effects.add_effect(EffectType.SHIELDED, board.piece_at(4, 4).id, 1)
        assert (4, 4) in _targets(moves_for(board.piece_at(4, 0), board, effects))

    def test_army_of_one_king_moves_as_queen(self, build_board):
        board = build_board((K, ME, 7, 4))
        king = board.piece_at(7, 4)
        effects = EffectTracker()
        effects.add_effect(EffectType.ARMY_OF_ONE, king.id, 3)
        targets = _targets(moves_for(king, board, effects))
        assert (0, 4) in targets
        assert (4, 7) in targets

    def test_ai_planning_skips_traps(self, build_board):
        board = build_board((K, THEM, 0, 4))
        effects = EffectTracker()
        effects.add_effect(EffectType.TRAP, Coordinate(1, 4))
        king = board.piece_at(0, 4)
        assert (1, 4) in _targets(moves_for(king, board, effects))
        assert (1, 4) not in _targets(moves_for(king, board, effects, for_opponent_simulation=True))


# ---------------------------------------------------------------------------
# Card modifiers
# ---------------------------------------------------------------------------


class TestModifiers:

    def test_extended_range_lengthens_king_steps(self, build_board):
        board = build_board((K, ME, 7, 4))
        king = board.piece_at(7, 4)
        modifiers = MoveModifiers(piece_range_bonus={king.id: 2})
        targets = _targets(moves_for(king, board, modifiers=modifiers))
        assert (4, 4) in targets
        assert (3, 4) not in targets

    def test_rally_adds_a_pawn_push(self, build_board):
        board = build_board((P, ME, 5, 0))
        modifiers = MoveModifiers(range_bonus=1)
        assert _targets(moves_for(board.piece_at(5, 0), board, modifiers=modifiers)) == {(4, 0), (3, 0)}

    def test_extended_range_leaves_knights_alone(self, build_board):
        board = build_board((N, ME, 7, 1))
        knight = board.piece_at(7, 1)
        plain = _targets(moves_for(knight, board))
        boosted = _targets(moves_for(knight, board, modifiers=MoveModifiers(range_bonus=2)))
        assert plain == boosted

    def test_ghost_walk_passes_through_enemies(self, build_board):
        board = build_board((R, ME, 7, 0), (P, THEM, 5, 0), (P, ME, 2, 0))
        rook = board.piece_at(7, 0)
        assert (4, 0) not in _targets(moves_for(rook, board))
        ghost = _targets(moves_for(rook, board, modifiers=MoveModifiers(ghost_walk={rook.id})))
        assert {(5, 0), (4, 0), (3, 0)} <= ghost
        assert (2, 0) not in ghost

    def test_knights_tour_adds_jumps(self, build_board):
        board = build_board((K, ME, 7, 4))
        targets = _targets(moves_for(board.piece_at(7, 4), board, modifiers=MoveModifiers(knights_tour=True)))
        assert (5, 3) in targets
        assert (6, 2) in targets

    def test_piercing_shot_over_one_obstacle(self, build_board):
        board = build_board((R, ME, 7, 0), (P, THEM, 5, 0), (N, THEM, 3, 0))
        moves = moves_for(board.piece_at(7, 0), board, modifiers=MoveModifiers(piercing=True))
        piercing = [m for m in moves if m.piercing]
        assert [(m.to_sq.row, m.to_sq.col) for m in piercing] == [(3, 0)]
        assert piercing[0].from_sq == Coordinate(7, 0)

    def test_piercing_never_targets_or_passes_kings(self, build_board):
        board = build_board((R, ME, 7, 0), (P, THEM, 5, 0), (K, THEM, 3, 0),
                            (B, ME, 7, 7), (K, THEM, 5, 5), (N, THEM, 3, 3))
        modifiers = MoveModifiers(piercing=True)
        assert not [m for m in moves_for(board.piece_at(7, 0), board, modifiers=modifiers) if m.piercing]
        assert not [m for m in moves_for(board.piece_at(7, 7), board, modifiers=modifiers) if m.piercing]


# ---------------------------------------------------------------------------
# Check and checkmate
# ---------------------------------------------------------------------------


class TestCheckmate:

    def test_back_rank_mate(self, build_board):
        board = build_board((K, THEM, 0, 4), (P, THEM, 1, 3), (P, THEM, 1, 4), (P, THEM, 1, 5),
                            (R, ME, 0, 0))
        assert is_in_check(board, THEM)
        assert is_checkmate(board, THEM)

    def test_king_can_take_the_checker(self, build_board):
        board = build_board((K, THEM, 0, 4), (P, THEM, 1, 3), (P, THEM, 1, 4), (P, THEM, 1, 5),
                            (R, ME, 0, 3))
        assert is_in_check(board, THEM)
        assert not is_checkmate(board, THEM)

    def test_no_moves_without_check_is_not_mate(self, build_board):
        board = build_board((K, THEM, 0, 0), (R, ME, 2, 1), (R, ME, 1, 7))
        assert not is_in_check(board, THEM)
        assert not is_checkmate(board, THEM)

    def test_detection_does_not_touch_the_board(self, build_board):
        board = build_board((K, THEM, 0, 4), (P, THEM, 1, 3), (P, THEM, 1, 4), (P, THEM, 1, 5),
                            (R, ME, 0, 0))
        before = board.to_dict()
        is_checkmate(board, THEM)
        assert board.to_dict() == before

    def test_protected_checker_cannot_be_taken_to_escape(self, build_board):
        board = build_board((K, THEM, 0, 0), (R, ME, 0, 1), (R, ME, 1, 7), (K, ME, 7, 4))
        effects = EffectTracker()
        assert not is_checkmate(board, THEM, effects)

        for effect_type in (EffectType.SHIELDED, EffectType.BRACED):
            effects = EffectTracker()
            effects.add_effect(effect_type, board.piece_at(0, 1).id, 1)
            assert is_checkmate(board, THEM, effects)
