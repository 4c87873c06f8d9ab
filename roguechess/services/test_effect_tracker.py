import pytest

from roguechess.enums import EffectType
from roguechess.rules.coordinate import Coordinate
from roguechess.services.effect_tracker import EffectTracker


@pytest.fixture()
def tracker():
    return EffectTracker()


def test_count_one_active_until_first_tick(tracker):
    tracker.add_effect(EffectType.FROZEN, "enemy-rook-1", 1)
    assert not tracker.is_actionable("enemy-rook-1")
    expired = tracker.tick()
    assert [e.effect_type for e in expired] == [EffectType.FROZEN]
    assert tracker.is_actionable("enemy-rook-1")
    assert len(tracker) == 0


def test_tick_on_empty_tracker_does_nothing(tracker):
    for _ in range(3):
        assert tracker.tick() == []
    assert len(tracker) == 0
    assert tracker.to_dict() == {}


def test_count_two_survives_one_tick(tracker):
    tracker.add_effect(EffectType.SHIELDED, "player-knight-2", 2)
    assert tracker.tick() == []
    assert tracker.remaining(EffectType.SHIELDED, "player-knight-2") == 1
    assert tracker.is_capture_immune("player-knight-2")


def test_uncounted_effects_ignore_ticks(tracker):
    tracker.add_effect(EffectType.TRAITOR_MARK, "enemy-pawn-3")
    for _ in range(5):
        tracker.tick()
    assert tracker.has_effect(EffectType.TRAITOR_MARK, "enemy-pawn-3")
    assert tracker.remaining(EffectType.TRAITOR_MARK, "enemy-pawn-3") == -1


@pytest.mark.parametrize("duration", [0, -2])
def test_non_positive_duration_rejected(tracker, duration):
    with pytest.raises(ValueError):
        tracker.add_effect(EffectType.FROZEN, "x", duration)


def test_readding_replaces_existing_entry(tracker):
    tracker.add_effect(EffectType.FROZEN, "x", 1)
    tracker.add_effect(EffectType.FROZEN, "x", 3)
    assert len(tracker) == 1
    assert tracker.remaining(EffectType.FROZEN, "x") == 3


def test_traps_are_keyed_by_square(tracker):
    tracker.add_effect(EffectType.TRAP, Coordinate(5, 0))
    tracker.add_effect(EffectType.TRAP, (2, 3))
    assert tracker.is_trap(Coordinate(5, 0))
    assert tracker.is_trap(Coordinate(2, 3))
    assert not tracker.is_trap(Coordinate(0, 0))
    assert set(tracker.trap_squares()) == {Coordinate(5, 0), Coordinate(2, 3)}


def test_remove_target_drops_every_effect(tracker):
    tracker.add_effect(EffectType.FROZEN, "p", 1)
    tracker.add_effect(EffectType.SHIELDED, "p", 1)
    tracker.add_effect(EffectType.SHIELDED, "q", 1)
    removed = tracker.remove_target("p")
    assert len(removed) == 2
    assert tracker.get_effects_by_target("p") == []
    assert tracker.has_effect(EffectType.SHIELDED, "q")


def test_prune_keeps_traps_and_live_pieces(tracker):
    tracker.add_effect(EffectType.TRAP, Coordinate(4, 4))
    tracker.add_effect(EffectType.FROZEN, "alive", 1)
    tracker.add_effect(EffectType.FROZEN, "gone", 1)
    orphans = tracker.prune(["alive"])
    assert [e.target for e in orphans] == ["gone"]
    assert tracker.is_trap(Coordinate(4, 4))
    assert tracker.has_effect(EffectType.FROZEN, "alive")


def test_protective_effects_each_veto_capture(tracker):
    for effect_type, piece_id in ((EffectType.SHIELDED, "a"), (EffectType.BRACED, "b"),
                                  (EffectType.INVULNERABLE, "c")):
        tracker.add_effect(effect_type, piece_id, 1)
        assert tracker.is_capture_immune(piece_id)
    assert not tracker.is_capture_immune("d")
    # Invulnerable also immobilizes; the other two do not
    assert tracker.is_actionable("a")
    assert not tracker.is_actionable("c")


def test_copy_is_deep(tracker):
    tracker.add_effect(EffectType.FROZEN, "x", 2)
    snapshot = tracker.copy()
    tracker.tick()
    assert snapshot.remaining(EffectType.FROZEN, "x") == 2


def test_to_dict_groups_by_type(tracker):
    tracker.add_effect(EffectType.FROZEN, "x", 1)
    tracker.add_effect(EffectType.TRAP, Coordinate(1, 2))
    assert tracker.to_dict() == {"frozen": {"x": 1}, "trap": {"1,2": True}}
