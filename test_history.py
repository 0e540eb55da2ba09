"""
Tests for the pairing history store and the special pair tracker.
"""

from conftest import make_player
from court_rotation.history import PairingHistory, SpecialPairTracker


def _game(*ids):
    a, b, c, d = (make_player(i) for i in ids)
    return (a, b), (c, d)


def test_record_game_counts_teammates_and_opponents():
    h = PairingHistory()
    winners, losers = _game("a", "b", "c", "d")
    h.record_game(winners, losers)

    assert h.teammate_count("a", "b") == 1
    assert h.teammate_count("c", "d") == 1
    assert h.teammate_count("a", "c") == 0
    for w in ("a", "b"):
        for l in ("c", "d"):
            assert h.opponent_count(w, l) == 1
    assert h.opponent_count("a", "b") == 0
    assert sum(h.opponent_pairs().values()) == 4


def test_counts_are_symmetric_and_never_self():
    h = PairingHistory()
    for ids in [("a", "b", "c", "d"), ("d", "a", "b", "c"), ("c", "a", "d", "b")]:
        h.record_game(*_game(*ids))

    everyone = "abcd"
    for x in everyone:
        assert h.teammate_count(x, x) == 0
        assert h.opponent_count(x, x) == 0
        for y in everyone:
            assert h.teammate_count(x, y) == h.teammate_count(y, x)
            assert h.opponent_count(x, y) == h.opponent_count(y, x)
    assert h.teammate_count("d", "a") == 1
    assert h.opponent_count("b", "d") == 2


def test_team_of_one_gets_no_teammate_count():
    h = PairingHistory()
    h.record_game([make_player("a")], [make_player("b"), make_player("c")])
    assert h.teammate_pairs() == {frozenset(("b", "c")): 1}
    assert h.opponent_count("a", "b") == 1


def test_special_tracker_counts_only_games_with_both():
    tracker = SpecialPairTracker(("a", "b"))
    h = PairingHistory(tracker)

    h.record_game(*_game("a", "c", "d", "e"))
    assert (tracker.together, tracker.teamed) == (0, 0)

    h.record_game(*_game("a", "b", "c", "d"))
    assert (tracker.together, tracker.teamed) == (1, 1)

    h.record_game(*_game("a", "c", "b", "d"))
    assert (tracker.together, tracker.teamed) == (2, 1)
    assert tracker.ratio == 0.5


def test_tracker_without_pair_is_inert():
    tracker = SpecialPairTracker()
    assert tracker.ratio == 0.0
    assert not tracker.involves([make_player("a"), make_player("b")])
    tracker.record([make_player("a"), make_player("b")], [make_player("c"), make_player("d")])
    assert tracker.together == 0
