"""
Tests for the session/court state machine.
"""

import asyncio
import random

import pytest

from conftest import FakeStore, make_player
from court_rotation.config import Settings
from court_rotation.errors import (
    CourtBusy,
    InsufficientPlayers,
    InvalidCommand,
    ParticipantExists,
    UnknownParticipant,
)
from court_rotation.models import EMPTY, Occupied
from court_rotation.session import CourtRotation, new_session_id


def _engine(store, **settings):
    return CourtRotation(store=store, settings=Settings(**settings), rng=random.Random(11))


def _start(engine, courts, ids):
    return asyncio.run(engine.start_session(courts, ids))


def _court_ids(engine):
    return [p.id for c in engine.courts for p in c.players()]


def _assert_roster(engine, expected):
    on_court = _court_ids(engine)
    resting = [p.id for p in engine.resting]
    assert len(on_court) == len(set(on_court))
    assert set(on_court).isdisjoint(resting)
    assert set(on_court) | set(resting) == set(expected)
    assert len(on_court) + len(resting) == len(expected)


def test_session_ids_are_unique():
    assert len({new_session_id() for _ in range(50)}) == 50


def test_start_session_seeds_courts_and_queue(store, players):
    engine = _engine(store)
    setup_id = engine.session_id
    ids = [p.id for p in players]
    _start(engine, 2, ids)

    assert engine.active
    assert engine.session_id != setup_id
    assert [c.number for c in engine.courts] == [1, 2]
    assert all(isinstance(c.occupancy, Occupied) for c in engine.courts)
    assert len(engine.resting) == 2
    _assert_roster(engine, ids)
    assert engine.state.sequence == {}
    assert engine.state.history.teammate_pairs() == {}


def test_start_session_needs_enough_players(store, players):
    engine = _engine(store)
    with pytest.raises(InsufficientPlayers):
        _start(engine, 3, [p.id for p in players])
    with pytest.raises(InvalidCommand):
        _start(engine, 0, [p.id for p in players])
    assert not engine.active
    assert engine.courts == []


def test_start_session_duplicates_do_not_count(store):
    engine = _engine(store)
    with pytest.raises(InsufficientPlayers):
        _start(engine, 1, ["p01", "p01", "p02", "p03"])


def test_start_session_unknown_player(store):
    engine = _engine(store)
    with pytest.raises(UnknownParticipant):
        _start(engine, 1, ["p01", "p02", "p03", "nobody"])
    assert not engine.active


def test_cannot_start_twice(store, players):
    engine = _engine(store)
    _start(engine, 1, [p.id for p in players])
    with pytest.raises(InvalidCommand):
        _start(engine, 1, [p.id for p in players])


def test_commands_need_an_active_session(store):
    engine = _engine(store)
    with pytest.raises(InvalidCommand):
        engine.add_court()
    with pytest.raises(InvalidCommand):
        engine.end_session(confirm=True)
    with pytest.raises(InvalidCommand):
        asyncio.run(engine.finish_game(1, [], []))
    assert not engine.can_add_court


def test_end_session_requires_confirmation(store, players):
    engine = _engine(store)
    _start(engine, 2, [p.id for p in players])
    session_id = engine.session_id
    with pytest.raises(InvalidCommand):
        engine.end_session()
    assert engine.active

    new_id = engine.end_session(confirm=True)
    assert new_id != session_id
    assert not engine.active
    assert engine.courts == [] and engine.resting == []


def test_add_court_numbers_and_draws(store, players):
    engine = _engine(store)
    _start(engine, 1, [p.id for p in players])
    assert engine.can_add_court

    court = engine.add_court()
    assert court.number == 2
    assert len(engine.resting) == 2
    assert not engine.can_add_court
    with pytest.raises(InsufficientPlayers):
        engine.add_court()
    _assert_roster(engine, [p.id for p in players])


def test_add_court_after_delete_uses_max_plus_one(store, players):
    engine = _engine(store)
    _start(engine, 2, [p.id for p in players])
    engine.delete_court(1)
    assert engine.add_court().number == 3


def test_delete_court_moves_players_to_back_of_queue(store, players):
    engine = _engine(store)
    _start(engine, 2, [p.id for p in players])
    before = [p.id for p in engine.resting]
    court_players = [p.id for p in engine.state.court(2).players()]

    moved = engine.delete_court(2)
    assert [p.id for p in moved] == court_players
    assert [p.id for p in engine.resting] == before + court_players
    assert [c.number for c in engine.courts] == [1]
    _assert_roster(engine, [p.id for p in players])
    with pytest.raises(InvalidCommand):
        engine.delete_court(2)


def test_edit_court_swaps_with_resting_and_across_teams(store, players):
    engine = _engine(store)
    _start(engine, 2, [p.id for p in players])
    occ = engine.state.court(1).occupancy
    x0, x1 = occ.team_x
    y0, _y1 = occ.team_y
    r0 = engine.resting[0]

    engine.edit_court(1, [(x0.id, r0.id), (x1.id, y0.id)])
    occ = engine.state.court(1).occupancy
    assert [p.id for p in occ.team_x] == [r0.id, y0.id]
    assert occ.team_y[0].id == x1.id
    assert engine.resting[0].id == x0.id
    _assert_roster(engine, [p.id for p in players])


def test_edit_court_rejects_players_elsewhere_and_changes_nothing(store, players):
    engine = _engine(store)
    _start(engine, 2, [p.id for p in players])
    before_1 = engine.state.court(1).occupancy
    before_rest = [p.id for p in engine.resting]
    other = engine.state.court(2).occupancy.team_x[0]
    mine = before_1.team_x[0]
    r0 = engine.resting[0]

    with pytest.raises(InvalidCommand):
        engine.edit_court(1, [(mine.id, r0.id), (mine.id, other.id)])
    with pytest.raises(InvalidCommand):
        engine.edit_court(1, [(mine.id, mine.id)])
    assert engine.state.court(1).occupancy == before_1
    assert [p.id for p in engine.resting] == before_rest


def test_add_late_existing_and_new(store, players):
    store.players["zed"] = make_player("zed")
    engine = _engine(store)
    ids = [p.id for p in players]
    _start(engine, 2, ids)

    p = asyncio.run(engine.add_late_participant(existing_id="zed"))
    assert engine.resting[-1].id == "zed" == p.id
    newbie = asyncio.run(engine.add_late_participant(new_name="  Yolanda "))
    assert newbie.id == "yolanda" and newbie.name == "Yolanda"
    assert engine.resting[-1].id == "yolanda"
    assert engine.rest_count("yolanda") == 0
    _assert_roster(engine, ids + ["zed", "yolanda"])


def test_add_late_rejections(store, players):
    store.players["zed"] = make_player("zed")
    engine = _engine(store)
    _start(engine, 2, [p.id for p in players])

    with pytest.raises(InvalidCommand):
        asyncio.run(engine.add_late_participant(existing_id="p01"))
    with pytest.raises(UnknownParticipant):
        asyncio.run(engine.add_late_participant(existing_id="ghost"))
    with pytest.raises(ParticipantExists):
        asyncio.run(engine.add_late_participant(new_name="Zed"))
    with pytest.raises(InvalidCommand):
        asyncio.run(engine.add_late_participant(new_name="   "))
    with pytest.raises(InvalidCommand):
        asyncio.run(engine.add_late_participant())
    assert len(engine.resting) == 2


def _empty(engine, number, to_resting=True):
    court = engine.state.court(number)
    players = court.players()
    court.occupancy = EMPTY
    if to_resting:
        engine.state.resting.extend(players)


def test_refill_fills_empty_courts_in_order():
    store = FakeStore([make_player(f"q{i}") for i in range(9)])
    engine = _engine(store)
    _start(engine, 2, list(store.players))
    _empty(engine, 1)
    _empty(engine, 2)
    assert len(engine.resting) == 9

    assert engine.refill_empty_courts() == [1, 2]
    assert len(engine.resting) == 1
    _assert_roster(engine, list(store.players))


def test_refill_skips_when_fewer_than_four_resting():
    store = FakeStore([make_player(f"q{i}") for i in range(9)])
    engine = _engine(store)
    _start(engine, 2, list(store.players))
    _empty(engine, 2, to_resting=False)

    assert engine.refill_empty_courts() == []
    assert engine.state.court(2).is_empty


def test_pending_court_blocks_delete_and_edit(store, players):
    engine = _engine(store)
    _start(engine, 2, [p.id for p in players])
    engine.state.pending.add(1)
    with pytest.raises(CourtBusy):
        engine.delete_court(1)
    with pytest.raises(CourtBusy):
        engine.edit_court(1, [])
    engine.delete_court(2)
