"""
Shared fixtures: an in-memory store with the same coroutine interface as
court_rotation.db, and small player factories.
"""

import asyncio

import pytest

from court_rotation.models import MatchRecord, Participant
from court_rotation.rating import compute_winrate


def make_player(pid: str, winrate: float | None = None, games: int = 10) -> Participant:
    """Player with `games` played at `winrate`; provisional (0 games) if winrate is None."""
    if winrate is None:
        return Participant(id=pid, name=pid.title())
    wins = round(winrate * games)
    return Participant(
        id=pid,
        name=pid.title(),
        wins=wins,
        losses=games - wins,
        games_played=games,
        winrate=winrate,
    )


class FakeStore:
    def __init__(self, players=()):
        self.players: dict[str, Participant] = {p.id: p for p in players}
        self.matches: dict[tuple[str, str], MatchRecord] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_with: Exception | None = None
        self.gate: asyncio.Event | None = None

    async def get_participant(self, participant_id):
        return self.players.get(participant_id)

    async def upsert_participant(self, participant_id, name):
        if participant_id in self.players:
            return self.players[participant_id], False
        p = Participant(id=participant_id, name=name)
        self.players[participant_id] = p
        return p, True

    async def transactional_record_match(self, session_id, match_key, record):
        self.calls.append((session_id, match_key))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            err, self.fail_with = self.fail_with, None
            raise err
        winner_ids = {p.id for p in record.winners}
        updated = []
        for p in (*record.winners, *record.losers):
            cur = self.players[p.id]
            wins = cur.wins + (1 if p.id in winner_ids else 0)
            losses = cur.losses + (0 if p.id in winner_ids else 1)
            new = Participant(
                id=cur.id,
                name=cur.name,
                wins=wins,
                losses=losses,
                games_played=wins + losses,
                winrate=compute_winrate(wins, wins + losses),
            )
            self.players[p.id] = new
            updated.append(new)
        self.matches[(session_id, match_key)] = record
        return updated


@pytest.fixture
def players():
    return [make_player(f"p{i:02d}") for i in range(1, 11)]


@pytest.fixture
def store(players):
    return FakeStore(players)
