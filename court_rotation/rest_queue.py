"""
Resting queue with fairness-weighted random draws.

Strict oldest-first would make the rotation predictable; instead the queue is
ordered by how many games each player has sat out and a pick is made at random
from a small window at the front of that order.
"""

from __future__ import annotations

import random
from typing import Iterable, Iterator

from .logging_config import get_logger
from .models import Participant

log = get_logger(__name__)

REFILL_WINDOW = 8


def pop_random(pool: list[Participant], count: int, rng: random.Random | None = None) -> list[Participant]:
    """Remove and return up to `count` players picked uniformly from `pool`."""
    rng = rng or random.Random()
    picked = []
    for _ in range(min(count, len(pool))):
        picked.append(pool.pop(rng.randrange(len(pool))))
    return picked


class RestQueue:
    def __init__(self, players: Iterable[Participant] = (), window: int = REFILL_WINDOW):
        if window < 1:
            raise ValueError("window must be at least 1")
        self.window = window
        self._players: list[Participant] = list(players)
        self.rest_count: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._players)

    def __iter__(self) -> Iterator[Participant]:
        return iter(list(self._players))

    def __contains__(self, participant_id: object) -> bool:
        return any(p.id == participant_id for p in self._players)

    def ids(self) -> list[str]:
        return [p.id for p in self._players]

    def append(self, p: Participant) -> None:
        self._players.append(p)

    def extend(self, players: Iterable[Participant]) -> None:
        self._players.extend(players)

    def remove(self, participant_id: str) -> Participant:
        for i, p in enumerate(self._players):
            if p.id == participant_id:
                return self._players.pop(i)
        raise KeyError(participant_id)

    def replace(self, players: Iterable[Participant]) -> None:
        """Swap in an edited queue. Rest counts are session-long and kept."""
        self._players = list(players)

    def credit_rest(self) -> None:
        """One game finished: everyone currently resting sat it out."""
        for p in self._players:
            self.rest_count[p.id] = self.rest_count.get(p.id, 0) + 1

    def fairness_order(self) -> list[Participant]:
        """Copy of the queue, longest-rested first. Ties keep queue order."""
        return sorted(self._players, key=lambda p: -self.rest_count.get(p.id, 0))

    def draw(self, n: int, rng: random.Random | None = None) -> list[Participant]:
        rng = rng or random.Random()
        ordered = self.fairness_order()
        picked: list[Participant] = []
        for _ in range(min(n, len(self._players))):
            idx = rng.randrange(min(self.window, len(ordered)))
            chosen = ordered.pop(idx)
            self.remove(chosen.id)
            picked.append(chosen)
        log.debug("Drew %s from resting queue (left=%s)", [p.id for p in picked], len(self._players))
        return picked
