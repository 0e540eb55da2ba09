"""
In-session pairing memory: how often two players have shared a team or faced
each other, plus the teammate ratio of the designated special pair.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable, Optional, Sequence

from .logging_config import get_logger
from .models import Participant

log = get_logger(__name__)

PairKey = frozenset


def pair_key(a: str, b: str) -> PairKey:
    return frozenset((a, b))


class SpecialPairTracker:
    """Counts games where both designated players appeared, and how many of
    those they played as teammates."""

    def __init__(self, pair: Optional[tuple[str, str]] = None):
        self.pair = pair
        self.together = 0
        self.teamed = 0

    @property
    def ratio(self) -> float:
        return self.teamed / self.together if self.together > 0 else 0.0

    def involves(self, players: Iterable[Participant]) -> bool:
        if not self.pair:
            return False
        ids = {p.id for p in players}
        return self.pair[0] in ids and self.pair[1] in ids

    def are_teammates(self, team_x: Sequence[Participant], team_y: Sequence[Participant]) -> bool:
        if not self.pair:
            return False
        a, b = self.pair
        for team in (team_x, team_y):
            ids = {p.id for p in team}
            if a in ids and b in ids:
                return True
        return False

    def record(self, winners: Sequence[Participant], losers: Sequence[Participant]) -> None:
        if not self.involves([*winners, *losers]):
            return
        self.together += 1
        if self.are_teammates(winners, losers):
            self.teamed += 1
        log.debug("Special pair %s together=%s teamed=%s", self.pair, self.together, self.teamed)


class PairingHistory:
    """Symmetric teammate/opponent counters for the current session."""

    def __init__(self, special: Optional[SpecialPairTracker] = None):
        self._teammates: Counter = Counter()
        self._opponents: Counter = Counter()
        self.special = special if special is not None else SpecialPairTracker()

    def teammate_count(self, a: str, b: str) -> int:
        if a == b:
            return 0
        return self._teammates[pair_key(a, b)]

    def opponent_count(self, a: str, b: str) -> int:
        if a == b:
            return 0
        return self._opponents[pair_key(a, b)]

    def add_teammates(self, a: str, b: str, n: int = 1) -> None:
        if a != b:
            self._teammates[pair_key(a, b)] += n

    def add_opponents(self, a: str, b: str, n: int = 1) -> None:
        if a != b:
            self._opponents[pair_key(a, b)] += n

    def record_game(self, winners: Sequence[Participant], losers: Sequence[Participant]) -> None:
        for team in (winners, losers):
            if len(team) == 2:
                self.add_teammates(team[0].id, team[1].id)
        for w in winners:
            for l in losers:
                self.add_opponents(w.id, l.id)
        self.special.record(winners, losers)
        log.debug(
            "Recorded game winners=%s losers=%s",
            [p.id for p in winners], [p.id for p in losers],
        )

    def teammate_pairs(self) -> dict[PairKey, int]:
        return dict(self._teammates)

    def opponent_pairs(self) -> dict[PairKey, int]:
        return dict(self._opponents)
