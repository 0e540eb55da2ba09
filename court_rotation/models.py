"""
Data models for the court rotation engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

Team = tuple["Participant", "Participant"]


@dataclass(frozen=True)
class Participant:
    id: str
    name: str
    wins: int = 0
    losses: int = 0
    games_played: int = 0
    winrate: float = 0.0

    @classmethod
    def from_row(cls, row: dict) -> "Participant":
        return cls(
            id=str(row["id"]),
            name=row["name"],
            wins=int(row.get("wins") or 0),
            losses=int(row.get("losses") or 0),
            games_played=int(row.get("games_played") or 0),
            winrate=float(row.get("winrate") or 0.0),
        )


@dataclass(frozen=True)
class Empty:
    """Court with no game on it; eligible for refill."""


@dataclass(frozen=True)
class Occupied:
    team_x: Team
    team_y: Team

    def players(self) -> list[Participant]:
        return [*self.team_x, *self.team_y]


CourtOccupancy = Union[Empty, Occupied]
EMPTY = Empty()


@dataclass
class Court:
    number: int
    occupancy: CourtOccupancy = EMPTY

    @property
    def is_empty(self) -> bool:
        return isinstance(self.occupancy, Empty)

    def players(self) -> list[Participant]:
        if isinstance(self.occupancy, Occupied):
            return self.occupancy.players()
        return []


@dataclass(frozen=True)
class MatchRecord:
    match_key: str
    court_number: int
    winners: tuple[Participant, ...]
    losers: tuple[Participant, ...]

    def to_payload(self) -> dict:
        return {
            "court_number": self.court_number,
            "winners": [{"id": p.id, "name": p.name} for p in self.winners],
            "losers": [{"id": p.id, "name": p.name} for p in self.losers],
        }


@dataclass
class MatchOutcome:
    committed: bool
    match_key: str
    court_number: int
    reason: str | None = None
    error: Exception | None = None
    participants: list[Participant] = field(default_factory=list)


def normalize_id(name: str) -> str:
    """Registry key for a player name: trimmed and lower-cased."""
    return name.strip().lower()
