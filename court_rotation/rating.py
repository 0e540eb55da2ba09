"""
Skill proxy used to balance teams.
Pure functions: a participant's record in, a comparable score out.
"""

from __future__ import annotations

from typing import Iterable

from .models import Participant

PROVISIONAL_GAMES = 10
PROVISIONAL_RATING = 0.5


def rating(p: Participant) -> float:
    """
    Rating of a single participant.

    Players with fewer than PROVISIONAL_GAMES games count as average (0.5) so a
    single early result does not dominate the balance cost. Everyone else is
    rated by their winrate, which the store keeps in [0, 1].
    """
    if p.games_played < PROVISIONAL_GAMES:
        return PROVISIONAL_RATING
    return p.winrate


def team_rating(team: Iterable[Participant]) -> float:
    """Average rating of a team; provisional rating for an empty team."""
    ratings = [rating(p) for p in team]
    if not ratings:
        return PROVISIONAL_RATING
    return sum(ratings) / len(ratings)


def compute_winrate(wins: int, games_played: int) -> float:
    return wins / games_played if games_played > 0 else 0.0
