"""
Team selection for a court: split four players into two pairs.

All three ways of pairing four players are scored and the cheapest wins.
The cost adds up
  - rating balance between the two teams,
  - repeated teammates (ALPHA_PARTNER per earlier game together),
  - repeated opponents (BETA_OPPONENT per earlier meeting),
  - a proportional nudge toward DESIRED_RATIO for the special pair.
"""

from __future__ import annotations

import random
from typing import Sequence

from .errors import InvalidGroupSize
from .history import PairingHistory
from .logging_config import get_logger
from .models import Participant, Team
from .rating import team_rating

log = get_logger(__name__)

ALPHA_PARTNER = 1.0
BETA_OPPONENT = 0.5
DESIRED_RATIO = 0.60
SPECIAL_WEIGHT = 2.0


def candidate_splits(four: Sequence[Participant]) -> list[tuple[Team, Team]]:
    """The three pairings of A, B, C, D in precedence order: AB|CD, AC|BD, AD|BC."""
    a, b, c, d = four
    return [
        ((a, b), (c, d)),
        ((a, c), (b, d)),
        ((a, d), (b, c)),
    ]


def special_bias_cost(team_x: Team, team_y: Team, history: PairingHistory) -> float:
    tracker = history.special
    if not tracker.involves([*team_x, *team_y]):
        return 0.0
    delta = DESIRED_RATIO - tracker.ratio
    # Below target: teaming is cheaper. Above target: splitting is cheaper.
    sign = -1.0 if tracker.are_teammates(team_x, team_y) else 1.0
    return sign * SPECIAL_WEIGHT * delta


def pairing_cost(team_x: Team, team_y: Team, history: PairingHistory) -> float:
    balance_cost = abs(team_rating(team_x) - team_rating(team_y))

    partner_penalty = (
        history.teammate_count(team_x[0].id, team_x[1].id)
        + history.teammate_count(team_y[0].id, team_y[1].id)
    )

    opponent_penalty = 0
    for x in team_x:
        for y in team_y:
            opponent_penalty += history.opponent_count(x.id, y.id)

    return (
        balance_cost
        + ALPHA_PARTNER * partner_penalty
        + BETA_OPPONENT * opponent_penalty
        + special_bias_cost(team_x, team_y, history)
    )


def choose_teams(
    four: Sequence[Participant],
    history: PairingHistory,
    rng: random.Random | None = None,
) -> tuple[Team, Team]:
    """Pick the cheapest split of four players into two teams.

    Ties keep the earlier candidate. Player order inside each team is shuffled
    afterwards; it carries no meaning.

    Raises:
        InvalidGroupSize: unless given exactly four distinct players.
    """
    if len(four) != 4:
        raise InvalidGroupSize(len(four))
    if len({p.id for p in four}) != 4:
        raise InvalidGroupSize(len(four), distinct=False)
    rng = rng or random.Random()

    first, *others = candidate_splits(four)
    best, best_cost = first, pairing_cost(*first, history)
    for team_x, team_y in others:
        cost = pairing_cost(team_x, team_y, history)
        if cost < best_cost:
            best, best_cost = (team_x, team_y), cost

    team_x, team_y = (list(t) for t in best)
    rng.shuffle(team_x)
    rng.shuffle(team_y)
    log.debug(
        "Chose %s vs %s (cost=%.3f)",
        [p.id for p in team_x], [p.id for p in team_y], best_cost,
    )
    return (team_x[0], team_x[1]), (team_y[0], team_y[1])
