"""
Session and court state machine.

A SessionState holds everything that lives for one session: courts, the
resting queue, pairing history, per-court match sequence numbers and the set
of courts whose result is still being recorded. CourtRotation drives it
through setup -> active -> setup and is the only thing that mutates it.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from . import db
from .config import Settings
from .errors import (
    CourtBusy,
    InsufficientPlayers,
    InvalidCommand,
    ParticipantExists,
    UnknownParticipant,
)
from .history import PairingHistory, SpecialPairTracker
from .logging_config import get_logger
from .models import EMPTY, Court, MatchOutcome, Occupied, Participant, normalize_id
from .recorder import MatchRecorder
from .rest_queue import REFILL_WINDOW, RestQueue, pop_random
from .teams import choose_teams

log = get_logger(__name__)

PLAYERS_PER_COURT = 4

_last_session_ms = 0


def new_session_id() -> str:
    global _last_session_ms
    ms = max(int(time.time() * 1000), _last_session_ms + 1)
    _last_session_ms = ms
    return f"session_{ms}"


@dataclass
class SessionState:
    session_id: str
    active: bool = False
    courts: list[Court] = field(default_factory=list)
    resting: RestQueue = field(default_factory=RestQueue)
    history: PairingHistory = field(default_factory=PairingHistory)
    sequence: dict[int, int] = field(default_factory=dict)
    pending: set[int] = field(default_factory=set)

    @classmethod
    def fresh(cls, special_pair: Optional[tuple[str, str]] = None, window: int = REFILL_WINDOW) -> "SessionState":
        return cls(
            session_id=new_session_id(),
            resting=RestQueue(window=window),
            history=PairingHistory(SpecialPairTracker(special_pair)),
        )

    def next_sequence(self, court_number: int) -> int:
        seq = self.sequence.get(court_number, 0) + 1
        self.sequence[court_number] = seq
        return seq

    def court(self, number: int) -> Court:
        for c in self.courts:
            if c.number == number:
                return c
        raise InvalidCommand(f"There is no court {number}")

    def court_ids(self) -> set[str]:
        return {p.id for c in self.courts for p in c.players()}

    def roster_ids(self) -> set[str]:
        return self.court_ids() | set(self.resting.ids())


class CourtRotation:
    """Rotation engine for one group of courts.

    Commands raise a RotationError subclass when rejected, before changing
    anything. finish_game reports store failures through its MatchOutcome.
    """

    def __init__(self, store=db, settings: Settings | None = None, rng: random.Random | None = None):
        self.store = store
        self.settings = settings or Settings()
        self.rng = rng or random.Random(self.settings.rng_seed)
        self.recorder = MatchRecorder(store)
        self.state = self._fresh_state()

    def _fresh_state(self) -> SessionState:
        return SessionState.fresh(self.settings.special_pair, self.settings.refill_window)

    def _require_active(self) -> SessionState:
        if not self.state.active:
            raise InvalidCommand("No active session")
        return self.state

    # --- Queries ---
    @property
    def active(self) -> bool:
        return self.state.active

    @property
    def session_id(self) -> str:
        return self.state.session_id

    @property
    def courts(self) -> list[Court]:
        return list(self.state.courts)

    @property
    def resting(self) -> list[Participant]:
        return list(self.state.resting)

    @property
    def can_add_court(self) -> bool:
        return self.state.active and len(self.state.resting) >= PLAYERS_PER_COURT

    def roster_ids(self) -> set[str]:
        return self.state.roster_ids()

    def is_pending(self, court_number: int) -> bool:
        return court_number in self.state.pending

    def rest_count(self, participant_id: str) -> int:
        return self.state.resting.rest_count.get(participant_id, 0)

    # --- Lifecycle ---
    async def start_session(self, court_count: int, participant_ids: Iterable[str]) -> SessionState:
        if self.state.active:
            raise InvalidCommand("A session is already running; end it first")
        if court_count <= 0:
            raise InvalidCommand("Please enter a valid number of courts")
        ids = list(dict.fromkeys(participant_ids))
        needed = court_count * PLAYERS_PER_COURT
        if len(ids) < needed:
            raise InsufficientPlayers(needed, len(ids))

        players = []
        for pid in ids:
            p = await self.store.get_participant(pid)
            if p is None:
                raise UnknownParticipant(pid)
            players.append(p)
        if self.state.active:
            raise InvalidCommand("A session was started while players were loading")

        state = self._fresh_state()
        pool = list(players)
        self.rng.shuffle(pool)
        for number in range(1, court_count + 1):
            four = pop_random(pool, PLAYERS_PER_COURT, self.rng)
            team_x, team_y = choose_teams(four, state.history, self.rng)
            state.courts.append(Court(number, Occupied(team_x, team_y)))
        state.resting.extend(pool)
        state.active = True
        self.state = state
        log.info(
            "Session %s started: %s courts, %s players, %s resting",
            state.session_id, court_count, len(players), len(pool),
        )
        return state

    def end_session(self, confirm: bool = False) -> str:
        """Discard all courts and counters and return to setup.

        Returns the new session id.
        """
        state = self._require_active()
        if not confirm:
            raise InvalidCommand("Ending the session discards all court progress; confirm to continue")
        if state.pending:
            log.warning(
                "Session %s ended with results still being recorded on courts %s",
                state.session_id, sorted(state.pending),
            )
        self.state = self._fresh_state()
        log.info("Session %s ended; new session id %s", state.session_id, self.state.session_id)
        return self.state.session_id

    # --- Courts ---
    def refill_empty_courts(self) -> list[int]:
        """Fill every empty court while at least four players are resting."""
        state = self.state
        filled = []
        for court in state.courts:
            if court.is_empty and len(state.resting) >= PLAYERS_PER_COURT:
                four = state.resting.draw(PLAYERS_PER_COURT, self.rng)
                court.occupancy = Occupied(*choose_teams(four, state.history, self.rng))
                filled.append(court.number)
        if filled:
            log.debug("Refilled courts %s", filled)
        return filled

    def add_court(self) -> Court:
        state = self._require_active()
        if len(state.resting) < PLAYERS_PER_COURT:
            raise InsufficientPlayers(PLAYERS_PER_COURT, len(state.resting))
        four = state.resting.draw(PLAYERS_PER_COURT, self.rng)
        number = max((c.number for c in state.courts), default=0) + 1
        court = Court(number, Occupied(*choose_teams(four, state.history, self.rng)))
        state.courts.append(court)
        log.info("Court %s added", number)
        return court

    def delete_court(self, court_number: int) -> list[Participant]:
        """Remove a court; its players go to the back of the resting queue."""
        state = self._require_active()
        court = state.court(court_number)
        if court_number in state.pending:
            raise CourtBusy(court_number)
        players = court.players()
        state.resting.extend(players)
        state.courts.remove(court)
        log.info("Court %s deleted, %s players moved to resting", court_number, len(players))
        return players

    def edit_court(self, court_number: int, swaps: Sequence[tuple[str, str]]) -> Court:
        """Apply manual swaps between the court's teams and the resting queue.

        Each swap names two participant ids; each must be on this court or
        resting. All swaps are checked before any of them is applied.
        """
        state = self._require_active()
        court = state.court(court_number)
        if court_number in state.pending:
            raise CourtBusy(court_number)

        occupied = isinstance(court.occupancy, Occupied)
        team_x = list(court.occupancy.team_x) if occupied else []
        team_y = list(court.occupancy.team_y) if occupied else []
        resting = list(state.resting)

        def locate(pid: str) -> tuple[list[Participant], int]:
            for group in (team_x, team_y, resting):
                for i, p in enumerate(group):
                    if p.id == pid:
                        return group, i
            raise InvalidCommand(f"{pid!r} is not on court {court_number} or resting")

        for a, b in swaps:
            if a == b:
                raise InvalidCommand(f"Cannot swap {a!r} with itself")
            group_a, ia = locate(a)
            group_b, ib = locate(b)
            group_a[ia], group_b[ib] = group_b[ib], group_a[ia]

        if occupied:
            if len(team_x) != 2 or len(team_y) != 2 or len({p.id for p in team_x + team_y}) != 4:
                raise InvalidCommand("Both teams must keep two different players")
            court.occupancy = Occupied((team_x[0], team_x[1]), (team_y[0], team_y[1]))
        state.resting.replace(resting)
        log.debug("Court %s edited with %s swap(s)", court_number, len(swaps))
        return court

    # --- Players ---
    async def add_late_participant(
        self,
        existing_id: str | None = None,
        new_name: str | None = None,
    ) -> Participant:
        """Add a registered player, or register a new one, straight to resting."""
        state = self._require_active()
        if (existing_id is None) == (new_name is None):
            raise InvalidCommand("Give either an existing player or a new name")

        if existing_id is not None:
            if existing_id in state.roster_ids():
                raise InvalidCommand(f"{existing_id!r} is already in this session")
            player = await self.store.get_participant(existing_id)
            if player is None:
                raise UnknownParticipant(existing_id)
        else:
            name = new_name.strip()
            if not name:
                raise InvalidCommand("Player name cannot be empty")
            pid = normalize_id(name)
            if pid in state.roster_ids():
                raise InvalidCommand(f"{name} is already in this session")
            player, created = await self.store.upsert_participant(pid, name)
            if not created:
                raise ParticipantExists(pid)

        if state is not self.state or player.id in state.roster_ids():
            raise InvalidCommand("The session changed while the player was being added")
        state.resting.append(player)
        log.info("%s joined session %s and is resting", player.id, state.session_id)
        return player

    # --- Results ---
    def _resolve_result(
        self,
        occupancy: Occupied,
        winner_ids: Iterable[str],
        loser_ids: Iterable[str],
    ) -> tuple[tuple[Participant, ...], tuple[Participant, ...]]:
        winners, losers = set(winner_ids), set(loser_ids)
        ids_x = {p.id for p in occupancy.team_x}
        ids_y = {p.id for p in occupancy.team_y}
        if winners == ids_x and losers == ids_y:
            return occupancy.team_x, occupancy.team_y
        if winners == ids_y and losers == ids_x:
            return occupancy.team_y, occupancy.team_x
        raise InvalidCommand("Winners and losers must be the two teams on the court")

    async def finish_game(
        self,
        court_number: int,
        winner_ids: Iterable[str],
        loser_ids: Iterable[str],
    ) -> MatchOutcome:
        """Record a finished game and rotate the court.

        On a committed outcome the pairing history and rest counts are
        updated, the four players go to resting and empty courts are
        refilled. On a failed outcome nothing changes and the same result may
        be submitted again.
        """
        state = self._require_active()
        court = state.court(court_number)
        if court_number in state.pending:
            raise CourtBusy(court_number)
        if not isinstance(court.occupancy, Occupied):
            raise InvalidCommand(f"Court {court_number} has no game in progress")
        winners, losers = self._resolve_result(court.occupancy, winner_ids, loser_ids)

        outcome = await self.recorder.submit(state, court_number, winners, losers)
        if not outcome.committed:
            return outcome
        if state is not self.state:
            log.warning(
                "Match %s of ended session %s was stored but not applied",
                outcome.match_key, state.session_id,
            )
            return outcome

        fresh = {p.id: p for p in outcome.participants}
        winners = tuple(fresh.get(p.id, p) for p in winners)
        losers = tuple(fresh.get(p.id, p) for p in losers)
        state.history.record_game(winners, losers)
        # Credit the players who sat this game out before the finishers join them
        state.resting.credit_rest()
        state.resting.extend([*winners, *losers])
        court.occupancy = EMPTY
        self.refill_empty_courts()
        return outcome
