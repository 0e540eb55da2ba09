"""
Match recording: turn a finished game into a persisted match and stat update.

The recorder owns the per-court bookkeeping around a submission (pending
flag, sequence number, match key) and maps store failures to a failed
MatchOutcome. It never touches pairing history, the resting queue or the
court itself; the engine applies those only for a committed outcome.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from .errors import CourtBusy, PersistenceError
from .logging_config import get_logger
from .models import MatchOutcome, MatchRecord, Participant

if TYPE_CHECKING:
    from .session import SessionState

log = get_logger(__name__)


def match_key(court_number: int, seq: int) -> str:
    return f"court{court_number}_seq{seq}"


class MatchRecorder:
    def __init__(self, store):
        # any object exposing `transactional_record_match`, e.g. the db module
        self.store = store

    async def submit(
        self,
        state: "SessionState",
        court_number: int,
        winners: Sequence[Participant],
        losers: Sequence[Participant],
    ) -> MatchOutcome:
        if court_number in state.pending:
            raise CourtBusy(court_number)

        state.pending.add(court_number)
        # Counter moves before the attempt so a retry never reuses a key
        seq = state.next_sequence(court_number)
        key = match_key(court_number, seq)
        record = MatchRecord(
            match_key=key,
            court_number=court_number,
            winners=tuple(winners),
            losers=tuple(losers),
        )
        log.debug("Submitting %s/%s", state.session_id, key)
        try:
            updated = await self.store.transactional_record_match(state.session_id, key, record)
        except PersistenceError as e:
            log.warning("Match %s failed for session %s: %s", key, state.session_id, e)
            return MatchOutcome(
                committed=False,
                match_key=key,
                court_number=court_number,
                reason=str(e) or e.__class__.__name__,
                error=e,
            )
        finally:
            state.pending.discard(court_number)

        log.info("Match %s recorded (session %s)", key, state.session_id)
        return MatchOutcome(
            committed=True,
            match_key=key,
            court_number=court_number,
            participants=list(updated),
        )
