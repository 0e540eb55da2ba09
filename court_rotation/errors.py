"""Errors raised by the rotation engine and its store."""


class RotationError(Exception):
    """Base class for everything the engine reports to its caller."""


class InvalidGroupSize(RotationError):
    """Team selection was asked to split something other than four players."""

    def __init__(self, size: int, distinct: bool = True):
        msg = f"Team selection needs exactly 4 distinct players, got {size}"
        if not distinct:
            msg += " with repeated ids"
        super().__init__(msg)
        self.size = size
        self.distinct = distinct


class InsufficientPlayers(RotationError):
    def __init__(self, needed: int, available: int):
        super().__init__(f"Need {needed} players, only {available} available")
        self.needed = needed
        self.available = available


class InvalidCommand(RotationError, ValueError):
    """A command was rejected at the boundary; no state was changed."""


class UnknownParticipant(InvalidCommand):
    def __init__(self, participant_id: str):
        super().__init__(f"No player with id {participant_id!r}")
        self.participant_id = participant_id


class ParticipantExists(RotationError):
    def __init__(self, participant_id: str):
        super().__init__(f"Player {participant_id!r} already exists")
        self.participant_id = participant_id


class CourtBusy(RotationError):
    """A result for this court is still being recorded."""

    def __init__(self, court_number: int):
        super().__init__(f"Court {court_number} has a result being recorded; try again shortly")
        self.court_number = court_number


class PersistenceError(RotationError):
    """Base for store failures. The store guarantees nothing was written."""


class PersistenceConflict(PersistenceError):
    """A participant row was missing or changed underneath the transaction."""


class TransientPersistenceFailure(PersistenceError):
    """The store could not be reached or was locked; retrying may succeed."""


def is_user_error(exc: BaseException) -> bool:
    """True for rejections worth showing to whoever issued the command.

    InvalidGroupSize means the engine broke its own rules and is treated like
    any other crash.
    """
    return isinstance(exc, RotationError) and not isinstance(exc, InvalidGroupSize)
