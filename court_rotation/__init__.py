"""Court Rotation core package.

Exports commonly used modules for convenience.
"""

from . import db as db
from . import history as history
from . import rating as rating
from . import rest_queue as rest_queue
from . import teams as teams
from . import logging_config as logging_config
from .config import Settings, load_settings
from .models import Court, Empty, MatchOutcome, MatchRecord, Occupied, Participant
from .session import CourtRotation, SessionState

__all__ = [
    "db",
    "history",
    "rating",
    "rest_queue",
    "teams",
    "logging_config",
    "Settings",
    "load_settings",
    "Court",
    "Empty",
    "Occupied",
    "MatchOutcome",
    "MatchRecord",
    "Participant",
    "CourtRotation",
    "SessionState",
]
