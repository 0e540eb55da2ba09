"""
Runtime settings read from the environment (and a local .env file).

Environment variables:
- DISCORD_TOKEN: bot token (required to run the bot only)
- TEST_MODE: 1/true/yes to sync commands to TEST_GUILD_ID and use a test DB
- TEST_GUILD_ID: guild to sync commands to in test mode
- DATABASE_PATH: SQLite file for the registry and match ledger
- LOG_LEVEL: DEBUG|INFO|WARNING|ERROR|CRITICAL
- REFILL_WINDOW: how many of the longest-rested players a draw picks from (default 8)
- SPECIAL_PAIR: "id1,id2" of the two players nudged toward teaming up
- RNG_SEED: fixed seed for reproducible rotations
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .logging_config import get_logger
from .rest_queue import REFILL_WINDOW

log = get_logger(__name__)

_TRUE = ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    discord_token: Optional[str] = None
    test_mode: bool = False
    test_guild_id: Optional[int] = None
    database_path: str = "./court_rotation.sqlite"
    log_level: str = "INFO"
    refill_window: int = REFILL_WINDOW
    special_pair: Optional[tuple[str, str]] = None
    rng_seed: Optional[int] = None


def _flag(name: str) -> bool:
    return os.getenv(name, "0").lower() in _TRUE


def _parse_special_pair(raw: str | None) -> tuple[str, str] | None:
    if not raw:
        return None
    ids = [x.strip().lower() for x in raw.split(",") if x.strip()]
    if len(ids) != 2 or ids[0] == ids[1]:
        log.warning("SPECIAL_PAIR must name two different players, ignoring %r", raw)
        return None
    return ids[0], ids[1]


def _parse_window(raw: str | None) -> int:
    if raw is None:
        return REFILL_WINDOW
    try:
        window = int(raw)
    except ValueError:
        log.warning("Invalid REFILL_WINDOW value, using default %s", REFILL_WINDOW)
        return REFILL_WINDOW
    if window < 1:
        log.warning("REFILL_WINDOW must be positive, using default %s", REFILL_WINDOW)
        return REFILL_WINDOW
    return window


def _parse_optional_int(name: str) -> int | None:
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        log.warning("Invalid %s value %r, ignoring", name, raw)
        return None


def load_settings(dotenv: bool = True) -> Settings:
    """Build Settings from the environment, loading .env first unless told not to."""
    if dotenv:
        load_dotenv()
    test_mode = _flag("TEST_MODE")
    return Settings(
        discord_token=os.getenv("DISCORD_TOKEN") or None,
        test_mode=test_mode,
        test_guild_id=_parse_optional_int("TEST_GUILD_ID") or None,
        database_path=os.getenv(
            "DATABASE_PATH",
            "./test_court_rotation.sqlite" if test_mode else "./court_rotation.sqlite",
        ),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        refill_window=_parse_window(os.getenv("REFILL_WINDOW")),
        special_pair=_parse_special_pair(os.getenv("SPECIAL_PAIR")),
        rng_seed=_parse_optional_int("RNG_SEED"),
    )
