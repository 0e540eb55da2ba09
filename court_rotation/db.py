import json
from datetime import datetime, timezone

import aiosqlite

from .errors import PersistenceConflict, TransientPersistenceFailure
from .logging_config import get_logger
from .models import MatchRecord, Participant
from .rating import compute_winrate

log = get_logger(__name__)

# Global variable for database path (will be set by init_db)
DB_PATH = "court_rotation.sqlite"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# Helper to check if a table exists
async def table_exists(table: str, db_path: str | None = None) -> bool:
    async with aiosqlite.connect(db_path or DB_PATH) as db:
        async with db.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (table,)
        ) as cursor:
            row = await cursor.fetchone()
            return row is not None


# Helper to check if a table has a column
async def table_has_column(table: str, column: str, db_path: str | None = None) -> bool:
    if not await table_exists(table, db_path):
        return False
    async with aiosqlite.connect(db_path or DB_PATH) as db:
        async with db.execute(f"PRAGMA table_info({table})") as cursor:
            async for row in cursor:
                if row[1] == column:
                    return True
    return False


async def init_db(db_path: str = "court_rotation.sqlite"):
    """Initialize the database with required tables and columns."""
    global DB_PATH
    DB_PATH = db_path

    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute("""
            CREATE TABLE IF NOT EXISTS participants (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                wins INTEGER NOT NULL DEFAULT 0,
                losses INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        # games_played / winrate were derived on read in early versions
        if not await table_has_column("participants", "games_played", DB_PATH):
            await db.execute("ALTER TABLE participants ADD COLUMN games_played INTEGER NOT NULL DEFAULT 0")
            await db.execute("UPDATE participants SET games_played = wins + losses")
            await db.commit()
        if not await table_has_column("participants", "winrate", DB_PATH):
            await db.execute("ALTER TABLE participants ADD COLUMN winrate REAL NOT NULL DEFAULT 0.0")
            await db.execute(
                "UPDATE participants SET winrate = CASE WHEN games_played > 0 "
                "THEN CAST(wins AS REAL) / games_played ELSE 0.0 END"
            )

        # Match ledger, one namespace per session
        await db.execute("""
            CREATE TABLE IF NOT EXISTS matches (
                session_id TEXT NOT NULL,
                match_key TEXT NOT NULL,
                court_number INTEGER NOT NULL,
                winners TEXT NOT NULL,
                losers TEXT NOT NULL,
                recorded_at TEXT NOT NULL,
                PRIMARY KEY (session_id, match_key)
            )
        """)
        await db.commit()
    log.debug("Initialized database at %s", DB_PATH)


async def get_participant(participant_id: str) -> Participant | None:
    """Get a participant by registry id, or None."""
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute("SELECT * FROM participants WHERE id = ?", (participant_id,)) as cursor:
            row = await cursor.fetchone()
            log.debug("Fetched participant id=%s -> found=%s", participant_id, bool(row))
            return Participant.from_row(dict(row)) if row else None


async def list_participants() -> list[Participant]:
    """All registered participants ordered by name."""
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute("SELECT * FROM participants ORDER BY name COLLATE NOCASE") as cursor:
            rows = await cursor.fetchall()
            return [Participant.from_row(dict(r)) for r in rows]


async def upsert_participant(participant_id: str, name: str) -> tuple[Participant, bool]:
    """Create a participant with a zeroed record unless one exists.

    Returns (participant, created). An existing participant is returned as-is.
    """
    async with aiosqlite.connect(DB_PATH) as db:
        now = _now()
        cursor = await db.execute(
            """
            INSERT OR IGNORE INTO participants (id, name, wins, losses, games_played, winrate, created_at, updated_at)
            VALUES (?, ?, 0, 0, 0, 0.0, ?, ?)
            """,
            (participant_id, name.strip(), now, now),
        )
        await db.commit()
        created = cursor.rowcount == 1
    participant = await get_participant(participant_id)
    if participant is None:
        raise PersistenceConflict(f"Participant {participant_id!r} vanished after insert")
    log.debug("Upsert participant id=%s created=%s", participant_id, created)
    return participant, created


async def transactional_record_match(session_id: str, match_key: str, record: MatchRecord) -> list[Participant]:
    """Write a match record and the four players' stats in one transaction.

    Every player row is read and then rewritten with wins or losses +1,
    games_played +1 and a recomputed winrate. Either everything lands or
    nothing does.

    Returns the updated participants (winners first, then losers).

    Raises:
        PersistenceConflict: a player row is missing.
        TransientPersistenceFailure: the database could not be used.
    """
    payload = record.to_payload()
    winner_ids = {p.id for p in record.winners}
    updated: list[Participant] = []
    try:
        async with aiosqlite.connect(DB_PATH) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("BEGIN IMMEDIATE")
            try:
                # Read all player rows first
                rows: dict[str, dict] = {}
                for p in (*record.winners, *record.losers):
                    async with db.execute("SELECT * FROM participants WHERE id = ?", (p.id,)) as cursor:
                        row = await cursor.fetchone()
                    if row is None:
                        raise PersistenceConflict(f"Player {p.name} with id {p.id} does not exist")
                    rows[p.id] = dict(row)

                now = _now()
                await db.execute(
                    """
                    INSERT OR REPLACE INTO matches (session_id, match_key, court_number, winners, losers, recorded_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        session_id,
                        match_key,
                        record.court_number,
                        json.dumps(payload["winners"]),
                        json.dumps(payload["losers"]),
                        now,
                    ),
                )

                for pid, row in rows.items():
                    wins = int(row["wins"] or 0)
                    losses = int(row["losses"] or 0)
                    if pid in winner_ids:
                        wins += 1
                    else:
                        losses += 1
                    games_played = wins + losses
                    winrate = compute_winrate(wins, games_played)
                    await db.execute(
                        """
                        UPDATE participants
                        SET wins = ?, losses = ?, games_played = ?, winrate = ?, updated_at = ?
                        WHERE id = ?
                        """,
                        (wins, losses, games_played, winrate, now, pid),
                    )
                    updated.append(Participant(
                        id=pid,
                        name=row["name"],
                        wins=wins,
                        losses=losses,
                        games_played=games_played,
                        winrate=winrate,
                    ))
                await db.commit()
            except BaseException:
                await db.rollback()
                raise
    except (aiosqlite.Error, OSError) as e:
        log.debug("Match %s/%s transaction failed", session_id, match_key, exc_info=True)
        raise TransientPersistenceFailure(str(e)) from e
    log.debug("Recorded match %s/%s court=%s", session_id, match_key, record.court_number)
    return updated


async def session_matches(session_id: str) -> list[dict]:
    """Matches recorded for a session, oldest first."""
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute(
            "SELECT * FROM matches WHERE session_id = ? ORDER BY recorded_at, rowid",
            (session_id,),
        ) as cursor:
            rows = await cursor.fetchall()
    out = []
    for row in rows:
        m = dict(row)
        m["winners"] = json.loads(m["winners"])
        m["losers"] = json.loads(m["losers"])
        out.append(m)
    log.debug("Session matches session=%s -> %s", session_id, len(out))
    return out
