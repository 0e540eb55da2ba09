# app.py
# Discord court-rotation bot: rotating 2v2 courts with balanced teams and fair rests

from __future__ import annotations

import asyncio
from collections import defaultdict

import discord
from discord import app_commands

import fmt
from court_rotation import db
from court_rotation.config import load_settings
from court_rotation.errors import is_user_error
from court_rotation.logging_config import setup_logging, get_logger
from court_rotation.models import normalize_id
from court_rotation.session import CourtRotation
from views import ConfirmView, WinnerView

# --- Env / Config ---
settings = load_settings()
setup_logging(settings.log_level, test_mode=settings.test_mode)
log = get_logger(__name__)

DATABASE_PATH = settings.database_path

# Intents
intents = discord.Intents.none()
intents.guilds = True

# Discord client + tree
bot = discord.Client(intents=intents)
tree = app_commands.CommandTree(bot)

# Guild locks serialise commands that await the store more than once
guild_locks: dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)
def get_guild_lock(guild_id: int | None) -> asyncio.Lock:
    return guild_locks[guild_id or 0]

# One rotation engine per guild
_engines: dict[int, CourtRotation] = {}
def get_engine(guild_id: int | None) -> CourtRotation:
    key = guild_id or 0
    engine = _engines.get(key)
    if engine is None:
        engine = CourtRotation(store=db, settings=settings)
        _engines[key] = engine
    return engine


# --- Helpers ---
def _split_names(raw: str) -> list[str]:
    return [x.strip() for x in raw.replace("\n", ",").split(",") if x.strip()]

def _board(engine: CourtRotation) -> str:
    if not engine.active:
        return "No active session. Start one with `/session_start`."
    board = fmt.render_courts(engine.courts, engine.resting, engine.state.pending)
    if engine.can_add_court:
        board += "\n*Enough players resting to open another court (`/court_add`).*"
    return board

async def _reply_error(inter: discord.Interaction, e: Exception) -> None:
    msg = f"❌ {e}"
    if inter.response.is_done():
        await inter.followup.send(msg, ephemeral=True)
    else:
        await inter.response.send_message(msg, ephemeral=True)


# --- Discord events ---
@bot.event
async def on_ready():
    await db.init_db(DATABASE_PATH)

    # Sync commands
    if settings.test_mode and settings.test_guild_id:
        await tree.sync(guild=discord.Object(id=settings.test_guild_id))
        log.info("Commands synced to test guild %s", settings.test_guild_id)
    else:
        await tree.sync()
        log.info("Commands synced globally")

    status = "Badminton 🏸 [TEST MODE]" if settings.test_mode else "Badminton 🏸"
    await bot.change_presence(activity=discord.Game(name=status))
    log.info("Bot ready as %s | guilds=%s | DB=%s", bot.user, len(bot.guilds), DATABASE_PATH)

@tree.error
async def on_app_command_error(inter: discord.Interaction, error: app_commands.AppCommandError):
    original = getattr(error, "original", error)
    if is_user_error(original):
        return await _reply_error(inter, original)
    log.exception("Command %s failed", getattr(inter.command, "name", "?"), exc_info=original)
    await _reply_error(inter, Exception("Something went wrong, please try again."))


# --- Registry commands ---
@tree.command(name="player_add", description="Register a new player")
@app_commands.describe(name="Player name")
async def player_add(inter: discord.Interaction, name: str):
    name = name.strip()[:60]
    if not name:
        return await inter.response.send_message("Player name cannot be empty.", ephemeral=True)
    _player, created = await db.upsert_participant(normalize_id(name), name)
    if created:
        await inter.response.send_message(f"{fmt.bold(name)} added.")
    else:
        await inter.response.send_message(f"{name} already exists.", ephemeral=True)

@tree.command(name="players", description="List registered players and their records")
async def players(inter: discord.Interaction):
    rows = await db.list_participants()
    if not rows:
        return await inter.response.send_message("No players registered yet. Use `/player_add`.", ephemeral=True)
    table = fmt.mono_table(fmt.player_rows(rows), headers=["Name", "W", "L", "GP", "Win%"])
    await inter.response.send_message(table, ephemeral=True)


# --- Session commands ---
@tree.command(name="session_start", description="Start a session on N courts with the listed players")
@app_commands.describe(courts="Number of courts", players="Comma-separated player names")
async def session_start(inter: discord.Interaction, courts: app_commands.Range[int, 1, 20], players: str):
    engine = get_engine(inter.guild_id)
    ids = [normalize_id(n) for n in _split_names(players)]
    await inter.response.defer()
    async with get_guild_lock(inter.guild_id):
        await engine.start_session(int(courts), ids)
    await inter.followup.send(f"## Active Courts\n{_board(engine)}")

@tree.command(name="session_end", description="End the session (discards all court progress)")
async def session_end(inter: discord.Interaction):
    engine = get_engine(inter.guild_id)
    if not engine.active:
        return await inter.response.send_message("No active session.", ephemeral=True)

    async def _confirm() -> str:
        engine.end_session(confirm=True)
        return "Session ended."

    view = ConfirmView(_confirm, confirm_label="End Session")
    await inter.response.send_message(
        "Are you sure you want to end the current session? All court progress will be lost.",
        view=view, ephemeral=True,
    )

@tree.command(name="courts", description="Show courts and who is resting")
async def courts(inter: discord.Interaction):
    await inter.response.send_message(_board(get_engine(inter.guild_id)))


# --- Court commands ---
@tree.command(name="finish", description="Report the winners of a court")
@app_commands.describe(court="Court number")
async def finish(inter: discord.Interaction, court: int):
    engine = get_engine(inter.guild_id)
    if not engine.active:
        return await inter.response.send_message("No active session.", ephemeral=True)
    try:
        view = WinnerView(engine, court)
    except ValueError as e:
        return await inter.response.send_message(f"❌ {e}", ephemeral=True)
    if engine.is_pending(court):
        return await inter.response.send_message(f"Court {court} is already being recorded.", ephemeral=True)
    await inter.response.send_message(f"Who won on court {court}?", view=view)

@tree.command(name="court_add", description="Open another court from the resting players")
async def court_add(inter: discord.Interaction):
    engine = get_engine(inter.guild_id)
    if not engine.can_add_court:
        return await inter.response.send_message("Need at least 4 resting players to add a new court.", ephemeral=True)
    new_court = engine.add_court()
    await inter.response.send_message(f"Court {new_court.number} added.\n\n{_board(engine)}")

@tree.command(name="court_delete", description="Delete a court and send its players to rest")
@app_commands.describe(court="Court number")
async def court_delete(inter: discord.Interaction, court: int):
    engine = get_engine(inter.guild_id)

    async def _confirm() -> str:
        moved = engine.delete_court(court)
        return f"Court {court} deleted; {len(moved)} player(s) moved to resting.\n\n{_board(engine)}"

    view = ConfirmView(_confirm, confirm_label="Delete")
    await inter.response.send_message(
        f"Are you sure you want to delete Court {court}? All players on this court will be moved to the resting queue.",
        view=view, ephemeral=True,
    )

@tree.command(name="court_swap", description="Swap two players between a court's teams and the resting queue")
@app_commands.describe(court="Court number", a="First player", b="Second player")
async def court_swap(inter: discord.Interaction, court: int, a: str, b: str):
    engine = get_engine(inter.guild_id)
    engine.edit_court(court, [(normalize_id(a), normalize_id(b))])
    await inter.response.send_message(_board(engine))

@tree.command(name="late", description="Add a late player to the resting queue")
@app_commands.describe(name="Existing player, or a new name to register")
async def late(inter: discord.Interaction, name: str):
    engine = get_engine(inter.guild_id)
    name = name.strip()[:60]
    await inter.response.defer()
    async with get_guild_lock(inter.guild_id):
        pid = normalize_id(name)
        if await db.get_participant(pid) is not None:
            player = await engine.add_late_participant(existing_id=pid)
        else:
            player = await engine.add_late_participant(new_name=name)
    await inter.followup.send(f"{fmt.bold(player.name)} added and is now resting.\n\n{_board(engine)}")


# --- Entrypoint ---
if __name__ == "__main__":
    if not settings.discord_token:
        log.error("DISCORD_TOKEN not set. Put it in environment or .env")
        raise SystemExit(1)

    # Ensure schema before login (on_ready will also ensure)
    asyncio.run(db.init_db(DATABASE_PATH))
    bot.run(settings.discord_token, log_handler=None)
