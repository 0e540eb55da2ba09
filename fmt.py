from typing import Iterable, Optional

from court_rotation.models import Court, Occupied, Participant


def bold(t: str) -> str:
	return f"**{t}**"


def code(t: str) -> str:
	return f"`{t}`"


def block(t: str, lang: str | None = None) -> str:
	return f"```{lang or ''}\n{t}\n```"


def team(players: Iterable[Participant]) -> str:
	return " & ".join(p.name for p in players)


def court_line(court: Court, pending: bool = False) -> str:
	"""One line per court: teams, or an empty marker."""
	head = bold(f"Court {court.number}")
	if not isinstance(court.occupancy, Occupied):
		return f"{head}: *empty*"
	line = f"{head}: {team(court.occupancy.team_x)}  vs  {team(court.occupancy.team_y)}"
	if pending:
		line += " ⏳"
	return line


def resting_line(resting: list[Participant]) -> str:
	if not resting:
		return "Resting: None"
	return "Resting: " + ", ".join(p.name for p in resting)


def render_courts(courts: list[Court], resting: list[Participant], pending: Optional[set[int]] = None) -> str:
	pending = pending or set()
	lines = [court_line(c, c.number in pending) for c in courts] or ["*No courts*"]
	lines.append("")
	lines.append(resting_line(resting))
	return "\n".join(lines)


def mono_table(rows: list[list[str]], headers: Optional[list[str]] = None) -> str:
	"""Render a simple monospaced table as a Markdown code block.

	- Pads columns to the widest cell
	- Includes a header divider if headers are provided
	"""
	# Normalize all to strings and compute column count
	norm_rows = [[str(c) for c in r] for r in rows]
	col_count = max((len(r) for r in norm_rows), default=0)
	if headers:
		headers = [str(h) for h in headers]
		col_count = max(col_count, len(headers))

	def pad_row(r: Iterable[str]) -> list[str]:
		lst = list(r)
		if len(lst) < col_count:
			lst += [""] * (col_count - len(lst))
		return lst

	if headers:
		headers = pad_row(headers)
	norm_rows = [pad_row(r) for r in norm_rows]

	widths = [0] * col_count
	if headers:
		for i, cell in enumerate(headers):
			widths[i] = max(widths[i], len(cell))
	for r in norm_rows:
		for i, cell in enumerate(r):
			widths[i] = max(widths[i], len(cell))

	def fmt_row(r: list[str]) -> str:
		return " | ".join((r[i].ljust(widths[i]) for i in range(col_count)))

	lines: list[str] = []
	if headers:
		lines.append(fmt_row(headers))
		divider = "-+-".join("-" * w for w in widths)
		lines.append(divider)
	for r in norm_rows:
		lines.append(fmt_row(r))

	return block("\n".join(lines), "md")


def player_rows(players: list[Participant]) -> list[list[str]]:
	return [
		[p.name, str(p.wins), str(p.losses), str(p.games_played), f"{p.winrate * 100:.0f}%"]
		for p in players
	]
