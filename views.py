import discord

import fmt
from court_rotation.errors import RotationError, is_user_error
from court_rotation.logging_config import get_logger
from court_rotation.models import Occupied
from court_rotation.session import CourtRotation

log = get_logger(__name__)


def _error_text(e: RotationError) -> str:
    if is_user_error(e):
        return f"❌ {e}"
    return "❌ Something went wrong, please try again."


class WinnerButton(discord.ui.Button):
    def __init__(self, side: str, label: str):
        self.side = side  # "X" or "Y"
        style = discord.ButtonStyle.danger if side == "X" else discord.ButtonStyle.primary
        super().__init__(label=label[:80], style=style)

    async def callback(self, interaction: discord.Interaction):
        view = getattr(self, "view", None)
        if isinstance(view, WinnerView):
            await view.report(interaction, self.side)
        else:
            await interaction.response.defer()


class WinnerView(discord.ui.View):
    """Pick the winning team of one court.

    Buttons are disabled while the result is being recorded and come back if
    recording fails, so the same result can be sent again.
    """

    def __init__(self, engine: CourtRotation, court_number: int):
        super().__init__(timeout=600)
        self.engine = engine
        self.court_number = court_number
        occ = engine.state.court(court_number).occupancy
        if not isinstance(occ, Occupied):
            raise ValueError(f"Court {court_number} has no game in progress")
        self.team_x, self.team_y = occ.team_x, occ.team_y
        self.add_item(WinnerButton("X", f"🏆 {fmt.team(self.team_x)}"))
        self.add_item(WinnerButton("Y", f"🏆 {fmt.team(self.team_y)}"))

    def _set_enabled(self, enabled: bool) -> None:
        for item in self.children:
            if isinstance(item, discord.ui.Button):
                item.disabled = not enabled

    async def report(self, interaction: discord.Interaction, side: str):
        winners, losers = (self.team_x, self.team_y) if side == "X" else (self.team_y, self.team_x)
        self._set_enabled(False)
        await interaction.response.edit_message(
            content=f"⏳ Recording result for court {self.court_number}…", view=self
        )
        try:
            outcome = await self.engine.finish_game(
                self.court_number, [p.id for p in winners], [p.id for p in losers]
            )
        except RotationError as e:
            if not is_user_error(e):
                log.exception("Finishing court %s failed", self.court_number)
            await interaction.edit_original_response(content=_error_text(e), view=None)
            self.stop()
            return

        if not outcome.committed:
            self._set_enabled(True)
            await interaction.edit_original_response(
                content=f"❌ Failed to record match: {outcome.reason}. Pick the winner again to retry.",
                view=self,
            )
            return

        board = fmt.render_courts(self.engine.courts, self.engine.resting, self.engine.state.pending)
        await interaction.edit_original_response(
            content=f"✅ Winners recorded: {fmt.bold(fmt.team(winners))} ({fmt.code(outcome.match_key)})\n\n{board}",
            view=None,
        )
        self.stop()


class ConfirmView(discord.ui.View):
    """Two-button confirmation for destructive commands."""

    def __init__(self, on_confirm, confirm_label: str = "Confirm"):
        super().__init__(timeout=60)
        self.on_confirm = on_confirm
        self.confirm.label = confirm_label

    @discord.ui.button(label="Confirm", style=discord.ButtonStyle.danger)
    async def confirm(self, interaction: discord.Interaction, button: discord.ui.Button):
        try:
            message = await self.on_confirm()
        except RotationError as e:
            if not is_user_error(e):
                log.exception("Confirmed action failed")
            message = _error_text(e)
        await interaction.response.edit_message(content=message, view=None)
        self.stop()

    @discord.ui.button(label="Cancel", style=discord.ButtonStyle.secondary)
    async def cancel(self, interaction: discord.Interaction, button: discord.ui.Button):
        await interaction.response.edit_message(content="Cancelled.", view=None)
        self.stop()
