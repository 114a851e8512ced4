from datetime import datetime
from typing import Literal
from zoneinfo import ZoneInfo

import discord
from discord import app_commands

from . import adjustments
from .errors import ClockSkewError, ShiftError
from .reporter import format_hm, format_hms


def parse_local_instant(value: str, tz: ZoneInfo, now_utc: datetime) -> datetime:
    """Parse `HH:MM` (today, local) or `YYYY-MM-DD HH:MM` (local) into an aware datetime."""
    text = value.strip()
    try:
        if len(text) <= 5:
            parsed_time = datetime.strptime(text, "%H:%M").time()
            local_day = now_utc.astimezone(tz).date()
            return datetime.combine(local_day, parsed_time, tzinfo=tz)
        return datetime.strptime(text, "%Y-%m-%d %H:%M").replace(tzinfo=tz)
    except ValueError as exc:
        raise ValueError(f"Could not read `{value}`; use HH:MM or YYYY-MM-DD HH:MM") from exc


def register_commands(bot):
    """Register all slash commands on the bot. Called once during setup."""
    guild_scope = discord.Object(id=bot.config.guild_id)
    tz = bot.config.timezone

    async def reject_foreign(interaction) -> bool:
        # Only the configured owner in the configured guild may touch the tracker.
        if interaction.guild is None or interaction.guild.id != bot.config.guild_id:
            await interaction.response.send_message("This command can only be used in the configured server.", ephemeral=True)
            return True
        if interaction.user.id != bot.config.owner_user_id:
            await interaction.response.send_message("Only the tracker owner can use this command.", ephemeral=True)
            return True
        return False

    def resolve_at(at):
        if at is None:
            return None
        return parse_local_instant(at, tz, bot.tracker.clock())

    @bot.tree.command(name="clock-in", description="Start a shift", guild=guild_scope)
    @app_commands.describe(at="Start time as HH:MM or YYYY-MM-DD HH:MM (defaults to now)")
    async def clock_in(interaction, at: str | None = None):
        if await reject_foreign(interaction):
            return

        try:
            running = bot.tracker.start_shift(resolve_at(at))
        except (ShiftError, ValueError) as exc:
            await interaction.response.send_message(str(exc), ephemeral=True)
            return

        bot.logger.info("Clock-in via command at %s", running.start_ms)
        await interaction.response.send_message(
            f"Clocked in. Today so far: `{format_hms(running.base_today_sec)}`",
            ephemeral=True,
        )
        await bot.refresh_presence()

    @bot.tree.command(name="clock-out", description="End the running shift", guild=guild_scope)
    @app_commands.describe(at="End time as HH:MM or YYYY-MM-DD HH:MM (defaults to now)")
    async def clock_out(interaction, at: str | None = None):
        if await reject_foreign(interaction):
            return

        try:
            session = bot.tracker.end_shift(resolve_at(at))
        except ClockSkewError as exc:
            await interaction.response.send_message(str(exc), ephemeral=True)
            await bot.refresh_presence()
            return
        except (ShiftError, ValueError) as exc:
            await interaction.response.send_message(str(exc), ephemeral=True)
            return

        await interaction.response.send_message(
            f"Clocked out after `{format_hms(session.duration_sec)}`.",
            ephemeral=True,
        )
        await bot.refresh_presence()

    @bot.tree.command(name="cancel-shift", description="Discard the running shift without saving it", guild=guild_scope)
    async def cancel_shift(interaction):
        if await reject_foreign(interaction):
            return

        bot.tracker.cancel_running_shift()
        await interaction.response.send_message("Running shift discarded.", ephemeral=True)
        await bot.refresh_presence()

    @bot.tree.command(name="status", description="Show the running shift and current totals", guild=guild_scope)
    async def status(interaction):
        if await reject_foreign(interaction):
            return

        snapshot = bot.tracker.get_snapshot()
        await interaction.response.send_message(bot.reporter.build_status_content(snapshot), ephemeral=True)

    @bot.tree.command(name="report", description="List recorded hours", guild=guild_scope)
    @app_commands.describe(mode="Grouping for the report")
    async def report(interaction, mode: Literal["daily", "weekly", "monthly", "quarterly"] = "daily"):
        if await reject_foreign(interaction):
            return

        rows = bot.reporter.rows(mode)
        await interaction.response.send_message(bot.reporter.build_report_content(mode, rows), ephemeral=True)

    @bot.tree.command(name="week", description="Show this week's hours per day", guild=guild_scope)
    async def week(interaction):
        if await reject_foreign(interaction):
            return

        rows = bot.reporter.week_breakdown()
        await interaction.response.send_message(bot.reporter.build_week_content(rows), ephemeral=True)

    @bot.tree.command(name="set-hours", description="Overwrite the hours recorded for a day", guild=guild_scope)
    @app_commands.describe(day="Day as YYYY-MM-DD", hours="Decimal hours, e.g. 7.5")
    async def set_hours(interaction, day: str, hours: float):
        if await reject_foreign(interaction):
            return

        try:
            adjustments.change_day_hours(bot.tracker, day, hours)
        except ValueError as exc:
            await interaction.response.send_message(str(exc), ephemeral=True)
            return

        total = bot.tracker.get_all_rollups().day.get(day, 0)
        await interaction.response.send_message(f"{day} is now `{format_hm(total)}`.", ephemeral=True)
        await bot.refresh_presence()

    @bot.tree.command(name="clear-day", description="Delete all hours recorded for a day", guild=guild_scope)
    @app_commands.describe(day="Day as YYYY-MM-DD")
    async def clear_day(interaction, day: str):
        if await reject_foreign(interaction):
            return

        try:
            adjustments.delete_day_hours(bot.tracker, day)
        except ValueError as exc:
            await interaction.response.send_message(str(exc), ephemeral=True)
            return

        await interaction.response.send_message(f"Cleared {day}.", ephemeral=True)
        await bot.refresh_presence()

    @bot.tree.command(name="rebuild", description="Recompute all totals from recorded sessions", guild=guild_scope)
    async def rebuild(interaction):
        if await reject_foreign(interaction):
            return

        rollups = bot.tracker.rebuild_rollups_from_sessions()
        await interaction.response.send_message(
            f"Rebuilt totals for {len(rollups.day)} days.",
            ephemeral=True,
        )
