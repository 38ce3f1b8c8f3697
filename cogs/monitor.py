# Scheduled verification sweep — runs the batch job on a loop and on demand
import asyncio
import logging
from datetime import datetime, timezone

import discord
from discord import app_commands
from discord.ext import commands, tasks

from config import settings
from db import LicenseDB
from verification import JobStatus, VerificationJob, VerificationJobRunner

logger = logging.getLogger(__name__)


def summary_embed(job: VerificationJob) -> discord.Embed:
    """Summary of a finished (or running) job."""
    if job.status is JobStatus.COMPLETED:
        color = 0x2ECC71 if job.errors == 0 else 0xF1C40F
        title = "\U0001f50d  License Verification Complete"
    elif job.status is JobStatus.FAILED:
        color = 0xE74C3C
        title = "❌  License Verification Failed"
    else:
        color = 0x3498DB
        title = "⏳  License Verification Running"
    if job.dry_run:
        title += " (dry run)"

    embed = discord.Embed(
        title=title,
        description=(
            f"**Processed:** {job.processed_licenses}/{job.total_licenses}\n"
            f"**Auto-verified:** {job.auto_verified}\n"
            f"**Tasks created:** {job.tasks_created}\n"
            f"**Skipped:** {job.skipped}\n"
            f"**Errors:** {job.errors}"
        ),
        color=color,
        timestamp=datetime.now(timezone.utc),
    )
    if job.error_details:
        lines = [
            f"`{e.license_id or 'job'}` {e.message[:80]}" for e in job.error_details[-5:]
        ]
        embed.add_field(name="Recent errors", value="\n".join(lines), inline=False)
    embed.set_footer(text=f"Job {job.id}")
    return embed


class MonitorCog(commands.Cog, name="Monitor"):
    """Scheduled background verification of every active license."""

    def __init__(self, bot: commands.Bot, db: LicenseDB) -> None:
        self.bot = bot
        self.db = db
        self.runner = VerificationJobRunner(db)
        self._task: asyncio.Task | None = None

    async def cog_load(self) -> None:
        if settings.VERIFICATION_ENABLED and settings.VERIFICATION_INTERVAL_HOURS > 0:
            self.sweep_loop.change_interval(hours=settings.VERIFICATION_INTERVAL_HOURS)
            self.sweep_loop.start()
            logger.info(
                f"Verification sweep scheduled — every {settings.VERIFICATION_INTERVAL_HOURS}h"
            )

    async def cog_unload(self) -> None:
        # Stop between licenses; lookups already in a browser run to completion
        self.runner.cancel()
        self.sweep_loop.stop()
        if self._task and not self._task.done():
            await self._task

    # ================================================================== #
    #  Scheduled Loop                                                      #
    # ================================================================== #

    @tasks.loop(hours=720)  # Overridden in cog_load
    async def sweep_loop(self):
        if self.runner.is_running:
            logger.info("Scheduled sweep skipped: a job is already running")
            return
        logger.info("=== Scheduled license verification starting ===")
        await self._run_and_report(dry_run=False)

    @sweep_loop.before_loop
    async def before_sweep(self):
        await self.bot.wait_until_ready()

    async def _run_and_report(self, dry_run: bool) -> VerificationJob | None:
        try:
            job = await self.runner.run(dry_run=dry_run)
        except Exception:
            logger.exception("Verification job could not start")
            return None
        await self._post_summary(job)
        return job

    # ================================================================== #
    #  Commands                                                            #
    # ================================================================== #

    @app_commands.command(
        name="run-verification",
        description="Start a verification sweep of all active licenses",
    )
    @app_commands.describe(dry_run="Look everything up but write nothing")
    async def run_verification(
        self, interaction: discord.Interaction, dry_run: bool = False
    ) -> None:
        if self.runner.is_running or (self._task and not self._task.done()):
            await interaction.response.send_message(
                "⏳ A verification job is already running. "
                "Use `/verification-status` to follow it.",
                ephemeral=True,
            )
            return

        self._task = asyncio.create_task(self._run_and_report(dry_run))
        logger.info(f"Verification started by {interaction.user} (dry_run={dry_run})")
        await interaction.response.send_message(
            f"▶️ Verification sweep started{' (dry run)' if dry_run else ''}. "
            f"A summary will be posted when it finishes.",
            ephemeral=True,
        )

    @app_commands.command(
        name="verification-status",
        description="Progress of the current or most recent verification job",
    )
    async def verification_status(self, interaction: discord.Interaction) -> None:
        job = self.runner.current_job
        if job is None:
            row = await self.db.get_latest_job()
            job = VerificationJob.from_row(row) if row else None
        if job is None:
            await interaction.response.send_message(
                "No verification jobs have run yet.", ephemeral=True
            )
            return
        await interaction.response.send_message(embed=summary_embed(job), ephemeral=True)

    @app_commands.command(
        name="cancel-verification",
        description="Stop the running verification job",
    )
    async def cancel_verification(self, interaction: discord.Interaction) -> None:
        if self.runner.cancel():
            await interaction.response.send_message(
                "\U0001f6d1 Cancelling. Lookups already in progress will finish first.",
                ephemeral=True,
            )
        else:
            await interaction.response.send_message(
                "No verification job is running.", ephemeral=True
            )

    # ================================================================== #
    #  Notifications                                                       #
    # ================================================================== #

    async def _post_summary(self, job: VerificationJob) -> None:
        """Post the job summary to the license check channel."""
        if not settings.LICENSE_CHECK_CHANNEL_ID:
            return
        channel = self.bot.get_channel(settings.LICENSE_CHECK_CHANNEL_ID)
        if not channel:
            return
        try:
            await channel.send(embed=summary_embed(job))
        except discord.Forbidden:
            logger.warning(f"Cannot post to channel {settings.LICENSE_CHECK_CHANNEL_ID}")
        except discord.HTTPException as e:
            logger.error(f"Summary post failed: {e}")


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(MonitorCog(bot, bot._db))
