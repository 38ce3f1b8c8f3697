# License Verification Bot — Entry point
# Sweeps nurse licenses against state boards and queues manual reviews.
# Shares a database with the compliance dashboard.
#
#   license-bot                 run the Discord bot (scheduled + on-demand sweeps)
#   license-bot sweep           run one sweep headless and exit (for cron)
#   license-bot sweep --dry-run
import argparse
import asyncio
import logging
import sys

import discord
from discord.ext import commands

from config import settings
from db import LicenseDB
from scrapers import get_available_states
from verification import JobStatus, VerificationJob, VerificationJobRunner

# ── Logging ──
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("license-bot")

COGS = [
    "cogs.verify",    # /lookup, /verify-license, /coverage
    "cogs.monitor",   # Scheduled and on-demand verification sweeps
]


def build_bot(db: LicenseDB) -> commands.Bot:
    intents = discord.Intents.default()
    intents.message_content = False  # Slash commands only
    bot = commands.Bot(command_prefix="!lic-", intents=intents, help_command=None)
    bot._db = db  # Accessible by cogs

    @bot.event
    async def on_ready():
        logger.info(f"License Bot online as {bot.user} in {len(bot.guilds)} guild(s)")
        logger.info(f"Shared DB: {db._path()}")
        logger.info(f"Automated lookups for: {', '.join(get_available_states())}")

    async def setup_hook():
        await db.init()
        for cog in COGS:
            try:
                await bot.load_extension(cog)
                logger.info(f"Loaded cog: {cog}")
            except Exception as e:
                logger.error(f"Failed to load {cog}: {e}")

        if settings.GUILD_ID:
            guild = discord.Object(id=settings.GUILD_ID)
            bot.tree.copy_global_to(guild=guild)
            await bot.tree.sync(guild=guild)
            logger.info(f"Synced commands to guild {settings.GUILD_ID}")
        else:
            await bot.tree.sync()
            logger.info("Synced commands globally")

    bot.setup_hook = setup_hook
    return bot


async def run_sweep(db: LicenseDB, dry_run: bool = False) -> VerificationJob:
    """One sweep without Discord. Raises only if the job record can't be created."""
    await db.init()
    return await VerificationJobRunner(db).run(dry_run=dry_run)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="license-bot", description="License verification bot.")
    sub = parser.add_subparsers(dest="command")
    sweep = sub.add_parser("sweep", help="Run one verification sweep and exit")
    sweep.add_argument("--dry-run", action="store_true", help="Look everything up but write nothing")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    db = LicenseDB()

    if args.command == "sweep":
        job = asyncio.run(run_sweep(db, dry_run=args.dry_run))
        # Non-zero exit lets the scheduler flag cancelled or aborted sweeps
        return 0 if job.status is JobStatus.COMPLETED else 1

    logger.info("Starting License Verification Bot...")
    build_bot(db).run(settings.DISCORD_TOKEN, log_handler=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
