# /lookup, /verify-license, /coverage — on-demand board lookups
import logging
from datetime import datetime, timezone

import discord
from discord import app_commands
from discord.ext import commands

from db import LicenseDB
from scrapers import (
    LicenseResult,
    LicenseStatus,
    LookupRequest,
    get_states_by_region,
    verify_license,
)
from verification.outcomes import (
    describe_failure,
    license_updates,
    map_license_status,
    map_verification_result,
)

logger = logging.getLogger(__name__)

_STATUS_COLORS = {
    LicenseStatus.ACTIVE: 0x2ECC71,
    LicenseStatus.EXPIRED: 0xE67E22,
    LicenseStatus.INACTIVE: 0xE67E22,
    LicenseStatus.SUSPENDED: 0xE74C3C,
    LicenseStatus.REVOKED: 0xE74C3C,
}


def result_embed(result: LicenseResult, state: str) -> discord.Embed:
    """Render a lookup result for Discord."""
    if not result.success:
        embed = discord.Embed(
            title="⚠️  Lookup Failed",
            description=(
                f"**State:** {state}\n"
                f"**License #:** {result.license_number or 'N/A'}\n"
                f"**Reason:** {describe_failure(result)}"
            ),
            color=0x95A5A6,
            timestamp=datetime.now(timezone.utc),
        )
        return embed

    if result.unencumbered is False:
        discipline = "⚠️ Discipline noted"
    elif result.unencumbered:
        discipline = "None found"
    else:
        discipline = "Unknown"

    embed = discord.Embed(
        title=f"\U0001fa7a  {state} License {result.status.value.title()}",
        color=_STATUS_COLORS.get(result.status, 0x3498DB),
        timestamp=datetime.now(timezone.utc),
    )
    embed.add_field(name="Name", value=result.license_holder_name or "N/A", inline=True)
    embed.add_field(name="License #", value=result.license_number or "N/A", inline=True)
    embed.add_field(name="Type", value=result.license_type or "N/A", inline=True)
    embed.add_field(
        name="Expires",
        value=result.expiration_date.isoformat() if result.expiration_date else "Not found",
        inline=True,
    )
    embed.add_field(name="Discipline", value=discipline, inline=True)
    return embed


class VerifyCog(commands.Cog, name="Verify"):
    """Ad-hoc license lookups against state boards."""

    def __init__(self, bot: commands.Bot, db: LicenseDB) -> None:
        self.bot = bot
        self.db = db

    @app_commands.command(
        name="lookup",
        description="Look up a license on its state board (nothing is saved)",
    )
    @app_commands.describe(
        state="2-letter state code, e.g. WA, CA, TX",
        credential_type="Credential, e.g. RN, LPN, CNA",
        license_number="License number as issued by the board",
        last_name="Licensee last name (some boards require it)",
    )
    async def lookup(
        self,
        interaction: discord.Interaction,
        state: str,
        credential_type: str,
        license_number: str,
        last_name: str = None,
    ) -> None:
        await interaction.response.defer(ephemeral=True)
        state = state.upper().strip()
        logger.info(f"Lookup: {state} {credential_type} {license_number} by {interaction.user}")

        result = await verify_license(
            LookupRequest(
                license_number=license_number.strip(),
                state=state,
                credential_type=credential_type.upper().strip(),
                last_name=last_name,
            )
        )
        await interaction.followup.send(embed=result_embed(result, state), ephemeral=True)

    @app_commands.command(
        name="verify-license",
        description="Verify a stored license now and record the result",
    )
    @app_commands.describe(license_id="License record id from the compliance dashboard")
    async def verify_stored_license(
        self, interaction: discord.Interaction, license_id: str
    ) -> None:
        await interaction.response.defer(ephemeral=True)

        lic = await self.db.get_license(license_id.strip())
        if not lic:
            await interaction.followup.send(
                f"❌ No license with id `{license_id}`.", ephemeral=True
            )
            return

        state = (lic["state"] or "").upper()
        result = await verify_license(
            LookupRequest(
                license_number=lic["license_number"],
                state=state,
                credential_type=lic["credential_type"],
                last_name=lic.get("last_name"),
                first_name=lic.get("first_name"),
            )
        )

        if result.success:
            await self.db.record_verification(
                lic["id"],
                "manual",
                map_verification_result(result),
                status_found=result.status.value,
                expiration_found=result.expiration_date,
                unencumbered=result.unencumbered,
                raw_response=result.to_dict(),
                notes=f"Requested by {interaction.user}",
            )
            await self.db.update_license(lic["id"], **license_updates(result, state))
            logger.info(
                f"{state}: {lic['id']} verified manually -> {map_license_status(result.status)}"
            )
        else:
            logger.info(f"{state}: manual verify of {lic['id']} failed: {describe_failure(result)}")

        await interaction.followup.send(embed=result_embed(result, state), ephemeral=True)

    @app_commands.command(
        name="coverage",
        description="States with automated board lookups",
    )
    async def coverage(self, interaction: discord.Interaction) -> None:
        embed = discord.Embed(
            title="\U0001f5fa️  Automated Lookup Coverage",
            color=0x3498DB,
        )
        for region, states in get_states_by_region().items():
            embed.add_field(name=region, value=", ".join(states), inline=False)
        embed.set_footer(text="Other states are queued for manual verification")
        await interaction.response.send_message(embed=embed, ephemeral=True)


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(VerifyCog(bot, bot._db))
