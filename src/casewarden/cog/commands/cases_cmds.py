"""
Cases cog: /cases view and /cases remove.

/cases view lists a guild's cases with optional filters, ten per page.
/cases remove takes up to ten comma separated case ids, reverses what each
case still enforces and deletes it, then reports the outcome per id.
"""

from typing import List

import discord
from discord import Option
from discord.ext import commands

from casewarden.cog.commands.command_helpers import guild_lang, require_guild, run_for_user
from casewarden.configuration.app_configuration import app_config
from casewarden.datatypes.case_datatypes import CaseFilter, CaseType
from casewarden.datatypes.discord_datatypes import GuildID, UserID
from casewarden.localization.translator import translator
from casewarden.moderation.case_removal import RemovalReport, RemovalStatus, parse_case_ids
from casewarden.moderation.moderation_engine import ModerationEngine
from casewarden.ui.case_views import CasePaginatorView, build_cases_embed
from casewarden.util.logger import get_logger

logger = get_logger("cases_cog")

CASE_TYPE_CHOICES = [case_type.value for case_type in CaseType]


def format_removal_report(report: RemovalReport, lang: str) -> str:
    """One line per requested id, in request order."""
    keys = {
        RemovalStatus.REMOVED: "cases.removed",
        RemovalStatus.NOT_FOUND: "cases.not_found",
        RemovalStatus.REVERSE_FAILED: "cases.reverse_failed",
    }
    lines: List[str] = [translator.get(keys[result.status], lang, case_id=result.case_id) for result in report.results]
    return "\n".join(lines)


class CasesCog(commands.Cog):
    """Viewing and removing moderation cases."""

    cases = discord.SlashCommandGroup(
        "cases", "View or remove moderation cases.",
        default_member_permissions=discord.Permissions(moderate_members=True),
    )

    def __init__(self, bot: discord.Bot, engine: ModerationEngine) -> None:
        self.bot = bot
        self.engine = engine
        logger.info("[CASES COG] Cases cog loaded")

    @cases.command(name="view", description="List the cases of this server.")
    async def view(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "Only cases of this user.", required=False, default=None),  # type: ignore
        case_id: Option(int, "Show one case by id.", min_value=1, required=False, default=None),  # type: ignore
        moderator: Option(discord.User, "Only cases issued by this moderator.", required=False, default=None),  # type: ignore
        case_type: Option(str, "Only cases of this type.", choices=CASE_TYPE_CHOICES, required=False, default=None),  # type: ignore
    ) -> None:
        if not await require_guild(ctx):
            return
        await ctx.defer(ephemeral=True)
        lang = await guild_lang(self.engine, ctx.guild.id)

        case_filter = CaseFilter(
            user_id=UserID(user.id) if user is not None else None,
            case_id=case_id,
            moderator_id=UserID(moderator.id) if moderator is not None else None,
            case_type=CaseType(case_type) if case_type is not None else None,
        )
        found = await run_for_user(ctx, lang, lambda: self.engine.list_cases(GuildID(ctx.guild.id), case_filter))
        if found is None:
            return

        view = CasePaginatorView(found, ctx.author.id, lang, timeout_seconds=app_config.interaction_timeout)
        message = await ctx.send_followup(embed=build_cases_embed(found, 0, lang), view=view, ephemeral=True)
        view.message = message

    @cases.command(name="remove", description="Remove up to ten cases, reversing bans and mutes.")
    async def remove(
        self,
        ctx: discord.ApplicationContext,
        case_ids: Option(str, "Comma separated case ids, for example 3,7,12.", required=True),  # type: ignore
    ) -> None:
        if not await require_guild(ctx):
            return
        await ctx.defer(ephemeral=True)
        lang = await guild_lang(self.engine, ctx.guild.id)

        async def remove_parsed() -> RemovalReport:
            return await self.engine.remove_cases(
                GuildID(ctx.guild.id),
                UserID(ctx.author.id),
                ctx.author.name,
                parse_case_ids(case_ids),
            )

        report = await run_for_user(ctx, lang, remove_parsed)
        if report is not None:
            await ctx.send_followup(format_removal_report(report, lang), ephemeral=True)


def setup(bot: discord.Bot, engine: ModerationEngine) -> None:
    bot.add_cog(CasesCog(bot, engine))
