"""
Help cog: /help lists the slash commands the invoking member may use.

Group commands are expanded into their subcommands. A command whose default
member permissions the member lacks is left out; subcommands inherit the
permissions of their group.
"""

from typing import Iterable, List, Optional

import discord
from discord.ext import commands

from casewarden.cog.commands.command_helpers import guild_lang, require_guild
from casewarden.localization.translator import translator
from casewarden.moderation.moderation_engine import ModerationEngine
from casewarden.util.logger import get_logger

logger = get_logger("help_cog")


def _mention(qualified_name: str, command_id: Optional[int]) -> str:
    # Commands not yet synced have no id and cannot be mentioned
    if command_id is None:
        return f"`/{qualified_name}`"
    return f"</{qualified_name}:{command_id}>"


def _collect(
    command,
    permissions: discord.Permissions,
    inherited: Optional[discord.Permissions],
    root_id: Optional[int],
    lines: List[str],
) -> None:
    required = command.default_member_permissions or inherited
    if required is not None and not permissions.is_superset(required):
        return

    if root_id is None:
        root_id = command.id

    subcommands = getattr(command, "subcommands", None)
    if subcommands:
        for sub in sorted(subcommands, key=lambda c: c.name):
            _collect(sub, permissions, required, root_id, lines)
        return

    lines.append(f"{_mention(command.qualified_name, root_id)}: {command.description}")


def help_lines(application_commands: Iterable, permissions: discord.Permissions) -> List[str]:
    """One line per usable leaf command, sorted by name."""
    lines: List[str] = []
    for command in sorted(application_commands, key=lambda c: c.name):
        _collect(command, permissions, None, None, lines)
    return lines


class HelpCog(commands.Cog):
    """Command overview."""

    def __init__(self, bot: discord.Bot, engine: ModerationEngine) -> None:
        self.bot = bot
        self.engine = engine
        logger.info("[HELP COG] Help cog loaded")

    @commands.slash_command(name="help", description="List the commands you can use here.")
    async def help_command(self, ctx: discord.ApplicationContext) -> None:
        if not await require_guild(ctx):
            return
        lang = await guild_lang(self.engine, ctx.guild.id)

        lines = help_lines(self.bot.application_commands, ctx.author.guild_permissions)
        embed = discord.Embed(
            title=translator.get("help.title", lang),
            description="\n".join(lines) if lines else translator.get("help.empty", lang),
            color=discord.Color.blurple(),
        )
        await ctx.respond(embed=embed, ephemeral=True)


def setup(bot: discord.Bot, engine: ModerationEngine) -> None:
    bot.add_cog(HelpCog(bot, engine))
