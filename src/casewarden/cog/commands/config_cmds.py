"""
Config cog: /config opens the interactive settings menu for the server.
"""

import discord
from discord.ext import commands

from casewarden.cog.commands.command_helpers import require_guild
from casewarden.configuration.app_configuration import app_config
from casewarden.datatypes.discord_datatypes import GuildID
from casewarden.localization.translator import translator
from casewarden.moderation.moderation_engine import ModerationEngine
from casewarden.services.guild_settings_service import GuildSettingsService
from casewarden.ui.config_ui import ConfigView, build_config_embed
from casewarden.util.logger import get_logger

logger = get_logger("config_cog")


class ConfigCog(commands.Cog):
    """Per-guild configuration commands."""

    def __init__(self, bot: discord.Bot, settings_service: GuildSettingsService) -> None:
        self.bot = bot
        self.settings_service = settings_service
        logger.info("[CONFIG COG] Config cog loaded")

    @commands.slash_command(name="config", description="View and change this server's moderation settings.")
    @discord.default_permissions(manage_guild=True)
    async def config(self, ctx: discord.ApplicationContext) -> None:
        if not await require_guild(ctx):
            return
        await ctx.defer(ephemeral=True)

        try:
            settings = await self.settings_service.get_settings(GuildID(ctx.guild.id))
        except Exception:
            logger.exception("[CONFIG COG] Failed to load settings for guild %s", ctx.guild.id)
            await ctx.send_followup(translator.get("errors.generic"), ephemeral=True)
            return

        if settings is None:
            await ctx.send_followup(translator.get("config.no_settings"), ephemeral=True)
            return

        view = ConfigView(
            self.settings_service,
            settings,
            ctx.author.id,
            timeout_seconds=app_config.interaction_timeout,
        )
        message = await ctx.send_followup(embed=build_config_embed(settings, settings.lang), view=view, ephemeral=True)
        view.message = message


def setup(bot: discord.Bot, engine: ModerationEngine) -> None:
    bot.add_cog(ConfigCog(bot, engine.settings_service))
