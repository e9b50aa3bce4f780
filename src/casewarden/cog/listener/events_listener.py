"""Event listener Cog for CaseWarden.

Handles bot lifecycle events (on_ready, on_guild_join, on_guild_remove).
Every guild the bot is in gets a settings row with the configured defaults;
existing rows are never overwritten.
"""

import discord
from discord.ext import commands

from casewarden.configuration.app_configuration import app_config
from casewarden.datatypes.discord_datatypes import GuildID
from casewarden.datatypes.guild_settings import GuildDefaults
from casewarden.moderation.moderation_engine import ModerationEngine
from casewarden.services.guild_settings_service import GuildSettingsService
from casewarden.util.logger import get_logger

logger = get_logger("events_listener")


def defaults_from_config() -> GuildDefaults:
    return GuildDefaults(
        lang=app_config.default_lang,
        log_types=app_config.default_log_types,
        warn_expire_time=app_config.default_warn_expire_days,
    )


class EventsListenerCog(commands.Cog):
    """Handles Discord bot lifecycle events."""

    def __init__(self, bot: discord.Bot, settings_service: GuildSettingsService) -> None:
        self.bot = bot
        self.settings_service = settings_service
        logger.info("[EVENTS LISTENER] Events listener cog loaded")

    # ------------------------------------------------------------------
    # Lifecycle events
    # ------------------------------------------------------------------

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self) -> None:
        """Make sure every current guild has settings."""
        if not self.bot.user:
            logger.warning("[EVENTS LISTENER] Bot partially connected, user info not yet available.")
            return

        logger.info("Bot connected as %s (ID: %s)", self.bot.user, self.bot.user.id)

        guild_ids = [GuildID(guild.id) for guild in self.bot.guilds]
        try:
            await self.settings_service.upsert_many(guild_ids, defaults_from_config())
        except Exception:
            logger.exception("[EVENTS LISTENER] Failed to initialize settings for %d guilds", len(guild_ids))

    @commands.Cog.listener(name="on_guild_join")
    async def on_guild_join(self, guild: discord.Guild) -> None:
        """Create default settings for a newly joined guild."""
        logger.debug("[EVENTS LISTENER] Bot joined guild: %s (ID: %s)", guild.name, guild.id)
        try:
            created = await self.settings_service.upsert_settings(GuildID(guild.id), defaults_from_config())
        except Exception:
            logger.exception("[EVENTS LISTENER] Failed to initialize settings for guild %s", guild.id)
            return
        if created:
            logger.info("[EVENTS LISTENER] Initialized settings for guild '%s'", guild.name)
        else:
            logger.info("[EVENTS LISTENER] Guild '%s' already had settings, keeping them", guild.name)

    @commands.Cog.listener(name="on_guild_remove")
    async def on_guild_remove(self, guild: discord.Guild) -> None:
        """Settings and cases are kept in case the bot is invited back."""
        logger.info("[EVENTS LISTENER] Bot removed from guild: %s (ID: %s)", guild.name, guild.id)


def setup(bot: discord.Bot, engine: ModerationEngine) -> None:
    bot.add_cog(EventsListenerCog(bot, engine.settings_service))
