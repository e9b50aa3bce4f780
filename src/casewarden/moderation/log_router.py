"""
Log router: decides whether and where a completed action is announced.

A notification is sent only when the guild has a log channel configured and
the action's category bit is set in its ``log_types`` mask. Delivery
problems are logged for operators and never reach the invoking user, since
the action itself already succeeded.
"""

from __future__ import annotations

from casewarden.datatypes.log_datatypes import LogCategory, LogContext, is_category_active
from casewarden.moderation.errors import DeliveryFailure
from casewarden.moderation.platform import ModerationPlatform
from casewarden.services.guild_settings_service import GuildSettingsService
from casewarden.ui.log_embed import build_log_embed
from casewarden.util.logger import get_logger

logger = get_logger("log_router")


class LogRouter:
    def __init__(self, settings_service: GuildSettingsService, platform: ModerationPlatform) -> None:
        self.settings_service = settings_service
        self.platform = platform

    async def route(self, category: LogCategory, context: LogContext) -> bool:
        """Deliver zero or one notification. Returns True if one was sent."""
        try:
            settings = await self.settings_service.get_settings(context.guild_id)
        except Exception:
            logger.exception("[LOG ROUTER] Could not read settings of guild %s", context.guild_id)
            return False

        if settings is None or settings.default_log_channel is None:
            logger.debug("[LOG ROUTER] Guild %s has no log channel, skipping %s", context.guild_id, category.key)
            return False
        if not is_category_active(settings.log_types, category):
            logger.debug("[LOG ROUTER] Category %s disabled in guild %s", category.key, context.guild_id)
            return False

        try:
            embed = build_log_embed(category, context, settings.lang)
            await self.platform.send_embed(settings.default_log_channel, embed)
        except Exception as exc:
            failure = DeliveryFailure(
                f"could not post {category.key} log to channel {settings.default_log_channel} "
                f"in guild {context.guild_id}: {exc!r}"
            )
            logger.error("[LOG ROUTER] %s", failure)
            return False

        logger.debug("[LOG ROUTER] Posted %s log in guild %s", category.key, context.guild_id)
        return True
