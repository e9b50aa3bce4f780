"""Background expiry sweeper cog.

Starts the engine's ban and warning expiry loops once the bot is ready and
stops them when the cog is unloaded. Both loops poll the database, so
expirations that passed while the bot was offline are handled on the first
sweep after startup.
"""

from __future__ import annotations

import discord
from discord.ext import commands

from casewarden.moderation.expiry_sweeper import ExpirySweeper
from casewarden.moderation.moderation_engine import ModerationEngine
from casewarden.util.logger import get_logger

logger = get_logger("sweeper_cog")


class SweeperCog(commands.Cog):
    """Owns the lifetime of the expiry sweeper loops."""

    def __init__(self, bot: discord.Bot, sweeper: ExpirySweeper) -> None:
        self.bot = bot
        self.sweeper = sweeper

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        # on_ready fires again after reconnects
        if self.sweeper.is_running:
            return
        self.sweeper.start()
        logger.info(
            "[EXPIRY SWEEPER] Started (bans every %.1fs, warnings every %.1fs)",
            self.sweeper.ban_interval, self.sweeper.warn_interval,
        )

    def cog_unload(self) -> None:
        self.sweeper.request_stop()
        logger.info("[EXPIRY SWEEPER] Stop requested")


def setup(bot: discord.Bot, engine: ModerationEngine) -> None:
    bot.add_cog(SweeperCog(bot, engine.sweeper))
