"""
Moderation cog: slash commands for member and channel actions.

Every command defers ephemerally, builds an ``ActionRequest`` and hands it to
the moderation engine, which runs the policy, the platform call and the case
write, answers the user, then sends the log notification. Errors come back
as ephemeral replies.

Commands
- /ban /kick /mute /unmute /warn /unwarn
- /channel lock, /channel unlock
- /clear messages, /clear channel
"""

from typing import Any, Optional

import discord
from discord import Option
from discord.ext import commands

from casewarden.cog.commands.command_helpers import build_request, guild_lang, require_guild, run_for_user
from casewarden.datatypes.discord_datatypes import UserID
from casewarden.localization.translator import translator
from casewarden.moderation.action_executor import Confirmation
from casewarden.moderation.moderation_engine import ModerationEngine
from casewarden.moderation.policy import ActionKind
from casewarden.util.logger import get_logger

logger = get_logger("moderation_cog")


class ModerationCog(commands.Cog):
    """Member and channel moderation commands."""

    channel = discord.SlashCommandGroup(
        "channel", "Lock or unlock channels.",
        default_member_permissions=discord.Permissions(manage_channels=True),
    )
    clear = discord.SlashCommandGroup(
        "clear", "Delete messages.",
        default_member_permissions=discord.Permissions(manage_messages=True),
    )

    def __init__(self, bot: discord.Bot, engine: ModerationEngine) -> None:
        self.bot = bot
        self.engine = engine
        logger.info("[MODERATION COG] Moderation cog loaded")

    async def _run(
        self,
        ctx: discord.ApplicationContext,
        kind: ActionKind,
        target: Optional[discord.Member] = None,
        channel: Any = None,
        **params: Any,
    ) -> None:
        if not await require_guild(ctx):
            return
        await ctx.defer(ephemeral=True)
        lang = await guild_lang(self.engine, ctx.guild.id)

        if target is not None and not isinstance(target, discord.Member):
            await ctx.send_followup(translator.get("errors.member_not_found", lang), ephemeral=True)
            return

        request = build_request(ctx, lang, target=target, channel=channel, **params)

        async def reply(confirmation: Confirmation) -> None:
            await ctx.send_followup(confirmation.message, ephemeral=True)

        await run_for_user(ctx, lang, lambda: self.engine.execute_action(kind, request, on_confirmed=reply))

    # ------------------------------------------------------------------
    # Member actions
    # ------------------------------------------------------------------

    @commands.slash_command(name="ban", description="Ban a user, optionally for a limited time.")
    @discord.default_permissions(ban_members=True)
    async def ban(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user to ban.", required=True),  # type: ignore
        reason: Option(str, "Reason for the ban.", required=False, default=None),  # type: ignore
        duration: Option(str, "Ban length such as 7d or 12h. Permanent when empty.", required=False, default=None),  # type: ignore
        delete_messages: Option(int, "Days of messages to delete (0-7).", min_value=0, max_value=7, default=0),  # type: ignore
    ) -> None:
        await self._run(
            ctx, ActionKind.BAN, target=user,
            reason=reason, duration=duration, delete_message_days=delete_messages,
        )

    @commands.slash_command(name="kick", description="Kick a user from the server.")
    @discord.default_permissions(kick_members=True)
    async def kick(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user to kick.", required=True),  # type: ignore
        reason: Option(str, "Reason for the kick.", required=False, default=None),  # type: ignore
    ) -> None:
        await self._run(ctx, ActionKind.KICK, target=user, reason=reason)

    @commands.slash_command(name="mute", description="Mute a user for a limited time (up to 28 days).")
    @discord.default_permissions(moderate_members=True)
    async def mute(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user to mute.", required=True),  # type: ignore
        duration: Option(str, "Mute length such as 10m, 2h or 7d.", required=True),  # type: ignore
        reason: Option(str, "Reason for the mute.", required=False, default=None),  # type: ignore
    ) -> None:
        await self._run(ctx, ActionKind.MUTE, target=user, duration=duration, reason=reason)

    @commands.slash_command(name="unmute", description="Lift a user's mute.")
    @discord.default_permissions(moderate_members=True)
    async def unmute(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user to unmute.", required=True),  # type: ignore
        reason: Option(str, "Reason for lifting the mute.", required=False, default=None),  # type: ignore
    ) -> None:
        await self._run(ctx, ActionKind.UNMUTE, target=user, reason=reason)

    @commands.slash_command(name="warn", description="Warn a user.")
    @discord.default_permissions(moderate_members=True)
    async def warn(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user to warn.", required=True),  # type: ignore
        reason: Option(str, "Reason for the warning.", required=False, default=None),  # type: ignore
        points: Option(int, "Weight of the warning (1-100).", min_value=1, max_value=100, default=1),  # type: ignore
        expire: Option(bool, "Remove the warning after the server's expiry time.", default=False),  # type: ignore
    ) -> None:
        await self._run(ctx, ActionKind.WARN, target=user, reason=reason, points=points, expire=expire)

    @commands.slash_command(name="unwarn", description="Remove a user's latest warning, or a specific one.")
    @discord.default_permissions(moderate_members=True)
    async def unwarn(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user whose warning to remove.", required=True),  # type: ignore
        case_id: Option(int, "Case id of the warning. Latest when empty.", min_value=1, required=False, default=None),  # type: ignore
        reason: Option(str, "Reason for removing the warning.", required=False, default=None),  # type: ignore
    ) -> None:
        await self._run(ctx, ActionKind.UNWARN, target=user, case_id=case_id, reason=reason)

    # ------------------------------------------------------------------
    # Channel actions
    # ------------------------------------------------------------------

    @channel.command(name="lock", description="Stop @everyone from sending messages here.")
    async def channel_lock(
        self,
        ctx: discord.ApplicationContext,
        reason: Option(str, "Reason for the lock.", required=False, default=None),  # type: ignore
    ) -> None:
        await self._run(ctx, ActionKind.LOCK, channel=ctx.channel, reason=reason)

    @channel.command(name="unlock", description="Let @everyone send messages here again.")
    async def channel_unlock(
        self,
        ctx: discord.ApplicationContext,
        reason: Option(str, "Reason for the unlock.", required=False, default=None),  # type: ignore
    ) -> None:
        await self._run(ctx, ActionKind.UNLOCK, channel=ctx.channel, reason=reason)

    @clear.command(name="messages", description="Delete recent messages in this channel.")
    async def clear_messages(
        self,
        ctx: discord.ApplicationContext,
        amount: Option(int, "How many messages to scan (1-100).", min_value=1, max_value=100, required=True),  # type: ignore
        user: Option(discord.User, "Only delete messages from this user.", required=False, default=None),  # type: ignore
    ) -> None:
        await self._run(
            ctx, ActionKind.PURGE, channel=ctx.channel,
            amount=amount, author_filter=UserID(user.id) if user is not None else None,
        )

    @clear.command(name="channel", description="Recreate this channel, removing every message.")
    async def clear_channel(self, ctx: discord.ApplicationContext) -> None:
        await self._run(ctx, ActionKind.CLEAR_CHANNEL, channel=ctx.channel)


def setup(bot: discord.Bot, engine: ModerationEngine) -> None:
    bot.add_cog(ModerationCog(bot, engine))
