"""
Helpers shared by the slash command cogs.

Commands translate Discord objects into engine requests and translate engine
errors back into ephemeral replies: denials and usage errors are explained,
everything else gets the generic failure message and a log entry.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional, TypeVar

import discord

from casewarden.datatypes.discord_datatypes import ChannelID, GuildID, UserID
from casewarden.localization.translator import translator
from casewarden.moderation.action_executor import ActionRequest
from casewarden.moderation.errors import UserFacingError
from casewarden.moderation.moderation_engine import ModerationEngine
from casewarden.moderation.policy import GuildContext, MemberSnapshot
from casewarden.util.logger import get_logger

logger = get_logger("command_helpers")

T = TypeVar("T")


async def guild_lang(engine: ModerationEngine, guild_id: int) -> str:
    """Language configured for the guild, English when unknown."""
    try:
        settings = await engine.settings_service.get_settings(GuildID(guild_id))
    except Exception:
        logger.exception("[COMMANDS] Could not read settings of guild %s", guild_id)
        return "en"
    return settings.lang if settings is not None else "en"


def build_request(
    ctx: discord.ApplicationContext,
    lang: str,
    target: Optional[discord.Member] = None,
    channel: Optional[Any] = None,
    **params: Any,
) -> ActionRequest:
    """Snapshot the invoking member, the target and the guild for the engine."""
    guild = ctx.guild
    return ActionRequest(
        guild_id=GuildID(guild.id),
        guild=GuildContext(
            owner_id=UserID(guild.owner_id),
            bot_top_role_position=guild.me.top_role.position,
        ),
        actor=MemberSnapshot.from_member(ctx.author),
        actor_name=ctx.author.name,
        target=MemberSnapshot.from_member(target) if target is not None else None,
        channel_id=ChannelID(channel.id) if channel is not None else None,
        lang=lang,
        **params,
    )


async def run_for_user(
    ctx: discord.ApplicationContext,
    lang: str,
    action: Callable[[], Awaitable[T]],
) -> Optional[T]:
    """Await ``action`` and answer engine errors ephemerally.

    Returns the action's result, or None if an error was reported.
    """
    try:
        return await action()
    except UserFacingError as exc:
        await ctx.send_followup(translator.get(exc.translation_key, lang, **exc.params), ephemeral=True)
    except Exception:
        logger.exception("[COMMANDS] /%s failed in guild %s", ctx.command.qualified_name, ctx.guild_id)
        await ctx.send_followup(translator.get("errors.generic", lang), ephemeral=True)
    return None


async def require_guild(ctx: discord.ApplicationContext) -> bool:
    if ctx.guild is None:
        await ctx.respond(translator.get("errors.guild_only"), ephemeral=True)
        return False
    return True
