"""
Platform adapter: the Discord operations the moderation engine consumes.

The engine only talks to ``ModerationPlatform``; ``DiscordPlatform`` is the
py-cord implementation. Reversals (unban, removing a timeout) treat an
already-reversed state as success so that the sweeper and a moderator
removing the same case by hand never crash each other.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol

import discord

from casewarden.datatypes.discord_datatypes import ChannelID, GuildID, UserID
from casewarden.util.logger import get_logger

logger = get_logger("platform")


@dataclass(slots=True)
class PurgedMessage:
    author_name: str
    content: str


class ModerationPlatform(Protocol):
    """Mutations, reads and message delivery required by the engine."""

    @property
    def bot_user_id(self) -> UserID: ...

    @property
    def bot_user_name(self) -> str: ...

    async def ban(self, guild_id: GuildID, user_id: UserID, delete_message_days: int, reason: Optional[str]) -> None: ...

    async def unban(self, guild_id: GuildID, user_id: UserID, reason: Optional[str]) -> None: ...

    async def kick(self, guild_id: GuildID, user_id: UserID, reason: Optional[str]) -> None: ...

    async def timeout(self, guild_id: GuildID, user_id: UserID, until: datetime, reason: Optional[str]) -> None: ...

    async def remove_timeout(self, guild_id: GuildID, user_id: UserID, reason: Optional[str]) -> None: ...

    async def is_channel_locked(self, guild_id: GuildID, channel_id: ChannelID) -> bool: ...

    async def set_channel_lock(self, guild_id: GuildID, channel_id: ChannelID, locked: bool, reason: Optional[str]) -> None: ...

    async def purge_messages(
        self, guild_id: GuildID, channel_id: ChannelID, limit: int, author_id: Optional[UserID] = None
    ) -> List[PurgedMessage]: ...

    async def recreate_channel(self, guild_id: GuildID, channel_id: ChannelID, reason: Optional[str]) -> ChannelID: ...

    async def send_embed(self, channel_id: ChannelID, embed: discord.Embed) -> None: ...


class DiscordPlatform:
    """``ModerationPlatform`` backed by a connected ``discord.Bot``."""

    def __init__(self, bot: discord.Bot) -> None:
        self.bot = bot

    @property
    def bot_user_id(self) -> UserID:
        if self.bot.user is None:
            raise RuntimeError("bot user is not available before login")
        return UserID(self.bot.user.id)

    @property
    def bot_user_name(self) -> str:
        return self.bot.user.name if self.bot.user is not None else "bot"

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _guild(self, guild_id: GuildID) -> discord.Guild:
        guild = self.bot.get_guild(guild_id.to_int())
        if guild is None:
            guild = await self.bot.fetch_guild(guild_id.to_int())
        return guild

    async def _member(self, guild: discord.Guild, user_id: UserID) -> discord.Member:
        member = guild.get_member(user_id.to_int())
        if member is None:
            member = await guild.fetch_member(user_id.to_int())
        return member

    async def _channel(self, channel_id: ChannelID):
        channel = self.bot.get_channel(channel_id.to_int())
        if channel is None:
            channel = await self.bot.fetch_channel(channel_id.to_int())
        return channel

    # ------------------------------------------------------------------
    # Member mutations
    # ------------------------------------------------------------------

    async def ban(self, guild_id: GuildID, user_id: UserID, delete_message_days: int, reason: Optional[str]) -> None:
        guild = await self._guild(guild_id)
        await guild.ban(
            discord.Object(id=user_id.to_int()),
            reason=reason,
            delete_message_seconds=delete_message_days * 86400,
        )

    async def unban(self, guild_id: GuildID, user_id: UserID, reason: Optional[str]) -> None:
        guild = await self._guild(guild_id)
        try:
            await guild.unban(discord.Object(id=user_id.to_int()), reason=reason)
        except discord.NotFound:
            logger.warning("[PLATFORM] User %s is not banned in guild %s, treating unban as done", user_id, guild_id)

    async def kick(self, guild_id: GuildID, user_id: UserID, reason: Optional[str]) -> None:
        guild = await self._guild(guild_id)
        await guild.kick(discord.Object(id=user_id.to_int()), reason=reason)

    async def timeout(self, guild_id: GuildID, user_id: UserID, until: datetime, reason: Optional[str]) -> None:
        guild = await self._guild(guild_id)
        member = await self._member(guild, user_id)
        await member.timeout(until, reason=reason)

    async def remove_timeout(self, guild_id: GuildID, user_id: UserID, reason: Optional[str]) -> None:
        guild = await self._guild(guild_id)
        try:
            member = await self._member(guild, user_id)
        except discord.NotFound:
            logger.warning("[PLATFORM] User %s left guild %s, nothing to unmute", user_id, guild_id)
            return
        await member.remove_timeout(reason=reason)

    # ------------------------------------------------------------------
    # Channel mutations
    # ------------------------------------------------------------------

    async def is_channel_locked(self, guild_id: GuildID, channel_id: ChannelID) -> bool:
        guild = await self._guild(guild_id)
        channel = await self._channel(channel_id)
        overwrite = channel.overwrites_for(guild.default_role)
        return overwrite.send_messages is False

    async def set_channel_lock(self, guild_id: GuildID, channel_id: ChannelID, locked: bool, reason: Optional[str]) -> None:
        guild = await self._guild(guild_id)
        channel = await self._channel(channel_id)
        overwrite = channel.overwrites_for(guild.default_role)
        # None restores the inherited permission instead of forcing allow
        overwrite.send_messages = False if locked else None
        overwrite.send_messages_in_threads = False if locked else None
        await channel.set_permissions(guild.default_role, overwrite=overwrite, reason=reason)

    async def purge_messages(
        self, guild_id: GuildID, channel_id: ChannelID, limit: int, author_id: Optional[UserID] = None
    ) -> List[PurgedMessage]:
        channel = await self._channel(channel_id)

        def check(message: discord.Message) -> bool:
            return author_id is None or message.author.id == author_id.to_int()

        deleted = await channel.purge(limit=limit, check=check, bulk=True)
        # purge() returns newest first
        return [
            PurgedMessage(author_name=message.author.name, content=message.content)
            for message in reversed(deleted)
        ]

    async def recreate_channel(self, guild_id: GuildID, channel_id: ChannelID, reason: Optional[str]) -> ChannelID:
        channel = await self._channel(channel_id)
        clone = await channel.clone(reason=reason)
        await clone.edit(position=channel.position)
        await channel.delete(reason=reason)
        return ChannelID(clone.id)

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def send_embed(self, channel_id: ChannelID, embed: discord.Embed) -> None:
        channel = await self._channel(channel_id)
        await channel.send(embed=embed)
