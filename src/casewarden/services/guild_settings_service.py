"""
GuildSettingsService: the only writer of the ``guild_settings`` table.

Rows are created with defaults when the bot joins a guild and during startup
reconciliation; they are updated one field at a time from the configuration
menu and are kept when the bot leaves a guild.

All raw DB access is delegated to the repository. The service never does SQL
itself.
"""

from __future__ import annotations

import asyncio
from typing import Dict, Iterable, Optional

from casewarden.database.db_connection import ConnectionManager, db_connection
from casewarden.datatypes.discord_datatypes import ChannelID, GuildID
from casewarden.datatypes.guild_settings import SUPPORTED_LANGUAGES, GuildDefaults, GuildSettings
from casewarden.datatypes.log_datatypes import ALL_LOG_CATEGORIES_MASK
from casewarden.repositories.guild_settings_repo import GuildSettingsRepository
from casewarden.util.logger import get_logger

logger = get_logger("guild_settings_service")


class GuildSettingsService:
    """
    Reads and single-field updates of per-guild settings.

    Per-guild locks serialise updates of one guild while different guilds
    proceed concurrently.
    """

    def __init__(self, connection: ConnectionManager = db_connection) -> None:
        self._db = connection
        self._repo = GuildSettingsRepository()
        self._per_guild_locks: Dict[int, asyncio.Lock] = {}

    def _lock_for(self, guild_id: GuildID) -> asyncio.Lock:
        gid = guild_id.to_int()
        if gid not in self._per_guild_locks:
            self._per_guild_locks[gid] = asyncio.Lock()
        return self._per_guild_locks[gid]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_settings(self, guild_id: GuildID) -> GuildSettings | None:
        """Return the guild's settings, or None if no row exists."""
        async with self._db.read() as conn:
            return await self._repo.get(conn, guild_id)

    async def get_all(self) -> Dict[int, GuildSettings]:
        async with self._db.read() as conn:
            return await self._repo.get_all(conn)

    # ------------------------------------------------------------------
    # Upserts
    # ------------------------------------------------------------------

    async def upsert_settings(self, guild_id: GuildID, defaults: Optional[GuildDefaults] = None) -> bool:
        """Create the guild's row with defaults if it does not exist yet.

        Returns True if a row was created.
        """
        defaults = defaults or GuildDefaults()
        async with self._lock_for(guild_id):
            async with self._db.transaction() as conn:
                created = await self._repo.insert_if_absent(conn, guild_id, defaults)
        if created:
            logger.info("[GUILD SETTINGS SERVICE] Created settings for guild %s", guild_id)
        return created

    async def upsert_many(self, guild_ids: Iterable[GuildID], defaults: Optional[GuildDefaults] = None) -> None:
        """Startup reconciliation: ensure a row exists for every listed guild."""
        defaults = defaults or GuildDefaults()
        guild_ids = list(guild_ids)
        async with self._db.transaction() as conn:
            await self._repo.insert_many_if_absent(conn, guild_ids, defaults)
        logger.info("[GUILD SETTINGS SERVICE] Reconciled settings for %d guild(s)", len(guild_ids))

    # ------------------------------------------------------------------
    # Single-field updates
    # ------------------------------------------------------------------

    async def update_log_channel(self, guild_id: GuildID, channel_id: Optional[ChannelID]) -> bool:
        async with self._lock_for(guild_id):
            async with self._db.transaction() as conn:
                return await self._repo.update_log_channel(conn, guild_id, channel_id)

    async def update_log_types(self, guild_id: GuildID, log_types: int) -> bool:
        """Store a new category mask. Bits outside the twelve categories are rejected."""
        if log_types < 0 or log_types & ~ALL_LOG_CATEGORIES_MASK:
            raise ValueError(f"log_types {log_types} has bits outside the known categories")
        async with self._lock_for(guild_id):
            async with self._db.transaction() as conn:
                return await self._repo.update_log_types(conn, guild_id, log_types)

    async def update_warn_expire_time(self, guild_id: GuildID, days: int) -> bool:
        if days <= 0:
            raise ValueError(f"warn_expire_time must be positive, got {days}")
        async with self._lock_for(guild_id):
            async with self._db.transaction() as conn:
                return await self._repo.update_warn_expire_time(conn, guild_id, days)

    async def update_lang(self, guild_id: GuildID, lang: str) -> bool:
        if lang not in SUPPORTED_LANGUAGES:
            raise ValueError(f"unsupported language {lang!r}")
        async with self._lock_for(guild_id):
            async with self._db.transaction() as conn:
                return await self._repo.update_lang(conn, guild_id, lang)


# Shared singleton bound to the application connection
guild_settings_service = GuildSettingsService()
