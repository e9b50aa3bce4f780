"""
Repository for the guild_settings table.

Handles only SQL; callers own the connection and the transaction boundary.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional

import aiosqlite

from casewarden.datatypes.discord_datatypes import ChannelID, GuildID
from casewarden.datatypes.guild_settings import GuildDefaults, GuildSettings
from casewarden.util.logger import get_logger

logger = get_logger("guild_settings_repo")

_COLUMNS = "guild_id, lang, default_log_channel, log_types, warn_expire_time"


def _row_to_settings(row: aiosqlite.Row) -> GuildSettings:
    return GuildSettings(
        guild_id=GuildID(row["guild_id"]),
        lang=row["lang"],
        default_log_channel=ChannelID(row["default_log_channel"]) if row["default_log_channel"] is not None else None,
        log_types=int(row["log_types"]),
        warn_expire_time=int(row["warn_expire_time"]),
    )


class GuildSettingsRepository:
    """CRUD for the guild_settings table only."""

    async def get(
        self, conn: aiosqlite.Connection, guild_id: GuildID
    ) -> GuildSettings | None:
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM guild_settings WHERE guild_id = ?",
            (guild_id.to_int(),),
        ) as cursor:
            row = await cursor.fetchone()

        if row is None:
            return None
        return _row_to_settings(row)

    async def get_all(
        self, conn: aiosqlite.Connection
    ) -> Dict[int, GuildSettings]:
        """Fetch every guild's settings keyed by guild_id int."""
        async with conn.execute(f"SELECT {_COLUMNS} FROM guild_settings") as cursor:
            rows = await cursor.fetchall()
        return {row["guild_id"]: _row_to_settings(row) for row in rows}

    async def insert_if_absent(
        self, conn: aiosqlite.Connection, guild_id: GuildID, defaults: GuildDefaults
    ) -> bool:
        """Insert a settings row with defaults. Existing rows are left untouched.

        Returns True if a row was created.
        """
        cursor = await conn.execute(
            """
            INSERT INTO guild_settings (guild_id, lang, log_types, warn_expire_time)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(guild_id) DO NOTHING
            """,
            (guild_id.to_int(), defaults.lang, defaults.log_types, defaults.warn_expire_time),
        )
        return cursor.rowcount > 0

    async def insert_many_if_absent(
        self, conn: aiosqlite.Connection, guild_ids: Iterable[GuildID], defaults: GuildDefaults
    ) -> None:
        await conn.executemany(
            """
            INSERT INTO guild_settings (guild_id, lang, log_types, warn_expire_time)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(guild_id) DO NOTHING
            """,
            [
                (guild_id.to_int(), defaults.lang, defaults.log_types, defaults.warn_expire_time)
                for guild_id in guild_ids
            ],
        )

    async def update_log_channel(
        self, conn: aiosqlite.Connection, guild_id: GuildID, channel_id: Optional[ChannelID]
    ) -> bool:
        cursor = await conn.execute(
            "UPDATE guild_settings SET default_log_channel = ? WHERE guild_id = ?",
            (channel_id.to_int() if channel_id is not None else None, guild_id.to_int()),
        )
        return cursor.rowcount > 0

    async def update_log_types(
        self, conn: aiosqlite.Connection, guild_id: GuildID, log_types: int
    ) -> bool:
        cursor = await conn.execute(
            "UPDATE guild_settings SET log_types = ? WHERE guild_id = ?",
            (log_types, guild_id.to_int()),
        )
        return cursor.rowcount > 0

    async def update_warn_expire_time(
        self, conn: aiosqlite.Connection, guild_id: GuildID, days: int
    ) -> bool:
        cursor = await conn.execute(
            "UPDATE guild_settings SET warn_expire_time = ? WHERE guild_id = ?",
            (days, guild_id.to_int()),
        )
        return cursor.rowcount > 0

    async def update_lang(
        self, conn: aiosqlite.Connection, guild_id: GuildID, lang: str
    ) -> bool:
        cursor = await conn.execute(
            "UPDATE guild_settings SET lang = ? WHERE guild_id = ?",
            (lang, guild_id.to_int()),
        )
        return cursor.rowcount > 0
