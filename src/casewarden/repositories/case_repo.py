"""
Persistent storage for moderation cases.

Timestamps are stored as INTEGER unix seconds (UTC). ``case_id`` is a
guild-scoped sequence kept in ``case_counters``; the counter only ever moves
forward so a deleted case's number is never handed out again.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import aiosqlite

from casewarden.datatypes.case_datatypes import (
    Case,
    CaseFilter,
    CaseType,
    from_timestamp,
)
from casewarden.datatypes.discord_datatypes import GuildID, UserID
from casewarden.util.logger import get_logger

logger = get_logger("case_repo")

_COLUMNS = "id, guild_id, user_id, moderator_id, case_id, case_type, reason, created_at, end_date, points"


def _row_to_case(row: aiosqlite.Row) -> Case:
    return Case(
        id=row["id"],
        guild_id=GuildID(row["guild_id"]),
        user_id=UserID(row["user_id"]),
        moderator_id=UserID(row["moderator_id"]),
        case_id=row["case_id"],
        case_type=CaseType(row["case_type"]),
        reason=row["reason"],
        created_at=from_timestamp(row["created_at"]),
        end_date=from_timestamp(row["end_date"]) if row["end_date"] is not None else None,
        points=row["points"],
    )


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


class CaseRepo:
    """Low-level CRUD for the ``cases`` and ``case_counters`` tables."""

    # ------------------------------------------------------------------
    # Writes (call inside a transaction)
    # ------------------------------------------------------------------

    @staticmethod
    async def next_case_id(conn: aiosqlite.Connection, guild_id: GuildID) -> int:
        """Advance the guild's counter and return the new value.

        The first call for a guild seeds the counter from the highest case id
        already stored, so existing data keeps its numbering.
        """
        gid = guild_id.to_int()
        await conn.execute(
            """
            INSERT INTO case_counters (guild_id, last_case_id)
            SELECT ?, COALESCE(MAX(case_id), 0) FROM cases WHERE guild_id = ?
            ON CONFLICT(guild_id) DO NOTHING
            """,
            (gid, gid),
        )
        await conn.execute(
            "UPDATE case_counters SET last_case_id = last_case_id + 1 WHERE guild_id = ?",
            (gid,),
        )
        async with conn.execute(
            "SELECT last_case_id FROM case_counters WHERE guild_id = ?", (gid,)
        ) as cursor:
            row = await cursor.fetchone()
        return int(row[0])

    @staticmethod
    async def insert(
        conn: aiosqlite.Connection,
        guild_id: GuildID,
        user_id: UserID,
        moderator_id: UserID,
        case_id: int,
        case_type: CaseType,
        reason: Optional[str],
        created_at: int,
        end_date: Optional[int],
        points: Optional[int],
    ) -> int:
        """Insert a case row and return its internal row id."""
        cursor = await conn.execute(
            """
            INSERT INTO cases (guild_id, user_id, moderator_id, case_id, case_type,
                               reason, created_at, end_date, points)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                guild_id.to_int(),
                user_id.to_int(),
                moderator_id.to_int(),
                case_id,
                case_type.value,
                reason,
                created_at,
                end_date,
                points,
            ),
        )
        return int(cursor.lastrowid)

    @staticmethod
    async def delete_many(
        conn: aiosqlite.Connection, guild_id: GuildID, case_ids: Sequence[int]
    ) -> List[int]:
        """Delete the given case ids of one guild in a single statement.

        Returns the case ids this statement actually removed.
        """
        if not case_ids:
            return []
        async with conn.execute(
            f"DELETE FROM cases WHERE guild_id = ? AND case_id IN ({_placeholders(len(case_ids))}) "
            "RETURNING case_id",
            (guild_id.to_int(), *case_ids),
        ) as cursor:
            rows = await cursor.fetchall()
        return [int(row[0]) for row in rows]

    @staticmethod
    async def delete_by_row_id(conn: aiosqlite.Connection, row_id: int) -> bool:
        """Delete one row by internal id. Returns True if this call removed it."""
        cursor = await conn.execute("DELETE FROM cases WHERE id = ?", (row_id,))
        return cursor.rowcount > 0

    @staticmethod
    async def close_open_mutes(
        conn: aiosqlite.Connection, guild_id: GuildID, user_id: UserID, now: int
    ) -> int:
        """End every running mute of a user at ``now``.

        ``end_date`` must stay after ``created_at``, so a mute lifted in the
        second it started keeps a one second window; ``closed_at`` marks it
        as no longer active regardless.
        """
        cursor = await conn.execute(
            """
            UPDATE cases SET end_date = MAX(?, created_at + 1), closed_at = ?
            WHERE guild_id = ? AND user_id = ? AND case_type = ?
              AND end_date > ? AND closed_at IS NULL
            """,
            (now, now, guild_id.to_int(), user_id.to_int(), CaseType.MUTE.value, now),
        )
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def get(
        conn: aiosqlite.Connection, guild_id: GuildID, case_id: int
    ) -> Case | None:
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM cases WHERE guild_id = ? AND case_id = ?",
            (guild_id.to_int(), case_id),
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_case(row) if row is not None else None

    @staticmethod
    async def get_many(
        conn: aiosqlite.Connection, guild_id: GuildID, case_ids: Sequence[int]
    ) -> List[Case]:
        if not case_ids:
            return []
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM cases WHERE guild_id = ? "
            f"AND case_id IN ({_placeholders(len(case_ids))}) ORDER BY case_id",
            (guild_id.to_int(), *case_ids),
        ) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_case(row) for row in rows]

    @staticmethod
    async def find(
        conn: aiosqlite.Connection, guild_id: GuildID, case_filter: CaseFilter
    ) -> List[Case]:
        """Return the guild's cases matching every set filter, ordered by case id."""
        clauses = ["guild_id = ?"]
        params: list = [guild_id.to_int()]
        if case_filter.user_id is not None:
            clauses.append("user_id = ?")
            params.append(case_filter.user_id.to_int())
        if case_filter.case_id is not None:
            clauses.append("case_id = ?")
            params.append(case_filter.case_id)
        if case_filter.moderator_id is not None:
            clauses.append("moderator_id = ?")
            params.append(case_filter.moderator_id.to_int())
        if case_filter.case_type is not None:
            clauses.append("case_type = ?")
            params.append(case_filter.case_type.value)

        async with conn.execute(
            f"SELECT {_COLUMNS} FROM cases WHERE {' AND '.join(clauses)} ORDER BY case_id",
            params,
        ) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_case(row) for row in rows]

    @staticmethod
    async def find_active_mute(
        conn: aiosqlite.Connection, guild_id: GuildID, user_id: UserID, now: int
    ) -> Case | None:
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM cases "
            "WHERE guild_id = ? AND user_id = ? AND case_type = ? AND end_date > ? AND closed_at IS NULL "
            "ORDER BY case_id DESC LIMIT 1",
            (guild_id.to_int(), user_id.to_int(), CaseType.MUTE.value, now),
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_case(row) if row is not None else None

    @staticmethod
    async def get_expired(
        conn: aiosqlite.Connection, case_type: CaseType, now: int
    ) -> List[Case]:
        """Return every case of ``case_type`` with ``end_date <= now``, all guilds."""
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM cases "
            "WHERE case_type = ? AND end_date IS NOT NULL AND end_date <= ? "
            "ORDER BY end_date, id",
            (case_type.value, now),
        ) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_case(row) for row in rows]

    @staticmethod
    async def total_points(
        conn: aiosqlite.Connection, guild_id: GuildID, user_id: UserID
    ) -> int:
        async with conn.execute(
            "SELECT COALESCE(SUM(COALESCE(points, 1)), 0) FROM cases "
            "WHERE guild_id = ? AND user_id = ? AND case_type = ?",
            (guild_id.to_int(), user_id.to_int(), CaseType.WARN.value),
        ) as cursor:
            row = await cursor.fetchone()
        return int(row[0])

    @staticmethod
    async def latest_warn(
        conn: aiosqlite.Connection, guild_id: GuildID, user_id: UserID
    ) -> Case | None:
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM cases "
            "WHERE guild_id = ? AND user_id = ? AND case_type = ? "
            "ORDER BY case_id DESC LIMIT 1",
            (guild_id.to_int(), user_id.to_int(), CaseType.WARN.value),
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_case(row) if row is not None else None


# Module-level singleton
case_repo = CaseRepo()
