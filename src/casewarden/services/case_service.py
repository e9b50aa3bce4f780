"""
CaseService: the only writer of the ``cases`` table.

Every read is a fresh query. Case creation runs the counter advance and the
insert in one serialised write transaction, which makes case id allocation
linearizable per guild: N concurrent creations yield exactly ``{1..N}``.

All raw SQL lives in ``casewarden.repositories.case_repo``.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence

from casewarden.database.db_connection import ConnectionManager, db_connection
from casewarden.datatypes.case_datatypes import (
    Case,
    CaseFilter,
    CaseType,
    to_timestamp,
    utcnow,
)
from casewarden.datatypes.discord_datatypes import GuildID, UserID
from casewarden.moderation.errors import UsageError
from casewarden.repositories.case_repo import case_repo
from casewarden.util.logger import get_logger

logger = get_logger("case_service")


class CaseService:
    """Case allocation, lookup and deletion on top of one connection manager."""

    def __init__(self, connection: ConnectionManager = db_connection) -> None:
        self._db = connection

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_case(
        self,
        guild_id: GuildID,
        user_id: UserID,
        moderator_id: UserID,
        case_type: CaseType,
        reason: Optional[str] = None,
        end_date: Optional[datetime] = None,
        points: Optional[int] = None,
        created_at: Optional[datetime] = None,
    ) -> Case:
        """Allocate the next case id of the guild and insert the case.

        The ``Case`` is validated before anything is written, so an invalid
        combination (a mute without end date, an end date in the past)
        raises ``ValueError`` without consuming a case id.
        """
        created_at = created_at or utcnow()
        if case_type is CaseType.WARN and points is None:
            points = 1

        # Validates the invariants; case_id is a placeholder until allocation.
        Case(
            id=None,
            guild_id=guild_id,
            user_id=user_id,
            moderator_id=moderator_id,
            case_id=1,
            case_type=case_type,
            reason=reason,
            created_at=created_at,
            end_date=end_date,
            points=points,
        )

        async with self._db.transaction() as conn:
            case_id = await case_repo.next_case_id(conn, guild_id)
            row_id = await case_repo.insert(
                conn,
                guild_id,
                user_id,
                moderator_id,
                case_id,
                case_type,
                reason,
                to_timestamp(created_at),
                to_timestamp(end_date) if end_date is not None else None,
                points,
            )

        logger.debug(
            "[CASE STORE] Created %s case #%d in guild %s for user %s",
            case_type, case_id, guild_id, user_id,
        )
        return Case(
            id=row_id,
            guild_id=guild_id,
            user_id=user_id,
            moderator_id=moderator_id,
            case_id=case_id,
            case_type=case_type,
            reason=reason,
            created_at=created_at,
            end_date=end_date,
            points=points,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_case(self, guild_id: GuildID, case_id: int) -> Case | None:
        async with self._db.read() as conn:
            return await case_repo.get(conn, guild_id, case_id)

    async def get_cases(self, guild_id: GuildID, case_ids: Sequence[int]) -> List[Case]:
        async with self._db.read() as conn:
            return await case_repo.get_many(conn, guild_id, list(case_ids))

    async def list_cases(self, guild_id: GuildID, case_filter: Optional[CaseFilter] = None) -> List[Case]:
        """Return the guild's cases ordered by case id.

        Raises:
            UsageError: If the filter combines mutually exclusive criteria.
        """
        case_filter = case_filter or CaseFilter()
        conflict = case_filter.conflict()
        if conflict is not None:
            raise UsageError(f"cases.filter_conflict.{conflict}")

        async with self._db.read() as conn:
            return await case_repo.find(conn, guild_id, case_filter)

    async def find_active_mute(
        self, guild_id: GuildID, user_id: UserID, now: Optional[datetime] = None
    ) -> Case | None:
        now = now or utcnow()
        async with self._db.read() as conn:
            return await case_repo.find_active_mute(conn, guild_id, user_id, to_timestamp(now))

    async def get_expired(self, case_type: CaseType, now: Optional[datetime] = None) -> List[Case]:
        now = now or utcnow()
        async with self._db.read() as conn:
            return await case_repo.get_expired(conn, case_type, to_timestamp(now))

    async def total_points(self, guild_id: GuildID, user_id: UserID) -> int:
        """Sum of WARN points across the user's existing cases in the guild."""
        async with self._db.read() as conn:
            return await case_repo.total_points(conn, guild_id, user_id)

    async def latest_warn(self, guild_id: GuildID, user_id: UserID) -> Case | None:
        async with self._db.read() as conn:
            return await case_repo.latest_warn(conn, guild_id, user_id)

    # ------------------------------------------------------------------
    # Updates and deletes
    # ------------------------------------------------------------------

    async def close_active_mutes(
        self, guild_id: GuildID, user_id: UserID, now: Optional[datetime] = None
    ) -> int:
        """End the user's running mutes now so a new mute is not blocked."""
        now = now or utcnow()
        async with self._db.transaction() as conn:
            closed = await case_repo.close_open_mutes(conn, guild_id, user_id, to_timestamp(now))
        if closed:
            logger.debug("[CASE STORE] Closed %d open mute(s) of %s in guild %s", closed, user_id, guild_id)
        return closed

    async def delete_cases(self, guild_id: GuildID, case_ids: Sequence[int]) -> List[int]:
        """Delete several cases of one guild in a single statement.

        Returns the ids that were still present and got deleted by this call.
        """
        async with self._db.transaction() as conn:
            deleted = await case_repo.delete_many(conn, guild_id, list(case_ids))
        logger.debug("[CASE STORE] Deleted %d case(s) in guild %s", len(deleted), guild_id)
        return deleted

    async def claim_case(self, row_id: int) -> bool:
        """Conditionally delete a case by row id.

        Returns True only for the caller whose delete removed the row, so two
        concurrent sweepers can never both act on the same case.
        """
        async with self._db.transaction() as conn:
            return await case_repo.delete_by_row_id(conn, row_id)


# Shared singleton bound to the application connection
case_service = CaseService()
