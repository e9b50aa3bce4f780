"""
Removal of cases by id, with reversal of what they still enforce.

MUTE cases lift the timeout and log an unmute tagged with the case id, BAN
cases unban and log an unban, WARN cases are batched into one RemoveWarn or
RemoveMultipleWarns entry, KICK cases are simply deleted. Ids that do not
exist are reported individually without failing the batch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence

from casewarden.datatypes.case_datatypes import Case, CaseType, utcnow
from casewarden.datatypes.discord_datatypes import GuildID, UserID
from casewarden.datatypes.log_datatypes import LogCategory, LogContext, RemovedWarn
from casewarden.moderation.errors import UsageError
from casewarden.moderation.log_router import LogRouter
from casewarden.moderation.platform import ModerationPlatform
from casewarden.services.case_service import CaseService
from casewarden.util.logger import get_logger

logger = get_logger("case_removal")

MAX_CASES_PER_REMOVAL = 10


class RemovalStatus(Enum):
    REMOVED = "removed"
    NOT_FOUND = "not_found"
    REVERSE_FAILED = "reverse_failed"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class RemovalResult:
    case_id: int
    status: RemovalStatus
    case: Optional[Case] = None


@dataclass(slots=True)
class RemovalReport:
    """Per-id outcome of one removal request, in request order."""

    results: List[RemovalResult] = field(default_factory=list)

    @property
    def removed(self) -> List[RemovalResult]:
        return [r for r in self.results if r.status is RemovalStatus.REMOVED]

    @property
    def not_found(self) -> List[int]:
        return [r.case_id for r in self.results if r.status is RemovalStatus.NOT_FOUND]

    @property
    def failed(self) -> List[int]:
        return [r.case_id for r in self.results if r.status is RemovalStatus.REVERSE_FAILED]


def parse_case_ids(text: str) -> List[int]:
    """Parse a comma separated id list such as ``"3, 7,12"``.

    Raises:
        UsageError: On an empty list or a value that is not a positive integer.
    """
    ids: List[int] = []
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        if not part.isdigit() or int(part) < 1:
            raise UsageError("cases.invalid_id", value=part)
        ids.append(int(part))
    if not ids:
        raise UsageError("cases.no_ids")
    return ids


class CaseRemover:
    def __init__(self, case_service: CaseService, platform: ModerationPlatform, log_router: LogRouter) -> None:
        self.case_service = case_service
        self.platform = platform
        self.log_router = log_router

    async def remove_cases(
        self,
        guild_id: GuildID,
        moderator_id: UserID,
        moderator_name: str,
        case_ids: Sequence[int],
        now: Optional[datetime] = None,
    ) -> RemovalReport:
        """Reverse and delete 1..10 cases of one guild.

        Raises:
            UsageError: If no ids or more than ten ids are given.
        """
        # Duplicates would otherwise be reversed and logged twice
        unique_ids = list(dict.fromkeys(case_ids))
        if not unique_ids:
            raise UsageError("cases.no_ids")
        if len(unique_ids) > MAX_CASES_PER_REMOVAL:
            raise UsageError("cases.too_many_ids", limit=MAX_CASES_PER_REMOVAL)

        now = now or utcnow()
        found = {case.case_id: case for case in await self.case_service.get_cases(guild_id, unique_ids)}

        statuses: dict[int, RemovalStatus] = {}
        reversed_cases: List[Case] = []

        for case_id in unique_ids:
            case = found.get(case_id)
            if case is None:
                statuses[case_id] = RemovalStatus.NOT_FOUND
                continue

            try:
                await self._reverse(case, moderator_name)
            except Exception as exc:
                logger.error(
                    "[CASE REMOVAL] Could not reverse %s case #%d in guild %s, keeping it: %r",
                    case.case_type, case.case_id, guild_id, exc,
                )
                statuses[case_id] = RemovalStatus.REVERSE_FAILED
                continue
            reversed_cases.append(case)

        deleted: set[int] = set()
        if reversed_cases:
            deleted = set(await self.case_service.delete_cases(guild_id, [c.case_id for c in reversed_cases]))
            logger.info("[CASE REMOVAL] Removed %d case(s) in guild %s", len(deleted), guild_id)

        # A case the sweeper expired in the meantime is gone already and was logged there
        removed_warns: List[RemovedWarn] = []
        for case in reversed_cases:
            if case.case_id not in deleted:
                statuses[case.case_id] = RemovalStatus.NOT_FOUND
                continue
            statuses[case.case_id] = RemovalStatus.REMOVED

            base = LogContext(
                guild_id=guild_id,
                moderator_id=moderator_id,
                moderator_name=moderator_name,
                user_id=case.user_id,
                case_id=case.case_id,
                timestamp=now,
            )
            if case.case_type is CaseType.MUTE:
                await self.log_router.route(LogCategory.UNMUTE, base)
            elif case.case_type is CaseType.BAN:
                await self.log_router.route(LogCategory.UNBAN, base)
            elif case.case_type is CaseType.WARN:
                removed_warns.append(RemovedWarn(case.user_id, case.case_id, case.points or 1))

        if len(removed_warns) == 1:
            warn = removed_warns[0]
            await self.log_router.route(
                LogCategory.REMOVE_WARN,
                LogContext(
                    guild_id=guild_id,
                    moderator_id=moderator_id,
                    moderator_name=moderator_name,
                    user_id=warn.user_id,
                    case_id=warn.case_id,
                    points=warn.points,
                    timestamp=now,
                ),
            )
        elif len(removed_warns) > 1:
            await self.log_router.route(
                LogCategory.REMOVE_MULTIPLE_WARNS,
                LogContext(
                    guild_id=guild_id,
                    moderator_id=moderator_id,
                    moderator_name=moderator_name,
                    removed_warns=removed_warns,
                    timestamp=now,
                ),
            )

        return RemovalReport([
            RemovalResult(
                case_id,
                statuses[case_id],
                found.get(case_id) if statuses[case_id] is not RemovalStatus.NOT_FOUND else None,
            )
            for case_id in unique_ids
        ])

    async def _reverse(self, case: Case, moderator_name: str) -> None:
        reason = f"Case #{case.case_id} removed by {moderator_name}"
        if case.case_type is CaseType.MUTE:
            await self.platform.remove_timeout(case.guild_id, case.user_id, reason)
        elif case.case_type is CaseType.BAN:
            await self.platform.unban(case.guild_id, case.user_id, reason)
