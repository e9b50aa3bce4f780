"""
Case types and data structures for persisted moderation cases.

A case is the durable record of one punitive action taken against a user in
a guild. Its ``case_id`` is the guild-scoped number shown to moderators; the
``id`` is the internal row key.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from casewarden.datatypes.discord_datatypes import GuildID, UserID


class CaseType(Enum):
    """Kinds of action recorded as a case. Stored as upper-case text."""

    BAN = "BAN"
    KICK = "KICK"
    MUTE = "MUTE"
    WARN = "WARN"

    def __str__(self) -> str:
        return self.value


def to_timestamp(value: datetime) -> int:
    """Convert an aware (or naive UTC) datetime to unix seconds."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def from_timestamp(value: int) -> datetime:
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def utcnow() -> datetime:
    """Current time truncated to whole seconds, matching storage precision."""
    return datetime.now(timezone.utc).replace(microsecond=0)


@dataclass(slots=True)
class Case:
    """A persisted moderation case.

    Attributes:
        id: Internal row id (``None`` before insertion)
        guild_id: Guild the case belongs to
        user_id: Target of the action
        moderator_id: Issuer of the action
        case_id: Guild-scoped, strictly increasing case number
        case_type: Kind of action
        reason: Free text reason, optional
        created_at: When the case was recorded (UTC)
        end_date: When a time-bounded case expires (UTC), optional
        points: Warning weight, WARN cases only
    """

    id: Optional[int]
    guild_id: GuildID
    user_id: UserID
    moderator_id: UserID
    case_id: int
    case_type: CaseType
    reason: Optional[str]
    created_at: datetime
    end_date: Optional[datetime] = None
    points: Optional[int] = None

    def __post_init__(self) -> None:
        if self.case_id < 1:
            raise ValueError(f"case_id must be positive, got {self.case_id}")
        if self.end_date is not None and self.end_date <= self.created_at:
            raise ValueError("end_date must be later than created_at")
        if self.case_type is CaseType.MUTE and self.end_date is None:
            raise ValueError("MUTE cases require an end_date")
        if self.case_type is CaseType.WARN:
            if self.points is None:
                self.points = 1
        elif self.points is not None:
            raise ValueError("points are only valid on WARN cases")

    def is_active(self, now: datetime) -> bool:
        """Return True while the case has no end date or has not reached it."""
        return self.end_date is None or self.end_date > now


@dataclass(slots=True)
class CaseFilter:
    """Optional filters for listing the cases of a guild.

    Some combinations are contradictory or ambiguous and rejected by the
    case store: see ``CaseFilter.conflict``.
    """

    user_id: Optional[UserID] = None
    case_id: Optional[int] = None
    moderator_id: Optional[UserID] = None
    case_type: Optional[CaseType] = None

    def conflict(self) -> Optional[str]:
        """Return the name of the first rejected filter combination, or None."""
        if self.user_id is not None and self.case_id is not None:
            return "user_and_id"
        if self.case_id is not None and self.case_type is not None:
            return "id_and_type"
        if self.case_id is not None and self.moderator_id is not None:
            return "id_and_moderator"
        if self.moderator_id is not None and self.case_type is not None:
            return "moderator_and_type"
        if self.moderator_id is not None and self.user_id is not None:
            return "moderator_and_user"
        return None
