"""
Log categories and the context handed to the log router.

``LogCategory`` keeps the on-disk bit positions of the ``log_types`` column.
Masks are combined as sets: enabling or disabling categories is a union or
difference, so any number of categories can be active at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntFlag
from typing import FrozenSet, Iterable, List, Optional

from casewarden.datatypes.discord_datatypes import ChannelID, GuildID, UserID


class LogCategory(IntFlag):
    """One bit per loggable action kind. The bit positions are persisted."""

    CLEAR_MESSAGES = 1 << 0
    CLEAR_CHANNEL = 1 << 1
    MUTE = 1 << 2
    UNMUTE = 1 << 3
    KICK = 1 << 4
    LOCK = 1 << 5
    UNLOCK = 1 << 6
    BAN = 1 << 7
    UNBAN = 1 << 8
    WARN = 1 << 9
    REMOVE_WARN = 1 << 10
    REMOVE_MULTIPLE_WARNS = 1 << 11

    @property
    def key(self) -> str:
        """Lower-case name, used for translation keys and select option values."""
        return self.name.lower()


ALL_CATEGORIES: tuple[LogCategory, ...] = tuple(LogCategory)


def _mask_of(categories: Iterable[LogCategory]) -> int:
    mask = 0
    for category in categories:
        mask |= int(category)
    return mask


ALL_LOG_CATEGORIES_MASK = _mask_of(ALL_CATEGORIES)


def get_active_categories(mask: int) -> FrozenSet[LogCategory]:
    """Return every category whose bit is set in ``mask``. Unknown bits are ignored."""
    return frozenset(category for category in ALL_CATEGORIES if mask & int(category))


def set_categories(mask: int, categories: Iterable[LogCategory]) -> int:
    """Replace the active set with exactly ``categories``.

    ``mask`` is accepted for symmetry with the other operations; the result
    does not depend on it.
    """
    return _mask_of(categories)


def enable_categories(mask: int, categories: Iterable[LogCategory]) -> int:
    return (mask | _mask_of(categories)) & ALL_LOG_CATEGORIES_MASK


def disable_categories(mask: int, categories: Iterable[LogCategory]) -> int:
    return mask & ~_mask_of(categories) & ALL_LOG_CATEGORIES_MASK


def is_category_active(mask: int, category: LogCategory) -> bool:
    return bool(mask & int(category))


@dataclass(slots=True)
class RemovedWarn:
    """One warning removed as part of a batch."""

    user_id: UserID
    case_id: int
    points: int


@dataclass(slots=True)
class LogContext:
    """Everything a log entry may show about a completed action.

    Only the fields relevant to the category are filled in.
    """

    guild_id: GuildID
    moderator_id: UserID
    moderator_name: str
    user_id: Optional[UserID] = None
    user_name: Optional[str] = None
    channel_id: Optional[ChannelID] = None
    reason: Optional[str] = None
    duration: Optional[str] = None
    case_id: Optional[int] = None
    points: Optional[int] = None
    message_count: Optional[int] = None
    message_excerpt: Optional[str] = None
    removed_warns: List[RemovedWarn] = field(default_factory=list)
    timestamp: Optional[datetime] = None
