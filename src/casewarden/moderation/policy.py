"""
Role-hierarchy policy checks run before any moderation action.

Everything here is pure: callers fetch member and guild data up front and
pass snapshots in. ``evaluate`` returns a decision; ``check_policy`` raises
``PolicyDenial`` from it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from casewarden.datatypes.discord_datatypes import UserID
from casewarden.moderation.errors import PolicyDenial

MIN_DURATION_SECONDS = 60
MAX_MUTE_SECONDS = 28 * 24 * 60 * 60

_DURATION_RE = re.compile(r"^(\d+)([dhms])$")
_UNIT_SECONDS = {"d": 86400, "h": 3600, "m": 60, "s": 1}


class ActionKind(Enum):
    """Moderation actions the engine can execute."""

    BAN = "ban"
    KICK = "kick"
    MUTE = "mute"
    UNMUTE = "unmute"
    WARN = "warn"
    UNWARN = "unwarn"
    LOCK = "lock"
    UNLOCK = "unlock"
    PURGE = "purge"
    CLEAR_CHANNEL = "clear_channel"

    def __str__(self) -> str:
        return self.value


# Kinds whose platform mutation depends on the bot outranking the target
ROLE_MUTATING_KINDS = frozenset({ActionKind.BAN, ActionKind.KICK, ActionKind.MUTE, ActionKind.UNMUTE})

# Kinds aimed at a member rather than a channel
MEMBER_TARGET_KINDS = frozenset({
    ActionKind.BAN, ActionKind.KICK, ActionKind.MUTE,
    ActionKind.UNMUTE, ActionKind.WARN, ActionKind.UNWARN,
})


class DenialReason(Enum):
    TARGET_IS_BOT = "target_is_bot"
    TARGET_IS_SELF = "target_is_self"
    TARGET_IS_OWNER = "target_is_owner"
    TARGET_IS_ADMINISTRATOR = "target_is_administrator"
    BOT_RANK_TOO_LOW = "bot_rank_too_low"
    ACTOR_RANK_TOO_LOW = "actor_rank_too_low"
    ALREADY_MUTED = "already_muted"
    NOT_MUTED = "not_muted"
    NO_WARNINGS = "no_warnings"
    CHANNEL_ALREADY_LOCKED = "channel_already_locked"
    CHANNEL_NOT_LOCKED = "channel_not_locked"
    INVALID_DURATION_FORMAT = "invalid_duration_format"
    DURATION_TOO_SHORT = "duration_too_short"
    DURATION_TOO_LONG = "duration_too_long"

    @property
    def translation_key(self) -> str:
        return f"denial.{self.value}"


@dataclass(frozen=True, slots=True)
class MemberSnapshot:
    """The role and permission data the policy needs about one member."""

    id: UserID
    is_bot: bool = False
    is_administrator: bool = False
    top_role_position: int = 0

    @classmethod
    def from_member(cls, member: Any) -> "MemberSnapshot":
        """Build a snapshot from a ``discord.Member``."""
        return cls(
            id=UserID(member.id),
            is_bot=bool(member.bot),
            is_administrator=bool(member.guild_permissions.administrator),
            top_role_position=member.top_role.position,
        )


@dataclass(frozen=True, slots=True)
class GuildContext:
    owner_id: UserID
    bot_top_role_position: int


@dataclass(frozen=True, slots=True)
class PolicyDecision:
    allowed: bool
    reason: Optional[DenialReason] = None

    @classmethod
    def allow(cls) -> "PolicyDecision":
        return cls(True)

    @classmethod
    def deny(cls, reason: DenialReason) -> "PolicyDecision":
        return cls(False, reason)


def evaluate(
    kind: ActionKind,
    actor: MemberSnapshot,
    target: MemberSnapshot,
    guild: GuildContext,
) -> PolicyDecision:
    """Run the hierarchy checks in order; the first failing check wins."""
    if target.is_bot:
        return PolicyDecision.deny(DenialReason.TARGET_IS_BOT)
    if target.id == actor.id:
        return PolicyDecision.deny(DenialReason.TARGET_IS_SELF)
    if target.id == guild.owner_id:
        return PolicyDecision.deny(DenialReason.TARGET_IS_OWNER)
    if target.is_administrator:
        return PolicyDecision.deny(DenialReason.TARGET_IS_ADMINISTRATOR)
    if kind in ROLE_MUTATING_KINDS and guild.bot_top_role_position <= target.top_role_position:
        return PolicyDecision.deny(DenialReason.BOT_RANK_TOO_LOW)
    if actor.id != guild.owner_id and actor.top_role_position <= target.top_role_position:
        return PolicyDecision.deny(DenialReason.ACTOR_RANK_TOO_LOW)
    return PolicyDecision.allow()


def check_policy(
    kind: ActionKind,
    actor: MemberSnapshot,
    target: MemberSnapshot,
    guild: GuildContext,
) -> None:
    """Raise ``PolicyDenial`` if ``evaluate`` denies the action."""
    decision = evaluate(kind, actor, target, guild)
    if not decision.allowed:
        raise PolicyDenial(decision.reason)


def parse_duration(text: str) -> Optional[int]:
    """Parse ``<int><d|h|m|s>`` into seconds. Returns None if malformed."""
    match = _DURATION_RE.match(text.strip().lower())
    if match is None:
        return None
    return int(match.group(1)) * _UNIT_SECONDS[match.group(2)]


def validate_duration(kind: ActionKind, text: str) -> int:
    """Parse and range-check a duration for ban or mute.

    The format is checked before the range, so ``"abc"`` is reported as an
    invalid format rather than as too short.

    Raises:
        PolicyDenial: On a malformed, too short, or (for mutes) too long duration.
    """
    seconds = parse_duration(text)
    if seconds is None:
        raise PolicyDenial(DenialReason.INVALID_DURATION_FORMAT, duration=text)
    if seconds < MIN_DURATION_SECONDS:
        raise PolicyDenial(DenialReason.DURATION_TOO_SHORT, minimum=MIN_DURATION_SECONDS)
    if kind is ActionKind.MUTE and seconds > MAX_MUTE_SECONDS:
        raise PolicyDenial(DenialReason.DURATION_TOO_LONG, maximum=MAX_MUTE_SECONDS)
    return seconds
