"""
Action executors: one moderation action end-to-end.

Every executor follows the same template in ``ActionExecutor.execute``:

1. validate input and run the role-hierarchy policy (no side effects),
2. run the kind-specific precheck (duplicate mute, lock state, ...),
3. mutate the platform; a failure leaves no case behind,
4. persist the case; a failure after a platform mutation is a divergence,
5. build the localized confirmation for the invoking user,
6. hand the action context to the log router.

Subclasses fill in the steps they need and leave the rest as no-ops.
"""

from __future__ import annotations

import asyncio
import weakref
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Awaitable, Callable, List, Optional

from casewarden.datatypes.case_datatypes import Case, CaseType, utcnow
from casewarden.datatypes.discord_datatypes import ChannelID, GuildID, UserID
from casewarden.datatypes.guild_settings import GuildDefaults
from casewarden.datatypes.log_datatypes import LogCategory, LogContext
from casewarden.localization.translator import translator
from casewarden.moderation.errors import (
    ExternalActionFailure,
    ModerationError,
    PersistenceFailure,
    PolicyDenial,
    UsageError,
)
from casewarden.moderation.log_router import LogRouter
from casewarden.moderation.platform import ModerationPlatform, PurgedMessage
from casewarden.moderation.policy import (
    ActionKind,
    DenialReason,
    GuildContext,
    MemberSnapshot,
    check_policy,
    validate_duration,
)
from casewarden.services.case_service import CaseService
from casewarden.services.guild_settings_service import GuildSettingsService
from casewarden.util.format_utils import build_excerpt, format_duration
from casewarden.util.logger import get_logger

logger = get_logger("action_executor")

MIN_WARN_POINTS = 1
MAX_WARN_POINTS = 100
MAX_DELETE_MESSAGE_DAYS = 7
MAX_PURGE_AMOUNT = 100


@dataclass(slots=True)
class ActionRequest:
    """Parameters of one moderation command.

    Attributes:
        guild_id: Guild the command runs in
        guild: Owner and bot rank data for the policy
        actor: The moderator issuing the command
        actor_name: Display name used in log footers
        target: Member the action is aimed at (member actions only)
        channel_id: Channel the action is aimed at (channel actions only)
        reason: Optional free text reason
        duration: Raw duration text such as ``"1d"`` (ban, mute)
        points: Warning weight (warn)
        expire: Whether a warning expires after the guild's warn_expire_time
        delete_message_days: Days of messages removed on ban
        amount: Number of messages to scan (purge)
        author_filter: Only purge messages from this user
        case_id: Specific warning to remove (unwarn)
        lang: Language of the confirmation
        now: Clock override, defaults to the current time
    """

    guild_id: GuildID
    guild: GuildContext
    actor: MemberSnapshot
    actor_name: str
    target: Optional[MemberSnapshot] = None
    channel_id: Optional[ChannelID] = None
    reason: Optional[str] = None
    duration: Optional[str] = None
    points: int = 1
    expire: bool = False
    delete_message_days: int = 0
    amount: int = 0
    author_filter: Optional[UserID] = None
    case_id: Optional[int] = None
    lang: str = "en"
    now: Optional[datetime] = None

    @property
    def target_id(self) -> UserID:
        if self.target is None:
            raise ValueError("this action requires a target member")
        return self.target.id


@dataclass(slots=True)
class ActionState:
    """Values computed while an action runs."""

    now: datetime
    duration_seconds: Optional[int] = None
    end_date: Optional[datetime] = None
    case: Optional[Case] = None
    total_points: Optional[int] = None
    purged: List[PurgedMessage] = field(default_factory=list)
    channel_id: Optional[ChannelID] = None


@dataclass(slots=True)
class Confirmation:
    """What the invoking user is told after a successful action."""

    kind: ActionKind
    message: str
    case: Optional[Case] = None
    total_points: Optional[int] = None
    logged: bool = False


class ActionExecutor:
    """Shared template. Subclasses set the class attributes and override steps."""

    kind: ActionKind
    log_category: LogCategory
    case_type: Optional[CaseType] = None
    # Whether step 3 changes platform state (decides how persistence failures are reported)
    mutates_platform = True
    # Run steps 2-4 under a per (guild, target) lock so a precheck cannot go stale
    serialize_per_target = False
    # Shared by all executors so a mute and an unmute of one member also exclude each other
    _locks: "weakref.WeakValueDictionary[tuple[int, int], asyncio.Lock]" = weakref.WeakValueDictionary()

    def __init__(
        self,
        case_service: CaseService,
        settings_service: GuildSettingsService,
        platform: ModerationPlatform,
        log_router: LogRouter,
    ) -> None:
        self.case_service = case_service
        self.settings_service = settings_service
        self.platform = platform
        self.log_router = log_router

    async def execute(
        self,
        request: ActionRequest,
        on_confirmed: Optional[Callable[[Confirmation], Awaitable[None]]] = None,
    ) -> Confirmation:
        """Run the action. ``on_confirmed`` receives the confirmation before the log router runs."""
        state = ActionState(now=request.now or utcnow())

        try:
            self.validate(request, state)
        except PolicyDenial as denial:
            logger.debug("[ACTION EXECUTOR] %s denied in guild %s: %s", self.kind, request.guild_id, denial.translation_key)
            raise

        if self.serialize_per_target:
            async with self._target_lock(request):
                await self._apply(request, state)
        else:
            await self._apply(request, state)

        confirmation = Confirmation(
            kind=self.kind,
            message=self.confirmation_message(request, state),
            case=state.case,
            total_points=state.total_points,
        )
        try:
            if on_confirmed is not None:
                await on_confirmed(confirmation)
        finally:
            confirmation.logged = await self.log_router.route(self.log_category, self.log_context(request, state))
        return confirmation

    def _target_lock(self, request: ActionRequest) -> asyncio.Lock:
        key = (request.guild_id.to_int(), request.target_id.to_int())
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def _apply(self, request: ActionRequest, state: ActionState) -> None:
        """Steps 2 to 4."""
        await self.precheck(request, state)

        try:
            await self.mutate(request, state)
        except ModerationError:
            raise
        except Exception as exc:
            logger.warning(
                "[ACTION EXECUTOR] Platform rejected %s in guild %s: %r", self.kind, request.guild_id, exc
            )
            raise ExternalActionFailure(self.kind.value, exc) from exc

        try:
            await self.persist(request, state)
        except ModerationError:
            raise
        except Exception as exc:
            if self.mutates_platform:
                logger.critical(
                    "[DIVERGENCE] %s was applied on the platform in guild %s (target=%s) "
                    "but the case store write failed: %r",
                    self.kind, request.guild_id,
                    request.target.id if request.target is not None else request.channel_id,
                    exc,
                )
            else:
                logger.error("[ACTION EXECUTOR] Failed to store %s in guild %s: %r", self.kind, request.guild_id, exc)
            raise PersistenceFailure(f"{self.kind} case write failed", exc) from exc

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def validate(self, request: ActionRequest, state: ActionState) -> None:
        """Step 1. Member actions run the hierarchy policy by default."""
        if request.target is None:
            raise ValueError(f"{self.kind} requires a target member")
        check_policy(self.kind, request.actor, request.target, request.guild)

    async def precheck(self, request: ActionRequest, state: ActionState) -> None:
        """Step 2."""

    async def mutate(self, request: ActionRequest, state: ActionState) -> None:
        """Step 3."""

    async def persist(self, request: ActionRequest, state: ActionState) -> None:
        """Step 4. Records a case when the executor has a case type."""
        if self.case_type is None:
            return
        state.case = await self.case_service.create_case(
            guild_id=request.guild_id,
            user_id=request.target_id,
            moderator_id=request.actor.id,
            case_type=self.case_type,
            reason=request.reason,
            end_date=state.end_date,
            points=request.points if self.case_type is CaseType.WARN else None,
            created_at=state.now,
        )

    def confirmation_message(self, request: ActionRequest, state: ActionState) -> str:
        """Step 5."""
        return translator.get(
            f"confirm.{self.kind.value}",
            request.lang,
            user=f"<@{request.target.id}>" if request.target is not None else "",
            channel=f"<#{request.channel_id}>" if request.channel_id is not None else "",
            case_id=state.case.case_id if state.case is not None else "",
            duration=format_duration(state.duration_seconds) if state.duration_seconds else "",
        )

    def log_context(self, request: ActionRequest, state: ActionState) -> LogContext:
        """Step 6 input."""
        return LogContext(
            guild_id=request.guild_id,
            moderator_id=request.actor.id,
            moderator_name=request.actor_name,
            user_id=request.target.id if request.target is not None else None,
            channel_id=state.channel_id or request.channel_id,
            reason=request.reason,
            duration=format_duration(state.duration_seconds) if state.duration_seconds else None,
            case_id=state.case.case_id if state.case is not None else None,
            points=state.case.points if state.case is not None else None,
            timestamp=state.now,
        )


class _ChannelActionExecutor(ActionExecutor):
    """Channel actions have no member target and skip the hierarchy policy."""

    def validate(self, request: ActionRequest, state: ActionState) -> None:
        if request.channel_id is None:
            raise ValueError(f"{self.kind} requires a channel")


# ----------------------------------------------------------------------
# Member actions
# ----------------------------------------------------------------------

class BanExecutor(ActionExecutor):
    kind = ActionKind.BAN
    log_category = LogCategory.BAN
    case_type = CaseType.BAN

    def validate(self, request: ActionRequest, state: ActionState) -> None:
        super().validate(request, state)
        if request.duration:
            state.duration_seconds = validate_duration(self.kind, request.duration)
            state.end_date = state.now + timedelta(seconds=state.duration_seconds)
        if not 0 <= request.delete_message_days <= MAX_DELETE_MESSAGE_DAYS:
            raise UsageError("usage.delete_days_range")

    async def mutate(self, request: ActionRequest, state: ActionState) -> None:
        await self.platform.ban(request.guild_id, request.target_id, request.delete_message_days, request.reason)

    def confirmation_message(self, request: ActionRequest, state: ActionState) -> str:
        key = "confirm.ban_temporary" if state.duration_seconds else "confirm.ban"
        return translator.get(
            key,
            request.lang,
            user=f"<@{request.target_id}>",
            case_id=state.case.case_id if state.case is not None else "",
            duration=format_duration(state.duration_seconds or 0),
        )


class KickExecutor(ActionExecutor):
    kind = ActionKind.KICK
    log_category = LogCategory.KICK
    case_type = CaseType.KICK

    async def mutate(self, request: ActionRequest, state: ActionState) -> None:
        await self.platform.kick(request.guild_id, request.target_id, request.reason)


class MuteExecutor(ActionExecutor):
    kind = ActionKind.MUTE
    log_category = LogCategory.MUTE
    case_type = CaseType.MUTE
    serialize_per_target = True

    def validate(self, request: ActionRequest, state: ActionState) -> None:
        super().validate(request, state)
        state.duration_seconds = validate_duration(self.kind, request.duration or "")
        state.end_date = state.now + timedelta(seconds=state.duration_seconds)

    async def precheck(self, request: ActionRequest, state: ActionState) -> None:
        active = await self.case_service.find_active_mute(request.guild_id, request.target_id, state.now)
        if active is not None:
            raise PolicyDenial(DenialReason.ALREADY_MUTED, case_id=active.case_id)

    async def mutate(self, request: ActionRequest, state: ActionState) -> None:
        await self.platform.timeout(request.guild_id, request.target_id, state.end_date, request.reason)


class UnmuteExecutor(ActionExecutor):
    kind = ActionKind.UNMUTE
    log_category = LogCategory.UNMUTE
    serialize_per_target = True

    async def precheck(self, request: ActionRequest, state: ActionState) -> None:
        active = await self.case_service.find_active_mute(request.guild_id, request.target_id, state.now)
        if active is None:
            raise PolicyDenial(DenialReason.NOT_MUTED)
        state.case = active

    async def mutate(self, request: ActionRequest, state: ActionState) -> None:
        await self.platform.remove_timeout(request.guild_id, request.target_id, request.reason)

    async def persist(self, request: ActionRequest, state: ActionState) -> None:
        await self.case_service.close_active_mutes(request.guild_id, request.target_id, state.now)


class WarnExecutor(ActionExecutor):
    kind = ActionKind.WARN
    log_category = LogCategory.WARN
    case_type = CaseType.WARN
    mutates_platform = False

    def validate(self, request: ActionRequest, state: ActionState) -> None:
        super().validate(request, state)
        if not MIN_WARN_POINTS <= request.points <= MAX_WARN_POINTS:
            raise UsageError("usage.points_range")

    async def precheck(self, request: ActionRequest, state: ActionState) -> None:
        if not request.expire:
            return
        settings = await self.settings_service.get_settings(request.guild_id)
        days = settings.warn_expire_time if settings is not None else GuildDefaults().warn_expire_time
        state.end_date = state.now + timedelta(days=days)

    async def persist(self, request: ActionRequest, state: ActionState) -> None:
        await super().persist(request, state)
        state.total_points = await self.case_service.total_points(request.guild_id, request.target_id)

    def confirmation_message(self, request: ActionRequest, state: ActionState) -> str:
        return translator.get(
            "confirm.warn",
            request.lang,
            user=f"<@{request.target_id}>",
            points=request.points,
            case_id=state.case.case_id if state.case is not None else "",
            total=state.total_points,
        )


class UnwarnExecutor(ActionExecutor):
    """Removes one warning of the target: the given case id or the latest one."""

    kind = ActionKind.UNWARN
    log_category = LogCategory.REMOVE_WARN
    mutates_platform = False

    async def precheck(self, request: ActionRequest, state: ActionState) -> None:
        if request.case_id is not None:
            case = await self.case_service.get_case(request.guild_id, request.case_id)
            if case is None or case.case_type is not CaseType.WARN or case.user_id != request.target_id:
                raise UsageError("usage.unknown_warn", case_id=request.case_id)
        else:
            case = await self.case_service.latest_warn(request.guild_id, request.target_id)
            if case is None:
                raise PolicyDenial(DenialReason.NO_WARNINGS)
        state.case = case

    async def persist(self, request: ActionRequest, state: ActionState) -> None:
        # The sweeper may expire the same warning concurrently; only the winner logs it
        if not await self.case_service.claim_case(state.case.id):
            raise UsageError("usage.unknown_warn", case_id=state.case.case_id)
        state.total_points = await self.case_service.total_points(request.guild_id, request.target_id)


# ----------------------------------------------------------------------
# Channel actions (logged, not persisted as cases)
# ----------------------------------------------------------------------

class LockExecutor(_ChannelActionExecutor):
    kind = ActionKind.LOCK
    log_category = LogCategory.LOCK
    locked = True

    async def precheck(self, request: ActionRequest, state: ActionState) -> None:
        is_locked = await self.platform.is_channel_locked(request.guild_id, request.channel_id)
        if is_locked and self.locked:
            raise PolicyDenial(DenialReason.CHANNEL_ALREADY_LOCKED)
        if not is_locked and not self.locked:
            raise PolicyDenial(DenialReason.CHANNEL_NOT_LOCKED)

    async def mutate(self, request: ActionRequest, state: ActionState) -> None:
        await self.platform.set_channel_lock(request.guild_id, request.channel_id, self.locked, request.reason)


class UnlockExecutor(LockExecutor):
    kind = ActionKind.UNLOCK
    log_category = LogCategory.UNLOCK
    locked = False


class PurgeMessagesExecutor(_ChannelActionExecutor):
    kind = ActionKind.PURGE
    log_category = LogCategory.CLEAR_MESSAGES

    def validate(self, request: ActionRequest, state: ActionState) -> None:
        super().validate(request, state)
        if not 1 <= request.amount <= MAX_PURGE_AMOUNT:
            raise UsageError("usage.purge_amount_range")

    async def mutate(self, request: ActionRequest, state: ActionState) -> None:
        state.purged = await self.platform.purge_messages(
            request.guild_id, request.channel_id, request.amount, request.author_filter
        )

    def confirmation_message(self, request: ActionRequest, state: ActionState) -> str:
        return translator.get("confirm.purge", request.lang, count=len(state.purged))

    def log_context(self, request: ActionRequest, state: ActionState) -> LogContext:
        context = super().log_context(request, state)
        context.message_count = len(state.purged)
        context.message_excerpt = build_excerpt([f"{m.author_name}: {m.content}" for m in state.purged]) or None
        return context


class ClearChannelExecutor(_ChannelActionExecutor):
    """Recreates the channel, which drops its whole history."""

    kind = ActionKind.CLEAR_CHANNEL
    log_category = LogCategory.CLEAR_CHANNEL

    async def mutate(self, request: ActionRequest, state: ActionState) -> None:
        state.channel_id = await self.platform.recreate_channel(request.guild_id, request.channel_id, request.reason)


EXECUTOR_CLASSES = {
    cls.kind: cls
    for cls in (
        BanExecutor, KickExecutor, MuteExecutor, UnmuteExecutor, WarnExecutor, UnwarnExecutor,
        LockExecutor, UnlockExecutor, PurgeMessagesExecutor, ClearChannelExecutor,
    )
}
