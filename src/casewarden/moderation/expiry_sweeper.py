"""
Expiry sweeper: reverses time-bounded cases once their end date has passed.

Two independent loops run for the lifetime of the process:

- bans (every 15 seconds by default): unban, delete the case, log an unban
  attributed to the bot. A failing item stays in the store and is retried on
  the next sweep.
- warnings (every hour by default): claim the case with a conditional delete,
  then log the removed points. Only the sweeper that won the claim logs, so
  a warning is never announced twice.

Errors inside one iteration are logged and never end a loop. ``shutdown``
stops both loops cooperatively.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable, Dict, Optional

from casewarden.datatypes.case_datatypes import Case, CaseType, utcnow
from casewarden.datatypes.log_datatypes import LogCategory, LogContext
from casewarden.localization.translator import translator
from casewarden.moderation.errors import SweepItemFailure
from casewarden.moderation.log_router import LogRouter
from casewarden.moderation.platform import ModerationPlatform
from casewarden.services.case_service import CaseService
from casewarden.services.guild_settings_service import GuildSettingsService
from casewarden.util.logger import get_logger

logger = get_logger("expiry_sweeper")


class ExpirySweeper:
    """
    Supervises the ban-expiry and warn-expiry loops.

    Args:
        ban_interval: Seconds between two ban sweeps.
        warn_interval: Seconds between two warning sweeps.
    """

    def __init__(
        self,
        case_service: CaseService,
        settings_service: GuildSettingsService,
        platform: ModerationPlatform,
        log_router: LogRouter,
        ban_interval: float = 15.0,
        warn_interval: float = 3600.0,
    ) -> None:
        self.case_service = case_service
        self.settings_service = settings_service
        self.platform = platform
        self.log_router = log_router
        self.ban_interval = ban_interval
        self.warn_interval = warn_interval
        self._stop_event = asyncio.Event()
        self._tasks: Dict[str, asyncio.Task] = {}

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks.values())

    # ------------------------------------------------------------------
    # Single sweeps
    # ------------------------------------------------------------------

    async def sweep_expired_bans(self, now: Optional[datetime] = None) -> int:
        """Lift every expired temporary ban. Returns how many were lifted."""
        now = now or utcnow()
        expired = await self.case_service.get_expired(CaseType.BAN, now)
        lifted = 0
        for case in expired:
            try:
                if await self._lift_ban(case, now):
                    lifted += 1
            except Exception as exc:
                failure = SweepItemFailure(case.id, exc)
                logger.error(
                    "[EXPIRY SWEEPER] Ban case #%d in guild %s will be retried: %s",
                    case.case_id, case.guild_id, failure,
                )
        if lifted:
            logger.info("[EXPIRY SWEEPER] Lifted %d expired ban(s)", lifted)
        return lifted

    async def sweep_expired_warns(self, now: Optional[datetime] = None) -> int:
        """Remove every expired warning. Returns how many were removed."""
        now = now or utcnow()
        expired = await self.case_service.get_expired(CaseType.WARN, now)
        removed = 0
        for case in expired:
            try:
                if await self._expire_warn(case, now):
                    removed += 1
            except Exception as exc:
                failure = SweepItemFailure(case.id, exc)
                logger.error(
                    "[EXPIRY SWEEPER] Warn case #%d in guild %s will be retried: %s",
                    case.case_id, case.guild_id, failure,
                )
        if removed:
            logger.info("[EXPIRY SWEEPER] Removed %d expired warning(s)", removed)
        return removed

    async def _lift_ban(self, case: Case, now: datetime) -> bool:
        lang = await self._lang_of(case)
        reason = translator.get("sweeper.expired_ban", lang)
        await self.platform.unban(case.guild_id, case.user_id, reason)
        if not await self.case_service.claim_case(case.id):
            logger.debug("[EXPIRY SWEEPER] Ban case #%d already removed elsewhere", case.case_id)
            return False
        await self.log_router.route(LogCategory.UNBAN, self._bot_context(case, reason, now))
        return True

    async def _expire_warn(self, case: Case, now: datetime) -> bool:
        if not await self.case_service.claim_case(case.id):
            logger.debug("[EXPIRY SWEEPER] Warn case #%d already removed elsewhere", case.case_id)
            return False
        lang = await self._lang_of(case)
        context = self._bot_context(case, translator.get("sweeper.expired_warn", lang), now)
        context.points = case.points
        await self.log_router.route(LogCategory.REMOVE_WARN, context)
        return True

    async def _lang_of(self, case: Case) -> str:
        settings = await self.settings_service.get_settings(case.guild_id)
        return settings.lang if settings is not None else "en"

    def _bot_context(self, case: Case, reason: str, now: datetime) -> LogContext:
        return LogContext(
            guild_id=case.guild_id,
            moderator_id=self.platform.bot_user_id,
            moderator_name=self.platform.bot_user_name,
            user_id=case.user_id,
            reason=reason,
            case_id=case.case_id,
            timestamp=now,
        )

    # ------------------------------------------------------------------
    # Loops
    # ------------------------------------------------------------------

    async def _run_loop(self, name: str, sweep: Callable[[], object], interval: float) -> None:
        """Sweep, wait for the interval or the stop signal, repeat."""
        logger.info("[EXPIRY SWEEPER] %s loop started (interval=%.1fs)", name, interval)
        while not self._stop_event.is_set():
            try:
                await sweep()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("[EXPIRY SWEEPER] %s sweep failed, continuing", name)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
        logger.info("[EXPIRY SWEEPER] %s loop stopped", name)

    def start(self) -> None:
        """Start both loops if they are not already running."""
        if self.is_running:
            logger.warning("[EXPIRY SWEEPER] Already running")
            return
        self._stop_event.clear()
        self._tasks = {
            "ban": asyncio.create_task(self._run_loop("ban", self.sweep_expired_bans, self.ban_interval)),
            "warn": asyncio.create_task(self._run_loop("warn", self.sweep_expired_warns, self.warn_interval)),
        }

    def request_stop(self) -> None:
        """Signal both loops to finish after their current sweep."""
        self._stop_event.set()

    async def shutdown(self, timeout: float = 10.0) -> None:
        """Stop both loops, cancelling them if they do not finish within ``timeout``."""
        self.request_stop()
        tasks = [task for task in self._tasks.values() if not task.done()]
        if tasks:
            _, pending = await asyncio.wait(tasks, timeout=timeout)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
        self._tasks = {}
        logger.info("[EXPIRY SWEEPER] Shutdown complete")
