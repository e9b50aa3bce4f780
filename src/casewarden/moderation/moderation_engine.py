"""
Entry point of the moderation core for the command layer.

The engine wires the executors, case removal and the expiry sweeper to one
set of collaborators (case store, settings store, platform, log router).
"""

from __future__ import annotations

from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from casewarden.datatypes.case_datatypes import Case, CaseFilter
from casewarden.datatypes.discord_datatypes import GuildID, UserID
from casewarden.moderation.action_executor import (
    EXECUTOR_CLASSES,
    ActionExecutor,
    ActionRequest,
    Confirmation,
)
from casewarden.moderation.case_removal import CaseRemover, RemovalReport
from casewarden.moderation.expiry_sweeper import ExpirySweeper
from casewarden.moderation.log_router import LogRouter
from casewarden.moderation.platform import ModerationPlatform
from casewarden.moderation.policy import ActionKind
from casewarden.services.case_service import CaseService
from casewarden.services.guild_settings_service import GuildSettingsService
from casewarden.util.logger import get_logger

logger = get_logger("moderation_engine")


class ModerationEngine:
    def __init__(
        self,
        case_service: CaseService,
        settings_service: GuildSettingsService,
        platform: ModerationPlatform,
        ban_sweep_interval: float = 15.0,
        warn_sweep_interval: float = 3600.0,
    ) -> None:
        self.case_service = case_service
        self.settings_service = settings_service
        self.platform = platform
        self.log_router = LogRouter(settings_service, platform)
        self.executors: Dict[ActionKind, ActionExecutor] = {
            kind: cls(case_service, settings_service, platform, self.log_router)
            for kind, cls in EXECUTOR_CLASSES.items()
        }
        self.case_remover = CaseRemover(case_service, platform, self.log_router)
        self.sweeper = ExpirySweeper(
            case_service,
            settings_service,
            platform,
            self.log_router,
            ban_interval=ban_sweep_interval,
            warn_interval=warn_sweep_interval,
        )

    async def execute_action(
        self,
        kind: ActionKind,
        request: ActionRequest,
        on_confirmed: Optional[Callable[[Confirmation], Awaitable[None]]] = None,
    ) -> Confirmation:
        """Run one moderation action through its executor.

        ``on_confirmed`` is awaited with the confirmation before the log
        notification is sent, so the invoking user is answered first.

        Raises:
            PolicyDenial, UsageError: Rejected before any side effect.
            ExternalActionFailure: The platform refused the mutation.
            PersistenceFailure: The platform changed but the case was not stored.
        """
        return await self.executors[kind].execute(request, on_confirmed)

    async def remove_cases(
        self,
        guild_id: GuildID,
        moderator_id: UserID,
        moderator_name: str,
        case_ids: Sequence[int],
        now: Optional[datetime] = None,
    ) -> RemovalReport:
        return await self.case_remover.remove_cases(guild_id, moderator_id, moderator_name, case_ids, now)

    async def list_cases(self, guild_id: GuildID, case_filter: Optional[CaseFilter] = None) -> List[Case]:
        return await self.case_service.list_cases(guild_id, case_filter)
