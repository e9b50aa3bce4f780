"""
Pytest configuration and fixtures for CaseWarden tests.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import pytest
import pytest_asyncio

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from casewarden.database.db_connection import ConnectionManager  # noqa: E402
from casewarden.database.db_schema import SchemaManager  # noqa: E402
from casewarden.datatypes.discord_datatypes import ChannelID, GuildID, UserID  # noqa: E402
from casewarden.moderation.action_executor import ActionRequest  # noqa: E402
from casewarden.moderation.moderation_engine import ModerationEngine  # noqa: E402
from casewarden.moderation.platform import PurgedMessage  # noqa: E402
from casewarden.moderation.policy import GuildContext, MemberSnapshot  # noqa: E402
from casewarden.services.case_service import CaseService  # noqa: E402
from casewarden.services.guild_settings_service import GuildSettingsService  # noqa: E402

GUILD = GuildID(1000)
OWNER = UserID(1)
BOT = UserID(2)
MODERATOR = MemberSnapshot(UserID(10), top_role_position=5)
TARGET = MemberSnapshot(UserID(20), top_role_position=1)
LOG_CHANNEL = ChannelID(555)
TEXT_CHANNEL = ChannelID(777)
GUILD_CONTEXT = GuildContext(owner_id=OWNER, bot_top_role_position=10)
T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakePlatform:
    """Records every platform call; ``fail`` names methods that should raise."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.sent: List[tuple] = []
        self.fail: set = set()
        self.locked_channels: set = set()
        self.messages: List[PurgedMessage] = []
        self.next_channel_id = 9000

    @property
    def bot_user_id(self) -> UserID:
        return BOT

    @property
    def bot_user_name(self) -> str:
        return "CaseWarden"

    def _record(self, name: str, *args) -> None:
        if name in self.fail:
            raise RuntimeError(f"{name} failed")
        self.calls.append((name, *args))

    def called(self, name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]

    async def ban(self, guild_id, user_id, delete_message_days, reason) -> None:
        self._record("ban", guild_id, user_id, delete_message_days, reason)

    async def unban(self, guild_id, user_id, reason) -> None:
        self._record("unban", guild_id, user_id, reason)

    async def kick(self, guild_id, user_id, reason) -> None:
        self._record("kick", guild_id, user_id, reason)

    async def timeout(self, guild_id, user_id, until, reason) -> None:
        self._record("timeout", guild_id, user_id, until, reason)

    async def remove_timeout(self, guild_id, user_id, reason) -> None:
        self._record("remove_timeout", guild_id, user_id, reason)

    async def is_channel_locked(self, guild_id, channel_id) -> bool:
        return channel_id.to_int() in self.locked_channels

    async def set_channel_lock(self, guild_id, channel_id, locked, reason) -> None:
        self._record("set_channel_lock", guild_id, channel_id, locked, reason)
        if locked:
            self.locked_channels.add(channel_id.to_int())
        else:
            self.locked_channels.discard(channel_id.to_int())

    async def purge_messages(self, guild_id, channel_id, limit, author_id=None) -> List[PurgedMessage]:
        self._record("purge_messages", guild_id, channel_id, limit, author_id)
        return self.messages[:limit]

    async def recreate_channel(self, guild_id, channel_id, reason) -> ChannelID:
        self._record("recreate_channel", guild_id, channel_id, reason)
        return ChannelID(self.next_channel_id)

    async def send_embed(self, channel_id, embed) -> None:
        if "send_embed" in self.fail:
            raise RuntimeError("send_embed failed")
        self.sent.append((channel_id, embed))


def make_request(
    target: Optional[MemberSnapshot] = TARGET,
    channel_id: Optional[ChannelID] = None,
    now: datetime = T0,
    **params,
) -> ActionRequest:
    return ActionRequest(
        guild_id=GUILD,
        guild=GUILD_CONTEXT,
        actor=MODERATOR,
        actor_name="mod",
        target=target,
        channel_id=channel_id,
        now=now,
        **params,
    )


@pytest_asyncio.fixture
async def db(tmp_path):
    manager = ConnectionManager()
    await manager.open(tmp_path / "casewarden.db")
    await SchemaManager.initialize_schema(manager.connection)
    yield manager
    await manager.close()


@pytest.fixture
def cases(db) -> CaseService:
    return CaseService(db)


@pytest.fixture
def settings(db) -> GuildSettingsService:
    return GuildSettingsService(db)


@pytest.fixture
def platform() -> FakePlatform:
    return FakePlatform()


@pytest_asyncio.fixture
async def configured_guild(settings):
    """GUILD with default settings and LOG_CHANNEL as its log channel."""
    await settings.upsert_settings(GUILD)
    await settings.update_log_channel(GUILD, LOG_CHANNEL)
    return GUILD


@pytest.fixture
def engine(cases, settings, platform) -> ModerationEngine:
    return ModerationEngine(cases, settings, platform, ban_sweep_interval=0.01, warn_sweep_interval=0.01)
