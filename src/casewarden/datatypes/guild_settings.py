"""
Persistent per-guild configuration.

Database schema:
- guild_settings table with columns: guild_id, lang, default_log_channel,
  log_types, warn_expire_time
"""
from dataclasses import dataclass
from typing import FrozenSet, Optional

from casewarden.datatypes.discord_datatypes import ChannelID, GuildID
from casewarden.datatypes.log_datatypes import ALL_LOG_CATEGORIES_MASK, LogCategory, get_active_categories

SUPPORTED_LANGUAGES = ("en", "pl")


@dataclass(slots=True)
class GuildSettings:
    """Persistent per-guild configuration values."""

    guild_id: GuildID
    lang: str = "en"
    default_log_channel: Optional[ChannelID] = None
    log_types: int = ALL_LOG_CATEGORIES_MASK
    warn_expire_time: int = 3

    @property
    def log_categories(self) -> FrozenSet[LogCategory]:
        return get_active_categories(self.log_types)


@dataclass(slots=True, frozen=True)
class GuildDefaults:
    """Values written for a guild the first time it is seen."""

    lang: str = "en"
    log_types: int = ALL_LOG_CATEGORIES_MASK
    warn_expire_time: int = 3
