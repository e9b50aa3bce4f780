from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from casewarden.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_DB_PATH = "./data/casewarden.db"
DEFAULT_BAN_SWEEP_SECONDS = 15.0
DEFAULT_WARN_SWEEP_SECONDS = 3600.0
DEFAULT_LANG = "en"
DEFAULT_WARN_EXPIRE_DAYS = 3
DEFAULT_LOG_TYPES = 4095
DEFAULT_INTERACTION_TIMEOUT = 60.0


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches the contents of ``./config/app_config.yml`` and exposes
    typed shortcuts for the database location, the expiry sweeper intervals,
    the defaults written for newly joined guilds and the interaction timeout.
    Uses fcntl file locks for safe concurrent access across processes.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                if not isinstance(data, dict):
                    logger.error("[APP CONFIGURATION] Config file %s is not a mapping.", self.config_path)
                    return {}
                return data
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
        return {}

    def _section(self, name: str) -> Dict[str, Any]:
        value = self._data.get(name, {})
        return value if isinstance(value, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping (do not mutate)."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def database_path(self) -> Path:
        """Return the SQLite database file location."""
        return Path(str(self._section("database").get("path", DEFAULT_DB_PATH))).resolve()

    @property
    def ban_sweep_interval(self) -> float:
        """Seconds between two expired-ban sweeps. Default is 15 seconds."""
        return float(self._section("expiry_sweeper").get("ban_interval_seconds", DEFAULT_BAN_SWEEP_SECONDS))

    @property
    def warn_sweep_interval(self) -> float:
        """Seconds between two expired-warning sweeps. Default is one hour."""
        return float(self._section("expiry_sweeper").get("warn_interval_seconds", DEFAULT_WARN_SWEEP_SECONDS))

    @property
    def default_lang(self) -> str:
        return str(self._section("guild_defaults").get("lang", DEFAULT_LANG))

    @property
    def default_warn_expire_days(self) -> int:
        return int(self._section("guild_defaults").get("warn_expire_days", DEFAULT_WARN_EXPIRE_DAYS))

    @property
    def default_log_types(self) -> int:
        return int(self._section("guild_defaults").get("log_types", DEFAULT_LOG_TYPES))

    @property
    def interaction_timeout(self) -> float:
        """Seconds an interactive menu waits for the user before giving up."""
        return float(self._data.get("interaction_timeout_seconds", DEFAULT_INTERACTION_TIMEOUT))


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
