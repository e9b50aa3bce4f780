"""
Translation lookup backed by YAML catalogs.

Each language has one catalog in ``locales/<lang>.yml``. Nested mappings are
flattened into dotted keys (``log.title.ban``) and values are ``str.format``
templates. A missing key falls back to English, then to the key itself, so a
gap in a catalog never breaks a command.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from casewarden.util.logger import get_logger

logger = get_logger("translator")

LOCALES_DIR = Path(__file__).parent / "locales"
FALLBACK_LANG = "en"


def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, str]:
    flat: Dict[str, str] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{dotted}."))
        else:
            flat[dotted] = str(value)
    return flat


class Translator:
    """Lazily loads one flattened catalog per language."""

    def __init__(self, locales_dir: Path = LOCALES_DIR) -> None:
        self.locales_dir = locales_dir
        self._catalogs: Dict[str, Dict[str, str]] = {}

    def _catalog(self, lang: str) -> Dict[str, str]:
        if lang not in self._catalogs:
            path = self.locales_dir / f"{lang}.yml"
            try:
                with path.open("r", encoding="utf-8") as f:
                    data = yaml.safe_load(f) or {}
                self._catalogs[lang] = _flatten(data) if isinstance(data, dict) else {}
            except FileNotFoundError:
                logger.warning("[TRANSLATOR] No catalog for language %r", lang)
                self._catalogs[lang] = {}
        return self._catalogs[lang]

    def available_languages(self) -> list[str]:
        return sorted(path.stem for path in self.locales_dir.glob("*.yml"))

    def get(self, key: str, lang: Optional[str] = None, **params: Any) -> str:
        """Return the translated, formatted text for ``key``."""
        template = self._catalog(lang or FALLBACK_LANG).get(key)
        if template is None and lang != FALLBACK_LANG:
            template = self._catalog(FALLBACK_LANG).get(key)
        if template is None:
            logger.debug("[TRANSLATOR] Missing key %r (lang=%r)", key, lang)
            return key
        try:
            return template.format(**params)
        except (KeyError, IndexError, ValueError):
            logger.warning("[TRANSLATOR] Bad placeholders for %r (lang=%r)", key, lang)
            return template


# Shared translator instance
translator = Translator()
