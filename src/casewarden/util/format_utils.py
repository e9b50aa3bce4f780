from datetime import datetime, timezone

EXCERPT_LIMIT = 1800
EXCERPT_SUFFIX = " [...]"


def format_duration(seconds: int) -> str:
    """
    Convert a duration in seconds to a compact human-readable string.

    Args:
        seconds (int): Duration in seconds.

    Returns:
        str: Duration such as ``"1d 2h"`` or ``"45s"``.
    """
    if seconds <= 0:
        return "0s"
    parts = []
    for unit, size in (("d", 86400), ("h", 3600), ("m", 60), ("s", 1)):
        amount, seconds = divmod(seconds, size)
        if amount:
            parts.append(f"{amount}{unit}")
    return " ".join(parts)


def unix_seconds(value: datetime) -> int:
    """Unix timestamp for Discord ``<t:...>`` markup. Naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def build_excerpt(lines: list[str], limit: int = EXCERPT_LIMIT) -> str:
    """Join message lines, cutting the text at ``limit`` characters.

    Truncated excerpts end with ``" [...]"`` and never exceed ``limit``.
    """
    text = "\n".join(lines)
    if len(text) <= limit:
        return text
    return text[: limit - len(EXCERPT_SUFFIX)] + EXCERPT_SUFFIX
