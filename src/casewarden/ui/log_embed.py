"""
Embed rendering for log channel notifications.

Each category has a localized title and its own set of description lines.
The footer names the moderator; warnings removed by the expiry sweeper are
attributed to the bot itself.
"""

from __future__ import annotations

import datetime
from collections import OrderedDict
from typing import Dict, List, Tuple

import discord

from casewarden.datatypes.log_datatypes import LogCategory, LogContext
from casewarden.localization.translator import translator

# Color mapping for log categories
CATEGORY_COLORS = {
    LogCategory.CLEAR_MESSAGES: discord.Color.blurple(),
    LogCategory.CLEAR_CHANNEL: discord.Color.blurple(),
    LogCategory.MUTE: discord.Color.orange(),
    LogCategory.UNMUTE: discord.Color.green(),
    LogCategory.KICK: discord.Color.red(),
    LogCategory.LOCK: discord.Color.dark_grey(),
    LogCategory.UNLOCK: discord.Color.green(),
    LogCategory.BAN: discord.Color.dark_red(),
    LogCategory.UNBAN: discord.Color.green(),
    LogCategory.WARN: discord.Color.gold(),
    LogCategory.REMOVE_WARN: discord.Color.green(),
    LogCategory.REMOVE_MULTIPLE_WARNS: discord.Color.green(),
}

# Description lines per category, in display order
_CATEGORY_FIELDS: Dict[LogCategory, Tuple[str, ...]] = {
    LogCategory.MUTE: ("user", "reason", "duration", "case_id"),
    LogCategory.UNMUTE: ("user", "case_id"),
    LogCategory.KICK: ("user", "reason", "case_id"),
    LogCategory.LOCK: ("channel", "reason"),
    LogCategory.UNLOCK: ("channel", "reason"),
    LogCategory.BAN: ("user", "reason", "duration", "case_id"),
    LogCategory.UNBAN: ("user", "reason", "case_id"),
    LogCategory.WARN: ("user", "reason", "points", "case_id"),
    LogCategory.REMOVE_WARN: ("user", "reason", "points", "case_id"),
}


def _field_value(name: str, context: LogContext, lang: str) -> str | None:
    if name == "user":
        return f"<@{context.user_id}>" if context.user_id is not None else None
    if name == "channel":
        return f"<#{context.channel_id}>" if context.channel_id is not None else None
    if name == "reason":
        return context.reason or translator.get("log.no_reason", lang)
    if name == "duration":
        return context.duration or translator.get("log.permanent", lang)
    if name == "case_id":
        return f"#{context.case_id}" if context.case_id is not None else None
    if name == "points":
        return str(context.points) if context.points is not None else None
    return None


def _describe(category: LogCategory, context: LogContext, lang: str) -> str:
    channel_line = f"`{translator.get('log.field.channel', lang)}:` <#{context.channel_id}>"

    if category is LogCategory.CLEAR_MESSAGES:
        excerpt = context.message_excerpt or translator.get("log.no_messages", lang)
        return f"{channel_line}\n\n```{excerpt}```"

    if category is LogCategory.CLEAR_CHANNEL:
        return f"{channel_line}\n\n```{translator.get('log.all_messages_purged', lang)}```"

    if category is LogCategory.REMOVE_MULTIPLE_WARNS:
        by_user: Dict[int, List[str]] = OrderedDict()
        for warn in context.removed_warns:
            line = translator.get("log.case_line", lang, case_id=warn.case_id, points=warn.points)
            by_user.setdefault(warn.user_id.to_int(), []).append(f"  {line}")
        blocks = [f"<@{user_id}>:\n" + "\n".join(lines) for user_id, lines in by_user.items()]
        return f"`{translator.get('log.field.warnings_removed', lang)}:`\n" + "\n\n".join(blocks)

    lines = []
    for name in _CATEGORY_FIELDS.get(category, ()):
        value = _field_value(name, context, lang)
        if value is not None:
            lines.append(f"`{translator.get(f'log.field.{name}', lang)}:` {value}")
    return "\n".join(lines)


def build_log_embed(category: LogCategory, context: LogContext, lang: str = "en") -> discord.Embed:
    """Render the notification for one completed action."""
    title = translator.get(f"log.title.{category.key}", lang, count=context.message_count or 0)
    embed = discord.Embed(
        title=title,
        description=_describe(category, context, lang),
        color=CATEGORY_COLORS.get(category, discord.Color.default()),
        timestamp=context.timestamp or datetime.datetime.now(datetime.timezone.utc),
    )
    embed.set_footer(text=translator.get("log.footer", lang, name=context.moderator_name, id=context.moderator_id))
    return embed
