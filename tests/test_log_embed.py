import pytest

from casewarden.datatypes.discord_datatypes import ChannelID, GuildID, UserID
from casewarden.datatypes.log_datatypes import LogCategory, LogContext, RemovedWarn
from casewarden.ui.log_embed import CATEGORY_COLORS, build_log_embed
from casewarden.util.format_utils import build_excerpt, format_duration, unix_seconds

from conftest import T0


def base_context(**overrides) -> LogContext:
    values = dict(guild_id=GuildID(1), moderator_id=UserID(10), moderator_name="mod", timestamp=T0)
    values.update(overrides)
    return LogContext(**values)


@pytest.mark.parametrize(
    "seconds, text",
    [(0, "0s"), (45, "45s"), (600, "10m"), (93600, "1d 2h"), (90061, "1d 1h 1m 1s")],
)
def test_format_duration(seconds, text):
    assert format_duration(seconds) == text


def test_unix_seconds():
    assert unix_seconds(T0) == 1704110400
    assert unix_seconds(T0.replace(tzinfo=None)) == 1704110400


def test_build_excerpt_truncates():
    assert build_excerpt(["a", "b"]) == "a\nb"
    long = build_excerpt(["x" * 50], limit=20)
    assert len(long) == 20
    assert long.endswith(" [...]")


def test_every_category_has_a_color():
    assert set(CATEGORY_COLORS) == set(LogCategory)


def test_ban_embed_fields():
    embed = build_log_embed(
        LogCategory.BAN,
        base_context(user_id=UserID(20), reason=None, duration="7d", case_id=3),
    )
    assert embed.title == "User Banned"
    assert "<@20>" in embed.description
    assert "No reason provided" in embed.description
    assert "7d" in embed.description
    assert "#3" in embed.description
    assert embed.timestamp == T0
    assert embed.footer.text == "Action by: mod (10)"


def test_permanent_ban_embed():
    embed = build_log_embed(LogCategory.BAN, base_context(user_id=UserID(20), case_id=1))
    assert "Permanent" in embed.description


def test_purge_embed_without_messages():
    embed = build_log_embed(
        LogCategory.CLEAR_MESSAGES, base_context(channel_id=ChannelID(5), message_count=0)
    )
    assert embed.title == "0 Messages Purged"
    assert "Could not log messages" in embed.description


def test_clear_channel_embed():
    embed = build_log_embed(LogCategory.CLEAR_CHANNEL, base_context(channel_id=ChannelID(5)))
    assert "<#5>" in embed.description
    assert "All messages purged" in embed.description


def test_remove_multiple_warns_groups_by_user():
    embed = build_log_embed(
        LogCategory.REMOVE_MULTIPLE_WARNS,
        base_context(removed_warns=[
            RemovedWarn(UserID(20), 1, 1),
            RemovedWarn(UserID(21), 2, 3),
            RemovedWarn(UserID(20), 5, 2),
        ]),
    )
    description = embed.description
    assert description.count("<@20>") == 1
    assert description.index("Case #1") < description.index("Case #5") < description.index("<@21>")
