from datetime import timedelta

import pytest

from casewarden.datatypes.case_datatypes import (
    Case,
    CaseFilter,
    CaseType,
    from_timestamp,
    to_timestamp,
    utcnow,
)
from casewarden.datatypes.discord_datatypes import ChannelID, GuildID, UserID
from casewarden.datatypes.guild_settings import GuildSettings
from casewarden.datatypes.log_datatypes import (
    ALL_CATEGORIES,
    ALL_LOG_CATEGORIES_MASK,
    LogCategory,
    disable_categories,
    enable_categories,
    get_active_categories,
    is_category_active,
    set_categories,
)

from conftest import T0


class DummyObj:
    def __init__(self, id_val):
        self.id = id_val


def test_snowflake_construction_and_equality():
    u1 = UserID(12345)
    u2 = UserID("12345")
    assert u1 == u2
    assert u1 == 12345
    assert u1 == "12345"
    assert int(u1) == 12345
    assert str(u1) == "12345"
    assert UserID.from_object(DummyObj(12345)) == u1
    assert len({u1, u2, UserID(1)}) == 2


def test_snowflake_rejects_invalid_values():
    with pytest.raises(ValueError):
        UserID([])  # type: ignore
    with pytest.raises(ValueError):
        GuildID(True)  # type: ignore
    with pytest.raises(ValueError):
        ChannelID(-1)


def test_timestamps_round_to_seconds():
    now = utcnow()
    assert now.microsecond == 0
    assert from_timestamp(to_timestamp(T0)) == T0


def _case(**overrides) -> Case:
    values = dict(
        id=None, guild_id=GuildID(1), user_id=UserID(2), moderator_id=UserID(3),
        case_id=1, case_type=CaseType.KICK, reason=None, created_at=T0,
    )
    values.update(overrides)
    return Case(**values)


def test_case_invariants():
    with pytest.raises(ValueError):
        _case(case_id=0)
    with pytest.raises(ValueError):
        _case(case_type=CaseType.MUTE)
    with pytest.raises(ValueError):
        _case(case_type=CaseType.BAN, end_date=T0)
    with pytest.raises(ValueError):
        _case(case_type=CaseType.KICK, points=2)


def test_warn_points_default_to_one():
    assert _case(case_type=CaseType.WARN).points == 1


def test_case_is_active():
    case = _case(case_type=CaseType.MUTE, end_date=T0 + timedelta(hours=1))
    assert case.is_active(T0 + timedelta(minutes=59))
    assert not case.is_active(T0 + timedelta(hours=1))
    assert _case().is_active(T0 + timedelta(days=999))


@pytest.mark.parametrize(
    "kwargs, conflict",
    [
        (dict(user_id=UserID(1), case_id=1), "user_and_id"),
        (dict(case_id=1, case_type=CaseType.BAN), "id_and_type"),
        (dict(case_id=1, moderator_id=UserID(3)), "id_and_moderator"),
        (dict(moderator_id=UserID(3), case_type=CaseType.BAN), "moderator_and_type"),
        (dict(moderator_id=UserID(3), user_id=UserID(1)), "moderator_and_user"),
        (dict(user_id=UserID(1), case_type=CaseType.WARN), None),
        (dict(), None),
    ],
)
def test_case_filter_conflicts(kwargs, conflict):
    assert CaseFilter(**kwargs).conflict() == conflict


def test_all_categories_mask():
    assert len(ALL_CATEGORIES) == 12
    assert ALL_LOG_CATEGORIES_MASK == 4095
    assert get_active_categories(4095) == frozenset(ALL_CATEGORIES)
    assert get_active_categories(0) == frozenset()


def test_category_bit_positions_are_stable():
    assert int(LogCategory.CLEAR_MESSAGES) == 1
    assert int(LogCategory.BAN) == 1 << 7
    assert int(LogCategory.REMOVE_MULTIPLE_WARNS) == 1 << 11
    assert LogCategory.REMOVE_WARN.key == "remove_warn"


def test_enable_and_disable_are_set_operations():
    mask = enable_categories(0, [LogCategory.BAN, LogCategory.KICK])
    assert get_active_categories(mask) == {LogCategory.BAN, LogCategory.KICK}

    mask = enable_categories(mask, [LogCategory.WARN])
    assert get_active_categories(mask) == {LogCategory.BAN, LogCategory.KICK, LogCategory.WARN}

    mask = disable_categories(mask, [LogCategory.BAN])
    assert not is_category_active(mask, LogCategory.BAN)
    assert is_category_active(mask, LogCategory.KICK)


def test_set_categories_replaces_mask():
    mask = set_categories(ALL_LOG_CATEGORIES_MASK, [LogCategory.UNBAN])
    assert get_active_categories(mask) == {LogCategory.UNBAN}
    assert set_categories(mask, []) == 0


def test_guild_settings_log_categories():
    settings = GuildSettings(GuildID(1), log_types=int(LogCategory.MUTE | LogCategory.UNMUTE))
    assert settings.log_categories == {LogCategory.MUTE, LogCategory.UNMUTE}
