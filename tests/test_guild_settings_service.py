import pytest

from casewarden.datatypes.discord_datatypes import ChannelID, GuildID
from casewarden.datatypes.guild_settings import GuildDefaults
from casewarden.datatypes.log_datatypes import ALL_LOG_CATEGORIES_MASK, LogCategory

from conftest import GUILD


@pytest.mark.asyncio
async def test_missing_guild_has_no_settings(settings):
    assert await settings.get_settings(GUILD) is None


@pytest.mark.asyncio
async def test_upsert_creates_defaults_once(settings):
    assert await settings.upsert_settings(GUILD) is True
    stored = await settings.get_settings(GUILD)
    assert stored.lang == "en"
    assert stored.default_log_channel is None
    assert stored.log_types == ALL_LOG_CATEGORIES_MASK
    assert stored.warn_expire_time == 3

    await settings.update_lang(GUILD, "pl")
    assert await settings.upsert_settings(GUILD, GuildDefaults(lang="en")) is False
    assert (await settings.get_settings(GUILD)).lang == "pl"


@pytest.mark.asyncio
async def test_upsert_many_keeps_existing_rows(settings):
    await settings.upsert_settings(GUILD)
    await settings.update_warn_expire_time(GUILD, 14)

    await settings.upsert_many([GUILD, GuildID(2000), GuildID(3000)], GuildDefaults(warn_expire_time=7))

    all_settings = await settings.get_all()
    assert set(all_settings) == {1000, 2000, 3000}
    assert all_settings[1000].warn_expire_time == 14
    assert all_settings[2000].warn_expire_time == 7


@pytest.mark.asyncio
async def test_single_field_updates(settings):
    await settings.upsert_settings(GUILD)

    assert await settings.update_log_channel(GUILD, ChannelID(555)) is True
    assert await settings.update_log_types(GUILD, int(LogCategory.BAN | LogCategory.WARN)) is True
    assert await settings.update_warn_expire_time(GUILD, 30) is True

    stored = await settings.get_settings(GUILD)
    assert stored.default_log_channel == ChannelID(555)
    assert stored.log_categories == {LogCategory.BAN, LogCategory.WARN}
    assert stored.warn_expire_time == 30

    await settings.update_log_channel(GUILD, None)
    assert (await settings.get_settings(GUILD)).default_log_channel is None


@pytest.mark.asyncio
async def test_update_of_unknown_guild_reports_false(settings):
    assert await settings.update_lang(GuildID(42), "en") is False


@pytest.mark.asyncio
async def test_updates_validate_values(settings):
    await settings.upsert_settings(GUILD)
    with pytest.raises(ValueError):
        await settings.update_log_types(GUILD, 1 << 12)
    with pytest.raises(ValueError):
        await settings.update_warn_expire_time(GUILD, 0)
    with pytest.raises(ValueError):
        await settings.update_lang(GUILD, "de")
