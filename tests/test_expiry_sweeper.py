import asyncio
from datetime import timedelta

import pytest

from casewarden.datatypes.case_datatypes import CaseType
from casewarden.datatypes.discord_datatypes import GuildID, UserID
from casewarden.moderation.expiry_sweeper import ExpirySweeper

from conftest import BOT, GUILD, T0

MOD = UserID(10)
USER = UserID(20)


@pytest.mark.asyncio
async def test_warn_expires_after_guild_expiry_time(engine, platform, cases, configured_guild):
    warn = await cases.create_case(
        GUILD, USER, MOD, CaseType.WARN, points=2, end_date=T0 + timedelta(days=3), created_at=T0
    )

    assert await engine.sweeper.sweep_expired_warns(T0 + timedelta(days=3) - timedelta(seconds=1)) == 0
    assert await engine.sweeper.sweep_expired_warns(T0 + timedelta(days=3, seconds=1)) == 1

    assert await cases.get_case(GUILD, warn.case_id) is None
    assert len(platform.sent) == 1
    embed = platform.sent[0][1]
    assert embed.title == "Warning Removed"
    assert "Expired warn" in embed.description
    assert f"({BOT})" in embed.footer.text


@pytest.mark.asyncio
async def test_non_expiring_warn_is_kept(engine, cases, configured_guild):
    await cases.create_case(GUILD, USER, MOD, CaseType.WARN, created_at=T0)
    assert await engine.sweeper.sweep_expired_warns(T0 + timedelta(days=365)) == 0
    assert len(await cases.list_cases(GUILD)) == 1


@pytest.mark.asyncio
async def test_ban_sweep_is_idempotent(engine, platform, cases, configured_guild):
    await cases.create_case(GUILD, USER, MOD, CaseType.BAN, end_date=T0 + timedelta(minutes=10), created_at=T0)
    later = T0 + timedelta(minutes=11)

    assert await engine.sweeper.sweep_expired_bans(later) == 1
    assert await engine.sweeper.sweep_expired_bans(later) == 0

    assert len(platform.called("unban")) == 1
    assert [embed.title for _, embed in platform.sent] == ["User Unbanned"]
    assert await cases.list_cases(GUILD) == []


@pytest.mark.asyncio
async def test_failed_unban_is_retried(engine, platform, cases, configured_guild):
    await cases.create_case(GUILD, USER, MOD, CaseType.BAN, end_date=T0 + timedelta(minutes=1), created_at=T0)
    later = T0 + timedelta(minutes=2)

    platform.fail.add("unban")
    assert await engine.sweeper.sweep_expired_bans(later) == 0
    assert len(await cases.list_cases(GUILD)) == 1

    platform.fail.clear()
    assert await engine.sweeper.sweep_expired_bans(later) == 1
    assert await cases.list_cases(GUILD) == []


@pytest.mark.asyncio
async def test_one_failing_case_does_not_stop_the_sweep(engine, platform, cases, configured_guild):
    await cases.create_case(GUILD, USER, MOD, CaseType.BAN, end_date=T0 + timedelta(minutes=1), created_at=T0)
    await cases.create_case(GuildID(2000), USER, MOD, CaseType.BAN, end_date=T0 + timedelta(minutes=1), created_at=T0)

    original_unban = platform.unban

    async def flaky_unban(guild_id, user_id, reason):
        if guild_id == GUILD:
            raise RuntimeError("missing permissions")
        await original_unban(guild_id, user_id, reason)

    platform.unban = flaky_unban

    assert await engine.sweeper.sweep_expired_bans(T0 + timedelta(minutes=5)) == 1
    assert len(await cases.list_cases(GUILD)) == 1
    assert await cases.list_cases(GuildID(2000)) == []


@pytest.mark.asyncio
async def test_concurrent_sweepers_log_a_warning_once(engine, cases, settings, platform, configured_guild):
    await cases.create_case(GUILD, USER, MOD, CaseType.WARN, end_date=T0 + timedelta(days=1), created_at=T0)
    second = ExpirySweeper(cases, settings, platform, engine.log_router)
    later = T0 + timedelta(days=2)

    results = await asyncio.gather(
        engine.sweeper.sweep_expired_warns(later),
        second.sweep_expired_warns(later),
    )

    assert sum(results) == 1
    assert len(platform.sent) == 1


@pytest.mark.asyncio
async def test_loops_start_and_shut_down(engine):
    sweeper = engine.sweeper
    sweeper.start()
    assert sweeper.is_running
    await asyncio.sleep(0.05)

    await sweeper.shutdown(timeout=1)
    assert not sweeper.is_running
