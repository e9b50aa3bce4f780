import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from casewarden.cog.commands import cases_cmds, config_cmds, help_cmds, moderation_cmds
from casewarden.cog.listener import events_listener, sweeper_cog
from casewarden.datatypes.case_datatypes import CaseType
from casewarden.datatypes.discord_datatypes import GuildID, UserID
from casewarden.moderation.case_removal import RemovalReport, RemovalResult, RemovalStatus

from conftest import GUILD, T0


class FakeMember:
    def __init__(self, member_id=20, position=1, bot=False, administrator=False, name="member"):
        self.id = member_id
        self.bot = bot
        self.name = name
        self.guild_permissions = SimpleNamespace(administrator=administrator)
        self.top_role = SimpleNamespace(position=position)


def make_ctx(guild=True):
    return SimpleNamespace(
        guild=SimpleNamespace(id=GUILD.to_int(), owner_id=1, me=SimpleNamespace(top_role=SimpleNamespace(position=10)))
        if guild else None,
        guild_id=GUILD.to_int() if guild else None,
        author=FakeMember(10, position=5, name="mod"),
        channel=SimpleNamespace(id=777),
        command=SimpleNamespace(qualified_name="test"),
        defer=AsyncMock(),
        respond=AsyncMock(),
        send_followup=AsyncMock(return_value=MagicMock()),
    )


def followup_text(ctx) -> str:
    args, kwargs = ctx.send_followup.call_args
    return args[0] if args else kwargs.get("content", "")


@pytest.fixture
def member_type(monkeypatch):
    monkeypatch.setattr(moderation_cmds.discord, "Member", FakeMember)


@pytest.mark.asyncio
async def test_setup_registers_cogs(engine):
    added = []
    fake_bot = SimpleNamespace(add_cog=added.append)

    for module in (moderation_cmds, cases_cmds, config_cmds, help_cmds, events_listener, sweeper_cog):
        module.setup(fake_bot, engine)

    assert [type(cog).__name__ for cog in added] == [
        "ModerationCog", "CasesCog", "ConfigCog", "HelpCog", "EventsListenerCog", "SweeperCog",
    ]


@pytest.mark.asyncio
async def test_ban_command_runs_engine(engine, platform, cases, configured_guild, member_type):
    cog = moderation_cmds.ModerationCog(SimpleNamespace(), engine)
    ctx = make_ctx()

    await moderation_cmds.ModerationCog.ban.callback(
        cog, ctx, user=FakeMember(), reason="spam", duration=None, delete_messages=0
    )

    ctx.defer.assert_awaited_once_with(ephemeral=True)
    assert platform.called("ban")
    assert "Case #1" in followup_text(ctx)
    assert (await cases.get_case(GUILD, 1)).case_type is CaseType.BAN


@pytest.mark.asyncio
async def test_denial_is_explained(engine, platform, configured_guild, member_type):
    cog = moderation_cmds.ModerationCog(SimpleNamespace(), engine)
    ctx = make_ctx()

    await moderation_cmds.ModerationCog.kick.callback(cog, ctx, user=FakeMember(1), reason=None)

    assert followup_text(ctx) == "You cannot use this command on the server owner."
    assert platform.calls == []


@pytest.mark.asyncio
async def test_unexpected_error_gets_generic_reply(engine, platform, configured_guild, member_type):
    platform.fail.add("kick")
    cog = moderation_cmds.ModerationCog(SimpleNamespace(), engine)
    ctx = make_ctx()

    await moderation_cmds.ModerationCog.kick.callback(cog, ctx, user=FakeMember(), reason=None)

    assert followup_text(ctx).startswith("Something went wrong")


@pytest.mark.asyncio
async def test_non_member_target_is_rejected(engine, platform, configured_guild, member_type):
    cog = moderation_cmds.ModerationCog(SimpleNamespace(), engine)
    ctx = make_ctx()

    await moderation_cmds.ModerationCog.kick.callback(cog, ctx, user=SimpleNamespace(id=20), reason=None)

    assert followup_text(ctx) == "That user is not a member of this server."
    assert platform.calls == []


@pytest.mark.asyncio
async def test_commands_require_a_guild(engine):
    cog = moderation_cmds.ModerationCog(SimpleNamespace(), engine)
    ctx = make_ctx(guild=False)

    await moderation_cmds.ModerationCog.clear_channel.callback(cog, ctx)

    ctx.respond.assert_awaited_once()
    ctx.defer.assert_not_awaited()


@pytest.mark.asyncio
async def test_cases_view_sends_paginated_embed(engine, cases, configured_guild):
    for _ in range(12):
        await cases.create_case(GUILD, UserID(20), UserID(10), CaseType.KICK, created_at=T0)
    cog = cases_cmds.CasesCog(SimpleNamespace(), engine)
    ctx = make_ctx()

    await cases_cmds.CasesCog.view.callback(cog, ctx, user=None, case_id=None, moderator=None, case_type=None)

    kwargs = ctx.send_followup.call_args.kwargs
    assert len(kwargs["embed"].fields) == 10
    assert kwargs["view"].pages == 2


@pytest.mark.asyncio
async def test_cases_view_conflicting_filters(engine, configured_guild):
    cog = cases_cmds.CasesCog(SimpleNamespace(), engine)
    ctx = make_ctx()

    await cases_cmds.CasesCog.view.callback(
        cog, ctx, user=SimpleNamespace(id=20), case_id=1, moderator=None, case_type=None
    )

    assert followup_text(ctx) == "You cannot filter by user and case id at the same time."


@pytest.mark.asyncio
async def test_cases_remove_reports_each_id(engine, cases, configured_guild):
    await cases.create_case(GUILD, UserID(20), UserID(10), CaseType.WARN, created_at=T0)
    cog = cases_cmds.CasesCog(SimpleNamespace(), engine)
    ctx = make_ctx()

    await cases_cmds.CasesCog.remove.callback(cog, ctx, case_ids="1, 2")

    assert followup_text(ctx) == "Case #1 removed.\nCase 2 not found."


@pytest.mark.asyncio
async def test_cases_remove_invalid_input(engine, configured_guild):
    cog = cases_cmds.CasesCog(SimpleNamespace(), engine)
    ctx = make_ctx()

    await cases_cmds.CasesCog.remove.callback(cog, ctx, case_ids="1,abc")

    assert followup_text(ctx) == "`abc` is not a valid case id."


def test_format_removal_report_in_request_order():
    report = RemovalReport([
        RemovalResult(4, RemovalStatus.REVERSE_FAILED),
        RemovalResult(2, RemovalStatus.REMOVED),
    ])
    assert cases_cmds.format_removal_report(report, "en") == (
        "Case #4 could not be reversed and was kept.\nCase #2 removed."
    )


@pytest.mark.asyncio
async def test_config_without_settings(engine):
    cog = config_cmds.ConfigCog(SimpleNamespace(), engine.settings_service)
    ctx = make_ctx()

    await config_cmds.ConfigCog.config.callback(cog, ctx)

    assert followup_text(ctx) == "This server has no settings yet, try again in a moment."


@pytest.mark.asyncio
async def test_config_opens_menu(engine, configured_guild):
    cog = config_cmds.ConfigCog(SimpleNamespace(), engine.settings_service)
    ctx = make_ctx()

    await config_cmds.ConfigCog.config.callback(cog, ctx)

    kwargs = ctx.send_followup.call_args.kwargs
    assert kwargs["embed"].title == "Server configuration"
    assert kwargs["view"].message is ctx.send_followup.return_value


@pytest.mark.asyncio
async def test_events_listener_reconciles_guilds(settings):
    await settings.upsert_settings(GUILD)
    await settings.update_lang(GUILD, "pl")
    bot = SimpleNamespace(
        user=SimpleNamespace(id=2),
        guilds=[SimpleNamespace(id=GUILD.to_int()), SimpleNamespace(id=2000)],
    )
    cog = events_listener.EventsListenerCog(bot, settings)

    await cog.on_ready()

    assert (await settings.get_settings(GUILD)).lang == "pl"
    assert await settings.get_settings(GuildID(2000)) is not None


@pytest.mark.asyncio
async def test_events_listener_guild_join_and_remove(settings):
    cog = events_listener.EventsListenerCog(SimpleNamespace(user=None, guilds=[]), settings)
    guild = SimpleNamespace(id=3000, name="new guild")

    await cog.on_guild_join(guild)
    assert await settings.get_settings(GuildID(3000)) is not None

    await cog.on_guild_remove(guild)
    assert await settings.get_settings(GuildID(3000)) is not None


@pytest.mark.asyncio
async def test_sweeper_cog_starts_once_and_stops(engine):
    cog = sweeper_cog.SweeperCog(SimpleNamespace(), engine.sweeper)

    await cog.on_ready()
    first_tasks = dict(engine.sweeper._tasks)
    await cog.on_ready()
    assert engine.sweeper._tasks == first_tasks

    cog.cog_unload()
    await asyncio.wait_for(asyncio.gather(*first_tasks.values()), timeout=1)
    assert not engine.sweeper.is_running


def slash(name, description="", permissions=None, command_id=None, subcommands=None, parent=None):
    return SimpleNamespace(
        name=name,
        qualified_name=f"{parent} {name}" if parent else name,
        description=description,
        default_member_permissions=permissions,
        id=command_id,
        subcommands=subcommands,
    )


def command_tree():
    return [
        slash("warn", "Warn a user.", discord.Permissions(moderate_members=True), command_id=11),
        slash("help", "List the commands you can use here.", command_id=12),
        slash(
            "clear", "Delete messages.", discord.Permissions(manage_messages=True), command_id=13,
            subcommands=[
                slash("messages", "Delete recent messages.", parent="clear"),
                slash("channel", "Recreate this channel.", parent="clear"),
            ],
        ),
        slash("ban", "Ban a user.", discord.Permissions(ban_members=True)),
    ]


def test_help_lines_hide_commands_without_permission():
    lines = help_cmds.help_lines(command_tree(), discord.Permissions(moderate_members=True))

    assert lines == [
        "</help:12>: List the commands you can use here.",
        "</warn:11>: Warn a user.",
    ]


def test_help_lines_expand_groups_and_mention_unsynced_commands():
    permissions = discord.Permissions(ban_members=True, manage_messages=True, moderate_members=True)

    lines = help_cmds.help_lines(command_tree(), permissions)

    assert lines == [
        "`/ban`: Ban a user.",
        "</clear channel:13>: Recreate this channel.",
        "</clear messages:13>: Delete recent messages.",
        "</help:12>: List the commands you can use here.",
        "</warn:11>: Warn a user.",
    ]


@pytest.mark.asyncio
async def test_help_command_replies_with_usable_commands(engine, configured_guild):
    cog = help_cmds.HelpCog(SimpleNamespace(application_commands=command_tree()), engine)
    ctx = make_ctx()
    ctx.author.guild_permissions = discord.Permissions.none()

    await help_cmds.HelpCog.help_command.callback(cog, ctx)

    _, kwargs = ctx.respond.call_args
    assert kwargs["ephemeral"] is True
    assert kwargs["embed"].title == "Available commands"
    assert kwargs["embed"].description == "</help:12>: List the commands you can use here."


@pytest.mark.asyncio
async def test_help_command_outside_guild(engine):
    cog = help_cmds.HelpCog(SimpleNamespace(application_commands=[]), engine)
    ctx = make_ctx(guild=False)

    await help_cmds.HelpCog.help_command.callback(cog, ctx)

    ctx.respond.assert_awaited_once()
    assert "embed" not in ctx.respond.call_args.kwargs
