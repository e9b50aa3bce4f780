import sys
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from casewarden import main


def test_resolve_base_dir_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("CASEWARDEN_HOME", str(tmp_path))

    assert main.resolve_base_dir() == tmp_path.resolve()


def test_resolve_base_dir_compiled(tmp_path, monkeypatch):
    monkeypatch.delenv("CASEWARDEN_HOME", raising=False)
    monkeypatch.setattr(sys, "frozen", True, raising=False)
    monkeypatch.setattr(sys, "argv", [str(tmp_path / "casewarden.exe")])

    assert main.resolve_base_dir() == tmp_path.resolve()


def test_resolve_base_dir_source(monkeypatch):
    monkeypatch.delenv("CASEWARDEN_HOME", raising=False)
    monkeypatch.setattr(sys, "frozen", False, raising=False)
    monkeypatch.setattr(sys, "compiled", False, raising=False)

    assert main.resolve_base_dir() == main.Path(main.__file__).resolve().parents[2]


def test_load_environment_requires_token(monkeypatch):
    monkeypatch.setattr(main, "load_dotenv", lambda **kwargs: False)
    monkeypatch.delenv("DISCORD_BOT_TOKEN", raising=False)

    with pytest.raises(SystemExit) as exc_info:
        main.load_environment()
    assert exc_info.value.code == 1


def test_load_environment_returns_token(monkeypatch):
    monkeypatch.setattr(main, "load_dotenv", lambda **kwargs: True)
    monkeypatch.setenv("DISCORD_BOT_TOKEN", "abc")

    assert main.load_environment() == "abc"


def test_build_intents():
    intents = main.build_intents()
    assert intents.guilds
    assert intents.members


@pytest.mark.asyncio
async def test_async_main_stops_when_database_fails(monkeypatch):
    monkeypatch.setattr(main, "load_environment", lambda: "token")
    monkeypatch.setattr(main, "initialize_database", AsyncMock(return_value=False))
    create_bot = AsyncMock()
    monkeypatch.setattr(main, "create_bot", create_bot)

    assert await main.async_main() == 1
    create_bot.assert_not_called()


@pytest.mark.asyncio
async def test_shutdown_runtime_closes_everything(monkeypatch):
    shutdown_db = AsyncMock()
    monkeypatch.setattr(main, "shutdown_database", shutdown_db)
    engine = SimpleNamespace(sweeper=SimpleNamespace(shutdown=AsyncMock()))
    bot = SimpleNamespace(is_closed=lambda: False, close=AsyncMock())

    await main.shutdown_runtime(bot, engine)

    engine.sweeper.shutdown.assert_awaited_once()
    bot.close.assert_awaited_once()
    shutdown_db.assert_awaited_once()


@pytest.mark.asyncio
async def test_shutdown_runtime_continues_after_errors(monkeypatch):
    shutdown_db = AsyncMock()
    monkeypatch.setattr(main, "shutdown_database", shutdown_db)
    engine = SimpleNamespace(sweeper=SimpleNamespace(shutdown=AsyncMock(side_effect=RuntimeError("boom"))))

    await main.shutdown_runtime(None, engine)

    shutdown_db.assert_awaited_once()


def test_main_maps_system_exit(monkeypatch):
    def fail():
        raise SystemExit(3)

    monkeypatch.setattr(main.asyncio, "run", lambda coro: (coro.close(), fail()))
    assert main.main() == 3
