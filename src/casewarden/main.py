"""
CaseWarden Discord Moderation Bot
=================================

Slash-command moderation with a persistent case history per server:
bans, kicks, mutes and weighted warnings become numbered cases, temporary
bans and expiring warnings are lifted automatically, and every action can be
announced in a configured log channel.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. CASEWARDEN_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("CASEWARDEN_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from casewarden.configuration.app_configuration import app_config
from casewarden.database.database import initialize_database, shutdown_database
from casewarden.moderation.moderation_engine import ModerationEngine
from casewarden.moderation.platform import DiscordPlatform
from casewarden.services.case_service import case_service
from casewarden.services.guild_settings_service import guild_settings_service
from casewarden.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Guild and member events are all the moderation commands need."""
    intents = discord.Intents.default()
    intents.guilds = True
    intents.members = True
    return intents


def build_engine(bot: discord.Bot) -> ModerationEngine:
    return ModerationEngine(
        case_service,
        guild_settings_service,
        DiscordPlatform(bot),
        ban_sweep_interval=app_config.ban_sweep_interval,
        warn_sweep_interval=app_config.warn_sweep_interval,
    )


def load_cogs(bot: discord.Bot, engine: ModerationEngine) -> None:
    """Register all cogs with the bot, each bound to the same engine."""
    from casewarden.cog.commands import cases_cmds, config_cmds, help_cmds, moderation_cmds
    from casewarden.cog.listener import events_listener, sweeper_cog

    events_listener.setup(bot, engine)
    sweeper_cog.setup(bot, engine)
    moderation_cmds.setup(bot, engine)
    cases_cmds.setup(bot, engine)
    config_cmds.setup(bot, engine)
    help_cmds.setup(bot, engine)

    logger.info("All cogs loaded successfully.")


def create_bot() -> tuple[discord.Bot, ModerationEngine]:
    bot = discord.Bot(intents=build_intents())
    engine = build_engine(bot)
    load_cogs(bot, engine)
    return bot, engine


async def start_bot(bot: discord.Bot, token: str) -> None:
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot | None, engine: ModerationEngine | None) -> None:
    """Stop the sweeper, close the Discord client and the database."""
    if engine is not None:
        try:
            await engine.sweeper.shutdown()
        except Exception as exc:
            logger.exception("Error during expiry sweeper shutdown: %s", exc)

    if bot is not None and not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("Error while closing the Discord client: %s", exc)

    try:
        await shutdown_database()
    except Exception as exc:
        logger.exception("Error during database shutdown: %s", exc)

    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the database and the bot, returning an exit code."""
    token = load_environment()

    logger.info("Initializing database...")
    if not await initialize_database(app_config.database_path):
        logger.critical("Failed to initialize database at %s", app_config.database_path)
        return 1

    try:
        bot, engine = create_bot()
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        await shutdown_database()
        return 1

    exit_code = 0
    try:
        await start_bot(bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, engine)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process code."""
    logger.info("Starting CaseWarden…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    sys.exit(main())
