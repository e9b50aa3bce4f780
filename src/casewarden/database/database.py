"""
Database lifecycle: open the shared connection and apply the schema at
startup, close it on shutdown.
"""

from __future__ import annotations

from pathlib import Path

from casewarden.database.db_connection import ConnectionManager, db_connection
from casewarden.database.db_schema import SchemaManager
from casewarden.util.logger import get_logger

logger = get_logger("database")


async def initialize_database(path: Path, manager: ConnectionManager = db_connection) -> bool:
    """
    Open the connection and create the schema.

    Returns:
        True if initialization succeeded, False otherwise.
    """
    try:
        await manager.open(path)
        await SchemaManager.initialize_schema(manager.connection)
        logger.info("[DATABASE] Database initialized at %s", path)
        return True
    except Exception as e:
        logger.error("[DATABASE] Database initialization failed: %s", e)
        await manager.close()
        return False


async def shutdown_database(manager: ConnectionManager = db_connection) -> None:
    await manager.close()
