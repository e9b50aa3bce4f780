"""
Database schema initialization and version tracking.

Timestamps are stored as INTEGER unix seconds (UTC).
"""

import aiosqlite
from casewarden.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1


class SchemaManager:
    """Creates tables and indexes and records the schema version."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create all database tables and indexes if they are missing.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized")

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        """Create all required database tables."""
        await db.execute("""
            CREATE TABLE IF NOT EXISTS guild_settings (
                guild_id INTEGER PRIMARY KEY,
                lang TEXT NOT NULL DEFAULT 'en',
                default_log_channel INTEGER,
                log_types INTEGER NOT NULL DEFAULT 4095,
                warn_expire_time INTEGER NOT NULL DEFAULT 3
            )
        """)

        # Surrogate id for internal use, case_id is the guild-scoped public number
        await db.execute("""
            CREATE TABLE IF NOT EXISTS cases (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                user_id INTEGER NOT NULL,
                moderator_id INTEGER NOT NULL,
                case_id INTEGER NOT NULL,
                case_type TEXT NOT NULL,
                reason TEXT,
                created_at INTEGER NOT NULL,
                end_date INTEGER,
                points INTEGER,
                -- Set when a mute is lifted early; end_date then holds the lift time
                closed_at INTEGER,
                CHECK (end_date IS NULL OR end_date > created_at)
            )
        """)

        # Last case id handed out per guild, never decremented
        await db.execute("""
            CREATE TABLE IF NOT EXISTS case_counters (
                guild_id INTEGER PRIMARY KEY,
                last_case_id INTEGER NOT NULL DEFAULT 0
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        await db.execute("CREATE UNIQUE INDEX IF NOT EXISTS idx_cases_guild_case ON cases(guild_id, case_id)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_cases_guild_user ON cases(guild_id, user_id)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_cases_type_end ON cases(case_type, end_date)")

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
