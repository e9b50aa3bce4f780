"""SQLite connection, schema and lifecycle helpers."""
