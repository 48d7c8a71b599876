"""
MotoresRD - Database module.

This module contains SQLAlchemy models and database connection utilities.
"""

from database.connection import (
    AsyncSessionLocal,
    close_db,
    engine,
    get_async_session,
    init_db,
)

__all__ = [
    "engine",
    "AsyncSessionLocal",
    "get_async_session",
    "init_db",
    "close_db",
]
