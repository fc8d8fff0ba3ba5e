"""
Database module - engine, sessions, schema and seed data.
"""
from app.db.postgres import get_db_session, execute_raw_sql, test_db_connection
from app.db.seed import init_db

__all__ = [
    "get_db_session",
    "execute_raw_sql",
    "test_db_connection",
    "init_db",
]
