import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from app.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def _build_engine(url: str):
    """
    PostgreSQL gets a real pool; SQLite (tests, local demos) shares one
    connection so an in-memory database survives across sessions.
    """
    if url.startswith("sqlite"):
        sqlite_engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=settings.debug
        )

        @event.listens_for(sqlite_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return sqlite_engine

    # pool_size=5: maintain 5 connections ready
    # max_overflow=10: allow 10 extra connections under load
    return create_engine(
        url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        echo=settings.debug  # Log SQL queries in debug mode
    )


engine = _build_engine(settings.sqlalchemy_url)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def new_id() -> str:
    """Primary keys are UUID strings generated application-side."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, the format every timestamp column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.
    Commits on success, rolls back on any exception.
    Usage:
        with get_db_session() as db:
            db.execute(text("SELECT * FROM users"))
    """
    session: Session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def test_db_connection() -> bool:
    """
    Test if the database is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        with get_db_session() as db:
            result = db.execute(text("SELECT 1 as test"))
            row = result.fetchone()
            return row[0] == 1
    except Exception as e:
        logger.error("Database connection failed: %s", e)
        return False


def rows_to_dicts(result) -> list:
    """Convert a SQLAlchemy result into a list of dicts."""
    columns = list(result.keys())
    return [dict(zip(columns, row)) for row in result.fetchall()]


def fetch_one(db: Session, sql: str, params: dict = None):
    """Run a query inside an open session and return the first row as a dict (or None)."""
    result = db.execute(text(sql), params or {})
    row = result.fetchone()
    if row is None:
        return None
    return dict(zip(result.keys(), row))


def execute_raw_sql(sql: str, params: dict = None) -> list:
    """
    Execute raw SQL and return results as list of dicts.
    This is useful for complex queries and listings.
    """
    with get_db_session() as db:
        result = db.execute(text(sql), params or {})
        if not result.returns_rows:
            return []
        return rows_to_dicts(result)


def paginate_raw_sql(sql: str, params: dict, page: int, limit: int, order_by: str) -> tuple:
    """Run a listing query one page at a time. Returns (rows, total)."""
    params = params or {}
    total = execute_raw_sql(f"SELECT COUNT(*) AS total FROM ({sql}) AS counted", params)[0]["total"]
    rows = execute_raw_sql(
        f"{sql} ORDER BY {order_by} LIMIT :limit OFFSET :offset",
        {**params, "limit": limit, "offset": (page - 1) * limit}
    )
    return rows, int(total)
