"""
Engine, session factory and declarative base.

PostgreSQL (or any pooled backend) gets a pre-pinged, recycled pool sized from the
``DB_POOL_*`` variables. SQLite, used for local runs and tests, gets a single-file engine that
request threads may share.
"""
import logging
import os
import time

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import DATABASE_URL

logger = logging.getLogger(__name__)

LOG_SLOW_QUERIES = os.getenv("DB_LOG_SLOW_QUERIES", "true").lower() == "true"
SLOW_QUERY_SECONDS = float(os.getenv("DB_SLOW_QUERY_THRESHOLD", "1.0"))


def _pool_options() -> dict:
    return {
        "pool_pre_ping": True,
        "pool_size": int(os.getenv("DB_POOL_SIZE", "10")),
        "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", "20")),
        "pool_timeout": int(os.getenv("DB_POOL_TIMEOUT", "30")),
        "pool_recycle": int(os.getenv("DB_POOL_RECYCLE", "300")),
    }


def build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        built = create_engine(url, connect_args={"check_same_thread": False})
        logger.info("✅ Database engine ready (SQLite)")
        return built

    options = _pool_options()
    built = create_engine(url, **options)
    logger.info(
        f"✅ Database engine ready (pool {options['pool_size']}+{options['max_overflow']}, "
        f"recycle {options['pool_recycle']}s)"
    )
    return built


def log_slow_queries(target: Engine, threshold: float = SLOW_QUERY_SECONDS) -> None:
    """Warn about statements that take longer than ``threshold`` seconds"""

    @event.listens_for(target, "before_cursor_execute")
    def _started(conn, _cursor, _statement, _parameters, _context, _executemany):
        conn.info.setdefault("statement_started", []).append(time.perf_counter())

    @event.listens_for(target, "after_cursor_execute")
    def _finished(conn, _cursor, statement, _parameters, _context, _executemany):
        elapsed = time.perf_counter() - conn.info["statement_started"].pop()
        if elapsed > threshold:
            logger.warning(f"🐌 {elapsed:.2f}s: {' '.join(statement.split())[:200]}")


engine = build_engine(DATABASE_URL)
if LOG_SLOW_QUERIES:
    log_slow_queries(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """Request-scoped session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
