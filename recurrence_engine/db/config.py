"""Database configuration for the recurrence engine."""
from sqlmodel import create_engine
from sqlalchemy import event
from sqlalchemy.engine import Engine
import logging
import os
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./recurrence_engine.db")
SQL_ECHO = os.environ.get("SQL_ECHO", "false").lower() == "true"
RECURRENCE_TICK_SECONDS = float(os.environ.get("RECURRENCE_TICK_SECONDS", "60"))
RECURRENCE_HISTORY_LIMIT = int(os.environ.get("RECURRENCE_HISTORY_LIMIT", "100"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


def build_engine(database_url: str = DATABASE_URL, **kwargs) -> Engine:
    """Create an engine; SQLite gets thread sharing and foreign key enforcement."""
    is_sqlite = database_url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}
    engine = create_engine(database_url, echo=SQL_ECHO, connect_args=connect_args, **kwargs)

    if is_sqlite:
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    else:
        logger.info("Using database %s", engine.url.render_as_string(hide_password=True))

    return engine


engine = build_engine()

