"""Initialize database tables."""
from sqlmodel import SQLModel
from sqlalchemy.engine import Engine
from typing import Optional
import logging

# Registers the tables on SQLModel.metadata
import recurrence_engine.models  # noqa: F401
from recurrence_engine.db.config import engine as default_engine

logger = logging.getLogger(__name__)


def init_db(engine: Optional[Engine] = None):
    """Create all tables in the database."""
    SQLModel.metadata.create_all(engine or default_engine)
    logger.info("Recurrence tables created")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
