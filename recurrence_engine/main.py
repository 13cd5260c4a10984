"""Main FastAPI application for the recurrence engine."""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from recurrence_engine import __version__
from recurrence_engine.db.config import LOG_LEVEL
from recurrence_engine.db.init import init_db
from recurrence_engine.routers import recurring_tasks
from recurrence_engine.utils.metrics import metrics_collector

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup."""
    try:
        init_db()
    except Exception as e:
        logger.warning("Database initialization failed: %s", e)
        logger.warning("Server will continue but database operations may fail.")
    yield


app = FastAPI(
    title="Recurrence Engine API",
    description="Recurring task templates, occurrences and recurrence history",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(recurring_tasks.router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.get("/metrics")
async def metrics():
    """Scheduling counters and timers."""
    return metrics_collector.get_metrics()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "recurrence_engine.main:app",
        host="0.0.0.0",
        port=8000,
    )
