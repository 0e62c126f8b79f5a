import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from . import config
from . import models  # noqa: F401 - register models with Base
from .database import Base, engine
from .routes import status_router
from .services.scheduler import NotificationScheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    scheduler = None
    if config.NOTIFICATION_SCHEDULER_ENABLED:
        scheduler = NotificationScheduler()
        scheduler.start()
        app.state.notification_scheduler = scheduler
    else:
        logger.info("Notification scheduler disabled - sweeps run from the ARQ worker")

    yield

    logger.info("Application shutting down...")
    if scheduler is not None:
        await scheduler.stop()


app = FastAPI(title="LIA Admin API", version="1.0.0", lifespan=lifespan)

app.include_router(status_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
