import logging

from fastapi import FastAPI

from propwatch.api.router import api_router
from propwatch.config import get_settings
from propwatch.core.logging import configure_logging
from propwatch.db import create_tables

logger = logging.getLogger(__name__)

settings = get_settings()
app = FastAPI(title=settings.app_name)
app.include_router(api_router)


@app.on_event("startup")
def startup_event() -> None:
    configure_logging(settings.log_level)
    if settings.db_create_tables:
        create_tables()
        logger.info("Ensured odds_history table exists")


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "environment": settings.app_env}
