"""
MongoDB connection bootstrap.
"""

import logging

from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from teleconsult.core.config import DatabaseSettings

from .models import DOCUMENT_MODELS

logger = logging.getLogger("teleconsult")


async def init_database(settings: DatabaseSettings) -> AsyncIOMotorClient:
    """Connect motor and register the Beanie document models."""
    client = AsyncIOMotorClient(
        settings.uri, serverSelectionTimeoutMS=settings.server_selection_timeout_ms
    )
    db = client[settings.db_name]
    await init_beanie(database=db, document_models=DOCUMENT_MODELS)
    logger.info(f"Database initialized ({settings.db_name})")
    return client
