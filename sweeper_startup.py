import asyncio
import logging
import signal

from teleconsult.adapters.db.mongo.connection import init_database
from teleconsult.api.deps import get_cache_service, get_lifecycle_service
from teleconsult.core.config import get_settings
from teleconsult.core.logging_setup import configure_logging
from teleconsult.workers.consultation_expiry_sweeper import run_expiry_sweeper_forever

logger = logging.getLogger("teleconsult")


async def main() -> None:
    """
    Entry point for the consultation expiry sweeper.

    This process is intended to be run separately from the API workers:
        PYTHONPATH=./src python3 sweeper_startup.py
    """
    settings = get_settings()
    configure_logging(settings.logging)
    if not settings.sweeper.enabled:
        logger.info("Consultation expiry sweeper is disabled. Set SWEEPER_ENABLED=true to enable.")
        return

    logger.info("🚀 Starting consultation expiry sweeper…")
    logger.info("Sweeper config: interval=%ss, lifetime=%sh",
                settings.sweeper.interval_seconds, settings.consultation.lifetime_hours)

    client = await init_database(settings.database)

    # Graceful shutdown via signals
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("🛑 Shutdown signal received for sweeper, stopping gracefully…")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _signal_handler)

    try:
        sweeper_task = asyncio.create_task(
            run_expiry_sweeper_forever(get_lifecycle_service(), settings.sweeper)
        )
        await stop_event.wait()
        sweeper_task.cancel()
        try:
            await sweeper_task
        except asyncio.CancelledError:
            logger.info("Sweeper task cancelled.")
    finally:
        await get_cache_service().close()
        client.close()
        logger.info("Sweeper MongoDB client closed.")


if __name__ == "__main__":
    asyncio.run(main())
