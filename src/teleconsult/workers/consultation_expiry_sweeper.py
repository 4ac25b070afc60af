import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from teleconsult.application.services.consultation_lifecycle import ConsultationLifecycleService
from teleconsult.core.config import SweeperSettings, get_settings

logger = logging.getLogger("teleconsult")

MIN_INTERVAL_SECONDS = 30


async def _sweep_once(lifecycle: ConsultationLifecycleService, now: Optional[datetime] = None) -> int:
    """
    Perform a single sweep, moving every overdue non-terminal consultation to EXPIRED.
    """
    now = now or datetime.now(timezone.utc)
    expired = await lifecycle.expire_consultations(now)
    if expired:
        logger.info("[ExpirySweeper] Expired %d consultation(s) at %s", expired, now.isoformat())
    return expired


async def run_expiry_sweeper_forever(
    lifecycle: ConsultationLifecycleService, settings: Optional[SweeperSettings] = None
) -> None:
    """
    Run the expiry sweeper in a loop, controlled by SWEEPER_* settings.
    """
    settings = settings or get_settings().sweeper
    if not settings.enabled:
        logger.info("[ExpirySweeper] Disabled via SWEEPER_ENABLED")
        return

    interval = max(MIN_INTERVAL_SECONDS, settings.interval_seconds)
    logger.info("[ExpirySweeper] Starting (interval=%ss)", interval)

    while True:
        try:
            await _sweep_once(lifecycle)
        except Exception as e:  # noqa: PERF203
            logger.error("[ExpirySweeper] Sweep iteration failed: %s", e, exc_info=True)
        await asyncio.sleep(interval)
