"""Audit logging.

Structured audit events go to the ``teleconsult.audit`` logger as one JSON
record per line.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from teleconsult.application.ports.services.audit_service import AuditService

logger = logging.getLogger("teleconsult.audit")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


async def audit_log_event(
    *,
    actor: str,
    resource: str,
    action: str,
    resource_id: Optional[str] = None,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
    request_metadata: Optional[Dict[str, Any]] = None,
) -> None:
    record = {
        "ts": _now_iso(),
        "actor": actor,
        "resource": resource,
        "action": action,
        "resource_id": resource_id,
        "before": before or {},
        "after": after or {},
        "request": request_metadata or {},
    }
    try:
        logger.info("AUDIT %s", json.dumps(record, ensure_ascii=False, default=str))
    except (TypeError, ValueError):
        logger.info("AUDIT %s", record)


class LoggingAuditService(AuditService):
    async def log_data_access(
        self,
        actor: str,
        resource: str,
        action: str,
        resource_id: Optional[str] = None,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
        request_metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        try:
            await audit_log_event(
                actor=actor,
                resource=resource,
                action=action,
                resource_id=resource_id,
                before=before,
                after=after,
                request_metadata=request_metadata,
            )
        except Exception as e:
            logger.warning(f"Audit event dropped: {e}")
