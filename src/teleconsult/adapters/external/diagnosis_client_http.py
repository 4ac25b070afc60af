"""
aiohttp transport for the external AI diagnosis service.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from teleconsult.application.ports.services.diagnosis_client import (
    DiagnosisClient,
    DiagnosisHttpResponse,
    DiagnosisTransportError,
)
from teleconsult.core.config import DiagnosisServiceSettings

logger = logging.getLogger("teleconsult.diagnosis")


class AiohttpDiagnosisClient(DiagnosisClient):
    def __init__(self, settings: DiagnosisServiceSettings) -> None:
        self._settings = settings

    @property
    def diagnosis_url(self) -> str:
        return f"{self._settings.base_url}{self._settings.endpoint_path}"

    async def post_diagnosis(
        self, payload: Dict[str, Any], token: str, headers: Optional[Dict[str, str]] = None
    ) -> DiagnosisHttpResponse:
        request_headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            **(headers or {}),
        }
        timeout = aiohttp.ClientTimeout(total=self._settings.request_timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.diagnosis_url, json=payload, headers=request_headers) as response:
                    body = None
                    if response.status < 300:
                        try:
                            body = await response.json(content_type=None)
                        except ValueError:
                            logger.warning("Diagnosis service returned a non-JSON body")
                    else:
                        error_text = await response.text()
                        logger.warning(f"Diagnosis service error {response.status}: {error_text[:200]}")
                    return DiagnosisHttpResponse(status=response.status, body=body)
        except asyncio.TimeoutError as e:
            raise DiagnosisTransportError(
                f"Diagnosis request timed out after {self._settings.request_timeout_seconds}s"
            ) from e
        except aiohttp.ClientError as e:
            raise DiagnosisTransportError(f"Diagnosis request failed: {e}") from e

    async def health_check(self) -> bool:
        url = f"{self._settings.base_url}{self._settings.health_path}"
        timeout = aiohttp.ClientTimeout(total=self._settings.health_timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url) as response:
                    return response.status == 200
        except (asyncio.TimeoutError, aiohttp.ClientError) as e:
            logger.warning(f"Diagnosis service health check failed: {e}")
            return False
