"""
Doctor shift resolver.

Maps the current hour to an on-duty doctor. Matches are cached per hour for
30 minutes; when no shift matches, or the lookup fails, a static split
between two default doctors is used and cached for only 15 minutes. The
resolver never raises to its caller.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

from teleconsult.application.ports.repositories.doctor_shift_repo import DoctorShiftRepository
from teleconsult.application.ports.services.cache_service import CacheService
from teleconsult.core.config import ShiftSettings
from teleconsult.core.exceptions import CacheError
from teleconsult.domain.entities.doctor_shift import DoctorShift
from teleconsult.domain.enums import ShiftStatus, ShiftType
from teleconsult.domain.errors import InvalidInputError, ShiftNotFoundError
from teleconsult.domain.rules.shift_rules import validate_shift_hours
from teleconsult.domain.value_objects import ensure_object_id

logger = logging.getLogger("teleconsult.shifts")

CACHE_PREFIX = "doctor-shift:current-doctor:"

DEFAULT_SHIFTS = (
    (ShiftType.MORNING, 7, 16, "Default morning shift"),
    (ShiftType.EVENING, 16, 24, "Default evening shift"),
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def shift_cache_key(hour: int) -> str:
    return f"{CACHE_PREFIX}{hour}"


class DoctorShiftResolver:
    def __init__(
        self,
        repository: DoctorShiftRepository,
        cache: CacheService,
        settings: Optional[ShiftSettings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repo = repository
        self._cache = cache
        self._settings = settings or ShiftSettings()
        self._clock = clock
        self._tz = ZoneInfo(self._settings.timezone)

    def current_hour(self, now: Optional[datetime] = None) -> int:
        return (now or self._clock()).astimezone(self._tz).hour

    def fallback_doctor(self, hour: int) -> str:
        if self._settings.morning_start_hour <= hour < self._settings.split_hour:
            return self._settings.morning_doctor_id
        return self._settings.evening_doctor_id

    async def get_active_doctor_for_current_time(self) -> str:
        now = self._clock()
        hour = self.current_hour(now)
        key = shift_cache_key(hour)

        cached = await self._cache_get(key)
        if cached and cached.get("doctor_id"):
            return cached["doctor_id"]

        try:
            shift = await self._find_matching_shift(now, hour)
        except Exception as e:
            # Lookup errors must not fail consultation creation.
            logger.error(f"Shift lookup failed for hour {hour}, using fallback doctor: {e}")
            shift = None

        if shift is not None:
            await self._cache_set(
                key,
                {"doctor_id": shift.doctor_id, "shift_id": shift.shift_id, "source": "shift"},
                self._settings.match_cache_ttl_seconds,
            )
            return shift.doctor_id

        doctor_id = self.fallback_doctor(hour)
        logger.warning(f"No active shift covers hour {hour}; using fallback doctor {doctor_id}")
        await self._cache_set(
            key,
            {"doctor_id": doctor_id, "shift_id": None, "source": "fallback"},
            self._settings.fallback_cache_ttl_seconds,
        )
        return doctor_id

    async def _find_matching_shift(self, now: datetime, hour: int) -> Optional[DoctorShift]:
        for shift in await self._repo.find_effective(now):
            if shift.covers_hour(hour):
                return shift
        return None

    # ------------------------------------------------------------------
    # Shift management
    # ------------------------------------------------------------------

    async def initialize_default_shifts(self) -> List[DoctorShift]:
        """Create the morning and evening defaults when no shift exists."""
        if await self._repo.count() > 0:
            return []
        created = []
        doctors = {
            ShiftType.MORNING: self._settings.morning_doctor_id,
            ShiftType.EVENING: self._settings.evening_doctor_id,
        }
        for shift_type, start, end, description in DEFAULT_SHIFTS:
            shift = DoctorShift(
                shift_id=None,
                doctor_id=doctors[shift_type],
                shift_type=shift_type,
                start_hour=start,
                end_hour=end,
                description=description,
                effective_from=self._clock(),
            )
            created.append(await self._repo.save(shift))
        logger.info(f"Initialized {len(created)} default doctor shifts")
        await self.clear_shift_cache()
        return created

    async def create_or_update_shift(
        self,
        doctor_id: str,
        shift_type: ShiftType,
        start_hour: int,
        end_hour: int,
        description: Optional[str] = None,
        effective_to: Optional[datetime] = None,
    ) -> DoctorShift:
        ensure_object_id(doctor_id, "doctor_id")
        try:
            validate_shift_hours(start_hour, end_hour)
        except ValueError as e:
            raise InvalidInputError("shift_hours", str(e)) from e

        now = self._clock()
        shift = await self._repo.find_by_doctor_and_type(doctor_id, ShiftType(shift_type))
        if shift is None:
            shift = DoctorShift(
                shift_id=None,
                doctor_id=doctor_id,
                shift_type=ShiftType(shift_type),
                start_hour=start_hour,
                end_hour=end_hour,
                description=description,
                effective_from=now,
                effective_to=effective_to,
                created_at=now,
                updated_at=now,
            )
        else:
            shift.start_hour = start_hour
            shift.end_hour = end_hour
            shift.description = description if description is not None else shift.description
            shift.effective_to = effective_to
            shift.status = ShiftStatus.ACTIVE
            shift.updated_at = now

        saved = await self._repo.save(shift)
        await self.clear_shift_cache()
        return saved

    async def get_all_shifts(self) -> List[DoctorShift]:
        return await self._repo.find_all()

    async def update_shift_status(self, shift_id: str, status: ShiftStatus) -> DoctorShift:
        shift = await self._repo.update_status(shift_id, ShiftStatus(status))
        if shift is None:
            raise ShiftNotFoundError(shift_id)
        await self.clear_shift_cache()
        return shift

    async def force_refresh_current_doctor(self) -> str:
        await self._cache_delete(shift_cache_key(self.current_hour()))
        return await self.get_active_doctor_for_current_time()

    async def get_shift_debug_info(self) -> Dict[str, Any]:
        now = self._clock()
        hour = self.current_hour(now)
        try:
            effective = await self._repo.find_effective(now)
        except Exception as e:
            logger.error(f"Shift debug lookup failed: {e}")
            effective = []
        matching = [s for s in effective if s.covers_hour(hour)]
        return {
            "current_time": now.isoformat(),
            "current_hour": hour,
            "timezone": self._settings.timezone,
            "cached": await self._cache_get(shift_cache_key(hour)),
            "effective_shifts": [self._describe(s) for s in effective],
            "matching_shifts": [self._describe(s) for s in matching],
            "fallback_doctor_id": self.fallback_doctor(hour),
        }

    async def clear_shift_cache(self) -> None:
        for hour in range(24):
            await self._cache_delete(shift_cache_key(hour))

    @staticmethod
    def _describe(shift: DoctorShift) -> Dict[str, Any]:
        return {
            "shift_id": shift.shift_id,
            "doctor_id": shift.doctor_id,
            "shift_type": shift.shift_type.value,
            "start_hour": shift.start_hour,
            "end_hour": shift.end_hour,
            "status": shift.status.value,
        }

    async def _cache_get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            return await self._cache.get(key)
        except CacheError as e:
            logger.warning(f"Shift cache read failed: {e}")
            return None

    async def _cache_set(self, key: str, value: Dict[str, Any], ttl: int) -> None:
        try:
            await self._cache.set(key, value, ttl)
        except CacheError as e:
            logger.warning(f"Shift cache write failed: {e}")

    async def _cache_delete(self, key: str) -> None:
        try:
            await self._cache.delete(key)
        except CacheError as e:
            logger.warning(f"Shift cache delete failed: {e}")
