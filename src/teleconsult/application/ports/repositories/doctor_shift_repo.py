"""
Doctor shift repository interface.
"""

from datetime import datetime
from typing import List, Optional

from teleconsult.domain.entities.doctor_shift import DoctorShift
from teleconsult.domain.enums import ShiftStatus, ShiftType


class DoctorShiftRepository:
    """Repository interface for doctor shifts."""

    async def save(self, shift: DoctorShift) -> DoctorShift:
        raise NotImplementedError

    async def find_by_id(self, shift_id: str) -> Optional[DoctorShift]:
        raise NotImplementedError

    async def find_by_doctor_and_type(self, doctor_id: str, shift_type: ShiftType) -> Optional[DoctorShift]:
        raise NotImplementedError

    async def find_effective(self, now: datetime) -> List[DoctorShift]:
        """Active shifts whose effective range contains ``now``, newest first."""
        raise NotImplementedError

    async def find_all(self) -> List[DoctorShift]:
        raise NotImplementedError

    async def update_status(self, shift_id: str, status: ShiftStatus) -> Optional[DoctorShift]:
        raise NotImplementedError

    async def count(self) -> int:
        raise NotImplementedError
