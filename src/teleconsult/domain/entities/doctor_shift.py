"""
Doctor shift domain entity.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from ..enums import ShiftStatus, ShiftType
from ..rules.shift_rules import hour_in_window, validate_shift_hours


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DoctorShift:
    """Recurring daily window during which a doctor is on duty."""

    shift_id: Optional[str]
    doctor_id: str
    shift_type: ShiftType
    start_hour: int
    end_hour: int
    status: ShiftStatus = ShiftStatus.ACTIVE
    effective_from: datetime = field(default_factory=_utcnow)
    effective_to: Optional[datetime] = None
    description: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        validate_shift_hours(self.start_hour, self.end_hour)

    def covers_hour(self, hour: int) -> bool:
        return hour_in_window(hour, self.start_hour, self.end_hour)

    def is_effective(self, now: datetime) -> bool:
        if self.status != ShiftStatus.ACTIVE or self.effective_from > now:
            return False
        return self.effective_to is None or self.effective_to >= now
