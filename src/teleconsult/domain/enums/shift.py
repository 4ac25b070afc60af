"""
Doctor shift enums.
"""

from enum import Enum


class ShiftStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ShiftType(str, Enum):
    MORNING = "morning"
    EVENING = "evening"
    NIGHT = "night"
    CUSTOM = "custom"
