"""
Identifier value objects.

Patients, doctors and consultations are keyed by MongoDB ObjectIds; sessions
use ``<prefix>_<objectid>_<epoch millis>``.
"""

import re
import time
from dataclasses import dataclass
from typing import Any

from bson import ObjectId

from ..errors import InvalidInputError


def ensure_object_id(value: Any, field: str = "id") -> str:
    """Return ``value`` as a string if it is a valid ObjectId, else raise."""
    if not value or not isinstance(value, str) or not ObjectId.is_valid(value):
        raise InvalidInputError(field, "must be a 24 character hex ObjectId")
    return value


@dataclass(frozen=True)
class SessionId:
    """Immutable intake/clinical session identifier."""

    value: str

    SESSION_PREFIX = "session"
    CLINICAL_PREFIX = "clinical"
    _PATTERN = re.compile(r"^(session|clinical)_[0-9a-f]{24}_\d+$")

    def __post_init__(self) -> None:
        if not self.value or not isinstance(self.value, str):
            raise InvalidInputError("session_id", "cannot be empty")
        if not self._PATTERN.match(self.value):
            raise InvalidInputError("session_id", "malformed session identifier")

    def __str__(self) -> str:
        return self.value

    @classmethod
    def generate(cls, clinical: bool = False) -> "SessionId":
        prefix = cls.CLINICAL_PREFIX if clinical else cls.SESSION_PREFIX
        return cls(f"{prefix}_{ObjectId()}_{int(time.time() * 1000)}")
