"""
Consultation repository interface.

Implementations must make every method that takes a ``StatusChange`` a single
atomic write per document (status, side-effect fields and the history push
land together).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from teleconsult.domain.entities.consultation import Consultation, StatusChange
from teleconsult.domain.enums import ConsultationStatus


class ConsultationRepository:
    """Repository interface for managing consultations."""

    async def save(self, consultation: Consultation) -> Consultation:
        """Insert or replace a consultation."""
        raise NotImplementedError

    async def find_by_id(self, consultation_id: str) -> Optional[Consultation]:
        """Find a non-deleted consultation by ID."""
        raise NotImplementedError

    async def find_by_patient_id(self, patient_id: str) -> List[Consultation]:
        """All non-deleted consultations of a patient, newest first."""
        raise NotImplementedError

    async def find_active_by_patient_id(self, patient_id: str) -> Optional[Consultation]:
        """The active, non-terminal, non-deleted consultation of a patient."""
        raise NotImplementedError

    async def apply_status_change(
        self,
        consultation_id: str,
        expected_status: ConsultationStatus,
        change: StatusChange,
        updates: Dict[str, Any],
    ) -> Optional[Consultation]:
        """Conditionally apply a transition.

        Matches only while the stored status still equals ``expected_status``;
        returns the updated consultation, or None when nothing matched.
        """
        raise NotImplementedError

    async def deactivate_others(
        self,
        patient_id: str,
        exclude_id: str,
        changed_by: str,
        reason: str,
        trigger: str,
        now: datetime,
    ) -> int:
        """Cancel every other active consultation of the patient.

        Each affected document gets a CANCELLED history entry whose
        ``previous_status`` is that document's own status. Returns the count.
        """
        raise NotImplementedError

    async def mark_active(
        self, consultation_id: str, change: Optional[StatusChange], now: datetime
    ) -> Optional[Consultation]:
        """Set ``is_active`` and ``activated_at``, pushing ``change`` if given."""
        raise NotImplementedError

    async def expire_overdue(self, now: datetime, changed_by: str) -> int:
        """Move every overdue, non-terminal consultation to EXPIRED."""
        raise NotImplementedError
