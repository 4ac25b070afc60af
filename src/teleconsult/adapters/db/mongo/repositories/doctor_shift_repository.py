"""
MongoDB implementation of DoctorShiftRepository.
"""

from datetime import datetime, timezone
from typing import List, Optional

from bson import ObjectId

from teleconsult.application.ports.repositories.doctor_shift_repo import DoctorShiftRepository
from teleconsult.domain.entities.doctor_shift import DoctorShift
from teleconsult.domain.enums import ShiftStatus, ShiftType

from ..models.consultation_m import DoctorShiftMongo


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class MongoDoctorShiftRepository(DoctorShiftRepository):
    """MongoDB implementation of DoctorShiftRepository."""

    async def save(self, shift: DoctorShift) -> DoctorShift:
        if shift.shift_id is None:
            shift.shift_id = str(ObjectId())
        shift_mongo = await DoctorShiftMongo.find_one(DoctorShiftMongo.shift_id == shift.shift_id)
        if shift_mongo is None:
            shift_mongo = self._domain_to_mongo(shift)
        else:
            shift_mongo.doctor_id = shift.doctor_id
            shift_mongo.shift_type = shift.shift_type.value
            shift_mongo.start_hour = shift.start_hour
            shift_mongo.end_hour = shift.end_hour
            shift_mongo.status = shift.status.value
            shift_mongo.effective_from = shift.effective_from
            shift_mongo.effective_to = shift.effective_to
            shift_mongo.description = shift.description
            shift_mongo.updated_at = shift.updated_at
        await shift_mongo.save()
        return self._mongo_to_domain(shift_mongo)

    async def find_by_id(self, shift_id: str) -> Optional[DoctorShift]:
        shift_mongo = await DoctorShiftMongo.find_one(DoctorShiftMongo.shift_id == shift_id)
        return self._mongo_to_domain(shift_mongo) if shift_mongo else None

    async def find_by_doctor_and_type(self, doctor_id: str, shift_type: ShiftType) -> Optional[DoctorShift]:
        shift_mongo = await DoctorShiftMongo.find_one(
            DoctorShiftMongo.doctor_id == doctor_id,
            DoctorShiftMongo.shift_type == shift_type.value,
        )
        return self._mongo_to_domain(shift_mongo) if shift_mongo else None

    async def find_effective(self, now: datetime) -> List[DoctorShift]:
        shifts_mongo = await DoctorShiftMongo.find(
            {
                "status": ShiftStatus.ACTIVE.value,
                "effective_from": {"$lte": now},
                "$or": [{"effective_to": None}, {"effective_to": {"$gte": now}}],
            }
        ).sort([("created_at", -1)]).to_list()
        return [self._mongo_to_domain(s) for s in shifts_mongo]

    async def find_all(self) -> List[DoctorShift]:
        shifts_mongo = await DoctorShiftMongo.find_all().sort([("start_hour", 1)]).to_list()
        return [self._mongo_to_domain(s) for s in shifts_mongo]

    async def update_status(self, shift_id: str, status: ShiftStatus) -> Optional[DoctorShift]:
        shift_mongo = await DoctorShiftMongo.find_one(DoctorShiftMongo.shift_id == shift_id)
        if shift_mongo is None:
            return None
        shift_mongo.status = status.value
        shift_mongo.updated_at = datetime.now(timezone.utc)
        await shift_mongo.save()
        return self._mongo_to_domain(shift_mongo)

    async def count(self) -> int:
        return await DoctorShiftMongo.find_all().count()

    @staticmethod
    def _domain_to_mongo(shift: DoctorShift) -> DoctorShiftMongo:
        return DoctorShiftMongo(
            shift_id=shift.shift_id,
            doctor_id=shift.doctor_id,
            shift_type=shift.shift_type.value,
            start_hour=shift.start_hour,
            end_hour=shift.end_hour,
            status=shift.status.value,
            effective_from=shift.effective_from,
            effective_to=shift.effective_to,
            description=shift.description,
            created_at=shift.created_at,
            updated_at=shift.updated_at,
        )

    @staticmethod
    def _mongo_to_domain(shift_mongo: DoctorShiftMongo) -> DoctorShift:
        return DoctorShift(
            shift_id=shift_mongo.shift_id,
            doctor_id=shift_mongo.doctor_id,
            shift_type=ShiftType(shift_mongo.shift_type),
            start_hour=shift_mongo.start_hour,
            end_hour=shift_mongo.end_hour,
            status=ShiftStatus(shift_mongo.status),
            effective_from=_aware(shift_mongo.effective_from),
            effective_to=_aware(shift_mongo.effective_to),
            description=shift_mongo.description,
            created_at=_aware(shift_mongo.created_at),
            updated_at=_aware(shift_mongo.updated_at),
        )
