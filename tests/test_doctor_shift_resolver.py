"""
Doctor shift resolution tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from teleconsult.application.services.doctor_shift_resolver import DoctorShiftResolver, shift_cache_key
from teleconsult.core.config import ShiftSettings
from teleconsult.domain.entities.doctor_shift import DoctorShift
from teleconsult.domain.enums import ShiftStatus, ShiftType
from teleconsult.domain.errors import InvalidInputError, ShiftNotFoundError
from teleconsult.domain.rules.shift_rules import hour_in_window

from .conftest import FIXED_NOW, FakeClock, new_id

DEFAULTS = ShiftSettings()


def _shift(doctor_id, start, end, shift_type=ShiftType.MORNING, status=ShiftStatus.ACTIVE):
    return DoctorShift(
        shift_id=None,
        doctor_id=doctor_id,
        shift_type=shift_type,
        start_hour=start,
        end_hour=end,
        status=status,
        effective_from=FIXED_NOW - timedelta(days=1),
    )


def _ist(hour, minute=0):
    """UTC instant at which the Asia/Kolkata wall clock reads ``hour:minute``."""
    return datetime(2025, 1, 15, hour, minute, tzinfo=timezone(timedelta(hours=5, minutes=30))).astimezone(
        timezone.utc
    )


@pytest.mark.parametrize(
    "hour,expected",
    [(22, True), (23, True), (0, True), (2, True), (5, True), (6, False), (10, False), (21, False)],
)
def test_overnight_window_wraps(hour, expected):
    assert hour_in_window(hour, 22, 6) is expected


def test_daytime_window_is_half_open():
    assert hour_in_window(7, 7, 16)
    assert hour_in_window(15, 7, 16)
    assert not hour_in_window(16, 7, 16)
    assert hour_in_window(23, 16, 24)


def test_shift_hours_are_validated():
    with pytest.raises(ValueError):
        _shift(new_id(), 5, 5)
    with pytest.raises(ValueError):
        _shift(new_id(), 24, 6)


@pytest.mark.asyncio
async def test_matching_shift_is_cached_for_thirty_minutes(shift_resolver, shift_repo, cache):
    doctor_id = new_id()
    await shift_repo.save(_shift(doctor_id, 7, 16))

    assert await shift_resolver.get_active_doctor_for_current_time() == doctor_id
    assert await shift_resolver.get_active_doctor_for_current_time() == doctor_id

    assert shift_repo.lookups == 1
    ttl = cache.ttl(shift_cache_key(12))
    assert 1790 < ttl <= 1800


@pytest.mark.asyncio
async def test_fallback_doctor_is_cached_for_fifteen_minutes(shift_resolver, cache):
    assert await shift_resolver.get_active_doctor_for_current_time() == DEFAULTS.morning_doctor_id

    cached = await cache.get(shift_cache_key(12))
    assert cached["source"] == "fallback"
    ttl = cache.ttl(shift_cache_key(12))
    assert 890 < ttl <= 900


@pytest.mark.parametrize(
    "hour,expected",
    [
        (6, DEFAULTS.morning_doctor_id),
        (15, DEFAULTS.morning_doctor_id),
        (16, DEFAULTS.evening_doctor_id),
        (23, DEFAULTS.evening_doctor_id),
        (3, DEFAULTS.evening_doctor_id),
    ],
)
def test_fallback_split(shift_repo, cache, hour, expected):
    resolver = DoctorShiftResolver(shift_repo, cache, clock=FakeClock(_ist(hour)))
    assert resolver.fallback_doctor(resolver.current_hour()) == expected


def test_hour_is_read_in_configured_timezone(shift_repo, cache):
    resolver = DoctorShiftResolver(shift_repo, cache, clock=FakeClock(_ist(23, 30)))
    assert resolver.current_hour() == 23


@pytest.mark.asyncio
async def test_overnight_shift_matches_after_midnight(shift_repo, cache):
    doctor_id = new_id()
    await shift_repo.save(_shift(doctor_id, 22, 6, shift_type=ShiftType.NIGHT))
    clock = FakeClock(_ist(2))
    resolver = DoctorShiftResolver(shift_repo, cache, clock=clock)

    assert await resolver.get_active_doctor_for_current_time() == doctor_id


@pytest.mark.asyncio
async def test_inactive_shift_is_ignored(shift_resolver, shift_repo):
    await shift_repo.save(_shift(new_id(), 7, 16, status=ShiftStatus.INACTIVE))

    assert await shift_resolver.get_active_doctor_for_current_time() == DEFAULTS.morning_doctor_id


@pytest.mark.asyncio
async def test_lookup_failure_never_raises(shift_resolver, shift_repo):
    shift_repo.fail_lookups = True

    assert await shift_resolver.get_active_doctor_for_current_time() == DEFAULTS.morning_doctor_id


@pytest.mark.asyncio
async def test_force_refresh_bypasses_cache(shift_resolver, shift_repo):
    assert await shift_resolver.get_active_doctor_for_current_time() == DEFAULTS.morning_doctor_id
    doctor_id = new_id()
    await shift_repo.save(_shift(doctor_id, 7, 16))

    assert await shift_resolver.get_active_doctor_for_current_time() == DEFAULTS.morning_doctor_id
    assert await shift_resolver.force_refresh_current_doctor() == doctor_id


@pytest.mark.asyncio
async def test_initialize_default_shifts_only_once(shift_resolver, shift_repo):
    created = await shift_resolver.initialize_default_shifts()

    assert [(s.shift_type, s.start_hour, s.end_hour) for s in created] == [
        (ShiftType.MORNING, 7, 16),
        (ShiftType.EVENING, 16, 24),
    ]
    assert await shift_resolver.initialize_default_shifts() == []
    assert await shift_repo.count() == 2


@pytest.mark.asyncio
async def test_create_or_update_shift_replaces_hours_and_clears_cache(shift_resolver, shift_repo, cache):
    doctor_id = new_id()
    await shift_resolver.get_active_doctor_for_current_time()
    assert await cache.get(shift_cache_key(12)) is not None

    first = await shift_resolver.create_or_update_shift(doctor_id, ShiftType.MORNING, 8, 14)
    second = await shift_resolver.create_or_update_shift(doctor_id, ShiftType.MORNING, 9, 17)

    assert first.shift_id == second.shift_id
    assert (second.start_hour, second.end_hour) == (9, 17)
    assert await shift_repo.count() == 1
    assert await cache.get(shift_cache_key(12)) is None
    assert await shift_resolver.get_active_doctor_for_current_time() == doctor_id


@pytest.mark.asyncio
async def test_create_or_update_shift_rejects_bad_input(shift_resolver):
    with pytest.raises(InvalidInputError):
        await shift_resolver.create_or_update_shift(new_id(), ShiftType.MORNING, 10, 10)
    with pytest.raises(InvalidInputError):
        await shift_resolver.create_or_update_shift("doctor-1", ShiftType.MORNING, 8, 12)


@pytest.mark.asyncio
async def test_update_shift_status(shift_resolver, shift_repo):
    saved = await shift_repo.save(_shift(new_id(), 7, 16))

    updated = await shift_resolver.update_shift_status(saved.shift_id, ShiftStatus.INACTIVE)
    assert updated.status == ShiftStatus.INACTIVE

    with pytest.raises(ShiftNotFoundError):
        await shift_resolver.update_shift_status(new_id(), ShiftStatus.ACTIVE)


@pytest.mark.asyncio
async def test_debug_info_lists_matching_shifts(shift_resolver, shift_repo):
    doctor_id = new_id()
    await shift_repo.save(_shift(doctor_id, 7, 16))
    await shift_repo.save(_shift(new_id(), 16, 24, shift_type=ShiftType.EVENING))

    info = await shift_resolver.get_shift_debug_info()

    assert info["current_hour"] == 12
    assert info["timezone"] == "Asia/Kolkata"
    assert len(info["effective_shifts"]) == 2
    assert [s["doctor_id"] for s in info["matching_shifts"]] == [doctor_id]
