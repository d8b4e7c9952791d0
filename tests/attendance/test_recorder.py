from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import time

import pytest

from roll_call.attendance.model import SubmissionMeta
from roll_call.common.geo import Coordinates, Geofence
from roll_call.core.enums import AttendanceStatus, EnrollmentStatus, MarkedBy
from roll_call.core.exceptions import (
    AlreadyMarked,
    EventExpired,
    EventNotFound,
    InsufficientPermissions,
    InvalidInput,
    MalformedPayload,
    NotEnrolled,
    OutsideGeofence,
    SignatureMismatch,
)
from roll_call.enrollments.model import Enrollment

from conftest import GROUP_ID, OUTSIDER_ID, PARTICIPANT_ID, World

META = SubmissionMeta(ip="10.0.0.7", device="pytest")
FENCE = Geofence(latitude=10.762622, longitude=106.660172, radius_meters=100.0)


def _submit(world, payload, claims=None, meta=META):
    return world.container.attendance_recorder.submit(claims or world.participant, payload, meta)


@pytest.mark.parametrize(
    "minute, expected",
    [
        (10, AttendanceStatus.PRESENT),
        (15, AttendanceStatus.PRESENT),
        (20, AttendanceStatus.LATE),
    ],
)
def test_status_follows_lateness(world, minute, expected):
    issued = world.open_event(start=time(9, 0))
    world.clock.set(minute=minute)

    outcome = _submit(world, issued.signed.payload)

    assert outcome.status == expected
    assert outcome.minutes_late == float(minute)
    record = world.attendance.get_for_event_and_participant(issued.event.event_id, PARTICIPANT_ID)
    assert record.status == expected
    assert record.marked_by == MarkedBy.SELF_SERVICE
    assert record.origin_metadata["ip"] == "10.0.0.7"


def test_signed_payload_is_refused_after_window(world):
    issued = world.open_event(start=time(9, 0))
    world.clock.set(minute=45)

    with pytest.raises(EventExpired):
        _submit(world, issued.signed.payload)
    assert world.attendance.list_for_event(issued.event.event_id) == []


def test_window_end_is_inclusive(world):
    issued = world.open_event(start=time(9, 0))
    world.clock.set(minute=30)

    assert _submit(world, issued.signed.payload).status == AttendanceStatus.LATE


def test_afternoon_event_uses_its_own_start(world):
    issued = world.open_event(start=time(15, 0), end=time(16, 30))
    world.clock.set(minute=1)

    assert _submit(world, issued.signed.payload).status == AttendanceStatus.PRESENT


def test_late_threshold_is_configurable(clock):
    world = World(clock, settings={"LATE_THRESHOLD_MINUTES": 0})
    issued = world.open_event(start=time(15, 0), end=time(16, 30))
    world.clock.set(minute=1)

    assert _submit(world, issued.signed.payload).status == AttendanceStatus.LATE


def test_second_submission_is_already_marked(world):
    issued = world.open_event()
    world.clock.advance(minutes=2)
    _submit(world, issued.signed.payload)

    with pytest.raises(AlreadyMarked):
        _submit(world, issued.signed.payload)
    assert len(world.attendance.list_for_event(issued.event.event_id)) == 1


def test_concurrent_duplicates_produce_exactly_one_record(world):
    issued = world.open_event()
    world.clock.advance(minutes=5)
    attempts = 16

    def attempt(_):
        try:
            _submit(world, issued.signed.payload)
            return "ok"
        except AlreadyMarked:
            return "dup"

    with ThreadPoolExecutor(max_workers=attempts) as pool:
        results = list(pool.map(attempt, range(attempts)))

    assert results.count("ok") == 1
    assert results.count("dup") == attempts - 1
    assert len(world.attendance.list_for_event(issued.event.event_id)) == 1


def test_inactive_enrollment_is_not_enrolled(world):
    issued = world.open_event()

    with pytest.raises(NotEnrolled):
        _submit(world, issued.signed.payload, claims=world.outsider)


def test_unknown_event_in_valid_payload(world):
    payload = world.container.session_tokens.generate(999).payload

    with pytest.raises(EventNotFound):
        _submit(world, payload)


def test_non_numeric_event_id_is_malformed(world):
    payload = world.container.session_tokens.generate("abc").payload

    with pytest.raises(MalformedPayload):
        _submit(world, payload)


def test_forged_payload_is_rejected(world):
    issued = world.open_event()
    event_id, issued_at, signature = issued.signed.payload.split(":")
    forged = f"{event_id}:{issued_at}:{'0' * len(signature)}"

    with pytest.raises(SignatureMismatch):
        _submit(world, forged)


def test_closed_event_refuses_submissions(world):
    issued = world.open_event()
    world.container.roll_call_service.close_event(world.host, issued.event.event_id)

    with pytest.raises(EventExpired):
        _submit(world, issued.signed.payload)


def test_rekey_invalidates_previous_payload(world):
    issued = world.open_event()
    world.clock.advance(minutes=1)
    reissued = world.container.roll_call_service.rekey_event(world.host, issued.event.event_id)

    with pytest.raises(SignatureMismatch):
        _submit(world, issued.signed.payload)
    assert _submit(world, reissued.signed.payload).status == AttendanceStatus.PRESENT


def test_hosts_cannot_self_mark(world):
    issued = world.open_event()

    with pytest.raises(InsufficientPermissions):
        _submit(world, issued.signed.payload, claims=world.host)


def test_submission_inside_geofence(world):
    issued = world.open_event(geofence=FENCE)
    meta = SubmissionMeta(ip="10.0.0.7", location=Coordinates(10.7627, 106.6602))

    assert _submit(world, issued.signed.payload, meta=meta).status == AttendanceStatus.PRESENT


def test_submission_outside_geofence(world):
    issued = world.open_event(geofence=FENCE)
    meta = SubmissionMeta(location=Coordinates(10.78, 106.66))

    with pytest.raises(OutsideGeofence):
        _submit(world, issued.signed.payload, meta=meta)


def test_geofenced_event_requires_location(world):
    issued = world.open_event(geofence=FENCE)

    with pytest.raises(OutsideGeofence):
        _submit(world, issued.signed.payload)


def test_geofence_enforcement_can_be_disabled(clock):
    world = World(clock, settings={"ENFORCE_GEOFENCE": False})
    issued = world.open_event(geofence=FENCE)
    meta = SubmissionMeta(location=Coordinates(10.78, 106.66))

    assert _submit(world, issued.signed.payload, meta=meta).status == AttendanceStatus.PRESENT


def test_override_creates_manual_record(world):
    issued = world.open_event()

    record = world.container.attendance_recorder.override(
        world.host, event_id=issued.event.event_id, participant_id=PARTICIPANT_ID, status="excused", note="medical"
    )

    assert record.status == AttendanceStatus.EXCUSED
    assert record.marked_by == MarkedBy.MANUAL_OVERRIDE
    assert record.origin_metadata["note"] == "medical"


def test_override_updates_existing_record_in_place(world):
    issued = world.open_event()
    world.clock.set(minute=25)
    original = _submit(world, issued.signed.payload)

    record = world.container.attendance_recorder.override(
        world.host, event_id=issued.event.event_id, participant_id=PARTICIPANT_ID, status=AttendanceStatus.PRESENT
    )

    assert record.record_id == original.record_id
    assert record.status == AttendanceStatus.PRESENT
    assert len(world.attendance.list_for_event(issued.event.event_id)) == 1


def test_override_works_after_window(world):
    issued = world.open_event()
    world.clock.set(hour=18)

    record = world.container.attendance_recorder.override(
        world.admin, event_id=issued.event.event_id, participant_id=PARTICIPANT_ID, status="absent"
    )
    assert record.status == AttendanceStatus.ABSENT


def test_override_rules(world):
    issued = world.open_event()
    recorder = world.container.attendance_recorder
    event_id = issued.event.event_id

    with pytest.raises(InsufficientPermissions):
        recorder.override(world.participant, event_id=event_id, participant_id=PARTICIPANT_ID, status="present")
    with pytest.raises(InsufficientPermissions):
        recorder.override(world.other_host, event_id=event_id, participant_id=PARTICIPANT_ID, status="present")
    with pytest.raises(InvalidInput):
        recorder.override(world.host, event_id=event_id, participant_id=PARTICIPANT_ID, status="sleeping")
    with pytest.raises(NotEnrolled):
        recorder.override(world.host, event_id=event_id, participant_id=OUTSIDER_ID, status="present")
    with pytest.raises(EventNotFound):
        recorder.override(world.host, event_id=999, participant_id=PARTICIPANT_ID, status="present")


def test_list_for_event_is_ordered_by_mark_time(world):
    world.enrollments.by_key[(12, GROUP_ID)] = Enrollment(12, GROUP_ID, EnrollmentStatus.ACTIVE)
    issued = world.open_event()
    recorder = world.container.attendance_recorder
    event_id = issued.event.event_id

    world.clock.set(minute=8)
    recorder.record(event_id, 12, META)
    world.clock.set(minute=3)
    recorder.record(event_id, PARTICIPANT_ID, META)

    records = recorder.list_for_event(world.host, event_id)
    assert [r.participant_id for r in records] == [PARTICIPANT_ID, 12]

    with pytest.raises(InsufficientPermissions):
        recorder.list_for_event(world.other_host, event_id)


def test_summary_counts_missing_records_as_absent(world):
    first = world.open_event(start=time(9, 0))
    world.clock.set(minute=5)
    _submit(world, first.signed.payload)
    world.open_event(start=time(13, 0), end=time(14, 0))

    summary = world.container.attendance_recorder.summary_for(world.participant)

    assert summary.total_events == 2
    assert summary.present == 1
    assert summary.absent == 1
    assert summary.attendance_rate == 50.0


def test_history_lists_newest_first(world):
    morning = world.open_event(start=time(9, 0))
    world.clock.set(minute=5)
    _submit(world, morning.signed.payload)
    afternoon = world.open_event(start=time(13, 0), end=time(14, 0))
    world.clock.set(minute=20)
    _submit(world, afternoon.signed.payload)

    history = world.container.attendance_recorder.history_for(world.participant)

    assert [(h.event_id, h.status) for h in history] == [
        (afternoon.event.event_id, AttendanceStatus.LATE),
        (morning.event.event_id, AttendanceStatus.PRESENT),
    ]
    assert history[0].group_id == GROUP_ID
    assert history[0].to_dict()["time"] == "13:20"


def test_history_is_limited_and_scoped_to_caller(world):
    world.enrollments.by_key[(12, GROUP_ID)] = Enrollment(12, GROUP_ID, EnrollmentStatus.ACTIVE)
    for hour in (9, 10, 11):
        issued = world.open_event(start=time(hour, 0), end=time(hour, 50))
        world.container.attendance_recorder.record(issued.event.event_id, PARTICIPANT_ID, META)
        world.container.attendance_recorder.record(issued.event.event_id, 12, META)
    recorder = world.container.attendance_recorder

    history = recorder.history_for(world.participant, limit=2)

    assert len(history) == 2
    assert [h.start_time for h in history] == [time(11, 0), time(10, 0)]
    assert len(recorder.history_for(world.participant, limit=500)) == 3

    with pytest.raises(InvalidInput):
        recorder.history_for(world.participant, limit=0)
    with pytest.raises(InsufficientPermissions):
        recorder.history_for(world.host)
