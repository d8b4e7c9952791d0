from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime, time, timedelta
from typing import Optional

import pytest
from werkzeug.security import generate_password_hash

from roll_call.attendance.model import AttendanceHistoryEntry, AttendanceRecord, AttendanceSummary
from roll_call.auth.tokens import Claims
from roll_call.container import assemble
from roll_call.core.enums import AttendanceStatus, EnrollmentStatus, EventStatus, MarkedBy, Role
from roll_call.core.exceptions import DuplicateKeyError
from roll_call.enrollments.model import Enrollment
from roll_call.sessions.model import NewRollCallEvent, RollCallEvent
from roll_call.users.model import Identity

SETTINGS = {
    "SECRET_KEY": "test-secret",
    "AUTH_TOKEN_SECRET": "test-auth-secret",
    "SESSION_SIGNING_SECRET": "test-session-secret",
    "AUTH_TOKEN_TTL_HOURS": 24,
    "SESSION_VALIDITY_MINUTES": 30,
    "LATE_THRESHOLD_MINUTES": 15,
    "CLOCK_SKEW_SECONDS": 0,
    "ENFORCE_GEOFENCE": True,
}

GROUP_ID = 101
HOST_ID = 2
OTHER_HOST_ID = 3
ADMIN_ID = 1
PARTICIPANT_ID = 10
OUTSIDER_ID = 11


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, **kwargs) -> datetime:
        self.now = self.now.replace(**kwargs)
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class InMemoryIdentities:
    def __init__(self, identities: list[Identity] | None = None):
        self.by_id: dict[int, Identity] = {i.identity_id: i for i in identities or []}

    def get_by_id(self, identity_id: int) -> Optional[Identity]:
        return self.by_id.get(identity_id)

    def find_active_by_identifier(self, identifier: str, role: Role) -> Optional[Identity]:
        for identity in self.by_id.values():
            if identifier in (identity.registration_number, identity.email) and identity.role == role and identity.is_active:
                return identity
        return None

    def create_identity(self, *, full_name, registration_number, email, external_ref, role, credential_hash) -> int:
        for identity in self.by_id.values():
            if identity.registration_number == registration_number or (email and identity.email == email):
                raise DuplicateKeyError("uq_identities")
        new_id = max(self.by_id, default=0) + 1
        self.by_id[new_id] = Identity(
            identity_id=new_id,
            full_name=full_name,
            registration_number=registration_number,
            email=email,
            external_ref=external_ref,
            role=role,
            credential_hash=credential_hash,
        )
        return new_id

    def update_credential_hash(self, identity_id: int, credential_hash: str) -> bool:
        if identity_id not in self.by_id:
            return False
        self.by_id[identity_id] = replace(self.by_id[identity_id], credential_hash=credential_hash)
        return True

    def set_active(self, identity_id: int, *, is_active: bool) -> bool:
        if identity_id not in self.by_id:
            return False
        self.by_id[identity_id] = replace(self.by_id[identity_id], is_active=is_active)
        return True


class InMemoryEnrollments:
    def __init__(self, enrollments: list[Enrollment] | None = None):
        self.by_key = {(e.participant_id, e.group_id): e for e in enrollments or []}

    def get(self, participant_id: int, group_id: int) -> Optional[Enrollment]:
        return self.by_key.get((participant_id, group_id))


class InMemoryEvents:
    def __init__(self):
        self.by_id: dict[int, RollCallEvent] = {}
        self._next_id = 0

    def get_by_id(self, event_id: int) -> Optional[RollCallEvent]:
        return self.by_id.get(event_id)

    def create_signed_event(self, event: NewRollCallEvent, sign):
        # Auto-increment values are consumed even when the transaction rolls back.
        self._next_id += 1
        event_id = self._next_id
        signed = sign(event_id)
        self.by_id[event_id] = RollCallEvent(
            event_id=event_id,
            group_id=event.group_id,
            host_id=event.host_id,
            scheduled_date=event.scheduled_date,
            start_time=event.start_time,
            end_time=event.end_time,
            signature_payload=signed.payload,
            expires_at=signed.expires_at,
            status=EventStatus.ACTIVE,
            geofence=event.geofence,
        )
        return event_id, signed

    def set_signature(self, event_id: int, *, signature_payload: str, expires_at: datetime) -> bool:
        if event_id not in self.by_id:
            return False
        self.by_id[event_id] = replace(self.by_id[event_id], signature_payload=signature_payload, expires_at=expires_at)
        return True

    def set_status(self, event_id: int, status: EventStatus) -> bool:
        if event_id not in self.by_id:
            return False
        self.by_id[event_id] = replace(self.by_id[event_id], status=status)
        return True


class InMemoryAttendance:
    """Enforces the (event_id, participant_id) uniqueness the way the store's UNIQUE KEY does."""

    def __init__(self, events: InMemoryEvents, enrollments: InMemoryEnrollments):
        self._events = events
        self._enrollments = enrollments
        self._lock = threading.Lock()
        self.by_key: dict[tuple[int, int], AttendanceRecord] = {}
        self._id = 0

    def create_record(self, *, event_id, participant_id, marked_at, status, marked_by, origin_metadata) -> int:
        with self._lock:
            if (event_id, participant_id) in self.by_key:
                raise DuplicateKeyError("uq_attendance_event_participant")
            self._id += 1
            self.by_key[(event_id, participant_id)] = AttendanceRecord(
                record_id=self._id,
                event_id=event_id,
                participant_id=participant_id,
                marked_at=marked_at,
                status=status,
                marked_by=marked_by,
                origin_metadata=dict(origin_metadata),
            )
            return self._id

    def upsert_manual(self, *, event_id, participant_id, marked_at, status, origin_metadata) -> int:
        with self._lock:
            existing = self.by_key.get((event_id, participant_id))
            if existing:
                self.by_key[(event_id, participant_id)] = replace(existing, status=status, marked_at=marked_at)
                return existing.record_id
            self._id += 1
            self.by_key[(event_id, participant_id)] = AttendanceRecord(
                record_id=self._id,
                event_id=event_id,
                participant_id=participant_id,
                marked_at=marked_at,
                status=status,
                marked_by=MarkedBy.MANUAL_OVERRIDE,
                origin_metadata=dict(origin_metadata),
            )
            return self._id

    def get_for_event_and_participant(self, event_id: int, participant_id: int) -> Optional[AttendanceRecord]:
        return self.by_key.get((event_id, participant_id))

    def list_for_event(self, event_id: int):
        items = [r for r in self.by_key.values() if r.event_id == event_id]
        items.sort(key=lambda r: (r.marked_at, r.record_id))
        return items

    def list_for_participant(self, participant_id: int, *, limit: int):
        entries = []
        for record in self.by_key.values():
            if record.participant_id != participant_id:
                continue
            event = self._events.by_id[record.event_id]
            entries.append(
                AttendanceHistoryEntry(
                    record_id=record.record_id,
                    event_id=record.event_id,
                    group_id=event.group_id,
                    scheduled_date=event.scheduled_date,
                    start_time=event.start_time,
                    marked_at=record.marked_at,
                    status=record.status,
                    marked_by=record.marked_by,
                )
            )
        entries.sort(key=lambda e: (e.marked_at, e.record_id), reverse=True)
        return entries[:limit]

    def summary_for_participant(self, participant_id: int, *, up_to: date) -> AttendanceSummary:
        counts = {s: 0 for s in AttendanceStatus}
        total = 0
        for event in self._events.by_id.values():
            enrollment = self._enrollments.get(participant_id, event.group_id)
            if not enrollment or not enrollment.is_active or event.scheduled_date > up_to:
                continue
            total += 1
            record = self.by_key.get((event.event_id, participant_id))
            counts[record.status if record else AttendanceStatus.ABSENT] += 1
        return AttendanceSummary(
            participant_id=participant_id,
            total_events=total,
            present=counts[AttendanceStatus.PRESENT],
            late=counts[AttendanceStatus.LATE],
            absent=counts[AttendanceStatus.ABSENT],
            excused=counts[AttendanceStatus.EXCUSED],
        )


def make_identity(identity_id: int, role: Role, reg_no: str, password: str = "secret123", **kwargs) -> Identity:
    return Identity(
        identity_id=identity_id,
        full_name=kwargs.pop("full_name", reg_no),
        registration_number=reg_no,
        role=role,
        credential_hash=generate_password_hash(password),
        email=kwargs.pop("email", f"{reg_no.lower()}@example.edu"),
        **kwargs,
    )


def claims_for(identity_id: int, role: Role) -> Claims:
    return Claims(subject_id=identity_id, role=role, external_ref=None, issued_at=0, expires_at=0)


class World:
    """Everything a service-level test needs, wired over in-memory repositories."""

    def __init__(self, clock: FixedClock, settings: dict | None = None):
        self.clock = clock
        self.identities = InMemoryIdentities(
            [
                make_identity(ADMIN_ID, Role.ADMINISTRATOR, "ADM001"),
                make_identity(HOST_ID, Role.HOST, "LEC001"),
                make_identity(OTHER_HOST_ID, Role.HOST, "LEC002"),
                make_identity(PARTICIPANT_ID, Role.PARTICIPANT, "SC1001"),
                make_identity(OUTSIDER_ID, Role.PARTICIPANT, "SC1099"),
            ]
        )
        self.enrollments = InMemoryEnrollments(
            [
                Enrollment(PARTICIPANT_ID, GROUP_ID, EnrollmentStatus.ACTIVE),
                Enrollment(OUTSIDER_ID, GROUP_ID, EnrollmentStatus.INACTIVE),
            ]
        )
        self.events = InMemoryEvents()
        self.attendance = InMemoryAttendance(self.events, self.enrollments)
        self.container = assemble(
            {**SETTINGS, **(settings or {})},
            identities_repo=self.identities,
            enrollments_repo=self.enrollments,
            events_repo=self.events,
            attendance_repo=self.attendance,
            clock=clock,
        )

    host = claims_for(HOST_ID, Role.HOST)
    other_host = claims_for(OTHER_HOST_ID, Role.HOST)
    admin = claims_for(ADMIN_ID, Role.ADMINISTRATOR)
    participant = claims_for(PARTICIPANT_ID, Role.PARTICIPANT)
    outsider = claims_for(OUTSIDER_ID, Role.PARTICIPANT)

    def open_event(self, *, start: time = time(9, 0), end: time = time(11, 0), geofence=None):
        """Open an event today at ``start`` with the clock set to the start time."""
        self.clock.set(hour=start.hour, minute=start.minute, second=0, microsecond=0)
        return self.container.roll_call_service.create_event(
            self.host,
            group_id=GROUP_ID,
            scheduled_date=self.clock.now.date(),
            start_time=start,
            end_time=end,
            geofence=geofence,
        )


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 3, 2, 8, 0, 0))


@pytest.fixture()
def world(clock) -> World:
    return World(clock)
