from __future__ import annotations

import hmac
import logging
from datetime import datetime, timedelta
from typing import Optional, Sequence

from ..auth.gate import HOSTS, PARTICIPANTS, AuthorizationGate
from ..auth.tokens import Claims
from ..common.datetime_utils import Clock, now_local
from ..common.geo import distance_meters
from ..common.validators import require_positive_int
from ..core.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_LATE_THRESHOLD_MINUTES, MAX_HISTORY_LIMIT
from ..core.enums import AttendanceStatus, MarkedBy
from ..core.exceptions import (
    AlreadyMarked,
    DuplicateKeyError,
    EventExpired,
    EventNotFound,
    InvalidInput,
    MalformedPayload,
    NotEnrolled,
    OutsideGeofence,
    SignatureMismatch,
)
from ..enrollments.repository import EnrollmentRepository
from ..sessions.model import RollCallEvent
from ..sessions.repository import RollCallEventRepository
from ..sessions.service import require_event_manager
from ..sessions.signing import SessionTokenService
from .factory import AttendanceStrategyFactory
from .model import AttendanceHistoryEntry, AttendanceRecord, AttendanceSummary, RecordOutcome, SubmissionMeta
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class AttendanceRecorder:
    """Validate a scanned payload and record attendance at most once per participant.

    The at-most-once guarantee comes from the store's uniqueness constraint on
    (event_id, participant_id), not from a read-then-write check: concurrent
    duplicates lose at insert time and surface as ``AlreadyMarked``.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        events: RollCallEventRepository,
        enrollments: EnrollmentRepository,
        session_tokens: SessionTokenService,
        *,
        gate: Optional[AuthorizationGate] = None,
        strategy_factory: Optional[AttendanceStrategyFactory] = None,
        late_threshold_minutes: int = DEFAULT_LATE_THRESHOLD_MINUTES,
        enforce_geofence: bool = True,
        clock: Clock = now_local,
    ):
        self._attendance = attendance
        self._events = events
        self._enrollments = enrollments
        self._session_tokens = session_tokens
        self._gate = gate or AuthorizationGate()
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._late_threshold = timedelta(minutes=int(late_threshold_minutes))
        self._enforce_geofence = bool(enforce_geofence)
        self._clock = clock

    def _get_event(self, event_id: int) -> RollCallEvent:
        event = self._events.get_by_id(event_id)
        if not event:
            raise EventNotFound()
        return event

    def _require_enrolled(self, event: RollCallEvent, participant_id: int) -> None:
        enrollment = self._enrollments.get(participant_id, event.group_id)
        if not enrollment or not enrollment.is_active:
            raise NotEnrolled()

    def _check_geofence(self, event: RollCallEvent, meta: SubmissionMeta) -> None:
        if not event.geofence:
            return
        if meta.location is None:
            if self._enforce_geofence:
                raise OutsideGeofence("This event requires a location with the submission")
            return
        distance = distance_meters(event.geofence.center, meta.location)
        if self._enforce_geofence and distance > event.geofence.radius_meters:
            logger.info("Event %s: submission %.0fm away (radius %.0fm)",
                        event.event_id, distance, event.geofence.radius_meters)
            raise OutsideGeofence()

    def submit(self, claims: Claims, payload: str, meta: SubmissionMeta, *, now: Optional[datetime] = None) -> RecordOutcome:
        """Participant flow: authorize, verify the scanned payload, then record."""
        self._gate.authorize(claims, PARTICIPANTS)

        raw_event_id = self._session_tokens.verify(payload)
        try:
            event_id = int(raw_event_id)
        except ValueError:
            raise MalformedPayload()

        event = self._get_event(event_id)
        # A re-keyed event only honours its current payload.
        if not event.signature_payload or not hmac.compare_digest(
            event.signature_payload.encode("ascii"), payload.strip().encode("ascii")
        ):
            raise SignatureMismatch()

        return self._record_for_event(event, claims.subject_id, meta, now=now)

    def record(self, event_id: int, participant_id: int, meta: SubmissionMeta, *, now: Optional[datetime] = None) -> RecordOutcome:
        return self._record_for_event(self._get_event(event_id), participant_id, meta, now=now)

    def _record_for_event(
        self,
        event: RollCallEvent,
        participant_id: int,
        meta: SubmissionMeta,
        *,
        now: Optional[datetime] = None,
    ) -> RecordOutcome:
        now = now or self._clock()

        if not event.is_live(now):
            logger.info("Event %s rejected submission from %s: not live", event.event_id, participant_id)
            raise EventExpired()

        self._require_enrolled(event, participant_id)
        self._check_geofence(event, meta)

        strategy = self._factory.for_submission(
            now=now, scheduled_start=event.scheduled_start, late_threshold=self._late_threshold
        )
        decision = strategy.decide(now=now, scheduled_start=event.scheduled_start, late_threshold=self._late_threshold)

        try:
            record_id = self._attendance.create_record(
                event_id=event.event_id,
                participant_id=participant_id,
                marked_at=now,
                status=decision.status,
                marked_by=MarkedBy.SELF_SERVICE,
                origin_metadata=meta.to_dict(),
            )
        except DuplicateKeyError:
            logger.info("Event %s: participant %s already marked", event.event_id, participant_id)
            raise AlreadyMarked()

        logger.info("Event %s: participant %s marked %s", event.event_id, participant_id, decision.status.value)
        return RecordOutcome(
            record_id=record_id,
            event_id=event.event_id,
            participant_id=participant_id,
            status=decision.status,
            marked_at=now,
            minutes_late=decision.minutes_late,
        )

    def override(
        self,
        claims: Claims,
        *,
        event_id: int,
        participant_id: int,
        status: AttendanceStatus | str,
        note: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        """Host correction; works on closed or expired events too."""
        self._gate.authorize(claims, HOSTS)
        try:
            status = AttendanceStatus(status)
        except ValueError:
            raise InvalidInput("Unknown attendance status")

        event = self._get_event(int(event_id))
        require_event_manager(claims, event)
        self._require_enrolled(event, int(participant_id))

        now = now or self._clock()
        record_id = self._attendance.upsert_manual(
            event_id=event.event_id,
            participant_id=int(participant_id),
            marked_at=now,
            status=status,
            origin_metadata={"overridden_by": claims.subject_id, "note": note},
        )
        logger.info("Event %s: participant %s set to %s by %s",
                    event.event_id, participant_id, status.value, claims.subject_id)

        record = self._attendance.get_for_event_and_participant(event.event_id, int(participant_id))
        if record is not None:
            return record
        return AttendanceRecord(
            record_id=record_id,
            event_id=event.event_id,
            participant_id=int(participant_id),
            marked_at=now,
            status=status,
            marked_by=MarkedBy.MANUAL_OVERRIDE,
        )

    def list_for_event(self, claims: Claims, event_id: int) -> Sequence[AttendanceRecord]:
        self._gate.authorize(claims, HOSTS)
        event = self._get_event(int(event_id))
        require_event_manager(claims, event)
        return self._attendance.list_for_event(event.event_id)

    def summary_for(self, claims: Claims, *, today: Optional[datetime] = None) -> AttendanceSummary:
        self._gate.authorize(claims, PARTICIPANTS)
        today = today or self._clock()
        return self._attendance.summary_for_participant(claims.subject_id, up_to=today.date())

    def history_for(self, claims: Claims, *, limit: Optional[int] = None) -> Sequence[AttendanceHistoryEntry]:
        """The caller's most recent attendance records, newest first."""
        self._gate.authorize(claims, PARTICIPANTS)
        if limit is None:
            limit = DEFAULT_HISTORY_LIMIT
        limit = require_positive_int(limit, "limit")
        return self._attendance.list_for_participant(claims.subject_id, limit=min(limit, MAX_HISTORY_LIMIT))
