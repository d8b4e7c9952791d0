from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Dict, Optional

from ..common.geo import Coordinates
from ..core.enums import AttendanceStatus, MarkedBy


@dataclass(frozen=True)
class SubmissionMeta:
    """Where a submission came from; stored verbatim on the record."""

    ip: Optional[str] = None
    device: Optional[str] = None
    location: Optional[Coordinates] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ip": self.ip,
            "device": self.device,
            "location": self.location.to_dict() if self.location else None,
        }


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one participant's outcome for one event."""

    record_id: int
    event_id: int
    participant_id: int
    marked_at: datetime
    status: AttendanceStatus
    marked_by: MarkedBy
    origin_metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.record_id,
            "event_id": self.event_id,
            "participant_id": self.participant_id,
            "marked_at": self.marked_at.isoformat(),
            "status": self.status.value,
            "marked_by": self.marked_by.value,
            "origin_metadata": self.origin_metadata,
        }


@dataclass(frozen=True)
class RecordOutcome:
    record_id: int
    event_id: int
    participant_id: int
    status: AttendanceStatus
    marked_at: datetime
    minutes_late: float

    def to_dict(self) -> dict:
        return {
            "record_id": self.record_id,
            "event_id": self.event_id,
            "participant_id": self.participant_id,
            "status": self.status.value,
            "marked_at": self.marked_at.isoformat(),
            "minutes_late": round(self.minutes_late, 2),
        }


@dataclass(frozen=True)
class AttendanceSummary:
    """Read-model for a participant's dashboard."""

    participant_id: int
    total_events: int
    present: int
    late: int
    absent: int
    excused: int

    @property
    def attendance_rate(self) -> float:
        if self.total_events <= 0:
            return 0.0
        return round(100.0 * (self.present + self.late) / self.total_events, 1)

    def to_dict(self) -> dict:
        return {
            "participant_id": self.participant_id,
            "total_events": self.total_events,
            "present": self.present,
            "late": self.late,
            "absent": self.absent,
            "excused": self.excused,
            "attendance_rate": self.attendance_rate,
        }


@dataclass(frozen=True)
class AttendanceHistoryEntry:
    """One row of a participant's recent attendance, with the event it belongs to."""

    record_id: int
    event_id: int
    group_id: int
    scheduled_date: date
    start_time: time
    marked_at: datetime
    status: AttendanceStatus
    marked_by: MarkedBy

    def to_dict(self) -> dict:
        return {
            "record_id": self.record_id,
            "event_id": self.event_id,
            "group_id": self.group_id,
            "date": self.scheduled_date.isoformat(),
            "start_time": self.start_time.strftime("%H:%M"),
            "marked_at": self.marked_at.isoformat(),
            "time": self.marked_at.strftime("%H:%M"),
            "status": self.status.value,
            "marked_by": self.marked_by.value,
        }
