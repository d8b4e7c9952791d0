from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles used by the authorization gate."""

    PARTICIPANT = "participant"
    HOST = "host"
    ADMINISTRATOR = "administrator"


class AttendanceStatus(str, Enum):
    """Attendance outcome stored per (event, participant)."""

    PRESENT = "present"
    LATE = "late"
    ABSENT = "absent"
    EXCUSED = "excused"


class MarkedBy(str, Enum):
    SELF_SERVICE = "self-service"
    MANUAL_OVERRIDE = "manual-override"


class EventStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
