from __future__ import annotations

from datetime import datetime, timedelta

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision, minutes_between


class LateStrategy(AttendanceStrategy):
    """Submitted after the late threshold."""

    def decide(self, *, now: datetime, scheduled_start: datetime, late_threshold: timedelta) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.LATE, minutes_late=minutes_between(scheduled_start, now))
