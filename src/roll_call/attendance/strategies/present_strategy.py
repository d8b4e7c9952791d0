from __future__ import annotations

from datetime import datetime, timedelta

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision, minutes_between


class PresentStrategy(AttendanceStrategy):
    """On time, or within the late threshold."""

    def decide(self, *, now: datetime, scheduled_start: datetime, late_threshold: timedelta) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT, minutes_late=max(0.0, minutes_between(scheduled_start, now)))
