from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from .strategies.base import AttendanceStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.present_strategy import PresentStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    def for_submission(self, *, now: datetime, scheduled_start: datetime, late_threshold: timedelta) -> AttendanceStrategy:
        # Strictly greater: a submission exactly on the threshold still counts as present.
        if now - scheduled_start > late_threshold:
            return LateStrategy()
        return PresentStrategy()
