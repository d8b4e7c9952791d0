from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta

from ...core.enums import AttendanceStatus


@dataclass(frozen=True)
class StatusDecision:
    status: AttendanceStatus
    minutes_late: float


class AttendanceStrategy(ABC):
    """Strategy Pattern: encapsulate how we decide an attendance status."""

    @abstractmethod
    def decide(self, *, now: datetime, scheduled_start: datetime, late_threshold: timedelta) -> StatusDecision:
        raise NotImplementedError


def minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60.0
