from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..common.geo import Geofence
from ..core.enums import EventStatus


@dataclass(frozen=True)
class RollCallEvent:
    """Domain entity: one scheduled attendance-taking occasion for a group."""

    event_id: int
    group_id: int
    host_id: int
    scheduled_date: date
    start_time: time
    end_time: time
    signature_payload: Optional[str]
    expires_at: Optional[datetime]
    status: EventStatus = EventStatus.ACTIVE
    geofence: Optional[Geofence] = None

    @property
    def scheduled_start(self) -> datetime:
        return datetime.combine(self.scheduled_date, self.start_time)

    def is_live(self, now: datetime) -> bool:
        """Expiry is derived from the clock on every read; nothing sweeps events."""
        if self.status != EventStatus.ACTIVE or self.expires_at is None:
            return False
        return now <= self.expires_at

    def to_dict(self, *, now: Optional[datetime] = None) -> dict:
        out = {
            "id": self.event_id,
            "group_id": self.group_id,
            "host_id": self.host_id,
            "date": self.scheduled_date.isoformat(),
            "start_time": self.start_time.strftime("%H:%M:%S"),
            "end_time": self.end_time.strftime("%H:%M:%S"),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "status": self.status.value,
            "geofence": self.geofence.to_dict() if self.geofence else None,
        }
        if now is not None:
            out["live"] = self.is_live(now)
        return out


@dataclass(frozen=True)
class NewRollCallEvent:
    group_id: int
    host_id: int
    scheduled_date: date
    start_time: time
    end_time: time
    geofence: Optional[Geofence] = None
