from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple

from ..common.geo import Geofence
from ..core.enums import EventStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, normalize_mysql_time
from .model import NewRollCallEvent, RollCallEvent
from .repository import RollCallEventRepository
from .signing import SignedPayload


def _to_event(row: Dict[str, Any]) -> RollCallEvent:
    geofence = None
    if row.get("geofence_radius_m") is not None:
        geofence = Geofence(
            latitude=float(row["geofence_lat"]),
            longitude=float(row["geofence_lon"]),
            radius_meters=float(row["geofence_radius_m"]),
        )
    return RollCallEvent(
        event_id=int(row["event_id"]),
        group_id=int(row["group_id"]),
        host_id=int(row["host_id"]),
        scheduled_date=row["scheduled_date"],
        start_time=normalize_mysql_time(row["start_time"]),
        end_time=normalize_mysql_time(row["end_time"]),
        signature_payload=row.get("signature_payload"),
        expires_at=row.get("expires_at"),
        status=EventStatus(row["status"]),
        geofence=geofence,
    )


class MySQLRollCallEventRepository(RollCallEventRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, timeout: Optional[float] = None):
        self._conn_factory = conn_factory
        self._timeout = timeout

    def get_by_id(self, event_id: int) -> Optional[RollCallEvent]:
        with db_cursor(self._conn_factory, timeout=self._timeout) as (_, cur):
            cur.execute(
                """
                SELECT event_id, group_id, host_id, scheduled_date, start_time, end_time,
                       signature_payload, expires_at, geofence_lat, geofence_lon, geofence_radius_m, status
                FROM roll_call_events
                WHERE event_id=%s
                """,
                (event_id,),
            )
            row = fetchone(cur)
            return _to_event(row) if row else None

    def create_signed_event(
        self,
        event: NewRollCallEvent,
        sign: Callable[[int], SignedPayload],
    ) -> Tuple[int, SignedPayload]:
        fence = event.geofence
        with db_cursor(self._conn_factory, timeout=self._timeout) as (_, cur):
            cur.execute(
                """
                INSERT INTO roll_call_events(
                    group_id, host_id, scheduled_date, start_time, end_time,
                    geofence_lat, geofence_lon, geofence_radius_m, status
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    event.group_id,
                    event.host_id,
                    event.scheduled_date,
                    event.start_time,
                    event.end_time,
                    fence.latitude if fence else None,
                    fence.longitude if fence else None,
                    fence.radius_meters if fence else None,
                    EventStatus.ACTIVE.value,
                ),
            )
            event_id = int(cur.lastrowid)
            signed = sign(event_id)
            cur.execute(
                "UPDATE roll_call_events SET signature_payload=%s, expires_at=%s WHERE event_id=%s",
                (signed.payload, signed.expires_at, event_id),
            )
            return event_id, signed

    def set_signature(self, event_id: int, *, signature_payload: str, expires_at: datetime) -> bool:
        with db_cursor(self._conn_factory, timeout=self._timeout) as (_, cur):
            cur.execute(
                """
                UPDATE roll_call_events
                SET signature_payload=%s, expires_at=%s
                WHERE event_id=%s
                """,
                (signature_payload, expires_at, event_id),
            )
            return cur.rowcount > 0

    def set_status(self, event_id: int, status: EventStatus) -> bool:
        with db_cursor(self._conn_factory, timeout=self._timeout) as (_, cur):
            cur.execute(
                "UPDATE roll_call_events SET status=%s WHERE event_id=%s",
                (status.value, event_id),
            )
            return cur.rowcount > 0
