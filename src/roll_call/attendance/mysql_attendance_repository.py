from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence

from ..core.enums import AttendanceStatus, MarkedBy
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time
from .model import AttendanceHistoryEntry, AttendanceRecord, AttendanceSummary
from .repository import AttendanceRepository

_COLUMNS = "record_id, event_id, participant_id, marked_at, status, marked_by, origin_metadata"


def _load_metadata(value: Any) -> Dict[str, Any]:
    if not value:
        return {}
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        return json.loads(value)
    return dict(value)


def _to_record(row: Dict[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=int(row["record_id"]),
        event_id=int(row["event_id"]),
        participant_id=int(row["participant_id"]),
        marked_at=row["marked_at"],
        status=AttendanceStatus(row["status"]),
        marked_by=MarkedBy(row["marked_by"]),
        origin_metadata=_load_metadata(row.get("origin_metadata")),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, timeout: Optional[float] = None):
        self._conn_factory = conn_factory
        self._timeout = timeout

    def create_record(
        self,
        *,
        event_id: int,
        participant_id: int,
        marked_at: datetime,
        status: AttendanceStatus,
        marked_by: MarkedBy,
        origin_metadata: Dict[str, Any],
    ) -> int:
        # uq_attendance_event_participant turns a concurrent duplicate into ER_DUP_ENTRY,
        # which db_cursor re-raises as DuplicateKeyError.
        with db_cursor(self._conn_factory, timeout=self._timeout) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(event_id, participant_id, marked_at, status, marked_by, origin_metadata)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (event_id, participant_id, marked_at, status.value, marked_by.value, json.dumps(origin_metadata)),
            )
            return int(cur.lastrowid)

    def upsert_manual(
        self,
        *,
        event_id: int,
        participant_id: int,
        marked_at: datetime,
        status: AttendanceStatus,
        origin_metadata: Dict[str, Any],
    ) -> int:
        with db_cursor(self._conn_factory, timeout=self._timeout) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(event_id, participant_id, marked_at, status, marked_by, origin_metadata)
                VALUES(%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    record_id=LAST_INSERT_ID(record_id),
                    status=VALUES(status),
                    marked_at=VALUES(marked_at)
                """,
                (
                    event_id,
                    participant_id,
                    marked_at,
                    status.value,
                    MarkedBy.MANUAL_OVERRIDE.value,
                    json.dumps(origin_metadata),
                ),
            )
            return int(cur.lastrowid)

    def get_for_event_and_participant(self, event_id: int, participant_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory, timeout=self._timeout) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE event_id=%s AND participant_id=%s",
                (event_id, participant_id),
            )
            row = fetchone(cur)
            return _to_record(row) if row else None

    def list_for_event(self, event_id: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory, timeout=self._timeout) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE event_id=%s
                ORDER BY marked_at ASC, record_id ASC
                """,
                (event_id,),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_for_participant(self, participant_id: int, *, limit: int) -> Sequence[AttendanceHistoryEntry]:
        with db_cursor(self._conn_factory, timeout=self._timeout) as (_, cur):
            cur.execute(
                """
                SELECT ar.record_id, ar.event_id, e.group_id, e.scheduled_date, e.start_time,
                       ar.marked_at, ar.status, ar.marked_by
                FROM attendance_records ar
                JOIN roll_call_events e ON e.event_id = ar.event_id
                WHERE ar.participant_id=%s
                ORDER BY ar.marked_at DESC, ar.record_id DESC
                LIMIT %s
                """,
                (participant_id, int(limit)),
            )
            return [
                AttendanceHistoryEntry(
                    record_id=int(r["record_id"]),
                    event_id=int(r["event_id"]),
                    group_id=int(r["group_id"]),
                    scheduled_date=r["scheduled_date"],
                    start_time=normalize_mysql_time(r["start_time"]),
                    marked_at=r["marked_at"],
                    status=AttendanceStatus(r["status"]),
                    marked_by=MarkedBy(r["marked_by"]),
                )
                for r in fetchall(cur)
            ]

    def summary_for_participant(self, participant_id: int, *, up_to: date) -> AttendanceSummary:
        with db_cursor(self._conn_factory, timeout=self._timeout) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS total_events,
                       COALESCE(SUM(ar.status='present'), 0) AS present,
                       COALESCE(SUM(ar.status='late'), 0) AS late,
                       COALESCE(SUM(ar.status='excused'), 0) AS excused,
                       COALESCE(SUM(ar.status='absent' OR ar.record_id IS NULL), 0) AS absent
                FROM roll_call_events e
                JOIN enrollments en
                  ON en.group_id = e.group_id AND en.participant_id=%s AND en.status='active'
                LEFT JOIN attendance_records ar
                  ON ar.event_id = e.event_id AND ar.participant_id = en.participant_id
                WHERE e.scheduled_date <= %s
                """,
                (participant_id, up_to),
            )
            row = fetchone(cur) or {}
            return AttendanceSummary(
                participant_id=participant_id,
                total_events=int(row.get("total_events") or 0),
                present=int(row.get("present") or 0),
                late=int(row.get("late") or 0),
                absent=int(row.get("absent") or 0),
                excused=int(row.get("excused") or 0),
            )
