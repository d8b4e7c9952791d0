from __future__ import annotations

from typing import Optional

from ..core.enums import EnrollmentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Enrollment
from .repository import EnrollmentRepository


class MySQLEnrollmentRepository(EnrollmentRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, timeout: Optional[float] = None):
        self._conn_factory = conn_factory
        self._timeout = timeout

    def get(self, participant_id: int, group_id: int) -> Optional[Enrollment]:
        with db_cursor(self._conn_factory, timeout=self._timeout) as (_, cur):
            cur.execute(
                """
                SELECT participant_id, group_id, status
                FROM enrollments
                WHERE participant_id=%s AND group_id=%s
                """,
                (participant_id, group_id),
            )
            row = fetchone(cur)
            if not row:
                return None
            return Enrollment(
                participant_id=int(row["participant_id"]),
                group_id=int(row["group_id"]),
                status=EnrollmentStatus(row["status"]),
            )
