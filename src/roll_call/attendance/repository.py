from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus, MarkedBy
from .model import AttendanceHistoryEntry, AttendanceRecord, AttendanceSummary


class AttendanceRepository(Protocol):
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
        """Insert guarded by the (event_id, participant_id) uniqueness constraint.

        Raises ``DuplicateKeyError`` when a record for the pair already exists.
        """

        raise NotImplementedError

    def upsert_manual(
        self,
        *,
        event_id: int,
        participant_id: int,
        marked_at: datetime,
        status: AttendanceStatus,
        origin_metadata: Dict[str, Any],
    ) -> int:
        """Manual override: overwrite status/marked_at in place, or insert as manual-override."""

        raise NotImplementedError

    def get_for_event_and_participant(self, event_id: int, participant_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def list_for_event(self, event_id: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_participant(self, participant_id: int, *, limit: int) -> Sequence[AttendanceHistoryEntry]:
        """Most recent records first."""

        raise NotImplementedError

    def summary_for_participant(self, participant_id: int, *, up_to: date) -> AttendanceSummary:
        raise NotImplementedError
