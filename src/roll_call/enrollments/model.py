from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import EnrollmentStatus


@dataclass(frozen=True)
class Enrollment:
    """Participant membership in a course/group; unique on (participant_id, group_id)."""

    participant_id: int
    group_id: int
    status: EnrollmentStatus

    @property
    def is_active(self) -> bool:
        return self.status == EnrollmentStatus.ACTIVE
