from __future__ import annotations

from typing import Optional, Protocol

from .model import Enrollment


class EnrollmentRepository(Protocol):
    def get(self, participant_id: int, group_id: int) -> Optional[Enrollment]:
        raise NotImplementedError
