from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional, Protocol, Tuple

from ..core.enums import EventStatus
from .model import NewRollCallEvent, RollCallEvent
from .signing import SignedPayload


class RollCallEventRepository(Protocol):
    def get_by_id(self, event_id: int) -> Optional[RollCallEvent]:
        raise NotImplementedError

    def create_signed_event(
        self,
        event: NewRollCallEvent,
        sign: Callable[[int], SignedPayload],
    ) -> Tuple[int, SignedPayload]:
        """Insert the event and store ``sign(event_id)`` in one transaction.

        The payload embeds the generated id, so the row is inserted first and
        signed before commit. If signing or the update fails nothing is kept.
        """

        raise NotImplementedError

    def set_signature(self, event_id: int, *, signature_payload: str, expires_at: datetime) -> bool:
        """Replace the payload of an existing event (re-keying)."""

        raise NotImplementedError

    def set_status(self, event_id: int, status: EventStatus) -> bool:
        raise NotImplementedError
