from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, time
from typing import Optional

from ..auth.gate import HOSTS, AuthorizationGate
from ..auth.tokens import Claims
from ..common.geo import Geofence
from ..common.validators import require_positive_int
from ..core.enums import EventStatus, Role
from ..core.exceptions import EventExpired, EventNotFound, InsufficientPermissions, InvalidInput
from .model import NewRollCallEvent, RollCallEvent
from .repository import RollCallEventRepository
from .signing import SessionTokenService, SignedPayload

logger = logging.getLogger(__name__)


def require_event_manager(claims: Claims, event: RollCallEvent) -> None:
    """Only the owning host or an administrator may manage an event."""
    if claims.role == Role.ADMINISTRATOR:
        return
    if claims.role == Role.HOST and claims.subject_id == event.host_id:
        return
    raise InsufficientPermissions()


@dataclass(frozen=True)
class IssuedEvent:
    event: RollCallEvent
    signed: SignedPayload


class RollCallService:
    """Use case: hosts open, re-key and close roll-call events."""

    def __init__(
        self,
        events: RollCallEventRepository,
        session_tokens: SessionTokenService,
        *,
        gate: Optional[AuthorizationGate] = None,
    ):
        self._events = events
        self._session_tokens = session_tokens
        self._gate = gate or AuthorizationGate()

    def create_event(
        self,
        claims: Claims,
        *,
        group_id: int,
        scheduled_date: date,
        start_time: time,
        end_time: time,
        geofence: Optional[Geofence] = None,
    ) -> IssuedEvent:
        self._gate.authorize(claims, {Role.HOST})
        group_id = require_positive_int(group_id, "group_id")
        if end_time <= start_time:
            raise InvalidInput("end_time must be after start_time")

        new_event = NewRollCallEvent(
            group_id=group_id,
            host_id=claims.subject_id,
            scheduled_date=scheduled_date,
            start_time=start_time,
            end_time=end_time,
            geofence=geofence,
        )
        event_id, signed = self._events.create_signed_event(new_event, self._session_tokens.generate)

        logger.info("Host %s opened event %s for group %s (expires %s)",
                    claims.subject_id, event_id, group_id, signed.expires_at.isoformat())
        event = RollCallEvent(
            event_id=event_id,
            group_id=group_id,
            host_id=claims.subject_id,
            scheduled_date=scheduled_date,
            start_time=start_time,
            end_time=end_time,
            signature_payload=signed.payload,
            expires_at=signed.expires_at,
            status=EventStatus.ACTIVE,
            geofence=geofence,
        )
        return IssuedEvent(event=event, signed=signed)

    def get_managed_event(self, claims: Claims, event_id: int) -> RollCallEvent:
        self._gate.authorize(claims, HOSTS)
        event = self._events.get_by_id(int(event_id))
        if not event:
            raise EventNotFound()
        require_event_manager(claims, event)
        return event

    def close_event(self, claims: Claims, event_id: int) -> RollCallEvent:
        event = self.get_managed_event(claims, event_id)
        if event.status != EventStatus.CLOSED:
            self._events.set_status(event.event_id, EventStatus.CLOSED)
            logger.info("Event %s closed by %s", event.event_id, claims.subject_id)
        return replace(event, status=EventStatus.CLOSED)

    def rekey_event(self, claims: Claims, event_id: int) -> IssuedEvent:
        """Mint a fresh payload and validity window; older payloads stop verifying."""
        event = self.get_managed_event(claims, event_id)
        if event.status != EventStatus.ACTIVE:
            raise EventExpired("Closed events cannot be re-keyed")

        signed = self._session_tokens.generate(event.event_id)
        self._events.set_signature(event.event_id, signature_payload=signed.payload, expires_at=signed.expires_at)
        logger.info("Event %s re-keyed by %s", event.event_id, claims.subject_id)
        return IssuedEvent(
            event=replace(event, signature_payload=signed.payload, expires_at=signed.expires_at),
            signed=signed,
        )
