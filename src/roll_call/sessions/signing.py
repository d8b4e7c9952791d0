from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..common.datetime_utils import Clock, now_local, to_epoch_millis
from ..core.constants import DEFAULT_SESSION_VALIDITY_MINUTES
from ..core.exceptions import MalformedPayload, SignatureMismatch

SEPARATOR = ":"
_HEX_DIGITS = frozenset("0123456789abcdef")


@dataclass(frozen=True)
class SignedPayload:
    payload: str
    issued_at_ms: int
    expires_at: datetime


class SessionTokenService:
    """Mint and check the QR payload ``<eventId>:<epochMillis>:<hexHmacSha256>``.

    The HMAC covers exactly ``<eventId>:<epochMillis>``. :meth:`verify` only
    proves integrity; liveness is decided from the event's stored ``expires_at``,
    never from the timestamp inside the payload.
    """

    def __init__(
        self,
        secret: str,
        *,
        validity: timedelta = timedelta(minutes=DEFAULT_SESSION_VALIDITY_MINUTES),
        clock: Clock = now_local,
    ):
        if not secret:
            raise ValueError("SessionTokenService requires a non-empty secret")
        self._key = secret.encode("utf-8")
        self._validity = validity
        self._clock = clock

    @property
    def validity(self) -> timedelta:
        return self._validity

    def _sign(self, message: str) -> str:
        return hmac.new(self._key, message.encode("ascii"), hashlib.sha256).hexdigest()

    def generate(self, event_id: int | str) -> SignedPayload:
        event_id = str(event_id)
        if not event_id or SEPARATOR in event_id:
            raise ValueError(f"Invalid event id for payload: {event_id!r}")

        now = self._clock()
        issued_at_ms = to_epoch_millis(now)
        message = f"{event_id}{SEPARATOR}{issued_at_ms}"
        return SignedPayload(
            payload=f"{message}{SEPARATOR}{self._sign(message)}",
            issued_at_ms=issued_at_ms,
            expires_at=now + self._validity,
        )

    def verify(self, payload: str) -> str:
        """Return the event id carried by ``payload``; raise if it is malformed or forged."""
        if not isinstance(payload, str) or not payload.isascii():
            raise MalformedPayload()

        parts = payload.strip().split(SEPARATOR)
        if len(parts) != 3:
            raise MalformedPayload()

        event_id, issued_at, signature = parts
        if not event_id or not issued_at.isdigit():
            raise MalformedPayload()
        if not signature or not set(signature) <= _HEX_DIGITS:
            raise SignatureMismatch()

        expected = self._sign(f"{event_id}{SEPARATOR}{issued_at}")
        if not hmac.compare_digest(expected, signature):
            raise SignatureMismatch()
        return event_id
