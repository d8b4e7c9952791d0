from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

import jwt

from ..common.datetime_utils import Clock, now_local
from ..core.constants import DEFAULT_AUTH_TOKEN_TTL_HOURS, DEFAULT_CLOCK_SKEW_SECONDS
from ..core.enums import Role
from ..core.exceptions import TokenExpired, TokenInvalid
from ..users.model import Identity

ALGORITHM = "HS256"
_REQUIRED_CLAIMS = ["sub", "role", "iat", "exp"]


@dataclass(frozen=True)
class Claims:
    """Decoded, verified contents of a bearer token."""

    subject_id: int
    role: Role
    external_ref: Optional[str]
    issued_at: int
    expires_at: int

    def to_dict(self) -> dict:
        return {
            "subject_id": self.subject_id,
            "role": self.role.value,
            "external_ref": self.external_ref,
            "issued_at": self.issued_at,
            "expires_at": self.expires_at,
        }


@dataclass(frozen=True)
class IssuedToken:
    token: str
    claims: Claims


class AuthTokenService:
    """Issue and verify stateless bearer tokens (HS256 JWT).

    There is no revocation list: logout is the client discarding its token.
    Expiry is checked against the injected clock, with ``clock_skew`` of leeway.
    """

    def __init__(
        self,
        secret: str,
        *,
        ttl: timedelta = timedelta(hours=DEFAULT_AUTH_TOKEN_TTL_HOURS),
        clock_skew: timedelta = timedelta(seconds=DEFAULT_CLOCK_SKEW_SECONDS),
        clock: Clock = now_local,
    ):
        if not secret:
            raise ValueError("AuthTokenService requires a non-empty secret")
        self._secret = secret
        self._ttl = ttl
        self._clock_skew = clock_skew
        self._clock = clock

    def issue(self, identity: Identity) -> IssuedToken:
        issued_at = int(self._clock().timestamp())
        expires_at = issued_at + int(self._ttl.total_seconds())
        payload: dict[str, Any] = {
            # RFC 7519 wants "sub" to be a string.
            "sub": str(identity.identity_id),
            "role": identity.role.value,
            "ref": identity.reference,
            "iat": issued_at,
            "exp": expires_at,
        }
        token = jwt.encode(payload, self._secret, algorithm=ALGORITHM)
        claims = Claims(
            subject_id=identity.identity_id,
            role=identity.role,
            external_ref=identity.reference,
            issued_at=issued_at,
            expires_at=expires_at,
        )
        return IssuedToken(token=token, claims=claims)

    def verify(self, token: str) -> Claims:
        if not token:
            raise TokenInvalid()
        try:
            data = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"verify_exp": False, "verify_iat": False, "require": _REQUIRED_CLAIMS},
            )
        except jwt.InvalidTokenError as e:
            raise TokenInvalid() from e

        try:
            claims = Claims(
                subject_id=int(data["sub"]),
                role=Role(data["role"]),
                external_ref=data.get("ref"),
                issued_at=int(data["iat"]),
                expires_at=int(data["exp"]),
            )
        except (TypeError, ValueError) as e:
            raise TokenInvalid() from e

        now = self._clock()
        if now > datetime.fromtimestamp(claims.expires_at) + self._clock_skew:
            raise TokenExpired()
        return claims
