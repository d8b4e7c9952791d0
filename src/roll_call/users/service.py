from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..auth.gate import AuthorizationGate
from ..auth.tokens import AuthTokenService, Claims, IssuedToken
from ..common.validators import require_min_length, require_non_empty
from ..core.enums import Role
from ..core.exceptions import DuplicateKeyError, InsufficientPermissions, InvalidCredentials, InvalidInput
from .model import Identity
from .repository import IdentityRepository

logger = logging.getLogger(__name__)

MIN_SECRET_LENGTH = 6

# Checked on lookup misses so unknown identifiers cost the same hash work as wrong secrets.
_DUMMY_CREDENTIAL_HASH = generate_password_hash("roll-call-unknown-identity")


class CredentialVerifier:
    """Check a presented secret against the stored salted hash.

    Every failure (unknown identifier, wrong role, inactive account, corrupt
    hash, wrong secret) collapses into the same ``InvalidCredentials``.
    """

    def __init__(self, identities: IdentityRepository):
        self._identities = identities

    def verify(self, identifier: str, role: Role, presented_secret: str) -> Identity:
        identity = self._identities.find_active_by_identifier((identifier or "").strip(), role)
        if not identity or not identity.is_active:
            check_password_hash(_DUMMY_CREDENTIAL_HASH, presented_secret or "")
            raise InvalidCredentials()

        try:
            ok = check_password_hash(identity.credential_hash, presented_secret or "")
        except (TypeError, ValueError):
            # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
            check_password_hash(_DUMMY_CREDENTIAL_HASH, presented_secret or "")
            ok = False

        if not ok:
            raise InvalidCredentials()
        return identity


@dataclass(frozen=True)
class LoginResult:
    token: IssuedToken
    identity: Identity


class AuthService:
    """Use case: authenticate (login) and hand out a bearer token."""

    def __init__(self, verifier: CredentialVerifier, tokens: AuthTokenService):
        self._verifier = verifier
        self._tokens = tokens

    def login(self, identifier: str, secret: str, role: str | Role) -> LoginResult:
        try:
            role = Role(role)
        except ValueError:
            raise InvalidCredentials()

        try:
            identity = self._verifier.verify(identifier, role, secret)
        except InvalidCredentials:
            logger.warning("Rejected login for role=%s", role.value)
            raise

        logger.info("Identity %s logged in as %s", identity.identity_id, role.value)
        return LoginResult(token=self._tokens.issue(identity), identity=identity)


class IdentityService:
    """Use case: identity lifecycle (registration, password change, deactivation)."""

    def __init__(self, identities: IdentityRepository, gate: Optional[AuthorizationGate] = None):
        self._identities = identities
        self._gate = gate or AuthorizationGate()

    def register(
        self,
        *,
        full_name: str,
        registration_number: str,
        secret: str,
        role: Role,
        email: Optional[str] = None,
        external_ref: Optional[str] = None,
    ) -> int:
        full_name = require_non_empty(full_name, "Full name")
        registration_number = require_non_empty(registration_number, "Registration number")
        require_min_length(secret, "Password", MIN_SECRET_LENGTH)
        email = (email or "").strip().lower() or None

        try:
            return self._identities.create_identity(
                full_name=full_name,
                registration_number=registration_number,
                email=email,
                external_ref=(external_ref or "").strip() or None,
                role=role,
                credential_hash=generate_password_hash(secret),
            )
        except DuplicateKeyError:
            raise InvalidInput("Registration number or email already in use")

    def change_password(self, claims: Claims, *, current_secret: str, new_secret: str) -> None:
        identity = self._identities.get_by_id(claims.subject_id)
        if not identity or not identity.is_active:
            raise InvalidCredentials()

        CredentialVerifier(self._identities).verify(identity.registration_number, identity.role, current_secret)
        require_min_length(new_secret, "Password", MIN_SECRET_LENGTH)
        self._identities.update_credential_hash(identity.identity_id, generate_password_hash(new_secret))

    def deactivate(self, claims: Claims, identity_id: int) -> None:
        self._gate.authorize(claims, {Role.ADMINISTRATOR})
        if claims.subject_id == identity_id:
            raise InsufficientPermissions("Administrators cannot deactivate themselves")
        if not self._identities.set_active(identity_id, is_active=False):
            raise InvalidInput("Identity not found")
        logger.info("Identity %s deactivated by %s", identity_id, claims.subject_id)
