from __future__ import annotations

from typing import Optional, Protocol

from ..core.enums import Role
from .model import Identity


class IdentityRepository(Protocol):
    """Repository interface for Identity.

    Note: the service layer depends on this interface, not on a concrete DB.
    """

    def get_by_id(self, identity_id: int) -> Optional[Identity]:
        raise NotImplementedError

    def find_active_by_identifier(self, identifier: str, role: Role) -> Optional[Identity]:
        """Match ``identifier`` against registration number or email."""

        raise NotImplementedError

    def create_identity(
        self,
        *,
        full_name: str,
        registration_number: str,
        email: Optional[str],
        external_ref: Optional[str],
        role: Role,
        credential_hash: str,
    ) -> int:
        raise NotImplementedError

    def update_credential_hash(self, identity_id: int, credential_hash: str) -> bool:
        raise NotImplementedError

    def set_active(self, identity_id: int, *, is_active: bool) -> bool:
        raise NotImplementedError
