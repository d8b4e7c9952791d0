from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class Identity:
    """Domain entity: an account that can log in.

    Note: Plain data object (no DB access code). Identities are never deleted,
    only deactivated.
    """

    identity_id: int
    full_name: str
    registration_number: str
    role: Role
    credential_hash: str
    email: Optional[str] = None
    external_ref: Optional[str] = None
    is_active: bool = True

    @property
    def reference(self) -> str:
        return self.external_ref or self.registration_number

    def to_public_dict(self) -> dict:
        return {
            "id": self.identity_id,
            "full_name": self.full_name,
            "registration_number": self.registration_number,
            "email": self.email,
            "role": self.role.value,
            "external_ref": self.reference,
        }
