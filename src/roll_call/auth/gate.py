from __future__ import annotations

from typing import Iterable

from ..core.enums import Role
from ..core.exceptions import InsufficientPermissions
from .tokens import Claims

ANY_AUTHENTICATED: frozenset[Role] = frozenset()
HOSTS: frozenset[Role] = frozenset({Role.HOST, Role.ADMINISTRATOR})
PARTICIPANTS: frozenset[Role] = frozenset({Role.PARTICIPANT})


class AuthorizationGate:
    """Pure role check: no storage, no side effects."""

    def authorize(self, claims: Claims, required_roles: Iterable[Role] = ANY_AUTHENTICATED) -> None:
        roles = frozenset(required_roles)
        if roles and claims.role not in roles:
            raise InsufficientPermissions()
