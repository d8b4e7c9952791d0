from __future__ import annotations

from functools import wraps
from typing import Iterable

from flask import g, request

from ..core.enums import Role
from ..core.exceptions import AuthenticationError
from .gate import ANY_AUTHENTICATED


def bearer_token_from_request() -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Missing bearer token")
    return token.strip()


def bearer_required(container, roles: Iterable[Role] = ANY_AUTHENTICATED):
    """Verify the bearer token, check the role set and expose claims as ``g.claims``."""

    required = frozenset(roles)

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            claims = container.token_service.verify(bearer_token_from_request())
            container.gate.authorize(claims, required)
            g.claims = claims
            return view(*args, **kwargs)

        return wrapper

    return decorator
