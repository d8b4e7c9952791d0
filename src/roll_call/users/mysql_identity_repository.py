from __future__ import annotations

from typing import Any, Dict, Optional

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Identity
from .repository import IdentityRepository

_COLUMNS = "identity_id, full_name, registration_number, email, external_ref, role, credential_hash, is_active"


def _to_identity(row: Dict[str, Any]) -> Identity:
    return Identity(
        identity_id=int(row["identity_id"]),
        full_name=row["full_name"],
        registration_number=row["registration_number"],
        email=row.get("email"),
        external_ref=row.get("external_ref"),
        role=Role(row["role"]),
        credential_hash=row["credential_hash"],
        is_active=bool(row.get("is_active", True)),
    )


class MySQLIdentityRepository(IdentityRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, timeout: Optional[float] = None):
        self._conn_factory = conn_factory
        self._timeout = timeout

    def get_by_id(self, identity_id: int) -> Optional[Identity]:
        with db_cursor(self._conn_factory, timeout=self._timeout) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM identities WHERE identity_id=%s", (identity_id,))
            row = fetchone(cur)
            return _to_identity(row) if row else None

    def find_active_by_identifier(self, identifier: str, role: Role) -> Optional[Identity]:
        with db_cursor(self._conn_factory, timeout=self._timeout) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM identities
                WHERE (registration_number=%s OR email=%s) AND role=%s AND is_active=1
                LIMIT 1
                """,
                (identifier, identifier, role.value),
            )
            row = fetchone(cur)
            return _to_identity(row) if row else None

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
        with db_cursor(self._conn_factory, timeout=self._timeout) as (_, cur):
            cur.execute(
                """
                INSERT INTO identities(full_name, registration_number, email, external_ref, role, credential_hash, is_active)
                VALUES(%s,%s,%s,%s,%s,%s,1)
                """,
                (full_name, registration_number, email, external_ref, role.value, credential_hash),
            )
            return int(cur.lastrowid)

    def update_credential_hash(self, identity_id: int, credential_hash: str) -> bool:
        with db_cursor(self._conn_factory, timeout=self._timeout) as (_, cur):
            cur.execute(
                "UPDATE identities SET credential_hash=%s WHERE identity_id=%s",
                (credential_hash, identity_id),
            )
            return cur.rowcount > 0

    def set_active(self, identity_id: int, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory, timeout=self._timeout) as (_, cur):
            cur.execute(
                "UPDATE identities SET is_active=%s WHERE identity_id=%s",
                (1 if is_active else 0, identity_id),
            )
            return cur.rowcount > 0
