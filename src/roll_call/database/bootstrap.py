from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

from werkzeug.security import generate_password_hash

from .connection import DBConfig, connect_direct

logger = logging.getLogger(__name__)

DEMO_IDENTITIES = (
    # full_name, registration_number, email, role, password
    ("Admin Demo", "ADM001", "admin@example.edu", "administrator", "admin123"),
    ("Lecturer Demo", "LEC001", "lecturer@example.edu", "host", "host123"),
    ("John Doe", "SC1001", "john.doe@example.edu", "participant", "student123"),
    ("Jane Smith", "SC1002", "jane.smith@example.edu", "participant", "student123"),
)


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql compatible regardless of DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _strip_line_comments(sql: str) -> str:
    return re.sub(r"(?m)^\s*--.*$", "", sql)


def _iter_sql_statements(sql: str) -> Iterable[str]:
    # Minimal SQL splitter for schema/seed files (handles ';' inside quotes).
    buf: list[str] = []
    in_single = False
    in_double = False
    escape = False

    for ch in sql:
        if escape:
            buf.append(ch)
            escape = False
            continue

        if ch == "\\":
            buf.append(ch)
            escape = True
            continue

        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        elif ch == ";" and not in_single and not in_double:
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue

        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def _run_script(db_config: dict, path: str | Path) -> int:
    target = DBConfig.from_dict(db_config)
    sql = _strip_line_comments(_strip_create_db_and_use(Path(path).read_text(encoding="utf-8")))

    conn = connect_direct(target)
    count = 0
    try:
        cur = conn.cursor()
        for stmt in _iter_sql_statements(sql):
            cur.execute(stmt)
            count += 1
        conn.commit()
    finally:
        conn.close()
    return count


def ensure_database_exists(db_config: dict) -> None:
    target = DBConfig.from_dict(db_config)
    conn = connect_direct(target, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    count = _run_script(db_config, schema_path)
    logger.info("Applied %s (%d statements)", Path(schema_path).name, count)


def apply_seed_sql(db_config: dict, *, seed_path: str | Path) -> None:
    count = _run_script(db_config, seed_path)
    logger.info("Applied %s (%d statements)", Path(seed_path).name, count)


def ensure_demo_identities(db_config: dict) -> None:
    conn = connect_direct(DBConfig.from_dict(db_config))
    try:
        cur = conn.cursor(dictionary=True)
        for full_name, reg_no, email, role, password in DEMO_IDENTITIES:
            credential_hash = generate_password_hash(password)
            cur.execute("SELECT identity_id FROM identities WHERE registration_number=%s", (reg_no,))
            if cur.fetchone():
                cur.execute(
                    """
                    UPDATE identities
                    SET full_name=%s, email=%s, role=%s, credential_hash=%s, is_active=1
                    WHERE registration_number=%s
                    """,
                    (full_name, email, role, credential_hash, reg_no),
                )
            else:
                cur.execute(
                    """
                    INSERT INTO identities (full_name, registration_number, email, external_ref, role, credential_hash)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    """,
                    (full_name, reg_no, email, reg_no, role, credential_hash),
                )
        conn.commit()
    finally:
        conn.close()


def list_tables(db_config: dict) -> list[str]:
    conn = connect_direct(DBConfig.from_dict(db_config))
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
