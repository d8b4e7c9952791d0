from __future__ import annotations

import math
from contextlib import contextmanager
from datetime import time, timedelta
from typing import Any, Dict, List, Optional

from mysql.connector import errorcode, errors

from ..core.exceptions import DuplicateKeyError, Unavailable
from .connection import DatabaseConnection

# Server-side limits hit by a statement that ran past the unit-of-work timeout.
_TIMEOUT_ERRNOS = frozenset({errorcode.ER_QUERY_TIMEOUT, errorcode.ER_LOCK_WAIT_TIMEOUT})


def _limit_statements(cur, timeout: float) -> None:
    """Bound every statement of this unit of work to ``timeout`` seconds.

    MAX_EXECUTION_TIME caps SELECTs; innodb_lock_wait_timeout caps writes
    stuck behind row locks (whole seconds, at least 1). Socket reads are
    bounded by the pool's ``connection_timeout``.
    """

    cur.execute(
        "SET SESSION MAX_EXECUTION_TIME=%s, innodb_lock_wait_timeout=%s",
        (max(1, int(timeout * 1000)), max(1, math.ceil(timeout))),
    )


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True, timeout: Optional[float] = None):
    """Borrow a pooled connection and a cursor for one unit of work.

    ``timeout`` (default: the pool's configured timeout) bounds both the wait
    for a free connection and each statement. Commits on success, rolls back
    on any failure, always returns the connection to the pool. Driver errors
    are translated: duplicate keys to ``DuplicateKeyError``, connectivity
    problems and timeouts to ``Unavailable``.
    """

    limit = conn_factory.timeout if timeout is None else float(timeout)
    conn = conn_factory.connect(timeout=limit)
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            _limit_statements(cur, limit)
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except errors.IntegrityError as e:
        _rollback_quietly(conn)
        if e.errno == errorcode.ER_DUP_ENTRY:
            raise DuplicateKeyError(str(e)) from e
        raise
    except (errors.InterfaceError, errors.OperationalError) as e:
        _rollback_quietly(conn)
        raise Unavailable("Database unavailable") from e
    except errors.DatabaseError as e:
        _rollback_quietly(conn)
        if e.errno in _TIMEOUT_ERRNOS:
            raise Unavailable("Database timed out, retry later") from e
        raise
    except Exception:
        _rollback_quietly(conn)
        raise
    finally:
        conn.close()


def _rollback_quietly(conn) -> None:
    try:
        conn.rollback()
    except errors.Error:
        # Connection already broken; closing it below discards the transaction.
        pass


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def normalize_mysql_time(value: Any) -> Optional[time]:
    """Coerce a TIME column to ``datetime.time``.

    Depending on the connector build the value arrives as ``time``,
    ``timedelta`` (offset from midnight) or an ``HH:MM[:SS]`` string.
    """

    if value is None or isinstance(value, time):
        return value
    if isinstance(value, timedelta):
        seconds = int(value.total_seconds()) % 86400
        return time(seconds // 3600, (seconds // 60) % 60, seconds % 60)
    if isinstance(value, str):
        fields = [int(p) for p in value.strip().split(":") if p]
        if len(fields) not in (2, 3):
            raise ValueError(f"Invalid time string: {value!r}")
        return time(*fields)
    raise TypeError(f"Unsupported MySQL TIME value type: {type(value)!r}")
