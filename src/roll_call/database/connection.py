from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Optional

import mysql.connector
from mysql.connector import errors, pooling

from ..core.constants import DEFAULT_DB_POOL_SIZE, DEFAULT_DB_TIMEOUT_SECONDS
from ..core.exceptions import Unavailable

logger = logging.getLogger(__name__)

_POOL_RETRY_INTERVAL = 0.02


@dataclass
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    pool_size: int = DEFAULT_DB_POOL_SIZE
    timeout: float = DEFAULT_DB_TIMEOUT_SECONDS

    @classmethod
    def from_dict(cls, db_config: dict) -> "DBConfig":
        return cls(
            host=str(db_config.get("host", "localhost")),
            port=int(db_config.get("port", 3306)),
            user=str(db_config.get("user", "root")),
            password=str(db_config.get("password", "")),
            database=str(db_config.get("database", "roll_call_db")),
            pool_size=int(db_config.get("pool_size", DEFAULT_DB_POOL_SIZE)),
            timeout=float(db_config.get("timeout", DEFAULT_DB_TIMEOUT_SECONDS)),
        )


class DatabaseConnection:
    """Process-wide MySQL connection pool handle.

    Built once at startup with :meth:`open` and passed to every repository.
    Callers borrow a connection per operation through ``db_cursor`` and give it
    back on every exit path; :meth:`close` tears the handle down.
    """

    def __init__(self, config: DBConfig, pool: Optional[pooling.MySQLConnectionPool] = None):
        self._config = config
        self._pool = pool

    @classmethod
    def open(cls, config: DBConfig) -> "DatabaseConnection":
        try:
            pool = pooling.MySQLConnectionPool(
                pool_name="roll_call",
                pool_size=int(config.pool_size),
                pool_reset_session=True,
                host=config.host,
                port=int(config.port),
                user=config.user,
                password=config.password,
                database=config.database,
                connection_timeout=max(1, math.ceil(config.timeout)),
                # The pure-Python protocol keeps connection_timeout on the socket, so reads are bounded too.
                use_pure=True,
                autocommit=False,
            )
        except errors.Error as e:
            logger.error("Cannot open MySQL pool %s@%s:%s/%s: %s",
                         config.user, config.host, config.port, config.database, e)
            raise Unavailable("Database unavailable") from e
        logger.info("MySQL pool ready (size=%s) %s@%s:%s/%s",
                    config.pool_size, config.user, config.host, config.port, config.database)
        return cls(config, pool)

    @property
    def timeout(self) -> float:
        return float(self._config.timeout)

    def connect(self, *, timeout: Optional[float] = None):
        """Borrow a pooled connection, waiting at most ``timeout`` seconds for a free slot."""
        if self._pool is None:
            raise Unavailable("Database pool is closed")

        deadline = time.monotonic() + (self.timeout if timeout is None else float(timeout))
        while True:
            try:
                return self._pool.get_connection()
            except errors.PoolError as e:
                if time.monotonic() >= deadline:
                    logger.warning("MySQL pool exhausted after %.2fs", self.timeout if timeout is None else timeout)
                    raise Unavailable("Database busy, retry later") from e
                time.sleep(_POOL_RETRY_INTERVAL)
            except (errors.InterfaceError, errors.OperationalError) as e:
                raise Unavailable("Database unavailable") from e

    def close(self) -> None:
        pool, self._pool = self._pool, None
        if pool is None:
            return
        try:
            _drain_idle_connections(pool)
        except errors.Error:
            logger.warning("Error while draining MySQL pool", exc_info=True)
        logger.info("MySQL pool closed")


def _drain_idle_connections(pool: pooling.MySQLConnectionPool) -> None:
    """Close the pool's idle connections; borrowed ones close when returned.

    MySQLConnectionPool has no public shutdown call (mysql-connector-python 8.x
    and 9.x), so this is the one place that relies on its ``_remove_connections``.
    """

    remove = getattr(pool, "_remove_connections", None)
    if remove is None:
        logger.warning("This mysql-connector version cannot drain the pool; idle connections close at exit")
        return
    remove()


def connect_direct(config: DBConfig, *, with_database: bool = True):
    """Unpooled connection for bootstrap scripts."""
    kwargs = dict(
        host=config.host,
        port=config.port,
        user=config.user,
        password=config.password,
        connection_timeout=int(config.timeout),
        use_pure=True,
    )
    if with_database:
        kwargs["database"] = config.database
    return mysql.connector.connect(**kwargs)
