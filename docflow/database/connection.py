from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg_pool import ConnectionPool

from docflow.config.settings import Settings


def build_conninfo(settings: Settings) -> str:
    return (
        f"host={settings.db_host} "
        f"port={settings.db_port} "
        f"dbname={settings.db_database} "
        f"user={settings.db_username} "
        f"password={settings.db_password}"
    )


class Database:
    """Owns the connection pool shared by the store and the channel.

    Created once per process, opened on start and closed on shutdown. Every
    repository receives the instance explicitly.
    """

    def __init__(self, settings: Settings) -> None:
        self._conninfo = build_conninfo(settings)
        self._min_size = settings.db_pool_min_size
        self._max_size = settings.db_pool_max_size
        self._pool: ConnectionPool | None = None

    def open(self) -> None:
        """Create the pool and wait until the first connection is usable."""
        if self._pool is not None:
            return
        pool = ConnectionPool(
            self._conninfo,
            min_size=self._min_size,
            max_size=self._max_size,
            open=False,
        )
        pool.open(wait=True)
        self._pool = pool

    def close(self) -> None:
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    @contextmanager
    def connection(self) -> Generator[psycopg.Connection[Any], None, None]:
        """Yield a pooled connection. Caller manages commit/rollback."""
        if self._pool is None:
            raise RuntimeError("Database is not open. Call open() first.")
        with self._pool.connection() as conn:
            yield conn
