import logging
import queue
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from draft_room.db.connection import create_connection

logger = logging.getLogger(__name__)


class ConnectionPool:
    """Fixed set of migrated SQLite connections shared by HTTP request threads.

    Each request checks out one connection for its whole unit of work. Any
    transaction a caller leaves open is rolled back on release.
    """

    def __init__(self, path: str | Path, *, size: int = 5, busy_timeout: float = 5.0) -> None:
        if size < 1:
            raise ValueError("Pool size must be at least 1")
        self._path = path
        self._closed = False
        self._idle: queue.LifoQueue[sqlite3.Connection] = queue.LifoQueue(maxsize=size)
        self._members = [
            create_connection(path, check_same_thread=False, busy_timeout=busy_timeout) for _ in range(size)
        ]
        for conn in self._members:
            self._idle.put_nowait(conn)
        logger.debug("Opened %d pooled connection(s) to %s", size, path)

    @property
    def size(self) -> int:
        return len(self._members)

    @property
    def available(self) -> int:
        return self._idle.qsize()

    def get(self, *, timeout: float | None = None) -> sqlite3.Connection:
        """Check out a connection.

        Raises RuntimeError once the pool is closed and TimeoutError when every
        connection stays busy past ``timeout``.
        """
        if self._closed:
            raise RuntimeError("Connection pool is closed")
        try:
            return self._idle.get(timeout=timeout)
        except queue.Empty:
            logger.warning("All %d connection(s) to %s are checked out", self.size, self._path)
            raise TimeoutError("No connection available in pool") from None

    def release(self, conn: sqlite3.Connection) -> None:
        if self._closed:
            conn.close()
            return
        if conn.in_transaction:
            logger.warning("Rolling back transaction left open on released connection")
            conn.execute("ROLLBACK")
        self._idle.put_nowait(conn)

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection]:
        conn = self.get()
        try:
            yield conn
        finally:
            self.release(conn)

    def close_all(self) -> None:
        """Close every member connection, checked out or not."""
        self._closed = True
        while True:
            try:
                self._idle.get_nowait()
            except queue.Empty:
                break
        for conn in self._members:
            conn.close()
        logger.debug("Closed %d pooled connection(s) to %s", self.size, self._path)
