import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)

_MIGRATIONS_DIR = Path(__file__).parent / "migrations"


def create_connection(
    path: str | Path,
    *,
    check_same_thread: bool = True,
    busy_timeout: float = 5.0,
    migrations_dir: Path | None = None,
) -> sqlite3.Connection:
    """Open a SQLite connection in autocommit mode with WAL, foreign keys, and pending migrations applied.

    Multi-statement writes must go through ``transaction``.
    """
    conn = sqlite3.connect(
        str(path),
        check_same_thread=check_same_thread,
        timeout=busy_timeout,
        isolation_level=None,
    )
    conn.row_factory = sqlite3.Row
    if str(path) != ":memory:":
        conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    try:
        _run_migrations(conn, migrations_dir=migrations_dir)
    except Exception:
        conn.close()
        raise
    return conn


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run the block as one atomic unit of work.

    ``BEGIN IMMEDIATE`` takes the write reservation up front so reads made
    inside the block are the state the write is checked against. Any
    exception rolls back and propagates. Nested use joins the outer
    transaction.
    """
    if conn.in_transaction:
        yield conn
        return
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Return the current schema version, or 0 if no migrations have run."""
    try:
        row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    except sqlite3.OperationalError:
        return 0
    return row[0] if row and row[0] is not None else 0


def _pending_migrations(migrations_dir: Path, applied: int) -> list[tuple[int, Path]]:
    """Numbered ``NNN_name.sql`` files newer than ``applied``, lowest first."""
    numbered = ((int(path.stem.split("_", 1)[0]), path) for path in migrations_dir.glob("*.sql"))
    return sorted((version, path) for version, path in numbered if version > applied)


def _run_migrations(conn: sqlite3.Connection, *, migrations_dir: Path | None = None) -> None:
    conn.execute(
        "CREATE TABLE IF NOT EXISTS schema_version ("
        "    version INTEGER PRIMARY KEY,"
        "    applied_at TEXT NOT NULL DEFAULT (datetime('now'))"
        ")"
    )
    source = _MIGRATIONS_DIR if migrations_dir is None else migrations_dir
    for version, path in _pending_migrations(source, get_schema_version(conn)):
        statements = [chunk.strip() for chunk in path.read_text().split(";")]
        with transaction(conn):
            # A concurrent opener can win the write lock and apply it first.
            if get_schema_version(conn) >= version:
                continue
            for statement in filter(None, statements):
                conn.execute(statement)
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (version,))
        logger.debug("Applied migration %s", path.name)
