import random
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from draft_room.config import DraftRoomSettings
from draft_room.db.connection import create_connection
from draft_room.repos.catalog_repo import SqliteItemCatalog
from draft_room.repos.directory_repo import SqlitePermissionChecker, SqliteSeasonDirectory
from draft_room.repos.draft_repo import DraftStore
from draft_room.services.draft_room import DraftRoom


@dataclass(frozen=True)
class DraftContext:
    conn: sqlite3.Connection
    room: DraftRoom
    directory: SqliteSeasonDirectory
    catalog: SqliteItemCatalog
    permissions: SqlitePermissionChecker


def build_draft_room(
    conn: sqlite3.Connection, settings: DraftRoomSettings, *, rng: random.Random | None = None
) -> DraftContext:
    """Wire the SQLite-backed collaborators and the draft room onto one connection."""
    directory = SqliteSeasonDirectory(conn)
    catalog = SqliteItemCatalog(conn)
    permissions = SqlitePermissionChecker(conn)
    store = DraftStore.for_connection(conn, default_pick_timer_seconds=settings.default_pick_timer_seconds)
    room = DraftRoom(store, directory, catalog, permissions, settings, rng=rng)
    return DraftContext(conn=conn, room=room, directory=directory, catalog=catalog, permissions=permissions)


@contextmanager
def build_draft_context(settings: DraftRoomSettings) -> Iterator[DraftContext]:
    """Composition-root context manager: opens DB, wires the draft room, yields context, closes DB."""
    conn = create_connection(settings.db_path, busy_timeout=settings.db_busy_timeout)
    try:
        yield build_draft_room(conn, settings)
    finally:
        conn.close()
