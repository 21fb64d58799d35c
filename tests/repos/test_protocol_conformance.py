import sqlite3

from draft_room.repos.catalog_repo import SqliteItemCatalog
from draft_room.repos.directory_repo import SqlitePermissionChecker, SqliteSeasonDirectory
from draft_room.repos.draft_repo import (
    SqliteDraftParticipantRepo,
    SqliteDraftPickRepo,
    SqliteDraftSessionRepo,
    SqliteDraftWatchlistRepo,
)
from draft_room.repos.protocols import DraftParticipantRepo, DraftPickRepo, DraftSessionRepo, DraftWatchlistRepo
from draft_room.services.protocols import ItemCatalog, PermissionChecker, SeasonDirectory
from tests.fakes.collaborators import FakeItemCatalog, FakePermissionChecker, FakeSeasonDirectory


class TestDraftRepoProtocols:
    def test_session_repo(self, conn: sqlite3.Connection) -> None:
        assert isinstance(SqliteDraftSessionRepo(conn), DraftSessionRepo)

    def test_participant_repo(self, conn: sqlite3.Connection) -> None:
        assert isinstance(SqliteDraftParticipantRepo(conn), DraftParticipantRepo)

    def test_pick_repo(self, conn: sqlite3.Connection) -> None:
        assert isinstance(SqliteDraftPickRepo(conn), DraftPickRepo)

    def test_watchlist_repo(self, conn: sqlite3.Connection) -> None:
        assert isinstance(SqliteDraftWatchlistRepo(conn), DraftWatchlistRepo)


class TestCollaboratorProtocols:
    def test_sqlite_directory(self, conn: sqlite3.Connection) -> None:
        assert isinstance(SqliteSeasonDirectory(conn), SeasonDirectory)

    def test_sqlite_catalog(self, conn: sqlite3.Connection) -> None:
        assert isinstance(SqliteItemCatalog(conn), ItemCatalog)

    def test_sqlite_permissions(self, conn: sqlite3.Connection) -> None:
        assert isinstance(SqlitePermissionChecker(conn), PermissionChecker)

    def test_fakes(self) -> None:
        assert isinstance(FakeSeasonDirectory(), SeasonDirectory)
        assert isinstance(FakeItemCatalog(), ItemCatalog)
        assert isinstance(FakePermissionChecker(), PermissionChecker)
