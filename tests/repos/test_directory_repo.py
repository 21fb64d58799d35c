import sqlite3

from draft_room.domain.catalog import Season, SeasonStatus, Team, User
from draft_room.repos.directory_repo import SqlitePermissionChecker, SqliteSeasonDirectory


def _seed(directory: SqliteSeasonDirectory) -> None:
    directory.upsert_season(Season(id=1, name="Spring", league_id=10))
    directory.upsert_season(Season(id=2, name="Summer", league_id=None))
    directory.upsert_team(Team(id=2, season_id=1, name="Bravo", user_id=102))
    directory.upsert_team(Team(id=1, season_id=1, name="Alpha", user_id=101))
    directory.upsert_team(Team(id=3, season_id=2, name="Charlie", user_id=101))


class TestSqliteSeasonDirectory:
    def test_get_season(self, conn: sqlite3.Connection) -> None:
        directory = SqliteSeasonDirectory(conn)
        _seed(directory)
        assert directory.get_season(1) == Season(id=1, name="Spring", league_id=10, status=SeasonStatus.SIGNUP)
        assert directory.get_season(99) is None

    def test_list_teams_ordered_by_id(self, conn: sqlite3.Connection) -> None:
        directory = SqliteSeasonDirectory(conn)
        _seed(directory)
        assert [t.name for t in directory.list_teams(1)] == ["Alpha", "Bravo"]
        assert directory.list_teams(99) == []

    def test_team_for_user_scoped_to_season(self, conn: sqlite3.Connection) -> None:
        directory = SqliteSeasonDirectory(conn)
        _seed(directory)
        team = directory.team_for_user(2, 101)
        assert team is not None
        assert team.name == "Charlie"
        assert directory.team_for_user(2, 102) is None

    def test_set_season_status(self, conn: sqlite3.Connection) -> None:
        directory = SqliteSeasonDirectory(conn)
        _seed(directory)
        directory.set_season_status(1, SeasonStatus.DRAFTING)
        season = directory.get_season(1)
        assert season is not None
        assert season.status is SeasonStatus.DRAFTING

    def test_update_season_settings_keeps_unset_columns(self, conn: sqlite3.Connection) -> None:
        directory = SqliteSeasonDirectory(conn)
        _seed(directory)
        directory.update_season_settings(1, draft_type="Linear", round_count=8)
        directory.update_season_settings(1, pick_timer_seconds=30)
        row = conn.execute("SELECT draft_type, pick_timer_seconds, round_count FROM season WHERE id = 1").fetchone()
        assert (row["draft_type"], row["pick_timer_seconds"], row["round_count"]) == ("Linear", 30, 8)


class TestSqlitePermissionChecker:
    def test_superadmin_always_allowed(self, conn: sqlite3.Connection) -> None:
        checker = SqlitePermissionChecker(conn)
        assert checker.is_commissioner(User(id=1, is_superadmin=True), 10)
        assert checker.is_commissioner(User(id=1, is_superadmin=True), None)

    def test_commissioner_roles(self, conn: sqlite3.Connection) -> None:
        checker = SqlitePermissionChecker(conn)
        checker.add_member(10, 1, "owner")
        checker.add_member(10, 2, "commissioner")
        checker.add_member(10, 3, "member")
        assert checker.is_commissioner(User(id=1), 10)
        assert checker.is_commissioner(User(id=2), 10)
        assert not checker.is_commissioner(User(id=3), 10)
        assert not checker.is_commissioner(User(id=4), 10)

    def test_role_is_per_league(self, conn: sqlite3.Connection) -> None:
        checker = SqlitePermissionChecker(conn)
        checker.add_member(10, 1, "owner")
        assert not checker.is_commissioner(User(id=1), 11)

    def test_no_league_denies_non_superadmin(self, conn: sqlite3.Connection) -> None:
        checker = SqlitePermissionChecker(conn)
        checker.add_member(10, 1, "owner")
        assert not checker.is_commissioner(User(id=1), None)

    def test_add_member_updates_role(self, conn: sqlite3.Connection) -> None:
        checker = SqlitePermissionChecker(conn)
        checker.add_member(10, 1, "commissioner")
        checker.add_member(10, 1, "member")
        assert not checker.is_commissioner(User(id=1), 10)
