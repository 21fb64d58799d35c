import logging
import sqlite3

from draft_room.domain.catalog import Season, SeasonStatus, Team, User

logger = logging.getLogger(__name__)

COMMISSIONER_ROLES = frozenset({"owner", "commissioner"})


class SqliteSeasonDirectory:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def upsert_season(self, season: Season) -> None:
        self._conn.execute(
            "INSERT INTO season (id, name, league_id, status) VALUES (?, ?, ?, ?)"
            " ON CONFLICT(id) DO UPDATE SET"
            "    name=excluded.name,"
            "    league_id=excluded.league_id,"
            "    status=excluded.status",
            (season.id, season.name, season.league_id, season.status.value),
        )

    def upsert_team(self, team: Team) -> None:
        self._conn.execute(
            "INSERT INTO team (id, season_id, name, user_id) VALUES (?, ?, ?, ?)"
            " ON CONFLICT(id) DO UPDATE SET"
            "    season_id=excluded.season_id,"
            "    name=excluded.name,"
            "    user_id=excluded.user_id",
            (team.id, team.season_id, team.name, team.user_id),
        )

    def get_season(self, season_id: int) -> Season | None:
        row = self._conn.execute(
            "SELECT id, name, league_id, status FROM season WHERE id = ?",
            (season_id,),
        ).fetchone()
        if row is None:
            return None
        return Season(id=row["id"], name=row["name"], league_id=row["league_id"], status=SeasonStatus(row["status"]))

    def list_teams(self, season_id: int) -> list[Team]:
        rows = self._conn.execute(
            self._select_team_sql() + " WHERE season_id = ? ORDER BY id ASC",
            (season_id,),
        ).fetchall()
        return [self._row_to_team(row) for row in rows]

    def team_for_user(self, season_id: int, user_id: int) -> Team | None:
        row = self._conn.execute(
            self._select_team_sql() + " WHERE season_id = ? AND user_id = ?",
            (season_id, user_id),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_team(row)

    def set_season_status(self, season_id: int, status: SeasonStatus) -> None:
        self._conn.execute("UPDATE season SET status = ? WHERE id = ?", (status.value, season_id))
        logger.debug("Season %d status set to %s", season_id, status.value)

    def update_season_settings(
        self,
        season_id: int,
        *,
        draft_type: str | None = None,
        pick_timer_seconds: int | None = None,
        round_count: int | None = None,
    ) -> None:
        self._conn.execute(
            "UPDATE season SET"
            "    draft_type = COALESCE(?, draft_type),"
            "    pick_timer_seconds = COALESCE(?, pick_timer_seconds),"
            "    round_count = COALESCE(?, round_count)"
            " WHERE id = ?",
            (draft_type, pick_timer_seconds, round_count, season_id),
        )

    @staticmethod
    def _select_team_sql() -> str:
        return "SELECT id, season_id, name, user_id FROM team"

    @staticmethod
    def _row_to_team(row: sqlite3.Row) -> Team:
        return Team(id=row["id"], season_id=row["season_id"], name=row["name"], user_id=row["user_id"])


class SqlitePermissionChecker:
    """Superadmins and league members holding a commissioner role may run the draft."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def add_member(self, league_id: int, user_id: int, role: str = "member") -> None:
        self._conn.execute(
            "INSERT INTO league_member (league_id, user_id, role) VALUES (?, ?, ?)"
            " ON CONFLICT(league_id, user_id) DO UPDATE SET role=excluded.role",
            (league_id, user_id, role),
        )

    def is_commissioner(self, user: User, league_id: int | None) -> bool:
        if user.is_superadmin:
            return True
        if league_id is None:
            return False
        row = self._conn.execute(
            "SELECT role FROM league_member WHERE league_id = ? AND user_id = ?",
            (league_id, user.id),
        ).fetchone()
        return row is not None and row["role"] in COMMISSIONER_ROLES
