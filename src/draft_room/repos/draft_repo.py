from __future__ import annotations

import logging
import sqlite3
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Never

from draft_room.domain.draft import DraftSession, DraftStatus, OrderingMode, Participant, Pick, SettingsPatch, UNSET
from draft_room.exceptions import ConflictError
from draft_room.repos.protocols import (
    DraftParticipantRepo,
    DraftPickRepo,
    DraftSessionRepo,
    DraftWatchlistRepo,
)

logger = logging.getLogger(__name__)


class SqliteDraftSessionRepo:
    def __init__(self, conn: sqlite3.Connection, *, default_pick_timer_seconds: int | None = 60) -> None:
        self._conn = conn
        self._default_pick_timer_seconds = default_pick_timer_seconds

    def get(self, season_id: int) -> DraftSession | None:
        row = self._conn.execute(
            self._select_sql() + " WHERE season_id = ?",
            (season_id,),
        ).fetchone()
        return self._row_to_session(row) if row else None

    def ensure(self, season_id: int) -> DraftSession:
        """Return the season's session, creating a NotStarted/Snake one if missing."""
        session = self.get(season_id)
        if session is not None:
            return session
        self._conn.execute(
            "INSERT OR IGNORE INTO draft_session (season_id, status, ordering_mode, pick_timer_seconds)"
            " VALUES (?, ?, ?, ?)",
            (season_id, DraftStatus.NOT_STARTED.value, OrderingMode.SNAKE.value, self._default_pick_timer_seconds),
        )
        session = self.get(season_id)
        assert session is not None
        return session

    def set_status(self, season_id: int, status: DraftStatus) -> DraftSession:
        self._conn.execute(
            "UPDATE draft_session SET status = ?, updated_at = datetime('now') WHERE season_id = ?",
            (status.value, season_id),
        )
        session = self.get(season_id)
        assert session is not None
        return session

    def update_settings(self, season_id: int, patch: SettingsPatch) -> DraftSession | None:
        fields: list[str] = []
        values: list[object] = []
        if patch.ordering_mode is not UNSET:
            assert isinstance(patch.ordering_mode, OrderingMode)
            fields.append("ordering_mode = ?")
            values.append(patch.ordering_mode.value)
        if patch.starts_at is not UNSET:
            fields.append("starts_at = ?")
            values.append(patch.starts_at)
        if patch.pick_timer_seconds is not UNSET:
            fields.append("pick_timer_seconds = ?")
            values.append(patch.pick_timer_seconds)
        if patch.round_count is not UNSET:
            fields.append("round_count = ?")
            values.append(patch.round_count)

        if fields:
            self._conn.execute(
                f"UPDATE draft_session SET {', '.join(fields)}, updated_at = datetime('now') WHERE season_id = ?",
                (*values, season_id),
            )
        return self.get(season_id)

    @staticmethod
    def _select_sql() -> str:
        return (
            "SELECT season_id, status, ordering_mode, starts_at, pick_timer_seconds, round_count FROM draft_session"
        )

    @staticmethod
    def _row_to_session(row: sqlite3.Row) -> DraftSession:
        return DraftSession(
            season_id=row["season_id"],
            status=DraftStatus(row["status"]),
            ordering_mode=OrderingMode(row["ordering_mode"]),
            starts_at=row["starts_at"],
            pick_timer_seconds=row["pick_timer_seconds"],
            round_count=row["round_count"],
        )


class SqliteDraftParticipantRepo:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def list(self, season_id: int) -> list[Participant]:
        rows = self._conn.execute(
            "SELECT season_id, team_id, position, is_ready FROM draft_participant"
            " WHERE season_id = ? ORDER BY position ASC",
            (season_id,),
        ).fetchall()
        return [self._row_to_participant(row) for row in rows]

    def ensure(self, season_id: int, team_ids: Sequence[int]) -> list[Participant]:
        """Add any team not yet seated, appending it after the current last position.

        Existing participants keep their positions. Callers that may race
        should run this inside a transaction.
        """
        seated = {p.team_id for p in self.list(season_id)}
        missing = [team_id for team_id in dict.fromkeys(team_ids) if team_id not in seated]
        if missing:
            row = self._conn.execute(
                "SELECT COALESCE(MAX(position), 0) FROM draft_participant WHERE season_id = ?",
                (season_id,),
            ).fetchone()
            next_position = row[0] + 1
            for team_id in missing:
                self._conn.execute(
                    "INSERT INTO draft_participant (season_id, team_id, position, is_ready) VALUES (?, ?, ?, 0)",
                    (season_id, team_id, next_position),
                )
                next_position += 1
            logger.info("Seated %d new participant(s) in season %d", len(missing), season_id)
        return self.list(season_id)

    def set_ready(self, season_id: int, team_id: int, is_ready: bool) -> None:
        self._conn.execute(
            "UPDATE draft_participant SET is_ready = ? WHERE season_id = ? AND team_id = ?",
            (int(is_ready), season_id, team_id),
        )

    def set_positions(self, season_id: int, team_ids: Sequence[int]) -> list[Participant]:
        """Reassign positions so ``team_ids[i]`` sits at position ``i + 1``."""
        # Park every row on a negative position first so the unique
        # (season_id, position) index never sees a transient duplicate.
        self._conn.execute(
            "UPDATE draft_participant SET position = -position WHERE season_id = ?",
            (season_id,),
        )
        self._conn.executemany(
            "UPDATE draft_participant SET position = ? WHERE season_id = ? AND team_id = ?",
            [(index + 1, season_id, team_id) for index, team_id in enumerate(team_ids)],
        )
        return self.list(season_id)

    @staticmethod
    def _row_to_participant(row: sqlite3.Row) -> Participant:
        return Participant(
            season_id=row["season_id"],
            team_id=row["team_id"],
            position=row["position"],
            is_ready=bool(row["is_ready"]),
        )


class SqliteDraftPickRepo:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def list(self, season_id: int) -> list[Pick]:
        rows = self._conn.execute(
            self._select_sql() + " WHERE season_id = ? ORDER BY overall_pick_number ASC, id ASC",
            (season_id,),
        ).fetchall()
        return [self._row_to_pick(row) for row in rows]

    def count(self, season_id: int) -> int:
        row = self._conn.execute("SELECT COUNT(*) FROM draft_pick WHERE season_id = ?", (season_id,)).fetchone()
        return row[0]

    def get_last(self, season_id: int) -> Pick | None:
        row = self._conn.execute(
            self._select_sql() + " WHERE season_id = ?"
            " ORDER BY overall_pick_number DESC, id DESC LIMIT 1",
            (season_id,),
        ).fetchone()
        return self._row_to_pick(row) if row else None

    def insert(self, pick: Pick) -> Pick:
        """Append a pick to the ledger.

        A unique-index violation means a concurrent transaction claimed the
        same item or the same overall slot first; it surfaces as ConflictError.
        """
        try:
            cursor = self._conn.execute(
                "INSERT INTO draft_pick"
                "    (season_id, round, pick_in_round, overall_pick_number, team_id, item_id)"
                " VALUES (?, ?, ?, ?, ?, ?)",
                (
                    pick.season_id,
                    pick.round,
                    pick.pick_in_round,
                    pick.overall_pick_number,
                    pick.team_id,
                    pick.item_id,
                ),
            )
        except sqlite3.IntegrityError as e:
            self._raise_conflict(pick, e)
        row = self._conn.execute(self._select_sql() + " WHERE id = ?", (cursor.lastrowid,)).fetchone()
        return self._row_to_pick(row)

    def delete(self, pick_id: int) -> None:
        self._conn.execute("DELETE FROM draft_pick WHERE id = ?", (pick_id,))

    @staticmethod
    def _raise_conflict(pick: Pick, error: sqlite3.IntegrityError) -> Never:
        detail = str(error)
        if "draft_pick.item_id" in detail:
            logger.warning("Lost race for item %d in season %d", pick.item_id, pick.season_id)
            raise ConflictError("This item was just drafted by another team") from error
        if "draft_pick.overall_pick_number" in detail:
            logger.warning(
                "Lost race for overall pick %d in season %d", pick.overall_pick_number, pick.season_id
            )
            raise ConflictError("That pick slot was just taken by another request, refresh and try again") from error
        raise error

    @staticmethod
    def _select_sql() -> str:
        return (
            "SELECT id, season_id, round, pick_in_round, overall_pick_number, team_id, item_id, created_at"
            " FROM draft_pick"
        )

    @staticmethod
    def _row_to_pick(row: sqlite3.Row) -> Pick:
        return Pick(
            id=row["id"],
            season_id=row["season_id"],
            round=row["round"],
            pick_in_round=row["pick_in_round"],
            overall_pick_number=row["overall_pick_number"],
            team_id=row["team_id"],
            item_id=row["item_id"],
            created_at=row["created_at"],
        )


class SqliteDraftWatchlistRepo:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def list(self, season_id: int, team_id: int) -> list[int]:
        rows = self._conn.execute(
            "SELECT item_id FROM draft_watchlist WHERE season_id = ? AND team_id = ? ORDER BY rank ASC",
            (season_id, team_id),
        ).fetchall()
        return [row["item_id"] for row in rows]

    def replace(self, season_id: int, team_id: int, item_ids: Sequence[int]) -> None:
        self._conn.execute(
            "DELETE FROM draft_watchlist WHERE season_id = ? AND team_id = ?",
            (season_id, team_id),
        )
        self._conn.executemany(
            "INSERT OR IGNORE INTO draft_watchlist (season_id, team_id, item_id, rank) VALUES (?, ?, ?, ?)",
            [(season_id, team_id, item_id, rank) for rank, item_id in enumerate(item_ids)],
        )


@dataclass(frozen=True)
class DraftStore:
    """The draft tables as seen through one connection.

    Every repo shares ``conn`` so a ``transaction(store.conn)`` block covers
    reads and writes across all of them.
    """

    conn: sqlite3.Connection
    sessions: DraftSessionRepo
    participants: DraftParticipantRepo
    picks: DraftPickRepo
    watchlists: DraftWatchlistRepo

    @classmethod
    def for_connection(cls, conn: sqlite3.Connection, *, default_pick_timer_seconds: int | None = 60) -> DraftStore:
        return cls(
            conn=conn,
            sessions=SqliteDraftSessionRepo(conn, default_pick_timer_seconds=default_pick_timer_seconds),
            participants=SqliteDraftParticipantRepo(conn),
            picks=SqliteDraftPickRepo(conn),
            watchlists=SqliteDraftWatchlistRepo(conn),
        )
