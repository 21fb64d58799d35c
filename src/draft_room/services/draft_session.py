import logging
import random
from collections.abc import Mapping, Sequence
from datetime import datetime

from draft_room.config import DraftRoomSettings
from draft_room.db.connection import transaction
from draft_room.domain.catalog import Season, SeasonStatus
from draft_room.domain.draft import (
    PRE_DRAFT_STATUSES,
    UNSET,
    DraftSession,
    DraftStatus,
    OrderingMode,
    Participant,
    SettingsPatch,
)
from draft_room.exceptions import ConflictError, DraftValidationError, NotFoundError
from draft_room.repos.draft_repo import DraftStore
from draft_room.services.pick_placement import require_positive_id
from draft_room.services.protocols import SeasonDirectory

logger = logging.getLogger(__name__)

# Only these modes exist on the season record; Custom stays draft-local.
_SEASON_DRAFT_TYPES = frozenset({OrderingMode.SNAKE, OrderingMode.LINEAR})


def require_season(directory: SeasonDirectory, season_id: int) -> Season:
    season = directory.get_season(season_id)
    if season is None:
        raise NotFoundError("Season not found")
    return season


def sync_participants(store: DraftStore, directory: SeasonDirectory, season_id: int) -> list[Participant]:
    """Seat every team on the season roster that is not yet a participant."""
    team_ids = [team.id for team in directory.list_teams(season_id)]
    participants = store.participants.list(season_id)
    seated = {p.team_id for p in participants}
    if all(team_id in seated for team_id in team_ids):
        return participants
    with transaction(store.conn):
        return store.participants.ensure(season_id, team_ids)


def _coerce_int(name: str, value: object) -> int:
    if isinstance(value, bool):
        raise DraftValidationError(f"{name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise DraftValidationError(f"{name} must be an integer")


def parse_settings_patch(raw: Mapping[str, object], settings: DraftRoomSettings | None = None) -> SettingsPatch:
    """Validate a partial settings update; keys absent from ``raw`` are left untouched.

    Accepted keys are ``ordering_mode``, ``starts_at``, ``pick_timer_seconds``
    and ``round_count``; ``None`` clears the nullable fields.
    """
    settings = settings or DraftRoomSettings()
    unknown = set(raw) - {"ordering_mode", "starts_at", "pick_timer_seconds", "round_count"}
    if unknown:
        raise DraftValidationError(f"Unknown draft setting(s): {', '.join(sorted(unknown))}")

    ordering_mode: object = UNSET
    if "ordering_mode" in raw:
        try:
            ordering_mode = OrderingMode(raw["ordering_mode"])
        except ValueError as e:
            raise DraftValidationError("Invalid draft type") from e

    starts_at: object = UNSET
    if "starts_at" in raw:
        value = raw["starts_at"]
        if value is not None:
            if not isinstance(value, str):
                raise DraftValidationError("starts_at must be a valid ISO 8601 date-time or null")
            try:
                datetime.fromisoformat(value)
            except ValueError as e:
                raise DraftValidationError("starts_at must be a valid ISO 8601 date-time or null") from e
        starts_at = value

    pick_timer_seconds: object = UNSET
    if "pick_timer_seconds" in raw:
        value = raw["pick_timer_seconds"]
        if value is None:
            pick_timer_seconds = None
        else:
            lo, hi = settings.pick_timer_min, settings.pick_timer_max
            message = f"pick_timer_seconds must be an integer between {lo} and {hi}, or null"
            try:
                n = _coerce_int("pick_timer_seconds", value)
            except DraftValidationError as e:
                raise DraftValidationError(message) from e
            if not lo <= n <= hi:
                raise DraftValidationError(message)
            pick_timer_seconds = n

    round_count: object = UNSET
    if "round_count" in raw:
        value = raw["round_count"]
        if value is None:
            round_count = None
        else:
            lo, hi = settings.round_count_min, settings.round_count_max
            message = f"round_count must be an integer between {lo} and {hi}, or null"
            try:
                n = _coerce_int("round_count", value)
            except DraftValidationError as e:
                raise DraftValidationError(message) from e
            if not lo <= n <= hi:
                raise DraftValidationError(message)
            round_count = n

    return SettingsPatch(
        ordering_mode=ordering_mode,
        starts_at=starts_at,
        pick_timer_seconds=pick_timer_seconds,
        round_count=round_count,
    )


class DraftSessionService:
    """Lifecycle, ordering and settings of a season's draft session."""

    def __init__(
        self,
        store: DraftStore,
        directory: SeasonDirectory,
        settings: DraftRoomSettings | None = None,
        *,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._directory = directory
        self._settings = settings or DraftRoomSettings()
        self._rng = rng or random.Random()

    def ensure_session(self, season_id: int) -> DraftSession:
        return self._store.sessions.ensure(season_id)

    def open_lobby(self, season_id: int) -> DraftSession:
        require_season(self._directory, season_id)
        with transaction(self._store.conn):
            session = self._store.sessions.ensure(season_id)
            if session.status is DraftStatus.LOBBY:
                return session
            if session.status is not DraftStatus.NOT_STARTED:
                raise ConflictError("The lobby can only be opened before the draft starts")
            session = self._store.sessions.set_status(season_id, DraftStatus.LOBBY)
        logger.info("Season %d draft lobby opened", season_id)
        return session

    def start(self, season_id: int) -> DraftSession:
        season = require_season(self._directory, season_id)
        team_ids = [team.id for team in self._directory.list_teams(season_id)]
        with transaction(self._store.conn):
            session = self._store.sessions.ensure(season_id)
            if session.status not in PRE_DRAFT_STATUSES:
                raise ConflictError("Draft cannot be started from the current state")
            participants = self._store.participants.ensure(season_id, team_ids)
            if not participants:
                raise ConflictError("Cannot start a draft with no participating teams")
            if season.status is SeasonStatus.SIGNUP:
                self._directory.set_season_status(season_id, SeasonStatus.DRAFTING)
            session = self._store.sessions.set_status(season_id, DraftStatus.IN_PROGRESS)
        logger.info("Season %d draft started with %d teams", season_id, len(participants))
        return session

    def pause(self, season_id: int) -> DraftSession:
        with transaction(self._store.conn):
            session = self._store.sessions.ensure(season_id)
            if session.status is not DraftStatus.IN_PROGRESS:
                raise ConflictError("Draft is not currently in progress")
            session = self._store.sessions.set_status(season_id, DraftStatus.PAUSED)
        logger.info("Season %d draft paused", season_id)
        return session

    def resume(self, season_id: int) -> DraftSession:
        with transaction(self._store.conn):
            session = self._store.sessions.ensure(season_id)
            if session.status is not DraftStatus.PAUSED:
                raise ConflictError("Draft is not paused")
            session = self._store.sessions.set_status(season_id, DraftStatus.IN_PROGRESS)
        logger.info("Season %d draft resumed", season_id)
        return session

    def end(self, season_id: int) -> DraftSession:
        season = require_season(self._directory, season_id)
        with transaction(self._store.conn):
            session = self._store.sessions.ensure(season_id)
            if session.status is DraftStatus.COMPLETED:
                return session
            if session.status in PRE_DRAFT_STATUSES:
                raise ConflictError("Draft has not started yet")
            session = self._store.sessions.set_status(season_id, DraftStatus.COMPLETED)
            if season.status in (SeasonStatus.SIGNUP, SeasonStatus.DRAFTING):
                self._directory.set_season_status(season_id, SeasonStatus.ACTIVE)
        logger.info("Season %d draft completed", season_id)
        return session

    def toggle_ready(self, season_id: int, team_id: int) -> Participant:
        team_ids = [team.id for team in self._directory.list_teams(season_id)]
        with transaction(self._store.conn):
            self._store.sessions.ensure(season_id)
            participants = self._store.participants.ensure(season_id, team_ids)
            current = next((p for p in participants if p.team_id == team_id), None)
            if current is None:
                raise NotFoundError("Team not found in this season")
            self._store.participants.set_ready(season_id, team_id, not current.is_ready)
        logger.debug("Team %d in season %d ready=%s", team_id, season_id, not current.is_ready)
        return Participant(
            season_id=season_id, team_id=team_id, position=current.position, is_ready=not current.is_ready
        )

    def reroll_order(self, season_id: int) -> list[Participant]:
        team_ids = [team.id for team in self._directory.list_teams(season_id)]
        with transaction(self._store.conn):
            self._assert_reorderable(
                season_id,
                "Draft order can only be rerolled before the draft starts",
                "Cannot reroll draft order after picks have been made",
            )
            participants = self._store.participants.ensure(season_id, team_ids)
            shuffled = [p.team_id for p in participants]
            # Fisher-Yates
            for i in range(len(shuffled) - 1, 0, -1):
                j = self._rng.randint(0, i)
                shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
            result = self._store.participants.set_positions(season_id, shuffled)
        logger.info("Season %d draft order rerolled: %s", season_id, shuffled)
        return result

    def set_order(self, season_id: int, team_ids: Sequence[int]) -> list[Participant]:
        roster_ids = [team.id for team in self._directory.list_teams(season_id)]
        with transaction(self._store.conn):
            self._assert_reorderable(
                season_id,
                "Draft order can only be changed before the draft starts",
                "Cannot change draft order after picks have been made",
            )
            participants = self._store.participants.ensure(season_id, roster_ids)
            if isinstance(team_ids, (str, bytes)) or not isinstance(team_ids, Sequence):
                raise DraftValidationError("team_ids must be a list")
            requested = [require_positive_id("team_id", team_id) for team_id in team_ids]
            if len(set(requested)) != len(requested) or set(requested) != {p.team_id for p in participants}:
                raise DraftValidationError("Draft order must list every participating team exactly once")
            result = self._store.participants.set_positions(season_id, requested)
        logger.info("Season %d draft order set: %s", season_id, requested)
        return result

    def update_settings(self, season_id: int, raw: Mapping[str, object]) -> DraftSession:
        require_season(self._directory, season_id)
        patch = parse_settings_patch(raw, self._settings)
        with transaction(self._store.conn):
            session = self._store.sessions.ensure(season_id)
            if session.status not in PRE_DRAFT_STATUSES:
                raise ConflictError("Draft settings can only be changed before the draft starts")
            if self._store.picks.count(season_id) > 0:
                raise ConflictError("Draft settings cannot be changed after picks have been made")
            updated = self._store.sessions.update_settings(season_id, patch)
            if updated is None:
                raise NotFoundError("Draft session not found")
            self._sync_season_settings(season_id, patch)
        logger.info("Season %d draft settings updated", season_id)
        return updated

    def _sync_season_settings(self, season_id: int, patch: SettingsPatch) -> None:
        draft_type = None
        if isinstance(patch.ordering_mode, OrderingMode) and patch.ordering_mode in _SEASON_DRAFT_TYPES:
            draft_type = patch.ordering_mode.value
        timer = patch.pick_timer_seconds if isinstance(patch.pick_timer_seconds, int) else None
        rounds = patch.round_count if isinstance(patch.round_count, int) else None
        if draft_type is None and timer is None and rounds is None:
            return
        self._directory.update_season_settings(
            season_id, draft_type=draft_type, pick_timer_seconds=timer, round_count=rounds
        )

    def _assert_reorderable(self, season_id: int, not_pre_draft: str, has_picks: str) -> None:
        session = self._store.sessions.ensure(season_id)
        if session.status not in PRE_DRAFT_STATUSES:
            raise ConflictError(not_pre_draft)
        if self._store.picks.count(season_id) > 0:
            raise ConflictError(has_picks)
