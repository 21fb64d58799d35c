"""Caller-facing draft operations.

``DraftRoom`` resolves the acting user to their team, checks commissioner
rights for admin operations and delegates to the session, placement and view
services. Each instance is bound to one database connection.
"""

import logging
import random
from collections.abc import Mapping, Sequence

from draft_room.config import DraftRoomSettings
from draft_room.domain.catalog import Season, Team, User
from draft_room.domain.draft import Pick
from draft_room.domain.views import (
    DraftResults,
    DraftStateView,
    LobbyView,
    MyDraftView,
    PoolView,
    TeamResults,
    WatchlistView,
)
from draft_room.exceptions import ForbiddenError
from draft_room.repos.draft_repo import DraftStore
from draft_room.services.draft_session import DraftSessionService, require_season
from draft_room.services.draft_views import DraftViewService, PoolQuery
from draft_room.services.pick_placement import PickPlacementService, require_positive_id
from draft_room.services.protocols import ItemCatalog, PermissionChecker, SeasonDirectory

logger = logging.getLogger(__name__)


class DraftRoom:
    def __init__(
        self,
        store: DraftStore,
        directory: SeasonDirectory,
        catalog: ItemCatalog,
        permissions: PermissionChecker,
        settings: DraftRoomSettings | None = None,
        *,
        rng: random.Random | None = None,
    ) -> None:
        self._directory = directory
        self._permissions = permissions
        settings = settings or DraftRoomSettings()
        self.sessions = DraftSessionService(store, directory, settings, rng=rng)
        self.placement = PickPlacementService(store, directory, catalog, settings)
        self.views = DraftViewService(store, directory, catalog, settings)

    # --- participant operations ---

    def get_lobby(self, season_id: int, user: User) -> LobbyView:
        team = self._directory.team_for_user(season_id, user.id)
        return self.views.get_lobby(season_id, viewer_team_id=team.id if team else None)

    def toggle_ready(self, season_id: int, user: User) -> LobbyView:
        require_season(self._directory, season_id)
        team = self._require_team(season_id, user)
        self.sessions.toggle_ready(season_id, team.id)
        return self.views.get_lobby(season_id, viewer_team_id=team.id)

    def get_state(self, season_id: int, user: User) -> DraftStateView:
        return self.views.get_state(season_id)

    def preview_order(self, season_id: int, num_rounds: int | None = None) -> list[int]:
        return self.views.preview_order(season_id, num_rounds)

    def get_pool(self, season_id: int, user: User, query: PoolQuery | None = None) -> PoolView:
        return self.views.get_pool(season_id, query)

    def get_my_draft(self, season_id: int, user: User) -> MyDraftView:
        require_season(self._directory, season_id)
        team = self._require_team(season_id, user)
        return self.views.get_my_draft(season_id, team.id)

    def update_watchlist(self, season_id: int, user: User, item_ids: Sequence[object]) -> WatchlistView:
        require_season(self._directory, season_id)
        team = self._require_team(season_id, user)
        return self.views.replace_watchlist(season_id, team.id, item_ids)

    def submit_pick(self, season_id: int, user: User, item_id: int) -> DraftStateView:
        season = require_season(self._directory, season_id)
        team = self._directory.team_for_user(season_id, user.id)
        is_commissioner = self._permissions.is_commissioner(user, season.league_id)
        if team is None and not is_commissioner:
            raise ForbiddenError("You do not manage a team in this season")
        self.placement.submit_pick(
            season_id,
            item_id,
            requesting_team_id=team.id if team else None,
            is_commissioner=is_commissioner,
        )
        return self.views.get_state(season_id)

    def get_results(self, season_id: int, user: User) -> DraftResults:
        return self.views.get_results(season_id)

    def get_team_results(self, season_id: int, user: User, team_id: int) -> TeamResults:
        require_positive_id("team_id", team_id)
        return self.views.get_team_results(season_id, team_id)

    def export_results(self, season_id: int, user: User, fmt: str) -> str:
        return self.views.export_results(season_id, fmt)

    # --- commissioner operations ---

    def open_lobby(self, season_id: int, user: User) -> LobbyView:
        self._require_commissioner(season_id, user)
        self.sessions.open_lobby(season_id)
        return self.get_lobby(season_id, user)

    def start(self, season_id: int, user: User) -> DraftStateView:
        self._require_commissioner(season_id, user)
        self.sessions.start(season_id)
        return self.views.get_state(season_id)

    def pause(self, season_id: int, user: User) -> DraftStateView:
        self._require_commissioner(season_id, user)
        self.sessions.pause(season_id)
        return self.views.get_state(season_id)

    def resume(self, season_id: int, user: User) -> DraftStateView:
        self._require_commissioner(season_id, user)
        self.sessions.resume(season_id)
        return self.views.get_state(season_id)

    def end(self, season_id: int, user: User) -> DraftStateView:
        self._require_commissioner(season_id, user)
        self.sessions.end(season_id)
        return self.views.get_state(season_id)

    def undo_last(self, season_id: int, user: User) -> Pick:
        self._require_commissioner(season_id, user)
        return self.placement.undo_last(season_id)

    def force_pick(self, season_id: int, user: User, item_id: int, team_id: int | None = None) -> Pick:
        self._require_commissioner(season_id, user)
        return self.placement.force_pick(season_id, item_id, team_id)

    def advance(self, season_id: int, user: User) -> Pick:
        self._require_commissioner(season_id, user)
        return self.placement.advance_draft(season_id)

    def reroll_order(self, season_id: int, user: User) -> LobbyView:
        self._require_commissioner(season_id, user)
        self.sessions.reroll_order(season_id)
        return self.get_lobby(season_id, user)

    def set_order(self, season_id: int, user: User, team_ids: Sequence[int]) -> LobbyView:
        self._require_commissioner(season_id, user)
        self.sessions.set_order(season_id, team_ids)
        return self.get_lobby(season_id, user)

    def update_settings(self, season_id: int, user: User, raw: Mapping[str, object]) -> LobbyView:
        self._require_commissioner(season_id, user)
        self.sessions.update_settings(season_id, raw)
        return self.get_lobby(season_id, user)

    def _require_team(self, season_id: int, user: User) -> Team:
        team = self._directory.team_for_user(season_id, user.id)
        if team is None:
            raise ForbiddenError("You do not manage a team in this season")
        return team

    def _require_commissioner(self, season_id: int, user: User) -> Season:
        season = require_season(self._directory, season_id)
        if not self._permissions.is_commissioner(user, season.league_id):
            logger.info("User %d denied commissioner action on season %d", user.id, season_id)
            raise ForbiddenError("Only the league commissioner can manage the draft")
        return season
