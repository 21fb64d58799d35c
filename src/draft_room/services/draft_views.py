import csv
import io
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from draft_room.config import DraftRoomSettings
from draft_room.db.connection import transaction
from draft_room.domain.catalog import CatalogQuery
from draft_room.domain.draft import DraftStatus, Pick
from draft_room.domain.views import (
    DraftResults,
    DraftStateView,
    LobbyParticipant,
    LobbyView,
    MyDraftView,
    PickView,
    PoolItem,
    PoolView,
    TeamOnClock,
    TeamPick,
    TeamResults,
    WatchlistView,
)
from draft_room.draft.turn_order import compute_turn, generate_order
from draft_room.exceptions import DraftValidationError, NotFoundError
from draft_room.repos.draft_repo import DraftStore
from draft_room.services.draft_session import require_season, sync_participants
from draft_room.services.pick_placement import require_positive_id
from draft_room.services.protocols import ItemCatalog, SeasonDirectory

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("csv", "text")

_CSV_COLUMNS = [
    "seasonId",
    "teamId",
    "teamName",
    "position",
    "round",
    "pickInRound",
    "overallPickNumber",
    "itemId",
    "itemName",
]

# A team is shown as on the clock only while the draft can still move forward.
_CLOCK_VISIBLE_STATUSES = frozenset({DraftStatus.NOT_STARTED, DraftStatus.LOBBY, DraftStatus.IN_PROGRESS})


@dataclass(frozen=True)
class PoolQuery:
    page: int | None = None
    limit: int | None = None
    search: str | None = None
    type: str | None = None
    role: str | None = None
    only_available: bool = False


def _team_pick(pick: Pick) -> TeamPick:
    return TeamPick(
        round=pick.round,
        pick_in_round=pick.pick_in_round,
        overall_pick_number=pick.overall_pick_number,
        item_id=pick.item_id,
    )


class DraftViewService:
    """Read-only projections of a draft, plus watchlist replacement."""

    def __init__(
        self,
        store: DraftStore,
        directory: SeasonDirectory,
        catalog: ItemCatalog,
        settings: DraftRoomSettings | None = None,
    ) -> None:
        self._store = store
        self._directory = directory
        self._catalog = catalog
        self._settings = settings or DraftRoomSettings()

    def get_lobby(self, season_id: int, viewer_team_id: int | None = None) -> LobbyView:
        require_season(self._directory, season_id)
        session = self._store.sessions.ensure(season_id)
        participants = sync_participants(self._store, self._directory, season_id)
        teams = {team.id: team for team in self._directory.list_teams(season_id)}
        rows = []
        for p in participants:
            team = teams.get(p.team_id)
            rows.append(
                LobbyParticipant(
                    team_id=p.team_id,
                    team_name=team.name if team else f"Team #{p.team_id}",
                    manager_user_id=team.user_id if team else None,
                    position=p.position,
                    is_ready=p.is_ready,
                    is_you=p.team_id == viewer_team_id,
                )
            )
        return LobbyView(
            season_id=season_id,
            status=session.status,
            ordering_mode=session.ordering_mode,
            starts_at=session.starts_at,
            pick_timer_seconds=session.pick_timer_seconds,
            round_count=session.round_count,
            participants=tuple(rows),
        )

    def get_state(self, season_id: int) -> DraftStateView:
        require_season(self._directory, season_id)
        session = self._store.sessions.ensure(season_id)
        participants = sync_participants(self._store, self._directory, season_id)
        picks = self._store.picks.list(season_id)
        team_names = {team.id: team.name for team in self._directory.list_teams(season_id)}

        slot = compute_turn(session.ordering_mode, participants, len(picks))
        on_clock = None
        if slot.team_id is not None and session.status in _CLOCK_VISIBLE_STATUSES:
            name = team_names.get(slot.team_id, f"Team #{slot.team_id}")
            on_clock = TeamOnClock(team_id=slot.team_id, team_name=name)

        pick_views = []
        for pick in picks:
            item = self._catalog.get_item(pick.item_id)
            pick_views.append(
                PickView(
                    id=pick.id,
                    round=pick.round,
                    pick_in_round=pick.pick_in_round,
                    overall_pick_number=pick.overall_pick_number,
                    team_id=pick.team_id,
                    team_name=team_names.get(pick.team_id),
                    item_id=pick.item_id,
                    item_name=item.name if item else None,
                    sprite_url=item.sprite_url if item else None,
                )
            )

        return DraftStateView(
            season_id=season_id,
            status=session.status,
            ordering_mode=session.ordering_mode,
            current_round=slot.round,
            current_pick_in_round=slot.pick_in_round,
            overall_pick_number=slot.overall_pick_number,
            total_teams=len(participants),
            team_on_the_clock=on_clock,
            pick_timer_seconds=session.pick_timer_seconds,
            picks=tuple(pick_views),
        )

    def preview_order(self, season_id: int, num_rounds: int | None = None) -> list[int]:
        """Team ids in pick order for every slot of the first ``num_rounds`` rounds.

        Defaults to the session round count, or a single round when none is set.
        """
        require_season(self._directory, season_id)
        session = self._store.sessions.ensure(season_id)
        participants = sync_participants(self._store, self._directory, season_id)
        return generate_order(session.ordering_mode, participants, num_rounds or session.round_count or 1)

    def get_pool(self, season_id: int, query: PoolQuery | None = None) -> PoolView:
        require_season(self._directory, season_id)
        query = query or PoolQuery()
        page = max(1, query.page or 1)
        limit = min(self._settings.pool_max_limit, max(1, query.limit or self._settings.pool_default_limit))

        picked_by: dict[int, int] = {}
        for pick in self._store.picks.list(season_id):
            picked_by.setdefault(pick.item_id, pick.team_id)

        result = self._catalog.browse(
            season_id,
            CatalogQuery(page=page, limit=limit, search=query.search, type=query.type, role=query.role),
        )
        items = []
        for item in result.items:
            picked_team = picked_by.get(item.id)
            if query.only_available and picked_team is not None:
                continue
            items.append(
                PoolItem(
                    item_id=item.id,
                    dex_number=item.dex_number,
                    name=item.name,
                    sprite_url=item.sprite_url,
                    types=item.types,
                    roles=item.roles,
                    base_cost=result.cost_overrides.get(item.id, item.base_cost),
                    is_picked=picked_team is not None,
                    picked_by_team_id=picked_team,
                )
            )
        return PoolView(season_id=season_id, items=tuple(items), page=page, limit=limit, total=result.total)

    def get_my_draft(self, season_id: int, team_id: int) -> MyDraftView:
        require_season(self._directory, season_id)
        team = next((t for t in self._directory.list_teams(season_id) if t.id == team_id), None)
        if team is None:
            raise NotFoundError("Team not found in this season")
        picks = [p for p in self._store.picks.list(season_id) if p.team_id == team_id]
        roster = []
        for pick in picks:
            item = self._catalog.get_item(pick.item_id)
            if item is not None:
                roster.append(item)
        return MyDraftView(
            season_id=season_id,
            team_id=team_id,
            team_name=team.name,
            picks=tuple(_team_pick(p) for p in picks),
            roster=tuple(roster),
            watchlist_item_ids=tuple(self._store.watchlists.list(season_id, team_id)),
        )

    def get_watchlist(self, season_id: int, team_id: int) -> WatchlistView:
        return WatchlistView(
            season_id=season_id,
            team_id=team_id,
            item_ids=tuple(self._store.watchlists.list(season_id, team_id)),
        )

    def replace_watchlist(self, season_id: int, team_id: int, item_ids: Sequence[object]) -> WatchlistView:
        """Replace a team's watchlist wholesale.

        Ids are deduplicated keeping first occurrence, then truncated to the
        configured limit. Unknown ids are rejected before anything is written.
        """
        require_season(self._directory, season_id)
        if isinstance(item_ids, (str, bytes)) or not isinstance(item_ids, Sequence):
            raise DraftValidationError("item_ids must be a list")
        unique = list(dict.fromkeys(require_positive_id("item_id", raw) for raw in item_ids))
        unique = unique[: self._settings.watchlist_limit]

        for item_id in unique:
            if self._catalog.get_item(item_id) is None:
                raise NotFoundError(f"Item not found: {item_id}")

        with transaction(self._store.conn):
            self._store.watchlists.replace(season_id, team_id, unique)
        logger.debug("Season %d team %d watchlist now has %d item(s)", season_id, team_id, len(unique))
        return self.get_watchlist(season_id, team_id)

    def get_results(self, season_id: int) -> DraftResults:
        require_season(self._directory, season_id)
        session = self._store.sessions.ensure(season_id)
        participants = sync_participants(self._store, self._directory, season_id)
        teams = self._directory.list_teams(season_id)
        positions = {p.team_id: p.position for p in participants}

        by_team: dict[int, list[Pick]] = {}
        for pick in self._store.picks.list(season_id):
            by_team.setdefault(pick.team_id, []).append(pick)

        results = [
            TeamResults(
                team_id=team.id,
                team_name=team.name,
                position=positions.get(team.id, 0),
                picks=tuple(_team_pick(p) for p in by_team.get(team.id, [])),
            )
            for team in teams
        ]
        results.sort(key=lambda r: (r.position, r.team_id))
        return DraftResults(
            season_id=season_id,
            ordering_mode=session.ordering_mode,
            status=session.status,
            teams=tuple(results),
        )

    def get_team_results(self, season_id: int, team_id: int) -> TeamResults:
        results = self.get_results(season_id)
        for team in results.teams:
            if team.team_id == team_id:
                return team
        raise NotFoundError("Team not found in this season")

    def export_results(self, season_id: int, fmt: str) -> str:
        if fmt not in EXPORT_FORMATS:
            raise DraftValidationError(f"Unknown export format '{fmt}'. Use one of: {', '.join(EXPORT_FORMATS)}")
        results = self.get_results(season_id)

        names: dict[int, str] = {}
        for team in results.teams:
            for pick in team.picks:
                if pick.item_id not in names:
                    item = self._catalog.get_item(pick.item_id)
                    names[pick.item_id] = item.name if item else f"#{pick.item_id}"

        if fmt == "csv":
            return _results_to_csv(results, names)
        return _results_to_text(results, names)


def _results_to_csv(results: DraftResults, names: dict[int, str]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(_CSV_COLUMNS)
    for team in results.teams:
        for pick in team.picks:
            writer.writerow(
                [
                    results.season_id,
                    team.team_id,
                    team.team_name,
                    team.position,
                    pick.round,
                    pick.pick_in_round,
                    pick.overall_pick_number,
                    pick.item_id,
                    names[pick.item_id],
                ]
            )
    return buffer.getvalue()


def _results_to_text(results: DraftResults, names: dict[int, str]) -> str:
    blocks: list[str] = []
    for team in results.teams:
        blocks.append(f"=== {team.team_name} ===")
        blocks.extend(names[pick.item_id] for pick in team.picks)
        blocks.append("")
    return "\n".join(blocks).rstrip()
