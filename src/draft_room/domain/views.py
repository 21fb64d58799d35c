from dataclasses import dataclass

from draft_room.domain.catalog import CatalogItem
from draft_room.domain.draft import DraftStatus, OrderingMode


@dataclass(frozen=True)
class LobbyParticipant:
    team_id: int
    team_name: str
    manager_user_id: int | None
    position: int
    is_ready: bool
    is_you: bool


@dataclass(frozen=True)
class LobbyView:
    season_id: int
    status: DraftStatus
    ordering_mode: OrderingMode
    starts_at: str | None
    pick_timer_seconds: int | None
    round_count: int | None
    participants: tuple[LobbyParticipant, ...]


@dataclass(frozen=True)
class TeamOnClock:
    team_id: int
    team_name: str


@dataclass(frozen=True)
class PickView:
    id: int | None
    round: int
    pick_in_round: int
    overall_pick_number: int
    team_id: int
    team_name: str | None
    item_id: int
    item_name: str | None
    sprite_url: str | None


@dataclass(frozen=True)
class DraftStateView:
    season_id: int
    status: DraftStatus
    ordering_mode: OrderingMode
    current_round: int
    current_pick_in_round: int
    overall_pick_number: int
    total_teams: int
    team_on_the_clock: TeamOnClock | None
    pick_timer_seconds: int | None
    picks: tuple[PickView, ...]


@dataclass(frozen=True)
class PoolItem:
    item_id: int
    dex_number: int | None
    name: str
    sprite_url: str | None
    types: tuple[str, ...]
    roles: tuple[str, ...]
    base_cost: int | None
    is_picked: bool
    picked_by_team_id: int | None


@dataclass(frozen=True)
class PoolView:
    season_id: int
    items: tuple[PoolItem, ...]
    page: int
    limit: int
    total: int


@dataclass(frozen=True)
class TeamPick:
    round: int
    pick_in_round: int
    overall_pick_number: int
    item_id: int


@dataclass(frozen=True)
class MyDraftView:
    season_id: int
    team_id: int
    team_name: str
    picks: tuple[TeamPick, ...]
    roster: tuple[CatalogItem, ...]
    watchlist_item_ids: tuple[int, ...]


@dataclass(frozen=True)
class WatchlistView:
    season_id: int
    team_id: int
    item_ids: tuple[int, ...]


@dataclass(frozen=True)
class TeamResults:
    team_id: int
    team_name: str
    position: int
    picks: tuple[TeamPick, ...]


@dataclass(frozen=True)
class DraftResults:
    season_id: int
    ordering_mode: OrderingMode
    status: DraftStatus
    teams: tuple[TeamResults, ...]
