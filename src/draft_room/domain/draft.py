from dataclasses import dataclass
from enum import Enum


class DraftStatus(Enum):
    NOT_STARTED = "NotStarted"
    LOBBY = "Lobby"
    IN_PROGRESS = "InProgress"
    PAUSED = "Paused"
    COMPLETED = "Completed"


class OrderingMode(Enum):
    SNAKE = "Snake"
    LINEAR = "Linear"
    CUSTOM = "Custom"


PRE_DRAFT_STATUSES: frozenset[DraftStatus] = frozenset({DraftStatus.NOT_STARTED, DraftStatus.LOBBY})


@dataclass(frozen=True)
class DraftSession:
    season_id: int
    status: DraftStatus = DraftStatus.NOT_STARTED
    ordering_mode: OrderingMode = OrderingMode.SNAKE
    starts_at: str | None = None
    pick_timer_seconds: int | None = None
    round_count: int | None = None


@dataclass(frozen=True)
class Participant:
    season_id: int
    team_id: int
    position: int
    is_ready: bool = False


@dataclass(frozen=True)
class Pick:
    season_id: int
    round: int
    pick_in_round: int
    overall_pick_number: int
    team_id: int
    item_id: int
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class TurnSlot:
    round: int
    pick_in_round: int
    overall_pick_number: int
    team_id: int | None


@dataclass(frozen=True)
class WatchlistEntry:
    season_id: int
    team_id: int
    item_id: int
    rank: int


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset()


@dataclass(frozen=True)
class SettingsPatch:
    """Partial update of draft settings; fields left as UNSET are not touched."""

    ordering_mode: object = UNSET
    starts_at: object = UNSET
    pick_timer_seconds: object = UNSET
    round_count: object = UNSET

    def is_empty(self) -> bool:
        return all(
            value is UNSET
            for value in (self.ordering_mode, self.starts_at, self.pick_timer_seconds, self.round_count)
        )
