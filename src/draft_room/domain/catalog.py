from dataclasses import dataclass, field
from enum import Enum


class SeasonStatus(Enum):
    SIGNUP = "Signup"
    DRAFTING = "Drafting"
    ACTIVE = "Active"
    PLAYOFFS = "Playoffs"
    COMPLETED = "Completed"


@dataclass(frozen=True)
class Season:
    id: int
    name: str
    league_id: int | None
    status: SeasonStatus = SeasonStatus.SIGNUP


@dataclass(frozen=True)
class Team:
    id: int
    season_id: int
    name: str
    user_id: int | None = None


@dataclass(frozen=True)
class User:
    id: int
    is_superadmin: bool = False


@dataclass(frozen=True)
class CatalogItem:
    id: int
    name: str
    base_cost: int | None = None
    dex_number: int | None = None
    types: tuple[str, ...] = ()
    roles: tuple[str, ...] = ()
    sprite_url: str | None = None

    @property
    def is_draftable(self) -> bool:
        return self.base_cost is not None


@dataclass(frozen=True)
class ItemSeasonContext:
    item_id: int
    season_id: int
    is_banned: bool = False
    override_cost: int | None = None


@dataclass(frozen=True)
class CatalogQuery:
    page: int = 1
    limit: int = 50
    search: str | None = None
    type: str | None = None
    role: str | None = None
    draftable_only: bool = True
    exclude_banned: bool = True


@dataclass(frozen=True)
class CatalogPage:
    items: tuple[CatalogItem, ...]
    total: int
    page: int
    limit: int
    cost_overrides: dict[int, int] = field(default_factory=dict)
