"""Collaborators the draft engine consumes but does not own.

Seasons, teams, the item catalog and league roles live elsewhere; the
engine only talks to them through these protocols.
"""

from typing import Protocol, runtime_checkable

from draft_room.domain.catalog import (
    CatalogItem,
    CatalogPage,
    CatalogQuery,
    ItemSeasonContext,
    Season,
    SeasonStatus,
    Team,
    User,
)


@runtime_checkable
class SeasonDirectory(Protocol):
    def get_season(self, season_id: int) -> Season | None: ...

    def list_teams(self, season_id: int) -> list[Team]: ...

    def team_for_user(self, season_id: int, user_id: int) -> Team | None: ...

    def set_season_status(self, season_id: int, status: SeasonStatus) -> None: ...

    def update_season_settings(
        self,
        season_id: int,
        *,
        draft_type: str | None = None,
        pick_timer_seconds: int | None = None,
        round_count: int | None = None,
    ) -> None: ...


@runtime_checkable
class ItemCatalog(Protocol):
    def get_item(self, item_id: int) -> CatalogItem | None: ...

    def get_season_context(self, item_id: int, season_id: int) -> ItemSeasonContext: ...

    def browse(self, season_id: int, query: CatalogQuery) -> CatalogPage: ...


@runtime_checkable
class PermissionChecker(Protocol):
    def is_commissioner(self, user: User, league_id: int | None) -> bool: ...
