import random
import sqlite3
from dataclasses import dataclass

import pytest

from draft_room.domain.catalog import CatalogItem, Season, SeasonStatus, Team
from draft_room.repos.draft_repo import DraftStore
from draft_room.services.draft_room import DraftRoom
from tests.fakes.collaborators import FakeItemCatalog, FakePermissionChecker, FakeSeasonDirectory

SEASON_ID = 1
LEAGUE_ID = 10
COMMISSIONER_ID = 900


@dataclass
class DraftEnv:
    store: DraftStore
    directory: FakeSeasonDirectory
    catalog: FakeItemCatalog
    permissions: FakePermissionChecker
    room: DraftRoom


def make_teams(count: int, season_id: int = SEASON_ID) -> list[Team]:
    """Teams 1..count, managed by users 101..100+count."""
    return [Team(id=i, season_id=season_id, name=f"Team {i}", user_id=100 + i) for i in range(1, count + 1)]


def make_items(count: int) -> list[CatalogItem]:
    return [
        CatalogItem(
            id=i,
            name=f"Item {i:03d}",
            base_cost=i % 5 + 1,
            dex_number=i,
            types=("Fire",) if i % 2 else ("Water",),
        )
        for i in range(1, count + 1)
    ]


def build_env(conn: sqlite3.Connection, *, team_count: int = 6, item_count: int = 40) -> DraftEnv:
    directory = FakeSeasonDirectory(
        seasons=[Season(id=SEASON_ID, name="Spring", league_id=LEAGUE_ID, status=SeasonStatus.SIGNUP)],
        teams=make_teams(team_count),
    )
    catalog = FakeItemCatalog(make_items(item_count))
    permissions = FakePermissionChecker({COMMISSIONER_ID})
    store = DraftStore.for_connection(conn)
    room = DraftRoom(store, directory, catalog, permissions, rng=random.Random(7))
    return DraftEnv(store=store, directory=directory, catalog=catalog, permissions=permissions, room=room)


@pytest.fixture
def env(conn: sqlite3.Connection) -> DraftEnv:
    return build_env(conn)
