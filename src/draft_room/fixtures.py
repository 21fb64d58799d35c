import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from draft_room.db.connection import transaction
from draft_room.domain.catalog import CatalogItem, ItemSeasonContext, Season, SeasonStatus, Team
from draft_room.exceptions import DraftValidationError
from draft_room.repos.catalog_repo import SqliteItemCatalog
from draft_room.repos.directory_repo import SqlitePermissionChecker, SqliteSeasonDirectory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FixtureCounts:
    seasons: int = 0
    teams: int = 0
    league_members: int = 0
    items: int = 0
    season_rules: int = 0


def _entries(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
    raw = data.get(key) or []
    if not isinstance(raw, list) or not all(isinstance(entry, dict) for entry in raw):
        raise DraftValidationError(f"'{key}' must be a list of mappings")
    return raw


def load_fixtures(conn: sqlite3.Connection, path: Path) -> FixtureCounts:
    """Load seasons, teams, league members and catalog items from a YAML file.

    Rows are upserted by id, so loading the same file twice is harmless.
    """
    data = yaml.safe_load(path.read_text()) or {}
    if not isinstance(data, dict):
        raise DraftValidationError(f"{path} must contain a mapping at the top level")

    directory = SqliteSeasonDirectory(conn)
    catalog = SqliteItemCatalog(conn)
    permissions = SqlitePermissionChecker(conn)

    seasons = _entries(data, "seasons")
    teams = _entries(data, "teams")
    members = _entries(data, "league_members")
    items = _entries(data, "items")
    rules = _entries(data, "season_rules")

    try:
        with transaction(conn):
            for entry in seasons:
                directory.upsert_season(
                    Season(
                        id=int(entry["id"]),
                        name=str(entry["name"]),
                        league_id=entry.get("league_id"),
                        status=SeasonStatus(entry.get("status", SeasonStatus.SIGNUP.value)),
                    )
                )
            for entry in teams:
                directory.upsert_team(
                    Team(
                        id=int(entry["id"]),
                        season_id=int(entry["season_id"]),
                        name=str(entry["name"]),
                        user_id=entry.get("user_id"),
                    )
                )
            for entry in members:
                permissions.add_member(int(entry["league_id"]), int(entry["user_id"]), entry.get("role", "member"))
            for entry in items:
                catalog.upsert_item(
                    CatalogItem(
                        id=int(entry["id"]),
                        name=str(entry["name"]),
                        base_cost=entry.get("base_cost"),
                        dex_number=entry.get("dex_number"),
                        types=tuple(entry.get("types", ())),
                        roles=tuple(entry.get("roles", ())),
                        sprite_url=entry.get("sprite_url"),
                    )
                )
            for entry in rules:
                catalog.set_season_rule(
                    ItemSeasonContext(
                        item_id=int(entry["item_id"]),
                        season_id=int(entry["season_id"]),
                        is_banned=bool(entry.get("is_banned", False)),
                        override_cost=entry.get("override_cost"),
                    )
                )
    except (KeyError, ValueError) as e:
        raise DraftValidationError(f"Invalid fixture entry in {path}: {e}") from e

    counts = FixtureCounts(
        seasons=len(seasons),
        teams=len(teams),
        league_members=len(members),
        items=len(items),
        season_rules=len(rules),
    )
    logger.info("Loaded fixtures from %s: %s", path, counts)
    return counts
