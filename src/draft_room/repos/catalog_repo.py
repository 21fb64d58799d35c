import json
import sqlite3

from draft_room.domain.catalog import CatalogItem, CatalogPage, CatalogQuery, ItemSeasonContext


class SqliteItemCatalog:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def upsert_item(self, item: CatalogItem) -> None:
        self._conn.execute(
            "INSERT INTO catalog_item (id, name, dex_number, base_cost, types_json, roles_json, sprite_url)"
            " VALUES (?, ?, ?, ?, ?, ?, ?)"
            " ON CONFLICT(id) DO UPDATE SET"
            "    name=excluded.name,"
            "    dex_number=excluded.dex_number,"
            "    base_cost=excluded.base_cost,"
            "    types_json=excluded.types_json,"
            "    roles_json=excluded.roles_json,"
            "    sprite_url=excluded.sprite_url",
            (
                item.id,
                item.name,
                item.dex_number,
                item.base_cost,
                json.dumps(list(item.types)),
                json.dumps(list(item.roles)),
                item.sprite_url,
            ),
        )

    def set_season_rule(self, context: ItemSeasonContext) -> None:
        self._conn.execute(
            "INSERT INTO catalog_season_rule (season_id, item_id, is_banned, override_cost)"
            " VALUES (?, ?, ?, ?)"
            " ON CONFLICT(season_id, item_id) DO UPDATE SET"
            "    is_banned=excluded.is_banned,"
            "    override_cost=excluded.override_cost",
            (context.season_id, context.item_id, int(context.is_banned), context.override_cost),
        )

    def get_item(self, item_id: int) -> CatalogItem | None:
        row = self._conn.execute(self._select_sql() + " WHERE c.id = ?", (item_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_item(row)

    def get_season_context(self, item_id: int, season_id: int) -> ItemSeasonContext:
        row = self._conn.execute(
            "SELECT is_banned, override_cost FROM catalog_season_rule WHERE season_id = ? AND item_id = ?",
            (season_id, item_id),
        ).fetchone()
        if row is None:
            return ItemSeasonContext(item_id=item_id, season_id=season_id)
        return ItemSeasonContext(
            item_id=item_id,
            season_id=season_id,
            is_banned=bool(row["is_banned"]),
            override_cost=row["override_cost"],
        )

    def browse(self, season_id: int, query: CatalogQuery) -> CatalogPage:
        """Return one page of items sorted by name, with season cost overrides attached."""
        where: list[str] = []
        params: list[object] = [season_id]
        if query.draftable_only:
            where.append("c.base_cost IS NOT NULL")
        if query.exclude_banned:
            where.append("COALESCE(r.is_banned, 0) = 0")
        if query.search:
            where.append("c.name LIKE ? COLLATE NOCASE")
            params.append(f"%{query.search}%")
        if query.type:
            where.append("EXISTS (SELECT 1 FROM json_each(c.types_json) WHERE lower(value) = lower(?))")
            params.append(query.type)
        if query.role:
            where.append("EXISTS (SELECT 1 FROM json_each(c.roles_json) WHERE lower(value) = lower(?))")
            params.append(query.role)

        from_sql = " FROM catalog_item c LEFT JOIN catalog_season_rule r ON r.item_id = c.id AND r.season_id = ?"
        where_sql = (" WHERE " + " AND ".join(where)) if where else ""

        total = self._conn.execute("SELECT COUNT(*)" + from_sql + where_sql, params).fetchone()[0]
        offset = (query.page - 1) * query.limit
        rows = self._conn.execute(
            "SELECT c.id, c.name, c.dex_number, c.base_cost, c.types_json, c.roles_json, c.sprite_url,"
            " r.override_cost"
            + from_sql
            + where_sql
            + " ORDER BY c.name ASC, c.id ASC LIMIT ? OFFSET ?",
            (*params, query.limit, offset),
        ).fetchall()

        overrides = {row["id"]: row["override_cost"] for row in rows if row["override_cost"] is not None}
        return CatalogPage(
            items=tuple(self._row_to_item(row) for row in rows),
            total=total,
            page=query.page,
            limit=query.limit,
            cost_overrides=overrides,
        )

    @staticmethod
    def _select_sql() -> str:
        return (
            "SELECT c.id, c.name, c.dex_number, c.base_cost, c.types_json, c.roles_json, c.sprite_url"
            " FROM catalog_item c"
        )

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> CatalogItem:
        return CatalogItem(
            id=row["id"],
            name=row["name"],
            base_cost=row["base_cost"],
            dex_number=row["dex_number"],
            types=tuple(json.loads(row["types_json"] or "[]")),
            roles=tuple(json.loads(row["roles_json"] or "[]")),
            sprite_url=row["sprite_url"],
        )
