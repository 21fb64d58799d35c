import dataclasses
import logging
import random
from collections.abc import Callable
from enum import Enum
from typing import Any

from flask import Flask, Response, jsonify, request

from draft_room.cli.factory import DraftContext, build_draft_room
from draft_room.config import DraftRoomSettings
from draft_room.db.pool import ConnectionPool
from draft_room.domain.catalog import User
from draft_room.exceptions import DraftRoomException
from draft_room.services.draft_views import PoolQuery

logger = logging.getLogger(__name__)

_STATUS_BY_KIND = {
    "not_found": 404,
    "validation": 400,
    "forbidden": 403,
    "conflict": 409,
}

_EXPORT_MIMETYPES = {"csv": "text/csv", "text": "text/plain"}


def to_jsonable(value: Any) -> Any:
    """Turn view dataclasses, enums and tuples into plain JSON-compatible values."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    return value


def _optional_int(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _flag(raw: str | None) -> bool:
    return raw is not None and raw.lower() in ("1", "true", "yes")


def create_draft_app(
    pool: ConnectionPool,
    settings: DraftRoomSettings | None = None,
    *,
    rng: random.Random | None = None,
) -> Flask:
    """Create the Flask app serving the draft room over JSON.

    Each request checks a connection out of ``pool`` and builds its own
    ``DraftRoom`` on it. The acting user comes from the ``X-User-Id`` header;
    ``X-User-Role: superadmin`` grants superadmin rights.
    """
    app = Flask(__name__)
    settings = settings or DraftRoomSettings()

    def current_user() -> User | None:
        user_id = _optional_int(request.headers.get("X-User-Id"))
        if user_id is None or user_id < 1:
            return None
        return User(id=user_id, is_superadmin=request.headers.get("X-User-Role", "").lower() == "superadmin")

    def with_room(action: Callable[[DraftContext, User], Any]) -> tuple[Response, int] | Response:
        user = current_user()
        if user is None:
            return jsonify({"error": "unauthorized", "message": "Missing or invalid X-User-Id header"}), 401
        with pool.connection() as conn:
            result = action(build_draft_room(conn, settings, rng=rng), user)
        if isinstance(result, Response):
            return result
        return jsonify(to_jsonable(result))

    def json_body() -> dict[str, Any]:
        body = request.get_json(silent=True)
        return body if isinstance(body, dict) else {}

    @app.errorhandler(DraftRoomException)
    def handle_draft_error(error: DraftRoomException) -> tuple[Response, int]:
        status = _STATUS_BY_KIND.get(error.kind, 500)
        logger.debug("%s %s -> %d %s", request.method, request.path, status, error.message)
        return jsonify({"error": error.kind, "message": error.message}), status

    prefix = "/seasons/<int:season_id>/draft"

    @app.get(f"{prefix}/lobby")
    def lobby(season_id: int) -> tuple[Response, int] | Response:
        return with_room(lambda ctx, user: ctx.room.get_lobby(season_id, user))

    @app.post(f"{prefix}/ready")
    def ready(season_id: int) -> tuple[Response, int] | Response:
        return with_room(lambda ctx, user: ctx.room.toggle_ready(season_id, user))

    @app.get(f"{prefix}/state")
    def state(season_id: int) -> tuple[Response, int] | Response:
        return with_room(lambda ctx, user: ctx.room.get_state(season_id, user))

    @app.get(f"{prefix}/pool")
    def draft_pool(season_id: int) -> tuple[Response, int] | Response:
        query = PoolQuery(
            page=_optional_int(request.args.get("page")),
            limit=_optional_int(request.args.get("limit")),
            search=request.args.get("search") or None,
            type=request.args.get("type") or None,
            role=request.args.get("role") or None,
            only_available=_flag(request.args.get("only_available")),
        )
        return with_room(lambda ctx, user: ctx.room.get_pool(season_id, user, query))

    @app.get(f"{prefix}/my")
    def my_draft(season_id: int) -> tuple[Response, int] | Response:
        return with_room(lambda ctx, user: ctx.room.get_my_draft(season_id, user))

    @app.put(f"{prefix}/watchlist")
    def watchlist(season_id: int) -> tuple[Response, int] | Response:
        item_ids = json_body().get("item_ids")
        return with_room(lambda ctx, user: ctx.room.update_watchlist(season_id, user, item_ids))

    @app.post(f"{prefix}/pick")
    def pick(season_id: int) -> tuple[Response, int] | Response:
        item_id = json_body().get("item_id")
        return with_room(lambda ctx, user: ctx.room.submit_pick(season_id, user, item_id))

    @app.get(f"{prefix}/results")
    def results(season_id: int) -> tuple[Response, int] | Response:
        return with_room(lambda ctx, user: ctx.room.get_results(season_id, user))

    @app.get(f"{prefix}/results/<int:team_id>")
    def team_results(season_id: int, team_id: int) -> tuple[Response, int] | Response:
        return with_room(lambda ctx, user: ctx.room.get_team_results(season_id, user, team_id))

    @app.get(f"{prefix}/results/export/<fmt>")
    def export(season_id: int, fmt: str) -> tuple[Response, int] | Response:
        def render(ctx: DraftContext, user: User) -> Response:
            body = ctx.room.export_results(season_id, user, fmt)
            return Response(body, mimetype=_EXPORT_MIMETYPES[fmt])

        return with_room(render)

    @app.post(f"{prefix}/admin/open-lobby")
    def admin_open_lobby(season_id: int) -> tuple[Response, int] | Response:
        return with_room(lambda ctx, user: ctx.room.open_lobby(season_id, user))

    @app.post(f"{prefix}/admin/start")
    def admin_start(season_id: int) -> tuple[Response, int] | Response:
        return with_room(lambda ctx, user: ctx.room.start(season_id, user))

    @app.post(f"{prefix}/admin/pause")
    def admin_pause(season_id: int) -> tuple[Response, int] | Response:
        return with_room(lambda ctx, user: ctx.room.pause(season_id, user))

    @app.post(f"{prefix}/admin/resume")
    def admin_resume(season_id: int) -> tuple[Response, int] | Response:
        return with_room(lambda ctx, user: ctx.room.resume(season_id, user))

    @app.post(f"{prefix}/admin/end")
    def admin_end(season_id: int) -> tuple[Response, int] | Response:
        return with_room(lambda ctx, user: ctx.room.end(season_id, user))

    @app.post(f"{prefix}/admin/undo")
    def admin_undo(season_id: int) -> tuple[Response, int] | Response:
        return with_room(lambda ctx, user: ctx.room.undo_last(season_id, user))

    @app.post(f"{prefix}/admin/force-pick")
    def admin_force_pick(season_id: int) -> tuple[Response, int] | Response:
        body = json_body()
        return with_room(
            lambda ctx, user: ctx.room.force_pick(season_id, user, body.get("item_id"), body.get("team_id"))
        )

    @app.post(f"{prefix}/admin/advance")
    def admin_advance(season_id: int) -> tuple[Response, int] | Response:
        return with_room(lambda ctx, user: ctx.room.advance(season_id, user))

    @app.post(f"{prefix}/admin/reroll")
    def admin_reroll(season_id: int) -> tuple[Response, int] | Response:
        return with_room(lambda ctx, user: ctx.room.reroll_order(season_id, user))

    @app.put(f"{prefix}/admin/order")
    def admin_set_order(season_id: int) -> tuple[Response, int] | Response:
        team_ids = json_body().get("team_ids") or []
        return with_room(lambda ctx, user: ctx.room.set_order(season_id, user, team_ids))

    @app.patch(f"{prefix}/admin/settings")
    def admin_settings(season_id: int) -> tuple[Response, int] | Response:
        body = json_body()
        return with_room(lambda ctx, user: ctx.room.update_settings(season_id, user, body))

    return app
