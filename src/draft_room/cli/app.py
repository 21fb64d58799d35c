import json
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Any, TypeVar

import typer

from draft_room.cli._logging import configure_logging
from draft_room.cli._output import (
    console,
    print_draft_state,
    print_error,
    print_lobby,
    print_my_draft,
    print_order,
    print_pick,
    print_pool,
    print_results,
    print_watchlist,
)
from draft_room.cli.factory import DraftContext, build_draft_context
from draft_room.config import DraftRoomSettings, create_config, load_settings
from draft_room.db.connection import create_connection, get_schema_version
from draft_room.db.pool import ConnectionPool
from draft_room.domain.catalog import User
from draft_room.exceptions import DraftRoomException
from draft_room.fixtures import load_fixtures
from draft_room.services.draft_views import PoolQuery

T = TypeVar("T")


app = typer.Typer(name="draft-room", help="Draft room: turn-based drafts for fantasy leagues")
admin_app = typer.Typer(name="admin", help="Commissioner controls for a season's draft")
app.add_typer(admin_app, name="admin")

_state: dict[str, Any] = {}


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable DEBUG logging")] = False,
    db: Annotated[str | None, typer.Option("--db", help="SQLite database path (overrides config)")] = None,
    config_file: Annotated[str, typer.Option("--config", help="YAML config file")] = "draft_room.yaml",
) -> None:
    """Draft room: turn-based drafts for fantasy leagues."""
    configure_logging(verbose=verbose)
    try:
        _state["settings"] = load_settings(create_config(config_file, db_path=db))
    except DraftRoomException as e:
        print_error(e.message)
        raise typer.Exit(code=1) from e
    if ctx.invoked_subcommand is None:
        raise typer.Exit()


_SeasonArg = Annotated[int, typer.Argument(help="Season id")]
_UserOpt = Annotated[int, typer.Option("--user", "-u", help="Acting user id")]
_SuperadminOpt = Annotated[bool, typer.Option("--superadmin", help="Act with superadmin rights")]


def _settings() -> DraftRoomSettings:
    return _state.get("settings") or DraftRoomSettings()


@contextmanager
def _room() -> Iterator[DraftContext]:
    try:
        with build_draft_context(_settings()) as ctx:
            yield ctx
    except DraftRoomException as e:
        print_error(e.message)
        raise typer.Exit(code=1) from e


def _run(action: Callable[[DraftContext], T], printer: Callable[[T], None]) -> None:
    with _room() as ctx:
        result = action(ctx)
    printer(result)


@app.command("init-db")
def init_db() -> None:
    """Create the database and apply migrations."""
    settings = _settings()
    conn = create_connection(settings.db_path, busy_timeout=settings.db_busy_timeout)
    try:
        version = get_schema_version(conn)
    finally:
        conn.close()
    console.print(f"[bold green]Database ready[/bold green] at {settings.db_path} (schema version {version})")


@app.command("load-fixtures")
def load_fixtures_cmd(
    path: Annotated[Path, typer.Argument(help="YAML file with seasons, teams, members and items")],
) -> None:
    """Load seasons, teams, league members and catalog items from YAML."""
    if not path.exists():
        print_error(f"file not found: {path}")
        raise typer.Exit(code=1)
    with _room() as ctx:
        counts = load_fixtures(ctx.conn, path)
    console.print(
        f"[bold green]Loaded[/bold green] {counts.seasons} seasons, {counts.teams} teams,"
        f" {counts.league_members} league members, {counts.items} items, {counts.season_rules} season rules"
    )


@app.command()
def lobby(season: _SeasonArg, user: _UserOpt = 0) -> None:
    """Show the draft lobby."""
    _run(lambda ctx: ctx.room.get_lobby(season, User(id=user)), print_lobby)


@app.command()
def ready(season: _SeasonArg, user: _UserOpt) -> None:
    """Toggle your team's ready flag."""
    _run(lambda ctx: ctx.room.toggle_ready(season, User(id=user)), print_lobby)


@app.command()
def state(season: _SeasonArg, user: _UserOpt = 0) -> None:
    """Show the current draft state and pick log."""
    _run(lambda ctx: ctx.room.get_state(season, User(id=user)), print_draft_state)


@app.command()
def order(
    season: _SeasonArg,
    rounds: Annotated[int, typer.Option("--rounds", help="Rounds to preview (default: session round count or 1)")] = 0,
) -> None:
    """Preview the full pick order for the upcoming rounds."""
    with _room() as ctx:
        lobby_view = ctx.room.get_lobby(season, User(id=0))
        team_ids = ctx.room.preview_order(season, rounds or None)
    names = {p.team_id: p.team_name for p in lobby_view.participants}
    print_order(team_ids, names, len(lobby_view.participants))


@app.command()
def pool(
    season: _SeasonArg,
    page: Annotated[int, typer.Option(help="Page number")] = 1,
    limit: Annotated[int | None, typer.Option(help="Items per page")] = None,
    search: Annotated[str | None, typer.Option(help="Filter by name")] = None,
    type_: Annotated[str | None, typer.Option("--type", help="Filter by type")] = None,
    role: Annotated[str | None, typer.Option(help="Filter by role")] = None,
    available: Annotated[bool, typer.Option("--available", help="Only show unpicked items")] = False,
    user: _UserOpt = 0,
) -> None:
    """Browse the draft pool."""
    query = PoolQuery(page=page, limit=limit, search=search, type=type_, role=role, only_available=available)
    _run(lambda ctx: ctx.room.get_pool(season, User(id=user), query), print_pool)


@app.command()
def my(season: _SeasonArg, user: _UserOpt) -> None:
    """Show your team's picks and watchlist."""
    _run(lambda ctx: ctx.room.get_my_draft(season, User(id=user)), print_my_draft)


@app.command()
def watch(
    season: _SeasonArg,
    item_ids: Annotated[list[int], typer.Argument(help="Item ids in priority order")],
    user: _UserOpt,
) -> None:
    """Replace your watchlist."""
    _run(lambda ctx: ctx.room.update_watchlist(season, User(id=user), item_ids), print_watchlist)


@app.command()
def pick(
    season: _SeasonArg,
    item_id: Annotated[int, typer.Argument(help="Item to draft")],
    user: _UserOpt,
    superadmin: _SuperadminOpt = False,
) -> None:
    """Draft an item for your team."""
    _run(lambda ctx: ctx.room.submit_pick(season, User(id=user, is_superadmin=superadmin), item_id), print_draft_state)


@app.command()
def results(season: _SeasonArg, user: _UserOpt = 0) -> None:
    """Show each team's picks."""
    _run(lambda ctx: ctx.room.get_results(season, User(id=user)), print_results)


@app.command()
def export(
    season: _SeasonArg,
    fmt: Annotated[str, typer.Option("--format", "-f", help="csv or text")] = "csv",
    output: Annotated[Path | None, typer.Option("--output", "-o", help="Write to file instead of stdout")] = None,
    user: _UserOpt = 0,
) -> None:
    """Export draft results."""
    with _room() as ctx:
        body = ctx.room.export_results(season, User(id=user), fmt)
    if output is None:
        typer.echo(body)
    else:
        output.write_text(body)
        console.print(f"[bold green]Exported[/bold green] results to {output}")


@app.command()
def serve(
    host: Annotated[str | None, typer.Option(help="Bind address")] = None,
    port: Annotated[int | None, typer.Option(help="Port")] = None,
) -> None:
    """Run the JSON HTTP server."""
    from draft_room.web.app import create_draft_app

    settings = _settings()
    connection_pool = ConnectionPool(
        settings.db_path, size=settings.db_pool_size, busy_timeout=settings.db_busy_timeout
    )
    try:
        flask_app = create_draft_app(connection_pool, settings)
        flask_app.run(host=host or settings.server_host, port=port or settings.server_port, threaded=True)
    finally:
        connection_pool.close_all()


# --- admin ---


@admin_app.command("open-lobby")
def admin_open_lobby(season: _SeasonArg, user: _UserOpt, superadmin: _SuperadminOpt = False) -> None:
    """Open the pre-draft lobby."""
    _run(lambda ctx: ctx.room.open_lobby(season, User(id=user, is_superadmin=superadmin)), print_lobby)


@admin_app.command("start")
def admin_start(season: _SeasonArg, user: _UserOpt, superadmin: _SuperadminOpt = False) -> None:
    """Start the draft."""
    _run(lambda ctx: ctx.room.start(season, User(id=user, is_superadmin=superadmin)), print_draft_state)


@admin_app.command("pause")
def admin_pause(season: _SeasonArg, user: _UserOpt, superadmin: _SuperadminOpt = False) -> None:
    """Pause the draft."""
    _run(lambda ctx: ctx.room.pause(season, User(id=user, is_superadmin=superadmin)), print_draft_state)


@admin_app.command("resume")
def admin_resume(season: _SeasonArg, user: _UserOpt, superadmin: _SuperadminOpt = False) -> None:
    """Resume a paused draft."""
    _run(lambda ctx: ctx.room.resume(season, User(id=user, is_superadmin=superadmin)), print_draft_state)


@admin_app.command("end")
def admin_end(season: _SeasonArg, user: _UserOpt, superadmin: _SuperadminOpt = False) -> None:
    """Complete the draft."""
    _run(lambda ctx: ctx.room.end(season, User(id=user, is_superadmin=superadmin)), print_draft_state)


@admin_app.command("undo")
def admin_undo(season: _SeasonArg, user: _UserOpt, superadmin: _SuperadminOpt = False) -> None:
    """Remove the most recent pick."""
    _run(
        lambda ctx: ctx.room.undo_last(season, User(id=user, is_superadmin=superadmin)),
        lambda p: print_pick(p, verb="Undid"),
    )


@admin_app.command("force-pick")
def admin_force_pick(
    season: _SeasonArg,
    item_id: Annotated[int, typer.Argument(help="Item to draft")],
    user: _UserOpt,
    team: Annotated[int | None, typer.Option("--team", help="Team expected on the clock")] = None,
    superadmin: _SuperadminOpt = False,
) -> None:
    """Draft an item on behalf of the team on the clock."""
    _run(
        lambda ctx: ctx.room.force_pick(season, User(id=user, is_superadmin=superadmin), item_id, team),
        lambda p: print_pick(p, verb="Forced"),
    )


@admin_app.command("advance")
def admin_advance(season: _SeasonArg, user: _UserOpt, superadmin: _SuperadminOpt = False) -> None:
    """Auto-pick the first available item for the team on the clock."""
    _run(
        lambda ctx: ctx.room.advance(season, User(id=user, is_superadmin=superadmin)),
        lambda p: print_pick(p, verb="Auto-picked"),
    )


@admin_app.command("reroll")
def admin_reroll(season: _SeasonArg, user: _UserOpt, superadmin: _SuperadminOpt = False) -> None:
    """Shuffle the draft order."""
    _run(lambda ctx: ctx.room.reroll_order(season, User(id=user, is_superadmin=superadmin)), print_lobby)


@admin_app.command("set-order")
def admin_set_order(
    season: _SeasonArg,
    team_ids: Annotated[list[int], typer.Argument(help="Every participating team id, first pick first")],
    user: _UserOpt,
    superadmin: _SuperadminOpt = False,
) -> None:
    """Set the draft order explicitly."""
    _run(lambda ctx: ctx.room.set_order(season, User(id=user, is_superadmin=superadmin), team_ids), print_lobby)


@admin_app.command("settings")
def admin_settings(
    season: _SeasonArg,
    user: _UserOpt,
    mode: Annotated[str | None, typer.Option("--mode", help="Snake, Linear or Custom")] = None,
    timer: Annotated[int | None, typer.Option("--timer", help="Pick timer in seconds")] = None,
    rounds: Annotated[int | None, typer.Option("--rounds", help="Number of rounds")] = None,
    starts_at: Annotated[str | None, typer.Option("--starts-at", help="Scheduled start (ISO 8601)")] = None,
    patch: Annotated[str | None, typer.Option("--json", help="Raw JSON patch; null clears a field")] = None,
    superadmin: _SuperadminOpt = False,
) -> None:
    """Change draft settings before the draft starts."""
    raw: dict[str, object] = {}
    if patch is not None:
        try:
            parsed = json.loads(patch)
        except json.JSONDecodeError as e:
            print_error(f"invalid JSON patch: {e}")
            raise typer.Exit(code=1) from e
        if not isinstance(parsed, dict):
            print_error("JSON patch must be an object")
            raise typer.Exit(code=1)
        raw.update(parsed)
    if mode is not None:
        raw["ordering_mode"] = mode
    if timer is not None:
        raw["pick_timer_seconds"] = timer
    if rounds is not None:
        raw["round_count"] = rounds
    if starts_at is not None:
        raw["starts_at"] = starts_at
    if not raw:
        print_error("nothing to change; pass --mode, --timer, --rounds, --starts-at or --json")
        raise typer.Exit(code=1)
    _run(lambda ctx: ctx.room.update_settings(season, User(id=user, is_superadmin=superadmin), raw), print_lobby)
