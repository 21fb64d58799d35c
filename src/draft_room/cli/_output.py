from rich.console import Console
from rich.table import Table

from draft_room.domain.draft import Pick
from draft_room.domain.views import DraftResults, DraftStateView, LobbyView, MyDraftView, PoolView, WatchlistView

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)


def print_error(message: str) -> None:
    err_console.print(f"[red bold]Error:[/red bold] {message}")


def print_lobby(lobby: LobbyView) -> None:
    console.print(f"Season [bold]{lobby.season_id}[/bold] draft lobby: [bold]{lobby.status.value}[/bold]")
    console.print(
        f"  Order: {lobby.ordering_mode.value}  Timer: {lobby.pick_timer_seconds or '-'}s"
        f"  Rounds: {lobby.round_count or '-'}  Starts: {lobby.starts_at or '-'}"
    )
    if not lobby.participants:
        console.print("No teams have joined.")
        return
    table = Table(show_edge=False, pad_edge=False)
    table.add_column("#", justify="right")
    table.add_column("Team")
    table.add_column("Manager", justify="right")
    table.add_column("Ready")
    for p in lobby.participants:
        name = f"[bold]{p.team_name}[/bold]" if p.is_you else p.team_name
        manager = str(p.manager_user_id) if p.manager_user_id is not None else ""
        ready = "[green]yes[/green]" if p.is_ready else "no"
        table.add_row(str(p.position), name, manager, ready)
    console.print(table)


def print_draft_state(state: DraftStateView) -> None:
    console.print(f"Season [bold]{state.season_id}[/bold] draft: [bold]{state.status.value}[/bold]")
    console.print(
        f"  Round {state.current_round}, pick {state.current_pick_in_round}"
        f" (#{state.overall_pick_number} overall) of {state.total_teams} teams, {state.ordering_mode.value}"
    )
    if state.team_on_the_clock is not None:
        console.print(f"  On the clock: [bold green]{state.team_on_the_clock.team_name}[/bold green]")
    if not state.picks:
        console.print("No picks yet.")
        return
    table = Table(show_edge=False, pad_edge=False)
    table.add_column("#", justify="right")
    table.add_column("Rd", justify="right")
    table.add_column("Pick", justify="right")
    table.add_column("Team")
    table.add_column("Item")
    for p in state.picks:
        table.add_row(
            str(p.overall_pick_number),
            str(p.round),
            str(p.pick_in_round),
            p.team_name or f"Team #{p.team_id}",
            p.item_name or f"#{p.item_id}",
        )
    console.print(table)


def print_pool(pool: PoolView) -> None:
    if not pool.items:
        console.print("No items found.")
        return
    table = Table(show_edge=False, pad_edge=False)
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Types")
    table.add_column("Cost", justify="right")
    table.add_column("Picked by", justify="right")
    for item in pool.items:
        picked = str(item.picked_by_team_id) if item.picked_by_team_id is not None else ""
        cost = str(item.base_cost) if item.base_cost is not None else ""
        name = f"[dim]{item.name}[/dim]" if item.is_picked else item.name
        table.add_row(str(item.item_id), name, "/".join(item.types), cost, picked)
    console.print(table)
    console.print(f"Page {pool.page} ({len(pool.items)} shown, {pool.total} total)")


def print_my_draft(view: MyDraftView) -> None:
    console.print(f"[bold]{view.team_name}[/bold] ({len(view.picks)} picks)")
    names = {item.id: item.name for item in view.roster}
    for pick in view.picks:
        console.print(f"  {pick.overall_pick_number:>3}. {names.get(pick.item_id, f'#{pick.item_id}')}")
    if view.watchlist_item_ids:
        console.print(f"  Watchlist: {', '.join(str(i) for i in view.watchlist_item_ids)}")


def print_watchlist(view: WatchlistView) -> None:
    if not view.item_ids:
        console.print("Watchlist is empty.")
        return
    console.print(f"Watchlist for team {view.team_id}: {', '.join(str(i) for i in view.item_ids)}")


def print_results(results: DraftResults) -> None:
    console.print(f"Season [bold]{results.season_id}[/bold] results ({results.status.value})")
    for team in results.teams:
        picks = ", ".join(f"#{p.overall_pick_number}:{p.item_id}" for p in team.picks) or "-"
        console.print(f"  {team.position:>2}. [bold]{team.team_name}[/bold]  {picks}")


def print_pick(pick: Pick, verb: str = "Picked") -> None:
    console.print(
        f"[bold green]{verb}[/bold green] item {pick.item_id} for team {pick.team_id}"
        f" (round {pick.round}, pick {pick.pick_in_round}, #{pick.overall_pick_number} overall)"
    )


def print_order(team_ids: list[int], names: dict[int, str], team_count: int) -> None:
    if not team_ids:
        console.print("No teams have joined.")
        return
    for index, team_id in enumerate(team_ids):
        if team_count and index % team_count == 0:
            console.print(f"[bold]Round {index // team_count + 1}[/bold]")
        console.print(f"  {index + 1:>3}. {names.get(team_id, f'Team #{team_id}')}")
