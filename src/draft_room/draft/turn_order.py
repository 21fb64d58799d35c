from __future__ import annotations

from typing import TYPE_CHECKING

from draft_room.domain.draft import OrderingMode, TurnSlot

if TYPE_CHECKING:
    from collections.abc import Sequence

    from draft_room.domain.draft import Participant


def round_order(mode: OrderingMode, participants: Sequence[Participant], round_index: int) -> list[Participant]:
    """Return participants in pick order for a 0-based round: snake reverses odd rounds."""
    ordered = sorted(participants, key=lambda p: p.position)
    if mode is OrderingMode.SNAKE and round_index % 2 == 1:
        ordered.reverse()
    return ordered


def compute_turn(mode: OrderingMode, participants: Sequence[Participant], picks_made: int) -> TurnSlot:
    """Work out who is on the clock after ``picks_made`` picks.

    The result depends only on the arguments, so it can always be recomputed
    from the current ledger length. With no participants a slot with
    ``team_id=None`` is returned and nobody can pick.
    """
    if picks_made < 0:
        msg = f"picks_made must be non-negative, got {picks_made}"
        raise ValueError(msg)

    team_count = len(participants)
    if team_count == 0:
        return TurnSlot(round=1, pick_in_round=1, overall_pick_number=1, team_id=None)

    round_index = picks_made // team_count
    pick_index = picks_made % team_count
    order = round_order(mode, participants, round_index)
    return TurnSlot(
        round=round_index + 1,
        pick_in_round=pick_index + 1,
        overall_pick_number=picks_made + 1,
        team_id=order[pick_index].team_id,
    )


def generate_order(mode: OrderingMode, participants: Sequence[Participant], num_rounds: int) -> list[int]:
    """Return team ids for every slot of ``num_rounds`` rounds, in pick order."""
    order: list[int] = []
    for round_index in range(num_rounds):
        order.extend(p.team_id for p in round_order(mode, participants, round_index))
    return order
