"""Claiming items for the team on the clock.

Every claim re-reads session, participants and ledger inside one
``BEGIN IMMEDIATE`` transaction, so two requests racing for the same slot
serialize on the write lock and the loser sees the winner's pick. The unique
indexes on the pick table catch anything that still slips through.
"""

import logging

from draft_room.config import DraftRoomSettings
from draft_room.db.connection import transaction
from draft_room.domain.catalog import CatalogQuery
from draft_room.domain.draft import DraftSession, DraftStatus, Pick, TurnSlot
from draft_room.draft.turn_order import compute_turn
from draft_room.exceptions import ConflictError, DraftValidationError, ForbiddenError, NotFoundError
from draft_room.repos.draft_repo import DraftStore
from draft_room.services.protocols import ItemCatalog, SeasonDirectory

logger = logging.getLogger(__name__)


def require_positive_id(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise DraftValidationError(f"{name} must be a positive integer")
    return value


def _assert_in_progress(session: DraftSession) -> None:
    if session.status is DraftStatus.IN_PROGRESS:
        return
    if session.status is DraftStatus.PAUSED:
        raise ConflictError("Draft is paused")
    raise ConflictError("Draft is not currently in progress")


class PickPlacementService:
    def __init__(
        self,
        store: DraftStore,
        directory: SeasonDirectory,
        catalog: ItemCatalog,
        settings: DraftRoomSettings | None = None,
    ) -> None:
        self._store = store
        self._directory = directory
        self._catalog = catalog
        self._settings = settings or DraftRoomSettings()

    def submit_pick(
        self,
        season_id: int,
        item_id: int,
        *,
        requesting_team_id: int | None = None,
        is_commissioner: bool = False,
        forced_team_id: int | None = None,
    ) -> Pick:
        """Claim ``item_id`` for the team on the clock and append it to the ledger.

        Non-commissioners may only pick for their own team during its turn.
        Commissioners pick on behalf of whoever is on the clock; a
        ``forced_team_id`` must name that team.
        """
        require_positive_id("item_id", item_id)
        if forced_team_id is not None:
            require_positive_id("team_id", forced_team_id)

        teams = self._directory.list_teams(season_id)
        with transaction(self._store.conn):
            session = self._store.sessions.ensure(season_id)
            _assert_in_progress(session)

            participants = self._store.participants.ensure(season_id, [team.id for team in teams])
            picks = self._store.picks.list(season_id)
            if any(p.item_id == item_id for p in picks):
                raise ConflictError("This item has already been drafted")

            slot = compute_turn(session.ordering_mode, participants, len(picks))
            if slot.team_id is None:
                raise ConflictError("No teams are participating in this draft")

            if not is_commissioner:
                if requesting_team_id != slot.team_id:
                    names = {team.id: team.name for team in teams}
                    expected = names.get(slot.team_id, f"Team #{slot.team_id}")
                    logger.debug(
                        "Rejected out-of-turn pick by team %s in season %d", requesting_team_id, season_id
                    )
                    raise ForbiddenError(f"Not your turn to pick. Currently picking: {expected}.")
            elif forced_team_id is not None and forced_team_id != slot.team_id:
                raise ConflictError("team_id does not match the team currently on the clock")

            self._assert_claimable(season_id, item_id)
            pick = self._append(season_id, slot, item_id)
        logger.info(
            "Season %d pick #%d (round %d, pick %d): team %d took item %d",
            season_id,
            pick.overall_pick_number,
            pick.round,
            pick.pick_in_round,
            pick.team_id,
            pick.item_id,
        )
        return pick

    def force_pick(self, season_id: int, item_id: int, team_id: int | None = None) -> Pick:
        return self.submit_pick(season_id, item_id, is_commissioner=True, forced_team_id=team_id)

    def undo_last(self, season_id: int) -> Pick:
        with transaction(self._store.conn):
            last = self._store.picks.get_last(season_id)
            if last is None or last.id is None:
                raise ConflictError("No picks to undo")
            self._store.picks.delete(last.id)
        logger.info(
            "Undid pick #%d (item %d, team %d) in season %d",
            last.overall_pick_number,
            last.item_id,
            last.team_id,
            season_id,
        )
        return last

    def advance_draft(self, season_id: int) -> Pick:
        """Auto-pick the first claimable item, by name, for the team on the clock.

        Scans at most ``auto_pick_max_pages`` pages of ``auto_pick_page_size``
        catalog entries.
        """
        with transaction(self._store.conn):
            session = self._store.sessions.ensure(season_id)
            _assert_in_progress(session)
            picked = {p.item_id for p in self._store.picks.list(season_id)}

            chosen: int | None = None
            page_size = self._settings.auto_pick_page_size
            for page_number in range(1, self._settings.auto_pick_max_pages + 1):
                page = self._catalog.browse(season_id, CatalogQuery(page=page_number, limit=page_size))
                for item in page.items:
                    if item.id in picked or not item.is_draftable:
                        continue
                    if self._catalog.get_season_context(item.id, season_id).is_banned:
                        continue
                    chosen = item.id
                    break
                if chosen is not None or page_number * page_size >= page.total:
                    break

            if chosen is None:
                raise ConflictError("No available items remain to auto-pick")
            logger.info("Auto-picking item %d in season %d", chosen, season_id)
            return self.submit_pick(season_id, chosen, is_commissioner=True)

    def _assert_claimable(self, season_id: int, item_id: int) -> None:
        item = self._catalog.get_item(item_id)
        if item is None:
            raise NotFoundError("Item not found")
        if not item.is_draftable:
            raise ConflictError("This item is not draftable")
        if self._catalog.get_season_context(item_id, season_id).is_banned:
            raise ConflictError("This item is banned for this season")

    def _append(self, season_id: int, slot: TurnSlot, item_id: int) -> Pick:
        assert slot.team_id is not None
        return self._store.picks.insert(
            Pick(
                season_id=season_id,
                round=slot.round,
                pick_in_round=slot.pick_in_round,
                overall_pick_number=slot.overall_pick_number,
                team_id=slot.team_id,
                item_id=item_id,
            )
        )
