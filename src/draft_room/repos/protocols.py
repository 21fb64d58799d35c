from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from draft_room.domain.draft import DraftSession, DraftStatus, Participant, Pick, SettingsPatch


@runtime_checkable
class DraftSessionRepo(Protocol):
    def get(self, season_id: int) -> DraftSession | None: ...

    def ensure(self, season_id: int) -> DraftSession: ...

    def set_status(self, season_id: int, status: DraftStatus) -> DraftSession: ...

    def update_settings(self, season_id: int, patch: SettingsPatch) -> DraftSession | None: ...


@runtime_checkable
class DraftParticipantRepo(Protocol):
    def list(self, season_id: int) -> list[Participant]: ...

    def ensure(self, season_id: int, team_ids: Sequence[int]) -> list[Participant]: ...

    def set_ready(self, season_id: int, team_id: int, is_ready: bool) -> None: ...

    def set_positions(self, season_id: int, team_ids: Sequence[int]) -> list[Participant]: ...


@runtime_checkable
class DraftPickRepo(Protocol):
    def list(self, season_id: int) -> list[Pick]: ...

    def count(self, season_id: int) -> int: ...

    def get_last(self, season_id: int) -> Pick | None: ...

    def insert(self, pick: Pick) -> Pick: ...

    def delete(self, pick_id: int) -> None: ...


@runtime_checkable
class DraftWatchlistRepo(Protocol):
    def list(self, season_id: int, team_id: int) -> list[int]: ...

    def replace(self, season_id: int, team_id: int, item_ids: Sequence[int]) -> None: ...
