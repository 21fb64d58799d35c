import random
from collections.abc import Iterator
from pathlib import Path

import pytest
from flask.testing import FlaskClient

from draft_room.db.pool import ConnectionPool
from draft_room.fixtures import load_fixtures
from draft_room.web.app import create_draft_app

LEAGUE_YAML = Path(__file__).parent.parent / "data" / "league.yaml"
BASE = "/seasons/1/draft"

COMMISSIONER = {"X-User-Id": "900"}


def _manager(team_id: int) -> dict[str, str]:
    return {"X-User-Id": str(100 + team_id)}


@pytest.fixture
def client(tmp_path: Path) -> Iterator[FlaskClient]:
    pool = ConnectionPool(tmp_path / "web.db", size=2)
    with pool.connection() as conn:
        load_fixtures(conn, LEAGUE_YAML)
    app = create_draft_app(pool, rng=random.Random(3))
    yield app.test_client()
    pool.close_all()


def _start(client: FlaskClient) -> None:
    response = client.post(f"{BASE}/admin/start", headers=COMMISSIONER)
    assert response.status_code == 200, response.get_json()


class TestAuthentication:
    def test_missing_user_header(self, client: FlaskClient) -> None:
        response = client.get(f"{BASE}/lobby")
        assert response.status_code == 401
        assert response.get_json()["error"] == "unauthorized"

    @pytest.mark.parametrize("value", ["abc", "0", "-5"])
    def test_invalid_user_header(self, client: FlaskClient, value: str) -> None:
        assert client.get(f"{BASE}/lobby", headers={"X-User-Id": value}).status_code == 401

    def test_superadmin_role_header(self, client: FlaskClient) -> None:
        response = client.post(f"{BASE}/admin/open-lobby", headers={"X-User-Id": "7", "X-User-Role": "superadmin"})
        assert response.status_code == 200
        assert response.get_json()["status"] == "Lobby"

    def test_member_forbidden_from_admin(self, client: FlaskClient) -> None:
        response = client.post(f"{BASE}/admin/start", headers=_manager(1))
        assert response.status_code == 403
        assert response.get_json() == {
            "error": "forbidden",
            "message": "Only the league commissioner can manage the draft",
        }


class TestLobbyRoutes:
    def test_lobby(self, client: FlaskClient) -> None:
        body = client.get(f"{BASE}/lobby", headers=_manager(2)).get_json()
        assert body["status"] == "NotStarted"
        assert body["ordering_mode"] == "Snake"
        assert [p["team_name"] for p in body["participants"]] == ["Aces", "Bombers", "Comets"]
        assert [p["is_you"] for p in body["participants"]] == [False, True, False]

    def test_unknown_season(self, client: FlaskClient) -> None:
        response = client.get("/seasons/42/draft/lobby", headers=_manager(1))
        assert response.status_code == 404
        assert response.get_json()["error"] == "not_found"

    def test_ready(self, client: FlaskClient) -> None:
        body = client.post(f"{BASE}/ready", headers=_manager(3)).get_json()
        assert [p["is_ready"] for p in body["participants"]] == [False, False, True]

    def test_settings(self, client: FlaskClient) -> None:
        response = client.patch(
            f"{BASE}/admin/settings",
            headers=COMMISSIONER,
            json={"ordering_mode": "Linear", "round_count": 4, "starts_at": "2026-05-01T20:00:00"},
        )
        assert response.status_code == 200
        body = response.get_json()
        assert body["ordering_mode"] == "Linear"
        assert body["round_count"] == 4
        assert body["starts_at"] == "2026-05-01T20:00:00"

    def test_settings_validation(self, client: FlaskClient) -> None:
        response = client.patch(f"{BASE}/admin/settings", headers=COMMISSIONER, json={"round_count": 0})
        assert response.status_code == 400
        assert response.get_json()["error"] == "validation"

    def test_settings_after_start(self, client: FlaskClient) -> None:
        _start(client)
        response = client.patch(f"{BASE}/admin/settings", headers=COMMISSIONER, json={"round_count": 3})
        assert response.status_code == 409

    def test_set_order(self, client: FlaskClient) -> None:
        response = client.put(f"{BASE}/admin/order", headers=COMMISSIONER, json={"team_ids": [2, 3, 1]})
        assert response.status_code == 200
        assert [p["team_id"] for p in response.get_json()["participants"]] == [2, 3, 1]

    def test_set_order_incomplete(self, client: FlaskClient) -> None:
        response = client.put(f"{BASE}/admin/order", headers=COMMISSIONER, json={"team_ids": [2, 3]})
        assert response.status_code == 400

    def test_reroll(self, client: FlaskClient) -> None:
        response = client.post(f"{BASE}/admin/reroll", headers=COMMISSIONER)
        assert response.status_code == 200
        assert sorted(p["team_id"] for p in response.get_json()["participants"]) == [1, 2, 3]


class TestPickRoutes:
    def test_pick_before_start(self, client: FlaskClient) -> None:
        response = client.post(f"{BASE}/pick", headers=_manager(1), json={"item_id": 4})
        assert response.status_code == 409

    def test_pick_returns_state(self, client: FlaskClient) -> None:
        _start(client)
        response = client.post(f"{BASE}/pick", headers=_manager(1), json={"item_id": 4})
        assert response.status_code == 200
        body = response.get_json()
        assert body["overall_pick_number"] == 2
        assert body["team_on_the_clock"] == {"team_id": 2, "team_name": "Bombers"}
        assert body["picks"][0]["item_name"] == "Charmander"

    def test_pick_conflicts_and_turns(self, client: FlaskClient) -> None:
        _start(client)
        client.post(f"{BASE}/pick", headers=_manager(1), json={"item_id": 4})

        duplicate = client.post(f"{BASE}/pick", headers=_manager(2), json={"item_id": 4})
        assert duplicate.status_code == 409
        assert duplicate.get_json()["message"] == "This item has already been drafted"

        out_of_turn = client.post(f"{BASE}/pick", headers=_manager(3), json={"item_id": 6})
        assert out_of_turn.status_code == 403
        assert out_of_turn.get_json()["message"] == "Not your turn to pick. Currently picking: Bombers."

    def test_pick_banned_item(self, client: FlaskClient) -> None:
        _start(client)
        response = client.post(f"{BASE}/pick", headers=_manager(1), json={"item_id": 7})
        assert response.status_code == 409
        assert "banned" in response.get_json()["message"]

    @pytest.mark.parametrize("body", [{}, {"item_id": "4"}, {"item_id": 0}])
    def test_pick_bad_body(self, client: FlaskClient, body: dict[str, object]) -> None:
        _start(client)
        response = client.post(f"{BASE}/pick", headers=_manager(1), json=body)
        assert response.status_code == 400

    def test_pick_unknown_item(self, client: FlaskClient) -> None:
        _start(client)
        assert client.post(f"{BASE}/pick", headers=_manager(1), json={"item_id": 999}).status_code == 404

    def test_admin_controls(self, client: FlaskClient) -> None:
        _start(client)
        assert client.post(f"{BASE}/admin/pause", headers=COMMISSIONER).get_json()["status"] == "Paused"
        assert client.post(f"{BASE}/admin/pause", headers=COMMISSIONER).status_code == 409
        assert client.post(f"{BASE}/admin/resume", headers=COMMISSIONER).get_json()["status"] == "InProgress"

        forced = client.post(f"{BASE}/admin/force-pick", headers=COMMISSIONER, json={"item_id": 6, "team_id": 1})
        assert forced.status_code == 200
        assert forced.get_json()["team_id"] == 1

        mismatch = client.post(f"{BASE}/admin/force-pick", headers=COMMISSIONER, json={"item_id": 4, "team_id": 3})
        assert mismatch.status_code == 409

        auto = client.post(f"{BASE}/admin/advance", headers=COMMISSIONER).get_json()
        assert (auto["team_id"], auto["item_id"]) == (2, 1)

        undone = client.post(f"{BASE}/admin/undo", headers=COMMISSIONER).get_json()
        assert undone["item_id"] == 1

        ended = client.post(f"{BASE}/admin/end", headers=COMMISSIONER).get_json()
        assert ended["status"] == "Completed"
        assert ended["team_on_the_clock"] is None


class TestViewRoutes:
    def test_pool(self, client: FlaskClient) -> None:
        _start(client)
        client.post(f"{BASE}/pick", headers=_manager(1), json={"item_id": 4})
        body = client.get(f"{BASE}/pool", headers=_manager(2)).get_json()
        names = [item["name"] for item in body["items"]]
        assert names == ["Bulbasaur", "Charizard", "Charmander", "Pikachu"]
        charmander = body["items"][2]
        assert charmander["is_picked"]
        assert charmander["picked_by_team_id"] == 1
        assert body["items"][3]["base_cost"] == 6

    def test_pool_filters(self, client: FlaskClient) -> None:
        _start(client)
        client.post(f"{BASE}/pick", headers=_manager(1), json={"item_id": 4})
        body = client.get(f"{BASE}/pool?only_available=true&type=fire", headers=_manager(2)).get_json()
        assert [item["item_id"] for item in body["items"]] == [6]

    def test_pool_paging(self, client: FlaskClient) -> None:
        body = client.get(f"{BASE}/pool?page=2&limit=3", headers=_manager(2)).get_json()
        assert (body["page"], body["limit"], body["total"]) == (2, 3, 4)
        assert [item["name"] for item in body["items"]] == ["Pikachu"]

    def test_watchlist_and_my(self, client: FlaskClient) -> None:
        response = client.put(f"{BASE}/watchlist", headers=_manager(2), json={"item_ids": [25, 1, 25]})
        assert response.status_code == 200
        assert response.get_json()["item_ids"] == [25, 1]
        my = client.get(f"{BASE}/my", headers=_manager(2)).get_json()
        assert my["team_name"] == "Bombers"
        assert my["watchlist_item_ids"] == [25, 1]

    def test_watchlist_requires_list(self, client: FlaskClient) -> None:
        response = client.put(f"{BASE}/watchlist", headers=_manager(2), json={"item_ids": "25"})
        assert response.status_code == 400

    def test_my_requires_team(self, client: FlaskClient) -> None:
        assert client.get(f"{BASE}/my", headers={"X-User-Id": "555"}).status_code == 403

    def test_state(self, client: FlaskClient) -> None:
        body = client.get(f"{BASE}/state", headers=_manager(1)).get_json()
        assert body["status"] == "NotStarted"
        assert body["total_teams"] == 3

    def test_results(self, client: FlaskClient) -> None:
        _start(client)
        client.post(f"{BASE}/pick", headers=_manager(1), json={"item_id": 4})
        body = client.get(f"{BASE}/results", headers=_manager(3)).get_json()
        assert [t["team_name"] for t in body["teams"]] == ["Aces", "Bombers", "Comets"]
        assert body["teams"][0]["picks"][0]["item_id"] == 4

        team = client.get(f"{BASE}/results/1", headers=_manager(3)).get_json()
        assert team["team_id"] == 1
        assert client.get(f"{BASE}/results/9", headers=_manager(3)).status_code == 404

    def test_export(self, client: FlaskClient) -> None:
        _start(client)
        client.post(f"{BASE}/pick", headers=_manager(1), json={"item_id": 4})

        csv_response = client.get(f"{BASE}/results/export/csv", headers=_manager(1))
        assert csv_response.status_code == 200
        assert csv_response.mimetype == "text/csv"
        assert csv_response.get_data(as_text=True).splitlines()[1] == "1,1,Aces,1,1,1,1,4,Charmander"

        text_response = client.get(f"{BASE}/results/export/text", headers=_manager(1))
        assert text_response.mimetype == "text/plain"
        assert text_response.get_data(as_text=True).startswith("=== Aces ===\nCharmander")

        assert client.get(f"{BASE}/results/export/xml", headers=_manager(1)).status_code == 400
