"""Rooms: participants feeding rolls and bank requests into the scorer's game."""

from models import RoomEvent


def start_scorer_game(client) -> None:
    for name in ("Ann", "Ben"):
        client.post("/api/games/scorer/players", json={"name": name})
    client.post("/api/games/scorer/start")


def open_room(client) -> str:
    response = client.post("/api/rooms")
    assert response.status_code == 200
    return response.json()["code"]


def join(client, code: str, name: str) -> str:
    response = client.post(f"/api/rooms/{code}/join", json={"name": name})
    assert response.status_code == 200
    return response.json()["participant_id"]


def test_open_room_is_idempotent(client) -> None:
    code = open_room(client)
    assert len(code) == 4
    assert open_room(client) == code


def test_join_unknown_room(client) -> None:
    response = client.post("/api/rooms/ZZZZ/join", json={"name": "Ann"})
    assert response.status_code == 404


def test_room_state_follows_the_game(client) -> None:
    start_scorer_game(client)
    code = open_room(client)
    first = client.get(f"/api/rooms/{code}/state").json()
    assert first["state"]["game_started"] is True
    assert first["state"]["players"] == [{"name": "Ann", "score": 0}, {"name": "Ben", "score": 0}]

    client.post("/api/games/scorer/roll", json={"value": 6})

    second = client.get(f"/api/rooms/{code.lower()}/state").json()
    assert second["state_version"] > first["state_version"]
    assert second["state"]["bank_total"] == 6
    assert set(second["state"]) == {
        "players", "total_rounds", "current_round", "roll_count", "bank_total",
        "current_player_index", "players_who_can_roll", "players_who_banked", "game_started",
    }


def test_participant_roll_and_bank(client, db_session) -> None:
    start_scorer_game(client)
    code = open_room(client)
    ann = join(client, code, "Ann")

    response = client.post(f"/api/rooms/{code}/rolls", json={"participant_id": ann, "value": 8})
    assert response.status_code == 200
    assert response.json()["applied"] == 1

    response = client.post(f"/api/rooms/{code}/bank-requests", json={"participant_id": ann})
    assert response.json()["applied"] == 1

    game = client.get("/api/games/scorer").json()
    assert game["players"][0]["score"] == 8
    assert game["players_who_banked"] == [0]

    state = client.get(f"/api/rooms/{code}/state").json()
    assert state["state"]["players"][0]["score"] == 8
    assert state["connected_players"] == 1
    assert db_session.query(RoomEvent).count() == 0


def test_rejected_events_are_dropped(client, db_session) -> None:
    code = open_room(client)
    zed = join(client, code, "Zed")

    response = client.post(f"/api/rooms/{code}/rolls", json={"participant_id": zed, "value": 8})
    assert response.json()["applied"] == 0

    response = client.post(f"/api/rooms/{code}/bank-requests", json={"participant_id": zed})
    assert response.json()["applied"] == 0
    assert db_session.query(RoomEvent).count() == 0
    assert client.post(f"/api/rooms/{code}/dispatch").json() == {"applied": 0}


def test_roll_needs_value_or_doubles(client) -> None:
    start_scorer_game(client)
    code = open_room(client)
    ann = join(client, code, "Ann")
    response = client.post(f"/api/rooms/{code}/rolls", json={"participant_id": ann})
    assert response.status_code == 400


def test_unknown_participant(client) -> None:
    code = open_room(client)
    response = client.post(f"/api/rooms/{code}/rolls", json={"participant_id": "nobody", "value": 5})
    assert response.status_code == 404


def test_leave_and_close(client) -> None:
    code = open_room(client)
    ann = join(client, code, "Ann")

    response = client.post(f"/api/rooms/{code}/leave", json={"participant_id": ann})
    assert response.status_code == 200
    assert client.get(f"/api/rooms/{code}/state").json()["connected_players"] == 0

    assert client.delete(f"/api/rooms/{code}").status_code == 200
    assert client.get(f"/api/rooms/{code}/state").status_code == 404
    assert open_room(client) != ""


def test_early_doubles_from_participant_are_dropped(client) -> None:
    start_scorer_game(client)
    code = open_room(client)
    ann = join(client, code, "Ann")

    response = client.post(f"/api/rooms/{code}/rolls", json={"participant_id": ann, "is_doubles": True})
    assert response.json()["applied"] == 0

    game = client.get("/api/games/scorer").json()
    assert game["roll_count"] == 0
    assert game["current_player"] == 0
