import random

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from roulette_table.app import create_app
from roulette_table.config import Settings
from roulette_table.registry import load_registry
from roulette_table.table import Table

from .conftest import ALICE_CODE, DEALER_CODE


@pytest.fixture
def app(tmp_path, users_file):
    settings = Settings(users_file=str(users_file), static_dir=str(tmp_path / "no-client"))
    table = Table(load_registry(users_file), rng=random.Random(5), spin_guard_seconds=settings.spin_guard_seconds)
    return create_app(settings, table=table)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def receive_types(ws, count):
    return [ws.receive_json() for _ in range(count)]


def join_dealer(ws):
    ws.send_json({"type": "join", "identifier": DEALER_CODE})
    messages = receive_types(ws, 5)
    assert [m["type"] for m in messages] == ["dealerState", "dealerGranted", "dealerState", "betsState", "leaderboard"]
    return messages


def key_for(board, name):
    return next(key for key, row in board.items() if row["name"] == name)


# -------------------- verify-code -------------------- #

def test_verify_code_known(client):
    resp = client.post("/verify-code", json={"code": ALICE_CODE})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "name": "Alice"}


def test_verify_code_unknown(client):
    resp = client.post("/verify-code", json={"code": "999999"})
    assert resp.status_code == 401
    assert resp.json() == {"ok": False}


@pytest.mark.parametrize("body", [{"code": "12ab56"}, {"code": "12345"}, {"code": 120001}, {}, {"code": ""}])
def test_verify_code_bad_shape(client, body):
    resp = client.post("/verify-code", json=body)
    assert resp.status_code == 400
    assert resp.json() == {"ok": False}


def test_verify_code_does_not_join(client, app):
    client.post("/verify-code", json={"code": ALICE_CODE})
    assert app.state.table.sessions == {}


# -------------------- websocket -------------------- #

def test_dealer_join_sequence(client):
    with client.websocket_connect("/ws") as ws:
        messages = join_dealer(ws)
        assert messages[0]["data"] is True
        assert messages[3]["data"] is False
        board = messages[4]["data"]
        assert list(board.values())[1] == {"name": "Dealer", "bet": None, "connected": True, "weight": 1.0}


def test_guest_join_without_dealer(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "join", "identifier": "Pat"})
        messages = receive_types(ws, 3)
        assert [(m["type"], m["data"]) for m in messages[:2]] == [("dealerState", False), ("betsState", False)]
        board = messages[2]["data"]
        assert list(board)[:4] == [f"u:{code}" for code in (ALICE_CODE, DEALER_CODE, "120002", "120003")]
        assert list(board.values())[-1]["name"] == "Pat"


def test_malformed_frames_are_ignored(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("not json")
        ws.send_text("[1, 2]")
        ws.send_json({"type": "noSuchThing"})
        ws.send_json({"type": ["join"]})
        ws.send_json({"type": "join", "identifier": "Pat"})
        assert ws.receive_json()["type"] == "dealerState"


def test_full_round(client):
    with client.websocket_connect("/ws") as dealer:
        join_dealer(dealer)
        with client.websocket_connect("/ws") as player:
            player.send_json({"type": "join", "identifier": "Pat"})
            assert [m["type"] for m in receive_types(player, 3)] == ["dealerState", "betsState", "leaderboard"]
            board = dealer.receive_json()["data"]
            pat = key_for(board, "Pat")

            dealer.send_json({"type": "openBets"})
            assert dealer.receive_json() == {"type": "betsState", "data": True}
            assert player.receive_json() == {"type": "betsState", "data": True}

            player.send_json({"type": "select", "bet": 17})
            for ws in (dealer, player):
                msg = ws.receive_json()
                assert msg["type"] == "leaderboard"
                assert msg["data"][pat]["bet"] == 17

            # Non-dealers cannot steer the wheel.
            player.send_json({"type": "setWeight", "target": pat, "weight": 9})
            dealer.send_json({"type": "setWeight", "target": pat, "weight": 3})
            for ws in (dealer, player):
                assert ws.receive_json()["data"][pat]["weight"] == 3.0

            player.send_json({"type": "spin", "randoms": [0.5]})
            dealer.send_json({"type": "spin", "randoms": [0.5]})
            for ws in (dealer, player):
                spin = ws.receive_json()
                assert spin["type"] == "spinResult"
                assert spin["data"] == {"winningNumber": 17, "results": {pat: "WIN"}, "animate": True}
                assert ws.receive_json() == {"type": "betsState", "data": False}
                assert ws.receive_json()["type"] == "leaderboard"

            # Second spin inside the guard window is ignored; the next frame is the reopen.
            dealer.send_json({"type": "spin", "randoms": [0.5]})
            dealer.send_json({"type": "openBets"})
            assert dealer.receive_json() == {"type": "betsState", "data": True}
            assert player.receive_json() == {"type": "betsState", "data": True}

        # Player left: its guest row disappears from the dealer's board.
        board = dealer.receive_json()["data"]
        assert pat not in board


def test_late_joiner_gets_last_result(client):
    with client.websocket_connect("/ws") as dealer:
        join_dealer(dealer)
        dealer.send_json({"type": "spin", "randoms": [0.5]})
        assert [m["type"] for m in receive_types(dealer, 3)] == ["spinResult", "betsState", "leaderboard"]

        with client.websocket_connect("/ws") as late:
            late.send_json({"type": "join", "identifier": ALICE_CODE})
            messages = receive_types(late, 4)
            assert [m["type"] for m in messages] == ["dealerState", "betsState", "spinResult", "leaderboard"]
            assert messages[2]["data"] == {"winningNumber": 18, "results": {}, "animate": False}


def test_dealer_disconnect_frees_slot_and_closes_bets(client, app):
    with client.websocket_connect("/ws") as player:
        player.send_json({"type": "join", "identifier": "Pat"})
        receive_types(player, 3)
        with client.websocket_connect("/ws") as dealer:
            join_dealer(dealer)
            # dealerState broadcast + leaderboard reach the player too
            assert [m["type"] for m in receive_types(player, 2)] == ["dealerState", "leaderboard"]
            dealer.send_json({"type": "openBets"})
            dealer.receive_json()
            assert player.receive_json() == {"type": "betsState", "data": True}

        messages = receive_types(player, 3)
        assert [(m["type"], m["data"]) for m in messages[:2]] == [("dealerState", False), ("betsState", False)]
        assert messages[2]["type"] == "leaderboard"
        assert app.state.table.dealer_id is None

        # Anyone joined may now claim with the dealer code.
        player.send_json({"type": "dealerLogin", "code": DEALER_CODE})
        messages = receive_types(player, 4)
        assert [m["type"] for m in messages] == ["dealerState", "dealerGranted", "betsState", "leaderboard"]


def test_second_login_kicks_first_socket(client, app):
    with client.websocket_connect("/ws") as first:
        first.send_json({"type": "join", "identifier": ALICE_CODE})
        receive_types(first, 3)
        with client.websocket_connect("/ws") as second:
            second.send_json({"type": "join", "identifier": ALICE_CODE})
            messages = receive_types(second, 3)
            assert [m["type"] for m in messages] == ["dealerState", "betsState", "leaderboard"]
            board = messages[2]["data"]
            assert board[key_for(board, "Alice")]["connected"] is True
            assert [row["name"] for row in board.values()].count("Alice") == 1

            assert first.receive_json() == {"type": "kicked", "data": "Logged in elsewhere"}
            with pytest.raises(WebSocketDisconnect):
                first.receive_json()
            assert len(app.state.table.sessions) == 1
            assert app.state.table.user_status[ALICE_CODE].connected


def test_dealer_rejoining_as_guest_frees_the_table(client, app):
    with client.websocket_connect("/ws") as ws:
        join_dealer(ws)
        ws.send_json({"type": "openBets"})
        assert ws.receive_json() == {"type": "betsState", "data": True}

        ws.send_json({"type": "join", "identifier": "Zed"})
        messages = receive_types(ws, 5)
        assert [(m["type"], m["data"]) for m in messages[:4]] == [
            ("dealerState", False), ("betsState", False), ("dealerState", False), ("betsState", False),
        ]
        assert list(messages[4]["data"].values())[-1]["name"] == "Zed"
        assert app.state.table.dealer_id is None
