import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

import main
from conftest import FakeQuoteProvider
from services.container import ServiceContainer


@pytest.fixture
def client(networks, chain, monkeypatch):
    container = ServiceContainer(
        networks=networks,
        chain=chain,
        source_a=FakeQuoteProvider("1inch"),
        source_b=FakeQuoteProvider("0x Protocol"),
    )
    monkeypatch.setattr(main.app.state, "services", container, raising=False)
    # No context manager: the lifespan (and its background loops) is not started.
    return TestClient(main.app)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["services"]["wallet_configured"] is True


def test_settings_validation_error_body(client):
    response = client.post("/api/settings/user-1", json={"autoExecute": "nope"})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid settings data"
    assert isinstance(body["details"], list)


def test_settings_invalid_json_is_400(client):
    response = client.post(
        "/api/settings/user-1",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 400


def test_execute_unknown_opportunity_is_200_with_error_code(client):
    response = client.post("/api/execute-arbitrage/missing")

    assert response.status_code == 200
    assert response.json()["errorCode"] == "not_found"


def test_websocket_initial_snapshot_and_ping(client):
    with client.websocket_connect("/ws") as ws:
        initial = ws.receive_json()
        assert initial["type"] == "initial"
        assert set(initial["data"]) == {
            "opportunities",
            "recentTrades",
            "stats",
            "networks",
            "walletAddress",
        }

        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}
