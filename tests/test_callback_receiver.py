import pytest
from fastapi.testclient import TestClient

import callback_receiver

PAYLOAD = {
    "email": "student@example.com",
    "task": "demo",
    "round": 1,
    "nonce": "n-1",
    "repo_url": "https://github.com/octo/demo",
    "commit_sha": "abc",
    "pages_url": "https://octo.github.io/demo/",
}


@pytest.fixture
def client():
    callback_receiver.callbacks_received.clear()
    yield TestClient(callback_receiver.app)
    callback_receiver.callbacks_received.clear()


def test_records_callbacks(client):
    assert client.get("/callbacks/latest").status_code == 404

    resp = client.post("/evaluation-callback", json=PAYLOAD)
    assert resp.status_code == 200
    assert resp.json()["data_received"] == PAYLOAD

    assert client.get("/callbacks").json()["total_callbacks"] == 1
    assert client.get("/callbacks/latest").json()["body"] == PAYLOAD
    assert client.get("/health").json()["callbacks_count"] == 1
    assert "Callbacks received: <strong>1</strong>" in client.get("/").text


def test_clear(client):
    client.post("/evaluation-callback", json=PAYLOAD)
    client.post("/evaluation-callback", json=PAYLOAD)
    assert client.get("/clear").json() == {"message": "Cleared 2 callbacks", "remaining": 0}


def test_rejects_non_json(client):
    resp = client.post("/evaluation-callback", content=b"nope", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert client.get("/callbacks").json()["total_callbacks"] == 0
