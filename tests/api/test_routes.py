import pytest
from fastapi.testclient import TestClient

from visited_links.api import create_app
from visited_links.config import HighlightConfig


@pytest.fixture
def service_and_store(make_service):
    return make_service(["https://x.com/a", "https://y.com/"], config=HighlightConfig(ignore_params=["utm_source"]))


@pytest.fixture
def client(service_and_store):
    service, _ = service_and_store
    with TestClient(create_app(service=service)) as client:
        yield client


def test_check_visited_over_http(client):
    response = client.post(
        "/messages",
        params={"tab_id": "t1"},
        json={"action": "check-visited", "urls": ["https://x.com/a?utm_source=mail", "https://x.com/b"]},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["visitedUrls"] == ["https://x.com/a?utm_source=mail"]
    assert body["config"]["ignoreParams"] == ["utm_source"]
    assert body["config"]["highlightTextColor"] == "#C58AF9"
    assert body["error"] is None


def test_repeated_check_is_served_from_cache(client, service_and_store):
    _, store = service_and_store
    payload = {"action": "check-visited", "urls": ["https://x.com/a"]}

    client.post("/messages", params={"tab_id": "t1"}, json=payload)
    client.post("/messages", params={"tab_id": "t1"}, json=payload)
    client.post("/messages", params={"tab_id": "t1"}, json={"action": "refresh-tab"})
    client.post("/messages", params={"tab_id": "t1"}, json=payload)

    assert store.queries == ["x.com", "x.com"]


def test_page_messages_are_rejected(client):
    response = client.post("/messages", json={"action": "get-stats"})

    assert response.status_code == 400


def test_unknown_action_fails_validation(client):
    response = client.post("/messages", json={"action": "wipe-history"})

    assert response.status_code == 422


def test_config_round_trip_clears_cache(client, service_and_store):
    service, _ = service_and_store
    client.post("/messages", params={"tab_id": "t1"}, json={"action": "check-visited", "urls": ["https://x.com/a"]})
    assert "t1" in service.cache

    response = client.put("/config", json={"enabled": False, "ignoreParams": ["ref"], "highlightTextColor": "0f0"})

    assert response.status_code == 200
    assert response.json() == {"enabled": False, "ignoreParams": ["ref"], "highlightTextColor": "#00FF00"}
    assert client.get("/config").json()["enabled"] is False
    assert len(service.cache) == 0


def test_invalid_config_is_rejected(client):
    response = client.put("/config", json={"highlightTextColor": "purple"})

    assert response.status_code == 422


def test_get_config_message(client):
    response = client.post("/messages", json={"action": "get-config"})

    assert response.json()["ignoreParams"] == ["utm_source"]


def test_tab_lifecycle(client, service_and_store):
    service, _ = service_and_store

    registered = client.post("/tabs/t1", json={"url": "https://x.com/"})
    assert registered.status_code == 200
    assert registered.json() == {"tab_id": "t1", "url": "https://x.com/", "reachable": False, "cached": False}

    client.post("/messages", params={"tab_id": "t1"}, json={"action": "check-visited", "urls": ["https://x.com/a"]})
    activated = client.post("/tabs/t1/activate")
    assert activated.json()["cached"] is False

    navigated = client.post("/tabs/t1/navigate", json={"url": "https://x.com/next"})
    assert navigated.json()["url"] == "https://x.com/next"

    assert client.delete("/tabs/t1").json() == {"success": True}
    assert "t1" not in service.tabs


def test_unknown_tabs_return_404(client):
    assert client.post("/tabs/nope/activate").status_code == 404
    assert client.delete("/tabs/nope").status_code == 404


def test_callback_url_must_be_http(client):
    response = client.post("/tabs/t1", json={"url": "https://x.com/", "callback_url": "ftp://page"})

    assert response.status_code == 422


def test_registration_with_callback_is_reachable(client):
    response = client.post("/tabs/t1", json={"url": "https://x.com/", "callback_url": "http://127.0.0.1:9/page"})

    assert response.json()["reachable"] is True


def test_health(client):
    body = client.get("/health").json()

    assert body["status"] == "ok"
    assert body["history"] == "RecordingHistoryStore"


def test_uninitialized_service_answers_503():
    client = TestClient(create_app(service=None))

    assert client.get("/config").status_code == 503
    assert client.get("/health").json()["status"] == "degraded"
