"""
API Test Suite

Tests:
1. Edit request endpoints (create, list, fetch, status, replies, summary)
2. Error mapping (400 / 404 / 409 / 422)
3. Frame sessions (handshake, inbound messages, scoped listing, teardown)
4. Health

Run: cd backend && pytest tests/test_api.py
"""

import sys
import os
# Add backend directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest
from fastapi.testclient import TestClient
from app.main import app
from app.services.db_client import SQLiteEditRequestStore
from app.services.edit_requests import EditRequestLifecycle, get_edit_request_lifecycle
from app.services.frame_sessions import FrameSessionRegistry, get_frame_registry
from app.services.host_relay import HostRelay


DESIGNER_PAGE = (
    '<html><body>'
    '<div id="lef-designer-root" data-project-id="proj_123" data-user-role="designer"></div>'
    '</body></html>'
)


@pytest.fixture
def services():
    lifecycle = EditRequestLifecycle(SQLiteEditRequestStore(":memory:"))
    registry = FrameSessionRegistry(namespace="lef")
    app.dependency_overrides[get_edit_request_lifecycle] = lambda: lifecycle
    app.dependency_overrides[get_frame_registry] = lambda: registry
    yield lifecycle, registry
    app.dependency_overrides.clear()
    registry.close_all()


@pytest.fixture
def client(services):
    return TestClient(app)


def create(client, project_id="proj_123", message="Fix headline", page_url="/home", **extra):
    response = client.post("/v1/edit-requests", json={
        "page_url": page_url,
        "message": message,
        "project_id": project_id,
        **extra
    })
    assert response.status_code == 201, response.text
    return response.json()


def test_edit_request_flow(client):
    """create -> in-progress -> designer reply over HTTP"""
    print("\n=== Test: Edit request flow ===")

    created = create(client, submitted_by="client@x.com")
    assert created["status"] == "open"
    assert created["replies"] == []
    print(f"✓ Created {created['id']}")

    response = client.patch(f"/v1/edit-requests/{created['id']}/status", json={"status": "in-progress"})
    assert response.status_code == 200
    assert response.json()["status"] == "in-progress"

    response = client.post(
        f"/v1/edit-requests/{created['id']}/replies",
        json={"message": "Working on it", "from": "designer"}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "in-progress"
    assert len(data["replies"]) == 1
    assert data["replies"][0]["from"] == "designer"
    assert data["replies"][0]["message"] == "Working on it"
    print("✓ Status and reply applied")

    response = client.get(f"/v1/edit-requests/{created['id']}")
    assert response.status_code == 200
    assert response.json()["replies"][0]["id"] == data["replies"][0]["id"]


def test_list_and_summary(client):
    create(client, project_id="proj_a", message="Hero copy", section_id="hero")
    create(client, project_id="proj_a", message="Footer", page_url="/contact")
    create(client, project_id="proj_b", message="Other tenant")

    response = client.get("/v1/edit-requests", params={"project_id": "proj_a", "status": "all", "page_url": "all"})
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert {r["project_id"] for r in data["requests"]} == {"proj_a"}

    response = client.get("/v1/edit-requests", params={"project_id": "proj_a", "search": "HERO"})
    assert [r["message"] for r in response.json()["requests"]] == ["Hero copy"]

    response = client.get("/v1/edit-requests/summary", params={"project_id": "proj_a"})
    assert response.status_code == 200
    summary = response.json()
    assert summary["total"] == 2
    assert summary["pending"] == 2
    assert summary["page_urls"] == ["/contact", "/home"]
    print("✓ Listing scoped, summary computed")


def test_error_mapping(client):
    print("\n=== Test: Error mapping ===")

    response = client.post("/v1/edit-requests", json={"page_url": "/home", "message": "  ", "project_id": "p1"})
    assert response.status_code == 400

    response = client.post("/v1/edit-requests", json={"page_url": "/home", "message": "Fix", "project_id": ""})
    assert response.status_code == 400

    response = client.post("/v1/edit-requests", json={"message": "Fix", "project_id": "p1"})
    assert response.status_code == 422

    response = client.get("/v1/edit-requests/missing")
    assert response.status_code == 404

    response = client.patch("/v1/edit-requests/missing/status", json={"status": "resolved"})
    assert response.status_code == 404

    created = create(client)
    response = client.patch(f"/v1/edit-requests/{created['id']}/status", json={"status": "closed"})
    assert response.status_code == 422

    response = client.post(f"/v1/edit-requests/{created['id']}/replies", json={"message": "", "from": "client"})
    assert response.status_code == 400

    response = client.get("/v1/edit-requests", params={"status": "closed"})
    assert response.status_code == 400
    print("✓ 400 / 404 / 422 as expected")


def test_frame_handshake_and_scoped_listing(client):
    """Resolved frame lists only its project; config update swaps the scope"""
    print("\n=== Test: Frame session ===")

    create(client, project_id="proj_123", message="Mine")
    create(client, project_id="proj_456", message="Theirs")

    response = client.post("/v1/frames", json={"html": DESIGNER_PAGE, "nested": True})
    assert response.status_code == 201
    frame = response.json()
    assert frame["configured"] is True
    assert frame["context"] == {"projectId": "proj_123", "role": "designer"}
    assert frame["generation"] == 1
    for window in ("frame", "portal", "host"):
        ready = [m for m in frame["observed"][window] if m["type"] == "lef-widget-ready"]
        assert len(ready) == 1
    print("✓ Handshake resolved, one ready per window")

    session_id = frame["session_id"]
    response = client.get(f"/v1/frames/{session_id}/edit-requests")
    assert [r["message"] for r in response.json()["requests"]] == ["Mine"]

    response = client.post(f"/v1/frames/{session_id}/messages", json={
        "type": "lef-config-update",
        "projectId": "proj_456",
        "data": {"role": "client"}
    })
    assert response.status_code == 200
    assert response.json()["context_changed"] is True
    assert response.json()["generation"] == 2
    assert response.json()["context"] == {"projectId": "proj_456", "role": "client"}

    response = client.get(f"/v1/frames/{session_id}/edit-requests")
    assert [r["message"] for r in response.json()["requests"]] == ["Theirs"]
    print("✓ Config update re-scopes listing")

    response = client.post(f"/v1/frames/{session_id}/messages", json={"type": "lef-role-selected", "role": "designer"})
    assert response.json()["context_changed"] is False
    assert client.get(f"/v1/frames/{session_id}").json()["selected_role"] == "designer"

    response = client.post(f"/v1/frames/{session_id}/messages", json="not a message")
    assert response.status_code == 200
    assert response.json()["context_changed"] is False

    assert client.delete(f"/v1/frames/{session_id}").status_code == 200
    assert client.get(f"/v1/frames/{session_id}").status_code == 404
    assert client.delete(f"/v1/frames/{session_id}").status_code == 404
    print("✓ Teardown removes the session")


def test_unconfigured_frame_recovers_on_config_update(client, services):
    _, registry = services
    create(client, project_id="proj_late", message="Late")

    response = client.post("/v1/frames", json={"html": "<div id='app'></div>"})
    assert response.status_code == 201
    frame = response.json()
    assert frame["configured"] is False
    assert frame["reason"] == "missing_project_id"
    assert frame["context"] is None

    session_id = frame["session_id"]
    response = client.get(f"/v1/frames/{session_id}/edit-requests")
    assert response.status_code == 409

    client.post(f"/v1/frames/{session_id}/messages", json={"type": "lef-config-update", "projectId": "proj_late"})
    response = client.get(f"/v1/frames/{session_id}/edit-requests")
    assert response.status_code == 200
    assert response.json()["total"] == 1
    assert client.get(f"/v1/frames/{session_id}").json()["reason"] is None

    # Session teardown removes the resolver listener from the frame window
    session = registry.get(session_id)
    registry.close(session_id)
    assert session.frame.listener_count == 0


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["services"]["store"] == "ok"
    assert data["frame_sessions"] == 0


def test_host_relay_disabled_without_webhook():
    relay = HostRelay("")
    assert not relay.enabled
    assert relay.publish("session", {"type": "lef-widget-ready"}) is False


def test_blank_config_update_keeps_tenant_scope(client):
    """A whitespace projectId cannot widen a frame's listing to other projects"""
    print("\n=== Test: Blank config update over HTTP ===")

    create(client, project_id="proj_123", message="Mine")
    create(client, project_id="proj_456", message="Other tenant")

    session_id = client.post("/v1/frames", json={"html": DESIGNER_PAGE}).json()["session_id"]

    response = client.post(f"/v1/frames/{session_id}/messages", json={
        "type": "lef-config-update",
        "projectId": "   "
    })
    assert response.status_code == 200
    assert response.json()["context_changed"] is False
    assert response.json()["context"]["projectId"] == "proj_123"

    listed = client.get(f"/v1/frames/{session_id}/edit-requests").json()["requests"]
    assert [(r["message"], r["project_id"]) for r in listed] == [("Mine", "proj_123")]
    print("✓ Listing still scoped to proj_123")

    response = client.get("/v1/edit-requests", params={"project_id": "   "})
    assert response.status_code == 400
    print("✓ Blank project_id query rejected")
