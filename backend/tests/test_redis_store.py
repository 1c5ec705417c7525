"""
Redis Store Test Suite

Runs the edit-request lifecycle on RedisEditRequestStore backed by fakeredis.

Tests:
1. Tenant-scoped listing through the project index
2. Status changes and not-found errors
3. Reply threads: order, alias round trip, concurrency

Run: cd backend && pytest tests/test_redis_store.py
"""

import sys
import os
# Add backend directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import fakeredis
import pytest
from concurrent.futures import ThreadPoolExecutor
from app.core.errors import NotFoundError, ValidationError
from app.services.edit_requests import EditRequestLifecycle
from app.services.redis_client import RedisClient
from app.services.redis_store import RedisEditRequestStore


@pytest.fixture
def lifecycle():
    client = RedisClient("redis://localhost:6379/0", client=fakeredis.FakeRedis(decode_responses=True))
    return EditRequestLifecycle(RedisEditRequestStore(client))


def test_list_requests_is_tenant_scoped(lifecycle):
    """Project index never leaks another project's requests"""
    print("\n=== Test: Redis tenant isolation ===")

    for i in range(3):
        lifecycle.create_request("/home", None, f"A{i}", "proj_a")
        lifecycle.create_request("/about", "hero", f"B{i}", "proj_b")

    scoped = lifecycle.list_requests(project_id="proj_a", page_url="all", status="all", search_text="")
    assert len(scoped) == 3
    assert all(r.project_id == "proj_a" for r in scoped)

    assert lifecycle.list_requests(project_id="proj_a", search_text="B") == []
    assert len(lifecycle.list_requests(project_id="proj_b", search_text="HERO")) == 3
    assert lifecycle.list_requests(project_id="proj_b", page_url="/home") == []
    assert len(lifecycle.list_requests()) == 6
    print("✓ Only proj_a requests returned")


def test_create_and_fetch_round_trip(lifecycle):
    request = lifecycle.create_request("/home", None, "Fix headline", "proj_123", "client@x.com")

    loaded = lifecycle.get_request(request.id)
    assert loaded == request
    assert loaded.section_id is None
    assert loaded.status == "open"
    assert loaded.replies == []


def test_set_status_changes_only_status(lifecycle):
    request = lifecycle.create_request("/home", "hero", "Fix headline", "p1")
    request = lifecycle.add_reply(request.id, "On it", "designer")

    updated = lifecycle.set_status(request.id, "in-progress")

    assert updated.status == "in-progress"
    assert updated.message == request.message
    assert updated.replies == request.replies
    assert updated.created_at == request.created_at
    assert [r.id for r in lifecycle.list_requests(project_id="p1", status="in-progress")] == [request.id]
    assert lifecycle.list_requests(project_id="p1", status="open") == []


def test_set_status_errors(lifecycle):
    request = lifecycle.create_request("/home", None, "Fix", "p1")

    with pytest.raises(NotFoundError):
        lifecycle.set_status("does-not-exist", "resolved")
    with pytest.raises(ValidationError):
        lifecycle.set_status(request.id, "done")
    with pytest.raises(NotFoundError):
        lifecycle.get_request("does-not-exist")
    with pytest.raises(NotFoundError):
        lifecycle.add_reply("does-not-exist", "Hi", "designer")
    print("✓ Missing ids raise NotFoundError")


def test_add_reply_preserves_order(lifecycle):
    """Replies come back in call order with their author intact"""
    print("\n=== Test: Redis sequential replies ===")

    request = lifecycle.create_request("/home", None, "Fix headline", "p1")
    lifecycle.set_status(request.id, "resolved")

    lifecycle.add_reply(request.id, "First", "designer")
    result = lifecycle.add_reply(request.id, "Second", "client")

    assert [r.message for r in result.replies] == ["First", "Second"]
    assert [r.sender for r in result.replies] == ["designer", "client"]
    assert result.status == "resolved"
    assert result.updated_at == result.replies[-1].timestamp
    assert lifecycle.get_request(request.id).replies == result.replies
    print("✓ Two replies in order, status unchanged")


def test_concurrent_replies_are_not_lost(lifecycle):
    """RPUSH keeps every concurrently submitted reply"""
    print("\n=== Test: Redis concurrent replies ===")

    request = lifecycle.create_request("/home", None, "Fix headline", "p1")

    messages = [f"Reply {i}" for i in range(20)]
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(
            lambda i: lifecycle.add_reply(request.id, messages[i], "designer" if i % 2 else "client"),
            range(len(messages))
        ))

    replies = lifecycle.get_request(request.id).replies
    assert len(replies) == len(messages)
    assert sorted(r.message for r in replies) == sorted(messages)
    assert len({r.id for r in replies}) == len(messages)
    print(f"✓ {len(replies)} replies stored")
