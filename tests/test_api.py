from types import SimpleNamespace

import pytest
from httpx import AsyncClient
from kombu.exceptions import OperationalError as BrokerError

from betre.core.roles import Role
from betre.services import notification_service


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient) -> None:
    response = await async_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_register_login_and_me(async_client: AsyncClient) -> None:
    reg = await async_client.post(
        "/api/v1/auth/register",
        json={
            "username": "newbie",
            "email": "Newbie@Example.com",
            "password": "password123",
            "phone_number": "+351912345678",
        },
    )
    assert reg.status_code == 201
    data = reg.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["email"] == "newbie@example.com"
    assert data["user"]["role"] == "user"

    dup = await async_client.post(
        "/api/v1/auth/register",
        json={"username": "newbie", "email": "other@example.com", "password": "password123"},
    )
    assert dup.status_code == 409

    login = await async_client.post(
        "/api/v1/auth/login", json={"email": "newbie@example.com", "password": "password123"}
    )
    assert login.status_code == 200
    token = login.json()["access_token"]

    me = await async_client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["username"] == "newbie"

    bad = await async_client.post(
        "/api/v1/auth/login/username", json={"username": "newbie", "password": "wrong-password"}
    )
    assert bad.status_code == 401


@pytest.mark.asyncio
async def test_register_rejects_bad_phone(async_client: AsyncClient) -> None:
    response = await async_client.post(
        "/api/v1/auth/register",
        json={"username": "x", "email": "x@example.com", "password": "password123", "phone_number": "call me"},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_refresh_token(async_client: AsyncClient) -> None:
    reg = await async_client.post(
        "/api/v1/auth/register",
        json={"username": "fresh", "email": "fresh@example.com", "password": "password123"},
    )
    tokens = reg.json()
    refreshed = await async_client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refreshed.status_code == 200
    wrong_kind = await async_client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert wrong_kind.status_code == 401


@pytest.mark.asyncio
async def test_follow_post_like_flow(async_client: AsyncClient, make_user, auth_headers) -> None:
    alice = await make_user("alice")
    bob = await make_user("bob")

    r = await async_client.post(f"/api/v1/users/{alice.id}/follow", headers=auth_headers(bob))
    assert r.status_code == 200
    assert r.json() == {"follows": True, "created": True, "followers_count": 1}

    r = await async_client.post(f"/api/v1/users/{bob.id}/follow", headers=auth_headers(bob))
    assert r.status_code == 400

    r = await async_client.post("/api/v1/posts", json={"content": "hello"}, headers=auth_headers(alice))
    assert r.status_code == 201
    post_id = r.json()["id"]
    assert r.json()["user"]["username"] == "alice"

    feed = await async_client.get("/api/v1/posts", headers=auth_headers(bob))
    assert [p["id"] for p in feed.json()] == [post_id]

    r = await async_client.post(f"/api/v1/posts/{post_id}/toggle-like", headers=auth_headers(bob))
    assert r.json() == {"post_id": post_id, "liked": True, "likes_count": 1}
    liked_by = await async_client.get(f"/api/v1/posts/{post_id}/liked-by", headers=auth_headers(alice))
    assert [u["username"] for u in liked_by.json()] == ["bob"]

    r = await async_client.post(f"/api/v1/posts/{post_id}/toggle-like", headers=auth_headers(bob))
    assert r.json() == {"post_id": post_id, "liked": False, "likes_count": 0}

    r = await async_client.post(
        f"/api/v1/posts/{post_id}/comments", json={"content": "nice"}, headers=auth_headers(bob)
    )
    assert r.status_code == 201
    comments = await async_client.get(f"/api/v1/posts/{post_id}/comments")
    assert [c["content"] for c in comments.json()] == ["nice"]

    unread = await async_client.get("/api/v1/notifications/unread-count", headers=auth_headers(alice))
    # follow + like + comment
    assert unread.json() == {"count": 3}

    r = await async_client.delete(f"/api/v1/posts/{post_id}", headers=auth_headers(bob))
    assert r.status_code == 403
    r = await async_client.delete(f"/api/v1/posts/{post_id}", headers=auth_headers(alice))
    assert r.status_code == 204
    r = await async_client.get(f"/api/v1/posts/{post_id}")
    assert r.status_code == 404

    r = await async_client.delete(f"/api/v1/users/{alice.id}/follow", headers=auth_headers(bob))
    assert r.json() == {"follows": False, "removed": True, "followers_count": 0}


@pytest.mark.asyncio
async def test_moderation_endpoints_require_staff(async_client: AsyncClient, make_user, auth_headers) -> None:
    user = await make_user("user")
    other = await make_user("other")

    r = await async_client.get("/api/v1/moderation/reports", headers=auth_headers(user))
    assert r.status_code == 403
    r = await async_client.post(
        f"/api/v1/moderation/users/{other.id}/warnings", json={"reason": "x"}, headers=auth_headers(user)
    )
    assert r.status_code == 403
    r = await async_client.get("/api/v1/admin/stats", headers=auth_headers(user))
    assert r.status_code == 403
    r = await async_client.get("/api/v1/moderation/reports")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_report_warning_and_suspension_flow(async_client: AsyncClient, make_user, auth_headers) -> None:
    author = await make_user("author")
    reporter = await make_user("reporter")
    moderator = await make_user("mod", Role.MODERATOR)
    admin = await make_user("admin", Role.ADMIN)

    post = await async_client.post("/api/v1/posts", json={"content": "spam spam"}, headers=auth_headers(author))
    post_id = post.json()["id"]

    r = await async_client.post(
        "/api/v1/moderation/reports",
        json={"target_kind": "post", "target_id": post_id, "reason": "spam"},
        headers=auth_headers(reporter),
    )
    assert r.status_code == 201
    report_id = r.json()["id"]

    pending = await async_client.get("/api/v1/moderation/reports", headers=auth_headers(moderator))
    assert [p["id"] for p in pending.json()] == [report_id]

    r = await async_client.post(
        f"/api/v1/moderation/users/{author.id}/warnings",
        json={"reason": "spam", "report_id": report_id, "remove_content": True},
        headers=auth_headers(moderator),
    )
    assert r.status_code == 201
    assert (await async_client.get(f"/api/v1/posts/{post_id}")).status_code == 404

    warnings = await async_client.get("/api/v1/users/me/warnings", headers=auth_headers(author))
    assert [w["reason"] for w in warnings.json()] == ["spam"]

    r = await async_client.post(f"/api/v1/moderation/users/{author.id}/suspend", headers=auth_headers(moderator))
    assert r.json()["role"] == "suspended"
    r = await async_client.get("/api/v1/users/me", headers=auth_headers(author))
    assert r.status_code == 403

    suspended = await async_client.get("/api/v1/moderation/suspended-users", headers=auth_headers(moderator))
    assert [u["username"] for u in suspended.json()] == ["author"]

    r = await async_client.post(f"/api/v1/moderation/users/{author.id}/unsuspend", headers=auth_headers(moderator))
    assert r.json()["role"] == "user"

    r = await async_client.put(
        f"/api/v1/admin/users/{author.id}/role", json={"role": "moderator"}, headers=auth_headers(admin)
    )
    assert r.json()["role"] == "moderator"

    r = await async_client.delete(f"/api/v1/admin/users/{author.id}", headers=auth_headers(admin))
    assert r.status_code == 204
    assert (await async_client.get(f"/api/v1/users/{author.id}")).status_code == 404

    stats = await async_client.get("/api/v1/admin/stats", headers=auth_headers(admin))
    assert stats.json()["users"] == 3


@pytest.mark.asyncio
async def test_like_succeeds_while_push_broker_is_down(
    async_client: AsyncClient, make_user, auth_headers, monkeypatch
) -> None:
    def refuse(*args):
        raise BrokerError("Connection refused")

    monkeypatch.setattr(notification_service, "send_push_notification", SimpleNamespace(delay=refuse))
    alice = await make_user("alice")
    bob = await make_user("bob")
    post = await async_client.post("/api/v1/posts", json={"content": "hi"}, headers=auth_headers(alice))
    post_id = post.json()["id"]

    r = await async_client.post(f"/api/v1/posts/{post_id}/toggle-like", headers=auth_headers(bob))
    assert r.status_code == 200
    assert r.json() == {"post_id": post_id, "liked": True, "likes_count": 1}
    unread = await async_client.get("/api/v1/notifications/unread-count", headers=auth_headers(alice))
    assert unread.json() == {"count": 1}


@pytest.mark.asyncio
async def test_admin_edits_user_profile(async_client: AsyncClient, make_user, auth_headers) -> None:
    admin = await make_user("admin", Role.ADMIN)
    user = await make_user("user")
    await make_user("other")

    r = await async_client.patch(
        f"/api/v1/admin/users/{user.id}",
        json={"username": "renamed", "profile_image_url": "https://cdn.example.com/p.png"},
        headers=auth_headers(admin),
    )
    assert r.status_code == 200
    assert r.json()["username"] == "renamed"
    assert r.json()["profile_image_url"] == "https://cdn.example.com/p.png"

    r = await async_client.patch(
        f"/api/v1/admin/users/{user.id}", json={"username": "other"}, headers=auth_headers(admin)
    )
    assert r.status_code == 409
    r = await async_client.patch(
        f"/api/v1/admin/users/{user.id}", json={"username": "mine"}, headers=auth_headers(user)
    )
    assert r.status_code == 403
