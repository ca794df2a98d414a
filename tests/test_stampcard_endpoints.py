import json
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from stampcard_api.core.settings import settings
from stampcard_api.models import User
from stampcard_api.services.stampcard import AccountService

from conftest import build_offer, build_user


async def _login(session, user: User) -> dict[str, str]:
    token = await AccountService(session).start_session(user.id)
    return {"X-Session-User": user.id, "X-Session-Token": token}


async def _seed(session_factory, *offers):
    async with session_factory() as session:
        admin = build_user("admin@example.com", role="admin", name="Ada")
        customer = build_user("customer@example.com", name="Cam")
        session.add_all([admin, customer, *offers])
        await session.flush()
        admin_headers = await _login(session, admin)
        customer_headers = await _login(session, customer)
        await session.commit()
    return admin, customer, admin_headers, customer_headers


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_requests_require_valid_session(app_with_db) -> None:
    app, session_factory = app_with_db
    _, customer, _, _ = await _seed(session_factory)

    async with _client(app) as client:
        missing = await client.get("/api/v1/offers")
        stale = await client.get(
            "/api/v1/offers",
            headers={"X-Session-User": customer.id, "X-Session-Token": "not-the-token"},
        )

    assert missing.status_code == 401
    assert stale.status_code == 401
    assert stale.json()["detail"]["code"] == "invalid_session"


@pytest.mark.asyncio
async def test_offer_admin_flow(app_with_db) -> None:
    app, session_factory = app_with_db
    _, _, admin_headers, customer_headers = await _seed(session_factory)

    async with _client(app) as client:
        forbidden = await client.post(
            "/api/v1/offers",
            headers=customer_headers,
            json={"name": "Coffee", "stampRequirement": 3, "rewardType": "free_item"},
        )
        created = await client.post(
            "/api/v1/offers",
            headers=admin_headers,
            json={
                "name": "Coffee Club",
                "stampRequirement": 3,
                "rewardType": "free_item",
                "rewardValue": "Coffee",
                "rewardDescription": "Free coffee",
            },
        )
        offer_id = created.json()["offerId"]
        patched = await client.patch(
            f"/api/v1/offers/{offer_id}",
            headers=admin_headers,
            json={"stampRequirement": 4},
        )
        activated = await client.post(
            f"/api/v1/offers/{offer_id}/status",
            headers=admin_headers,
            json={"isActive": True},
        )
        locked = await client.patch(
            f"/api/v1/offers/{offer_id}",
            headers=admin_headers,
            json={"name": "Renamed"},
        )
        active_listing = await client.get(
            "/api/v1/offers", headers=customer_headers, params={"activeOnly": "true"}
        )
        delete_active = await client.delete(f"/api/v1/offers/{offer_id}", headers=admin_headers)
        await client.post(
            f"/api/v1/offers/{offer_id}/status",
            headers=admin_headers,
            json={"isActive": False},
        )
        deleted = await client.delete(f"/api/v1/offers/{offer_id}", headers=admin_headers)
        missing = await client.get(f"/api/v1/offers/{offer_id}", headers=admin_headers)

    assert forbidden.status_code == 403
    assert forbidden.json()["detail"]["code"] == "unauthorized"
    assert created.status_code == 201
    assert created.json()["isActive"] is False
    assert patched.json()["stampRequirement"] == 4
    assert activated.json()["isActive"] is True
    assert locked.status_code == 409
    assert locked.json()["detail"]["code"] == "offer_active"
    assert [offer["offerId"] for offer in active_listing.json()] == [offer_id]
    assert delete_active.status_code == 409
    assert deleted.status_code == 204
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_scan_cooldown_and_redeem_flow(app_with_db) -> None:
    app, session_factory = app_with_db
    _, customer, admin_headers, customer_headers = await _seed(
        session_factory, build_offer("offer_coffee", stamp_requirement=1)
    )

    async with _client(app) as client:
        scanned = await client.post(
            "/api/v1/scans",
            headers=admin_headers,
            json={"userId": customer.id, "offerId": "offer_coffee"},
        )
        repeat = await client.post(
            "/api/v1/scans",
            headers=admin_headers,
            json={"userId": customer.id},
        )
        cooldown = await client.get(f"/api/v1/users/{customer.id}/cooldown", headers=customer_headers)
        rewards = await client.get(f"/api/v1/users/{customer.id}/rewards", headers=customer_headers)
        reward_id = scanned.json()["reward"]["rewardId"]
        redeemed = await client.post(
            f"/api/v1/users/{customer.id}/rewards/{reward_id}/redeem",
            headers=customer_headers,
        )
        redeemed_again = await client.post(
            f"/api/v1/users/{customer.id}/rewards/{reward_id}/redeem",
            headers=customer_headers,
        )

    assert scanned.status_code == 200
    body = scanned.json()
    assert body["completed"] is True
    assert body["progress"] == 1
    assert body["reward"]["status"] == "redeemable"
    assert body["reward"]["scanHistory"][0]["scannedBy"] == "Ada (admin@example.com)"

    assert repeat.status_code == 429
    assert repeat.json()["detail"]["code"] == "cooldown_active"
    assert int(repeat.headers["Retry-After"]) > 0

    cooldown_body = cooldown.json()
    assert cooldown_body["canScan"] is False
    assert cooldown_body["hoursRemaining"] >= 1
    assert cooldown_body["remainingLabel"].endswith("s")

    assert [reward["rewardId"] for reward in rewards.json()] == [reward_id]
    assert redeemed.status_code == 200
    assert redeemed.json()["status"] == "claimed"
    assert redeemed_again.status_code == 409
    assert redeemed_again.json()["detail"]["code"] == "reward_already_claimed"


@pytest.mark.asyncio
async def test_qr_payloads_route_to_scan_and_redeem(app_with_db) -> None:
    app, session_factory = app_with_db
    async with session_factory() as session:
        admin = build_user("admin@example.com", role="admin")
        customer = build_user("customer@example.com", user_id="uid-42")
        customer.last_scan_at = datetime.now(timezone.utc) - timedelta(days=2)
        session.add_all([admin, customer, build_offer(settings.default_offer_id, stamp_requirement=1)])
        await session.flush()
        admin_headers = await _login(session, admin)
        await session.commit()

    async with _client(app) as client:
        legacy = await client.post(
            "/api/v1/scans/qr",
            headers=admin_headers,
            json={"payload": "LOYALTY:customer@example.com:uid-42"},
        )
        reward_id = legacy.json()["scan"]["reward"]["rewardId"]
        redeem = await client.post(
            "/api/v1/scans/qr",
            headers=admin_headers,
            json={
                "payload": json.dumps(
                    {"userId": "uid-42", "action": "redeem_reward", "rewardId": reward_id}
                )
            },
        )
        garbage = await client.post(
            "/api/v1/scans/qr",
            headers=admin_headers,
            json={"payload": "hello"},
        )

    assert legacy.status_code == 200
    assert legacy.json()["action"] == "scan"
    assert legacy.json()["scan"]["offerId"] == settings.default_offer_id
    assert redeem.status_code == 200
    assert redeem.json()["action"] == "redeem_reward"
    assert redeem.json()["redeemed"]["claimedAt"] is not None
    assert garbage.status_code == 422
    assert garbage.json()["detail"]["code"] == "invalid_scan_payload"


@pytest.mark.asyncio
async def test_session_endpoints(app_with_db) -> None:
    app, session_factory = app_with_db

    async with _client(app) as client:
        registered = await client.post(
            "/api/v1/users", json={"email": "fresh@example.com", "name": "Fresh", "userId": "uid-fresh"}
        )
        duplicate = await client.post("/api/v1/users", json={"email": "fresh@example.com"})
        started = await client.post("/api/v1/sessions", json={"userId": "uid-fresh"})
        headers = {"X-Session-User": "uid-fresh", "X-Session-Token": started.json()["token"]}
        me = await client.get("/api/v1/users/me", headers=headers)
        ended = await client.delete("/api/v1/sessions", headers=headers)
        after = await client.get("/api/v1/users/me", headers=headers)

    assert registered.status_code == 201
    assert registered.json()["currentOfferProgress"] == 0
    assert duplicate.status_code == 409
    assert started.status_code == 201
    assert me.json()["email"] == "fresh@example.com"
    assert ended.status_code == 204
    assert after.status_code == 401


@pytest.mark.asyncio
async def test_admin_analytics_and_reset(app_with_db) -> None:
    app, session_factory = app_with_db
    async with session_factory() as session:
        owner = build_user("owner@example.com", role="super_admin")
        admin = build_user("admin@example.com", role="admin")
        session.add_all([owner, admin, build_user("customer@example.com")])
        await session.flush()
        owner_headers = await _login(session, owner)
        admin_headers = await _login(session, admin)
        await session.commit()

    async with _client(app) as client:
        analytics = await client.get("/api/v1/admin/analytics", headers=admin_headers)
        reset_denied = await client.post("/api/v1/admin/reset", headers=admin_headers)
        reset = await client.post("/api/v1/admin/reset", headers=owner_headers)
        users = await client.get("/api/v1/users", headers=owner_headers)

    assert analytics.status_code == 200
    assert analytics.json()["customers"] == 1
    assert analytics.json()["totalUsers"] == 3
    assert reset_denied.status_code == 403
    assert reset.json() == {"removedUsers": 2}
    assert [user["email"] for user in users.json()] == ["owner@example.com"]
