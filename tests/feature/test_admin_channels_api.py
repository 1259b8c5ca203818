import pytest

from chandir.core.rate_limiting import RateLimitPolicy
from tests.factories import create_fake_channel, seed_channels

ADMIN_HEADERS = {"X-Admin-Secret": "test-admin-secret"}


@pytest.mark.asyncio
@pytest.mark.parametrize("headers", [{}, {"X-Admin-Secret": "wrong-secret"}])
async def test_admin_routes_require_shared_secret(async_client, headers):
    response = await async_client.get("/api/v1/admin/channels", headers=headers)

    assert response.status_code == 403
    assert response.json()["code"] == "permission_denied"


@pytest.mark.asyncio
async def test_admin_list_shows_hidden_channels(async_client, channel_repository):
    await seed_channels(
        channel_repository,
        create_fake_channel(id="visible", members=10),
        create_fake_channel(id="secret", members=20, admin_hidden=True),
    )

    response = await async_client.get("/api/v1/admin/channels", headers=ADMIN_HEADERS)

    assert response.status_code == 200
    data = response.json()["data"]
    assert [c["id"] for c in data["channels"]] == ["secret", "visible"]
    assert data["stats"]["hidden"] == 1


@pytest.mark.asyncio
async def test_demote_promote_restore_journey(async_client, channel_repository):
    await seed_channels(channel_repository, create_fake_channel(id="acme", members=1000))

    demoted = await async_client.post(
        "/api/v1/admin/channels/acme/demote", json={"percentage": 50}, headers=ADMIN_HEADERS
    )
    assert demoted.json()["data"]["after"] == 500

    promoted = await async_client.post(
        "/api/v1/admin/channels/acme/promote",
        json={"amount": 20, "mode": "percentage"},
        headers=ADMIN_HEADERS,
    )
    assert promoted.json()["data"]["after"] == 600

    detail = await async_client.get("/api/v1/admin/channels/acme", headers=ADMIN_HEADERS)
    assert detail.json()["data"]["demote_count"] == 1
    assert len(detail.json()["data"]["demotion_history"]) == 1

    restored = await async_client.post(
        "/api/v1/admin/channels/acme/restore", headers=ADMIN_HEADERS
    )
    assert restored.json()["data"]["after"] == 1000
    assert restored.json()["data"]["status"] == "success"

    again = await async_client.post("/api/v1/admin/channels/acme/restore", headers=ADMIN_HEADERS)
    assert again.json()["data"]["status"] == "skipped"


@pytest.mark.asyncio
async def test_listing_reflects_admin_mutation_immediately(async_client, channel_repository):
    await seed_channels(
        channel_repository,
        create_fake_channel(id="acme", members=1000),
        create_fake_channel(id="beta_feed", members=800),
    )
    before = await async_client.get("/api/v1/channels")
    assert [c["id"] for c in before.json()["data"]["channels"]] == ["acme", "beta_feed"]

    await async_client.put(
        "/api/v1/admin/channels/acme/weight", json={"weight": 10}, headers=ADMIN_HEADERS
    )
    after = await async_client.get("/api/v1/channels")

    assert [c["id"] for c in after.json()["data"]["channels"]] == ["beta_feed", "acme"]


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"percentage": 0}, {"percentage": 120}, {"percentage": True}])
async def test_demote_rejects_bad_percentage(async_client, channel_repository, body):
    await seed_channels(channel_repository, create_fake_channel(id="acme", members=1000))

    response = await async_client.post(
        "/api/v1/admin/channels/acme/demote", json=body, headers=ADMIN_HEADERS
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_set_weight_on_missing_channel(async_client):
    response = await async_client.put(
        "/api/v1/admin/channels/nobody_here/weight", json={"weight": 5}, headers=ADMIN_HEADERS
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_batch_demote_reports_partial_failure(async_client, channel_repository):
    await seed_channels(channel_repository, create_fake_channel(id="acme", members=1000))

    response = await async_client.post(
        "/api/v1/admin/channels/batch/demote",
        json={"channel_ids": ["acme", "nobody_here"], "percentage": 10},
        headers=ADMIN_HEADERS,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert [item["channel_id"] for item in data["success"]] == ["acme"]
    assert [item["id"] for item in data["failed"]] == ["nobody_here"]
    assert data["skipped"] == []


@pytest.mark.asyncio
async def test_language_demotion_and_statistics(async_client, channel_repository):
    await seed_channels(
        channel_repository,
        create_fake_channel(id="ru_news", members=1000, name="Новости"),
        create_fake_channel(id="en_news", members=1000, name="World News"),
    )

    response = await async_client.post(
        "/api/v1/admin/channels/batch/language-demote",
        json={"language_code": "ru", "demote_percent": 30},
        headers=ADMIN_HEADERS,
    )
    assert response.json()["data"]["updated"] == 1

    stats = await async_client.get("/api/v1/admin/languages", headers=ADMIN_HEADERS)
    languages = {entry["code"]: entry for entry in stats.json()["data"]["languages"]}
    assert languages["ru"]["total_weight"] == 700
    assert languages["en"]["total_weight"] == 1000


@pytest.mark.asyncio
async def test_language_demotion_requires_integer_percent(async_client):
    response = await async_client.post(
        "/api/v1/admin/channels/batch/language-demote",
        json={"language_code": "ru", "demote_percent": 12.5},
        headers=ADMIN_HEADERS,
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_set_likes_override(async_client, channel_repository):
    await seed_channels(channel_repository, create_fake_channel(id="beta", members=1000))

    response = await async_client.put(
        "/api/v1/admin/channels/beta/likes", json={"total": 3}, headers=ADMIN_HEADERS
    )

    assert response.json()["data"] == {"id": "beta", "before": 0, "after": 3, "weight_delta": 300}


@pytest.mark.asyncio
async def test_visibility_toggle_hides_from_public(async_client, channel_repository):
    await seed_channels(channel_repository, create_fake_channel(id="acme", members=1000))

    response = await async_client.post(
        "/api/v1/admin/channels/acme/visibility/toggle", headers=ADMIN_HEADERS
    )

    assert response.json()["data"]["admin_hidden"] is True
    assert (await async_client.get("/api/v1/channels/acme")).status_code == 404


@pytest.mark.asyncio
async def test_add_channels(async_client, channel_repository):
    response = await async_client.post(
        "/api/v1/admin/channels",
        json={"usernames": "@fresh_feed t.me/other_feed bad!"},
        headers=ADMIN_HEADERS,
    )

    assert response.status_code == 200
    assert response.json()["data"] == {
        "created": ["fresh_feed", "other_feed"],
        "existing": [],
        "invalid": ["bad!"],
    }
    assert await channel_repository.exists("other_feed")


@pytest.mark.asyncio
async def test_admin_rate_limit(async_client, container):
    container.rate_limiter.policies["admin"] = RateLimitPolicy("admin", 2, 60)
    for _ in range(2):
        assert (
            await async_client.get("/api/v1/admin/languages", headers=ADMIN_HEADERS)
        ).status_code == 200

    response = await async_client.get("/api/v1/admin/languages", headers=ADMIN_HEADERS)

    assert response.status_code == 429
