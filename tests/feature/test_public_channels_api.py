import pytest

from tests.factories import create_fake_channel, seed_channels

DEVICE = "browser-fp-000001"


@pytest.mark.asyncio
async def test_listing_returns_envelope(async_client, channel_repository):
    await seed_channels(
        channel_repository,
        create_fake_channel(id="acme", members=1000),
        create_fake_channel(id="beta_feed", members=500),
    )

    response = await async_client.get("/api/v1/channels", params={"page_size": 1})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["status"] == 1
    assert [c["id"] for c in body["data"]["channels"]] == ["acme"]
    assert body["data"]["stats"] == {"total": 2, "total_members": 1500}
    assert body["data"]["pagination"]["has_more"] is True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params", [{"page": 0}, {"page_size": 101}, {"sort": "random"}, {"page": "abc"}]
)
async def test_listing_rejects_bad_parameters(async_client, params):
    response = await async_client.get("/api/v1/channels", params=params)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["status"] == 0


@pytest.mark.asyncio
async def test_listing_page_rate_limit_returns_429(async_client):
    for _ in range(10):
        assert (await async_client.get("/api/v1/channels")).status_code == 200

    response = await async_client.get("/api/v1/channels")

    assert response.status_code == 429
    assert int(response.headers["Retry-After"]) > 0
    assert response.json()["data"]["retry_after"] > 0


@pytest.mark.asyncio
async def test_page_limit_is_keyed_on_forwarded_ip(async_client):
    for _ in range(10):
        await async_client.get("/api/v1/channels", headers={"X-Forwarded-For": "198.51.100.1"})

    response = await async_client.get(
        "/api/v1/channels", headers={"X-Forwarded-For": "198.51.100.2, 10.0.0.1"}
    )

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_search_endpoint(async_client, channel_repository):
    await seed_channels(
        channel_repository,
        create_fake_channel(id="crypto_daily", members=10, name="Crypto Daily"),
        create_fake_channel(id="cooking_tips", members=10, name="Cooking"),
    )

    response = await async_client.get("/api/v1/channels/search", params={"keyword": "crypto"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["keyword"] == "crypto"
    assert [c["id"] for c in data["channels"]] == ["crypto_daily"]


@pytest.mark.asyncio
async def test_record_search_keyword_endpoint(async_client):
    response = await async_client.post(
        "/api/v1/channels/search-keywords", json={"keyword": "Tech News"}
    )

    assert response.status_code == 200
    assert response.json()["data"] == {"keyword": "tech news", "is_new": True}


@pytest.mark.asyncio
async def test_share_page_lookup(async_client, channel_repository):
    await seed_channels(
        channel_repository,
        create_fake_channel(id="acme", members=1000),
        create_fake_channel(id="hidden_feed", members=10, admin_hidden=True),
    )

    found = await async_client.get("/api/v1/channels/acme")
    hidden = await async_client.get("/api/v1/channels/hidden_feed")
    missing = await async_client.get("/api/v1/channels/nobody_here")

    assert found.status_code == 200
    assert found.json()["data"]["weight"] == 1000
    assert hidden.status_code == 404
    assert missing.status_code == 404
    assert missing.json()["code"] == "channel_not_found"


@pytest.mark.asyncio
async def test_like_toggle_journey(async_client, channel_repository):
    await seed_channels(channel_repository, create_fake_channel(id="beta", members=2000))

    liked = await async_client.post("/api/v1/channels/beta/like", json={"fingerprint": DEVICE})
    assert liked.status_code == 200
    assert liked.json()["data"] == {"liked": True, "count": 1}

    detail = await async_client.get("/api/v1/channels/beta")
    assert detail.json()["data"]["weight"] == 2100

    status = await async_client.get("/api/v1/channels/beta/like", params={"fingerprint": DEVICE})
    assert status.json()["data"] == {"liked": True, "count": 1}

    unliked = await async_client.post("/api/v1/channels/beta/like", json={"fingerprint": DEVICE})
    assert unliked.json()["data"] == {"liked": False, "count": 0}
    assert (await async_client.get("/api/v1/channels/beta")).json()["data"]["weight"] == 2000


@pytest.mark.asyncio
async def test_like_rejects_malformed_fingerprint(async_client, channel_repository):
    await seed_channels(channel_repository, create_fake_channel(id="beta", members=10))

    response = await async_client.post("/api/v1/channels/beta/like", json={"fingerprint": "x"})

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_argument"


@pytest.mark.asyncio
async def test_like_unknown_channel(async_client):
    response = await async_client.post(
        "/api/v1/channels/nobody_here/like", json={"fingerprint": DEVICE}
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_health_reports_services(async_client):
    response = await async_client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["services"]["database"]["status"] == "healthy"
    assert body["services"]["redis"]["status"] == "healthy"


@pytest.mark.asyncio
async def test_health_is_not_rate_limited(async_client):
    for _ in range(70):
        response = await async_client.get("/health")

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_share_page_rate_limit_returns_429(async_client, channel_repository):
    await seed_channels(channel_repository, create_fake_channel(id="acme", members=1000))
    for _ in range(10):
        assert (await async_client.get("/api/v1/channels/acme")).status_code == 200

    response = await async_client.get("/api/v1/channels/acme")

    assert response.status_code == 429
    assert int(response.headers["Retry-After"]) > 0
