import pytest
from sqlalchemy import select

from chandir.core.exceptions import ChannelNotFoundError, RateLimitExceededError, ValidationError
from chandir.domain.entities.search_keyword import SearchKeyword
from tests.factories import create_fake_channel, seed_channels


@pytest.mark.asyncio
async def test_list_channels_orders_by_weight_and_reports_stats(directory, channel_repository):
    await seed_channels(
        channel_repository,
        create_fake_channel(id="small_one", members=10),
        create_fake_channel(id="big_one", members=1000),
        create_fake_channel(id="hidden_one", members=5000, admin_hidden=True),
        create_fake_channel(id="dead_one", members=7000, is_active=False),
    )

    page = await directory.list_channels()

    assert [c["id"] for c in page["channels"]] == ["big_one", "small_one"]
    assert page["stats"] == {"total": 2, "total_members": 1010}
    assert page["pagination"] == {"page": 1, "page_size": 20, "total": 2, "has_more": False}


@pytest.mark.asyncio
async def test_list_channels_pagination(directory, channel_repository):
    await seed_channels(
        channel_repository,
        *(create_fake_channel(id=f"chan_{i:02d}", members=100 - i) for i in range(5)),
    )

    first = await directory.list_channels(page=1, page_size=2)
    last = await directory.list_channels(page=3, page_size=2)

    assert [c["id"] for c in first["channels"]] == ["chan_00", "chan_01"]
    assert first["pagination"]["has_more"] is True
    assert [c["id"] for c in last["channels"]] == ["chan_04"]
    assert last["pagination"]["has_more"] is False


@pytest.mark.asyncio
async def test_list_channels_rejects_bad_paging(directory):
    with pytest.raises(ValidationError):
        await directory.list_channels(page=0)
    with pytest.raises(ValidationError):
        await directory.list_channels(sort="random")


@pytest.mark.asyncio
async def test_listing_is_cached_until_a_mutation(directory, channel_repository, redis):
    await seed_channels(channel_repository, create_fake_channel(id="acme", members=1000))
    first = await directory.list_channels()
    assert await redis.exists("nav:channels:weight:1:20")

    await seed_channels(channel_repository, create_fake_channel(id="late_arrival", members=9999))
    cached = await directory.list_channels()
    assert cached == first

    await directory.demote("acme", 50)
    fresh = await directory.list_channels()

    assert [c["id"] for c in fresh["channels"]] == ["late_arrival", "acme"]
    assert fresh["channels"][1]["weight"] == 500


@pytest.mark.asyncio
async def test_page_ip_limit_applies_to_listing(directory):
    for _ in range(10):
        await directory.list_channels(client_ip="203.0.113.7")

    with pytest.raises(RateLimitExceededError):
        await directory.list_channels(client_ip="203.0.113.7")

    await directory.list_channels(client_ip="203.0.113.8")


@pytest.mark.asyncio
async def test_page_ip_limit_applies_to_share_page(directory, channel_repository):
    await seed_channels(channel_repository, create_fake_channel(id="acme", members=10))
    await directory.list_channels(client_ip="203.0.113.7")
    for _ in range(9):
        await directory.get_channel("acme", client_ip="203.0.113.7")

    with pytest.raises(RateLimitExceededError):
        await directory.get_channel("acme", client_ip="203.0.113.7")

    assert (await directory.get_channel("acme"))["id"] == "acme"


@pytest.mark.asyncio
async def test_search_matches_id_name_and_description(directory, channel_repository, redis):
    await seed_channels(
        channel_repository,
        create_fake_channel(id="crypto_daily", members=50, name="Daily"),
        create_fake_channel(id="signals_hub", members=80, name="Crypto Signals"),
        create_fake_channel(id="misc_feed", members=90, name="Misc", description="crypto and more"),
        create_fake_channel(id="cooking_tips", members=100, name="Cooking"),
    )

    result = await directory.search_channels("  CRYPTO ")

    assert result["keyword"] == "CRYPTO"
    assert [c["id"] for c in result["channels"]] == ["misc_feed", "signals_hub", "crypto_daily"]
    assert await redis.exists("nav:search:crypto:1:20")


@pytest.mark.asyncio
async def test_search_result_computed_before_a_mutation_is_not_cached(
    directory, channel_repository, redis, mocker
):
    await seed_channels(channel_repository, create_fake_channel(id="crypto_daily", members=50))
    list_page = channel_repository.list_page

    async def list_page_during_mutation(*args, **kwargs):
        result = await list_page(*args, **kwargs)
        await directory.demote("crypto_daily", 50)
        return result

    mocker.patch.object(channel_repository, "list_page", side_effect=list_page_during_mutation)

    stale = await directory.search_channels("crypto")

    assert stale["channels"][0]["weight"] == 50
    assert not await redis.exists("nav:search:crypto:1:20")


@pytest.mark.asyncio
async def test_search_treats_like_wildcards_literally(directory, channel_repository):
    await seed_channels(
        channel_repository,
        create_fake_channel(id="under_score", members=10, name="under_score"),
        create_fake_channel(id="underxscore", members=10, name="underxscore"),
    )

    result = await directory.search_channels("r_s")

    assert [c["id"] for c in result["channels"]] == ["under_score"]


@pytest.mark.asyncio
async def test_empty_search_falls_back_to_listing(directory, channel_repository):
    await seed_channels(channel_repository, create_fake_channel(id="acme", members=10))

    result = await directory.search_channels("  ()*  ")

    assert "keyword" not in result
    assert [c["id"] for c in result["channels"]] == ["acme"]


@pytest.mark.asyncio
async def test_get_channel_hides_unlisted(directory, channel_repository):
    await seed_channels(
        channel_repository,
        create_fake_channel(id="visible", members=10),
        create_fake_channel(id="secret", members=10, admin_hidden=True),
    )

    assert (await directory.get_channel("@Visible"))["id"] == "visible"
    with pytest.raises(ChannelNotFoundError):
        await directory.get_channel("secret")
    with pytest.raises(ChannelNotFoundError):
        await directory.get_channel("missing")


@pytest.mark.asyncio
async def test_record_search_keyword_queues_then_counts(directory, container):
    first = await directory.record_search_keyword("Crypto News")
    again = await directory.record_search_keyword("crypto news")

    assert first == {"keyword": "crypto news", "is_new": True}
    assert again == {"keyword": "crypto news", "is_new": False}
    async with container.session_factory() as session:
        row = (
            await session.execute(select(SearchKeyword).where(SearchKeyword.keyword == "crypto news"))
        ).scalar_one()
    assert row.total_searches == 2
    assert row.status == "pending"


@pytest.mark.asyncio
async def test_record_search_keyword_rejects_empty(directory):
    with pytest.raises(ValidationError):
        await directory.record_search_keyword("   ")


@pytest.mark.asyncio
async def test_batch_restore_reports_each_outcome(directory, channel_repository):
    await seed_channels(
        channel_repository,
        create_fake_channel(id="demoted_one", members=1000),
        create_fake_channel(id="steady_one", members=1000),
    )
    await directory.demote("demoted_one", 40)

    result = await directory.batch_restore(["demoted_one", "steady_one", "ghost_one", "x"])

    assert [item["channel_id"] for item in result.success] == ["demoted_one"]
    assert result.skipped == [{"id": "steady_one", "reason": "not demoted"}]
    assert [item["id"] for item in result.failed] == ["ghost_one", "x"]
    assert (await channel_repository.get("demoted_one")).weight_value == 1000


@pytest.mark.asyncio
async def test_batch_demote_compounds_on_already_demoted(directory, channel_repository):
    await seed_channels(channel_repository, create_fake_channel(id="acme", members=1000))
    await directory.demote("acme", 50)

    result = await directory.batch_demote(["acme", "acme"], 50)

    assert len(result.success) == 1
    assert (await channel_repository.get("acme")).weight_value == 250


@pytest.mark.asyncio
async def test_batch_rejects_empty_and_oversized(directory):
    with pytest.raises(ValidationError):
        await directory.batch_restore([])
    with pytest.raises(ValidationError):
        await directory.batch_restore([f"channel_{i}" for i in range(501)])


@pytest.mark.asyncio
async def test_toggle_visibility_round_trip(directory, channel_repository):
    await seed_channels(channel_repository, create_fake_channel(id="acme", members=10))

    hidden = await directory.toggle_visibility("acme")
    assert hidden == {"id": "acme", "admin_hidden": True, "listed": False}
    assert (await directory.list_channels())["channels"] == []

    shown = await directory.toggle_visibility("acme")
    assert shown["listed"] is True
    assert [c["id"] for c in (await directory.list_channels())["channels"]] == ["acme"]


@pytest.mark.asyncio
async def test_add_channels_parses_operator_input(directory, channel_repository):
    await seed_channels(channel_repository, create_fake_channel(id="acme_news", members=10))

    result = await directory.add_channels("@acme_news https://t.me/fresh_feed, ab")

    assert result == {"created": ["fresh_feed"], "existing": ["acme_news"], "invalid": ["ab"]}
    created = await channel_repository.get("fresh_feed")
    assert created.weight_value == 0
    assert created.weight_reason == "manual add"


@pytest.mark.asyncio
async def test_add_channels_requires_one_valid_username(directory):
    with pytest.raises(ValidationError):
        await directory.add_channels("ab, cd")


@pytest.mark.asyncio
async def test_admin_list_includes_hidden_and_full_stats(directory, channel_repository):
    await seed_channels(
        channel_repository,
        create_fake_channel(id="visible", members=10),
        create_fake_channel(id="secret", members=20, admin_hidden=True),
    )

    result = await directory.admin_list()

    assert {c["id"] for c in result["channels"]} == {"visible", "secret"}
    assert result["stats"] == {
        "all": 2,
        "total": 1,
        "total_members": 10,
        "hidden": 1,
        "inactive": 0,
    }


@pytest.mark.asyncio
async def test_channel_detail_includes_demotion_history(directory, channel_repository):
    await seed_channels(channel_repository, create_fake_channel(id="acme", members=1000))
    await directory.demote("acme", 25)

    detail = await directory.channel_detail("acme")

    assert detail["demoted"] is True
    assert detail["original_weight"] == 1000
    assert [(h["percentage"], h["after"]) for h in detail["demotion_history"]] == [(25.0, 750)]


@pytest.mark.asyncio
async def test_language_statistics_payload(directory, channel_repository):
    await seed_channels(channel_repository, create_fake_channel(id="ko_news", members=10, name="한국 뉴스"))

    result = await directory.language_statistics()

    assert result == {
        "languages": [{"code": "ko", "count": 1, "total_weight": 10, "total_members": 10}]
    }
