"""Factory for generating fake channel data for testing."""

import re
from typing import Optional

from faker import Faker

from chandir.domain.entities.channel import Channel

fake = Faker()


def create_fake_channel(
    id: Optional[str] = None,
    members: Optional[int] = None,
    name: Optional[str] = None,
    is_active: bool = True,
    admin_hidden: bool = False,
    **fields,
) -> Channel:
    """Create a seeded Channel the way the ingestion collaborator would.

    Args:
        id: Channel handle, defaults to a random lower-case username.
        members: Member count, also the initial weight.
        name: Display name, drives language classification.
    """
    channel_id = id or f"{re.sub(r'[^a-z0-9_]', '_', fake.user_name().lower())}_{fake.random_int(100, 999)}"
    return Channel.seed(
        channel_id,
        members=members if members is not None else fake.random_int(100, 50_000),
        name=name or fake.company(),
        is_active=is_active,
        admin_hidden=admin_hidden,
        **fields,
    )


async def seed_channels(repository, *channels: Channel) -> None:
    await repository.add_many(list(channels))
