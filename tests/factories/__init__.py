"""Re-export factory functions for generating fake test data."""

# flake8: noqa: F401 - re-export

from .channel import create_fake_channel, seed_channels

__all__ = [
    "create_fake_channel",
    "seed_channels",
]
