"""Identifier value objects: channel handles and device fingerprints.

Both are validated before any store is touched. Invalid input raises
`ValidationError` so the API layer can answer 400 without a round trip.
"""

import re
from dataclasses import dataclass
from typing import ClassVar, List, Tuple
from urllib.parse import urlparse

from chandir.core.exceptions import ValidationError


@dataclass(frozen=True)
class ChannelId:
    """A channel handle, stored lower-cased without a leading ``@``."""

    value: str

    PATTERN: ClassVar[re.Pattern] = re.compile(r"^[a-z0-9_]{3,64}$")

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise ValidationError("Channel id must be a string")
        normalized = self.value.strip().lstrip("@").lower()
        if not self.PATTERN.match(normalized):
            raise ValidationError(f"Invalid channel id '{self.value[:64]}'")
        object.__setattr__(self, "value", normalized)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Fingerprint:
    """An opaque per-device identifier supplied by the client."""

    value: str

    PATTERN: ClassVar[re.Pattern] = re.compile(r"^[A-Za-z0-9_-]{8,128}$")

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.PATTERN.match(self.value):
            raise ValidationError("Invalid device fingerprint")

    def mask_for_logging(self) -> str:
        return f"{self.value[:6]}***"

    def __str__(self) -> str:
        return self.value


# Telegram usernames: letters, digits and underscores, at least 5 characters.
_USERNAME = re.compile(r"^[a-z0-9_]{5,64}$")
_SEPARATORS = re.compile(r"[\s,，]+")


def _extract_username(token: str) -> str:
    candidate = token.strip()
    if "t.me/" in candidate or candidate.startswith(("http://", "https://")):
        if not candidate.startswith(("http://", "https://")):
            candidate = "https://" + candidate
        path = urlparse(candidate).path.strip("/")
        candidate = path.split("/")[0] if path else ""
    return candidate.lstrip("@").lower()


def parse_channel_usernames(raw: str) -> Tuple[List[str], List[str]]:
    """Split operator input into valid usernames and rejected tokens.

    Accepts ``@name``, ``t.me/name`` and full URLs separated by whitespace or
    commas. Duplicates are dropped, keeping first occurrence order.

    Returns:
        ``(usernames, invalid_tokens)``
    """
    usernames: List[str] = []
    invalid: List[str] = []
    for token in _SEPARATORS.split(raw or ""):
        if not token:
            continue
        username = _extract_username(token)
        if not _USERNAME.match(username):
            invalid.append(token)
        elif username not in usernames:
            usernames.append(username)
    return usernames, invalid
