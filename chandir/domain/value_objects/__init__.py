from .identifiers import ChannelId, Fingerprint, parse_channel_usernames
from .language import LanguageTag, classify_language, parse_language_tag
from .query import PageRequest, SortOrder, sanitize_keyword
from .visibility import LISTED, Visibility, listed_filter

__all__ = [
    "ChannelId",
    "Fingerprint",
    "parse_channel_usernames",
    "LanguageTag",
    "classify_language",
    "parse_language_tag",
    "PageRequest",
    "SortOrder",
    "sanitize_keyword",
    "LISTED",
    "Visibility",
    "listed_filter",
]
