"""Listing and search query parameters."""

import re
import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

from chandir.core.exceptions import ValidationError


class SortOrder(str, Enum):
    WEIGHT = "weight"
    MEMBERS = "members"
    LIKES = "likes"
    NEWEST = "newest"


@dataclass(frozen=True)
class PageRequest:
    """Validated pagination and ordering for listing reads."""

    page: int = 1
    page_size: int = 20
    sort: SortOrder = SortOrder.WEIGHT

    MAX_PAGE: ClassVar[int] = 1000
    MAX_PAGE_SIZE: ClassVar[int] = 100

    def __post_init__(self) -> None:
        if isinstance(self.page, bool) or not isinstance(self.page, int):
            raise ValidationError("Page must be an integer")
        if isinstance(self.page_size, bool) or not isinstance(self.page_size, int):
            raise ValidationError("Page size must be an integer")
        if not 1 <= self.page <= self.MAX_PAGE:
            raise ValidationError(f"Page must be between 1 and {self.MAX_PAGE}")
        if not 1 <= self.page_size <= self.MAX_PAGE_SIZE:
            raise ValidationError(f"Page size must be between 1 and {self.MAX_PAGE_SIZE}")
        if not isinstance(self.sort, SortOrder):
            try:
                object.__setattr__(self, "sort", SortOrder(self.sort))
            except ValueError:
                raise ValidationError(
                    "Sort must be one of: " + ", ".join(s.value for s in SortOrder)
                ) from None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


MAX_KEYWORD_LENGTH = 50
_META = re.compile(r"[.*+?^${}()|\[\]\\/<>\"'`;%]")
_WHITESPACE = re.compile(r"\s+")


def sanitize_keyword(raw: str) -> str:
    """Normalize a visitor search keyword.

    Strips control and regex meta characters, collapses whitespace and caps the
    length. May return an empty string, which callers treat as "no keyword".
    """
    if raw is None:
        return ""
    if not isinstance(raw, str):
        raise ValidationError("Keyword must be a string")
    cleaned = "".join(ch for ch in raw if unicodedata.category(ch)[0] != "C")
    cleaned = _META.sub(" ", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    return cleaned[:MAX_KEYWORD_LENGTH].strip()
