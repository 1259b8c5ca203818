"""Script-based language classification of channel display names.

The classifier is a pure function from a display name to a closed set of
language tags. Bulk language demotion and language statistics both depend on it
being deterministic.
"""

import re
from enum import Enum


class LanguageTag(str, Enum):
    ZH = "zh"
    JA = "ja"
    KO = "ko"
    RU = "ru"
    AR = "ar"
    TH = "th"
    VI = "vi"
    EN = "en"


# Kana is checked before CJK ideographs: Japanese names mix both.
_KANA = re.compile(r"[぀-ゟ゠-ヿㇰ-ㇿ]")
_HAN = re.compile(r"[㐀-䶿一-鿿豈-﫿]")
_HANGUL = re.compile(r"[ᄀ-ᇿ㄰-㆏가-힯]")
_CYRILLIC = re.compile(r"[Ѐ-ӿԀ-ԯ]")
_ARABIC = re.compile(r"[؀-ۿݐ-ݿﭐ-﷿ﹰ-﻿]")
_THAI = re.compile(r"[฀-๿]")
_VIETNAMESE = re.compile(
    r"[ăâđêôơưĂÂĐÊÔƠƯ"
    r"ạảấầẩẫậắằẳẵặẹẻẽếềểễệỉịọỏốồổỗộớờởỡợụủứừửữựỳỵỷỹ"
    r"ẠẢẤẦẨẪẬẮẰẲẴẶẸẺẼẾỀỂỄỆỈỊỌỎỐỒỔỖỘỚỜỞỠỢỤỦỨỪỬỮỰỲỴỶỸ]"
)

_ORDERED_CHECKS = (
    (_KANA, LanguageTag.JA),
    (_HAN, LanguageTag.ZH),
    (_HANGUL, LanguageTag.KO),
    (_CYRILLIC, LanguageTag.RU),
    (_ARABIC, LanguageTag.AR),
    (_THAI, LanguageTag.TH),
    (_VIETNAMESE, LanguageTag.VI),
)


def classify_language(name: str) -> LanguageTag:
    """Return the language tag for a channel display name.

    Empty or purely Latin names classify as ``en``.
    """
    if not name:
        return LanguageTag.EN
    for pattern, tag in _ORDERED_CHECKS:
        if pattern.search(name):
            return tag
    return LanguageTag.EN


def parse_language_tag(value: str) -> LanguageTag:
    try:
        return LanguageTag(str(value).strip().lower())
    except ValueError:
        raise ValueError(
            f"Unknown language code '{value}'. Expected one of: "
            + ", ".join(tag.value for tag in LanguageTag)
        ) from None
