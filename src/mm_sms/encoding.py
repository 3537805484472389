from __future__ import annotations

import math
from enum import Enum
from typing import Final, Literal

EncodingPreference = Literal["auto", "GSM7", "UCS-2"]

# GSM 03.38 default alphabet
GSM7_BASIC_CHARS: Final[frozenset[str]] = frozenset(
    "@£$¥èéùìòÇ\nØø\rÅåΔ_ΦΓΛΩΠΨΣΘΞ !\"#¤%&'()*+,-./0123456789:;<=>?"
    "¡ABCDEFGHIJKLMNOPQRSTUVWXYZÄÖÑÜ§¿abcdefghijklmnopqrstuvwxyzäöñüà"
)
# Reached through the escape character; each costs two septets.
GSM7_EXTENDED_CHARS: Final[frozenset[str]] = frozenset("^{}\\[~]|€")

GSM7_SINGLE_SEGMENT: Final[int] = 160
GSM7_MULTI_SEGMENT: Final[int] = 153
UCS2_SINGLE_SEGMENT: Final[int] = 70
UCS2_MULTI_SEGMENT: Final[int] = 67


class Encoding(str, Enum):
    GSM7 = "GSM7"
    UCS2 = "UCS-2"


def is_gsm7_character(char: str) -> bool:
    return char in GSM7_BASIC_CHARS or char in GSM7_EXTENDED_CHARS


def detect_encoding(message: str, preferred: EncodingPreference = "auto") -> Encoding:
    """
    Pick the SMS encoding for a message.

    An explicit preference always wins, even when the text contains
    characters the chosen alphabet cannot carry. With "auto", the first
    character outside the GSM-7 basic and extension sets selects UCS-2.
    """
    if preferred == "GSM7":
        return Encoding.GSM7
    if preferred == "UCS-2":
        return Encoding.UCS2
    if preferred != "auto":
        raise ValueError(f"Unsupported encoding preference: {preferred!r}")

    for ch in message:
        if not is_gsm7_character(ch):
            return Encoding.UCS2
    return Encoding.GSM7


def count_segments(message: str, encoding: Encoding) -> int:
    """Estimate how many SMS parts the provider will bill for."""
    if not message:
        return 0

    if encoding is Encoding.GSM7:
        units = sum(2 if ch in GSM7_EXTENDED_CHARS else 1 for ch in message)
        single, multi = GSM7_SINGLE_SEGMENT, GSM7_MULTI_SEGMENT
    else:
        # UTF-16 code units: characters outside the BMP take two.
        units = len(message.encode("utf-16-le")) // 2
        single, multi = UCS2_SINGLE_SEGMENT, UCS2_MULTI_SEGMENT

    if units <= single:
        return 1
    return math.ceil(units / multi)
