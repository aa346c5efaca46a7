"""Content normalization and snippet fingerprints.

Fingerprints are short, non-cryptographic digests used to detect accidental
drift between two copies of the same snippet. Two forms exist:

* fast: a single FNV-1a style 32-bit value, ``"1a2b3c4d"``
* secure: three independent 32-bit digests, ``"1a2b3c4d-00c0ffee-deadbeef"``

Both forms are computed over normalized content, so CRLF/LF differences and
surrounding whitespace never produce a different fingerprint.
"""

from __future__ import annotations

import re
from collections import Counter
from enum import Enum

MASK_32 = 0xFFFFFFFF
FNV_OFFSET_BASIS = 0x811C9DC5
FNV_PRIME = 0x01000193
DJB2_SEED = 5381
GOLDEN_RATIO = 0x9E3779B9  # mixes the length and frequency terms

_FAST_PATTERN = re.compile(r"[0-9a-f]{8}", re.IGNORECASE)
_SECURE_PATTERN = re.compile(r"[0-9a-f]{8}-[0-9a-f]{8}-[0-9a-f]{8}", re.IGNORECASE)


class HashVariant(str, Enum):
    """Fingerprint flavours understood by the sync engine."""
    FAST = "fast"
    SECURE = "secure"


def normalize_content(text: str) -> str:
    """Unify line endings to ``\\n`` and strip surrounding whitespace."""
    return text.replace("\r\n", "\n").replace("\r", "\n").strip()


def _fnv1a(text: str) -> int:
    value = FNV_OFFSET_BASIS
    for char in text:
        value ^= ord(char)
        value = (value * FNV_PRIME) & MASK_32
    return value


def _djb2(text: str) -> int:
    value = DJB2_SEED
    for char in text:
        value = ((value << 5) + value + ord(char)) & MASK_32
    return value


def _frequency_digest(text: str) -> int:
    value = 0
    for char, count in Counter(text).items():
        value ^= (ord(char) * count * GOLDEN_RATIO) & MASK_32
    return value


def _hex(value: int) -> str:
    return format(value & MASK_32, "08x")


def fast_fingerprint(text: str) -> str:
    """Return the 8-hex-digit fingerprint of ``text`` after normalization."""
    normalized = normalize_content(text)
    value = _fnv1a(normalized)
    # Same-prefix inputs of different length collide less with this term.
    value ^= (len(normalized) * GOLDEN_RATIO) & MASK_32
    return _hex(value)


def secure_fingerprint(text: str) -> str:
    """Return the three-segment fingerprint of ``text`` after normalization."""
    normalized = normalize_content(text)
    return "-".join(
        _hex(digest)
        for digest in (_fnv1a(normalized), _djb2(normalized), _frequency_digest(normalized))
    )


def fingerprint(text: str, variant: HashVariant = HashVariant.FAST) -> str:
    """Fingerprint ``text`` with the requested variant."""
    if HashVariant(variant) is HashVariant.SECURE:
        return secure_fingerprint(text)
    return fast_fingerprint(text)


def fingerprints_equal(first: str, second: str) -> bool:
    return first == second


def is_well_formed(value: str) -> bool:
    """True when ``value`` looks like a fast or secure fingerprint."""
    if not isinstance(value, str):
        return False
    return bool(_FAST_PATTERN.fullmatch(value) or _SECURE_PATTERN.fullmatch(value))


__all__ = [
    "HashVariant",
    "normalize_content",
    "fast_fingerprint",
    "secure_fingerprint",
    "fingerprint",
    "fingerprints_equal",
    "is_well_formed",
]
