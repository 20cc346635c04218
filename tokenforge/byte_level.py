"""Reversible byte <-> printable character mapping.

Byte-level BPE never sees raw bytes.  Each byte is mapped to a visible
Unicode character so vocabularies stay plain JSON strings and the BPE
alphabet is closed at 256 symbols:

* ``'!'..'~'``, ``0xA1..0xAC`` and ``0xAE..0xFF`` map to themselves;
* every other byte, in ascending order, maps to ``chr(256 + n)``.

Both directions are computed once on first use and returned as
read-only mappings.
"""

from __future__ import annotations

import string
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping

from .constants import BYTE_TOKEN_FORMAT, BYTE_TOKEN_PREFIX, BYTE_TOKEN_SUFFIX


@lru_cache(maxsize=1)
def bytes_to_unicode() -> Mapping[int, str]:
    """Byte value -> printable character."""
    printable = (
        list(range(ord("!"), ord("~") + 1))
        + list(range(0xA1, 0xAC + 1))
        + list(range(0xAE, 0xFF + 1))
    )
    mapping: dict[int, str] = {b: chr(b) for b in printable}
    n = 0
    for b in range(256):
        if b not in mapping:
            mapping[b] = chr(256 + n)
            n += 1
    return MappingProxyType(dict(sorted(mapping.items())))


@lru_cache(maxsize=1)
def unicode_to_bytes() -> Mapping[str, int]:
    """Printable character -> byte value (inverse of :func:`bytes_to_unicode`)."""
    return MappingProxyType({ch: b for b, ch in bytes_to_unicode().items()})


def alphabet() -> list[str]:
    """The 256 byte-level characters ordered by byte value."""
    return list(bytes_to_unicode().values())


def to_utf8(text: str) -> bytes:
    """UTF-8 bytes of *text*.

    Surrogate pairs are re-assembled into their scalar value first; lone
    surrogates are passed through as their three-byte encoding.
    """
    try:
        return text.encode("utf-8")
    except UnicodeEncodeError:
        joined = text.encode("utf-16-le", "surrogatepass").decode(
            "utf-16-le", "surrogatepass"
        )
        return joined.encode("utf-8", "surrogatepass")


def encode_bytes(data: bytes) -> str:
    table = bytes_to_unicode()
    return "".join(table[b] for b in data)


def encode_text(text: str) -> str:
    """Byte-level representation of *text* (UTF-8, then mapped)."""
    return encode_bytes(to_utf8(text))


def decode_chars(chars: str) -> bytes | None:
    """Bytes for a byte-level string, or None if any char is unmapped."""
    table = unicode_to_bytes()
    out = bytearray()
    for ch in chars:
        b = table.get(ch)
        if b is None:
            return None
        out.append(b)
    return bytes(out)


def decode_text(chars: str) -> str:
    """Inverse of :func:`encode_text`; invalid UTF-8 becomes U+FFFD."""
    data = decode_chars(chars)
    if data is None:
        raise ValueError(f"{chars!r} contains characters outside the byte-level alphabet")
    return data.decode("utf-8", errors="replace")


# ── Byte-fallback tokens ───────────────────────────────────────────


def byte_token(value: int) -> str:
    """``<0xXX>`` token name for a byte value."""
    return BYTE_TOKEN_FORMAT.format(value)


def parse_byte_token(token: str) -> int | None:
    """Byte value of a ``<0xXX>`` token, or None for any other string."""
    if (
        len(token) != 6
        or not token.startswith(BYTE_TOKEN_PREFIX)
        or not token.endswith(BYTE_TOKEN_SUFFIX)
    ):
        return None
    digits = token[3:5]
    if not all(ch in string.hexdigits for ch in digits):
        return None
    return int(digits, 16)
