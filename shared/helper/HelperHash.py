"""Deterministic content hashing for vector item keys."""

from functools import lru_cache

_MASK_32 = 0xFFFFFFFF


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK_32


def _utf16_code_units(text: str) -> list[int]:
    raw = text.encode("utf-16-le", errors="surrogatepass")
    return [int.from_bytes(raw[i:i + 2], "little") for i in range(0, len(raw), 2)]


def compute_string_hash(text: str, seed: int = 0) -> int:
    """53-bit cyrb53 hash over UTF-16 code units.

    Matches the hash the chat host uses as vector item key, so hashes
    computed here line up with hashes the backend returns.
    """
    h1 = (0xDEADBEEF ^ seed) & _MASK_32
    h2 = (0x41C6CE57 ^ seed) & _MASK_32
    for ch in _utf16_code_units(text):
        h1 = _imul(h1 ^ ch, 2654435761)
        h2 = _imul(h2 ^ ch, 1597334677)
    h1 = _imul(h1 ^ (h1 >> 16), 2246822507) ^ _imul(h2 ^ (h2 >> 13), 3266489909)
    h2 = _imul(h2 ^ (h2 >> 16), 2246822507) ^ _imul(h1 ^ (h1 >> 13), 3266489909)
    return 4294967296 * (2097151 & h2) + h1


@lru_cache(maxsize=65536)
def get_hash_value(text: str) -> int:
    """Memoized compute_string_hash() keyed by the exact string."""
    return compute_string_hash(text)
