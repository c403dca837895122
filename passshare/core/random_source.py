"""Cryptographically secure random draws with unbiased range reduction."""
import secrets
from typing import Callable, Optional

_UINT32_RANGE = 0x100000000


class RandomSource:
    """Wraps a secure byte generator.

    Every bounded integer is produced by rejection sampling over 32-bit draws,
    so no value in the range is more likely than another.
    """

    def __init__(self, token_bytes: Optional[Callable[[int], bytes]] = None):
        self._token_bytes = token_bytes or secrets.token_bytes

    def token_bytes(self, n: int) -> bytes:
        data = self._token_bytes(n)
        if len(data) != n:
            raise RuntimeError(f"Random source returned {len(data)} bytes, expected {n}")
        return data

    def uint32(self) -> int:
        return int.from_bytes(self.token_bytes(4), "big")

    def randbelow(self, n: int) -> int:
        """Return an integer uniformly distributed in [0, n)."""
        if n <= 0 or n > _UINT32_RANGE:
            raise ValueError("Invalid range for random index")

        # Largest multiple of n that fits in 32 bits; anything at or above it is biased
        threshold = _UINT32_RANGE - (_UINT32_RANGE % n)
        value = self.uint32()
        while value >= threshold:
            value = self.uint32()
        return value % n

    def choice(self, alphabet: str) -> str:
        if not alphabet:
            raise ValueError("Cannot choose from an empty alphabet")
        return alphabet[self.randbelow(len(alphabet))]
