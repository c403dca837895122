"""One-shot secret store.

A record is written once and handed out by at most one successful ``take``;
the backend's atomic get-and-delete and key expiry carry that guarantee.
"""
import json
import logging
import re
import time
from typing import Callable, Optional

from passshare.core.random_source import RandomSource
from passshare.domain.interfaces import SecretBackend, SecretRecord, secret_key
from passshare.errors import StorageUnavailable

logger = logging.getLogger(__name__)

# 64 URL-safe symbols, so every character of an id carries 6 bits
SECRET_ID_ALPHABET = "useandom-26T198340PX75pxJACKVERYMINDBUSHWOLF_GQZbfghjklqvwyzrict"
SECRET_ID_LENGTH = 21
SECRET_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{21}$")

SECRET_TTL_SECONDS = 24 * 60 * 60


def is_valid_secret_id(secret_id: str) -> bool:
    return isinstance(secret_id, str) and bool(SECRET_ID_PATTERN.match(secret_id))


class SecretStore:
    def __init__(
        self,
        backend: SecretBackend,
        ttl_seconds: int = SECRET_TTL_SECONDS,
        random: Optional[RandomSource] = None,
        clock: Callable[[], float] = time.time,
        diagnostics: bool = False,
    ):
        self.backend = backend
        self.ttl_seconds = ttl_seconds
        self.random = random or RandomSource()
        self.clock = clock
        self.diagnostics = diagnostics

    def new_id(self) -> str:
        return "".join(self.random.choice(SECRET_ID_ALPHABET) for _ in range(SECRET_ID_LENGTH))

    async def write(self, envelope_text: str) -> str:
        """Persist an encoded envelope and return its fresh id."""
        secret_id = self.new_id()
        payload = json.dumps({
            "encryptedData": envelope_text,
            "createdAt": int(self.clock() * 1000),
        })

        try:
            await self.backend.put(secret_key(secret_id), payload, self.ttl_seconds)
        except Exception as e:
            self._log_failure("write", e)
            raise StorageUnavailable() from e

        return secret_id

    async def take(self, secret_id: str) -> Optional[SecretRecord]:
        """Atomically fetch and delete. ``None`` means absent, expired or already taken."""
        try:
            raw = await self.backend.get_and_delete(secret_key(secret_id))
        except Exception as e:
            self._log_failure("take", e)
            raise StorageUnavailable() from e

        if raw is None:
            return None

        try:
            data = json.loads(raw)
            return SecretRecord(
                id=secret_id,
                encrypted_data=data["encryptedData"],
                created_at=int(data["createdAt"]),
            )
        except (ValueError, KeyError, TypeError) as e:
            # The record is already gone; serving part of it is not an option
            self._log_failure("decode", e)
            raise StorageUnavailable() from e

    def _log_failure(self, operation: str, exc: Exception) -> None:
        if self.diagnostics:
            logger.error(f"Secret store {operation} failed: {type(exc).__name__}: {exc}")
        else:
            logger.error(f"Secret store {operation} failed: {type(exc).__name__}")
