"""Sender and recipient side of the exchange.

Encryption and decryption happen here, never on the relay. The key only ever
appears in the share URL fragment, which HTTP clients do not transmit.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple
from urllib.parse import urlsplit
import logging

import httpx

from passshare.api.share.models import MAX_ENCRYPTED_DATA_LENGTH
from passshare.core.random_source import RandomSource
from passshare.domain import exchange
from passshare.domain.interfaces import RateLimitResult
from passshare.domain.passwords import MAX_PLAINTEXT_LENGTH
from passshare.domain.secrets.store import is_valid_secret_id
from passshare.errors import (
    InvalidSecretId, MalformedEncoding, RateLimited, RelayError, SecretNotFound,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetrievedSecret:
    plaintext: str
    created_at: datetime


def build_share_url(base_url: str, secret_id: str, key: bytes) -> str:
    return f"{base_url.rstrip('/')}/share/{secret_id}#{exchange.export_key(key)}"


def parse_share_url(url: str) -> Tuple[str, str, bytes]:
    """Split a share link into (base_url, secret_id, key)."""
    parts = urlsplit(url)
    if not parts.fragment:
        raise MalformedEncoding("Invalid share link: Missing encryption key")

    key = exchange.import_key(parts.fragment)

    prefix, sep, secret_id = parts.path.rstrip("/").rpartition("/share/")
    if not sep or not is_valid_secret_id(secret_id):
        raise InvalidSecretId()

    base_url = f"{parts.scheme}://{parts.netloc}{prefix}"
    return base_url, secret_id, key


class ShareClient:
    def __init__(
        self,
        base_url: str,
        http_client: Optional[httpx.Client] = None,
        random: Optional[RandomSource] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.http = http_client or httpx.Client(timeout=timeout)
        self.random = random or RandomSource()

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> "ShareClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def share(self, plaintext: str) -> str:
        """Encrypt locally, upload the envelope and return the one-time link."""
        if not plaintext:
            raise ValueError("Nothing to share")
        if len(plaintext) > MAX_PLAINTEXT_LENGTH:
            raise ValueError(f"Secret exceeds maximum length of {MAX_PLAINTEXT_LENGTH} characters")

        key = exchange.generate_key(self.random)
        envelope_text = exchange.seal(plaintext, key, self.random)
        # Multibyte text can fit the character limit and still outgrow the relay ceiling
        if len(envelope_text) > MAX_ENCRYPTED_DATA_LENGTH:
            size = len(plaintext.encode("utf-8"))
            raise ValueError(f"Secret is too large once encrypted ({size} bytes of UTF-8); shorten it")

        resp = self.http.post(f"{self.base_url}/api/share", json={"encryptedData": envelope_text})
        self._raise_for_status(resp)

        return build_share_url(self.base_url, resp.json()["id"], key)

    def retrieve(self, share_url: str) -> RetrievedSecret:
        """Consume the link. The relay forgets the secret whether or not decryption succeeds."""
        _, secret_id, key = parse_share_url(share_url)

        resp = self.http.get(f"{self.base_url}/api/retrieve/{secret_id}")
        self._raise_for_status(resp)

        data = resp.json()
        plaintext = exchange.open_sealed(data["encryptedData"], key)
        created_at = datetime.fromtimestamp(data["createdAt"] / 1000, tz=timezone.utc)
        return RetrievedSecret(plaintext=plaintext, created_at=created_at)

    def _raise_for_status(self, resp: httpx.Response) -> None:
        if resp.is_success:
            return
        if resp.status_code == 404:
            raise SecretNotFound()
        if resp.status_code == 429:
            raise RateLimited(_rate_limit_from_response(resp), "Too many requests. Please try again later.")
        if resp.status_code == 400:
            raise InvalidSecretId() if "/retrieve/" in str(resp.request.url) else MalformedEncoding()
        logger.warning(f"Relay returned HTTP {resp.status_code}")
        raise RelayError()


def _rate_limit_from_response(resp: httpx.Response) -> RateLimitResult:
    try:
        reset_ms = int(resp.headers.get("X-RateLimit-Reset") or resp.json().get("resetTime"))
        reset_at = datetime.fromtimestamp(reset_ms / 1000, tz=timezone.utc)
    except (TypeError, ValueError):
        reset_at = datetime.now(timezone.utc)
    try:
        limit = int(resp.headers.get("X-RateLimit-Limit", "0"))
    except ValueError:
        limit = 0
    return RateLimitResult(allowed=False, remaining=0, reset_at=reset_at, limit=limit)
