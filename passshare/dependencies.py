"""Dependency Injection Module.

Store handles are built once per application in the lifespan and kept on
``app.state``; request handlers receive them through these dependencies.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Depends, Request

from passshare.adapters.memory_store.stores import MemoryRateLimitBackend, MemorySecretBackend
from passshare.adapters.redis.client import create_redis_client
from passshare.adapters.redis.stores import RedisRateLimitBackend, RedisSecretBackend
from passshare.core.rate_limiter import RateLimiter
from passshare.domain.interfaces import RateLimitBackend, SecretBackend
from passshare.domain.secrets.store import SecretStore
from passshare.settings import Settings
from passshare.utils.client_ip import get_client_identifier

logger = logging.getLogger(__name__)


@dataclass
class Backends:
    secrets: SecretBackend
    rate_limits: RateLimitBackend
    redis: Optional[Any] = None


def build_backends(settings: Settings) -> Backends:
    if settings.REDIS_URL:
        client = create_redis_client(settings.REDIS_URL, settings.REDIS_TIMEOUT_SECONDS)
        return Backends(
            secrets=RedisSecretBackend(client),
            rate_limits=RedisRateLimitBackend(client),
            redis=client,
        )

    if settings.is_prod:
        raise RuntimeError("In PROD, REDIS_URL must be set")

    logger.warning("REDIS_URL not set; using in-process memory stores (single worker only)")
    return Backends(secrets=MemorySecretBackend(), rate_limits=MemoryRateLimitBackend())


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_backends(request: Request) -> Backends:
    return request.app.state.backends


def get_secret_store(
    backends: Backends = Depends(get_backends),
    settings: Settings = Depends(get_app_settings),
) -> SecretStore:
    return SecretStore(
        backends.secrets,
        ttl_seconds=settings.SECRET_TTL_SECONDS,
        diagnostics=settings.diagnostics_enabled,
    )


def get_rate_limiter(backends: Backends = Depends(get_backends)) -> RateLimiter:
    return RateLimiter(backends.rate_limits)


def get_client_id(request: Request) -> str:
    peer = request.client.host if request.client else None
    return get_client_identifier(request.headers, peer)
