"""Domain interfaces for persistence stores."""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class SecretRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    encrypted_data: str = Field(alias="encryptedData")
    created_at: int = Field(alias="createdAt")  # Unix ms


class RateLimitResult(BaseModel):
    allowed: bool
    remaining: int
    reset_at: datetime
    limit: int


class SecretBackend(ABC):
    """Key-value storage with expiry and atomic get-and-delete.

    Implementations raise on I/O failure; they never map an error to "absent".
    """

    @abstractmethod
    async def put(self, key: str, value: str, ttl_seconds: int) -> None: pass

    @abstractmethod
    async def get_and_delete(self, key: str) -> Optional[str]: pass

    @abstractmethod
    async def ping(self) -> bool: pass


class RateLimitBackend(ABC):
    @abstractmethod
    async def increment(self, key: str, window_seconds: int) -> Tuple[int, int]:
        """Atomically increment ``key``, starting a window on the first hit.

        Returns:
            (count_after_increment, ttl_seconds)
        """
        pass


# Secret Keys
def secret_key(secret_id: str) -> str:
    return f"secret:{secret_id}"


# Rate Limit Keys
def rate_limit_key(endpoint_class: str, identifier: str) -> str:
    """Counters are partitioned per endpoint class."""
    return f"rate_limit:{endpoint_class}:{identifier}"
