from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
import logging

from passshare.api.share.models import RetrieveResponse, ShareRequest, ShareResponse
from passshare.core.rate_limiter import (
    ENDPOINT_RETRIEVE, ENDPOINT_SHARE, RateLimiter, rate_limit_headers,
)
from passshare.dependencies import get_app_settings, get_client_id, get_rate_limiter, get_secret_store
from passshare.domain.secrets.store import SecretStore, is_valid_secret_id
from passshare.errors import InvalidSecretId, RateLimited
from passshare.middleware.origin_guard import require_same_origin
from passshare.settings import Settings

router = APIRouter()
logger = logging.getLogger(__name__)

NO_STORE_HEADERS = {
    "Cache-Control": "no-store, max-age=0",
    "Pragma": "no-cache",
}


@router.post(
    "/share",
    status_code=201,
    response_model=ShareResponse,
    dependencies=[Depends(require_same_origin)],
)
async def share_secret(
    payload: ShareRequest,
    response: Response,
    client_id: str = Depends(get_client_id),
    limiter: RateLimiter = Depends(get_rate_limiter),
    store: SecretStore = Depends(get_secret_store),
    settings: Settings = Depends(get_app_settings),
):
    """Store an encrypted envelope; the server never sees the key."""
    result = await limiter.check(
        client_id, ENDPOINT_SHARE, settings.SHARE_RATE_LIMIT, settings.RATE_LIMIT_WINDOW_SECONDS
    )
    if not result.allowed:
        raise RateLimited(result)

    secret_id = await store.write(payload.encrypted_data)
    logger.info("Secret stored")

    response.headers.update(rate_limit_headers(result))
    return ShareResponse(id=secret_id)


@router.get("/retrieve/{secret_id}", response_model=RetrieveResponse, response_model_by_alias=True)
async def retrieve_secret(
    secret_id: str,
    response: Response,
    client_id: str = Depends(get_client_id),
    limiter: RateLimiter = Depends(get_rate_limiter),
    store: SecretStore = Depends(get_secret_store),
    settings: Settings = Depends(get_app_settings),
):
    """Hand out a secret once. The record is deleted by the same store call that reads it."""
    # Malformed ids must not eat into a client's retrieval quota
    if not is_valid_secret_id(secret_id):
        raise InvalidSecretId()

    result = await limiter.check(
        client_id, ENDPOINT_RETRIEVE, settings.RETRIEVE_RATE_LIMIT, settings.RATE_LIMIT_WINDOW_SECONDS
    )
    if not result.allowed:
        raise RateLimited(result)

    record = await store.take(secret_id)
    headers = {**rate_limit_headers(result), **NO_STORE_HEADERS}

    if record is None:
        return JSONResponse(
            status_code=404,
            content={"error": "Secret not found or already accessed"},
            headers=headers,
        )

    logger.info("Secret retrieved and destroyed")
    response.headers.update(headers)
    return RetrieveResponse(encrypted_data=record.encrypted_data, created_at=record.created_at)
