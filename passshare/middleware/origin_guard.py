"""Origin checks for state-changing requests."""
from typing import Optional
from urllib.parse import urlsplit
import logging

from fastapi import Depends, Request

from passshare.errors import OriginRejected
from passshare.dependencies import get_app_settings
from passshare.settings import Settings

logger = logging.getLogger(__name__)

CROSS_ORIGIN = "Cross-origin requests are not allowed"
UNVERIFIABLE = "Unable to verify request origin"
INVALID_ORIGIN = "Invalid origin header"

_SAFE_FETCH_SITES = {"same-origin", "none"}


def _origin_of(url: str) -> str:
    """Return ``scheme://host[:port]`` or raise ValueError."""
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise ValueError("not an http(s) origin")
    # Accessing .port validates it
    port = parts.port
    host = parts.hostname
    if ":" in host:
        host = f"[{host}]"
    return f"{parts.scheme}://{host}" + (f":{port}" if port is not None else "")


def validate_origin(
    origin: Optional[str],
    referer: Optional[str],
    expected_host: Optional[str],
    sec_fetch_site: Optional[str] = None,
    preview_suffix: Optional[str] = ".vercel.app",
) -> Optional[str]:
    """Return an error message when the request must be rejected, else None."""
    try:
        request_origin = origin or (_origin_of(referer) if referer else None)
    except ValueError:
        return INVALID_ORIGIN

    if not request_origin:
        # Non-browser clients send neither header; browsers label cross-site fetches
        if sec_fetch_site and sec_fetch_site.lower() not in _SAFE_FETCH_SITES:
            return CROSS_ORIGIN
        return None

    if not expected_host:
        return UNVERIFIABLE

    try:
        normalized = _origin_of(request_origin)
        hostname = urlsplit(normalized).hostname or ""
    except ValueError:
        return INVALID_ORIGIN

    if preview_suffix and hostname.endswith(preview_suffix):
        return None

    expected_host = expected_host.strip().lower()
    allowed = {f"https://{expected_host}", f"http://{expected_host}"}
    if normalized.lower() not in allowed:
        return CROSS_ORIGIN

    return None


def expected_host_for(request: Request, settings: Settings) -> Optional[str]:
    if settings.PUBLIC_HOST:
        return settings.PUBLIC_HOST
    return request.headers.get("x-forwarded-host") or request.headers.get("host")


async def require_same_origin(request: Request, settings: Settings = Depends(get_app_settings)) -> None:
    """FastAPI dependency guarding secret creation."""
    error = validate_origin(
        origin=request.headers.get("origin"),
        referer=request.headers.get("referer"),
        expected_host=expected_host_for(request, settings),
        sec_fetch_site=request.headers.get("sec-fetch-site"),
        preview_suffix=settings.PREVIEW_DOMAIN_SUFFIX or None,
    )
    if error:
        logger.warning(f"Origin rejected on {request.url.path}: {error}")
        raise OriginRejected(error)
