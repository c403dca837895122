import hashlib
import ipaddress
from typing import Mapping, Optional

# Checked in order of trust: edge-network headers first, the generic
# forwarded-for list last.
TRUSTED_IP_HEADERS = (
    ("x-vercel-forwarded-for", True),
    ("x-real-ip", False),
    ("cf-connecting-ip", False),
    ("x-forwarded-for", True),
)


def is_valid_ip(value: str) -> bool:
    if not value or len(value) > 45:
        return False
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def get_client_identifier(headers: Mapping[str, str], peer: Optional[str] = None) -> str:
    """Rate limit identifier for a request; never empty.

    Clients without a usable address get a fingerprint of their browser
    headers, so unknown clients do not all share a single bucket.
    """
    for name, is_list in TRUSTED_IP_HEADERS:
        value = headers.get(name)
        if not value:
            continue
        candidate = value.split(",")[0].strip() if is_list else value.strip()
        if is_valid_ip(candidate):
            return candidate

    if peer and is_valid_ip(peer):
        return peer

    user_agent = headers.get("user-agent") or ""
    accept_language = headers.get("accept-language") or ""
    digest = hashlib.sha256(f"{user_agent}{accept_language}".encode()).hexdigest()
    return f"unknown:{digest[:16]}"
