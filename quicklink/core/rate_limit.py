"""Rate limiting configuration using slowapi."""

import ipaddress

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from quicklink.core.config import get_settings

settings = get_settings()

# Width of clicks.ip_address
MAX_IP_LENGTH = 45


def _parse_ip(value: str) -> str | None:
    """Return the address in canonical form, or None if it is not a storable IP."""
    try:
        ip = str(ipaddress.ip_address(value.strip()))
    except ValueError:
        return None
    return ip if len(ip) <= MAX_IP_LENGTH else None


def get_client_ip(request: Request) -> str | None:
    """Get the real client IP address, handling proxies.

    Checks X-Forwarded-For and X-Real-IP headers before falling back
    to the direct client address. Header values that are not valid IP
    addresses are ignored.
    """
    # X-Forwarded-For can contain multiple IPs: client, proxy1, proxy2
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        client_ip = _parse_ip(forwarded_for.split(",")[0])
        if client_ip:
            return client_ip

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        client_ip = _parse_ip(real_ip)
        if client_ip:
            return client_ip

    if request.client:
        return request.client.host

    return None


def rate_limit_key(request: Request) -> str:
    """Key function for the limiter: the real client IP."""
    return get_client_ip(request) or get_remote_address(request)


limiter = Limiter(
    key_func=rate_limit_key,
    storage_uri=settings.rate_limit_storage_uri,  # memory:// or redis://
    strategy="fixed-window",
    enabled=settings.rate_limit_enabled,
)

# Limits used as decorators: @limiter.limit(RATE_LIMIT_REDIRECT)

# Redirect is the hot path and gets the most headroom
RATE_LIMIT_REDIRECT = settings.rate_limit_redirect

# Link creation is the abuse target
RATE_LIMIT_SHORTEN = settings.rate_limit_shorten

# Analytics and admin reads
RATE_LIMIT_API = settings.rate_limit_api
