"""URL sanitizing and validation."""

import ipaddress
import re

import structlog
from pydantic import AnyUrl, TypeAdapter, ValidationError

from quicklink.core.exceptions import InvalidUrl

logger = structlog.get_logger()

MAX_URL_LENGTH = 2048
ALLOWED_SCHEMES = ("http", "https")

# Any explicit scheme; only scheme-less input gets https://
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")
_url_adapter = TypeAdapter(AnyUrl)


def _parse(url: str) -> AnyUrl:
    return _url_adapter.validate_python(url)


def sanitize_url(raw: str) -> str:
    """Trim, default the scheme to https and return the canonical form.

    Raises InvalidUrl if the input cannot be parsed or the canonical URL
    is longer than 2048 characters.
    """
    sanitized = (raw or "").strip()
    if not _SCHEME_RE.match(sanitized):
        sanitized = f"https://{sanitized}"

    try:
        sanitized = str(_parse(sanitized))
    except ValidationError as e:
        raise InvalidUrl("Invalid URL format") from e

    if len(sanitized) > MAX_URL_LENGTH:
        raise InvalidUrl(f"URL exceeds {MAX_URL_LENGTH} characters")
    return sanitized


def _is_internal_host(host: str) -> bool:
    """Whether a host names this machine or a private network."""
    host = host.strip("[]").lower()
    if host == "localhost" or host.endswith(".localhost"):
        return True
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return False
    return ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_unspecified


def validate_url(url: str, production: bool = False) -> bool:
    """Check that a URL is an absolute http(s) URL with a host.

    With ``production`` set, hosts on loopback, private or link-local
    networks are rejected as well.
    """
    try:
        parsed = _parse(url)
    except ValidationError:
        return False

    if parsed.scheme not in ALLOWED_SCHEMES:
        return False
    if not parsed.host:
        return False
    if production and _is_internal_host(parsed.host):
        logger.info("Rejected internal URL", host=parsed.host)
        return False
    return True


def clean_url(raw: str, production: bool = False) -> str:
    """Sanitize then validate; returns the URL to store."""
    url = sanitize_url(raw)
    if not validate_url(url, production=production):
        raise InvalidUrl("Invalid URL provided")
    return url
