"""Link and click business logic services."""

from quicklink.services.click_recorder import DeviceInfo, classify_user_agent, record_click
from quicklink.services.geoip import (
    GeoIPService,
    GeoLocation,
    close_geoip_service,
    get_geoip_service,
)
from quicklink.services.resolver import Resolution, resolve
from quicklink.services.url_utils import clean_url, sanitize_url, validate_url

__all__ = [
    # Click recording
    "DeviceInfo",
    "classify_user_agent",
    "record_click",
    # GeoIP
    "GeoIPService",
    "GeoLocation",
    "get_geoip_service",
    "close_geoip_service",
    # Resolution
    "Resolution",
    "resolve",
    # URLs
    "clean_url",
    "sanitize_url",
    "validate_url",
]
