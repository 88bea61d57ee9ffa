"""GeoIP service for IP to location lookup."""

import ipaddress
from dataclasses import dataclass
from pathlib import Path

import geoip2.database
import geoip2.errors
import httpx
import structlog
from maxminddb.errors import InvalidDatabaseError

from quicklink.core.config import get_settings

logger = structlog.get_logger()


@dataclass
class GeoLocation:
    """Geographic location data from IP lookup."""

    country: str | None = None  # ISO 3166-1 alpha-2 country code
    city: str | None = None


class GeoIPService:
    """Service for looking up geographic location from IP addresses.

    Supports two backends:
    1. GeoIP2 database (MaxMind) - for production use
    2. IP-API.com - free API fallback, only when ``api_enabled``

    Usage:
        service = GeoIPService()
        location = await service.lookup("8.8.8.8")
        print(location.country, location.city)
    """

    def __init__(
        self,
        geoip_database_path: str | None = None,
        api_enabled: bool | None = None,
    ):
        settings = get_settings()
        self._geoip_reader: geoip2.database.Reader | None = None
        self._database_path = geoip_database_path or settings.geoip_database_path
        self._api_enabled = settings.geoip_api_enabled if api_enabled is None else api_enabled

        if self._database_path:
            self._init_geoip2()

    def _init_geoip2(self) -> None:
        """Initialize GeoIP2 database reader."""
        path = Path(self._database_path)
        if not path.exists():
            logger.warning("GeoIP2 database not found", path=str(path))
            return
        try:
            self._geoip_reader = geoip2.database.Reader(str(path))
            logger.info("GeoIP2 database loaded", path=str(path))
        except (OSError, InvalidDatabaseError) as e:
            logger.error("Failed to load GeoIP2 database", path=str(path), error=str(e))

    async def lookup(self, ip_address: str | None) -> GeoLocation:
        """Look up geographic location for an IP address.

        Unparseable, private and loopback addresses have no location.
        """
        if not ip_address or not self._is_public_ip(ip_address):
            return GeoLocation()

        if self._geoip_reader:
            return self._lookup_geoip2(ip_address)

        if self._api_enabled:
            return await self._lookup_ip_api(ip_address)

        return GeoLocation()

    @staticmethod
    def _is_public_ip(ip_address: str) -> bool:
        try:
            ip = ipaddress.ip_address(ip_address)
        except ValueError:
            return False
        return ip.is_global

    def _lookup_geoip2(self, ip_address: str) -> GeoLocation:
        """Look up location using GeoIP2 database."""
        try:
            response = self._geoip_reader.city(ip_address)
            return GeoLocation(
                country=response.country.iso_code,
                city=response.city.name,
            )
        except (geoip2.errors.AddressNotFoundError, ValueError) as e:
            logger.debug("GeoIP2 lookup failed", ip=ip_address, error=str(e))
            return GeoLocation()

    async def _lookup_ip_api(self, ip_address: str) -> GeoLocation:
        """Look up location using IP-API.com (free tier).

        Note: IP-API has rate limits (45 requests/minute for free tier).
        Use GeoIP2 database for production.
        """
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    f"http://ip-api.com/json/{ip_address}",
                    params={"fields": "status,countryCode,city"},
                    timeout=2.0,
                )
                if response.status_code == 200:
                    data = response.json()
                    if data.get("status") == "success":
                        return GeoLocation(
                            country=data.get("countryCode"),
                            city=data.get("city"),
                        )
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("IP-API lookup failed", ip=ip_address, error=str(e))

        return GeoLocation()

    def close(self) -> None:
        """Close the GeoIP2 database reader."""
        if self._geoip_reader:
            self._geoip_reader.close()
            self._geoip_reader = None


# Global service instance
_geoip_service: GeoIPService | None = None


def get_geoip_service() -> GeoIPService:
    """Get the global GeoIP service instance."""
    global _geoip_service
    if _geoip_service is None:
        _geoip_service = GeoIPService()
    return _geoip_service


def close_geoip_service() -> None:
    """Close the global GeoIP service."""
    global _geoip_service
    if _geoip_service:
        _geoip_service.close()
        _geoip_service = None
