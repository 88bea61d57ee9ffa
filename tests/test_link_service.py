import base64

import pytest

from quicklink.core.config import get_settings
from quicklink.core.exceptions import AliasTaken, GenerationExhausted, InvalidUrl
from quicklink.schemas.link import LinkCreate
from quicklink.services import link as link_service
from quicklink.services.geoip import GeoIPService
from quicklink.services.qr import generate_qr_data_url
from factories import make_link


class TestCreateLink:
    """Test link creation in the service layer"""

    async def test_random_code_uses_configured_length(self, session):
        link = await link_service.create_link(
            session, LinkCreate(original_url="example.com"), get_settings()
        )

        assert len(link.short_code) == get_settings().short_code_length
        assert link.original_url == "https://example.com/"
        assert link.is_custom is False

    async def test_retries_on_collision(self, session, monkeypatch):
        await make_link(session, "taken1")
        codes = iter(["taken1", "taken1", "fresh1"])
        monkeypatch.setattr(link_service, "generate_short_code", lambda length: next(codes))

        link = await link_service.create_link(
            session, LinkCreate(original_url="https://example.com/"), get_settings()
        )

        assert link.short_code == "fresh1"

    async def test_generation_exhausted(self, session, monkeypatch):
        await make_link(session, "taken2")
        monkeypatch.setattr(link_service, "generate_short_code", lambda length: "taken2")

        with pytest.raises(GenerationExhausted):
            await link_service.create_link(
                session, LinkCreate(original_url="https://example.com/"), get_settings()
            )

    async def test_alias_claimed_between_check_and_insert(self, session, monkeypatch):
        await make_link(session, "raced1")

        async def always_available(session, short_code):
            return True

        monkeypatch.setattr(link_service, "is_short_code_available", always_available)

        with pytest.raises(AliasTaken):
            await link_service.create_link(
                session,
                LinkCreate(original_url="https://example.com/", custom_alias="raced1"),
                get_settings(),
            )

        # The failed insert leaves the transaction usable
        assert await link_service.get_link_by_short_code(session, "raced1") is not None

    async def test_invalid_url_creates_nothing(self, session):
        with pytest.raises(InvalidUrl):
            await link_service.create_link(
                session, LinkCreate(original_url="https://"), get_settings()
            )

    async def test_delete_returns_removed_clicks(self, session):
        link = await make_link(session, "del002")

        assert await link_service.delete_link(session, link) == 0
        assert await link_service.get_link_by_short_code(session, "del002") is None


class TestGeoIP:
    """Test GeoIP address filtering"""

    @pytest.mark.parametrize(
        "ip_address",
        [None, "", "not-an-ip", "127.0.0.1", "10.1.2.3", "192.168.0.10", "::1", "fe80::1"],
    )
    async def test_non_public_addresses_have_no_location(self, ip_address):
        service = GeoIPService(api_enabled=True)

        location = await service.lookup(ip_address)

        assert location.country is None
        assert location.city is None

    async def test_no_backend_configured(self):
        service = GeoIPService(geoip_database_path="/nonexistent/GeoLite2-City.mmdb", api_enabled=False)

        location = await service.lookup("8.8.8.8")

        assert location.country is None


class TestQRCode:
    """Test QR rendering"""

    def test_png_data_url(self):
        data_url = generate_qr_data_url("http://localhost:8000/abc123")

        prefix = "data:image/png;base64,"
        assert data_url.startswith(prefix)
        assert base64.b64decode(data_url[len(prefix):]).startswith(b"\x89PNG")
