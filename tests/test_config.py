from quicklink.core.config import Settings, full_short_url


class TestSettings:
    """Test configuration defaults"""

    def test_remote_geoip_lookup_is_opt_in(self, monkeypatch):
        monkeypatch.delenv("GEOIP_API_ENABLED", raising=False)

        settings = Settings(_env_file=None)

        assert settings.geoip_api_enabled is False

    def test_remote_geoip_lookup_can_be_enabled(self, monkeypatch):
        monkeypatch.setenv("GEOIP_API_ENABLED", "true")

        assert Settings(_env_file=None).geoip_api_enabled is True

    def test_production_posture(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "Production")

        assert Settings(_env_file=None).is_production is True


def test_full_short_url_strips_trailing_slash():
    assert full_short_url("https://sho.rt/", "abc123") == "https://sho.rt/abc123"
