import pytest

from factories import make_link
from quicklink.core.exceptions import AliasInvalid
from quicklink.services.short_codes import (
    RESERVED_CODES,
    SHORT_CODE_CHARS,
    generate_short_code,
    is_short_code_available,
    validate_alias,
)


class TestGenerateShortCode:
    """Test random short code generation"""

    def test_default_length_is_six(self):
        assert len(generate_short_code()) == 6

    def test_custom_length(self):
        assert len(generate_short_code(10)) == 10

    def test_uses_base62_alphabet(self):
        for _ in range(50):
            assert set(generate_short_code()) <= set(SHORT_CODE_CHARS)

    def test_codes_vary(self):
        codes = {generate_short_code() for _ in range(100)}
        assert len(codes) > 90


class TestValidateAlias:
    """Test custom alias validation"""

    @pytest.mark.parametrize("alias", ["abc", "my-link", "My_Link_2024", "a" * 15])
    def test_accepts_valid_aliases(self, alias):
        assert validate_alias(alias) == alias

    @pytest.mark.parametrize("alias", ["ab", "a" * 16, "has space", "bad!char", "ünïcode", "", "abc\n"])
    def test_rejects_invalid_aliases(self, alias):
        with pytest.raises(AliasInvalid):
            validate_alias(alias)

    @pytest.mark.parametrize("alias", sorted(RESERVED_CODES) + ["Health", "API"])
    def test_rejects_reserved_paths(self, alias):
        with pytest.raises(AliasInvalid):
            validate_alias(alias)


class TestShortCodeAvailability:
    """Test the availability check against stored links"""

    async def test_unused_code_is_available(self, session):
        assert await is_short_code_available(session, "free01") is True

    async def test_used_code_is_not_available(self, session):
        await make_link(session, "taken1")
        assert await is_short_code_available(session, "taken1") is False

    async def test_codes_are_case_sensitive(self, session):
        await make_link(session, "CaseCode")
        assert await is_short_code_available(session, "casecode") is True
