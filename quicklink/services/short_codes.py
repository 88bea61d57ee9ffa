"""Short code generation and custom alias validation."""

import re
import secrets
import string

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quicklink.core.exceptions import AliasInvalid
from quicklink.models.link import Link

# Characters for random short code generation (base62)
SHORT_CODE_CHARS = string.ascii_lowercase + string.ascii_uppercase + string.digits
SHORT_CODE_LENGTH = 6

ALIAS_PATTERN = re.compile(r"[A-Za-z0-9_-]{3,15}")

# Paths served by the application itself
RESERVED_CODES = frozenset({"api", "health", "metrics", "docs", "redoc"})


def generate_short_code(length: int = SHORT_CODE_LENGTH) -> str:
    """Generate a random short code using base62 characters."""
    return "".join(secrets.choice(SHORT_CODE_CHARS) for _ in range(length))


def validate_alias(alias: str) -> str:
    """Return the alias unchanged if usable as a short code, else raise AliasInvalid."""
    if not ALIAS_PATTERN.fullmatch(alias):
        raise AliasInvalid()
    if alias.lower() in RESERVED_CODES:
        raise AliasInvalid(f"'{alias}' is reserved")
    return alias


async def is_short_code_available(session: AsyncSession, short_code: str) -> bool:
    """Check if a short code is available (not already used)."""
    result = await session.execute(
        select(Link.id).where(Link.short_code == short_code)
    )
    return result.scalar_one_or_none() is None
