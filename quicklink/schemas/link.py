"""Link Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from quicklink.core.clock import to_naive_utc
from quicklink.core.config import full_short_url
from quicklink.models.link import Link
from quicklink.schemas.analytics import LinkSummary


class _RequestModel(BaseModel):
    """Accepts both snake_case and camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LinkCreate(_RequestModel):
    """Schema for creating a new link.

    The URL is kept as a string here; sanitizing (adding a missing scheme,
    canonicalizing) happens in the link service.
    """

    original_url: str = Field(description="The URL to shorten")
    custom_alias: str | None = Field(default=None, description="Optional custom short code")
    description: str | None = Field(default=None, max_length=200)
    expiration: datetime | None = Field(default=None, description="Optional expiration time")

    @field_validator("expiration")
    @classmethod
    def normalize_expiration(cls, v: datetime | None) -> datetime | None:
        return to_naive_utc(v)


class LinkUpdate(_RequestModel):
    """Schema for updating a link. Unset fields are left untouched."""

    description: str | None = Field(default=None, max_length=200)
    expiration: datetime | None = None

    @field_validator("expiration")
    @classmethod
    def normalize_expiration(cls, v: datetime | None) -> datetime | None:
        return to_naive_utc(v)


class LinkResponse(BaseModel):
    """Schema for link response."""

    id: UUID
    short_code: str
    short_url: str
    original_url: str
    description: str
    is_custom: bool
    is_active: bool
    click_count: int
    last_clicked_at: datetime | None
    expires_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_link(cls, link: Link, base_url: str) -> "LinkResponse":
        return cls(
            id=link.id,
            short_code=link.short_code,
            short_url=full_short_url(base_url, link.short_code),
            original_url=link.original_url,
            description=link.description,
            is_custom=link.is_custom,
            is_active=link.is_active,
            click_count=link.click_count,
            last_clicked_at=link.last_clicked_at,
            expires_at=link.expires_at,
            created_at=link.created_at,
            updated_at=link.updated_at,
        )


class LinkUpdateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    short_code: str
    description: str
    expires_at: datetime | None
    updated_at: datetime


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class BulkShortenRequest(_RequestModel):
    """Up to 100 raw URLs; each is validated individually."""

    urls: list[str] = Field(min_length=1, max_length=100)
    prefix: str | None = Field(
        default=None,
        min_length=2,
        max_length=10,
        pattern=r"^[A-Za-z0-9_-]+$",
        description="Shared prefix; codes become '<prefix>-<position>'",
    )


class BulkShortenItem(BaseModel):
    index: int
    original_url: str
    short_code: str
    short_url: str


class BulkShortenError(BaseModel):
    index: int
    url: str
    error: str = Field(description="Error code: InvalidUrl or CodeTaken")
    message: str


class BulkShortenResponse(BaseModel):
    processed: int
    failed: int
    results: list[BulkShortenItem]
    errors: list[BulkShortenError]


class QRCodeResponse(BaseModel):
    qr_code: str = Field(description="PNG image as a data URL")
    short_url: str


class LinkPreview(BaseModel):
    """Link destination with its click summary, shown before visiting."""

    short_code: str
    short_url: str
    original_url: str
    description: str
    click_count: int
    created_at: datetime
    analytics: LinkSummary
