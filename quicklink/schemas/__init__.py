"""Pydantic schemas."""

from quicklink.schemas.click import ClickContext
from quicklink.schemas.link import (
    BulkShortenError,
    BulkShortenItem,
    BulkShortenRequest,
    BulkShortenResponse,
    LinkCreate,
    LinkPreview,
    LinkResponse,
    LinkUpdate,
    LinkUpdateResponse,
    MessageResponse,
    QRCodeResponse,
)

__all__ = [
    "BulkShortenError",
    "BulkShortenItem",
    "BulkShortenRequest",
    "BulkShortenResponse",
    "ClickContext",
    "LinkCreate",
    "LinkPreview",
    "LinkResponse",
    "LinkUpdate",
    "LinkUpdateResponse",
    "MessageResponse",
    "QRCodeResponse",
]
