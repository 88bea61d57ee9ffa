"""Link SQLAlchemy model."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quicklink.core.clock import utcnow
from quicklink.core.database import Base

if TYPE_CHECKING:
    from quicklink.models.click import Click


class Link(Base):
    """A short code mapped to an original URL."""

    __tablename__ = "links"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    short_code: Mapped[str] = mapped_column(
        String(15),
        unique=True,
        nullable=False,
        index=True,
        comment="Short code for the URL (e.g., 'abc123' or 'my-alias')",
    )
    original_url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Sanitized URL to redirect to",
    )
    description: Mapped[str] = mapped_column(
        String(200),
        default="",
        nullable=False,
    )
    is_custom: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="Whether the short code was a caller-supplied alias",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="Inactive links resolve as not found",
    )
    click_count: Mapped[int] = mapped_column(
        default=0,
        nullable=False,
        comment="Cached click count; the clicks table is the source of truth",
    )
    last_clicked_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        nullable=True,
    )
    qr_code_generated: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        nullable=True,
        comment="Optional expiration timestamp (UTC)",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    clicks: Mapped[list["Click"]] = relationship(
        back_populates="link",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Link {self.short_code} -> {self.original_url[:50]}>"

    def expired_at(self, now: datetime) -> bool:
        """Whether the link is past its expiration at `now`."""
        return self.expires_at is not None and now > self.expires_at

    @property
    def is_expired(self) -> bool:
        """Check if the link has expired."""
        return self.expired_at(utcnow())
