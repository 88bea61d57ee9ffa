"""Click SQLAlchemy model for storing raw click events."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quicklink.core.clock import utcnow
from quicklink.core.database import Base

if TYPE_CHECKING:
    from quicklink.models.link import Link


class Click(Base):
    """One successful resolution of a short link.

    Rows are append-only. Device, browser, OS and location are derived
    once when the row is written.
    """

    __tablename__ = "clicks"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    link_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("links.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    clicked_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
        index=True,
        comment="Timestamp when the click occurred (UTC)",
    )
    ip_address: Mapped[str | None] = mapped_column(
        String(45),
        nullable=True,
        comment="Client IP address",
    )
    user_agent: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="HTTP User-Agent header",
    )
    referrer: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="HTTP Referer header; NULL for direct visits",
    )
    country: Mapped[str | None] = mapped_column(
        String(2),
        nullable=True,
        comment="ISO 3166-1 alpha-2 country code (from GeoIP)",
    )
    city: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    device: Mapped[str | None] = mapped_column(String(16), nullable=True)
    browser: Mapped[str | None] = mapped_column(String(16), nullable=True)
    os: Mapped[str | None] = mapped_column(String(16), nullable=True)

    link: Mapped["Link"] = relationship(back_populates="clicks")

    __table_args__ = (
        Index("ix_clicks_link_id_clicked_at", "link_id", "clicked_at"),
    )

    def __repr__(self) -> str:
        return f"<Click {self.id} link={self.link_id} at={self.clicked_at}>"
