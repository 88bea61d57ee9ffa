"""SQLAlchemy models."""

from quicklink.models.click import Click
from quicklink.models.link import Link

__all__ = ["Click", "Link"]
