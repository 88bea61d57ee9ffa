"""Pydantic schemas for the admin API."""

from uuid import UUID

from pydantic import BaseModel, Field

from quicklink.schemas.analytics import CategoryStats, DailyPoint
from quicklink.schemas.link import LinkResponse


class LinkListResponse(BaseModel):
    """Paginated list of links."""

    items: list[LinkResponse]
    total: int
    page: int
    page_size: int
    pages: int


class SystemOverview(BaseModel):
    total_links: int
    active_links: int
    expired_links: int
    total_clicks: int
    avg_clicks_per_link: int


class SystemGrowth(BaseModel):
    links_today: int
    links_this_week: int
    links_this_month: int
    link_growth: float = Field(description="Links this month vs last month, in percent")
    clicks_today: int
    clicks_yesterday: int
    clicks_this_week: int
    clicks_this_month: int
    click_growth: float = Field(description="Clicks this month vs last month, in percent")


class Demographics(BaseModel):
    top_countries: list[CategoryStats]
    top_devices: list[CategoryStats]


class SystemStats(BaseModel):
    overview: SystemOverview
    growth: SystemGrowth
    demographics: Demographics
    daily_clicks: list[DailyPoint]


class ToggleResponse(BaseModel):
    id: UUID
    short_code: str
    is_active: bool
    message: str


class CleanupResponse(BaseModel):
    links_deleted: int
    clicks_deleted: int
    message: str


class ReconcileResponse(BaseModel):
    links_checked: int
    links_updated: int
    duration_seconds: float
