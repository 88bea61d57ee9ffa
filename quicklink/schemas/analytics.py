"""Pydantic schemas for analytics API responses."""

from datetime import date, datetime

from pydantic import BaseModel, Field


class DailyPoint(BaseModel):
    """Clicks on a single UTC calendar day."""

    date: date
    clicks: int
    unique_clicks: int = Field(description="Distinct client IPs that day")


class CategoryStats(BaseModel):
    """Click count for one category value (country, device, browser, referrer)."""

    name: str
    clicks: int
    percentage: float = Field(description="Percentage of the link's total clicks")


class LinkSummary(BaseModel):
    """All-time totals for a link, derived from its click log."""

    total_clicks: int
    unique_clicks: int = Field(description="Distinct client IPs")
    countries: int = Field(description="Distinct countries")
    devices: int = Field(description="Distinct device types")
    browsers: int = Field(description="Distinct browsers")
    first_click: datetime | None = None
    last_click: datetime | None = None


class LinkInfo(BaseModel):
    short_code: str
    original_url: str
    created_at: datetime


class LinkAnalyticsResponse(BaseModel):
    """Summary plus the daily click series for one link."""

    link: LinkInfo
    days: int
    stats: LinkSummary
    daily: list[DailyPoint]


class DetailedAnalyticsResponse(BaseModel):
    """Categorical breakdowns for one link."""

    short_code: str
    total_clicks: int
    geographic: list[CategoryStats]
    devices: list[CategoryStats]
    browsers: list[CategoryStats]
    referrers: list[CategoryStats]


class BreakdownResponse(BaseModel):
    """A single categorical breakdown for one link."""

    short_code: str
    total_clicks: int
    items: list[CategoryStats]


class DashboardOverview(BaseModel):
    total_links: int
    total_clicks: int
    clicks_today: int
    clicks_this_week: int = Field(description="Clicks in the last 7 days")
    clicks_this_month: int = Field(description="Clicks since the start of the month")
    avg_clicks_per_link: int
    link_growth: float = Field(description="Links created this month vs last month, in percent")
    click_growth: float = Field(description="Clicks this month vs last month, in percent")


class TopLink(BaseModel):
    short_code: str
    short_url: str
    original_url: str
    description: str
    click_count: int
    created_at: datetime
    last_clicked_at: datetime | None = None


class RecentClick(BaseModel):
    short_code: str
    original_url: str
    clicked_at: datetime
    ip_address: str | None = Field(default=None, description="Client IP with the last octet masked")
    country: str | None = None
    city: str | None = None
    device: str | None = None
    browser: str | None = None
    os: str | None = None
    referrer: str | None = None


class DashboardResponse(BaseModel):
    overview: DashboardOverview
    top_links: list[TopLink]
    recent_clicks: list[RecentClick]
