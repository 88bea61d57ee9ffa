import pytest

from quicklink.core.observability import normalize_endpoint


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/api/url/info/abc123", "/api/url/info/{short_code}"),
        ("/api/analytics/link/abc123", "/api/analytics/link/{short_code}"),
        ("/api/analytics/link/abc123/detailed", "/api/analytics/link/{short_code}/detailed"),
        ("/api/analytics/devices/abc123", "/api/analytics/devices/{short_code}"),
        ("/api/admin/links/5f0c/toggle", "/api/admin/links/{id}/toggle"),
        ("/api/url/shorten", "/api/url/shorten"),
        ("/health", "/health"),
        ("/abc123", "/{short_code}"),
    ],
)
def test_normalize_endpoint(path, expected):
    assert normalize_endpoint(path) == expected


async def test_metrics_endpoint_reports_redirects(client):
    await client.post("/api/url/shorten", json={"originalUrl": "https://example.com/", "customAlias": "metric"})
    await client.get("/metric")

    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "redirects_total" in response.text
    assert "clicks_recorded_total" in response.text
