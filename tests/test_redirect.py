from datetime import timedelta

import pytest

from quicklink.core.clock import utcnow
from factories import make_link

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


async def create(client, alias, **body):
    response = await client.post(
        "/api/url/shorten",
        json={"originalUrl": "https://example.com/landing", "customAlias": alias, **body},
    )
    assert response.status_code == 201
    return response.json()


class TestRedirect:
    """Test the public redirect endpoint"""

    async def test_redirects_to_original_url(self, client):
        await create(client, "go0001")

        response = await client.get("/go0001")
        assert response.status_code == 301
        assert response.headers["location"] == "https://example.com/landing"

    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com/search?q={a}",
            "https://example.com/a|b",
            "https://example.com/p?x=a^b",
        ],
    )
    async def test_location_matches_stored_url_exactly(self, client, url):
        created = await create(client, "exact1", originalUrl=url)

        response = await client.get("/exact1")
        assert response.status_code == 301
        assert response.headers["location"] == created["original_url"]

    async def test_unknown_code(self, client):
        response = await client.get("/nope42")
        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"

    async def test_inactive_link(self, client):
        created = await create(client, "go0002")
        await client.put(f"/api/admin/links/{created['id']}/toggle")

        response = await client.get("/go0002")
        assert response.status_code == 404

    async def test_expired_link(self, client):
        await create(client, "go0003", expiration="2020-01-01T00:00:00Z")

        response = await client.get("/go0003")
        assert response.status_code == 410
        assert response.json()["error"] == "Expired"

    async def test_expired_link_in_database(self, client, session_factory):
        async with session_factory() as session:
            await make_link(session, "go0004", expires_at=utcnow() - timedelta(minutes=1))
            await session.commit()

        response = await client.get("/go0004")
        assert response.status_code == 410

    async def test_each_redirect_is_counted(self, client):
        await create(client, "go0005")

        for _ in range(3):
            assert (await client.get("/go0005")).status_code == 301

        info = (await client.get("/api/url/info/go0005")).json()
        assert info["click_count"] == 3
        assert info["last_clicked_at"] is not None

        analytics = (await client.get("/api/analytics/link/go0005")).json()
        assert analytics["stats"]["total_clicks"] == 3
        assert sum(point["clicks"] for point in analytics["daily"]) == 3

    async def test_unknown_redirect_does_not_record(self, client):
        await client.get("/nope43")

        dashboard = (await client.get("/api/analytics/dashboard")).json()
        assert dashboard["overview"]["total_clicks"] == 0

    async def test_redirect_carries_security_headers(self, client):
        await create(client, "go0006")

        response = await client.get("/go0006")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert "X-Request-ID" in response.headers


class TestClickDetails:
    """Test what a redirect records about the visitor"""

    async def test_request_metadata_is_recorded(self, client):
        await create(client, "meta01")

        await client.get(
            "/meta01",
            headers={
                "User-Agent": CHROME_WINDOWS,
                "Referer": "https://news.example.org/post",
                "X-Forwarded-For": "203.0.113.7, 10.0.0.1",
            },
        )

        recent = (await client.get("/api/analytics/recent-clicks")).json()
        assert len(recent) == 1

        click = recent[0]
        assert click["short_code"] == "meta01"
        assert click["ip_address"] == "203.0.113.***"
        assert click["device"] == "Desktop"
        assert click["browser"] == "Chrome"
        assert click["os"] == "Windows"
        assert click["referrer"] == "https://news.example.org/post"

    async def test_garbage_forwarded_for_still_records_click(self, client):
        await create(client, "meta04")

        response = await client.get("/meta04", headers={"X-Forwarded-For": "z" * 60})
        assert response.status_code == 301

        recent = (await client.get("/api/analytics/recent-clicks")).json()
        assert len(recent) == 1
        assert recent[0]["ip_address"] == "127.0.0.***"

    async def test_missing_referrer_is_direct(self, client):
        await create(client, "meta02")
        await client.get("/meta02")
        await client.get("/meta02", headers={"Referer": "https://ref.example.com/"})
        await client.get("/meta02", headers={"Referer": ""})

        response = await client.get("/api/analytics/referrers/meta02")
        assert response.status_code == 200

        data = response.json()
        assert data["total_clicks"] == 3
        assert data["items"][0] == {"name": "Direct", "clicks": 2, "percentage": 66.7}
        assert data["items"][1]["name"] == "https://ref.example.com/"

    async def test_device_breakdown(self, client):
        await create(client, "meta03")
        await client.get("/meta03", headers={"User-Agent": CHROME_WINDOWS})
        await client.get("/meta03", headers={"User-Agent": "Mozilla/5.0 (iPad; CPU OS 17_0)"})
        await client.get("/meta03", headers={"User-Agent": CHROME_WINDOWS})

        data = (await client.get("/api/analytics/devices/meta03")).json()
        assert [(item["name"], item["clicks"]) for item in data["items"]] == [
            ("Desktop", 2),
            ("Tablet", 1),
        ]
