import csv
import io
import uuid

import pytest


async def create(client, alias, url="https://example.com/", **body):
    response = await client.post(
        "/api/url/shorten",
        json={"originalUrl": url, "customAlias": alias, **body},
    )
    assert response.status_code == 201
    return response.json()


class TestListLinks:
    """Test the admin link listing"""

    async def test_pagination(self, client):
        for i in range(5):
            await create(client, f"page-{i}")

        response = await client.get("/api/admin/links", params={"page": 2, "limit": 2})
        assert response.status_code == 200

        data = response.json()
        assert data["total"] == 5
        assert data["page"] == 2
        assert data["page_size"] == 2
        assert data["pages"] == 3
        assert len(data["items"]) == 2

    async def test_search(self, client):
        await create(client, "shop01", url="https://shop.example.com/")
        await create(client, "blog01", url="https://blog.example.com/", description="Weekly SHOP notes")
        await create(client, "docs01", url="https://docs.example.com/")

        data = (await client.get("/api/admin/links", params={"search": "shop"})).json()

        assert data["total"] == 2
        assert {item["short_code"] for item in data["items"]} == {"shop01", "blog01"}

    async def test_search_treats_wildcards_literally(self, client):
        await create(client, "wild01")

        data = (await client.get("/api/admin/links", params={"search": "%"})).json()
        assert data["total"] == 0

    async def test_sort_by_click_count(self, client):
        await create(client, "sort01")
        await create(client, "sort02")
        await client.get("/sort02")

        data = (
            await client.get("/api/admin/links", params={"sort_by": "click_count", "sort_order": "desc"})
        ).json()
        assert data["items"][0]["short_code"] == "sort02"

    async def test_empty(self, client):
        data = (await client.get("/api/admin/links")).json()
        assert data["total"] == 0
        assert data["pages"] == 0

    async def test_invalid_sort_field(self, client):
        response = await client.get("/api/admin/links", params={"sort_by": "secret"})
        assert response.status_code == 400


class TestToggleAndDelete:
    """Test link state changes by ID"""

    async def test_toggle_flips_state(self, client):
        created = await create(client, "flip01")

        first = (await client.put(f"/api/admin/links/{created['id']}/toggle")).json()
        second = (await client.put(f"/api/admin/links/{created['id']}/toggle")).json()

        assert first["is_active"] is False
        assert first["message"] == "Link deactivated successfully"
        assert second["is_active"] is True
        assert (await client.get("/flip01")).status_code == 301

    async def test_toggle_unknown_id(self, client):
        response = await client.put(f"/api/admin/links/{uuid.uuid4()}/toggle")
        assert response.status_code == 404

    async def test_toggle_malformed_id(self, client):
        response = await client.put("/api/admin/links/not-a-uuid/toggle")
        assert response.status_code == 400

    async def test_delete_by_id_removes_clicks(self, client):
        created = await create(client, "rm0001")
        await client.get("/rm0001")

        response = await client.delete(f"/api/admin/links/{created['id']}")
        assert response.status_code == 200

        assert (await client.get("/api/url/info/rm0001")).status_code == 404
        dashboard = (await client.get("/api/analytics/dashboard")).json()
        assert dashboard["overview"]["total_clicks"] == 0

    async def test_delete_unknown_id(self, client):
        response = await client.delete(f"/api/admin/links/{uuid.uuid4()}")
        assert response.status_code == 404


class TestCleanupExpired:
    """Test bulk removal of expired links"""

    async def test_removes_expired_links_and_their_clicks(self, client):
        await create(client, "exp001", expiration="2999-01-01T00:00:00Z")
        await create(client, "keep01")
        await client.get("/exp001")
        await client.get("/keep01")
        await client.put("/api/url/update/exp001", json={"expiration": "2020-01-01T00:00:00Z"})

        response = await client.post("/api/admin/cleanup-expired")
        assert response.status_code == 200

        data = response.json()
        assert data["links_deleted"] == 1
        assert data["clicks_deleted"] == 1

        assert (await client.get("/api/url/info/exp001")).status_code == 404
        assert (await client.get("/api/url/info/keep01")).status_code == 200

    async def test_nothing_to_clean(self, client):
        data = (await client.post("/api/admin/cleanup-expired")).json()
        assert data["links_deleted"] == 0
        assert data["clicks_deleted"] == 0


class TestExportAndStats:
    """Test CSV export and system statistics"""

    async def test_csv_export(self, client):
        await create(client, "csv001", description="Quarterly, report")

        response = await client.get("/api/admin/export/csv")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]

        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows[0] == [
            "Short Code",
            "Original URL",
            "Description",
            "Clicks",
            "Created At",
            "Last Clicked",
            "Expiration",
            "Is Active",
        ]
        assert rows[1][:4] == ["csv001", "https://example.com/", "Quarterly, report", "0"]
        assert rows[1][7] == "true"

    async def test_system_stats(self, client):
        await create(client, "stat01")
        await create(client, "stat02", expiration="2020-01-01T00:00:00Z")
        await client.get("/stat01")
        await client.get("/stat01")

        response = await client.get("/api/admin/stats")
        assert response.status_code == 200

        data = response.json()
        assert data["overview"]["total_links"] == 2
        assert data["overview"]["active_links"] == 2
        assert data["overview"]["expired_links"] == 1
        assert data["overview"]["total_clicks"] == 2
        assert data["overview"]["avg_clicks_per_link"] == 1
        assert data["growth"]["links_this_week"] == 2
        assert data["demographics"]["top_devices"][0]["clicks"] == 2
        assert sum(point["clicks"] for point in data["daily_clicks"]) == 2

    @pytest.mark.parametrize("path", ["/api/admin/stats", "/api/analytics/dashboard"])
    async def test_stats_on_empty_database(self, client, path):
        response = await client.get(path)
        assert response.status_code == 200
