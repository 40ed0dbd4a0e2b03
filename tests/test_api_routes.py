"""
API Route Tests
===============

Flask test client against an app wired to a tmp_path store. Scraping and
aggregation are patched at the orchestrator / scraper module level.
"""

import sqlite3
from unittest.mock import patch

import pytest

from menu_models import DayMenu, Ingredient, MenuStatus, ScrapedPage
from orchestrator import BatchOutcome

WEEK = "2026-02-16"
URL = "https://www.lettuceclub.net/recipe/kondate/detail/k20260216/"


@pytest.fixture
def client(store):
    from panel.app import create_app
    app = create_app(store=store)
    app.config["TESTING"] = True
    return app.test_client()


def _saved_payload():
    return {
        "weekKey": WEEK,
        "menus": [{"date": "20260216", "dayOfWeek": "月", "url": URL, "status": "success",
                   "dishes": [{"type": "main", "title": "肉じゃが", "url": "", "imageUrl": ""}],
                   "rawIngredients": "【月 曜日: 肉じゃが献立】\nじゃがいも 2個"}],
        "activeDayKeys": ["20260216"],
        "ingredients": [{"name": "じゃがいも", "amount": "2個", "category": "野菜・きのこ", "usedDays": ["月"]}],
    }


# =============================================================================
# /api/aggregate
# =============================================================================

class TestAggregateRoute:

    @pytest.mark.readonly
    def test_full_mode(self, client):
        outcome = BatchOutcome(
            menus=[DayMenu(date="20260216", day_of_week="月", url=URL, status=MenuStatus.SUCCESS)],
            ingredients=[Ingredient(name="じゃがいも", amount="2個", category="野菜・きのこ", used_days=["月"])],
        )

        async def fake_batch(urls):
            assert urls == [URL]
            return outcome

        with patch("orchestrator.run_full_batch", side_effect=fake_batch):
            response = client.post("/api/aggregate", json={"urls": [URL]})

        assert response.status_code == 200
        body = response.get_json()
        assert body["ingredients"][0]["usedDays"] == ["月"]
        assert body["menus"][0]["dayOfWeek"] == "月"

    @pytest.mark.readonly
    def test_nothing_to_aggregate(self, client):
        outcome = BatchOutcome(
            menus=[DayMenu(date="", day_of_week="", url=URL, status=MenuStatus.FAILED)],
            nothing_to_aggregate=True,
        )

        async def fake_batch(urls):
            return outcome

        with patch("orchestrator.run_full_batch", side_effect=fake_batch):
            response = client.post("/api/aggregate", json={"urls": [URL]})

        assert response.status_code == 400
        body = response.get_json()
        assert body["error"] == "No ingredients found to aggregate"
        assert body["menus"][0]["status"] == "failed"

    @pytest.mark.readonly
    @pytest.mark.parametrize("payload", [{}, {"urls": "not-a-list"}, {"urls": [1, 2]}])
    def test_urls_required(self, client, payload):
        response = client.post("/api/aggregate", json=payload)
        assert response.status_code == 400

    @pytest.mark.readonly
    def test_recompute_mode(self, client):
        blocks = ["【月 曜日: 魚の煮付け】\n魚,醤油"]
        outcome = BatchOutcome(ingredients=[Ingredient(name="魚", category="魚・海鮮", used_days=["月"])])

        async def fake_recompute(received):
            assert received == blocks
            return outcome

        with patch("orchestrator.recompute_ingredients", side_effect=fake_recompute), \
                patch("orchestrator.run_full_batch") as full:
            response = client.post("/api/aggregate", json={"ingredientsData": blocks})

        assert response.status_code == 200
        assert response.get_json() == {"ingredients": [
            {"name": "魚", "amount": "", "category": "魚・海鮮", "usedDays": ["月"]}]}
        full.assert_not_called()

    @pytest.mark.readonly
    def test_recompute_drops_null_blocks(self, client):
        block = "【月 曜日: 魚の煮付け】\n魚,醤油"
        outcome = BatchOutcome(ingredients=[Ingredient(name="魚", category="魚・海鮮", used_days=["月"])])

        async def fake_recompute(received):
            assert received == [block]
            return outcome

        with patch("orchestrator.recompute_ingredients", side_effect=fake_recompute), \
                patch("orchestrator.run_full_batch") as full:
            response = client.post("/api/aggregate", json={"ingredientsData": [None, block, None]})

        assert response.status_code == 200
        assert response.get_json()["ingredients"][0]["name"] == "魚"
        full.assert_not_called()

    @pytest.mark.readonly
    def test_recompute_with_only_nulls(self, client):
        response = client.post("/api/aggregate", json={"ingredientsData": [None, None]})
        assert response.status_code == 200
        assert response.get_json() == {"error": "No ingredients found to aggregate", "ingredients": []}

    @pytest.mark.readonly
    def test_recompute_with_empty_text(self, client):
        response = client.post("/api/aggregate", json={"ingredientsData": ["", " "]})
        assert response.status_code == 200
        assert response.get_json() == {"error": "No ingredients found to aggregate", "ingredients": []}

    @pytest.mark.readonly
    def test_unexpected_failure(self, client):
        with patch("orchestrator.run_full_batch", side_effect=RuntimeError("boom")):
            response = client.post("/api/aggregate", json={"urls": [URL]})
        assert response.status_code == 500


# =============================================================================
# /api/scrape
# =============================================================================

class TestScrapeRoute:

    @pytest.mark.readonly
    def test_url_required(self, client):
        assert client.get("/api/scrape").status_code == 400

    @pytest.mark.readonly
    def test_failed_scrape(self, client):
        with patch("menu_scraper.scrape_menu_page", return_value=None):
            response = client.get("/api/scrape", query_string={"url": URL})
        assert response.status_code == 500
        assert "error" in response.get_json()

    @pytest.mark.readonly
    def test_scraped_page(self, client):
        page = ScrapedPage(url=URL, date_str="20260216", title="肉じゃが献立", raw_ingredients="じゃがいも 2個")
        with patch("menu_scraper.scrape_menu_page", return_value=page):
            response = client.get("/api/scrape", query_string={"url": URL})
        assert response.status_code == 200
        assert response.get_json()["dateStr"] == "20260216"


# =============================================================================
# /api/list
# =============================================================================

class TestListRoutes:

    @pytest.mark.readonly
    def test_get_requires_week_key(self, client):
        assert client.get("/api/list").status_code == 400

    @pytest.mark.readonly
    def test_get_not_found(self, client):
        response = client.get("/api/list", query_string={"weekKey": WEEK})
        assert response.get_json() == {"found": False}

    @pytest.mark.creates_data
    def test_save_then_get(self, client):
        saved = client.post("/api/list", json=_saved_payload())
        assert saved.status_code == 200
        body = saved.get_json()
        assert body["success"] is True
        assert body["ingredients"][0]["id"]
        assert body["ingredients"][0]["isChecked"] is False

        response = client.get("/api/list", query_string={"weekKey": WEEK})
        data = response.get_json()
        assert data["found"] is True
        assert data["data"]["activeDayKeys"] == ["20260216"]
        assert data["data"]["menus"][0]["dishes"][0]["title"] == "肉じゃが"
        assert data["data"]["ingredients"] == body["ingredients"]

    @pytest.mark.readonly
    @pytest.mark.parametrize("missing", ["weekKey", "menus", "activeDayKeys", "ingredients"])
    def test_save_requires_all_fields(self, client, missing):
        payload = _saved_payload()
        del payload[missing]
        assert client.post("/api/list", json=payload).status_code == 400

    @pytest.mark.readonly
    def test_store_error(self, client, store):
        with patch.object(store, "get_week", side_effect=sqlite3.OperationalError("locked")):
            response = client.get("/api/list", query_string={"weekKey": WEEK})
        assert response.status_code == 500


# =============================================================================
# /api/list/check
# =============================================================================

class TestCheckRoute:

    @pytest.mark.creates_data
    def test_toggle(self, client):
        item_id = client.post("/api/list", json=_saved_payload()).get_json()["ingredients"][0]["id"]

        response = client.patch("/api/list/check", json={"itemId": item_id, "isChecked": True})

        assert response.status_code == 200
        body = response.get_json()
        assert body["success"] is True
        assert body["item"]["isChecked"] is True

    @pytest.mark.readonly
    @pytest.mark.parametrize("payload", [
        {"isChecked": True},
        {"itemId": "x"},
        {"itemId": "x", "isChecked": "yes"},
    ])
    def test_invalid_payload(self, client, payload):
        assert client.patch("/api/list/check", json=payload).status_code == 400

    @pytest.mark.readonly
    def test_unknown_item(self, client):
        response = client.patch("/api/list/check", json={"itemId": "missing", "isChecked": True})
        assert response.status_code == 404
