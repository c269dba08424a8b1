"""
Integration Tests for the MCP Service

Tests:
- Service info and health
- Every tool through POST /mcp/tools/{tool}
- Success/failure envelopes and unknown endpoints
- Resources
"""

import pytest


async def call(mcp_client, tool, body):
    return await mcp_client.post(f"/mcp/tools/{tool}", json=body)


@pytest.fixture
async def pantry(mcp_client, user, categories):
    """Three foods for alice: milk expiring tomorrow, old natto, fresh cabbage."""
    foods = {}
    for name, category, purchase, expiry, location in [
        ("牛乳", "乳製品", "2024-01-20", "2024-01-21", "room_temp"),
        ("納豆", "その他", "2024-01-10", "2024-01-18", "fridge"),
        ("キャベツ", "野菜", "2024-01-20", "2024-02-20", "fridge"),
    ]:
        response = await call(mcp_client, "add_food_item", {
            "user_id": user.id,
            "name": name,
            "category_id": categories[category],
            "quantity": 1,
            "unit": "個",
            "purchase_date": purchase,
            "expiry_date": expiry,
            "storage_location": location,
            "barcode": f"490000000000{len(foods)}",
        })
        assert response.status_code == 200, response.text
        foods[name] = response.json()["data"]
    return foods


# ============================================================================
# Service
# ============================================================================

class TestService:

    async def test_info(self, mcp_client):
        response = await mcp_client.get("/mcp/info")

        data = response.json()
        assert response.status_code == 200
        assert len(data["capabilities"]["tools"]) == 8
        assert "get_expiry_alerts" in data["capabilities"]["tools"]
        assert data["capabilities"]["resources"] == ["food-categories://list", "storage-tips://list"]

    async def test_health(self, mcp_client):
        response = await mcp_client.get("/health")

        data = response.json()
        assert data["status"] == "OK"
        assert data["service"] == "MCP Server"
        assert data["database"] == "healthy"

    async def test_unknown_endpoint(self, mcp_client):
        response = await mcp_client.get("/mcp/nothing-here")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "MCP endpoint /mcp/nothing-here not found"
        assert "GET /mcp/info" in body["available_endpoints"]

    async def test_unknown_tool(self, mcp_client):
        response = await call(mcp_client, "make_coffee", {})

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Unknown tool: make_coffee"}

    async def test_invalid_json(self, mcp_client):
        response = await mcp_client.post(
            "/mcp/tools/scan_barcode", content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["success"] is False

    async def test_invalid_input(self, mcp_client):
        response = await call(mcp_client, "get_expiry_alerts", {"days_ahead": 3})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "user_id" in body["details"]

    async def test_unknown_user(self, mcp_client):
        response = await call(mcp_client, "get_food_inventory", {"user_id": 999})

        assert response.status_code == 404
        assert response.json()["error"] == "User not found"


# ============================================================================
# Inventory Tools
# ============================================================================

class TestInventoryTools:

    async def test_add_food_item(self, pantry):
        milk = pantry["牛乳"]

        assert milk["category_name"] == "乳製品"
        assert milk["days_until_expiry"] == 1
        assert milk["expiry_status"] == "expiring_soon"

    async def test_add_food_item_validation(self, mcp_client, user, categories):
        response = await call(mcp_client, "add_food_item", {
            "user_id": user.id,
            "name": "牛乳",
            "category_id": categories["乳製品"],
            "quantity": 1,
            "unit": "本",
            "purchase_date": "2024-01-20",
            "expiry_date": "2024-01-19",
        })

        assert response.status_code == 400
        assert "expiry_date" in response.json()["details"]

    async def test_inventory(self, mcp_client, user, pantry):
        response = await call(mcp_client, "get_food_inventory", {"user_id": user.id})

        data = response.json()["data"]
        assert [food["name"] for food in data] == ["納豆", "牛乳", "キャベツ"]

    async def test_inventory_expiring_soon(self, mcp_client, user, pantry):
        response = await call(mcp_client, "get_food_inventory", {"user_id": user.id, "expiring_soon": True})

        assert [food["name"] for food in response.json()["data"]] == ["納豆", "牛乳"]

    async def test_inventory_by_category(self, mcp_client, user, categories, pantry):
        response = await call(
            mcp_client, "get_food_inventory", {"user_id": user.id, "category_id": categories["野菜"]}
        )

        assert [food["name"] for food in response.json()["data"]] == ["キャベツ"]

    async def test_update_food_status(self, mcp_client, user, pantry):
        food_id = pantry["牛乳"]["id"]

        response = await call(mcp_client, "update_food_status", {"user_id": user.id, "food_id": food_id, "status": "consumed"})
        assert response.json()["data"]["status"] == "consumed"

        response = await call(mcp_client, "update_food_status", {"user_id": user.id, "food_id": food_id, "status": "disposed"})
        assert response.status_code == 409

    async def test_update_food_status_rejects_active(self, mcp_client, user, pantry):
        response = await call(
            mcp_client, "update_food_status",
            {"user_id": user.id, "food_id": pantry["牛乳"]["id"], "status": "active"},
        )

        assert response.status_code == 400

    async def test_update_someone_elses_food(self, mcp_client, other_user, pantry):
        response = await call(
            mcp_client, "update_food_status",
            {"user_id": other_user.id, "food_id": pantry["牛乳"]["id"], "status": "consumed"},
        )

        assert response.status_code == 404

    async def test_expiry_alerts(self, mcp_client, user, pantry):
        response = await call(mcp_client, "get_expiry_alerts", {"user_id": user.id})

        alerts = response.json()["data"]
        assert [alert["name"] for alert in alerts] == ["納豆", "牛乳"]
        natto, milk = alerts
        assert natto["days_until_expiry"] == -2
        assert natto["urgency"] == "high"
        assert milk["suggestions"] == ["そのまま飲用", "シリアルと一緒に", "コーヒーに追加"]

    async def test_expiry_alerts_zero_days_ahead(self, mcp_client, user, pantry):
        response = await call(mcp_client, "get_expiry_alerts", {"user_id": user.id, "days_ahead": 0})

        assert [alert["name"] for alert in response.json()["data"]] == ["納豆"]


# ============================================================================
# Recipe, Shopping and Storage Tools
# ============================================================================

class TestOtherTools:

    async def test_recipe_suggestions_for_ingredients(self, mcp_client):
        response = await call(mcp_client, "get_recipe_suggestions", {"ingredients": ["なす"]})

        assert [recipe["name"] for recipe in response.json()["data"]] == ["なすの味噌炒め", "なすの揚げ浸し"]

    async def test_recipe_suggestions_from_inventory(self, mcp_client, user, pantry):
        response = await call(mcp_client, "get_recipe_suggestions", {"user_id": user.id, "max_recipes": 2})

        assert [recipe["name"] for recipe in response.json()["data"]] == ["ホットミルク", "ミルクプリン"]

    @pytest.mark.parametrize("body", [{}, {"ingredients": []}])
    async def test_recipe_suggestions_without_ingredients(self, mcp_client, body):
        response = await call(mcp_client, "get_recipe_suggestions", body)

        assert response.status_code == 200
        recipes = response.json()["data"]
        assert [recipe["name"] for recipe in recipes] == ["簡単サラダ"]
        assert recipes[0]["ingredients"] == ["ドレッシング"]

    async def test_padded_ingredient_gets_fallback(self, mcp_client, user, pantry):
        anonymous = await call(mcp_client, "get_recipe_suggestions", {"ingredients": ["牛乳 "]})
        for_user = await call(
            mcp_client, "get_recipe_suggestions", {"ingredients": ["牛乳 "], "user_id": user.id}
        )

        assert [recipe["name"] for recipe in anonymous.json()["data"]] == ["簡単サラダ"]
        assert [recipe["name"] for recipe in for_user.json()["data"]] == ["簡単サラダ"]

    async def test_generate_shopping_list(self, mcp_client, user, pantry):
        await call(
            mcp_client, "update_food_status",
            {"user_id": user.id, "food_id": pantry["納豆"]["id"], "status": "consumed"},
        )

        response = await call(mcp_client, "generate_shopping_list", {"user_id": user.id})

        data = response.json()["data"]
        assert [item["item_name"] for item in data["items"]] == ["納豆"]
        assert data["completed"] is False

    async def test_scan_known_barcode(self, mcp_client, user, pantry):
        response = await call(mcp_client, "scan_barcode", {"barcode": "4900000000000", "user_id": user.id})

        data = response.json()["data"]
        assert data["known"] is True
        assert data["name"] == "牛乳"
        assert data["category"] == "乳製品"
        assert data["suggested_expiry_days"] == 5
        assert data["storage_location"] == "fridge"

    async def test_scan_unknown_barcode(self, mcp_client):
        response = await call(mcp_client, "scan_barcode", {"barcode": "1234567890123"})

        data = response.json()["data"]
        assert data["known"] is False
        assert data["category"] == "食品"
        assert data["suggested_expiry_days"] == 7
        assert data["storage_advice"] == ["冷蔵庫で保存してください"]

    async def test_storage_advice(self, mcp_client):
        response = await call(mcp_client, "get_storage_advice", {"food_name": "トマト"})

        data = response.json()["data"]
        assert data["found"] is True
        assert data["tip"]["storage_method"] == "room_temp"
        assert data["suggested_expiry_date"] == "2024-01-27"


# ============================================================================
# Resources
# ============================================================================

class TestResources:

    async def test_food_categories(self, mcp_client):
        response = await mcp_client.get("/mcp/resources/food-categories")

        body = response.json()
        assert body["success"] is True
        assert "野菜" in [category["name"] for category in body["data"]]

    async def test_storage_tips_grouped_by_category(self, mcp_client):
        response = await mcp_client.get("/mcp/resources/storage-tips")

        groups = {group["category"]: group["tips"] for group in response.json()["data"]}
        assert "13度以下では低温障害" in groups["果物"]
        assert len(groups["肉類"]) == 9
