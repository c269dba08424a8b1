"""
Integration Tests for the Food Inventory Service

Tests:
- Validation and category checks on create
- Storage-based expiry extension (never shortens)
- Expiry alerts after mutations and their cleanup
- Status lifecycle, listing, statistics and search
"""

from datetime import date, timedelta

import pytest
from sqlalchemy import func, select

from foodkeeper.api.errors import ConflictError, NotFoundError, ValidationError
from foodkeeper.api.services import food_service, notification_service, preference_service
from foodkeeper.api.services.notification_service import sweep_expiry_alerts
from foodkeeper.shared.models import (
    AuditLog,
    FoodStatus,
    Notification,
    NotificationPriority,
    NotificationType,
    StorageLocation,
    Theme,
)


def food_data(category_id, today, name="謎の食材", days=10, **overrides):
    data = {
        "name": name,
        "category_id": category_id,
        "purchase_date": today,
        "expiry_date": today + timedelta(days=days),
        "quantity": 1,
        "unit": "個",
        "storage_location": StorageLocation.FRIDGE,
    }
    data.update(overrides)
    return data


async def notifications_for(session, food_id):
    result = await session.execute(select(Notification).where(Notification.food_id == food_id))
    return list(result.scalars().all())


# ============================================================================
# Create
# ============================================================================

class TestCreateFood:

    async def test_create_sets_active_status(self, session, user, categories, today):
        food = await food_service.create_food(
            session, user.id, food_data(categories["その他"], today), today=today
        )

        assert food.id is not None
        assert food.status == FoodStatus.ACTIVE
        assert food.expiry_date == today + timedelta(days=10)

    async def test_purchase_date_defaults_to_today(self, session, user, categories, today):
        data = food_data(categories["その他"], today)
        data["purchase_date"] = None

        food = await food_service.create_food(session, user.id, data, today=today)

        assert food.purchase_date == today

    async def test_expiry_before_purchase_rejected(self, session, user, categories, today):
        data = food_data(categories["その他"], today, days=-1)

        with pytest.raises(ValidationError) as exc_info:
            await food_service.create_food(session, user.id, data, today=today)

        assert exc_info.value.errors["expiry_date"] == ["Expiry date cannot be before purchase date"]

    async def test_collects_field_errors(self, session, user, categories, today):
        data = food_data(categories["その他"], today, name="  ", quantity=0, unit="")

        with pytest.raises(ValidationError) as exc_info:
            await food_service.create_food(session, user.id, data, today=today)

        assert set(exc_info.value.errors) == {"name", "quantity", "unit"}

    async def test_unknown_category(self, session, user, today):
        with pytest.raises(NotFoundError):
            await food_service.create_food(session, user.id, food_data(9999, today), today=today)

    async def test_create_is_audited(self, session, user, categories, today):
        food = await food_service.create_food(
            session, user.id, food_data(categories["その他"], today), today=today
        )

        result = await session.execute(
            select(AuditLog).where(AuditLog.entity_type == "food", AuditLog.entity_id == food.id)
        )
        entry = result.scalar_one()
        assert entry.action == "create"
        assert entry.new_values["name"] == "謎の食材"


# ============================================================================
# Storage-Adjusted Expiry
# ============================================================================

class TestStorageAdjustedExpiry:

    async def test_extends_when_storage_matches_tip(self, session, user, categories, today):
        # 牛乳 keeps 5 days in the fridge
        food = await food_service.create_food(
            session, user.id, food_data(categories["乳製品"], today, name="牛乳", days=2), today=today
        )

        assert food.expiry_date == today + timedelta(days=5)

    async def test_partial_name_match(self, session, user, categories, today):
        food = await food_service.create_food(
            session, user.id, food_data(categories["乳製品"], today, name="低脂肪牛乳", days=1), today=today
        )

        assert food.expiry_date == today + timedelta(days=5)

    async def test_no_change_when_storage_differs(self, session, user, categories, today):
        data = food_data(
            categories["乳製品"], today, name="牛乳", days=2, storage_location=StorageLocation.ROOM_TEMP
        )
        food = await food_service.create_food(session, user.id, data, today=today)

        assert food.expiry_date == today + timedelta(days=2)

    async def test_never_shortens(self, session, user, categories, today):
        # りんご keeps 30 days in the fridge
        food = await food_service.create_food(
            session, user.id, food_data(categories["果物"], today, name="りんご", days=60), today=today
        )

        assert food.expiry_date == today + timedelta(days=60)

    async def test_storage_change_on_update_extends(self, session, user, categories, today):
        # トマト keeps 7 days at room temperature
        food = await food_service.create_food(
            session, user.id, food_data(categories["野菜"], today, name="トマト", days=2), today=today
        )
        assert food.expiry_date == today + timedelta(days=2)

        food = await food_service.update_food(
            session, user.id, food.id, {"storage_location": StorageLocation.ROOM_TEMP}, today=today
        )

        assert food.expiry_date == today + timedelta(days=7)


# ============================================================================
# Expiry Alerts
# ============================================================================

class TestExpiryAlerts:

    async def test_food_expiring_today_gets_high_priority_alert(self, session, user, categories, today):
        food = await food_service.create_food(
            session, user.id, food_data(categories["その他"], today, days=0), today=today
        )

        [notification] = await notifications_for(session, food.id)
        assert notification.type == NotificationType.EXPIRY_ALERT
        assert notification.priority == NotificationPriority.HIGH
        assert notification.message == "謎の食材 expires today"
        assert notification.action_url == f"/foods/{food.id}"

    async def test_no_alert_for_distant_expiry(self, session, user, categories, today):
        food = await food_service.create_food(
            session, user.id, food_data(categories["その他"], today, days=4), today=today
        )

        assert await notifications_for(session, food.id) == []

    async def test_alert_at_threshold_boundary(self, session, user, categories, today):
        food = await food_service.create_food(
            session, user.id, food_data(categories["その他"], today, days=3), today=today
        )

        [notification] = await notifications_for(session, food.id)
        assert notification.priority == NotificationPriority.MEDIUM
        assert notification.message == "謎の食材 expires in 3 days"

    async def test_sweep_does_not_duplicate_unread_alerts(self, session, user, categories, today):
        food = await food_service.create_food(
            session, user.id, food_data(categories["その他"], today, days=1), today=today
        )

        checked, created = await sweep_expiry_alerts(session, user.id, today)

        assert (checked, created) == (1, 0)
        assert len(await notifications_for(session, food.id)) == 1

    async def test_sweep_picks_up_foods_that_aged(self, session, user, categories, today):
        food = await food_service.create_food(
            session, user.id, food_data(categories["その他"], today, days=5), today=today
        )

        later = today + timedelta(days=7)
        _, created = await sweep_expiry_alerts(session, user.id, later)

        [notification] = await notifications_for(session, food.id)
        assert created == 1
        assert notification.message == "謎の食材 expired 2 days ago"

    async def test_consumed_food_loses_its_notifications(self, session, user, categories, today):
        food = await food_service.create_food(
            session, user.id, food_data(categories["その他"], today, days=0), today=today
        )
        assert len(await notifications_for(session, food.id)) == 1

        await food_service.mark_consumed(session, user.id, food.id)

        assert await notifications_for(session, food.id) == []

    @pytest.mark.parametrize("use_up", [
        lambda session, user, food: food_service.mark_disposed(session, user.id, food.id),
        lambda session, user, food: food_service.update_food(
            session, user.id, food.id, {"status": FoodStatus.CONSUMED}
        ),
    ], ids=["dispose", "update_to_consumed"])
    async def test_used_up_food_loses_its_notifications(self, session, user, categories, today, use_up):
        food = await food_service.create_food(
            session, user.id, food_data(categories["その他"], today, days=1), today=today
        )
        assert len(await notifications_for(session, food.id)) == 1

        await use_up(session, user, food)

        assert await notifications_for(session, food.id) == []

    async def test_no_alert_for_food_that_is_no_longer_active(self, session, user, categories, today):
        food = await food_service.create_food(
            session, user.id, food_data(categories["その他"], today, days=10), today=today
        )
        await food_service.mark_expired(session, user.id, food.id)

        checked, created = await sweep_expiry_alerts(session, user.id, today + timedelta(days=9))

        assert (checked, created) == (0, 0)
        assert await notifications_for(session, food.id) == []
        assert await notification_service.check_food_expiry(session, food, today + timedelta(days=9)) is None

    async def test_delete_removes_notifications(self, session, user, categories, today):
        food = await food_service.create_food(
            session, user.id, food_data(categories["その他"], today, days=0), today=today
        )

        await food_service.delete_food(session, user.id, food.id)

        assert await notifications_for(session, food.id) == []
        with pytest.raises(NotFoundError):
            await food_service.get_food(session, user.id, food.id)


# ============================================================================
# Alert Preferences
# ============================================================================

class TestAlertPreferences:

    async def test_user_threshold_widens_alert_window(self, session, user, categories, today):
        await preference_service.update_preferences(session, user.id, {"expiry_alert_days": 7})

        food = await food_service.create_food(
            session, user.id, food_data(categories["その他"], today, days=6), today=today
        )

        [notification] = await notifications_for(session, food.id)
        assert notification.message == "謎の食材 expires in 6 days"

    async def test_user_threshold_narrows_alert_window(self, session, user, categories, today):
        await preference_service.update_preferences(session, user.id, {"expiry_alert_days": 0})

        food = await food_service.create_food(
            session, user.id, food_data(categories["その他"], today, days=1), today=today
        )

        assert await notifications_for(session, food.id) == []

    async def test_disabled_alerts(self, session, user, other_user, categories, today):
        await preference_service.update_preferences(session, user.id, {"enable_expiry_alerts": False})

        mine = await food_service.create_food(
            session, user.id, food_data(categories["その他"], today, days=0), today=today
        )
        theirs = await food_service.create_food(
            session, other_user.id, food_data(categories["その他"], today, days=5), today=today
        )

        checked, created = await sweep_expiry_alerts(session, None, today + timedelta(days=3))

        assert await notifications_for(session, mine.id) == []
        assert (checked, created) == (1, 1)
        assert len(await notifications_for(session, theirs.id)) == 1

    async def test_sweep_uses_each_users_threshold(self, session, user, other_user, categories, today):
        await preference_service.update_preferences(session, user.id, {"expiry_alert_days": 10})
        mine = await food_service.create_food(
            session, user.id, food_data(categories["その他"], today, days=20), today=today
        )
        theirs = await food_service.create_food(
            session, other_user.id, food_data(categories["その他"], today, days=20), today=today
        )

        checked, created = await sweep_expiry_alerts(session, None, today + timedelta(days=12))

        assert (checked, created) == (1, 1)
        assert len(await notifications_for(session, mine.id)) == 1
        assert await notifications_for(session, theirs.id) == []

    async def test_defaults_created_on_first_read(self, session, user):
        preferences = await preference_service.get_preferences(session, user.id)

        assert preferences.enable_expiry_alerts is True
        assert preferences.expiry_alert_days == 3
        assert preferences.theme == Theme.LIGHT

    async def test_alert_days_out_of_range(self, session, user):
        with pytest.raises(ValidationError) as exc_info:
            await preference_service.update_preferences(session, user.id, {"expiry_alert_days": 31})

        assert "expiry_alert_days" in exc_info.value.errors


# ============================================================================
# Status Lifecycle
# ============================================================================

class TestStatusLifecycle:

    async def test_terminal_statuses_are_final(self, session, user, categories, today):
        food = await food_service.create_food(
            session, user.id, food_data(categories["その他"], today), today=today
        )
        await food_service.mark_disposed(session, user.id, food.id)

        with pytest.raises(ConflictError):
            await food_service.mark_consumed(session, user.id, food.id)
        with pytest.raises(ConflictError):
            await food_service.update_food(
                session, user.id, food.id, {"status": FoodStatus.ACTIVE}, today=today
            )

    async def test_other_users_food_is_not_found(self, session, user, other_user, categories, today):
        food = await food_service.create_food(
            session, user.id, food_data(categories["その他"], today), today=today
        )

        with pytest.raises(NotFoundError):
            await food_service.get_food(session, other_user.id, food.id)
        with pytest.raises(NotFoundError):
            await food_service.mark_consumed(session, other_user.id, food.id)

    async def test_bulk_consume(self, session, user, other_user, categories, today):
        mine = [
            await food_service.create_food(
                session, user.id, food_data(categories["その他"], today, name=f"食材{i}"), today=today
            )
            for i in range(2)
        ]
        theirs = await food_service.create_food(
            session, other_user.id, food_data(categories["その他"], today), today=today
        )

        with pytest.raises(NotFoundError):
            await food_service.bulk_consume(session, user.id, [mine[0].id, theirs.id])

        assert await food_service.bulk_consume(session, user.id, [food.id for food in mine]) == 2

    async def test_update_rejects_merged_dates(self, session, user, categories, today):
        food = await food_service.create_food(
            session, user.id, food_data(categories["その他"], today), today=today
        )

        with pytest.raises(ValidationError):
            await food_service.update_food(
                session, user.id, food.id, {"purchase_date": today + timedelta(days=30)}, today=today
            )


# ============================================================================
# Queries
# ============================================================================

class TestQueries:

    @pytest.fixture
    async def pantry(self, session, user, categories, today):
        specs = [
            ("卵", "その他", -2),
            ("豆腐", "その他", 0),
            ("納豆", "その他", 3),
            ("味噌", "調味料", 30),
        ]
        foods = {}
        for name, category, days in specs:
            # Purchased a month ago so past expiry dates stay valid
            data = food_data(categories[category], today, name=name, days=days)
            data["purchase_date"] = today - timedelta(days=30)
            foods[name] = await food_service.create_food(session, user.id, data, today=today)
        return foods

    async def test_expiring_and_expired(self, session, user, pantry, today):
        expiring = await food_service.expiring_foods(session, user.id, today, 3)
        expired = await food_service.expired_foods(session, user.id, today)

        assert [food.name for food in expiring] == ["豆腐", "納豆"]
        assert [food.name for food in expired] == ["卵"]

    async def test_list_sort_and_pagination(self, session, user, pantry, today):
        foods, total = await food_service.list_foods(
            session, user.id, sort_by="name", sort_order="desc", skip=1, limit=2, today=today
        )

        assert total == 4
        assert len(foods) == 2

    async def test_list_filters(self, session, user, pantry, categories, today):
        foods, total = await food_service.list_foods(
            session, user.id, category_ids=[categories["調味料"]], today=today
        )
        assert [food.name for food in foods] == ["味噌"]

        foods, _ = await food_service.list_foods(session, user.id, expiry_within_days=1, today=today)
        assert [food.name for food in foods] == ["豆腐"]

    async def test_list_rejects_unknown_sort(self, session, user, today):
        with pytest.raises(ValidationError):
            await food_service.list_foods(session, user.id, sort_by="price", today=today)

    async def test_stats(self, session, user, pantry, today):
        await food_service.mark_consumed(session, user.id, pantry["味噌"].id)

        stats = await food_service.food_stats(session, user.id, today, 3)

        assert stats["total"] == 4
        assert stats["active"] == 3
        assert stats["consumed"] == 1
        assert stats["expiring_soon"] == 2
        assert stats["expired"] == 1
        assert stats["by_category"] == {"その他": 3}
        assert stats["by_storage"] == {"fridge": 3}

    async def test_search(self, session, user, pantry):
        assert [food.name for food in await food_service.search_foods(session, user.id, "豆腐")] == ["豆腐"]

        with pytest.raises(ValidationError):
            await food_service.search_foods(session, user.id, "豆")

    async def test_active_ingredient_names_soonest_first(self, session, user, pantry):
        names = await food_service.active_ingredient_names(session, user.id)

        assert names == ["卵", "豆腐", "納豆", "味噌"]

    async def test_find_by_barcode(self, session, user, categories, today):
        data = food_data(categories["その他"], today, barcode="4901234567890")
        food = await food_service.create_food(session, user.id, data, today=today)

        assert (await food_service.find_by_barcode(session, user.id, "4901234567890")).id == food.id
        assert await food_service.find_by_barcode(session, user.id, "0000") is None


class TestAuditCount:

    async def test_every_mutation_is_audited(self, session, user, categories, today):
        food = await food_service.create_food(
            session, user.id, food_data(categories["その他"], today), today=today
        )
        await food_service.update_food(session, user.id, food.id, {"quantity": 2}, today=today)
        await food_service.mark_consumed(session, user.id, food.id)

        count = (await session.execute(
            select(func.count(AuditLog.id)).where(AuditLog.entity_id == food.id, AuditLog.entity_type == "food")
        )).scalar_one()
        assert count == 3
