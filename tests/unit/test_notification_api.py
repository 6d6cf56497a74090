"""
通知API单元测试
"""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from farm_platform.api.dependencies import get_current_user
from farm_platform.api.exceptions import setup_exception_handlers
from farm_platform.api.main import create_app
from farm_platform.api.routes import notifications_router
from shared.models.notification import Notification, NotificationChannel, NotificationStatus
from shared.models.user import User


def make_notification(notification_id, status=NotificationStatus.DELIVERED):
    now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    return Notification(
        id=notification_id,
        recipient_id=42,
        channel=NotificationChannel.IN_APP,
        title="Pago Exitoso",
        message="Tu pago por Premium ha sido procesado exitosamente.",
        payload={"planName": "Premium"},
        status=status,
        created_at=now,
        updated_at=now,
        sent_at=now,
        delivered_at=now
    )


@pytest.fixture
def store():
    store = MagicMock()
    store.list_for_user = AsyncMock(return_value=[make_notification(2), make_notification(1)])
    store.unread_count = AsyncMock(return_value=3)
    store.mark_all_read = AsyncMock(return_value=2)
    store.mark_read = AsyncMock(return_value=True)
    return store


@pytest.fixture
def app(store):
    app = FastAPI()
    setup_exception_handlers(app)
    app.include_router(notifications_router)
    app.state.notification_orchestrator = SimpleNamespace(store=store)
    app.dependency_overrides[get_current_user] = lambda: User(id=42, email="ana@finca.co")
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


class TestNotificationRoutes:
    """测试通知路由"""

    def test_list_notifications(self, client, store):
        """测试获取通知列表"""
        response = client.get("/notifications")

        assert response.status_code == 200
        data = response.json()
        assert [n["id"] for n in data] == [2, 1]
        assert data[0]["channel"] == "in_app"
        assert data[0]["status"] == "delivered"
        assert data[0]["payload"] == {"planName": "Premium"}
        store.list_for_user.assert_awaited_once_with(42, channel=None, limit=50, offset=0)

    def test_list_with_filters(self, client, store):
        """测试过滤和分页参数"""
        response = client.get("/notifications", params={"channel": "email", "limit": 10, "offset": 20})

        assert response.status_code == 200
        store.list_for_user.assert_awaited_once_with(
            42, channel=NotificationChannel.EMAIL, limit=10, offset=20
        )

    def test_list_invalid_params(self, client):
        """测试无效参数"""
        assert client.get("/notifications", params={"limit": 0}).status_code == 422
        assert client.get("/notifications", params={"limit": 101}).status_code == 422
        assert client.get("/notifications", params={"channel": "fax"}).status_code == 422

    def test_unread_count(self, client, store):
        """测试获取未读数量"""
        response = client.get("/notifications/unread-count")

        assert response.status_code == 200
        assert response.json() == {"unread_count": 3}
        store.unread_count.assert_awaited_once_with(42)

    def test_mark_all_read(self, client, store):
        """测试全部标记已读"""
        response = client.put("/notifications/read-all")

        assert response.status_code == 200
        assert response.json() == {"updated": 2}
        store.mark_all_read.assert_awaited_once_with(42)

    def test_mark_read(self, client, store):
        """测试标记单条已读"""
        response = client.put("/notifications/7/read")

        assert response.status_code == 204
        store.mark_read.assert_awaited_once_with(7, 42)

    def test_mark_read_not_found(self, client, store):
        """测试标记不存在或不属于当前用户的通知"""
        store.mark_read.return_value = False

        response = client.put("/notifications/7/read")

        assert response.status_code == 404
        assert response.json()["detail"] == "Notification not found"

    def test_unauthenticated(self, app):
        """测试未认证"""
        app.dependency_overrides.clear()
        client = TestClient(app)

        response = client.get("/notifications/unread-count")

        assert response.status_code == 401
        assert response.json()["detail"] == "User not authenticated"

    def test_service_unavailable(self, app):
        """测试通知服务未初始化"""
        del app.state.notification_orchestrator
        client = TestClient(app)

        response = client.get("/notifications")

        assert response.status_code == 503

    def test_database_error(self, client, store):
        """测试数据库异常"""
        store.unread_count.side_effect = OperationalError("SELECT 1", {}, Exception("database is locked"))

        response = client.get("/notifications/unread-count")

        assert response.status_code == 500
        assert response.json()["error"] == "Database Error"


class TestAppFactory:
    """测试应用创建"""

    def test_health(self):
        """测试健康检查端点"""
        client = TestClient(create_app())

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_routes_registered(self):
        """测试通知路由已注册"""
        paths = {route.path for route in create_app().routes}

        assert "/notifications" in paths
        assert "/notifications/unread-count" in paths
        assert "/notifications/read-all" in paths
        assert "/notifications/{notification_id}/read" in paths
