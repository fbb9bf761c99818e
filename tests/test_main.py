"""应用入口单元测试"""
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient

from aurapay.main import app


class TestApplication:
    """应用入口测试类"""

    def test_health_check(self, client):
        """测试健康检查接口"""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "aurapay-order-payments"

    def test_read_root(self, client):
        """测试根路径"""
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["docs"] == "/docs"

    def test_openapi_documentation(self, client):
        """测试 OpenAPI 文档包含全部接口"""
        paths = client.get("/openapi.json").json()["paths"]

        for path in (
            "/api/generateHash",
            "/api/verifyPayment",
            "/api/paymentReturn",
            "/api/v1/orders/checkout",
            "/api/v1/orders/{order_id}",
            "/api/v1/products/{product_id}/stock",
        ):
            assert path in paths

    def test_lifespan(self, engine):
        """测试启动时检查数据库和 Redis（Redis 不可用时继续运行）"""
        redis_mock = AsyncMock()
        redis_mock.ping.side_effect = ConnectionError("Redis 不可用")

        with patch("aurapay.main.engine", engine), \
             patch("aurapay.main.async_redis", redis_mock):
            with TestClient(app) as client:
                assert client.get("/health").status_code == 200

        redis_mock.ping.assert_awaited_once()

    def test_lifespan_creates_tables(self, engine):
        """测试开启自动建表时调用 init_db"""
        with patch("aurapay.main.engine", engine), \
             patch("aurapay.main.async_redis", AsyncMock()), \
             patch("aurapay.main.init_db") as mock_init_db, \
             patch("aurapay.main.settings") as mock_settings:
            mock_settings.AUTO_CREATE_TABLES = True
            mock_settings.PAYU_KEY = "ABC123"
            mock_settings.PAYU_SALT = "SECRET"

            with TestClient(app):
                pass

        mock_init_db.assert_called_once()
