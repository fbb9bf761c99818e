"""库存服务单元测试"""
import pytest
from types import SimpleNamespace
from sqlalchemy import select

from aurapay.core.errors import StockExhausted, TransactionFailure
from aurapay.models.stock_movements import StockMovement, MovementSource
from aurapay.services.stock_service import StockService, aggregate_quantities


def _order(order_id, *lines):
    return SimpleNamespace(
        id=order_id,
        items=[SimpleNamespace(product_id=pid, quantity=qty) for pid, qty in lines],
    )


class TestStockService:
    """库存服务测试类"""

    @pytest.fixture
    def service(self, store, mock_redis):
        return StockService(store, mock_redis)

    def test_aggregate_quantities(self):
        """测试同一商品多行合并并保持顺序"""
        order = _order("AURA-1", (2, 1), (1, 3), (2, 4))
        assert list(aggregate_quantities(order.items).items()) == [(2, 5), (1, 3)]

    def test_get_product_stock_cache_miss(self, service, products, mock_redis):
        """测试缓存未命中时查询数据库并写入缓存"""
        assert service.get_product_stock(1) == 10
        mock_redis.get.assert_called_once_with("stock:available:1")
        mock_redis.setex.assert_called_once_with("stock:available:1", 300, 10)

    def test_get_product_stock_cache_hit(self, service, products, mock_redis):
        """测试缓存命中"""
        mock_redis.get.return_value = "3"
        assert service.get_product_stock(1) == 3
        mock_redis.setex.assert_not_called()

    def test_get_product_stock_without_redis(self, store, products):
        """测试 Redis 不可用时直接查询数据库"""
        assert StockService(store).get_product_stock(2) == 5

    def test_get_product_stock_not_found(self, service, products, mock_redis):
        """测试商品不存在"""
        assert service.get_product_stock(999) is None
        mock_redis.setex.assert_not_called()

    def test_deduct_for_order(self, service, store, db_session, products):
        """测试扣减库存并记录流水"""
        with store.transaction():
            touched = service.deduct_for_order(_order("AURA-1", (1, 2), (2, 5)),
                                               MovementSource.PAYMENT_WEBHOOK)

        assert touched == [1, 2]
        assert store.get_product(1).stock == 8
        assert store.get_product(2).stock == 0

        movements = db_session.execute(
            select(StockMovement).order_by(StockMovement.product_id)
        ).scalars().all()
        assert [(m.quantity, m.before_stock, m.after_stock) for m in movements] == [
            (-2, 10, 8),
            (-5, 5, 0),
        ]

    def test_deduct_for_order_insufficient(self, service, store, db_session, products):
        """测试任一商品库存不足时不做任何扣减"""
        with pytest.raises(StockExhausted) as exc_info:
            with store.transaction():
                service.deduct_for_order(_order("AURA-1", (1, 2), (2, 6)),
                                         MovementSource.PAYMENT_WEBHOOK)

        assert exc_info.value.detail == "Not enough stock for Soap to fulfill order AURA-1."
        assert store.get_product(1).stock == 10
        assert store.get_product(2).stock == 5
        assert db_session.execute(select(StockMovement)).scalars().all() == []

    def test_deduct_for_order_missing_product(self, service, store, products):
        """测试订单引用的商品已不存在"""
        with pytest.raises(TransactionFailure) as exc_info:
            with store.transaction():
                service.deduct_for_order(_order("AURA-1", (1, 1), (404, 1)),
                                         MovementSource.PAYMENT_WEBHOOK)

        assert exc_info.value.detail == "Product with ID 404 not found for order AURA-1."
        assert store.get_product(1).stock == 10

    def test_invalidate(self, service, mock_redis):
        """测试失效缓存"""
        service.invalidate([1, 2])
        mock_redis.delete.assert_any_call("stock:available:1")
        mock_redis.delete.assert_any_call("stock:available:2")

    def test_invalidate_failure_is_logged(self, service, mock_redis):
        """测试缓存失效失败不抛出异常"""
        mock_redis.delete.side_effect = Exception("Redis 连接失败")
        service.invalidate([1])
        mock_redis.delete.assert_called_once_with("stock:available:1")
