"""数据库模型单元测试"""
import pytest
from decimal import Decimal
from unittest.mock import patch
from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import IntegrityError

from aurapay.db import init_db
from aurapay.models.product import Product
from aurapay.models.order import Order, OrderItem, OrderStatus
from aurapay.models.discount_code import DiscountCode, DiscountType
from aurapay.models.stock_movements import StockMovement, MovementSource


class TestModels:
    """数据库模型测试类"""

    def test_product_model(self, db_session):
        """测试商品模型"""
        product = Product(store_id=1, name="Candle", price=Decimal("12.50"), image_urls=[], stock=3)
        db_session.add(product)
        db_session.commit()

        assert product.id is not None
        assert product.stock == 3
        assert product.created_at is not None

    def test_product_stock_default(self, db_session):
        """测试库存默认值"""
        product = Product(store_id=1, name="Mug", price=Decimal("5"), image_urls=[])
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)

        assert product.stock == 0

    def test_product_stock_cannot_be_negative(self, db_session):
        """测试库存非负约束"""
        product = Product(store_id=1, name="Lamp", price=Decimal("20"), image_urls=[], stock=-1)
        db_session.add(product)

        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_order_with_items(self, db_session):
        """测试订单与明细"""
        order = Order(
            id="AURA-0123456789ABCDEF0123",
            user_email="jane@x.com",
            phone="1",
            subtotal=Decimal("10.00"),
            discount=Decimal("0.00"),
            taxes=Decimal("0.80"),
            total=Decimal("10.80"),
            items=[
                OrderItem(position=1, product_id=2, name="B", price=Decimal("4"), image_urls=[], quantity=1),
                OrderItem(position=0, product_id=1, name="A", price=Decimal("6"), image_urls=[], quantity=1),
            ],
        )
        db_session.add(order)
        db_session.commit()
        db_session.expire_all()

        saved = db_session.get(Order, "AURA-0123456789ABCDEF0123")
        assert saved.status is OrderStatus.PENDING_PAYMENT
        assert [item.name for item in saved.items] == ["A", "B"]
        assert saved.total == Decimal("10.80")

    def test_order_status_terminal(self):
        """测试订单终态判断"""
        assert OrderStatus.PENDING_PAYMENT.is_terminal is False
        assert OrderStatus.PROCESSING.is_terminal is True
        assert OrderStatus.CANCELLED.is_terminal is True
        assert OrderStatus("Pending Payment") is OrderStatus.PENDING_PAYMENT

    def test_discount_code_model(self, db_session):
        """测试折扣码模型"""
        db_session.add(DiscountCode(code="SAVE5", type=DiscountType.FIXED, value=Decimal("5")))
        db_session.commit()

        code = db_session.get(DiscountCode, "SAVE5")
        assert code.type is DiscountType.FIXED
        assert code.value == Decimal("5")

    def test_stock_movement_model(self, db_session):
        """测试库存流水模型"""
        movement = StockMovement(
            product_id=1,
            order_id="AURA-1",
            quantity=-2,
            before_stock=10,
            after_stock=8,
            source=MovementSource.PAYMENT_WEBHOOK,
        )
        db_session.add(movement)
        db_session.commit()

        assert movement.id is not None
        assert movement.source is MovementSource.PAYMENT_WEBHOOK

    def test_init_db(self):
        """测试开发环境建表"""
        engine = create_engine("sqlite://")
        with patch("aurapay.db.engine", engine):
            init_db()

        assert {"products", "orders", "order_items", "discount_codes", "stock_movements"} <= set(
            inspect(engine).get_table_names()
        )
