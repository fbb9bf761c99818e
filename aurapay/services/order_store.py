"""订单存储（基于 SQLAlchemy 会话的事务型存储）"""

from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from aurapay.models.order import Order
from aurapay.models.product import Product
from aurapay.models.discount_code import DiscountCode

logger = logging.getLogger(__name__)


class OrderStore:
    """订单与商品库存的事务型存储

    跨记录的修改（扣库存 + 改订单状态）必须放在 transaction() 中，
    并通过 lock_* 方法加行级锁读取，这是唯一的并发控制手段。
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """原子事务：正常退出提交，异常回滚后继续抛出"""
        try:
            yield self.db
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def get(self, order_id: str) -> Optional[Order]:
        return self.db.get(Order, order_id)

    def set(self, order: Order) -> Order:
        """写入完整订单记录（含明细），在当前事务中生效"""
        self.db.add(order)
        self.db.flush()
        return order

    def update(self, order_id: str, **fields) -> bool:
        """更新订单部分字段并立即提交，订单不存在时返回 False"""
        order = self.lock_order(order_id)
        if order is None:
            self.db.rollback()
            return False
        for key, value in fields.items():
            setattr(order, key, value)
        self.db.commit()
        return True

    def lock_order(self, order_id: str) -> Optional[Order]:
        return self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .with_for_update()
        ).scalar_one_or_none()

    def lock_products(self, product_ids: Iterable[int]) -> Dict[int, Product]:
        """按主键顺序加锁读取商品，避免并发事务间死锁"""
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        products = self.db.execute(
            select(Product)
            .where(Product.id.in_(ids))
            .order_by(Product.id)
            .with_for_update()
        ).scalars().all()
        return {product.id: product for product in products}

    def get_products(self, product_ids: Iterable[int]) -> Dict[int, Product]:
        ids = list(set(product_ids))
        if not ids:
            return {}
        products = self.db.execute(
            select(Product).where(Product.id.in_(ids))
        ).scalars().all()
        return {product.id: product for product in products}

    def get_product(self, product_id: int) -> Optional[Product]:
        return self.db.get(Product, product_id)

    def get_discount_code(self, code: str) -> Optional[DiscountCode]:
        return self.db.get(DiscountCode, code.strip().upper())

    def find_stale_orders(self, status, created_before, limit: int) -> List[Order]:
        return self.db.execute(
            select(Order)
            .where(
                Order.status == status,
                Order.created_at <= created_before,
            )
            .order_by(Order.created_at)
            .limit(limit)
            .with_for_update(skip_locked=True)
        ).scalars().all()
