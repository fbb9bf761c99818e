"""库存服务实现"""

from collections import OrderedDict
from typing import Dict, Iterable, List, Optional
import logging

from redis import Redis

from aurapay.core.errors import StockExhausted, TransactionFailure
from aurapay.core.redis import stock_cache_key, STOCK_CACHE_TTL
from aurapay.models.stock_movements import StockMovement, MovementSource
from aurapay.services.order_store import OrderStore

logger = logging.getLogger(__name__)


def aggregate_quantities(items) -> Dict[int, int]:
    """按商品汇总订单明细数量（同一商品出现多行时合并）"""
    totals: Dict[int, int] = OrderedDict()
    for item in items:
        totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
    return totals


class StockService:
    """库存核心服务类

    支付链路只会扣减库存，不会增加或修改其他字段。
    """

    def __init__(self, store: OrderStore, redis: Optional[Redis] = None):
        self.store = store
        self.redis = redis

    def get_product_stock(self, product_id: int) -> Optional[int]:
        """查询商品可用库存（带缓存），商品不存在返回 None"""
        cache_key = stock_cache_key(product_id)

        # 先查缓存
        if self.redis:
            cached = self.redis.get(cache_key)
            if cached is not None:
                logger.debug(f"Cache hit for product {product_id}")
                return int(cached)

        # 缓存未命中，查询数据库
        product = self.store.get_product(product_id)
        if product is None:
            return None

        # 设置缓存（5分钟过期）
        if self.redis:
            self.redis.setex(cache_key, STOCK_CACHE_TTL, product.stock)
            logger.debug(f"Cache set for product {product_id}: {product.stock}")

        return product.stock

    def deduct_for_order(self, order, source: MovementSource) -> List[int]:
        """在调用方的事务内扣减订单涉及的全部商品库存

        必须在 OrderStore.transaction() 中调用：任何一个商品不存在或
        库存不足都会抛出异常，由外层事务整体回滚，不会出现部分扣减。

        Returns:
            被扣减的商品ID列表
        """
        quantities = aggregate_quantities(order.items)
        products = self.store.lock_products(quantities.keys())

        # 先全部校验，再统一写入
        updates = []
        for product_id, quantity in quantities.items():
            product = products.get(product_id)
            if product is None:
                raise TransactionFailure(
                    f"Product with ID {product_id} not found for order {order.id}."
                )
            new_stock = product.stock - quantity
            if new_stock < 0:
                raise StockExhausted(
                    f"Not enough stock for {product.name} to fulfill order {order.id}."
                )
            updates.append((product, quantity, new_stock))

        for product, quantity, new_stock in updates:
            before = product.stock
            product.stock = new_stock

            # 记录库存流水
            self.store.db.add(StockMovement(
                product_id=product.id,
                order_id=order.id,
                quantity=-quantity,
                before_stock=before,
                after_stock=new_stock,
                source=source,
            ))

        logger.info(f"扣减库存: order_id={order.id}, items={dict(quantities)}")
        return list(quantities.keys())

    def invalidate(self, product_ids: Iterable[int]) -> None:
        """事务提交后失效相关商品的缓存"""
        if not self.redis:
            return
        for product_id in product_ids:
            try:
                self.redis.delete(stock_cache_key(product_id))
                logger.debug(f"Cache invalidated for product {product_id}")
            except Exception as e:
                # 缓存失效失败不影响已提交的事务，等待 TTL 过期
                logger.warning(f"Cache invalidation failed for product {product_id}: {e}")
