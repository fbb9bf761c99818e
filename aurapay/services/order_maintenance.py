"""订单维护：清理长时间停留在 Pending Payment 的订单"""

from datetime import datetime, timedelta, timezone
import logging

from sqlalchemy import func, select

from aurapay.models.order import Order, OrderStatus
from aurapay.services.order_store import OrderStore

logger = logging.getLogger(__name__)

EXPIRED_NOTE = "Payment not completed within {minutes} minutes; order expired."


class OrderMaintenanceService:

    def __init__(self, store: OrderStore):
        self.store = store

    def count_stale_pending_orders(self, max_age_minutes: int) -> int:
        cutoff = datetime.now(timezone.utc) - timedelta(minutes=max_age_minutes)
        return self.store.db.execute(
            select(func.count())
            .select_from(Order)
            .where(
                Order.status == OrderStatus.PENDING_PAYMENT,
                Order.created_at <= cutoff,
            )
        ).scalar_one()

    def expire_stale_pending_orders(self, max_age_minutes: int = 60, batch_size: int = 500,
                                    dry_run: bool = False) -> int:
        """把超时未支付的订单标记为 Cancelled

        分批处理，每批一个事务；使用 skip_locked 跳过正在被回调处理的订单。
        之后若网关仍送达成功回调，校验器会追加人工退款备注。

        Args:
            max_age_minutes: 订单创建后超过多少分钟视为超时
            batch_size: 批处理大小
            dry_run: 只统计不修改

        Returns:
            处理（或试运行时待处理）的订单数量
        """
        if dry_run:
            count = self.count_stale_pending_orders(max_age_minutes)
            logger.info(f"试运行：发现 {count} 条超时待支付订单")
            return count

        cutoff = datetime.now(timezone.utc) - timedelta(minutes=max_age_minutes)
        note = EXPIRED_NOTE.format(minutes=max_age_minutes)
        total = 0

        while True:
            with self.store.transaction():
                orders = self.store.find_stale_orders(
                    OrderStatus.PENDING_PAYMENT, cutoff, batch_size
                )
                for order in orders:
                    order.status = OrderStatus.CANCELLED
                    order.notes = note
            total += len(orders)
            if orders:
                logger.info(f"本批取消 {len(orders)} 条超时订单")
            if len(orders) < batch_size:
                break

        logger.info(f"超时订单清理完成: 共 {total} 条")
        return total
