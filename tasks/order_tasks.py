"""订单相关的 Celery 任务"""

from typing import Optional
import logging

from celery_app import app
from aurapay.core.config import settings
from aurapay.db.session import SessionLocal
from aurapay.services.order_store import OrderStore
from aurapay.services.order_maintenance import OrderMaintenanceService

logger = logging.getLogger(__name__)

@app.task(name='tasks.orders.expire_stale_pending_orders')
def expire_stale_pending_orders(max_age_minutes: Optional[int] = None, batch_size: int = 500):
    """取消超时未支付的订单

    Args:
        max_age_minutes: 超时分钟数，默认读取配置
        batch_size: 批处理大小，默认500条

    Returns:
        处理结果描述
    """
    db = SessionLocal()
    try:
        service = OrderMaintenanceService(OrderStore(db))
        count = service.expire_stale_pending_orders(
            max_age_minutes or settings.PENDING_ORDER_MAX_AGE_MINUTES,
            batch_size,
        )
        result = f"成功取消 {count} 条超时待支付订单"
        logger.info(result)
        return result
    except Exception as e:
        logger.error(f"超时订单清理任务执行失败: {str(e)}")
        db.rollback()
        raise
    finally:
        db.close()

# 导出任务
__all__ = [
    'expire_stale_pending_orders',
]
