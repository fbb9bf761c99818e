"""依赖注入配置模块"""

from fastapi import Depends

# 数据库会话依赖
from aurapay.db.session import SessionLocal
from sqlalchemy.orm import Session

# Redis 依赖
from aurapay.core.redis import redis_client
from aurapay.core.config import settings

from aurapay.services.payment_gateway import PaymentGatewayConfig
from aurapay.services.order_store import OrderStore
from aurapay.services.order_intent import OrderIntentBuilder
from aurapay.services.payment_verifier import PaymentCallbackVerifier
from aurapay.services.stock_service import StockService
from aurapay.services.order_maintenance import OrderMaintenanceService


def get_redis():
    """获取同步 Redis 客户端"""
    return redis_client


def get_db() -> Session:
    """获取数据库会话"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_gateway_config() -> PaymentGatewayConfig:
    """商户密钥只在这里从配置读取，之后显式传入服务"""
    return settings.gateway_config()


def get_order_store(db: Session = Depends(get_db)) -> OrderStore:
    return OrderStore(db)


def get_order_intent_builder(
    store: OrderStore = Depends(get_order_store),
    redis = Depends(get_redis)
) -> OrderIntentBuilder:
    """获取下单意图构建器（依赖注入）"""
    return OrderIntentBuilder(
        store,
        redis,
        tax_rate=settings.TAX_RATE,
        order_id_prefix=settings.ORDER_ID_PREFIX,
    )


def get_payment_verifier(
    store: OrderStore = Depends(get_order_store),
    config: PaymentGatewayConfig = Depends(get_gateway_config),
    redis = Depends(get_redis)
) -> PaymentCallbackVerifier:
    """获取支付回调校验器（依赖注入）"""
    return PaymentCallbackVerifier(store, config, redis)


def get_stock_service(
    store: OrderStore = Depends(get_order_store),
    redis = Depends(get_redis)
) -> StockService:
    return StockService(store, redis)


def get_maintenance_service(
    store: OrderStore = Depends(get_order_store)
) -> OrderMaintenanceService:
    return OrderMaintenanceService(store)


