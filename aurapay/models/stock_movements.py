import enum

from sqlalchemy import (
    Column,
    BigInteger,
    Integer,
    String,
    TIMESTAMP,
    func,
    Enum,
    Index,
)
from aurapay.db.base import Base

# 1定义库存变更来源
class MovementSource(str, enum.Enum):
    PAYMENT_WEBHOOK = "payment_webhook"    # 支付回调确认后扣减
    DIRECT_CHECKOUT = "direct_checkout"    # 货到付款直接下单扣减
# 2️库存流水表（与扣减在同一事务中写入）
class StockMovement(Base):
    __tablename__ = "stock_movements"

    id = Column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )

    product_id = Column(
        BigInteger,
        nullable=False,
        index=True,
        comment="商品ID",
    )

    order_id = Column(
        String(25),
        nullable=False,
        index=True,
        comment="订单ID",
    )

    quantity = Column(
        Integer,
        nullable=False,
        comment="变更数量（扣减为负数）",
    )

    before_stock = Column(
        Integer,
        nullable=False,
        comment="变更前库存",
    )

    after_stock = Column(
        Integer,
        nullable=False,
        comment="变更后库存",
    )

    source = Column(
        Enum(
            MovementSource,
            name="stock_movement_source",
        ),
        nullable=False,
        comment="来源：payment_webhook / direct_checkout",
    )

    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

# 3️组合索引（按商品查询流水）


Index(
    "idx_stock_movements_product_created_desc",
    StockMovement.product_id,
    StockMovement.created_at.desc(),
)
