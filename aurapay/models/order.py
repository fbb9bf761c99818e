import enum

from sqlalchemy import (
    Column,
    BigInteger,
    Integer,
    String,
    Text,
    Numeric,
    JSON,
    TIMESTAMP,
    Enum,
    ForeignKey,
    Index,
    func,
)
from sqlalchemy.orm import relationship
from aurapay.db.base import Base


# 1️ 订单状态枚举

class OrderStatus(str, enum.Enum):
    PENDING_PAYMENT = "Pending Payment"  # 已下单，等待网关回调
    PROCESSING = "Processing"            # 支付校验通过，库存已扣减
    SHIPPED = "Shipped"                  # 履约流程写入
    DELIVERED = "Delivered"              # 履约流程写入
    CANCELLED = "Cancelled"              # 支付失败 / 校验失败 / 需人工处理

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.PENDING_PAYMENT


# 2️ 订单表

class Order(Base):
    __tablename__ = "orders"

    # 订单号同时作为 PayU 的 txnid，必须在首次写库前生成
    id = Column(
        String(25),
        primary_key=True,
        comment="订单号 / 支付流水号",
    )

    user_email = Column(
        String(255),
        nullable=False,
        index=True,
        comment="下单用户邮箱",
    )

    user_uid = Column(
        String(128),
        nullable=True,
        comment="身份提供方的用户ID",
    )

    store_id = Column(
        BigInteger,
        nullable=True,
        index=True,
        comment="店铺ID",
    )

    phone = Column(
        String(32),
        nullable=False,
        comment="联系电话",
    )

    status = Column(
        Enum(
            OrderStatus,
            name="order_status_type",
        ),
        nullable=False,
        default=OrderStatus.PENDING_PAYMENT,
        comment="订单状态",
    )

    subtotal = Column(Numeric(12, 2), nullable=False, comment="商品小计")
    discount = Column(Numeric(12, 2), nullable=False, comment="折扣金额")
    taxes = Column(Numeric(12, 2), nullable=False, comment="税费")
    total = Column(Numeric(12, 2), nullable=False, comment="应付总额（参与网关哈希）")

    discount_code = Column(
        String(64),
        nullable=True,
        comment="下单时使用的折扣码",
    )

    notes = Column(
        Text,
        nullable=True,
        comment="终态变更说明（取消原因 / 人工对账提示）",
    )

    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    items = relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


# 3️ 订单明细（下单时的商品快照）

class OrderItem(Base):
    __tablename__ = "order_items"

    order_id = Column(
        String(25),
        ForeignKey("orders.id", ondelete="CASCADE"),
        primary_key=True,
    )

    position = Column(
        Integer,
        primary_key=True,
        comment="购物车中的顺序",
    )

    product_id = Column(
        BigInteger,
        nullable=False,
        index=True,
        comment="商品ID",
    )

    name = Column(String(255), nullable=False, comment="商品名称快照")
    price = Column(Numeric(12, 2), nullable=False, comment="单价快照")
    image_urls = Column(JSON, nullable=False, default=list, comment="图片快照")
    quantity = Column(Integer, nullable=False, comment="购买数量")

    order = relationship("Order", back_populates="items")


# 4️ 索引：过期待支付订单扫描

Index(
    "idx_orders_status_created",
    Order.status,
    Order.created_at,
)
