from sqlalchemy import (
    Column,
    BigInteger,
    Integer,
    String,
    Numeric,
    JSON,
    TIMESTAMP,
    CheckConstraint,
    func,
    Index,
)
from aurapay.db.base import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )

    store_id = Column(
        BigInteger,
        nullable=False,
        index=True,
        comment="所属店铺ID",
    )

    name = Column(
        String(255),
        nullable=False,
        comment="商品名称",
    )

    price = Column(
        Numeric(12, 2),
        nullable=False,
        comment="当前售价",
    )

    image_urls = Column(
        JSON,
        nullable=False,
        default=list,
        comment="商品图片地址列表",
    )

    stock = Column(
        Integer,
        nullable=False,
        server_default="0",
        comment="当前可售库存（支付链路只会扣减）",
    )

    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
        onupdate=func.now(),
    )

    __table_args__ = (
        CheckConstraint(
            "stock >= 0",
            name="ck_product_stock_non_negative",
        ),
    )


# -----------------------------
# 组合索引（店铺内按名称查找）
# -----------------------------
Index(
    "idx_products_store_name",
    Product.store_id,
    Product.name,
)
