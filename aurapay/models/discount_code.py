import enum

from sqlalchemy import (
    Column,
    String,
    Numeric,
    Enum,
    TIMESTAMP,
    func,
)
from aurapay.db.base import Base


class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"  # 按比例
    FIXED = "fixed"            # 固定金额


class DiscountCode(Base):
    __tablename__ = "discount_codes"

    # 折扣码统一存大写
    code = Column(
        String(64),
        primary_key=True,
        comment="折扣码",
    )

    type = Column(
        Enum(
            DiscountType,
            name="discount_type",
        ),
        nullable=False,
        comment="折扣类型",
    )

    value = Column(
        Numeric(12, 2),
        nullable=False,
        comment="百分比数值或固定减免金额",
    )

    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
