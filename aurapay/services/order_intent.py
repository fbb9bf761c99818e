"""下单意图构建

把购物车 + 折扣 + 当前用户组装成不可变的订单快照，
在跳转支付网关之前以 Pending Payment 状态写库。
货到付款等直接 Processing 的订单在同一事务内扣减库存。
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Sequence, Tuple
import logging
import uuid

from redis import Redis

from aurapay.core.errors import InvalidState, Unauthenticated
from aurapay.core.identity import AuthenticatedUser
from aurapay.models.discount_code import DiscountType
from aurapay.models.order import Order, OrderItem, OrderStatus
from aurapay.models.stock_movements import MovementSource
from aurapay.services.order_store import OrderStore
from aurapay.services.stock_service import StockService

logger = logging.getLogger(__name__)

_CENTS = Decimal("0.01")
_HUNDRED = Decimal("100")

DEFAULT_TAX_RATE = Decimal("0.08")


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    discount: Decimal
    taxes: Decimal
    total: Decimal


def _cents(value: Decimal) -> Decimal:
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


def raw_discount_amount(subtotal: Decimal, discount_code=None) -> Decimal:
    """折扣码对应的原始减免金额（未与小计取最小值）"""
    if discount_code is None:
        return Decimal("0")
    value = Decimal(str(discount_code.value))
    if DiscountType(discount_code.type) is DiscountType.PERCENTAGE:
        return subtotal * value / _HUNDRED
    return value


def compute_totals(lines: Iterable[Tuple[Decimal, int]], raw_discount=Decimal("0"),
                   tax_rate=DEFAULT_TAX_RATE) -> OrderTotals:
    """纯函数计价

    discount = min(subtotal, raw_discount)
    taxes = (subtotal - discount) * tax_rate
    total = subtotal - discount + taxes

    各项先按分取整，total 由取整后的各项推导，保证等式严格成立。
    """
    subtotal = _cents(sum(
        (Decimal(str(price)) * quantity for price, quantity in lines),
        Decimal("0"),
    ))
    discount = _cents(min(subtotal, max(Decimal(str(raw_discount)), Decimal("0"))))
    taxes = _cents((subtotal - discount) * Decimal(str(tax_rate)))
    total = subtotal - discount + taxes
    return OrderTotals(subtotal=subtotal, discount=discount, taxes=taxes, total=total)


def generate_order_id(prefix: str = "AURA") -> str:
    """生成订单号（同时作为 txnid）

    两条下单路径共用同一方案：前缀 + UUID4 的 20 位十六进制，
    总长 25 位，满足网关对 txnid 的长度限制。
    """
    return f"{prefix}-{uuid.uuid4().hex[:20].upper()}"


class OrderIntentBuilder:
    """下单意图构建器"""

    def __init__(self, store: OrderStore, redis: Optional[Redis] = None,
                 tax_rate=DEFAULT_TAX_RATE, order_id_prefix: str = "AURA"):
        self.store = store
        self.stock = StockService(store, redis)
        self.tax_rate = Decimal(str(tax_rate))
        self.order_id_prefix = order_id_prefix

    def place_order(
        self,
        user: Optional[AuthenticatedUser],
        cart_lines: Sequence[CartLine],
        phone: str,
        discount_code: Optional[str] = None,
        store_id: Optional[int] = None,
        status: OrderStatus = OrderStatus.PENDING_PAYMENT,
    ) -> str:
        """创建订单并返回订单号

        Raises:
            Unauthenticated: 未登录或用户缺少邮箱
            InvalidState: 购物车为空、商品不存在、折扣码无效等
            StockExhausted: 直接 Processing 的订单库存不足
        """
        if user is None or not (user.email or "").strip():
            raise Unauthenticated("User must be logged in to place an order")
        if not cart_lines:
            raise InvalidState("Cart is empty")
        if status not in (OrderStatus.PENDING_PAYMENT, OrderStatus.PROCESSING):
            raise InvalidState(f"Orders cannot be placed with status {status.value}")
        if not (phone or "").strip():
            raise InvalidState("Contact phone is required")
        for line in cart_lines:
            if line.quantity <= 0:
                raise InvalidState(f"Invalid quantity for product {line.product_id}")

        order_id = generate_order_id(self.order_id_prefix)
        touched: List[int] = []

        with self.store.transaction():
            order = self._build_order(order_id, user, cart_lines, phone, discount_code, store_id)
            order.status = status
            self.store.set(order)

            if status is OrderStatus.PROCESSING:
                touched = self.stock.deduct_for_order(order, MovementSource.DIRECT_CHECKOUT)

        self.stock.invalidate(touched)
        logger.info(
            f"创建订单成功: order_id={order_id}, status={status.value}, total={order.total}"
        )
        return order_id

    def _build_order(self, order_id, user, cart_lines, phone, discount_code, store_id) -> Order:
        products = self.store.get_products(line.product_id for line in cart_lines)

        items = []
        for position, line in enumerate(cart_lines):
            product = products.get(line.product_id)
            if product is None:
                raise InvalidState(f"Product {line.product_id} could not be found")
            if store_id is None:
                store_id = product.store_id
            elif product.store_id != store_id:
                raise InvalidState("All cart items must belong to the same store")
            items.append(OrderItem(
                position=position,
                product_id=product.id,
                name=product.name,
                price=product.price,
                image_urls=list(product.image_urls or []),
                quantity=line.quantity,
            ))

        code = None
        if discount_code:
            code = self.store.get_discount_code(discount_code)
            if code is None:
                raise InvalidState("Invalid discount code")

        lines = [(item.price, item.quantity) for item in items]
        gross = compute_totals(lines, tax_rate=self.tax_rate).subtotal
        totals = compute_totals(
            lines,
            raw_discount=raw_discount_amount(gross, code),
            tax_rate=self.tax_rate,
        )

        return Order(
            id=order_id,
            user_email=user.email.strip(),
            user_uid=user.uid or None,
            store_id=store_id,
            phone=phone.strip(),
            subtotal=totals.subtotal,
            discount=totals.discount,
            taxes=totals.taxes,
            total=totals.total,
            discount_code=code.code if code else None,
            items=items,
        )
