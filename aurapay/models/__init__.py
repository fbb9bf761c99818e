# Models
from .product import Product
from .order import Order, OrderItem, OrderStatus
from .discount_code import DiscountCode, DiscountType
from .stock_movements import StockMovement, MovementSource

__all__ = [
    "Product",
    "Order",
    "OrderItem",
    "OrderStatus",
    "DiscountCode",
    "DiscountType",
    "StockMovement",
    "MovementSource",
]
