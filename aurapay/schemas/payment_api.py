"""支付与订单 API 专用的 Pydantic 模型和响应格式"""

from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional, Union
from enum import Enum


class PaymentMethod(str, Enum):
    """支付方式枚举"""
    PAYU = "payu"  # 跳转 PayU 网关
    COD = "cod"    # 货到付款，直接进入 Processing


# ==================== 请求模型 ====================

class GenerateHashRequest(BaseModel):
    """生成发起支付哈希的请求"""
    total: Optional[Union[str, int, float]] = Field(
        None,
        description="应付总额（任意数值格式，服务端格式化为两位小数）",
        examples=["972.00"]
    )
    productinfo: Optional[str] = Field(None, description="商品名称，逗号分隔", examples=["Oil, Soap"])
    firstname: Optional[str] = Field(None, description="用户名字（显示名第一个单词）", examples=["Jane"])
    email: Optional[str] = Field(None, description="用户邮箱", examples=["jane@x.com"])
    txnid: Optional[str] = Field(None, description="支付流水号（即订单号）", examples=["AURA-1"])

    def missing_fields(self) -> List[str]:
        return [name for name in ("total", "productinfo", "firstname", "email", "txnid")
                if getattr(self, name) is None or not str(getattr(self, name)).strip()]


class CartLineRequest(BaseModel):
    """购物车中的一行"""
    product_id: int = Field(..., gt=0, description="商品ID", examples=[1])
    quantity: int = Field(..., gt=0, description="购买数量", examples=[2])


class CheckoutRequest(BaseModel):
    """结算请求"""
    items: List[CartLineRequest] = Field(
        ...,
        description="购物车商品",
    )
    phone: str = Field(..., description="联系电话", examples=["9876543210"])
    discount_code: Optional[str] = Field(None, description="折扣码", examples=["AURA10"])
    store_id: Optional[int] = Field(None, description="店铺ID")
    payment_method: PaymentMethod = Field(
        PaymentMethod.PAYU,
        description="支付方式"
    )


class ExpirePendingRequest(BaseModel):
    """超时订单清理请求"""
    max_age_minutes: Optional[int] = Field(
        None,
        ge=1,
        description="超时分钟数，默认读取配置"
    )
    batch_size: int = Field(
        500,
        ge=1,
        le=10000,
        description="批处理大小",
        examples=[500]
    )
    dry_run: bool = Field(False, description="只统计不修改")


# ==================== 响应模型 ====================

class BaseResponse(BaseModel):
    """基础响应模型"""
    success: bool = Field(
        ...,
        description="请求是否成功"
    )
    message: Optional[str] = Field(
        None,
        description="响应消息"
    )


class HashResponse(BaseResponse):
    """发起支付哈希"""
    hash: str = Field(..., description="SHA-512 十六进制哈希")


class WebhookResponse(BaseResponse):
    """支付回调处理结果"""
    order_id: str
    order_status: str
    outcome: str


class TotalsView(BaseModel):
    subtotal: Decimal
    discount: Decimal
    taxes: Decimal
    total: Decimal


class RedirectView(BaseModel):
    """交给前端自动提交的网关表单"""
    action_url: str
    method: str = "POST"
    fields: Dict[str, str]


class CheckoutResponse(BaseResponse):
    """结算响应"""
    order_id: str
    status: str
    totals: TotalsView
    redirect: Optional[RedirectView] = None


class OrderItemView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: int
    name: str
    price: Decimal
    image_urls: List[str] = []
    quantity: int


class OrderView(BaseModel):
    """订单详情"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_email: str
    store_id: Optional[int]
    phone: str
    status: str
    items: List[OrderItemView]
    subtotal: Decimal
    discount: Decimal
    taxes: Decimal
    total: Decimal
    discount_code: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_order(cls, order) -> "OrderView":
        return cls(
            id=order.id,
            user_email=order.user_email,
            store_id=order.store_id,
            phone=order.phone,
            status=order.status.value,
            items=[OrderItemView.model_validate(item) for item in order.items],
            subtotal=order.subtotal,
            discount=order.discount,
            taxes=order.taxes,
            total=order.total,
            discount_code=order.discount_code,
            notes=order.notes,
        )


class StockResponse(BaseResponse):
    """单个商品库存响应"""
    product_id: int = Field(
        ...,
        description="商品ID"
    )
    available_stock: int = Field(
        ...,
        ge=0,
        description="可用库存数量"
    )


class MaintenanceResponse(BaseResponse):
    """超时订单清理响应"""
    expired_count: Optional[int] = Field(
        None,
        ge=0,
        description="取消的订单数量"
    )


class CeleryTaskResponse(BaseResponse):
    """Celery任务响应"""
    task_id: Optional[str] = Field(
        None,
        description="任务ID"
    )


class TaskStatusResponse(BaseModel):
    """任务状态响应"""
    task_id: str = Field(
        ...,
        description="任务ID"
    )
    status: str = Field(
        ...,
        description="任务状态描述"
    )
    state: str = Field(
        ...,
        description="任务状态码"
    )
