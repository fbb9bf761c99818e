"""订单 API 路由"""

from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Path, Body

from aurapay.core.config import settings
from aurapay.core.dependencies import (
    get_gateway_config,
    get_maintenance_service,
    get_order_intent_builder,
    get_order_store,
)
from aurapay.core.errors import OrderNotFound, Unauthenticated
from aurapay.core.identity import AuthenticatedUser, get_current_user
from aurapay.models.order import OrderStatus
from aurapay.schemas.payment_api import (
    CheckoutRequest,
    CheckoutResponse,
    ExpirePendingRequest,
    MaintenanceResponse,
    CeleryTaskResponse,
    TaskStatusResponse,
    OrderView,
    PaymentMethod,
)
from aurapay.services.order_intent import CartLine, OrderIntentBuilder
from aurapay.services.order_maintenance import OrderMaintenanceService
from aurapay.services.order_store import OrderStore
from aurapay.services.payment_gateway import PaymentGatewayConfig, build_redirect_payload
from tasks.order_tasks import expire_stale_pending_orders as celery_expire_task

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/orders",
    tags=["订单"],
    responses={
        400: {"description": "请求参数错误"},
        401: {"description": "未登录"},
        404: {"description": "订单不存在"},
        500: {"description": "服务器内部错误"}
    }
)


@router.post(
    "/checkout",
    status_code=201,
    response_model=CheckoutResponse,
    summary="结算下单",
    description="""根据购物车创建订单。

    **PayU 支付：**
    - 订单以 Pending Payment 写库，返回跳转网关的表单数据
    - 库存在支付回调校验通过后才扣减

    **货到付款：**
    - 订单直接进入 Processing，同一事务内扣减库存
    """,
)
def checkout(
    request: CheckoutRequest = Body(...),
    user: Optional[AuthenticatedUser] = Depends(get_current_user),
    builder: OrderIntentBuilder = Depends(get_order_intent_builder),
    config: PaymentGatewayConfig = Depends(get_gateway_config)
):
    use_gateway = request.payment_method is PaymentMethod.PAYU
    if use_gateway:
        # 密钥缺失时不要留下无法支付的订单
        config.ensure_secrets()

    try:
        order_id = builder.place_order(
            user,
            [CartLine(line.product_id, line.quantity) for line in request.items],
            request.phone,
            discount_code=request.discount_code,
            store_id=request.store_id,
            status=OrderStatus.PENDING_PAYMENT if use_gateway else OrderStatus.PROCESSING,
        )
        order = builder.store.get(order_id)

        redirect = None
        if use_gateway:
            payload = build_redirect_payload(config, order, user, request.phone.strip())
            redirect = {"action_url": payload.action_url, "method": "POST", "fields": payload.fields}
    except HTTPException:
        # 透传 HTTPException
        raise
    except Exception as e:
        logger.error(f"结算下单失败: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

    return {
        "success": True,
        "message": "下单成功",
        "order_id": order.id,
        "status": order.status.value,
        "totals": {
            "subtotal": order.subtotal,
            "discount": order.discount,
            "taxes": order.taxes,
            "total": order.total,
        },
        "redirect": redirect,
    }


@router.post("/maintenance/expire-pending", response_model=MaintenanceResponse)
def expire_pending(
    request: Optional[ExpirePendingRequest] = Body(None),
    service: OrderMaintenanceService = Depends(get_maintenance_service)
):
    """手动触发超时订单清理（API 直接调用 Service）"""
    request = request or ExpirePendingRequest()
    try:
        count = service.expire_stale_pending_orders(
            max_age_minutes=request.max_age_minutes or settings.PENDING_ORDER_MAX_AGE_MINUTES,
            batch_size=request.batch_size,
            dry_run=request.dry_run,
        )
        return {
            "success": True,
            "message": "试运行完成" if request.dry_run else "清理完成",
            "expired_count": count
        }
    except HTTPException:
        # 透传 HTTPException
        raise
    except Exception as e:
        logger.error(f"手动清理失败: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/maintenance/expire-pending/celery", response_model=CeleryTaskResponse)
def expire_pending_celery(batch_size: int = 500):
    """触发 Celery 异步清理任务"""
    try:
        task = celery_expire_task.delay(batch_size=batch_size)
        return {
            "success": True,
            "message": "已提交异步清理任务",
            "task_id": task.id
        }
    except Exception as e:
        logger.error(f"Celery 任务提交失败: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/maintenance/status/{task_id}", response_model=TaskStatusResponse)
def get_maintenance_status(task_id: str):
    """查询 Celery 任务执行状态"""
    try:
        from celery_app import app
        task = app.AsyncResult(task_id)

        if task.state == 'PENDING':
            status = "任务等待中"
        elif task.state == 'SUCCESS':
            status = f"任务完成: {task.result}"
        elif task.state == 'FAILURE':
            status = f"任务失败: {str(task.info)}"
        else:
            status = f"任务状态: {task.state}"

        return {
            "task_id": task_id,
            "status": status,
            "state": task.state
        }
    except Exception as e:
        logger.error(f"查询任务状态失败: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{order_id}", response_model=OrderView, summary="查询订单")
def get_order(
    order_id: str = Path(
        ...,
        min_length=1,
        max_length=25,
        description="订单号",
        examples=["AURA-3F2A9C0D4E5B6A7C8D9E"]
    ),
    store: OrderStore = Depends(get_order_store),
    user: Optional[AuthenticatedUser] = Depends(get_current_user)
):
    """只能查询当前登录用户自己的订单，他人订单按不存在处理"""
    if user is None or not user.email:
        raise Unauthenticated("User must be logged in to view orders")

    order = store.get(order_id)
    if order is None or order.user_email.strip().lower() != user.email.lower():
        raise OrderNotFound(f"Order {order_id} not found.")
    return OrderView.from_order(order)
