"""支付网关相关路由

- /generateHash  浏览器 -> 本服务，跳转网关前获取发起哈希
- /verifyPayment 网关 -> 本服务的服务端回调（对账核心）
- /paymentReturn 网关把浏览器 POST 回来，转成 303 GET 跳回前端
"""

from urllib.parse import urlencode
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import RedirectResponse
from starlette.concurrency import run_in_threadpool

from aurapay.core.dependencies import get_gateway_config, get_order_store, get_payment_verifier
from aurapay.core.errors import InvalidState, OrderNotFound, PaymentMismatch
from aurapay.schemas.payment_api import GenerateHashRequest, HashResponse, WebhookResponse
from aurapay.services.payment_gateway import (
    PaymentGatewayConfig,
    SUCCESS_STATUS,
    compute_initiation_hash,
    format_amount,
)
from aurapay.services.order_store import OrderStore
from aurapay.services.payment_verifier import PaymentCallback, PaymentCallbackVerifier

logger = logging.getLogger(__name__)
router = APIRouter(
    tags=["支付网关"],
    responses={
        400: {"description": "缺少字段或哈希校验失败"},
        404: {"description": "订单不存在"},
        500: {"description": "服务器内部错误"}
    }
)

CALLBACK_FIELDS = ("status", "txnid", "hash", "email", "firstname", "productinfo", "amount")


async def _read_body(request: Request) -> dict:
    """网关以表单提交，兼容 JSON"""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise InvalidState("Invalid request: missing fields.")
        return body if isinstance(body, dict) else {}
    form = await request.form()
    return dict(form)


@router.post(
    "/generateHash",
    response_model=HashResponse,
    summary="生成发起支付哈希",
)
def generate_hash(
    request: GenerateHashRequest,
    config: PaymentGatewayConfig = Depends(get_gateway_config),
    store: OrderStore = Depends(get_order_store)
):
    """计算跳转 PayU 所需的哈希（商户盐值只在服务端使用）

    只为已存在的订单签名，金额和邮箱必须与订单快照一致。
    """
    config.ensure_secrets()

    missing = request.missing_fields()
    if missing:
        raise InvalidState("Missing required fields")

    try:
        amount = format_amount(request.total)
        order = store.get(request.txnid.strip())
        if order is None:
            raise OrderNotFound(f"Order {request.txnid} not found.")
        if amount != format_amount(order.total):
            raise PaymentMismatch("Total does not match the order.")
        if request.email.strip().lower() != (order.user_email or "").strip().lower():
            raise PaymentMismatch("Email does not match the order.")

        payment_hash = compute_initiation_hash(
            config,
            request.txnid,
            request.total,
            request.productinfo,
            request.firstname,
            request.email,
        )
    except HTTPException:
        # 透传 HTTPException
        raise
    except Exception as e:
        logger.error(f"生成支付哈希失败: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

    logger.info(f"Generated hash for txnid: {request.txnid}")
    return {"success": True, "hash": payment_hash}


@router.options("/verifyPayment", include_in_schema=False)
async def verify_payment_preflight():
    return Response(status_code=204)


@router.post(
    "/verifyPayment",
    response_model=WebhookResponse,
    summary="支付结果回调",
    description="""PayU 服务端异步回调。

    **处理流程：**
    - 重新计算哈希，不一致直接拒绝并取消订单
    - 同一事务内加锁做幂等判断和库存扣减
    - 重复投递返回 200 且不会重复扣减
    """,
)
async def verify_payment(
    request: Request,
    verifier: PaymentCallbackVerifier = Depends(get_payment_verifier)
):
    body = await _read_body(request)
    missing = [name for name in CALLBACK_FIELDS if not str(body.get(name) or "")]
    if missing:
        logger.error(f"Webhook missing required fields: {missing}")
        raise InvalidState("Invalid request: missing fields.")

    callback = PaymentCallback(**{name: str(body[name]) for name in CALLBACK_FIELDS})

    try:
        result = await run_in_threadpool(verifier.handle, callback)
    except HTTPException:
        # 透传 HTTPException
        raise
    except Exception as e:
        logger.error(f"支付回调处理失败: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error updating order status post-payment.")

    return {
        "success": True,
        "message": "Webhook processed successfully.",
        "order_id": result.order_id,
        "order_status": result.order_status.value,
        "outcome": result.outcome.value,
    }


@router.post(
    "/paymentReturn",
    status_code=303,
    summary="支付完成后的浏览器回跳",
)
async def payment_return(request: Request):
    """把网关的 POST 回跳转换成 303 GET 跳转

    只根据 status 决定跳转页面，不做任何校验，不能作为业务依据。
    """
    try:
        form = await request.form()
        status = form.get("status")
        txnid = form.get("txnid") or ""

        if status == SUCCESS_STATUS:
            url = "/orders?" + urlencode({"payment": "success", "order_id": txnid})
        else:
            url = "/?" + urlencode({"payment": "failure", "order_id": txnid})
    except Exception as e:
        logger.error(f"Error in payment return handler: {e}")
        url = "/"

    return RedirectResponse(url, status_code=303)
