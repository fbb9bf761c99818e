"""支付对账链路的业务异常

服务层直接抛出 HTTPException 子类，路由层透传，
由 main.py 中的全局异常处理器统一渲染为 JSON。
"""

from fastapi import HTTPException


class PaymentPipelineError(HTTPException):
    """支付链路异常基类"""
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(status_code=self.status_code, detail=detail)


class Unauthenticated(PaymentPipelineError):
    """下单或查单时没有登录用户（或用户缺少邮箱）"""
    status_code = 401


class InvalidState(PaymentPipelineError):
    """购物车为空、金额非法、缺少必填字段等输入错误"""
    status_code = 400


class HashMismatch(PaymentPipelineError):
    """回调哈希校验失败，按安全事件处理"""
    status_code = 400


class PaymentMismatch(PaymentPipelineError):
    """回调哈希合法，但金额或邮箱与订单快照不一致"""
    status_code = 400


class OrderNotFound(PaymentPipelineError):
    """回调引用的 txnid 没有对应订单"""
    status_code = 404


class StockExhausted(PaymentPipelineError):
    """库存不足以履约（支付已完成时需人工退款）"""
    status_code = 500


class TransactionFailure(PaymentPipelineError):
    """原子提交因基础设施原因失败"""
    status_code = 500


class GatewayMisconfigured(PaymentPipelineError):
    """缺少 PayU 商户密钥或盐值"""
    status_code = 500
