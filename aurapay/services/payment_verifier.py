"""支付回调校验（支付对账核心状态机）

Pending Payment -> {Processing, Cancelled}，终态不可再变。

处理顺序：
1. 重新计算回调哈希并比对，不一致按伪造回调处理，任何库存变更之前完成；
2. 在同一个事务内加锁读取订单，做幂等判断（已 Processing 直接返回成功）；
3. 网关状态为 success 时，先核对回调金额和邮箱与订单快照一致，
   再在该事务内扣减全部商品库存并把订单改为 Processing；
4. 网关状态非 success 时取消订单，不动库存；
5. 第 3 步失败时回滚，并尽力把订单标记为 Cancelled 且注明需人工对账。
"""

from dataclasses import dataclass
from typing import List, Optional
import enum
import logging

from redis import Redis

from aurapay.core.errors import (
    HashMismatch,
    InvalidState,
    OrderNotFound,
    PaymentMismatch,
    StockExhausted,
    TransactionFailure,
)
from aurapay.models.order import OrderStatus
from aurapay.models.stock_movements import MovementSource
from aurapay.services.order_store import OrderStore
from aurapay.services.payment_gateway import (
    PaymentGatewayConfig,
    SUCCESS_STATUS,
    compute_verification_hash,
    format_amount,
    hashes_match,
)
from aurapay.services.stock_service import StockService

logger = logging.getLogger(__name__)

HASH_MISMATCH_NOTE = "Payment verification failed (hash mismatch)."
MANUAL_REVIEW_NOTE = "Payment succeeded but order processing failed. Needs manual review. Reason: {reason}"
LATE_PAYMENT_NOTE = "Payment captured after order was cancelled. Needs manual refund."
MISMATCH_NOTE = "Payment captured with {field} not matching the order. Needs manual refund."


@dataclass(frozen=True)
class PaymentCallback:
    """网关异步回调的字段"""
    status: str
    txnid: str
    hash: str
    email: str
    firstname: str
    productinfo: str
    amount: str


class CallbackOutcome(str, enum.Enum):
    PROCESSED = "processed"                  # 扣库存成功，订单进入 Processing
    ALREADY_PROCESSED = "already_processed"  # 重复投递，幂等返回
    CANCELLED = "cancelled"                  # 网关返回失败，订单取消
    IGNORED_TERMINAL = "ignored_terminal"    # 订单已是终态，不再变更


@dataclass(frozen=True)
class VerificationResult:
    order_id: str
    order_status: OrderStatus
    outcome: CallbackOutcome


class PaymentCallbackVerifier:
    """支付回调校验器"""

    def __init__(self, store: OrderStore, config: PaymentGatewayConfig,
                 redis: Optional[Redis] = None):
        self.store = store
        self.config = config
        self.stock = StockService(store, redis)

    def verify_hash(self, callback: PaymentCallback) -> bool:
        expected = compute_verification_hash(
            self.config,
            callback.status,
            callback.email,
            callback.firstname,
            callback.productinfo,
            callback.amount,
            callback.txnid,
        )
        return hashes_match(expected, callback.hash)

    def handle(self, callback: PaymentCallback) -> VerificationResult:
        logger.info(f"Received webhook for txnid: {callback.txnid} with status: {callback.status}")

        if not self.verify_hash(callback):
            logger.error(f"Hash mismatch for txnid: {callback.txnid}. Potential fraud attempt.")
            self._cancel_quietly(callback.txnid, HASH_MISMATCH_NOTE)
            raise HashMismatch("Hash verification failed.")

        if callback.status == SUCCESS_STATUS:
            return self._settle_success(callback)
        return self._settle_failure(callback.txnid, callback.status)

    def _settle_success(self, callback: PaymentCallback) -> VerificationResult:
        txnid = callback.txnid
        touched: List[int] = []
        mismatch: Optional[str] = None
        try:
            with self.store.transaction():
                order = self.store.lock_order(txnid)
                if order is None:
                    raise OrderNotFound(f"Order {txnid} not found.")

                # 幂等判断必须在加锁的同一事务内完成
                if order.status is OrderStatus.PROCESSING:
                    logger.info(f"Order {txnid} is already processed. Skipping stock deduction.")
                    return VerificationResult(txnid, order.status, CallbackOutcome.ALREADY_PROCESSED)

                if order.status is not OrderStatus.PENDING_PAYMENT:
                    return self._ignore_terminal(order)

                # 哈希只证明回调来自网关，实付金额仍需与订单快照一致
                mismatch = self._mismatched_field(order, callback)
                if mismatch:
                    raise PaymentMismatch(f"Payment {mismatch} does not match order {txnid}.")

                if not order.items:
                    raise TransactionFailure(f"Order {txnid} has no items.")

                touched = self.stock.deduct_for_order(order, MovementSource.PAYMENT_WEBHOOK)
                order.status = OrderStatus.PROCESSING
        except OrderNotFound:
            logger.error(f"Webhook references unknown order {txnid}.")
            raise
        except PaymentMismatch as e:
            logger.error(f"Callback for txnid {txnid} rejected: {e.detail}")
            self._cancel_quietly(txnid, MISMATCH_NOTE.format(field=mismatch))
            raise
        except (StockExhausted, TransactionFailure) as e:
            logger.error(f"Transaction for txnid {txnid} failed: {e.detail}")
            self._cancel_quietly(txnid, MANUAL_REVIEW_NOTE.format(reason=e.detail))
            raise
        except Exception as e:
            logger.error(f"Transaction for txnid {txnid} failed: {e}", exc_info=True)
            self._cancel_quietly(txnid, MANUAL_REVIEW_NOTE.format(reason=str(e)))
            raise TransactionFailure("Error updating order status post-payment.") from e

        self.stock.invalidate(touched)
        logger.info(f"Order {txnid} processed successfully: stock deducted and status updated.")
        return VerificationResult(txnid, OrderStatus.PROCESSING, CallbackOutcome.PROCESSED)

    @staticmethod
    def _mismatched_field(order, callback: PaymentCallback) -> Optional[str]:
        """返回与订单快照不一致的回调字段名，一致时返回 None"""
        try:
            if format_amount(callback.amount) != format_amount(order.total):
                return "amount"
        except InvalidState:
            return "amount"
        if callback.email.strip().lower() != (order.user_email or "").strip().lower():
            return "email"
        return None

    def _ignore_terminal(self, order) -> VerificationResult:
        """已是终态的订单收到成功回调：不再流转，取消单追加退款提示"""
        if order.status is OrderStatus.CANCELLED:
            logger.error(f"Order {order.id} was already cancelled but payment succeeded. Needs manual refund.")
            if LATE_PAYMENT_NOTE not in (order.notes or ""):
                order.notes = f"{order.notes} {LATE_PAYMENT_NOTE}" if order.notes else LATE_PAYMENT_NOTE
        else:
            logger.warning(f"Order {order.id} is already {order.status.value}. Ignoring callback.")
        return VerificationResult(order.id, order.status, CallbackOutcome.IGNORED_TERMINAL)

    def _settle_failure(self, txnid: str, status: str) -> VerificationResult:
        with self.store.transaction():
            order = self.store.lock_order(txnid)
            if order is None:
                logger.error(f"Webhook references unknown order {txnid}.")
                raise OrderNotFound(f"Order {txnid} not found.")

            if order.status is not OrderStatus.PENDING_PAYMENT:
                logger.warning(f"Order {txnid} is already {order.status.value}. Ignoring {status} callback.")
                return VerificationResult(txnid, order.status, CallbackOutcome.IGNORED_TERMINAL)

            order.status = OrderStatus.CANCELLED
            order.notes = f"Payment {status} by user."

        logger.warning(f"Order {txnid} marked as Cancelled due to status: {status}.")
        return VerificationResult(txnid, OrderStatus.CANCELLED, CallbackOutcome.CANCELLED)

    def _cancel_quietly(self, txnid: str, note: str) -> None:
        """尽力把仍在 Pending Payment 的订单标记为取消，失败只记录日志"""
        try:
            with self.store.transaction():
                order = self.store.lock_order(txnid)
                if order is None or order.status is not OrderStatus.PENDING_PAYMENT:
                    return
                order.status = OrderStatus.CANCELLED
                order.notes = note
            logger.warning(f"Order {txnid} marked as Cancelled: {note}")
        except Exception as e:
            logger.critical(f"CRITICAL: Failed to mark order {txnid} as failed: {e}", exc_info=True)
