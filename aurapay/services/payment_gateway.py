"""PayU 网关适配器

纯函数实现：计算发起支付 / 校验回调所需的 SHA-512 哈希，
以及构造跳转网关的表单数据。本模块不访问订单存储，
浏览器跳转（自动提交表单）由调用方完成。

哈希拼接顺序、金额格式和占位字段数量任何一处不一致，
网关都会拒绝交易，修改前请先跑黄金值测试。
"""

import hashlib
import hmac
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Iterable, List

from aurapay.core.errors import GatewayMisconfigured, InvalidState

# PayU 的 udf1-udf10 占位字段
INITIATION_PLACEHOLDERS = 10
# 回调哈希中 status 与 email 之间的空字段（udf10..udf1 的逆序段）
VERIFICATION_PLACEHOLDERS = 10

SUCCESS_STATUS = "success"

_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class PaymentGatewayConfig:
    """商户配置，由 HTTP 入口从 settings 构建后显式注入"""
    merchant_key: str
    merchant_salt: str
    payment_url: str = "https://test.payu.in/_payment"
    success_url: str = ""
    failure_url: str = ""

    def ensure_secrets(self) -> None:
        if not self.merchant_key or not self.merchant_salt:
            raise GatewayMisconfigured("Missing PAYU_KEY or PAYU_SALT")


@dataclass
class RedirectPayload:
    """跳转网关所需的表单（action + 隐藏字段）"""
    action_url: str
    fields: Dict[str, str] = field(default_factory=dict)


def format_amount(value) -> str:
    """金额格式化为两位小数字符串（97.2 -> "97.20"）

    哈希是对格式化后的字符串计算的，而不是数值本身。
    """
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidState(f"Malformed amount: {value!r}")
    if not amount.is_finite() or amount < 0:
        raise InvalidState(f"Malformed amount: {value!r}")
    return str(amount.quantize(_CENTS, rounding=ROUND_HALF_UP))


def _sha512_hex(raw: str) -> str:
    return hashlib.sha512(raw.encode("utf-8")).hexdigest()


def initiation_hash_string(
    merchant_key: str,
    txnid: str,
    amount,
    productinfo: str,
    firstname: str,
    email: str,
    merchant_salt: str,
) -> str:
    """key|txnid|amount|productinfo|firstname|email|<10个空字段>|salt"""
    parts = [
        merchant_key.strip(),
        txnid.strip(),
        format_amount(amount),
        productinfo.strip(),
        firstname.strip(),
        email.strip(),
    ]
    parts.extend([""] * INITIATION_PLACEHOLDERS)
    parts.append(merchant_salt.strip())
    return "|".join(parts)


def compute_initiation_hash(config: PaymentGatewayConfig, txnid: str, amount,
                            productinfo: str, firstname: str, email: str) -> str:
    config.ensure_secrets()
    return _sha512_hex(initiation_hash_string(
        config.merchant_key, txnid, amount, productinfo, firstname, email,
        config.merchant_salt,
    ))


def verification_hash_string(
    merchant_salt: str,
    status: str,
    email: str,
    firstname: str,
    productinfo: str,
    amount: str,
    txnid: str,
    merchant_key: str,
) -> str:
    """salt|status|<空字段>|email|firstname|productinfo|amount|txnid|key

    回调字段原样参与计算，不做任何格式化。
    """
    parts = [merchant_salt, status]
    parts.extend([""] * VERIFICATION_PLACEHOLDERS)
    parts.extend([email, firstname, productinfo, amount, txnid, merchant_key])
    return "|".join(parts)


def compute_verification_hash(config: PaymentGatewayConfig, status: str, email: str,
                              firstname: str, productinfo: str, amount: str,
                              txnid: str) -> str:
    config.ensure_secrets()
    return _sha512_hex(verification_hash_string(
        config.merchant_salt, status, email, firstname, productinfo, amount,
        txnid, config.merchant_key,
    ))


def hashes_match(expected: str, supplied: str) -> bool:
    return hmac.compare_digest(expected, (supplied or "").strip())


def build_productinfo(names: Iterable[str]) -> str:
    return ", ".join(names)


def first_name(display_name: str) -> str:
    tokens = (display_name or "").split()
    return tokens[0] if tokens else ""


def build_redirect_payload(config: PaymentGatewayConfig, order, user, phone: str) -> RedirectPayload:
    """根据订单快照构造跳转 PayU 的表单数据

    Args:
        config: 商户配置
        order: 已持久化为 Pending Payment 的订单（txnid 即订单号）
        user: 身份提供方给出的当前用户
        phone: 联系电话
    """
    names: List[str] = [item.name for item in order.items]
    productinfo = build_productinfo(names)
    firstname = first_name(user.display_name)
    amount = format_amount(order.total)
    email = user.email.strip()

    payment_hash = compute_initiation_hash(
        config, order.id, amount, productinfo, firstname, email,
    )
    return RedirectPayload(
        action_url=config.payment_url,
        fields={
            "key": config.merchant_key,
            "txnid": order.id,
            "amount": amount,
            "productinfo": productinfo,
            "firstname": firstname,
            "email": email,
            "phone": phone,
            "surl": config.success_url,
            "furl": config.failure_url,
            "hash": payment_hash,
        },
    )
