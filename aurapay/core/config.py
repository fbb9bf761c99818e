import os
from decimal import Decimal
from pydantic_settings import BaseSettings

from aurapay.services.payment_gateway import PaymentGatewayConfig


class Settings(BaseSettings):
    # 数据库配置
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "postgres")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "123456")
    POSTGRES_HOST: str = os.getenv("POSTGRES_HOST", "localhost")
    POSTGRES_PORT: int = int(os.getenv("POSTGRES_PORT", "5432"))
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "aurapay")

    # Redis 配置
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))

    # PayU 支付网关配置（密钥只存在于服务端）
    PAYU_KEY: str = os.getenv("PAYU_KEY", "")
    PAYU_SALT: str = os.getenv("PAYU_SALT", "")
    PAYU_PAYMENT_URL: str = os.getenv("PAYU_PAYMENT_URL", "https://test.payu.in/_payment")
    PUBLIC_BASE_URL: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")

    # 订单配置
    TAX_RATE: Decimal = Decimal(os.getenv("TAX_RATE", "0.08"))
    ORDER_ID_PREFIX: str = os.getenv("ORDER_ID_PREFIX", "AURA")
    PENDING_ORDER_MAX_AGE_MINUTES: int = int(os.getenv("PENDING_ORDER_MAX_AGE_MINUTES", "60"))

    # 开发环境启动时自动建表
    AUTO_CREATE_TABLES: bool = os.getenv("AUTO_CREATE_TABLES", "false").lower() == "true"

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+psycopg://"
            f"{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/"
            f"{self.POSTGRES_DB}"
        )

    @property
    def payment_return_url(self) -> str:
        return f"{self.PUBLIC_BASE_URL.rstrip('/')}/api/paymentReturn"

    def gateway_config(self) -> PaymentGatewayConfig:
        """构建显式注入给网关适配器和回调校验器的配置"""
        return PaymentGatewayConfig(
            merchant_key=self.PAYU_KEY.strip(),
            merchant_salt=self.PAYU_SALT.strip(),
            payment_url=self.PAYU_PAYMENT_URL,
            success_url=self.payment_return_url,
            failure_url=self.payment_return_url,
        )

settings = Settings()
