"""测试配置和 fixtures"""
import pytest
from decimal import Decimal
from unittest.mock import Mock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from redis import Redis

from aurapay.db.base import Base
from aurapay.core.identity import AuthenticatedUser
from aurapay.models.product import Product
from aurapay.models.discount_code import DiscountCode, DiscountType
from aurapay.services.order_store import OrderStore
from aurapay.services.payment_gateway import PaymentGatewayConfig, compute_verification_hash

import aurapay.models  # noqa: F401 注册全部模型


MERCHANT_KEY = "ABC123"
MERCHANT_SALT = "SECRET"


@pytest.fixture
def engine():
    """内存 SQLite（StaticPool 让 TestClient 线程共享同一连接）"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def db_session(engine):
    """创建测试数据库会话"""
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def store(db_session):
    return OrderStore(db_session)


@pytest.fixture
def mock_redis():
    """创建模拟 Redis 客户端"""
    redis_mock = Mock(spec=Redis)
    redis_mock.get.return_value = None
    redis_mock.setex.return_value = True
    redis_mock.delete.return_value = 1
    return redis_mock


@pytest.fixture
def gateway_config():
    """测试用商户配置（固定密钥）"""
    return PaymentGatewayConfig(
        merchant_key=MERCHANT_KEY,
        merchant_salt=MERCHANT_SALT,
        payment_url="https://test.payu.in/_payment",
        success_url="http://testserver/api/paymentReturn",
        failure_url="http://testserver/api/paymentReturn",
    )


@pytest.fixture
def user():
    return AuthenticatedUser(uid="uid-jane", email="jane@x.com", display_name="Jane Doe")


@pytest.fixture
def products(db_session):
    """示例商品数据：两个商品属于同一店铺"""
    oil = Product(id=1, store_id=7, name="Oil", price=Decimal("400.00"),
                  image_urls=["https://img/oil.png"], stock=10)
    soap = Product(id=2, store_id=7, name="Soap", price=Decimal("100.00"),
                   image_urls=[], stock=5)
    other_store = Product(id=3, store_id=8, name="Tea", price=Decimal("50.00"),
                          image_urls=[], stock=3)
    db_session.add_all([oil, soap, other_store])
    db_session.add_all([
        DiscountCode(code="AURA10", type=DiscountType.PERCENTAGE, value=Decimal("10")),
        DiscountCode(code="FLAT5000", type=DiscountType.FIXED, value=Decimal("5000")),
    ])
    db_session.commit()
    return {"oil": oil, "soap": soap, "tea": other_store}


@pytest.fixture
def make_callback(gateway_config):
    """按网关规则构造带合法哈希的回调表单"""
    def _make(order, status="success", **overrides):
        fields = {
            "status": status,
            "txnid": order.id,
            "email": order.user_email,
            "firstname": "Jane",
            "productinfo": ", ".join(item.name for item in order.items),
            "amount": f"{order.total:.2f}",
        }
        fields.update(overrides)
        fields["hash"] = compute_verification_hash(
            gateway_config,
            fields["status"],
            fields["email"],
            fields["firstname"],
            fields["productinfo"],
            fields["amount"],
            fields["txnid"],
        )
        return fields
    return _make


@pytest.fixture
def client(db_session, mock_redis, gateway_config):
    """创建测试客户端（不触发 lifespan，依赖全部替换为测试实现）"""
    from fastapi.testclient import TestClient
    from aurapay.main import app
    from aurapay.core.dependencies import get_db, get_redis, get_gateway_config

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: mock_redis
    app.dependency_overrides[get_gateway_config] = lambda: gateway_config
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """认证代理注入的用户信息请求头"""
    return {
        "X-User-Uid": "uid-jane",
        "X-User-Email": "jane@x.com",
        "X-User-Name": "Jane Doe",
    }
