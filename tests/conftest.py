"""测试配置和 fixtures"""
import pytest
import jwt
from decimal import Decimal
from unittest.mock import Mock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from redis import Redis
from redlock import Redlock
from fastapi.testclient import TestClient

import storefront.models  # noqa: F401  注册模型
from storefront.db.base import Base
from storefront.core.config import settings
from storefront.core.dependencies import get_db, get_redis, get_redlock
from storefront.models import Cart, CartItem, Product, User


@pytest.fixture
def engine():
    """内存 SQLite，多线程共享同一连接（TestClient 在线程池中执行同步依赖）"""
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
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
def mock_redis():
    """创建模拟 Redis 客户端"""
    redis_mock = Mock(spec=Redis)
    redis_mock.get.return_value = None
    redis_mock.setex.return_value = True
    redis_mock.delete.return_value = 1
    redis_mock.mget.return_value = [None, None]
    redis_mock.pipeline.return_value = Mock()
    return redis_mock


@pytest.fixture
def mock_redlock():
    """创建模拟 Redlock 分布式锁"""
    redlock_mock = Mock(spec=Redlock)
    lock_mock = Mock()
    redlock_mock.lock.return_value = lock_mock
    redlock_mock.unlock.return_value = True
    return redlock_mock


@pytest.fixture
def customer(db_session):
    """普通用户"""
    user = User(
        full_name="Ravi Kumar",
        email="ravi@example.com",
        phone="9876543210",
        street="12 MG Road",
        city="Bengaluru",
        state="Karnataka",
        pincode="560001",
        country="India",
        is_admin=False,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def admin(db_session):
    """管理员用户"""
    user = User(full_name="Store Admin", email="admin@example.com", is_admin=True)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def products(db_session):
    """示例商品：芒果 1000（库存 10），蜂蜜 250（库存 2），下架的椰子"""
    mango = Product(sku="MANGO-1KG", name="Alphonso Mango", price=Decimal("1000.00"), stock=10)
    honey = Product(sku="HONEY-500", name="Wild Honey", price=Decimal("250.00"), stock=2)
    coconut = Product(sku="COCO-1", name="Tender Coconut", price=Decimal("40.00"), stock=50, is_active=False)
    db_session.add_all([mango, honey, coconut])
    db_session.commit()
    return {"mango": mango, "honey": honey, "coconut": coconut}


@pytest.fixture
def fill_cart(db_session):
    """直接写入购物车行（不经过服务层）"""
    def _fill(user, *lines):
        cart = Cart(user_id=user.id)
        for product, quantity in lines:
            cart.items.append(
                CartItem(product_id=product.id, product=product, quantity=quantity, price=product.price)
            )
        db_session.add(cart)
        db_session.commit()
        return cart
    return _fill


def make_token(user_id, **claims) -> str:
    payload = {"sub": str(user_id)}
    payload.update(claims)
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def auth_headers():
    """生成 Bearer 鉴权头"""
    def _headers(user) -> dict:
        return {"Authorization": f"Bearer {make_token(user.id)}"}
    return _headers


@pytest.fixture
def client(db_session, mock_redis, mock_redlock, tmp_path, monkeypatch):
    """创建测试客户端：数据库、Redis、Redlock 均替换为测试实现"""
    from storefront.main import app

    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: mock_redis
    app.dependency_overrides[get_redlock] = lambda: mock_redlock
    try:
        # 不进入上下文管理器，避免 lifespan 连接真实数据库
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
