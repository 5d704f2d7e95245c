import os

# Settings are read at import time; point them at the test database first
os.environ["ENV"] = "testing"
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ALGORITHM", "HS256")
os.environ.setdefault("VNPAY_TMN_CODE", "TESTTMN1")
os.environ.setdefault("VNPAY_HASH_SECRET", "TESTHASHSECRET")
os.environ.setdefault("VNPAY_RETURN_URL", "http://localhost:8000/vnpay/return")
os.environ.setdefault("LOG_DIR", "logs")

import pytest
from decimal import Decimal
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from typing import Generator

from main import app
from core.config import settings
from core.context import RequestContext
from core.database import Base
from utils.deps import get_db
from models import User, Address, Product, Cart, CartItem
from models.enums import UserRole, UserStatus, ProductStatus, CartStatus

# SYNC SQLite for testing (matches sync service layer)
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False}
)

TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """
    Creates a fresh, empty database for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

    Base.metadata.drop_all(bind=engine)


@pytest.fixture
async def client(session: Session):
    """
    Yields an HTTP client that interacts with the app using the test database.
    """
    def override_get_db():
        try:
            yield session
        finally:
            pass  # Session cleanup handled by session fixture

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ---- data factories ----

def _make_user(session: Session, email: str, role: UserRole = UserRole.CUSTOMER,
               status: UserStatus = UserStatus.ACTIVE) -> User:
    user = User(email=email, full_name=email.split("@")[0].title(), role=role, status=status)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def _make_address(session: Session, user: User) -> Address:
    address = Address(
        user_id=user.id,
        full_name=user.full_name,
        phone="0900000000",
        address_line="12 Nguyen Hue, District 1",
        is_default=True
    )
    session.add(address)
    session.commit()
    session.refresh(address)
    return address


@pytest.fixture
def customer(session):
    return _make_user(session, "reader@example.com")


@pytest.fixture
def other_customer(session):
    return _make_user(session, "someone.else@example.com")


@pytest.fixture
def admin(session):
    return _make_user(session, "admin@example.com", role=UserRole.ADMIN)


@pytest.fixture
def address(session, customer):
    return _make_address(session, customer)


@pytest.fixture
def other_address(session, other_customer):
    return _make_address(session, other_customer)


@pytest.fixture
def make_product(session):
    def factory(name="Book", price="10.00", stock=10, status=ProductStatus.ACTIVE):
        product = Product(name=name, price=Decimal(price), stock=stock, status=status)
        session.add(product)
        session.commit()
        session.refresh(product)
        return product
    return factory


@pytest.fixture
def make_cart(session):
    """Active cart for a user with (product, quantity) lines."""
    def factory(user, lines):
        cart = Cart(user_id=user.id, status=CartStatus.ACTIVE)
        session.add(cart)
        session.flush()
        for product, quantity in lines:
            session.add(CartItem(cart_id=cart.id, product_id=product.id, quantity=quantity))
        session.commit()
        session.refresh(cart)
        return cart
    return factory


@pytest.fixture
def customer_ctx(customer):
    return RequestContext(user_id=customer.id, role=UserRole.CUSTOMER)


@pytest.fixture
def admin_ctx(admin):
    return RequestContext(user_id=admin.id, role=UserRole.ADMIN)


def make_token(user: User) -> str:
    return jwt.encode(
        {"sub": user.email, "id": user.id, "role": user.role.value, "type": "access"},
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )


@pytest.fixture
def customer_headers(customer):
    return {"Authorization": f"Bearer {make_token(customer)}"}


@pytest.fixture
def other_headers(other_customer):
    return {"Authorization": f"Bearer {make_token(other_customer)}"}


@pytest.fixture
def admin_headers(admin):
    return {"Authorization": f"Bearer {make_token(admin)}"}
