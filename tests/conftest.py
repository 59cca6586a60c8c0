import os

# El engine de la app se crea al importar: forzar SQLite antes
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("RESEND_API_KEY", None)
os.environ.pop("CRON_SECRET", None)

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config.database import Base, get_db
from app.core.auth.service import AuthService
from app.main import app
from app.shared.database.models import Order, User

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "secreto123"


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make_user(email="user@barfer.com", role="user", permissions=None, puntos_envio=None, name="Usuario"):
        user = User(
            email=email,
            password_hash=AuthService.get_password_hash(PASSWORD),
            name=name,
            last_name="Test",
            role=role,
            permissions=permissions or [],
            puntos_envio=puntos_envio or [],
            is_active=True
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def admin_user(make_user):
    return make_user(email="admin@barfer.com", role="admin", name="Admin")


def auth_headers(user):
    token = AuthService.create_access_token(
        data={"user_id": user.id, "email": user.email, "role": user.role}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture
def make_order(db):
    def _make_order(**fields):
        buyer = fields.pop("buyer", {"name": "Ana", "lastName": "Pérez", "email": "ana@mail.com"})
        data = {
            "status": "confirmed",
            "total": 10000,
            "sub_total": 10000,
            "shipping_price": 0,
            "address": {"address": "Av. Siempre Viva 742", "city": "CABA", "phone": "1155550000"},
            "buyer": buyer,
            "buyer_email": (buyer.get("email") or "").lower() or None,
            "items": [{"name": "BOX PERRO POLLO", "options": [{"name": "10KG", "quantity": 1}]}],
            "payment_method": "cash",
            "order_type": "minorista",
            "created_at": datetime(2024, 5, 10, 15, 0),
        }
        data.update(fields)
        order = Order(**data)
        db.add(order)
        db.commit()
        db.refresh(order)
        return order
    return _make_order
