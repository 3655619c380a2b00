import os
from datetime import date

# Must be set before the app (and its engine) is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SEED_DEMO_DATA", "0")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from expenses_api import models, schemas
from expenses_api.main import app, get_db
from expenses_api.services import transactions as transaction_service

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    models.Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        models.Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def currency(db):
    eur = models.Currency(code="EUR", symbol="€")
    db.add(eur)
    db.commit()
    db.refresh(eur)
    return eur


@pytest.fixture
def make_user(db):
    def _make(username="alice"):
        user = models.User(
            username=username,
            email=f"{username}@example.com",
            api_token=f"{username}-token",
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def user(make_user):
    return make_user("alice")


@pytest.fixture
def auth(user):
    return {"Authorization": f"Bearer {user.api_token}"}


@pytest.fixture
def make_category(db, user):
    def _make(name, budget=0.0, owner=None):
        category = models.ExpenseCategory(
            user_id=(owner or user).id, name=name, budget=budget
        )
        db.add(category)
        db.commit()
        db.refresh(category)
        return category

    return _make


@pytest.fixture
def add_expense(db, user, currency):
    """Write an expense through the service so its buckets are derived."""

    def _add(category, amount, day: date, owner=None):
        payload = schemas.TransactionCreate(
            category_id=category.id,
            amount=amount,
            currency_id=currency.id,
            date=day,
        )
        return transaction_service.create_expense(db, (owner or user).id, payload)

    return _add


@pytest.fixture
def income_category(db, user):
    category = models.IncomeCategory(user_id=user.id, name="Salary")
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@pytest.fixture
def add_income(db, user, currency, income_category):
    def _add(amount, day: date):
        payload = schemas.TransactionCreate(
            category_id=income_category.id,
            amount=amount,
            currency_id=currency.id,
            date=day,
        )
        return transaction_service.create_income(db, user.id, payload)

    return _add
