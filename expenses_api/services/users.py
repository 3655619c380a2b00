import logging
import secrets
from typing import Optional

from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import ConflictError

logger = logging.getLogger(__name__)

DEFAULT_CURRENCIES = [
    ("EUR", "€"),
    ("USD", "$"),
    ("GBP", "£"),
    ("INR", "₹"),
]


def get_user_by_token(db: Session, token: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.api_token == token).first()


def signup(db: Session, payload: schemas.SignupRequest) -> models.User:
    """Create a user and hand out its API token."""
    exists = (
        db.query(models.User).filter(models.User.username == payload.username).first()
    )
    if exists is not None:
        raise ConflictError(f"Username '{payload.username}' is already taken.")
    if payload.email is not None and (
        db.query(models.User).filter(models.User.email == payload.email).first() is not None
    ):
        raise ConflictError(f"Email '{payload.email}' is already registered.")

    user = models.User(
        username=payload.username,
        email=payload.email,
        api_token=secrets.token_urlsafe(32),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Signed up user %s", user.id)
    return user


def seed_initial_data(db: Session, demo_token: str) -> None:
    """Reference currencies plus a demo user, only on an empty database."""
    if db.query(models.Currency).count() == 0:
        for code, symbol in DEFAULT_CURRENCIES:
            db.add(models.Currency(code=code, symbol=symbol))
        db.commit()

    if db.query(models.User).count() == 0:
        euro = db.query(models.Currency).filter(models.Currency.code == "EUR").first()
        demo = models.User(
            username="demo",
            email="demo@example.com",
            api_token=demo_token,
            currency_id=euro.id if euro else None,
        )
        db.add(demo)
        db.commit()
        db.refresh(demo)

        # Default budgets for the demo user
        defaults = [
            ("Food", 400.0),
            ("Shopping", 200.0),
            ("Subscriptions", 50.0),
            ("Transport", 120.0),
        ]
        for name, budget in defaults:
            db.add(models.ExpenseCategory(user_id=demo.id, name=name, budget=budget))
        db.add(models.IncomeCategory(user_id=demo.id, name="Salary"))
        db.commit()
        logger.info("Seeded demo user %s", demo.id)
