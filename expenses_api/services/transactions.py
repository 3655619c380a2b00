"""
Write path for expenses and incomes.

This is the only place where a transaction's date buckets (week, month,
year) are computed; they are refreshed every time the date is written.
"""

import logging
from typing import List, Optional, Type, Union

from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import ForbiddenError, InvalidInputError, NotFoundError
from .dates import bucket

logger = logging.getLogger(__name__)

TransactionModel = Union[models.Expense, models.Income]
CategoryModel = Union[models.ExpenseCategory, models.IncomeCategory]


def _require_user(db: Session, user_id: int) -> models.User:
    user = db.get(models.User, user_id)
    if user is None:
        raise NotFoundError("user")
    return user


def _validate(
    db: Session,
    user_id: int,
    payload: schemas.TransactionCreate,
    category_model: Type[CategoryModel],
) -> None:
    _require_user(db, user_id)

    category = db.get(category_model, payload.category_id)
    if category is None or category.user_id != user_id:
        raise NotFoundError("category")

    if db.get(models.Currency, payload.currency_id) is None:
        raise NotFoundError("currency")

    if payload.tag_id is not None:
        tag = db.get(models.Tag, payload.tag_id)
        if tag is None:
            raise NotFoundError("tag")
        if tag.user_id != user_id:
            raise ForbiddenError("Tag belongs to another user.")

    if payload.amount < 0:
        raise InvalidInputError("Amount cannot be negative.")


def _apply(row: TransactionModel, payload: schemas.TransactionCreate) -> None:
    row.category_id = payload.category_id
    row.currency_id = payload.currency_id
    row.tag_id = payload.tag_id
    row.amount = payload.amount
    row.description = payload.description
    row.date = payload.date
    row.week, row.month, row.year = bucket(payload.date)


def _create(
    db: Session,
    user_id: int,
    payload: schemas.TransactionCreate,
    model: Type[TransactionModel],
    category_model: Type[CategoryModel],
) -> TransactionModel:
    _validate(db, user_id, payload, category_model)

    row = model(user_id=user_id)
    _apply(row, payload)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Created %s %s for user %s", model.__tablename__[:-1], row.id, user_id)
    return row


def _get_owned(
    db: Session, user_id: int, row_id: int, model: Type[TransactionModel]
) -> TransactionModel:
    entity = model.__tablename__[:-1]
    row = db.get(model, row_id)
    if row is None:
        raise NotFoundError(entity)
    if row.user_id != user_id:
        raise ForbiddenError(f"{entity.capitalize()} belongs to another user.")
    return row


def _list_for_period(
    db: Session,
    user_id: int,
    model: Type[TransactionModel],
    year: int,
    month: Optional[int] = None,
) -> List[TransactionModel]:
    _require_user(db, user_id)
    query = db.query(model).filter(model.user_id == user_id, model.year == year)
    if month is not None:
        query = query.filter(model.month == month)
    return query.order_by(model.date).all()


# ---- Expenses ----

def create_expense(
    db: Session, user_id: int, payload: schemas.TransactionCreate
) -> models.Expense:
    return _create(db, user_id, payload, models.Expense, models.ExpenseCategory)


def update_expense(
    db: Session, user_id: int, expense_id: int, payload: schemas.TransactionCreate
) -> models.Expense:
    expense = _get_owned(db, user_id, expense_id, models.Expense)
    _validate(db, user_id, payload, models.ExpenseCategory)

    _apply(expense, payload)
    db.commit()
    db.refresh(expense)
    logger.info("Updated expense %s for user %s", expense.id, user_id)
    return expense


def delete_expense(db: Session, user_id: int, expense_id: int) -> None:
    expense = _get_owned(db, user_id, expense_id, models.Expense)
    db.delete(expense)
    db.commit()


def list_expenses_for_month(
    db: Session, user_id: int, month: int, year: int
) -> List[models.Expense]:
    return _list_for_period(db, user_id, models.Expense, year, month)


def list_expenses_for_year(db: Session, user_id: int, year: int) -> List[models.Expense]:
    return _list_for_period(db, user_id, models.Expense, year)


def get_expense(db: Session, user_id: int, expense_id: int) -> models.Expense:
    return _get_owned(db, user_id, expense_id, models.Expense)


# ---- Incomes ----

def create_income(
    db: Session, user_id: int, payload: schemas.TransactionCreate
) -> models.Income:
    return _create(db, user_id, payload, models.Income, models.IncomeCategory)


def delete_income(db: Session, user_id: int, income_id: int) -> None:
    income = _get_owned(db, user_id, income_id, models.Income)
    db.delete(income)
    db.commit()


def get_income(db: Session, user_id: int, income_id: int) -> models.Income:
    return _get_owned(db, user_id, income_id, models.Income)


def list_incomes_for_month(
    db: Session, user_id: int, month: int, year: int
) -> List[models.Income]:
    return _list_for_period(db, user_id, models.Income, year, month)


def list_incomes_for_year(db: Session, user_id: int, year: int) -> List[models.Income]:
    return _list_for_period(db, user_id, models.Income, year)
