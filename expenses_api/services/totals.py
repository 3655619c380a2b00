"""Total spent and earned over a month or a year."""

from typing import Optional

from sqlalchemy.orm import Session

from .. import schemas
from ..errors import NotFoundError
from .stores import CategoryStore, ExpenseStore, IncomeStore


def total_spent(
    db: Session,
    user_id: int,
    year: int,
    month: Optional[int] = None,
    category_id: Optional[int] = None,
) -> schemas.PeriodTotal:
    expenses = ExpenseStore(db)

    if category_id is not None:
        owned = {c.id for c in CategoryStore(db).list_by_user(user_id)}
        if category_id not in owned:
            raise NotFoundError("category")
        amount = expenses.sum_by_user_and_month_and_category(user_id, month, year, category_id)
    elif month is not None:
        amount = expenses.sum_by_user_and_month(user_id, month, year)
    else:
        amount = expenses.sum_by_user_and_year(user_id, year)

    return schemas.PeriodTotal(
        year=year, month=month, category_id=category_id, amount=amount
    )


def total_earned(
    db: Session, user_id: int, year: int, month: Optional[int] = None
) -> schemas.PeriodTotal:
    incomes = IncomeStore(db)
    if month is not None:
        amount = incomes.sum_by_user_and_month(user_id, month, year)
    else:
        amount = incomes.sum_by_user_and_year(user_id, year)
    return schemas.PeriodTotal(year=year, month=month, amount=amount)
