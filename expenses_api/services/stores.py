"""
Read accessors over the ORM tables used by the statistics services.

Every query failure surfaces as `StoreError` so that callers scanning many
months or days can decide per unit whether to skip it or give up.
"""

import functools
from typing import List

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models
from ..errors import StoreError


def _wrap_errors(method):
    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return method(*args, **kwargs)
        except SQLAlchemyError as exc:
            raise StoreError(f"{method.__qualname__} failed: {exc}") from exc

    return wrapper


class UserStore:
    def __init__(self, db: Session):
        self.db = db

    @_wrap_errors
    def exists(self, user_id: int) -> bool:
        return (
            self.db.query(models.User.id).filter(models.User.id == user_id).first()
            is not None
        )


class CategoryStore:
    def __init__(self, db: Session):
        self.db = db

    @_wrap_errors
    def list_by_user(self, user_id: int) -> List[models.ExpenseCategory]:
        return (
            self.db.query(models.ExpenseCategory)
            .filter(models.ExpenseCategory.user_id == user_id)
            .order_by(models.ExpenseCategory.id)
            .all()
        )


class ExpenseStore:
    def __init__(self, db: Session):
        self.db = db

    def _for_user(self, user_id: int):
        return self.db.query(models.Expense).filter(models.Expense.user_id == user_id)

    def _sum_for_user(self, user_id: int):
        return self.db.query(
            func.coalesce(func.sum(models.Expense.amount), 0.0)
        ).filter(models.Expense.user_id == user_id)

    @_wrap_errors
    def list_by_user(self, user_id: int) -> List[models.Expense]:
        return self._for_user(user_id).order_by(models.Expense.date).all()

    @_wrap_errors
    def list_by_user_and_month(
        self, user_id: int, month: int, year: int
    ) -> List[models.Expense]:
        return (
            self._for_user(user_id)
            .filter(models.Expense.month == month, models.Expense.year == year)
            .order_by(models.Expense.date)
            .all()
        )

    @_wrap_errors
    def list_by_user_and_month_and_category(
        self, user_id: int, month: int, year: int, category_id: int
    ) -> List[models.Expense]:
        return (
            self._for_user(user_id)
            .filter(
                models.Expense.month == month,
                models.Expense.year == year,
                models.Expense.category_id == category_id,
            )
            .all()
        )

    @_wrap_errors
    def list_by_user_and_year_and_category(
        self, user_id: int, year: int, category_id: int
    ) -> List[models.Expense]:
        return (
            self._for_user(user_id)
            .filter(
                models.Expense.year == year,
                models.Expense.category_id == category_id,
            )
            .all()
        )

    @_wrap_errors
    def sum_by_user_and_month(self, user_id: int, month: int, year: int) -> float:
        total = (
            self._sum_for_user(user_id)
            .filter(models.Expense.month == month, models.Expense.year == year)
            .scalar()
        )
        return float(total)

    @_wrap_errors
    def sum_by_user_and_year(self, user_id: int, year: int) -> float:
        total = self._sum_for_user(user_id).filter(models.Expense.year == year).scalar()
        return float(total)

    @_wrap_errors
    def sum_by_user_and_month_and_category(
        self, user_id: int, month: int, year: int, category_id: int
    ) -> float:
        total = (
            self._sum_for_user(user_id)
            .filter(
                models.Expense.month == month,
                models.Expense.year == year,
                models.Expense.category_id == category_id,
            )
            .scalar()
        )
        return float(total)

    @_wrap_errors
    def sum_by_user_and_week(self, user_id: int, week: int, year: int) -> float:
        total = (
            self._sum_for_user(user_id)
            .filter(models.Expense.week == week, models.Expense.year == year)
            .scalar()
        )
        return float(total)


class IncomeStore:
    def __init__(self, db: Session):
        self.db = db

    @_wrap_errors
    def list_by_user(self, user_id: int) -> List[models.Income]:
        return (
            self.db.query(models.Income)
            .filter(models.Income.user_id == user_id)
            .order_by(models.Income.date)
            .all()
        )

    @_wrap_errors
    def sum_by_user_and_month(self, user_id: int, month: int, year: int) -> float:
        total = (
            self.db.query(func.coalesce(func.sum(models.Income.amount), 0.0))
            .filter(
                models.Income.user_id == user_id,
                models.Income.month == month,
                models.Income.year == year,
            )
            .scalar()
        )
        return float(total)

    @_wrap_errors
    def sum_by_user_and_year(self, user_id: int, year: int) -> float:
        total = (
            self.db.query(func.coalesce(func.sum(models.Income.amount), 0.0))
            .filter(models.Income.user_id == user_id, models.Income.year == year)
            .scalar()
        )
        return float(total)
