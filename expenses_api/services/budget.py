import logging
from typing import Dict, List

import pandas as pd
from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import InvalidInputError, NotFoundError
from .dates import days_in_month
from .stores import CategoryStore, ExpenseStore, UserStore

logger = logging.getLogger(__name__)


def list_budgets(db: Session, user_id: int) -> List[models.ExpenseCategory]:
    """Every expense category of the user, with its monthly budget."""
    return CategoryStore(db).list_by_user(user_id)


def modify_budget(db: Session, user_id: int, updates: List[schemas.UpdateBudget]) -> None:
    """
    Set new budgets on the user's categories.
    Updates pointing at categories the user does not own are ignored.
    """
    for update in updates:
        if update.new_budget < 0:
            raise InvalidInputError(
                f"Budget for category {update.category_id} cannot be negative."
            )

    owned = {c.id: c for c in CategoryStore(db).list_by_user(user_id)}
    for update in updates:
        category = owned.get(update.category_id)
        if category is not None:
            category.budget = update.new_budget
    db.commit()


def _as_day_map(series: pd.Series) -> Dict[int, float]:
    return {int(day): float(amount) for day, amount in series.items()}


class BudgetBurndownCalculator:
    """
    Builds the burn-down of a month: per budgeted category, what was spent on
    each day and how much of the budget is left at the end of each day.
    """

    def __init__(self, users: UserStore, categories: CategoryStore, expenses: ExpenseStore):
        self.users = users
        self.categories = categories
        self.expenses = expenses

    @classmethod
    def from_session(cls, db: Session) -> "BudgetBurndownCalculator":
        return cls(UserStore(db), CategoryStore(db), ExpenseStore(db))

    def burndown(self, user_id: int, month: int, year: int) -> schemas.BudgetBurndown:
        if not self.users.exists(user_id):
            raise NotFoundError("user")

        budgeted = [c for c in self.categories.list_by_user(user_id) if c.budget > 0]
        monthly_expenses = self.expenses.list_by_user_and_month(user_id, month, year)
        days = range(1, days_in_month(month, year) + 1)

        daily = self._daily_spending(monthly_expenses, [c.id for c in budgeted], days)

        rows: List[schemas.CategoryBurndown] = []
        for category in budgeted:
            spent = daily[category.id]
            rows.append(
                schemas.CategoryBurndown(
                    category_id=category.id,
                    category_name=category.name,
                    budget=float(category.budget),
                    total_spent=float(spent.sum()),
                    daily_spending=_as_day_map(spent),
                    remaining_budget=_as_day_map(category.budget - spent.cumsum()),
                )
            )

        # The aggregate row is derived from summed spending, not from the
        # per-category remaining curves.
        total_daily = daily.sum(axis=1)
        total_budget = float(sum(c.budget for c in budgeted))
        aggregate = schemas.AggregateBurndown(
            budget=total_budget,
            total_spent=float(sum(row.total_spent for row in rows)),
            daily_spending=_as_day_map(total_daily),
            remaining_budget=_as_day_map(total_budget - total_daily.cumsum()),
        )

        logger.debug(
            "Burn-down for user %s %02d-%d: %d budgeted categories",
            user_id,
            month,
            year,
            len(rows),
        )
        return schemas.BudgetBurndown(month=month, year=year, categories=[aggregate, *rows])

    @staticmethod
    def _daily_spending(expenses, category_ids: List[int], days: range) -> pd.DataFrame:
        """
        Day-of-month x category matrix of summed amounts, zero where nothing
        was spent. Expenses of categories outside `category_ids` are dropped.
        """
        if not expenses:
            return pd.DataFrame(0.0, index=days, columns=category_ids)

        df = pd.DataFrame(
            [
                {"category_id": e.category_id, "day": e.date.day, "amount": float(e.amount)}
                for e in expenses
            ]
        )
        matrix = df.pivot_table(
            index="day",
            columns="category_id",
            values="amount",
            aggfunc="sum",
            fill_value=0.0,
        )
        return matrix.reindex(index=days, columns=category_ids, fill_value=0.0).astype(float)
