"""
Statistical summary of a user's spending habits.

The summary is built from four independent analyses over the user's whole
history:

  - highest spending day, month and category
  - monthly savings rate over the current and previous year
  - average daily and weekly spend
  - longest streak of days spent under a prorated budget

Scans over many months or days fetch one unit at a time. A unit whose fetch
fails comes back as `None`; each analysis decides what `None` means for it
(skip the month, count it as zero, or count the day as over budget).
"""

import logging
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional, Tuple, TypeVar

import pandas as pd
from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import NotFoundError, StoreError
from .dates import bucket, days_in_month, month_key
from .stores import CategoryStore, ExpenseStore, IncomeStore, UserStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

STREAK_WINDOW_DAYS = 365
WEEKS_IN_AVERAGE = 4


class StatisticsCalculator:
    def __init__(
        self,
        users: UserStore,
        categories: CategoryStore,
        expenses: ExpenseStore,
        incomes: IncomeStore,
    ):
        self.users = users
        self.categories = categories
        self.expenses = expenses
        self.incomes = incomes

    @classmethod
    def from_session(cls, db: Session) -> "StatisticsCalculator":
        return cls(UserStore(db), CategoryStore(db), ExpenseStore(db), IncomeStore(db))

    def summary(self, user_id: int, today: date) -> schemas.StatisticalSummary:
        if not self.users.exists(user_id):
            raise NotFoundError("user")

        all_expenses = self.expenses.list_by_user(user_id)

        return schemas.StatisticalSummary(
            highest_spending=schemas.HighestSpending(
                highest_spending_day=self.highest_spending_day(all_expenses),
                highest_spending_month=self.highest_spending_month(user_id, today),
                highest_spending_category=self.highest_spending_category(
                    user_id, all_expenses
                ),
            ),
            savings=self.savings(user_id, today),
            average_spending=self.average_spending(user_id, today),
            budget_streak=self.budget_streak(user_id, today),
        )

    # ---- helpers ----

    @staticmethod
    def _probe(what: str, fetch: Callable[..., T], *args) -> Optional[T]:
        """Run one per-unit fetch; `None` when the store failed."""
        try:
            return fetch(*args)
        except StoreError as exc:
            logger.warning("No data for %s: %s", what, exc)
            return None

    @staticmethod
    def _scanned_years(today: date) -> Tuple[int, int]:
        return today.year, today.year - 1

    # ---- highest spending ----

    @staticmethod
    def highest_spending_day(expenses: List[models.Expense]) -> schemas.DaySpending:
        if not expenses:
            return schemas.DaySpending(date="N/A", amount=0.0)

        df = pd.DataFrame([{"date": e.date, "amount": float(e.amount)} for e in expenses])
        daily = df.groupby("date")["amount"].sum()
        best = daily.idxmax()
        return schemas.DaySpending(
            date=pd.Timestamp(best).strftime("%Y-%m-%d"),
            amount=float(daily[best]),
        )

    def highest_spending_month(self, user_id: int, today: date) -> schemas.MonthSpending:
        highest_amount = 0.0
        highest_month = 0
        highest_year = 0

        for year in self._scanned_years(today):
            for month in range(1, 13):
                total = self._probe(
                    f"month {month_key(month, year)}",
                    self.expenses.sum_by_user_and_month,
                    user_id,
                    month,
                    year,
                )
                if total is None:
                    continue
                if total > highest_amount:
                    highest_amount = total
                    highest_month = month
                    highest_year = year

        if highest_month == 0:
            return schemas.MonthSpending(month=0, year=0, amount=0.0)
        return schemas.MonthSpending(
            month=highest_month, year=highest_year, amount=highest_amount
        )

    def highest_spending_category(
        self, user_id: int, expenses: List[models.Expense]
    ) -> schemas.CategorySpending:
        if not expenses:
            return schemas.CategorySpending(category_id=0, category_name="N/A", amount=0.0)

        # Categories are not probed: without them there is nothing to rank
        names = {c.id: c.name for c in self.categories.list_by_user(user_id)}

        df = pd.DataFrame(
            [{"category_id": e.category_id, "amount": float(e.amount)} for e in expenses]
        )
        totals = df.groupby("category_id", sort=False)["amount"].sum()

        # idxmax keeps the first maximum, so order by category fetch order
        order = [cid for cid in names if cid in totals.index]
        order += [cid for cid in totals.index if cid not in names]
        totals = totals.reindex(order)

        best = int(totals.idxmax())
        return schemas.CategorySpending(
            category_id=best,
            category_name=names.get(best, "Unknown"),
            amount=float(totals[best]),
        )

    # ---- savings ----

    def savings(self, user_id: int, today: date) -> schemas.Savings:
        percentages: Dict[str, float] = {}

        for year in self._scanned_years(today):
            for month in range(1, 13):
                key = month_key(month, year)
                income = self._probe(
                    f"income {key}", self.incomes.sum_by_user_and_month, user_id, month, year
                )
                spent = self._probe(
                    f"expenses {key}", self.expenses.sum_by_user_and_month, user_id, month, year
                )
                if income is None or spent is None:
                    continue
                # No income recorded means "not applicable", not a 100% loss
                if income <= 0:
                    continue
                percentages[key] = (income - spent) / income * 100

        average = sum(percentages.values()) / len(percentages) if percentages else 0.0
        return schemas.Savings(
            average_monthly_savings_rate=average,
            monthly_savings_percentage=percentages,
        )

    # ---- average spending ----

    def average_spending(self, user_id: int, today: date) -> schemas.AverageSpending:
        month_total = self._probe(
            f"month {month_key(today.month, today.year)}",
            self.expenses.sum_by_user_and_month,
            user_id,
            today.month,
            today.year,
        )
        if month_total is None:
            month_total = 0.0
        # Divided by the full length of the month, not the days elapsed so far
        average_daily = month_total / days_in_month(today.month, today.year)

        current_week = bucket(today).week
        weeks_total = 0.0
        for offset in range(WEEKS_IN_AVERAGE):
            week = current_week - offset
            year = today.year
            if week <= 0:
                # 53-week years are not accounted for
                week += 52
                year -= 1
            amount = self._probe(
                f"week {week}-{year}", self.expenses.sum_by_user_and_week, user_id, week, year
            )
            if amount is not None:
                weeks_total += amount

        return schemas.AverageSpending(
            average_daily_spend=average_daily,
            average_weekly_spend=weeks_total / WEEKS_IN_AVERAGE,
        )

    # ---- budget streak ----

    def budget_streak(self, user_id: int, today: date) -> schemas.BudgetStreak:
        # Not probed either: a failure here fails the whole summary
        budgeted = [c for c in self.categories.list_by_user(user_id) if c.budget > 0]
        if not budgeted:
            return schemas.BudgetStreak(
                longest_streak_days=0, streak_start_date="N/A", streak_end_date="N/A"
            )

        spent_to_date: Dict[Tuple[int, int, int], pd.Series] = {}

        current = 0
        longest = 0
        current_start: Optional[date] = None
        longest_start: Optional[date] = None
        longest_end: Optional[date] = None

        day = today - timedelta(days=STREAK_WINDOW_DAYS)
        while day <= today:
            if self._is_day_under_budget(user_id, day, budgeted, spent_to_date):
                if current == 0:
                    current_start = day
                current += 1
                # Strictly longer only: the earliest of equal runs is kept
                if current > longest:
                    longest = current
                    longest_start = current_start
                    longest_end = day
            else:
                current = 0
            day += timedelta(days=1)

        if longest == 0:
            return schemas.BudgetStreak(
                longest_streak_days=0, streak_start_date="N/A", streak_end_date="N/A"
            )
        return schemas.BudgetStreak(
            longest_streak_days=longest,
            streak_start_date=longest_start.isoformat(),
            streak_end_date=longest_end.isoformat(),
        )

    def _is_day_under_budget(
        self,
        user_id: int,
        day: date,
        budgeted: List[models.ExpenseCategory],
        spent_to_date: Dict[Tuple[int, int, int], pd.Series],
    ) -> bool:
        length = days_in_month(day.month, day.year)

        for category in budgeted:
            key = (category.id, day.month, day.year)
            cumulative = spent_to_date.get(key)
            if cumulative is None:
                cumulative = self._month_to_date_spending(
                    user_id, category.id, day.month, day.year
                )
                # A failed lookup costs this day only; the next day fetches again
                if cumulative is None:
                    return False
                spent_to_date[key] = cumulative

            prorated = category.budget / length * day.day
            if cumulative[day.day] > prorated:
                return False

        return True

    def _month_to_date_spending(
        self, user_id: int, category_id: int, month: int, year: int
    ) -> Optional[pd.Series]:
        """Cumulative spend of one category from day 1 through each day of the month."""
        expenses = self._probe(
            f"category {category_id} in {month_key(month, year)}",
            self.expenses.list_by_user_and_month_and_category,
            user_id,
            month,
            year,
            category_id,
        )
        if expenses is None:
            return None

        days = range(1, days_in_month(month, year) + 1)
        if not expenses:
            return pd.Series(0.0, index=days)

        df = pd.DataFrame([{"day": e.date.day, "amount": float(e.amount)} for e in expenses])
        daily = df.groupby("day")["amount"].sum().reindex(days, fill_value=0.0)
        return daily.cumsum()
