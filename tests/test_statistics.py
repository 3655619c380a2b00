from datetime import date, timedelta

import pytest

from expenses_api.errors import NotFoundError, StoreError
from expenses_api.services.dates import bucket
from expenses_api.services.statistics import StatisticsCalculator
from expenses_api.services.stores import (
    CategoryStore,
    ExpenseStore,
    IncomeStore,
    UserStore,
)

TODAY = date(2025, 6, 15)


class FlakyExpenseStore(ExpenseStore):
    """Fails every fetch that touches one (month, year)."""

    def __init__(self, db, month, year):
        super().__init__(db)
        self.broken = (month, year)

    def sum_by_user_and_month(self, user_id, month, year):
        if (month, year) == self.broken:
            raise StoreError("connection reset")
        return super().sum_by_user_and_month(user_id, month, year)

    def list_by_user_and_month_and_category(self, user_id, month, year, category_id):
        if (month, year) == self.broken:
            raise StoreError("connection reset")
        return super().list_by_user_and_month_and_category(user_id, month, year, category_id)


class FailOnceExpenseStore(ExpenseStore):
    """Fails only the first category fetch for one (month, year)."""

    def __init__(self, db, month, year):
        super().__init__(db)
        self.broken = (month, year)
        self.failed = False

    def list_by_user_and_month_and_category(self, user_id, month, year, category_id):
        if (month, year) == self.broken and not self.failed:
            self.failed = True
            raise StoreError("connection reset")
        return super().list_by_user_and_month_and_category(user_id, month, year, category_id)


@pytest.fixture
def calculator(db):
    return StatisticsCalculator.from_session(db)


def _flaky_calculator(db, month, year):
    return StatisticsCalculator(
        UserStore(db), CategoryStore(db), FlakyExpenseStore(db, month, year), IncomeStore(db)
    )


def test_unknown_user(calculator):
    with pytest.raises(NotFoundError):
        calculator.summary(404, TODAY)


def test_empty_history_uses_sentinels(calculator, user):
    summary = calculator.summary(user.id, TODAY)

    highest = summary.highest_spending
    assert highest.highest_spending_day.date == "N/A"
    assert highest.highest_spending_day.amount == 0
    assert (highest.highest_spending_month.month, highest.highest_spending_month.year) == (0, 0)
    assert highest.highest_spending_category.category_id == 0
    assert highest.highest_spending_category.category_name == "N/A"
    assert summary.savings.average_monthly_savings_rate == 0
    assert summary.savings.monthly_savings_percentage == {}
    assert summary.average_spending.average_daily_spend == 0
    assert summary.average_spending.average_weekly_spend == 0
    assert summary.budget_streak.longest_streak_days == 0
    assert summary.budget_streak.streak_start_date == "N/A"
    assert summary.budget_streak.streak_end_date == "N/A"


# ---- highest spending ----

def test_highest_spending_day_sums_per_date(calculator, user, make_category, add_expense):
    food = make_category("Food")
    fun = make_category("Fun")
    add_expense(food, 30.0, date(2023, 2, 1))
    add_expense(fun, 25.0, date(2023, 2, 1))
    add_expense(food, 50.0, date(2025, 6, 1))

    day = calculator.summary(user.id, TODAY).highest_spending.highest_spending_day

    assert day.date == "2023-02-01"
    assert day.amount == 55.0


def test_highest_month_scans_current_and_previous_year(
    calculator, user, make_category, add_expense
):
    food = make_category("Food")
    add_expense(food, 900.0, date(2023, 12, 1))  # outside the scanned years
    add_expense(food, 200.0, date(2024, 11, 3))
    add_expense(food, 100.0, date(2024, 11, 20))
    add_expense(food, 250.0, date(2025, 2, 10))

    month = calculator.summary(user.id, TODAY).highest_spending.highest_spending_month

    assert (month.month, month.year, month.amount) == (11, 2024, 300.0)


def test_highest_month_skips_months_that_fail(db, user, make_category, add_expense):
    food = make_category("Food")
    add_expense(food, 300.0, date(2024, 11, 3))
    add_expense(food, 250.0, date(2025, 2, 10))

    month = _flaky_calculator(db, 11, 2024).highest_spending_month(user.id, TODAY)

    assert (month.month, month.year, month.amount) == (2, 2025, 250.0)


def test_highest_category_ties_follow_category_order(
    calculator, user, make_category, add_expense
):
    first = make_category("First")
    second = make_category("Second")
    add_expense(second, 50.0, date(2025, 1, 1))
    add_expense(first, 50.0, date(2025, 1, 2))

    category = calculator.summary(user.id, TODAY).highest_spending.highest_spending_category

    assert category.category_id == first.id
    assert category.category_name == "First"
    assert category.amount == 50.0


def test_highest_category_uses_all_time_totals(calculator, user, make_category, add_expense):
    rent = make_category("Rent")
    food = make_category("Food")
    add_expense(rent, 500.0, date(2019, 1, 1))
    add_expense(food, 200.0, date(2025, 6, 1))
    add_expense(food, 200.0, date(2025, 6, 2))

    category = calculator.summary(user.id, TODAY).highest_spending.highest_spending_category

    assert category.category_name == "Rent"
    assert category.amount == 500.0


# ---- savings ----

def test_savings_percentage_per_month(calculator, user, make_category, add_expense, add_income):
    food = make_category("Food")
    add_income(1000.0, date(2025, 3, 1))
    add_expense(food, 800.0, date(2025, 3, 12))

    savings = calculator.summary(user.id, TODAY).savings

    assert savings.monthly_savings_percentage == {"03-2025": pytest.approx(20.0)}
    assert savings.average_monthly_savings_rate == pytest.approx(20.0)


def test_savings_average_is_unweighted_and_skips_months_without_income(
    calculator, user, make_category, add_expense, add_income
):
    food = make_category("Food")
    add_income(10000.0, date(2024, 7, 1))
    add_expense(food, 9000.0, date(2024, 7, 2))  # 10%
    add_income(1.0, date(2025, 1, 1))  # 100%
    add_expense(food, 400.0, date(2025, 2, 1))  # no income: not applicable

    savings = calculator.summary(user.id, TODAY).savings

    assert set(savings.monthly_savings_percentage) == {"07-2024", "01-2025"}
    assert savings.monthly_savings_percentage["01-2025"] == pytest.approx(100.0)
    assert savings.average_monthly_savings_rate == pytest.approx(55.0)


def test_savings_skips_failed_months(db, user, make_category, add_expense, add_income):
    food = make_category("Food")
    add_income(1000.0, date(2025, 3, 1))
    add_expense(food, 500.0, date(2025, 3, 2))
    add_income(1000.0, date(2025, 4, 1))

    savings = _flaky_calculator(db, 4, 2025).savings(user.id, TODAY)

    assert savings.monthly_savings_percentage == {"03-2025": pytest.approx(50.0)}


# ---- average spending ----

def test_average_daily_divides_by_full_month(calculator, user, make_category, add_expense):
    food = make_category("Food")
    add_expense(food, 300.0, date(2025, 6, 1))

    average = calculator.average_spending(user.id, TODAY)

    assert average.average_daily_spend == pytest.approx(10.0)


def test_average_weekly_covers_current_and_three_previous_weeks(
    calculator, user, make_category, add_expense
):
    food = make_category("Food")
    assert bucket(TODAY).week == 24
    assert bucket(date(2025, 5, 19)).week == 21
    add_expense(food, 40.0, date(2025, 5, 19))
    add_expense(food, 40.0, TODAY)
    add_expense(food, 1000.0, date(2025, 5, 18))  # week 20

    average = calculator.average_spending(user.id, TODAY)

    assert average.average_weekly_spend == pytest.approx(20.0)


def test_average_weekly_wraps_into_previous_year(calculator, user, make_category, add_expense):
    food = make_category("Food")
    today = date(2025, 1, 8)  # ISO week 2
    add_expense(food, 40.0, date(2024, 12, 23))  # week 52 of 2024
    add_expense(food, 40.0, today)

    average = calculator.average_spending(user.id, today)

    assert average.average_weekly_spend == pytest.approx(20.0)
    assert average.average_daily_spend == pytest.approx(40.0 / 31)


# ---- budget streak ----

def test_streak_without_budgets(calculator, user, make_category, add_expense):
    add_expense(make_category("Misc", budget=0.0), 10.0, TODAY)

    streak = calculator.budget_streak(user.id, TODAY)

    assert streak.longest_streak_days == 0
    assert streak.streak_start_date == "N/A"


def test_streak_spans_whole_window_when_nothing_is_spent(calculator, user, make_category):
    make_category("Food", budget=300.0)

    streak = calculator.budget_streak(user.id, TODAY)

    assert streak.longest_streak_days == 366
    assert streak.streak_start_date == (TODAY - timedelta(days=365)).isoformat()
    assert streak.streak_end_date == TODAY.isoformat()


def test_streak_breaks_while_over_prorated_budget(calculator, user, make_category, add_expense):
    food = make_category("Food", budget=300.0)  # 10 per day in June
    add_expense(food, 100.0, date(2025, 6, 5))

    streak = calculator.budget_streak(user.id, TODAY)

    # Over budget from June 5 through June 9; June 10 is exactly on budget
    assert streak.longest_streak_days == 355
    assert streak.streak_start_date == "2024-06-15"
    assert streak.streak_end_date == "2025-06-04"


def test_streak_requires_every_category_under_budget(
    calculator, user, make_category, add_expense
):
    make_category("Food", budget=300.0)
    fun = make_category("Fun", budget=30.0)
    add_expense(fun, 31.0, date(2025, 6, 1))

    streak = calculator.budget_streak(user.id, TODAY)

    assert streak.streak_end_date == "2025-05-31"
    assert streak.longest_streak_days == 351


def test_streak_counts_failed_lookups_as_over_budget(db, user, make_category):
    make_category("Food", budget=300.0)

    streak = _flaky_calculator(db, 6, 2025).budget_streak(user.id, TODAY)

    assert streak.streak_end_date == "2025-05-31"
    assert streak.longest_streak_days <= 366


def test_summary_ignores_other_users(calculator, user, make_user, make_category, add_expense):
    bob = make_user("bob")
    bobs = make_category("Food", owner=bob)
    add_expense(bobs, 70.0, date(2025, 6, 1), owner=bob)

    summary = calculator.summary(user.id, TODAY)

    assert summary.highest_spending.highest_spending_day.date == "N/A"
    assert summary.average_spending.average_daily_spend == 0


def test_streak_refetches_after_a_single_failure(db, user, make_category):
    make_category("Food", budget=300.0)
    calculator = StatisticsCalculator(
        UserStore(db), CategoryStore(db), FailOnceExpenseStore(db, 12, 2024), IncomeStore(db)
    )

    streak = calculator.budget_streak(user.id, TODAY)

    # Only 2024-12-01 is lost; the rest of December is fetched again
    assert streak.streak_start_date == "2024-12-02"
    assert streak.streak_end_date == TODAY.isoformat()
    assert streak.longest_streak_days == 196
