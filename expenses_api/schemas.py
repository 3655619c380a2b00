import datetime as dt
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


ALL_CATEGORIES_ID = -1
ALL_CATEGORIES_NAME = "All Categories"


# ---- Users / reference data ----

class SignupRequest(BaseModel):
    username: str
    email: Optional[str] = None


class SignupResponse(BaseModel):
    user_id: int
    api_token: str


class Currency(BaseModel):
    id: int
    code: str
    symbol: Optional[str] = None

    class Config:
        from_attributes = True


# ---- Categories / budget ----

class CategoryCreate(BaseModel):
    name: str
    description: Optional[str] = None


class ExpenseCategoryCreate(CategoryCreate):
    budget: float = Field(0.0, ge=0)


class ExpenseCategory(BaseModel):
    id: int
    user_id: int
    name: str
    description: Optional[str] = None
    budget: float

    class Config:
        from_attributes = True


class IncomeCategory(BaseModel):
    id: int
    user_id: int
    name: str
    description: Optional[str] = None

    class Config:
        from_attributes = True


class UpdateBudget(BaseModel):
    category_id: int
    new_budget: float


# ---- Tags ----

class TagCreate(BaseModel):
    name: str
    description: Optional[str] = None


class Tag(TagCreate):
    id: int
    user_id: int

    class Config:
        from_attributes = True


# ---- Transactions ----

class TransactionBase(BaseModel):
    category_id: int
    amount: float
    currency_id: int
    date: dt.date
    description: Optional[str] = None
    tag_id: Optional[int] = None


class TransactionCreate(TransactionBase):
    """Schema used when creating or modifying an expense or income."""
    pass


class Transaction(TransactionBase):
    """Schema returned from API (includes DB id and the date buckets)."""
    id: int
    user_id: int
    month: int
    year: int
    week: int

    class Config:
        from_attributes = True


class MonthlySummary(BaseModel):
    period: str  # e.g. "2025-01"
    total_income: float
    total_expense: float
    net: float  # income - expense


class WeeklySummary(BaseModel):
    period: str  # e.g. "2025-W01"
    total_income: float
    total_expense: float
    net: float


class PeriodTotal(BaseModel):
    year: int
    month: Optional[int] = None  # None for a whole year
    category_id: Optional[int] = None
    amount: float


# ---- Budget burn-down ----

class BurndownRow(BaseModel):
    category_name: str
    budget: float
    total_spent: float
    daily_spending: Dict[int, float]
    remaining_budget: Dict[int, float]  # cumulative: budget - spent(1..day)


class AggregateBurndown(BurndownRow):
    """Sum over every budgeted category of the month."""
    kind: Literal["aggregate"] = "aggregate"
    category_id: Literal[-1] = ALL_CATEGORIES_ID
    category_name: str = ALL_CATEGORIES_NAME


class CategoryBurndown(BurndownRow):
    kind: Literal["category"] = "category"
    category_id: int


BurndownEntry = Annotated[
    Union[AggregateBurndown, CategoryBurndown], Field(discriminator="kind")
]


class BudgetBurndown(BaseModel):
    month: int
    year: int
    categories: List[BurndownEntry]


# ---- Statistical summary ----

class DaySpending(BaseModel):
    date: str  # ISO date or "N/A"
    amount: float


class MonthSpending(BaseModel):
    month: int
    year: int
    amount: float


class CategorySpending(BaseModel):
    category_id: int
    category_name: str
    amount: float


class HighestSpending(BaseModel):
    highest_spending_day: DaySpending
    highest_spending_month: MonthSpending
    highest_spending_category: CategorySpending


class Savings(BaseModel):
    average_monthly_savings_rate: float
    monthly_savings_percentage: Dict[str, float]  # key: "MM-YYYY"


class AverageSpending(BaseModel):
    average_daily_spend: float
    average_weekly_spend: float


class BudgetStreak(BaseModel):
    longest_streak_days: int
    streak_start_date: str
    streak_end_date: str


class StatisticalSummary(BaseModel):
    highest_spending: HighestSpending
    savings: Savings
    average_spending: AverageSpending
    budget_streak: BudgetStreak


# ---- Category comparison ----

class CategoryComparison(BaseModel):
    category_id: int
    category_name: str
    current_period_amount: float
    previous_period_amount: float
    difference: float
    percentage_change: float


class CategoryComparisonResponse(BaseModel):
    current_period_label: str
    previous_period_label: str
    categories: List[CategoryComparison]
    total_current_period: float
    total_previous_period: float
    total_difference: float
    total_percentage_change: float
