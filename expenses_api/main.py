import logging
from datetime import date
from typing import List

import pandas as pd
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from . import models, schemas
from .config import get_settings
from .database import SessionLocal, engine
from .errors import ExpensesError
from .services import categories as category_service
from .services import tags as tag_service
from .services import transactions as transaction_service
from .services import users as user_service
from .services.budget import BudgetBurndownCalculator, list_budgets, modify_budget
from .services.comparison import CategoryComparator, Period
from .services.statistics import StatisticsCalculator
from .services.stores import CategoryStore, ExpenseStore, IncomeStore
from .services.totals import total_earned, total_spent

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create tables (for now we do this on import; later we can move to Alembic)
models.Base.metadata.create_all(bind=engine)


def seed_initial_data():
    db = SessionLocal()
    try:
        user_service.seed_initial_data(db, settings.demo_api_token)
    finally:
        db.close()


if settings.seed_demo_data:
    seed_initial_data()

app = FastAPI(title="Expenses API")


def get_db():
    """Dependency that provides a SQLAlchemy session to routes."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    authorization: str | None = Header(None),
    db: Session = Depends(get_db),
) -> models.User:
    """Resolve the `Authorization: Bearer <token>` header to a user."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(
            status_code=401,
            detail="Missing bearer token.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = authorization.split(" ", 1)[1].strip()
    user = user_service.get_user_by_token(db, token)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail="Invalid bearer token.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def _default_month_and_year(month: int | None, year: int | None) -> tuple[int, int]:
    today = date.today()
    return (
        month if month is not None else today.month,
        year if year is not None else today.year,
    )


def _check_month(month: int) -> None:
    if not 1 <= month <= 12:
        raise HTTPException(status_code=400, detail="Invalid year/month.")


@app.exception_handler(ExpensesError)
async def expenses_error_handler(request: Request, exc: ExpensesError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/health", tags=["system"])
def health_check():
    return {"status": "ok"}


@app.get("/ping", tags=["system"])
def ping():
    return "Pong"


# ---- Auth / reference data ----

@app.post("/auth/signup", response_model=schemas.SignupResponse, tags=["auth"])
def signup(payload: schemas.SignupRequest, db: Session = Depends(get_db)):
    user = user_service.signup(db, payload)
    return schemas.SignupResponse(user_id=user.id, api_token=user.api_token)


@app.get("/currency/all", response_model=List[schemas.Currency], tags=["currency"])
def list_currencies(
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return db.query(models.Currency).order_by(models.Currency.id).all()


# ---- Category APIs ----

@app.put(
    "/category/expense/create",
    response_model=schemas.ExpenseCategory,
    tags=["categories"],
)
def create_expense_category(
    payload: schemas.ExpenseCategoryCreate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return category_service.create_expense_category(db, user.id, payload)


@app.get(
    "/category/expense/all",
    response_model=List[schemas.ExpenseCategory],
    tags=["categories"],
)
def list_expense_categories(
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return CategoryStore(db).list_by_user(user.id)


@app.delete("/category/expense/delete/{category_id}", status_code=204, tags=["categories"])
def delete_expense_category(
    category_id: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    category_service.delete_expense_category(db, user.id, category_id)
    return Response(status_code=204)


@app.put(
    "/category/income/create",
    response_model=schemas.IncomeCategory,
    tags=["categories"],
)
def create_income_category(
    payload: schemas.CategoryCreate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return category_service.create_income_category(db, user.id, payload)


@app.get(
    "/category/income/all",
    response_model=List[schemas.IncomeCategory],
    tags=["categories"],
)
def list_income_categories(
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return category_service.list_income_categories(db, user.id)


# ---- Budget APIs ----

@app.get("/budget", response_model=List[schemas.ExpenseCategory], tags=["budget"])
def get_budget(
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return list_budgets(db, user.id)


@app.post("/budget/modify", status_code=204, tags=["budget"])
def modify_budget_route(
    budgets: List[schemas.UpdateBudget],
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create or change the budgets of several categories at once."""
    modify_budget(db, user.id, budgets)
    return Response(status_code=204)


@app.get("/budget/burndown", response_model=schemas.BudgetBurndown, tags=["budget"])
def budget_burndown(
    month: int | None = Query(None, ge=1, le=12),
    year: int | None = Query(None, ge=1),
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    How the budget of each category is used up over a month.
    Defaults to the current month and year.

    Example:
    GET /budget/burndown?month=1&year=2025
    """
    month, year = _default_month_and_year(month, year)
    return BudgetBurndownCalculator.from_session(db).burndown(user.id, month, year)


# ---- Statistics APIs ----

@app.get(
    "/statistics/summary",
    response_model=schemas.StatisticalSummary,
    tags=["statistics"],
)
def statistical_summary(
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return StatisticsCalculator.from_session(db).summary(user.id, date.today())


# ---- Transaction APIs ----

@app.post("/expenses/add", response_model=schemas.Transaction, tags=["expenses"])
def add_expense(
    tx: schemas.TransactionCreate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return transaction_service.create_expense(db, user.id, tx)


@app.get("/expenses/get/{expense_id}", response_model=schemas.Transaction, tags=["expenses"])
def get_expense(
    expense_id: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return transaction_service.get_expense(db, user.id, expense_id)


@app.put(
    "/expenses/modify/{expense_id}",
    response_model=schemas.Transaction,
    tags=["expenses"],
)
def modify_expense(
    expense_id: int,
    tx: schemas.TransactionCreate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return transaction_service.update_expense(db, user.id, expense_id, tx)


@app.delete("/expenses/delete/{expense_id}", status_code=204, tags=["expenses"])
def delete_expense(
    expense_id: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    transaction_service.delete_expense(db, user.id, expense_id)
    return Response(status_code=204)


@app.get(
    "/expenses/monthly/{month}/{year}",
    response_model=List[schemas.Transaction],
    tags=["expenses"],
)
def monthly_expenses(
    month: int,
    year: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _check_month(month)
    return transaction_service.list_expenses_for_month(db, user.id, month, year)


@app.get(
    "/expenses/yearly/{year}",
    response_model=List[schemas.Transaction],
    tags=["expenses"],
)
def yearly_expenses(
    year: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return transaction_service.list_expenses_for_year(db, user.id, year)


@app.get("/expenses/total-spent", response_model=schemas.PeriodTotal, tags=["expenses"])
def total_spent_year(
    year: int | None = Query(None, ge=1),
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Total spent over a year (defaults to the current one)."""
    _, year = _default_month_and_year(None, year)
    return total_spent(db, user.id, year)


@app.get(
    "/expenses/total-spent/monthly",
    response_model=schemas.PeriodTotal,
    tags=["expenses"],
)
def total_spent_month(
    month: int | None = Query(None, ge=1, le=12),
    year: int | None = Query(None, ge=1),
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    month, year = _default_month_and_year(month, year)
    return total_spent(db, user.id, year, month)


@app.get(
    "/expenses/total-spent/monthly/category",
    response_model=schemas.PeriodTotal,
    tags=["expenses"],
)
def total_spent_month_category(
    category_id: int,
    month: int | None = Query(None, ge=1, le=12),
    year: int | None = Query(None, ge=1),
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Total spent in one category over a month.

    Example:
    GET /expenses/total-spent/monthly/category?category_id=3&month=1&year=2025
    """
    month, year = _default_month_and_year(month, year)
    return total_spent(db, user.id, year, month, category_id)


@app.get(
    "/expenses/compare",
    response_model=schemas.CategoryComparisonResponse,
    tags=["expenses"],
)
def compare_categories(
    current_period_type: str,
    current_period_value: int,
    previous_period_type: str,
    previous_period_value: int,
    current_year: int | None = None,
    previous_year: int | None = None,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Compare spending per category between two periods.

    Example:
    GET /expenses/compare?current_period_type=month&current_period_value=2
        &current_year=2025&previous_period_type=month&previous_period_value=1
        &previous_year=2025
    """
    current = Period(current_period_type, current_period_value, current_year)
    previous = Period(previous_period_type, previous_period_value, previous_year)
    return CategoryComparator.from_session(db).compare(user.id, current, previous)


@app.post("/incomes/add", response_model=schemas.Transaction, tags=["incomes"])
def add_income(
    tx: schemas.TransactionCreate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return transaction_service.create_income(db, user.id, tx)


@app.delete("/incomes/delete/{income_id}", status_code=204, tags=["incomes"])
def delete_income(
    income_id: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    transaction_service.delete_income(db, user.id, income_id)
    return Response(status_code=204)


@app.get("/incomes/get/{income_id}", response_model=schemas.Transaction, tags=["incomes"])
def get_income(
    income_id: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return transaction_service.get_income(db, user.id, income_id)


@app.get(
    "/incomes/monthly/{month}/{year}",
    response_model=List[schemas.Transaction],
    tags=["incomes"],
)
def monthly_incomes(
    month: int,
    year: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _check_month(month)
    return transaction_service.list_incomes_for_month(db, user.id, month, year)


@app.get(
    "/incomes/yearly/{year}",
    response_model=List[schemas.Transaction],
    tags=["incomes"],
)
def yearly_incomes(
    year: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return transaction_service.list_incomes_for_year(db, user.id, year)


@app.get(
    "/incomes/total-earned/month",
    response_model=schemas.PeriodTotal,
    tags=["incomes"],
)
def total_earned_month(
    month: int | None = Query(None, ge=1, le=12),
    year: int | None = Query(None, ge=1),
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    month, year = _default_month_and_year(month, year)
    return total_earned(db, user.id, year, month)


@app.get(
    "/incomes/total-earned/year",
    response_model=schemas.PeriodTotal,
    tags=["incomes"],
)
def total_earned_year(
    year: int | None = Query(None, ge=1),
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _, year = _default_month_and_year(None, year)
    return total_earned(db, user.id, year)


# ---- Tag APIs ----

@app.get("/tags/user", response_model=List[schemas.Tag], tags=["tags"])
def list_tags(
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return tag_service.list_tags(db, user.id)


@app.get("/tags/{tag_id}", response_model=schemas.Tag, tags=["tags"])
def get_tag(
    tag_id: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return tag_service.get_tag(db, user.id, tag_id)


@app.post("/tags/create", response_model=schemas.Tag, tags=["tags"])
def create_tag(
    payload: schemas.TagCreate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return tag_service.create_tag(db, user.id, payload)


@app.put("/tags/update/{tag_id}", response_model=schemas.Tag, tags=["tags"])
def update_tag(
    tag_id: int,
    payload: schemas.TagCreate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return tag_service.update_tag(db, user.id, tag_id, payload)


@app.delete("/tags/delete/{tag_id}", status_code=204, tags=["tags"])
def delete_tag(
    tag_id: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    tag_service.delete_tag(db, user.id, tag_id)
    return Response(status_code=204)


# ---- Summary APIs ----

def _transactions_frame(db: Session, user_id: int) -> pd.DataFrame:
    """All incomes and expenses of a user as one frame with an `is_income` flag."""
    expenses = ExpenseStore(db).list_by_user(user_id)
    incomes = IncomeStore(db).list_by_user(user_id)

    data = [
        {"date": t.date, "amount": t.amount, "is_income": False} for t in expenses
    ] + [
        {"date": t.date, "amount": t.amount, "is_income": True} for t in incomes
    ]
    df = pd.DataFrame(data)
    if not df.empty:
        df["date"] = pd.to_datetime(df["date"])
    return df


def _period_totals(df: pd.DataFrame) -> List[dict]:
    income = df[df["is_income"]].groupby("period")["amount"].sum()
    expense = df[~df["is_income"]].groupby("period")["amount"].sum()

    periods = sorted(set(income.index).union(set(expense.index)))

    result = []
    for p in periods:
        total_income = float(income.get(p, 0.0))
        total_expense = float(expense.get(p, 0.0))
        result.append(
            {
                "period": p,
                "total_income": total_income,
                "total_expense": total_expense,
                "net": total_income - total_expense,
            }
        )
    return result


@app.get(
    "/summary/monthly",
    response_model=List[schemas.MonthlySummary],
    tags=["summary"],
)
def monthly_summary(
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Return monthly income/expense/net summary.
    period format: 'YYYY-MM'
    """
    df = _transactions_frame(db, user.id)
    if df.empty:
        return []

    df["period"] = df["date"].dt.to_period("M").astype(str)
    return [schemas.MonthlySummary(**row) for row in _period_totals(df)]


@app.get(
    "/summary/weekly",
    response_model=List[schemas.WeeklySummary],
    tags=["summary"],
)
def weekly_summary(
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Return weekly income/expense/net summary.
    period format: 'YYYY-Www' (ISO week)
    """
    df = _transactions_frame(db, user.id)
    if df.empty:
        return []

    iso = df["date"].dt.isocalendar()
    df["period"] = (
        iso["year"].astype(str)
        + "-W"
        + iso["week"].astype(str).str.zfill(2)
    )
    return [schemas.WeeklySummary(**row) for row in _period_totals(df)]
