import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import InvalidInputError, NotFoundError
from .dates import period_label
from .stores import CategoryStore, ExpenseStore, UserStore

logger = logging.getLogger(__name__)

PERIOD_TYPES = ("month", "year")


@dataclass(frozen=True)
class Period:
    """A month of a year, or a whole year."""

    type: str
    value: int
    year: Optional[int] = None

    def validate(self, name: str) -> None:
        if self.type not in PERIOD_TYPES:
            raise InvalidInputError(f"Invalid {name} period type: {self.type}")
        if self.type == "month":
            if self.year is None:
                raise InvalidInputError(
                    f"{name.capitalize()} year is required when period type is month"
                )
            if not 1 <= self.value <= 12:
                raise InvalidInputError(f"Invalid {name} month: {self.value}")

    @property
    def label(self) -> str:
        return period_label(self.type, self.value, self.year)


def percentage_change(current: float, previous: float) -> float:
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


class CategoryComparator:
    def __init__(self, users: UserStore, categories: CategoryStore, expenses: ExpenseStore):
        self.users = users
        self.categories = categories
        self.expenses = expenses

    @classmethod
    def from_session(cls, db: Session) -> "CategoryComparator":
        return cls(UserStore(db), CategoryStore(db), ExpenseStore(db))

    def compare(
        self, user_id: int, current: Period, previous: Period
    ) -> schemas.CategoryComparisonResponse:
        if not self.users.exists(user_id):
            raise NotFoundError("user")

        current.validate("current")
        previous.validate("previous")

        comparisons: List[schemas.CategoryComparison] = []
        total_current = 0.0
        total_previous = 0.0

        for category in self.categories.list_by_user(user_id):
            current_amount = self._spent(user_id, category.id, current)
            previous_amount = self._spent(user_id, category.id, previous)

            if current_amount == 0 and previous_amount == 0:
                continue

            comparisons.append(
                schemas.CategoryComparison(
                    category_id=category.id,
                    category_name=category.name,
                    current_period_amount=current_amount,
                    previous_period_amount=previous_amount,
                    difference=current_amount - previous_amount,
                    percentage_change=percentage_change(current_amount, previous_amount),
                )
            )
            total_current += current_amount
            total_previous += previous_amount

        logger.debug(
            "Compared %s vs %s for user %s: %d categories",
            current.label,
            previous.label,
            user_id,
            len(comparisons),
        )
        return schemas.CategoryComparisonResponse(
            current_period_label=current.label,
            previous_period_label=previous.label,
            categories=comparisons,
            total_current_period=total_current,
            total_previous_period=total_previous,
            total_difference=total_current - total_previous,
            total_percentage_change=percentage_change(total_current, total_previous),
        )

    def _spent(self, user_id: int, category_id: int, period: Period) -> float:
        expenses: List[models.Expense]
        if period.type == "month":
            expenses = self.expenses.list_by_user_and_month_and_category(
                user_id, period.value, period.year, category_id
            )
        else:
            expenses = self.expenses.list_by_user_and_year_and_category(
                user_id, period.value, category_id
            )
        return float(sum(e.amount for e in expenses))
