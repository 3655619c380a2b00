from typing import List

from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import ConflictError, ForbiddenError, NotFoundError


def create_expense_category(
    db: Session, user_id: int, payload: schemas.ExpenseCategoryCreate
) -> models.ExpenseCategory:
    category = models.ExpenseCategory(
        user_id=user_id,
        name=payload.name,
        description=payload.description,
        budget=payload.budget,
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def create_income_category(
    db: Session, user_id: int, payload: schemas.CategoryCreate
) -> models.IncomeCategory:
    category = models.IncomeCategory(
        user_id=user_id,
        name=payload.name,
        description=payload.description,
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def list_income_categories(db: Session, user_id: int) -> List[models.IncomeCategory]:
    return (
        db.query(models.IncomeCategory)
        .filter(models.IncomeCategory.user_id == user_id)
        .order_by(models.IncomeCategory.id)
        .all()
    )


def delete_expense_category(db: Session, user_id: int, category_id: int) -> None:
    """Delete a category; refused while expenses still point at it."""
    category = db.get(models.ExpenseCategory, category_id)
    if category is None:
        raise NotFoundError("category")
    if category.user_id != user_id:
        raise ForbiddenError("Category belongs to another user.")

    linked = (
        db.query(models.Expense)
        .filter(models.Expense.category_id == category_id)
        .count()
    )
    if linked > 0:
        raise ConflictError(
            f"Category {category_id} still has {linked} expense(s) linked to it."
        )

    db.delete(category)
    db.commit()
