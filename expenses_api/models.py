from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from .database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False)
    email = Column(String, unique=True, nullable=True)
    api_token = Column(String, unique=True, index=True, nullable=False)
    currency_id = Column(Integer, ForeignKey("currencies.id"), nullable=True)

    expense_categories = relationship("ExpenseCategory", back_populates="user")
    income_categories = relationship("IncomeCategory", back_populates="user")
    tags = relationship("Tag", back_populates="user")


class Currency(Base):
    __tablename__ = "currencies"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False)
    symbol = Column(String, nullable=True)


class ExpenseCategory(Base):
    __tablename__ = "expense_categories"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    budget = Column(Float, default=0.0, nullable=False)  # monthly, 0 = no budget

    user = relationship("User", back_populates="expense_categories")


class IncomeCategory(Base):
    __tablename__ = "income_categories"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)

    user = relationship("User", back_populates="income_categories")


class Tag(Base):
    __tablename__ = "tags"
    __table_args__ = (UniqueConstraint("user_id", "name"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)

    user = relationship("User", back_populates="tags")


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    category_id = Column(
        Integer, ForeignKey("expense_categories.id"), index=True, nullable=False
    )
    currency_id = Column(Integer, ForeignKey("currencies.id"), nullable=False)
    tag_id = Column(Integer, ForeignKey("tags.id"), nullable=True)
    amount = Column(Float, nullable=False)
    date = Column(Date, index=True, nullable=False)
    description = Column(String, nullable=True)

    # Buckets of `date`, written together with it (see services/dates.py)
    month = Column(Integer, nullable=False)
    year = Column(Integer, index=True, nullable=False)
    week = Column(Integer, nullable=False)
    last_update = Column(DateTime, server_default=func.now(), onupdate=func.now())

    category = relationship("ExpenseCategory")
    tag = relationship("Tag")


class Income(Base):
    __tablename__ = "incomes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    category_id = Column(
        Integer, ForeignKey("income_categories.id"), index=True, nullable=False
    )
    currency_id = Column(Integer, ForeignKey("currencies.id"), nullable=False)
    tag_id = Column(Integer, ForeignKey("tags.id"), nullable=True)
    amount = Column(Float, nullable=False)
    date = Column(Date, index=True, nullable=False)
    description = Column(String, nullable=True)

    month = Column(Integer, nullable=False)
    year = Column(Integer, index=True, nullable=False)
    week = Column(Integer, nullable=False)
    last_update = Column(DateTime, server_default=func.now(), onupdate=func.now())

    category = relationship("IncomeCategory")
    tag = relationship("Tag")
