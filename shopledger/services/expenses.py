import logging
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Tuple

import pandas as pd
from sqlalchemy.orm import Session

from shopledger.core.errors import InvalidInput, NotFound
from shopledger.db.session import atomic
from shopledger.models.expense import Expense
from shopledger.models.user import User
from shopledger.schemas import ExpenseIn

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


@dataclass
class ExpenseSummary:
    total: Decimal
    count: int
    average: Decimal
    # (category, amount, percent of total), largest first
    by_category: List[Tuple[str, Decimal, float]] = field(default_factory=list)


def month_bounds(month: str):
    """'2025-12' -> (date(2025, 12, 1), date(2025, 12, 31))."""
    if not month or not MONTH_RE.match(month):
        raise InvalidInput("Please select a valid month")
    try:
        period = pd.Period(month, freq="M")
    except ValueError:
        raise InvalidInput("Please select a valid month")
    return period.start_time.date(), period.end_time.date()


def add_expense(db: Session, user: User, data: ExpenseIn) -> Expense:
    with atomic(db):
        expense = Expense(user_id=user.id, expense_date=data.expense_date, category=data.category,
                          description=data.description, amount=data.amount)
        db.add(expense)
    logger.info("User %s added %s expense of %s", user.id, data.category, data.amount)
    return expense


def list_expenses(db: Session, user: User, month: str):
    start, end = month_bounds(month)
    return (db.query(Expense)
              .filter(Expense.user_id == user.id,
                      Expense.expense_date >= start, Expense.expense_date <= end)
              .order_by(Expense.expense_date.desc(), Expense.id.desc())
              .all())


def delete_expense(db: Session, user: User, expense_id: int):
    with atomic(db):
        expense = db.query(Expense).filter(Expense.id == expense_id, Expense.user_id == user.id).first()
        if not expense:
            raise NotFound("Expense not found")
        db.delete(expense)
    logger.info("User %s deleted expense %s", user.id, expense_id)


def expense_summary(expenses) -> ExpenseSummary:
    total = sum((Decimal(e.amount) for e in expenses), ZERO)
    count = len(expenses)
    average = (total / count).quantize(Decimal("0.01")) if count else ZERO
    per_category = {}
    for e in expenses:
        per_category[e.category] = per_category.get(e.category, ZERO) + Decimal(e.amount)
    by_category = [(cat, amount, float(amount / total * 100) if total else 0.0)
                   for cat, amount in sorted(per_category.items(), key=lambda kv: kv[1], reverse=True)]
    return ExpenseSummary(total=total, count=count, average=average, by_category=by_category)


def current_month(today: date = None) -> str:
    return (today or date.today()).strftime("%Y-%m")


def export_rows(expenses):
    return [{
        "Date": e.expense_date.isoformat(),
        "Category": e.category,
        "Description": e.description,
        "Amount": e.amount,
    } for e in expenses]
