from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from shopledger.core.errors import InvalidInput, NotFound
from shopledger.schemas import ExpenseIn, first_error
from shopledger.services import expenses


def add(db, user, day, category="Rent", amount="100.00", description="Shop rent"):
    return expenses.add_expense(db, user, ExpenseIn(expense_date=day, category=category,
                                                    description=description, amount=amount))


def test_month_bounds():
    assert expenses.month_bounds("2024-02") == (date(2024, 2, 1), date(2024, 2, 29))
    assert expenses.month_bounds("2025-12") == (date(2025, 12, 1), date(2025, 12, 31))
    for bad in ("", "2025-13", "March", "2025-3"):
        with pytest.raises(InvalidInput):
            expenses.month_bounds(bad)


def test_list_is_limited_to_month(db, user):
    add(db, user, date(2025, 2, 28))
    add(db, user, date(2025, 3, 1), description="First")
    add(db, user, date(2025, 3, 31), description="Last")
    add(db, user, date(2025, 4, 1))
    found = expenses.list_expenses(db, user, "2025-03")
    assert [e.description for e in found] == ["Last", "First"]


def test_summary_by_category(db, user):
    add(db, user, date(2025, 3, 1), "Rent", "300.00")
    add(db, user, date(2025, 3, 2), "Utilities", "50.00")
    add(db, user, date(2025, 3, 3), "Utilities", "50.00")
    summary = expenses.expense_summary(expenses.list_expenses(db, user, "2025-03"))
    assert summary.total == Decimal("400.00")
    assert summary.count == 3
    assert summary.average == Decimal("133.33")
    assert summary.by_category[0] == ("Rent", Decimal("300.00"), 75.0)
    assert summary.by_category[1] == ("Utilities", Decimal("100.00"), 25.0)


def test_empty_summary():
    summary = expenses.expense_summary([])
    assert summary.total == 0 and summary.count == 0 and summary.average == 0
    assert summary.by_category == []


def test_validation():
    with pytest.raises(ValidationError) as exc:
        ExpenseIn(expense_date=date(2025, 3, 1), category="Snacks", description="x", amount="1")
    assert first_error(exc.value) == "Category is required"
    with pytest.raises(ValidationError):
        ExpenseIn(expense_date=date(2025, 3, 1), category="Rent", description="x", amount="0")
    with pytest.raises(ValidationError):
        ExpenseIn(expense_date=date(2025, 3, 1), category="Rent", description="x" * 201, amount="1")


def test_delete_is_owner_scoped(db, user, other_user):
    e = add(db, user, date(2025, 3, 1))
    with pytest.raises(NotFound):
        expenses.delete_expense(db, other_user, e.id)
    expenses.delete_expense(db, user, e.id)
    assert expenses.list_expenses(db, user, "2025-03") == []


def test_current_month():
    assert expenses.current_month(date(2025, 7, 4)) == "2025-07"
