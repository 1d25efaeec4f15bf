from datetime import date

from fastapi import APIRouter, Request, Form, Depends
from fastapi.responses import RedirectResponse, HTMLResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from shopledger.api.deps import get_db, require_login, render_page
from shopledger.core.errors import LedgerError
from shopledger.core.templating import flash
from shopledger.models.expense import CATEGORIES
from shopledger.schemas import ExpenseIn, first_error
from shopledger.services import expenses as expense_service
from shopledger.services.export import csv_response

router = APIRouter(prefix="/expenses")

EXPENSE_HEADERS = ["Date", "Category", "Description", "Amount"]


@router.get("", response_class=HTMLResponse)
def expenses_page(request: Request, month: str = "", db: Session = Depends(get_db), user=Depends(require_login)):
    month = month or expense_service.current_month()
    try:
        rows = expense_service.list_expenses(db, user, month)
    except LedgerError as e:
        flash(request, e.message, "danger")
        return RedirectResponse("/expenses", status_code=302)
    return render_page(request, db, user, "expenses.html", active="expenses", expenses=rows, month=month,
                       summary=expense_service.expense_summary(rows), categories=CATEGORIES,
                       today=date.today().isoformat())


@router.post("")
def add_expense(request: Request,
                expense_date: str = Form(""),
                category: str = Form(""),
                description: str = Form(""),
                amount: str = Form(""),
                db: Session = Depends(get_db),
                user=Depends(require_login)):
    try:
        data = ExpenseIn(expense_date=expense_date, category=category, description=description, amount=amount)
        expense_service.add_expense(db, user, data)
        flash(request, "Expense added successfully!")
    except ValidationError as e:
        flash(request, first_error(e), "danger")
    except LedgerError as e:
        db.rollback()
        flash(request, e.message, "danger")
    return RedirectResponse("/expenses", status_code=302)


@router.post("/{expense_id}/delete")
def delete_expense(request: Request, expense_id: int, db: Session = Depends(get_db), user=Depends(require_login)):
    try:
        expense_service.delete_expense(db, user, expense_id)
        flash(request, "Expense deleted")
    except LedgerError as e:
        db.rollback()
        flash(request, e.message, "danger")
    return RedirectResponse("/expenses", status_code=302)


@router.get("/export.csv")
def export_expenses(request: Request, month: str = "", db: Session = Depends(get_db), user=Depends(require_login)):
    month = month or expense_service.current_month()
    try:
        rows = expense_service.list_expenses(db, user, month)
    except LedgerError as e:
        flash(request, e.message, "danger")
        return RedirectResponse("/expenses", status_code=302)
    return csv_response(f"expenses-{month}", expense_service.export_rows(rows), EXPENSE_HEADERS)
