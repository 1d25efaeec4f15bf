from datetime import date
from typing import List

from fastapi import APIRouter, Request, Form, Depends
from fastapi.responses import RedirectResponse, HTMLResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from shopledger.api.deps import get_db, require_login, render_page
from shopledger.core.errors import LedgerError, InvalidInput
from shopledger.core.templating import flash
from shopledger.models.debt import PAID
from shopledger.schemas import DebtorIn, PaymentIn, first_error
from shopledger.services import debt as debt_service, reminders
from shopledger.services.export import csv_response

router = APIRouter(prefix="/debtors")

DEBTOR_HEADERS = ["Customer Name", "Phone Number", "Grand Total", "Total Paid",
                  "Current Balance", "Status", "Created Date"]
ITEM_ROWS = 5


def collect_items(dates, names, quantities, prices):
    """Zip the repeated item fields into dicts, dropping rows left completely blank."""
    items = []
    for d, n, q, p in zip(dates, names, quantities, prices):
        if not (n.strip() or q.strip() or p.strip()):
            continue
        items.append({"item_date": d or date.today().isoformat(), "item_name": n,
                      "quantity": q, "selling_price": p})
    return items


@router.get("", response_class=HTMLResponse)
def debtors_page(request: Request, search: str = "", status: str = "all", sort: str = "newest",
                 db: Session = Depends(get_db), user=Depends(require_login)):
    try:
        debtors = debt_service.list_debtors(db, user, search, status, sort)
    except InvalidInput as e:
        flash(request, e.message, "danger")
        return RedirectResponse("/debtors", status_code=302)
    return render_page(request, db, user, "debtors.html", active="debtors", debtors=debtors,
                       stats=debt_service.debt_stats(db, user), search=search, status=status, sort=sort,
                       sorts=list(debt_service.SORTS), item_rows=ITEM_ROWS, today=date.today().isoformat())


@router.post("")
def create_debtor(request: Request,
                  customer_name: str = Form(""),
                  customer_phone: str = Form(""),
                  customer_email: str = Form(""),
                  payment_amount: str = Form(""),
                  item_date: List[str] = Form([]),
                  item_name: List[str] = Form([]),
                  item_quantity: List[str] = Form([]),
                  item_price: List[str] = Form([]),
                  db: Session = Depends(get_db),
                  user=Depends(require_login)):
    try:
        data = DebtorIn(customer_name=customer_name, customer_phone=customer_phone,
                        customer_email=customer_email, payment_amount=payment_amount,
                        items=collect_items(item_date, item_name, item_quantity, item_price))
        debtor = debt_service.create_debtor(db, user, data)
    except ValidationError as e:
        flash(request, first_error(e), "danger")
    except LedgerError as e:
        db.rollback()
        flash(request, e.message, "danger")
    else:
        flash(request, f"Debtor {debtor.customer_name} added successfully!")
    return RedirectResponse("/debtors", status_code=302)


@router.get("/export.csv")
def export_debtors(request: Request, start: str = "", end: str = "",
                   db: Session = Depends(get_db), user=Depends(require_login)):
    try:
        start_d = date.fromisoformat(start) if start else None
        end_d = date.fromisoformat(end) if end else None
        rows = debt_service.export_rows(debt_service.list_debtors(db, user), start_d, end_d)
    except ValueError:
        flash(request, "Please select valid date range", "danger")
        return RedirectResponse("/debtors", status_code=302)
    except LedgerError as e:
        flash(request, e.message, "danger")
        return RedirectResponse("/debtors", status_code=302)
    name = f"debtors-{start}-to-{end}" if start_d and end_d else f"debtors-{date.today().isoformat()}"
    return csv_response(name, rows, DEBTOR_HEADERS)


@router.get("/{debtor_id}", response_class=HTMLResponse)
def debtor_detail(request: Request, debtor_id: int, db: Session = Depends(get_db), user=Depends(require_login)):
    # NotFound here becomes a 404 page via the app-level handler
    debtor = debt_service.get_debtor(db, user, debtor_id)
    return render_page(request, db, user, "debtor_detail.html", active="debtors", debtor=debtor,
                       items=sorted(debtor.items, key=lambda i: (i.item_date, i.id)),
                       payments=debt_service.payment_history(db, user, debtor_id))


@router.post("/{debtor_id}/payments")
def record_payment(request: Request, debtor_id: int,
                   amount: str = Form(""),
                   db: Session = Depends(get_db),
                   user=Depends(require_login)):
    try:
        data = PaymentIn(amount=amount)
        debtor = debt_service.record_payment(db, user, debtor_id, data.amount)
    except ValidationError as e:
        flash(request, first_error(e), "danger")
    except LedgerError as e:
        db.rollback()
        flash(request, e.message, "danger")
    else:
        if debtor.status == PAID:
            flash(request, f"Payment recorded. {debtor.customer_name} has fully paid!")
        else:
            flash(request, "Payment recorded successfully!")
    return RedirectResponse(f"/debtors/{debtor_id}", status_code=302)


@router.post("/{debtor_id}/reconcile")
def reconcile(request: Request, debtor_id: int, db: Session = Depends(get_db), user=Depends(require_login)):
    try:
        result = debt_service.reconcile_debtor(db, user, debtor_id)
    except LedgerError as e:
        db.rollback()
        flash(request, e.message, "danger")
    else:
        if result.corrected:
            flash(request, f"Totals corrected: recorded {result.recorded_total_paid}, "
                           f"payments add up to {result.payments_total}", "warning")
        else:
            flash(request, "Totals match the payment history")
    return RedirectResponse(f"/debtors/{debtor_id}", status_code=302)


@router.post("/{debtor_id}/delete")
def delete_debtor(request: Request, debtor_id: int, db: Session = Depends(get_db), user=Depends(require_login)):
    try:
        debt_service.delete_debtor(db, user, debtor_id)
        flash(request, "Debtor deleted")
    except LedgerError as e:
        db.rollback()
        flash(request, e.message, "danger")
    return RedirectResponse("/debtors", status_code=302)


@router.post("/{debtor_id}/remind")
def email_reminder(request: Request, debtor_id: int,
                   email: str = Form(""),
                   db: Session = Depends(get_db),
                   user=Depends(require_login)):
    try:
        reminders.send_payment_reminder(db, user, debtor_id, email)
        flash(request, "Payment reminder sent successfully!")
    except LedgerError as e:
        flash(request, e.message, "danger")
    return RedirectResponse(f"/debtors/{debtor_id}", status_code=302)


@router.get("/{debtor_id}/whatsapp")
def whatsapp_reminder(debtor_id: int, db: Session = Depends(get_db), user=Depends(require_login)):
    link = reminders.whatsapp_reminder(db, user, debtor_id)
    return RedirectResponse(link, status_code=302)
