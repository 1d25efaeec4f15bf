from datetime import date, datetime

from fastapi import APIRouter, Request, Form, Depends
from fastapi.responses import RedirectResponse, HTMLResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from shopledger.api.deps import get_db, require_login, render_page
from shopledger.core.errors import LedgerError, InvalidInput
from shopledger.core.templating import flash
from shopledger.schemas import SaleIn, first_error
from shopledger.services import inventory, sales as sales_service
from shopledger.services.export import csv_response

router = APIRouter(prefix="/sales")

SALE_HEADERS = ["Date", "Time", "Product", "Quantity", "Cost Price", "Selling Price",
                "Total Cost", "Revenue", "Profit/Loss"]


def parse_range(start: str, end: str):
    """Query-string dates; both default to today."""
    today = date.today()
    try:
        start_d = date.fromisoformat(start) if start else today
        end_d = date.fromisoformat(end) if end else today
    except ValueError:
        raise InvalidInput("Please select valid date range")
    if start_d > end_d:
        raise InvalidInput("Please select valid date range")
    return start_d, end_d


@router.get("", response_class=HTMLResponse)
def sales_page(request: Request, start: str = "", end: str = "",
               db: Session = Depends(get_db), user=Depends(require_login)):
    try:
        start_d, end_d = parse_range(start, end)
    except InvalidInput as e:
        flash(request, e.message, "danger")
        return RedirectResponse("/sales", status_code=302)
    rows = sales_service.list_sales(db, user, start_d, end_d)
    now = datetime.now()
    return render_page(request, db, user, "sales.html", active="sales", sales=rows,
                       summary=sales_service.sales_summary(rows), start=start_d, end=end_d,
                       stock=inventory.sellable_stock(db, user),
                       today=now.date().isoformat(), now_time=now.strftime("%H:%M"))


@router.post("")
def record_sale(request: Request,
                sale_date: str = Form(""),
                sale_time: str = Form(""),
                product_name: str = Form(""),
                quantity: str = Form(""),
                cost_price: str = Form(""),
                selling_price: str = Form(""),
                db: Session = Depends(get_db),
                user=Depends(require_login)):
    try:
        data = SaleIn(sale_date=sale_date, sale_time=sale_time, product_name=product_name,
                      quantity=quantity, cost_price=cost_price, selling_price=selling_price)
        sale, item = sales_service.record_sale(db, user, data)
        msg = "Sale recorded successfully!"
        if item is not None:
            msg += f" {item.quantity} units of {item.product_name} left in stock."
        flash(request, msg)
    except ValidationError as e:
        flash(request, first_error(e), "danger")
    except LedgerError as e:
        db.rollback()
        flash(request, e.message, "danger")
    return RedirectResponse("/sales", status_code=302)


@router.post("/{sale_id}/delete")
def delete_sale(request: Request, sale_id: int, db: Session = Depends(get_db), user=Depends(require_login)):
    try:
        sales_service.delete_sale(db, user, sale_id)
        flash(request, "Sale deleted")
    except LedgerError as e:
        db.rollback()
        flash(request, e.message, "danger")
    return RedirectResponse("/sales", status_code=302)


@router.get("/export.csv")
def export_sales(request: Request, start: str = "", end: str = "",
                 db: Session = Depends(get_db), user=Depends(require_login)):
    try:
        start_d, end_d = parse_range(start, end)
    except InvalidInput as e:
        flash(request, e.message, "danger")
        return RedirectResponse("/sales", status_code=302)
    rows = sales_service.export_rows(sales_service.list_sales(db, user, start_d, end_d))
    return csv_response(f"sales-report-{start_d.isoformat()}-to-{end_d.isoformat()}", rows, SALE_HEADERS)
