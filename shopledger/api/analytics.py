from datetime import date

from fastapi import APIRouter, Request, Depends
from fastapi.responses import RedirectResponse, HTMLResponse
from sqlalchemy.orm import Session

from shopledger.api.deps import get_db, current_user, require_login, render_page
from shopledger.services import analytics, debt as debt_service, inventory
from shopledger.services.export import workbook_response
from shopledger.services.preferences import get_settings

router = APIRouter()


@router.get("/")
def home(user=Depends(current_user)):
    return RedirectResponse("/analytics" if user else "/login", status_code=302)


@router.get("/analytics", response_class=HTMLResponse)
def analytics_page(request: Request, db: Session = Depends(get_db), user=Depends(require_login)):
    data = analytics.dashboard(db, user)
    return render_page(request, db, user, "analytics.html", active="analytics", data=data)


@router.get("/analytics/report", response_class=HTMLResponse)
def printable_report(request: Request, db: Session = Depends(get_db), user=Depends(require_login)):
    """Print-friendly summary; the browser's print dialog turns it into a PDF."""
    items = inventory.list_stock(db, user)
    out_of_stock, low_stock = inventory.stock_alerts(items, get_settings(db, user).low_stock_threshold)
    return render_page(request, db, user, "report.html", data=analytics.dashboard(db, user),
                       stats=debt_service.debt_stats(db, user), stock_value=inventory.stock_value(items),
                       out_of_stock=out_of_stock, low_stock=low_stock)


@router.get("/analytics/export.xlsx")
def export_workbook(db: Session = Depends(get_db), user=Depends(require_login)):
    return workbook_response(f"shop-ledger-{date.today().isoformat()}", analytics.report_sheets(db, user))
