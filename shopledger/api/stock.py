from fastapi import APIRouter, Request, Form, Depends
from fastapi.responses import RedirectResponse, HTMLResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from shopledger.api.deps import get_db, require_login, render_page
from shopledger.core.errors import LedgerError
from shopledger.core.templating import flash
from shopledger.schemas import StockIn, first_error
from shopledger.services import inventory
from shopledger.services.preferences import get_settings

router = APIRouter(prefix="/stock")


@router.get("", response_class=HTMLResponse)
def stock_page(request: Request, db: Session = Depends(get_db), user=Depends(require_login)):
    items = inventory.list_stock(db, user)
    threshold = get_settings(db, user).low_stock_threshold
    out_of_stock, low_stock = inventory.stock_alerts(items, threshold)
    return render_page(request, db, user, "stock.html", active="stock", items=items,
                       out_of_stock=out_of_stock, low_stock=low_stock, threshold=threshold,
                       stock_value=inventory.stock_value(items))


@router.post("")
def add_stock(request: Request,
              product_name: str = Form(""),
              quantity: str = Form(""),
              cost_price: str = Form(""),
              db: Session = Depends(get_db),
              user=Depends(require_login)):
    try:
        data = StockIn(product_name=product_name, quantity=quantity, cost_price=cost_price)
        inventory.add_stock(db, user, data)
        flash(request, "Stock added successfully!")
    except ValidationError as e:
        flash(request, first_error(e), "danger")
    except LedgerError as e:
        db.rollback()
        flash(request, e.message, "danger")
    return RedirectResponse("/stock", status_code=302)


@router.post("/{item_id}/restock")
def restock(request: Request, item_id: int,
            add_quantity: str = Form(""),
            db: Session = Depends(get_db),
            user=Depends(require_login)):
    try:
        qty = int(add_quantity)
    except ValueError:
        qty = None
    try:
        item = inventory.restock(db, user, item_id, qty)
        flash(request, f"Added {qty} units to {item.product_name}")
    except LedgerError as e:
        db.rollback()
        flash(request, e.message, "danger")
    return RedirectResponse("/stock", status_code=302)


@router.post("/{item_id}/delete")
def delete_stock(request: Request, item_id: int, db: Session = Depends(get_db), user=Depends(require_login)):
    try:
        inventory.delete_stock(db, user, item_id)
        flash(request, "Stock item deleted")
    except LedgerError as e:
        db.rollback()
        flash(request, e.message, "danger")
    return RedirectResponse("/stock", status_code=302)
