from fastapi import APIRouter, Request, Form, Depends
from fastapi.responses import RedirectResponse, HTMLResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from shopledger.api.deps import get_db, require_login, render_page
from shopledger.core.templating import flash
from shopledger.schemas import SettingsIn, first_error
from shopledger.services.currency import CURRENCIES
from shopledger.services.preferences import save_settings

router = APIRouter(prefix="/settings")


@router.get("", response_class=HTMLResponse)
def settings_page(request: Request, db: Session = Depends(get_db), user=Depends(require_login)):
    return render_page(request, db, user, "settings.html", active="settings", currencies=CURRENCIES)


@router.post("")
def update_settings(request: Request,
                    theme: str = Form(""),
                    currency: str = Form(""),
                    profit_margin_goal: str = Form("20"),
                    low_stock_threshold: str = Form("10"),
                    db: Session = Depends(get_db),
                    user=Depends(require_login)):
    try:
        data = SettingsIn(theme=theme, currency=currency, profit_margin_goal=profit_margin_goal,
                          low_stock_threshold=low_stock_threshold)
        save_settings(db, user, data)
        flash(request, "Settings saved successfully!")
    except ValidationError as e:
        flash(request, first_error(e), "danger")
    return RedirectResponse("/settings", status_code=302)
