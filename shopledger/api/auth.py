import logging

from fastapi import APIRouter, Request, Form, Depends
from fastapi.responses import RedirectResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from shopledger.api.deps import get_db, current_user
from shopledger.core.errors import AuthError
from shopledger.core.templating import templates, flash
from shopledger.schemas import RegisterIn, first_error
from shopledger.services import accounts

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/login")
def login_page(request: Request, user=Depends(current_user)):
    if user:
        return RedirectResponse("/analytics", status_code=302)
    return templates.TemplateResponse("login.html", {"request": request, "error": None, "email": ""})

@router.post("/login")
def login(request: Request,
          email: str = Form(""),
          password: str = Form(""),
          db: Session = Depends(get_db)):
    try:
        user = accounts.authenticate(db, email, password)
    except AuthError as e:
        logger.info("Failed login for %s", email)
        return templates.TemplateResponse("login.html", {"request": request, "error": e.message, "email": email},
                                          status_code=400)
    request.session["user_id"] = user.id
    flash(request, "Welcome back! You've successfully logged in.")
    return RedirectResponse("/analytics", status_code=302)

@router.get("/register")
def register_page(request: Request):
    return templates.TemplateResponse("register.html", {"request": request, "error": None, "form": {}})

@router.post("/register")
def register(request: Request,
             full_name: str = Form(""),
             email: str = Form(""),
             password: str = Form(""),
             confirm_password: str = Form(""),
             db: Session = Depends(get_db)):
    form = {"full_name": full_name, "email": email}
    try:
        data = RegisterIn(full_name=full_name, email=email, password=password, confirm_password=confirm_password)
        user = accounts.register(db, data)
    except ValidationError as e:
        error = first_error(e)
    except AuthError as e:
        error = e.message
    else:
        request.session["user_id"] = user.id
        flash(request, "Account created!")
        return RedirectResponse("/analytics", status_code=302)
    return templates.TemplateResponse("register.html", {"request": request, "error": error, "form": form},
                                      status_code=400)

@router.get("/logout")
def logout(request: Request):
    request.session.clear()
    return RedirectResponse("/login", status_code=302)
