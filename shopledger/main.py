import os

from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from starlette.middleware.sessions import SessionMiddleware

from shopledger.core.config import settings
from shopledger.core.errors import LoginRequired, NotFound
from shopledger.core.logging import setup_logging
from shopledger.core.templating import templates
from shopledger.db.session import engine, SessionLocal
from shopledger.db.base import Base
from shopledger.models import user, inventory, debt, expense  # noqa: F401  register tables
from shopledger.api import auth as auth_routes, stock as stock_routes, sales as sales_routes, expenses as expense_routes, debt as debt_routes, settings as settings_routes, analytics as analytics_routes, jobs as job_routes
from shopledger.services.accounts import seed_owner

STATIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "static")

setup_logging()

app = FastAPI(title=settings.APP_NAME)
app.add_middleware(SessionMiddleware, secret_key=settings.SECRET_KEY)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

Base.metadata.create_all(bind=engine)
db = SessionLocal(); seed_owner(db); db.close()

app.include_router(auth_routes.router)
app.include_router(analytics_routes.router)
app.include_router(stock_routes.router)
app.include_router(sales_routes.router)
app.include_router(expense_routes.router)
app.include_router(debt_routes.router)
app.include_router(settings_routes.router)
app.include_router(job_routes.router)

@app.exception_handler(LoginRequired)
def login_required(request: Request, exc: LoginRequired):
    return RedirectResponse("/login", status_code=302)

@app.exception_handler(NotFound)
def not_found(request: Request, exc: NotFound):
    return templates.TemplateResponse("404.html", {"request": request, "message": exc.message}, status_code=404)

@app.get("/health")
def health(): return {"ok": True}
