import os
from datetime import datetime

from fastapi import Request
from fastapi.templating import Jinja2Templates

from shopledger.services.currency import format_money, symbol

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "templates")

templates = Jinja2Templates(directory=TEMPLATES_DIR)


def flash(request: Request, message: str, category: str = "success"):
    flashes = request.session.get("_flashes", [])
    flashes.append([category, message])
    request.session["_flashes"] = flashes


def get_flashed_messages(request: Request):
    return request.session.pop("_flashes", [])


templates.env.filters["money"] = format_money
templates.env.globals["currency_symbol"] = symbol
templates.env.globals["get_flashed_messages"] = get_flashed_messages
templates.env.globals["now"] = datetime.now
