"""
Form input schemas.

Every form posted by the web pages is parsed into one of these models before
any service is called, so the services can trust their arguments.
"""

import re
from datetime import date, time
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from shopledger.models.expense import CATEGORIES
from shopledger.services.currency import CURRENCIES

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
CENT = Decimal("0.01")


def first_error(exc: ValidationError) -> str:
    """Human readable message for the first failing field."""
    err = exc.errors()[0]
    msg = err.get("msg", "Invalid input")
    if err.get("type") == "value_error":
        # raised by our own validators, already phrased for the user
        return msg.replace("Value error, ", "")
    fields = [str(p) for p in err.get("loc", ()) if isinstance(p, str)]
    if not fields:
        return msg
    label = fields[-1].replace("_", " ").capitalize()
    return f"{label}: {msg}"


def _money(v: Decimal) -> Decimal:
    return v.quantize(CENT)


class RegisterIn(BaseModel):
    full_name: str = Field(..., min_length=2, max_length=100)
    email: str
    password: str = Field(..., min_length=6)
    confirm_password: str

    @field_validator("full_name", "email", mode="before")
    @classmethod
    def strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def valid_email(cls, v: str) -> str:
        if not EMAIL_RE.match(v):
            raise ValueError("Invalid email address")
        return v.lower()

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self


class StockIn(BaseModel):
    product_name: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(..., ge=1)
    cost_price: Decimal = Field(..., ge=CENT)

    @field_validator("product_name", mode="before")
    @classmethod
    def strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("cost_price")
    @classmethod
    def cents(cls, v):
        return _money(v)


class SaleIn(BaseModel):
    sale_date: date
    sale_time: time
    product_name: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(..., ge=1)
    cost_price: Decimal = Field(..., ge=CENT)
    selling_price: Decimal = Field(..., ge=CENT)

    @field_validator("product_name", mode="before")
    @classmethod
    def strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("cost_price", "selling_price")
    @classmethod
    def cents(cls, v):
        return _money(v)


class ExpenseIn(BaseModel):
    expense_date: date
    category: str
    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., ge=CENT)

    @field_validator("description", mode="before")
    @classmethod
    def strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("category")
    @classmethod
    def known_category(cls, v: str) -> str:
        if v not in CATEGORIES:
            raise ValueError("Category is required")
        return v

    @field_validator("amount")
    @classmethod
    def cents(cls, v):
        return _money(v)


class DebtItemIn(BaseModel):
    item_date: date
    item_name: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(..., ge=1)
    selling_price: Decimal = Field(..., ge=CENT)

    @field_validator("item_name", mode="before")
    @classmethod
    def strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("selling_price")
    @classmethod
    def cents(cls, v):
        return _money(v)

    @property
    def total(self) -> Decimal:
        return _money(self.quantity * self.selling_price)


class DebtorIn(BaseModel):
    customer_name: str = Field(..., min_length=2, max_length=100)
    customer_phone: str = Field(..., min_length=10, max_length=15)
    customer_email: Optional[str] = None
    items: List[DebtItemIn]
    payment_amount: Decimal = Decimal("0")

    @field_validator("customer_name", "customer_phone", mode="before")
    @classmethod
    def strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("customer_email", mode="before")
    @classmethod
    def optional_email(cls, v):
        v = (v or "").strip()
        if not v:
            return None
        if not EMAIL_RE.match(v):
            raise ValueError("Invalid email address")
        return v

    @field_validator("items")
    @classmethod
    def at_least_one(cls, v):
        if not v:
            raise ValueError("Please add at least one item")
        return v

    @field_validator("payment_amount", mode="before")
    @classmethod
    def blank_is_zero(cls, v):
        return v if v not in (None, "") else "0"

    @field_validator("payment_amount")
    @classmethod
    def non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Payment amount cannot be negative")
        return _money(v)

    @property
    def grand_total(self) -> Decimal:
        return sum((i.total for i in self.items), Decimal("0.00"))

    @model_validator(mode="after")
    def payment_within_total(self):
        if self.payment_amount > self.grand_total:
            raise ValueError("Payment cannot exceed grand total")
        return self


class PaymentIn(BaseModel):
    amount: Decimal = Field(..., ge=CENT)

    @field_validator("amount")
    @classmethod
    def cents(cls, v):
        return _money(v)


class SettingsIn(BaseModel):
    theme: str
    currency: str
    profit_margin_goal: Decimal = Field(..., ge=0, le=100)
    low_stock_threshold: int = Field(10, ge=0, le=100)

    @field_validator("theme")
    @classmethod
    def known_theme(cls, v: str) -> str:
        if v not in ("light", "dark"):
            raise ValueError("Please select both theme and currency")
        return v

    @field_validator("currency")
    @classmethod
    def known_currency(cls, v: str) -> str:
        if v not in CURRENCIES:
            raise ValueError("Please select both theme and currency")
        return v
