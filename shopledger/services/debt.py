"""
Customer credit bookkeeping.

A debtor's grand total is the sum of the items bought on credit. Every
payment is written together with the debtor's running totals inside one
transaction. The totals are moved by a single conditional UPDATE relative to
the stored values (the row is also locked where the database supports it),
so concurrent payments serialize and

    total_paid      == sum(payments)
    current_balance == grand_total - total_paid
    status          == "paid" exactly when current_balance <= 0

hold after every commit. The same identities are also declared as CHECK
constraints on the debtors table.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import pandas as pd
from sqlalchemy import case, func, update
from sqlalchemy.orm import Session

from shopledger.core.errors import InvalidInput, NotFound, PaymentRejected
from shopledger.db.session import atomic
from shopledger.models.debt import Debtor, DebtItem, Payment, PAID, PENDING
from shopledger.models.user import User
from shopledger.schemas import DebtorIn, CENT

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
STATUS_FILTERS = ("all", PENDING, PAID)
SORTS = {
    "newest": lambda: (Debtor.created_at.desc(), Debtor.id.desc()),
    "oldest": lambda: (Debtor.created_at.asc(), Debtor.id.asc()),
    "highest": lambda: (Debtor.current_balance.desc(), Debtor.id.desc()),
    "lowest": lambda: (Debtor.current_balance.asc(), Debtor.id.desc()),
    "name": lambda: (func.lower(Debtor.customer_name).asc(), Debtor.id.asc()),
}


@dataclass
class Balance:
    total_paid: Decimal
    current_balance: Decimal
    status: str


@dataclass
class DebtStats:
    total_outstanding: Decimal
    active_debtors: int
    paid_this_month: Decimal


@dataclass
class Reconciliation:
    debtor_id: int
    recorded_total_paid: Decimal
    payments_total: Decimal
    drift: Decimal
    corrected: bool


def status_for(balance: Decimal) -> str:
    return PAID if balance <= 0 else PENDING


def apply_payment(grand_total: Decimal, total_paid: Decimal, amount: Decimal) -> Balance:
    new_paid = Decimal(total_paid) + Decimal(amount)
    balance = Decimal(grand_total) - new_paid
    return Balance(total_paid=new_paid, current_balance=balance, status=status_for(balance))


def get_debtor(db: Session, user: User, debtor_id: int, lock: bool = False) -> Debtor:
    q = db.query(Debtor).filter(Debtor.id == debtor_id, Debtor.user_id == user.id)
    if lock:
        q = q.with_for_update()
    debtor = q.first()
    if not debtor:
        raise NotFound("Debtor not found")
    return debtor


def create_debtor(db: Session, user: User, data: DebtorIn) -> Debtor:
    """Write the debtor, its items and the optional down payment as one unit."""
    grand_total = data.grand_total
    opening = apply_payment(grand_total, ZERO, data.payment_amount)
    with atomic(db):
        debtor = Debtor(user_id=user.id, customer_name=data.customer_name,
                        customer_phone=data.customer_phone, customer_email=data.customer_email,
                        grand_total=grand_total, total_paid=opening.total_paid,
                        current_balance=opening.current_balance, status=opening.status)
        for item in data.items:
            debtor.items.append(DebtItem(item_date=item.item_date, item_name=item.item_name,
                                         quantity=item.quantity, selling_price=item.selling_price,
                                         total=item.total))
        if data.payment_amount > 0:
            debtor.payments.append(Payment(amount=data.payment_amount))
        db.add(debtor)
    logger.info("User %s created debtor %s (%s items, total %s, paid %s)", user.id, debtor.id,
                len(data.items), grand_total, data.payment_amount)
    return debtor


def record_payment(db: Session, user: User, debtor_id: int, amount: Decimal,
                   paid_at: Optional[datetime] = None) -> Debtor:
    """Insert a payment and update the debtor's running totals in one transaction."""
    amount = Decimal(amount)
    if amount < CENT:
        raise PaymentRejected("Amount must be at least 0.01")
    with atomic(db):
        debtor = get_debtor(db, user, debtor_id, lock=True)
        # relative and conditional, so a concurrent payment is never overwritten
        new_balance = func.round(Debtor.current_balance - amount, 2)
        result = db.execute(
            update(Debtor)
            .where(Debtor.id == debtor.id, Debtor.current_balance >= amount)
            .values(total_paid=func.round(Debtor.total_paid + amount, 2),
                    current_balance=new_balance,
                    status=case((new_balance <= 0, PAID), else_=PENDING),
                    updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False))
        if result.rowcount != 1:
            raise PaymentRejected("Payment cannot exceed current balance")
        db.add(Payment(debtor_id=debtor.id, amount=amount, payment_date=paid_at or datetime.utcnow()))
        db.flush()
        db.refresh(debtor)
    logger.info("User %s recorded payment %s for debtor %s, balance now %s (%s)",
                user.id, amount, debtor.id, debtor.current_balance, debtor.status)
    return debtor


def payment_history(db: Session, user: User, debtor_id: int):
    debtor = get_debtor(db, user, debtor_id)
    return (db.query(Payment)
              .filter(Payment.debtor_id == debtor.id)
              .order_by(Payment.payment_date.desc(), Payment.id.desc())
              .all())


def reconcile_debtor(db: Session, user: User, debtor_id: int, fix: bool = True) -> Reconciliation:
    """Compare total_paid with the payments table and, if asked, rewrite the totals."""
    with atomic(db):
        debtor = get_debtor(db, user, debtor_id, lock=True)
        paid = db.query(func.coalesce(func.sum(Payment.amount), 0)) \
                 .filter(Payment.debtor_id == debtor.id).scalar()
        paid = Decimal(str(paid)).quantize(CENT)
        recorded = Decimal(debtor.total_paid).quantize(CENT)
        drift = recorded - paid
        corrected = False
        if drift != 0 and fix:
            new = apply_payment(debtor.grand_total, ZERO, paid)
            if new.current_balance < 0:
                raise InvalidInput("Payments exceed the grand total; fix the payment records first")
            debtor.total_paid = new.total_paid
            debtor.current_balance = new.current_balance
            debtor.status = new.status
            corrected = True
    if drift != 0:
        logger.warning("Debtor %s total_paid drifted by %s (corrected=%s)", debtor.id, drift, corrected)
    return Reconciliation(debtor_id=debtor.id, recorded_total_paid=recorded, payments_total=paid,
                          drift=drift, corrected=corrected)


def delete_debtor(db: Session, user: User, debtor_id: int):
    with atomic(db):
        debtor = get_debtor(db, user, debtor_id)
        db.delete(debtor)
    logger.info("User %s deleted debtor %s", user.id, debtor_id)


def list_debtors(db: Session, user: User, search: str = "", status: str = "all", sort: str = "newest"):
    if status not in STATUS_FILTERS:
        raise InvalidInput(f"Unknown status filter: {status}")
    if sort not in SORTS:
        raise InvalidInput(f"Unknown sort order: {sort}")
    q = db.query(Debtor).filter(Debtor.user_id == user.id)
    term = (search or "").strip()
    if term:
        q = q.filter(Debtor.customer_name.icontains(term, autoescape=True)
                     | Debtor.customer_phone.contains(term, autoescape=True))
    if status != "all":
        q = q.filter(Debtor.status == status)
    return q.order_by(*SORTS[sort]()).all()


def debt_stats(db: Session, user: User, today: Optional[date] = None) -> DebtStats:
    period = pd.Period(pd.Timestamp(today or date.today()), freq="M")
    start, end = period.start_time.to_pydatetime(), (period + 1).start_time.to_pydatetime()
    outstanding = db.query(func.coalesce(func.sum(Debtor.current_balance), 0)) \
                    .filter(Debtor.user_id == user.id).scalar()
    active = db.query(func.count(Debtor.id)) \
               .filter(Debtor.user_id == user.id, Debtor.status == PENDING).scalar()
    collected = db.query(func.coalesce(func.sum(Payment.amount), 0)) \
                  .join(Debtor, Payment.debtor_id == Debtor.id) \
                  .filter(Debtor.user_id == user.id,
                          Payment.payment_date >= start, Payment.payment_date < end).scalar()
    return DebtStats(total_outstanding=Decimal(str(outstanding)).quantize(CENT),
                     active_debtors=int(active or 0),
                     paid_this_month=Decimal(str(collected)).quantize(CENT))


def export_rows(debtors, start: Optional[date] = None, end: Optional[date] = None):
    """CSV rows for the given debtors, optionally limited to a created-date range."""
    if bool(start) != bool(end):
        raise InvalidInput("Please select both start and end dates")
    if start and end:
        if start > end:
            raise InvalidInput("Please select valid date range")
        debtors = [d for d in debtors if start <= d.created_at.date() <= end]
    return [{
        "Customer Name": d.customer_name,
        "Phone Number": d.customer_phone,
        "Grand Total": d.grand_total,
        "Total Paid": d.total_paid,
        "Current Balance": d.current_balance,
        "Status": d.status,
        "Created Date": d.created_at.date().isoformat(),
    } for d in debtors]
