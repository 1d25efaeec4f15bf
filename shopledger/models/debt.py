from sqlalchemy import Column, Integer, String, Date, DateTime, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from shopledger.db.base import Base

PENDING = "pending"
PAID = "paid"

class Debtor(Base):
    __tablename__ = "debtors"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    customer_name = Column(String, nullable=False)
    customer_phone = Column(String, nullable=False)
    customer_email = Column(String, nullable=True)
    grand_total = Column(Numeric(10, 2), nullable=False)
    total_paid = Column(Numeric(10, 2), nullable=False, default=0)
    current_balance = Column(Numeric(10, 2), nullable=False)
    status = Column(String, nullable=False, default=PENDING)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    items = relationship("DebtItem", back_populates="debtor", cascade="all, delete-orphan",
                         passive_deletes=True, order_by="DebtItem.id")
    payments = relationship("Payment", back_populates="debtor", cascade="all, delete-orphan",
                            passive_deletes=True)
    __table_args__ = (
        CheckConstraint("total_paid >= 0", name="ck_debtors_total_paid_nonneg"),
        CheckConstraint("current_balance >= 0", name="ck_debtors_balance_nonneg"),
        CheckConstraint("abs(current_balance - (grand_total - total_paid)) < 0.005",
                        name="ck_debtors_balance_identity"),
        CheckConstraint("(status = 'paid' AND current_balance <= 0) OR "
                        "(status = 'pending' AND current_balance > 0)",
                        name="ck_debtors_status"),
    )

class DebtItem(Base):
    __tablename__ = "debt_items"
    id = Column(Integer, primary_key=True)
    debtor_id = Column(Integer, ForeignKey("debtors.id", ondelete="CASCADE"), index=True, nullable=False)
    item_date = Column(Date, nullable=False)
    item_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    selling_price = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    debtor = relationship("Debtor", back_populates="items")
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_debt_items_quantity_positive"),
    )

class Payment(Base):
    __tablename__ = "payments"
    id = Column(Integer, primary_key=True)
    debtor_id = Column(Integer, ForeignKey("debtors.id", ondelete="CASCADE"), index=True, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    payment_date = Column(DateTime, default=datetime.utcnow, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    debtor = relationship("Debtor", back_populates="payments")
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
    )
