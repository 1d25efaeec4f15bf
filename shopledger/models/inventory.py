from sqlalchemy import Column, Integer, String, Date, Time, DateTime, Numeric, ForeignKey, CheckConstraint
from datetime import datetime
from shopledger.db.base import Base

class StockItem(Base):
    __tablename__ = "stock"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    product_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    cost_price = Column(Numeric(10, 2), nullable=False)
    total_sold = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_stock_quantity_nonneg"),
        CheckConstraint("total_sold >= 0", name="ck_stock_total_sold_nonneg"),
    )

class Sale(Base):
    __tablename__ = "sales"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    sale_date = Column(Date, index=True, nullable=False)
    sale_time = Column(Time, nullable=False)
    product_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    cost_price = Column(Numeric(10, 2), nullable=False)
    selling_price = Column(Numeric(10, 2), nullable=False)
    # stored denormalized at insert time
    total_cost = Column(Numeric(10, 2), nullable=False)
    revenue = Column(Numeric(10, 2), nullable=False)
    profit_loss = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_sales_quantity_positive"),
    )
