import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from shopledger.core.errors import InsufficientStock, InvalidInput, NotFound
from shopledger.db.session import atomic
from shopledger.models.inventory import Sale, StockItem
from shopledger.models.user import User
from shopledger.schemas import SaleIn

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


@dataclass
class SaleTotals:
    total_cost: Decimal
    revenue: Decimal
    profit_loss: Decimal


@dataclass
class SalesSummary:
    total_products: int
    total_quantity: int
    total_cost: Decimal
    total_revenue: Decimal
    total_profit: Decimal
    total_loss: Decimal
    net_result: Decimal


def sale_totals(quantity: int, cost_price: Decimal, selling_price: Decimal) -> SaleTotals:
    total_cost = Decimal(quantity) * cost_price
    revenue = Decimal(quantity) * selling_price
    return SaleTotals(total_cost=total_cost, revenue=revenue, profit_loss=revenue - total_cost)


def record_sale(db: Session, user: User, data: SaleIn):
    """
    Insert a sale and deduct it from the matching stock item, in one transaction.

    The stock item is matched by product name, case-insensitively. A product
    with no stock record is sold without a stock change. The deduction is a
    conditional UPDATE on the stored quantity, so two concurrent sales can
    never both take the last units. Returns
    (sale, stock_item_or_None).
    """
    totals = sale_totals(data.quantity, data.cost_price, data.selling_price)
    with atomic(db):
        item = (db.query(StockItem)
                  .filter(StockItem.user_id == user.id,
                          func.lower(StockItem.product_name) == data.product_name.lower())
                  .order_by(StockItem.id)
                  .with_for_update()
                  .first())
        if item is not None:
            result = db.execute(
                update(StockItem)
                .where(StockItem.id == item.id, StockItem.quantity >= data.quantity)
                .values(quantity=StockItem.quantity - data.quantity,
                        total_sold=StockItem.total_sold + data.quantity,
                        updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False))
            db.refresh(item)
            if result.rowcount != 1:
                raise InsufficientStock(item.quantity)

        sale = Sale(user_id=user.id, sale_date=data.sale_date, sale_time=data.sale_time,
                    product_name=data.product_name, quantity=data.quantity,
                    cost_price=data.cost_price, selling_price=data.selling_price,
                    total_cost=totals.total_cost, revenue=totals.revenue,
                    profit_loss=totals.profit_loss)
        db.add(sale)
    logger.info("User %s sold %s x %r (profit %s)%s", user.id, data.quantity, data.product_name,
                totals.profit_loss, ", stock updated" if item is not None else "")
    return sale, item


def list_sales(db: Session, user: User, start: date, end: date):
    if start > end:
        raise InvalidInput("Please select valid date range")
    return (db.query(Sale)
              .filter(Sale.user_id == user.id, Sale.sale_date >= start, Sale.sale_date <= end)
              .order_by(Sale.sale_date.desc(), Sale.sale_time.desc(), Sale.id.desc())
              .all())


def delete_sale(db: Session, user: User, sale_id: int):
    # stock is not restored; sales of unstocked products have nothing to restore to
    with atomic(db):
        sale = db.query(Sale).filter(Sale.id == sale_id, Sale.user_id == user.id).first()
        if not sale:
            raise NotFound("Sale not found")
        db.delete(sale)
    logger.info("User %s deleted sale %s", user.id, sale_id)


def sales_summary(sales) -> SalesSummary:
    total_cost = sum((Decimal(s.total_cost) for s in sales), ZERO)
    total_revenue = sum((Decimal(s.revenue) for s in sales), ZERO)
    profits = [Decimal(s.profit_loss) for s in sales]
    return SalesSummary(
        total_products=len({s.product_name for s in sales}),
        total_quantity=sum(s.quantity for s in sales),
        total_cost=total_cost,
        total_revenue=total_revenue,
        total_profit=sum((p for p in profits if p > 0), ZERO),
        total_loss=sum((-p for p in profits if p < 0), ZERO),
        net_result=total_revenue - total_cost,
    )


def export_rows(sales):
    return [{
        "Date": s.sale_date.isoformat(),
        "Time": s.sale_time.strftime("%H:%M"),
        "Product": s.product_name,
        "Quantity": s.quantity,
        "Cost Price": s.cost_price,
        "Selling Price": s.selling_price,
        "Total Cost": s.total_cost,
        "Revenue": s.revenue,
        "Profit/Loss": s.profit_loss,
    } for s in sales]
