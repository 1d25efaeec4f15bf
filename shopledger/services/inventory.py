import logging
from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.orm import Session

from shopledger.core.errors import InvalidInput, NotFound
from shopledger.db.session import atomic
from shopledger.models.inventory import StockItem
from shopledger.models.user import User
from shopledger.schemas import StockIn

logger = logging.getLogger(__name__)


def list_stock(db: Session, user: User):
    return (db.query(StockItem)
              .filter(StockItem.user_id == user.id)
              .order_by(StockItem.created_at.desc(), StockItem.id.desc())
              .all())


def sellable_stock(db: Session, user: User):
    return (db.query(StockItem)
              .filter(StockItem.user_id == user.id, StockItem.quantity > 0)
              .order_by(StockItem.product_name)
              .all())


def get_item(db: Session, user: User, item_id: int, lock: bool = False) -> StockItem:
    q = db.query(StockItem).filter(StockItem.id == item_id, StockItem.user_id == user.id)
    if lock:
        q = q.with_for_update()
    item = q.first()
    if not item:
        raise NotFound("Stock item not found")
    return item


def add_stock(db: Session, user: User, data: StockIn) -> StockItem:
    with atomic(db):
        item = StockItem(user_id=user.id, product_name=data.product_name,
                         quantity=data.quantity, cost_price=data.cost_price, total_sold=0)
        db.add(item)
    logger.info("User %s added stock %r x%s", user.id, item.product_name, item.quantity)
    return item


def restock(db: Session, user: User, item_id: int, add_quantity: int) -> StockItem:
    if add_quantity is None or add_quantity < 1:
        raise InvalidInput("Please enter a valid quantity")
    with atomic(db):
        item = get_item(db, user, item_id, lock=True)
        db.execute(update(StockItem)
                   .where(StockItem.id == item.id)
                   .values(quantity=StockItem.quantity + add_quantity)
                   .execution_options(synchronize_session=False))
        db.refresh(item)
    logger.info("User %s restocked %r +%s", user.id, item.product_name, add_quantity)
    return item


def delete_stock(db: Session, user: User, item_id: int):
    with atomic(db):
        item = get_item(db, user, item_id)
        db.delete(item)
    logger.info("User %s deleted stock item %s", user.id, item_id)


def stock_alerts(items, threshold: int):
    """Split items into (out_of_stock, low_stock) lists."""
    out = [i for i in items if i.quantity == 0]
    low = [i for i in items if 0 < i.quantity <= threshold]
    return out, low


def stock_value(items) -> Decimal:
    return sum((Decimal(i.quantity) * Decimal(i.cost_price) for i in items), Decimal("0.00"))
