from datetime import date, time
from decimal import Decimal

import pytest

from shopledger.core.errors import InsufficientStock, InvalidInput
from shopledger.models.inventory import Sale, StockItem
from shopledger.models.user import User
from shopledger.schemas import RegisterIn, SaleIn, StockIn
from shopledger.services import accounts, inventory, sales


def sale(name="Rice", qty=3, cost="5.00", price="8.00", day=date(2025, 3, 10)):
    return SaleIn(sale_date=day, sale_time=time(14, 30), product_name=name, quantity=qty,
                  cost_price=cost, selling_price=price)


@pytest.fixture
def rice(db, user):
    return inventory.add_stock(db, user, StockIn(product_name="Rice", quantity=10, cost_price="5.00"))


def test_sale_totals():
    t = sales.sale_totals(4, Decimal("2.50"), Decimal("2.00"))
    assert t.total_cost == Decimal("10.00")
    assert t.revenue == Decimal("8.00")
    assert t.profit_loss == Decimal("-2.00")


def test_sale_deducts_stock(db, user, rice):
    s, item = sales.record_sale(db, user, sale(qty=3))
    assert s.revenue == Decimal("24.00")
    assert s.total_cost == Decimal("15.00")
    assert s.profit_loss == Decimal("9.00")
    db.expire_all()
    stock = inventory.get_item(db, user, rice.id)
    assert stock.quantity == 7
    assert stock.total_sold == 3


def test_product_match_ignores_case(db, user, rice):
    _, item = sales.record_sale(db, user, sale(name="rICE", qty=10))
    assert item.id == rice.id
    assert item.quantity == 0


def test_insufficient_stock_changes_nothing(db, user, rice):
    with pytest.raises(InsufficientStock) as exc:
        sales.record_sale(db, user, sale(qty=11))
    assert exc.value.message == "Only 10 units available in stock"
    db.expire_all()
    assert inventory.get_item(db, user, rice.id).quantity == 10
    assert sales.list_sales(db, user, date(2025, 1, 1), date(2025, 12, 31)) == []


def test_unstocked_product_is_still_recorded(db, user):
    s, item = sales.record_sale(db, user, sale(name="Sugar"))
    assert item is None
    assert s.id is not None


def test_list_sales_range(db, user):
    sales.record_sale(db, user, sale(name="A", day=date(2025, 3, 1)))
    sales.record_sale(db, user, sale(name="B", day=date(2025, 3, 5)))
    sales.record_sale(db, user, sale(name="C", day=date(2025, 3, 9)))
    found = sales.list_sales(db, user, date(2025, 3, 1), date(2025, 3, 5))
    assert [s.product_name for s in found] == ["B", "A"]
    with pytest.raises(InvalidInput):
        sales.list_sales(db, user, date(2025, 3, 5), date(2025, 3, 1))


def test_summary_splits_profit_and_loss(db, user):
    sales.record_sale(db, user, sale(name="A", qty=2, cost="5.00", price="8.00"))
    sales.record_sale(db, user, sale(name="B", qty=1, cost="10.00", price="7.00"))
    sales.record_sale(db, user, sale(name="A", qty=1, cost="5.00", price="8.00"))
    summary = sales.sales_summary(sales.list_sales(db, user, date(2025, 3, 10), date(2025, 3, 10)))
    assert summary.total_products == 2
    assert summary.total_quantity == 4
    assert summary.total_revenue == Decimal("31.00")
    assert summary.total_cost == Decimal("25.00")
    assert summary.total_profit == Decimal("9.00")
    assert summary.total_loss == Decimal("3.00")
    assert summary.net_result == Decimal("6.00")


def test_delete_sale_keeps_stock(db, user, rice):
    s, _ = sales.record_sale(db, user, sale(qty=4))
    sales.delete_sale(db, user, s.id)
    db.expire_all()
    assert inventory.get_item(db, user, rice.id).quantity == 6


def test_export_rows(db, user):
    s, _ = sales.record_sale(db, user, sale())
    row = sales.export_rows([s])[0]
    assert row["Date"] == "2025-03-10"
    assert row["Time"] == "14:30"
    assert row["Profit/Loss"] == Decimal("9.00")


def test_concurrent_sales_cannot_oversell(file_sessions):
    first, second = file_sessions
    owner = accounts.register(first, RegisterIn(full_name="Ada Obi", email="ada@example.com",
                                                password="secret123", confirm_password="secret123"))
    item = inventory.add_stock(first, owner, StockIn(product_name="Rice", quantity=10, cost_price="5.00"))
    # first session now holds the stock row as it was before the other sale
    assert inventory.get_item(first, owner, item.id).quantity == 10

    sales.record_sale(second, second.get(User, owner.id), sale(qty=6))
    with pytest.raises(InsufficientStock, match="Only 4 units"):
        sales.record_sale(first, owner, sale(qty=6))

    second.expire_all()
    stock = second.get(StockItem, item.id)
    assert (stock.quantity, stock.total_sold) == (4, 6)
    assert second.query(Sale).count() == 1


def test_restock_from_two_sessions_adds_up(file_sessions):
    first, second = file_sessions
    owner = accounts.register(first, RegisterIn(full_name="Ada Obi", email="ada@example.com",
                                                password="secret123", confirm_password="secret123"))
    item = inventory.add_stock(first, owner, StockIn(product_name="Rice", quantity=10, cost_price="5.00"))
    assert inventory.get_item(first, owner, item.id).quantity == 10

    inventory.restock(second, second.get(User, owner.id), item.id, 5)
    assert inventory.restock(first, owner, item.id, 3).quantity == 18
