from datetime import date

import pytest

from shopledger.core.config import settings
from shopledger.core.security import create_token
from shopledger.models.debt import Debtor
from shopledger.models.inventory import StockItem
from shopledger.services.export import XLSX_MEDIA_TYPE

PASSWORD = "secret123"

PAGES = ["/analytics", "/analytics/report", "/stock", "/sales", "/expenses", "/debtors", "/settings"]


@pytest.mark.parametrize("path", PAGES)
def test_pages_require_login(client, path):
    resp = client.get(path, follow_redirects=False)
    assert resp.status_code == 302
    assert resp.headers["location"] == "/login"


@pytest.mark.parametrize("path", PAGES)
def test_pages_render_for_logged_in_user(auth_client, path):
    resp = auth_client.get(path)
    assert resp.status_code == 200
    assert "Shop Ledger" in resp.text or "Business report" in resp.text


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_register_logs_in(client):
    resp = client.post("/register", data={"full_name": "Ada Obi", "email": "Ada@Example.com",
                                          "password": PASSWORD, "confirm_password": PASSWORD},
                       follow_redirects=False)
    assert resp.status_code == 302
    assert resp.headers["location"] == "/analytics"
    assert client.get("/analytics").status_code == 200


def test_register_rejects_mismatched_passwords(client):
    resp = client.post("/register", data={"full_name": "Ada Obi", "email": "ada@example.com",
                                          "password": PASSWORD, "confirm_password": "different"})
    assert resp.status_code == 400
    assert "Passwords don&#39;t match" in resp.text or "Passwords don't match" in resp.text


def test_register_rejects_taken_email(client, user):
    resp = client.post("/register", data={"full_name": "Someone", "email": user.email,
                                          "password": PASSWORD, "confirm_password": PASSWORD})
    assert resp.status_code == 400
    assert "already exists" in resp.text


def test_bad_login(client, user):
    resp = client.post("/login", data={"email": user.email, "password": "wrong-password"})
    assert resp.status_code == 400
    assert "Invalid email or password" in resp.text


def test_logout_clears_session(auth_client):
    auth_client.get("/logout")
    assert auth_client.get("/stock", follow_redirects=False).status_code == 302


def test_stock_and_sale_forms(auth_client, db, user):
    auth_client.post("/stock", data={"product_name": "Rice", "quantity": "5", "cost_price": "10"})
    item = db.query(StockItem).filter_by(user_id=user.id).one()
    assert item.quantity == 5

    today = date.today().isoformat()
    sale = {"sale_date": today, "sale_time": "10:15", "product_name": "rice", "quantity": "9",
            "cost_price": "10", "selling_price": "12"}
    page = auth_client.post("/sales", data=sale)
    assert "Only 5 units available in stock" in page.text

    sale["quantity"] = "2"
    page = auth_client.post("/sales", data=sale)
    assert "Sale recorded successfully!" in page.text
    db.expire_all()
    assert db.get(StockItem, item.id).quantity == 3

    csv = auth_client.get(f"/sales/export.csv?start={today}&end={today}")
    assert csv.headers["content-type"].startswith("text/csv")
    assert csv.text.splitlines()[0] == "Date,Time,Product,Quantity,Cost Price,Selling Price,Total Cost,Revenue,Profit/Loss"
    assert len(csv.text.splitlines()) == 2


def test_invalid_form_flashes_first_error(auth_client):
    page = auth_client.post("/stock", data={"product_name": "Rice", "quantity": "0", "cost_price": "10"})
    assert "Quantity: Input should be greater than or equal to 1" in page.text
    assert "alert-danger" in page.text


def test_debtor_flow(auth_client, db, user):
    today = date.today().isoformat()
    auth_client.post("/debtors", data={
        "customer_name": "Chidi Okafor", "customer_phone": "08012345678", "customer_email": "",
        "payment_amount": "400",
        "item_date": [today, today, today],
        "item_name": ["Rice", "Oil", ""],
        "item_quantity": ["2", "1", ""],
        "item_price": ["250", "500", ""],
    })
    debtor = db.query(Debtor).filter_by(user_id=user.id).one()
    assert debtor.grand_total == 1000
    assert debtor.current_balance == 600

    detail = auth_client.get(f"/debtors/{debtor.id}")
    assert detail.status_code == 200
    assert "Chidi Okafor" in detail.text

    page = auth_client.post(f"/debtors/{debtor.id}/payments", data={"amount": "700"})
    assert "Payment cannot exceed current balance" in page.text
    page = auth_client.post(f"/debtors/{debtor.id}/payments", data={"amount": "600"})
    assert "has fully paid" in page.text
    db.expire_all()
    assert db.get(Debtor, debtor.id).status == "paid"

    csv = auth_client.get("/debtors/export.csv")
    assert "Chidi Okafor" in csv.text

    wa = auth_client.get(f"/debtors/{debtor.id}/whatsapp", follow_redirects=False)
    assert wa.headers["location"].startswith("https://wa.me/08012345678?text=")


def test_unknown_debtor_is_404(auth_client):
    assert auth_client.get("/debtors/999").status_code == 404


def test_debtor_form_without_items(auth_client, db):
    page = auth_client.post("/debtors", data={"customer_name": "Chidi Okafor", "customer_phone": "08012345678",
                                              "item_date": [""], "item_name": [""],
                                              "item_quantity": [""], "item_price": [""]})
    assert "Please add at least one item" in page.text
    assert db.query(Debtor).count() == 0


def test_settings_change_currency(auth_client):
    auth_client.post("/settings", data={"theme": "dark", "currency": "USD",
                                        "profit_margin_goal": "25", "low_stock_threshold": "3"})
    page = auth_client.get("/stock")
    assert "theme-dark" in page.text
    assert "$0.00" in page.text


def test_workbook_export(auth_client):
    resp = auth_client.get("/analytics/export.xlsx")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == XLSX_MEDIA_TYPE
    assert resp.content[:2] == b"PK"


def test_job_endpoint_requires_token(client):
    assert client.post("/jobs/weekly-reminders").status_code == 401
    bad = client.post("/jobs/weekly-reminders", headers={"Authorization": "Bearer not-a-token"})
    assert bad.status_code == 401
    wrong_sub = client.post("/jobs/weekly-reminders",
                            headers={"Authorization": f"Bearer {create_token('someone-else')}"})
    assert wrong_sub.status_code == 403


def test_job_endpoint_runs_batch(client, resend):
    token = create_token(settings.JOB_TOKEN_SUBJECT)
    resp = client.post("/jobs/weekly-reminders", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["results"] == {"total": 0, "sent": 0, "failed": 0, "errors": []}
