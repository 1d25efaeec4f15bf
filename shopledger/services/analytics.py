import pandas as pd, numpy as np
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from shopledger.models.debt import Debtor, Payment, PAID, PENDING
from shopledger.models.expense import Expense
from shopledger.models.inventory import Sale, StockItem
from shopledger.models.user import User
from shopledger.services.preferences import get_settings

WINDOW_DAYS = 30

SALE_COLS = ["sale_date", "sale_time", "product_name", "quantity", "cost_price", "selling_price",
             "total_cost", "revenue", "profit_loss"]
EXPENSE_COLS = ["expense_date", "category", "description", "amount"]
DEBTOR_COLS = ["customer_name", "customer_phone", "customer_email", "grand_total", "total_paid",
               "current_balance", "status", "created_at"]


def _frame(db: Session, query, money=(), dates=()) -> pd.DataFrame:
    # read through the session's connection so uncommitted work in the same transaction is visible
    df = pd.read_sql(query.statement, db.connection())
    for col in money:
        df[col] = pd.to_numeric(df[col], errors="coerce").astype(float).fillna(0.0)
    for col in dates:
        df[col] = pd.to_datetime(df[col])
    return df


def load_sales(db: Session, user: User, start: Optional[date] = None, end: Optional[date] = None) -> pd.DataFrame:
    q = db.query(Sale).filter(Sale.user_id == user.id)
    if start:
        q = q.filter(Sale.sale_date >= start)
    if end:
        q = q.filter(Sale.sale_date <= end)
    return _frame(db, q.order_by(Sale.sale_date, Sale.id),
                  money=["cost_price", "selling_price", "total_cost", "revenue", "profit_loss"],
                  dates=["sale_date"])


def load_expenses(db: Session, user: User, start: Optional[date] = None, end: Optional[date] = None) -> pd.DataFrame:
    q = db.query(Expense).filter(Expense.user_id == user.id)
    if start:
        q = q.filter(Expense.expense_date >= start)
    if end:
        q = q.filter(Expense.expense_date <= end)
    return _frame(db, q.order_by(Expense.expense_date, Expense.id), money=["amount"], dates=["expense_date"])


def load_debtors(db: Session, user: User) -> pd.DataFrame:
    q = db.query(Debtor).filter(Debtor.user_id == user.id).order_by(Debtor.id)
    return _frame(db, q, money=["grand_total", "total_paid", "current_balance"], dates=["created_at"])


def change_percent(current: float, previous: float) -> float:
    """
    Month-over-month change in percent.
    previous = 0 -> 100 if there is anything this month, else 0.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def profit_margin(revenue: float, profit: float) -> float:
    return profit / revenue * 100 if revenue > 0 else 0.0


def margin_alert(revenue: float, profit: float, goal: float) -> bool:
    return revenue > 0 and profit_margin(revenue, profit) < goal


def daily_series(sales: pd.DataFrame, today: date, days: int = WINDOW_DAYS) -> pd.DataFrame:
    """Revenue, profit and number of sales per day over the trailing window."""
    cols = ["date", "label", "revenue", "profit", "sales", "margin"]
    if sales.empty:
        return pd.DataFrame(columns=cols)
    start = pd.Timestamp(today - timedelta(days=days))
    window = sales[(sales["sale_date"] >= start) & (sales["sale_date"] <= pd.Timestamp(today))]
    agg = (window.groupby("sale_date")
                 .agg(revenue=("revenue", "sum"), profit=("profit_loss", "sum"), sales=("revenue", "count"))
                 .reset_index()
                 .sort_values("sale_date"))
    agg["margin"] = np.where(agg["revenue"] > 0, agg["profit"] / agg["revenue"].where(agg["revenue"] > 0, 1) * 100, 0.0)
    agg["date"] = agg["sale_date"].dt.date
    agg["label"] = agg["sale_date"].dt.strftime("%b %d")
    return agg[cols]


def top_products(sales: pd.DataFrame, n: int = 5) -> pd.DataFrame:
    cols = ["name", "value", "quantity"]
    if sales.empty:
        return pd.DataFrame(columns=cols)
    agg = (sales.groupby("product_name")
                .agg(value=("revenue", "sum"), quantity=("quantity", "sum"))
                .reset_index()
                .rename(columns={"product_name": "name"})
                .sort_values(["value", "name"], ascending=[False, True]))
    return agg.head(n)[cols].reset_index(drop=True)


def month_totals(sales: pd.DataFrame, expenses: pd.DataFrame, period: pd.Period) -> dict:
    s = sales[sales["sale_date"].dt.to_period("M") == period] if not sales.empty else sales
    e = expenses[expenses["expense_date"].dt.to_period("M") == period] if not expenses.empty else expenses
    return {
        "revenue": float(s["revenue"].sum()) if not s.empty else 0.0,
        "profit": float(s["profit_loss"].sum()) if not s.empty else 0.0,
        "sales": int(len(s)),
        "expenses": float(e["amount"].sum()) if not e.empty else 0.0,
    }


def monthly_comparison(sales: pd.DataFrame, expenses: pd.DataFrame, today: date) -> dict:
    this_period = pd.Period(pd.Timestamp(today), freq="M")
    this_month = month_totals(sales, expenses, this_period)
    last_month = month_totals(sales, expenses, this_period - 1)
    changes = {k: change_percent(this_month[k], last_month[k]) for k in this_month}
    return {"this_month": this_month, "last_month": last_month, "change": changes,
            "net_this_month": this_month["profit"] - this_month["expenses"]}


def debt_overview(debtors: pd.DataFrame) -> dict:
    if debtors.empty:
        return {"pending": 0, "paid": 0, "outstanding": 0.0, "collected": 0.0}
    return {
        "pending": int((debtors["status"] == PENDING).sum()),
        "paid": int((debtors["status"] == PAID).sum()),
        "outstanding": float(debtors["current_balance"].sum()),
        "collected": float(debtors["total_paid"].sum()),
    }


def expense_overview(expenses: pd.DataFrame, today: date, days: int = WINDOW_DAYS) -> dict:
    if expenses.empty:
        return {"total": 0.0, "count": 0}
    start = pd.Timestamp(today - timedelta(days=days))
    recent = expenses[(expenses["expense_date"] >= start) & (expenses["expense_date"] <= pd.Timestamp(today))]
    return {"total": float(recent["amount"].sum()), "count": int(len(recent))}


def top_customers(debtors: pd.DataFrame, n: int = 10) -> pd.DataFrame:
    cols = ["name", "phone", "total_spent", "total_paid", "balance", "status"]
    if debtors.empty:
        return pd.DataFrame(columns=cols)
    df = debtors.rename(columns={"customer_name": "name", "customer_phone": "phone",
                                 "grand_total": "total_spent", "current_balance": "balance"})
    return df.sort_values("total_spent", ascending=False, kind="stable").head(n)[cols].reset_index(drop=True)


def dashboard(db: Session, user: User, today: Optional[date] = None) -> dict:
    """Everything the analytics page shows, as plain Python values."""
    today = today or date.today()
    last_month_start = (pd.Period(pd.Timestamp(today), freq="M") - 1).start_time.date()
    window_start = min(last_month_start, today - timedelta(days=WINDOW_DAYS))

    sales = load_sales(db, user, start=window_start, end=today)
    # comparison covers the whole current month, including future-dated entries
    month_end = pd.Period(pd.Timestamp(today), freq="M").end_time.date()
    month_sales = load_sales(db, user, start=last_month_start, end=month_end)
    expenses = load_expenses(db, user, start=window_start, end=month_end)
    debtors = load_debtors(db, user)
    prefs = get_settings(db, user)

    series = daily_series(sales, today)
    revenue = float(series["revenue"].sum()) if not series.empty else 0.0
    profit = float(series["profit"].sum()) if not series.empty else 0.0
    sales_count = int(series["sales"].sum()) if not series.empty else 0
    recent_expenses = expense_overview(expenses, today)
    goal = float(prefs.profit_margin_goal if prefs.profit_margin_goal is not None else 20)

    return {
        "today": today,
        "currency": prefs.currency,
        "series": series.to_dict(orient="records"),
        "top_products": top_products(sales[sales["sale_date"] >= pd.Timestamp(today - timedelta(days=WINDOW_DAYS))]
                                     if not sales.empty else sales).to_dict(orient="records"),
        "comparison": monthly_comparison(month_sales, expenses, today),
        "debt": debt_overview(debtors),
        "expenses": recent_expenses,
        "total_revenue": revenue,
        "total_profit": profit,
        "net_profit": profit - recent_expenses["total"],
        "sales_count": sales_count,
        "profit_margin": profit_margin(revenue, profit),
        "profit_margin_goal": goal,
        "margin_alert": margin_alert(revenue, profit, goal),
        "top_customers": top_customers(debtors).to_dict(orient="records"),
    }


def report_sheets(db: Session, user: User) -> dict:
    """DataFrames for the full workbook export, one per sheet."""
    sales = load_sales(db, user)
    expenses = load_expenses(db, user)
    debtors = load_debtors(db, user)
    stock = _frame(db, db.query(StockItem).filter(StockItem.user_id == user.id).order_by(StockItem.product_name),
                   money=["cost_price"])
    payments = _frame(db, db.query(Payment.payment_date, Payment.amount, Debtor.customer_name)
                              .join(Debtor, Payment.debtor_id == Debtor.id)
                              .filter(Debtor.user_id == user.id)
                              .order_by(Payment.payment_date),
                      money=["amount"])
    today = date.today()
    summary = pd.DataFrame([{**{f"this_month_{k}": v for k, v in monthly_comparison(sales, expenses, today)["this_month"].items()},
                             **{f"debt_{k}": v for k, v in debt_overview(debtors).items()}}])
    return {
        "Summary": summary,
        "Sales": sales[SALE_COLS],
        "Stock": stock[["product_name", "quantity", "cost_price", "total_sold"]],
        "Expenses": expenses[EXPENSE_COLS],
        "Debtors": debtors[DEBTOR_COLS],
        "Payments": payments,
        "Top Products": top_products(sales),
    }
