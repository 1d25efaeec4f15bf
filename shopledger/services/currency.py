from decimal import Decimal

CURRENCIES = {
    "NGN": "₦",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "CAD": "$",
    "AUD": "$",
    "INR": "₹",
    "JPY": "¥",
    "CNY": "¥",
    "ZAR": "R",
    "KES": "KSh",
    "GHS": "₵",
}

def symbol(code: str) -> str:
    return CURRENCIES.get(code, code)

def format_money(amount, code: str = "NGN") -> str:
    """1234.5 -> '₦1,234.50'. Negative amounts keep the sign in front."""
    value = Decimal(str(amount or 0)).quantize(Decimal("0.01"))
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol(code)}{abs(value):,.2f}"
