"""
Money parsing and formatting for the whole project.

Amounts are Decimal in memory and decimal strings inside JSON documents.

Usage:
    from kivee.utils.money import format_money, to_decimal

    format_money(Decimal("1500"), "USD")   -> "$1,500.00"
    format_money("49.9", "EUR")            -> "€49.90"
    format_money(10, "COP")                -> "10.00 COP"
"""
from decimal import Decimal, InvalidOperation

_CURRENCY_SYMBOL = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "MXN": "MX$",
}


def currency_label(code: str) -> str:
    """Symbol for well-known currencies, ISO code otherwise."""
    return _CURRENCY_SYMBOL.get(code, code)


def to_decimal(value) -> Decimal | None:
    """
    Parse a stored price into Decimal.

    Accepts Decimal, int, float and strings (comma or dot separator).
    Returns None for empty, non-numeric or non-finite input.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip().replace(",", ".")
        if not text:
            return None
        try:
            result = Decimal(text)
        except InvalidOperation:
            return None
    else:
        return None
    if not result.is_finite():
        return None
    return result


def decimal_to_str(value: Decimal | None) -> str | None:
    """Serialize for JSON storage without losing digits."""
    if value is None:
        return None
    return str(value)


def format_money(amount, currency: str = "USD", decimals: int = 2) -> str:
    """
    Format an amount with thousands separators and a currency marker.

    Args:
        amount: number (int / float / Decimal / str)
        currency: ISO currency code (USD, EUR, ...)
        decimals: digits after the decimal point

    Returns:
        "$1,500.00" / "1,500.00 COP"
    """
    value = to_decimal(amount)
    if value is None:
        value = Decimal("0")
    formatted = f"{{:,.{decimals}f}}".format(value)
    code = (currency or "USD").upper()
    symbol = currency_label(code)
    if symbol == code:
        return f"{formatted} {code}"
    if formatted.startswith("-"):
        return f"-{symbol}{formatted[1:]}"
    return f"{symbol}{formatted}"


def format_academy_currency(amount, academy) -> str:
    """Format using the academy's configured currency (USD when unset)."""
    currency = getattr(academy, "currency", None) or "USD"
    return format_money(amount, currency)
