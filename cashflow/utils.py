# cashflow/utils.py
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

DATE_FORMATS = ("%d.%m.%Y", "%Y-%m-%d")
DISPLAY_DATE_FORMAT = "%d.%m.%Y"


def parse_amount(value):
    """
    Parse a signed amount such as "22158", "22 158", "-478" or "- 478".
    """
    if isinstance(value, Decimal):
        return value
    cleaned = str(value).replace(" ", "").replace("\u00a0", "")
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Invalid amount '{value}'. Use: 22158 or -478")
    if not amount.is_finite():
        raise ValueError(f"Invalid amount '{value}'. Use: 22158 or -478")
    return amount


def parse_date(value):
    """
    Parse DD.MM.YYYY or YYYY-MM-DD into a date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Invalid date '{value}'. Use: DD.MM.YYYY or YYYY-MM-DD")


def format_date(value):
    return value.strftime(DISPLAY_DATE_FORMAT)


def format_amount(amount, currency=""):
    """
    Format an amount with space thousands separators, e.g. "-22 158 Kč".
    Whole amounts print without decimals, others with two.
    """
    amount = Decimal(amount)
    sign = "-" if amount < 0 else ""
    pattern = ",.0f" if amount == amount.to_integral_value() else ",.2f"
    text = format(abs(amount), pattern).replace(",", " ")
    suffix = f" {currency}" if currency else ""
    return f"{sign}{text}{suffix}"
