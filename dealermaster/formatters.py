"""Display formatting for Brazilian locale values.

All rounding to cents happens here; pricing keeps full float precision.
"""
import re
from datetime import datetime

from dealermaster.config import CURRENCY_SYMBOL, DATE_FORMAT_STORAGE, DATE_FORMAT_DISPLAY


def _swap_separators(text):
    # 1,234.56 -> 1.234,56
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def format_currency(value):
    """Format a number as BRL, e.g. 1234.5 -> 'R$ 1.234,50'."""
    value = float(value or 0)
    text = f"{CURRENCY_SYMBOL} {_swap_separators(f'{abs(value):,.2f}')}"
    return f"-{text}" if value < 0 else text


def format_percent(value, decimals=2):
    """Format a percentage value, e.g. 1.5 -> '1,50%'."""
    return f"{float(value or 0):.{decimals}f}".replace(".", ",") + "%"


def format_mileage(value):
    """Format a mileage reading, e.g. 12000 -> '12.000 km'."""
    return f"{int(value or 0):,}".replace(",", ".") + " km"


def format_cpf(cpf):
    digits = re.sub(r"\D", "", cpf or "")
    if len(digits) != 11:
        return digits
    return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"


def format_phone(phone):
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) == 11:
        return f"({digits[:2]}) {digits[2:7]}-{digits[7:]}"
    if len(digits) == 10:
        return f"({digits[:2]}) {digits[2:6]}-{digits[6:]}"
    return digits


def format_date(date_str):
    """Convert a stored YYYY-MM-DD date to DD/MM/YYYY. Unparseable input is returned as is."""
    if not date_str:
        return ""
    try:
        return datetime.strptime(date_str[:10], DATE_FORMAT_STORAGE).strftime(DATE_FORMAT_DISPLAY)
    except ValueError:
        return date_str
