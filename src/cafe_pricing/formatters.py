"""Display helpers shared by the API and the operator console."""
from typing import Optional

from .config.settings import get_settings
from .engine.models import parse_amount


def format_currency(amount, symbol: Optional[str] = None) -> str:
    """Format an amount as currency, e.g. ``₹120.00``. Unparseable amounts show as 0."""
    symbol = get_settings().currency_symbol if symbol is None else symbol
    value = parse_amount(amount) or 0.0
    return f"{symbol}{value:,.2f}"


def format_duration(minutes) -> str:
    """``45m`` below an hour, ``1h 5m`` above."""
    try:
        total = max(int(minutes), 0)
    except (TypeError, ValueError):
        total = 0
    hours, mins = divmod(total, 60)
    if hours:
        return f"{hours}h {mins}m"
    return f"{mins}m"
