"""Engine subpackage - rate card, billable time and session pricing."""
from .pricing_engine import (
    PricingEngine,
    calculate_price,
    calculate_session_cost,
    calculate_total_cost,
    get_engine,
)
from .models import Bill, BillSummary, DeviceType, PaymentStatus, Session, SessionCharge, SessionStatus
from .rate_card import BandPrices, RateCard
from .timing import calculate_duration, round_time_to_charge

__all__ = [
    'PricingEngine', 'get_engine',
    'round_time_to_charge', 'calculate_duration',
    'calculate_price', 'calculate_session_cost', 'calculate_total_cost',
    'Session', 'Bill', 'SessionCharge', 'BillSummary',
    'DeviceType', 'SessionStatus', 'PaymentStatus',
    'RateCard', 'BandPrices',
]
