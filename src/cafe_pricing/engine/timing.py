"""
Billable time helpers.

Sessions up to the free tier (7 minutes) are not charged. Anything longer is
rounded up to the next 15-minute increment, counted from the free-tier boundary:

    8-22 minutes  -> 15
    23-37 minutes -> 30
    38-52 minutes -> 45
    53-67 minutes -> 60
"""
import math
from datetime import datetime

FREE_TIER_MINUTES = 7
BILLING_INCREMENT_MINUTES = 15


def round_time_to_charge(
    actual_minutes,
    free_tier_minutes: int = FREE_TIER_MINUTES,
    increment_minutes: int = BILLING_INCREMENT_MINUTES,
) -> int:
    """
    Convert actual elapsed minutes into billed minutes.
    
    Negative, NaN, infinite or non-numeric input is treated as no time played.
    """
    try:
        minutes = float(actual_minutes)
    except (TypeError, ValueError, OverflowError):
        return 0
    
    if not math.isfinite(minutes) or minutes <= free_tier_minutes:
        return 0
    
    intervals = math.ceil((minutes - free_tier_minutes) / increment_minutes)
    return int(intervals * increment_minutes)


def calculate_duration(start_time: datetime, end_time: datetime) -> int:
    """
    Whole minutes between two instants, rounded up.
    
    A start time after the end time (clock skew, bad data) gives 0.
    """
    seconds = (end_time - start_time).total_seconds()
    if seconds <= 0:
        return 0
    return math.ceil(seconds / 60)
