"""
Cafe Pricing Package

Pricing and billing core for a gaming cafe front desk.
Turns device rental sessions into billed amounts using a tiered rate card,
a free-tier waiver and 15-minute billing increments.
"""

__version__ = "1.0.0"
