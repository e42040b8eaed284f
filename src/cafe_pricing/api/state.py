"""Shared engine and services for the API process."""
from ..engine.pricing_engine import get_engine
from ..services.billing_service import BillingService

engine = get_engine()
billing_service = BillingService(engine)
