"""Exceptions raised inside the pricing engine."""


class PricingError(Exception):
    """Base class for pricing failures."""


class UnknownDeviceTypeError(PricingError, KeyError):
    """The rate card has no table for a device type."""

    def __init__(self, device_type: str):
        super().__init__(device_type)
        self.device_type = device_type

    def __str__(self) -> str:
        return f"No rate card entry for device type '{self.device_type}'"


class RateCardError(PricingError):
    """The rate card is missing a band or holds unusable prices."""


class InvalidSessionError(PricingError, ValueError):
    """A session record cannot be priced (e.g. no device information)."""
