"""
Data models for the pricing engine.

Uses dataclasses for structured, type-safe data representation. Raw records
coming from the data layer (camelCase keys, numbers stored as strings,
ISO timestamps) are parsed exactly once, in ``Session.from_record`` and
``Bill.from_record``, so the pricing core only ever sees clean values.
"""
import logging
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

import pandas as pd

from .errors import InvalidSessionError

logger = logging.getLogger(__name__)


class DeviceType(str, Enum):
    """Rentable station categories."""
    PS5 = "PS5"
    PS4 = "PS4"
    RACING = "RACING"
    VR = "VR"
    VR_RACING = "VR_RACING"
    POOL = "POOL"
    FRAME = "FRAME"

    @classmethod
    def normalize(cls, value: Any) -> str:
        """
        Map a device type (enum member, code or display name) to its code.

        "VR Racing", "vr-racing" and "VR_RACING" all become "VR_RACING".
        Unknown names are upper-cased but otherwise kept, so they can still
        be priced through the hourly-rate fallback.
        """
        if value is None:
            return ""
        if isinstance(value, Enum):
            value = value.value
        return re.sub(r'[\s\-]+', '_', str(value).strip()).upper()

    @classmethod
    def is_known(cls, value: Any) -> bool:
        return cls.normalize(value) in cls._value2member_map_


class SessionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    DUE = "DUE"


# ---------------------------------------------------------------------------
# Boundary parsing
# ---------------------------------------------------------------------------

def parse_amount(value: Any) -> Optional[float]:
    """
    Leniently parse a currency amount.

    Returns None for missing, unparseable, non-finite or negative values.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        number = pd.to_numeric(value, errors='coerce')
        number = float(number)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(number) or number < 0:
        return None
    return number


def parse_count(value: Any, default: Optional[int] = None) -> Optional[int]:
    """Parse a whole number (minutes, players), rounding up and clamping at 0."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(pd.to_numeric(value, errors='coerce'))
    except (TypeError, ValueError, OverflowError):
        return default
    if not math.isfinite(number):
        return default
    return max(int(math.ceil(number)), 0)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a timestamp; naive values are taken as UTC. None when unparseable."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, datetime):
        stamp = value
    else:
        try:
            parsed = pd.Timestamp(value)
        except (TypeError, ValueError, OverflowError):
            return None
        if pd.isna(parsed):
            return None
        stamp = parsed.to_pydatetime()
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp


def _first(record: Mapping, *keys: str) -> Any:
    """Value of the first key present (and not None) in a record."""
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

@dataclass
class Session:
    """A device rental session, as far as pricing is concerned."""
    device_type: str
    player_count: int = 1
    status: SessionStatus = SessionStatus.ACTIVE
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: Optional[int] = None  # minutes, frozen when the session ends
    cost: Optional[float] = None  # cached price, frozen when the session ends
    hourly_rate: float = 0.0  # device's own rate, only used by the fallback formula
    session_id: Optional[int] = None
    token_id: Optional[int] = None

    def __post_init__(self):
        self.device_type = DeviceType.normalize(self.device_type)
        self.status = SessionStatus(self.status)
        self.start_time = parse_timestamp(self.start_time)
        self.end_time = parse_timestamp(self.end_time)

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    @property
    def is_ended(self) -> bool:
        return self.status == SessionStatus.ENDED

    @classmethod
    def from_record(cls, record: Mapping) -> 'Session':
        """
        Build a Session from a raw record.

        Accepts snake_case or camelCase keys, and the device either flattened
        (``device_type``/``hourly_rate``) or nested as ``device: {type, hourlyRate}``.

        Raises:
            InvalidSessionError: no device type, or an unknown status.
        """
        if not isinstance(record, Mapping):
            raise InvalidSessionError(f"Session record must be a mapping, got {type(record).__name__}")

        device = record.get('device')
        if not isinstance(device, Mapping):
            device = {}

        raw_type = _first(record, 'device_type', 'deviceType')
        if raw_type is None:
            raw_type = device.get('type')
        if raw_type is None or not str(raw_type).strip():
            raise InvalidSessionError("Session has no device type")

        duration = parse_count(_first(record, 'duration'))

        raw_status = _first(record, 'status')
        if raw_status is None:
            raw_status = SessionStatus.ENDED if duration is not None else SessionStatus.ACTIVE
        try:
            status = SessionStatus(str(getattr(raw_status, 'value', raw_status)).strip().upper())
        except ValueError:
            raise InvalidSessionError(f"Unknown session status '{raw_status}'")

        raw_cost = _first(record, 'cost')
        cost = parse_amount(raw_cost)
        if raw_cost is not None and cost is None:
            logger.warning("Ignoring unusable stored cost %r", raw_cost)

        hourly_rate = _first(record, 'hourly_rate', 'hourlyRate')
        if hourly_rate is None:
            hourly_rate = _first(device, 'hourly_rate', 'hourlyRate')

        player_count = parse_count(_first(record, 'player_count', 'playerCount'), default=1)

        return cls(
            device_type=raw_type,
            player_count=max(player_count, 1),
            status=status,
            start_time=parse_timestamp(_first(record, 'start_time', 'startTime')),
            end_time=parse_timestamp(_first(record, 'end_time', 'endTime')),
            duration=duration,
            cost=cost,
            hourly_rate=parse_amount(hourly_rate) or 0.0,
            session_id=_first(record, 'session_id', 'id'),
            token_id=_first(record, 'token_id', 'tokenId'),
        )

    def to_record(self) -> dict:
        """Flat, JSON-friendly representation."""
        return {
            'session_id': self.session_id,
            'token_id': self.token_id,
            'device_type': self.device_type,
            'player_count': self.player_count,
            'status': self.status.value,
            'start_time': self.start_time.isoformat() if self.start_time else None,
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'duration': self.duration,
            'cost': self.cost,
            'hourly_rate': self.hourly_rate,
        }


@dataclass
class Bill:
    """A bill over one or more sessions of a token or an order."""
    amount: float  # snapshot taken at generation time
    sessions: list[Session] = field(default_factory=list)
    corrected_amount: Optional[float] = None  # operator override at settlement
    status: PaymentStatus = PaymentStatus.PENDING
    bill_id: Optional[int] = None
    token_id: Optional[int] = None
    order_id: Optional[str] = None
    customer_id: Optional[int] = None
    generated_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    amount_received: Optional[float] = None

    def __post_init__(self):
        self.status = PaymentStatus(self.status)

    @property
    def total(self) -> float:
        """Authoritative total: the corrected amount when one was entered."""
        if self.corrected_amount is not None:
            return self.corrected_amount
        return self.amount

    @property
    def is_paid(self) -> bool:
        return self.status == PaymentStatus.PAID

    @classmethod
    def from_record(cls, record: Mapping) -> 'Bill':
        """Build a Bill from a persisted record; malformed sessions are dropped."""
        sessions = []
        for raw in record.get('sessions') or []:
            try:
                sessions.append(raw if isinstance(raw, Session) else Session.from_record(raw))
            except InvalidSessionError as e:
                logger.warning("Dropping malformed session from bill %s: %s", record.get('id'), e)

        raw_status = _first(record, 'status') or ''
        raw_status = str(getattr(raw_status, 'value', raw_status)).strip().upper()
        try:
            status = PaymentStatus(raw_status or PaymentStatus.PENDING)
        except ValueError:
            logger.warning("Unknown payment status %r on bill %s, treating as PENDING", raw_status, record.get('id'))
            status = PaymentStatus.PENDING

        return cls(
            amount=parse_amount(_first(record, 'amount')) or 0.0,
            sessions=sessions,
            corrected_amount=parse_amount(_first(record, 'corrected_amount', 'correctedAmount')),
            status=status,
            bill_id=_first(record, 'bill_id', 'id'),
            token_id=_first(record, 'token_id', 'tokenId'),
            order_id=_first(record, 'order_id', 'orderId'),
            customer_id=_first(record, 'customer_id', 'customerId'),
            generated_at=parse_timestamp(_first(record, 'generated_at', 'generatedAt')),
            paid_at=parse_timestamp(_first(record, 'paid_at', 'paidAt')),
            payment_method=_first(record, 'payment_method', 'paymentMethod'),
            payment_reference=_first(record, 'payment_reference', 'paymentReference'),
            amount_received=parse_amount(_first(record, 'amount_received', 'amountReceived')),
        )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class TraceStep:
    """A single step in the pricing resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass
class SessionCharge:
    """The price of one session and how it was resolved."""
    device_type: str
    player_count: int
    amount: float = 0.0
    source: str = ""  # "flat", "stored", "table", "fallback" or "invalid"
    actual_minutes: Optional[int] = None
    billed_minutes: Optional[int] = None
    session_id: Optional[int] = None
    warnings: list[str] = field(default_factory=list)
    trace: list[TraceStep] = field(default_factory=list)

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the trace for this charge."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def add_warning(self, warning: str):
        self.warnings.append(warning)

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)


@dataclass
class BillSummary:
    """Priced collection of sessions."""
    total: float
    charges: list[SessionCharge] = field(default_factory=list)
    skipped: int = 0
    warnings: list[str] = field(default_factory=list)

    def add_warning(self, warning: str):
        """Add a summary-level warning, once."""
        if warning not in self.warnings:
            self.warnings.append(warning)
