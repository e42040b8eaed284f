"""
Pricing Engine - the one place where session prices are computed.

Resolution order for a session:
1. Flat party-rate device (Frame) → fixed rate × players, whatever its status
2. Ended session with a stored cost → the stored cost, never recomputed
3. Elapsed minutes (start → now while active, frozen duration once ended)
   → billed minutes → rate card band price
4. Device missing from the rate card, or a broken table → the device's
   own hourly rate × billed minutes

Nothing in here raises to the caller: a session that cannot be priced
contributes 0 and is reported through logging and the charge warnings.
"""
import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import replace
from datetime import datetime
from typing import Optional, Union

from ..config.settings import get_settings, Settings
from .clock import Clock, SystemClock
from .errors import InvalidSessionError, PricingError
from .models import (
    BillSummary,
    DeviceType,
    Session,
    SessionCharge,
    SessionStatus,
    parse_amount,
    parse_count,
    parse_timestamp,
)
from .rate_card import RateCard, load_rate_card
from .timing import calculate_duration, round_time_to_charge

logger = logging.getLogger(__name__)

SessionLike = Union[Session, Mapping]


def _safe_amount(value) -> float:
    """Clamp a computed price to a finite, non-negative float."""
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(amount) or amount < 0:
        return 0.0
    return amount


class PricingEngine:
    """
    Prices device rental sessions from the rate card.

    The clock is only read for sessions that are still running, so two calls
    on the same active session may differ; ended sessions always price the same.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        rate_card: Optional[RateCard] = None,
        clock: Optional[Clock] = None,
    ):
        self.settings = settings or get_settings()
        self.rate_card = rate_card or load_rate_card(self.settings.rate_card_csv)
        self.clock = clock or SystemClock()
        self._flat_types = {DeviceType.normalize(t) for t in self.settings.flat_rate_device_types}

    def reload_data(self):
        """Reload the rate card from disk."""
        self.rate_card = load_rate_card(self.settings.rate_card_csv)

    # Building blocks ------------------------------------------------------
    def is_flat_rate(self, device_type) -> bool:
        return DeviceType.normalize(device_type) in self._flat_types

    def round_time_to_charge(self, actual_minutes) -> int:
        return round_time_to_charge(
            actual_minutes,
            free_tier_minutes=self.settings.free_tier_minutes,
            increment_minutes=self.settings.billing_increment_minutes,
        )

    def flat_price(self, player_count) -> float:
        players = parse_count(player_count, default=1)
        return self.settings.flat_rate_per_player * players

    def hourly_rate_for(self, device_type, player_count) -> float:
        """Hourly rate shown to operators (flat amount for party devices)."""
        if self.is_flat_rate(device_type):
            return self.flat_price(player_count)
        return self.rate_card.hourly_rate(device_type, parse_count(player_count, default=1))

    def elapsed_minutes(self, session: Session) -> Optional[int]:
        """Minutes to bill from: live for active sessions, frozen once ended."""
        if session.is_active:
            if session.start_time is None:
                return None
            return calculate_duration(session.start_time, self.clock.now())
        return session.duration

    # Per-session price ----------------------------------------------------
    def calculate_price(self, device_type, player_count, actual_minutes, hourly_rate=0.0) -> float:
        """
        Price a device for a number of actual minutes played.

        Args:
            device_type: Device code or display name ("PS5", "VR Racing", ...)
            player_count: Players on the device
            actual_minutes: Elapsed minutes before rounding
            hourly_rate: Device's own hourly rate, used when the rate card
                cannot price the device
        """
        return self.quote(device_type, player_count, actual_minutes, hourly_rate).amount

    def quote(self, device_type, player_count, actual_minutes, hourly_rate=0.0) -> SessionCharge:
        """Same as calculate_price, with the resolution trace."""
        charge = SessionCharge(
            device_type=DeviceType.normalize(device_type),
            player_count=parse_count(player_count, default=1),
        )
        self._resolve_price(charge, actual_minutes, hourly_rate)
        return charge

    def _resolve_price(self, charge: SessionCharge, actual_minutes, hourly_rate) -> None:
        if self.is_flat_rate(charge.device_type):
            charge.amount = _safe_amount(self.flat_price(charge.player_count))
            charge.source = "flat"
            charge.add_trace(
                "Flat Rate",
                f"{self.settings.flat_rate_per_player:g} × {charge.player_count} player(s)",
                f"{charge.amount:.2f}",
            )
            return

        minutes = parse_count(actual_minutes, default=0)
        billed = self.round_time_to_charge(minutes)
        charge.actual_minutes = minutes
        charge.billed_minutes = billed
        charge.add_trace("Billable Time", f"{minutes} minute(s) played", f"{billed} billed")

        if billed == 0:
            charge.amount = 0.0
            charge.source = "table"
            charge.add_trace("Free Tier", f"Up to {self.settings.free_tier_minutes} minutes is not charged")
            return

        try:
            bands = self.rate_card.lookup(charge.device_type, charge.player_count)
            amount = bands.price_for(billed)
            charge.source = "table"
            if billed <= 60:
                charge.add_trace("Band Price", f"{charge.device_type} ≤{billed}m band", f"{amount:.2f}")
            else:
                charge.add_trace(
                    "Hourly Extension",
                    f"{bands.per_hour:g}/h × {billed}/60",
                    f"{amount:.2f}",
                )
        except (PricingError, ArithmeticError, TypeError, ValueError) as e:
            rate = parse_amount(hourly_rate) or 0.0
            amount = (rate / 60) * billed
            charge.source = "fallback"
            charge.add_trace("Fallback", f"{e}; using device rate {rate:g}/h", f"{amount:.2f}")
            charge.add_warning(f"Hourly-rate fallback used for {charge.device_type}")
            logger.warning("Falling back to hourly rate for %s: %s", charge.device_type, e)

        charge.amount = _safe_amount(amount)

    # Session cost -----------------------------------------------------------
    def price_session(self, session: SessionLike) -> SessionCharge:
        """
        Price one session following the resolution order above.

        Raw mappings are parsed with Session.from_record first; a record that
        cannot be parsed yields a zero charge with source "invalid".
        """
        if not isinstance(session, Session):
            try:
                session = Session.from_record(session)
            except InvalidSessionError as e:
                charge = SessionCharge(device_type="", player_count=0, source="invalid")
                charge.add_warning(f"Skipped malformed session: {e}")
                logger.warning("Skipping malformed session %r: %s", session, e)
                return charge

        charge = SessionCharge(
            device_type=session.device_type,
            player_count=session.player_count,
            session_id=session.session_id,
        )

        if not session.device_type:
            charge.source = "invalid"
            charge.add_warning(f"Skipped session {session.session_id} with no device type")
            logger.warning("Skipping session %s with no device type", session.session_id)
            return charge

        # 1. Party devices are never billed by time
        if self.is_flat_rate(session.device_type):
            self._resolve_price(charge, None, session.hourly_rate)
            return charge

        # 2. A frozen price is authoritative
        stored = parse_amount(session.cost)
        if session.is_ended and stored is not None:
            charge.amount = stored
            charge.source = "stored"
            charge.actual_minutes = session.duration
            if session.duration is not None:
                charge.billed_minutes = self.round_time_to_charge(session.duration)
            charge.add_trace("Stored Cost", "Session ended with a frozen price", f"{stored:.2f}")
            return charge

        # 3. Live (or unfrozen) price
        minutes = self.elapsed_minutes(session)
        if minutes is None:
            reason = "no start time" if session.is_active else "no duration"
            charge.add_warning(f"Session {session.session_id} has {reason}; priced as 0 minutes")
            logger.warning("Session %s has %s", session.session_id, reason)
            minutes = 0

        self._resolve_price(charge, minutes, session.hourly_rate)
        return charge

    def calculate_session_cost(self, session: SessionLike) -> float:
        """Current cost of a session."""
        return self.price_session(session).amount

    def freeze_session(self, session: Session, end_time: Optional[datetime] = None) -> Session:
        """
        Close a session: return an ENDED copy with duration and cost set.

        The price is computed here, once; an already ended session is
        returned unchanged.
        """
        if session.is_ended:
            return session

        end = parse_timestamp(end_time) or self.clock.now()
        duration = calculate_duration(session.start_time, end) if session.start_time else 0
        cost = self.calculate_price(
            session.device_type, session.player_count, duration, session.hourly_rate
        )
        logger.info(
            "Ending session %s on %s: %d min, cost %.2f",
            session.session_id, session.device_type, duration, cost,
        )
        return replace(
            session,
            status=SessionStatus.ENDED,
            end_time=end,
            duration=duration,
            cost=cost,
        )

    # Aggregation --------------------------------------------------------------
    def summarize(self, sessions: Optional[Iterable[SessionLike]]) -> BillSummary:
        """Price every session; malformed ones count as 0 and are reported."""
        summary = BillSummary(total=0.0)

        for session in sessions or []:
            charge = self.price_session(session)
            if charge.source == "invalid":
                summary.skipped += 1
            summary.charges.append(charge)
            summary.total += charge.amount

            # Bubble up charge warnings
            for warning in charge.warnings:
                summary.add_warning(warning)

        return summary

    def calculate_total_cost(self, sessions: Optional[Iterable[SessionLike]]) -> float:
        """Total cost of a collection of sessions."""
        return self.summarize(sessions).total


# Default engine instance
_engine: Optional[PricingEngine] = None


def get_engine() -> PricingEngine:
    """Get the shared engine built from the global settings."""
    global _engine
    if _engine is None:
        _engine = PricingEngine()
    return _engine


def calculate_price(device_type, player_count, actual_minutes, hourly_rate=0.0) -> float:
    return get_engine().calculate_price(device_type, player_count, actual_minutes, hourly_rate)


def calculate_session_cost(session: SessionLike) -> float:
    return get_engine().calculate_session_cost(session)


def calculate_total_cost(sessions: Optional[Iterable[SessionLike]]) -> float:
    return get_engine().calculate_total_cost(sessions)
