"""
Billing Service - bill generation and settlement.

A bill's amount is a snapshot of the session prices at generation time and
is never recomputed afterwards. At settlement an operator may enter a
corrected amount, which then becomes the bill's total.
"""
import logging
from collections.abc import Iterable
from dataclasses import replace
from typing import Optional

from ..engine.errors import InvalidSessionError
from ..engine.models import Bill, PaymentStatus, Session, parse_amount
from ..engine.pricing_engine import PricingEngine, SessionLike, get_engine

logger = logging.getLogger(__name__)


def _parsed_sessions(sessions: list) -> list[Session]:
    """Sessions of a bill as Session objects; unparseable records are left out."""
    parsed = []
    for session in sessions:
        if isinstance(session, Session):
            parsed.append(session)
            continue
        try:
            parsed.append(Session.from_record(session))
        except InvalidSessionError:
            continue
    return parsed


class BillingService:
    """Service for generating and settling bills."""

    def __init__(self, engine: Optional[PricingEngine] = None):
        self.engine = engine or get_engine()

    def generate_bill(
        self,
        sessions: Iterable[SessionLike],
        token_id: Optional[int] = None,
        order_id: Optional[str] = None,
        customer_id: Optional[int] = None,
    ) -> Bill:
        """Price the sessions now and snapshot the total into a new PENDING bill."""
        sessions = list(sessions or [])
        summary = self.engine.summarize(sessions)

        bill = Bill(
            amount=summary.total,
            sessions=_parsed_sessions(sessions),
            status=PaymentStatus.PENDING,
            token_id=token_id,
            order_id=order_id,
            customer_id=customer_id,
            generated_at=self.engine.clock.now(),
        )

        if summary.skipped:
            logger.warning(
                "Bill for token %s / order %s skipped %d malformed session(s)",
                token_id, order_id, summary.skipped,
            )
        logger.info(
            "Generated bill for token %s / order %s: %d session(s), amount %.2f",
            token_id, order_id, len(summary.charges), bill.amount,
        )
        return bill

    def settle_bill(
        self,
        bill: Bill,
        status: PaymentStatus = PaymentStatus.PAID,
        corrected_amount: Optional[float] = None,
        amount_received: Optional[float] = None,
        payment_method: Optional[str] = None,
        payment_reference: Optional[str] = None,
    ) -> Bill:
        """
        Record payment (or due) status on a bill.

        Returns an updated copy; ``bill.amount`` is left as generated.

        Raises:
            ValueError: corrected or received amount is negative or not a number.
        """
        status = PaymentStatus(status)
        updates = {'status': status}

        if corrected_amount is not None:
            corrected = parse_amount(corrected_amount)
            if corrected is None:
                raise ValueError(f"Corrected amount must be a non-negative number, got {corrected_amount!r}")
            updates['corrected_amount'] = corrected
            logger.info("Updating bill %s amount from %.2f to %.2f", bill.bill_id, bill.amount, corrected)

        if amount_received is not None:
            received = parse_amount(amount_received)
            if received is None:
                raise ValueError(f"Amount received must be a non-negative number, got {amount_received!r}")
            updates['amount_received'] = received

        if payment_method:
            updates['payment_method'] = payment_method
        if payment_reference:
            updates['payment_reference'] = payment_reference

        if status == PaymentStatus.PAID:
            updates['paid_at'] = self.engine.clock.now()

        settled = replace(bill, **updates)
        logger.info("Bill %s marked %s, total %.2f", bill.bill_id, status.value, settled.total)
        return settled

    @staticmethod
    def change_due(bill: Bill, amount_received) -> float:
        """Change to hand back for a cash payment."""
        received = parse_amount(amount_received) or 0.0
        return max(0.0, received - bill.total)

    @staticmethod
    def outstanding_total(bills: Iterable[Bill]) -> float:
        """Sum of what is still owed on unpaid (pending or due) bills."""
        return sum(bill.total for bill in bills if not bill.is_paid)
