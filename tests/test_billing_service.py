"""Bill generation and settlement tests."""
from datetime import timedelta

import pytest

from cafe_pricing.engine import Bill, PaymentStatus, Session, SessionStatus
from cafe_pricing.services.billing_service import BillingService

from conftest import NOW


@pytest.fixture
def service(engine):
    return BillingService(engine)


@pytest.fixture
def sessions():
    return [
        Session(device_type="PS5", player_count=1, status=SessionStatus.ENDED, duration=65),
        Session(device_type="PS4", player_count=2, start_time=NOW - timedelta(minutes=8)),
        {"deviceType": "FRAME", "playerCount": 3},
    ]


def test_generate_bill_snapshots_amount(service, sessions, clock):
    bill = service.generate_bill(sessions, token_id=4)

    assert bill.amount == 120 + 35 + 150
    assert bill.total == bill.amount
    assert bill.status == PaymentStatus.PENDING
    assert bill.token_id == 4
    assert bill.generated_at == NOW
    assert len(bill.sessions) == 3
    assert all(isinstance(s, Session) for s in bill.sessions)

    # Time moves on: the persisted amount does not
    clock.advance(hours=1)
    assert bill.amount == 305
    assert service.engine.calculate_total_cost(sessions) > bill.amount


def test_generate_bill_skips_malformed_sessions(service, sessions):
    bill = service.generate_bill(sessions + [{"playerCount": 2}], order_id="ORD-1")
    assert bill.amount == 305
    assert bill.order_id == "ORD-1"
    assert len(bill.sessions) == 3


def test_generate_empty_bill(service):
    bill = service.generate_bill([])
    assert bill.amount == 0
    assert bill.sessions == []


def test_settle_marks_paid(service, sessions):
    bill = service.generate_bill(sessions)
    paid = service.settle_bill(bill, payment_method="UPI", payment_reference="TX9", amount_received=400)

    assert paid.is_paid
    assert paid.paid_at == NOW
    assert paid.payment_method == "UPI"
    assert paid.payment_reference == "TX9"
    assert paid.amount_received == 400
    assert bill.status == PaymentStatus.PENDING, "settlement returns a copy"


def test_corrected_amount_becomes_total(service, sessions):
    bill = service.generate_bill(sessions)
    settled = service.settle_bill(bill, corrected_amount=250)

    assert settled.amount == 305
    assert settled.corrected_amount == 250
    assert settled.total == 250


def test_zero_correction_is_authoritative(service, sessions):
    settled = service.settle_bill(service.generate_bill(sessions), corrected_amount=0)
    assert settled.total == 0


@pytest.mark.parametrize("bad", [-1, "abc", float('nan')])
def test_invalid_correction_rejected(service, sessions, bad):
    bill = service.generate_bill(sessions)
    with pytest.raises(ValueError):
        service.settle_bill(bill, corrected_amount=bad)
    with pytest.raises(ValueError):
        service.settle_bill(bill, amount_received=bad)


def test_mark_due_keeps_paid_at_empty(service, sessions):
    due = service.settle_bill(service.generate_bill(sessions), status="DUE")
    assert due.status == PaymentStatus.DUE
    assert due.paid_at is None


def test_change_due():
    bill = Bill(amount=305, corrected_amount=300)
    assert BillingService.change_due(bill, 500) == 200
    assert BillingService.change_due(bill, 100) == 0
    assert BillingService.change_due(bill, "junk") == 0


def test_outstanding_total():
    bills = [
        Bill(amount=100, status=PaymentStatus.DUE),
        Bill(amount=200, corrected_amount=150, status=PaymentStatus.PENDING),
        Bill(amount=999, status=PaymentStatus.PAID),
    ]
    assert BillingService.outstanding_total(bills) == 250
    assert BillingService.outstanding_total([]) == 0
