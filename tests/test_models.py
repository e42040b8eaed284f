"""Boundary parsing and display helper tests."""
import logging
from datetime import datetime, timezone

import pytest

from cafe_pricing.engine import Bill, DeviceType, PaymentStatus, Session, SessionStatus
from cafe_pricing.engine.errors import InvalidSessionError
from cafe_pricing.engine.models import parse_amount, parse_count, parse_timestamp
from cafe_pricing.formatters import format_currency, format_duration


@pytest.mark.parametrize("raw, expected", [
    ("VR Racing", "VR_RACING"),
    ("vr-racing", "VR_RACING"),
    ("Pool", "POOL"),
    (" Frame ", "FRAME"),
    (DeviceType.PS4, "PS4"),
    ("arcade", "ARCADE"),
])
def test_device_type_normalize(raw, expected):
    assert DeviceType.normalize(raw) == expected


def test_device_type_is_known():
    assert DeviceType.is_known("VR Racing")
    assert not DeviceType.is_known("ARCADE")


@pytest.mark.parametrize("raw, expected", [
    (12, 12.0),
    ("99.50", 99.5),
    ("  ", None),
    ("abc", None),
    (None, None),
    (True, None),
    (-5, None),
    (float('inf'), None),
    (float('nan'), None),
])
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


def test_parse_count():
    assert parse_count("3") == 3
    assert parse_count(2.2) == 3
    assert parse_count(-4) == 0
    assert parse_count("x", default=1) == 1
    assert parse_count(None) is None


def test_parse_timestamp():
    aware = parse_timestamp("2025-05-01T11:52:00Z")
    assert aware == datetime(2025, 5, 1, 11, 52, tzinfo=timezone.utc)
    naive = parse_timestamp("2025-05-01 11:52:00")
    assert naive.tzinfo is not None
    assert naive == aware
    assert parse_timestamp(datetime(2025, 5, 1, 11, 52)) == aware
    assert parse_timestamp("not a date") is None
    assert parse_timestamp("") is None
    assert parse_timestamp(None) is None


def test_session_from_snake_case_record():
    session = Session.from_record({
        "session_id": 3,
        "token_id": 9,
        "device_type": "ps5",
        "player_count": 4,
        "status": "ended",
        "duration": 44,
        "cost": 170,
        "hourly_rate": "200",
    })
    assert session.device_type == "PS5"
    assert session.player_count == 4
    assert session.status == SessionStatus.ENDED
    assert session.duration == 44
    assert session.cost == 170.0
    assert session.hourly_rate == 200.0
    assert session.token_id == 9


def test_session_from_record_defaults():
    session = Session.from_record({"deviceType": "VR", "playerCount": "zero"})
    assert session.player_count == 1
    assert session.status == SessionStatus.ACTIVE
    assert session.cost is None
    assert session.hourly_rate == 0.0

    inferred = Session.from_record({"deviceType": "VR", "duration": 20})
    assert inferred.status == SessionStatus.ENDED


def test_session_from_record_drops_bad_cost():
    session = Session.from_record({"deviceType": "PS5", "status": "ENDED", "duration": 10, "cost": "n/a"})
    assert session.cost is None


@pytest.mark.parametrize("record", [
    {},
    {"device": {}},
    {"deviceType": ""},
    {"deviceType": "PS5", "status": "PAUSED"},
])
def test_session_from_record_rejects(record):
    with pytest.raises(InvalidSessionError):
        Session.from_record(record)


def test_session_to_record():
    session = Session(device_type="Pool", start_time="2025-05-01T11:00:00Z")
    record = session.to_record()
    assert record["device_type"] == "POOL"
    assert record["status"] == "ACTIVE"
    assert record["start_time"] == "2025-05-01T11:00:00+00:00"


def test_bill_total_prefers_correction():
    assert Bill(amount=300).total == 300
    assert Bill(amount=300, corrected_amount=280).total == 280
    assert Bill(amount=300, corrected_amount=0).total == 0


def test_bill_from_record():
    bill = Bill.from_record({
        "id": 5,
        "tokenId": 2,
        "amount": "305.00",
        "correctedAmount": None,
        "status": "due",
        "generatedAt": "2025-05-01T12:00:00Z",
        "sessions": [
            {"deviceType": "PS5", "status": "ENDED", "duration": 30, "cost": "80"},
            {"playerCount": 1},
        ],
    })
    assert bill.bill_id == 5
    assert bill.amount == 305.0
    assert bill.corrected_amount is None
    assert bill.status == PaymentStatus.DUE
    assert len(bill.sessions) == 1
    assert bill.total == 305.0


def test_format_currency():
    assert format_currency(120) == "₹120.00"
    assert format_currency("45.5") == "₹45.50"
    assert format_currency(None) == "₹0.00"
    assert format_currency(1250, symbol="Rs ") == "Rs 1,250.00"


def test_format_duration():
    assert format_duration(45) == "45m"
    assert format_duration(65) == "1h 5m"
    assert format_duration(-3) == "0m"
    assert format_duration("junk") == "0m"


def test_oversized_numbers_are_unusable():
    assert parse_amount(10**400) is None
    assert parse_count(10**400, default=1) == 1
    assert DeviceType.normalize(None) == ""


def test_bill_from_record_unknown_status_is_pending(caplog):
    with caplog.at_level(logging.WARNING, logger="cafe_pricing.engine.models"):
        bill = Bill.from_record({"id": 8, "amount": 10, "status": "REFUNDED"})
    assert bill.status == PaymentStatus.PENDING
    assert bill.total == 10
    assert "REFUNDED" in caplog.text
