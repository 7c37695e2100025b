from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from batchimport.common.time import FixedClock
from batchimport.domain.error_codes import ErrorCode
from batchimport.domain.payments.gateways import GatewayRegistry
from batchimport.domain.payments.models import User
from batchimport.domain.transform.coercion import ValueCoercer, absInt, splitList

NOW = datetime(2024, 3, 1, 12, 0, 0)


class FakeUsers:
    def __init__(self, users: list[User]):
        self.users = users
        self.calls: list[tuple[str, object]] = []

    def get_user_by_id(self, user_id: int) -> User | None:
        self.calls.append(("id", user_id))
        return next((u for u in self.users if u.id == user_id), None)

    def get_user_by_email(self, email: str) -> User | None:
        self.calls.append(("email", email))
        return next((u for u in self.users if u.email and u.email.lower() == email.lower()), None)

    def get_user_by_login(self, login: str) -> User | None:
        self.calls.append(("login", login))
        return next((u for u in self.users if u.login == login), None)


def _coercer(users: FakeUsers | None = None, **kwargs) -> ValueCoercer:
    return ValueCoercer(
        clock=FixedClock(NOW),
        gateways=GatewayRegistry({"stripe": {"admin_label": "Stripe", "checkout_label": "Credit Card"}}),
        users=users or FakeUsers([]),
        **kwargs,
    )


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("10", Decimal("10.00")),
        ("$1,234.50", Decimal("1234.50")),
        ("  99.999 ", Decimal("100.00")),
        ("-5.5", Decimal("-5.50")),
    ],
)
def test_amount_sanitized(raw, expected):
    assert _coercer().amount(raw) == expected


def test_amount_with_european_separators():
    coercer = _coercer(thousands_sep=".", decimal_sep=",")
    assert coercer.amount("1.234,56 €") == Decimal("1234.56")


def test_amount_invalid_is_unset_with_warning():
    warnings = []
    assert _coercer().amount("abc", "total", warnings) is None
    assert len(warnings) == 1
    assert warnings[0].code == ErrorCode.ROW_FIELD_INVALID.value
    assert warnings[0].field == "total"


def test_amount_none_is_unset_without_warning():
    warnings = []
    assert _coercer().amount(None, "total", warnings) is None
    assert warnings == []


def test_same_separators_rejected():
    with pytest.raises(ValueError):
        _coercer(thousands_sep=".", decimal_sep=".")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2023-05-17 10:11:12", datetime(2023, 5, 17, 10, 11, 12)),
        ("2023-05-17", datetime(2023, 5, 17)),
        ("05/17/2023", datetime(2023, 5, 17)),
        ("May 17, 2023", datetime(2023, 5, 17)),
    ],
)
def test_date_parsed(raw, expected):
    assert _coercer().date(raw) == expected


def test_unparseable_date_falls_back_to_clock():
    warnings = []
    assert _coercer().date("not a date", "date", warnings) == NOW
    assert warnings[0].code == ErrorCode.ROW_FIELD_INVALID.value


def test_mode_defaults_follow_run_mode():
    assert _coercer().mode("TEST") == "test"
    assert _coercer().mode("sandbox") == "live"
    assert _coercer(test_mode=True).mode("sandbox") == "test"
    assert _coercer(test_mode=True).mode(None) == "test"


def test_currency_uppercased():
    assert _coercer().currency(" usd ") == "USD"
    assert _coercer().currency(None) is None


def test_user_lookup_by_id_email_login():
    users = FakeUsers(
        [
            User(id=7, login="jdoe", email="john@example.com"),
            User(id=8, login="anna@example.com", email=None),
        ]
    )
    coercer = _coercer(users)

    assert coercer.user_id("7") == 7
    assert coercer.user_id("JOHN@example.com") == 7
    assert coercer.user_id("jdoe") == 7
    # e-mail не найден -> ищем как логин
    assert coercer.user_id("anna@example.com") == 8
    assert ("email", "anna@example.com") in users.calls
    assert ("login", "anna@example.com") in users.calls


@pytest.mark.parametrize("raw", [" 12", "+12", "12.0", "012", "-12"])
def test_numeric_user_reference_looks_up_by_id(raw):
    users = FakeUsers([User(id=12, login="12.0", email=None)])
    coercer = _coercer(users)

    assert coercer.user_id(raw) == 12
    assert users.calls == [("id", 12)]


def test_zero_user_id_is_not_a_login():
    users = FakeUsers([User(id=3, login="0", email=None)])
    warnings = []

    assert _coercer(users).user_id("0", "user_id", warnings) is None
    assert users.calls == []
    assert warnings[0].code == ErrorCode.REFERENCE_NOT_FOUND.value


def test_user_not_found_warns():
    warnings = []
    assert _coercer().user_id("ghost", "user_id", warnings) is None
    assert warnings[0].code == ErrorCode.REFERENCE_NOT_FOUND.value


def test_gateway_key_label_and_raw():
    coercer = _coercer()

    assert coercer.gateway("PayPal") == "paypal"
    assert coercer.gateway("credit card") == "stripe"
    assert coercer.gateway("Test Payment") == "manual"
    assert coercer.gateway("Bitcoin") == "bitcoin"
    assert coercer.gateway(None) is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("A|B, C", ["A", "B, C"]),
        ("A, B", ["A", "B"]),
        ("A; B", ["A", "B"]),
        ("A / B", ["A", "B"]),
        ("http://x/y", ["http://x/y"]),
        ("Single", ["Single"]),
        ("a,,b, ", ["a", "b"]),
        (None, []),
    ],
)
def test_split_list(raw, expected):
    assert splitList(raw) == expected


@pytest.mark.parametrize("raw, expected", [("12", 12), ("-5", 5), ("12abc", 12), ("abc", None), ("0", None), (None, None)])
def test_abs_int(raw, expected):
    assert absInt(raw) == expected
