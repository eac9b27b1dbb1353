"""Tests for expiry classification"""
from datetime import date
from decimal import Decimal

from kivee.application.expiry import classify, effective_expiry, latest_subscription_status
from kivee.domain.payment_entry import SubscriptionCharge
from kivee.domain.pricing import PriceVariant, Tier

MONTHLY = PriceVariant("monthly", Decimal("50"))


def _charge(due, period="monthly", item_id="t1"):
    return SubscriptionCharge(
        item_id=item_id, item_name="Monthly Plan", amount=Decimal("50"),
        due_date=due, billing_period=period,
    )


class TestClassify:
    def test_ten_days_is_soon(self):
        info = classify(_charge(date(2024, 3, 1)), MONTHLY, date(2024, 3, 22))
        assert info.effective_expiry == date(2024, 4, 1)
        assert info.days_left == 10
        assert info.status == "soon"

    def test_eleven_days_is_ok(self):
        assert classify(_charge(date(2024, 3, 1)), MONTHLY, date(2024, 3, 21)).status == "ok"

    def test_expiry_day_is_soon(self):
        assert classify(_charge(date(2024, 3, 1)), MONTHLY, date(2024, 4, 1)).status == "soon"

    def test_past_expiry(self):
        info = classify(_charge(date(2024, 3, 1)), MONTHLY, date(2024, 4, 2))
        assert info.status == "expired"
        assert info.days_left == -1

    def test_custom_soon_window(self):
        assert classify(_charge(date(2024, 3, 1)), MONTHLY, date(2024, 3, 22), soon_days=5).status == "ok"

    def test_undated_charge(self):
        assert classify(_charge(None), MONTHLY, date(2024, 1, 1)) is None


class TestEffectiveExpiry:
    def test_custom_term_end(self):
        term = PriceVariant("custom-term", Decimal("300"), term_end_date=date(2026, 8, 15))
        assert effective_expiry(_charge(date(2026, 6, 15), "custom-term"), term) == date(2026, 8, 15)

    def test_tier_gone_uses_recorded_period(self):
        assert effective_expiry(_charge(date(2024, 1, 31)), None) == date(2024, 2, 29)

    def test_non_advancing_period(self):
        assert effective_expiry(_charge(date(2024, 1, 1), period=None), None) == date(2024, 1, 1)


def test_latest_subscription_status():
    catalog = {"t1": Tier(id="t1", name="Monthly Plan", default_price_variants=(MONTHLY,))}
    entries = [
        _charge(date(2024, 1, 1)),
        _charge(date(2024, 2, 1)),
        _charge(date(2023, 1, 1), period="annual", item_id="gone"),
    ]
    status = latest_subscription_status(entries, catalog, date(2024, 2, 25))
    assert status["t1"].effective_expiry == date(2024, 3, 1)
    assert status["t1"].status == "soon"
    assert status["gone"].effective_expiry == date(2024, 1, 1)
    assert status["gone"].status == "expired"


class TestRecordedVariant:
    def test_term_end_survives_tier_deletion(self):
        charge = SubscriptionCharge(
            item_id="gone", item_name="Spring", amount=Decimal("280"),
            due_date=date(2025, 1, 15), billing_period="custom-term",
            term_start_date=date(2025, 1, 15), term_end_date=date(2025, 5, 31),
        )
        assert effective_expiry(charge, None) == date(2025, 5, 31)

    def test_custom_duration_survives_tier_deletion(self):
        charge = SubscriptionCharge(
            item_id="gone", item_name="Quarterly", amount=Decimal("120"),
            due_date=date(2024, 1, 1), billing_period="custom-duration",
            duration_unit="months", duration_amount=3,
        )
        assert effective_expiry(charge, None) == date(2024, 4, 1)
