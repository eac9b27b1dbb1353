"""Tests for ledger reconciliation (pure, catalog injected)"""
from datetime import date
from decimal import Decimal

from kivee.application.ledger import reconcile, subscription_groups, group_variant, new_cycle
from kivee.domain.billing_period import next_due_date
from kivee.domain.payment_entry import SubscriptionCharge, ProductCharge
from kivee.domain.pricing import PriceVariant, Tier

MONTHLY = PriceVariant("monthly", Decimal("50"))
ANNUAL = PriceVariant("annual", Decimal("500"))


def _tier(tier_id="t1", name="Monthly Plan", variants=(MONTHLY,), **kw):
    return Tier(id=tier_id, name=name, default_price_variants=variants, **kw)


def _charge(due, item_id="t1", period="monthly", amount="50", status="unpaid"):
    return SubscriptionCharge(
        item_id=item_id,
        item_name="Monthly Plan",
        amount=Decimal(amount),
        due_date=due,
        billing_period=period,
        status=status,
    )


def _due_dates(entries, item_id="t1"):
    return [c.due_date for c in subscription_groups(entries).get(item_id, [])]


class TestReconcile:
    def test_end_to_end_monthly(self):
        result = reconcile([_charge(date(2024, 1, 1))], {"t1": _tier()}, date(2024, 4, 15))
        assert result.changed
        assert _due_dates(result.entries) == [
            date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1), date(2024, 4, 1),
        ]
        assert all(c.status == "unpaid" for c in result.appended)
        assert all(c.amount == Decimal("50") for c in result.appended)

    def test_idempotent(self):
        catalog = {"t1": _tier()}
        first = reconcile([_charge(date(2024, 1, 1))], catalog, date(2024, 4, 15))
        second = reconcile(first.entries, catalog, date(2024, 4, 15))
        assert not second.changed
        assert second.entries == first.entries
        assert second.appended == []

    def test_due_today_is_included(self):
        result = reconcile([_charge(date(2024, 1, 1))], {"t1": _tier()}, date(2024, 2, 1))
        assert [c.due_date for c in result.appended] == [date(2024, 2, 1)]

    def test_nothing_due_yet(self):
        result = reconcile([_charge(date(2024, 1, 1))], {"t1": _tier()}, date(2024, 1, 31))
        assert not result.changed

    def test_never_in_the_future(self):
        today = date(2024, 12, 20)
        result = reconcile([_charge(date(2023, 5, 20))], {"t1": _tier()}, today)
        assert max(_due_dates(result.entries)) <= today

    def test_no_gaps(self):
        result = reconcile([_charge(date(2023, 1, 31))], {"t1": _tier()}, date(2024, 6, 1))
        dates = _due_dates(result.entries)
        for prev, nxt in zip(dates, dates[1:]):
            assert next_due_date(prev, "monthly") == nxt

    def test_clamped_day_chains_from_cursor(self):
        result = reconcile([_charge(date(2024, 1, 31))], {"t1": _tier()}, date(2024, 4, 30))
        assert [c.due_date for c in result.appended] == [
            date(2024, 2, 29), date(2024, 3, 29), date(2024, 4, 29),
        ]

    def test_existing_entries_untouched(self):
        paid = _charge(date(2024, 1, 1), amount="45", status="paid")
        product = ProductCharge(product_id="p1", product_name="Uniform", amount=Decimal("35"))
        entries = [paid, product]
        result = reconcile(entries, {"t1": _tier()}, date(2024, 2, 10))
        assert result.entries[:2] == entries
        assert result.entries[0].amount == Decimal("45")

    def test_deleted_tier_is_skipped(self):
        entries = [_charge(date(2024, 1, 1), item_id="gone")]
        result = reconcile(entries, {}, date(2024, 6, 1))
        assert not result.changed
        assert result.entries == entries

    def test_auto_renew_off(self):
        result = reconcile([_charge(date(2024, 1, 1))], {"t1": _tier(auto_renew=False)}, date(2024, 6, 1))
        assert not result.changed

    def test_custom_term_never_advances(self):
        term = PriceVariant("custom-term", Decimal("300"), term_end_date=date(2024, 8, 15))
        entries = [_charge(date(2024, 6, 15), period="custom-term", amount="300")]
        result = reconcile(entries, {"t1": _tier(variants=(term,))}, date(2025, 1, 1))
        assert not result.changed

    def test_custom_duration(self):
        every_two_weeks = PriceVariant("custom-duration", Decimal("20"), duration_unit="weeks", duration_amount=2)
        entries = [_charge(date(2024, 1, 1), period="custom-duration", amount="20")]
        result = reconcile(entries, {"t1": _tier(variants=(every_two_weeks,))}, date(2024, 2, 1))
        assert [c.due_date for c in result.appended] == [date(2024, 1, 15), date(2024, 1, 29)]

    def test_uses_current_tier_price_and_name(self):
        tier = _tier(name="Monthly Plus", variants=(PriceVariant("monthly", Decimal("60")),))
        result = reconcile([_charge(date(2024, 1, 1))], {"t1": tier}, date(2024, 2, 1))
        appended = result.appended[0]
        assert appended.amount == Decimal("60")
        assert appended.item_name == "Monthly Plus"
        assert result.entries[0].amount == Decimal("50")

    def test_recorded_period_drives_cadence(self):
        tier = _tier(variants=(MONTHLY, ANNUAL))
        entries = [_charge(date(2023, 3, 1), period="annual", amount="500")]
        result = reconcile(entries, {"t1": tier}, date(2024, 6, 1))
        assert [c.due_date for c in result.appended] == [date(2024, 3, 1)]
        assert result.appended[0].amount == Decimal("500")

    def test_legacy_charge_without_period_uses_single_variant(self):
        entries = [_charge(date(2024, 1, 1), period=None)]
        result = reconcile(entries, {"t1": _tier()}, date(2024, 2, 1))
        assert result.appended[0].billing_period == "monthly"

    def test_legacy_charge_with_ambiguous_price_is_skipped(self):
        entries = [_charge(date(2024, 1, 1), period=None)]
        result = reconcile(entries, {"t1": _tier(variants=(MONTHLY, ANNUAL))}, date(2024, 6, 1))
        assert not result.changed

    def test_location_prices(self):
        tier = Tier(
            id="t1", name="Monthly Plan",
            different_prices_by_location=True,
            price_variants_by_location={"north": (PriceVariant("monthly", Decimal("80")),)},
        )
        entries = [_charge(date(2024, 1, 1))]
        assert reconcile(entries, {"t1": tier}, date(2024, 2, 1), location_id="north").appended[0].amount == Decimal("80")
        assert not reconcile(entries, {"t1": tier}, date(2024, 2, 1), location_id="south").changed

    def test_resumes_from_latest_due_date(self):
        entries = [_charge(date(2024, 1, 1)), _charge(date(2024, 3, 1))]
        result = reconcile(entries, {"t1": _tier()}, date(2024, 4, 15))
        assert [c.due_date for c in result.appended] == [date(2024, 4, 1)]

    def test_groups_are_independent(self):
        catalog = {"t1": _tier(), "t2": _tier(tier_id="t2", name="Annual", variants=(ANNUAL,))}
        entries = [
            _charge(date(2024, 1, 1)),
            _charge(date(2023, 2, 1), item_id="t2", period="annual", amount="500"),
        ]
        result = reconcile(entries, catalog, date(2024, 3, 15))
        assert _due_dates(result.entries, "t1") == [date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1)]
        assert _due_dates(result.entries, "t2") == [date(2023, 2, 1), date(2024, 2, 1)]


class TestGroups:
    def test_undated_charges_are_not_grouped(self):
        groups = subscription_groups([_charge(None), _charge(date(2024, 1, 1))])
        assert len(groups["t1"]) == 1

    def test_group_variant(self):
        tier = _tier(variants=(MONTHLY, ANNUAL))
        assert group_variant([_charge(date(2024, 1, 1), period="annual")], tier, None) == ANNUAL
        assert group_variant([_charge(date(2024, 1, 1), period=None)], tier, None) is None


TEN_DAYS = PriceVariant("custom-duration", Decimal("15"), duration_unit="days", duration_amount=10)
QUARTER = PriceVariant("custom-duration", Decimal("120"), duration_unit="months", duration_amount=3)
FALL = PriceVariant("custom-term", Decimal("300"), term_start_date=date(2024, 9, 1), term_end_date=date(2024, 12, 15))
SPRING = PriceVariant("custom-term", Decimal("280"), term_start_date=date(2025, 1, 15), term_end_date=date(2025, 5, 31))


class TestSeveralCustomVariants:
    def _tier(self, *variants):
        return _tier(name="Flexible", variants=variants)

    def test_quarterly_charge_keeps_its_cadence(self):
        tier = self._tier(TEN_DAYS, QUARTER)
        entries = [new_cycle(tier, QUARTER, date(2024, 1, 1))]
        assert not reconcile(entries, {"t1": tier}, date(2024, 2, 1)).changed

        result = reconcile(entries, {"t1": tier}, date(2024, 4, 1))
        assert [c.due_date for c in result.appended] == [date(2024, 4, 1)]
        assert result.appended[0].amount == Decimal("120")
        assert result.appended[0].variant_key == QUARTER.key

    def test_ten_day_charge_keeps_its_cadence(self):
        tier = self._tier(TEN_DAYS, QUARTER)
        entries = [new_cycle(tier, TEN_DAYS, date(2024, 1, 1))]
        result = reconcile(entries, {"t1": tier}, date(2024, 2, 1))
        assert [c.due_date for c in result.appended] == [
            date(2024, 1, 11), date(2024, 1, 21), date(2024, 1, 31),
        ]
        assert {c.amount for c in result.appended} == {Decimal("15")}

    def test_no_gaps_for_each_variant(self):
        tier = self._tier(TEN_DAYS, QUARTER)
        for variant in (TEN_DAYS, QUARTER):
            result = reconcile([new_cycle(tier, variant, date(2024, 1, 1))], {"t1": tier}, date(2025, 1, 1))
            dates = _due_dates(result.entries)
            for prev, nxt in zip(dates, dates[1:]):
                assert variant.next_due_date(prev) == nxt

    def test_legacy_charge_with_shared_period_is_skipped(self):
        tier = self._tier(TEN_DAYS, QUARTER)
        entries = [_charge(date(2024, 1, 1), period="custom-duration")]
        assert not reconcile(entries, {"t1": tier}, date(2024, 6, 1)).changed

    def test_variant_removed_from_tier(self):
        entries = [new_cycle(self._tier(TEN_DAYS, QUARTER), QUARTER, date(2024, 1, 1))]
        assert not reconcile(entries, {"t1": self._tier(TEN_DAYS)}, date(2024, 6, 1)).changed

    def test_each_term_resolves_to_itself(self):
        tier = self._tier(FALL, SPRING)
        assert group_variant([new_cycle(tier, FALL, date(2024, 9, 1))], tier, None) == FALL
        assert group_variant([new_cycle(tier, SPRING, date(2025, 1, 15))], tier, None) == SPRING

    def test_terms_never_advance(self):
        tier = self._tier(FALL, SPRING)
        entries = [new_cycle(tier, SPRING, date(2025, 1, 15))]
        assert not reconcile(entries, {"t1": tier}, date(2026, 1, 1)).changed
