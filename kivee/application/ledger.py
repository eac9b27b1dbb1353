"""
Ledger reconciliation - appends the billing cycles that started since the
last recorded one.

Pure function over plain values: the tier catalog is passed in, nothing is
read from or written to the database here (see students.ReconcileStudentLedgerUseCase).

Per tier group (subscription charges sharing item_id):
  - cursor = latest due date in the group
  - variant = the one recorded on that latest charge (period, plus duration
    or term dates for custom variants), looked up in the tier's *current*
    definition at the student's location. Legacy charges without that record
    fall back to a period that matches a single variant, then to the tier's
    single resolved variant
  - while next_due_date(cursor) <= today: append an unpaid charge with the
    tier's current name and price

Groups are skipped, without error, when the tier is gone from the catalog,
its period cannot be resolved, auto-renew is off, or the period never
advances (custom terms). A due date already present in a group is never
appended a second time.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Mapping

from kivee.domain.billing_period import CUSTOM_DURATION
from kivee.domain.payment_entry import PaymentEntry, SubscriptionCharge, STATUS_UNPAID
from kivee.domain.pricing import PriceVariant, Tier, resolve_price, select_variant

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    entries: list[PaymentEntry]
    changed: bool
    appended: list[SubscriptionCharge] = field(default_factory=list)


def subscription_groups(entries) -> dict[str, list[SubscriptionCharge]]:
    """Subscription charges with a due date, grouped by tier id, sorted by due date."""
    groups: dict[str, list[SubscriptionCharge]] = {}
    for e in entries:
        if isinstance(e, SubscriptionCharge) and e.due_date is not None:
            groups.setdefault(e.item_id, []).append(e)
    for group in groups.values():
        group.sort(key=lambda c: c.due_date)
    return groups


def group_variant(
    group: list[SubscriptionCharge],
    tier: Tier,
    location_id: str | None,
) -> PriceVariant | None:
    """Price variant that drives renewal of a sorted tier group."""
    latest = group[-1]
    key = latest.variant_key
    if key:
        return select_variant(tier, location_id, key=key)
    if latest.billing_period:
        return select_variant(tier, location_id, latest.billing_period)
    return resolve_price(tier, location_id).variant


def new_cycle(tier: Tier, variant: PriceVariant, due_date: date) -> SubscriptionCharge:
    """Unpaid charge for one cycle, at the tier's current name and the variant's price."""
    return SubscriptionCharge(
        item_id=tier.id,
        item_name=tier.name,
        amount=variant.price,
        due_date=due_date,
        billing_period=variant.billing_period,
        status=STATUS_UNPAID,
        duration_unit=variant.duration_unit if variant.billing_period == CUSTOM_DURATION else None,
        duration_amount=variant.duration_amount if variant.billing_period == CUSTOM_DURATION else None,
        term_start_date=variant.term_start_date if variant.is_term else None,
        term_end_date=variant.term_end_date if variant.is_term else None,
    )


def reconcile(
    entries: list[PaymentEntry],
    tier_catalog: Mapping[str, Tier],
    today: date,
    location_id: str | None = None,
) -> ReconcileResult:
    """Append missing unpaid cycles up to and including `today`."""
    appended: list[SubscriptionCharge] = []

    for item_id, group in subscription_groups(entries).items():
        tier = tier_catalog.get(item_id)
        if tier is None:
            logger.debug("Tier %s not in catalog, skipping renewal", item_id)
            continue
        if not tier.auto_renew:
            continue

        variant = group_variant(group, tier, location_id)
        if variant is None:
            logger.debug("No price variant for tier %s at location %s", item_id, location_id)
            continue

        existing = {c.due_date for c in group}
        cursor = group[-1].due_date
        while True:
            candidate = variant.next_due_date(cursor)
            if candidate is None or candidate > today or candidate <= cursor:
                break
            if candidate not in existing:
                appended.append(new_cycle(tier, variant, candidate))
                existing.add(candidate)
            cursor = candidate

    if appended:
        logger.info(
            "Reconciliation appended %d cycle(s): %s",
            len(appended), ", ".join(c.due_date.isoformat() for c in appended),
        )
    return ReconcileResult(
        entries=list(entries) + appended,
        changed=bool(appended),
        appended=appended,
    )
