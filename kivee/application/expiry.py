"""
Expiry classification for subscription charges (display and alerting only).

A charge's due date marks the *start* of the period it pays for, so the
period expires one cycle later. Custom terms expire on their fixed end date.
"""
from dataclasses import dataclass
from datetime import date
from typing import Mapping

from kivee.application.ledger import group_variant, subscription_groups
from kivee.domain.billing_period import next_due_date
from kivee.domain.payment_entry import SubscriptionCharge
from kivee.domain.pricing import PriceVariant, Tier

STATUS_OK = "ok"
STATUS_SOON = "soon"
STATUS_EXPIRED = "expired"

DEFAULT_SOON_DAYS = 10


@dataclass(frozen=True)
class ExpiryInfo:
    effective_expiry: date
    status: str
    days_left: int


def effective_expiry(charge: SubscriptionCharge, variant: PriceVariant | None) -> date | None:
    if variant is not None and variant.is_term and variant.term_end_date:
        return variant.term_end_date
    if variant is None and charge.term_end_date:
        return charge.term_end_date
    if charge.due_date is None:
        return None
    if variant is not None:
        nxt = variant.next_due_date(charge.due_date)
    else:
        # Tier gone: the variant recorded on the charge still dates it
        nxt = next_due_date(
            charge.due_date, charge.billing_period, charge.duration_unit, charge.duration_amount,
        )
    if nxt is not None:
        return nxt
    # Period does not advance: the paid period ends where it starts
    return charge.due_date


def classify(
    charge: SubscriptionCharge,
    variant: PriceVariant | None,
    today: date,
    soon_days: int = DEFAULT_SOON_DAYS,
) -> ExpiryInfo | None:
    """ok / soon / expired for one charge. None when there is nothing to date it by."""
    expiry = effective_expiry(charge, variant)
    if expiry is None:
        return None
    days_left = (expiry - today).days
    if days_left < 0:
        status = STATUS_EXPIRED
    elif days_left <= soon_days:
        status = STATUS_SOON
    else:
        status = STATUS_OK
    return ExpiryInfo(effective_expiry=expiry, status=status, days_left=days_left)


def latest_subscription_status(
    entries,
    tier_catalog: Mapping[str, Tier],
    today: date,
    location_id: str | None = None,
    soon_days: int = DEFAULT_SOON_DAYS,
) -> dict[str, ExpiryInfo]:
    """Expiry of the most recent charge of every tier group, keyed by tier id."""
    out: dict[str, ExpiryInfo] = {}
    for item_id, group in subscription_groups(entries).items():
        tier = tier_catalog.get(item_id)
        variant = group_variant(group, tier, location_id) if tier else None
        info = classify(group[-1], variant, today, soon_days)
        if info is not None:
            out[item_id] = info
    return out
