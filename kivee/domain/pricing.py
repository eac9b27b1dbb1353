"""
Tier pricing model and price resolution.

A tier is priced either with one list of default variants, or with a list
per location (different_prices_by_location). Resolution never guesses: when
more than one valid variant applies, all of them are returned and staff
choose the billing period at enrollment time.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from kivee.domain import billing_period as bp
from kivee.utils.money import to_decimal, decimal_to_str, format_money

TIER_STATUS_ACTIVE = "active"
TIER_STATUS_INACTIVE = "inactive"
VALID_TIER_STATUSES = frozenset({TIER_STATUS_ACTIVE, TIER_STATUS_INACTIVE})

NO_PRICE_LABEL = "No price set"
PRICE_VARIES_LABEL = "Price varies"


@dataclass(frozen=True)
class PriceVariant:
    billing_period: str | None
    price: Decimal | None
    custom_term_name: str | None = None
    term_start_date: date | None = None
    term_end_date: date | None = None
    duration_unit: str | None = None  # custom-duration only: days / weeks / months
    duration_amount: int | None = None

    @property
    def is_valid(self) -> bool:
        return bool(self.billing_period) and self.price is not None

    @property
    def is_term(self) -> bool:
        return self.billing_period == bp.CUSTOM_TERM

    @property
    def key(self) -> str | None:
        return bp.variant_key(
            self.billing_period, self.duration_unit, self.duration_amount,
            self.term_start_date, self.term_end_date,
        )

    def next_due_date(self, d: date) -> date | None:
        return bp.next_due_date(d, self.billing_period, self.duration_unit, self.duration_amount)

    @classmethod
    def from_doc(cls, doc: dict) -> "PriceVariant":
        amount = doc.get("durationAmount")
        try:
            amount = int(amount) if amount not in (None, "") else None
        except (TypeError, ValueError):
            amount = None
        return cls(
            billing_period=doc.get("billingPeriod") or None,
            price=to_decimal(doc.get("price")),
            custom_term_name=doc.get("customTermName") or None,
            term_start_date=bp.parse_date(doc.get("termStartDate")),
            term_end_date=bp.parse_date(doc.get("termEndDate")),
            duration_unit=doc.get("durationUnit") or None,
            duration_amount=amount,
        )

    def to_doc(self) -> dict:
        doc = {
            "billingPeriod": self.billing_period or "",
            "price": decimal_to_str(self.price) or "",
        }
        if self.billing_period == bp.CUSTOM_TERM:
            doc["customTermName"] = self.custom_term_name or ""
            doc["termStartDate"] = self.term_start_date.isoformat() if self.term_start_date else ""
            doc["termEndDate"] = self.term_end_date.isoformat() if self.term_end_date else ""
        if self.billing_period == bp.CUSTOM_DURATION:
            doc["durationUnit"] = self.duration_unit or ""
            doc["durationAmount"] = self.duration_amount
        return doc


@dataclass(frozen=True)
class Tier:
    id: str
    name: str
    status: str = TIER_STATUS_ACTIVE
    classes_per_week: int = 0
    class_duration: int = 0
    class_limit_per_cycle: int | None = None
    auto_renew: bool = True
    requires_enrollment_fee: bool = False
    different_prices_by_location: bool = False
    default_price_variants: tuple[PriceVariant, ...] = ()
    price_variants_by_location: dict[str, tuple[PriceVariant, ...]] = field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return self.status == TIER_STATUS_ACTIVE


@dataclass(frozen=True)
class PriceResolution:
    """Outcome of resolving a tier's price at one location."""
    variants: tuple[PriceVariant, ...]

    @property
    def is_none(self) -> bool:
        return not self.variants

    @property
    def is_single(self) -> bool:
        return len(self.variants) == 1

    @property
    def is_ambiguous(self) -> bool:
        return len(self.variants) > 1

    @property
    def variant(self) -> PriceVariant | None:
        return self.variants[0] if self.is_single else None


def parse_variants(docs) -> tuple[PriceVariant, ...]:
    if not isinstance(docs, list):
        return ()
    return tuple(PriceVariant.from_doc(d) for d in docs if isinstance(d, dict))


def tier_from_db(row) -> Tier:
    """Build Tier from a TierModel row (any object with matching attributes)."""
    by_location = row.price_variants_by_location or {}
    return Tier(
        id=row.id,
        name=row.name,
        status=row.status,
        classes_per_week=row.classes_per_week or 0,
        class_duration=row.class_duration or 0,
        class_limit_per_cycle=row.class_limit_per_cycle,
        auto_renew=bool(row.auto_renew),
        requires_enrollment_fee=bool(row.requires_enrollment_fee),
        different_prices_by_location=bool(row.different_prices_by_location),
        default_price_variants=parse_variants(row.default_price_variants),
        price_variants_by_location={
            str(loc): parse_variants(docs) for loc, docs in by_location.items()
        },
    )


def candidate_variants(tier: Tier, location_id: str | None) -> tuple[PriceVariant, ...]:
    """Variants that apply at a location, valid or not."""
    if tier.different_prices_by_location:
        if location_id is None:
            return ()
        return tier.price_variants_by_location.get(str(location_id), ())
    return tier.default_price_variants


def resolve_price(tier: Tier, location_id: str | None) -> PriceResolution:
    """Valid price variants for a tier at a location."""
    return PriceResolution(
        variants=tuple(v for v in candidate_variants(tier, location_id) if v.is_valid)
    )


def select_variant(
    tier: Tier,
    location_id: str | None,
    billing_period: str | None = None,
    key: str | None = None,
) -> PriceVariant | None:
    """
    Pick the variant a student is billed with.

    A variant key identifies exactly one variant. A bare billing period only
    picks when it matches a single variant (several custom durations or terms
    share one period and need the key). Without either, the pick succeeds only
    when resolution is unambiguous.
    """
    resolution = resolve_price(tier, location_id)
    if key:
        for v in resolution.variants:
            if v.key == key:
                return v
        return None
    if not billing_period:
        return resolution.variant
    matches = [v for v in resolution.variants if v.billing_period == billing_period]
    return matches[0] if len(matches) == 1 else None


def describe_price(resolution: PriceResolution, currency: str = "USD") -> str:
    """Display string: 'No price set', the single price, or 'Price varies'."""
    if resolution.is_none:
        return NO_PRICE_LABEL
    if resolution.is_ambiguous:
        return PRICE_VARIES_LABEL
    v = resolution.variant
    label = bp.format_billing_period(v.billing_period)
    if v.is_term and v.custom_term_name:
        label = v.custom_term_name
    return f"{format_money(v.price, currency)} / {label}"


def validate_price_variants(variants: tuple[PriceVariant, ...]) -> list[str]:
    """
    Check one variant list (defaults, or one location).

    Returns a list of error messages; empty when the list is acceptable.
    Empty rows (no period and no price) are ignored, they are form padding.
    """
    errors: list[str] = []
    seen_standard: set[str] = set()
    seen_custom: set[str] = set()
    for i, v in enumerate(variants, start=1):
        if not v.billing_period and v.price is None:
            continue
        if not v.billing_period:
            errors.append(f"Variant {i}: billing period is required")
            continue
        if v.billing_period not in bp.VALID_PERIODS:
            errors.append(f"Variant {i}: unknown billing period '{v.billing_period}'")
            continue
        if v.price is None:
            errors.append(f"Variant {i}: price is required")
        elif v.price < 0:
            errors.append(f"Variant {i}: price cannot be negative")
        if v.billing_period in bp.STANDARD_PERIODS:
            if v.billing_period in seen_standard:
                errors.append(
                    f"Variant {i}: only one {bp.format_billing_period(v.billing_period)} price is allowed"
                )
            seen_standard.add(v.billing_period)
        elif v.billing_period == bp.CUSTOM_TERM:
            if not v.term_end_date:
                errors.append(f"Variant {i}: custom term needs an end date")
            elif v.term_start_date and v.term_end_date < v.term_start_date:
                errors.append(f"Variant {i}: term end date must be on or after the start date")
        elif v.billing_period == bp.CUSTOM_DURATION:
            if v.duration_unit not in bp.DURATION_UNITS:
                errors.append(f"Variant {i}: duration unit must be days, weeks or months")
            if not v.duration_amount or v.duration_amount < 1:
                errors.append(f"Variant {i}: duration amount must be at least 1")
        if v.billing_period not in bp.STANDARD_PERIODS and v.key:
            if v.key in seen_custom:
                errors.append(
                    f"Variant {i}: this {bp.format_billing_period(v.billing_period)} is already priced"
                )
            seen_custom.add(v.key)
    return errors
