"""
Tier use cases - CRUD of the membership plan catalog.

Both price structures (defaults and per-location) are always stored, so
toggling different_prices_by_location back and forth loses nothing.
"""
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from kivee.domain.pricing import (
    Tier, VALID_TIER_STATUSES, TIER_STATUS_ACTIVE,
    parse_variants, tier_from_db, validate_price_variants,
)
from kivee.infrastructure.db.models import TierModel


class TierValidationError(ValueError):
    pass


def _normalize_variants(docs, label: str) -> list[dict]:
    if docs is None:
        return []
    if not isinstance(docs, list):
        raise TierValidationError(f"{label}: price variants must be a list")
    variants = parse_variants(docs)
    errors = validate_price_variants(variants)
    if errors:
        raise TierValidationError(f"{label}: {errors[0]}")
    # Drop blank form rows
    return [v.to_doc() for v in variants if v.billing_period or v.price is not None]


def _normalize_by_location(by_location) -> dict[str, list[dict]]:
    if by_location is None:
        return {}
    if not isinstance(by_location, dict):
        raise TierValidationError("Location prices must be a mapping of location to variants")
    return {
        str(loc): _normalize_variants(docs, f"Location {loc}")
        for loc, docs in by_location.items()
    }


def _validate_counts(classes_per_week: int, class_duration: int, class_limit_per_cycle: int | None) -> None:
    if classes_per_week < 0 or class_duration < 0:
        raise TierValidationError("Class counts and durations cannot be negative")
    if class_limit_per_cycle is not None and class_limit_per_cycle < 1:
        raise TierValidationError("Class limit per cycle must be at least 1")


class CreateTierUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        academy_id: str,
        name: str,
        default_price_variants: list[dict] | None = None,
        price_variants_by_location: dict | None = None,
        different_prices_by_location: bool = False,
        status: str = TIER_STATUS_ACTIVE,
        classes_per_week: int = 0,
        class_duration: int = 0,
        class_limit_per_cycle: int | None = None,
        auto_renew: bool = True,
        requires_enrollment_fee: bool = False,
        description: str = "",
    ) -> str:
        name = name.strip()
        if not name:
            raise TierValidationError("Tier name cannot be empty")
        if status not in VALID_TIER_STATUSES:
            raise TierValidationError("Status must be active or inactive")
        _validate_counts(classes_per_week, class_duration, class_limit_per_cycle)

        tier = TierModel(
            academy_id=academy_id,
            name=name,
            description=description.strip() or None,
            status=status,
            classes_per_week=classes_per_week,
            class_duration=class_duration,
            class_limit_per_cycle=class_limit_per_cycle,
            auto_renew=auto_renew,
            requires_enrollment_fee=requires_enrollment_fee,
            different_prices_by_location=different_prices_by_location,
            default_price_variants=_normalize_variants(default_price_variants, "Default prices"),
            price_variants_by_location=_normalize_by_location(price_variants_by_location),
        )
        self.db.add(tier)
        self.db.flush()
        self.db.commit()
        return tier.id


class UpdateTierUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, tier_id: str, academy_id: str, **changes) -> None:
        tier = self.db.query(TierModel).filter(
            TierModel.id == tier_id,
            TierModel.academy_id == academy_id,
        ).first()
        if not tier:
            raise TierValidationError("Tier not found")

        if "name" in changes:
            name = changes["name"].strip()
            if not name:
                raise TierValidationError("Tier name cannot be empty")
            tier.name = name
        if "description" in changes:
            tier.description = (changes["description"] or "").strip() or None
        if "status" in changes:
            if changes["status"] not in VALID_TIER_STATUSES:
                raise TierValidationError("Status must be active or inactive")
            tier.status = changes["status"]
        for key in ("classes_per_week", "class_duration", "class_limit_per_cycle"):
            if key in changes:
                setattr(tier, key, changes[key])
        _validate_counts(tier.classes_per_week, tier.class_duration, tier.class_limit_per_cycle)
        for key in ("auto_renew", "requires_enrollment_fee", "different_prices_by_location"):
            if key in changes:
                setattr(tier, key, bool(changes[key]))
        if "default_price_variants" in changes:
            tier.default_price_variants = _normalize_variants(
                changes["default_price_variants"], "Default prices",
            )
        if "price_variants_by_location" in changes:
            tier.price_variants_by_location = _normalize_by_location(
                changes["price_variants_by_location"],
            )
        tier.updated_at = datetime.now(timezone.utc)
        self.db.commit()


class DeleteTierUseCase:
    """Existing ledger charges keep pointing at the deleted id; renewal skips them."""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, tier_id: str, academy_id: str) -> None:
        tier = self.db.query(TierModel).filter(
            TierModel.id == tier_id,
            TierModel.academy_id == academy_id,
        ).first()
        if not tier:
            raise TierValidationError("Tier not found")
        self.db.delete(tier)
        self.db.commit()


def load_tier_catalog(db: Session, academy_id: str) -> dict[str, Tier]:
    rows = db.query(TierModel).filter(TierModel.academy_id == academy_id).all()
    return {row.id: tier_from_db(row) for row in rows}


def get_tier(db: Session, academy_id: str, tier_id: str) -> Tier | None:
    row = db.query(TierModel).filter(
        TierModel.id == tier_id,
        TierModel.academy_id == academy_id,
    ).first()
    return tier_from_db(row) if row else None
