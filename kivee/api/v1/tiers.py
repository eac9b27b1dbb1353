"""
Tier catalog API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from kivee.api.deps import get_db, get_academy, http_error
from kivee.application.tiers import (
    CreateTierUseCase, UpdateTierUseCase, DeleteTierUseCase, TierValidationError, get_tier,
)
from kivee.domain.pricing import describe_price, resolve_price
from kivee.infrastructure.db.models import AcademyModel, TierModel
from kivee.utils.validation import validate_and_normalize_amount


router = APIRouter(prefix="/api/v1/academies/{academy_id}/tiers", tags=["tiers"])


# === Request/Response models ===

class PriceVariantBody(BaseModel):
    billingPeriod: str = ""
    price: str = ""
    customTermName: str | None = None
    termStartDate: str | None = None
    termEndDate: str | None = None
    durationUnit: str | None = None
    durationAmount: int | None = None

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: str) -> str:
        """Blank rows are allowed, anything else must be a valid amount"""
        if not v.strip():
            return ""
        return validate_and_normalize_amount(v, max_decimal_places=2)


class TierRequest(BaseModel):
    name: str
    description: str = ""
    status: str = "active"
    classes_per_week: int = 0
    class_duration: int = 0
    class_limit_per_cycle: int | None = None
    auto_renew: bool = True
    requires_enrollment_fee: bool = False
    different_prices_by_location: bool = False
    default_price_variants: list[PriceVariantBody] = []
    price_variants_by_location: dict[str, list[PriceVariantBody]] = {}

    def variants_docs(self) -> tuple[list[dict], dict[str, list[dict]]]:
        defaults = [v.model_dump(exclude_none=True) for v in self.default_price_variants]
        by_location = {
            loc: [v.model_dump(exclude_none=True) for v in variants]
            for loc, variants in self.price_variants_by_location.items()
        }
        return defaults, by_location


class TierResponse(BaseModel):
    id: str
    name: str
    description: str | None
    status: str
    classes_per_week: int
    class_duration: int
    class_limit_per_cycle: int | None
    auto_renew: bool
    requires_enrollment_fee: bool
    different_prices_by_location: bool
    default_price_variants: list[dict]
    price_variants_by_location: dict[str, list[dict]]


class PriceResolutionResponse(BaseModel):
    tier_id: str
    location_id: str | None
    resolution: str  # none / single / multiple
    label: str
    variants: list[dict]  # each with its "key", passed back as variant_key at enrollment


def _to_response(t: TierModel) -> TierResponse:
    return TierResponse(
        id=t.id,
        name=t.name,
        description=t.description,
        status=t.status,
        classes_per_week=t.classes_per_week,
        class_duration=t.class_duration,
        class_limit_per_cycle=t.class_limit_per_cycle,
        auto_renew=t.auto_renew,
        requires_enrollment_fee=t.requires_enrollment_fee,
        different_prices_by_location=t.different_prices_by_location,
        default_price_variants=t.default_price_variants or [],
        price_variants_by_location=t.price_variants_by_location or {},
    )


def _get_row(db: Session, academy_id: str, tier_id: str) -> TierModel:
    tier = db.query(TierModel).filter(
        TierModel.id == tier_id,
        TierModel.academy_id == academy_id,
    ).first()
    if not tier:
        raise HTTPException(status_code=404, detail="Tier not found")
    return tier


# === Endpoints ===

@router.post("/", response_model=TierResponse)
def create_tier(
    req: TierRequest,
    academy: AcademyModel = Depends(get_academy),
    db: Session = Depends(get_db),
):
    """Create a membership tier"""
    defaults, by_location = req.variants_docs()
    try:
        tier_id = CreateTierUseCase(db).execute(
            academy_id=academy.id,
            name=req.name,
            description=req.description,
            status=req.status,
            classes_per_week=req.classes_per_week,
            class_duration=req.class_duration,
            class_limit_per_cycle=req.class_limit_per_cycle,
            auto_renew=req.auto_renew,
            requires_enrollment_fee=req.requires_enrollment_fee,
            different_prices_by_location=req.different_prices_by_location,
            default_price_variants=defaults,
            price_variants_by_location=by_location,
        )
    except TierValidationError as e:
        raise http_error(e)
    return _to_response(_get_row(db, academy.id, tier_id))


@router.get("/", response_model=list[TierResponse])
def list_tiers(
    academy: AcademyModel = Depends(get_academy),
    db: Session = Depends(get_db),
    include_inactive: bool = True,
):
    """List tiers of the academy"""
    query = db.query(TierModel).filter(TierModel.academy_id == academy.id)
    if not include_inactive:
        query = query.filter(TierModel.status == "active")
    return [_to_response(t) for t in query.order_by(TierModel.name).all()]


@router.put("/{tier_id}", response_model=TierResponse)
def update_tier(
    tier_id: str,
    req: TierRequest,
    academy: AcademyModel = Depends(get_academy),
    db: Session = Depends(get_db),
):
    """Replace a tier definition. Existing ledger charges keep their amounts."""
    defaults, by_location = req.variants_docs()
    try:
        UpdateTierUseCase(db).execute(
            tier_id,
            academy.id,
            **req.model_dump(exclude={"default_price_variants", "price_variants_by_location"}),
            default_price_variants=defaults,
            price_variants_by_location=by_location,
        )
    except TierValidationError as e:
        raise http_error(e)
    return _to_response(_get_row(db, academy.id, tier_id))


@router.delete("/{tier_id}")
def delete_tier(
    tier_id: str,
    academy: AcademyModel = Depends(get_academy),
    db: Session = Depends(get_db),
):
    """Delete a tier"""
    try:
        DeleteTierUseCase(db).execute(tier_id, academy.id)
    except TierValidationError as e:
        raise http_error(e)
    return {"status": "deleted"}


@router.get("/{tier_id}/price", response_model=PriceResolutionResponse)
def tier_price(
    tier_id: str,
    location_id: str | None = None,
    academy: AcademyModel = Depends(get_academy),
    db: Session = Depends(get_db),
):
    """Price that applies to a student of the given location"""
    tier = get_tier(db, academy.id, tier_id)
    if tier is None:
        raise HTTPException(status_code=404, detail="Tier not found")
    resolution = resolve_price(tier, location_id)
    if resolution.is_none:
        kind = "none"
    elif resolution.is_single:
        kind = "single"
    else:
        kind = "multiple"
    return PriceResolutionResponse(
        tier_id=tier.id,
        location_id=location_id,
        resolution=kind,
        label=describe_price(resolution, academy.currency),
        variants=[{**v.to_doc(), "key": v.key} for v in resolution.variants],
    )
