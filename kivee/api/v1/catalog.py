"""
Academy, product and trial API endpoints
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from kivee.api.deps import get_db, get_academy, http_error
from kivee.application.catalog import (
    CreateAcademyUseCase, CreateProductUseCase, CreateTrialUseCase, CatalogValidationError,
)
from kivee.infrastructure.db.models import AcademyModel, ProductModel, TrialModel
from kivee.utils.validation import validate_and_normalize_amount


router = APIRouter(prefix="/api/v1/academies", tags=["catalog"])


# === Request/Response models ===

class CreateAcademyRequest(BaseModel):
    name: str
    currency: str = "USD"
    student_label_singular: str = "Student"


class AcademyResponse(BaseModel):
    id: str
    name: str
    currency: str
    student_label_singular: str


class CreateProductRequest(BaseModel):
    name: str
    price: str
    location_prices: dict[str, str] = {}

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: str) -> str:
        return validate_and_normalize_amount(v, max_decimal_places=2)


class ProductResponse(BaseModel):
    id: str
    name: str
    price: str
    location_prices: dict[str, str]


class CreateTrialRequest(BaseModel):
    name: str
    duration_in_days: int
    class_limit: int | None = None
    location_prices: dict[str, str] = {}
    converts_to_tier_id: str | None = None


class TrialResponse(BaseModel):
    id: str
    name: str
    duration_in_days: int
    class_limit: int | None
    location_prices: dict[str, str]
    converts_to_tier_id: str | None


# === Endpoints ===

@router.post("/", response_model=AcademyResponse)
def create_academy(req: CreateAcademyRequest, db: Session = Depends(get_db)):
    """Create an academy (tenant)"""
    try:
        academy_id = CreateAcademyUseCase(db).execute(
            name=req.name,
            currency=req.currency,
            student_label_singular=req.student_label_singular,
        )
    except CatalogValidationError as e:
        raise http_error(e)
    academy = db.query(AcademyModel).filter(AcademyModel.id == academy_id).first()
    return AcademyResponse(
        id=academy.id,
        name=academy.name,
        currency=academy.currency,
        student_label_singular=academy.student_label_singular,
    )


@router.post("/{academy_id}/products", response_model=ProductResponse)
def create_product(
    req: CreateProductRequest,
    academy: AcademyModel = Depends(get_academy),
    db: Session = Depends(get_db),
):
    """Create a one-time product"""
    try:
        product_id = CreateProductUseCase(db).execute(
            academy_id=academy.id,
            name=req.name,
            price=req.price,
            location_prices=req.location_prices,
        )
    except CatalogValidationError as e:
        raise http_error(e)
    p = db.query(ProductModel).filter(ProductModel.id == product_id).first()
    return ProductResponse(id=p.id, name=p.name, price=p.price, location_prices=p.location_prices)


@router.post("/{academy_id}/trials", response_model=TrialResponse)
def create_trial(
    req: CreateTrialRequest,
    academy: AcademyModel = Depends(get_academy),
    db: Session = Depends(get_db),
):
    """Create a trial plan"""
    try:
        trial_id = CreateTrialUseCase(db).execute(
            academy_id=academy.id,
            name=req.name,
            duration_in_days=req.duration_in_days,
            class_limit=req.class_limit,
            location_prices=req.location_prices,
            converts_to_tier_id=req.converts_to_tier_id,
        )
    except CatalogValidationError as e:
        raise http_error(e)
    t = db.query(TrialModel).filter(TrialModel.id == trial_id).first()
    return TrialResponse(
        id=t.id,
        name=t.name,
        duration_in_days=t.duration_in_days,
        class_limit=t.class_limit,
        location_prices=t.location_prices,
        converts_to_tier_id=t.converts_to_tier_id,
    )
