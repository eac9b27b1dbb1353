"""
Catalog use cases - academies, one-time products and trials.
"""
from decimal import Decimal

from sqlalchemy.orm import Session

from kivee.domain.product import Product, product_from_db
from kivee.domain.trial import Trial, trial_from_db
from kivee.infrastructure.db.models import AcademyModel, ProductModel, TrialModel, TierModel
from kivee.utils.money import to_decimal, decimal_to_str


class CatalogValidationError(ValueError):
    pass


def _clean_location_prices(raw: dict | None) -> dict[str, str]:
    out: dict[str, str] = {}
    for loc, value in (raw or {}).items():
        amount = to_decimal(value)
        if amount is None:
            raise CatalogValidationError(f"Invalid price for location {loc}")
        if amount < 0:
            raise CatalogValidationError("Price cannot be negative")
        out[str(loc)] = decimal_to_str(amount)
    return out


class CreateAcademyUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, name: str, currency: str = "USD", student_label_singular: str = "Student") -> str:
        name = name.strip()
        if not name:
            raise CatalogValidationError("Academy name cannot be empty")
        currency = (currency or "USD").strip().upper()
        if len(currency) != 3 or not currency.isalpha():
            raise CatalogValidationError("Currency must be a 3-letter ISO code")

        academy = AcademyModel(
            name=name,
            currency=currency,
            student_label_singular=student_label_singular.strip() or "Student",
        )
        self.db.add(academy)
        self.db.flush()
        self.db.commit()
        return academy.id


class CreateProductUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        academy_id: str,
        name: str,
        price: Decimal | str,
        location_prices: dict | None = None,
    ) -> str:
        name = name.strip()
        if not name:
            raise CatalogValidationError("Product name cannot be empty")
        amount = to_decimal(price)
        if amount is None:
            raise CatalogValidationError("Invalid price")
        if amount < 0:
            raise CatalogValidationError("Price cannot be negative")

        product = ProductModel(
            academy_id=academy_id,
            name=name,
            price=decimal_to_str(amount),
            location_prices=_clean_location_prices(location_prices),
        )
        self.db.add(product)
        self.db.flush()
        self.db.commit()
        return product.id


class CreateTrialUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        academy_id: str,
        name: str,
        duration_in_days: int,
        class_limit: int | None = None,
        location_prices: dict | None = None,
        converts_to_tier_id: str | None = None,
    ) -> str:
        name = name.strip()
        if not name:
            raise CatalogValidationError("Trial name cannot be empty")
        if duration_in_days < 1:
            raise CatalogValidationError("Trial must last at least one day")
        if class_limit is not None and class_limit < 1:
            raise CatalogValidationError("Class limit must be at least 1")
        if converts_to_tier_id:
            tier = self.db.query(TierModel).filter(
                TierModel.id == converts_to_tier_id,
                TierModel.academy_id == academy_id,
            ).first()
            if not tier:
                raise CatalogValidationError("Tier not found")

        trial = TrialModel(
            academy_id=academy_id,
            name=name,
            duration_in_days=duration_in_days,
            class_limit=class_limit,
            location_prices=_clean_location_prices(location_prices),
            converts_to_tier_id=converts_to_tier_id or None,
        )
        self.db.add(trial)
        self.db.flush()
        self.db.commit()
        return trial.id


def load_product_catalog(db: Session, academy_id: str) -> dict[str, Product]:
    rows = db.query(ProductModel).filter(ProductModel.academy_id == academy_id).all()
    return {row.id: product_from_db(row) for row in rows}


def load_trial_catalog(db: Session, academy_id: str) -> dict[str, Trial]:
    rows = db.query(TrialModel).filter(TrialModel.academy_id == academy_id).all()
    return {row.id: trial_from_db(row) for row in rows}
